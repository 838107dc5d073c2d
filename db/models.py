"""Data models stored by the in-memory history session."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict

from services.sentiment import SentimentResult

_SEQUENCE = itertools.count(1)


def _next_sequence() -> int:
    return next(_SEQUENCE)


@dataclass(eq=False)
class AnalysisRecord:
    """One stored sentiment analysis, ordered by insertion sequence."""

    result: SentimentResult
    sequence: int = field(default_factory=_next_sequence)

    @property
    def id(self) -> str:
        return self.result.id

    def to_dict(self) -> Dict[str, Any]:
        return self.result.to_dict()
