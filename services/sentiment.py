"""
sentiment.py
-------------

This module exposes the lexicon based sentiment scorer. It turns a piece
of free-form feedback text into a :class:`SentimentResult` holding a
positive/negative/neutral breakdown, a compound score in ``[-1, 1]``, a
1-5 rating, a discrete label and a confidence estimate. The service is a
pure function of its input and the static tables in
:mod:`services.lexicon`: it performs no I/O and keeps no state between
calls, so a single instance can be shared freely.

Scoring happens in three stages:

* ``tokenize`` lowercases the text, drops symbols other than ``! ? . ,``
  and yields the remaining word tokens.
* ``accumulate_scores`` walks the tokens once. An intensifier sets a
  pending multiplier that only applies to the immediately following
  word; words written in capitals receive an emphasis boost.
* ``SentimentService.analyze_sentiment`` aggregates the contributions,
  applies the exclamation adjustment and length normalization, and
  derives the rating, label and confidence.
"""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from services.lexicon import INTENSIFIERS, LEXICON

EMPHASIS_BOOST = 1.3
EXCLAMATION_WEIGHT = 0.292
NORMALIZATION_ALPHA = 15
NEUTRAL_WEIGHT = 0.5
DEADBAND = 0.05
ALERT_NEGATIVE_THRESHOLD = 0.70
ALERT_RATING_THRESHOLD = 2

# Anything that is not a word character, whitespace or kept punctuation.
_DISALLOWED = re.compile(r"[^\w\s!?.,]")
# Kept punctuation separates words but never becomes part of one.
_WORD = re.compile(r"[^\s!?.,]+")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _uuid() -> str:
    return str(uuid.uuid4())


def _round2(value: float) -> float:
    """Round to two decimals with halves going away from zero."""
    rounded = float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    # Collapse -0.0 so tiny negative noise reads as plain zero.
    return rounded if rounded else 0.0


def _format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SentimentResult:
    """Immutable outcome of one scoring call."""

    text: str
    positive: float
    negative: float
    neutral: float
    compound: float
    rating: int
    overall_sentiment: str
    confidence: float
    timestamp: str
    id: str
    language: Optional[str] = None

    def with_language(self, language: Optional[str]) -> "SentimentResult":
        """Return a copy tagged with ``language``."""
        return replace(self, language=language)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def tokenize(text: str) -> Iterator[str]:
    """Yield the lowercase word tokens of ``text``.

    Hyphens, quotes, apostrophes and emoji are replaced by spaces, so
    ``"don't"`` yields ``"don"`` and ``"t"``. Sentence punctuation splits
    words apart but is never yielded itself.
    """
    normalized = _DISALLOWED.sub(" ", text.lower())
    for match in _WORD.finditer(normalized):
        yield match.group(0)


def accumulate_scores(
    tokens: Iterator[str] | List[str],
    original_text: str,
    *,
    lexicon: Mapping[str, float] = LEXICON,
    intensifiers: Mapping[str, float] = INTENSIFIERS,
) -> List[float]:
    """Return the signed contribution of every sentiment-bearing token.

    An intensifier only modifies the next token. Two intensifiers in a
    row keep the second multiplier, and a neutral word in between
    discards a pending multiplier.
    """
    contributions: List[float] = []
    pending_multiplier = 1.0

    for token in tokens:
        if token in intensifiers:
            pending_multiplier = intensifiers[token]
            continue

        score = lexicon.get(token, 0.0)
        if score != 0:
            score *= pending_multiplier
            if len(token) > 2 and token.upper() in original_text:
                score *= EMPHASIS_BOOST
            contributions.append(score)

        pending_multiplier = 1.0

    return contributions


def rating_from_compound(compound: float) -> int:
    """Map a compound score onto the 1-5 star scale."""
    rating = math.floor(((compound + 1) / 2) * 4 + 1 + 0.5)
    return max(1, min(5, rating))


def label_from_compound(compound: float) -> str:
    if compound >= DEADBAND:
        return "positive"
    if compound <= -DEADBAND:
        return "negative"
    return "neutral"


def confidence_from_compound(compound: float, token_count: int) -> float:
    """Blend signal strength with text length into a 0-1 confidence."""
    strength = abs(compound)
    word_count_factor = min(token_count / 10, 1)
    confidence = (strength + word_count_factor) / 2

    if strength > 0.5:
        confidence += 0.2
    if token_count > 20:
        confidence += 0.1

    return max(0.0, min(1.0, confidence))


def should_send_alert(result: SentimentResult) -> bool:
    """Return True when ``result`` is negative enough to notify someone."""
    return result.negative >= ALERT_NEGATIVE_THRESHOLD or result.rating < ALERT_RATING_THRESHOLD


class SentimentService:
    """Lexicon based sentiment scorer.

    ``clock`` and ``id_factory`` supply the identity fields of each
    result so the scoring itself stays deterministic under test.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _uuid,
        lexicon: Mapping[str, float] = LEXICON,
        intensifiers: Mapping[str, float] = INTENSIFIERS,
    ):
        self.clock = clock
        self.id_factory = id_factory
        self.lexicon = lexicon
        self.intensifiers = intensifiers

    def neutral_result(self) -> SentimentResult:
        """Canonical result for input that carries no signal at all."""
        return SentimentResult(
            text="",
            positive=0.0,
            negative=0.0,
            neutral=1.0,
            compound=0.0,
            rating=3,
            overall_sentiment="neutral",
            confidence=0.0,
            timestamp=_format_timestamp(self.clock()),
            id=self.id_factory(),
        )

    def analyze_sentiment(self, text: str) -> SentimentResult:
        """Score ``text`` and return a fresh :class:`SentimentResult`.

        Args:
            text: Arbitrary input. Empty or whitespace-only text yields the
                canonical neutral result without running the scorer.

        Returns:
            The scored result. Percentages, compound and confidence are
            rounded to two decimals; the rating, label and confidence are
            derived from the unrounded compound.
        """
        if not text or not text.strip():
            return self.neutral_result()

        tokens = list(tokenize(text))
        contributions = accumulate_scores(
            tokens, text, lexicon=self.lexicon, intensifiers=self.intensifiers
        )

        positive_sum = sum(score for score in contributions if score > 0)
        negative_sum = abs(sum(score for score in contributions if score < 0))
        neutral_count = sum(1 for score in contributions if score == 0)

        raw_compound = sum(contributions)
        exclamations = text.count("!")
        if raw_compound > 0:
            raw_compound += EXCLAMATION_WEIGHT * exclamations
        else:
            raw_compound -= EXCLAMATION_WEIGHT * exclamations

        token_count = len(tokens)
        if token_count > 0:
            compound = raw_compound / math.sqrt(token_count * token_count + NORMALIZATION_ALPHA)
        else:
            compound = 0.0
        compound = max(-1.0, min(1.0, compound))

        positive, negative, neutral = self._percentages(positive_sum, negative_sum, neutral_count)

        return SentimentResult(
            text=text,
            positive=positive,
            negative=negative,
            neutral=neutral,
            compound=_round2(compound),
            rating=rating_from_compound(compound),
            overall_sentiment=label_from_compound(compound),
            confidence=_round2(confidence_from_compound(compound, token_count)),
            timestamp=_format_timestamp(self.clock()),
            id=self.id_factory(),
        )

    @staticmethod
    def _percentages(positive_sum: float, negative_sum: float, neutral_count: int) -> tuple[float, float, float]:
        total = positive_sum + negative_sum + NEUTRAL_WEIGHT * neutral_count
        if total <= 0:
            return 0.0, 0.0, 1.0

        negative = _round2(negative_sum / total)
        neutral = max(0.0, _round2(1 - positive_sum / total - negative_sum / total))
        # Positive absorbs the rounding remainder so the three always sum to 1.
        # It can differ from round(positive_sum / total, 2) by 0.01; that is intended.
        positive = _round2(1 - negative - neutral)
        if positive < 0:
            positive = 0.0
            neutral = _round2(1 - negative)
        return positive, negative, neutral


__all__ = [
    "SentimentResult",
    "SentimentService",
    "accumulate_scores",
    "confidence_from_compound",
    "label_from_compound",
    "rating_from_compound",
    "should_send_alert",
    "tokenize",
]
