"""
history.py
----------

Bounded, most-recent-first history of sentiment analyses.

The history keeps at most ``max_items`` results in the process-local
database session. Saving a new result pushes it to the front and drops
the oldest entries beyond the cap. Aggregate statistics and a CSV export
are computed over the full contents.

Storage problems are logged and reported through return values so that
a broken history never interferes with scoring.
"""

from __future__ import annotations

import csv
import io
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, ContextManager, Dict, List, Optional

from config import get_config
from db.models import AnalysisRecord
from db.session import InMemorySession, get_db_session
from services.logging_utils import get_logger, log_performance
from services.sentiment import SentimentResult

logger = get_logger(__name__)

RECENT_ANALYSES = 10
CSV_HEADER = [
    "Text",
    "Sentiment",
    "Rating",
    "Confidence",
    "Positive %",
    "Neutral %",
    "Negative %",
    "Timestamp",
]

SessionFactory = Callable[[], ContextManager[InMemorySession]]


@dataclass
class HistoryStats:
    """Aggregate view over the stored analyses."""

    total_analyses: int
    sentiment_counts: Dict[str, int]
    avg_rating: float
    avg_confidence: float
    recent_analyses: List[SentimentResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class HistoryService:
    """Insertion-ordered store of recent results keyed by result id."""

    def __init__(
        self,
        *,
        max_items: Optional[int] = None,
        session_factory: SessionFactory = get_db_session,
    ):
        self.max_items = max_items if max_items is not None else get_config().HISTORY_MAX_ITEMS
        self.session_factory = session_factory
        self._lock = threading.Lock()

    def _records(self, session: InMemorySession, limit: Optional[int] = None) -> List[AnalysisRecord]:
        query = session.query(AnalysisRecord).order_by(lambda record: record.sequence, descending=True)
        if limit is not None:
            query = query.limit(max(0, limit))
        return query.all()

    def save(self, result: SentimentResult) -> bool:
        """Prepend ``result`` and trim the history to ``max_items``."""
        try:
            with self._lock, self.session_factory() as session:
                session.add(AnalysisRecord(result=result))
                for stale in self._records(session)[self.max_items:]:
                    session.delete(stale)
            return True
        except Exception as e:
            logger.error(f"Failed to save to history: {e}")
            return False

    def list(self, limit: Optional[int] = None) -> List[SentimentResult]:
        """Return stored results, most recent first."""
        try:
            with self._lock, self.session_factory() as session:
                records = self._records(session, limit)
        except Exception as e:
            logger.error(f"Failed to load history: {e}")
            return []

        return [record.result for record in records]

    def get(self, result_id: str) -> Optional[SentimentResult]:
        try:
            with self._lock, self.session_factory() as session:
                record = session.query(AnalysisRecord).filter(lambda r: r.id == result_id).first()
        except Exception as e:
            logger.error(f"Failed to load history item: {e}")
            return None
        return record.result if record else None

    def delete(self, result_id: str) -> bool:
        """Remove the entry with ``result_id``; False when it is unknown."""
        try:
            with self._lock, self.session_factory() as session:
                matches = session.query(AnalysisRecord).filter(lambda r: r.id == result_id).all()
                for record in matches:
                    session.delete(record)
        except Exception as e:
            logger.error(f"Failed to delete history item: {e}")
            return False
        return bool(matches)

    def clear(self) -> int:
        """Drop the whole history and return how many entries were removed."""
        try:
            with self._lock, self.session_factory() as session:
                removed = session.purge(AnalysisRecord)
        except Exception as e:
            logger.error(f"Failed to clear history: {e}")
            return 0
        logger.info(f"History cleared ({removed} entries)")
        return removed

    def stats(self) -> Optional[HistoryStats]:
        """Summarize the history, or None when it is empty."""
        history = self.list()
        if not history:
            return None

        total = len(history)
        counts = {label: 0 for label in ("positive", "neutral", "negative")}
        for result in history:
            counts[result.overall_sentiment] = counts.get(result.overall_sentiment, 0) + 1

        avg_rating = sum(result.rating for result in history) / total
        avg_confidence = sum(result.confidence for result in history) / total

        return HistoryStats(
            total_analyses=total,
            sentiment_counts=counts,
            avg_rating=round(avg_rating, 1),
            avg_confidence=round(avg_confidence, 2),
            recent_analyses=history[:RECENT_ANALYSES],
        )

    @log_performance()
    def export_csv(self) -> str:
        """Render the history as CSV with whole-number percentages."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for result in self.list():
            writer.writerow(
                [
                    result.text,
                    result.overall_sentiment,
                    result.rating,
                    result.confidence,
                    round(result.positive * 100),
                    round(result.neutral * 100),
                    round(result.negative * 100),
                    result.timestamp,
                ]
            )
        return buffer.getvalue()


__all__ = ["HistoryService", "HistoryStats"]
