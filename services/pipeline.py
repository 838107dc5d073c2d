"""
Analysis pipeline: translate, score, store and alert
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from config import get_config, subscribe_to_updates
from services.alerts import EmailAlertService, EmailConfig
from services.history import HistoryService
from services.logging_utils import get_structured_logger
from services.observability import record_alert, record_analysis
from services.sentiment import SentimentResult, SentimentService, should_send_alert
from services.translation import TranslationResult, TranslationService

logger = get_structured_logger(__name__)

DEFAULT_LANGUAGE = "en"


@dataclass
class AnalysisOutcome:
    result: SentimentResult
    translation: Optional[TranslationResult] = None
    alert_triggered: bool = False
    alert_sent: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "translation": vars(self.translation) if self.translation else None,
            "alert_triggered": self.alert_triggered,
            "alert_sent": self.alert_sent,
        }


class AnalysisPipeline:
    """Runs one piece of feedback through every collaborator around the scorer"""

    def __init__(
        self,
        sentiment_service: SentimentService,
        history_service: HistoryService,
        translation_service: Optional[TranslationService] = None,
        alert_service: Optional[EmailAlertService] = None,
    ):
        self.config = get_config()
        self.sentiment_service = sentiment_service
        self.history_service = history_service
        self.translation_service = translation_service or TranslationService()
        self.alert_service = alert_service or EmailAlertService()
        self._unsubscribe = subscribe_to_updates(self._on_config_update)

    def _on_config_update(self, cfg, changes: Dict[str, Any]) -> None:
        self.config = cfg

    async def process(self, text: str, *, translate: Optional[bool] = None) -> AnalysisOutcome:
        """
        Analyze ``text`` and hand the result to history and alerting.

        Args:
            text: Feedback text; must contain something besides whitespace
            translate: Override for the ``AUTO_TRANSLATE`` setting

        Returns:
            The scored result plus translation and alert details
        """
        if not text or not text.strip():
            raise ValueError("text must not be blank")

        should_translate = self.config.AUTO_TRANSLATE if translate is None else translate
        translation: Optional[TranslationResult] = None
        processed_text = text
        language = DEFAULT_LANGUAGE

        if should_translate:
            translation = await self.translation_service.translate_to_english(
                text, self.config.TRANSLATE_API_KEY
            )
            processed_text = translation.translated_text
            language = translation.detected_language
            if language != DEFAULT_LANGUAGE:
                logger.info(f"Text translated from {language} to English", language=language)

        result = self.sentiment_service.analyze_sentiment(processed_text).with_language(language)
        self.history_service.save(result)
        record_analysis(result.overall_sentiment)
        logger.analysis(
            result.overall_sentiment,
            result.rating,
            result_id=result.id,
            confidence=result.confidence,
        )

        outcome = AnalysisOutcome(result=result, translation=translation)
        if should_send_alert(result):
            outcome.alert_triggered = True
            record_alert("triggered")
            outcome.alert_sent = await self._deliver_alert(result)

        return outcome

    async def _deliver_alert(self, result: SentimentResult) -> bool:
        if not self.config.ALERTS_ENABLED:
            return False

        email = EmailConfig.from_config()
        if email is None:
            logger.warning("Alert triggered but no recipient configured", result_id=result.id)
            return False

        sent = await self.alert_service.send_alert(result, email)
        if sent:
            record_alert("sent")
        logger.warning(
            "Negative sentiment alert " + ("sent" if sent else "not delivered"),
            result_id=result.id,
            negative=result.negative,
            rating=result.rating,
        )
        return sent


__all__ = ["AnalysisOutcome", "AnalysisPipeline"]
