"""
translation.py
--------------

Translation collaborator that prepares non-English feedback for the
scorer. With an API key the text is sent to the Google Translate v2
endpoint; without one a cheap character heuristic only tags the text as
English or unknown.

Every failure falls back to the original text tagged ``unknown`` so the
caller can always continue with scoring.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import get_config, subscribe_to_updates
from services.logging_utils import get_logger
from services.observability import record_external_call

logger = get_logger(__name__)

UNKNOWN_LANGUAGE = "unknown"
_ENGLISH_CHARS = re.compile(r"^[a-zA-Z0-9\s.,!?;:'\"()-]+$")

ClientFactory = Callable[[], httpx.AsyncClient]


class TranslationError(Exception):
    """Raised when the translation API returns an unusable response."""


@dataclass
class TranslationResult:
    original_text: str
    translated_text: str
    detected_language: str
    confidence: float


def detect_language(text: str) -> TranslationResult:
    """Tag ``text`` as English when it only uses plain ASCII punctuation."""
    is_english = bool(_ENGLISH_CHARS.match(text))
    return TranslationResult(
        original_text=text,
        translated_text=text,
        detected_language="en" if is_english else UNKNOWN_LANGUAGE,
        confidence=0.9 if is_english else 0.1,
    )


class TranslationService:
    """Translate feedback text to English with a safe fallback."""

    def __init__(self, *, client_factory: Optional[ClientFactory] = None):
        self.config = get_config()
        self.client_factory = client_factory or self._default_client
        self._unsubscribe = subscribe_to_updates(self._on_config_update)

    def _on_config_update(self, cfg, changes: Dict[str, Any]) -> None:
        self.config = cfg

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.HTTP_TIMEOUT_SECONDS)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(self, text: str, api_key: str) -> Dict[str, Any]:
        async with self.client_factory() as client:
            response = await client.post(
                self.config.TRANSLATE_API_URL,
                params={"key": api_key},
                json={"q": text, "target": "en", "format": "text"},
            )
            response.raise_for_status()
            return response.json()

    async def translate_to_english(self, text: str, api_key: Optional[str] = None) -> TranslationResult:
        """
        Translate ``text`` to English.

        Args:
            text: Text to translate
            api_key: Translation API credential; without it no request is made

        Returns:
            Translation result; on failure the original text tagged ``unknown``
        """
        if not api_key:
            return detect_language(text)

        try:
            payload = await self._request(text, api_key)
            if payload.get("error"):
                raise TranslationError(payload["error"].get("message", "translation failed"))

            translation = payload["data"]["translations"][0]
            record_external_call("translate", "success")
            return TranslationResult(
                original_text=text,
                translated_text=translation["translatedText"],
                detected_language=translation.get("detectedSourceLanguage") or UNKNOWN_LANGUAGE,
                confidence=0.9,
            )
        except Exception as e:
            logger.error(f"Translation failed: {e}")
            record_external_call("translate", "failure")
            return TranslationResult(
                original_text=text,
                translated_text=text,
                detected_language=UNKNOWN_LANGUAGE,
                confidence=0.1,
            )


__all__ = ["TranslationError", "TranslationResult", "TranslationService", "detect_language"]
