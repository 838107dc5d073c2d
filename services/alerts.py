"""
alerts.py
---------

E-mail alerting for strongly negative feedback. The service formats a
short report for a :class:`SentimentResult` and delivers it through the
EmailJS REST API. Without an API key nothing is sent; the would-be
message is logged instead.

Delivery never raises: the caller only learns whether the message went
out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import DEFAULT_SENDER_EMAIL, get_config, subscribe_to_updates
from services.logging_utils import get_structured_logger
from services.observability import record_external_call
from services.sentiment import SentimentResult

logger = get_structured_logger(__name__)

ALERT_SUBJECT = "Negative Sentiment Alert - Action Required"

ClientFactory = Callable[[], httpx.AsyncClient]


@dataclass
class EmailConfig:
    recipient_email: str
    api_key: Optional[str] = None
    sender_email: str = DEFAULT_SENDER_EMAIL
    service_id: str = "default_service"
    template_id: str = "sentiment_alert"

    @classmethod
    def from_config(cls) -> Optional["EmailConfig"]:
        """Build delivery settings from the shared config, if a recipient is set."""
        cfg = get_config()
        if not cfg.ALERT_RECIPIENT_EMAIL:
            return None
        return cls(
            recipient_email=cfg.ALERT_RECIPIENT_EMAIL,
            api_key=cfg.EMAIL_API_KEY,
            sender_email=cfg.ALERT_SENDER_EMAIL,
            service_id=cfg.EMAIL_SERVICE_ID,
            template_id=cfg.EMAIL_TEMPLATE_ID,
        )


def _readable_timestamp(timestamp: str) -> str:
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_alert_message(result: SentimentResult) -> str:
    """Render the plain-text body of an alert e-mail."""
    return (
        "Negative sentiment detected in feedback analysis:\n"
        "\n"
        f'Text: "{result.text}"\n'
        f"Rating: {result.rating}/5\n"
        f"Negative Percentage: {round(result.negative * 100)}%\n"
        f"Confidence: {round(result.confidence * 100)}%\n"
        f"Timestamp: {_readable_timestamp(result.timestamp)}\n"
        "\n"
        "Please review and take appropriate action."
    )


class EmailAlertService:
    """Deliver negative sentiment alerts by e-mail."""

    def __init__(self, *, client_factory: Optional[ClientFactory] = None):
        self.config = get_config()
        self.client_factory = client_factory or self._default_client
        self._unsubscribe = subscribe_to_updates(self._on_config_update)

    def _on_config_update(self, cfg, changes: Dict[str, Any]) -> None:
        self.config = cfg

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.HTTP_TIMEOUT_SECONDS)

    def build_payload(self, result: SentimentResult, email: EmailConfig) -> Dict[str, Any]:
        return {
            "service_id": email.service_id,
            "template_id": email.template_id,
            "user_id": email.api_key,
            "template_params": {
                "to_email": email.recipient_email,
                "from_email": email.sender_email or DEFAULT_SENDER_EMAIL,
                "subject": ALERT_SUBJECT,
                "message": format_alert_message(result),
            },
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        async with self.client_factory() as client:
            return await client.post(self.config.EMAIL_API_URL, json=payload)

    async def send_alert(self, result: SentimentResult, email: EmailConfig) -> bool:
        """
        Send an alert e-mail for ``result``.

        Returns:
            True when the provider accepted the message, False otherwise
        """
        if not email.api_key:
            logger.info(
                "Email would be sent (no API key provided)",
                to=email.recipient_email,
                subject=ALERT_SUBJECT,
                sentiment=result.to_dict(),
            )
            return False

        try:
            response = await self._post(self.build_payload(result, email))
        except Exception as e:
            logger.error(f"Failed to send email: {e}", to=email.recipient_email)
            record_external_call("email", "failure")
            return False

        if not response.is_success:
            logger.warning(
                "Email provider rejected alert",
                status=response.status_code,
                to=email.recipient_email,
            )
            record_external_call("email", "rejected")
            return False

        record_external_call("email", "success")
        logger.info("Alert email sent", to=email.recipient_email, result_id=result.id)
        return True


__all__ = ["ALERT_SUBJECT", "EmailAlertService", "EmailConfig", "format_alert_message"]
