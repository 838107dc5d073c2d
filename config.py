"""
Configuration management for the sentiment scoring service
"""

import os
from typing import Dict, List, Optional, Callable, Any
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_TRANSLATE_API_URL = "https://translation.googleapis.com/language/translate/v2"
DEFAULT_EMAIL_API_URL = "https://api.emailjs.com/api/v1.0/email/send"
DEFAULT_SENDER_EMAIL = "noreply@sentiment-analyzer.com"


@dataclass
class Config:
    # Environment
    APP_ENV: str
    PORT: int
    ADMIN_TOKEN: str

    # Network safety
    ALLOWED_ORIGINS: List[str]

    # History store
    HISTORY_MAX_ITEMS: int

    # Translation
    AUTO_TRANSLATE: bool
    TRANSLATE_API_KEY: Optional[str]
    TRANSLATE_API_URL: str

    # Alerting
    ALERTS_ENABLED: bool
    ALERT_RECIPIENT_EMAIL: Optional[str]
    ALERT_SENDER_EMAIL: str
    EMAIL_API_KEY: Optional[str]
    EMAIL_API_URL: str
    EMAIL_SERVICE_ID: str
    EMAIL_TEMPLATE_ID: str

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float


ConfigListener = Callable[["Config", Dict[str, Any]], None]

_CONFIG_INSTANCE: Optional[Config] = None
_CONFIG_LISTENERS: List[ConfigListener] = []


def _env_flag(var: str, default: str = "false") -> bool:
    return os.getenv(var, default).lower() == "true"


def _env_int(var: str, default: int) -> int:
    try:
        return int(os.getenv(var, default))
    except ValueError:
        return default


def _env_float(var: str, default: float) -> float:
    try:
        return float(os.getenv(var, default))
    except ValueError:
        return default


def _env_optional(var: str) -> Optional[str]:
    value = os.getenv(var, "").strip()
    return value or None


def _build_config() -> Config:
    """Create a new ``Config`` instance from environment variables."""

    return Config(
        # Environment
        APP_ENV=os.getenv("APP_ENV", "prod"),
        PORT=_env_int("PORT", 8000),
        ADMIN_TOKEN=os.getenv("ADMIN_TOKEN", "choose-a-long-random-string"),

        # Network safety
        ALLOWED_ORIGINS=[origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()],

        # History store
        HISTORY_MAX_ITEMS=max(1, _env_int("HISTORY_MAX_ITEMS", 100)),

        # Translation
        AUTO_TRANSLATE=_env_flag("AUTO_TRANSLATE"),
        TRANSLATE_API_KEY=_env_optional("TRANSLATE_API_KEY"),
        TRANSLATE_API_URL=os.getenv("TRANSLATE_API_URL", DEFAULT_TRANSLATE_API_URL),

        # Alerting
        ALERTS_ENABLED=_env_flag("ALERTS_ENABLED"),
        ALERT_RECIPIENT_EMAIL=_env_optional("ALERT_RECIPIENT_EMAIL"),
        ALERT_SENDER_EMAIL=os.getenv("ALERT_SENDER_EMAIL", DEFAULT_SENDER_EMAIL),
        EMAIL_API_KEY=_env_optional("EMAIL_API_KEY"),
        EMAIL_API_URL=os.getenv("EMAIL_API_URL", DEFAULT_EMAIL_API_URL),
        EMAIL_SERVICE_ID=os.getenv("EMAIL_SERVICE_ID", "default_service"),
        EMAIL_TEMPLATE_ID=os.getenv("EMAIL_TEMPLATE_ID", "sentiment_alert"),

        # Outbound HTTP
        HTTP_TIMEOUT_SECONDS=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
    )


def _notify_listeners(changes: Dict[str, Any]) -> None:
    """Notify registered listeners of configuration changes."""

    if not changes:
        return

    cfg = get_config()
    for listener in list(_CONFIG_LISTENERS):
        try:
            listener(cfg, changes)
        except Exception:
            # Listeners should not break config updates; ignore failures.
            continue


def get_config() -> Config:
    """Return the shared configuration object."""

    global _CONFIG_INSTANCE
    if _CONFIG_INSTANCE is None:
        _CONFIG_INSTANCE = _build_config()
    return _CONFIG_INSTANCE


def update_config(**updates: Any) -> Config:
    """Mutate the shared config in place and notify listeners."""

    cfg = get_config()
    applied: Dict[str, Any] = {}

    for key, value in updates.items():
        if not hasattr(cfg, key):
            raise AttributeError(f"Config has no attribute '{key}'")
        current = getattr(cfg, key)
        if current == value:
            continue
        setattr(cfg, key, value)
        applied[key] = value

    if applied:
        _notify_listeners(applied)
    return cfg


def subscribe_to_updates(listener: ConfigListener) -> Callable[[], None]:
    """Register a callback invoked when the configuration changes."""

    if listener not in _CONFIG_LISTENERS:
        _CONFIG_LISTENERS.append(listener)

    def _unsubscribe() -> None:
        try:
            _CONFIG_LISTENERS.remove(listener)
        except ValueError:
            pass

    return _unsubscribe


def reset_config() -> Config:
    """Reload configuration from the environment and notify listeners."""

    global _CONFIG_INSTANCE
    _CONFIG_INSTANCE = _build_config()
    _notify_listeners({"__reset__": True})
    return _CONFIG_INSTANCE
