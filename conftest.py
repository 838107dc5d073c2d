"""Pytest configuration: async test support and a clean history store."""

from __future__ import annotations

import asyncio
import inspect

import pytest

from db.session import init_db


def pytest_pyfunc_call(pyfuncitem):  # pragma: no cover - pytest hook
    """Allow pytest to run ``async def`` tests without extra plugins."""
    test_func = pyfuncitem.obj

    if inspect.iscoroutinefunction(test_func):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(test_func)
        call_args = {
            name: value
            for name, value in funcargs.items()
            if name in sig.parameters
        }
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_func(**call_args))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


@pytest.fixture(autouse=True)
def clean_store():
    """Every test starts with an empty history store."""
    init_db()
    yield
    init_db()


@pytest.fixture
def reset_env(monkeypatch: pytest.MonkeyPatch):
    """Clear service settings from the environment and rebuild the config."""
    import config as config_module

    for key in [
        "AUTO_TRANSLATE",
        "TRANSLATE_API_KEY",
        "ALERTS_ENABLED",
        "ALERT_RECIPIENT_EMAIL",
        "EMAIL_API_KEY",
        "HISTORY_MAX_ITEMS",
    ]:
        monkeypatch.delenv(key, raising=False)
    config_module.reset_config()
    yield monkeypatch
    monkeypatch.undo()
    config_module.reset_config()
