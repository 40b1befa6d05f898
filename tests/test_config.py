from __future__ import annotations

import pytest

from tradeledger.config import Settings, get_settings
from tradeledger.constants import DEFAULT_INITIAL_BALANCE
from tradeledger.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in ("TRADELEDGER_INITIAL_BALANCE", "TRADELEDGER_MAX_ROWS", "TRADELEDGER_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    assert get_settings() == Settings(default_initial_balance=DEFAULT_INITIAL_BALANCE, max_rows=None, max_workers=4)


def test_environment_then_override(monkeypatch) -> None:
    monkeypatch.setenv("TRADELEDGER_INITIAL_BALANCE", "500.5")
    monkeypatch.setenv("TRADELEDGER_MAX_ROWS", "100")
    monkeypatch.setenv("TRADELEDGER_MAX_WORKERS", "8")
    settings = get_settings()
    assert settings.default_initial_balance == 500.5
    assert settings.max_rows == 100
    assert settings.max_workers == 8

    assert get_settings(initial_balance=1.0, max_rows=5, max_workers=1) == Settings(1.0, 5, 1)


@pytest.mark.parametrize(
    "name, value",
    [
        ("TRADELEDGER_INITIAL_BALANCE", "ten"),
        ("TRADELEDGER_MAX_ROWS", "0"),
        ("TRADELEDGER_MAX_WORKERS", "many"),
    ],
)
def test_invalid_environment_values(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        get_settings()
