import os
from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_INITIAL_BALANCE
from .errors import ConfigurationError


INITIAL_BALANCE_ENV = "TRADELEDGER_INITIAL_BALANCE"
MAX_ROWS_ENV = "TRADELEDGER_MAX_ROWS"
MAX_WORKERS_ENV = "TRADELEDGER_MAX_WORKERS"


@dataclass(frozen=True)
class Settings:
    default_initial_balance: float = DEFAULT_INITIAL_BALANCE
    max_rows: Optional[int] = None
    max_workers: int = 4


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def get_settings(
    initial_balance: Optional[float] = None,
    max_rows: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> Settings:
    """Load pipeline settings from arguments or environment variables.

    Args:
        initial_balance: Starting balance used when an export carries none.
        max_rows: Optional per-sheet row cap for quick previews.
        max_workers: Thread pool size for multi-file analysis.

    Returns:
        Settings populated from the first non-empty value in the priority
        order of explicit override, then environment variable, then default.

    Raises:
        ConfigurationError: when an environment value cannot be parsed.
    """

    resolved_balance = initial_balance if initial_balance is not None else _env_float(INITIAL_BALANCE_ENV)
    resolved_rows = max_rows if max_rows is not None else _env_int(MAX_ROWS_ENV)
    resolved_workers = max_workers if max_workers is not None else _env_int(MAX_WORKERS_ENV)

    return Settings(
        default_initial_balance=DEFAULT_INITIAL_BALANCE if resolved_balance is None else float(resolved_balance),
        max_rows=resolved_rows,
        max_workers=resolved_workers or Settings.max_workers,
    )
