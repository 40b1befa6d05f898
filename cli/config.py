import logging
import os
from dataclasses import dataclass
from typing import Optional


API_BASE_ENV = "API_BASE_URL"
API_TOKEN_ENV = "API_TOKEN"
LOG_LEVEL_ENV = "TRADELEDGER_LOG_LEVEL"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass
class APISettings:
    base_url: str
    token: Optional[str]


class MissingConfigurationError(RuntimeError):
    """Raised when a remote command runs without an API base URL."""


def get_settings(base_url: Optional[str] = None, token: Optional[str] = None) -> APISettings:
    """Resolve the remote API location for the upload/list/delete commands.

    Explicit arguments win over the API_BASE_URL / API_TOKEN environment
    variables. Local commands (analyze, export) never call this.

    Raises:
        MissingConfigurationError: when no base URL is available.
    """

    resolved_base = base_url or os.getenv(API_BASE_ENV)
    resolved_token = token or os.getenv(API_TOKEN_ENV)

    if not resolved_base:
        raise MissingConfigurationError(
            f"API base URL is required for remote commands. Set {API_BASE_ENV} or pass --base-url."
        )

    return APISettings(base_url=resolved_base.rstrip("/"), token=resolved_token)


def configure_logging(level: Optional[str]) -> None:
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
