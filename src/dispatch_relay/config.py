"""Relay configuration loaded from environment variables."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_LOG_MAX_ENTRIES = 200


@dataclass(frozen=True)
class RelaySettings:
    """Runtime settings for the relay.

    The token is kept here only so it can be handed to a token provider; it is
    excluded from ``repr`` so it never ends up in logs.
    """

    github_token: str | None = None
    github_api_url: str = DEFAULT_GITHUB_API_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_path: str | None = None
    log_max_entries: int = DEFAULT_LOG_MAX_ENTRIES
    host: str = "0.0.0.0"
    port: int = 8080

    def __repr__(self) -> str:
        return (
            f"RelaySettings(github_token={'set' if self.github_token else 'unset'}, "
            f"github_api_url={self.github_api_url!r}, timeout_seconds={self.timeout_seconds}, "
            f"log_path={self.log_path!r}, log_max_entries={self.log_max_entries}, "
            f"host={self.host!r}, port={self.port})"
        )


def get_github_token() -> str | None:
    """Get the upstream credential from the environment.

    Returns:
        GITHUB_PAT if set, else GITHUB_TOKEN, else None.
    """
    return os.environ.get("GITHUB_PAT") or os.environ.get("GITHUB_TOKEN") or None


def _parse_positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive %s=%r, using default %s", name, raw, default)
        return default
    return value


def _parse_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive %s=%r, using default %d", name, raw, default)
        return default
    return value


def load_settings() -> RelaySettings:
    """Load relay settings from the environment.

    Returns:
        RelaySettings with defaults applied for anything unset or invalid.
    """
    api_url = os.environ.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL
    return RelaySettings(
        github_token=get_github_token(),
        github_api_url=api_url.rstrip("/"),
        timeout_seconds=_parse_positive_float("DISPATCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        log_path=os.environ.get("DISPATCH_LOG_PATH") or None,
        log_max_entries=_parse_positive_int("DISPATCH_LOG_MAX_ENTRIES", DEFAULT_LOG_MAX_ENTRIES),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=_parse_positive_int("PORT", 8080),
    )
