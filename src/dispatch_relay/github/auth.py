"""GitHub credential providers for the dispatch client.

Security notes:
- Tokens are held in memory only and never logged
- Presence is checked when a dispatch is attempted, not at startup
"""

import logging
from abc import ABC, abstractmethod

from dispatch_relay.config import RelaySettings, get_github_token

logger = logging.getLogger(__name__)


class TokenProvider(ABC):
    """Abstract interface for GitHub token providers."""

    @abstractmethod
    def get_token(self) -> str | None:
        """Get a GitHub token.

        Returns:
            GitHub token or None if not available.
        """
        pass


class StaticTokenProvider(TokenProvider):
    """Token provider holding a single token passed in at construction."""

    def __init__(self, token: str | None):
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token


class EnvTokenProvider(TokenProvider):
    """Token provider that reads GITHUB_PAT (or GITHUB_TOKEN) from the environment.

    Usage:
        export GITHUB_PAT=ghp_xxxxxxxxxxxxxxxxxxxx
    """

    def __init__(self):
        """Initialize the environment token provider."""
        self.token = get_github_token()

    def get_token(self) -> str | None:
        """Get a GitHub token from the environment.

        Returns:
            Token captured at construction, or None if neither variable was set.
        """
        return self.token


def get_default_token_provider(settings: RelaySettings | None = None) -> TokenProvider:
    """Pick a token provider for the given settings.

    Args:
        settings: Loaded relay settings; falls back to the environment when None.

    Returns:
        A provider wrapping the configured token (which may be absent).
    """
    if settings is None:
        return EnvTokenProvider()
    if not settings.github_token:
        logger.warning("No GitHub credential configured; dispatch calls will fail")
    return StaticTokenProvider(settings.github_token)
