"""GitHub credential providers and dispatch client."""

from .auth import (
    EnvTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    get_default_token_provider,
)
from .client import GitHubDispatchClient, build_dispatch_url

__all__ = [
    "GitHubDispatchClient",
    "build_dispatch_url",
    "TokenProvider",
    "StaticTokenProvider",
    "EnvTokenProvider",
    "get_default_token_provider",
]
