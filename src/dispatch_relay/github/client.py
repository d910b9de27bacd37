"""GitHub API client for repository_dispatch events.

Performs one authenticated POST per dispatch using httpx with an explicit
timeout. Any HTTP status returned by GitHub is a valid result; only network
failures, a missing credential or an empty target are raised.
"""

import logging
from typing import Any
from urllib.parse import quote

from dispatch_relay.config import DEFAULT_GITHUB_API_URL, DEFAULT_TIMEOUT_SECONDS
from dispatch_relay.errors import ConfigurationError, InvalidParamsError, UpstreamError
from dispatch_relay.github.auth import TokenProvider
from dispatch_relay.logging_utils import log_error, log_info
from dispatch_relay.models import DispatchResult

logger = logging.getLogger(__name__)

USER_AGENT = "mcp-github-dispatch-relay"
GITHUB_API_VERSION = "2022-11-28"

# Lazy import for httpx to avoid dependency when not needed
_httpx = None


def _import_httpx():
    """Lazily import httpx library."""
    global _httpx
    if _httpx is None:
        import httpx as httpx_module

        _httpx = httpx_module
    return _httpx


def build_dispatch_url(api_url: str, owner: str, repo: str) -> str:
    """Build the create-dispatch-event endpoint for a repository.

    Owner and repo are percent-encoded as single path segments.
    """
    return (
        f"{api_url.rstrip('/')}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/dispatches"
    )


class GitHubDispatchClient:
    """Client for ``POST /repos/{owner}/{repo}/dispatches``."""

    def __init__(
        self,
        token_provider: TokenProvider,
        api_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Any | None = None,
    ):
        """Initialize the dispatch client.

        Args:
            token_provider: Source of the bearer token, consulted on every call.
            api_url: GitHub REST API base URL.
            timeout: Upstream request timeout in seconds.
            transport: Optional httpx async transport (used by tests).
        """
        self.token_provider = token_provider
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def dispatch(
        self,
        owner: str,
        repo: str,
        event_type: str,
        client_payload: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """Trigger a repository_dispatch event.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            event_type: Custom event name delivered to workflows.
            client_payload: Arbitrary JSON object forwarded untouched.

        Returns:
            DispatchResult mirroring the upstream status, reason and body.

        Raises:
            ConfigurationError: If no token is available. No request is made.
            InvalidParamsError: If owner, repo or event_type is empty.
            UpstreamError: If the request fails at the network level or times out.
        """
        token = self.token_provider.get_token()
        if not token:
            log_error(logger, "Dispatch refused: no GitHub credential configured")
            raise ConfigurationError()

        if not owner or not repo:
            raise InvalidParamsError("Invalid params: owner and repo are required")
        if not event_type:
            raise InvalidParamsError("Invalid params: event_type is required")

        httpx = _import_httpx()
        url = build_dispatch_url(self.api_url, owner, repo)
        payload = {
            "event_type": event_type,
            "client_payload": client_payload if client_payload is not None else {},
        }

        log_info(
            logger,
            "Dispatching repository event",
            owner=owner,
            repo=repo,
            event_type=event_type,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=self._headers(token))
        except httpx.TimeoutException as e:
            log_error(logger, "Dispatch timed out", owner=owner, repo=repo, timeout=self.timeout)
            raise UpstreamError(
                f"Upstream unavailable: request timed out after {self.timeout:g}s"
            ) from e
        except httpx.RequestError as e:
            log_error(
                logger,
                "Dispatch request failed",
                owner=owner,
                repo=repo,
                error=f"{type(e).__name__}: {e}",
            )
            raise UpstreamError(f"Upstream unavailable: {type(e).__name__}: {e}") from e

        result = DispatchResult.from_status(
            response.status_code, response.reason_phrase, response.text
        )
        log_info(
            logger,
            "Dispatch completed",
            owner=owner,
            repo=repo,
            event_type=event_type,
            status=result.status,
            ok=result.ok,
        )
        return result
