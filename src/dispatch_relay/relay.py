"""Relay service: classify, dispatch and wrap.

``DispatchRelay.handle`` is the single entry point used by the HTTP layer.
It always returns a well-formed ``RelayResponse``; no exception escapes.
"""

import asyncio
import logging
from typing import Any

from dispatch_relay import capabilities
from dispatch_relay.dispatch_logs import DispatchLogEvent, DispatchLogSink, MemoryLogSink
from dispatch_relay.envelopes import (
    RelayResponse,
    legacy_error,
    legacy_result,
    preflight_response,
    probe_response,
    rpc_error,
    rpc_result,
)
from dispatch_relay.errors import InternalError, RelayError
from dispatch_relay.github.client import GitHubDispatchClient
from dispatch_relay.logging_utils import get_request_id, log_info, log_warning
from dispatch_relay.models import DispatchRequest, DispatchResult
from dispatch_relay.protocol import (
    CapabilityProbe,
    DiscoveryCall,
    JsonRpcRequest,
    LegacyRestRequest,
    Preflight,
    RejectedRequest,
    classify,
    parse_dispatch_arguments,
    resolve_rpc,
)

logger = logging.getLogger(__name__)


class DispatchRelay:
    """Protocol-agnostic handler for the relay endpoint."""

    def __init__(self, client: GitHubDispatchClient, log_sink: DispatchLogSink | None = None):
        self.client = client
        self.log_sink = log_sink if log_sink is not None else MemoryLogSink()

    async def handle(self, http_method: str, raw_body: bytes | str | None = None) -> RelayResponse:
        """Handle one inbound request.

        Args:
            http_method: HTTP verb.
            raw_body: Undecoded request body.

        Returns:
            The response in the envelope matching the request's dialect.
        """
        dialect = "legacy"
        request_id: Any = None
        try:
            envelope = classify(http_method, raw_body)

            if isinstance(envelope, Preflight):
                return preflight_response()

            if isinstance(envelope, CapabilityProbe):
                await self._record("probe", "GET", "ok")
                return probe_response()

            if isinstance(envelope, RejectedRequest):
                await self._record(
                    envelope.dialect, http_method.upper(), "error", error=envelope.error
                )
                if envelope.dialect == "jsonrpc":
                    return rpc_error(envelope.id, envelope.error)
                return legacy_error(envelope.error)

            if isinstance(envelope, JsonRpcRequest):
                dialect = "jsonrpc"
                request_id = envelope.id
                return await self._handle_rpc(envelope)

            if isinstance(envelope, LegacyRestRequest):
                return await self._handle_legacy(envelope)

            raise InternalError(f"Unhandled envelope: {type(envelope).__name__}")
        except Exception as e:
            logger.exception("Unexpected failure while handling relay request")
            error = e if isinstance(e, InternalError) else InternalError(f"Internal error: {e}")
            await self._record(dialect, http_method.upper(), "error", error=error)
            if dialect == "jsonrpc":
                return rpc_error(request_id, error)
            return legacy_error(error)

    async def _handle_legacy(self, envelope: LegacyRestRequest) -> RelayResponse:
        args: DispatchRequest | None = None
        try:
            args = parse_dispatch_arguments(envelope.body)
            result = await self._dispatch(args)
        except RelayError as e:
            await self._record("legacy", "POST", "error", args=args, error=e)
            return legacy_error(e)

        await self._record("legacy", "POST", _outcome(result), args=args, status=result.status)
        return legacy_result(result)

    async def _handle_rpc(self, request: JsonRpcRequest) -> RelayResponse:
        args: DispatchRequest | None = None
        try:
            action = resolve_rpc(request)
            if isinstance(action, DiscoveryCall):
                await self._record("jsonrpc", request.method, "ok")
                return rpc_result(request.id, self._discovery_result(action))

            args = parse_dispatch_arguments(action.arguments)
            result = await self._dispatch(args)
        except RelayError as e:
            await self._record("jsonrpc", request.method, "error", args=args, error=e)
            return rpc_error(request.id, e)

        # A non-2xx upstream status is still a successful RPC result
        await self._record(
            "jsonrpc", request.method, _outcome(result), args=args, status=result.status
        )
        return rpc_result(request.id, result.to_dict())

    @staticmethod
    def _discovery_result(action: DiscoveryCall) -> dict[str, Any]:
        if action.method == "initialize":
            return capabilities.initialize_result(action.params.get("protocolVersion"))
        if action.method == "tools/list":
            return capabilities.tools_list_result()
        # ping and notifications/initialized
        return {}

    async def _dispatch(self, args: DispatchRequest) -> DispatchResult:
        return await self.client.dispatch(
            owner=args.owner,
            repo=args.repo,
            event_type=args.event_type,
            client_payload=args.client_payload,
        )

    async def _record(
        self,
        dialect: str,
        method: str,
        outcome: str,
        args: DispatchRequest | None = None,
        status: int | None = None,
        error: RelayError | None = None,
    ) -> None:
        event = DispatchLogEvent(
            dialect=dialect,
            method=method,
            outcome=outcome,
            request_id=get_request_id(),
            owner=args.owner if args else None,
            repo=args.repo if args else None,
            event_type=args.event_type if args else None,
            status=status,
            error=error.message if error else None,
        )
        log_info(
            logger,
            "Relay request handled",
            dialect=dialect,
            method=method,
            outcome=outcome,
            owner=event.owner,
            repo=event.repo,
            event_type=event.event_type,
            status=status,
            error=event.error,
        )
        try:
            await asyncio.to_thread(self.log_sink.append, event)
        except Exception as e:
            log_warning(logger, "Failed to record dispatch event", error=f"{type(e).__name__}: {e}")


def _outcome(result: DispatchResult) -> str:
    return "ok" if result.ok else "upstream_status"
