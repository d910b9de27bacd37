"""Response envelopes for each request dialect.

JSON-RPC replies always travel with HTTP 200 and carry failures in-band.
Legacy REST replies put the dispatch result at the top level and use the
HTTP status to signal the failure class.
"""

from dataclasses import dataclass
from typing import Any

from dispatch_relay.capabilities import discovery_document
from dispatch_relay.errors import RelayError
from dispatch_relay.models import DispatchResult


@dataclass(frozen=True)
class RelayResponse:
    """Framework-neutral reply: an HTTP status and an optional JSON body."""

    status_code: int
    body: Any = None


def preflight_response() -> RelayResponse:
    return RelayResponse(status_code=200)


def probe_response() -> RelayResponse:
    return RelayResponse(status_code=200, body=discovery_document())


def status_allows_body(status_code: int) -> bool:
    return status_code >= 200 and status_code not in (204, 304)


def legacy_result(result: DispatchResult) -> RelayResponse:
    """Top-level result with the HTTP status mirroring the upstream status.

    Statuses that forbid a body (204, 304) are mirrored with an empty body.
    """
    if not status_allows_body(result.status):
        return RelayResponse(status_code=result.status)
    return RelayResponse(status_code=result.status, body=result.to_dict())


def legacy_error(error: RelayError) -> RelayResponse:
    """Pre-dispatch or machine failure in the legacy shape."""
    return RelayResponse(
        status_code=error.http_status,
        body={
            "ok": False,
            "status": error.http_status,
            "statusText": error.message,
            "body": "",
        },
    )


def rpc_result(request_id: Any, result: Any) -> RelayResponse:
    return RelayResponse(
        status_code=200,
        body={"jsonrpc": "2.0", "id": request_id, "result": result},
    )


def rpc_error(request_id: Any, error: RelayError) -> RelayResponse:
    return RelayResponse(
        status_code=200,
        body={"jsonrpc": "2.0", "id": request_id, "error": error.to_jsonrpc()},
    )
