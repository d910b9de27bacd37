"""Request classification for the relay endpoint.

One endpoint accepts several dialects: CORS preflight, a GET capability
probe, a bare REST POST and JSON-RPC 2.0 envelopes. ``classify`` turns the
raw HTTP method and body into exactly one ``ProtocolEnvelope`` variant so the
rest of the relay never has to sniff the body again.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import ValidationError

from dispatch_relay.capabilities import TOOL_NAME
from dispatch_relay.errors import (
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
    RelayError,
    ToolNotFoundError,
)
from dispatch_relay.models import DispatchRequest

Dialect = Literal["jsonrpc", "legacy"]

DISCOVERY_METHODS = frozenset({"initialize", "tools/list", "ping", "notifications/initialized"})


@dataclass(frozen=True)
class Preflight:
    """OPTIONS/HEAD request answered with CORS headers only."""


@dataclass(frozen=True)
class CapabilityProbe:
    """GET request asking which tools the relay exposes."""


@dataclass(frozen=True)
class LegacyRestRequest:
    """POST whose body carries the dispatch fields at the top level."""

    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JsonRpcRequest:
    """JSON-RPC 2.0 request; ``id`` is echoed back untouched."""

    id: Any
    method: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RejectedRequest:
    """Request that failed classification, with the dialect to answer in."""

    dialect: Dialect
    error: RelayError
    id: Any = None


ProtocolEnvelope = Preflight | CapabilityProbe | LegacyRestRequest | JsonRpcRequest | RejectedRequest


@dataclass(frozen=True)
class DiscoveryCall:
    """JSON-RPC method answered from the capability descriptor."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolCall:
    """JSON-RPC method that triggers a dispatch."""

    arguments: Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def decode_body(raw: bytes | str | None) -> Any:
    """Decode a request body as JSON.

    An empty body decodes to None. A body that decodes to a JSON string is
    decoded a second time, for clients that double-encode their payload.
    ``NaN`` and ``Infinity`` literals are rejected.

    Raises:
        ParseError: If the body (or the inner string) is not valid JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError("Parse error: body is not UTF-8") from e
    if not raw.strip():
        return None

    try:
        data = json.loads(raw, parse_constant=_reject_constant)
        if isinstance(data, str):
            data = json.loads(data, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise ParseError(f"Parse error: {e.msg}") from e
    except ValueError as e:
        raise ParseError(f"Parse error: {e}") from e
    return data


def _sniff_dialect(raw: bytes | str | None) -> Dialect:
    if raw is None:
        return "legacy"
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    return "jsonrpc" if '"jsonrpc"' in text else "legacy"


def _classify_jsonrpc(data: dict[str, Any]) -> JsonRpcRequest | RejectedRequest:
    request_id = data.get("id")

    if data.get("jsonrpc") != "2.0":
        return RejectedRequest(
            "jsonrpc", InvalidRequestError('Invalid Request: jsonrpc must be "2.0"'), request_id
        )

    method = data.get("method")
    if not isinstance(method, str) or not method:
        return RejectedRequest(
            "jsonrpc", InvalidRequestError("Invalid Request: missing method"), request_id
        )

    params = data.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return RejectedRequest(
            "jsonrpc", InvalidParamsError("Invalid params: params must be an object"), request_id
        )

    return JsonRpcRequest(id=request_id, method=method, params=params)


def classify(http_method: str, raw_body: bytes | str | None = None) -> ProtocolEnvelope:
    """Classify an inbound request.

    Args:
        http_method: HTTP verb of the request.
        raw_body: Undecoded request body.

    Returns:
        The matching ProtocolEnvelope variant. Malformed input yields a
        RejectedRequest rather than raising.
    """
    verb = http_method.upper()
    if verb in ("OPTIONS", "HEAD"):
        return Preflight()
    if verb == "GET":
        return CapabilityProbe()
    if verb != "POST":
        return RejectedRequest("legacy", InvalidRequestError(f"Unsupported HTTP method: {verb}"))

    try:
        data = decode_body(raw_body)
    except ParseError as e:
        return RejectedRequest(_sniff_dialect(raw_body), e)

    if data is None:
        return LegacyRestRequest(body={})
    if isinstance(data, dict):
        if "jsonrpc" in data:
            return _classify_jsonrpc(data)
        return LegacyRestRequest(body=data)
    return RejectedRequest("legacy", InvalidRequestError("Request body must be a JSON object"))


def resolve_rpc(request: JsonRpcRequest) -> DiscoveryCall | ToolCall:
    """Map a JSON-RPC method to the action it asks for.

    Raises:
        ToolNotFoundError: ``tools/call`` names a tool other than the dispatch tool.
        MethodNotFoundError: The method is not served by the relay.
    """
    method = request.method
    params = request.params

    if method in DISCOVERY_METHODS:
        return DiscoveryCall(method=method, params=params)

    if method == "tools/call":
        name = params.get("name") or params.get("tool")
        if name != TOOL_NAME:
            raise ToolNotFoundError(name)
        arguments = params.get("arguments")
        if arguments is None:
            arguments = params.get("input")
        return ToolCall(arguments={} if arguments is None else arguments)

    # Shorthand: the tool name used directly as the method
    if method == TOOL_NAME:
        return ToolCall(arguments=params)

    raise MethodNotFoundError(method)


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "arguments"
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


def parse_dispatch_arguments(arguments: Any) -> DispatchRequest:
    """Validate raw arguments into a DispatchRequest.

    Raises:
        InvalidParamsError: If arguments are not an object or fail validation.
    """
    if not isinstance(arguments, dict):
        raise InvalidParamsError("Invalid params: arguments must be an object")
    try:
        return DispatchRequest.model_validate(arguments)
    except ValidationError as e:
        raise InvalidParamsError(f"Invalid params: {_describe_validation_error(e)}") from e
