"""Error taxonomy for the dispatch relay.

Every error knows how to present itself in both dialects: a JSON-RPC error
code (always sent with HTTP 200) and an HTTP status for legacy REST callers.
"""

from typing import Any


class RelayError(Exception):
    """Base class for failures the relay reports to its caller."""

    jsonrpc_code: int = -32603
    http_status: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_jsonrpc(self) -> dict[str, Any]:
        """Render as a JSON-RPC ``error`` member."""
        return {"code": self.jsonrpc_code, "message": self.message}


class ParseError(RelayError):
    """Request body is not valid JSON."""

    jsonrpc_code = -32700
    http_status = 400
    default_message = "Parse error"


class InvalidRequestError(RelayError):
    """JSON-RPC envelope is malformed (missing method, bad version, etc.)."""

    jsonrpc_code = -32600
    http_status = 400
    default_message = "Invalid Request"


class MethodNotFoundError(RelayError):
    """JSON-RPC method is not one the relay serves."""

    jsonrpc_code = -32601
    http_status = 404
    default_message = "Method not found"

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Method not found: {method}")


class ToolNotFoundError(RelayError):
    """Requested tool name does not match the supported tool."""

    jsonrpc_code = -32601
    http_status = 404
    default_message = "Tool not found"

    def __init__(self, name: Any):
        self.name = name
        super().__init__(f"Tool not found: {name}")


class InvalidParamsError(RelayError):
    """Dispatch arguments are missing or have the wrong type."""

    jsonrpc_code = -32602
    http_status = 400
    default_message = "Invalid params"


class ConfigurationError(RelayError):
    """No upstream credential is configured; the upstream call is never attempted."""

    jsonrpc_code = -32000
    http_status = 500
    default_message = "GITHUB_PAT missing"


class UpstreamError(RelayError):
    """The upstream HTTP call itself failed (DNS, connection, timeout)."""

    jsonrpc_code = -32000
    http_status = 502
    default_message = "Upstream unavailable"


class InternalError(RelayError):
    """Unexpected failure inside the relay."""
