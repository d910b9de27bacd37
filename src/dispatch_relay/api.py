"""FastAPI application for the GitHub dispatch relay.

The relay endpoint is served at both ``/mcp`` and ``/api/mcp``; every other
route is a small diagnostic surface around it.
"""

import logging
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from dispatch_relay.capabilities import SERVER_NAME, SERVER_VERSION, build_openapi_document
from dispatch_relay.config import RelaySettings, load_settings
from dispatch_relay.dispatch_logs import DispatchLogSink, get_log_sink
from dispatch_relay.envelopes import RelayResponse
from dispatch_relay.errors import ParseError
from dispatch_relay.github.auth import TokenProvider, get_default_token_provider
from dispatch_relay.github.client import GitHubDispatchClient
from dispatch_relay.logging_utils import clear_request_id, redact_headers, set_request_id
from dispatch_relay.protocol import decode_body
from dispatch_relay.relay import DispatchRelay

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

RELAY_PATHS = ("/mcp", "/api/mcp")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, HEAD",
    "Access-Control-Allow-Headers": "Content-Type, Accept, Authorization",
}


def to_http_response(reply: RelayResponse) -> Response:
    """Render a RelayResponse with CORS headers attached."""
    if reply.body is None:
        return Response(status_code=reply.status_code, headers=CORS_HEADERS)
    return JSONResponse(content=reply.body, status_code=reply.status_code, headers=CORS_HEADERS)


def create_app(
    settings: RelaySettings | None = None,
    *,
    token_provider: TokenProvider | None = None,
    client: GitHubDispatchClient | None = None,
    log_sink: DispatchLogSink | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Relay settings (loaded from the environment when None).
        token_provider: Credential source; defaults to the configured token.
        client: Upstream client; defaults to one built from settings.
        log_sink: Event sink; defaults to the sink selected by settings.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = load_settings()
    if token_provider is None:
        token_provider = get_default_token_provider(settings)
    if client is None:
        client = GitHubDispatchClient(
            token_provider,
            api_url=settings.github_api_url,
            timeout=settings.timeout_seconds,
        )
    if log_sink is None:
        log_sink = get_log_sink(settings)

    app = FastAPI(
        title="MCP GitHub Dispatch Relay",
        version=SERVER_VERSION,
        description="Relay that triggers GitHub repository_dispatch events",
    )
    app.state.settings = settings
    app.state.token_provider = token_provider
    app.state.log_sink = log_sink
    app.state.relay = DispatchRelay(client, log_sink)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers["X-Request-ID"] = request_id
        return response

    async def relay_endpoint(request: Request) -> Response:
        """Single relay endpoint; the dialect is decided from method and body."""
        raw_body = await request.body() if request.method == "POST" else None
        reply = await request.app.state.relay.handle(request.method, raw_body)
        return to_http_response(reply)

    for path in RELAY_PATHS:
        app.add_api_route(
            path,
            relay_endpoint,
            methods=["GET", "POST", "OPTIONS", "HEAD"],
            include_in_schema=path == RELAY_PATHS[0],
        )

    @app.get("/mcp/openapi.json")
    def openapi_manifest() -> JSONResponse:
        """OpenAPI description of the dispatch operation with the MCP manifest."""
        return JSONResponse(content=build_openapi_document(), headers=CORS_HEADERS)

    @app.api_route("/mcp/debug", methods=["GET", "POST", "OPTIONS"])
    async def debug_echo(request: Request) -> Response:
        """Echo back what the client actually sent (credentials redacted)."""
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        raw_body = await request.body()
        body: Any
        try:
            body = decode_body(raw_body)
        except ParseError:
            body = raw_body.decode("utf-8", errors="replace")

        return JSONResponse(
            content={
                "status": "ok",
                "received": {
                    "method": request.method,
                    "headers": redact_headers(request.headers),
                    "body": body,
                },
                "note": "This endpoint echoes back what the MCP client actually sends.",
            },
            headers=CORS_HEADERS,
        )

    @app.get("/env-check")
    def env_check(request: Request) -> dict[str, Any]:
        """Report whether a credential is configured without revealing any of it."""
        token = request.app.state.token_provider.get_token()
        return {"hasPat": bool(token), "length": len(token) if token else 0}

    @app.get("/logs")
    def recent_logs(request: Request, limit: int = Query(50, ge=1, le=1000)) -> dict[str, Any]:
        """Most recent relay events from the dispatch log sink."""
        events = request.app.state.log_sink.recent(limit)
        return {"count": len(events), "logs": events}

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": SERVER_NAME}

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Return routing and validation HTTP errors in a uniform shape."""
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "message": str(exc.detail)},
            headers=exc.headers,
        )

    return app


app = create_app()
