"""Capability descriptor for the single dispatch tool.

One frozen descriptor backs every discovery surface (GET probe,
``initialize``, ``tools/list`` and the OpenAPI manifest). Renderers return
fresh dicts so callers can never mutate the shared schemas.
"""

import copy
from dataclasses import dataclass, field
from typing import Any

SERVER_NAME = "mcp-github-dispatch-relay"
SERVER_TITLE = "GitHub Dispatch MCP"
SERVER_VERSION = "1.0.2"
DEFAULT_PROTOCOL_VERSION = "2025-06-18"

TOOL_NAME = "github.repository_dispatch"


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of one callable tool."""

    name: str
    title: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)
    output_schema: dict[str, Any] = field(default_factory=dict)
    read_only: bool = False
    open_world: bool = True

    def annotations(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "readOnlyHint": self.read_only,
            "openWorldHint": self.open_world,
        }

    def to_listing(self) -> dict[str, Any]:
        """Entry used in ``tools`` arrays."""
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
            "outputSchema": copy.deepcopy(self.output_schema),
            "annotations": self.annotations(),
        }

    def to_capability(self) -> dict[str, Any]:
        """Entry used in the ``initialize`` capability map, keyed by name."""
        listing = self.to_listing()
        del listing["name"]
        return listing


DISPATCH_TOOL = ToolDescriptor(
    name=TOOL_NAME,
    title="GitHub Repository Dispatch",
    description="Trigger a GitHub repository_dispatch event",
    input_schema={
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "properties": {
            "owner": {"type": "string", "minLength": 1},
            "repo": {"type": "string", "minLength": 1},
            "event_type": {"type": "string", "minLength": 1},
            "client_payload": {"type": "object", "additionalProperties": True},
        },
        "required": ["owner", "repo", "event_type"],
        "additionalProperties": False,
    },
    output_schema={
        "type": "object",
        "properties": {
            "ok": {"type": "boolean"},
            "status": {"type": "integer"},
            "statusText": {"type": "string"},
            "body": {"type": "string"},
        },
        "required": ["ok", "status", "statusText", "body"],
    },
)


def server_info() -> dict[str, str]:
    return {"name": SERVER_NAME, "version": SERVER_VERSION, "title": SERVER_TITLE}


def list_tools() -> list[dict[str, Any]]:
    """Tool listing shared by the GET probe and ``tools/list``."""
    return [DISPATCH_TOOL.to_listing()]


def discovery_document() -> dict[str, Any]:
    """Body of the GET capability probe."""
    tools = list_tools()
    return {"tools": tools, "capabilities": {"tools": list_tools()}, "status": "ok"}


def initialize_result(requested_version: Any = None) -> dict[str, Any]:
    """Result of the ``initialize`` handshake.

    The requested protocol version is echoed when the client sends one,
    otherwise the default is announced.
    """
    if isinstance(requested_version, str) and requested_version:
        protocol_version = requested_version
    else:
        protocol_version = DEFAULT_PROTOCOL_VERSION
    return {
        "protocolVersion": protocol_version,
        "serverInfo": server_info(),
        "capabilities": {"tools": {DISPATCH_TOOL.name: DISPATCH_TOOL.to_capability()}},
    }


def tools_list_result() -> dict[str, Any]:
    return {"tools": list_tools()}


def build_openapi_document() -> dict[str, Any]:
    """OpenAPI 3.1 document describing the dispatch operation plus the MCP manifest."""
    return {
        "openapi": "3.1.0",
        "info": {
            "title": "MCP GitHub Dispatch Relay",
            "version": SERVER_VERSION,
            "description": "Relay that triggers GitHub repository_dispatch events",
        },
        "paths": {
            "/github/repository_dispatch": {
                "post": {
                    "operationId": "githubRepositoryDispatch",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": copy.deepcopy(DISPATCH_TOOL.input_schema)
                            }
                        },
                    },
                    "responses": {
                        "200": {
                            "description": "Dispatch result mirroring the GitHub response",
                            "content": {
                                "application/json": {
                                    "schema": copy.deepcopy(DISPATCH_TOOL.output_schema)
                                }
                            },
                        }
                    },
                }
            }
        },
        "x-mcp": {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "capabilities": {"tools": {DISPATCH_TOOL.name: DISPATCH_TOOL.to_capability()}},
        },
    }
