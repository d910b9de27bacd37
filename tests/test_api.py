"""End-to-end tests for the relay HTTP surface.

GitHub is mocked with respx; the relay itself runs in-process via TestClient.
"""

import json

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from dispatch_relay.api import create_app
from dispatch_relay.config import RelaySettings
from dispatch_relay.dispatch_logs import MemoryLogSink
from dispatch_relay.github.auth import StaticTokenProvider
from dispatch_relay.github.client import GitHubDispatchClient

DISPATCH_URL = "https://api.github.com/repos/acme/widgets/dispatches"

DISPATCH_ARGS = {
    "owner": "acme",
    "repo": "widgets",
    "event_type": "build",
    "client_payload": {"x": 1},
}


def tools_call(arguments: dict, request_id=1, name: str = "github.repository_dispatch") -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


class TestPreflight:
    @pytest.mark.parametrize("path", ["/mcp", "/api/mcp"])
    def test_options_returns_empty_200_with_cors(self, client, path):
        response = client.options(path)
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_head_returns_empty_200(self, client):
        response = client.head("/mcp")
        assert response.status_code == 200
        assert response.content == b""


class TestCapabilityProbe:
    def test_get_lists_dispatch_tool(self, client):
        response = client.get("/mcp")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert len(data["tools"]) == 1
        tool = data["tools"][0]
        assert tool["name"] == "github.repository_dispatch"
        assert tool["inputSchema"]["required"] == ["owner", "repo", "event_type"]
        assert response.headers["access-control-allow-origin"] == "*"

    def test_discovery_surfaces_match_over_http(self, client):
        probe = client.get("/mcp").json()["tools"][0]
        listed = client.post(
            "/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"}
        ).json()["result"]["tools"][0]
        initialized = client.post(
            "/mcp", json={"jsonrpc": "2.0", "id": 2, "method": "initialize", "params": {}}
        ).json()["result"]["capabilities"]["tools"]["github.repository_dispatch"]

        assert probe["inputSchema"]["required"] == listed["inputSchema"]["required"]
        assert probe["inputSchema"]["required"] == initialized["inputSchema"]["required"]


class TestJsonRpcDiscovery:
    def test_initialize_echoes_protocol_version(self, client):
        response = client.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 0,
                "method": "initialize",
                "params": {"protocolVersion": "2024-11-05"},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == 0
        assert data["result"]["protocolVersion"] == "2024-11-05"
        assert data["result"]["serverInfo"]["name"] == "mcp-github-dispatch-relay"

    def test_ping(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": "p1", "method": "ping"})
        assert response.json() == {"jsonrpc": "2.0", "id": "p1", "result": {}}

    def test_initialized_notification_is_acknowledged(self, client):
        response = client.post(
            "/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )
        assert response.status_code == 200
        assert response.json() == {"jsonrpc": "2.0", "id": None, "result": {}}

    def test_null_id_is_echoed(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": None, "method": "ping"})
        data = response.json()
        assert "id" in data
        assert data["id"] is None


class TestJsonRpcDispatch:
    def test_tools_call_success(self, client):
        with respx.mock:
            route = respx.post(DISPATCH_URL).mock(return_value=httpx.Response(204))
            response = client.post("/mcp", json=tools_call(DISPATCH_ARGS, request_id=1))

        assert route.called
        assert response.status_code == 200
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"ok": True, "status": 204, "statusText": "No Content", "body": ""},
        }

    def test_tools_call_upstream_404_is_a_result(self, client):
        body = '{"message":"Not Found"}'
        with respx.mock:
            respx.post(DISPATCH_URL).mock(return_value=httpx.Response(404, text=body))
            response = client.post("/mcp", json=tools_call(DISPATCH_ARGS, request_id="abc"))

        assert response.status_code == 200
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": "abc",
            "result": {"ok": False, "status": 404, "statusText": "Not Found", "body": body},
        }

    def test_shorthand_method(self, client):
        with respx.mock:
            route = respx.post(DISPATCH_URL).mock(return_value=httpx.Response(204))
            response = client.post(
                "/api/mcp",
                json={
                    "jsonrpc": "2.0",
                    "id": 5,
                    "method": "github.repository_dispatch",
                    "params": {"owner": "acme", "repo": "widgets", "event_type": "build"},
                },
            )

        assert json.loads(route.calls.last.request.content) == {
            "event_type": "build",
            "client_payload": {},
        }
        assert response.json()["result"]["ok"] is True

    def test_unknown_tool(self, client):
        response = client.post("/mcp", json=tools_call(DISPATCH_ARGS, name="not.a.tool"))
        assert response.status_code == 200
        data = response.json()
        assert data["error"]["code"] == -32601
        assert "result" not in data

    def test_unknown_method(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 3, "method": "resources/list"})
        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32601

    def test_missing_method_is_invalid_request(self, client):
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 4})
        assert response.status_code == 200
        assert response.json() == {
            "jsonrpc": "2.0",
            "id": 4,
            "error": {"code": -32600, "message": "Invalid Request: missing method"},
        }

    def test_parse_error(self, client):
        response = client.post(
            "/mcp",
            content=b'{"jsonrpc": "2.0", "id": 1, "method": ',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["id"] is None
        assert data["error"]["code"] == -32700

    def test_non_finite_number_is_parse_error(self, client, log_sink):
        body = (
            b'{"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": '
            b'{"name": "github.repository_dispatch", "arguments": '
            b'{"owner": "acme", "repo": "widgets", "event_type": "build", '
            b'"client_payload": {"x": NaN}}}}'
        )
        response = client.post("/mcp", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32700
        assert log_sink.recent()[-1]["outcome"] == "error"

    def test_invalid_arguments(self, client):
        response = client.post("/mcp", json=tools_call({"owner": "acme"}))
        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32602

    def test_missing_credential(self, unconfigured_app):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(204)

        unconfigured_app.state.relay.client.transport = httpx.MockTransport(handler)
        client = TestClient(unconfigured_app)

        response = client.post("/mcp", json=tools_call(DISPATCH_ARGS))

        assert response.status_code == 200
        error = response.json()["error"]
        assert error["code"] == -32000
        assert "GITHUB_PAT" in error["message"]
        assert calls == []

    def test_upstream_unreachable(self, client):
        with respx.mock:
            respx.post(DISPATCH_URL).mock(side_effect=httpx.ConnectError("no route to host"))
            response = client.post("/mcp", json=tools_call(DISPATCH_ARGS))

        assert response.status_code == 200
        error = response.json()["error"]
        assert error["code"] == -32000
        assert error["message"].startswith("Upstream unavailable")


class TestLegacyDispatch:
    def test_success_mirrors_upstream_status(self, client):
        with respx.mock:
            respx.post(DISPATCH_URL).mock(return_value=httpx.Response(200, text="queued"))
            response = client.post("/mcp", json=DISPATCH_ARGS)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": 200, "statusText": "OK", "body": "queued"}

    def test_no_content_is_mirrored_without_body(self, client):
        with respx.mock:
            respx.post(DISPATCH_URL).mock(return_value=httpx.Response(204))
            response = client.post("/mcp", json=DISPATCH_ARGS)

        assert response.status_code == 204
        assert response.content == b""

    def test_upstream_failure_status_is_mirrored(self, client):
        with respx.mock:
            respx.post(DISPATCH_URL).mock(
                return_value=httpx.Response(404, text='{"message":"Not Found"}')
            )
            response = client.post("/mcp", json=DISPATCH_ARGS)

        assert response.status_code == 404
        data = response.json()
        assert data["ok"] is False
        assert data["status"] == 404
        assert data["body"] == '{"message":"Not Found"}'

    def test_bad_json(self, client):
        response = client.post(
            "/mcp", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        data = response.json()
        assert data["ok"] is False
        assert data["status"] == 400
        assert data["body"] == ""

    @pytest.mark.parametrize("literal", [b"NaN", b"Infinity", b"-Infinity"])
    def test_non_finite_number_is_bad_json(self, client, literal):
        body = b'{"owner": "acme", "repo": "widgets", "event_type": "build", '
        body += b'"client_payload": {"x": '
        response = client.post(
            "/mcp", content=body + literal + b"}}", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_missing_credential(self, unconfigured_app):
        client = TestClient(unconfigured_app)
        response = client.post("/mcp", json=DISPATCH_ARGS)

        assert response.status_code == 500
        assert response.json() == {
            "ok": False,
            "status": 500,
            "statusText": "GITHUB_PAT missing",
            "body": "",
        }

    def test_missing_fields(self, client):
        response = client.post("/mcp", json={"owner": "acme"})
        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_upstream_unreachable(self, client):
        with respx.mock:
            respx.post(DISPATCH_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
            response = client.post("/mcp", json=DISPATCH_ARGS)

        assert response.status_code == 502
        assert response.json()["ok"] is False


class TestDiagnostics:
    def test_request_id_is_echoed(self, client):
        response = client.get("/mcp", headers={"X-Request-ID": "req-123"})
        assert response.headers["x-request-id"] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")
        assert response.headers["x-request-id"]

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"

    def test_env_check_reveals_no_token_characters(self, client):
        data = client.get("/env-check").json()
        assert data == {"hasPat": True, "length": len("ghp_testtoken1234567890")}

    def test_env_check_without_credential(self, unconfigured_app):
        data = TestClient(unconfigured_app).get("/env-check").json()
        assert data == {"hasPat": False, "length": 0}

    def test_openapi_manifest(self, client):
        response = client.get("/mcp/openapi.json")
        assert response.status_code == 200
        data = response.json()
        assert "/github/repository_dispatch" in data["paths"]
        assert data["x-mcp"]["name"] == "mcp-github-dispatch-relay"

    def test_debug_echo_redacts_authorization(self, client):
        response = client.post(
            "/mcp/debug",
            json={"hello": "world"},
            headers={"Authorization": "Bearer ghp_supersecret123"},
        )
        data = response.json()
        assert data["status"] == "ok"
        assert data["received"]["method"] == "POST"
        assert data["received"]["body"] == {"hello": "world"}
        assert "ghp_supersecret123" not in response.text

    def test_debug_echo_returns_non_finite_body_as_text(self, client):
        response = client.post(
            "/mcp/debug", content=b'{"x": NaN}', headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        assert response.json()["received"]["body"] == '{"x": NaN}'

    def test_logs_record_dispatches(self, client, log_sink):
        with respx.mock:
            respx.post(DISPATCH_URL).mock(return_value=httpx.Response(204))
            client.post("/mcp", json=tools_call(DISPATCH_ARGS), headers={"X-Request-ID": "r-9"})

        data = client.get("/logs", params={"limit": 10}).json()
        assert data["count"] >= 1
        event = data["logs"][-1]
        assert event["dialect"] == "jsonrpc"
        assert event["method"] == "tools/call"
        assert event["owner"] == "acme"
        assert event["status"] == 204
        assert event["outcome"] == "ok"
        assert event["request_id"] == "r-9"

    def test_logs_limit_is_validated(self, client):
        assert client.get("/logs", params={"limit": 0}).status_code == 422

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "http_error"


def test_create_app_builds_client_from_settings():
    settings = RelaySettings(
        github_token="ghp_abc", github_api_url="https://ghe.example.com/api/v3", timeout_seconds=3
    )
    app = create_app(settings, log_sink=MemoryLogSink())
    client = app.state.relay.client

    assert isinstance(client, GitHubDispatchClient)
    assert client.api_url == "https://ghe.example.com/api/v3"
    assert client.timeout == 3
    assert client.token_provider.get_token() == "ghp_abc"


def test_create_app_accepts_token_provider():
    app = create_app(
        RelaySettings(), token_provider=StaticTokenProvider("ghp_injected"), log_sink=MemoryLogSink()
    )
    assert app.state.relay.client.token_provider.get_token() == "ghp_injected"
