#!/usr/bin/env python3
"""Smoke test script for the GitHub dispatch relay.

Checks that the relay is running and answers its discovery surface in both
dialects. No dispatch is sent, so no GitHub token is required. The final
check sends an unknown tool name, which must be rejected before any
upstream call.

Usage:
    # Start the server first
    dispatch-relay &

    # Run the smoke test
    python scripts/smoke_demo.py

    # Or specify a custom base URL
    python scripts/smoke_demo.py --base-url http://localhost:8080

Exit codes:
    0 - All checks passed
    1 - One or more checks failed
"""

import argparse
import sys
import time
from typing import Any

import httpx

TOOL_NAME = "github.repository_dispatch"


class SmokeTest:
    """Smoke test runner for the relay endpoint."""

    def __init__(self, base_url: str, path: str = "/mcp", verbose: bool = False):
        """Initialize smoke test runner.

        Args:
            base_url: Base URL of the relay (e.g., http://localhost:8080)
            path: Relay endpoint path
            verbose: Whether to print verbose output
        """
        self.base_url = base_url.rstrip("/")
        self.endpoint = f"{self.base_url}{path}"
        self.verbose = verbose
        self.passed = 0
        self.failed = 0
        self.warnings = 0
        self.client = httpx.Client(timeout=10)

    def log(self, message: str, level: str = "info") -> None:
        """Log a message with appropriate formatting.

        Args:
            message: Message to log
            level: Log level (info, success, error, warning)
        """
        if level == "success":
            print(f"✓ {message}")
        elif level == "error":
            print(f"✗ {message}")
        elif level == "warning":
            print(f"⚠ {message}")
        elif level == "info" and self.verbose:
            print(f"ℹ {message}")

    def rpc(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a JSON-RPC request and return the decoded envelope."""
        body: dict[str, Any] = {"jsonrpc": "2.0", "id": f"smoke-{method}", "method": method}
        if params is not None:
            body["params"] = params
        response = self.client.post(self.endpoint, json=body)
        if response.status_code != 200:
            raise ValueError(f"{method} returned HTTP {response.status_code}, expected 200")
        data = response.json()
        if data.get("id") != body["id"]:
            raise ValueError(f"{method} echoed id {data.get('id')!r}")
        self.log(f"{method} -> {data}")
        return data

    def run_check(self, name: str, check) -> bool:
        self.log(f"Checking {name}...")
        try:
            check()
        except httpx.ConnectError:
            self.log(
                f"Connection error: Cannot connect to {self.base_url}. Is the server running?",
                "error",
            )
            return False
        except httpx.TimeoutException:
            self.log(f"{name} request timed out", "error")
            return False
        except httpx.HTTPError as e:
            self.log(f"{name} request failed: {e}", "error")
            return False
        except (KeyError, ValueError) as e:
            self.log(f"{name} check failed: {e}", "error")
            return False

        self.log(f"{name} check passed", "success")
        return True

    def check_health(self) -> None:
        response = self.client.get(f"{self.base_url}/health")
        if response.status_code != 200 or response.json().get("status") != "ok":
            raise ValueError(f"/health returned {response.status_code}")

    def check_probe(self) -> None:
        response = self.client.get(self.endpoint)
        if response.status_code != 200:
            raise ValueError(f"GET returned {response.status_code}, expected 200")
        data = response.json()
        names = [tool["name"] for tool in data["tools"]]
        if TOOL_NAME not in names:
            raise ValueError(f"probe does not list {TOOL_NAME}: {names}")
        if response.headers.get("access-control-allow-origin") != "*":
            raise ValueError("probe response is missing CORS headers")

    def check_initialize(self) -> None:
        result = self.rpc("initialize", {"protocolVersion": "2025-06-18"})["result"]
        if "tools" not in result["capabilities"]:
            raise ValueError("initialize did not advertise tools")
        self.log(f"server {result['serverInfo']['name']} {result['serverInfo']['version']}")

    def check_tools_list(self) -> None:
        tools = self.rpc("tools/list")["result"]["tools"]
        if [tool["name"] for tool in tools] != [TOOL_NAME]:
            raise ValueError(f"unexpected tools: {tools}")

    def check_ping(self) -> None:
        if self.rpc("ping")["result"] != {}:
            raise ValueError("ping did not return an empty result")

    def check_unknown_tool(self) -> None:
        error = self.rpc("tools/call", {"name": "nope", "arguments": {}})["error"]
        if error["code"] != -32601:
            raise ValueError(f"unknown tool returned code {error['code']}, expected -32601")

    def run_all_checks(self) -> bool:
        """Run all smoke tests.

        Returns:
            True if all checks passed, False otherwise
        """
        print(f"Running smoke tests against {self.endpoint}")
        print("=" * 60)

        checks = [
            ("Health endpoint", self.check_health),
            ("Capability probe", self.check_probe),
            ("initialize", self.check_initialize),
            ("tools/list", self.check_tools_list),
            ("ping", self.check_ping),
            ("Unknown tool rejection", self.check_unknown_tool),
        ]

        try:
            for name, check in checks:
                if self.run_check(name, check):
                    self.passed += 1
                else:
                    self.failed += 1
        finally:
            self.client.close()

        print("=" * 60)
        print(f"Results: {self.passed} passed, {self.failed} failed", end="")
        if self.warnings > 0:
            print(f", {self.warnings} warnings")
        else:
            print()

        if self.failed > 0:
            print("\n✗ Smoke tests FAILED")
            return False
        print("\n✓ All smoke tests PASSED")
        return True


def main() -> int:
    """Main entry point for smoke test script.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Smoke test script for the GitHub dispatch relay")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8080",
        help="Base URL of the relay (default: http://localhost:8080)",
    )
    parser.add_argument(
        "--path",
        default="/mcp",
        choices=["/mcp", "/api/mcp"],
        help="Relay endpoint path (default: /mcp)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--wait",
        type=int,
        default=0,
        help="Wait N seconds before starting tests (useful when starting server)",
    )

    args = parser.parse_args()

    if args.wait > 0:
        print(f"Waiting {args.wait} seconds for server to start...")
        time.sleep(args.wait)

    smoke_test = SmokeTest(args.base_url, path=args.path, verbose=args.verbose)
    success = smoke_test.run_all_checks()

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
