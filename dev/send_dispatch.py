"""Send one repository_dispatch through a locally running relay.

Usage:
  python dev/send_dispatch.py acme widgets deploy
  python dev/send_dispatch.py acme widgets deploy --payload '{"sha": "abc123"}'
  python dev/send_dispatch.py acme widgets deploy --payload-file payload.json
  python dev/send_dispatch.py acme widgets deploy --dialect jsonrpc
  python dev/send_dispatch.py acme widgets deploy --dialect shorthand

Dialects:
- legacy (default): the dispatch fields are the top-level JSON body
- jsonrpc: a ``tools/call`` envelope naming github.repository_dispatch
- shorthand: a JSON-RPC envelope whose method is the tool name itself
"""

import argparse
import json
import pathlib
import sys
import urllib.error
import urllib.request
import uuid

TOOL_NAME = "github.repository_dispatch"


def build_body(dialect: str, arguments: dict, request_id: str) -> dict:
    """Wrap dispatch arguments in the requested dialect."""
    if dialect == "legacy":
        return arguments
    if dialect == "shorthand":
        return {"jsonrpc": "2.0", "id": request_id, "method": TOOL_NAME, "params": arguments}
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": TOOL_NAME, "arguments": arguments},
    }


def load_payload(args: argparse.Namespace) -> dict:
    if args.payload_file:
        path = pathlib.Path(args.payload_file)
        return json.loads(path.read_text(encoding="utf-8"))
    if args.payload:
        return json.loads(args.payload)
    return {}


def print_json(raw: str) -> None:
    try:
        print("  " + json.dumps(json.loads(raw), indent=2).replace("\n", "\n  "))
    except json.JSONDecodeError:
        print("  " + raw)


def main():
    parser = argparse.ArgumentParser(description="Send a repository_dispatch through the relay")
    parser.add_argument("owner", help="Repository owner")
    parser.add_argument("repo", help="Repository name")
    parser.add_argument("event_type", help="Dispatch event type")
    parser.add_argument("--payload", "-p", help="client_payload as a JSON object string")
    parser.add_argument("--payload-file", "-f", help="Path to a JSON file holding client_payload")
    parser.add_argument(
        "--dialect",
        choices=["legacy", "jsonrpc", "shorthand"],
        default="legacy",
        help="Request dialect (default: legacy)",
    )
    parser.add_argument(
        "--url",
        "-u",
        default="http://localhost:8080/mcp",
        help="Relay endpoint URL (default: http://localhost:8080/mcp)",
    )

    args = parser.parse_args()

    try:
        payload = load_payload(args)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: Cannot read client_payload: {e}")
        return 1
    if not isinstance(payload, dict):
        print("Error: client_payload must be a JSON object")
        return 1

    request_id = f"dev-{uuid.uuid4()}"
    arguments = {
        "owner": args.owner,
        "repo": args.repo,
        "event_type": args.event_type,
        "client_payload": payload,
    }
    body = build_body(args.dialect, arguments, request_id)

    print(f"Sending {args.dialect} dispatch to {args.url}")
    print(f"  Repository: {args.owner}/{args.repo}")
    print(f"  Event type: {args.event_type}")
    print(f"  Request ID: {request_id}")

    req = urllib.request.Request(
        args.url,
        data=json.dumps(body).encode("utf-8"),
        headers={"Content-Type": "application/json", "X-Request-ID": request_id},
        method="POST",
    )

    try:
        with urllib.request.urlopen(req) as resp:
            print(f"Response: {resp.status}")
            response_body = resp.read().decode("utf-8")
            if response_body:
                print_json(response_body)
            return 0
    except urllib.error.HTTPError as e:
        # Legacy dialect mirrors the GitHub status, so 4xx/5xx still carry a body
        print(f"Error: {e.code} {e.reason}")
        error_body = e.read().decode("utf-8")
        if error_body:
            print_json(error_body)
        return 1
    except urllib.error.URLError as e:
        print(f"Error: Cannot reach relay: {e.reason}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
