"""Integration tests: stdin lines through the bridge to stdout frames."""

import io
import json
import signal
import sys
from unittest.mock import MagicMock

import httpx
import pytest

from dify_mcp_bridge.bridge import BridgeSession
from dify_mcp_bridge.main import main
from dify_mcp_bridge.protocol.transport import StdioTransport

SSE_HEADERS = {"content-type": "text/event-stream"}


def run_bridge(invoker, *lines: str) -> tuple[list[dict], str]:
    """Feed lines to a bridge session and collect output frames and logs."""
    stdin = io.StringIO("".join(line + "\n" for line in lines))
    stdout = io.StringIO()
    stderr = io.StringIO()
    transport = StdioTransport(stdin=stdin, stdout=stdout, stderr=stderr)
    # Mirror invoker diagnostics onto the transport, as main() does.
    invoker._log = transport.log

    BridgeSession(invoker, transport).run()

    frames = [json.loads(line) for line in stdout.getvalue().splitlines()]
    return frames, stderr.getvalue()


def echo_remote(request: httpx.Request) -> httpx.Response:
    """Remote that answers every request with an SSE-wrapped success."""
    message = json.loads(request.content)
    body = json.dumps({"jsonrpc": "2.0", "id": message.get("id"), "result": {"echo": message}})
    return httpx.Response(200, headers=SSE_HEADERS, text=f"event: message\ndata: {body}\n\n")


class TestBridgeEndToEnd:
    """Tests for the complete pipeline."""

    def test_full_session(self, make_invoker):
        """Should run initialize, tools/list and tools/call against the remote."""

        def remote(request: httpx.Request) -> httpx.Response:
            message = json.loads(request.content)
            if message["method"] == "initialize":
                result = {"protocolVersion": "2024-11-05", "capabilities": {"tools": {}}}
            elif message["method"] == "tools/list":
                result = {"tools": [{"name": "Search Docs", "inputSchema": {}}]}
            else:
                result = {"content": [{"type": "text", "text": "hi"}], "isError": False}
            body = {"jsonrpc": "2.0", "id": message["id"], "result": result}
            return httpx.Response(200, json=body)

        frames, _ = run_bridge(
            make_invoker(remote),
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}),
            json.dumps({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}),
            json.dumps(
                {
                    "jsonrpc": "2.0",
                    "id": 3,
                    "method": "tools/call",
                    "params": {"name": "Search_Docs"},
                }
            ),
        )

        assert [f["id"] for f in frames] == [1, 2, 3]
        assert frames[1]["result"]["tools"] == [{"name": "Search_Docs", "inputSchema": {}}]
        assert frames[2]["result"]["content"][0]["text"] == "hi"

    def test_blank_and_invalid_lines_produce_nothing(self, make_invoker):
        """Should drop blank and invalid lines without output."""
        calls = []

        def remote(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"result": {}})

        frames, _ = run_bridge(make_invoker(remote), "", "   ", "{oops", "not json at all")

        assert frames == []
        assert calls == []

    def test_sse_remote(self, make_invoker):
        """Should decode event-stream answers."""
        frames, _ = run_bridge(
            make_invoker(echo_remote), json.dumps({"jsonrpc": "2.0", "id": "a", "method": "ping"})
        )

        assert frames == [
            {
                "jsonrpc": "2.0",
                "id": "a",
                "result": {"echo": {"jsonrpc": "2.0", "id": "a", "method": "ping"}},
            }
        ]

    def test_timeout_answers_with_network_error(self, make_invoker):
        """Should answer a timed-out call with a network error for the same id."""

        def remote(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("Read timed out", request=request)

        frames, logs = run_bridge(
            make_invoker(remote), json.dumps({"jsonrpc": "2.0", "id": 11, "method": "tools/call"})
        )

        assert frames == [
            {
                "jsonrpc": "2.0",
                "id": 11,
                "error": {
                    "code": -32098,
                    "message": "Network error forwarding to remote MCP",
                    "data": "Read timed out",
                },
            }
        ]
        assert "Network error" in logs

    def test_initialize_fallback_on_http_error(self, make_invoker):
        """Should answer initialize locally when the remote rejects it."""
        frames, logs = run_bridge(
            make_invoker(lambda request: httpx.Response(502, text="bad gateway")),
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize"}),
        )

        assert frames[0]["id"] == 1
        assert frames[0]["result"]["tools"] == []
        assert frames[1]["method"] == "notifications/message"
        assert frames[1]["params"]["message"] == (
            "dify-bridge: remote initialize failed (Remote MCP error 502)"
        )
        assert "Remote initialize failed" in logs

    def test_remote_notification_then_response(self, make_invoker):
        """Should turn a remote notification into two frames."""
        body = 'data: {"jsonrpc": "2.0", "method": "log", "params": {"level": "info"}}\n\n'
        frames, _ = run_bridge(
            make_invoker(lambda request: httpx.Response(200, headers=SSE_HEADERS, text=body)),
            json.dumps({"jsonrpc": "2.0", "id": 5, "method": "ping"}),
        )

        assert frames == [
            {"jsonrpc": "2.0", "method": "log", "params": {"level": "info"}},
            {"jsonrpc": "2.0", "id": 5, "result": {"ok": True}},
        ]

    def test_every_line_is_valid_jsonrpc(self, make_invoker):
        """Should only ever write valid JSON-RPC frames."""
        bodies = iter(
            [
                httpx.Response(200, text="null"),
                httpx.Response(200, json={"weird": True}),
                httpx.Response(200, json=[1, 2]),
                httpx.Response(500, text="oops"),
                httpx.Response(200, headers=SSE_HEADERS, text="event: ping\n\n"),
            ]
        )
        frames, _ = run_bridge(
            make_invoker(lambda request: next(bodies)),
            *(json.dumps({"jsonrpc": "2.0", "id": i, "method": "x"}) for i in range(5)),
        )

        assert len(frames) == 5
        for i, frame in enumerate(frames):
            assert frame["jsonrpc"] == "2.0"
            assert frame["id"] == i
            assert "error" in frame
            assert "result" not in frame


class TestMain:
    """Tests for the process entry point."""

    @pytest.fixture(autouse=True)
    def isolated_env(self, tmp_path, monkeypatch):
        """Run without a .env file and without inherited settings."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(signal, "signal", MagicMock())
        for name in ("DIFY_MCP_URL", "DIFY_MCP_TOKEN", "DIFY_MCP_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

    def test_refuses_to_start_without_config(self, monkeypatch):
        """Should exit 1 and log when URL or token are missing."""
        stdout = io.StringIO()
        stderr = io.StringIO()
        monkeypatch.setattr(sys, "stdout", stdout)
        monkeypatch.setattr(sys, "stderr", stderr)

        assert main([]) == 1
        assert stdout.getvalue() == ""
        assert "[dify-bridge] Missing env" in stderr.getvalue()

    def test_runs_until_eof(self, monkeypatch):
        """Should answer local errors and exit 0 at end of input."""
        monkeypatch.setenv("DIFY_MCP_URL", "https://remote.example.com/mcp")
        monkeypatch.setenv("DIFY_MCP_TOKEN", "secret")
        stdout = io.StringIO()
        stderr = io.StringIO()
        monkeypatch.setattr(sys, "stdin", io.StringIO('garbage\n{"jsonrpc": "2.0", "id": 1}\n'))
        monkeypatch.setattr(sys, "stdout", stdout)
        monkeypatch.setattr(sys, "stderr", stderr)

        assert main([]) == 0

        assert [json.loads(line) for line in stdout.getvalue().splitlines()] == [
            {
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32600, "message": "Invalid Request: missing method"},
            }
        ]
        assert "Starting bridge → https://remote.example.com/mcp" in stderr.getvalue()
        assert "secret" not in stderr.getvalue()

    def test_survives_bytes_that_are_not_utf8(self, monkeypatch):
        """Should drop a line of invalid bytes and answer the next one."""
        monkeypatch.setenv("DIFY_MCP_URL", "https://remote.example.com/mcp")
        monkeypatch.setenv("DIFY_MCP_TOKEN", "secret")
        stdin = io.TextIOWrapper(
            io.BytesIO(b'\xff\xfe garbage\n{"jsonrpc": "2.0", "id": 9}\n'), encoding="utf-8"
        )
        stdout = io.StringIO()
        monkeypatch.setattr(sys, "stdin", stdin)
        monkeypatch.setattr(sys, "stdout", stdout)
        monkeypatch.setattr(sys, "stderr", io.StringIO())

        assert main([]) == 0

        assert [json.loads(line) for line in stdout.getvalue().splitlines()] == [
            {
                "jsonrpc": "2.0",
                "id": 9,
                "error": {"code": -32600, "message": "Invalid Request: missing method"},
            }
        ]
