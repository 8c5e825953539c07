"""Dify MCP bridge - process entry point.

Reads newline-delimited JSON-RPC from stdin, forwards every message to a
remote MCP endpoint over HTTP and writes valid JSON-RPC frames to stdout.

Configuration
-------------
Environment variables (a ``.env`` file in the working directory is read
too, without overriding variables that are already set):

    DIFY_MCP_URL       Remote MCP endpoint (required)
    DIFY_MCP_TOKEN     Bearer token for the endpoint (required)
    DIFY_MCP_TIMEOUT   Request timeout in milliseconds (default: 60000)

A YAML file passed with ``--config`` can provide the same settings; the
environment wins over it:

    remote:
      url: "https://api.dify.ai/mcp/server/xxxx/mcp"
      token: "${DIFY_TOKEN}"
      timeout_ms: 30000
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from types import FrameType

from dify_mcp_bridge import __version__
from dify_mcp_bridge.bridge import BridgeSession
from dify_mcp_bridge.config import ConfigError, load_config
from dify_mcp_bridge.protocol.transport import StdioTransport
from dify_mcp_bridge.remote.invoker import RemoteInvoker


def _exit_on_signal(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(0)


def _decode_stdin_leniently() -> None:
    # Invalid bytes become U+FFFD; the line is then dropped as invalid JSON
    reconfigure = getattr(sys.stdin, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(encoding="utf-8", errors="replace")


def main(argv: list[str] | None = None) -> int:
    """Run the bridge.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description="Stdio-to-HTTP bridge for remote MCP endpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to an optional YAML config file",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"dify-mcp-bridge {__version__}",
    )

    args = parser.parse_args(argv)

    _decode_stdin_leniently()
    transport = StdioTransport()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        transport.log(e.message)
        return 1

    signal.signal(signal.SIGTERM, _exit_on_signal)

    with RemoteInvoker(config, log=transport.log) as invoker:
        session = BridgeSession(invoker, transport)
        transport.log(f"Starting bridge → {config.remote_url}")

        try:
            session.run()
        except KeyboardInterrupt:
            transport.log("Interrupted, shutting down")
            return 0

    transport.log("EOF received, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
