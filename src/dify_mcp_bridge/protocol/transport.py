"""STDIO transport layer for the bridge.

Handles reading/writing newline-delimited JSON-RPC messages over
stdin/stdout. Nothing but protocol frames is ever written to stdout.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from typing import Any, TextIO

from dify_mcp_bridge.protocol.jsonrpc import parse_line, serialize

LOG_PREFIX = "[dify-bridge]"


class StdioTransport:
    """STDIO transport for JSON-RPC communication.

    Reads JSON-RPC messages from stdin and writes frames to stdout.
    Logging goes to stderr to avoid corrupting the protocol stream.
    """

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        prefix: str = LOG_PREFIX,
    ) -> None:
        """Initialize the transport.

        Args:
            stdin: Input stream (defaults to sys.stdin).
            stdout: Output stream (defaults to sys.stdout).
            stderr: Log stream (defaults to sys.stderr).
            prefix: Tag placed in front of every log line.
        """
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._stderr = stderr or sys.stderr
        self._prefix = prefix

    def read_message(self) -> str | None:
        """Read a message from stdin.

        Reads lines until a non-empty line is found. Lines that cannot be
        decoded as text are skipped.

        Returns:
            Message string (stripped), or None on EOF.
        """
        while True:
            try:
                line = self._stdin.readline()
            except UnicodeDecodeError as e:
                self.log(f"Ignoring line that is not valid UTF-8: {e.reason}")
                continue
            except (OSError, ValueError):
                return None

            if not line:  # EOF
                return None

            line = line.strip()
            if line:  # Skip empty lines
                return line

    def messages(self) -> Iterator[dict[str, Any]]:
        """Yield decoded message objects until EOF.

        Lines that are not a JSON object are dropped without any output
        on stdout.
        """
        while True:
            line = self.read_message()
            if line is None:
                return

            message = parse_line(line)
            if message is None:
                self.log(f"Ignoring undecodable line ({len(line)} chars)")
                continue
            yield message

    def write_message(self, message: dict[str, Any]) -> None:
        """Write a message to stdout as one JSON line.

        Args:
            message: JSON-RPC object to write.
        """
        self._stdout.write(serialize(message) + "\n")
        self._stdout.flush()

    def log(self, message: str) -> None:
        """Write a log message to stderr.

        Args:
            message: Log message.
        """
        self._stderr.write(f"{self._prefix} {message}\n")
        self._stderr.flush()
