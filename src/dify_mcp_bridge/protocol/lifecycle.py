"""Bridge session lifecycle.

Tracks whether the initialize handshake has completed and builds the
local fallback answer used when the remote cannot be initialized.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Protocol version advertised by the local fallback
MCP_PROTOCOL_VERSION = "2024-11-05"

SERVER_NAME = "dify-mcp-bridge"
SERVER_VERSION = "1.0.0"


class SessionState(Enum):
    """Bridge session states."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


@dataclass
class LifecycleManager:
    """Holds the session state for one bridge session.

    The state is observational: requests are forwarded whatever it is.
    Once initialized, a session never goes back.
    """

    server_info: dict[str, str] = field(
        default_factory=lambda: {"name": SERVER_NAME, "version": SERVER_VERSION}
    )
    state: SessionState = SessionState.UNINITIALIZED

    @property
    def is_initialized(self) -> bool:
        """Check if the initialize handshake has completed."""
        return self.state == SessionState.INITIALIZED

    def mark_initialized(self) -> None:
        """Record a completed initialize handshake."""
        self.state = SessionState.INITIALIZED

    def local_initialize_result(self) -> dict[str, Any]:
        """Build a minimal initialize result and mark the session initialized.

        Returns:
            Initialize result with no capabilities and no tools.
        """
        self.mark_initialized()
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "serverInfo": dict(self.server_info),
            "capabilities": {},
            "tools": [],
        }
