"""Bridge session - stdio JSON-RPC in front of a remote HTTP MCP endpoint.

Integrates the transport, the remote invoker and the response
reconciliation into one message-at-a-time pipeline.
"""

from __future__ import annotations

from typing import Any

from dify_mcp_bridge.protocol.jsonrpc import (
    INVALID_REQUEST,
    make_error,
    make_notification,
    make_response,
)
from dify_mcp_bridge.protocol.lifecycle import LifecycleManager
from dify_mcp_bridge.protocol.transport import StdioTransport
from dify_mcp_bridge.reconcile import coerce_message, reconcile
from dify_mcp_bridge.remote.invoker import RemoteInvoker
from dify_mcp_bridge.tools import repair_tools

WARNING_METHOD = "notifications/message"


class BridgeSession:
    """One client session bridged to the remote endpoint.

    Handles:
    - The initialize handshake, with a local fallback when the remote fails
    - Forwarding of every other message
    - Tool name repair and reconciliation of whatever the remote returns
    """

    def __init__(
        self,
        invoker: RemoteInvoker,
        transport: StdioTransport,
        lifecycle: LifecycleManager | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            invoker: Forwards messages to the remote endpoint.
            transport: Local stdio transport (frames and diagnostics).
            lifecycle: Session state holder, fresh when omitted.
        """
        self._invoker = invoker
        self._transport = transport
        self._lifecycle = lifecycle or LifecycleManager()

    @property
    def lifecycle(self) -> LifecycleManager:
        """Session state."""
        return self._lifecycle

    def run(self) -> None:
        """Process messages until the input stream ends."""
        for message in self._transport.messages():
            try:
                self.handle_message(message)
            except Exception as e:  # noqa: BLE001
                self._transport.log(f"handleMessage error: {e!r}")

    def handle_message(self, message: dict[str, Any]) -> list[dict[str, Any]]:
        """Handle one decoded message from the client.

        Args:
            message: Decoded JSON-RPC message.

        Returns:
            Frames written to the transport, in order.
        """
        msg_id = message.get("id")
        method = message.get("method")

        if not isinstance(method, str) or not method:
            return self._send(
                make_error(msg_id, INVALID_REQUEST, "Invalid Request: missing method")
            )

        if method == "initialize":
            return self._handle_initialize(message, msg_id)

        remote = self._invoker.forward(message, msg_id)
        if isinstance(remote, dict) and isinstance(remote.get("result"), dict):
            remote = {**remote, "result": repair_tools(remote["result"])}

        return self._send(*reconcile(remote, msg_id).frames)

    def _handle_initialize(self, message: dict[str, Any], msg_id: Any) -> list[dict[str, Any]]:
        """Forward initialize, falling back to a local minimal answer."""
        remote = self._invoker.forward(message, msg_id)
        result = remote.get("result") if isinstance(remote, dict) else None
        error = remote.get("error") if isinstance(remote, dict) else None

        if result is not None:
            self._lifecycle.mark_initialized()
            remote = {**remote, "result": repair_tools(result)}
            return self._send(*reconcile(remote, msg_id).frames)

        local = make_response(msg_id, self._lifecycle.local_initialize_result())
        if error is None:
            self._transport.log("Remote initialize returned nothing usable, using local initialize")
            return self._send(local)

        message = error.get("message") if isinstance(error, dict) else None
        reason = coerce_message(message) if message else "unknown"
        self._transport.log(
            f"Remote initialize failed, returning local minimal initialize. Remote error: {error!r}"
        )
        warning = make_notification(
            WARNING_METHOD,
            {"level": "warning", "message": f"dify-bridge: remote initialize failed ({reason})"},
        )
        return self._send(local, warning)

    def _send(self, *frames: dict[str, Any]) -> list[dict[str, Any]]:
        for frame in frames:
            self._transport.write_message(frame)
        return list(frames)
