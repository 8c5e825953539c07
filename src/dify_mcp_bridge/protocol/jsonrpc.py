"""JSON-RPC 2.0 message building and line decoding.

Implements the subset of JSON-RPC 2.0 the bridge needs to speak on the
local stdio transport.
"""

from __future__ import annotations

import json
from typing import Any

JSONRPC_VERSION = "2.0"

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
INTERNAL_ERROR = -32603

# Implementation-defined server error codes
REMOTE_ERROR = -32000
NETWORK_ERROR = -32098


class JsonRpcError(Exception):
    """JSON-RPC error with code and message."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        """Initialize the error.

        Args:
            code: JSON-RPC error code.
            message: Human-readable error message.
            data: Optional additional error data.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_envelope(self, msg_id: Any = None) -> dict[str, Any]:
        """Convert to an error response addressed to ``msg_id``."""
        return make_error(msg_id, self.code, self.message, self.data)


def parse_line(raw: str) -> dict[str, Any] | None:
    """Decode one transport line into a message object.

    Args:
        raw: Raw line read from the transport.

    Returns:
        The decoded object, or None for blank lines, invalid JSON and
        JSON values that are not objects.
    """
    if not raw or not raw.strip():
        return None

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError):
        return None

    if not isinstance(data, dict):
        return None
    return data


def make_response(msg_id: Any, result: Any) -> dict[str, Any]:
    """Build a successful JSON-RPC response.

    Args:
        msg_id: Request ID to echo back (None when unknown).
        result: Result payload.

    Returns:
        Response object.
    """
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": msg_id,
        "result": result,
    }


def make_error(
    msg_id: Any,
    code: int,
    message: str,
    data: Any | None = None,
) -> dict[str, Any]:
    """Build a JSON-RPC error response.

    Args:
        msg_id: Request ID (None when unknown).
        code: Error code.
        message: Error message.
        data: Optional error data.

    Returns:
        Response object.
    """
    error_obj: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if data is not None:
        error_obj["data"] = data

    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": msg_id,
        "error": error_obj,
    }


def make_notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a JSON-RPC notification (bridge to client).

    Args:
        method: Notification method name.
        params: Optional parameters, defaults to an empty object.

    Returns:
        Notification object.
    """
    return {
        "jsonrpc": JSONRPC_VERSION,
        "method": method,
        "params": params if params is not None else {},
    }


def serialize(message: dict[str, Any]) -> str:
    """Serialize a message as a single line of JSON."""
    return json.dumps(message, separators=(",", ":"))
