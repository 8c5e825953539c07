"""Local protocol layer: JSON-RPC framing over stdio."""

from dify_mcp_bridge.protocol.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    NETWORK_ERROR,
    PARSE_ERROR,
    REMOTE_ERROR,
    JsonRpcError,
    make_error,
    make_notification,
    make_response,
    parse_line,
)
from dify_mcp_bridge.protocol.lifecycle import (
    MCP_PROTOCOL_VERSION,
    LifecycleManager,
    SessionState,
)
from dify_mcp_bridge.protocol.transport import StdioTransport

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_REQUEST",
    "JsonRpcError",
    "LifecycleManager",
    "MCP_PROTOCOL_VERSION",
    "NETWORK_ERROR",
    "PARSE_ERROR",
    "REMOTE_ERROR",
    "SessionState",
    "StdioTransport",
    "make_error",
    "make_notification",
    "make_response",
    "parse_line",
]
