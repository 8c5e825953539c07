"""Remote side of the bridge: HTTP forwarding and body decoding."""

from dify_mcp_bridge.remote.decoder import DecodeError, decode_body
from dify_mcp_bridge.remote.invoker import RemoteInvoker

__all__ = ["DecodeError", "RemoteInvoker", "decode_body"]
