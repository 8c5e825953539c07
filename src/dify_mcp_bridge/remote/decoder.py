"""Remote response body decoding.

The remote answers either with plain JSON or with a Server-Sent Events
body carrying the JSON-RPC message in a ``data:`` line. The declared
content type is only a hint: each decoding strategy is tried in order and
the first one that produces a value wins.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from dify_mcp_bridge.protocol.jsonrpc import PARSE_ERROR, JsonRpcError

EVENT_STREAM_TYPE = "text/event-stream"
DATA_MARKER = "data:"

# Last resort for bodies whose event framing is broken. Non-greedy, so a
# nested object can be cut short; callers must treat a miss as "no data".
_TRAILING_DATA_OBJECT = re.compile(r"data:\s*(\{[\s\S]*?\})(?=\n|$)")


class DecodeError(JsonRpcError):
    """Raised when a response body cannot be decoded."""

    def __init__(self, message: str, text: str) -> None:
        """Initialize the error.

        Args:
            message: Which decoding path failed.
            text: Raw response body, carried as the error data.
        """
        super().__init__(PARSE_ERROR, message, text)


@dataclass(frozen=True)
class Decoded:
    """Outcome of one decoding strategy."""

    ok: bool
    value: Any = None


FAILED = Decoded(ok=False)

Strategy = Callable[[str], Decoded]


def _loads(text: str) -> Decoded:
    try:
        return Decoded(ok=True, value=json.loads(text))
    except (json.JSONDecodeError, RecursionError):
        return FAILED


def decode_json(text: str) -> Decoded:
    """Decode the whole body as JSON."""
    return _loads(text)


def last_event_data(text: str) -> str | None:
    """Find the payload of the last non-empty ``data:`` line in an SSE body.

    Later events override earlier ones. When no line starts with the data
    marker but the marker appears somewhere, the last JSON-object-like span
    following a marker is used instead.

    Args:
        text: Raw response body.

    Returns:
        The data payload, or None when there is none.
    """
    last_data = None
    normalized = text.replace("\r\n", "\n")
    for event in normalized.split("\n\n"):
        for line in event.strip().split("\n"):
            if line.startswith(DATA_MARKER):
                payload = line[len(DATA_MARKER) :].strip()
                if payload:
                    last_data = payload

    if last_data is None and DATA_MARKER in normalized:
        matches = _TRAILING_DATA_OBJECT.findall(normalized)
        if matches:
            last_data = matches[-1]

    return last_data


def decode_event_stream(text: str) -> Decoded:
    """Decode the last event's data payload.

    A payload that decodes to a string is decoded once more, for remotes
    that JSON-encode the message twice.
    """
    payload = last_event_data(text)
    if payload is None:
        return FAILED

    decoded = _loads(payload)
    if not decoded.ok:
        return FAILED

    value = decoded.value
    if isinstance(value, str):
        inner = _loads(value)
        if inner.ok:
            value = inner.value

    # null, false, 0 and "" carry no message
    if value in (None, False, 0, ""):
        return FAILED
    return Decoded(ok=True, value=value)


def strategies_for(content_type: str | None) -> list[Strategy]:
    """Pick the ordered decoding strategies for a content type."""
    if EVENT_STREAM_TYPE in (content_type or "").lower():
        return [decode_event_stream]
    return [decode_json, decode_event_stream]


def decode_body(text: str, content_type: str | None = None) -> Any:
    """Decode a remote response body.

    Args:
        text: Raw response body.
        content_type: Declared ``Content-Type`` header value, if any.

    Returns:
        The decoded value.

    Raises:
        DecodeError: If no strategy produced a value.
    """
    strategies = strategies_for(content_type)
    for strategy in strategies:
        result = strategy(text)
        if result.ok:
            return result.value

    if strategies[0] is decode_event_stream:
        raise DecodeError("Parse error (no SSE data)", text)
    raise DecodeError("Parse error (invalid JSON)", text)
