"""Reconciliation of remote payloads into valid JSON-RPC frames.

The remote is not trusted to speak JSON-RPC. Every payload is classified
into one of a few known shapes, and each shape maps to exactly one
response (plus a notification for server-initiated messages).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from dify_mcp_bridge.protocol.jsonrpc import (
    INTERNAL_ERROR,
    JSONRPC_VERSION,
    REMOTE_ERROR,
    make_error,
    make_notification,
    make_response,
)

DEFAULT_ERROR_MESSAGE = "Remote error"
FALLBACK_NOTIFICATION_METHOD = "remote/notification"


def _coerce_code(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return REMOTE_ERROR
    if not math.isfinite(number):
        return REMOTE_ERROR
    return int(number)


def coerce_message(value: Any) -> str:
    """Render a remote message value as text, JSON-encoding non-strings."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def normalize_remote_error(err: Any) -> dict[str, Any]:
    """Coerce an error of any shape into ``{code, message, data?}``.

    Args:
        err: The remote's error value.

    Returns:
        Normalized error object.
    """
    if not isinstance(err, dict):
        message = DEFAULT_ERROR_MESSAGE if err is None else coerce_message(err)
        return {"code": REMOTE_ERROR, "message": message}

    code = err.get("code")
    if code is None:
        code = err.get("status")

    message = None
    for key in ("message", "error", "reason"):
        if err.get(key) is not None:
            message = err[key]
            break

    normalized: dict[str, Any] = {
        "code": REMOTE_ERROR if code is None else _coerce_code(code),
        "message": DEFAULT_ERROR_MESSAGE if message is None else coerce_message(message),
    }
    if "data" in err:
        normalized["data"] = err["data"]
    return normalized


@dataclass(frozen=True)
class NotificationShape:
    """Server-initiated message: has a method, no id."""

    method: str
    params: dict[str, Any]


@dataclass(frozen=True)
class ErrorShape:
    """Payload carrying a non-null ``error``."""

    id: Any
    error: Any


@dataclass(frozen=True)
class StatusShape:
    """Payload with no ``result`` but a ``message`` or ``status``."""

    id: Any
    body: dict[str, Any]


@dataclass(frozen=True)
class ResultShape:
    """Payload carrying a ``result``."""

    id: Any
    result: Any


@dataclass(frozen=True)
class Unrecognized:
    """Anything else."""

    message: str


PayloadShape = NotificationShape | ErrorShape | StatusShape | ResultShape | Unrecognized


def classify(payload: Any) -> PayloadShape:
    """Classify a remote payload. The first matching rule wins.

    Args:
        payload: Decoded remote payload.

    Returns:
        The payload's shape.
    """
    if isinstance(payload, dict) and "method" in payload and "id" not in payload:
        method = payload["method"]
        params = payload.get("params")
        return NotificationShape(
            method=method if isinstance(method, str) else FALLBACK_NOTIFICATION_METHOD,
            params=params if isinstance(params, dict) else {},
        )

    if not isinstance(payload, dict):
        return Unrecognized("Remote returned non-object")

    if payload.get("error") is not None:
        return ErrorShape(id=payload.get("id"), error=payload["error"])

    if "result" not in payload:
        if "message" in payload or "status" in payload:
            return StatusShape(id=payload.get("id"), body=payload)
        return Unrecognized("Remote missing result and error")

    return ResultShape(id=payload.get("id"), result=payload["result"])


@dataclass(frozen=True)
class Reconciliation:
    """Frames to send for one remote payload, notification first."""

    response: dict[str, Any]
    notification: dict[str, Any] | None = None

    @property
    def frames(self) -> list[dict[str, Any]]:
        """All frames in write order."""
        if self.notification is None:
            return [self.response]
        return [self.notification, self.response]


def reconcile(payload: Any, fallback_id: Any = None) -> Reconciliation:
    """Turn a remote payload into a valid response for the client.

    Args:
        payload: Decoded remote payload (any shape).
        fallback_id: ID of the request that triggered the call.

    Returns:
        Reconciliation holding the response and an optional notification.
    """
    shape = classify(payload)

    if isinstance(shape, NotificationShape):
        return Reconciliation(
            response=make_response(fallback_id, {"ok": True}),
            notification=make_notification(shape.method, shape.params),
        )

    if isinstance(shape, ErrorShape):
        return Reconciliation(_error_response(shape.id, fallback_id, shape.error))

    if isinstance(shape, StatusShape):
        return Reconciliation(_error_response(shape.id, fallback_id, shape.body))

    if isinstance(shape, ResultShape):
        msg_id = fallback_id if shape.id is None else shape.id
        # Only the result survives; other top-level fields are dropped
        return Reconciliation(make_response(msg_id, shape.result))

    return Reconciliation(make_error(fallback_id, INTERNAL_ERROR, shape.message))


def _error_response(payload_id: Any, fallback_id: Any, error: Any) -> dict[str, Any]:
    msg_id = fallback_id if payload_id is None else payload_id
    return {"jsonrpc": JSONRPC_VERSION, "id": msg_id, "error": normalize_remote_error(error)}
