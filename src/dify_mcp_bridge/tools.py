"""Tool descriptor name repair.

Clients reject tool names outside ``[A-Za-z0-9_-]{1,64}``, so descriptors
returned by the remote are rewritten before they reach the client.
"""

from __future__ import annotations

import re
from typing import Any

MAX_TOOL_NAME_LENGTH = 64

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_tool_name(name: Any, fallback: str = "tool") -> str:
    """Make a tool name safe for the client.

    Args:
        name: Name as sent by the remote (any type).
        fallback: Name to use when nothing usable is left.

    Returns:
        Sanitized name.
    """
    cleaned = _INVALID_CHARS.sub("_", "" if name is None else str(name))
    return cleaned[:MAX_TOOL_NAME_LENGTH] or fallback


def repair_tools(result: Any) -> Any:
    """Sanitize the names of every descriptor in ``result["tools"]``.

    Non-mapping descriptors are kept as they are. The input is not
    modified; a new result is returned when there is a tool list.

    Args:
        result: Result payload from the remote.

    Returns:
        The result with sanitized tool names.
    """
    if not isinstance(result, dict) or not isinstance(result.get("tools"), list):
        return result

    tools = []
    for index, tool in enumerate(result["tools"], 1):
        if not isinstance(tool, dict):
            tools.append(tool)
            continue
        fallback = f"tool_{index}"
        # Spread keeps key order, so the name stays where it was
        tools.append({**tool, "name": sanitize_tool_name(tool.get("name", fallback), fallback)})

    return {**result, "tools": tools}
