"""Stdio-to-HTTP bridge for remote MCP endpoints."""

__version__ = "1.0.0"
