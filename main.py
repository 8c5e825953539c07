#!/usr/bin/env python3
"""Dify MCP bridge - main entry point.

Run from a checkout after `pip install -e .`:

    DIFY_MCP_URL=... DIFY_MCP_TOKEN=... python main.py

See ``dify_mcp_bridge.main`` for the configuration reference.
"""

from __future__ import annotations

import sys

from dify_mcp_bridge.main import main

if __name__ == "__main__":
    sys.exit(main())
