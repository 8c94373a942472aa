"""
Paper Discovery MCP Server

Exposes multi-source paper search as a Model Context Protocol tool.

Usage as standalone server:
    python -m paper_discovery.presentation.mcp_server

Or in mcp.json:
    {
        "servers": {
            "paper-discovery": {
                "type": "stdio",
                "command": "paper-discovery"
            }
        }
    }

Usage for integration:
    from paper_discovery import PaperSearchService
    from paper_discovery.presentation.mcp_server import register_search_tools

    register_search_tools(your_mcp_server, PaperSearchService.from_settings())
"""

from __future__ import annotations

from .server import create_server, main
from .tools import register_search_tools

__all__ = ["create_server", "main", "register_search_tools"]
