"""MCP server — the tool surface of dev-assistant."""

from devassist.server.app import create_server, run_server

__all__ = ["create_server", "run_server"]
