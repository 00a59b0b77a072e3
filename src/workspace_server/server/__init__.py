"""MCP server exposing Google Workspace tools over stdio."""

from workspace_server.server.server import WorkspaceServer, main

__all__ = ["WorkspaceServer", "main"]
