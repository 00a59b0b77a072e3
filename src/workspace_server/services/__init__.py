"""Google Workspace API services exposed as MCP tools."""

from workspace_server.services.base import BaseService, ToolResult
from workspace_server.services.docs import DocsService
from workspace_server.services.drive import DriveService
from workspace_server.services.gmail import GmailService
from workspace_server.services.people import PeopleService
from workspace_server.services.slides import SlidesService

__all__ = [
    "BaseService",
    "ToolResult",
    "DocsService",
    "DriveService",
    "GmailService",
    "PeopleService",
    "SlidesService",
]
