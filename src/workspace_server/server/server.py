"""Google Workspace MCP server.

Exposes Docs, Slides, Gmail, People and Drive operations as MCP tools over
stdio. Every tool call goes through the shared AuthManager, which refreshes
the stored OAuth credential as needed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from workspace_server.auth import AuthManager
from workspace_server.services import (
    DocsService,
    DriveService,
    GmailService,
    PeopleService,
    SlidesService,
)
from workspace_server.services.base import ToolResult, error_result
from workspace_server.server.tools import ALL_TOOLS

logger = logging.getLogger(__name__)

SERVER_NAME = "workspace-server"

ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


class WorkspaceServer:
    """MCP server for Google Workspace APIs.

    Attributes:
        server: MCP Server instance.
        auth_manager: Shared credential and client manager.
        drive: Drive service, also used by Docs for folder moves.
        docs: Google Docs service.
        slides: Google Slides service.
        gmail: Gmail service.
        people: People API service.
    """

    def __init__(self, auth_manager: AuthManager | None = None) -> None:
        """Initialize the Workspace MCP server."""
        self.server = Server(SERVER_NAME)
        self.auth_manager = auth_manager or AuthManager()
        self.drive = DriveService(self.auth_manager)
        self.docs = DocsService(self.auth_manager, self.drive)
        self.slides = SlidesService(self.auth_manager)
        self.gmail = GmailService(self.auth_manager)
        self.people = PeopleService(self.auth_manager)
        self._handlers = self._build_handlers()
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return ALL_TOOLS

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.dispatch_tool(name, arguments)

    def _build_handlers(self) -> dict[str, ToolHandler]:
        docs, slides, gmail = self.docs, self.slides, self.gmail
        people, drive = self.people, self.drive

        return {
            # Docs
            "docs_create": lambda a: docs.create(
                a["title"], folder_name=a.get("folderName"), markdown=a.get("markdown")
            ),
            "docs_insert_text": lambda a: docs.insert_text(
                a["documentId"], a["text"], tab_id=a.get("tabId")
            ),
            "docs_append_text": lambda a: docs.append_text(
                a["documentId"], a["text"], tab_id=a.get("tabId")
            ),
            "docs_find": lambda a: docs.find(
                a["query"], page_token=a.get("pageToken"), page_size=a.get("pageSize", 10)
            ),
            "docs_move": lambda a: docs.move(a["documentId"], a["folderName"]),
            "docs_get_text": lambda a: docs.get_text(a["documentId"], tab_id=a.get("tabId")),
            "docs_replace_text": lambda a: docs.replace_text(
                a["documentId"], a["findText"], a["replaceText"], tab_id=a.get("tabId")
            ),
            # Slides
            "slides_get_text": lambda a: slides.get_text(a["presentationId"]),
            "slides_create": lambda a: slides.create(a["title"]),
            "slides_create_from_template": lambda a: slides.create_from_template(
                a["templateId"], a["title"]
            ),
            "slides_replace_all_text": lambda a: slides.replace_all_text(
                a["presentationId"], a.get("replacements") or {}
            ),
            "slides_find": lambda a: slides.find(
                a["query"], page_token=a.get("pageToken"), page_size=a.get("pageSize", 10)
            ),
            "slides_get_metadata": lambda a: slides.get_metadata(a["presentationId"]),
            "slides_get_images": lambda a: slides.get_images(
                a["presentationId"], a["localPath"]
            ),
            "slides_get_slide_thumbnail": lambda a: slides.get_slide_thumbnail(
                a["presentationId"], a["slideObjectId"], a["localPath"]
            ),
            # Gmail
            "gmail_search": lambda a: gmail.search(
                query=a.get("query"),
                max_results=a.get("maxResults", 100),
                page_token=a.get("pageToken"),
                label_ids=a.get("labelIds"),
                include_spam_trash=a.get("includeSpamTrash", False),
            ),
            "gmail_get": lambda a: gmail.get(a["messageId"], format=a.get("format", "full")),
            "gmail_download_attachment": lambda a: gmail.download_attachment(
                a["messageId"], a["attachmentId"], a["localPath"]
            ),
            "gmail_modify": lambda a: gmail.modify(
                a["messageId"],
                add_label_ids=a.get("addLabelIds"),
                remove_label_ids=a.get("removeLabelIds"),
            ),
            "gmail_send": lambda a: gmail.send(
                a["to"],
                a["subject"],
                a["body"],
                cc=a.get("cc"),
                bcc=a.get("bcc"),
                is_html=a.get("isHtml", False),
            ),
            "gmail_create_draft": lambda a: gmail.create_draft(
                a["to"],
                a["subject"],
                a["body"],
                cc=a.get("cc"),
                bcc=a.get("bcc"),
                is_html=a.get("isHtml", False),
                thread_id=a.get("threadId"),
            ),
            "gmail_send_draft": lambda a: gmail.send_draft(a["draftId"]),
            "gmail_list_labels": lambda a: gmail.list_labels(),
            "gmail_create_label": lambda a: gmail.create_label(
                a["name"],
                label_list_visibility=a.get("labelListVisibility", "labelShow"),
                message_list_visibility=a.get("messageListVisibility", "show"),
            ),
            # People
            "people_get_user_profile": lambda a: people.get_user_profile(
                user_id=a.get("userId"), email=a.get("email")
            ),
            "people_get_me": lambda a: people.get_me(),
            # Drive
            "drive_find_folder": lambda a: drive.find_folder(a["folderName"]),
            "drive_search": lambda a: drive.search(
                a["query"], page_size=a.get("pageSize", 10), page_token=a.get("pageToken")
            ),
        }

    async def dispatch_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        """Dispatch a tool call to its service operation.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            The operation's result, or an error envelope for unknown tools
            and missing required arguments.
        """
        handler = self._handlers.get(name)
        if handler is None:
            logger.error(f"Unknown tool: {name}")
            return error_result(f"Unknown tool: {name}")

        logger.info(f"Calling tool {name}")
        try:
            return await handler(arguments or {})
        except KeyError as e:
            logger.error(f"Missing argument for tool {name}: {e}")
            return error_result(f"Missing required argument: {e.args[0]}")

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.auth_manager.close()


def main() -> None:
    """Entry point for the Workspace MCP server."""
    server = WorkspaceServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
