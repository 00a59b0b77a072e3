"""Google Docs operations.

Text written through ``insert_text``, ``append_text`` and ``replace_text``
is markdown: it is compiled to plain text plus style updates and sent as
a single ``documents:batchUpdate`` call.
"""

import json
import logging
from typing import Any

from markdown_it import MarkdownIt

from workspace_server.auth.auth_manager import AuthManager
from workspace_server.docs.markdown import compile_markdown
from workspace_server.docs.replace import plan_replacement
from workspace_server.docs.requests import EditOperation, InsertText, to_batch_requests
from workspace_server.docs.text import DocumentTab, find_tab, parse_tabs
from workspace_server.errors import ToolInputError, WorkspaceError
from workspace_server.services.base import (
    DOCS_API_BASE,
    DRIVE_API_BASE,
    DRIVE_UPLOAD_BASE,
    BaseService,
    ToolResult,
    json_result,
    service_operation,
    text_result,
)
from workspace_server.services.drive import DriveService
from workspace_server.utils.drive_query import MIME_TYPES, build_drive_search_query
from workspace_server.utils.ids import extract_document_id, resolve_id

logger = logging.getLogger(__name__)

MULTIPART_BOUNDARY = "workspace_server_boundary"

# Raw HTML in markdown is escaped, not passed through to Drive's importer
_html_renderer = MarkdownIt("commonmark", {"html": False})


def _insertion_batch(text: str, index: int, tab_id: str | None) -> list[EditOperation]:
    """Compile markdown into an insert followed by its style updates."""
    compiled = compile_markdown(text, insertion_offset=index)
    if not compiled.plain_text:
        raise ToolInputError("No text to insert.")

    operations: list[EditOperation] = [
        InsertText(index=index, text=compiled.plain_text, tab_id=tab_id)
    ]
    operations.extend(operation.with_tab(tab_id) for operation in compiled.operations)
    return operations


class DocsService(BaseService):
    """Create, read, search and edit Google Docs.

    Attributes:
        drive: Drive service used for search and folder moves.
    """

    def __init__(self, auth_manager: AuthManager, drive: DriveService) -> None:
        super().__init__(auth_manager)
        self.drive = drive

    async def _get_tabs(self, document_id: str) -> list[DocumentTab]:
        document = await self._make_request(
            "GET",
            f"{DOCS_API_BASE}/documents/{document_id}",
            params={"fields": "tabs", "includeTabsContent": "true"},
        )
        return parse_tabs(document)

    async def _batch_update(
        self, document_id: str, operations: list[EditOperation]
    ) -> dict[str, Any]:
        logger.debug(f"Sending {len(operations)} edit(s) to document {document_id}")
        return await self._make_request(
            "POST",
            f"{DOCS_API_BASE}/documents/{document_id}:batchUpdate",
            json_data={"requests": to_batch_requests(operations)},
        )

    async def _upload_markdown(self, title: str, markdown: str) -> dict[str, Any]:
        """Create a Doc by uploading rendered markdown as HTML for conversion."""
        html = _html_renderer.render(markdown)
        metadata = {"name": title, "mimeType": MIME_TYPES["document"]}

        body_parts = [
            f"--{MULTIPART_BOUNDARY}",
            "Content-Type: application/json; charset=UTF-8",
            "",
            json.dumps(metadata),
            f"--{MULTIPART_BOUNDARY}",
            "Content-Type: text/html; charset=UTF-8",
            "",
            html,
            f"--{MULTIPART_BOUNDARY}--",
        ]
        response = await self._raw_request(
            "POST",
            f"{DRIVE_UPLOAD_BASE}/files",
            params={"uploadType": "multipart", "fields": "id, name", "supportsAllDrives": "true"},
            content="\r\n".join(body_parts).encode("utf-8"),
            headers={"Content-Type": f"multipart/related; boundary={MULTIPART_BOUNDARY}"},
            timeout=60.0,
        )
        result = response.json()
        if not result.get("id"):
            raise WorkspaceError("Drive upload response did not include a file id")
        return {"documentId": result["id"], "title": result.get("name", title)}

    async def _create_blank(self, title: str) -> dict[str, Any]:
        result = await self._make_request(
            "POST", f"{DOCS_API_BASE}/documents", json_data={"title": title}
        )
        if not result.get("documentId"):
            raise WorkspaceError("Docs create response did not include a documentId")
        return {"documentId": result["documentId"], "title": result.get("title", title)}

    @service_operation("docs.create")
    async def create(
        self,
        title: str,
        folder_name: str | None = None,
        markdown: str | None = None,
    ) -> ToolResult:
        """Create a document, optionally from markdown and inside a folder.

        Args:
            title: Document title.
            folder_name: Name of the Drive folder to move the document into.
            markdown: Initial content. Converted by Drive's HTML importer.

        Returns:
            JSON ``{documentId, title}``.
        """
        logger.info(f"Creating document {title!r} (markdown: {bool(markdown)})")
        if markdown:
            doc_info = await self._upload_markdown(title, markdown)
        else:
            doc_info = await self._create_blank(title)

        if folder_name:
            await self.drive.move_file_to_folder(doc_info["documentId"], folder_name)
            logger.info(f"Moved document {doc_info['documentId']} to folder {folder_name}")

        return json_result(doc_info)

    @service_operation("docs.insert_text")
    async def insert_text(
        self, document_id: str, text: str, tab_id: str | None = None
    ) -> ToolResult:
        """Insert markdown-formatted text at the start of a document.

        Returns:
            JSON ``{documentId, writeControl}``.
        """
        document_id = resolve_id(document_id)
        logger.info(f"Inserting text into document {document_id} (tab: {tab_id})")

        operations = _insertion_batch(text, 1, tab_id)
        response = await self._batch_update(document_id, operations)

        return json_result(
            {
                "documentId": response.get("documentId", document_id),
                "writeControl": response.get("writeControl"),
            }
        )

    @service_operation("docs.append_text")
    async def append_text(
        self, document_id: str, text: str, tab_id: str | None = None
    ) -> ToolResult:
        """Append markdown-formatted text to the end of a document or tab.

        Without ``tab_id`` the first tab is used.
        """
        document_id = resolve_id(document_id)
        logger.info(f"Appending text to document {document_id} (tab: {tab_id})")

        tabs = await self._get_tabs(document_id)
        if tab_id:
            end_index = find_tab(tabs, tab_id).end_index
        else:
            end_index = tabs[0].end_index if tabs else 1

        # Insert before the body's final newline
        index = max(1, end_index - 1)
        await self._batch_update(document_id, _insertion_batch(text, index, tab_id))

        return text_result(f"Successfully appended text to document {document_id}")

    @service_operation("docs.find")
    async def find(
        self, query: str, page_token: str | None = None, page_size: int = 10
    ) -> ToolResult:
        """Find documents by title (``title:`` prefix) or full text.

        Returns:
            JSON ``{files, nextPageToken}``.
        """
        q = build_drive_search_query(MIME_TYPES["document"], query)
        logger.info(f"Searching documents with query: {q}")

        params: dict[str, Any] = {
            "q": q,
            "pageSize": page_size,
            "fields": "nextPageToken, files(id, name)",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token

        response = await self._make_request("GET", f"{DRIVE_API_BASE}/files", params=params)
        files = response.get("files", [])
        logger.info(f"Found {len(files)} document(s)")
        return json_result({"files": files, "nextPageToken": response.get("nextPageToken")})

    @service_operation("docs.move")
    async def move(self, document_id: str, folder_name: str) -> ToolResult:
        """Move a document into the folder named ``folder_name``."""
        document_id = resolve_id(document_id)
        await self.drive.move_file_to_folder(document_id, folder_name)
        logger.info(f"Moved document {document_id} to folder {folder_name}")
        return text_result(f"Moved document {document_id} to folder {folder_name}")

    @service_operation("docs.get_text")
    async def get_text(self, document_id: str, tab_id: str | None = None) -> ToolResult:
        """Read the plain text of a document.

        Returns:
            The text of ``tab_id``, or of the only tab. Documents with
            several tabs and no ``tab_id`` return a JSON list of
            ``{tabId, title, content, index}``.
        """
        document_id = extract_document_id(document_id)
        tabs = await self._get_tabs(document_id)

        if tab_id:
            return text_result(find_tab(tabs, tab_id).text)
        if not tabs:
            return text_result("")
        if len(tabs) == 1:
            return text_result(tabs[0].text)

        tabs_data = [
            {"tabId": tab.tab_id, "title": tab.title, "content": tab.text, "index": index}
            for index, tab in enumerate(tabs)
        ]
        return json_result(tabs_data, indent=2)

    @service_operation("docs.replace_text")
    async def replace_text(
        self,
        document_id: str,
        find_text: str,
        replace_text: str,
        tab_id: str | None = None,
    ) -> ToolResult:
        """Replace every occurrence of ``find_text`` with markdown ``replace_text``.

        Without ``tab_id`` all tabs are edited in one batch.
        """
        document_id = resolve_id(document_id)
        logger.info(f"Replacing text in document {document_id} (tab: {tab_id})")

        tabs = await self._get_tabs(document_id)
        targets = [find_tab(tabs, tab_id)] if tab_id else tabs

        operations: list[EditOperation] = []
        for tab in targets:
            operations.extend(plan_replacement(tab.text, find_text, replace_text, tab.tab_id))

        if operations:
            await self._batch_update(document_id, operations)
        else:
            logger.info(f"No occurrences of the search text in document {document_id}")

        return text_result(f"Successfully replaced text in document {document_id}")
