"""Google Drive operations: folder lookup, search and moving files."""

import logging
from typing import Any

from workspace_server.errors import WorkspaceError
from workspace_server.services.base import (
    DRIVE_API_BASE,
    BaseService,
    ToolResult,
    json_result,
    service_operation,
)
from workspace_server.utils.drive_query import build_folder_query, normalize_drive_query

logger = logging.getLogger(__name__)


class DriveService(BaseService):
    """Drive file and folder operations."""

    async def find_folders(self, folder_name: str) -> list[dict[str, Any]]:
        """Return ``{id, name}`` for every folder named ``folder_name``."""
        response = await self._make_request(
            "GET",
            f"{DRIVE_API_BASE}/files",
            params={
                "q": build_folder_query(folder_name),
                "fields": "files(id, name)",
                "spaces": "drive",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        )
        return [{"id": f.get("id"), "name": f.get("name")} for f in response.get("files", [])]

    async def move_file_to_folder(self, file_id: str, folder_name: str) -> str:
        """Move a file into the folder named ``folder_name``.

        The file is removed from all its current parents. When several
        folders share the name, the first one returned is used.

        Returns:
            The ID of the destination folder.

        Raises:
            WorkspaceError: If no folder has that name.
        """
        folders = await self.find_folders(folder_name)
        if not folders:
            raise WorkspaceError(f"Folder not found: {folder_name}")
        if len(folders) > 1:
            logger.warning(
                f"Found multiple folders named {folder_name!r}; using the first one found"
            )
        folder_id = folders[0]["id"]

        file_url = f"{DRIVE_API_BASE}/files/{file_id}"
        current = await self._make_request(
            "GET", file_url, params={"fields": "parents", "supportsAllDrives": "true"}
        )

        params = {
            "addParents": folder_id,
            "fields": "id, parents",
            "supportsAllDrives": "true",
        }
        previous_parents = ",".join(current.get("parents", []))
        if previous_parents:
            params["removeParents"] = previous_parents

        await self._make_request("PATCH", file_url, params=params, json_data={})
        return folder_id

    @service_operation("drive.find_folder")
    async def find_folder(self, folder_name: str) -> ToolResult:
        """Find folders by exact name.

        Returns:
            JSON list of ``{id, name}``.
        """
        logger.info(f"Finding folder: {folder_name}")
        folders = await self.find_folders(folder_name)
        logger.info(f"Found {len(folders)} folder(s)")
        return json_result(folders)

    @service_operation("drive.search")
    async def search(
        self,
        query: str,
        page_size: int = 10,
        page_token: str | None = None,
    ) -> ToolResult:
        """Search Drive files.

        Args:
            query: Drive query syntax, or bare terms for a full-text search.
            page_size: Maximum number of files to return.
            page_token: Token of the page to fetch.

        Returns:
            JSON ``{files, nextPageToken}``.
        """
        params: dict[str, Any] = {
            "q": normalize_drive_query(query),
            "pageSize": page_size,
            "fields": "nextPageToken, files(id, name, mimeType, modifiedTime, webViewLink)",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token

        response = await self._make_request("GET", f"{DRIVE_API_BASE}/files", params=params)
        files = response.get("files", [])
        logger.info(f"Drive search returned {len(files)} file(s)")
        return json_result({"files": files, "nextPageToken": response.get("nextPageToken")})
