"""Google Slides operations."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from workspace_server.errors import WorkspaceError
from workspace_server.services.base import (
    DRIVE_API_BASE,
    SLIDES_API_BASE,
    BaseService,
    ToolResult,
    json_result,
    service_operation,
    text_result,
)
from workspace_server.utils.download import download_to_local, require_absolute_path
from workspace_server.utils.drive_query import MIME_TYPES, build_drive_search_query
from workspace_server.utils.ids import resolve_id

logger = logging.getLogger(__name__)

PRESENTATION_URL = "https://docs.google.com/presentation/d/{}/edit"


def _text_content(text: dict[str, Any]) -> str:
    """Flatten a Slides TextContent; paragraph markers without text become newlines."""
    parts = []
    for element in text.get("textElements", []):
        run = element.get("textRun", {}).get("content")
        if run:
            parts.append(run)
        elif "paragraphMarker" in element:
            parts.append("\n")
    return "".join(parts)


def _format_presentation_text(presentation: dict[str, Any]) -> str:
    content = ""
    if presentation.get("title"):
        content += f"Presentation Title: {presentation['title']}\n\n"

    for slide_index, slide in enumerate(presentation.get("slides", []), start=1):
        content += f"\n--- Slide {slide_index} ---\n"

        for element in slide.get("pageElements", []):
            shape_text = element.get("shape", {}).get("text")
            if shape_text:
                text = _text_content(shape_text)
                if text:
                    content += text + "\n"

            rows = element.get("table", {}).get("tableRows")
            if rows:
                content += "\n--- Table Data ---\n"
                for row in rows:
                    cells = [
                        _text_content(cell["text"]).strip() if cell.get("text") else ""
                        for cell in row.get("tableCells", [])
                    ]
                    content += " | ".join(cells) + "\n"
                content += "--- End Table Data ---\n"

        content += "\n"

    return content.strip()


class SlidesService(BaseService):
    """Read, create and fill Google Slides presentations."""

    async def _get_presentation(self, presentation_id: str, fields: str) -> dict[str, Any]:
        return await self._make_request(
            "GET",
            f"{SLIDES_API_BASE}/presentations/{presentation_id}",
            params={"fields": fields},
        )

    @service_operation("slides.get_text")
    async def get_text(self, presentation_id: str) -> ToolResult:
        """Extract the text of every slide, including table cells."""
        presentation_id = resolve_id(presentation_id)
        logger.info(f"Reading text of presentation {presentation_id}")

        presentation = await self._get_presentation(
            presentation_id,
            "title,slides(pageElements(shape(text,shapeProperties),"
            "table(tableRows(tableCells(text)))))",
        )
        return text_result(_format_presentation_text(presentation))

    @service_operation("slides.create")
    async def create(self, title: str) -> ToolResult:
        """Create an empty presentation.

        Returns:
            JSON ``{presentationId, title, url}``.
        """
        logger.info(f"Creating presentation {title!r}")
        response = await self._make_request(
            "POST", f"{SLIDES_API_BASE}/presentations", json_data={"title": title}
        )
        presentation_id = response.get("presentationId")
        if not presentation_id:
            raise WorkspaceError("Slides create response did not include a presentationId")

        return json_result(
            {
                "presentationId": presentation_id,
                "title": response.get("title"),
                "url": PRESENTATION_URL.format(presentation_id),
            }
        )

    @service_operation("slides.create_from_template")
    async def create_from_template(self, template_id: str, title: str) -> ToolResult:
        """Copy a template presentation under a new title."""
        template_id = resolve_id(template_id)
        logger.info(f"Creating presentation {title!r} from template {template_id}")

        response = await self._make_request(
            "POST",
            f"{DRIVE_API_BASE}/files/{template_id}/copy",
            params={"supportsAllDrives": "true"},
            json_data={"name": title},
        )
        presentation_id = response.get("id")
        if not presentation_id:
            raise WorkspaceError("Drive copy response did not include a file id")

        return json_result(
            {
                "presentationId": presentation_id,
                "title": response.get("name"),
                "url": PRESENTATION_URL.format(presentation_id),
            }
        )

    @service_operation("slides.replace_all_text")
    async def replace_all_text(
        self, presentation_id: str, replacements: dict[str, str]
    ) -> ToolResult:
        """Replace placeholder text across all slides.

        Args:
            presentation_id: Presentation ID or URL.
            replacements: Map of exact, case-sensitive search text to replacement.

        Returns:
            JSON ``{replies}``, or a plain message when ``replacements`` is
            empty (nothing is sent to the API).
        """
        if not replacements:
            return text_result("No replacements provided.")

        presentation_id = resolve_id(presentation_id)
        requests = [
            {
                "replaceAllText": {
                    "containsText": {"text": find, "matchCase": True},
                    "replaceText": replacement,
                }
            }
            for find, replacement in replacements.items()
        ]

        response = await self._make_request(
            "POST",
            f"{SLIDES_API_BASE}/presentations/{presentation_id}:batchUpdate",
            json_data={"requests": requests},
        )
        logger.info(f"Replaced text for {len(requests)} placeholder(s) in {presentation_id}")
        return json_result({"replies": response.get("replies", [])})

    @service_operation("slides.find")
    async def find(
        self, query: str, page_token: str | None = None, page_size: int = 10
    ) -> ToolResult:
        """Find presentations by title (``title:`` prefix) or full text."""
        params: dict[str, Any] = {
            "q": build_drive_search_query(MIME_TYPES["presentation"], query),
            "pageSize": page_size,
            "fields": "nextPageToken, files(id, name)",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token

        response = await self._make_request("GET", f"{DRIVE_API_BASE}/files", params=params)
        files = response.get("files", [])
        logger.info(f"Found {len(files)} presentation(s)")
        return json_result({"files": files, "nextPageToken": response.get("nextPageToken")})

    @service_operation("slides.get_metadata")
    async def get_metadata(self, presentation_id: str) -> ToolResult:
        """Summarize a presentation's structure."""
        presentation_id = resolve_id(presentation_id)
        presentation = await self._get_presentation(
            presentation_id,
            "presentationId,title,slides(objectId),pageSize,notesMaster,masters,layouts",
        )
        slides = presentation.get("slides", [])

        return json_result(
            {
                "presentationId": presentation.get("presentationId"),
                "title": presentation.get("title"),
                "slideCount": len(slides),
                "slides": [{"objectId": slide.get("objectId")} for slide in slides],
                "pageSize": presentation.get("pageSize"),
                "hasMasters": bool(presentation.get("masters")),
                "hasLayouts": bool(presentation.get("layouts")),
                "hasNotesMaster": bool(presentation.get("notesMaster")),
            }
        )

    async def _download_image(self, image: dict[str, Any], local_dir: Path) -> dict[str, Any]:
        if not image.get("contentUrl"):
            return image

        filename = f"slide_{image['slideIndex']}_{image['elementObjectId']}.png"
        try:
            path = await download_to_local(image["contentUrl"], local_dir / filename)
            image["localPath"] = str(path)
        except Exception as e:
            # One failed image must not fail the whole listing
            logger.warning(f"Failed to download image {image['elementObjectId']}: {e}")
            image["downloadError"] = str(e)
        return image

    @service_operation("slides.get_images")
    async def get_images(self, presentation_id: str, local_path: str) -> ToolResult:
        """List the images of a presentation and download them.

        Args:
            presentation_id: Presentation ID or URL.
            local_path: Absolute directory to save images into.

        Returns:
            JSON ``{images}``; each image carries ``localPath`` or ``downloadError``.
        """
        local_dir = require_absolute_path(local_path)
        presentation_id = resolve_id(presentation_id)
        presentation = await self._get_presentation(
            presentation_id,
            "slides(objectId,pageElements(objectId,title,description,image(contentUrl,sourceUrl)))",
        )

        images = []
        for index, slide in enumerate(presentation.get("slides", []), start=1):
            for element in slide.get("pageElements", []):
                if "image" not in element:
                    continue
                images.append(
                    {
                        "slideIndex": index,
                        "slideObjectId": slide.get("objectId"),
                        "elementObjectId": element.get("objectId"),
                        "title": element.get("title"),
                        "description": element.get("description"),
                        "contentUrl": element["image"].get("contentUrl"),
                        "sourceUrl": element["image"].get("sourceUrl"),
                    }
                )

        images = list(
            await asyncio.gather(*(self._download_image(image, local_dir) for image in images))
        )
        logger.info(f"Found {len(images)} image(s) in presentation {presentation_id}")
        return json_result({"images": images})

    @service_operation("slides.get_slide_thumbnail")
    async def get_slide_thumbnail(
        self, presentation_id: str, slide_object_id: str, local_path: str
    ) -> ToolResult:
        """Render a slide thumbnail and download it.

        Args:
            presentation_id: Presentation ID or URL.
            slide_object_id: Object ID of the slide.
            local_path: Absolute file path for the thumbnail.
        """
        require_absolute_path(local_path)
        presentation_id = resolve_id(presentation_id)
        result = await self._make_request(
            "GET",
            f"{SLIDES_API_BASE}/presentations/{presentation_id}/pages/{slide_object_id}/thumbnail",
        )

        if result.get("contentUrl"):
            try:
                path = await download_to_local(result["contentUrl"], local_path)
                result["localPath"] = str(path)
            except Exception as e:
                logger.warning(f"Failed to download thumbnail for slide {slide_object_id}: {e}")
                result["downloadError"] = str(e)

        return json_result(result)
