"""Save downloaded content to local files.

Directories are created as needed. A failed write is reported to the
caller; partially written files are not cleaned up.
"""

import logging
from pathlib import Path

import httpx

from workspace_server.errors import ToolInputError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 60.0


def require_absolute_path(local_path: str | Path) -> Path:
    """Return ``local_path`` as a Path.

    Raises:
        ToolInputError: If the path is relative.
    """
    path = Path(local_path)
    if not path.is_absolute():
        raise ToolInputError("localPath must be an absolute path.")
    return path


def write_local_file(local_path: str | Path, data: bytes) -> Path:
    """Write ``data`` to an absolute path, creating parent directories.

    Args:
        local_path: Absolute destination path.
        data: File content.

    Returns:
        The destination path.
    """
    path = require_absolute_path(local_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


async def download_to_local(url: str, local_path: str | Path) -> Path:
    """Download ``url`` to an absolute local path.

    Slides ``contentUrl`` links are pre-signed, so no credentials are sent.

    Args:
        url: URL to fetch.
        local_path: Absolute destination path.

    Returns:
        The destination path.

    Raises:
        ToolInputError: If ``local_path`` is relative.
        httpx.HTTPError: If the download fails.
    """
    path = require_absolute_path(local_path)
    logger.debug(f"Downloading {url} to {path}")

    async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()

    write_local_file(path, response.content)
    logger.debug(f"Downloaded {len(response.content)} bytes to {path}")
    return path
