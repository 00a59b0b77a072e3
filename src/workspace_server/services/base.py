"""Shared plumbing for the Google Workspace services.

Every public service operation returns MCP ``TextContent`` items: either
a plain message or a JSON document. Failures never escape an operation;
``service_operation`` logs them and returns ``{"error": "<message>"}``.
"""

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from mcp.types import TextContent

from workspace_server.auth.auth_manager import AuthManager

logger = logging.getLogger(__name__)

# Google API base URLs
DOCS_API_BASE = "https://docs.googleapis.com/v1"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"
PEOPLE_API_BASE = "https://people.googleapis.com/v1"
SLIDES_API_BASE = "https://slides.googleapis.com/v1"

ToolResult = list[TextContent]
F = TypeVar("F", bound=Callable[..., Awaitable[ToolResult]])


def text_result(text: str) -> ToolResult:
    """Wrap a plain message."""
    return [TextContent(type="text", text=text)]


def json_result(data: Any, indent: int | None = None) -> ToolResult:
    """Wrap a JSON-serializable result."""
    return [TextContent(type="text", text=json.dumps(data, indent=indent))]


def error_result(message: str, **details: Any) -> ToolResult:
    """Wrap an error message as ``{"error": message, ...details}``."""
    return json_result({"error": message, **details})


def describe_error(error: Exception) -> str:
    """Get a user-facing message, preferring Google's own error text."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            payload = error.response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message = payload["error"].get("message")
            if message:
                return str(message)
    return str(error)


def service_operation(context: str) -> Callable[[F], F]:
    """Convert any exception raised by an operation into the error envelope.

    Args:
        context: Operation name used in log records, e.g. ``docs.insert_text``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> ToolResult:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                message = describe_error(e)
                logger.error(f"Error during {context}: {message}")
                logger.debug(f"{context} failure details", exc_info=True)
                return error_result(message)

        return wrapper  # type: ignore[return-value]

    return decorator


class BaseService:
    """Base class giving services authenticated access to Google APIs.

    Attributes:
        auth_manager: Source of the authenticated client.
    """

    def __init__(self, auth_manager: AuthManager) -> None:
        self.auth_manager = auth_manager

    async def _raw_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Make an authenticated request and return the raw response.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        client = await self.auth_manager.get_authenticated_client()
        return await client.request(
            method,
            url,
            params=params,
            json=json_data,
            content=content,
            headers=headers,
            timeout=timeout,
        )

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
    ) -> dict[str, Any]:
        """Make an authenticated JSON request to a Google API.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary; empty for bodiless responses.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        response = await self._raw_request(
            method,
            url,
            params=params,
            json_data=json_data,
            headers={"Accept": "application/json"},
        )
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result
