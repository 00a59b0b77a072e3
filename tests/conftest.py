"""Shared pytest fixtures for workspace-server tests.

This module provides reusable fixtures for credentials, token storage,
the auth manager and mocked Google API responses.
"""

import json
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from workspace_server.auth.models import Credential, TokenMetadata
from workspace_server.config import Settings

HOUR_MS = 60 * 60 * 1000

# =============================================================================
# Credential Fixtures
# =============================================================================


def now_ms() -> int:
    return int(time.time() * 1000)


@pytest.fixture
def valid_credential() -> Credential:
    """Create a valid, non-expired credential."""
    return Credential(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expiry_date=now_ms() + HOUR_MS,
        scope=(
            "https://www.googleapis.com/auth/documents "
            "https://www.googleapis.com/auth/drive "
            "https://www.googleapis.com/auth/gmail.modify"
        ),
        token_type="Bearer",
    )


@pytest.fixture
def expired_credential() -> Credential:
    """Create an expired credential that can still be refreshed."""
    return Credential(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expiry_date=now_ms() - HOUR_MS,
        scope="https://www.googleapis.com/auth/documents",
        token_type="Bearer",
    )


@pytest.fixture
def token_metadata() -> TokenMetadata:
    """Create token metadata for testing."""
    return TokenMetadata(service_name="workspace-server")


# =============================================================================
# Token Storage Fixtures
# =============================================================================


@pytest.fixture
def temp_token_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for token storage tests."""
    token_dir = tmp_path / ".workspace-server"
    token_dir.mkdir(parents=True, mode=0o700)
    return token_dir


@pytest.fixture
def temp_token_path(temp_token_dir: Path) -> Path:
    """Get the path for a temporary tokens.json file."""
    return temp_token_dir / "tokens.json"


@pytest.fixture
def token_storage(temp_token_path: Path):
    """Create a file-only TokenStorage with temporary storage."""
    from workspace_server.auth.token_storage import TokenStorage

    return TokenStorage(token_path=temp_token_path, use_keyring=False)


# =============================================================================
# Auth Manager Fixtures
# =============================================================================


@pytest.fixture
def endpoint_settings(temp_token_dir: Path) -> Settings:
    """Settings for the managed OAuth app (hosted refresh endpoint)."""
    return Settings(
        _env_file=None,
        google_oauth_client_id=None,
        google_oauth_client_secret=None,
        workspace_refresh_url="https://refresh.example.com/refreshToken",
        workspace_credentials_dir=temp_token_dir,
        workspace_use_keyring=False,
    )


@pytest.fixture
def auth_manager(token_storage, endpoint_settings: Settings):
    """Create an AuthManager with temporary storage and endpoint refresh."""
    from workspace_server.auth.auth_manager import AuthManager

    return AuthManager(storage=token_storage, settings=endpoint_settings)


# =============================================================================
# Mocked Google API access
# =============================================================================


def _response(
    status_code: int = 200,
    json_data: Any = None,
    method: str = "GET",
    url: str = "https://example.googleapis.com/",
) -> httpx.Response:
    content = b"" if json_data is None else json.dumps(json_data).encode()
    return httpx.Response(
        status_code,
        content=content,
        headers={"Content-Type": "application/json"},
        request=httpx.Request(method, url),
    )


@pytest.fixture
def make_response() -> Callable[..., httpx.Response]:
    """Factory for real httpx.Response objects with a request attached."""
    return _response


@pytest.fixture
def mock_client() -> MagicMock:
    """An OAuthClient whose ``request`` is an AsyncMock."""
    client = MagicMock()
    client.request = AsyncMock(return_value=_response(json_data={}))
    return client


@pytest.fixture
def mock_auth_manager(mock_client: MagicMock) -> MagicMock:
    """An AuthManager handing out ``mock_client``."""
    manager = MagicMock()
    manager.get_authenticated_client = AsyncMock(return_value=mock_client)
    manager.close = AsyncMock()
    return manager


@pytest.fixture
def respond(mock_client: MagicMock) -> Callable[..., None]:
    """Make ``mock_client.request`` answer with the given JSON payloads in order."""

    def _queue(*payloads: Any) -> None:
        mock_client.request.side_effect = [_response(json_data=p) for p in payloads]

    return _queue


@pytest.fixture
def docs_document() -> Callable[..., dict[str, Any]]:
    """Factory for ``documents.get`` responses with one paragraph per tab.

    Call it with ``(tab_id, title, text)`` triples.
    """

    def _build(*tabs: tuple[str, str, str]) -> dict[str, Any]:
        return {
            "tabs": [
                {
                    "tabProperties": {"tabId": tab_id, "title": title},
                    "documentTab": {
                        "body": {
                            "content": [
                                {"endIndex": 1, "sectionBreak": {}},
                                {
                                    "startIndex": 1,
                                    "endIndex": len(text) + 1,
                                    "paragraph": {
                                        "elements": [{"textRun": {"content": text}}]
                                    },
                                },
                            ]
                        }
                    },
                }
                for tab_id, title, text in tabs
            ]
        }

    return _build
