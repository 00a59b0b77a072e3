"""Authenticated HTTP client for Google APIs.

``OAuthClient`` is the handle the auth manager hands out. It holds the
current access token, sends bearer-authenticated requests over a shared
``httpx.AsyncClient`` and, when Google rejects a token with HTTP 401,
refreshes it and retries once.

Every token update the client produces is reported to the registered
token listeners as a plain dict (a subset of ``access_token``,
``refresh_token``, ``expiry_date``, ``scope``); the client never persists
anything itself.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from pydantic import ValidationError

from workspace_server.auth.models import Credential
from workspace_server.errors import AuthConfigError, AuthRefreshError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint

TokenListener = Callable[[dict[str, Any]], Awaitable[None]]
TokenRefresher = Callable[[str], Awaitable[dict[str, Any]]]


def to_epoch_ms(expiry: datetime) -> int:
    """Convert a google-auth expiry (naive UTC) to epoch milliseconds."""
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return int(expiry.timestamp() * 1000)


def from_epoch_ms(expiry_date: int) -> datetime:
    """Convert epoch milliseconds to the naive UTC datetime google-auth expects."""
    return datetime.fromtimestamp(expiry_date / 1000, tz=timezone.utc).replace(tzinfo=None)


class OAuthClient:
    """Bearer-token HTTP client with reactive token refresh.

    Attributes:
        client_id: OAuth client ID used by the native refresh flow.
        scopes: Scopes the credential was granted for.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        scopes: list[str] | None = None,
        refresher: TokenRefresher | None = None,
        token_uri: str = GOOGLE_TOKEN_URI,
    ) -> None:
        """Initialize the client without credentials.

        Args:
            client_id: OAuth client ID for native refresh.
            client_secret: OAuth client secret for native refresh.
            scopes: Granted scopes.
            refresher: Coroutine taking a refresh token and returning new
                token fields. Replaces google-auth's native refresh flow.
            token_uri: Token endpoint for native refresh.
        """
        self.client_id = client_id
        self._client_secret = client_secret
        self.scopes = scopes or []
        self._refresher = refresher
        self._token_uri = token_uri
        self._credential: Credential | None = None
        self._listeners: list[TokenListener] = []
        self._http_client: httpx.AsyncClient | None = None

    # -------------------------------------------------------------------------
    # Credential state
    # -------------------------------------------------------------------------

    @property
    def credential(self) -> Credential | None:
        """Copy of the credential the client currently sends."""
        return self._credential.model_copy() if self._credential else None

    @property
    def has_credentials(self) -> bool:
        return self._credential is not None

    def set_credentials(self, credential: Credential) -> None:
        """Replace the client's credential."""
        self._credential = credential.model_copy()

    def on_tokens(self, listener: TokenListener) -> None:
        """Register a coroutine called with every token update."""
        self._listeners.append(listener)

    async def _emit_tokens(self, tokens: dict[str, Any]) -> None:
        for listener in self._listeners:
            await listener(dict(tokens))

    def to_google_credentials(self) -> Credentials | None:
        """Build google-auth credentials from the current credential.

        Returns:
            A fresh ``Credentials`` object, or None when unauthenticated.
        """
        if self._credential is None:
            return None
        credential = self._credential
        return Credentials(  # nosec B106 - token_uri is public Google OAuth endpoint
            token=credential.access_token,
            refresh_token=credential.refresh_token,
            token_uri=self._token_uri,
            client_id=self.client_id,
            client_secret=self._client_secret,
            scopes=credential.scopes or self.scopes or None,
            expiry=from_epoch_ms(credential.expiry_date) if credential.expiry_date else None,
        )

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh_access_token(self) -> dict[str, Any]:
        """Obtain a new access token and notify token listeners.

        Returns:
            The token fields returned by the refresh.

        Raises:
            AuthRefreshError: If no refresh token is set or the refresh fails.
        """
        if self._credential is None or not self._credential.refresh_token:
            raise AuthRefreshError(
                "No refresh token is set. Run 'workspace setup' to re-authenticate."
            )

        if self._refresher is not None:
            tokens = await self._refresher(self._credential.refresh_token)
        else:
            tokens = await self._native_refresh()

        try:
            updated = Credential.model_validate({**self._credential.model_dump(), **tokens})
        except ValidationError as e:
            raise AuthRefreshError(f"Token refresh returned malformed tokens: {e}") from e

        # Keep sending the new token even if no listener is registered
        self._credential = updated
        await self._emit_tokens(tokens)
        return tokens

    async def _native_refresh(self) -> dict[str, Any]:
        """Refresh through google-auth's own token exchange.

        The refresh runs on a throwaway ``Credentials`` object; the result is
        copied out immediately so no shared state is mutated in place.
        """
        google_credentials = self.to_google_credentials()
        assert google_credentials is not None  # guarded by refresh_access_token
        previous_refresh_token = google_credentials.refresh_token

        loop = asyncio.get_running_loop()
        try:
            # google-auth refresh is blocking
            await loop.run_in_executor(None, google_credentials.refresh, Request())
        except GoogleAuthError as e:
            raise AuthRefreshError(f"Token refresh failed: {e}") from e

        tokens: dict[str, Any] = {"access_token": google_credentials.token}
        if google_credentials.expiry:
            tokens["expiry_date"] = to_epoch_ms(google_credentials.expiry)
        if (
            google_credentials.refresh_token
            and google_credentials.refresh_token != previous_refresh_token
        ):
            tokens["refresh_token"] = google_credentials.refresh_token
        return tokens

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def get_access_token(self) -> str:
        """Get the access token, refreshing first if none is held.

        Raises:
            AuthConfigError: If the client has no credentials at all.
        """
        if self._credential is None:
            raise AuthConfigError(
                "No OAuth credentials found. Run 'workspace setup' to authenticate."
            )
        if not self._credential.access_token:
            await self.refresh_access_token()
        assert self._credential.access_token is not None
        return self._credential.access_token

    async def _send(self, method: str, url: str, headers: dict[str, str] | None, **kwargs: Any):
        access_token = await self.get_access_token()
        client = await self.get_http_client()

        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)

        return await client.request(method=method, url=url, headers=request_headers, **kwargs)

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Make an authenticated HTTP request.

        A 401 response triggers one token refresh and a retry.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters.
            json: Optional JSON body.
            content: Optional raw body content.
            headers: Optional additional headers.
            timeout: Optional per-request timeout in seconds.

        Returns:
            The successful httpx.Response.

        Raises:
            httpx.HTTPStatusError: If the request fails.
            AuthConfigError: If the client has no credentials.
            AuthRefreshError: If the reactive refresh fails.
        """
        kwargs: dict[str, Any] = {"params": params, "json": json, "content": content}
        if timeout is not None:
            kwargs["timeout"] = timeout

        response = await self._send(method, url, headers, **kwargs)

        if response.status_code == 401 and self._credential and self._credential.refresh_token:
            logger.info("Access token rejected, refreshing and retrying")
            await self.refresh_access_token()
            response = await self._send(method, url, headers, **kwargs)

        response.raise_for_status()
        return response
