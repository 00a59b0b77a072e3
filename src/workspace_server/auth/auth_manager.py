"""Authenticated client lifecycle and token refresh.

``AuthManager`` owns the single ``OAuthClient`` of the process. It loads
the stored credential on first use, refreshes it before it expires and
persists every token change the client reports.

Two refresh strategies exist:

* hosted refresh endpoint (default): the managed OAuth app keeps its
  client secret server-side, so refresh tokens are exchanged by POSTing
  them to ``WORKSPACE_REFRESH_URL``;
* native google-auth refresh, used when ``GOOGLE_OAUTH_CLIENT_ID`` and
  ``GOOGLE_OAUTH_CLIENT_SECRET`` are both configured.

Either way the new token fields reach ``_handle_token_update``, which
merges them into the last known credential (keeping the refresh token when
the update omits it) and saves the result.

Example:
    ```python
    manager = AuthManager()
    client = await manager.get_authenticated_client()
    response = await client.request("GET", "https://docs.googleapis.com/v1/documents/abc")
    ```
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from workspace_server.auth.client import OAuthClient, to_epoch_ms
from workspace_server.auth.consent import build_client_config, run_consent_flow
from workspace_server.auth.models import Credential, TokenStatus, merge_credentials
from workspace_server.auth.token_storage import TokenStorage
from workspace_server.config import Settings, get_settings
from workspace_server.errors import AuthConfigError, AuthRefreshError

logger = logging.getLogger(__name__)

WORKSPACE_SCOPES = [
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/presentations",
    "https://www.googleapis.com/auth/directory.readonly",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]

REFRESH_TIMEOUT_SECONDS = 30.0

# Fields accepted from a refresh endpoint response
_TOKEN_FIELDS = ("access_token", "refresh_token", "expiry_date", "scope", "token_type", "id_token")


class AuthManager:
    """Lazily builds the OAuth client and keeps its credential fresh.

    Attributes:
        scopes: OAuth scopes requested during setup.
        storage: Credential store.
        settings: Runtime settings.
    """

    def __init__(
        self,
        scopes: list[str] | None = None,
        storage: TokenStorage | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the manager without touching storage or the network.

        Args:
            scopes: OAuth scopes. Defaults to ``WORKSPACE_SCOPES``.
            storage: Credential store. Creates the default store if omitted.
            settings: Settings. Uses the process-wide settings if omitted.
        """
        self.scopes = scopes or WORKSPACE_SCOPES
        self.settings = settings or get_settings()
        self.storage = storage or TokenStorage()
        self._client: OAuthClient | None = None
        self._credential: Credential | None = None

    @property
    def credential(self) -> Credential | None:
        """The in-memory credential, if one is loaded."""
        return self._credential

    # -------------------------------------------------------------------------
    # Client lifecycle
    # -------------------------------------------------------------------------

    def _build_client(self) -> OAuthClient:
        """Create the client, load stored credentials and register the listener."""
        refresher = None if self.settings.uses_native_refresh else self._refresh_via_endpoint
        client = OAuthClient(
            client_id=self.settings.google_oauth_client_id,
            client_secret=self.settings.google_oauth_client_secret,
            scopes=self.scopes,
            refresher=refresher,
        )
        client.on_tokens(self._handle_token_update)

        credential = self.storage.load_credentials()
        if credential is None:
            logger.info("No stored credentials; run 'workspace setup' to authenticate")
        else:
            client.set_credentials(credential)
            self._credential = credential
            logger.debug("Loaded stored credentials")

        return client

    def _get_client(self) -> OAuthClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def get_authenticated_client(self) -> OAuthClient:
        """Return the cached client, refreshing an expiring credential first.

        Returns:
            The process-wide OAuthClient. It is unauthenticated when nothing
            is stored; its first request then raises AuthConfigError.

        Raises:
            AuthRefreshError: If the credential is expired and cannot be refreshed.
        """
        client = self._get_client()

        if self._credential is not None and self._credential.is_expired():
            logger.info("Access token expired or about to expire, refreshing")
            await self.refresh_token()

        return client

    async def close(self) -> None:
        """Close the client's HTTP connections."""
        if self._client is not None:
            await self._client.close()

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    def _read_current(self) -> Credential | None:
        """Read the latest known credential, store first."""
        return self.storage.load_credentials() or self._credential

    async def refresh_token(self) -> Credential:
        """Refresh the access token unconditionally.

        Returns:
            The stored credential merged with the new tokens. When a newer
            credential was already stored, the update is not persisted but
            the returned credential still carries the new access token.

        Raises:
            AuthRefreshError: If no refresh token is known or the refresh fails.
        """
        current = self._read_current()
        if current is None or not current.refresh_token:
            raise AuthRefreshError(
                "No refresh token available. Run 'workspace setup' to re-authenticate."
            )

        client = self._get_client()
        client.set_credentials(current)

        tokens = await client.refresh_access_token()
        logger.info("Access token refreshed")

        return merge_credentials(current, tokens)

    async def _refresh_via_endpoint(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token through the hosted refresh endpoint.

        Args:
            refresh_token: The refresh token to exchange.

        Returns:
            Token fields from the endpoint response.

        Raises:
            AuthRefreshError: On network failure, non-2xx status or a response
                without an access token.
        """
        url = self.settings.workspace_refresh_url
        logger.debug(f"Refreshing token via {url}")

        try:
            async with httpx.AsyncClient(timeout=REFRESH_TIMEOUT_SECONDS) as http:
                response = await http.post(url, json={"refresh_token": refresh_token})
        except httpx.HTTPError as e:
            raise AuthRefreshError(f"Token refresh request failed: {e}") from e

        if not response.is_success:
            raise AuthRefreshError(
                f"Token refresh failed with status {response.status_code}: {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthRefreshError("Token refresh endpoint returned invalid JSON") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthRefreshError("Token refresh response did not include an access_token")

        tokens = {field: data[field] for field in _TOKEN_FIELDS if data.get(field) is not None}
        try:
            update = Credential.model_validate(tokens)
        except ValidationError as e:
            raise AuthRefreshError(f"Token refresh response was malformed: {e}") from e

        return update.model_dump(exclude_none=True)

    async def _handle_token_update(self, tokens: dict[str, Any]) -> None:
        """Merge a token update into the known credential and persist it.

        Updates older than the known credential are ignored.

        Args:
            tokens: Token fields reported by the client.
        """
        previous = self._read_current()

        new_expiry = tokens.get("expiry_date")
        if (
            previous is not None
            and previous.expiry_date is not None
            and new_expiry is not None
            and new_expiry < previous.expiry_date
        ):
            logger.debug("Ignoring token update older than the stored credential")
            return

        merged = merge_credentials(previous, tokens)
        self.storage.save_credentials(merged, refreshed=True)
        self._credential = merged
        if self._client is not None:
            self._client.set_credentials(merged)
        logger.debug("Persisted refreshed credentials")

    # -------------------------------------------------------------------------
    # Setup and status
    # -------------------------------------------------------------------------

    async def authenticate(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> Credential:
        """Run the browser consent flow and store the resulting credential.

        Args:
            client_id: OAuth client ID. Defaults to ``GOOGLE_OAUTH_CLIENT_ID``.
            client_secret: OAuth client secret. Defaults to
                ``GOOGLE_OAUTH_CLIENT_SECRET``.

        Returns:
            The stored credential.

        Raises:
            AuthConfigError: If client ID/secret are missing or consent fails.
        """
        client_id = client_id or self.settings.google_oauth_client_id
        client_secret = client_secret or self.settings.google_oauth_client_secret
        if not client_id or not client_secret:
            raise AuthConfigError(
                "Client ID and secret required. Pass them as options or set "
                "GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET."
            )

        redirect_uri = self.settings.google_oauth_redirect_uri
        client_config = build_client_config(client_id, client_secret, redirect_uri)

        # Consent flow blocks on the local callback server
        loop = asyncio.get_running_loop()
        google_credentials = await loop.run_in_executor(
            None, run_consent_flow, client_config, self.scopes, redirect_uri
        )

        snapshot: dict[str, Any] = {
            "access_token": google_credentials.token,
            "refresh_token": google_credentials.refresh_token,
            "scope": " ".join(google_credentials.scopes or self.scopes),
            "token_type": "Bearer",
        }
        if google_credentials.expiry:
            snapshot["expiry_date"] = to_epoch_ms(google_credentials.expiry)

        credential = Credential.model_validate(snapshot)
        self.storage.save_credentials(credential)
        self._credential = credential
        if self._client is not None:
            self._client.set_credentials(credential)
        return credential

    def get_status(self) -> tuple[TokenStatus, Credential | None]:
        """Get the status of the stored credential.

        Returns:
            Tuple of (TokenStatus, Credential or None).
        """
        status = self.storage.get_status()
        credential = self.storage.load_credentials() if status != TokenStatus.MISSING else None
        return (status, credential)
