"""Unit tests for OAuthClient.

Tests cover bearer requests, the reactive 401 refresh, token emission
and google-auth native refresh.
"""

from collections.abc import Callable
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from workspace_server.auth.client import OAuthClient, from_epoch_ms, to_epoch_ms
from workspace_server.auth.models import Credential
from workspace_server.errors import AuthConfigError, AuthRefreshError


def _client_with_http(
    credential: Credential | None, responses: list[httpx.Response], **kwargs
) -> tuple[OAuthClient, MagicMock]:
    client = OAuthClient(**kwargs)
    if credential is not None:
        client.set_credentials(credential)
    http = MagicMock()
    http.request = AsyncMock(side_effect=responses)
    client._http_client = http
    return client, http


@pytest.mark.unit
class TestEpochConversion:
    """Tests for the expiry conversion helpers."""

    def test_should_round_trip_naive_utc(self) -> None:
        """Verify epoch ms and google-auth's naive UTC expiry convert both ways."""
        expiry = datetime(2030, 1, 2, 3, 4, 5)

        assert from_epoch_ms(to_epoch_ms(expiry)) == expiry


@pytest.mark.unit
class TestOAuthClientCredentials:
    """Tests for credential handling."""

    def test_should_copy_credential_on_set(self, valid_credential: Credential) -> None:
        """Verify the client holds its own copy."""
        client = OAuthClient()
        client.set_credentials(valid_credential)

        assert client.has_credentials
        assert client.credential == valid_credential
        assert client.credential is not valid_credential

    def test_should_build_google_credentials(self, valid_credential: Credential) -> None:
        """Verify google-auth credentials carry the stored tokens."""
        client = OAuthClient(client_id="cid", client_secret="secret")  # pragma: allowlist secret
        client.set_credentials(valid_credential)

        google_credentials = client.to_google_credentials()

        assert google_credentials.token == valid_credential.access_token
        assert google_credentials.refresh_token == valid_credential.refresh_token
        assert google_credentials.client_id == "cid"
        assert google_credentials.expiry == from_epoch_ms(valid_credential.expiry_date)

    def test_should_return_no_google_credentials_when_empty(self) -> None:
        """Verify an unauthenticated client has no google-auth credentials."""
        assert OAuthClient().to_google_credentials() is None


@pytest.mark.unit
class TestOAuthClientRequest:
    """Tests for OAuthClient.request()."""

    @pytest.mark.asyncio
    async def test_should_send_bearer_token(
        self, valid_credential: Credential, make_response: Callable
    ) -> None:
        """Verify the access token is sent as a bearer header."""
        client, http = _client_with_http(valid_credential, [make_response(json_data={"ok": 1})])

        response = await client.request("GET", "https://example.com/x", params={"a": "b"})

        assert response.json() == {"ok": 1}
        kwargs = http.request.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer test_access_token_abc123"
        assert kwargs["params"] == {"a": "b"}
        assert "timeout" not in kwargs

    @pytest.mark.asyncio
    async def test_should_pass_timeout_when_given(
        self, valid_credential: Credential, make_response: Callable
    ) -> None:
        """Verify a per-request timeout is forwarded."""
        client, http = _client_with_http(valid_credential, [make_response(json_data={})])

        await client.request("POST", "https://example.com/upload", content=b"x", timeout=60.0)

        assert http.request.call_args.kwargs["timeout"] == 60.0

    @pytest.mark.asyncio
    async def test_should_raise_config_error_without_credentials(self) -> None:
        """Verify requests fail with AuthConfigError when nothing is stored."""
        client = OAuthClient()

        with pytest.raises(AuthConfigError):
            await client.request("GET", "https://example.com/x")

    @pytest.mark.asyncio
    async def test_should_refresh_and_retry_once_on_401(
        self, valid_credential: Credential, make_response: Callable
    ) -> None:
        """Verify a 401 triggers one refresh and a retry with the new token."""
        refresher = AsyncMock(return_value={"access_token": "new_token", "expiry_date": 123})
        listener = AsyncMock()
        client, http = _client_with_http(
            valid_credential,
            [make_response(status_code=401), make_response(json_data={"ok": True})],
            refresher=refresher,
        )
        client.on_tokens(listener)

        response = await client.request("GET", "https://example.com/x")

        assert response.status_code == 200
        refresher.assert_awaited_once_with("test_refresh_token_xyz789")
        listener.assert_awaited_once_with({"access_token": "new_token", "expiry_date": 123})
        retry_headers = http.request.call_args_list[1].kwargs["headers"]
        assert retry_headers["Authorization"] == "Bearer new_token"

    @pytest.mark.asyncio
    async def test_should_raise_when_retry_still_fails(
        self, valid_credential: Credential, make_response: Callable
    ) -> None:
        """Verify a second 401 is surfaced as an HTTP error."""
        refresher = AsyncMock(return_value={"access_token": "new_token"})
        client, _ = _client_with_http(
            valid_credential,
            [make_response(status_code=401), make_response(status_code=401)],
            refresher=refresher,
        )

        with pytest.raises(httpx.HTTPStatusError):
            await client.request("GET", "https://example.com/x")
        refresher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_should_not_refresh_on_401_without_refresh_token(
        self, make_response: Callable
    ) -> None:
        """Verify a 401 without a refresh token is raised directly."""
        refresher = AsyncMock()
        client, http = _client_with_http(
            Credential(access_token="only_access"),
            [make_response(status_code=401)],
            refresher=refresher,
        )

        with pytest.raises(httpx.HTTPStatusError):
            await client.request("GET", "https://example.com/x")
        refresher.assert_not_awaited()
        assert http.request.await_count == 1

    @pytest.mark.asyncio
    async def test_should_refresh_first_when_no_access_token(
        self, make_response: Callable
    ) -> None:
        """Verify a refresh-token-only credential gets an access token before sending."""
        refresher = AsyncMock(return_value={"access_token": "minted"})
        client, http = _client_with_http(
            Credential(refresh_token="r"),
            [make_response(json_data={})],
            refresher=refresher,
        )

        await client.request("GET", "https://example.com/x")

        assert http.request.call_args.kwargs["headers"]["Authorization"] == "Bearer minted"


@pytest.mark.unit
class TestOAuthClientRefresh:
    """Tests for OAuthClient.refresh_access_token()."""

    @pytest.mark.asyncio
    async def test_should_raise_without_refresh_token(self) -> None:
        """Verify AuthRefreshError when there is no refresh token."""
        client = OAuthClient(refresher=AsyncMock())
        client.set_credentials(Credential(access_token="a"))

        with pytest.raises(AuthRefreshError):
            await client.refresh_access_token()

    @pytest.mark.asyncio
    async def test_should_keep_refresh_token_after_refresh(
        self, valid_credential: Credential
    ) -> None:
        """Verify the client's own credential keeps the refresh token."""
        client = OAuthClient(refresher=AsyncMock(return_value={"access_token": "new"}))
        client.set_credentials(valid_credential)

        await client.refresh_access_token()

        assert client.credential.access_token == "new"
        assert client.credential.refresh_token == valid_credential.refresh_token

    @pytest.mark.asyncio
    async def test_should_reject_malformed_tokens(self, valid_credential: Credential) -> None:
        """Verify an unparseable expiry is an error and nothing is emitted."""
        refresher = AsyncMock(return_value={"access_token": "x", "expiry_date": "tomorrow"})
        client = OAuthClient(refresher=refresher)
        client.set_credentials(valid_credential)
        listener = AsyncMock()
        client.on_tokens(listener)

        with pytest.raises(AuthRefreshError, match="malformed"):
            await client.refresh_access_token()

        assert client.credential == valid_credential
        listener.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_should_use_native_refresh_without_refresher(
        self, valid_credential: Credential
    ) -> None:
        """Verify google-auth refresh results are copied out as token fields."""
        new_expiry = datetime(2030, 1, 1, 12, 0, 0)

        def fake_refresh(self, request):
            self.token = "native_token"
            self.expiry = new_expiry

        client = OAuthClient(client_id="cid", client_secret="secret")  # pragma: allowlist secret
        client.set_credentials(valid_credential)
        listener = AsyncMock()
        client.on_tokens(listener)

        with patch.object(
            Credentials, "refresh", autospec=True, side_effect=fake_refresh
        ):
            tokens = await client.refresh_access_token()

        assert tokens == {"access_token": "native_token", "expiry_date": to_epoch_ms(new_expiry)}
        listener.assert_awaited_once_with(tokens)

    @pytest.mark.asyncio
    async def test_should_map_google_auth_errors(self, valid_credential: Credential) -> None:
        """Verify google-auth failures become AuthRefreshError."""
        client = OAuthClient(client_id="cid", client_secret="secret")  # pragma: allowlist secret
        client.set_credentials(valid_credential)

        with patch.object(Credentials, "refresh", side_effect=RefreshError("invalid_grant")):
            with pytest.raises(AuthRefreshError, match="invalid_grant"):
                await client.refresh_access_token()


@pytest.mark.unit
class TestOAuthClientClose:
    """Tests for OAuthClient.close()."""

    @pytest.mark.asyncio
    async def test_should_close_shared_http_client(self) -> None:
        """Verify close releases the pooled client."""
        client = OAuthClient()
        http = MagicMock()
        http.aclose = AsyncMock()
        client._http_client = http

        await client.close()

        http.aclose.assert_awaited_once()
        assert client._http_client is None
