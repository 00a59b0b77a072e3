"""Unit tests for credential models and merging."""

import time

import pytest
from pydantic import ValidationError

from workspace_server.auth.models import (
    Credential,
    StoredCredential,
    TokenMetadata,
    TokenStatus,
    merge_credentials,
)


def _ms_from_now(seconds: int) -> int:
    return int((time.time() + seconds) * 1000)


@pytest.mark.unit
class TestCredential:
    """Tests for the Credential model."""

    def test_should_keep_unknown_token_fields(self) -> None:
        """Verify provider fields outside the schema survive a round trip."""
        credential = Credential.model_validate({"access_token": "a", "id_token": "jwt"})

        assert credential.to_token_dict() == {"access_token": "a", "id_token": "jwt"}

    def test_should_split_scope_into_list(self) -> None:
        """Verify scopes property splits the space-separated scope string."""
        credential = Credential(scope="scope.a scope.b")
        assert credential.scopes == ["scope.a", "scope.b"]

    def test_should_return_empty_scopes_when_unset(self) -> None:
        """Verify a credential without scope has no scopes."""
        assert Credential().scopes == []

    def test_should_convert_expiry_to_aware_datetime(self) -> None:
        """Verify expires_at converts epoch milliseconds to UTC."""
        credential = Credential(expiry_date=1_700_000_000_000)

        assert credential.expires_at is not None
        assert credential.expires_at.tzinfo is not None
        assert credential.expires_at.timestamp() == 1_700_000_000

    @pytest.mark.parametrize(
        "seconds,expected",
        [(3600, False), (30, True), (-10, True)],
    )
    def test_should_apply_expiry_buffer(self, seconds: int, expected: bool) -> None:
        """Verify tokens expiring within the buffer count as expired."""
        credential = Credential(access_token="a", expiry_date=_ms_from_now(seconds))
        assert credential.is_expired(buffer_seconds=60) is expected

    def test_should_never_be_expired_without_expiry(self) -> None:
        """Verify a credential with no expiry_date is not reported expired."""
        assert Credential(access_token="a").is_expired() is False


@pytest.mark.unit
class TestMergeCredentials:
    """Tests for merge_credentials()."""

    def test_should_preserve_refresh_token_when_update_omits_it(self) -> None:
        """Verify the refresh token is carried forward."""
        previous = Credential(access_token="old", refresh_token="r", expiry_date=1)

        merged = merge_credentials(previous, {"access_token": "new", "expiry_date": 2})

        assert merged.access_token == "new"
        assert merged.expiry_date == 2
        assert merged.refresh_token == "r"

    def test_should_preserve_refresh_token_when_update_sets_none(self) -> None:
        """Verify an explicit None refresh token does not erase the stored one."""
        previous = Credential(access_token="old", refresh_token="r")

        merged = merge_credentials(previous, {"access_token": "new", "refresh_token": None})

        assert merged.refresh_token == "r"

    def test_should_take_rotated_refresh_token(self) -> None:
        """Verify a new refresh token in the update wins."""
        previous = Credential(refresh_token="r1")

        merged = merge_credentials(previous, {"access_token": "a", "refresh_token": "r2"})

        assert merged.refresh_token == "r2"

    def test_should_keep_fields_missing_from_update(self) -> None:
        """Verify scope and other fields survive a partial update."""
        previous = Credential(access_token="old", refresh_token="r", scope="s1 s2")

        merged = merge_credentials(previous, {"access_token": "new"})

        assert merged.scope == "s1 s2"

    def test_should_accept_credential_update(self) -> None:
        """Verify a Credential update only applies the fields it sets."""
        previous = Credential(access_token="old", refresh_token="r", scope="s")

        merged = merge_credentials(previous, Credential(access_token="new"))

        assert merged.access_token == "new"
        assert merged.refresh_token == "r"
        assert merged.scope == "s"

    def test_should_build_from_update_without_previous(self) -> None:
        """Verify merging into nothing yields the update."""
        merged = merge_credentials(None, {"access_token": "a"})

        assert merged.access_token == "a"
        assert merged.refresh_token is None

    def test_should_not_mutate_previous(self) -> None:
        """Verify the previous credential is left untouched."""
        previous = Credential(access_token="old", refresh_token="r")

        merge_credentials(previous, {"access_token": "new"})

        assert previous.access_token == "old"


@pytest.mark.unit
class TestStoredCredential:
    """Tests for the StoredCredential model."""

    def test_should_default_to_version_one(self) -> None:
        """Verify new records are version 1."""
        stored = StoredCredential(
            metadata=TokenMetadata(service_name="workspace-server"),
            credential=Credential(access_token="a"),
        )
        assert stored.version == 1
        assert stored.metadata.provider == "google"
        assert stored.metadata.last_refreshed is None

    def test_should_require_metadata(self) -> None:
        """Verify records without metadata are rejected."""
        with pytest.raises(ValidationError):
            StoredCredential.model_validate({"credential": {"access_token": "a"}})

    def test_token_status_values(self) -> None:
        """Verify TokenStatus serializes to lowercase strings."""
        assert TokenStatus.VALID.value == "valid"
        assert TokenStatus.MISSING.value == "missing"
