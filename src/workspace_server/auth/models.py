"""Data models for OAuth credentials.

The credential record mirrors the token payload Google's OAuth endpoints
return (``access_token``, ``refresh_token``, ``expiry_date`` in epoch
milliseconds, ``scope``), so refresh responses and token-update events can
be merged into it field by field.
"""

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Seconds before the real expiry at which a token is treated as expired
DEFAULT_EXPIRY_BUFFER_SECONDS = 60


class TokenStatus(str, Enum):
    """State of the stored credential."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class Credential(BaseModel):
    """A single OAuth2 credential record.

    Unknown token fields (``id_token`` and the like) are kept so nothing the
    provider returns is lost when the record is persisted.

    Attributes:
        access_token: Bearer token sent with API requests.
        refresh_token: Long-lived token used to mint new access tokens.
        expiry_date: Access token expiry as epoch milliseconds.
        scope: Space-separated granted scopes.
        token_type: Token type, normally "Bearer".
    """

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    refresh_token: str | None = None
    expiry_date: int | None = None
    scope: str | None = None
    token_type: str | None = None

    @property
    def expires_at(self) -> datetime | None:
        """Expiry as a timezone-aware datetime, if known."""
        if self.expiry_date is None:
            return None
        return datetime.fromtimestamp(self.expiry_date / 1000, tz=timezone.utc)

    @property
    def scopes(self) -> list[str]:
        """Granted scopes as a list."""
        return self.scope.split() if self.scope else []

    def is_expired(self, buffer_seconds: int = DEFAULT_EXPIRY_BUFFER_SECONDS) -> bool:
        """Check whether the access token is expired or about to expire.

        A credential without an expiry is never reported as expired; there is
        nothing to prove it stale.

        Args:
            buffer_seconds: Safety margin before the real expiry.

        Returns:
            True if the token expires within ``buffer_seconds``.
        """
        if self.expiry_date is None:
            return False
        now_ms = int(time.time() * 1000)
        return self.expiry_date <= now_ms + buffer_seconds * 1000

    def to_token_dict(self) -> dict[str, Any]:
        """Return the populated token fields as a plain dict."""
        return self.model_dump(exclude_none=True)


class TokenMetadata(BaseModel):
    """Bookkeeping stored next to the credential."""

    service_name: str = Field(..., description="Service the credential belongs to")
    provider: str = Field(default="google", description="OAuth provider")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_refreshed: datetime | None = None


class StoredCredential(BaseModel):
    """Versioned on-disk representation of the credential."""

    version: int = 1
    metadata: TokenMetadata
    credential: Credential


def merge_credentials(
    previous: Credential | None,
    update: Credential | Mapping[str, Any],
) -> Credential:
    """Merge a token update into the previously known credential.

    Fields present in ``update`` win. A ``refresh_token`` missing from the
    update (absent or None) is carried forward from ``previous``: Google only
    returns a refresh token on first consent, and dropping it would make the
    next refresh impossible.

    Every refresh path (token-update events, proactive refresh, manual
    refresh) goes through this function.

    Args:
        previous: Last known credential, or None.
        update: New token fields from a refresh response or event.

    Returns:
        The merged credential.
    """
    base = previous.model_dump(exclude_none=True) if previous is not None else {}
    if isinstance(update, Credential):
        changes = update.model_dump(exclude_unset=True)
    else:
        changes = dict(update)

    merged = {**base, **changes}
    if changes.get("refresh_token") is None and base.get("refresh_token"):
        merged["refresh_token"] = base["refresh_token"]

    return Credential.model_validate(merged)
