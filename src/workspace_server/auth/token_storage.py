"""Persistent storage for the OAuth credential.

The credential lives in the platform secret store (macOS Keychain, Windows
Credential Locker, Secret Service on Linux) via ``keyring``. When no usable
keyring backend exists, or keyring use is disabled, it falls back to a JSON
file readable only by the owner:

    ~/.workspace-server/tokens.json

Only one credential set is kept; the file and keyring entry are keyed by
``SERVICE_NAME`` so the on-disk format stays compatible with multi-service
token files.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from pydantic import ValidationError

from workspace_server.auth.models import (
    Credential,
    StoredCredential,
    TokenMetadata,
    TokenStatus,
)
from workspace_server.config import get_settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "workspace-server"
KEYRING_SERVICE = "workspace-server-oauth"
KEYRING_ACCOUNT = "main-account"
TOKEN_FILE_NAME = "tokens.json"


def get_token_path() -> Path:
    """Get the file fallback token path.

    Returns:
        Path to tokens.json inside the configured credentials directory.
    """
    return get_settings().workspace_credentials_dir / TOKEN_FILE_NAME


class TokenStorage:
    """Credential store backed by keyring with a JSON file fallback.

    Attributes:
        token_path: Path to the fallback tokens.json file.
        use_keyring: Whether the OS keyring is tried first.

    Example:
        ```python
        storage = TokenStorage()
        storage.save_credentials(Credential(access_token="abc", refresh_token="xyz"))

        credential = storage.load_credentials()
        if credential and credential.is_expired():
            ...
        ```
    """

    def __init__(self, token_path: Path | None = None, use_keyring: bool | None = None) -> None:
        """Initialize token storage.

        Args:
            token_path: Custom path for tokens.json. Defaults to the
                configured credentials directory.
            use_keyring: Try the OS keyring before the file. Defaults to the
                ``WORKSPACE_USE_KEYRING`` setting.
        """
        self.token_path = token_path or get_token_path()
        if use_keyring is None:
            use_keyring = get_settings().workspace_use_keyring
        self.use_keyring = use_keyring
        self._ensure_credentials_dir()

    def _ensure_credentials_dir(self) -> None:
        """Create credentials directory with secure permissions if needed."""
        creds_dir = self.token_path.parent
        if not creds_dir.exists():
            creds_dir.mkdir(parents=True, mode=0o700)
        else:
            # Ensure directory has correct permissions
            creds_dir.chmod(0o700)

    # -------------------------------------------------------------------------
    # Raw record access
    # -------------------------------------------------------------------------

    def _read_keyring(self) -> dict | None:
        """Read the raw record from the keyring, or None if unavailable."""
        if not self.use_keyring:
            return None
        try:
            payload = keyring.get_password(KEYRING_SERVICE, KEYRING_ACCOUNT)
        except KeyringError as e:
            logger.warning(f"Keyring unavailable, using file storage: {e}")
            self.use_keyring = False
            return None
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Keyring entry is not valid JSON")
            return {}

    def _write_keyring(self, record: dict) -> bool:
        """Write the raw record to the keyring.

        Returns:
            True if the keyring accepted the record.
        """
        if not self.use_keyring:
            return False
        try:
            keyring.set_password(KEYRING_SERVICE, KEYRING_ACCOUNT, json.dumps(record))
        except KeyringError as e:
            logger.warning(f"Keyring write failed, using file storage: {e}")
            self.use_keyring = False
            return False
        return True

    def _load_tokens(self) -> dict[str, dict]:
        """Load all records from the JSON file.

        Returns:
            Dictionary mapping service names to stored records.
        """
        if not self.token_path.exists():
            return {}

        try:
            with open(self.token_path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            return {}

    def _save_tokens(self, tokens: dict[str, dict]) -> None:
        """Save all records to the JSON file.

        Args:
            tokens: Dictionary mapping service names to stored records.
        """
        self._ensure_credentials_dir()

        with open(self.token_path, "w") as f:
            json.dump(tokens, f, indent=2, default=str)

        # Owner read/write only (600)
        self.token_path.chmod(0o600)

    def _read_record(self) -> dict | None:
        """Read the raw stored record from keyring or file."""
        record = self._read_keyring()
        if record is not None:
            return record
        return self._load_tokens().get(SERVICE_NAME)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def retrieve(self) -> StoredCredential | None:
        """Retrieve the stored credential with its metadata.

        Returns:
            StoredCredential if found and valid, None otherwise.
        """
        record = self._read_record()
        if not record:
            return None

        try:
            return StoredCredential.model_validate(record)
        except ValidationError:
            # Record is corrupted or from an incompatible version
            return None

    def load_credentials(self) -> Credential | None:
        """Load the stored credential.

        Returns:
            The credential, or None if nothing usable is stored.
        """
        stored = self.retrieve()
        return stored.credential if stored else None

    def save_credentials(self, credential: Credential, refreshed: bool = False) -> None:
        """Persist a credential, keeping the existing metadata.

        Args:
            credential: Credential to store.
            refreshed: Record the save as a token refresh in the metadata.

        Raises:
            OSError: If neither the keyring nor the token file can be written.
        """
        existing = self.retrieve()
        metadata = existing.metadata if existing else TokenMetadata(service_name=SERVICE_NAME)
        if refreshed:
            metadata.last_refreshed = datetime.now(timezone.utc)

        stored = StoredCredential(version=1, metadata=metadata, credential=credential)
        record = json.loads(stored.model_dump_json(exclude_none=True))

        if self._write_keyring(record):
            logger.debug("Credential saved to keyring")
            return

        tokens = self._load_tokens()
        tokens[SERVICE_NAME] = record
        self._save_tokens(tokens)
        logger.debug(f"Credential saved to {self.token_path}")

    def clear_credentials(self) -> bool:
        """Delete the stored credential from keyring and file.

        Returns:
            True if anything was deleted.
        """
        deleted = False

        if self.use_keyring:
            try:
                keyring.delete_password(KEYRING_SERVICE, KEYRING_ACCOUNT)
                deleted = True
            except PasswordDeleteError:
                pass
            except KeyringError as e:
                logger.warning(f"Keyring delete failed: {e}")

        tokens = self._load_tokens()
        if SERVICE_NAME in tokens:
            del tokens[SERVICE_NAME]
            if tokens:
                self._save_tokens(tokens)
            else:
                self.token_path.unlink()
            deleted = True

        return deleted

    def get_status(self) -> TokenStatus:
        """Get the status of the stored credential.

        Returns:
            TokenStatus indicating the credential's current state.
        """
        stored = self.retrieve()

        if stored is None:
            if self._read_record() is not None:
                # Something is stored but couldn't be parsed
                return TokenStatus.INVALID
            return TokenStatus.MISSING

        if stored.credential.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID
