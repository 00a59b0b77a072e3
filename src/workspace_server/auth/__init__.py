"""OAuth authentication for workspace-server.

Quick Start:
    ```python
    from workspace_server.auth import AuthManager

    manager = AuthManager()

    # One-time browser consent
    await manager.authenticate(client_id="...", client_secret="...")  # pragma: allowlist secret

    # Afterwards, in the server
    client = await manager.get_authenticated_client()
    ```
"""

from workspace_server.auth.auth_manager import WORKSPACE_SCOPES, AuthManager
from workspace_server.auth.client import OAuthClient
from workspace_server.auth.models import (
    Credential,
    StoredCredential,
    TokenMetadata,
    TokenStatus,
    merge_credentials,
)
from workspace_server.auth.token_storage import TokenStorage

__all__ = [
    "AuthManager",
    "OAuthClient",
    "TokenStorage",
    "Credential",
    "StoredCredential",
    "TokenMetadata",
    "TokenStatus",
    "merge_credentials",
    "WORKSPACE_SCOPES",
]
