"""Runtime configuration for workspace-server.

All settings are read from environment variables (or a project ``.env``
file). Names match the variables documented in the README:

    GOOGLE_OAUTH_CLIENT_ID: OAuth client ID for the setup consent flow.
    GOOGLE_OAUTH_CLIENT_SECRET: OAuth client secret. When set, token refresh
        uses google-auth's native flow instead of the hosted refresh endpoint.
    GOOGLE_OAUTH_REDIRECT_URI: Redirect URI (default: http://127.0.0.1:8789/callback)
    WORKSPACE_REFRESH_URL: Hosted refresh endpoint for the managed OAuth app.
    WORKSPACE_CREDENTIALS_DIR: Directory for the file-based credential fallback.
    WORKSPACE_USE_KEYRING: Store credentials in the OS keyring (default: true).
    WORKSPACE_LOG_FILE: Optional log file path.
    WORKSPACE_DEBUG: Enable debug logging.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REFRESH_URL = "https://google-workspace-extension.geminicli.com/refreshToken"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8789/callback"
DEFAULT_CREDENTIALS_DIR = Path.home() / ".workspace-server"


class Settings(BaseSettings):
    """Settings loaded from the environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    google_oauth_client_id: str | None = None
    google_oauth_client_secret: str | None = None
    google_oauth_redirect_uri: str = DEFAULT_REDIRECT_URI

    workspace_refresh_url: str = DEFAULT_REFRESH_URL
    workspace_credentials_dir: Path = DEFAULT_CREDENTIALS_DIR
    workspace_use_keyring: bool = True

    workspace_log_file: Path | None = None
    workspace_debug: bool = False

    @property
    def uses_native_refresh(self) -> bool:
        """True when a local OAuth app is configured and can refresh by itself."""
        return bool(self.google_oauth_client_id and self.google_oauth_client_secret)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
