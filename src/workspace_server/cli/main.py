"""Command-line interface for workspace-server."""

import asyncio
import importlib
import sys
from pathlib import Path

import click

from workspace_server.__version__ import __version__

REQUIRED_MODULES = [
    ("mcp", "mcp"),
    ("google.auth", "google-auth"),
    ("google_auth_oauthlib", "google-auth-oauthlib"),
    ("markdown_it", "markdown-it-py"),
    ("keyring", "keyring"),
]


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Workspace Server - Connect MCP clients to Google Workspace.

    Tools are provided for:
    - Docs (create, read, insert, append, replace with markdown)
    - Slides (read, create, fill templates, images)
    - Gmail (search, read, send, drafts, labels)
    - People (profiles)
    - Drive (search, folders)
    """
    pass


@main.command()
@click.option("--client-id", envvar="GOOGLE_OAUTH_CLIENT_ID", help="Google OAuth client ID")
@click.option(
    "--client-secret", envvar="GOOGLE_OAUTH_CLIENT_SECRET", help="Google OAuth client secret"
)
def setup(client_id: str | None, client_secret: str | None) -> None:
    """Authorize workspace-server against your Google account.

    Runs the browser consent flow for the Docs, Drive, Gmail, Slides and
    directory scopes, then stores the resulting credential in the OS
    keyring (or ~/.workspace-server/tokens.json when keyring is off).
    The OAuth client comes from --client-id/--client-secret or the
    GOOGLE_OAUTH_CLIENT_ID/GOOGLE_OAUTH_CLIENT_SECRET variables.
    """
    from workspace_server.auth import AuthManager, TokenStatus

    manager = AuthManager()

    status, _ = manager.get_status()
    if status == TokenStatus.VALID:
        click.echo("✓ Already authenticated!")
        if not click.confirm("Replace the stored credential?"):
            return

    if not (client_id and client_secret):
        click.echo("❌ Error: OAuth client credentials required")
        click.echo(
            "Provide --client-id and --client-secret, or export "
            "GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET."
        )
        sys.exit(1)

    click.echo("Browser will open for Google consent; waiting for the redirect...")

    try:
        asyncio.run(manager.authenticate(client_id=client_id, client_secret=client_secret))
    except Exception as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)

    click.echo("✓ Authentication successful! Check it with 'workspace doctor'.")


@main.command()
@click.option("--debug", is_flag=True, envvar="WORKSPACE_DEBUG", help="Enable debug logging")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="WORKSPACE_LOG_FILE",
    help="Also write logs to this file",
)
def serve(debug: bool, log_file: Path | None) -> None:
    """Serve the Workspace tools to an MCP client over stdio.

    Logs go to stderr (and --log-file); stdout belongs to the protocol.
    """
    from workspace_server.auth import AuthManager, TokenStatus
    from workspace_server.server import main as server_main
    from workspace_server.utils.logging_config import configure_logging

    configure_logging(debug=debug, log_file=log_file)

    status, _ = AuthManager().get_status()
    if status == TokenStatus.MISSING:
        click.echo(
            "⚠️  Not authenticated. Tool calls will fail until you run 'workspace setup'.",
            err=True,
        )
    elif status == TokenStatus.INVALID:
        click.echo("❌ Stored credential corrupted. Run 'workspace setup'.", err=True)
        sys.exit(1)

    try:
        click.echo("Starting Workspace MCP server...", err=True)
        server_main()
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
def refresh() -> None:
    """Refresh the stored access token now."""
    from workspace_server.auth import AuthManager

    manager = AuthManager()

    async def _refresh():
        try:
            return await manager.refresh_token()
        finally:
            await manager.close()

    try:
        credential = asyncio.run(_refresh())
    except Exception as e:
        click.echo(f"❌ Refresh failed: {e}")
        sys.exit(1)

    click.echo("✓ Token refreshed")
    if credential.expires_at:
        click.echo(f"  Token expires: {credential.expires_at:%Y-%m-%d %H:%M:%S UTC}")


@main.command()
def logout() -> None:
    """Remove the stored credential."""
    from workspace_server.auth import TokenStorage

    if TokenStorage().clear_credentials():
        click.echo("✓ Stored credential removed")
    else:
        click.echo("No stored credential found.")


@main.command()
def doctor() -> None:
    """Report dependencies, refresh configuration and credential status.

    Exits with status 1 when a dependency is missing or no usable
    credential is stored.
    """
    from workspace_server.auth import AuthManager, TokenStatus
    from workspace_server.config import get_settings

    click.echo("Workspace Server Status:")
    click.echo("")

    click.echo("Dependencies:")
    for module_name, dist_name in REQUIRED_MODULES:
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            click.echo(f"  ❌ {dist_name} missing: {e}")
            sys.exit(1)
        click.echo(f"  ✓ {dist_name}")
    click.echo("")

    settings = get_settings()
    refresh_mode = (
        "local OAuth client" if settings.uses_native_refresh else settings.workspace_refresh_url
    )
    click.echo("Configuration:")
    click.echo(f"  Refresh: {refresh_mode}")
    click.echo(f"  Keyring: {'enabled' if settings.workspace_use_keyring else 'disabled'}")
    click.echo("")

    manager = AuthManager()
    status, credential = manager.get_status()

    click.echo("Authentication:")
    click.echo(f"  Token file: {manager.storage.token_path}")

    if status in (TokenStatus.MISSING, TokenStatus.INVALID):
        problem = "Not authenticated" if status == TokenStatus.MISSING else "Credential unreadable"
        click.echo(f"  ❌ {problem}")
        click.echo("Run 'workspace setup' to authenticate.")
        sys.exit(1)

    if status == TokenStatus.EXPIRED:
        click.echo("  ⚠️  Token expired; it is refreshed on the next tool call")
        click.echo("     (or now, with 'workspace refresh').")
    else:
        click.echo("  ✓ Authenticated")

    if credential:
        if credential.expires_at:
            click.echo(f"  Token expires: {credential.expires_at:%Y-%m-%d %H:%M:%S UTC}")
        click.echo(f"  Scopes: {len(credential.scopes)} configured")

    click.echo("")
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
