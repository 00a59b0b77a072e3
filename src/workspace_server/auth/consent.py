"""Browser consent flow for first-time authorization.

Runs google-auth-oauthlib's ``Flow`` against a one-shot local HTTP server
that receives the redirect. The flow is blocking; callers run it in an
executor.
"""

import logging
import secrets
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from workspace_server.errors import AuthConfigError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint

DEFAULT_OAUTH_HOST = "127.0.0.1"
DEFAULT_OAUTH_PORT = 8789
CALLBACK_TIMEOUT_SECONDS = 300

_SUCCESS_PAGE = (
    b"<html><body><h1>Authorization complete</h1>"
    b"<p>You can close this window and return to the terminal.</p></body></html>"
)
_FAILURE_PAGE = (
    b"<html><body><h1>Authorization failed</h1>"
    b"<p>Close this window and run the setup again.</p></body></html>"
)


def build_client_config(client_id: str, client_secret: str, redirect_uri: str) -> dict:
    """Build a web-application client config for ``Flow.from_client_config``."""
    return {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }


class _CallbackServer(HTTPServer):
    """HTTPServer that remembers the result of the single OAuth redirect."""

    def __init__(self, address: tuple[str, int], callback_path: str) -> None:
        super().__init__(address, _CallbackHandler)
        self.callback_path = callback_path
        self.auth_code: str | None = None
        self.error: str | None = None


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def log_message(self, format: str, *args) -> None:
        pass

    def _respond(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-type", "text/html")
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        request = urlparse(self.path)
        if request.path != self.server.callback_path:
            self._respond(404, b"Not Found")
            return

        query = parse_qs(request.query)
        if "error" in query:
            self.server.error = query["error"][0]
            self._respond(400, _FAILURE_PAGE)
        elif "code" in query:
            self.server.auth_code = query["code"][0]
            self._respond(200, _SUCCESS_PAGE)
        else:
            self.server.error = "no authorization code in redirect"
            self._respond(400, _FAILURE_PAGE)


def run_consent_flow(client_config: dict, scopes: list[str], redirect_uri: str) -> Credentials:
    """Open the browser for consent and exchange the returned code.

    Args:
        client_config: Client config from ``build_client_config``.
        scopes: Scopes to request.
        redirect_uri: Redirect URI registered for the OAuth client, served
            locally for the duration of the flow.

    Returns:
        Google OAuth2 credentials including the refresh token.

    Raises:
        AuthConfigError: If the user denies consent or no code arrives.
    """
    flow = Flow.from_client_config(client_config, scopes=scopes, redirect_uri=redirect_uri)

    # offline + consent so Google always returns a refresh token
    auth_url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
        state=secrets.token_urlsafe(32),
    )

    parsed = urlparse(redirect_uri)
    server = _CallbackServer(
        (parsed.hostname or DEFAULT_OAUTH_HOST, parsed.port or DEFAULT_OAUTH_PORT),
        parsed.path or "/callback",
    )
    server.timeout = CALLBACK_TIMEOUT_SECONDS

    logger.info("Opening browser for Google authorization")
    logger.info(f"If the browser doesn't open, visit: {auth_url}")
    webbrowser.open(auth_url)

    try:
        server.handle_request()
    finally:
        server.server_close()

    if server.error:
        raise AuthConfigError(f"OAuth authorization failed: {server.error}")
    if not server.auth_code:
        raise AuthConfigError("No authorization code received from Google")

    flow.fetch_token(code=server.auth_code)
    return flow.credentials
