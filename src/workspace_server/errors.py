"""Exception types shared across workspace-server."""


class WorkspaceError(Exception):
    """Base class for errors raised by workspace-server."""


class AuthRefreshError(WorkspaceError):
    """Token refresh was impossible or the refresh call failed.

    Raised when no refresh token is known (new user consent is required),
    when the refresh endpoint is unreachable, or when it answers with a
    non-success status.
    """


class AuthConfigError(WorkspaceError):
    """No credentials are available for an operation that needs them."""


class ToolInputError(WorkspaceError):
    """A tool was called with arguments it cannot act on."""
