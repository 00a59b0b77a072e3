"""Google Workspace tool server.

Exposes Docs, Slides, Gmail, People and Drive as MCP tools backed by a
single locally stored OAuth2 credential that is refreshed automatically.
"""

from workspace_server.__version__ import __version__

__all__ = ["__version__"]
