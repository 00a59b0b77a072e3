"""Version information for workspace-server."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DIST_NAME = "workspace-server"


def _get_version() -> str:
    """Read the installed distribution's version, else the source tree's VERSION file."""
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        pass

    version_file = Path(__file__).resolve().parents[2] / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()
    return "0.0.0+unknown"


__version__ = _get_version()
