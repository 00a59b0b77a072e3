"""Build Drive API ``files.list`` query strings."""

MIME_TYPES = {
    "document": "application/vnd.google-apps.document",
    "presentation": "application/vnd.google-apps.presentation",
    "spreadsheet": "application/vnd.google-apps.spreadsheet",
    "folder": "application/vnd.google-apps.folder",
}

TITLE_PREFIX = "title:"

# Queries containing any of these are already Drive query syntax
_QUERY_OPERATORS = ["contains", "=", "!=", "<", ">", " in ", " has ", " not "]


def escape_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def build_drive_search_query(mime_type: str, query: str) -> str:
    """Build a query finding files of one type by title or full text.

    ``title:Budget`` (optionally quoted) searches file names; anything else
    searches full text. Trashed files are excluded.

    Args:
        mime_type: Drive MIME type to restrict to.
        query: User search text.

    Returns:
        Drive query string.
    """
    search = query.strip()
    if search.startswith(TITLE_PREFIX):
        term = _strip_quotes(search[len(TITLE_PREFIX) :].strip())
        condition = f"name contains '{escape_query_value(term)}'"
    else:
        condition = f"fullText contains '{escape_query_value(search)}'"

    return f"mimeType='{mime_type}' and {condition} and trashed = false"


def normalize_drive_query(query: str) -> str:
    """Normalize a free-form search for the Drive API.

    Queries that already use Drive operators pass through; bare terms are
    wrapped in ``fullText contains``.

    Args:
        query: Raw search query from user

    Returns:
        Properly formatted Drive API query
    """
    query_lower = query.lower()
    if any(op in query_lower for op in _QUERY_OPERATORS):
        return query

    return f"fullText contains '{escape_query_value(query)}'"


def build_folder_query(folder_name: str) -> str:
    """Build a query matching non-trashed folders named exactly ``folder_name``."""
    return (
        f"mimeType='{MIME_TYPES['folder']}' and name = '{escape_query_value(folder_name)}' "
        "and trashed = false"
    )
