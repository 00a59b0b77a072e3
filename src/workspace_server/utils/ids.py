"""Resolve Google file IDs from IDs or docs.google.com URLs."""

import re

from workspace_server.errors import ToolInputError

# /document/d/<id>/edit, /presentation/d/<id>, /spreadsheets/d/<id> ...
_URL_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def extract_doc_id(value: str) -> str | None:
    """Extract the file ID from a Google Docs/Slides/Sheets URL.

    Args:
        value: A URL such as ``https://docs.google.com/document/d/<id>/edit``.

    Returns:
        The ID, or None if ``value`` contains no ``/d/<id>`` segment.
    """
    match = _URL_ID_PATTERN.search(value)
    return match.group(1) if match else None


def resolve_id(value: str) -> str:
    """Return the ID inside a URL, or ``value`` unchanged when it is not a URL."""
    return extract_doc_id(value) or value


def extract_document_id(value: str) -> str:
    """Strictly resolve a document ID.

    Args:
        value: Bare ID or document URL.

    Returns:
        The document ID.

    Raises:
        ToolInputError: If no valid ID can be obtained.
    """
    value = value.strip()
    if value.startswith(("http://", "https://")):
        document_id = extract_doc_id(value)
        if document_id is None:
            raise ToolInputError(f"Could not find a document ID in URL: {value}")
        return document_id

    if not _ID_PATTERN.match(value):
        raise ToolInputError(f"Invalid document ID: {value!r}")
    return value
