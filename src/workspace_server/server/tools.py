"""MCP tool definitions for the Workspace server."""

from typing import Any

from mcp.types import Tool


def _string(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


def _string_list(description: str) -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _recipients(description: str) -> dict[str, Any]:
    return {
        "oneOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}],
        "description": description,
    }


def _schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required or []}


DOCUMENT_ID = _string("The ID or URL of the document")
PRESENTATION_ID = _string("The ID or URL of the presentation")
TAB_ID = _string("The ID of the tab (optional; defaults to the first tab)")
PAGE_TOKEN = _string("Token of the page of results to retrieve (optional)")
PAGE_SIZE = {"type": "integer", "description": "Maximum number of results (default 10)"}

DOCS_TOOLS = [
    Tool(
        name="docs_create",
        description=(
            "Create a new Google Doc, optionally from markdown content and inside a folder"
        ),
        inputSchema=_schema(
            {
                "title": _string("The title of the new document"),
                "folderName": _string("Name of the Drive folder to create it in (optional)"),
                "markdown": _string("Markdown content for the document (optional)"),
            },
            ["title"],
        ),
    ),
    Tool(
        name="docs_insert_text",
        description="Insert markdown-formatted text at the beginning of a Google Doc",
        inputSchema=_schema(
            {
                "documentId": DOCUMENT_ID,
                "text": _string("Markdown text to insert"),
                "tabId": TAB_ID,
            },
            ["documentId", "text"],
        ),
    ),
    Tool(
        name="docs_append_text",
        description="Append markdown-formatted text to the end of a Google Doc",
        inputSchema=_schema(
            {
                "documentId": DOCUMENT_ID,
                "text": _string("Markdown text to append"),
                "tabId": TAB_ID,
            },
            ["documentId", "text"],
        ),
    ),
    Tool(
        name="docs_find",
        description=(
            "Find Google Docs by full text, or by title with a 'title:' prefix "
            "(e.g. 'title:Meeting Notes')"
        ),
        inputSchema=_schema(
            {"query": _string("Search text"), "pageToken": PAGE_TOKEN, "pageSize": PAGE_SIZE},
            ["query"],
        ),
    ),
    Tool(
        name="docs_move",
        description="Move a Google Doc into a Drive folder",
        inputSchema=_schema(
            {"documentId": DOCUMENT_ID, "folderName": _string("Name of the destination folder")},
            ["documentId", "folderName"],
        ),
    ),
    Tool(
        name="docs_get_text",
        description="Get the plain text of a Google Doc, or of one of its tabs",
        inputSchema=_schema({"documentId": DOCUMENT_ID, "tabId": TAB_ID}, ["documentId"]),
    ),
    Tool(
        name="docs_replace_text",
        description=(
            "Replace all occurrences of a text in a Google Doc with markdown-formatted text"
        ),
        inputSchema=_schema(
            {
                "documentId": DOCUMENT_ID,
                "findText": _string("Exact text to find"),
                "replaceText": _string("Markdown replacement text"),
                "tabId": _string("Limit the replacement to this tab (optional)"),
            },
            ["documentId", "findText", "replaceText"],
        ),
    ),
]

SLIDES_TOOLS = [
    Tool(
        name="slides_get_text",
        description="Extract the text of every slide of a presentation",
        inputSchema=_schema({"presentationId": PRESENTATION_ID}, ["presentationId"]),
    ),
    Tool(
        name="slides_create",
        description="Create a new, empty Google Slides presentation",
        inputSchema=_schema({"title": _string("The title of the presentation")}, ["title"]),
    ),
    Tool(
        name="slides_create_from_template",
        description="Create a presentation by copying a template presentation",
        inputSchema=_schema(
            {
                "templateId": _string("The ID or URL of the template presentation"),
                "title": _string("The title of the new presentation"),
            },
            ["templateId", "title"],
        ),
    ),
    Tool(
        name="slides_replace_all_text",
        description="Replace placeholder text across all slides (exact, case-sensitive)",
        inputSchema=_schema(
            {
                "presentationId": PRESENTATION_ID,
                "replacements": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                    "description": "Map of text to find to its replacement",
                },
            },
            ["presentationId", "replacements"],
        ),
    ),
    Tool(
        name="slides_find",
        description="Find presentations by full text, or by title with a 'title:' prefix",
        inputSchema=_schema(
            {"query": _string("Search text"), "pageToken": PAGE_TOKEN, "pageSize": PAGE_SIZE},
            ["query"],
        ),
    ),
    Tool(
        name="slides_get_metadata",
        description="Get the structure of a presentation (slides, page size, masters)",
        inputSchema=_schema({"presentationId": PRESENTATION_ID}, ["presentationId"]),
    ),
    Tool(
        name="slides_get_images",
        description="Download every image of a presentation into a local directory",
        inputSchema=_schema(
            {
                "presentationId": PRESENTATION_ID,
                "localPath": _string("Absolute path of the directory to save images in"),
            },
            ["presentationId", "localPath"],
        ),
    ),
    Tool(
        name="slides_get_slide_thumbnail",
        description="Download a thumbnail image of one slide",
        inputSchema=_schema(
            {
                "presentationId": PRESENTATION_ID,
                "slideObjectId": _string("The object ID of the slide"),
                "localPath": _string("Absolute path of the file to save the thumbnail to"),
            },
            ["presentationId", "slideObjectId", "localPath"],
        ),
    ),
]

_EMAIL_PROPERTIES = {
    "to": _recipients("Recipient address or list of addresses"),
    "subject": _string("Email subject"),
    "body": _string("Email body"),
    "cc": _recipients("CC recipients (optional)"),
    "bcc": _recipients("BCC recipients (optional)"),
    "isHtml": {"type": "boolean", "description": "Send the body as HTML (default false)"},
}

GMAIL_TOOLS = [
    Tool(
        name="gmail_search",
        description="Search Gmail messages using Gmail query syntax",
        inputSchema=_schema(
            {
                "query": _string("Gmail search query, e.g. 'from:alice is:unread' (optional)"),
                "maxResults": {
                    "type": "integer",
                    "description": "Maximum number of messages (default 100)",
                },
                "pageToken": PAGE_TOKEN,
                "labelIds": _string_list("Only return messages with all these labels"),
                "includeSpamTrash": {
                    "type": "boolean",
                    "description": "Include messages from SPAM and TRASH (default false)",
                },
            }
        ),
    ),
    Tool(
        name="gmail_get",
        description="Get a Gmail message with its headers, body and attachment list",
        inputSchema=_schema(
            {
                "messageId": _string("The ID of the message"),
                "format": {
                    "type": "string",
                    "enum": ["minimal", "full", "raw", "metadata"],
                    "description": "Response format (default full)",
                },
            },
            ["messageId"],
        ),
    ),
    Tool(
        name="gmail_download_attachment",
        description="Download a message attachment to a local file",
        inputSchema=_schema(
            {
                "messageId": _string("The ID of the message"),
                "attachmentId": _string("The ID of the attachment"),
                "localPath": _string("Absolute path of the file to save the attachment to"),
            },
            ["messageId", "attachmentId", "localPath"],
        ),
    ),
    Tool(
        name="gmail_modify",
        description="Add or remove labels on a Gmail message",
        inputSchema=_schema(
            {
                "messageId": _string("The ID of the message"),
                "addLabelIds": _string_list("Label IDs to add"),
                "removeLabelIds": _string_list("Label IDs to remove"),
            },
            ["messageId"],
        ),
    ),
    Tool(
        name="gmail_send",
        description="Send an email",
        inputSchema=_schema(_EMAIL_PROPERTIES, ["to", "subject", "body"]),
    ),
    Tool(
        name="gmail_create_draft",
        description="Create a draft email, optionally as a reply in an existing thread",
        inputSchema=_schema(
            {**_EMAIL_PROPERTIES, "threadId": _string("Thread to reply in (optional)")},
            ["to", "subject", "body"],
        ),
    ),
    Tool(
        name="gmail_send_draft",
        description="Send an existing draft",
        inputSchema=_schema({"draftId": _string("The ID of the draft")}, ["draftId"]),
    ),
    Tool(
        name="gmail_list_labels",
        description="List all Gmail labels",
        inputSchema=_schema({}),
    ),
    Tool(
        name="gmail_create_label",
        description="Create a Gmail label",
        inputSchema=_schema(
            {
                "name": _string("Label name"),
                "labelListVisibility": {
                    "type": "string",
                    "enum": ["labelShow", "labelHide", "labelShowIfUnread"],
                    "description": "Visibility in the label list (default labelShow)",
                },
                "messageListVisibility": {
                    "type": "string",
                    "enum": ["show", "hide"],
                    "description": "Visibility in the message list (default show)",
                },
            },
            ["name"],
        ),
    ),
]

PEOPLE_TOOLS = [
    Tool(
        name="people_get_user_profile",
        description="Get a user's profile by person ID or by email address",
        inputSchema=_schema(
            {
                "userId": _string("Person ID, with or without the 'people/' prefix"),
                "email": _string("Email address to look up in the directory"),
            }
        ),
    ),
    Tool(
        name="people_get_me",
        description="Get the profile of the authenticated user",
        inputSchema=_schema({}),
    ),
]

DRIVE_TOOLS = [
    Tool(
        name="drive_find_folder",
        description="Find Drive folders by exact name",
        inputSchema=_schema({"folderName": _string("Folder name")}, ["folderName"]),
    ),
    Tool(
        name="drive_search",
        description=(
            "Search Drive files using Drive query syntax, or plain terms for a full-text search"
        ),
        inputSchema=_schema(
            {"query": _string("Search query"), "pageSize": PAGE_SIZE, "pageToken": PAGE_TOKEN},
            ["query"],
        ),
    ),
]

ALL_TOOLS = DOCS_TOOLS + SLIDES_TOOLS + GMAIL_TOOLS + PEOPLE_TOOLS + DRIVE_TOOLS
