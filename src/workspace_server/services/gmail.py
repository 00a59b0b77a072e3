"""Gmail operations."""

import base64
import logging
from typing import Any, Literal

import httpx
from pydantic import NameEmail, TypeAdapter, ValidationError

from workspace_server.errors import WorkspaceError
from workspace_server.services.base import (
    GMAIL_API_BASE,
    BaseService,
    ToolResult,
    error_result,
    json_result,
    service_operation,
)
from workspace_server.utils.download import require_absolute_path, write_local_file
from workspace_server.utils.mime import build_mime_message

logger = logging.getLogger(__name__)

GMAIL_SEARCH_MAX_RESULTS = 100
USER_BASE = f"{GMAIL_API_BASE}/users/me"

MessageFormat = Literal["minimal", "full", "raw", "metadata"]
Recipients = str | list[str]

_address_adapter = TypeAdapter(NameEmail)


def _split_recipients(recipients: Recipients) -> list[str]:
    if isinstance(recipients, str):
        recipients = recipients.split(",")
    return [address.strip() for address in recipients if address.strip()]


def _validate_recipients(*groups: Recipients | None) -> None:
    """Validate every address of every recipient group.

    Raises:
        ValidationError: If an address is malformed.
    """
    for group in groups:
        if group is None:
            continue
        for address in _split_recipients(group):
            _address_adapter.validate_python(address)


def _join_recipients(recipients: Recipients | None) -> str | None:
    if recipients is None:
        return None
    return ", ".join(_split_recipients(recipients)) or None


def _decode_base64url(data: str) -> bytes:
    """Decode Gmail's base64url data, which may come without padding."""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _decode_body(data: str) -> str:
    return _decode_base64url(data).decode("utf-8", errors="replace")


def extract_body_and_attachments(
    payload: dict[str, Any],
    result: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Walk a message payload collecting the text body and attachment info.

    ``text/plain`` wins over other ``text/*`` parts for the body.

    Returns:
        ``{"body": str, "attachments": [{filename, mimeType, attachmentId, size}]}``.
    """
    if result is None:
        result = {"body": "", "attachments": []}

    body = payload.get("body", {})
    mime_type = payload.get("mimeType", "")
    filename = payload.get("filename")

    is_attachment = bool(filename and body.get("attachmentId"))
    if body.get("data") and not is_attachment and mime_type.startswith("text/"):
        if not result["body"] or mime_type == "text/plain":
            result["body"] = _decode_body(body["data"])

    if is_attachment:
        result["attachments"].append(
            {
                "filename": filename,
                "mimeType": mime_type,
                "attachmentId": body["attachmentId"],
                "size": body.get("size"),
            }
        )

    for part in payload.get("parts", []):
        extract_body_and_attachments(part, result)

    return result


class GmailService(BaseService):
    """Search, read, label and send Gmail messages."""

    @service_operation("gmail.search")
    async def search(
        self,
        query: str | None = None,
        max_results: int = GMAIL_SEARCH_MAX_RESULTS,
        page_token: str | None = None,
        label_ids: list[str] | None = None,
        include_spam_trash: bool = False,
    ) -> ToolResult:
        """Search messages with Gmail query syntax.

        Returns:
            JSON ``{messages: [{id, threadId}], nextPageToken, resultSizeEstimate}``.
        """
        logger.info(f"Gmail search - query: {query}, maxResults: {max_results}")
        params: dict[str, Any] = {
            "maxResults": max_results,
            "includeSpamTrash": "true" if include_spam_trash else "false",
        }
        if query:
            params["q"] = query
        if page_token:
            params["pageToken"] = page_token
        if label_ids:
            params["labelIds"] = label_ids

        response = await self._make_request("GET", f"{USER_BASE}/messages", params=params)
        messages = response.get("messages", [])
        logger.info(
            f"Found {len(messages)} messages, estimated total: "
            f"{response.get('resultSizeEstimate')}"
        )

        return json_result(
            {
                "messages": [{"id": m.get("id"), "threadId": m.get("threadId")} for m in messages],
                "nextPageToken": response.get("nextPageToken"),
                "resultSizeEstimate": response.get("resultSizeEstimate"),
            },
            indent=2,
        )

    @service_operation("gmail.get")
    async def get(self, message_id: str, format: MessageFormat = "full") -> ToolResult:
        """Get a message.

        ``full`` and ``metadata`` formats are summarized with the main
        headers; ``full`` also decodes the body and lists attachments.
        Other formats return the API response unchanged.
        """
        logger.info(f"Getting message {message_id} with format: {format}")
        message = await self._make_request(
            "GET", f"{USER_BASE}/messages/{message_id}", params={"format": format}
        )

        if format not in ("full", "metadata"):
            return json_result(message, indent=2)

        payload = message.get("payload", {})
        headers = {h.get("name"): h.get("value") for h in payload.get("headers", [])}

        extracted: dict[str, Any] = {"body": "", "attachments": []}
        if format == "full" and payload:
            extracted = extract_body_and_attachments(payload)

        return json_result(
            {
                "id": message.get("id"),
                "threadId": message.get("threadId"),
                "labelIds": message.get("labelIds"),
                "snippet": message.get("snippet"),
                "subject": headers.get("Subject"),
                "from": headers.get("From"),
                "to": headers.get("To"),
                "date": headers.get("Date"),
                "body": extracted["body"] or message.get("snippet"),
                "attachments": extracted["attachments"],
            },
            indent=2,
        )

    @service_operation("gmail.download_attachment")
    async def download_attachment(
        self, message_id: str, attachment_id: str, local_path: str
    ) -> ToolResult:
        """Save an attachment to an absolute local path."""
        require_absolute_path(local_path)
        logger.info(f"Downloading attachment {attachment_id} of message {message_id}")

        response = await self._make_request(
            "GET", f"{USER_BASE}/messages/{message_id}/attachments/{attachment_id}"
        )
        data = response.get("data")
        if not data:
            raise WorkspaceError("Attachment data is empty")

        path = write_local_file(local_path, _decode_base64url(data))
        logger.info(f"Attachment downloaded successfully to {path}")

        return json_result(
            {
                "message": f"Attachment downloaded successfully to {path}",
                "path": str(path),
            }
        )

    @service_operation("gmail.modify")
    async def modify(
        self,
        message_id: str,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> ToolResult:
        """Add or remove labels on a message."""
        logger.info(
            f"Modifying message {message_id}: add {add_label_ids}, remove {remove_label_ids}"
        )
        message = await self._make_request(
            "POST",
            f"{USER_BASE}/messages/{message_id}/modify",
            json_data={
                "addLabelIds": add_label_ids or [],
                "removeLabelIds": remove_label_ids or [],
            },
        )
        return json_result(message, indent=2)

    @service_operation("gmail.send")
    async def send(
        self,
        to: Recipients,
        subject: str,
        body: str,
        cc: Recipients | None = None,
        bcc: Recipients | None = None,
        is_html: bool = False,
    ) -> ToolResult:
        """Send an email.

        Returns:
            JSON ``{id, threadId, labelIds, status: "sent"}``.
        """
        try:
            _validate_recipients(to, cc, bcc)
        except ValidationError as e:
            return error_result("Invalid email address format", details=str(e))

        logger.info(f"Sending email to: {to}, subject: {subject}")
        raw = build_mime_message(
            to=_join_recipients(to) or "",
            subject=subject,
            body=body,
            cc=_join_recipients(cc),
            bcc=_join_recipients(bcc),
            is_html=is_html,
        )

        response = await self._make_request(
            "POST", f"{USER_BASE}/messages/send", json_data={"raw": raw}
        )
        logger.info(f"Email sent successfully: {response.get('id')}")

        return json_result(
            {
                "id": response.get("id"),
                "threadId": response.get("threadId"),
                "labelIds": response.get("labelIds"),
                "status": "sent",
            },
            indent=2,
        )

    async def _reply_headers(self, thread_id: str) -> tuple[str | None, str | None]:
        """Get In-Reply-To and References for a reply to the last message of a thread.

        Returns:
            ``(in_reply_to, references)``; both None if the thread can't be read.
        """
        try:
            thread = await self._make_request(
                "GET",
                f"{USER_BASE}/threads/{thread_id}",
                params={"format": "metadata", "metadataHeaders": ["Message-ID", "References"]},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch thread {thread_id} for reply headers: {e}")
            return None, None

        messages = thread.get("messages", [])
        if not messages:
            return None, None

        headers = {
            h.get("name", "").lower(): h.get("value")
            for h in messages[-1].get("payload", {}).get("headers", [])
        }
        message_id = headers.get("message-id")
        if not message_id:
            return None, None

        previous = headers.get("references")
        return message_id, f"{previous} {message_id}" if previous else message_id

    @service_operation("gmail.create_draft")
    async def create_draft(
        self,
        to: Recipients,
        subject: str,
        body: str,
        cc: Recipients | None = None,
        bcc: Recipients | None = None,
        is_html: bool = False,
        thread_id: str | None = None,
    ) -> ToolResult:
        """Create a draft, threaded as a reply when ``thread_id`` is given."""
        try:
            _validate_recipients(to, cc, bcc)
        except ValidationError as e:
            return error_result("Invalid email address format", details=str(e))

        logger.info(f"Creating draft - to: {to}, subject: {subject}")

        in_reply_to, references = (None, None)
        if thread_id:
            in_reply_to, references = await self._reply_headers(thread_id)

        message: dict[str, Any] = {
            "raw": build_mime_message(
                to=_join_recipients(to) or "",
                subject=subject,
                body=body,
                cc=_join_recipients(cc),
                bcc=_join_recipients(bcc),
                is_html=is_html,
                in_reply_to=in_reply_to,
                references=references,
            )
        }
        if thread_id:
            message["threadId"] = thread_id

        response = await self._make_request(
            "POST", f"{USER_BASE}/drafts", json_data={"message": message}
        )
        logger.info(f"Draft created successfully: {response.get('id')}")

        draft_message = response.get("message", {})
        return json_result(
            {
                "id": response.get("id"),
                "message": {
                    "id": draft_message.get("id"),
                    "threadId": draft_message.get("threadId"),
                    "labelIds": draft_message.get("labelIds"),
                },
                "status": "draft_created",
            },
            indent=2,
        )

    @service_operation("gmail.send_draft")
    async def send_draft(self, draft_id: str) -> ToolResult:
        """Send an existing draft."""
        logger.info(f"Sending draft: {draft_id}")
        response = await self._make_request(
            "POST", f"{USER_BASE}/drafts/send", json_data={"id": draft_id}
        )
        return json_result(
            {
                "id": response.get("id"),
                "threadId": response.get("threadId"),
                "labelIds": response.get("labelIds"),
                "status": "sent",
            },
            indent=2,
        )

    @service_operation("gmail.list_labels")
    async def list_labels(self) -> ToolResult:
        """List the user's labels."""
        response = await self._make_request("GET", f"{USER_BASE}/labels")
        labels = response.get("labels", [])
        logger.info(f"Found {len(labels)} labels")

        return json_result(
            {
                "labels": [
                    {
                        "id": label.get("id"),
                        "name": label.get("name"),
                        "type": label.get("type"),
                        "messageListVisibility": label.get("messageListVisibility"),
                        "labelListVisibility": label.get("labelListVisibility"),
                    }
                    for label in labels
                ]
            },
            indent=2,
        )

    @service_operation("gmail.create_label")
    async def create_label(
        self,
        name: str,
        label_list_visibility: Literal["labelShow", "labelHide", "labelShowIfUnread"] = "labelShow",
        message_list_visibility: Literal["show", "hide"] = "show",
    ) -> ToolResult:
        """Create a user label."""
        logger.info(f"Creating Gmail label: {name}")
        label = await self._make_request(
            "POST",
            f"{USER_BASE}/labels",
            json_data={
                "name": name,
                "labelListVisibility": label_list_visibility,
                "messageListVisibility": message_list_visibility,
            },
        )
        logger.info(f"Created label {label.get('name')} with id {label.get('id')}")

        return json_result(
            {
                "id": label.get("id"),
                "name": label.get("name"),
                "type": label.get("type"),
                "messageListVisibility": label.get("messageListVisibility"),
                "labelListVisibility": label.get("labelListVisibility"),
                "status": "created",
            },
            indent=2,
        )
