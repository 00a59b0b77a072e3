"""Build raw RFC 2822 messages for the Gmail API."""

import base64
from email.header import Header
from email.mime.text import MIMEText


def build_mime_message(
    to: str,
    subject: str,
    body: str,
    cc: str | None = None,
    bcc: str | None = None,
    is_html: bool = False,
    in_reply_to: str | None = None,
    references: str | None = None,
) -> str:
    """Build an email message and return it base64url encoded.

    Args:
        to: Comma-separated recipients.
        subject: Email subject.
        body: Email body, plain text or HTML.
        cc: Optional CC recipients.
        bcc: Optional BCC recipients.
        is_html: Send the body as ``text/html``.
        in_reply_to: Optional Message-ID for reply threading.
        references: Optional References header for reply threading.

    Returns:
        Base64url encoded message, as expected in Gmail's ``raw`` field.
    """
    message = MIMEText(body, "html" if is_html else "plain", "utf-8")
    message["To"] = to
    message["Subject"] = subject if subject.isascii() else Header(subject, "utf-8")

    if cc:
        message["Cc"] = cc
    if bcc:
        message["Bcc"] = bcc
    if in_reply_to:
        message["In-Reply-To"] = in_reply_to
    if references:
        message["References"] = references

    return base64.urlsafe_b64encode(message.as_bytes()).decode()
