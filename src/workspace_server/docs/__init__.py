"""Google Docs edit planning: markdown compilation and text replacement."""

from workspace_server.docs.markdown import CompiledMarkdown, StyleRange, compile_markdown
from workspace_server.docs.replace import find_occurrences, plan_replacement
from workspace_server.docs.requests import (
    DeleteRange,
    EditOperation,
    InsertText,
    UpdateParagraphStyle,
    UpdateTextStyle,
    to_batch_requests,
    utf16_length,
)

__all__ = [
    "CompiledMarkdown",
    "StyleRange",
    "compile_markdown",
    "find_occurrences",
    "plan_replacement",
    "EditOperation",
    "InsertText",
    "DeleteRange",
    "UpdateTextStyle",
    "UpdateParagraphStyle",
    "to_batch_requests",
    "utf16_length",
]
