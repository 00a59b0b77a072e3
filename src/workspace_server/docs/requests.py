"""Typed Google Docs ``batchUpdate`` edit operations.

Each operation serializes to exactly one request dict of the Docs API.
Indices are 1-based document positions; ranges are half-open
``[start_index, end_index)``, counted in UTF-16 code units like every Docs
index. Operations are immutable; ``shifted`` and ``with_tab`` return copies.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


def utf16_length(text: str) -> int:
    """Length of ``text`` in UTF-16 code units, the unit of Docs indices.

    Characters outside the Basic Multilingual Plane (most emoji) count as two.
    """
    return len(text.encode("utf-16-le")) // 2


def _location(index: int, tab_id: str | None) -> dict[str, Any]:
    location: dict[str, Any] = {"index": index}
    if tab_id:
        location["tabId"] = tab_id
    return location


def _range(start_index: int, end_index: int, tab_id: str | None) -> dict[str, Any]:
    range_: dict[str, Any] = {"startIndex": start_index, "endIndex": end_index}
    if tab_id:
        range_["tabId"] = tab_id
    return range_


class EditOperation(BaseModel):
    """Base class for a single document edit."""

    model_config = ConfigDict(frozen=True)

    tab_id: str | None = None

    def to_request(self) -> dict[str, Any]:
        """Serialize to a Docs API request dict."""
        raise NotImplementedError

    def shifted(self, offset: int) -> "EditOperation":
        """Return a copy with every index moved by ``offset``."""
        raise NotImplementedError

    def with_tab(self, tab_id: str | None) -> "EditOperation":
        """Return a copy targeting ``tab_id``."""
        return self.model_copy(update={"tab_id": tab_id})


class _RangeOperation(EditOperation):
    start_index: int
    end_index: int

    @model_validator(mode="after")
    def _check_range(self) -> "_RangeOperation":
        if self.end_index <= self.start_index:
            raise ValueError(
                f"end_index ({self.end_index}) must be greater than "
                f"start_index ({self.start_index})"
            )
        return self

    def shifted(self, offset: int) -> "_RangeOperation":
        return self.model_copy(
            update={
                "start_index": self.start_index + offset,
                "end_index": self.end_index + offset,
            }
        )


class InsertText(EditOperation):
    """Insert ``text`` at ``index``."""

    index: int
    text: str

    def to_request(self) -> dict[str, Any]:
        return {"insertText": {"location": _location(self.index, self.tab_id), "text": self.text}}

    def shifted(self, offset: int) -> "InsertText":
        return self.model_copy(update={"index": self.index + offset})


class DeleteRange(_RangeOperation):
    """Delete the content in ``[start_index, end_index)``."""

    def to_request(self) -> dict[str, Any]:
        return {
            "deleteContentRange": {
                "range": _range(self.start_index, self.end_index, self.tab_id),
            }
        }


class UpdateTextStyle(_RangeOperation):
    """Apply a character style to a range.

    Attributes:
        text_style: Docs ``TextStyle`` object.
        fields: Field mask naming the style properties to set.
    """

    text_style: dict[str, Any]
    fields: str

    def to_request(self) -> dict[str, Any]:
        return {
            "updateTextStyle": {
                "range": _range(self.start_index, self.end_index, self.tab_id),
                "textStyle": self.text_style,
                "fields": self.fields,
            }
        }


class UpdateParagraphStyle(_RangeOperation):
    """Set the named paragraph style (``HEADING_1`` .. ``HEADING_6``) of a range."""

    named_style_type: str

    def to_request(self) -> dict[str, Any]:
        return {
            "updateParagraphStyle": {
                "range": _range(self.start_index, self.end_index, self.tab_id),
                "paragraphStyle": {"namedStyleType": self.named_style_type},
                "fields": "namedStyleType",
            }
        }


def to_batch_requests(operations: list[EditOperation]) -> list[dict[str, Any]]:
    """Serialize operations, in order, for a ``documents:batchUpdate`` body."""
    return [operation.to_request() for operation in operations]
