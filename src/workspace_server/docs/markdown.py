"""Compile markdown into plain text plus Google Docs style operations.

Only two block constructs are recognized: ATX heading lines (``# Title`` to
``###### Title``) and everything else, one line at a time. The Docs
paragraph model already turns each ``\\n`` into a paragraph, so lists,
quotes and multi-line paragraphs are passed through as text. Within a
line, inline markdown (bold, italic, code spans, links) is parsed with
markdown-it-py and walked as a syntax tree.

Example:
    ```python
    compiled = compile_markdown("Hello **world**", insertion_offset=1)
    compiled.plain_text   # "Hello world"
    compiled.operations   # [UpdateTextStyle(start_index=7, end_index=12, ...)]
    ```
"""

import logging
import re
from typing import Any, Literal

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from pydantic import BaseModel, ConfigDict

from workspace_server.docs.requests import (
    EditOperation,
    UpdateParagraphStyle,
    UpdateTextStyle,
    utf16_length,
)

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")

CODE_FONT_FAMILY = "Courier New"
CODE_BACKGROUND = {"red": 0.95, "green": 0.95, "blue": 0.95}
LINK_FOREGROUND = {"red": 0.06, "green": 0.33, "blue": 0.8}

StyleKind = Literal["bold", "italic", "code", "link", "heading"]

_md = MarkdownIt("commonmark")


class StyleRange(BaseModel):
    """A styled span of the compiled plain text.

    Offsets count UTF-16 code units, matching Docs indices, so a span after
    an emoji starts one unit later than its Python string index.

    Attributes:
        start: Offset of the first styled character.
        end: Offset one past the last styled character.
        kind: Style applied to the span.
        url: Link target, for ``link`` ranges.
        level: Heading level, for ``heading`` ranges.
    """

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    kind: StyleKind
    url: str | None = None
    level: int | None = None

    @property
    def is_paragraph(self) -> bool:
        """Heading ranges style whole paragraphs, not characters."""
        return self.kind == "heading"


class CompiledMarkdown(BaseModel):
    """Result of ``compile_markdown``."""

    plain_text: str
    ranges: list[StyleRange]
    operations: list[EditOperation]


class _InlineWalker:
    """Accumulates plain text and style ranges over markdown-it inline trees."""

    def __init__(self) -> None:
        self.parts: list[str] = []
        self.length = 0
        self.ranges: list[StyleRange] = []

    def append(self, text: str) -> None:
        self.parts.append(text)
        self.length += utf16_length(text)

    def add_range(self, start: int, kind: StyleKind, **extra: Any) -> None:
        # Empty spans (``****``, ``[](url)``) have nothing to style
        if self.length > start:
            self.ranges.append(StyleRange(start=start, end=self.length, kind=kind, **extra))

    def walk_line(self, line: str) -> None:
        tokens = _md.parseInline(line)
        self.visit(SyntaxTreeNode(tokens))

    def visit_children(self, node: SyntaxTreeNode) -> None:
        for child in node.children:
            self.visit(child)

    def visit(self, node: SyntaxTreeNode) -> None:
        start = self.length

        if node.type == "text":
            self.append(node.content)
        elif node.type == "strong":
            self.visit_children(node)
            self.add_range(start, "bold")
        elif node.type == "em":
            self.visit_children(node)
            self.add_range(start, "italic")
        elif node.type == "code_inline":
            self.append(node.content)
            self.add_range(start, "code")
        elif node.type == "link":
            self.visit_children(node)
            href = node.attrs.get("href")
            if href:
                self.add_range(start, "link", url=str(href))
        elif node.children:
            # root, inline, image alt text
            self.visit_children(node)
        elif node.content:
            # html_inline and other leaves keep their source text
            self.append(node.content)


def _heading_style(level: int) -> str:
    if not 1 <= level <= 6:
        logger.warning(f"Heading level {level} out of range, using HEADING_1")
        level = 1
    return f"HEADING_{level}"


def _text_style(style_range: StyleRange) -> tuple[dict[str, Any], str]:
    """Return the Docs ``TextStyle`` and field mask for an inline range."""
    if style_range.kind == "bold":
        return {"bold": True}, "bold"
    if style_range.kind == "italic":
        return {"italic": True}, "italic"
    if style_range.kind == "code":
        return (
            {
                "weightedFontFamily": {"fontFamily": CODE_FONT_FAMILY, "weight": 400},
                "backgroundColor": {"color": {"rgbColor": CODE_BACKGROUND}},
            },
            "weightedFontFamily,backgroundColor",
        )
    return (
        {
            "link": {"url": style_range.url},
            "foregroundColor": {"color": {"rgbColor": LINK_FOREGROUND}},
            "underline": True,
        },
        "link,foregroundColor,underline",
    )


def lower_ranges(ranges: list[StyleRange], insertion_offset: int) -> list[EditOperation]:
    """Turn style ranges into positional operations, in discovery order.

    Args:
        ranges: Ranges produced by the compiler.
        insertion_offset: Document index where the plain text is inserted.

    Returns:
        One operation per range. Headings become paragraph style updates
        only; every other kind becomes a text style update.
    """
    operations: list[EditOperation] = []
    for style_range in ranges:
        start = insertion_offset + style_range.start
        end = insertion_offset + style_range.end

        if style_range.is_paragraph:
            operations.append(
                UpdateParagraphStyle(
                    start_index=start,
                    end_index=end,
                    named_style_type=_heading_style(style_range.level or 1),
                )
            )
            continue

        text_style, fields = _text_style(style_range)
        operations.append(
            UpdateTextStyle(start_index=start, end_index=end, text_style=text_style, fields=fields)
        )
    return operations


def compile_markdown(markdown: str, insertion_offset: int) -> CompiledMarkdown:
    """Compile markdown into plain text and style operations.

    Args:
        markdown: Markdown source. Lines are separated by ``\\n``.
        insertion_offset: Document index where the plain text will be
            inserted; operation indices are relative to it.

    Returns:
        CompiledMarkdown with the plain text, the style ranges (offsets into
        the plain text) and the lowered operations.
    """
    walker = _InlineWalker()
    lines = markdown.split("\n")

    for i, line in enumerate(lines):
        heading = HEADING_PATTERN.match(line)
        if heading:
            start = walker.length
            walker.walk_line(heading.group(2))
            walker.add_range(start, "heading", level=len(heading.group(1)))
        elif line.strip():
            walker.walk_line(line)

        if i < len(lines) - 1:
            walker.append("\n")

    return CompiledMarkdown(
        plain_text="".join(walker.parts),
        ranges=walker.ranges,
        operations=lower_ranges(walker.ranges, insertion_offset),
    )
