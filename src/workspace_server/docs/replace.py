"""Plan find-and-replace edits with markdown-formatted replacements.

Docs indices are absolute, so every replacement whose length differs from
the search text shifts all later occurrences. The planner works on the
original text and carries the cumulative shift forward while it emits, for
each occurrence, a delete, an insert and the replacement's style updates.
"""

import logging

from workspace_server.docs.markdown import compile_markdown
from workspace_server.docs.requests import DeleteRange, EditOperation, InsertText, utf16_length

logger = logging.getLogger(__name__)


def find_occurrences(full_text: str, find_text: str) -> list[int]:
    """Locate non-overlapping matches of ``find_text``.

    Args:
        full_text: Text extracted from the document.
        find_text: Exact, case-sensitive search string.

    Returns:
        1-based document indices (UTF-16 code units) of each match, in
        order. Empty when ``find_text`` is empty or does not occur.
    """
    if not find_text:
        return []

    occurrences = []
    scanned, units = 0, 0
    position = full_text.find(find_text)
    while position != -1:
        units += utf16_length(full_text[scanned:position])
        scanned = position
        occurrences.append(units + 1)
        position = full_text.find(find_text, position + len(find_text))
    return occurrences


def plan_replacement(
    full_text: str,
    find_text: str,
    replacement_markdown: str,
    tab_id: str | None = None,
) -> list[EditOperation]:
    """Build the ordered edit batch replacing every occurrence.

    Args:
        full_text: Text of one tab, as returned by ``extract_text``.
        find_text: Exact text to replace.
        replacement_markdown: Replacement, which may contain markdown.
        tab_id: Tab every operation targets.

    Returns:
        Delete, insert and style operations per occurrence, with indices
        valid for sequential application. Empty when nothing matches.
    """
    occurrences = find_occurrences(full_text, find_text)
    if not occurrences:
        return []

    compiled = compile_markdown(replacement_markdown, insertion_offset=0)
    replacement = compiled.plain_text
    find_length = utf16_length(find_text)
    length_diff = utf16_length(replacement) - find_length

    operations: list[EditOperation] = []
    offset = 0
    for occurrence in occurrences:
        position = occurrence + offset
        operations.append(
            DeleteRange(start_index=position, end_index=position + find_length, tab_id=tab_id)
        )
        if replacement:
            operations.append(InsertText(index=position, text=replacement, tab_id=tab_id))
        for style_operation in compiled.operations:
            operations.append(style_operation.shifted(position).with_tab(tab_id))
        offset += length_diff

    logger.debug(f"Planned {len(operations)} operations for {len(occurrences)} occurrence(s)")
    return operations
