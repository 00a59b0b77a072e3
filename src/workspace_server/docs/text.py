"""Read plain text and tab structure out of Docs API documents."""

from typing import Any

from pydantic import BaseModel, Field

from workspace_server.errors import WorkspaceError


class DocumentTab(BaseModel):
    """One tab of a document fetched with ``includeTabsContent=true``."""

    tab_id: str | None = None
    title: str | None = None
    content: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return extract_text(self.content)

    @property
    def end_index(self) -> int:
        """``endIndex`` of the last structural element, 1 for an empty tab."""
        if not self.content:
            return 1
        return self.content[-1].get("endIndex") or 1


def read_structural_element(element: dict[str, Any]) -> str:
    """Return the text of a paragraph or, recursively, of a table's cells."""
    if "paragraph" in element:
        return "".join(
            part.get("textRun", {}).get("content", "")
            for part in element["paragraph"].get("elements", [])
        )

    if "table" in element:
        return "".join(
            read_structural_element(cell_element)
            for row in element["table"].get("tableRows", [])
            for cell in row.get("tableCells", [])
            for cell_element in cell.get("content", [])
        )

    return ""


def extract_text(content: list[dict[str, Any]]) -> str:
    """Concatenate the text of a body's structural elements."""
    return "".join(read_structural_element(element) for element in content)


def parse_tabs(document: dict[str, Any]) -> list[DocumentTab]:
    """Build DocumentTab models from a ``documents.get`` response."""
    tabs = []
    for tab in document.get("tabs", []):
        properties = tab.get("tabProperties", {})
        body = tab.get("documentTab", {}).get("body", {})
        tabs.append(
            DocumentTab(
                tab_id=properties.get("tabId"),
                title=properties.get("title"),
                content=body.get("content", []),
            )
        )
    return tabs


def find_tab(tabs: list[DocumentTab], tab_id: str) -> DocumentTab:
    """Return the tab with ``tab_id``.

    Raises:
        WorkspaceError: If the document has no such tab.
    """
    for tab in tabs:
        if tab.tab_id == tab_id:
            return tab
    raise WorkspaceError(f"Tab with ID {tab_id} not found.")
