"""Unit tests for ID resolution, Drive queries, MIME building, downloads and logging."""

import base64
import logging
import sys
from email import message_from_bytes
from email.header import decode_header
from email.message import Message
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from workspace_server.errors import ToolInputError
from workspace_server.utils.download import (
    download_to_local,
    require_absolute_path,
    write_local_file,
)
from workspace_server.utils.drive_query import (
    MIME_TYPES,
    build_drive_search_query,
    build_folder_query,
    normalize_drive_query,
)
from workspace_server.utils.ids import extract_doc_id, extract_document_id, resolve_id
from workspace_server.utils.logging_config import configure_logging
from workspace_server.utils.mime import build_mime_message

DOC_URL = "https://docs.google.com/document/d/1AbC_d-9/edit?tab=t.0"


@pytest.mark.unit
class TestIds:
    """Tests for document ID helpers."""

    def test_should_extract_id_from_url(self) -> None:
        """Verify the /d/<id> segment is extracted."""
        assert extract_doc_id(DOC_URL) == "1AbC_d-9"

    def test_should_return_none_without_id_segment(self) -> None:
        """Verify URLs without /d/ give None."""
        assert extract_doc_id("https://docs.google.com/document/") is None

    def test_should_pass_bare_ids_through(self) -> None:
        """Verify resolve_id leaves bare IDs unchanged."""
        assert resolve_id("1AbC_d-9") == "1AbC_d-9"
        assert resolve_id(DOC_URL) == "1AbC_d-9"

    def test_should_strictly_resolve_document_ids(self) -> None:
        """Verify extract_document_id accepts IDs and URLs."""
        assert extract_document_id(" 1AbC_d-9 ") == "1AbC_d-9"
        assert extract_document_id(DOC_URL) == "1AbC_d-9"

    @pytest.mark.parametrize("value", ["https://example.com/no-id", "not an id!", ""])
    def test_should_reject_unusable_document_ids(self, value: str) -> None:
        """Verify invalid IDs raise ToolInputError."""
        with pytest.raises(ToolInputError):
            extract_document_id(value)


@pytest.mark.unit
class TestDriveQuery:
    """Tests for Drive query builders."""

    def test_should_search_full_text_by_default(self) -> None:
        """Verify plain queries use fullText contains."""
        assert build_drive_search_query(MIME_TYPES["document"], "budget") == (
            "mimeType='application/vnd.google-apps.document' and "
            "fullText contains 'budget' and trashed = false"
        )

    @pytest.mark.parametrize("query", ["title:Q3 Plan", "title: 'Q3 Plan'", 'title:"Q3 Plan"'])
    def test_should_search_names_with_title_prefix(self, query: str) -> None:
        """Verify title: searches names, with optional quotes stripped."""
        q = build_drive_search_query(MIME_TYPES["presentation"], query)

        assert "name contains 'Q3 Plan'" in q
        assert q.startswith("mimeType='application/vnd.google-apps.presentation'")

    def test_should_escape_quotes(self) -> None:
        """Verify single quotes in search terms are escaped."""
        q = build_drive_search_query(MIME_TYPES["document"], "Bob's notes")
        assert "fullText contains 'Bob\\'s notes'" in q

    def test_should_pass_drive_syntax_through(self) -> None:
        """Verify queries with operators are not rewritten."""
        assert normalize_drive_query("name contains 'x'") == "name contains 'x'"
        assert normalize_drive_query("report") == "fullText contains 'report'"

    def test_should_match_folder_names_exactly(self) -> None:
        """Verify folder lookup uses the folder MIME type and name equality."""
        q = build_folder_query("Reports")
        assert "mimeType='application/vnd.google-apps.folder'" in q
        assert "name = 'Reports'" in q


def _decode(raw: str) -> Message:
    return message_from_bytes(base64.urlsafe_b64decode(raw))


@pytest.mark.unit
class TestMimeMessage:
    """Tests for build_mime_message()."""

    def test_should_build_plain_text_message(self) -> None:
        """Verify headers and body of a plain message."""
        message = _decode(build_mime_message("a@example.com", "Hi", "Body", cc="c@example.com"))

        assert message["To"] == "a@example.com"
        assert message["Cc"] == "c@example.com"
        assert message["Subject"] == "Hi"
        assert message.get_content_type() == "text/plain"
        assert message.get_payload(decode=True).decode() == "Body"

    def test_should_build_html_reply(self) -> None:
        """Verify HTML bodies and threading headers."""
        message = _decode(
            build_mime_message(
                "a@example.com",
                "Re: Hi",
                "<p>Yes</p>",
                is_html=True,
                in_reply_to="<id1@mail>",
                references="<id0@mail> <id1@mail>",
            )
        )

        assert message.get_content_type() == "text/html"
        assert message["In-Reply-To"] == "<id1@mail>"
        assert message["References"] == "<id0@mail> <id1@mail>"

    def test_should_encode_non_ascii_subject(self) -> None:
        """Verify non-ASCII subjects are RFC 2047 encoded."""
        raw = build_mime_message("a@example.com", "Grüße", "x")

        header = _decode(raw)["Subject"]
        decoded = decode_header(header)[0]
        assert decoded[0].decode(decoded[1]) == "Grüße"


@pytest.mark.unit
class TestDownload:
    """Tests for local file helpers."""

    def test_should_reject_relative_paths(self) -> None:
        """Verify relative paths raise ToolInputError."""
        with pytest.raises(ToolInputError, match="localPath must be an absolute path."):
            require_absolute_path("relative/file.png")

    def test_should_create_parent_directories(self, tmp_path: Path) -> None:
        """Verify write_local_file creates missing directories."""
        target = tmp_path / "a" / "b" / "file.bin"

        assert write_local_file(target, b"data") == target
        assert target.read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_should_download_to_path(self, tmp_path: Path, make_response) -> None:
        """Verify downloads are written to the destination."""
        response = make_response(json_data={"k": "v"})
        http = MagicMock()
        http.get = AsyncMock(return_value=response)
        async_client = MagicMock()
        async_client.return_value.__aenter__ = AsyncMock(return_value=http)
        async_client.return_value.__aexit__ = AsyncMock(return_value=False)

        with patch("workspace_server.utils.download.httpx.AsyncClient", async_client):
            path = await download_to_local("https://lh3.example.com/img", tmp_path / "img.png")

        assert path.read_bytes() == response.content


@pytest.fixture
def restore_root_logging():
    """Restore root logger handlers and level after a test reconfigures them."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    httpx_level = logging.getLogger("httpx").level
    yield root
    logging.getLogger("httpx").setLevel(httpx_level)
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_should_log_to_stderr_and_file(self, tmp_path: Path, restore_root_logging) -> None:
        """Verify debug level, the stderr handler and the optional log file."""
        log_file = tmp_path / "logs" / "server.log"

        configure_logging(debug=True, log_file=log_file)
        logging.getLogger("workspace_server.test").debug("hello file")

        root = restore_root_logging
        assert root.level == logging.DEBUG
        streams = [getattr(h, "stream", None) for h in root.handlers]
        assert sys.stderr in streams
        for handler in root.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_should_quiet_httpx_by_default(self, restore_root_logging) -> None:
        """Verify per-request httpx logging is hidden at INFO."""
        configure_logging()

        assert restore_root_logging.level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
