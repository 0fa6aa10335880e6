"""Tests for the host-facing formatter."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from tidyhtml.config import TidySettings
from tidyhtml.formatter import (
    FileDocument,
    FormatStatus,
    StringDocument,
    TidyFormatter,
)

UPPERCASE_STUB = """\
sys.stdout.write(sys.stdin.read().upper())
"""

WARNING_STUB = """\
sys.stdout.write(sys.stdin.read())
sys.stderr.write("line 1 column 1 - Warning: missing <!DOCTYPE> declaration\\n")
"""

ERROR_STUB = """\
sys.stdin.read()
sys.stderr.write("line 1 column 1 - Error: <foo> is not recognized!\\n")
"""

# Writes the received arguments to stdout so tests can inspect them
ARGS_STUB = """\
sys.stdin.read()
sys.stdout.write(" ".join(sys.argv[1:]))
"""

SLOW_ECHO_STUB = """\
import time
data = sys.stdin.read()
time.sleep(float(data.count("slow")) * 2)
sys.stdout.write(data)
"""

DROP_TAG_STUB = """\
sys.stdout.write(sys.stdin.read().replace("<span>", "").replace("</span>", ""))
"""


def make_formatter(executable: Path, **overrides) -> TidyFormatter:
    values = {
        "tidy_exec_path": str(executable),
        "enable_dynamic_tags": False,
        "file_search_enabled": False,
    }
    values.update(overrides)
    return TidyFormatter(TidySettings(**values))


class TestStringDocument:
    """Tests for the in-memory document."""

    def test_get_and_set(self):
        document = StringDocument("<p>a</p>")
        assert document.path is None
        document.set_text("<p>b</p>")
        assert document.get_text() == "<p>b</p>"


class TestFileDocument:
    """Tests for the on-disk document."""

    def test_round_trip_preserves_mode(self, tmp_path: Path):
        path = tmp_path / "page.html"
        path.write_text("<p>a</p>")
        path.chmod(0o640)
        document = FileDocument(path)

        document.set_text("<p>b</p>")

        assert document.get_text() == "<p>b</p>"
        assert path.stat().st_mode & 0o777 == 0o640


class TestFormatDocument:
    """Tests for TidyFormatter.format_document."""

    @pytest.mark.asyncio
    async def test_formats_and_applies(self, make_stub):
        formatter = make_formatter(make_stub(UPPERCASE_STUB))
        document = StringDocument("<p>x</p>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.FORMATTED
        assert outcome.applied
        assert document.text == "<P>X</P>"
        assert outcome.result.is_clean
        assert outcome.messages == []

    @pytest.mark.asyncio
    async def test_empty_document_skipped(self, echo_tidy: Path):
        formatter = make_formatter(echo_tidy)
        outcome = await formatter.format_document(StringDocument(""))
        assert outcome.status is FormatStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_warning_applies_by_default(self, make_stub):
        formatter = make_formatter(make_stub(WARNING_STUB, exit_code=1))
        document = StringDocument("<p>x</p>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.FORMATTED
        assert outcome.messages == ["line 1 column 1 - Warning: missing <!DOCTYPE> declaration"]

    @pytest.mark.asyncio
    async def test_stop_on_warning_blocks(self, make_stub):
        formatter = make_formatter(make_stub(UPPERCASE_STUB, exit_code=1), stop_on_warning=True)
        document = StringDocument("<p>x</p>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.BLOCKED
        assert outcome.result.is_warning
        assert document.text == "<p>x</p>"

    @pytest.mark.asyncio
    async def test_error_blocks(self, make_stub):
        formatter = make_formatter(make_stub(ERROR_STUB, exit_code=2))
        document = StringDocument("<foo>x</foo>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.BLOCKED
        assert document.text == "<foo>x</foo>"
        assert "not recognized" in outcome.messages[0]

    @pytest.mark.asyncio
    async def test_empty_output_blocks(self, make_stub):
        formatter = make_formatter(make_stub("sys.stdin.read()"))
        document = StringDocument("<p>x</p>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.BLOCKED
        assert document.text == "<p>x</p>"

    @pytest.mark.asyncio
    async def test_launch_failure_reported(self, tmp_path: Path):
        with patch("tidyhtml.executable.shutil.which", return_value=str(tmp_path / "gone")):
            formatter = TidyFormatter(TidySettings(file_search_enabled=False))
            outcome = await formatter.format_document(StringDocument("<p>x</p>"))

        assert outcome.status is FormatStatus.FAILED
        assert "Could not launch" in outcome.messages[-1]

    @pytest.mark.asyncio
    async def test_no_executable_reported(self):
        with patch("tidyhtml.executable.shutil.which", return_value=None):
            formatter = TidyFormatter(TidySettings(file_search_enabled=False))
            outcome = await formatter.format_document(StringDocument("<p>x</p>"))

        assert outcome.status is FormatStatus.FAILED
        assert "No tidy executable found" in outcome.messages[0]

    @pytest.mark.asyncio
    async def test_serialization_fault_reported(self, echo_tidy: Path):
        formatter = make_formatter(echo_tidy, options_tidy={"indent": {"nested": True}})
        document = StringDocument("<p>x</p>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.FAILED
        assert "indent" in outcome.messages[0]
        assert document.text == "<p>x</p>"

    @pytest.mark.asyncio
    async def test_timeout_reported(self, make_stub):
        formatter = make_formatter(make_stub("import time\ntime.sleep(30)"), timeout=0.5)
        outcome = await formatter.format_document(StringDocument("<p>x</p>"))

        assert outcome.status is FormatStatus.FAILED
        assert "timed out" in outcome.messages[0]

    @pytest.mark.asyncio
    async def test_secure_tag_count_warns(self, make_stub):
        formatter = make_formatter(make_stub(DROP_TAG_STUB), secure_tag_count=True)
        document = StringDocument("<p><span>x</span></p>")

        outcome = await formatter.format_document(document)

        assert outcome.status is FormatStatus.FORMATTED
        assert outcome.messages == ["tag count changed: 2 tags missing."]

    @pytest.mark.asyncio
    async def test_dynamic_options_passed_to_tidy(self, make_stub):
        formatter = make_formatter(
            make_stub(ARGS_STUB),
            enable_dynamic_tags=True,
            enable_dynamic_body=True,
            show_errors=True,
            options_tidy={"indent": "auto"},
        )
        document = StringDocument("<my-widget>content</my-widget><div>")

        await formatter.format_document(document)

        assert document.text.startswith(
            "--indent auto --new-blocklevel-tags my-widget --show-body-only yes --show-errors 6"
        )
        assert document.text.endswith("--tidy-mark no --force-output yes --quiet no")

    @pytest.mark.asyncio
    async def test_override_file_warning(self, tmp_path: Path, echo_tidy: Path):
        (tmp_path / ".htmlTidy").write_text("{broken")
        page = tmp_path / "page.html"
        page.write_text("<p>x</p>")
        formatter = make_formatter(echo_tidy, file_search_enabled=True)

        outcome = await formatter.format_document(FileDocument(page))

        assert outcome.status is FormatStatus.FORMATTED
        assert outcome.messages == ["options in file .htmlTidy not valid"]

    @pytest.mark.asyncio
    async def test_newer_request_supersedes_older(self, make_stub):
        formatter = make_formatter(make_stub(SLOW_ECHO_STUB))
        document = StringDocument("<p>slow</p>")

        first = asyncio.ensure_future(formatter.format_document(document))
        await asyncio.sleep(0.3)
        document.text = "<p>fast</p>"
        second = await formatter.format_document(document)
        first_outcome = await first

        assert first_outcome.status is FormatStatus.SUPERSEDED
        assert second.status is FormatStatus.FORMATTED
        assert document.text == "<p>fast</p>"

    @pytest.mark.asyncio
    async def test_different_documents_run_concurrently(self, echo_tidy: Path):
        formatter = make_formatter(echo_tidy)
        documents = [StringDocument(f"<p>{i}</p>") for i in range(4)]

        outcomes = await asyncio.gather(*(formatter.format_document(d) for d in documents))

        assert all(o.status is FormatStatus.FORMATTED for o in outcomes)

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self, make_stub):
        formatter = make_formatter(make_stub("import time\ntime.sleep(30)"))
        task = asyncio.ensure_future(formatter.format_document(StringDocument("<p>x</p>")))
        await asyncio.sleep(0.2)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class ReadOnlyDocument(StringDocument):
    """A document whose storage rejects writes."""

    def set_text(self, text: str) -> None:
        raise PermissionError(13, "Permission denied")


class TestUnreadableDocuments:
    """Tests for documents that cannot be read or written."""

    @pytest.mark.asyncio
    async def test_non_utf8_file_fails_format(self, tmp_path: Path, echo_tidy: Path):
        path = tmp_path / "page.html"
        path.write_bytes("<p>café</p>".encode("latin-1"))

        outcome = await make_formatter(echo_tidy).format_document(FileDocument(path))

        assert outcome.status is FormatStatus.FAILED
        assert "cannot read document" in outcome.messages[0]
        assert path.read_bytes() == "<p>café</p>".encode("latin-1")

    @pytest.mark.asyncio
    async def test_directory_fails_format(self, tmp_path: Path, echo_tidy: Path):
        outcome = await make_formatter(echo_tidy).format_document(FileDocument(tmp_path))
        assert outcome.status is FormatStatus.FAILED

    @pytest.mark.asyncio
    async def test_non_utf8_file_fails_lint(self, tmp_path: Path, echo_tidy: Path):
        path = tmp_path / "page.html"
        path.write_bytes("<p>café</p>".encode("latin-1"))

        report = await make_formatter(echo_tidy).lint_document(FileDocument(path))

        assert report.failed
        assert "cannot read document" in report.messages[0]

    @pytest.mark.asyncio
    async def test_write_failure_reported(self, echo_tidy: Path):
        document = ReadOnlyDocument("<p>x</p>")

        outcome = await make_formatter(echo_tidy).format_document(document)

        assert outcome.status is FormatStatus.FAILED
        assert outcome.result.is_clean
        assert "cannot write document" in outcome.messages[-1]


class TestRefresh:
    """Tests for TidyFormatter.refresh."""

    @pytest.mark.asyncio
    async def test_refresh_switches_executable_and_options(self, make_stub):
        formatter = make_formatter(make_stub(UPPERCASE_STUB))
        document = StringDocument("<p>x</p>")
        await formatter.format_document(document)
        assert document.text == "<P>X</P>"

        formatter.refresh(
            TidySettings(
                tidy_exec_path=str(make_stub(ARGS_STUB)),
                enable_dynamic_tags=False,
                file_search_enabled=False,
                options_tidy={"wrap": 80},
            )
        )
        await formatter.format_document(document)

        assert document.text.startswith("--wrap 80")
        assert formatter.settings.options_tidy == {"wrap": 80}


class TestLintDocument:
    """Tests for TidyFormatter.lint_document."""

    @pytest.mark.asyncio
    async def test_collects_diagnostics(self, make_stub):
        formatter = make_formatter(make_stub(WARNING_STUB, exit_code=1))
        document = StringDocument("<p>x</p>")

        report = await formatter.lint_document(document)

        assert not report.failed
        assert len(report.diagnostics) == 1
        assert report.diagnostics[0].severity == "Warning"
        assert document.text == "<p>x</p>"

    @pytest.mark.asyncio
    async def test_clean_document(self, echo_tidy: Path):
        report = await make_formatter(echo_tidy).lint_document(StringDocument("<p>x</p>"))
        assert report.diagnostics == []

    @pytest.mark.asyncio
    async def test_empty_document(self, echo_tidy: Path):
        report = await make_formatter(echo_tidy).lint_document(StringDocument(""))
        assert report.diagnostics == []
        assert not report.failed

    @pytest.mark.asyncio
    async def test_failure_reported(self, make_stub):
        formatter = make_formatter(make_stub("sys.stdin.read()", exit_code=9))
        report = await formatter.lint_document(StringDocument("<p>x</p>"))

        assert report.failed
        assert "exit code 9" in report.messages[0]
