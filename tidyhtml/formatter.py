"""Formatting of documents for a host integration.

The host supplies a document: something that can hand over its full text
and accept replacement text. ``TidyFormatter`` resolves the options, runs
tidy and decides whether the output may be applied. Pipeline failures
never escape as exceptions; they come back as a ``FormatOutcome`` carrying
messages for the user.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from tidyhtml.config import TidySettings, atomic_write
from tidyhtml.diagnostics import Diagnostic, compare_tag_counts, first_message, parse_diagnostics
from tidyhtml.dynamic import derive_dynamic_options
from tidyhtml.exceptions import TidyError
from tidyhtml.executable import ExecutableLookup, find_tidy_executable
from tidyhtml.options import OptionSet, merge_options
from tidyhtml.resolver import ConfigResolver
from tidyhtml.runner import ExecutionResult, TidyRunner, run_tidy

logger = logging.getLogger(__name__)


class TextDocument(Protocol):
    """The capability a host document must provide."""

    @property
    def path(self) -> Path | None: ...

    def get_text(self) -> str: ...

    def set_text(self, text: str) -> None: ...


class StringDocument:
    """An in-memory document; formatted text replaces ``text``."""

    def __init__(self, text: str, path: Path | None = None):
        self.text = text
        self._path = path

    @property
    def path(self) -> Path | None:
        return self._path

    def get_text(self) -> str:
        return self.text

    def set_text(self, text: str) -> None:
        self.text = text


class FileDocument:
    """A document on disk; formatted text is written back atomically."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get_text(self) -> str:
        return self._path.read_text(encoding="utf-8")

    def set_text(self, text: str) -> None:
        mode = self._path.stat().st_mode
        atomic_write(self._path, text.encode("utf-8"))
        self._path.chmod(mode)


class FormatStatus(Enum):
    """What happened to a format request."""

    FORMATTED = "formatted"
    SKIPPED = "skipped"
    BLOCKED = "blocked"
    FAILED = "failed"
    SUPERSEDED = "superseded"


@dataclass
class FormatOutcome:
    """Result of formatting one document."""

    status: FormatStatus
    result: ExecutionResult | None = None
    messages: list[str] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.status is FormatStatus.FORMATTED


@dataclass
class LintReport:
    """Diagnostics collected for one document."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    failed: bool = False


class TidyFormatter:
    """Formats host documents with tidy."""

    def __init__(self, settings: TidySettings, *, workspace: Path | None = None):
        self._resolver = ConfigResolver(settings, workspace=workspace)
        self._executable: ExecutableLookup | None = None
        self._inflight: dict[object, asyncio.Task[FormatOutcome]] = {}

    @property
    def settings(self) -> TidySettings:
        return self._resolver.settings

    def refresh(self, settings: TidySettings) -> None:
        """Apply changed settings; cached options and executable are dropped."""
        self._resolver.refresh(settings)
        self._executable = None

    def build_options(
        self, text: str, document_path: Path | None = None
    ) -> tuple[OptionSet, list[str]]:
        """Resolve base options for a document and add the dynamic ones.

        Returns:
            Tuple of (options, warnings for the user).
        """
        resolved = self._resolver.options_for(document_path)
        dynamic = derive_dynamic_options(text, resolved.options, self.settings)
        return merge_options(resolved.options, dynamic), resolved.warnings

    async def format_document(self, document: TextDocument) -> FormatOutcome:
        """Format a document, replacing its text when tidy succeeds.

        A newer request for the same document cancels an older one still
        in flight; the older caller receives a SUPERSEDED outcome.
        """
        key = document.path if document.path is not None else id(document)
        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            logger.debug("Superseding in-flight format of %s", key)
            previous.cancel()

        task = asyncio.ensure_future(self._format(document))
        self._inflight[key] = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return FormatOutcome(
                FormatStatus.SUPERSEDED, messages=["superseded by a newer format request"]
            )
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    async def lint_document(self, document: TextDocument) -> LintReport:
        """Collect tidy's diagnostics for a document without changing it."""
        try:
            text = document.get_text()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", document.path, e)
            return LintReport(messages=[f"cannot read document: {e}"], failed=True)
        if not text:
            return LintReport()

        executable, messages = self._find_executable()
        if executable is None:
            return LintReport(messages=messages, failed=True)

        options, warnings = self.build_options(text, document.path)
        messages.extend(warnings)
        runner = TidyRunner(executable, timeout=self.settings.timeout)
        try:
            errors = await runner.collect_errors(options, text)
        except TidyError as e:
            logger.warning("Lint failed: %s", e)
            return LintReport(messages=[*messages, str(e)], failed=True)
        return LintReport(diagnostics=parse_diagnostics(errors), messages=messages)

    def _find_executable(self) -> tuple[str | None, list[str]]:
        if self._executable is None:
            self._executable = find_tidy_executable(self.settings.tidy_exec_path)
            return self._executable.path, list(self._executable.warnings)
        if not self._executable.found:
            return None, list(self._executable.warnings)
        return self._executable.path, []

    async def _format(self, document: TextDocument) -> FormatOutcome:
        try:
            text = document.get_text()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", document.path, e)
            return FormatOutcome(FormatStatus.FAILED, messages=[f"cannot read document: {e}"])
        if not text:
            return FormatOutcome(FormatStatus.SKIPPED)

        executable, messages = self._find_executable()
        if executable is None:
            return FormatOutcome(FormatStatus.FAILED, messages=messages)

        options, warnings = self.build_options(text, document.path)
        messages.extend(warnings)
        settings = self.settings

        try:
            result = await run_tidy(executable, options, text, timeout=settings.timeout)
        except TidyError as e:
            logger.warning("Formatting failed: %s", e)
            messages.append(str(e))
            return FormatOutcome(FormatStatus.FAILED, messages=messages)

        if result.has_diagnostics and (result.is_error or result.is_warning):
            messages.append(first_message(result.diagnostic_text))

        if result.is_error or (settings.stop_on_warning and result.is_warning):
            return FormatOutcome(FormatStatus.BLOCKED, result=result, messages=messages)
        if not result.output_text:
            messages.append("tidy produced no output")
            return FormatOutcome(FormatStatus.BLOCKED, result=result, messages=messages)

        try:
            document.set_text(result.output_text)
        except OSError as e:
            logger.warning("Cannot write %s: %s", document.path, e)
            messages.append(f"cannot write document: {e}")
            return FormatOutcome(FormatStatus.FAILED, result=result, messages=messages)

        if settings.secure_tag_count:
            change = compare_tag_counts(text, result.output_text)
            if change:
                messages.append(f"tag count changed: {change}")

        return FormatOutcome(FormatStatus.FORMATTED, result=result, messages=messages)
