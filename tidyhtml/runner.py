"""Running the tidy executable.

Each call spawns one tidy process, feeds it the whole document on stdin,
closes stdin and waits for exit. Nothing is streamed back to the caller;
the result is only available once the process has terminated.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum

from tidyhtml.diagnostics import Diagnostic, is_informational, parse_diagnostics
from tidyhtml.exceptions import LaunchFailure, ProcessFailure, TimeoutFailure
from tidyhtml.options import (
    SHOW_ERRORS_KEY,
    OptionSet,
    merge_options,
    serialize_options,
    with_fixed_options,
)

logger = logging.getLogger(__name__)

# Verbosity used when collecting diagnostics for lint
LINT_SHOW_ERRORS = 10


class ExitStatus(Enum):
    """Classification of tidy's exit code."""

    CLEAN = 0
    WARNING = 1
    ERROR = 2


def classify_exit_code(exit_code: int | None) -> ExitStatus | None:
    """Map an exit code to its status, or None for codes outside 0/1/2."""
    try:
        return ExitStatus(exit_code)
    except ValueError:
        return None


@dataclass
class ExecutionResult:
    """Output of a finished tidy run."""

    output_text: str
    diagnostic_text: str
    exit_code: int

    @property
    def status(self) -> ExitStatus:
        status = classify_exit_code(self.exit_code)
        if status is None:
            raise ValueError(f"Unclassifiable tidy exit code: {self.exit_code}")
        return status

    @property
    def is_clean(self) -> bool:
        return self.status is ExitStatus.CLEAN

    @property
    def is_warning(self) -> bool:
        return self.status is ExitStatus.WARNING

    @property
    def is_error(self) -> bool:
        return self.status is ExitStatus.ERROR

    @property
    def has_diagnostics(self) -> bool:
        """Return True if stderr holds more than the success notice."""
        return not is_informational(self.diagnostic_text)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return parse_diagnostics(self.diagnostic_text)


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


async def run_tidy(
    executable: str | None,
    options: OptionSet | None,
    text: str,
    *,
    timeout: float | None = None,
) -> ExecutionResult:
    """Format ``text`` with tidy and wait for the complete result.

    Args:
        executable: Path to the tidy executable.
        options: Tidy options; the fixed options are applied on top.
        text: Document text written to tidy's stdin.
        timeout: Seconds to wait before killing tidy, None to wait forever.

    Returns:
        ExecutionResult for exit codes 0, 1 and 2.

    Raises:
        LaunchFailure: If no executable is given or it cannot be spawned.
        SerializationFault: If an option value has an unsupported type.
        ProcessFailure: If tidy exits with any other code.
        TimeoutFailure: If tidy does not finish within ``timeout``.
    """
    if not executable:
        raise LaunchFailure(executable, "no tidy executable configured")

    args = serialize_options(with_fixed_options(options))
    logger.debug("Running %s %s", executable, " ".join(args))

    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise LaunchFailure(executable, str(e)) from e

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(text.encode("utf-8")), timeout=timeout
        )
    except TimeoutError:
        logger.warning("tidy timed out after %ss, killing pid %s", timeout, process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise TimeoutFailure(executable, timeout) from None
    except asyncio.CancelledError:
        logger.debug("tidy request cancelled, killing pid %s", process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await asyncio.shield(process.wait())
        raise

    exit_code = process.returncode
    diagnostic_text = _decode(stderr)
    if classify_exit_code(exit_code) is None:
        raise ProcessFailure(executable, exit_code, diagnostic_text)

    result = ExecutionResult(
        output_text=_decode(stdout),
        diagnostic_text=diagnostic_text,
        exit_code=exit_code,
    )
    if result.has_diagnostics:
        logger.info("tidy exited with %s: %s", result.status.name.lower(), diagnostic_text.strip())
    return result


class TidyRunner:
    """Runs a fixed tidy executable with per-call options."""

    def __init__(self, executable: str, *, timeout: float | None = None):
        if not executable:
            raise LaunchFailure(executable, "no tidy executable configured")
        self.executable = executable
        self.timeout = timeout

    async def run(self, options: OptionSet | None, text: str) -> ExecutionResult:
        """Format ``text`` and return the classified result."""
        return await run_tidy(self.executable, options, text, timeout=self.timeout)

    async def collect_errors(self, options: OptionSet | None, text: str) -> str:
        """Run tidy at high error verbosity and return only its diagnostics."""
        lint_options = merge_options(options, {SHOW_ERRORS_KEY: LINT_SHOW_ERRORS})
        result = await self.run(lint_options, text)
        return result.diagnostic_text
