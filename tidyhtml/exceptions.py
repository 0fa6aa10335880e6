"""Exceptions raised by the tidy pipeline."""

from __future__ import annotations

from pathlib import Path


class TidyError(Exception):
    """Base class for all tidy pipeline errors."""

    pass


class LaunchFailure(TidyError):
    """Raised when the tidy executable cannot be started."""

    def __init__(self, executable: str | None, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Could not launch tidy executable {executable!r}: {reason}")


class SerializationFault(TidyError):
    """Raised when an option value has a type tidy cannot accept."""

    def __init__(self, key: str, value: object):
        self.key = key
        self.value = value
        super().__init__(
            f"Unsupported value for option '{key}': {type(value).__name__} ({value!r})"
        )


class ConfigParseFailure(TidyError):
    """Raised when an option override file is not a valid JSON object."""

    def __init__(self, source: Path | str | None, reason: str):
        self.source = source
        self.reason = reason
        where = f" in {source}" if source else ""
        super().__init__(f"Invalid tidy options{where}: {reason}")


class SettingsError(TidyError):
    """Raised when the settings file cannot be loaded."""

    def __init__(self, source: Path | str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid settings in {source}: {reason}")


class ProcessFailure(TidyError):
    """Raised when tidy exits with a code outside the 0/1/2 convention."""

    def __init__(self, executable: str, exit_code: int | None, diagnostic_text: str = ""):
        self.executable = executable
        self.exit_code = exit_code
        self.diagnostic_text = diagnostic_text
        super().__init__(f"tidy process {executable!r} failed with exit code {exit_code}")


class TimeoutFailure(TidyError):
    """Raised when tidy does not finish within the configured timeout."""

    def __init__(self, executable: str, timeout: float):
        self.executable = executable
        self.timeout = timeout
        super().__init__(f"tidy process {executable!r} timed out after {timeout:g}s")
