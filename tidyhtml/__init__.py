"""Format HTML documents with an external HTML Tidy executable."""

from tidyhtml._version import __version__
from tidyhtml.config import TidySettings, load_settings, settings_from_host
from tidyhtml.dynamic import derive_dynamic_options
from tidyhtml.exceptions import (
    ConfigParseFailure,
    LaunchFailure,
    ProcessFailure,
    SerializationFault,
    SettingsError,
    TidyError,
    TimeoutFailure,
)
from tidyhtml.formatter import (
    FileDocument,
    FormatOutcome,
    FormatStatus,
    LintReport,
    StringDocument,
    TextDocument,
    TidyFormatter,
)
from tidyhtml.options import merge_options, serialize_options
from tidyhtml.resolver import ConfigResolver, ResolvedOptions, resolve_options
from tidyhtml.runner import ExecutionResult, ExitStatus, TidyRunner, run_tidy

__all__ = [
    "__version__",
    "ConfigParseFailure",
    "ConfigResolver",
    "ExecutionResult",
    "ExitStatus",
    "FileDocument",
    "FormatOutcome",
    "FormatStatus",
    "LaunchFailure",
    "LintReport",
    "ProcessFailure",
    "ResolvedOptions",
    "SerializationFault",
    "SettingsError",
    "StringDocument",
    "TextDocument",
    "TidyError",
    "TidyFormatter",
    "TidyRunner",
    "TidySettings",
    "TimeoutFailure",
    "derive_dynamic_options",
    "load_settings",
    "merge_options",
    "resolve_options",
    "run_tidy",
    "serialize_options",
    "settings_from_host",
]
