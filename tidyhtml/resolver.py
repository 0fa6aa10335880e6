"""Resolution of the base tidy options for a document.

The base options come from settings, unless a JSON override file (by
default ``.htmlTidy``) is found next to the document or in one of its
parent directories. An override file replaces the settings' options
entirely; it is not merged key by key.

Results are cached per search directory until ``refresh`` is called with
new settings.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from tidyhtml.config import TidySettings
from tidyhtml.exceptions import ConfigParseFailure
from tidyhtml.options import OptionSet

logger = logging.getLogger(__name__)


@dataclass
class ResolvedOptions:
    """Base options for a document and where they came from."""

    options: OptionSet
    source: Path | None = None
    warnings: list[str] = field(default_factory=list)


def parse_override_options(text: str, source: Path | str | None = None) -> OptionSet:
    """Parse the contents of an override file.

    Raises:
        ConfigParseFailure: If the text is not a JSON object.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigParseFailure(source, str(e)) from e
    if not isinstance(data, dict):
        raise ConfigParseFailure(source, f"expected a JSON object, got {type(data).__name__}")
    return data


def resolve_options(
    base: OptionSet | None,
    override_text: str | None = None,
    source: Path | str | None = None,
) -> OptionSet:
    """Return the effective base options.

    Args:
        base: Options from settings.
        override_text: Raw contents of an override file, if one was found.
        source: Where the override text came from, for error messages.

    Raises:
        ConfigParseFailure: If ``override_text`` cannot be parsed.
    """
    if override_text is not None:
        return parse_override_options(override_text, source)
    return dict(base or {})


def find_override_file(start: Path, name: str) -> Path | None:
    """Find ``name`` in ``start`` or the nearest parent directory that has it."""
    current = start.resolve()
    while True:
        candidate = current / name
        if candidate.is_file():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


class ConfigResolver:
    """Cached lookup of base options per document."""

    def __init__(self, settings: TidySettings, *, workspace: Path | None = None):
        self._settings = settings
        self._workspace = workspace
        self._cache: dict[Path | None, ResolvedOptions] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> TidySettings:
        return self._settings

    def refresh(self, settings: TidySettings) -> None:
        """Switch to new settings and drop every cached resolution."""
        with self._lock:
            self._settings = settings
            self._cache.clear()
        logger.debug("Settings refreshed, option cache cleared")

    def options_for(self, document_path: Path | None = None) -> ResolvedOptions:
        """Return the base options for a document.

        A malformed override file is reported as a warning and the
        settings' options are used instead.

        Args:
            document_path: Path of the document, None for unsaved buffers.

        Returns:
            ResolvedOptions holding a private copy of the options.
        """
        search_dir = self._search_dir(document_path)
        with self._lock:
            cached = self._cache.get(search_dir)
            settings = self._settings

        if cached is None:
            cached = self._resolve(settings, search_dir)
            with self._lock:
                # A refresh in the meantime makes this resolution stale
                if self._settings is settings:
                    self._cache[search_dir] = cached

        return ResolvedOptions(
            options=dict(cached.options),
            source=cached.source,
            warnings=list(cached.warnings),
        )

    def _search_dir(self, document_path: Path | None) -> Path | None:
        if document_path is not None:
            return document_path.resolve().parent
        return self._workspace.resolve() if self._workspace else None

    def _resolve(self, settings: TidySettings, search_dir: Path | None) -> ResolvedOptions:
        base = settings.options_tidy
        if not settings.file_search_enabled or search_dir is None:
            return ResolvedOptions(options=dict(base))

        override_path = find_override_file(search_dir, settings.options_file_name)
        if override_path is None:
            return ResolvedOptions(options=dict(base))

        try:
            text = override_path.read_text(encoding="utf-8")
            options = resolve_options(base, text, override_path)
        except (OSError, ConfigParseFailure) as e:
            logger.warning("Ignoring options file %s: %s", override_path, e)
            return ResolvedOptions(
                options=dict(base),
                warnings=[f"options in file {override_path.name} not valid"],
            )

        logger.debug("Using tidy options from %s", override_path)
        return ResolvedOptions(options=options, source=override_path)
