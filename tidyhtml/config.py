"""tidyhtml settings management.

Settings come either from a host integration (a mapping using the host's
camelCase names such as ``tidyExecPath``) or from
``.tidyhtml/config.toml`` in the workspace:

    [tidy]
    tidy_exec_path = "/usr/local/bin/tidy"
    enable_dynamic_tags = true

    [tidy.options]
    indent = "auto"
    wrap = 120
"""

from __future__ import annotations

import io
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from tidyhtml.exceptions import SettingsError

CONFIG_DIR = ".tidyhtml"
CONFIG_FILE = "config.toml"
DEFAULT_OPTIONS_FILE = ".htmlTidy"
DEFAULT_TIMEOUT = 30.0


class TidySettings(BaseModel):
    """Effective configuration consumed by the tidy pipeline."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tidy_exec_path: str | None = Field(
        default=None, description="Path to the tidy executable; looked up on PATH when unset"
    )
    enable_dynamic_tags: bool = Field(
        default=True,
        description="Register hyphenated custom elements as new block-level tags",
    )
    enable_dynamic_body: bool = Field(
        default=False, description="Set show-body-only when the document has no <body>"
    )
    show_errors: bool = Field(
        default=False, description="Raise tidy's error verbosity when the options leave it unset"
    )
    options_tidy: dict[str, Any] = Field(
        default_factory=dict, description="Base tidy options (name to value)"
    )
    stop_on_warning: bool = Field(
        default=False, description="Do not apply output when tidy reports warnings"
    )
    secure_tag_count: bool = Field(
        default=False, description="Warn when formatting changes the number of tags"
    )
    file_search_enabled: bool = Field(
        default=True, description="Search parent directories for an options override file"
    )
    options_file_name: str = Field(
        default=DEFAULT_OPTIONS_FILE, description="Name of the JSON options override file"
    )
    timeout: float | None = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="Seconds to wait for tidy; None waits forever"
    )


def settings_from_host(values: dict[str, Any]) -> TidySettings:
    """Build settings from a host configuration mapping.

    Args:
        values: Host settings, camelCase or snake_case names.

    Returns:
        Validated TidySettings.

    Raises:
        SettingsError: If a value has the wrong type.
    """
    try:
        return TidySettings.model_validate(values)
    except ValidationError as e:
        raise SettingsError("host settings", str(e)) from e


def get_config_path(workspace: Path) -> Path:
    """Return the settings file location for a workspace."""
    return workspace / CONFIG_DIR / CONFIG_FILE


def load_settings(workspace: Path) -> TidySettings:
    """Load settings from .tidyhtml/config.toml if it exists.

    Args:
        workspace: Path to the workspace/repository root.

    Returns:
        TidySettings with values from the file or defaults.

    Raises:
        SettingsError: If the file is not valid TOML or has invalid values.
    """
    config_path = get_config_path(workspace)

    if not config_path.exists():
        return TidySettings()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(config_path, str(e)) from e

    tidy_data = data.get("tidy", {})
    if not isinstance(tidy_data, dict):
        raise SettingsError(config_path, "[tidy] must be a table")
    tidy_data = dict(tidy_data)
    if "options" in tidy_data:
        tidy_data["options_tidy"] = tidy_data.pop("options")

    try:
        return TidySettings.model_validate(tidy_data)
    except ValidationError as e:
        raise SettingsError(config_path, str(e)) from e


def atomic_write(path: Path, content: bytes) -> None:
    """Write content to a file atomically using temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def save_settings(workspace: Path, settings: TidySettings) -> Path:
    """Write settings to .tidyhtml/config.toml.

    Other top-level tables in an existing file are preserved. Unset
    values (``None``) are omitted since TOML has no null.

    Returns:
        Path of the written file.

    Raises:
        SettingsError: If an existing file is not valid TOML.
    """
    config_path = get_config_path(workspace)

    existing_data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                existing_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise SettingsError(config_path, str(e)) from e

    tidy_data = settings.model_dump(exclude_none=True)
    options = tidy_data.pop("options_tidy", {})
    if options:
        tidy_data["options"] = options
    existing_data["tidy"] = tidy_data

    buffer = io.BytesIO()
    tomli_w.dump(existing_data, buffer)
    atomic_write(config_path, buffer.getvalue())
    return config_path
