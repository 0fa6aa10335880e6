"""Locating the tidy executable."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE_NAME = "tidy"


@dataclass
class ExecutableLookup:
    """Result of looking for a usable tidy executable."""

    path: str | None
    warnings: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.path is not None


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def find_tidy_executable(configured: str | None = None) -> ExecutableLookup:
    """Find tidy, preferring the configured path.

    A configured path that does not exist produces a warning and falls
    back to ``tidy`` on PATH.
    """
    warnings: list[str] = []
    if configured:
        if is_executable(configured):
            return ExecutableLookup(path=configured)
        logger.warning("Configured tidy executable %s is missing", configured)
        warnings.append("configured tidy executable is missing. Fallback to default")

    found = shutil.which(DEFAULT_EXECUTABLE_NAME)
    if found is None:
        warnings.append("No tidy executable found. Please configure tidy_exec_path.")
    return ExecutableLookup(path=found, warnings=warnings)
