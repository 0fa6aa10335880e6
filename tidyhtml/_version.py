"""Version information for tidyhtml.

The version is statically defined here and should match pyproject.toml.
When run from a git checkout the short commit hash is appended.
"""

import subprocess
from functools import lru_cache
from pathlib import Path

__version__ = "0.1.0"


@lru_cache(maxsize=1)
def get_git_sha() -> str | None:
    """Return the short commit hash of the source checkout, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=Path(__file__).parent,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.SubprocessError, OSError):
        return None
    return result.stdout.strip() if result.returncode == 0 else None


def get_full_version_string() -> str:
    """Get a version string like "tidyhtml 0.1.0 (abc1234)"."""
    sha = get_git_sha()
    if sha:
        return f"tidyhtml {__version__} ({sha})"
    return f"tidyhtml {__version__}"
