"""Pytest configuration and fixtures."""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Stand-in for tidy: copies stdin to stdout and exits cleanly
ECHO_STUB = """\
sys.stdout.buffer.write(sys.stdin.buffer.read())
"""


@pytest.fixture
def make_stub(tmp_path: Path) -> Callable[..., Path]:
    """Create executable Python scripts that stand in for tidy.

    The body runs with ``sys`` imported; ``exit_code`` is used as the
    process exit status.
    """
    if sys.platform == "win32":
        pytest.skip("stub executables rely on shebang lines")

    counter = iter(range(1000))

    def factory(body: str = ECHO_STUB, *, exit_code: int = 0, name: str | None = None) -> Path:
        path = tmp_path / "bin" / (name or f"tidy-stub-{next(counter)}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!{sys.executable}\nimport sys\n{body}\nsys.exit({exit_code})\n")
        path.chmod(0o755)
        return path

    return factory


@pytest.fixture
def echo_tidy(make_stub: Callable[..., Path]) -> Path:
    """A tidy stand-in that echoes stdin and exits 0."""
    return make_stub(ECHO_STUB)
