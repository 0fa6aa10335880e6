"""Parsing of tidy's diagnostic output."""

from __future__ import annotations

import re
from dataclasses import dataclass

# Printed on stderr when a document has no problems at all
SUCCESS_SENTINEL = "No warnings or errors were found."

DIAGNOSTIC_PATTERN = re.compile(
    r"line (\d+) column (\d+) - (Warning|Error|Info|Access): (.+)"
)


@dataclass
class Diagnostic:
    """A single message reported by tidy."""

    line: int
    column: int
    severity: str
    message: str

    @property
    def is_error(self) -> bool:
        return self.severity == "Error"


def parse_diagnostics(text: str) -> list[Diagnostic]:
    """Extract located messages from tidy's stderr.

    Summary lines without a ``line N column M`` prefix are ignored.
    """
    return [
        Diagnostic(
            line=int(match.group(1)),
            column=int(match.group(2)),
            severity=match.group(3),
            message=match.group(4).strip(),
        )
        for match in DIAGNOSTIC_PATTERN.finditer(text or "")
    ]


def is_informational(text: str) -> bool:
    """Return True if diagnostic text is empty or reports a clean document.

    With ``quiet`` off tidy surrounds the success notice with an ``Info:``
    line and its about blurb, so the notice is looked for anywhere.
    """
    stripped = (text or "").strip()
    return not stripped or SUCCESS_SENTINEL in stripped


def first_message(text: str) -> str:
    """Return the first non-blank line of diagnostic text."""
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip()
    return ""


def compare_tag_counts(before: str, after: str) -> str | None:
    """Describe a change in the number of tags, or None if unchanged."""
    old_count = before.count("<")
    new_count = after.count("<")
    if old_count == new_count:
        return None
    if old_count < new_count:
        return f"{new_count - old_count} tags added."
    return f"{old_count - new_count} tags missing."
