"""Options derived from the document being formatted."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from tidyhtml.options import (
    BLOCKLEVEL_TAGS_KEY,
    SHOW_BODY_ONLY_KEY,
    SHOW_ERRORS_KEY,
    OptionSet,
    find_option,
)

if TYPE_CHECKING:
    from tidyhtml.config import TidySettings

# Verbosity used when errors are requested but the options leave it unset
DEFAULT_SHOW_ERRORS = 6

_TAG_TOKEN = re.compile(r"[^\s>/]*")


def find_custom_tags(text: str) -> list[str]:
    """Collect hyphenated element names, in order of first appearance.

    Closing tags, comments and doctypes are ignored, as are names that
    start with a hyphen.
    """
    tags: list[str] = []
    for fragment in text.split("<"):
        fragment = fragment.strip()
        if fragment.startswith(("/", "!")):
            continue
        token = _TAG_TOKEN.match(fragment).group()
        if token.find("-") > 0 and token not in tags:
            tags.append(token)
    return tags


def blocklevel_tags(text: str, existing: str | None = None) -> str:
    """Build the new-blocklevel-tags value for ``text``.

    Tags already listed in ``existing`` are not repeated, so deriving
    twice from the same document gives the same value.
    """
    known = re.split(r"[\s,]+", existing.strip()) if existing else []
    new_tags = [tag for tag in find_custom_tags(text) if tag not in known]
    return " ".join(part for part in (existing, " ".join(new_tags)) if part)


def derive_dynamic_options(text: str, existing: OptionSet, settings: TidySettings) -> OptionSet:
    """Compute content-dependent overrides for ``existing``.

    Args:
        text: Full document text; never modified.
        existing: The options the overrides will be merged over.
        settings: Supplies the three gates (dynamic tags, dynamic body,
            show errors).

    Returns:
        A partial option set to merge with ``merge_options``.
    """
    derived: OptionSet = {}

    if settings.enable_dynamic_tags:
        current = find_option(existing, BLOCKLEVEL_TAGS_KEY)
        tags = blocklevel_tags(text, str(current) if current else None)
        if tags:
            derived[BLOCKLEVEL_TAGS_KEY] = tags

    if settings.enable_dynamic_body:
        derived[SHOW_BODY_ONLY_KEY] = "<body" not in text

    if settings.show_errors and not find_option(existing, SHOW_ERRORS_KEY):
        derived[SHOW_ERRORS_KEY] = DEFAULT_SHOW_ERRORS

    return derived
