"""Conversion of tidy option maps into command-line arguments.

Option names may be written in camelCase (``newBlocklevelTags``) or in
tidy's own hyphenated form (``new-blocklevel-tags``); both address the
same ``--new-blocklevel-tags`` flag.
"""

from __future__ import annotations

import logging
import re

from tidyhtml.exceptions import SerializationFault

logger = logging.getLogger(__name__)

OptionValue = str | int | float | bool
OptionSet = dict[str, OptionValue]

BLOCKLEVEL_TAGS_KEY = "newBlocklevelTags"
SHOW_BODY_ONLY_KEY = "showBodyOnly"
SHOW_ERRORS_KEY = "showErrors"

# Always applied last so tidy emits output on recoverable errors and no banner
FIXED_OPTIONS: OptionSet = {
    "tidyMark": False,
    "forceOutput": True,
    "quiet": False,
}

_UPPERCASE = re.compile(r"(?<!^)([A-Z])")


def to_flag_name(key: str) -> str:
    """Translate an option name into tidy's ``--flag-name`` form.

    Args:
        key: Option name, camelCase or already hyphenated.

    Returns:
        The flag, e.g. ``--new-blocklevel-tags`` for ``newBlocklevelTags``.
    """
    return "--" + _UPPERCASE.sub(r"-\1", key).lower()


def encode_value(key: str, value: object) -> str:
    """Encode a single option value as a command-line token.

    Raises:
        SerializationFault: If the value is not a string, number or boolean.
    """
    match value:
        case bool():
            return "yes" if value else "no"
        case str():
            return value
        case int() | float():
            return str(value)
        case _:
            raise SerializationFault(key, value)


def serialize_options(options: OptionSet | None) -> list[str]:
    """Convert an option map into tidy's argument vector.

    Keys with a ``None`` value are treated as unset and skipped.

    Args:
        options: Option name to value mapping, in the desired order.

    Returns:
        Alternating ``--flag`` and value tokens.

    Raises:
        SerializationFault: If any value has an unsupported type.
    """
    args: list[str] = []
    for key, value in (options or {}).items():
        if not key:
            logger.debug("Skipping option with empty name")
            continue
        if value is None:
            continue
        args.extend([to_flag_name(key), encode_value(key, value)])
    return args


def find_option(options: OptionSet, key: str) -> OptionValue | None:
    """Look up an option by flag, whichever spelling the caller used."""
    flag = to_flag_name(key)
    for name, value in options.items():
        if to_flag_name(name) == flag:
            return value
    return None


def merge_options(base: OptionSet | None, *overrides: OptionSet | None) -> OptionSet:
    """Copy-merge option maps; later maps win.

    A key in a later map replaces any earlier key addressing the same
    flag, so ``show-errors`` and ``showErrors`` never both reach tidy.
    """
    merged: OptionSet = dict(base or {})
    for override in overrides:
        for key, value in (override or {}).items():
            flag = to_flag_name(key)
            for existing in [k for k in merged if to_flag_name(k) == flag]:
                del merged[existing]
            merged[key] = value
    return merged


def with_fixed_options(options: OptionSet | None) -> OptionSet:
    """Return a copy of ``options`` with the fixed options forced last."""
    return merge_options(options, FIXED_OPTIONS)
