"""Command text matching and tokenizing."""

from __future__ import annotations

import json
from collections.abc import Iterable


def strip_highlight(text: str, name: str | None) -> str | None:
    """Return the text after a ``"<name>: "`` highlight, or None if absent."""
    if not name:
        return None
    highlight = f"{name}: "
    if not text.startswith(highlight):
        return None
    return text[len(highlight) :]


def strip_prefix(text: str, prefixes: Iterable[str]) -> str | None:
    """Strip the first matching command prefix from text.

    Prefixes are checked in order and the first match wins, so an empty
    prefix (which matches every message) only makes sense as the last entry.
    Returns None if no prefix matches.
    """
    for prefix in prefixes:
        if text.startswith(prefix):
            return text[len(prefix) :]
    return None


def split_command_args(text: str) -> tuple[str, ...]:
    """Split command text on single spaces after trimming it.

    Consecutive spaces yield empty arguments; an empty text yields ``("",)``.
    """
    return tuple(text.strip().split(" "))


def quote(value: str) -> str:
    """Quote a string with double quotes and backslash escapes."""
    return json.dumps(value, ensure_ascii=False)
