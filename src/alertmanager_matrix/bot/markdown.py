"""Markdown to Matrix HTML rendering."""

from __future__ import annotations

from functools import lru_cache

from markdown_it import MarkdownIt


@lru_cache(maxsize=1)
def _renderer() -> MarkdownIt:
    # CommonMark with raw HTML enabled, plus GFM tables and strikethrough.
    return MarkdownIt("commonmark").enable(["table", "strikethrough"])


def render_markdown(text: str) -> str:
    """Render Markdown to HTML.

    The input is not sanitized: raw HTML in ``text`` is passed through.
    """
    return _renderer().render(text)
