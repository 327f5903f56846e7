"""Matrix messages with a plain-text and an optional HTML rendering."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal

from .content_builders import HTML_FORMAT, _build_message_content
from .markdown import render_markdown


@dataclass(frozen=True, slots=True)
class Message:
    """A formatted Matrix message.

    ``msgtype`` may be left empty, in which case the room fills in the
    configured message type when sending.
    """

    body: str
    formatted_body: str = ""
    format: str = ""
    msgtype: str = ""

    @property
    def kind(self) -> Literal["plain", "html"]:
        return "html" if self.formatted_body else "plain"

    def with_msgtype(self, msgtype: str) -> Message:
        return replace(self, msgtype=msgtype)

    def to_content(self) -> dict[str, Any]:
        """Return the m.room.message event content for this message."""
        return _build_message_content(self.msgtype, self.body, self.formatted_body)


def new_text_message(text: str) -> Message:
    """Create a plain-text message."""
    return Message(body=text)


def new_html_message(plain: str, html: str) -> Message:
    """Create a message with plain-text and HTML content."""
    if not html:
        return Message(body=plain)
    return Message(body=plain, formatted_body=html, format=HTML_FORMAT)


def new_markdown_message(markdown: str) -> Message:
    """Create a message from Markdown.

    The Markdown itself is used as the plain-text body and its rendering as
    the HTML body. The Markdown is not sanitized: callers must escape any
    untrusted content.
    """
    return new_html_message(markdown, render_markdown(markdown))
