"""Content builders for Matrix message events."""

from __future__ import annotations

from typing import Any

HTML_FORMAT = "org.matrix.custom.html"


def _build_message_content(
    msgtype: str,
    body: str,
    formatted_body: str | None,
) -> dict[str, Any]:
    """Build m.room.message content with an optional HTML body."""
    content: dict[str, Any] = {
        "msgtype": msgtype,
        "body": body,
    }
    if formatted_body:
        content["format"] = HTML_FORMAT
        content["formatted_body"] = formatted_body
    return content
