"""A small Matrix bot framework with a recursive command tree."""

from __future__ import annotations

from .client import Client, unknown_command_handler
from .command import Command, MessageHandler
from .message import (
    Message,
    new_html_message,
    new_markdown_message,
    new_text_message,
)
from .room import Room
from .types import Event

__all__ = [
    "Client",
    "Command",
    "Event",
    "Message",
    "MessageHandler",
    "Room",
    "new_html_message",
    "new_markdown_message",
    "new_text_message",
    "unknown_command_handler",
]
