"""Rooms: access control and message delivery."""

from __future__ import annotations

from typing import TYPE_CHECKING

import nio
from nio.exceptions import LocalProtocolError

from ..errors import JoinError, SendError
from ..logging import get_logger
from .message import Message, new_html_message, new_markdown_message, new_text_message
from .types import EVENT_TYPE_ROOM_MESSAGE

if TYPE_CHECKING:
    from .client import Client

logger = get_logger(__name__)


class Room:
    """A Matrix room as seen by a Client.

    Rooms are cheap and created per event or operation. They borrow the
    client's configuration and own no state of their own.
    """

    def __init__(self, client: Client, room_id: str) -> None:
        self.client = client
        self.id = room_id

    def __repr__(self) -> str:
        return f"Room({self.id!r})"

    def allowed(self) -> bool:
        """Return True if the bot may respond in this room.

        All rooms are allowed when no allow-list is configured.
        """
        allowed_rooms = self.client.config.allowed_rooms
        if not allowed_rooms:
            return True
        return self.id in allowed_rooms

    async def send_message(self, message: Message) -> str:
        """Send a message to the room and return its event ID."""
        if not message.msgtype:
            message = message.with_msgtype(self.client.config.message_type)

        try:
            response = await self.client.matrix.room_send(
                self.id, EVENT_TYPE_ROOM_MESSAGE, message.to_content()
            )
        except (LocalProtocolError, OSError) as exc:
            raise SendError(f"error sending message: {exc}") from exc
        if isinstance(response, nio.RoomSendError):
            raise SendError(f"error sending message: {response.message}")
        logger.debug("matrix.send.ok", room_id=self.id, event_id=response.event_id)
        return response.event_id

    async def send_markdown(self, markdown: str) -> str:
        """Send a Markdown message as plain text and HTML.

        The given Markdown is not sanitized.
        """
        return await self.send_message(new_markdown_message(markdown))

    async def send_text(self, plain: str) -> str:
        """Send a plain text message."""
        return await self.send_message(new_text_message(plain))

    async def send_html(self, plain: str, html: str) -> str:
        """Send a plain and HTML formatted message."""
        return await self.send_message(new_html_message(plain, html))

    async def join(self) -> str:
        """Join the room and return its room ID."""
        try:
            response = await self.client.matrix.join(self.id)
        except (LocalProtocolError, OSError) as exc:
            raise JoinError(f"unable to join room: {exc}") from exc
        if isinstance(response, nio.JoinError):
            raise JoinError(f"unable to join room: {response.message}")
        return response.room_id
