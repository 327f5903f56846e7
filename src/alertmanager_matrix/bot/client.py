"""Matrix bot client: event intake and command dispatch."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any

import anyio
import httpx
import nio

from ..config import DEFAULT_MESSAGE_TYPE, ClientConfig
from ..errors import ConfigError, SendError, SyncError
from ..logging import get_logger
from .command import HELP_DESCRIPTION, HELP_SUMMARY, Command
from .message import Message, new_markdown_message
from .parse import quote, split_command_args, strip_highlight, strip_prefix
from .room import Room
from .types import (
    EVENT_TYPE_ROOM_AVATAR,
    EVENT_TYPE_ROOM_MESSAGE,
    EVENT_TYPE_ROOM_NAME,
    EVENT_TYPE_ROOM_TOPIC,
    Event,
)

logger = get_logger(__name__)

SYNC_TIMEOUT_MS = 30_000

EventHandler = Callable[[Event], Awaitable[None]]

_NIO_EVENT_CLASSES: dict[str, type[nio.Event]] = {
    EVENT_TYPE_ROOM_MESSAGE: nio.RoomMessage,
    EVENT_TYPE_ROOM_NAME: nio.RoomNameEvent,
    EVENT_TYPE_ROOM_TOPIC: nio.RoomTopicEvent,
    EVENT_TYPE_ROOM_AVATAR: nio.RoomAvatarEvent,
}


def unknown_command_handler(sender: str, cmd: str, *args: str) -> Message:
    """Reply to a command that matches nothing in the command tree."""
    if args:
        cmd = args[0]
    return new_markdown_message(f"unknown command: {quote(cmd)}")


def _validate_homeserver(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ConfigError(f"invalid homeserver URL {url!r}: {exc}") from exc
    if parsed.scheme not in {"http", "https"} or not parsed.host:
        raise ConfigError(f"invalid homeserver URL {url!r}")


class Client:
    """A Matrix bot with a simple command interface.

    Text messages that highlight the bot (``"<user id>: "`` or
    ``"<display name>: "``) or start with one of the configured command
    prefixes are split into words and routed through the command tree. The
    tree initially holds only the ``help`` command.
    """

    def __init__(
        self,
        homeserver_url: str,
        user_id: str,
        access_token: str,
        config: ClientConfig | None = None,
        *,
        matrix_client: nio.AsyncClient | None = None,
    ) -> None:
        _validate_homeserver(homeserver_url)

        config = config or ClientConfig()
        if not config.message_type:
            config = replace(config, message_type=DEFAULT_MESSAGE_TYPE)
        self.config = config

        if matrix_client is None:
            matrix_client = nio.AsyncClient(homeserver_url, user_id)
            matrix_client.access_token = access_token
        self.matrix = matrix_client

        self._commands: Mapping[str, Command] = MappingProxyType(
            {"help": self.help_command()}
        )
        self._handlers: dict[str, EventHandler] = {}
        self._synced = False
        self._cancel_scope: anyio.CancelScope | None = None
        self.set_message_handler(EVENT_TYPE_ROOM_MESSAGE, self.handle_event)

    @property
    def user_id(self) -> str:
        return self.matrix.user_id

    @property
    def commands(self) -> Mapping[str, Command]:
        """A read-only snapshot of the registered top-level commands."""
        return self._commands

    async def initial_sync(self) -> None:
        """Fetch the current state without handling its events.

        Events from the initial sync are history. Raises SyncError if the
        homeserver rejects the sync, e.g. for a bad access token.
        """
        response = await self.matrix.sync(timeout=0, full_state=True)
        if isinstance(response, nio.SyncError):
            raise SyncError(f"initial sync failed: {response.message}")
        self._synced = True
        logger.info("matrix.sync.started", user_id=self.user_id)

    async def run(self) -> None:
        """Run the sync loop until stop() is called.

        Performs the initial sync first unless it has already been done.
        """
        with anyio.CancelScope() as scope:
            self._cancel_scope = scope
            try:
                if not self._synced:
                    await self.initial_sync()
                await self.matrix.sync_forever(timeout=SYNC_TIMEOUT_MS)
            finally:
                self._cancel_scope = None
        logger.info("matrix.sync.stopped", user_id=self.user_id)

    def stop(self) -> None:
        """Stop the sync loop started by run()."""
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()

    async def close(self) -> None:
        await self.matrix.close()

    def new_room(self, room_id: str) -> Room:
        return Room(self, room_id)

    def set_command(self, name: str, command: Command) -> None:
        """Register a top-level command, replacing any command of that name.

        The mapping is replaced rather than mutated, so dispatches in flight
        keep the snapshot they started with.
        """
        self._commands = MappingProxyType({**self._commands, name: command})

    def set_message_handler(self, event_type: str, handler: EventHandler) -> None:
        """Set the handler for an event type.

        Setting the handler for ``m.room.message`` replaces the command
        interface.
        """
        first = event_type not in self._handlers
        self._handlers[event_type] = handler
        if not first:
            return

        event_class = _NIO_EVENT_CLASSES.get(event_type, nio.UnknownEvent)

        async def _callback(room: nio.MatrixRoom, event: Any) -> None:
            if not self._synced:
                return
            if event_class is nio.UnknownEvent and event.type != event_type:
                return
            try:
                await self._handlers[event_type](Event.from_nio(room, event))
            except Exception:
                logger.exception(
                    "matrix.handler.failed",
                    event_type=event_type,
                    room_id=room.room_id,
                )

        self.matrix.add_event_callback(_callback, event_class)

    def root_command(self) -> Command:
        return Command(subcommands=self._commands, handler=unknown_command_handler)

    def help_command(self) -> Command:
        """Return a help command covering every registered command."""
        return Command(
            summary=HELP_SUMMARY,
            description=HELP_DESCRIPTION,
            handler=self._help_handler,
        )

    def _help_handler(self, sender: str, cmd: str, *args: str) -> Message:
        return self.root_command().get_command(cmd, *args).help_message()

    async def get_display_name(self) -> str | None:
        """Return the bot's display name, or None if it cannot be fetched."""
        try:
            response = await self.matrix.get_displayname()
        except Exception as exc:
            logger.debug("matrix.displayname.failed", error=str(exc))
            return None
        if isinstance(response, nio.ProfileGetDisplayNameError):
            logger.debug("matrix.displayname.failed", error=response.message)
            return None
        return response.displayname

    async def handle_event(self, event: Event) -> None:
        """Handle a room message and send the command response, if any."""
        room = self.new_room(event.room_id)
        if not room.allowed():
            return

        response = await self.handle_command(event)
        if response is None:
            return

        try:
            await room.send_message(response)
        except SendError as exc:
            logger.warning(
                "matrix.reply.failed",
                room_id=event.room_id,
                event_id=event.event_id,
                error=str(exc),
            )

    async def handle_command(self, event: Event) -> Message | None:
        """Match an event against highlights and prefixes and execute it."""
        text = event.body
        if text is None or event.sender == self.user_id:
            return None

        if not self.config.ignore_highlights:
            rest = strip_highlight(text, self.user_id)
            if rest is None:
                rest = strip_highlight(text, await self.get_display_name())
            if rest is not None:
                return await self.handle_text_message(event.sender, rest)

        rest = strip_prefix(text, self.config.command_prefixes)
        if rest is None:
            return None
        return await self.handle_text_message(event.sender, rest)

    async def handle_text_message(self, sender: str, text: str) -> Message | None:
        return await self.root_command().execute(
            sender, "", *split_command_args(text)
        )
