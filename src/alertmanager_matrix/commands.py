"""Chat commands for querying and managing Alertmanager."""

from __future__ import annotations

import re

from .alertmanager.client import AlertmanagerClient
from .alertmanager.models import SILENCE_STATE_ACTIVE, SILENCE_STATES
from .bot.client import Client
from .bot.command import Command
from .bot.message import (
    Message,
    new_html_message,
    new_markdown_message,
    new_text_message,
)
from .errors import AlertmanagerError
from .formatting import Formatter, format_silences
from .logging import get_logger

logger = get_logger(__name__)

SILENCES_USAGE = "usage: `silences [active|pending|expired]`"
SILENCE_DEL_USAGE = "usage: `silence del <id>`"
SILENCE_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")


class AlertCommands:
    """The ``alerts``, ``silences`` and ``silence`` commands."""

    def __init__(
        self,
        alertmanager: AlertmanagerClient,
        formatter: Formatter,
        *,
        show_labels: bool = False,
    ) -> None:
        self.alertmanager = alertmanager
        self.formatter = formatter
        self.show_labels = show_labels

    def commands(self) -> dict[str, Command]:
        return {
            "alerts": Command(
                summary="Shows active alerts.",
                description=(
                    "Shows active alerts: use `alerts labels` to include labels."
                ),
                handler=self.alerts,
            ),
            "silences": Command(
                summary="Shows silences.",
                description=(
                    "Shows silences in the given state, default active: "
                    + SILENCES_USAGE
                ),
                handler=self.silences,
            ),
            "silence": Command(
                summary="Manages silences.",
                subcommands={
                    "del": Command(
                        summary="Expires a silence.",
                        description=f"Expires a silence: {SILENCE_DEL_USAGE}",
                        handler=self.silence_del,
                    ),
                },
            ),
        }

    def register(self, client: Client) -> None:
        for name, command in self.commands().items():
            client.set_command(name, command)

    async def alerts(self, sender: str, cmd: str, *args: str) -> Message:
        show_labels = self.show_labels or "labels" in args
        try:
            alerts = await self.alertmanager.get_alerts()
        except AlertmanagerError as exc:
            return new_text_message(f"error fetching alerts: {exc}")
        if not alerts:
            return new_text_message("no active alerts")
        plain, html = self.formatter.format_alerts(alerts, show_labels)
        return new_html_message(plain, html)

    async def silences(self, sender: str, cmd: str, *args: str) -> Message:
        state = args[0] if args and args[0] else SILENCE_STATE_ACTIVE
        if state not in SILENCE_STATES:
            return new_markdown_message(SILENCES_USAGE)
        try:
            silences = await self.alertmanager.get_silences()
        except AlertmanagerError as exc:
            return new_text_message(f"error fetching silences: {exc}")
        md = format_silences(silences, state)
        if not md:
            return new_text_message(f"no {state} silences")
        return new_markdown_message(md)

    async def silence_del(self, sender: str, cmd: str, *args: str) -> Message:
        if len(args) != 1 or not SILENCE_ID_RE.match(args[0]):
            return new_markdown_message(SILENCE_DEL_USAGE)
        silence_id = args[0]
        try:
            await self.alertmanager.delete_silence(silence_id)
        except AlertmanagerError as exc:
            return new_text_message(f"error expiring silence {silence_id}: {exc}")
        logger.info(
            "alertmanager.silence.expired", silence_id=silence_id, sender=sender
        )
        return new_markdown_message(f"silence `{silence_id}` expired")
