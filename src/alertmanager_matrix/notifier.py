"""Polls Alertmanager and announces alert changes in rooms."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

import anyio

from .alertmanager.client import AlertmanagerClient
from .alertmanager.models import Alert
from .bot.client import Client
from .bot.message import new_html_message
from .errors import AlertmanagerError, SendError
from .formatting import Formatter
from .logging import get_logger

logger = get_logger(__name__)


class AlertNotifier:
    """Announces new and resolved alerts.

    An alert is new when its fingerprint was not seen in the previous poll,
    and resolved when it disappears. Alerts without a fingerprint are ignored.
    """

    def __init__(
        self,
        client: Client,
        alertmanager: AlertmanagerClient,
        formatter: Formatter,
        room_ids: Sequence[str],
        *,
        interval: float = 60.0,
        show_labels: bool = False,
    ) -> None:
        self.client = client
        self.alertmanager = alertmanager
        self.formatter = formatter
        self.room_ids = tuple(room_ids)
        self.interval = interval
        self.show_labels = show_labels
        self._known: dict[str, Alert] = {}

    def diff(self, alerts: Sequence[Alert]) -> list[Alert]:
        """Update the known alerts and return the changes to announce."""
        current = {a.fingerprint: a for a in alerts if a.fingerprint}
        changes = [a for fp, a in current.items() if fp not in self._known]
        changes.extend(
            replace(a, resolved=True)
            for fp, a in self._known.items()
            if fp not in current
        )
        self._known = current
        return changes

    async def poll_once(self) -> int:
        """Poll once and send any changes. Returns the number of changes."""
        alerts = await self.alertmanager.get_alerts()
        changes = self.diff(alerts)
        if changes:
            await self.send_alerts(changes)
        return len(changes)

    async def send_alerts(self, alerts: Sequence[Alert]) -> None:
        plain, html = self.formatter.format_alerts(alerts, self.show_labels)
        message = new_html_message(plain, html)
        for room_id in self.room_ids:
            room = self.client.new_room(room_id)
            if not room.allowed():
                continue
            try:
                await room.send_message(message)
            except SendError as exc:
                logger.warning(
                    "notifier.send.failed", room_id=room_id, error=str(exc)
                )

    async def run(self) -> None:
        logger.info(
            "notifier.started", interval=self.interval, rooms=len(self.room_ids)
        )
        while True:
            try:
                changes = await self.poll_once()
            except AlertmanagerError as exc:
                logger.warning("notifier.poll.failed", error=str(exc))
            else:
                logger.debug("notifier.poll.ok", changes=changes)
            await anyio.sleep(self.interval)
