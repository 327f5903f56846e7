"""Transport-neutral event types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

EVENT_TYPE_ROOM_MESSAGE = "m.room.message"
EVENT_TYPE_ROOM_NAME = "m.room.name"
EVENT_TYPE_ROOM_TOPIC = "m.room.topic"
EVENT_TYPE_ROOM_AVATAR = "m.room.avatar"
EVENT_TYPE_ROOM_PINNED_EVENTS = "m.room.pinned_events"


@dataclass(frozen=True, slots=True)
class Event:
    """An inbound Matrix room event.

    ``body`` is None for events without a textual body.
    """

    room_id: str
    event_id: str
    sender: str
    body: str | None
    event_type: str = EVENT_TYPE_ROOM_MESSAGE

    @classmethod
    def from_nio(cls, room: Any, event: Any) -> Event:
        """Build an Event from a nio room and room event."""
        source = getattr(event, "source", None) or {}
        body = getattr(event, "body", None)
        return cls(
            room_id=room.room_id,
            event_id=event.event_id,
            sender=event.sender,
            body=body if isinstance(body, str) else None,
            event_type=str(source.get("type") or EVENT_TYPE_ROOM_MESSAGE),
        )
