"""Alertmanager API v2 data models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..bot.parse import quote

SILENCE_STATE_ACTIVE = "active"
SILENCE_STATE_PENDING = "pending"
SILENCE_STATE_EXPIRED = "expired"
SILENCE_STATES = (SILENCE_STATE_ACTIVE, SILENCE_STATE_PENDING, SILENCE_STATE_EXPIRED)


def _parse_time(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _str_dict(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) for k, v in value.items()}


@dataclass(frozen=True, slots=True)
class Matcher:
    name: str
    value: str
    is_equal: bool = True
    is_regex: bool = False

    @property
    def operator(self) -> str:
        if self.is_regex:
            return "=~" if self.is_equal else "!~"
        return "=" if self.is_equal else "!="

    def __str__(self) -> str:
        return f"{self.name}{self.operator}{quote(self.value)}"

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Matcher:
        return cls(
            name=str(data.get("name") or ""),
            value=str(data.get("value") or ""),
            # isEqual was added in Alertmanager 0.22 and defaults to true.
            is_equal=bool(data.get("isEqual", True)),
            is_regex=bool(data.get("isRegex", False)),
        )


def format_matchers(matchers: Iterable[Matcher]) -> str:
    """Render matchers as ``{name="value",other=~"regex"}``."""
    return "{" + ",".join(str(m) for m in matchers) + "}"


@dataclass(frozen=True, slots=True)
class Alert:
    """A single alert as returned by ``GET /api/v2/alerts``.

    ``resolved`` marks an alert that is known to have stopped firing even if
    Alertmanager no longer returns it.
    """

    labels: Mapping[str, str] = field(default_factory=dict)
    annotations: Mapping[str, str] = field(default_factory=dict)
    fingerprint: str = ""
    state: str = "active"
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    generator_url: str = ""
    resolved: bool = False

    @property
    def status_string(self) -> str:
        """The status used for icons and colors.

        One of ``resolved``, ``silenced``, the ``severity`` label, or ``alert``.
        """
        if self.resolved:
            return "resolved"
        if self.ends_at is not None and self.ends_at <= datetime.now(UTC):
            return "resolved"
        if self.state == "suppressed":
            return "silenced"
        return self.labels.get("severity") or "alert"

    @property
    def alert_name(self) -> str:
        return self.labels.get("alertname", "")

    @property
    def summary(self) -> str:
        return self.annotations.get("summary") or self.annotations.get(
            "description", ""
        )

    @property
    def label_string(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in sorted(self.labels.items()))

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Alert:
        status = data.get("status")
        state = status.get("state") if isinstance(status, Mapping) else None
        return cls(
            labels=_str_dict(data.get("labels")),
            annotations=_str_dict(data.get("annotations")),
            fingerprint=str(data.get("fingerprint") or ""),
            state=str(state or "active"),
            starts_at=_parse_time(data.get("startsAt")),
            ends_at=_parse_time(data.get("endsAt")),
            generator_url=str(data.get("generatorURL") or ""),
        )


@dataclass(frozen=True, slots=True)
class Silence:
    """A silence as returned by ``GET /api/v2/silences``."""

    id: str
    state: str
    matchers: tuple[Matcher, ...] = ()
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    created_by: str = ""
    comment: str = ""

    @property
    def matcher_string(self) -> str:
        return format_matchers(self.matchers)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Silence:
        status = data.get("status")
        state = status.get("state") if isinstance(status, Mapping) else None
        raw_matchers = data.get("matchers")
        matchers = tuple(
            Matcher.from_api(m)
            for m in (raw_matchers if isinstance(raw_matchers, list) else [])
            if isinstance(m, Mapping)
        )
        return cls(
            id=str(data.get("id") or ""),
            state=str(state or ""),
            matchers=matchers,
            starts_at=_parse_time(data.get("startsAt")),
            ends_at=_parse_time(data.get("endsAt")),
            created_by=str(data.get("createdBy") or ""),
            comment=str(data.get("comment") or ""),
        )
