"""Configuration loading.

The configuration is a TOML file::

    [matrix]
    homeserver = "https://matrix.example.org"
    user_id = "@alerts:example.org"
    access_token = "..."          # or env MATRIX_ACCESS_TOKEN
    rooms = ["!ops:example.org"]

    [bot]
    message_type = "m.notice"
    command_prefixes = ["!alerts "]   # first match wins; "" matches all
    ignore_highlights = false
    allowed_rooms = []                 # empty allows all rooms

    [alertmanager]
    url = "http://localhost:9093"

    [formatting]
    colors = { warning = "orange" }

    [notify]
    interval = 60
    show_labels = false
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_MESSAGE_TYPE = "m.notice"
DEFAULT_ALERTMANAGER_URL = "http://localhost:9093"
DEFAULT_NOTIFY_INTERVAL = 60.0


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Tunable behaviour of the bot client.

    ``command_prefixes`` are matched in order and the first match wins. An
    empty prefix matches every message, so put it last if used.
    ``ignore_highlights`` disables matching on ``"<user id>: "`` and
    ``"<display name>: "``, leaving only the prefixes.
    """

    message_type: str = DEFAULT_MESSAGE_TYPE
    command_prefixes: tuple[str, ...] = ()
    ignore_highlights: bool = False
    allowed_rooms: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class FormattingConfig:
    text_template: str | None = None
    html_template: str | None = None
    colors: Mapping[str, str] | None = None
    icons: Mapping[str, str] | None = None


@dataclass(frozen=True, slots=True)
class AppConfig:
    homeserver: str
    user_id: str
    access_token: str
    rooms: tuple[str, ...] = ()
    client: ClientConfig = field(default_factory=ClientConfig)
    alertmanager_url: str = DEFAULT_ALERTMANAGER_URL
    alertmanager_timeout: float = 10.0
    formatting: FormattingConfig = field(default_factory=FormattingConfig)
    notify_interval: float = DEFAULT_NOTIFY_INTERVAL
    show_labels: bool = False


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"unable to read config {path}: {exc}") from exc
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _table(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key} must be a table")
    return value


def _str(
    table: Mapping[str, Any],
    section: str,
    key: str,
    default: str = "",
    *,
    strip: bool = True,
) -> str:
    value = table.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{section}.{key} must be a string")
    return value.strip() if strip else value


def _str_list(table: Mapping[str, Any], section: str, key: str) -> tuple[str, ...]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{section}.{key} must be a list of strings")
    return tuple(value)


def _str_map(
    table: Mapping[str, Any], section: str, key: str
) -> Mapping[str, str] | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping) or not all(
        isinstance(v, str) for v in value.values()
    ):
        raise ConfigError(f"{section}.{key} must be a table of strings")
    return dict(value)


def _bool(table: Mapping[str, Any], section: str, key: str) -> bool:
    value = table.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be a boolean")
    return value


def _number(
    table: Mapping[str, Any], section: str, key: str, default: float
) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        raise ConfigError(f"{section}.{key} must be a positive number")
    return float(value)


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def parse_config(data: Mapping[str, Any]) -> AppConfig:
    """Build an AppConfig from parsed TOML data."""
    matrix = _table(data, "matrix")
    bot = _table(data, "bot")
    alertmanager = _table(data, "alertmanager")
    formatting = _table(data, "formatting")
    notify = _table(data, "notify")

    homeserver = _str(matrix, "matrix", "homeserver").rstrip("/")
    user_id = _str(matrix, "matrix", "user_id")
    access_token = _env("MATRIX_ACCESS_TOKEN") or _str(
        matrix, "matrix", "access_token"
    )
    if not homeserver:
        raise ConfigError("Missing matrix.homeserver")
    if not user_id:
        raise ConfigError("Missing matrix.user_id")
    if not access_token:
        raise ConfigError("Missing matrix.access_token (or env MATRIX_ACCESS_TOKEN)")

    client = ClientConfig(
        message_type=_str(bot, "bot", "message_type", DEFAULT_MESSAGE_TYPE)
        or DEFAULT_MESSAGE_TYPE,
        command_prefixes=_str_list(bot, "bot", "command_prefixes"),
        ignore_highlights=_bool(bot, "bot", "ignore_highlights"),
        allowed_rooms=frozenset(_str_list(bot, "bot", "allowed_rooms")),
    )

    return AppConfig(
        homeserver=homeserver,
        user_id=user_id,
        access_token=access_token,
        rooms=_str_list(matrix, "matrix", "rooms"),
        client=client,
        alertmanager_url=_str(
            alertmanager, "alertmanager", "url", DEFAULT_ALERTMANAGER_URL
        ).rstrip("/"),
        alertmanager_timeout=_number(alertmanager, "alertmanager", "timeout", 10.0),
        formatting=FormattingConfig(
            text_template=_str(
                formatting, "formatting", "text_template", strip=False
            )
            or None,
            html_template=_str(
                formatting, "formatting", "html_template", strip=False
            )
            or None,
            colors=_str_map(formatting, "formatting", "colors"),
            icons=_str_map(formatting, "formatting", "icons"),
        ),
        notify_interval=_number(
            notify, "notify", "interval", DEFAULT_NOTIFY_INTERVAL
        ),
        show_labels=_bool(notify, "notify", "show_labels"),
    )


def load_config(path: Path) -> AppConfig:
    """Load and validate the configuration file at ``path``."""
    config = parse_config(_load_toml(path))
    logger.info(
        "config.loaded",
        path=str(path),
        user_id=config.user_id,
        rooms=len(config.rooms),
        prefixes=len(config.client.command_prefixes),
    )
    return config
