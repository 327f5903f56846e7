"""Tests for bot/client.py - command matching and dispatch."""

from __future__ import annotations

from types import SimpleNamespace

import anyio
import nio
import pytest

from alertmanager_matrix.bot.client import Client
from alertmanager_matrix.bot.command import Command
from alertmanager_matrix.bot.message import Message, new_text_message
from alertmanager_matrix.config import ClientConfig
from alertmanager_matrix.errors import ConfigError, SyncError

from matrix_fixtures import (
    BOT_USER_ID,
    ROOM_ID,
    make_client,
    make_event,
    make_nio_event,
)


def _pong(sender: str, cmd: str, *args: str) -> Message:
    return new_text_message("pong")


def _echo(sender: str, cmd: str, *args: str) -> Message:
    return new_text_message("|".join(args))


def _client(**config_kwargs) -> tuple[Client, object]:
    client, fake = make_client(ClientConfig(**config_kwargs))
    client.set_command("ping", Command(summary="Replies pong.", handler=_pong))
    client.set_command("echo", Command(summary="Echoes.", handler=_echo))
    return client, fake


def test_invalid_homeserver_is_config_error() -> None:
    with pytest.raises(ConfigError):
        Client("not a url", BOT_USER_ID, "token")
    with pytest.raises(ConfigError):
        Client("ftp://matrix.example.org", BOT_USER_ID, "token")


def test_defaults() -> None:
    client, fake = make_client()
    assert client.config.message_type == "m.notice"
    assert list(client.commands) == ["help"]
    assert fake.callbacks[0][1] is nio.RoomMessage


def test_empty_message_type_gets_default() -> None:
    client, _ = make_client(ClientConfig(message_type=""))
    assert client.config.message_type == "m.notice"


def test_set_command_replaces_mapping() -> None:
    client, _ = make_client()
    before = client.commands

    client.set_command("ping", Command(handler=_pong))

    assert "ping" not in before
    assert set(client.commands) == {"help", "ping"}


@pytest.mark.anyio
async def test_prefix_match_routes_command() -> None:
    client, _ = _client(command_prefixes=("!",))

    msg = await client.handle_command(make_event("!ping"))

    assert msg is not None
    assert msg.body == "pong"


@pytest.mark.anyio
async def test_highlight_routes_like_prefix() -> None:
    client, _ = _client(command_prefixes=("!",))

    by_prefix = await client.handle_command(make_event("!ping"))
    by_id = await client.handle_command(make_event(f"{BOT_USER_ID}: ping"))
    by_name = await client.handle_command(make_event("Alerts: ping"))

    assert by_prefix == by_id == by_name


@pytest.mark.anyio
async def test_user_id_highlight_skips_display_name_lookup() -> None:
    client, fake = _client()

    await client.handle_command(make_event(f"{BOT_USER_ID}: ping"))

    assert fake.displayname_calls == 0


@pytest.mark.anyio
async def test_display_name_failure_falls_back_to_prefixes() -> None:
    client, _ = make_client(ClientConfig(command_prefixes=("!",)), display_name=None)
    client.set_command("ping", Command(handler=_pong))

    assert await client.handle_command(make_event("Alerts: ping")) is None
    msg = await client.handle_command(make_event("!ping"))
    assert msg is not None
    assert msg.body == "pong"


@pytest.mark.anyio
async def test_display_name_exception_is_not_fatal() -> None:
    client, fake = _client()

    async def boom():
        raise OSError("connection reset")

    fake.get_displayname = boom

    assert await client.handle_command(make_event("Alerts: ping")) is None


@pytest.mark.anyio
async def test_ignore_highlights() -> None:
    client, fake = _client(ignore_highlights=True, command_prefixes=("!",))

    assert await client.handle_command(make_event(f"{BOT_USER_ID}: ping")) is None
    assert await client.handle_command(make_event("Alerts: ping")) is None
    assert fake.displayname_calls == 0


@pytest.mark.anyio
async def test_own_messages_are_ignored() -> None:
    client, _ = _client(command_prefixes=("",))

    assert await client.handle_command(make_event("ping", sender=BOT_USER_ID)) is None


@pytest.mark.anyio
async def test_events_without_body_are_ignored() -> None:
    client, _ = _client(command_prefixes=("",))

    assert await client.handle_command(make_event(None)) is None


@pytest.mark.anyio
async def test_unmatched_message_is_ignored() -> None:
    client, _ = _client(command_prefixes=("!",))

    assert await client.handle_command(make_event("ping")) is None


@pytest.mark.anyio
async def test_prefixes_first_match_wins() -> None:
    client, _ = _client(command_prefixes=("!am ", "!", ""))

    first = await client.handle_command(make_event("!am ping"))
    catch_all = await client.handle_command(make_event("echo x"))

    assert first is not None and first.body == "pong"
    assert catch_all is not None and catch_all.body == "x"


@pytest.mark.anyio
async def test_unknown_command() -> None:
    client, _ = _client(command_prefixes=("!",))

    msg = await client.handle_command(make_event("!bogus"))

    assert msg is not None
    assert 'unknown command: "bogus"' in msg.body


@pytest.mark.anyio
async def test_bare_prefix_is_unknown_empty_command() -> None:
    client, _ = _client(command_prefixes=("!",))

    msg = await client.handle_command(make_event("!  "))

    assert msg is not None
    assert msg.body == 'unknown command: ""'


@pytest.mark.anyio
async def test_tokens_split_on_single_spaces() -> None:
    client, _ = _client(command_prefixes=("!",))

    msg = await client.handle_command(make_event("!echo a  b \n"))

    assert msg is not None
    assert msg.body == "a||b"


@pytest.mark.anyio
async def test_help_lists_registered_commands() -> None:
    client, _ = _client(command_prefixes=("!",))

    msg = await client.handle_command(make_event("!help"))

    assert msg is not None
    lines = msg.body.splitlines()
    assert lines[0] == "- `echo`: Echoes."
    assert lines[-1] == "- `ping`: Replies pong."
    assert any(line.startswith("- `help`: ") for line in lines)


@pytest.mark.anyio
async def test_help_nested_command() -> None:
    client, _ = _client(command_prefixes=("!",))
    client.set_command(
        "admin",
        Command(
            summary="Administration.",
            subcommands={"ban": Command(summary="Bans a user.", handler=_pong)},
        ),
    )

    msg = await client.handle_command(make_event("!help admin ban"))

    assert msg is not None
    assert msg.body == "Bans a user."


@pytest.mark.anyio
async def test_help_sees_commands_registered_later() -> None:
    client, _ = _client(command_prefixes=("!",))
    client.set_command("late", Command(summary="Late.", handler=_pong))

    msg = await client.handle_command(make_event("!help late"))

    assert msg is not None
    assert msg.body == "Late."


@pytest.mark.anyio
async def test_handle_event_sends_reply() -> None:
    client, fake = _client(command_prefixes=("!",))

    await client.handle_event(make_event("!ping"))

    assert fake.sent == [
        {
            "room_id": ROOM_ID,
            "type": "m.room.message",
            "content": {"msgtype": "m.notice", "body": "pong"},
        }
    ]


@pytest.mark.anyio
async def test_handle_event_disallowed_room_is_dropped() -> None:
    client, fake = _client(
        command_prefixes=("!",), allowed_rooms=frozenset({"!roomA:example.org"})
    )

    await client.handle_event(make_event("!ping", room_id="!roomB:example.org"))

    assert fake.sent == []


@pytest.mark.anyio
async def test_handle_event_disallowed_room_is_not_routed() -> None:
    calls: list[str] = []

    def handler(sender: str, cmd: str, *args: str) -> Message:
        calls.append(cmd)
        return new_text_message("x")

    client, _ = make_client(
        ClientConfig(command_prefixes=("!",), allowed_rooms=frozenset({"!a:x"}))
    )
    client.set_command("x", Command(handler=handler))

    await client.handle_event(make_event("!x", room_id="!b:x"))

    assert calls == []


@pytest.mark.anyio
async def test_handle_event_without_reply_sends_nothing() -> None:
    client, fake = _client(command_prefixes=("!",))
    client.set_command("quiet", Command(handler=lambda sender, cmd, *args: None))

    await client.handle_event(make_event("!quiet"))

    assert fake.sent == []


@pytest.mark.anyio
async def test_handle_event_send_error_is_not_raised() -> None:
    client, fake = _client(command_prefixes=("!",))
    fake.send_error = "M_FORBIDDEN"

    await client.handle_event(make_event("!ping"))

    assert fake.sent == []


@pytest.mark.anyio
async def test_callback_ignores_initial_sync() -> None:
    client, fake = _client(command_prefixes=("!",))
    callback, _ = fake.callbacks[0]
    room = SimpleNamespace(room_id=ROOM_ID)
    event = SimpleNamespace(
        event_id="$1", sender="@alice:example.org", body="!ping", source={}
    )

    await callback(room, event)
    assert fake.sent == []

    client._synced = True
    await callback(room, event)
    assert [s["content"]["body"] for s in fake.sent] == ["pong"]


@pytest.mark.anyio
async def test_callback_handler_errors_are_logged() -> None:
    client, fake = _client(command_prefixes=("!",))

    def broken(sender: str, cmd: str, *args: str) -> Message:
        raise RuntimeError("handler bug")

    client.set_command("broken", Command(handler=broken))
    client._synced = True
    callback, _ = fake.callbacks[0]

    await callback(
        SimpleNamespace(room_id=ROOM_ID),
        SimpleNamespace(event_id="$1", sender="@alice:x", body="!broken", source={}),
    )

    assert fake.sent == []


@pytest.mark.anyio
async def test_set_message_handler_replaces_command_interface() -> None:
    client, fake = _client(command_prefixes=("!",))
    seen: list[str | None] = []

    async def handler(event) -> None:
        seen.append(event.body)

    client.set_message_handler("m.room.message", handler)
    client._synced = True
    callback, _ = fake.callbacks[0]

    await callback(
        SimpleNamespace(room_id=ROOM_ID),
        SimpleNamespace(event_id="$1", sender="@alice:x", body="!ping", source={}),
    )

    assert len(fake.callbacks) == 1
    assert seen == ["!ping"]
    assert fake.sent == []


@pytest.mark.anyio
async def test_close_closes_matrix_client() -> None:
    client, fake = make_client()
    await client.close()
    assert fake.closed is True


async def _wait_until_syncing(fake) -> None:
    while not fake.syncing:
        await anyio.sleep(0)


@pytest.mark.anyio
async def test_run_skips_initial_sync_and_handles_live_events() -> None:
    client, fake = _client(command_prefixes=("!",))
    fake.history.append(make_nio_event("!ping"))
    fake.live.append(make_nio_event("!echo live", event_id="$live:example.org"))

    async with anyio.create_task_group() as tg:
        tg.start_soon(client.run)
        await _wait_until_syncing(fake)
        client.stop()

    assert fake.sync_calls == 1
    assert [s["content"]["body"] for s in fake.sent] == ["live"]


@pytest.mark.anyio
async def test_run_fails_when_initial_sync_fails() -> None:
    client, fake = _client(command_prefixes=("!",))
    fake.sync_error = "M_UNKNOWN_TOKEN"
    fake.history.append(make_nio_event("!ping"))

    with pytest.raises(SyncError, match="M_UNKNOWN_TOKEN"):
        await client.run()

    assert client._synced is False
    assert fake.syncing is False
    assert fake.sent == []


@pytest.mark.anyio
async def test_initial_sync_marks_client_synced() -> None:
    client, fake = _client()
    assert client._synced is False

    await client.initial_sync()

    assert client._synced is True
    assert fake.sync_calls == 1


@pytest.mark.anyio
async def test_run_after_initial_sync_does_not_sync_again() -> None:
    client, fake = _client()
    await client.initial_sync()

    async with anyio.create_task_group() as tg:
        tg.start_soon(client.run)
        await _wait_until_syncing(fake)
        client.stop()

    assert fake.sync_calls == 1


@pytest.mark.anyio
async def test_stop_from_another_task_ends_run() -> None:
    client, fake = _client()
    finished = False

    async def run() -> None:
        nonlocal finished
        await client.run()
        finished = True

    async def stop_when_syncing() -> None:
        await _wait_until_syncing(fake)
        client.stop()

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            tg.start_soon(run)
            tg.start_soon(stop_when_syncing)

    assert finished is True
    assert client._cancel_scope is None


def test_stop_before_run_is_a_no_op() -> None:
    client, _ = _client()
    client.stop()
