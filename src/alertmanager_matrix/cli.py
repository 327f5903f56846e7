"""Command line entry point."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import anyio
import click

from . import __version__
from .alertmanager.client import AlertmanagerClient
from .bot.client import Client
from .commands import AlertCommands
from .config import AppConfig, load_config
from .errors import ConfigError, JoinError, SyncError
from .formatting import Formatter
from .logging import configure_logging, get_logger
from .notifier import AlertNotifier

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Bot:
    config: AppConfig
    client: Client
    alertmanager: AlertmanagerClient
    notifier: AlertNotifier


def build_bot(config: AppConfig) -> Bot:
    """Wire up the client, commands and notifier. Raises ConfigError."""
    client = Client(
        config.homeserver, config.user_id, config.access_token, config.client
    )
    alertmanager = AlertmanagerClient(
        config.alertmanager_url, timeout=config.alertmanager_timeout
    )
    formatter = Formatter(
        config.formatting.text_template,
        config.formatting.html_template,
        config.formatting.colors,
        config.formatting.icons,
    )
    AlertCommands(alertmanager, formatter, show_labels=config.show_labels).register(
        client
    )
    notifier = AlertNotifier(
        client,
        alertmanager,
        formatter,
        config.rooms,
        interval=config.notify_interval,
        show_labels=config.show_labels,
    )
    return Bot(config, client, alertmanager, notifier)


async def _join_rooms(bot: Bot) -> None:
    for room_id in bot.config.rooms:
        try:
            joined = await bot.client.new_room(room_id).join()
        except JoinError as exc:
            logger.warning("matrix.join.failed", room_id=room_id, error=str(exc))
        else:
            logger.info("matrix.join.ok", room_id=joined)


async def run_bot(bot: Bot) -> None:
    try:
        await bot.client.initial_sync()
        await _join_rooms(bot)
        async with anyio.create_task_group() as tg:
            tg.start_soon(bot.notifier.run)
            await bot.client.run()
            tg.cancel_scope.cancel()
    finally:
        await bot.client.close()
        await bot.alertmanager.close()


@click.command()
@click.version_option(version=__version__, prog_name="alertmanager-matrix")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="alertmanager-matrix.toml",
    show_default=True,
    help="Config file path.",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
def main(config_path: Path, verbose: bool, log_json: bool) -> None:
    """Send Alertmanager alerts to Matrix and answer chat commands."""
    configure_logging(verbose=verbose, log_json=log_json)
    try:
        bot = build_bot(load_config(config_path))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        anyio.run(run_bot, bot)
    except SyncError as exc:
        raise click.ClickException(str(exc)) from exc
