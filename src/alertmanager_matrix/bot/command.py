"""Recursive command tree used to route chat commands."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field

from .message import Message, new_markdown_message
from .parse import quote

HandlerResult = Message | None | Awaitable[Message | None]
MessageHandler = Callable[..., HandlerResult]
"""Called as ``handler(sender, cmd, *args)``.

``sender`` is the Matrix ID of the sender, ``cmd`` the name the command was
invoked with and ``args`` the remaining arguments. Handlers may be plain
functions or coroutine functions. Returning None sends no reply.
"""

HELP_SUMMARY = "Shows help for a command."
HELP_DESCRIPTION = "This command provides help for commands: use `help <command>`"


@dataclass(eq=False)
class Command:
    """A node in the command tree.

    Subcommands are executed instead of the command itself when the first
    argument names one of them. Each node owns its subcommands; nodes must not
    be shared between parents.
    """

    summary: str = ""
    description: str = ""
    handler: MessageHandler | None = None
    subcommands: Mapping[str, Command] = field(default_factory=dict)

    def _subcommand(self, args: tuple[str, ...]) -> Command | None:
        if not self.subcommands or not args:
            return None
        return self.subcommands.get(args[0])

    @property
    def dispatchable(self) -> bool:
        """Whether execution can be delegated to this node.

        A node without a handler can still route to its own subcommands. A
        node with neither is a placeholder and never selected.
        """
        return self.handler is not None or bool(self.subcommands)

    async def execute(self, sender: str, cmd: str, *args: str) -> Message | None:
        """Execute the command, or the subcommand named by the first argument."""
        sub = self._subcommand(args)
        if sub is not None and sub.dispatchable:
            return await sub.execute(sender, args[0], *args[1:])

        if self.handler is None:
            return new_markdown_message(f"invalid command: {quote(cmd)}")

        result = self.handler(sender, cmd, *args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def get_command(self, cmd: str, *args: str) -> Command:
        """Return the node addressed by the given command name and arguments."""
        sub = self._subcommand(args)
        if sub is not None:
            return sub.get_command(args[0], *args[1:])
        return self

    def help(self) -> str:
        """Return the description if set, otherwise the summary."""
        return self.description or self.summary

    def help_message(self) -> Message:
        """Return the help for this command and a listing of its subcommands."""
        lines: list[str] = []
        if self.help():
            lines.append(self.help())

        if self.subcommands:
            if lines:
                lines.append("")
            lines.extend(self._subcommand_help())

        return new_markdown_message("\n".join(lines))

    def help_command(self) -> Command:
        """Return a help command that looks up commands below this one."""
        return Command(
            summary=HELP_SUMMARY,
            description=HELP_DESCRIPTION,
            handler=self._help_handler,
        )

    def _help_handler(self, sender: str, cmd: str, *args: str) -> Message:
        return self.get_command(cmd, *args).help_message()

    def _subcommand_help(self) -> list[str]:
        entries = dict(self._help_entries())
        return [f"- `{label}`: {entries[label]}" for label in sorted(entries)]

    def _help_entries(self) -> Iterator[tuple[str, str]]:
        # Labels are space-joined paths; grouping nodes without a handler are
        # not listed themselves, only their descendants.
        for name, command in self.subcommands.items():
            if command.handler is not None:
                yield name, command.help()
            for label, text in command._help_entries():
                yield f"{name} {label}", text
