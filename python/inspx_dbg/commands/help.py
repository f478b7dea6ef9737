"""Help command."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from .base import Command
from ..context import SessionContext
from ..output import emit_error

if TYPE_CHECKING:  # pragma: no cover
    from . import CommandRegistry


class HelpCommand(Command):
    def __init__(self) -> None:
        super().__init__("help", "Show available commands (help <command> for usage)", aliases=("h", "?"))
        self._registry: CommandRegistry | None = None

    def bind(self, registry: "CommandRegistry") -> None:
        self._registry = registry

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        registry = self._registry
        if not registry:
            return 1
        if argv:
            command = registry.get(ctx.resolve_alias(argv[0]))
            if command is None:
                emit_error(ctx, message=f"Unknown command: {argv[0]}")
                return 1
            print(command.format_help())
            if command.aliases:
                print(f"{'':<12} aliases: {', '.join(command.aliases)}")
            usage = getattr(command, "usage", None)
            if usage:
                print(f"{'':<12} usage: {usage}")
            return 0
        for command in registry.list_commands():
            print(command.format_help())
        return 0
