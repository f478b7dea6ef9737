"""Command registry for inspx-dbg."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .base import Command
from .alias import AliasCommand
from .clear import ClearCommand
from .disasm import DisasCommand
from .env import EnvCommand
from .exit import ExitCommand
from .help import HelpCommand
from .hook import HookCommand
from .listing import ListCommand
from .memory import ReadCommand, ViewCommand, WriteCommand
from .navigate import AddCommand, DeselectCommand, GotoCommand, SelectCommand, SubCommand
from .patch import NopCommand, PatchCommand
from .scan import ScanCommand
from .stores import FieldCommand, LibCommand
from .thread import ThreadCommand


class CommandRegistry:
    """Stores the known commands and resolves aliases."""

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}
        self._ordered: List[Command] = []

    def register(self, command: Command) -> None:
        self._ordered.append(command)
        self._commands[command.name] = command
        for alias in command.aliases:
            self._commands[alias] = command

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def list_commands(self) -> Iterable[Command]:
        return self._ordered


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    commands = [
        HelpCommand(),
        EnvCommand(),
        SelectCommand(),
        DeselectCommand(),
        AddCommand(),
        SubCommand(),
        GotoCommand(),
        FieldCommand(),
        LibCommand(),
        ListCommand(),
        ReadCommand(),
        WriteCommand(),
        ViewCommand(),
        HookCommand(),
        DisasCommand(),
        ScanCommand(),
        PatchCommand(),
        NopCommand(),
        ThreadCommand(),
        AliasCommand(),
        ClearCommand(),
        ExitCommand(),
    ]
    for command in commands:
        registry.register(command)
        bind = getattr(command, "bind", None)
        if callable(bind):
            bind(registry)
    return registry


__all__ = ["CommandRegistry", "build_registry"]
