"""Interactive REPL for inspx-dbg."""

from __future__ import annotations

import logging
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from .commands import CommandRegistry
from .commands.help import HelpCommand
from .completion import InspxCompleter
from .context import SessionContext
from .history import HistoryStore
from .output import STYLE
from .parser import split_command

LOGGER = logging.getLogger("inspx_dbg.repl")


class InspxREPL:
    """prompt_toolkit REPL whose prompt tracks the navigator selection."""

    def __init__(
        self,
        ctx: SessionContext,
        registry: CommandRegistry,
        *,
        history_store: Optional[HistoryStore] = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.history_store = history_store
        help_command = self.registry.get("help")
        if isinstance(help_command, HelpCommand):
            help_command.bind(registry)

    def prompt(self) -> FormattedText:
        return FormattedText(self.ctx.navigator.prompt_fragments() + [("class:prompt", "> ")])

    def run(self) -> int:
        history = InMemoryHistory()
        if self.history_store:
            for entry in self.history_store.snapshot():
                history.append_string(entry)
        session: PromptSession = PromptSession(
            history=history,
            completer=InspxCompleter(self.ctx, self.registry),
            complete_while_typing=False,
            style=STYLE,
        )
        buffer: list[str] = []
        while True:
            try:
                with patch_stdout():
                    line = session.prompt(self.prompt() if not buffer else "... ")
            except (EOFError, KeyboardInterrupt):
                print()
                self.ctx.disconnect()
                return 0
            if self._handle_multiline(buffer, line):
                continue
            payload = " ".join(buffer) if buffer else line
            buffer.clear()
            self._record_history(payload)
            self.dispatch(payload)

    def dispatch(self, line: str) -> int:
        stripped = line.strip()
        if not stripped:
            return 0
        argv = split_command(stripped)
        if not argv:
            return 0
        cmd_name, *cmd_args = argv
        if cmd_args and cmd_args[-1].startswith("#parse-error"):
            print(f"Parse error: {cmd_args[-1].split(':', 1)[-1]}")
            return 1
        cmd_name = self.ctx.resolve_alias(cmd_name)
        command = self.registry.get(cmd_name)
        if not command:
            print(f"Unknown command: {cmd_name}")
            return 1
        try:
            return command.run(self.ctx, cmd_args)
        except SystemExit:
            raise
        except Exception as exc:
            LOGGER.exception("command failed")
            print(f"Command '{cmd_name}' failed: {exc}")
            return 1

    def _handle_multiline(self, buffer: list[str], line: str) -> bool:
        stripped = line.rstrip()
        if stripped.endswith("\\"):
            buffer.append(stripped[:-1])
            return True
        if buffer:
            buffer.append(stripped)
        return False

    def _record_history(self, entry: str) -> None:
        stripped = entry.strip()
        if stripped and self.history_store:
            self.history_store.append(stripped)
