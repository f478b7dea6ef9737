"""prompt_toolkit completer for inspx-dbg."""

from __future__ import annotations

import shlex
from typing import Dict, Iterable, List, Sequence

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from inspx.filters import known_keys
from inspx.memory import VALUE_TYPE_NAMES

from .commands import CommandRegistry
from .commands.listing import LIST_TARGETS
from .context import SessionContext

STORE_PREFIXES: Sequence[str] = ("lib:", "field:")
STORE_SUBCMDS: Sequence[str] = ("list", "next", "prev", "sort", "move", "remove", "clear", "filter")

SUBCOMMANDS: Dict[str, Sequence[str]] = {
    "field": STORE_SUBCMDS,
    "lib": tuple(STORE_SUBCMDS) + ("save",),
    "list": LIST_TARGETS,
    "hook": ("add", "remove", "enable", "disable", "list", "clear"),
    "scan": ("bytes", "string", "value", "next", "changed", "unchanged", "snapshot", "results", "clear"),
    "patch": ("bytes", "nop", "restore"),
    "thread": ("list", "regs", "stack", "backtrace"),
}
SORT_KEYS: Sequence[str] = ("addr", "name", "size")

# Position (token index) of the value type argument.
TYPE_POSITIONS: Dict[str, int] = {"read": 2, "write": 3, "view": 3}
TARGET_COMMANDS = {"select", "read", "write", "view", "goto", "disas", "nop"}


def _normalise_tokens(text: str) -> List[str]:
    if not text:
        return []
    try:
        tokens = shlex.split(text, posix=True)
        trailing = text[-1].isspace()
    except ValueError:
        tokens = text.strip().split()
        trailing = text.endswith((" ", "\t"))
    if trailing:
        tokens.append("")
    return tokens


class InspxCompleter(Completer):
    """Context-aware completer for command names, subcommands, types and selectors."""

    def __init__(self, ctx: SessionContext, registry: CommandRegistry) -> None:
        self.ctx = ctx
        self.registry = registry

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        tokens = _normalise_tokens(document.text_before_cursor)
        if not tokens:
            yield from self._yield(self._command_names(), "")
            return
        prefix = tokens[-1]
        if len(tokens) == 1:
            yield from self._yield(self._command_names(), prefix)
            return
        command = self.registry.get(self.ctx.resolve_alias(tokens[0]))
        if command is None:
            return
        name = command.name
        position = len(tokens) - 1
        yield from self._yield(self._candidates(name, tokens, position), prefix)

    def _candidates(self, name: str, tokens: List[str], position: int) -> List[str]:
        if position == 1 and name in SUBCOMMANDS:
            return list(SUBCOMMANDS[name])
        if TYPE_POSITIONS.get(name) == position:
            return list(VALUE_TYPE_NAMES)
        if position == 1 and name in TARGET_COMMANDS:
            return list(STORE_PREFIXES)
        subcmd = tokens[1] if len(tokens) > 1 else ""
        if position == 2 and ((name == "hook" and subcmd == "add") or name == "patch"):
            return list(STORE_PREFIXES)
        if name in ("field", "lib") and subcmd == "sort" and position == 2:
            return list(SORT_KEYS)
        if (name in ("field", "lib") and subcmd == "filter") or (name == "list" and position >= 2):
            return known_keys()
        if name == "scan" and subcmd == "value" and position == 2:
            return list(VALUE_TYPE_NAMES)
        return []

    def _command_names(self) -> List[str]:
        names: List[str] = []
        for command in self.registry.list_commands():
            names.append(command.name)
            names.extend(command.aliases)
        return names

    @staticmethod
    def _yield(candidates: Iterable[str], prefix: str) -> Iterable[Completion]:
        needle = prefix.lower()
        for entry in sorted(dict.fromkeys(candidates)):
            if entry.lower().startswith(needle):
                yield Completion(entry, start_position=-len(prefix))


__all__ = ["InspxCompleter"]
