"""Command base classes for inspx-dbg."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from inspx.channel import ChannelError
from inspx.filters import FilterSyntaxError
from inspx.memory import ConversionError, MemoryAccessError
from inspx.store import SelectionError, StoreIndexError

from ..context import SessionContext

# Failures a command reports as a single error line before returning to the prompt.
COMMAND_ERRORS = (
    ChannelError,
    SelectionError,
    StoreIndexError,
    FilterSyntaxError,
    ConversionError,
    MemoryAccessError,
)


@dataclass
class Command:
    """Abstract command description."""

    name: str
    description: str
    aliases: Sequence[str] = field(default_factory=tuple)

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        raise NotImplementedError("Command must implement run()")

    def format_help(self) -> str:
        return f"{self.name:<12} {self.description}"


def error_status(exc: Exception) -> int:
    """Exit status for a reported failure: 2 for agent/channel problems, else 1."""
    return 2 if isinstance(exc, ChannelError) else 1


__all__ = ["Command", "COMMAND_ERRORS", "error_status"]
