"""Exit command."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import SessionContext


class ExitCommand(Command):
    def __init__(self) -> None:
        super().__init__("exit", "Leave the inspector", aliases=("quit", "q"))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        ctx.disconnect()
        raise SystemExit(0)
