"""Clear the terminal."""

from __future__ import annotations

from typing import List

from prompt_toolkit.shortcuts import clear

from .base import Command
from ..context import SessionContext


class ClearCommand(Command):
    def __init__(self) -> None:
        super().__init__("clear", "Clear the screen", aliases=("cls",))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        clear()
        return 0
