"""Disassembly command."""

from __future__ import annotations

import argparse
from typing import List

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, render_records, render_store

DEFAULT_COUNT = 20


class DisasCommand(Command):
    usage = "disas [address|selector|symbol] [count] [-f|--function]"

    def __init__(self) -> None:
        super().__init__("disas", "Disassemble instructions into the field store", aliases=("dis",))
        parser = argparse.ArgumentParser(prog="disas", add_help=False)
        parser.add_argument("target", nargs="?")
        parser.add_argument("count", nargs="?", type=lambda text: int(text, 0), default=DEFAULT_COUNT)
        parser.add_argument("-f", "--function", action="store_true", help="Disassemble the whole function")
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_intermixed_args(argv)
        except SystemExit:
            return 1
        try:
            if args.target:
                address = ctx.resolve_target_address(args.target)
            else:
                address = ctx.navigator_address()
            client = ctx.client
            if args.function:
                instructions = client.disassemble_function(address)
            else:
                instructions = client.disassemble(address, max(1, args.count))
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"disassembly failed: {exc}")
            return error_status(exc)
        store = ctx.field_store
        store.clear()
        store.add(instructions)
        if ctx.json_output:
            render_store(ctx, store)
        else:
            render_records(ctx, instructions)
        return 0
