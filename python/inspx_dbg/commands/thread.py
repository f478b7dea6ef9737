"""Thread inspection: registers, stack words and backtraces."""

from __future__ import annotations

import argparse
from typing import List, Optional

from inspx.channel import ChannelError
from inspx.records import Thread, parse_address
from inspx.store import SelectionError

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result, render_store
from ..parser import parse_number

DEFAULT_STACK_DEPTH = 32
STACK_POINTERS = ("rsp", "esp", "sp")


class ThreadCommand(Command):
    usage = "thread [list] | regs [thread_id] | stack [thread_id] [depth] | backtrace"

    def __init__(self) -> None:
        super().__init__("thread", "Inspect threads of the target", aliases=("t",))
        parser = argparse.ArgumentParser(prog="thread", add_help=False)
        sub = parser.add_subparsers(dest="subcmd")
        sub.add_parser("list", aliases=["ls"], add_help=False)
        regs = sub.add_parser("regs", aliases=["r"], add_help=False)
        regs.add_argument("thread_id", nargs="?")
        stack = sub.add_parser("stack", aliases=["s"], add_help=False)
        stack.add_argument("thread_id", nargs="?")
        stack.add_argument("depth", nargs="?", type=lambda text: int(text, 0), default=DEFAULT_STACK_DEPTH)
        sub.add_parser("backtrace", aliases=["bt"], add_help=False)
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        action = {"ls": "list", "r": "regs", "s": "stack", "bt": "backtrace"}.get(args.subcmd, args.subcmd or "list")
        try:
            if action == "list":
                return self._list(ctx)
            if action == "regs":
                return self._regs(ctx, args.thread_id)
            if action == "stack":
                return self._stack(ctx, args.thread_id, max(1, args.depth))
            return self._backtrace(ctx)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"thread {action} failed: {exc}")
            return error_status(exc)

    @staticmethod
    def _thread_id(ctx: SessionContext, text: Optional[str]) -> int:
        """Explicit id, else the selected thread, else the first thread the agent lists."""
        if text is not None:
            try:
                return parse_number(text)
            except ValueError:
                raise SelectionError(f"Invalid thread id: {text}") from None
        current = ctx.navigator.get()
        if isinstance(current, Thread) and current.id:
            return current.id
        threads = ctx.client.list_threads()
        if threads and isinstance(threads[0], Thread) and threads[0].id:
            return threads[0].id
        raise SelectionError("No valid thread ID")

    @staticmethod
    def _list(ctx: SessionContext) -> int:
        store = ctx.field_store
        store.clear()
        store.add(ctx.client.list_threads())
        render_store(ctx, store)
        return 0

    def _regs(self, ctx: SessionContext, text: Optional[str]) -> int:
        thread_id = self._thread_id(ctx, text)
        registers = ctx.client.get_thread_context(thread_id)
        if registers is None:
            emit_result(ctx, message="Thread context not available", data={"thread": thread_id, "registers": None})
            return 0
        lines = [f"Thread {thread_id} registers:"]
        lines.extend(f"  {name:<6} = {value}" for name, value in registers.items())
        emit_result(ctx, message="\n".join(lines), data={"thread": thread_id, "registers": registers})
        return 0

    def _stack(self, ctx: SessionContext, text: Optional[str], depth: int) -> int:
        thread_id = self._thread_id(ctx, text)
        registers = ctx.client.get_thread_context(thread_id) or {}
        sp = 0
        for name in STACK_POINTERS:
            if name in registers:
                try:
                    sp = parse_address(registers[name])
                except ValueError:
                    sp = 0
                break
        if sp == 0:
            raise ChannelError("Could not determine stack pointer")
        entries = ctx.client.read_stack(sp, depth)
        lines = [f"Stack @ {sp:#x} (thread {thread_id}):"]
        for entry in entries:
            info = ""
            if entry.module and entry.symbol:
                info = f" ({entry.module}: {entry.symbol})"
            elif entry.module:
                info = f" ({entry.module})"
            lines.append(f"  +{entry.offset:<#6x} {entry.address:#x} -> {entry.value:#x}{info}")
        emit_result(
            ctx,
            message="\n".join(lines),
            data={
                "thread": thread_id,
                "sp": sp,
                "entries": [
                    {"offset": e.offset, "address": e.address, "value": e.value, "module": e.module, "symbol": e.symbol}
                    for e in entries
                ],
            },
        )
        return 0

    @staticmethod
    def _backtrace(ctx: SessionContext) -> int:
        frames = ctx.client.backtrace()
        if not frames:
            emit_result(ctx, message="No backtrace available", data={"frames": []})
            return 0
        lines = [f"Backtrace ({len(frames)} frames):"]
        lines.extend(f"  #{idx:<2} {frame.address:#x} {frame.location}" for idx, frame in enumerate(frames))
        emit_result(
            ctx,
            message="\n".join(lines),
            data={"frames": [{"address": f.address, "location": f.location} for f in frames]},
        )
        return 0
