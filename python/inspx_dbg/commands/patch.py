"""Code patching through the agent."""

from __future__ import annotations

import argparse
from typing import List

from inspx.client import PatchResult
from inspx.memory import parse_literal
from inspx.records import ValueType
from inspx.store import SelectionError

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result


def _hex(data: bytes) -> str:
    return " ".join(f"{b:02x}" for b in data)


def _count(text: str) -> int:
    value = int(text, 0)
    if value < 1:
        raise argparse.ArgumentTypeError("count must be positive")
    return value


def _report(ctx: SessionContext, headline: str, result: PatchResult) -> None:
    lines = [headline, f"  Original: {_hex(result.original)}"]
    if result.patched:
        lines.append(f"  Patched:  {_hex(result.patched)}")
    emit_result(
        ctx,
        message="\n".join(lines),
        data={
            "address": result.address,
            "original": _hex(result.original),
            "patched": _hex(result.patched),
        },
    )


def _remember(ctx: SessionContext, result: PatchResult) -> None:
    # Keep the bytes from before the first patch so restore returns to them.
    if result.original:
        ctx.patches.setdefault(result.address, result.original)


def nop_out(ctx: SessionContext, target: str, count: int) -> int:
    try:
        address = ctx.resolve_target_address(target)
        result = ctx.client.nop_instructions(address, count)
    except COMMAND_ERRORS as exc:
        emit_error(ctx, message=f"nop failed: {exc}")
        return error_status(exc)
    _remember(ctx, result)
    _report(ctx, f"NOPed {count} instruction(s) @ {address:#x}", result)
    return 0


class PatchCommand(Command):
    usage = "patch bytes <target> <hex bytes...> | nop <target> [count] | restore <target>"

    def __init__(self) -> None:
        super().__init__("patch", "Patch code bytes and restore them", aliases=("p",))
        parser = argparse.ArgumentParser(prog="patch", add_help=False)
        sub = parser.add_subparsers(dest="subcmd")
        sub.required = True

        write = sub.add_parser("bytes", add_help=False)
        write.add_argument("target")
        write.add_argument("data", nargs="+")
        nop = sub.add_parser("nop", add_help=False)
        nop.add_argument("target")
        nop.add_argument("count", nargs="?", type=_count, default=1)
        restore = sub.add_parser("restore", add_help=False)
        restore.add_argument("target")
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        if args.subcmd == "nop":
            return nop_out(ctx, args.target, args.count)
        try:
            address = ctx.resolve_target_address(args.target)
            if args.subcmd == "bytes":
                data = parse_literal(" ".join(args.data), ValueType.BYTES)
                result = ctx.client.patch_bytes(address, data)
                _remember(ctx, result)
                headline = f"Patched {len(data)} bytes @ {address:#x}"
            else:
                original = ctx.patches.get(address)
                if original is None:
                    raise SelectionError(f"No patch recorded at {address:#x}")
                result = ctx.client.restore_bytes(address, original)
                del ctx.patches[address]
                headline = f"Restored {len(original)} bytes @ {address:#x}"
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"patch {args.subcmd} failed: {exc}")
            return error_status(exc)
        _report(ctx, headline, result)
        return 0


class NopCommand(Command):
    usage = "nop <target> [count]"

    def __init__(self) -> None:
        super().__init__("nop", "NOP out instructions (same as patch nop)")
        parser = argparse.ArgumentParser(prog="nop", add_help=False)
        parser.add_argument("target")
        parser.add_argument("count", nargs="?", type=_count, default=1)
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        return nop_out(ctx, args.target, args.count)
