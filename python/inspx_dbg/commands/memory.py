"""Memory commands: read, write, view."""

from __future__ import annotations

from typing import List, Optional

from inspx.memory import parse_value_type, read_memory_by_type, write_value
from inspx.memview import DEFAULT_VIEW_SIZE, view_memory

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result, print_fragments
from ..parser import parse_number

HERE = "."


def _optional_count(text: Optional[str], label: str) -> Optional[int]:
    if text is None:
        return None
    try:
        value = parse_number(text)
    except ValueError:
        raise ValueError(f"Invalid {label}: {text}") from None
    if value <= 0:
        raise ValueError(f"Invalid {label}: {text}")
    return value


class ReadCommand(Command):
    usage = "read <selector|address> [type] [length]   types: b ub s us i ui l ul f d bl str bs p"

    def __init__(self) -> None:
        super().__init__("read", "Read a typed value from memory", aliases=("r",))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        if not argv or len(argv) > 3:
            emit_error(ctx, message=f"usage: {self.usage}")
            return 1
        target = argv[0]
        try:
            value_type = parse_value_type(argv[1] if len(argv) > 1 else None)
            length = _optional_count(argv[2] if len(argv) > 2 else None, "length")
            address = ctx.address_from_selection(target)
            text, inactive = read_memory_by_type(ctx.ensure_channel(), address, value_type, length)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=str(exc))
            return error_status(exc)
        except ValueError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        if ctx.json_output:
            emit_result(
                ctx,
                message=text,
                data={"address": address, "type": value_type.label, "value": text, "inactive": inactive},
            )
            return 0
        print_fragments(
            [
                ("class:record.address", f"{address:#x}"),
                ("class:record.muted", f" [{value_type.label}] = "),
                ("class:record.muted" if inactive else "class:record.accent", text),
                ("", "\n"),
            ]
        )
        return 0


class WriteCommand(Command):
    usage = "write <selector|address> <value> [type]"

    def __init__(self) -> None:
        super().__init__("write", "Write a typed value to memory", aliases=("w",))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        if len(argv) < 2 or len(argv) > 3:
            emit_error(ctx, message=f"usage: {self.usage}")
            return 1
        target, literal = argv[0], argv[1]
        try:
            value_type = parse_value_type(argv[2] if len(argv) > 2 else None)
            address = ctx.address_from_selection(target)
            write_value(ctx.ensure_channel(), address, literal, value_type)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=str(exc))
            return error_status(exc)
        emit_result(
            ctx,
            message=f"Wrote {literal} [{value_type.label}] to {address:#x}",
            data={"address": address, "type": value_type.label, "value": literal},
        )
        return 0


class ViewCommand(Command):
    usage = "view [selector|address|.] [size] [type]   (no target or '.' views the current selection)"

    def __init__(self) -> None:
        super().__init__("view", "Hex/typed memory dump", aliases=("v", "x"))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        if len(argv) > 3:
            emit_error(ctx, message=f"usage: {self.usage}")
            return 1
        target = argv[0] if argv else HERE
        try:
            size = _optional_count(argv[1] if len(argv) > 1 else None, "size") or DEFAULT_VIEW_SIZE
            value_type = parse_value_type(argv[2] if len(argv) > 2 else None)
            if target == HERE:
                address = ctx.navigator_address()
            else:
                address = ctx.address_from_selection(target)
            view = view_memory(ctx.ensure_channel(), address, value_type, size)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=str(exc))
            return error_status(exc)
        except ValueError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        if ctx.json_output:
            emit_result(
                ctx,
                message="view",
                data={
                    "address": address,
                    "type": value_type.label,
                    "little_endian": view.little_endian,
                    "lines": view.to_text().splitlines(),
                },
            )
            return 0
        print_fragments(view.to_fragments())
        return 0
