"""Navigator commands: select, deselect, add, sub, goto."""

from __future__ import annotations

from typing import List

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result, print_fragments, record_to_dict
from ..parser import parse_number


def _report_selection(ctx: SessionContext) -> None:
    record = ctx.navigator.get()
    if record is None:
        emit_result(ctx, message="Nothing selected", data={"selected": None})
        return
    if ctx.json_output:
        emit_result(ctx, message=str(record), data={"selected": record_to_dict(record)})
        return
    print_fragments([("", "Selected: ")] + record.fragments() + [("", "\n")])


class SelectCommand(Command):
    usage = "select <selector>   e.g. select 3, select field:0, select lib:2"

    def __init__(self) -> None:
        super().__init__("select", "Make one record the current selection", aliases=("sel",))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        if len(argv) != 1:
            emit_error(ctx, message=f"usage: {self.usage}")
            return 1
        try:
            records = ctx.resolve(argv[0])
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=str(exc))
            return error_status(exc)
        if len(records) != 1:
            emit_error(ctx, message=f"Multiple data found ({len(records)} records); select exactly one")
            return 1
        ctx.navigator.select(records[0])
        _report_selection(ctx)
        return 0


class DeselectCommand(Command):
    def __init__(self) -> None:
        super().__init__("deselect", "Clear the current selection", aliases=("desel",))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        ctx.navigator.deselect()
        emit_result(ctx, message="Selection cleared", data={"selected": None})
        return 0


class _OffsetCommand(Command):
    usage = "<offset>   hex (0x..) or decimal"

    def _apply(self, ctx: SessionContext, offset: int) -> None:
        raise NotImplementedError

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        if not argv:
            emit_error(ctx, message="Offset argument required")
            return 1
        try:
            offset = parse_number(argv[0])
        except ValueError as exc:
            emit_error(ctx, message=f"Invalid offset: {exc}")
            return 1
        current = ctx.navigator.get()
        if current is None:
            emit_error(ctx, message="Nothing selected")
            return 1
        if current.address_of() is None:
            emit_error(ctx, message=f"{current.kind} has no address to move")
            return 1
        self._apply(ctx, offset)
        _report_selection(ctx)
        return 0


class AddCommand(_OffsetCommand):
    def __init__(self) -> None:
        super().__init__("add", "Move the selection forward by an offset", aliases=("+",))

    def _apply(self, ctx: SessionContext, offset: int) -> None:
        ctx.navigator.add(offset)


class SubCommand(_OffsetCommand):
    def __init__(self) -> None:
        super().__init__("sub", "Move the selection backward by an offset", aliases=("-",))

    def _apply(self, ctx: SessionContext, offset: int) -> None:
        ctx.navigator.sub(offset)


class GotoCommand(Command):
    usage = "goto <address|selector|symbol>"

    def __init__(self) -> None:
        super().__init__("goto", "Jump the selection to an address", aliases=("g",))

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        if not argv:
            emit_error(ctx, message="Address argument required")
            return 1
        try:
            address = ctx.resolve_target_address(argv[0])
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=str(exc))
            return error_status(exc)
        current = ctx.navigator.get()
        if current is not None and current.address_of() is None:
            emit_error(ctx, message=f"{current.kind} has no address to move")
            return 1
        ctx.navigator.goto(address)
        _report_selection(ctx)
        return 0
