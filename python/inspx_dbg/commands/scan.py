"""Memory scanning through the agent."""

from __future__ import annotations

import argparse
from typing import Dict, List

from inspx.client import ScanSummary
from inspx.memory import ConversionError, parse_value_type
from inspx.records import ValueType

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result, render_store

# Value kinds the agent can scan for, by the names it expects.
AGENT_SCAN_TYPES: Dict[ValueType, str] = {
    ValueType.BYTE: "int8",
    ValueType.UBYTE: "uint8",
    ValueType.SHORT: "int16",
    ValueType.USHORT: "uint16",
    ValueType.INT: "int32",
    ValueType.UINT: "uint32",
    ValueType.LONG: "int64",
    ValueType.ULONG: "uint64",
    ValueType.FLOAT: "float",
    ValueType.DOUBLE: "double",
}


class ScanCommand(Command):
    usage = (
        "scan bytes <pattern> [-p prot] | string <text> [-p prot] | value <type> <value> [-p prot] | "
        "next <value> [cmp] | changed | unchanged | snapshot | results [limit] | clear"
    )

    def __init__(self) -> None:
        super().__init__("scan", "Scan memory for bytes, strings or values")
        parser = argparse.ArgumentParser(prog="scan", add_help=False)
        sub = parser.add_subparsers(dest="subcmd")
        sub.required = True

        pattern = sub.add_parser("bytes", add_help=False)
        pattern.add_argument("pattern", nargs="+")
        pattern.add_argument("-p", "--protection")
        text = sub.add_parser("string", add_help=False)
        text.add_argument("text")
        text.add_argument("-p", "--protection")
        value = sub.add_parser("value", add_help=False)
        value.add_argument("type")
        value.add_argument("value")
        value.add_argument("-p", "--protection")
        refine = sub.add_parser("next", add_help=False)
        refine.add_argument("value")
        refine.add_argument("comparison", nargs="?", default="eq")
        for name in ("changed", "unchanged", "snapshot", "clear"):
            sub.add_parser(name, add_help=False)
        results = sub.add_parser("results", add_help=False)
        results.add_argument("limit", nargs="?", type=lambda text: int(text, 0), default=100)
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        try:
            return self._dispatch(ctx, args)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"scan {args.subcmd} failed: {exc}")
            return error_status(exc)

    def _dispatch(self, ctx: SessionContext, args: argparse.Namespace) -> int:
        client = ctx.client
        action = args.subcmd
        agent_type = AGENT_SCAN_TYPES[ctx.scan_type]
        if action == "bytes":
            return self._show(ctx, client.scan_pattern(" ".join(args.pattern), args.protection))
        if action == "string":
            return self._show(ctx, client.scan_string(args.text, args.protection))
        if action == "value":
            value_type = parse_value_type(args.type)
            if value_type not in AGENT_SCAN_TYPES:
                raise ConversionError(f"Cannot scan for {value_type.label} values")
            ctx.scan_type = value_type
            return self._show(ctx, client.scan_value(AGENT_SCAN_TYPES[value_type], args.value, args.protection))
        if action == "next":
            return self._show(ctx, client.scan_next(agent_type, args.value, args.comparison))
        if action in ("changed", "unchanged", "snapshot"):
            count = getattr(client, f"scan_{action}")(agent_type)
            label = "Snapshot taken of" if action == "snapshot" else f"{action.capitalize()}:"
            emit_result(ctx, message=f"{label} {count} address(es)", data={"count": count})
            return 0
        if action == "results":
            results = client.scan_result_values(agent_type, 0, max(1, args.limit), ctx.scan_type.size)
            ctx.field_store.clear()
            ctx.field_store.add(results)
            render_store(ctx, ctx.field_store)
            return 0
        if action == "clear":
            client.clear_scan()
            emit_result(ctx, message="Scan state cleared", data={"cleared": True})
            return 0
        return 1

    @staticmethod
    def _show(ctx: SessionContext, summary: ScanSummary) -> int:
        store = ctx.field_store
        store.clear()
        store.add(summary.results)
        if not ctx.json_output:
            print(f"Found {summary.count} result(s)")
        render_store(ctx, store)
        return 0
