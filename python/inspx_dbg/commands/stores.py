"""``field`` and ``lib`` store commands."""

from __future__ import annotations

import argparse
from typing import List

from inspx.filters import parse_filter_string
from inspx.records import mark_saved
from inspx.store import Store

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result, render_store


def _page_count(text: str) -> int:
    value = int(text, 0)
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


class StoreCommand(Command):
    """Browse and edit one of the session stores."""

    usage = (
        "[list [page] | next [n] | prev [n] | sort <addr|name|size> | move <from> <to> | "
        "remove <index> [count] | clear | filter <expr>]"
    )

    def __init__(self, name: str, description: str, aliases=()) -> None:
        super().__init__(name, description, aliases=aliases)
        parser = argparse.ArgumentParser(prog=name, add_help=False)
        sub = parser.add_subparsers(dest="subcmd")
        listing = sub.add_parser("list", aliases=["ls"], add_help=False)
        listing.add_argument("page", nargs="?", type=_page_count)
        nxt = sub.add_parser("next", aliases=["n"], add_help=False)
        nxt.add_argument("count", nargs="?", type=_page_count, default=1)
        prev = sub.add_parser("prev", aliases=["p"], add_help=False)
        prev.add_argument("count", nargs="?", type=_page_count, default=1)
        sort = sub.add_parser("sort", add_help=False)
        sort.add_argument("key", nargs="?")
        move = sub.add_parser("move", aliases=["mv"], add_help=False)
        move.add_argument("src", type=lambda text: int(text, 0))
        move.add_argument("dst", type=lambda text: int(text, 0))
        remove = sub.add_parser("remove", aliases=["rm"], add_help=False)
        remove.add_argument("index", type=lambda text: int(text, 0))
        remove.add_argument("count", nargs="?", type=lambda text: int(text, 0), default=1)
        sub.add_parser("clear", add_help=False)
        filt = sub.add_parser("filter", add_help=False)
        filt.add_argument("expr", nargs=argparse.REMAINDER)
        self._subparsers = sub
        self._parser = parser

    def _store(self, ctx: SessionContext) -> Store:
        return ctx.field_store

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        store = self._store(ctx)
        action = args.subcmd or "list"
        try:
            return self._dispatch(ctx, store, action, args)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=str(exc))
            return error_status(exc)

    def _dispatch(self, ctx: SessionContext, store: Store, action: str, args: argparse.Namespace) -> int:
        if action in ("list", "ls"):
            page = getattr(args, "page", None)
            render_store(ctx, store, None if page is None else page - 1)
            return 0
        if action in ("next", "n"):
            store.next_page(args.count)
            render_store(ctx, store)
            return 0
        if action in ("prev", "p"):
            store.prev_page(args.count)
            render_store(ctx, store)
            return 0
        if action == "sort":
            if not store.sort(args.key):
                emit_error(ctx, message=f"Unknown sort key: {args.key or '(none)'} (use addr, name or size)")
                return 1
            emit_result(ctx, message=f"{store.name} sorted by {args.key}", data={"count": len(store)})
            return 0
        if action in ("move", "mv"):
            store.move(args.src, args.dst)
            emit_result(ctx, message=f"Moved {args.src} -> {args.dst}", data={"from": args.src, "to": args.dst})
            return 0
        if action in ("remove", "rm"):
            removed = store.remove(args.index, args.count)
            emit_result(ctx, message=f"Removed {len(removed)} item(s)", data={"removed": len(removed)})
            return 0
        if action == "clear":
            store.clear()
            emit_result(ctx, message=f"{store.name} cleared", data={"count": 0})
            return 0
        if action == "filter":
            expr = " ".join(args.expr).strip()
            if not expr:
                emit_error(ctx, message="Filter expression required, e.g. name:libc address>=0x1000")
                return 1
            dropped = store.filter(parse_filter_string(expr))
            emit_result(
                ctx,
                message=f"{store.name}: {len(store)} item(s) kept, {dropped} removed",
                data={"kept": len(store), "removed": dropped},
            )
            return 0
        return 1


class FieldCommand(StoreCommand):
    def __init__(self) -> None:
        super().__init__("field", "Browse the field store (listing results)", aliases=("f",))


class LibCommand(StoreCommand):
    usage = StoreCommand.usage[:-1] + " | save [field-selector]]"

    def __init__(self) -> None:
        super().__init__("lib", "Browse the lib store (saved records)", aliases=("l",))
        save = self._subparsers.add_parser("save", add_help=False)
        save.add_argument("selector", nargs="?")

    def _store(self, ctx: SessionContext) -> Store:
        return ctx.lib_store

    def _dispatch(self, ctx: SessionContext, store: Store, action: str, args: argparse.Namespace) -> int:
        if action != "save":
            return super()._dispatch(ctx, store, action, args)
        if args.selector:
            records = ctx.field_store.get_data_by_selection(args.selector)
        else:
            current = ctx.navigator.get()
            if current is None:
                emit_error(ctx, message="Nothing selected; pass a field selector")
                return 1
            records = [current]
        added = store.add(mark_saved(record) for record in records)
        emit_result(ctx, message=f"Saved {added} item(s) to {store.name}", data={"saved": added, "count": len(store)})
        return 0
