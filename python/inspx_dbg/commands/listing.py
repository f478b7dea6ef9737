"""Populate the field store from agent listings."""

from __future__ import annotations

import argparse
from typing import Callable, Dict, List, Optional

from inspx.client import AgentClient
from inspx.filters import apply_filter, parse_filter_string
from inspx.records import JavaClass, Module, ObjCClass, Record
from inspx.store import SelectionError

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, render_store

_MODULE_SCOPED = ("functions", "variables", "imports", "symbols", "exports")
_CLASS_SCOPED = {"methods": JavaClass, "objc-methods": ObjCClass}
LIST_TARGETS = ("modules", "ranges", "threads", *_MODULE_SCOPED, "classes", "methods", "objc-classes", "objc-methods")


class ListCommand(Command):
    usage = (
        "list <modules|ranges|functions|variables|imports|symbols|exports|threads|"
        "classes|methods|objc-classes|objc-methods> [-m module] [-c class] [-p protection] [filter...]"
    )

    def __init__(self) -> None:
        super().__init__("list", "List target objects into the field store", aliases=("ls",))
        parser = argparse.ArgumentParser(prog="list", add_help=False)
        parser.add_argument("what", choices=LIST_TARGETS)
        parser.add_argument("-m", "--module", help="Module name (defaults to the selected module)")
        parser.add_argument("-c", "--class", dest="class_name", help="Class name (defaults to the selected class)")
        parser.add_argument("-p", "--protection", default="---", help="Minimum range protection, e.g. r-x")
        parser.add_argument("filter", nargs="*")
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_intermixed_args(argv)
        except SystemExit:
            return 1
        try:
            conditions = parse_filter_string(" ".join(args.filter))
            records = self._fetch(ctx.client, args.what, self._module(ctx, args), self._class(ctx, args), args.protection)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"list {args.what} failed: {exc}")
            return error_status(exc)
        if conditions:
            records = apply_filter(records, conditions)
        store = ctx.field_store
        store.clear()
        store.add(records)
        render_store(ctx, store)
        return 0

    @staticmethod
    def _module(ctx: SessionContext, args: argparse.Namespace) -> Optional[str]:
        if args.module or args.what not in _MODULE_SCOPED:
            return args.module
        current = ctx.navigator.get()
        if isinstance(current, Module):
            return current.name
        return None

    @staticmethod
    def _class(ctx: SessionContext, args: argparse.Namespace) -> Optional[str]:
        record_type = _CLASS_SCOPED.get(args.what)
        if record_type is None or args.class_name:
            return args.class_name
        current = ctx.navigator.get()
        if isinstance(current, record_type):
            return current.name
        raise SelectionError(f"No class given: pass -c NAME or select a {record_type.kind.value}")

    @staticmethod
    def _fetch(
        client: AgentClient,
        what: str,
        module: Optional[str],
        class_name: Optional[str],
        protection: str,
    ) -> List[Record]:
        fetchers: Dict[str, Callable[[], List[Record]]] = {
            "modules": client.list_modules,
            "ranges": lambda: client.list_ranges(protection),
            "threads": client.list_threads,
            "functions": lambda: client.list_functions(module),
            "variables": lambda: client.list_variables(module),
            "imports": lambda: client.list_imports(module),
            "symbols": lambda: client.list_symbols(module),
            "exports": lambda: client.list_exports(module),
            "classes": client.list_java_classes,
            "methods": lambda: client.list_java_methods(class_name or ""),
            "objc-classes": client.list_objc_classes,
            "objc-methods": lambda: client.list_objc_methods(class_name or ""),
        }
        return fetchers[what]()
