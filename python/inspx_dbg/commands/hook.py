"""Hook management through the agent."""

from __future__ import annotations

import argparse
from typing import List

from inspx.client import HookConfig

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result, render_store


class HookCommand(Command):
    usage = (
        "hook add <target> [-e] [-l] [-a] [-r] [-b] [--all] [--args N] | remove <id> | "
        "enable <id> | disable <id> | list | clear"
    )

    def __init__(self) -> None:
        super().__init__("hook", "Attach and manage function hooks")
        parser = argparse.ArgumentParser(prog="hook", add_help=False)
        sub = parser.add_subparsers(dest="subcmd")
        sub.required = True

        add = sub.add_parser("add", add_help=False)
        add.add_argument("target")
        add.add_argument("-e", "--enter", action="store_true", help="Log on function entry")
        add.add_argument("-l", "--leave", action="store_true", help="Log on function exit")
        add.add_argument("-a", "--log-args", action="store_true", help="Log arguments")
        add.add_argument("-r", "--log-retval", action="store_true", help="Log return value")
        add.add_argument("-b", "--backtrace", action="store_true", help="Capture a backtrace")
        add.add_argument("--all", action="store_true", help="Enable every option")
        add.add_argument("--args", type=int, default=4, dest="arg_count", help="Number of arguments to log")

        for name in ("remove", "enable", "disable"):
            action = sub.add_parser(name, add_help=False)
            action.add_argument("hook_id")
        sub.add_parser("list", add_help=False)
        sub.add_parser("clear", add_help=False)
        self._parser = parser

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        try:
            return self._dispatch(ctx, args)
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"hook {args.subcmd} failed: {exc}")
            return error_status(exc)

    @staticmethod
    def _config(args: argparse.Namespace) -> HookConfig:
        if args.all:
            return HookConfig(True, True, True, True, True, args.arg_count)
        explicit = args.enter or args.leave or args.log_args or args.log_retval
        return HookConfig(
            on_enter=args.enter or not explicit,
            on_leave=args.leave,
            log_args=args.log_args,
            log_retval=args.log_retval,
            backtrace=args.backtrace,
            arg_count=args.arg_count,
        )

    def _dispatch(self, ctx: SessionContext, args: argparse.Namespace) -> int:
        client = ctx.client
        action = args.subcmd
        if action == "add":
            address = ctx.resolve_target_address(args.target)
            hook_id = client.hook_attach(address, self._config(args))
            emit_result(ctx, message=f"Hook {hook_id} attached at {address:#x}", data={"id": hook_id, "address": address})
            return 0
        if action == "remove":
            client.hook_detach(args.hook_id)
            emit_result(ctx, message=f"Hook {args.hook_id} removed", data={"id": args.hook_id})
            return 0
        if action == "enable":
            client.hook_enable(args.hook_id)
            emit_result(ctx, message=f"Hook {args.hook_id} enabled", data={"id": args.hook_id, "enabled": True})
            return 0
        if action == "disable":
            client.hook_disable(args.hook_id)
            emit_result(ctx, message=f"Hook {args.hook_id} disabled", data={"id": args.hook_id, "enabled": False})
            return 0
        if action == "list":
            hooks = client.hook_list()
            ctx.field_store.clear()
            ctx.field_store.add(hooks)
            render_store(ctx, ctx.field_store)
            return 0
        if action == "clear":
            count = client.hook_clear_all()
            emit_result(ctx, message=f"Removed {count} hook(s)", data={"count": count})
            return 0
        return 1
