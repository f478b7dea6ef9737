"""Show the target environment reported by the agent."""

from __future__ import annotations

from typing import List

from .base import COMMAND_ERRORS, Command, error_status
from ..context import SessionContext
from ..output import emit_error, emit_result


class EnvCommand(Command):
    def __init__(self) -> None:
        super().__init__("env", "Show target runtime, architecture and platform")

    def run(self, ctx: SessionContext, argv: List[str]) -> int:
        try:
            env = ctx.client.get_env()
        except COMMAND_ERRORS as exc:
            emit_error(ctx, message=f"env failed: {exc}")
            return error_status(exc)
        emit_result(
            ctx,
            message=f"{env.runtime} {env.arch} ({env.platform}, {env.pointer_size * 8}-bit pointers)",
            data={
                "runtime": env.runtime,
                "arch": env.arch,
                "platform": env.platform,
                "pointer_size": env.pointer_size,
            },
        )
        return 0
