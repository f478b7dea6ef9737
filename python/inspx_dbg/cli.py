"""inspx-dbg CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .commands import CommandRegistry, build_registry
from .context import SessionContext
from .history import HistoryStore
from .repl import InspxREPL

LOG = logging.getLogger("inspx_dbg.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive process inspector")
    parser.add_argument("--host", default="127.0.0.1", help="Agent host")
    parser.add_argument("--port", type=int, default=27070, help="Agent port")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each agent call (default: wait indefinitely)",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON output when supported")
    parser.add_argument("--log-level", default=os.environ.get("INSPX_DBG_LOG", "INFO"), help="Logging level (default INFO)")
    parser.add_argument(
        "-c",
        "--command",
        help="Execute a single command non-interactively (quote the command string)",
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".inspx-dbg-history",
        help="Path to command history file",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    ctx = SessionContext(
        host=args.host,
        port=args.port,
        json_output=args.json,
        call_timeout=args.timeout,
    )
    registry = build_registry()
    if args.command:
        try:
            return _run_single_command(ctx, registry, args.command)
        finally:
            ctx.disconnect()
    repl = InspxREPL(ctx, registry, history_store=HistoryStore(str(args.history)))
    try:
        return repl.run()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        print()
        return 0


def _run_single_command(ctx: SessionContext, registry: CommandRegistry, command_line: str) -> int:
    repl = InspxREPL(ctx, registry)
    try:
        return repl.dispatch(command_line)
    except SystemExit as exc:
        return int(exc.code or 0)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
