"""Output helpers for inspx-dbg."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style

from inspx.records import Record
from inspx.store import Store

from .context import SessionContext

STYLE = Style.from_dict(
    {
        "record.kind": "ansicyan",
        "record.address": "ansiyellow",
        "record.name": "bold",
        "record.muted": "ansibrightblack",
        "record.accent": "ansigreen",
        "record.index": "ansibrightblack",
        "store.header": "bold underline",
        "view.header": "ansibrightblack",
        "view.address": "ansiyellow",
        "view.value": "",
        "view.muted": "ansibrightblack",
        "view.ascii": "ansigreen",
        "prompt.idle": "ansicyan",
        "prompt.kind": "ansicyan bold",
        "prompt.detail": "ansiyellow",
        "prompt.address": "ansiyellow",
        "error": "ansired",
    }
)


def _json_dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True)


def emit_result(ctx: SessionContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit a successful command result."""
    if ctx.json_output:
        payload: Dict[str, Any] = {"status": "ok"}
        if data is not None:
            payload["result"] = data
        else:
            payload["message"] = message
        print(_json_dump(payload))
    else:
        print(message)


def emit_error(ctx: SessionContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit an error message respecting JSON mode."""
    payload: Dict[str, Any] = {"status": "error", "error": message}
    if data:
        payload["details"] = dict(data)
    if ctx.json_output:
        print(_json_dump(payload))
    else:
        print(f"error: {message}")


def print_fragments(fragments: Sequence[Tuple[str, str]]) -> None:
    print_formatted_text(FormattedText(list(fragments)), style=STYLE, end="", file=sys.stdout)


def record_to_dict(record: Record) -> Dict[str, Any]:
    payload = asdict(record)
    payload["kind"] = record.kind.value
    payload["text"] = str(record)
    return payload


def render_records(ctx: SessionContext, records: Iterable[Record], *, start: int = 0) -> None:
    """Print ``[index] record`` lines; JSON mode emits the records instead."""
    items = list(records)
    if ctx.json_output:
        emit_result(ctx, message="records", data={"records": [record_to_dict(rec) for rec in items]})
        return
    fragments: List[Tuple[str, str]] = []
    for offset, record in enumerate(items):
        fragments.append(("class:record.index", f"[{start + offset}] "))
        fragments.extend(record.fragments())
        fragments.append(("", "\n"))
    print_fragments(fragments)


def render_store(ctx: SessionContext, store: Store, page: Optional[int] = None) -> None:
    """Print one page of ``store`` (current page when ``page`` is None, else 0-based)."""
    items = store.page_items(page)
    if ctx.json_output:
        current, total = store.page_info()
        emit_result(
            ctx,
            message=store.name,
            data={
                "store": store.name,
                "page": current if page is None else page + 1,
                "pages": total,
                "count": len(store),
                "records": [dict(record_to_dict(rec), index=idx) for idx, rec in items],
            },
        )
        return
    fragments: List[Tuple[str, str]] = [("class:store.header", store.header(page)), ("", "\n")]
    if not items:
        fragments.append(("class:record.muted", "(empty)\n"))
    for idx, record in items:
        fragments.append(("class:record.index", f"[{idx}] "))
        fragments.extend(record.fragments())
        fragments.append(("", "\n"))
    print_fragments(fragments)


__all__ = [
    "STYLE",
    "emit_error",
    "emit_result",
    "print_fragments",
    "record_to_dict",
    "render_records",
    "render_store",
]
