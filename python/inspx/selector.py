"""Resolve ``[store:]selection`` expressions against the lib and field stores."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .records import Record
from .store import SelectionError, Store

LOGGER = logging.getLogger("inspx.selector")

_SELECTOR_RE = re.compile(r"^(?:(\w+):)?(.+)$")
_DIGITS_RE = re.compile(r"^[0-9]+$")

LIB_NAMES = ("lib", "l")
FIELD_NAMES = ("field", "fld", "f")


class SelectorResolver:
    """Looks in ``lib`` first and falls back to ``field`` for numeric selectors."""

    def __init__(self, lib: Store, field: Store) -> None:
        self.lib = lib
        self.field = field

    def store_for(self, name: str) -> Optional[Store]:
        lowered = name.lower()
        if lowered in LIB_NAMES:
            return self.lib
        if lowered in FIELD_NAMES:
            return self.field
        return None

    def resolve(self, text: str) -> List[Record]:
        expr = (text or "").strip()
        match = _SELECTOR_RE.match(expr)
        if not match:
            raise SelectionError(f"Invalid selector: '{text}'")
        prefix, body = match.group(1), match.group(2).strip()
        if prefix is not None:
            return self._resolve_explicit(expr, prefix, body)
        return self._resolve_default(expr, body)

    def _resolve_explicit(self, expr: str, prefix: str, body: str) -> List[Record]:
        store = self.store_for(prefix)
        if store is None:
            raise SelectionError(f"Unknown store: {prefix}")
        label = "lib" if store is self.lib else "field"
        try:
            records = store.get_data_by_selection(body)
        except SelectionError as exc:
            raise SelectionError(
                f"Selector '{expr}': search in explicitly specified '{label}' store failed: {exc}"
            ) from exc
        if not records:
            raise SelectionError(f"Selector '{expr}': no items found in explicitly specified '{label}' store.")
        return records

    def _resolve_default(self, expr: str, body: str) -> List[Record]:
        lib_error: Optional[SelectionError] = None
        try:
            records = self.lib.get_data_by_selection(body)
        except SelectionError as exc:
            lib_error = exc
            records = []
        if records:
            return records
        lib_reason = f"'lib' (default) failed: {lib_error}" if lib_error else "no items from 'lib' (default)"
        if not _DIGITS_RE.match(body):
            raise SelectionError(
                f"Selector '{expr}': {lib_reason}. Non-numeric selectors do not fall back."
            )
        LOGGER.debug("selector %r: falling back to field store", expr)
        try:
            records = self.field.get_data_by_selection(body)
        except SelectionError as exc:
            raise SelectionError(
                f"Selector '{expr}': {lib_reason}, and 'field' (fallback) search failed: {exc}"
            ) from exc
        if not records:
            raise SelectionError(
                f"Selector '{expr}': {lib_reason}, and no items from 'field' (fallback)."
            )
        return records


__all__ = ["FIELD_NAMES", "LIB_NAMES", "SelectorResolver"]
