"""Named, paginated record stores (``lib`` and ``field``)."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Tuple

from .filters import FilterCondition, apply_filter
from .records import Record

LOGGER = logging.getLogger("inspx.store")

PAGE_SIZE = 50

_INDEX_RE = re.compile(r"^\d+$")
_LIST_RE = re.compile(r"^\d+(\s*,\s*\d+)+$")
_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")


class SelectionError(ValueError):
    """Raised for malformed selection expressions."""


class SelectionIndexError(SelectionError, IndexError):
    """Raised when a selection names an index outside the store."""


class StoreIndexError(IndexError):
    """Raised by move/remove when an index or count is out of bounds."""


class Store:
    """Ordered record collection with a page cursor."""

    def __init__(self, name: str, *, page_size: int = PAGE_SIZE) -> None:
        self.name = name
        self.page_size = max(1, int(page_size))
        self.data: List[Record] = []
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self):
        return iter(self.data)

    def __getitem__(self, index: int) -> Record:
        return self.data[index]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add(self, records: Iterable[Record]) -> int:
        before = len(self.data)
        self.data.extend(records)
        added = len(self.data) - before
        LOGGER.debug("%s: added %d records (total %d)", self.name, added, len(self.data))
        return added

    def clear(self) -> None:
        self.data.clear()
        self.cursor = 0

    def remove(self, index: int, count: int = 1) -> List[Record]:
        size = len(self.data)
        if index < 0 or index >= size:
            raise StoreIndexError(f"index {index} out of range (size {size})")
        if count < 1 or index + count > size:
            raise StoreIndexError(f"cannot remove {count} item(s) from index {index} (size {size})")
        removed = self.data[index : index + count]
        del self.data[index : index + count]
        self._clamp_cursor()
        return removed

    def move(self, src: int, dst: int) -> None:
        size = len(self.data)
        for label, value in (("from", src), ("to", dst)):
            if value < 0 or value >= size:
                raise StoreIndexError(f"{label} index {value} out of range (size {size})")
        record = self.data.pop(src)
        self.data.insert(dst, record)

    def sort(self, key: Optional[str] = None) -> bool:
        """Stable sort by ``addr``/``address``, ``name`` or ``size``; returns False for unknown keys."""
        if not key:
            return False
        key = key.lower()
        if key in ("addr", "address"):

            def sort_key(record: Record) -> Tuple[bool, int]:
                address = record.address_of()
                return (address is None, address or 0)

        elif key == "name":

            def sort_key(record: Record) -> Tuple[bool, str]:  # type: ignore[misc]
                name = getattr(record, "name", None)
                return (name is None, (name or "").lower())

        elif key == "size":

            def sort_key(record: Record) -> Tuple[bool, int]:  # type: ignore[misc]
                size = getattr(record, "size", None)
                return (size is None, size or 0)

        else:
            LOGGER.debug("%s: ignoring unknown sort key %r", self.name, key)
            return False
        self.data.sort(key=sort_key)
        return True

    def filter(self, conditions: List[FilterCondition]) -> int:
        """Keep only records matching every condition; returns how many were dropped."""
        before = len(self.data)
        self.data = apply_filter(self.data, conditions)
        self._clamp_cursor()
        return before - len(self.data)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------
    @property
    def total_pages(self) -> int:
        return max(1, -(-len(self.data) // self.page_size))

    @property
    def current_page(self) -> int:
        return self.cursor // self.page_size + 1

    def page_info(self) -> Tuple[int, int]:
        return self.current_page, self.total_pages

    def next_page(self, count: int = 1) -> None:
        target = min(self.current_page + max(0, count), self.total_pages)
        self.cursor = (target - 1) * self.page_size

    def prev_page(self, count: int = 1) -> None:
        target = max(self.current_page - max(0, count), 1)
        self.cursor = (target - 1) * self.page_size

    def set_cursor(self, index: int) -> None:
        self.cursor = max(0, min(int(index), max(len(self.data) - 1, 0)))

    def _clamp_cursor(self) -> None:
        last_start = (self.total_pages - 1) * self.page_size
        self.cursor = max(0, min(self.cursor, last_start))

    def page_items(self, page: Optional[int] = None) -> List[Tuple[int, Record]]:
        """Return ``(index, record)`` pairs of the current page or of a 0-based ``page``."""
        index = self.current_page - 1 if page is None else page
        start = index * self.page_size
        if index < 0 or start >= len(self.data):
            return []
        end = min(start + self.page_size, len(self.data))
        return [(idx, self.data[idx]) for idx in range(start, end)]

    def header(self, page: Optional[int] = None) -> str:
        current = self.current_page if page is None else page + 1
        return f"{self.name} [page {current}/{self.total_pages}] ({len(self.data)} items)"

    def to_string(self, page: Optional[int] = None) -> str:
        lines = [self.header(page)]
        items = self.page_items(page)
        if not items:
            lines.append("(empty)")
        for idx, record in items:
            lines.append(f"[{idx}] {record}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def get_data_by_selection(self, selector: str) -> List[Record]:
        """
        Resolve a selection over the whole store.

        Accepted forms are ``all``, ``n``, ``i,j,k`` (order preserved) and the
        inclusive range ``a-b``.
        """
        text = selector.strip()
        if text.lower() == "all":
            return list(self.data)
        if _INDEX_RE.match(text):
            return [self._at(int(text))]
        if _LIST_RE.match(text):
            return [self._at(int(part)) for part in text.split(",")]
        match = _RANGE_RE.match(text)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if end < start:
                raise SelectionError(f"Invalid range {start}-{end}: start is greater than end")
            self._at(end)
            return self.data[start : end + 1]
        raise SelectionError(f"Invalid selection format: {selector}")

    def _at(self, index: int) -> Record:
        if index >= len(self.data):
            raise SelectionIndexError(f"Index {index} out of range in {self.name} (size {len(self.data)})")
        return self.data[index]


__all__ = [
    "PAGE_SIZE",
    "SelectionError",
    "SelectionIndexError",
    "Store",
    "StoreIndexError",
]
