"""Single-slot selection with relative address arithmetic."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Optional

from .records import ADDRESS_MASK, Fragments, Pointer, Record, ValueType

LOGGER = logging.getLogger("inspx.navigator")

IDLE_PROMPT = "inspx"


class Navigator:
    """Holds a private copy of the currently selected record."""

    def __init__(self) -> None:
        self._data: Optional[Record] = None

    def select(self, record: Record) -> None:
        self._data = deepcopy(record)

    def deselect(self) -> None:
        self._data = None

    def get(self) -> Optional[Record]:
        return self._data

    @property
    def selected(self) -> bool:
        return self._data is not None

    def add(self, offset: int) -> None:
        current = self._data
        if current is None or current.address_of() is None:
            return
        self._move_to((current.address_of() + offset) & ADDRESS_MASK)

    def sub(self, offset: int) -> None:
        current = self._data
        if current is None or current.address_of() is None:
            return
        self._move_to((current.address_of() - offset) & ADDRESS_MASK)

    def goto(self, address: int) -> None:
        address &= ADDRESS_MASK
        if self._data is None:
            self._data = Pointer(address=address, size=8, value_type=ValueType.POINTER)
            return
        if self._data.address_of() is None:
            LOGGER.debug("goto ignored: %s has no address", self._data.kind)
            return
        self._move_to(address)

    def _move_to(self, address: int) -> None:
        current = self._data
        if isinstance(current, Pointer):
            current.address = address
            return
        pointer = current.to_pointer() if current is not None else None
        if pointer is None:
            return
        pointer.address = address
        self._data = pointer

    def prompt(self) -> str:
        if self._data is None:
            return IDLE_PROMPT
        return self._data.label()

    def prompt_fragments(self) -> Fragments:
        if self._data is None:
            return [("class:prompt.idle", IDLE_PROMPT)]
        kind, sep, rest = self.prompt().partition(":")
        if not sep:
            return [("class:prompt.address", kind)]
        return [("class:prompt.kind", kind), ("class:prompt", ":"), ("class:prompt.detail", rest)]

    def __str__(self) -> str:
        return self.prompt()


__all__ = ["IDLE_PROMPT", "Navigator"]
