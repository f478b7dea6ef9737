"""Hex and typed memory views with byte-order calibration."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import List, Tuple

from .channel import Channel, ChannelError
from .memory import (
    ConversionError,
    Value,
    fetch_value,
    float_bits,
    format_value,
    is_inactive,
    read_bytes,
)
from .records import Fragments, ValueType

LOGGER = logging.getLogger("inspx.memview")

ROW_BYTES = 16
VALUE_COLUMN = 48
ASCII_GAP = " " * 5
DEFAULT_VIEW_SIZE = 256
OVERFLOW_MARK = "#"

HEX_VIEW_TYPES = frozenset({ValueType.BYTE, ValueType.UBYTE, ValueType.STRING, ValueType.BYTES})

_STRUCT_CODES = {
    ValueType.SHORT: "h",
    ValueType.USHORT: "H",
    ValueType.INT: "i",
    ValueType.UINT: "I",
    ValueType.LONG: "q",
    ValueType.ULONG: "Q",
    ValueType.FLOAT: "f",
    ValueType.DOUBLE: "d",
    ValueType.POINTER: "Q",
    ValueType.BOOL: "B",
}

Cell = Tuple[str, bool]


def column_width(value_type: ValueType) -> int:
    """Characters one value occupies: the width of its bytes in the hex view."""
    return 3 * value_type.size - 1


def address_width(address: int) -> int:
    if address <= 0xFFFF:
        return 6
    if address <= 0xFFFFFFFF:
        return 10
    return 18


def format_address(address: int, width: int) -> str:
    return f"{address:#0{width}x}"


def decode_value(value_type: ValueType, raw: bytes, little_endian: bool = True) -> Value:
    """Decode one value of ``value_type`` from exactly ``value_type.size`` bytes."""
    code = _STRUCT_CODES.get(value_type)
    if code is None:
        raise ConversionError(f"Cannot decode {value_type.label} values locally")
    if len(raw) != value_type.size:
        raise ConversionError(f"{value_type.label} needs {value_type.size} bytes, got {len(raw)}")
    value = struct.unpack(("<" if little_endian else ">") + code, raw)[0]
    if value_type is ValueType.BOOL:
        return value != 0
    return value


def fit_cell(value_type: ValueType, value: Value, text: str, width: int) -> str:
    """
    Make ``text`` fit a view column without changing what it says.

    Floats lose significant digits until they fit; anything else that is too
    wide becomes a row of ``#`` marks.
    """
    if len(text) <= width:
        return text
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        for digits in range(min(width, 17), 0, -1):
            shorter = f"{value:.{digits}g}"
            if len(shorter) <= width:
                return shorter
    return OVERFLOW_MARK * width


def _same_value(value_type: ValueType, left: Value, right: Value) -> bool:
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        return float_bits(float(left), value_type) == float_bits(float(right), value_type)
    return left == right


def determine_endianness(channel: Channel, address: int, value_type: ValueType, first: bytes) -> bool:
    """
    Calibrate byte order against the agent.

    The agent's typed read of the value at ``address`` is compared with
    ``first`` decoded both ways.  Returns True for little-endian, which is
    also the answer on a tie or when neither decoding matches.
    """
    if value_type.size <= 1 or value_type in HEX_VIEW_TYPES:
        return True
    if len(first) < value_type.size:
        return True
    raw = first[: value_type.size]
    try:
        reference = fetch_value(channel, address, value_type)
    except ChannelError as exc:
        LOGGER.warning("endianness check at %#x failed, assuming little-endian: %s", address, exc)
        return True
    if _same_value(value_type, reference, decode_value(value_type, raw, True)):
        return True
    if _same_value(value_type, reference, decode_value(value_type, raw, False)):
        LOGGER.debug("endianness check at %#x: big-endian", address)
        return False
    LOGGER.debug("endianness check at %#x inconclusive, using little-endian", address)
    return True


@dataclass
class ViewRow:
    address: int
    cells: List[Cell]
    ascii: List[Cell]


@dataclass
class MemoryView:
    """Bytes read from ``address`` plus the byte order used to decode them."""

    address: int
    value_type: ValueType
    data: bytes
    little_endian: bool = True

    @property
    def hex_mode(self) -> bool:
        return self.value_type in HEX_VIEW_TYPES

    @property
    def address_width(self) -> int:
        last_row = self.address + max(0, len(self.data) - 1) // ROW_BYTES * ROW_BYTES
        return address_width(last_row)

    def _cell_width(self) -> int:
        return 2 if self.hex_mode else column_width(self.value_type)

    def _row_cells(self, chunk: bytes) -> List[Cell]:
        if self.hex_mode:
            return [(f"{b:02x}", b in (0x00, 0xFF)) for b in chunk]
        size = self.value_type.size
        width = self._cell_width()
        cells: List[Cell] = []
        for offset in range(0, len(chunk) - size + 1, size):
            value = decode_value(self.value_type, chunk[offset : offset + size], self.little_endian)
            if self.value_type is ValueType.BOOL:
                text = "1" if value else "0"
            else:
                text, _ = format_value(self.value_type, value)
            cells.append((fit_cell(self.value_type, value, text, width), is_inactive(self.value_type, value)))
        return cells

    @staticmethod
    def _ascii_cells(chunk: bytes) -> List[Cell]:
        return [(chr(b) if 0x20 <= b <= 0x7E else ".", b in (0x00, 0xFF)) for b in chunk]

    def rows(self) -> List[ViewRow]:
        out: List[ViewRow] = []
        for start in range(0, len(self.data), ROW_BYTES):
            chunk = self.data[start : start + ROW_BYTES]
            out.append(ViewRow(self.address + start, self._row_cells(chunk), self._ascii_cells(chunk)))
        return out

    def header(self) -> str:
        if self.hex_mode:
            labels = [f"{idx:X}" for idx in range(ROW_BYTES)]
        else:
            labels = [f"{idx:X}" for idx in range(0, ROW_BYTES, self.value_type.size)]
        width = self._cell_width()
        columns = " ".join(label.ljust(width) for label in labels)
        return " " * (self.address_width + 1) + columns.ljust(VALUE_COLUMN) + ASCII_GAP + "0123456789ABCDEF"

    def _value_column(self, cells: List[Cell]) -> str:
        width = self._cell_width()
        return " ".join(text.ljust(width) for text, _ in cells)

    def to_text(self) -> str:
        width = self.address_width
        lines = [self.header()]
        for row in self.rows():
            values = self._value_column(row.cells).ljust(VALUE_COLUMN)
            ascii_text = "".join(text for text, _ in row.ascii)
            lines.append(f"{format_address(row.address, width)} {values}{ASCII_GAP}{ascii_text}")
        return "\n".join(lines)

    def to_fragments(self) -> Fragments:
        width = self.address_width
        cell_width = self._cell_width()
        fragments: Fragments = [("class:view.header", self.header() + "\n")]
        for row in self.rows():
            fragments.append(("class:view.address", format_address(row.address, width)))
            fragments.append(("", " "))
            used = 0
            for idx, (text, inactive) in enumerate(row.cells):
                if idx:
                    fragments.append(("", " "))
                    used += 1
                padded = text.ljust(cell_width)
                fragments.append(("class:view.muted" if inactive else "class:view.value", padded))
                used += len(padded)
            fragments.append(("", " " * max(0, VALUE_COLUMN - used) + ASCII_GAP))
            for text, inactive in row.ascii:
                fragments.append(("class:view.muted" if inactive else "class:view.ascii", text))
            fragments.append(("", "\n"))
        return fragments


def view_memory(
    channel: Channel,
    address: int,
    value_type: ValueType = ValueType.BYTE,
    length: int = DEFAULT_VIEW_SIZE,
) -> MemoryView:
    """Read ``length`` bytes once and prepare them for rendering as ``value_type``."""
    if value_type is ValueType.VOID:
        raise ConversionError("Cannot view memory as Void")
    if length <= 0:
        raise ConversionError("View size must be positive")
    data = read_bytes(channel, address, length)
    if not data:
        raise ChannelError("No data read from memory")
    little = True
    if value_type not in HEX_VIEW_TYPES and value_type.size > 1:
        little = determine_endianness(channel, address, value_type, data)
    LOGGER.debug("view %#x: %d bytes as %s (%s-endian)", address, len(data), value_type.label, "little" if little else "big")
    return MemoryView(address=address, value_type=value_type, data=data, little_endian=little)


__all__ = [
    "DEFAULT_VIEW_SIZE",
    "HEX_VIEW_TYPES",
    "MemoryView",
    "ViewRow",
    "address_width",
    "column_width",
    "decode_value",
    "determine_endianness",
    "fit_cell",
    "view_memory",
]
