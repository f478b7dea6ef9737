"""Tests for memory views and byte-order calibration."""

from __future__ import annotations

import struct

import pytest

from agent_stubs import FakeChannel, memory_replies
from inspx.channel import ChannelError
from inspx.memory import ConversionError
from inspx.memview import (
    ASCII_GAP,
    MemoryView,
    column_width,
    decode_value,
    determine_endianness,
    fit_cell,
    view_memory,
)
from inspx.records import ValueType

BASE = 0x1000


def test_column_width_matches_hex_bytes():
    assert column_width(ValueType.BYTE) == 2
    assert column_width(ValueType.INT) == 11
    assert column_width(ValueType.DOUBLE) == 23


def test_decode_value_both_orders():
    raw = struct.pack("<i", 0x01020304)
    assert decode_value(ValueType.INT, raw, True) == 0x01020304
    assert decode_value(ValueType.INT, raw, False) == 0x04030201
    with pytest.raises(ConversionError):
        decode_value(ValueType.INT, raw[:2])


def test_view_calibrates_once():
    data = struct.pack("<8i", *range(1, 9))
    channel = FakeChannel(memory_replies(BASE, data))
    view = view_memory(channel, BASE, ValueType.INT, len(data))
    assert view.little_endian is True
    assert channel.methods() == ["check_read_protection", "reader_bytes", "reader_int"]
    assert channel.params("reader_bytes") == [[BASE, 32]]


def test_view_detects_big_endian():
    data = struct.pack(">4i", 5, 6, 7, 8)
    channel = FakeChannel(memory_replies(BASE, data, little_endian=False))
    view = view_memory(channel, BASE, ValueType.INT, len(data))
    assert view.little_endian is False
    assert [text for text, _ in view.rows()[0].cells] == ["5", "6", "7", "8"]


def test_hex_view_skips_endianness_check():
    channel = FakeChannel(memory_replies(BASE, bytes(16)))
    view_memory(channel, BASE, ValueType.BYTE, 16)
    assert "reader_int" not in channel.methods()
    assert determine_endianness(channel, BASE, ValueType.STRING, b"abcd") is True


def test_failed_endianness_check_assumes_little_endian():
    replies = memory_replies(BASE, bytes(8))
    replies["reader_long"] = ChannelError("reader_long failed: access violation")
    channel = FakeChannel(replies)
    view = view_memory(channel, BASE, ValueType.LONG, 8)
    assert view.little_endian is True


def test_float_endianness_check_compares_bits():
    data = struct.pack("<f", float("nan")) + struct.pack("<f", 2.5)
    channel = FakeChannel(memory_replies(BASE, data))
    assert determine_endianness(channel, BASE, ValueType.FLOAT, data) is True


def test_view_rejects_void_and_empty():
    channel = FakeChannel({"reader_bytes": []})
    with pytest.raises(ConversionError):
        view_memory(channel, BASE, ValueType.VOID)
    with pytest.raises(ConversionError):
        view_memory(channel, BASE, ValueType.BYTE, 0)
    with pytest.raises(ChannelError, match="No data read from memory"):
        view_memory(channel, BASE, ValueType.BYTE, 16)


def test_hex_row_layout():
    data = bytes(range(0x41, 0x51))
    view = MemoryView(address=BASE, value_type=ValueType.BYTE, data=data)
    header, row = view.to_text().splitlines()
    hex_column = " ".join(f"{b:02x}" for b in data)
    assert row == "0x1000 " + hex_column.ljust(48) + ASCII_GAP + "ABCDEFGHIJKLMNOP"
    labels = " ".join(f"{idx:X}".ljust(2) for idx in range(16))
    assert header == " " * 7 + labels.ljust(48) + ASCII_GAP + "0123456789ABCDEF"


def test_typed_row_marks_inactive_values():
    data = struct.pack("<4i", 1, 0, -1, 7)
    view = MemoryView(address=BASE, value_type=ValueType.INT, data=data)
    (row,) = view.rows()
    assert row.cells == [("1", False), ("0", True), ("-1", False), ("7", False)]
    assert row.ascii[1] == (".", True)
    assert view.header().split()[:4] == ["0", "4", "8", "C"]


def test_address_width_follows_last_row():
    assert MemoryView(0xFFF0, ValueType.BYTE, bytes(16)).address_width == 6
    assert MemoryView(0xFFF0, ValueType.BYTE, bytes(32)).address_width == 10
    assert MemoryView(0xFFFFFFF0, ValueType.BYTE, bytes(32)).address_width == 18


def test_fragments_carry_view_classes():
    view = MemoryView(address=BASE, value_type=ValueType.BYTE, data=b"\x00A")
    styles = {style for style, _ in view.to_fragments()}
    assert {"class:view.header", "class:view.address", "class:view.muted", "class:view.value", "class:view.ascii"} <= styles


def test_bool_cells_fit_their_column():
    view = MemoryView(address=BASE, value_type=ValueType.BOOL, data=b"\x01\x00")
    (row,) = view.rows()
    assert row.cells == [("1", False), ("0", True)]


@pytest.mark.parametrize(
    "value_type, code, value, rel",
    [
        (ValueType.DOUBLE, "<d", -1.2345678901234567e-300, 1e-14),
        (ValueType.DOUBLE, "<d", 1.7976931348623157e308, 1e-14),
        (ValueType.FLOAT, "<f", -1.1754944e-38, 1e-4),
        (ValueType.FLOAT, "<f", 3.4028235e38, 1e-4),
    ],
)
def test_wide_float_cells_keep_their_magnitude(value_type, code, value, rel):
    view = MemoryView(address=BASE, value_type=value_type, data=struct.pack(code, value))
    (row,) = view.rows()
    text, _ = row.cells[0]
    assert len(text) <= column_width(value_type)
    assert float(text) == pytest.approx(struct.unpack(code, struct.pack(code, value))[0], rel=rel)


def test_wide_integer_cell_is_marked_not_cut():
    view = MemoryView(address=BASE, value_type=ValueType.SHORT, data=struct.pack("<2h", -32768, 1234))
    (row,) = view.rows()
    assert [text for text, _ in row.cells] == ["#####", "1234"]
    assert fit_cell(ValueType.INT, -2147483648, "-2147483648", 11) == "-2147483648"
