"""
Typed memory access over the instrumentation channel.

Every read and write is preceded by a protection check so that a permission
problem surfaces as :class:`MemoryAccessError` rather than as an opaque
channel failure.  Values travel as JSON: 64-bit integers may come back as
numbers or numeric strings and are sent as decimal strings.
"""

from __future__ import annotations

import logging
import math
import struct
from typing import Any, Dict, List, Optional, Tuple, Union

from .channel import Channel, ChannelError
from .records import Pointer, Record, ValueType

LOGGER = logging.getLogger("inspx.memory")

Value = Union[int, float, bool, str, bytes]

DEFAULT_BYTES_LENGTH = 16


class ConversionError(ValueError):
    """Raised for unknown value kinds, bad literals, or records without an address."""


class MemoryAccessError(PermissionError):
    """Raised when the protection check denies a read or write."""

    def __init__(self, address: int, access: str, protection: Optional[str]) -> None:
        self.address = address
        self.access = access
        self.protection = protection or "unknown"
        if access == "read":
            text = f"Cannot read from address {address:#x}: insufficient read permissions"
        else:
            text = f"Cannot write to address {address:#x}: insufficient write permissions"
        super().__init__(f"{text} (protection: {self.protection})")


_ALIASES: Dict[str, ValueType] = {}
for _names, _kind in (
    (("b", "byte", "int8"), ValueType.BYTE),
    (("ub", "ubyte", "uint8"), ValueType.UBYTE),
    (("s", "short", "int16"), ValueType.SHORT),
    (("us", "ushort", "uint16"), ValueType.USHORT),
    (("i", "int", "int32"), ValueType.INT),
    (("ui", "uint", "uint32"), ValueType.UINT),
    (("l", "long", "int64"), ValueType.LONG),
    (("ul", "ulong", "uint64"), ValueType.ULONG),
    (("f", "float", "float32"), ValueType.FLOAT),
    (("d", "double", "float64"), ValueType.DOUBLE),
    (("bl", "bool", "boolean"), ValueType.BOOL),
    (("str", "string", "utf8"), ValueType.STRING),
    (("bs", "arr", "bytes", "array"), ValueType.BYTES),
    (("p", "ptr", "pointer"), ValueType.POINTER),
):
    for _name in _names:
        _ALIASES[_name] = _kind
del _names, _kind, _name

VALUE_TYPE_NAMES: Tuple[str, ...] = tuple(sorted(_ALIASES))


def parse_value_type(text: Optional[str]) -> ValueType:
    """Map a type mnemonic (``i``, ``uint32``, ``str`` ...) to a :class:`ValueType`; empty means byte."""
    key = (text or "").strip().lower()
    if not key:
        return ValueType.BYTE
    try:
        return _ALIASES[key]
    except KeyError:
        raise ConversionError(f"Invalid memory type: '{text}'") from None


_INT_RANGES: Dict[ValueType, Tuple[int, int]] = {
    ValueType.BYTE: (-(1 << 7), (1 << 7) - 1),
    ValueType.UBYTE: (0, (1 << 8) - 1),
    ValueType.SHORT: (-(1 << 15), (1 << 15) - 1),
    ValueType.USHORT: (0, (1 << 16) - 1),
    ValueType.INT: (-(1 << 31), (1 << 31) - 1),
    ValueType.UINT: (0, (1 << 32) - 1),
    ValueType.LONG: (-(1 << 63), (1 << 63) - 1),
    ValueType.ULONG: (0, (1 << 64) - 1),
    ValueType.POINTER: (0, (1 << 64) - 1),
}
_UNSIGNED = {ValueType.UBYTE, ValueType.USHORT, ValueType.UINT, ValueType.ULONG, ValueType.POINTER}
_WIDE = {ValueType.LONG, ValueType.ULONG, ValueType.POINTER}

_READERS: Dict[ValueType, str] = {
    ValueType.BYTE: "reader_byte",
    ValueType.UBYTE: "reader_ubyte",
    ValueType.SHORT: "reader_short",
    ValueType.USHORT: "reader_ushort",
    ValueType.INT: "reader_int",
    ValueType.UINT: "reader_uint",
    ValueType.LONG: "reader_long",
    ValueType.ULONG: "reader_ulong",
    ValueType.FLOAT: "reader_float",
    ValueType.DOUBLE: "reader_double",
    ValueType.BOOL: "reader_byte",
    ValueType.STRING: "reader_string",
    ValueType.BYTES: "reader_bytes",
    ValueType.POINTER: "reader_ulong",
}
_WRITERS: Dict[ValueType, str] = {kind: name.replace("reader_", "writer_") for kind, name in _READERS.items()}


def address_of(record: Record) -> int:
    """Address a record points at; fails for records that do not carry one."""
    if isinstance(record, Pointer) and record.value_type is ValueType.VOID:
        raise ConversionError("Void pointer has no readable address")
    address = record.address_of()
    if address is None:
        raise ConversionError(f"{record.kind} record has no address")
    return address


# ----------------------------------------------------------------------
# Protection checks
# ----------------------------------------------------------------------
def _expect_bool(method: str, reply: Any) -> bool:
    if not isinstance(reply, bool):
        raise ChannelError(f"{method}: invalid boolean value {reply!r}")
    return reply


def check_read_protection(channel: Channel, address: int) -> bool:
    return _expect_bool("check_read_protection", channel.call("check_read_protection", [address]))


def check_write_protection(channel: Channel, address: int) -> bool:
    return _expect_bool("check_write_protection", channel.call("check_write_protection", [address]))


def get_memory_protection(channel: Channel, address: int) -> Optional[str]:
    reply = channel.call("get_memory_protection", [address])
    return reply if isinstance(reply, str) else None


def _protection_or_none(channel: Channel, address: int) -> Optional[str]:
    try:
        return get_memory_protection(channel, address)
    except ChannelError as exc:
        LOGGER.debug("protection lookup at %#x failed: %s", address, exc)
        return None


def ensure_readable(channel: Channel, address: int) -> None:
    if not check_read_protection(channel, address):
        raise MemoryAccessError(address, "read", _protection_or_none(channel, address))


def ensure_writable(channel: Channel, address: int) -> None:
    if not check_write_protection(channel, address):
        raise MemoryAccessError(address, "write", _protection_or_none(channel, address))


# ----------------------------------------------------------------------
# Reading
# ----------------------------------------------------------------------
def _coerce_int(reply: Any, value_type: ValueType) -> int:
    if isinstance(reply, bool):
        return int(reply)
    if isinstance(reply, int):
        value = reply
    elif isinstance(reply, float) and reply.is_integer():
        value = int(reply)
    elif isinstance(reply, str):
        try:
            value = int(reply.strip(), 0)
        except ValueError:
            raise ChannelError(f"invalid {value_type.label} value {reply!r}") from None
    else:
        raise ChannelError(f"invalid {value_type.label} value {reply!r}")
    if value_type in _UNSIGNED:
        bits = value_type.size * 8
        value &= (1 << bits) - 1
    return value


def _coerce_bytes(reply: Any) -> bytes:
    if isinstance(reply, (bytes, bytearray)):
        return bytes(reply)
    if isinstance(reply, list):
        try:
            return bytes(int(item) & 0xFF for item in reply)
        except (TypeError, ValueError):
            raise ChannelError("invalid byte array reply") from None
    if isinstance(reply, str):
        try:
            return bytes.fromhex(reply)
        except ValueError:
            raise ChannelError("invalid hex byte reply") from None
    raise ChannelError(f"invalid byte array reply {type(reply).__name__}")


def _decode_reply(value_type: ValueType, reply: Any) -> Value:
    if value_type is ValueType.BOOL:
        return _coerce_int(reply, ValueType.UBYTE) != 0
    if value_type in _INT_RANGES:
        return _coerce_int(reply, value_type)
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        if isinstance(reply, bool) or not isinstance(reply, (int, float, str)):
            raise ChannelError(f"invalid {value_type.label} value {reply!r}")
        try:
            return float(reply)
        except ValueError:
            raise ChannelError(f"invalid {value_type.label} value {reply!r}") from None
    if value_type is ValueType.STRING:
        return str(reply)
    return _coerce_bytes(reply)


def read_value(channel: Channel, address: int, value_type: ValueType, length: Optional[int] = None) -> Value:
    """Check readability, then issue the typed reader call for ``value_type``."""
    if value_type is ValueType.VOID:
        raise ConversionError("Cannot read type Void")
    ensure_readable(channel, address)
    return fetch_value(channel, address, value_type, length)


def fetch_value(channel: Channel, address: int, value_type: ValueType, length: Optional[int] = None) -> Value:
    """Typed reader call without the protection check."""
    if value_type is ValueType.VOID:
        raise ConversionError("Cannot read type Void")
    method = _READERS[value_type]
    args: List[Any] = [address]
    if value_type is ValueType.BYTES:
        args.append(length if length is not None else DEFAULT_BYTES_LENGTH)
    elif value_type is ValueType.STRING and length is not None:
        args.append(length)
    reply = channel.call(method, args)
    if reply is None:
        raise ChannelError("No data returned")
    return _decode_reply(value_type, reply)


def read_bytes(channel: Channel, address: int, length: int) -> bytes:
    data = read_value(channel, address, ValueType.BYTES, length)
    assert isinstance(data, bytes)
    return data


# ----------------------------------------------------------------------
# Formatting
# ----------------------------------------------------------------------
def format_float32(value: float) -> str:
    """Shortest decimal text that packs back to the same 32-bit float."""
    if math.isnan(value) or math.isinf(value):
        return repr(value)
    try:
        packed = struct.pack("<f", value)
    except OverflowError:
        return repr(value)
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if struct.pack("<f", float(text)) == packed:
            return _with_decimal_point(text)
    return repr(value)


def _with_decimal_point(text: str) -> str:
    if "e" in text or "." in text:
        return text
    return text + ".0"


def float_bits(value: float, value_type: ValueType) -> int:
    if value_type is ValueType.FLOAT:
        try:
            return struct.unpack("<I", struct.pack("<f", value))[0]
        except OverflowError:
            return 0x7F800000 if value > 0 else 0xFF800000
    return struct.unpack("<Q", struct.pack("<d", value))[0]


def is_inactive(value_type: ValueType, value: Value) -> bool:
    """Zero-like values rendered with muted emphasis."""
    if value_type is ValueType.BOOL:
        return not value
    if value_type in _INT_RANGES:
        assert isinstance(value, int)
        if value == 0:
            return True
        # pointers are muted only when null
        return value_type in _UNSIGNED and value_type is not ValueType.POINTER and value == _INT_RANGES[value_type][1]
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        assert isinstance(value, float)
        return value == 0.0 or math.isnan(value)
    if value_type is ValueType.BYTES:
        assert isinstance(value, bytes)
        return all(b in (0x00, 0xFF) for b in value)
    if value_type is ValueType.STRING:
        return value == ""
    return False


def format_value(value_type: ValueType, value: Value, *, detailed: bool = False) -> Tuple[str, bool]:
    """Render a decoded value; returns ``(text, inactive)``."""
    inactive = is_inactive(value_type, value)
    if value_type is ValueType.BOOL:
        return ("true" if value else "false"), inactive
    if value_type is ValueType.POINTER:
        return f"{value:#018x}", inactive
    if value_type in _INT_RANGES:
        assert isinstance(value, int)
        if not detailed:
            return str(value), inactive
        bits = value_type.size * 8
        width = value_type.size * 2 + 2
        return f"{value} ({value & ((1 << bits) - 1):#0{width}x})", inactive
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        assert isinstance(value, float)
        text = format_float32(value) if value_type is ValueType.FLOAT else repr(value)
        if detailed:
            digits = 8 if value_type is ValueType.FLOAT else 16
            text = f"{text} (0x{float_bits(value, value_type):0{digits}x})"
        return text, inactive
    if value_type is ValueType.STRING:
        return f'"{value}"', inactive
    assert isinstance(value, bytes)
    text = " ".join(f"{b:02x}" for b in value)
    if detailed:
        text = f"{text} ({len(value)} bytes)"
    return text, inactive


def read_memory_by_type(
    channel: Channel,
    address: int,
    value_type: ValueType,
    length: Optional[int] = None,
    *,
    detailed: bool = True,
) -> Tuple[str, bool]:
    value = read_value(channel, address, value_type, length)
    return format_value(value_type, value, detailed=detailed)


# ----------------------------------------------------------------------
# Writing
# ----------------------------------------------------------------------
def _parse_int_literal(text: str, value_type: ValueType) -> int:
    stripped = text.strip()
    try:
        value = int(stripped, 10)
    except ValueError:
        try:
            value = int(stripped, 0)
        except ValueError:
            raise ConversionError(f"Invalid {value_type.label} value: '{text}'") from None
    low, high = _INT_RANGES[value_type]
    if not low <= value <= high:
        raise ConversionError(f"{value_type.label} value out of range: {text}")
    return value


def _parse_bytes_literal(text: str) -> bytes:
    stripped = text.strip()
    if stripped.startswith("[") and stripped.endswith("]"):
        stripped = stripped[1:-1]
    tokens = stripped.replace(",", " ").split()
    if not tokens:
        raise ConversionError("Byte array literal is empty")
    out = bytearray()
    for token in tokens:
        try:
            value = int(token, 16)
        except ValueError:
            raise ConversionError(f"Invalid hex byte: '{token}'") from None
        if not 0 <= value <= 0xFF:
            raise ConversionError(f"Hex byte out of range: '{token}'")
        out.append(value)
    return bytes(out)


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]
    return text


def parse_literal(text: str, value_type: ValueType) -> Value:
    """Convert user text into a value of ``value_type``."""
    if value_type is ValueType.VOID:
        raise ConversionError("Cannot write void type")
    if value_type is ValueType.BOOL:
        lowered = text.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise ConversionError(f"Invalid Bool value: '{text}' (expected true/false/1/0)")
    if value_type in _INT_RANGES:
        return _parse_int_literal(text, value_type)
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        try:
            value = float(text.strip())
        except ValueError:
            raise ConversionError(f"Invalid {value_type.label} value: '{text}'") from None
        if value_type is ValueType.FLOAT and math.isfinite(value):
            try:
                struct.pack("<f", value)
            except OverflowError:
                raise ConversionError(f"Float value out of range: {text}") from None
        return value
    if value_type is ValueType.STRING:
        return _strip_quotes(text)
    return _parse_bytes_literal(text)


def _wire_value(value_type: ValueType, value: Value) -> Any:
    if value_type is ValueType.BOOL:
        return 1 if value else 0
    if value_type in _WIDE:
        return str(value)
    if value_type is ValueType.BYTES:
        assert isinstance(value, bytes)
        return list(value)
    return value


def write_value(channel: Channel, address: int, text: str, value_type: ValueType) -> Value:
    """Parse ``text``, check writability, then issue the typed writer call."""
    value = parse_literal(text, value_type)
    ensure_writable(channel, address)
    method = _WRITERS[value_type]
    channel.call(method, [address, _wire_value(value_type, value)])
    LOGGER.debug("wrote %s %r at %#x", value_type.label, value, address)
    return value


__all__ = [
    "ConversionError",
    "DEFAULT_BYTES_LENGTH",
    "MemoryAccessError",
    "VALUE_TYPE_NAMES",
    "Value",
    "address_of",
    "check_read_protection",
    "check_write_protection",
    "ensure_readable",
    "ensure_writable",
    "fetch_value",
    "float_bits",
    "format_float32",
    "format_value",
    "get_memory_protection",
    "is_inactive",
    "parse_literal",
    "parse_value_type",
    "read_bytes",
    "read_memory_by_type",
    "read_value",
    "write_value",
]
