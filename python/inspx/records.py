"""
Record model for the inspection catalog.

Every object the agent reports (modules, ranges, exports, hooks, scan hits,
threads, ...) becomes one of the dataclasses below.  They share a small header
(``kind`` and ``is_saved``) through :class:`RecordBase` and render themselves
both as plain text and as prompt_toolkit style fragments.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

Fragments = List[Tuple[str, str]]

ADDRESS_MASK = 0xFFFFFFFFFFFFFFFF


class DataKind(str, Enum):
    POINTER = "Pointer"
    MODULE = "Module"
    RANGE = "Range"
    FUNCTION = "Function"
    VARIABLE = "Variable"
    JAVA_CLASS = "JavaClass"
    JAVA_METHOD = "JavaMethod"
    OBJC_CLASS = "ObjCClass"
    OBJC_METHOD = "ObjCMethod"
    THREAD = "Thread"
    HOOK = "Hook"
    INSTRUCTION = "Instruction"
    SCAN_RESULT = "ScanResult"
    IMPORT = "Import"
    SYMBOL = "Symbol"

    def __str__(self) -> str:
        return self.value


class ValueType(str, Enum):
    """Value kinds understood by the memory codec."""

    BYTE = "Byte"
    UBYTE = "uByte"
    SHORT = "Short"
    USHORT = "uShort"
    INT = "Int"
    UINT = "uInt"
    LONG = "Long"
    ULONG = "uLong"
    FLOAT = "Float"
    DOUBLE = "Double"
    BOOL = "Bool"
    STRING = "String"
    BYTES = "Bytes"
    POINTER = "Pointer"
    VOID = "Void"

    @property
    def label(self) -> str:
        return self.value

    @property
    def size(self) -> int:
        return _VALUE_SIZES[self]

    def __str__(self) -> str:
        return self.value


_VALUE_SIZES: Dict[ValueType, int] = {
    ValueType.BYTE: 1,
    ValueType.UBYTE: 1,
    ValueType.SHORT: 2,
    ValueType.USHORT: 2,
    ValueType.INT: 4,
    ValueType.UINT: 4,
    ValueType.LONG: 8,
    ValueType.ULONG: 8,
    ValueType.FLOAT: 4,
    ValueType.DOUBLE: 8,
    ValueType.BOOL: 1,
    ValueType.STRING: 1,
    ValueType.BYTES: 1,
    ValueType.POINTER: 8,
    ValueType.VOID: 1,
}


def parse_address(value: Any) -> int:
    """Coerce an address as reported by the agent (int, ``"0x.."`` or decimal string)."""
    if isinstance(value, bool):
        raise ValueError(f"invalid address: {value!r}")
    if isinstance(value, int):
        return value & ADDRESS_MASK
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("invalid address: empty string")
        try:
            if text.lower().startswith("0x"):
                return int(text, 16) & ADDRESS_MASK
            return int(text, 10) & ADDRESS_MASK
        except ValueError:
            raise ValueError(f"invalid address: {value!r}") from None
    raise ValueError(f"invalid address: {value!r}")


def _optional_address(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return parse_address(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value, 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        return None


def _required_name(payload: Mapping[str, Any]) -> str:
    name = payload.get("name")
    if not name:
        raise ValueError("entry has no name")
    return str(name)


def _kind(text: str) -> Tuple[str, str]:
    return ("class:record.kind", f"[{text}] ")


def _addr(value: int) -> Tuple[str, str]:
    return ("class:record.address", f"{value:#x}")


def _name(text: str) -> Tuple[str, str]:
    return ("class:record.name", text)


def _muted(text: str) -> Tuple[str, str]:
    return ("class:record.muted", text)


def _accent(text: str) -> Tuple[str, str]:
    return ("class:record.accent", text)


class RecordBase:
    """Shared behaviour for all record variants."""

    kind: ClassVar[DataKind]
    is_saved: bool

    def address_of(self) -> Optional[int]:
        return getattr(self, "address", None)

    def to_pointer(self) -> Optional["Pointer"]:
        address = self.address_of()
        if address is None:
            return None
        return Pointer(address=address, size=8, value_type=ValueType.POINTER, is_saved=self.is_saved)

    def fragments(self) -> Fragments:
        raise NotImplementedError

    def label(self) -> str:
        """Compact ``Kind:details`` form used by the navigator prompt."""
        raise NotImplementedError

    def __str__(self) -> str:
        return "".join(text for _, text in self.fragments())


@dataclass
class Pointer(RecordBase):
    kind: ClassVar[DataKind] = DataKind.POINTER

    address: int
    size: int = 8
    value_type: ValueType = ValueType.POINTER
    is_saved: bool = False

    def fragments(self) -> Fragments:
        return [
            _kind("Pointer"),
            _addr(self.address),
            _muted(f" ({self.size:#x}) "),
            _accent(f"[{self.value_type.label}]"),
        ]

    def label(self) -> str:
        return f"Pointer:{self.address:#x}"


@dataclass
class Module(RecordBase):
    kind: ClassVar[DataKind] = DataKind.MODULE

    name: str
    address: int
    size: int
    path: Optional[str] = None
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Module":
        return cls(
            name=str(payload.get("name", "")),
            address=parse_address(payload.get("address")),
            size=_optional_int(payload.get("size")) or 0,
            path=payload.get("path"),
        )

    def fragments(self) -> Fragments:
        return [
            _kind("Module"),
            _name(self.name),
            _muted(" @ "),
            _addr(self.address),
            _muted(f" ({self.size:#x})"),
        ]

    def label(self) -> str:
        return f"Module:{self.name}@{self.address:#x}"


@dataclass
class Range(RecordBase):
    kind: ClassVar[DataKind] = DataKind.RANGE

    address: int
    size: int
    protection: str
    file: Optional[str] = None
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Range":
        file_info = payload.get("file")
        if isinstance(file_info, Mapping):
            file_info = file_info.get("path")
        return cls(
            address=parse_address(payload.get("address", payload.get("base"))),
            size=_optional_int(payload.get("size")) or 0,
            protection=str(payload.get("protection", "---")),
            file=file_info,
        )

    @property
    def end(self) -> int:
        return (self.address + self.size) & ADDRESS_MASK

    def fragments(self) -> Fragments:
        return [
            _kind("Range"),
            _addr(self.address),
            _muted(" - "),
            _addr(self.end),
            _muted(f" ({self.size:#x}) "),
            _accent(f"[{self.protection}]"),
        ]

    def label(self) -> str:
        return f"Range:{self.address:#x}"


@dataclass
class Function(RecordBase):
    kind: ClassVar[DataKind] = DataKind.FUNCTION

    name: str
    address: int
    module: str = ""
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Function":
        return cls(
            name=str(payload.get("name", "")),
            address=parse_address(payload.get("address")),
            module=str(payload.get("module") or ""),
        )

    def fragments(self) -> Fragments:
        return [
            _kind(self.kind.value),
            _name(self.name),
            _muted(" @ "),
            _addr(self.address),
            _muted(f" ({self.module})"),
        ]

    def label(self) -> str:
        return f"{self.kind.value}:{self.name}@{self.address:#x}"


@dataclass
class Variable(Function):
    kind: ClassVar[DataKind] = DataKind.VARIABLE


@dataclass
class JavaClass(RecordBase):
    kind: ClassVar[DataKind] = DataKind.JAVA_CLASS

    name: str
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "JavaClass":
        return cls(name=_required_name(payload))

    def fragments(self) -> Fragments:
        return [_kind("JavaClass"), _name(self.name)]

    def label(self) -> str:
        return f"JavaClass:{self.name}"


@dataclass
class JavaMethod(RecordBase):
    kind: ClassVar[DataKind] = DataKind.JAVA_METHOD

    class_name: str
    name: str
    args: List[str] = field(default_factory=list)
    return_type: str = "void"
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "JavaMethod":
        args = payload.get("args") or []
        return cls(
            class_name=str(payload.get("class", "")),
            name=_required_name(payload),
            args=[str(arg) for arg in args],
            return_type=str(payload.get("return_type") or "void"),
        )

    def fragments(self) -> Fragments:
        return [
            _kind("JavaMethod"),
            _name(self.name),
            _muted(f"({', '.join(self.args)}) -> "),
            _accent(self.return_type),
            _muted(f" @ ({self.class_name})"),
        ]

    def label(self) -> str:
        return f"JavaMethod:{self.name}"


@dataclass
class ObjCClass(RecordBase):
    kind: ClassVar[DataKind] = DataKind.OBJC_CLASS

    name: str
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "ObjCClass":
        return cls(name=_required_name(payload))

    def fragments(self) -> Fragments:
        return [_kind("ObjCClass"), _name(self.name)]

    def label(self) -> str:
        return f"ObjCClass:{self.name}"


@dataclass
class ObjCMethod(RecordBase):
    kind: ClassVar[DataKind] = DataKind.OBJC_METHOD

    class_name: str
    name: str
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "ObjCMethod":
        return cls(class_name=str(payload.get("class", "")), name=_required_name(payload))

    def fragments(self) -> Fragments:
        return [_kind("ObjCMethod"), _name(self.name), _muted(f" @ ({self.class_name})")]

    def label(self) -> str:
        return f"ObjCMethod:{self.name}"


@dataclass
class Thread(RecordBase):
    kind: ClassVar[DataKind] = DataKind.THREAD

    id: int
    state: Optional[str] = None
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Thread":
        return cls(id=_optional_int(payload.get("id")) or 0, state=payload.get("state"))

    def fragments(self) -> Fragments:
        parts = [_kind("Thread"), _name(str(self.id))]
        if self.state:
            parts.append(_muted(f" ({self.state})"))
        return parts

    def label(self) -> str:
        return f"Thread:{self.id}"


@dataclass
class Hook(RecordBase):
    kind: ClassVar[DataKind] = DataKind.HOOK

    id: str
    address: int
    target_name: Optional[str] = None
    module: Optional[str] = None
    enabled: bool = True
    on_enter: bool = True
    on_leave: bool = False
    log_args: bool = False
    log_retval: bool = False
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Hook":
        return cls(
            id=str(payload.get("id", "")),
            address=parse_address(payload.get("address")),
            target_name=payload.get("name") or payload.get("target"),
            module=payload.get("module"),
            enabled=bool(payload.get("enabled", True)),
            on_enter=bool(payload.get("onEnter", True)),
            on_leave=bool(payload.get("onLeave", False)),
            log_args=bool(payload.get("logArgs", False)),
            log_retval=bool(payload.get("logRetval", False)),
        )

    @property
    def flags(self) -> str:
        return "".join(
            letter if enabled else "-"
            for letter, enabled in (
                ("E", self.on_enter),
                ("L", self.on_leave),
                ("A", self.log_args),
                ("R", self.log_retval),
            )
        )

    def fragments(self) -> Fragments:
        return [
            _kind("Hook"),
            _accent(self.id),
            ("", " "),
            _name(self.target_name or "unknown"),
            _muted(" @ "),
            _addr(self.address),
            _muted(f" [{self.flags}] "),
            ("class:record.accent" if self.enabled else "class:record.muted",
             "(enabled)" if self.enabled else "(disabled)"),
        ]

    def label(self) -> str:
        return f"Hook:{self.id}@{self.address:#x}"


@dataclass
class Instruction(RecordBase):
    kind: ClassVar[DataKind] = DataKind.INSTRUCTION

    address: int
    size: int
    mnemonic: str
    op_str: str = ""
    bytes: List[int] = field(default_factory=list)
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Instruction":
        raw = payload.get("bytes") or []
        if isinstance(raw, str):
            data = [int(tok, 16) for tok in raw.split()]
        else:
            data = [int(b) & 0xFF for b in raw]
        return cls(
            address=parse_address(payload.get("address")),
            size=_optional_int(payload.get("size")) or len(data),
            mnemonic=str(payload.get("mnemonic", "")),
            op_str=str(payload.get("opStr", payload.get("op_str", ""))),
            bytes=data,
        )

    def fragments(self) -> Fragments:
        hex_bytes = " ".join(f"{b:02x}" for b in self.bytes)
        return [
            _addr(self.address),
            _muted(f"  {hex_bytes:<24} "),
            _accent(self.mnemonic),
            ("", f" {self.op_str}" if self.op_str else ""),
        ]

    def label(self) -> str:
        return f"{self.address:#x}"


@dataclass
class ScanResult(RecordBase):
    kind: ClassVar[DataKind] = DataKind.SCAN_RESULT

    address: int
    size: int = 0
    value: Optional[str] = None
    pattern: Optional[str] = None
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any], *, pattern: Optional[str] = None) -> "ScanResult":
        value = payload.get("value")
        return cls(
            address=parse_address(payload.get("address")),
            size=_optional_int(payload.get("size")) or 0,
            value=None if value is None else str(value),
            pattern=payload.get("pattern", pattern),
        )

    def fragments(self) -> Fragments:
        return [
            _kind("ScanResult"),
            _addr(self.address),
            _muted(" = "),
            _accent(self.value if self.value is not None else "?"),
        ]

    def label(self) -> str:
        return f"{self.address:#x} = {self.value if self.value is not None else '?'}"


@dataclass
class Import(RecordBase):
    kind: ClassVar[DataKind] = DataKind.IMPORT

    name: str
    address: Optional[int] = None
    import_type: str = "function"
    module: str = ""
    slot: Optional[int] = None
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Import":
        return cls(
            name=str(payload.get("name", "")),
            address=_optional_address(payload.get("address")),
            import_type=str(payload.get("type") or "function"),
            module=str(payload.get("module") or ""),
            slot=_optional_address(payload.get("slot")),
        )

    def fragments(self) -> Fragments:
        where = _addr(self.address) if self.address is not None else _muted("?")
        return [
            _kind("Import"),
            _name(self.name),
            _muted(" @ "),
            where,
            _muted(f" ({self.module}) "),
            _accent(f"[{self.import_type}]"),
        ]

    def label(self) -> str:
        return f"Import:{self.name}"


@dataclass
class Symbol(RecordBase):
    kind: ClassVar[DataKind] = DataKind.SYMBOL

    name: str
    address: int
    symbol_type: str = "unknown"
    size: Optional[int] = None
    is_global: bool = False
    section: Optional[str] = None
    is_saved: bool = False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any]) -> "Symbol":
        section = payload.get("section")
        if isinstance(section, Mapping):
            section = section.get("id") or section.get("name")
        return cls(
            name=str(payload.get("name", "")),
            address=parse_address(payload.get("address")),
            symbol_type=str(payload.get("type") or "unknown"),
            size=_optional_int(payload.get("size")),
            is_global=bool(payload.get("isGlobal", False)),
            section=section,
        )

    def fragments(self) -> Fragments:
        parts = [_kind("Symbol"), _name(self.name), _muted(" @ "), _addr(self.address)]
        if self.size is not None:
            parts.append(_muted(f" ({self.size:#x})"))
        scope = "G" if self.is_global else "L"
        parts.append(_accent(f" [{self.symbol_type}{scope}]"))
        return parts

    def label(self) -> str:
        return f"Symbol:{self.name}"


Record = Union[
    Pointer,
    Module,
    Range,
    Function,
    Variable,
    JavaClass,
    JavaMethod,
    ObjCClass,
    ObjCMethod,
    Thread,
    Hook,
    Instruction,
    ScanResult,
    Import,
    Symbol,
]


def mark_saved(record: Record) -> Record:
    """Return a copy of ``record`` flagged as saved."""
    saved = deepcopy(record)
    saved.is_saved = True
    return saved


__all__ = [
    "ADDRESS_MASK",
    "DataKind",
    "ValueType",
    "RecordBase",
    "Record",
    "Pointer",
    "Module",
    "Range",
    "Function",
    "Variable",
    "JavaClass",
    "JavaMethod",
    "ObjCClass",
    "ObjCMethod",
    "Thread",
    "Hook",
    "Instruction",
    "ScanResult",
    "Import",
    "Symbol",
    "mark_saved",
    "parse_address",
]
