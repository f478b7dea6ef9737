"""Typed wrappers around the agent's remote calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .channel import Channel, ChannelError
from .records import (
    Function,
    Hook,
    Import,
    Instruction,
    JavaClass,
    JavaMethod,
    Module,
    ObjCClass,
    ObjCMethod,
    Range,
    Record,
    ScanResult,
    Symbol,
    Thread,
    Variable,
    parse_address,
)

LOGGER = logging.getLogger("inspx.client")

@dataclass
class AgentEnv:
    runtime: str
    arch: str
    platform: str
    pointer_size: int


@dataclass
class HookConfig:
    on_enter: bool = True
    on_leave: bool = False
    log_args: bool = False
    log_retval: bool = False
    backtrace: bool = False
    arg_count: int = 4

    def to_payload(self) -> Dict[str, Any]:
        return {
            "onEnter": self.on_enter,
            "onLeave": self.on_leave,
            "logArgs": self.log_args,
            "logRetval": self.log_retval,
            "backtrace": self.backtrace,
            "argCount": self.arg_count,
        }


@dataclass
class ScanSummary:
    count: int
    results: List[ScanResult]


@dataclass
class PatchResult:
    """Bytes at ``address`` before and after a patch."""

    address: int
    original: bytes
    patched: bytes


@dataclass
class StackEntry:
    offset: int
    address: int
    value: int
    module: Optional[str] = None
    symbol: Optional[str] = None


@dataclass
class Frame:
    address: int
    module: Optional[str] = None
    symbol: Optional[str] = None
    offset: Optional[int] = None

    @property
    def location(self) -> str:
        if not self.module:
            return "???"
        text = f"{self.module}!{self.symbol}" if self.symbol else self.module
        if self.offset is not None:
            text += f" +{self.offset:#x}"
        return text


def _rows(reply: Any, method: str) -> List[Mapping[str, Any]]:
    if reply is None:
        return []
    if not isinstance(reply, list):
        raise ChannelError(f"{method}: expected a list, got {type(reply).__name__}")
    return [row for row in reply if isinstance(row, Mapping)]


def _decode(rows: List[Mapping[str, Any]], factory, method: str) -> List[Any]:
    records: List[Any] = []
    for row in rows:
        try:
            records.append(factory(row))
        except ValueError as exc:
            LOGGER.warning("%s: skipping malformed entry %s: %s", method, row, exc)
    return records


def _byte_list(value: Any, method: str) -> bytes:
    if value is None:
        return b""
    try:
        return bytes(int(item) & 0xFF for item in value)
    except (TypeError, ValueError):
        raise ChannelError(f"{method}: invalid byte list {value!r}") from None


def _checked(reply: Any, method: str) -> Mapping[str, Any]:
    if reply is None:
        return {}
    if not isinstance(reply, Mapping):
        raise ChannelError(f"{method}: unexpected reply {reply!r}")
    if reply.get("success") is False:
        raise ChannelError(f"{method} failed: {reply.get('error', 'unknown error')}")
    return reply


class AgentClient:
    """High level calls returning catalog records."""

    def __init__(self, channel: Channel) -> None:
        self.channel = channel

    def _call(self, method: str, *args: Any) -> Any:
        return self.channel.call(method, list(args))

    # ------------------------------------------------------------------
    # Environment and listings
    # ------------------------------------------------------------------
    def get_env(self) -> AgentEnv:
        reply = self._call("get_env")
        if not isinstance(reply, list) or len(reply) < 4:
            raise ChannelError(f"get_env: unexpected reply {reply!r}")
        return AgentEnv(str(reply[0]), str(reply[1]), str(reply[2]), int(reply[3]))

    def list_modules(self) -> List[Record]:
        return _decode(_rows(self._call("list_modules"), "list_modules"), Module.from_remote, "list_modules")

    def list_ranges(self, protection: str = "---") -> List[Record]:
        rows = _rows(self._call("list_ranges", protection), "list_ranges")
        return _decode(rows, Range.from_remote, "list_ranges")

    def list_functions(self, module: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_functions", module), "list_functions")
        return _decode(rows, Function.from_remote, "list_functions")

    def list_variables(self, module: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_variables", module), "list_variables")
        return _decode(rows, Variable.from_remote, "list_variables")

    def list_imports(self, module: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_imports", module), "list_imports")
        return _decode(rows, Import.from_remote, "list_imports")

    def list_symbols(self, module: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_symbols", module), "list_symbols")
        return _decode(rows, Symbol.from_remote, "list_symbols")

    def list_exports(self, module: Optional[str] = None) -> List[Record]:
        """Exports become Function or Variable records depending on their type."""
        rows = _rows(self._call("list_exports", module), "list_exports")

        def build(row: Mapping[str, Any]) -> Record:
            if row.get("type") == "variable":
                return Variable.from_remote(row)
            return Function.from_remote(row)

        return _decode(rows, build, "list_exports")

    def list_threads(self) -> List[Record]:
        return _decode(_rows(self._call("list_threads"), "list_threads"), Thread.from_remote, "list_threads")

    def list_java_classes(self, name_filter: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_java_classes", name_filter), "list_java_classes")
        return _decode(rows, JavaClass.from_remote, "list_java_classes")

    def list_java_methods(self, class_name: str, name_filter: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_java_methods", class_name, name_filter), "list_java_methods")
        return _decode(rows, JavaMethod.from_remote, "list_java_methods")

    def list_objc_classes(self, name_filter: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_objc_classes", name_filter), "list_objc_classes")
        return _decode(rows, ObjCClass.from_remote, "list_objc_classes")

    def list_objc_methods(self, class_name: str, name_filter: Optional[str] = None) -> List[Record]:
        rows = _rows(self._call("list_objc_methods", class_name, name_filter), "list_objc_methods")
        return _decode(rows, ObjCMethod.from_remote, "list_objc_methods")

    def find_symbol(self, name: str) -> Optional[int]:
        reply = self._call("find_symbol", name)
        if not reply:
            return None
        if isinstance(reply, Mapping):
            reply = reply.get("address")
        try:
            return parse_address(reply)
        except ValueError:
            raise ChannelError(f"find_symbol: invalid address {reply!r}") from None

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------
    def get_thread_context(self, thread_id: int) -> Optional[Dict[str, str]]:
        """Register name to value text, or None when the thread has no context."""
        reply = self._call("get_thread_context", thread_id)
        if reply is None:
            return None
        if not isinstance(reply, Mapping):
            raise ChannelError(f"get_thread_context: unexpected reply {reply!r}")
        return {str(name): str(value) for name, value in reply.items() if value is not None}

    def read_stack(self, address: int, depth: int = 32) -> List[StackEntry]:
        rows = _rows(self._call("read_stack", f"{address:#x}", depth), "read_stack")

        def build(row: Mapping[str, Any]) -> StackEntry:
            return StackEntry(
                offset=int(row.get("offset") or 0),
                address=parse_address(row.get("address")),
                value=parse_address(row.get("value")),
                module=row.get("module"),
                symbol=row.get("symbol"),
            )

        return _decode(rows, build, "read_stack")

    def backtrace(self) -> List[Frame]:
        rows = _rows(self._call("backtrace"), "backtrace")

        def build(row: Mapping[str, Any]) -> Frame:
            offset = row.get("offset")
            return Frame(
                address=parse_address(row.get("address")),
                module=row.get("module"),
                symbol=row.get("symbol"),
                offset=None if offset is None else int(offset),
            )

        return _decode(rows, build, "backtrace")

    # ------------------------------------------------------------------
    # Patching
    # ------------------------------------------------------------------
    def _patch_result(self, reply: Any, method: str, address: int) -> PatchResult:
        body = _checked(reply, method)
        if not body:
            raise ChannelError(f"No response from {method}")
        return PatchResult(
            address=address,
            original=_byte_list(body.get("original"), method),
            patched=_byte_list(body.get("patched"), method),
        )

    def patch_bytes(self, address: int, data: bytes) -> PatchResult:
        reply = self._call("patch_bytes", f"{address:#x}", list(data))
        return self._patch_result(reply, "patch_bytes", address)

    def nop_instructions(self, address: int, count: int = 1) -> PatchResult:
        reply = self._call("nop_instructions", f"{address:#x}", count)
        return self._patch_result(reply, "nop_instructions", address)

    def restore_bytes(self, address: int, original: bytes) -> PatchResult:
        reply = self._call("restore_bytes", f"{address:#x}", list(original))
        return self._patch_result(reply, "restore_bytes", address)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def hook_attach(self, address: int, config: HookConfig) -> str:
        reply = _checked(self._call("hook_attach", f"{address:#x}", config.to_payload()), "hook_attach")
        return str(reply.get("id", ""))

    def hook_detach(self, hook_id: str) -> None:
        _checked(self._call("hook_detach", hook_id), "hook_detach")

    def hook_enable(self, hook_id: str) -> None:
        _checked(self._call("hook_enable", hook_id), "hook_enable")

    def hook_disable(self, hook_id: str) -> None:
        _checked(self._call("hook_disable", hook_id), "hook_disable")

    def hook_list(self) -> List[Record]:
        return _decode(_rows(self._call("hook_list"), "hook_list"), Hook.from_remote, "hook_list")

    def hook_clear_all(self) -> int:
        reply = _checked(self._call("hook_clear_all"), "hook_clear_all")
        return int(reply.get("count", 0))

    # ------------------------------------------------------------------
    # Disassembly
    # ------------------------------------------------------------------
    def disassemble(self, address: int, count: int = 20) -> List[Record]:
        rows = _rows(self._call("disassemble", f"{address:#x}", count), "disassemble")
        return _decode(rows, Instruction.from_remote, "disassemble")

    def disassemble_function(self, address: int) -> List[Record]:
        rows = _rows(self._call("disassemble_function", f"{address:#x}"), "disassemble_function")
        return _decode(rows, Instruction.from_remote, "disassemble_function")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------
    def _scan_summary(self, reply: Any, method: str, pattern: Optional[str]) -> ScanSummary:
        body = _checked(reply, method)
        rows = _rows(body.get("results"), method)

        def build(row: Mapping[str, Any]) -> ScanResult:
            result = ScanResult.from_remote(row, pattern=pattern)
            if row.get("currentValue") is not None and result.value is None:
                result.value = str(row["currentValue"])
            return result

        results = _decode(rows, build, method)
        count = int(body.get("count", len(results)))
        return ScanSummary(count=count, results=results)  # type: ignore[arg-type]

    @staticmethod
    def _scan_args(first: Any, protection: Optional[str]) -> List[Any]:
        return [first] if protection is None else [first, protection]

    def scan_pattern(self, pattern: str, protection: Optional[str] = None) -> ScanSummary:
        reply = self.channel.call("scan_pattern", self._scan_args(pattern, protection))
        return self._scan_summary(reply, "scan_pattern", pattern)

    def scan_string(self, text: str, protection: Optional[str] = None) -> ScanSummary:
        reply = self.channel.call("scan_string", self._scan_args(text, protection))
        return self._scan_summary(reply, "scan_string", text)

    def scan_value(self, value_type: str, value: str, protection: Optional[str] = None) -> ScanSummary:
        args: List[Any] = [value_type, value]
        if protection is not None:
            args.append(protection)
        reply = self.channel.call("scan_value", args)
        return self._scan_summary(reply, "scan_value", value)

    def scan_next(self, value_type: str, value: str, comparison: str = "eq") -> ScanSummary:
        reply = self._call("scan_next", value_type, value, comparison)
        return self._scan_summary(reply, "scan_next", value)

    def _scan_count(self, method: str, value_type: str) -> int:
        body = _checked(self._call(method, value_type), method)
        return int(body.get("count", 0))

    def scan_changed(self, value_type: str) -> int:
        return self._scan_count("scan_changed", value_type)

    def scan_unchanged(self, value_type: str) -> int:
        return self._scan_count("scan_unchanged", value_type)

    def scan_snapshot(self, value_type: str) -> int:
        return self._scan_count("scan_snapshot", value_type)

    def scan_result_values(self, value_type: str, offset: int = 0, limit: int = 100, size: int = 0) -> List[Record]:
        rows = _rows(self._call("get_scan_result_values", value_type, offset, limit), "get_scan_result_values")

        def build(row: Mapping[str, Any]) -> ScanResult:
            result = ScanResult.from_remote(row)
            result.size = result.size or size
            return result

        return _decode(rows, build, "get_scan_result_values")

    def clear_scan(self) -> None:
        _checked(self._call("clear_scan"), "clear_scan")


__all__ = ["AgentClient", "AgentEnv", "Frame", "HookConfig", "PatchResult", "ScanSummary", "StackEntry"]
