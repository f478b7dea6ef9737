"""Tests for the catalog record model."""

from __future__ import annotations

import pytest

from inspx.records import (
    Function,
    Hook,
    Import,
    Instruction,
    JavaClass,
    JavaMethod,
    Module,
    ObjCClass,
    ObjCMethod,
    Pointer,
    Range,
    ScanResult,
    Symbol,
    Thread,
    ValueType,
    Variable,
    mark_saved,
    parse_address,
)


def test_parse_address_accepts_ints_and_strings():
    assert parse_address(0x1000) == 0x1000
    assert parse_address("0x7fff0000") == 0x7FFF0000
    assert parse_address("4096") == 4096
    assert parse_address(-1) == 0xFFFFFFFFFFFFFFFF


@pytest.mark.parametrize("bad", ["", "zz", None, True, 1.5])
def test_parse_address_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_address(bad)


def test_pointer_display_and_label():
    ptr = Pointer(address=0x1000)
    assert str(ptr) == "[Pointer] 0x1000 (0x8) [Pointer]"
    assert ptr.label() == "Pointer:0x1000"


def test_module_from_remote_and_display():
    module = Module.from_remote({"name": "libc.so", "address": "0x7f0000", "size": 4096, "path": "/lib/libc.so"})
    assert module.address == 0x7F0000
    assert module.size == 0x1000
    assert str(module) == "[Module] libc.so @ 0x7f0000 (0x1000)"
    assert module.label() == "Module:libc.so@0x7f0000"


def test_range_end_and_file_mapping():
    rng = Range.from_remote({"base": "0x1000", "size": 0x2000, "protection": "r-x", "file": {"path": "/bin/app"}})
    assert rng.end == 0x3000
    assert rng.file == "/bin/app"
    assert str(rng) == "[Range] 0x1000 - 0x3000 (0x2000) [r-x]"


def test_variable_keeps_its_own_kind():
    var = Variable(name="counter", address=0x40, module="app")
    func = Function(name="main", address=0x80, module="app")
    assert str(var).startswith("[Variable] counter")
    assert str(func) == "[Function] main @ 0x80 (app)"
    assert var.label() == "Variable:counter@0x40"


def test_hook_flags_and_unknown_target():
    hook = Hook.from_remote({"id": "h1", "address": 0x10, "onLeave": True, "logArgs": True, "enabled": False})
    assert hook.flags == "ELA-"
    text = str(hook)
    assert "unknown" in text
    assert "(disabled)" in text


def test_instruction_from_remote_hex_bytes():
    insn = Instruction.from_remote({"address": "0x400000", "mnemonic": "mov", "opStr": "rax, rbx", "bytes": "48 89 d8"})
    assert insn.bytes == [0x48, 0x89, 0xD8]
    assert insn.size == 3
    assert str(insn).endswith("mov rax, rbx")
    assert insn.label() == "0x400000"


def test_scan_result_without_value():
    hit = ScanResult.from_remote({"address": 0x2000, "size": 4}, pattern="de ad")
    assert hit.pattern == "de ad"
    assert str(hit) == "[ScanResult] 0x2000 = ?"


def test_import_and_symbol_optional_fields():
    imp = Import.from_remote({"name": "malloc", "module": "libc.so"})
    assert imp.address is None
    assert imp.to_pointer() is None
    sym = Symbol.from_remote({"name": "g", "address": 16, "type": "object", "size": 8, "isGlobal": True})
    assert str(sym) == "[Symbol] g @ 0x10 (0x8) [objectG]"


def test_to_pointer_keeps_address():
    ptr = Module(name="m", address=0x5000, size=0x10).to_pointer()
    assert ptr == Pointer(address=0x5000, size=8, value_type=ValueType.POINTER)
    assert JavaClass(name="java.lang.String").to_pointer() is None
    assert Thread(id=3).address_of() is None


def test_mark_saved_returns_flagged_copy():
    original = Function(name="main", address=0x80)
    saved = mark_saved(original)
    assert saved.is_saved is True
    assert original.is_saved is False
    assert saved.name == "main"


def test_class_and_method_entries_from_remote():
    method = JavaMethod.from_remote(
        {"class": "com.example.Main", "name": "run", "args": ["int", "java.lang.String"], "return_type": "boolean"}
    )
    assert str(method) == "[JavaMethod] run(int, java.lang.String) -> boolean @ (com.example.Main)"
    assert JavaMethod.from_remote({"class": "A", "name": "f"}).return_type == "void"
    assert JavaClass.from_remote({"name": "com.example.Main"}).label() == "JavaClass:com.example.Main"
    assert str(ObjCClass.from_remote({"name": "NSString"})) == "[ObjCClass] NSString"
    selector = ObjCMethod.from_remote({"class": "NSString", "name": "- length"})
    assert (selector.class_name, selector.name) == ("NSString", "- length")


@pytest.mark.parametrize("factory", [JavaClass.from_remote, JavaMethod.from_remote, ObjCClass.from_remote, ObjCMethod.from_remote])
def test_class_entries_need_a_name(factory):
    with pytest.raises(ValueError):
        factory({"class": "Orphan"})
