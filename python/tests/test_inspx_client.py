"""Tests for the agent client wrappers."""

from __future__ import annotations

import pytest

from agent_stubs import FakeChannel
from inspx.channel import ChannelError
from inspx.client import AgentClient, Frame, HookConfig, StackEntry
from inspx.records import Function, Hook, Import, JavaMethod, Module, ObjCClass, ScanResult, Variable


def test_get_env():
    client = AgentClient(FakeChannel({"get_env": ["native", "arm64", "darwin", 8]}))
    env = client.get_env()
    assert (env.runtime, env.arch, env.platform, env.pointer_size) == ("native", "arm64", "darwin", 8)


def test_get_env_rejects_short_reply():
    client = AgentClient(FakeChannel({"get_env": ["native"]}))
    with pytest.raises(ChannelError):
        client.get_env()


def test_list_modules_skips_malformed_rows(caplog):
    rows = [
        {"name": "app", "address": "0x400000", "size": 4096},
        {"name": "broken", "address": "nowhere"},
        "not a row",
    ]
    client = AgentClient(FakeChannel({"list_modules": rows}))
    with caplog.at_level("WARNING", logger="inspx.client"):
        modules = client.list_modules()
    assert modules == [Module(name="app", address=0x400000, size=4096)]
    assert "skipping malformed entry" in caplog.text


def test_listing_reply_must_be_a_list():
    client = AgentClient(FakeChannel({"list_threads": {"oops": 1}}))
    with pytest.raises(ChannelError, match="expected a list"):
        client.list_threads()


def test_module_scoped_listings_pass_module():
    channel = FakeChannel({"list_imports": [{"name": "malloc", "module": "libc.so", "address": "0x10"}]})
    imports = AgentClient(channel).list_imports("app")
    assert channel.params("list_imports") == [["app"]]
    assert imports == [Import(name="malloc", address=0x10, module="libc.so")]


def test_exports_split_functions_and_variables():
    rows = [
        {"name": "main", "address": 16, "type": "function"},
        {"name": "errno", "address": 32, "type": "variable"},
    ]
    exports = AgentClient(FakeChannel({"list_exports": rows})).list_exports()
    assert [type(rec) for rec in exports] == [Function, Variable]


def test_list_ranges_sends_protection():
    channel = FakeChannel({"list_ranges": []})
    assert AgentClient(channel).list_ranges("r-x") == []
    assert channel.params("list_ranges") == [["r-x"]]


def test_find_symbol_variants():
    assert AgentClient(FakeChannel({"find_symbol": "0x1234"})).find_symbol("main") == 0x1234
    assert AgentClient(FakeChannel({"find_symbol": {"address": 64}})).find_symbol("main") == 64
    assert AgentClient(FakeChannel({"find_symbol": None})).find_symbol("nope") is None
    with pytest.raises(ChannelError):
        AgentClient(FakeChannel({"find_symbol": "garbage"})).find_symbol("main")


def test_hook_attach_payload():
    channel = FakeChannel({"hook_attach": {"success": True, "id": "hook-1"}})
    hook_id = AgentClient(channel).hook_attach(0x4000, HookConfig(on_leave=True, arg_count=2))
    assert hook_id == "hook-1"
    ((address, payload),) = channel.params("hook_attach")
    assert address == "0x4000"
    assert payload == {
        "onEnter": True,
        "onLeave": True,
        "logArgs": False,
        "logRetval": False,
        "backtrace": False,
        "argCount": 2,
    }


def test_hook_failure_reply_raises():
    channel = FakeChannel({"hook_detach": {"success": False, "error": "no such hook"}})
    with pytest.raises(ChannelError, match="hook_detach failed: no such hook"):
        AgentClient(channel).hook_detach("h9")


def test_hook_list_and_clear():
    channel = FakeChannel(
        {
            "hook_list": [{"id": "h1", "address": "0x10", "name": "open"}],
            "hook_clear_all": {"success": True, "count": 3},
        }
    )
    client = AgentClient(channel)
    (hook,) = client.hook_list()
    assert isinstance(hook, Hook) and hook.target_name == "open"
    assert client.hook_clear_all() == 3


def test_disassemble_args():
    rows = [{"address": "0x1000", "size": 1, "mnemonic": "ret", "bytes": [195]}]
    channel = FakeChannel({"disassemble": rows, "disassemble_function": rows})
    client = AgentClient(channel)
    assert client.disassemble(0x1000, 5)[0].mnemonic == "ret"
    client.disassemble_function(0x1000)
    assert channel.params("disassemble") == [["0x1000", 5]]
    assert channel.params("disassemble_function") == [["0x1000"]]


def test_scan_value_summary():
    reply = {
        "success": True,
        "count": 250,
        "results": [{"address": "0x2000", "size": 4, "currentValue": 100}],
    }
    channel = FakeChannel({"scan_value": reply})
    summary = AgentClient(channel).scan_value("int32", "100", "rw-")
    assert summary.count == 250
    assert summary.results == [ScanResult(address=0x2000, size=4, value="100", pattern="100")]
    assert channel.params("scan_value") == [["int32", "100", "rw-"]]


def test_scan_pattern_without_protection():
    channel = FakeChannel({"scan_pattern": {"results": [{"address": 16}]}})
    summary = AgentClient(channel).scan_pattern("de ad ?? ef")
    assert summary.count == 1
    assert summary.results[0].pattern == "de ad ?? ef"
    assert channel.params("scan_pattern") == [["de ad ?? ef"]]


def test_scan_refinement_calls():
    channel = FakeChannel(
        {
            "scan_next": {"count": 0, "results": []},
            "scan_changed": {"count": 12},
            "scan_snapshot": {"success": True, "count": 99},
            "get_scan_result_values": [{"address": "0x30", "value": 7}],
            "clear_scan": {"success": True},
        }
    )
    client = AgentClient(channel)
    assert client.scan_next("int32", "5", "gt").count == 0
    assert client.scan_changed("int32") == 12
    assert client.scan_snapshot("float") == 99
    (hit,) = client.scan_result_values("int32", 0, 10, 4)
    assert (hit.address, hit.size, hit.value) == (0x30, 4, "7")
    client.clear_scan()
    assert channel.params("scan_next") == [["int32", "5", "gt"]]
    assert channel.params("get_scan_result_values") == [["int32", 0, 10]]


def test_class_listings_pass_class_and_filter():
    channel = FakeChannel(
        {
            "list_objc_classes": [{"name": "NSString"}, {"nope": 1}],
            "list_java_methods": [{"class": "com.example.Main", "name": "run", "args": ["int"]}],
        }
    )
    client = AgentClient(channel)
    assert client.list_objc_classes("NS") == [ObjCClass(name="NSString")]
    assert channel.params("list_objc_classes") == [["NS"]]
    methods = client.list_java_methods("com.example.Main")
    assert methods == [JavaMethod(class_name="com.example.Main", name="run", args=["int"])]
    assert channel.params("list_java_methods") == [["com.example.Main", None]]


def test_patch_bytes_reply():
    channel = FakeChannel({"patch_bytes": {"success": True, "original": [0x55, 0x48], "patched": [0x90, 0x90]}})
    result = AgentClient(channel).patch_bytes(0x1000, b"\x90\x90")
    assert channel.params("patch_bytes") == [["0x1000", [0x90, 0x90]]]
    assert (result.address, result.original, result.patched) == (0x1000, b"\x55\x48", b"\x90\x90")


def test_patch_failures_raise():
    client = AgentClient(
        FakeChannel({"nop_instructions": {"success": False, "error": "not writable"}, "restore_bytes": None})
    )
    with pytest.raises(ChannelError, match="not writable"):
        client.nop_instructions(0x2000, 2)
    with pytest.raises(ChannelError, match="No response from restore_bytes"):
        client.restore_bytes(0x2000, b"\x55")


def test_thread_context_drops_missing_registers():
    channel = FakeChannel({"get_thread_context": {"rip": "0x401000", "rax": None}})
    client = AgentClient(channel)
    assert client.get_thread_context(4) == {"rip": "0x401000"}
    assert channel.params("get_thread_context") == [[4]]
    client = AgentClient(FakeChannel({"get_thread_context": None}))
    assert client.get_thread_context(4) is None


def test_read_stack_and_backtrace():
    channel = FakeChannel(
        {
            "read_stack": [{"offset": 8, "address": "0x7008", "value": "0x401000", "module": "app"}],
            "backtrace": [
                {"address": "0x401010", "module": "app", "symbol": "main", "offset": 16},
                {"address": "0x9000"},
            ],
        }
    )
    client = AgentClient(channel)
    assert client.read_stack(0x7000, 4) == [StackEntry(offset=8, address=0x7008, value=0x401000, module="app")]
    assert channel.params("read_stack") == [["0x7000", 4]]
    frames = client.backtrace()
    assert frames[0] == Frame(address=0x401010, module="app", symbol="main", offset=16)
    assert [frame.location for frame in frames] == ["app!main +0x10", "???"]
