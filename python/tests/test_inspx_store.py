"""Tests for paginated stores and the selection grammar."""

from __future__ import annotations

import pytest

from inspx.filters import parse_filter_string
from inspx.records import Function, JavaClass, Module, Pointer
from inspx.store import PAGE_SIZE, SelectionError, SelectionIndexError, Store, StoreIndexError


def _pointers(count: int) -> list:
    return [Pointer(address=0x1000 + idx) for idx in range(count)]


def _store_with(count: int) -> Store:
    store = Store("Field")
    store.add(_pointers(count))
    return store


def test_empty_store_has_one_page():
    store = Store("Lib")
    assert store.page_info() == (1, 1)
    assert store.page_items() == []
    assert store.to_string() == "Lib [page 1/1] (0 items)\n(empty)"


def test_paging_through_150_items():
    store = _store_with(150)
    assert PAGE_SIZE == 50
    assert store.page_info() == (1, 3)
    store.next_page()
    assert store.page_info() == (2, 3)
    assert store.page_items()[0][0] == 50
    store.next_page(5)
    assert store.page_info() == (3, 3)
    assert store.page_items()[-1][0] == 149
    store.prev_page(10)
    assert store.page_info() == (1, 3)


def test_page_items_for_explicit_page():
    store = _store_with(60)
    items = store.page_items(1)
    assert [idx for idx, _ in items] == list(range(50, 60))
    assert store.page_items(5) == []
    assert store.header(1) == "Field [page 2/2] (60 items)"


def test_set_cursor_is_clamped():
    store = _store_with(10)
    store.set_cursor(99)
    assert store.cursor == 9
    store.set_cursor(-4)
    assert store.cursor == 0


def test_selection_forms():
    store = _store_with(10)
    assert len(store.get_data_by_selection("all")) == 10
    assert store.get_data_by_selection("3")[0].address == 0x1003
    picked = store.get_data_by_selection("5, 1,3")
    assert [rec.address for rec in picked] == [0x1005, 0x1001, 0x1003]
    window = store.get_data_by_selection("2-4")
    assert [rec.address for rec in window] == [0x1002, 0x1003, 0x1004]


def test_selection_errors():
    store = _store_with(3)
    with pytest.raises(SelectionIndexError):
        store.get_data_by_selection("3")
    with pytest.raises(SelectionIndexError):
        store.get_data_by_selection("0-5")
    with pytest.raises(SelectionError, match="start is greater than end"):
        store.get_data_by_selection("2-1")
    with pytest.raises(SelectionError, match="Invalid selection format"):
        store.get_data_by_selection("abc")


def test_move_and_remove():
    store = _store_with(5)
    store.move(1, 2)
    assert [rec.address for rec in store] == [0x1000, 0x1002, 0x1001, 0x1003, 0x1004]
    removed = store.remove(1, 2)
    assert [rec.address for rec in removed] == [0x1002, 0x1001]
    assert [rec.address for rec in store] == [0x1000, 0x1003, 0x1004]


def test_move_and_remove_bounds():
    store = _store_with(3)
    with pytest.raises(StoreIndexError):
        store.move(0, 3)
    with pytest.raises(StoreIndexError):
        store.remove(3)
    with pytest.raises(StoreIndexError):
        store.remove(2, 2)
    assert len(store) == 3


def test_remove_clamps_cursor():
    store = _store_with(60)
    store.next_page()
    store.remove(10, 50)
    assert store.page_info() == (1, 1)


def test_sort_by_name_address_and_size():
    store = Store("Lib")
    store.add(
        [
            Module(name="zlib", address=0x3000, size=0x10),
            Module(name="Alpha", address=0x1000, size=0x30),
            JavaClass(name="beta"),
        ]
    )
    assert store.sort("name")
    assert [rec.name for rec in store] == ["Alpha", "beta", "zlib"]
    assert store.sort("addr")
    assert [rec.name for rec in store] == ["Alpha", "zlib", "beta"]
    assert store.sort("size")
    assert store[0].name == "zlib"
    assert store.sort("color") is False


def test_filter_replaces_contents():
    store = Store("Field")
    store.add(
        [
            Function(name="test_a", address=0x1000),
            Function(name="test_b", address=0x2000),
            Function(name="main", address=0x3000),
        ]
    )
    dropped = store.filter(parse_filter_string("name:test"))
    assert dropped == 1
    dropped = store.filter(parse_filter_string("address>=0x2000"))
    assert dropped == 1
    assert [rec.name for rec in store] == ["test_b"]


def test_clear_resets_cursor():
    store = _store_with(120)
    store.next_page(2)
    store.clear()
    assert len(store) == 0
    assert store.cursor == 0
