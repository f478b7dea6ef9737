"""Tests for inspx-dbg history helpers."""

from __future__ import annotations

from inspx_dbg.history import HistoryStore


def test_history_store_loads_existing_file(tmp_path):
    path = tmp_path / "history.txt"
    path.write_text("ls modules\nselect 0\n", encoding="utf-8")
    store = HistoryStore(str(path), limit=5)
    assert store.snapshot() == ["ls modules", "select 0"]
    store.append("view . 64")
    assert store.snapshot()[-1] == "view . 64"
    assert "view . 64" in path.read_text(encoding="utf-8")


def test_history_store_limits_entries(tmp_path):
    path = tmp_path / "history.txt"
    store = HistoryStore(str(path), limit=3)
    for idx in range(5):
        store.append(f"read {idx}")
    assert store.snapshot() == ["read 2", "read 3", "read 4"]
    text = path.read_text(encoding="utf-8").strip().splitlines()
    assert text == ["read 2", "read 3", "read 4"]


def test_history_store_ignores_duplicate_adjacent(tmp_path):
    path = tmp_path / "history.txt"
    store = HistoryStore(str(path), limit=10)
    store.append("field next")
    store.append("field next")
    store.append("   ")
    assert store.snapshot() == ["field next"]


def test_history_store_without_path():
    store = HistoryStore(None)
    store.extend(["a", "b"])
    assert store.snapshot() == ["a", "b"]


def test_history_store_logs_unwritable_path(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = HistoryStore(str(blocker / "history.txt"))
    with caplog.at_level("WARNING", logger="inspx_dbg.history"):
        store.append("goto 0x1000")
    assert store.snapshot() == ["goto 0x1000"]
    assert "could not write history" in caplog.text


def test_history_store_warns_once_per_session(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = HistoryStore(str(blocker / "history.txt"))
    with caplog.at_level("WARNING", logger="inspx_dbg.history"):
        store.extend(["list modules", "select 0", "view . 64"])
    assert store.snapshot() == ["list modules", "select 0", "view . 64"]
    assert caplog.text.count("could not write history") == 1
