"""Tests for the timeline stores."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from timecycle.errors import PersistenceFailure
from timecycle.state import JsonStore, JsonTimelineStore, MemoryTimelineStore


class TestMemoryTimelineStore:
    def test_absent_until_set(self) -> None:
        store = MemoryTimelineStore()
        assert store.get_last_fired("c") is None
        store.set_last_fired("c", 1000)
        assert store.get_last_fired("c") == 1000
        assert "c" in store
        assert len(store) == 1

    def test_overwrite(self) -> None:
        store = MemoryTimelineStore()
        store.set_last_fired("c", 1000)
        store.set_last_fired("c", 5000)
        assert store.get_last_fired("c") == 5000

    def test_remove_and_clear(self) -> None:
        store = MemoryTimelineStore({"a": 1, "b": 2})
        assert store.remove("a") is True
        assert store.remove("a") is False
        store.clear()
        assert store.snapshot() == {}

    @pytest.mark.parametrize("value", [1.5, "1000", None, True])
    def test_rejects_non_integer_timestamp(self, value) -> None:
        store = MemoryTimelineStore()
        with pytest.raises(TypeError):
            store.set_last_fired("c", value)
        assert store.get_last_fired("c") is None


class TestJsonTimelineStore:
    def test_survives_restart(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path)
        store.set_last_fired("refresh", 61_500)
        store.set_last_fired("cleanup", 1_000)

        reopened = JsonTimelineStore(path)
        assert reopened.get_last_fired("refresh") == 61_500
        assert reopened.get_last_fired("cleanup") == 1_000
        assert json.loads(path.read_text()) == {"cleanup": 1000, "refresh": 61500}

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        store = JsonTimelineStore(tmp_path / "nope" / "timelines.json")
        assert store.snapshot() == {}

    def test_corrupt_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        path.write_text("{not json")
        assert JsonTimelineStore(path).snapshot() == {}

    def test_undecodable_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        store = JsonTimelineStore(path)
        assert store.snapshot() == {}
        store.set_last_fired("c", 5)
        assert JsonTimelineStore(path).get_last_fired("c") == 5

    def test_non_object_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        path.write_text("[1, 2, 3]")
        assert JsonTimelineStore(path).snapshot() == {}

    def test_bad_entries_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        path.write_text(json.dumps({"good": 10, "float": 1.5, "text": "x", "flag": True}))
        assert JsonTimelineStore(path).snapshot() == {"good": 10}

    def test_remove_is_persisted(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path)
        store.set_last_fired("a", 1)
        store.set_last_fired("b", 2)
        store.remove("a")
        assert JsonTimelineStore(path).snapshot() == {"b": 2}

    def test_buffered_writes_wait_for_flush(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path, write_through=False)
        store.set_last_fired("c", 42)
        assert store.dirty
        assert not path.exists()
        store.flush()
        assert not store.dirty
        assert JsonTimelineStore(path).get_last_fired("c") == 42

    def test_batch_defers_then_flushes(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path)
        with store.batch():
            store.set_last_fired("a", 1)
            store.set_last_fired("b", 2)
            assert not path.exists()
        assert JsonTimelineStore(path).snapshot() == {"a": 1, "b": 2}

    def test_close_flushes(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path, write_through=False)
        store.set_last_fired("c", 7)
        store.close()
        assert JsonTimelineStore(path).get_last_fired("c") == 7

    def test_reload_drops_unflushed(self, tmp_path: Path) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path, write_through=False)
        store.set_last_fired("c", 7)
        store.reload()
        assert store.get_last_fired("c") is None
        assert not store.dirty

    def test_write_failure_raises_and_retries(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        path = tmp_path / "timelines.json"
        store = JsonTimelineStore(path)
        real_save = JsonStore.save

        def failing_save(self, data):
            raise PersistenceFailure("disk full")

        monkeypatch.setattr(JsonStore, "save", failing_save)
        with pytest.raises(PersistenceFailure):
            store.set_last_fired("c", 100)
        assert store.get_last_fired("c") == 100
        assert store.dirty

        monkeypatch.setattr(JsonStore, "save", real_save)
        store.flush()
        assert not store.dirty
        assert JsonTimelineStore(path).get_last_fired("c") == 100


class TestJsonStore:
    def test_save_is_atomic_replace(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        store = JsonStore(path)
        store.save({"a": 1})
        store.save({"a": 2})
        assert store.load() == {"a": 2}
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_unwritable_directory_raises_persistence_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        store = JsonStore(blocker / "doc.json")
        with pytest.raises(PersistenceFailure):
            store.save({"a": 1})

    def test_persistence_failure_is_os_error(self) -> None:
        assert issubclass(PersistenceFailure, OSError)
