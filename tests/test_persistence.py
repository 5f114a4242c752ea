# tests/test_persistence.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskflow.storage.kv_store import JsonFileStore, SqliteStore
from taskflow.tasks.task_engine import TaskEngine
from taskflow.tasks.task_models import Task

from .fakes import FailingStore, ManualClock, MemoryKVStore


def _populate(engine: TaskEngine) -> None:
    a = engine.create("Plan trip", due_date=1_800_000_000_000)
    b = engine.create("Book flights", parent_id=a.id)
    engine.create("Pack")
    engine.toggle_complete(b.id)


def test_save_writes_one_record(engine: TaskEngine, kv: MemoryKVStore, clock: ManualClock) -> None:
    _populate(engine)
    assert engine.save() is True

    data = json.loads(kv.data["taskflow-data"])
    assert set(data) == {"tasks", "currentId", "savedAt"}
    assert data["currentId"] == 4
    assert data["savedAt"] == clock.now
    assert data["tasks"][0] == {
        "id": 1,
        "text": "Plan trip",
        "completed": True,
        "parentId": None,
        "indentLevel": 0,
        "createdAt": clock.now,
        "updatedAt": clock.now,
        "dueDate": 1_800_000_000_000,
    }


def test_save_then_load_restores_state(kv: MemoryKVStore, clock: ManualClock) -> None:
    src = TaskEngine(kv, clock=clock)
    _populate(src)
    assert src.save()

    dst = TaskEngine(kv, clock=clock)
    assert dst.load() is True
    assert dst.tasks == src.tasks
    assert dst.current_id == src.current_id
    assert dst.children_of(1)[0].text == "Book flights"


def test_save_failure_reports_false(clock: ManualClock) -> None:
    engine = TaskEngine(FailingStore(), clock=clock)
    engine.create("A")
    assert engine.save() is False
    assert len(engine) == 1


def test_save_without_store_reports_false(clock: ManualClock) -> None:
    engine = TaskEngine(clock=clock)
    engine.create("A")
    assert engine.save() is False
    assert engine.load() is False


def test_load_defaults_missing_hierarchy_fields(engine: TaskEngine, kv: MemoryKVStore) -> None:
    kv.data["taskflow-data"] = json.dumps(
        {
            "tasks": [{"id": 3, "text": "legacy", "completed": False, "createdAt": 1, "updatedAt": 2}],
            "currentId": 4,
            "savedAt": 5,
        }
    )
    assert engine.load() is True

    task = engine.get(3)
    assert task is not None
    assert task.parent_id is None
    assert task.indent_level == 0
    assert task.due_date is None
    assert engine.create("next").id == 4


def test_load_never_hands_out_an_existing_id(engine: TaskEngine, kv: MemoryKVStore) -> None:
    kv.data["taskflow-data"] = json.dumps(
        {"tasks": [{"id": 9, "text": "x", "completed": False}], "currentId": 2}
    )
    assert engine.load()
    assert engine.current_id == 10


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[]",
        json.dumps({"tasks": "nope"}),
        json.dumps({"tasks": [{"text": "no id"}]}),
        json.dumps({"tasks": [], "currentId": "abc"}),
    ],
)
def test_malformed_record_is_no_data(engine: TaskEngine, kv: MemoryKVStore, raw: str) -> None:
    keep = engine.create("keep me")
    kv.data["taskflow-data"] = raw

    assert engine.load() is False
    assert engine.tasks == [keep]
    assert engine.current_id == 2


def test_load_missing_record(engine: TaskEngine) -> None:
    assert engine.load() is False


def test_load_failure_from_store(clock: ManualClock) -> None:
    engine = TaskEngine(FailingStore(), clock=clock)
    engine.create("A")
    assert engine.load() is False
    assert len(engine) == 1


def test_export_format(engine: TaskEngine, clock: ManualClock) -> None:
    _populate(engine)
    payload = engine.export_snapshot()

    assert payload.startswith("{\n  ")
    data = json.loads(payload)
    assert data["version"] == "1.0"
    assert data["exportedAt"] == "2023-11-14T22:13:20.000Z"
    assert [t["text"] for t in data["tasks"]] == ["Plan trip", "Book flights", "Pack"]


def test_export_import_round_trip(engine: TaskEngine, clock: ManualClock) -> None:
    _populate(engine)
    engine.delete(3)
    snapshot = engine.export_snapshot()
    expected = [Task.from_record(t.to_record()) for t in engine.tasks]

    other = TaskEngine(clock=clock)
    other.create("will be replaced")
    assert other.import_snapshot(snapshot) is True

    assert other.tasks == expected
    assert other.current_id == max(t.id for t in expected) + 1
    assert other.search("book")[0].parent_id == 1


def test_import_resets_counter_from_imported_ids(engine: TaskEngine) -> None:
    for i in range(5):
        engine.create(f"t{i}")
    payload = json.dumps({"tasks": [{"id": 2, "text": "only", "completed": False}]})

    assert engine.import_snapshot(payload)
    assert engine.current_id == 3

    assert engine.import_snapshot(json.dumps({"tasks": []}))
    assert engine.current_id == 1


@pytest.mark.parametrize(
    "payload",
    [
        "garbage",
        json.dumps({"items": []}),
        json.dumps([{"id": 1, "text": "x"}]),
        json.dumps({"tasks": [{"id": "1", "text": "x"}]}),
        None,
    ],
)
def test_failed_import_leaves_state_untouched(engine: TaskEngine, payload) -> None:
    keep = engine.create("keep me")
    stats = engine.stats()

    assert engine.import_snapshot(payload) is False

    assert engine.tasks == [keep]
    assert engine.current_id == 2
    assert engine.stats() is stats


_DUPLICATE_IDS = [
    {"id": 1, "text": "P", "completed": False},
    {"id": 2, "text": "c1", "completed": False, "parentId": 1, "indentLevel": 1},
    {"id": 2, "text": "c2", "completed": True, "parentId": 1, "indentLevel": 1},
]
_LEVEL_OUT_OF_RANGE = [{"id": 1, "text": "deep", "completed": False, "indentLevel": 7}]
_NEGATIVE_LEVEL = [{"id": 1, "text": "shallow", "completed": False, "indentLevel": -1}]


@pytest.mark.parametrize("records", [_DUPLICATE_IDS, _LEVEL_OUT_OF_RANGE, _NEGATIVE_LEVEL])
def test_import_rejects_records_breaking_invariants(engine: TaskEngine, records) -> None:
    keep = engine.create("keep me")

    assert engine.import_snapshot(json.dumps({"tasks": records})) is False

    assert engine.tasks == [keep]
    assert engine.current_id == 2
    assert engine.children_of(1) == []


@pytest.mark.parametrize("records", [_DUPLICATE_IDS, _LEVEL_OUT_OF_RANGE])
def test_load_rejects_records_breaking_invariants(engine: TaskEngine, kv: MemoryKVStore, records) -> None:
    keep = engine.create("keep me")
    kv.data["taskflow-data"] = json.dumps({"tasks": records, "currentId": 5})

    assert engine.load() is False

    assert engine.tasks == [keep]
    assert engine.current_id == 2


def test_from_record_checks_indent_range() -> None:
    assert Task.from_record({"id": 1, "text": "x", "indentLevel": 3}).indent_level == 3
    with pytest.raises(ValueError):
        Task.from_record({"id": 1, "text": "x", "indentLevel": 4})


def test_import_invalidates_caches(engine: TaskEngine) -> None:
    engine.create("alpha")
    assert len(engine.search("alp")) == 1
    stats = engine.stats()

    engine.import_snapshot(json.dumps({"tasks": [{"id": 1, "text": "beta", "completed": True}]}))

    assert engine.search("alp") == []
    assert engine.stats() is not stats
    assert engine.stats().completed == 1


# ---- stores ----


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "tasks.json"
    store = JsonFileStore(path)
    assert store.get("k") is None

    store.set("k", "v1")
    store.set("other", "x")
    store.set("k", "v2")

    reopened = JsonFileStore(path)
    assert reopened.get("k") == "v2"
    assert reopened.get("other") == "x"
    assert not path.with_suffix(".tmp").exists()

    reopened.delete("k")
    assert JsonFileStore(path).get("k") is None


def test_json_file_store_corrupt_file_fails_load_without_crash(tmp_path: Path, clock: ManualClock) -> None:
    path = tmp_path / "tasks.json"
    path.write_text("{broken", "utf-8")
    engine = TaskEngine(JsonFileStore(path), clock=clock)
    assert engine.load() is False


def test_sqlite_store_round_trip(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = SqliteStore(db)
    assert store.get("k") is None

    store.set("k", "v1")
    store.set("k", "v2")
    assert SqliteStore(db).get("k") == "v2"

    store.delete("k")
    assert store.get("k") is None


def test_engine_persists_through_sqlite(tmp_path: Path, clock: ManualClock) -> None:
    db = tmp_path / "tasks.sqlite3"
    src = TaskEngine(SqliteStore(db), clock=clock)
    _populate(src)
    assert src.save()

    dst = TaskEngine(SqliteStore(db), clock=clock)
    assert dst.load()
    assert dst.tasks == src.tasks
