"""
Unit tests for the per-accessory history store

Tests cover:
- Ring buffer wrap and oldest-first ordering
- Minimum time gap with restart markers
- Type/subtype index and subtype resolution
- Recovery from malformed persisted documents
- Persistence across restarts (memory and database storage)
- CSV export
"""
import csv
import random
from datetime import datetime
from types import SimpleNamespace

import pytest

from conftest import START_TIME, FakeClock, make_store
from evehistory.services.history_storage import DatabaseHistoryStorage, MemoryHistoryStorage
from evehistory.services.history_store import history_subtype_of, history_type_of

DOOR = "DOOR"


def add_entries(store, clock, count, type_id=DOOR, sub=0, step=60):
    for index in range(count):
        clock.advance(step)
        store.add_entry(type_id, sub, fields={"status": index % 2, "n": index + 1})


class TestHistoryStoreStartup:
    """Initial state and persisted document"""

    def test_new_store_is_reset(self, memory_storage, clock):
        store = make_store(memory_storage, clock)

        assert store.reset_time == START_TIME
        assert store.rollover_time == 0
        assert store.next_index == 0
        assert len(store) == 0
        assert memory_storage.get("History.Test.json") == {
            "reset": START_TIME, "rollover": 0, "next": 0, "types": [], "data": [],
        }

    def test_malformed_document_is_discarded(self, memory_storage, clock):
        memory_storage.set("History.Test.json", {"reset": "never", "data": "nope"})

        store = make_store(memory_storage, clock)

        assert store.reset_time == START_TIME
        assert len(store) == 0

    def test_entry_without_time_is_malformed(self, memory_storage, clock):
        memory_storage.set("History.Test.json", {
            "reset": 1, "rollover": 0, "next": 1, "types": [], "data": [{"type": DOOR}],
        })

        store = make_store(memory_storage, clock)

        assert len(store) == 0
        assert store.reset_time == START_TIME

    def test_cursor_beyond_data_is_malformed(self, memory_storage, clock):
        memory_storage.set("History.Test.json", {
            "reset": 1, "rollover": 0, "next": 3, "types": [],
            "data": [{"time": 1, "type": DOOR, "sub": 0}],
        })

        store = make_store(memory_storage, clock)

        assert len(store) == 0

    def test_reload_restores_state(self, memory_storage, clock):
        store = make_store(memory_storage, clock)
        add_entries(store, clock, 3)

        reloaded = make_store(memory_storage, clock)

        assert reloaded.next_index == 3
        assert reloaded.entries == store.entries
        assert reloaded.types == [{"type": DOOR, "sub": 0, "lastEntry": 2}]
        assert reloaded.reset_time == START_TIME

    def test_stale_type_index_is_pruned(self, memory_storage, clock):
        memory_storage.set("History.Test.json", {
            "reset": 1, "rollover": 0, "next": 1,
            "types": [{"type": DOOR, "sub": 0, "lastEntry": 0}, {"type": "GONE", "sub": 0, "lastEntry": 7}],
            "data": [{"time": 1, "type": DOOR, "sub": 0}],
        })

        store = make_store(memory_storage, clock)

        assert store.types == [{"type": DOOR, "sub": 0, "lastEntry": 0}]

    def test_smaller_capacity_rolls_over_on_load(self, memory_storage, clock):
        store = make_store(memory_storage, clock, max_entries=10)
        add_entries(store, clock, 8)

        reloaded = make_store(memory_storage, clock, max_entries=5)

        assert reloaded.next_index == 0
        assert len(reloaded) == 5
        assert reloaded.rollover_time == clock.now


class TestRingBuffer:
    """Wrap around at capacity"""

    def test_wraps_when_full(self, clock):
        store = make_store(clock=clock, max_entries=5)

        add_entries(store, clock, 7)

        assert len(store) == 5
        assert store.next_index == 2
        assert [entry["n"] for entry in store.get_history(DOOR)] == [3, 4, 5, 6, 7]

    def test_rollover_time_stamped_at_wrap(self, clock):
        store = make_store(clock=clock, max_entries=5)

        add_entries(store, clock, 5)

        assert store.next_index == 0
        assert store.rollover_time == clock.now

    def test_last_entry_follows_overwrites(self, clock):
        store = make_store(clock=clock, max_entries=3)

        add_entries(store, clock, 4)

        assert store.last_history(DOOR)["n"] == 4
        assert store.types == [{"type": DOOR, "sub": 0, "lastEntry": 0}]

    def test_unbounded_store_never_wraps(self, clock):
        store = make_store(clock=clock, max_entries=0)

        add_entries(store, clock, 20)

        assert store.next_index == 20
        assert store.rollover_time == 0


class TestTypeIndexInvariant:
    """The type index keeps pointing at matching records"""

    @pytest.mark.parametrize("capacity", [1, 3, 5, 8])
    @pytest.mark.parametrize("seed", range(10))
    def test_mixed_writes_and_rollovers(self, capacity, seed):
        rng = random.Random(seed)
        clock = FakeClock()
        store = make_store(clock=clock, max_entries=capacity)
        pairs = [(DOOR, 0), (DOOR, 1), ("OTHER", 0), ("VALVE", "zone-1")]

        for step in range(40):
            clock.advance(rng.randint(1, 120))
            if rng.random() < 0.1:
                store.rollover_history()
            else:
                type_id, sub = rng.choice(pairs)
                store.add_entry(type_id, sub, fields={"step": step})

            data = store.entries
            assert store.next_index < capacity
            assert len(data) <= capacity
            for index_entry in store.types:
                record = data[index_entry["lastEntry"]]
                assert (record["type"], record["sub"]) == (index_entry["type"], index_entry["sub"])

    def test_index_points_at_newest_record(self, clock):
        store = make_store(clock=clock, max_entries=4)
        for sub in (0, 1, 0, 2, 0, 1):
            clock.advance(60)
            store.add_entry(DOOR, sub, fields={"status": 1})

        for index_entry in store.types:
            newest = store.get_history(DOOR, index_entry["sub"])[-1]
            assert store.entries[index_entry["lastEntry"]] == newest


class TestAddEntry:
    """Tests for add_entry()"""

    def test_time_defaults_to_clock(self, clock):
        store = make_store(clock=clock)

        assert store.add_entry(DOOR, fields={"status": 1}) is True

        assert store.get_history(DOOR) == [{"time": START_TIME, "type": DOOR, "sub": 0, "status": 1}]

    def test_reserved_keys_in_fields_are_ignored(self, clock):
        store = make_store(clock=clock)

        store.add_entry(DOOR, time=100, fields={"time": 5, "type": "OTHER", "status": 0})

        assert store.get_history(DOOR)[0]["time"] == 100

    def test_time_gap_suppresses_close_entries(self, clock):
        store = make_store(clock=clock)
        store.add_entry(DOOR, fields={"status": 1})

        clock.advance(10)
        assert store.add_entry(DOOR, timegap=60, fields={"status": 0}) is False

        clock.advance(60)
        assert store.add_entry(DOOR, timegap=60, fields={"status": 0}) is True
        assert store.entry_count(DOOR) == 2

    def test_time_gap_is_per_subtype(self, clock):
        store = make_store(clock=clock)
        store.add_entry(DOOR, sub=1, fields={"status": 1})

        assert store.add_entry(DOOR, sub=2, timegap=60, fields={"status": 1}) is True

    def test_restart_marker_bypasses_time_gap(self, clock):
        store = make_store(clock=clock)
        store.add_entry(DOOR, fields={"status": 1})

        assert store.add_entry(DOOR, timegap=60, fields={"status": 1, "restart": START_TIME}) is True

    def test_reset_history(self, clock):
        store = make_store(clock=clock)
        add_entries(store, clock, 3)

        store.reset_history()

        assert len(store) == 0
        assert store.types == []
        assert store.reset_time == clock.now


class TestQueries:
    """get_history(), last_history() and entry_count()"""

    @pytest.fixture
    def store(self, clock):
        store = make_store(clock=clock)
        store.add_entry(DOOR, 0, time=START_TIME + 1, fields={"status": 1})
        store.add_entry(DOOR, 1, time=START_TIME + 2, fields={"status": 0})
        store.add_entry(DOOR, 0, time=START_TIME + 3, fields={"status": 0})
        store.add_entry("OTHER", 0, time=START_TIME + 4, fields={"status": 1})
        return store

    def test_omitted_subtype_means_zero_for_plain_types(self, store):
        assert [entry["time"] for entry in store.get_history(DOOR)] == [START_TIME + 1, START_TIME + 3]

    def test_none_subtype_matches_all(self, store):
        assert store.entry_count(DOOR, None) == 3

    def test_explicit_subtype(self, store):
        assert [entry["sub"] for entry in store.get_history(DOOR, 1)] == [1]

    def test_field_filter(self, store):
        assert store.entry_count(DOOR, None, {"status": 0}) == 2

    def test_multi_field_filter_rejected(self, store):
        with pytest.raises(ValueError):
            store.get_history(DOOR, None, {"status": 0, "sub": 1})

    def test_returned_entries_are_copies(self, store):
        store.get_history(DOOR)[0]["status"] = 99

        assert store.get_history(DOOR)[0]["status"] == 1

    def test_last_history(self, store):
        assert store.last_history(DOOR)["time"] == START_TIME + 3
        assert store.last_history(DOOR, 1)["time"] == START_TIME + 2
        assert store.last_history(DOOR, None)["time"] == START_TIME + 3
        assert store.last_history("MISSING") is None

    def test_service_objects_resolve_type_and_subtype(self, clock):
        service = SimpleNamespace(type_id="0000008f-0000-1000-8000-0026bb765291", unique_id="zone-1")
        store = make_store(clock=clock)

        store.add_entry(history_type_of(service), history_subtype_of(service), fields={"status": 1})

        assert store.get_history(service)[0]["type"] == "0000008F-0000-1000-8000-0026BB765291"
        assert store.get_history(service)[0]["sub"] == "zone-1"

    def test_service_without_unique_id_uses_subtype_zero(self, clock):
        service = SimpleNamespace(type_id="00000080-0000-1000-8000-0026BB765291", unique_id=None)
        store = make_store(clock=clock)
        store.add_entry(history_type_of(service), 0, fields={"status": 1})
        store.add_entry(history_type_of(service), 1, fields={"status": 0})

        assert [entry["sub"] for entry in store.get_history(service)] == [0]


class TestDatabasePersistence:
    """History documents round trip through SQLAlchemy storage"""

    def test_store_survives_restart(self, session_factory):
        clock = FakeClock()
        storage = DatabaseHistoryStorage(session_factory)
        store = make_store(storage, clock, max_entries=4)
        add_entries(store, clock, 6)

        reloaded = make_store(DatabaseHistoryStorage(session_factory), clock, max_entries=4)

        assert reloaded.next_index == store.next_index == 2
        assert [entry["n"] for entry in reloaded.get_history(DOOR)] == [3, 4, 5, 6]


class TestExportCsv:
    """Tests for export_csv()"""

    def test_export_all_subtypes(self, clock, tmp_path):
        store = make_store(clock=clock)
        store.add_entry("VALVE", 1, time=START_TIME, fields={"status": 1, "water": 0})
        store.add_entry("VALVE", 2, time=START_TIME + 60, fields={"status": 0, "water": 12.5, "restart": 1})
        path = tmp_path / "valve.csv"

        rows_written = store.export_csv("VALVE", str(path))

        with open(path, newline="", encoding="utf-8") as csv_file:
            rows = list(csv.reader(csv_file))
        assert rows_written == 2
        assert rows[0] == ["time", "subtype", "status", "water"]
        assert rows[1] == [
            datetime.fromtimestamp(START_TIME).strftime("%Y-%m-%d %H:%M:%S"), "1", "1", "0",
        ]
        assert rows[2][1:] == ["2", "0", "12.5"]


def test_memory_storage_is_shared_by_key(clock):
    storage = MemoryHistoryStorage()
    make_store(storage, clock, storage_key="History.A.json").add_entry(DOOR, fields={"status": 1})
    make_store(storage, clock, storage_key="History.B.json")

    assert sorted(storage.keys()) == ["History.A.json", "History.B.json"]
