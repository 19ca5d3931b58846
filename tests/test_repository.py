"""Tests for the persistence gateway."""

import json

import pytest

from routineland.goals.models import DEFAULT_CATEGORIES, ReminderPrefs, StoredState, Timeframe, UiPrefs
from routineland.storage.database import SqliteStore
from routineland.storage.ports import MemoryStore, StorageError
from routineland.storage.repository import (
    STATE_KEY,
    StateRepository,
    prefs_key,
    sanitize_prefs,
)


class FailingStore(MemoryStore):
    """Store whose writes always fail, like a full disk."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.write_attempts = 0

    def set(self, key, value):
        self.write_attempts += 1
        raise StorageError("quota exceeded")


class TestLoadState:
    def test_nothing_stored(self, repository):
        assert repository.load_state() is None

    def test_bad_json_is_ignored(self, store, repository):
        store.set(STATE_KEY, "{not json")
        assert repository.load_state() is None

    def test_dirty_state_is_written_back_once(self, store, repository):
        store.set(STATE_KEY, json.dumps({"goals": [{"title": "Old", "categoryId": "gym"}]}))

        state = repository.load_state()

        assert state.goals[0].category_id == "health"
        written = json.loads(store.get(STATE_KEY))
        assert written["goals"][0]["categoryId"] == "health"
        assert len(written["categories"]) == 5

    def test_clean_state_is_not_rewritten(self, store, repository, goal_factory):
        repository.save_state(StoredState(goals=[goal_factory()]))
        before = store.get(STATE_KEY)
        store.set = None  # any write would now blow up

        state = repository.load_state()

        assert len(state.goals) == 1
        assert store.data[STATE_KEY] == before


class TestSaveState:
    def test_categories_forced_to_canonical(self, store, repository, goal_factory):
        state = StoredState(categories=[], goals=[goal_factory()])
        repository.save_state(state)

        written = json.loads(store.get(STATE_KEY))
        assert written["categories"] == [c.to_wire() for c in DEFAULT_CATEGORIES]
        assert written["goals"][0]["startAt"] == "2024-03-13T08:00"

    def test_clear_state(self, store, repository, goal_factory):
        repository.save_state(StoredState(goals=[goal_factory()]))
        repository.clear_state()
        assert store.get(STATE_KEY) is None
        assert repository.load_state() is None

    def test_write_failure_is_swallowed(self, goal_factory):
        store = FailingStore()
        repository = StateRepository(store)

        assert repository.save_state(StoredState(goals=[goal_factory()])) is False
        assert store.write_attempts == 1


class TestPrefs:
    def test_round_trip_per_timeframe(self, repository):
        prefs = UiPrefs(category_id="work", category_filter="health", query="gym")
        repository.save_prefs(Timeframe.WEEKLY, prefs)

        assert repository.load_prefs(Timeframe.WEEKLY) == prefs
        assert repository.load_prefs(Timeframe.DAILY) is None

    def test_invalid_values_fall_back(self, store, repository):
        store.set(
            prefs_key(Timeframe.DAILY),
            json.dumps({"categoryId": "nope", "categoryFilter": ["x"], "query": 3}),
        )
        assert repository.load_prefs(Timeframe.DAILY) == UiPrefs()

    def test_non_object_is_none(self):
        assert sanitize_prefs("daily") is None

    def test_reminder_prefs_default_off(self, repository):
        assert repository.load_reminder_prefs().enabled is False
        repository.save_reminder_prefs(ReminderPrefs(enabled=True))
        assert repository.load_reminder_prefs().enabled is True


class TestSqliteStore:
    def test_set_get_delete(self, tmp_path):
        store = SqliteStore(str(tmp_path / "nested" / "routine.db"))

        assert store.get("k") is None
        store.set("k", "v1")
        store.set("k", "v2")
        assert store.get("k") == "v2"
        store.delete("k")
        assert store.get("k") is None

    def test_repository_over_sqlite(self, tmp_path, goal_factory):
        repository = StateRepository(SqliteStore(str(tmp_path / "routine.db")))
        repository.save_state(StoredState(goals=[goal_factory(title="Stretch")]))

        reopened = StateRepository(SqliteStore(str(tmp_path / "routine.db")))
        assert reopened.load_state().goals[0].title == "Stretch"

    def test_unwritable_database_raises_storage_error(self, tmp_path):
        store = SqliteStore(str(tmp_path / "routine.db"))
        store.db_path = tmp_path / "missing-dir" / "routine.db"
        with pytest.raises(StorageError):
            store.set("k", "v")
