"""Load and save of goal state and UI preferences."""

import json
import logging
from typing import Any, Optional

from routineland.goals.migration import sanitize_state
from routineland.goals.models import (
    CATEGORY_IDS,
    DEFAULT_CATEGORIES,
    ReminderPrefs,
    StoredState,
    Timeframe,
    UiPrefs,
)
from .ports import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

STATE_KEY = "routine.state.v1"
REMINDERS_KEY = "routine.reminders.v1"
FIRED_KEY = "routine.reminders.fired.v1"


def prefs_key(timeframe: Timeframe) -> str:
    return f"routine.ui.goals.{Timeframe(timeframe).value}.v1"


def sanitize_prefs(raw: Any) -> Optional[UiPrefs]:
    """
    Coerce stored preferences, falling back field by field.

    Returns:
        UiPrefs, or None if raw isn't an object at all
    """
    if not isinstance(raw, dict):
        return None

    category_id = raw.get("categoryId")
    if not isinstance(category_id, str) or category_id not in CATEGORY_IDS:
        category_id = DEFAULT_CATEGORIES[0].id

    category_filter = raw.get("categoryFilter")
    if category_filter != "all" and (
        not isinstance(category_filter, str) or category_filter not in CATEGORY_IDS
    ):
        category_filter = "all"

    query = raw.get("query")
    if not isinstance(query, str):
        query = ""

    return UiPrefs(category_id=category_id, category_filter=category_filter, query=query)


class StateRepository:
    """
    Persistence gateway over a key-value store.

    Reads are sanitized before they are returned. Write failures are
    logged and swallowed so the in-memory state keeps working until the
    next successful write.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read_json(self, key: str) -> Any:
        """Parsed JSON under key; None if absent, unreadable or malformed."""
        try:
            text = self.store.get(key)
        except StorageError as e:
            logger.warning(f"Read failed for {key}: {e}")
            return None

        if not text:
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Bad JSON under {key}, ignoring: {e}")
            return None

    def _write_json(self, key: str, data: Any) -> bool:
        try:
            self.store.set(key, json.dumps(data, ensure_ascii=False))
        except StorageError as e:
            logger.warning(f"Write failed for {key}: {e}")
            return False
        return True

    # State

    def load_state(self) -> Optional[StoredState]:
        """
        Load the stored goals and categories.

        Runs the sanitization pipeline and writes the cleaned document
        back once if anything had to change.

        Returns:
            StoredState, or None if nothing usable is stored
        """
        raw = self._read_json(STATE_KEY)
        if raw is None:
            return None

        state, changed = sanitize_state(raw)
        if changed:
            logger.info(f"Stored state needed cleanup, rewriting ({len(state.goals)} goals)")
            self._write_json(STATE_KEY, state.to_wire())

        return state

    def save_state(self, state: StoredState) -> bool:
        """Persist goals; categories are always reset to the canonical set."""
        safe = StoredState(categories=list(DEFAULT_CATEGORIES), goals=list(state.goals))
        return self._write_json(STATE_KEY, safe.to_wire())

    def clear_state(self) -> None:
        try:
            self.store.delete(STATE_KEY)
        except StorageError as e:
            logger.warning(f"Failed to clear state: {e}")

    # UI preferences

    def load_prefs(self, timeframe: Timeframe) -> Optional[UiPrefs]:
        return sanitize_prefs(self._read_json(prefs_key(timeframe)))

    def save_prefs(self, timeframe: Timeframe, prefs: UiPrefs) -> bool:
        return self._write_json(prefs_key(timeframe), prefs.to_wire())

    # Reminders

    def load_reminder_prefs(self) -> ReminderPrefs:
        raw = self._read_json(REMINDERS_KEY)
        if not isinstance(raw, dict):
            return ReminderPrefs()
        return ReminderPrefs(enabled=bool(raw.get("enabled")))

    def save_reminder_prefs(self, prefs: ReminderPrefs) -> bool:
        return self._write_json(REMINDERS_KEY, prefs.to_wire())

    def load_fired(self) -> dict[str, int]:
        """Reminder ledger: "{goalId}:{startAt}" -> epoch ms when fired."""
        raw = self._read_json(FIRED_KEY)
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if isinstance(v, (int, float))}

    def save_fired(self, fired: dict[str, int]) -> bool:
        return self._write_json(FIRED_KEY, fired)
