"""Migration and sanitization of persisted goal data.

Whatever is read from storage (stale schema, hand-edited JSON, partial
records) goes through here before the rest of the app sees it. Nothing
in this module raises for parseable input: bad records are dropped or
defaulted and the caller is told something changed so it can write the
cleaned state back once.
"""

import logging
import math
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from .dates import (
    format_iso_date,
    format_local_datetime,
    from_ms,
    is_iso_date,
    is_local_datetime,
    now_ms,
    parse_local_datetime,
)
from .models import (
    CATEGORY_ALIASES,
    CATEGORY_IDS,
    DEFAULT_CATEGORIES,
    Category,
    Goal,
    GoalStatus,
    StoredState,
    Timeframe,
)
from .policy import policy_for

logger = logging.getLogger(__name__)

_TIMEFRAME_VALUES = {tf.value for tf in Timeframe}
_STATUS_VALUES = {s.value for s in GoalStatus}


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _coerce_ms(value: Any) -> Optional[int]:
    """Epoch-millisecond timestamp as int, or None if it isn't a usable time."""
    if not _is_number(value):
        return None
    try:
        from_ms(value)
    except (ValueError, OverflowError, OSError):
        return None
    return int(value)


def _padded(value: str) -> str:
    """Rewrite a parseable local datetime as fixed-width YYYY-MM-DDTHH:MM."""
    return format_local_datetime(parse_local_datetime(value))


def normalize_status(value: Any) -> GoalStatus:
    if isinstance(value, str) and value in _STATUS_VALUES:
        return GoalStatus(value)
    return GoalStatus.IN_PROGRESS


def normalize_category_id(raw_id: Any) -> tuple[str, bool]:
    """
    Map a stored category id onto the closed category set.

    Args:
        raw_id: Stored category id (any type)

    Returns:
        Tuple of (category_id, changed)
    """
    if isinstance(raw_id, str) and raw_id.strip():
        original = raw_id.strip()
    else:
        original = "other"

    category_id = CATEGORY_ALIASES.get(original, original)
    if category_id not in CATEGORY_IDS:
        category_id = "other"

    return category_id, category_id != raw_id


def sanitize_categories(raw: Any) -> tuple[list[Category], bool]:
    """
    Always answer with the canonical category set.

    Stored categories are never trusted; `changed` only reports whether
    what was stored differs from the canonical set.
    """
    canonical = [c.to_wire() for c in DEFAULT_CATEGORIES]
    return list(DEFAULT_CATEGORIES), raw != canonical


def migrate_goal(raw: Any, today: Optional[datetime] = None) -> tuple[Optional[Goal], bool]:
    """
    Bring one stored goal record up to the current schema.

    Args:
        raw: Stored record (any type)
        today: Date used when the record has no start at all

    Returns:
        Tuple of (goal or None if the record was dropped, changed)
    """
    if not isinstance(raw, dict):
        logger.warning(f"Dropping non-object goal record: {raw!r}")
        return None, True

    changed = False

    raw_timeframe = raw.get("timeframe")
    if isinstance(raw_timeframe, str) and raw_timeframe in _TIMEFRAME_VALUES:
        timeframe = Timeframe(raw_timeframe)
    else:
        timeframe = Timeframe.DAILY
        changed = True

    goal_id = raw.get("id")
    if not (isinstance(goal_id, str) and goal_id.strip()):
        goal_id = str(uuid.uuid4())
        changed = True

    title = raw.get("title")
    if not isinstance(title, str):
        title = ""
        changed = True

    description = raw.get("description")
    if not isinstance(description, str):
        description = ""
        changed = True

    category_id, category_changed = normalize_category_id(raw.get("categoryId"))
    changed = changed or category_changed

    legacy_start = raw.get("startDate")
    legacy_end = raw.get("endDate")

    start_at = raw.get("startAt")
    if not is_local_datetime(start_at):
        if is_iso_date(legacy_start):
            start_at = f"{legacy_start[:10]}T00:00"
        else:
            start_at = f"{format_iso_date(today or datetime.now())}T00:00"
        changed = True
    elif _padded(start_at) != start_at:
        start_at = _padded(start_at)
        changed = True

    policy = policy_for(timeframe)
    duration_unit = raw.get("durationUnit")
    duration_value = raw.get("durationValue")
    if duration_unit != policy.unit.value:
        duration_unit, duration_value = policy.unit, policy.default
        changed = True
    elif not _is_number(duration_value):
        duration_value = policy.default
        changed = True

    end_at = raw.get("endAt")
    if not is_local_datetime(end_at):
        if is_iso_date(legacy_end):
            end_at = f"{legacy_end[:10]}T00:00"
        else:
            # Zero-length window; only the create/edit path rejects these
            end_at = start_at
        changed = True
    elif _padded(end_at) != end_at:
        end_at = _padded(end_at)
        changed = True

    created_at = _coerce_ms(raw.get("createdAt"))
    if created_at is None:
        created_at = now_ms()
    if created_at != raw.get("createdAt"):
        changed = True

    updated_at = _coerce_ms(raw.get("updatedAt"))
    if updated_at is None:
        updated_at = now_ms()
    if updated_at != raw.get("updatedAt"):
        changed = True

    status = normalize_status(raw.get("status"))
    if status.value != raw.get("status"):
        changed = True

    raw_done_at = raw.get("doneAt")
    done_at = _coerce_ms(raw_done_at) if status == GoalStatus.DONE else None
    if done_at != raw_done_at:
        changed = True

    if legacy_start is not None and not isinstance(legacy_start, str):
        legacy_start = None
        changed = True
    if legacy_end is not None and not isinstance(legacy_end, str):
        legacy_end = None
        changed = True

    try:
        goal = Goal(
            id=goal_id,
            title=title,
            description=description,
            timeframe=timeframe,
            category_id=category_id,
            start_at=start_at,
            end_at=end_at,
            duration_value=duration_value,
            duration_unit=duration_unit,
            status=status,
            done_at=done_at,
            created_at=created_at,
            updated_at=updated_at,
            start_date=legacy_start,
            end_date=legacy_end,
        )
    except ValidationError as e:
        logger.warning(f"Dropping goal record {goal_id}: {e}")
        return None, True

    if changed:
        logger.debug(f"Migrated goal {goal_id} ({timeframe.value})")

    return goal, changed


def sanitize_goals(raw: Any, today: Optional[datetime] = None) -> tuple[list[Goal], bool]:
    """
    Migrate every stored goal, dropping the ones that can't be salvaged.

    Returns:
        Tuple of (goals, changed)
    """
    if raw is None:
        return [], False

    if not isinstance(raw, list):
        logger.warning(f"Stored goals is not a list ({type(raw).__name__}), resetting")
        return [], True

    changed = False
    goals = []

    for record in raw:
        goal, goal_changed = migrate_goal(record, today=today)
        changed = changed or goal_changed
        if goal is not None:
            goals.append(goal)

    return goals, changed


def sanitize_state(raw: Any, today: Optional[datetime] = None) -> tuple[StoredState, bool]:
    """
    Sanitize a whole stored document.

    Running this on its own (serialized) output reports changed=False.
    """
    if not isinstance(raw, dict):
        logger.warning("Stored state is not an object, starting fresh")
        raw = {}

    categories, categories_changed = sanitize_categories(raw.get("categories"))
    goals, goals_changed = sanitize_goals(raw.get("goals"), today=today)

    state = StoredState(categories=categories, goals=goals)
    return state, categories_changed or goals_changed
