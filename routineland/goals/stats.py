"""Live status derivation and progress statistics."""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from pydantic import BaseModel

from .dates import day_key, from_ms, parse_local_datetime, start_of_day, start_of_week
from .models import Goal, GoalStatus, Timeframe, WireModel

logger = logging.getLogger(__name__)

STATUS_RANK: dict[GoalStatus, int] = {
    GoalStatus.IN_PROGRESS: 0,
    GoalStatus.FUTURE: 1,
    GoalStatus.DONE: 2,
}

# Upper bound on how far back a streak is scanned (~10 years)
MAX_STREAK_DAYS = 3650


class TimeframeStats(BaseModel):
    total: int = 0
    done: int = 0
    open: int = 0


class Totals(BaseModel):
    all: int = 0
    done: int = 0
    open: int = 0
    pct: int = 0


class HomeStats(WireModel):
    done_today: int = 0
    done_this_week: int = 0
    streak_days: int = 0


def derive_status(goal: Goal, now: datetime) -> GoalStatus:
    """
    Live status of a goal at `now`.

    The stored status only counts when it is DONE; anything else is
    recomputed from the window start.
    """
    if goal.is_done:
        return GoalStatus.DONE
    if now < parse_local_datetime(goal.start_at):
        return GoalStatus.FUTURE
    return GoalStatus.IN_PROGRESS


def filter_goals(
    goals: Iterable[Goal],
    timeframe: Timeframe,
    category_filter: str = "all",
    query: str = "",
) -> list[Goal]:
    """
    Filter by timeframe, category and free-text query.

    The query is a case-insensitive substring match against
    "title description".
    """
    needle = query.strip().lower()
    matches = []

    for goal in goals:
        if goal.timeframe != timeframe:
            continue
        if category_filter != "all" and goal.category_id != category_filter:
            continue
        if needle and needle not in f"{goal.title} {goal.description}".lower():
            continue
        matches.append(goal)

    return matches


def sort_goals(goals: Iterable[Goal], now: datetime) -> list[Goal]:
    """Sort by status rank (in progress, future, done), then start."""
    return sorted(
        goals,
        key=lambda g: (STATUS_RANK[derive_status(g, now)], g.start_at),
    )


def group_goals(
    goals: Iterable[Goal],
    timeframe: Timeframe,
    now: datetime,
    category_filter: str = "all",
    query: str = "",
) -> dict[str, list[Goal]]:
    """
    Group the filtered goals by category for display.

    Args:
        goals: All goals
        timeframe: Timeframe being viewed
        now: Reference time for status derivation
        category_filter: Category id or "all"
        query: Free-text search

    Returns:
        Mapping of category id to sorted goals, in first-seen order.
        Categories without matches are omitted.
    """
    groups: dict[str, list[Goal]] = {}
    for goal in filter_goals(goals, timeframe, category_filter, query):
        groups.setdefault(goal.category_id, []).append(goal)

    return {category_id: sort_goals(items, now) for category_id, items in groups.items()}


def compute_timeframe_stats(
    goals: Iterable[Goal], timeframe: Timeframe, now: datetime
) -> TimeframeStats:
    """Count done/open goals for one timeframe."""
    stats = TimeframeStats()
    for goal in goals:
        if goal.timeframe != timeframe:
            continue
        stats.total += 1
        if derive_status(goal, now) == GoalStatus.DONE:
            stats.done += 1
        else:
            stats.open += 1
    return stats


def compute_totals(goals: Iterable[Goal], now: datetime) -> Totals:
    """Done/open counts across every timeframe, with a rounded percentage."""
    totals = Totals()
    for goal in goals:
        totals.all += 1
        if derive_status(goal, now) == GoalStatus.DONE:
            totals.done += 1
        else:
            totals.open += 1

    if totals.all:
        totals.pct = round(totals.done / totals.all * 100)
    return totals


def completions_by_day(goals: Iterable[Goal]) -> dict[str, int]:
    """Count completed goals per local calendar day ("YYYY-MM-DD")."""
    counts: dict[str, int] = {}
    for goal in goals:
        if not goal.is_done:
            continue
        key = day_key(from_ms(goal.completed_at))
        counts[key] = counts.get(key, 0) + 1
    return counts


def compute_streak(counts: dict[str, int], now: datetime) -> int:
    """
    Consecutive days with at least one completion, ending today.

    Args:
        counts: Completions per day key
        now: Reference time

    Returns:
        Streak length in days (0 if nothing was completed today)
    """
    streak = 0
    cursor = start_of_day(now)

    for _ in range(MAX_STREAK_DAYS):
        if counts.get(day_key(cursor), 0) <= 0:
            break
        streak += 1
        cursor -= timedelta(days=1)

    return streak


def compute_home_stats(goals: Iterable[Goal], now: Optional[datetime] = None) -> HomeStats:
    """
    Completion statistics for the home page.

    - done_today: completed on today's calendar day
    - done_this_week: completed since Sunday 00:00
    - streak_days: consecutive days (ending today) with a completion

    Goals without doneAt fall back to updatedAt, then createdAt.
    """
    now = now or datetime.now()
    week_start = start_of_week(now)

    counts = completions_by_day(goals)

    done_this_week = 0
    for key, count in counts.items():
        day = parse_local_datetime(key)
        if week_start <= day <= now:
            done_this_week += count

    stats = HomeStats(
        done_today=counts.get(day_key(now), 0),
        done_this_week=done_this_week,
        streak_days=compute_streak(counts, now),
    )

    logger.debug(
        f"Home stats: today={stats.done_today} week={stats.done_this_week} "
        f"streak={stats.streak_days}"
    )
    return stats
