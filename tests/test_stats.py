"""Tests for status derivation, grouping and home statistics."""

from datetime import datetime, timedelta

from routineland.goals.dates import format_local_datetime, to_ms
from routineland.goals.models import GoalStatus, Timeframe
from routineland.goals.stats import (
    compute_home_stats,
    compute_streak,
    compute_timeframe_stats,
    compute_totals,
    derive_status,
    filter_goals,
    group_goals,
)


def at(dt: datetime) -> str:
    return format_local_datetime(dt)


class TestDeriveStatus:
    def test_future_start(self, now, goal_factory):
        goal = goal_factory(start_at=at(now + timedelta(hours=1)))
        assert derive_status(goal, now) == GoalStatus.FUTURE

    def test_started(self, now, goal_factory):
        goal = goal_factory(start_at=at(now - timedelta(hours=1)))
        assert derive_status(goal, now) == GoalStatus.IN_PROGRESS

    def test_stale_future_status_is_ignored(self, now, goal_factory):
        goal = goal_factory(status=GoalStatus.FUTURE, start_at=at(now - timedelta(days=2)))
        assert derive_status(goal, now) == GoalStatus.IN_PROGRESS

    def test_done_regardless_of_window(self, now, goal_factory):
        for offset in (timedelta(hours=1), -timedelta(hours=1)):
            goal = goal_factory(status=GoalStatus.DONE, start_at=at(now + offset))
            assert derive_status(goal, now) == GoalStatus.DONE


class TestGrouping:
    def test_filters_timeframe_category_and_query(self, goal_factory):
        goals = [
            goal_factory(id="1", title="Morning run", category_id="health"),
            goal_factory(id="2", title="Email", description="Inbox ZERO", category_id="work"),
            goal_factory(id="3", title="Run club", timeframe=Timeframe.WEEKLY),
        ]

        assert [g.id for g in filter_goals(goals, Timeframe.DAILY)] == ["1", "2"]
        assert [g.id for g in filter_goals(goals, Timeframe.DAILY, "work")] == ["2"]
        assert [g.id for g in filter_goals(goals, Timeframe.DAILY, query="inbox zero")] == ["2"]
        assert [g.id for g in filter_goals(goals, Timeframe.DAILY, query=" RUN ")] == ["1"]

    def test_groups_sorted_by_status_then_start(self, now, goal_factory):
        goals = [
            goal_factory(id="done", status=GoalStatus.DONE, start_at="2024-03-13T06:00"),
            goal_factory(id="later", start_at="2024-03-13T18:00"),
            goal_factory(id="soon", start_at="2024-03-13T13:00"),
            goal_factory(id="b", start_at="2024-03-13T10:00"),
            goal_factory(id="a", start_at="2024-03-13T07:00"),
            goal_factory(id="w", category_id="work", start_at="2024-03-13T07:00"),
        ]

        groups = group_goals(goals, Timeframe.DAILY, now)

        assert list(groups) == ["health", "work"]
        assert [g.id for g in groups["health"]] == ["a", "b", "soon", "later", "done"]

    def test_empty_groups_are_omitted(self, now, goal_factory):
        goals = [goal_factory(category_id="work")]
        assert group_goals(goals, Timeframe.DAILY, now, category_filter="home") == {}


class TestCounts:
    def test_timeframe_stats_and_totals(self, now, goal_factory):
        goals = [
            goal_factory(id="1", status=GoalStatus.DONE),
            goal_factory(id="2"),
            goal_factory(id="3", timeframe=Timeframe.YEARLY),
        ]

        daily = compute_timeframe_stats(goals, Timeframe.DAILY, now)
        assert (daily.total, daily.done, daily.open) == (2, 1, 1)

        totals = compute_totals(goals, now)
        assert (totals.all, totals.done, totals.open, totals.pct) == (3, 1, 2, 33)

    def test_totals_without_goals(self, now):
        assert compute_totals([], now).pct == 0


class TestHomeStats:
    def done_on(self, goal_factory, when: datetime, **kwargs):
        return goal_factory(status=GoalStatus.DONE, done_at=to_ms(when), **kwargs)

    def test_three_day_streak(self, now, goal_factory):
        goals = [
            self.done_on(goal_factory, now - timedelta(hours=1)),
            self.done_on(goal_factory, now - timedelta(days=1)),
            self.done_on(goal_factory, now - timedelta(days=2)),
            self.done_on(goal_factory, now - timedelta(days=4)),
        ]
        assert compute_home_stats(goals, now).streak_days == 3

    def test_no_completion_today_means_no_streak(self, now, goal_factory):
        goals = [self.done_on(goal_factory, now - timedelta(days=1))]
        assert compute_home_stats(goals, now).streak_days == 0

    def test_today_and_week_counts(self, now, goal_factory):
        goals = [
            self.done_on(goal_factory, datetime(2024, 3, 13, 9)),
            self.done_on(goal_factory, datetime(2024, 3, 13, 10)),
            # Sunday, first day of the week
            self.done_on(goal_factory, datetime(2024, 3, 10, 0, 30)),
            # Saturday, previous week
            self.done_on(goal_factory, datetime(2024, 3, 9, 23, 0)),
            # Not done: never counted
            goal_factory(done_at=None),
        ]

        stats = compute_home_stats(goals, now)

        assert stats.done_today == 2
        assert stats.done_this_week == 3

    def test_legacy_goals_fall_back_to_updated_at(self, now, goal_factory):
        goal = goal_factory(
            status=GoalStatus.DONE,
            done_at=None,
            updated_at=to_ms(now - timedelta(hours=2)),
        )
        assert compute_home_stats([goal], now).done_today == 1

    def test_streak_is_bounded(self, now):
        counts = {}
        day = now
        for _ in range(4000):
            counts[day.strftime("%Y-%m-%d")] = 1
            day -= timedelta(days=1)
        assert compute_streak(counts, now) == 3650

    def test_wire_names(self, now):
        assert compute_home_stats([], now).to_wire() == {
            "doneToday": 0,
            "doneThisWeek": 0,
            "streakDays": 0,
        }
