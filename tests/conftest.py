"""Shared fixtures for the goal engine tests."""

from datetime import datetime

import pytest

from routineland.goals.dates import to_ms
from routineland.goals.models import DurationUnit, Goal, GoalStatus, Timeframe
from routineland.storage.ports import MemoryStore
from routineland.storage.repository import StateRepository

# Wednesday; the week started Sunday 2024-03-10
NOW = datetime(2024, 3, 13, 12, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(store) -> StateRepository:
    return StateRepository(store)


def make_goal(**overrides) -> Goal:
    fields = dict(
        id="g1",
        title="Run 5k",
        description="",
        timeframe=Timeframe.DAILY,
        category_id="health",
        start_at="2024-03-13T08:00",
        end_at="2024-03-14T08:00",
        duration_value=24,
        duration_unit=DurationUnit.HOURS,
        status=GoalStatus.IN_PROGRESS,
        created_at=to_ms(datetime(2024, 3, 1, 9, 0)),
        updated_at=to_ms(datetime(2024, 3, 1, 9, 0)),
    )
    fields.update(overrides)
    return Goal(**fields)


@pytest.fixture
def goal_factory():
    return make_goal
