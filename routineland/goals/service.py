"""Goal lifecycle operations."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional, Union

from routineland.storage.repository import StateRepository

from .dates import to_ms
from .models import (
    CATEGORY_IDS,
    GoalStatus,
    Goal,
    GoalNotFoundError,
    GoalValidationError,
    StoredState,
    Timeframe,
)
from .policy import compute_end_at, policy_for, validate_duration, validate_start, validate_window
from .stats import (
    HomeStats,
    TimeframeStats,
    Totals,
    compute_home_stats,
    compute_timeframe_stats,
    compute_totals,
    derive_status,
    group_goals,
)

logger = logging.getLogger(__name__)

DurationInput = Union[str, int, float, None]


class GoalService:
    """
    In-memory goal state backed by a repository.

    Every mutation validates first, then changes the in-memory state,
    then saves. A rejected operation leaves both untouched.
    """

    def __init__(
        self,
        repository: StateRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize with a repository.

        Args:
            repository: Persistence gateway
            clock: Returns the current local time
        """
        self.repository = repository
        self.clock = clock
        self.state = repository.load_state() or StoredState()

    def _save(self):
        self.repository.save_state(self.state)

    def _clean_title(self, title: Optional[str]) -> str:
        clean = (title or "").strip()
        if not clean:
            raise GoalValidationError("Give the goal a name.")
        return clean

    def _check_category(self, category_id: str) -> str:
        if not isinstance(category_id, str) or category_id not in CATEGORY_IDS:
            raise GoalValidationError(f"Unknown category: {category_id}")
        return category_id

    def _window(
        self, timeframe: Timeframe, start_at: str, duration_value: DurationInput
    ) -> tuple[str, str, float]:
        """Validate inputs and compute (start_at, end_at, duration)."""
        start_at = validate_start(start_at)
        value = validate_duration(timeframe, duration_value)
        try:
            end_at = compute_end_at(start_at, policy_for(timeframe).unit, value)
        except (ValueError, OverflowError) as e:
            raise GoalValidationError("The end date is out of range.") from e
        validate_window(start_at, end_at)
        return start_at, end_at, value

    def get_goal(self, goal_id: str) -> Goal:
        for goal in self.state.goals:
            if goal.id == goal_id:
                return goal
        raise GoalNotFoundError(goal_id)

    def list_goals(self, timeframe: Optional[Timeframe] = None) -> list[Goal]:
        if timeframe is None:
            return list(self.state.goals)
        return [g for g in self.state.goals if g.timeframe == timeframe]

    def add_goal(
        self,
        timeframe: Timeframe,
        title: str,
        category_id: str,
        start_at: str,
        duration_value: DurationInput,
        description: str = "",
    ) -> Goal:
        """
        Create a goal.

        Args:
            timeframe: Timeframe bucket (fixed for the goal's lifetime)
            title: Goal name, must be non-blank
            category_id: One of the canonical category ids
            start_at: Local start "YYYY-MM-DDTHH:MM"
            duration_value: Duration in the timeframe's unit

        Returns:
            The new goal

        Raises:
            GoalValidationError: If any input is rejected
        """
        timeframe = Timeframe(timeframe)
        clean = self._clean_title(title)
        category_id = self._check_category(category_id)
        start_at, end_at, value = self._window(timeframe, start_at, duration_value)

        now = self.clock()
        now_ts = to_ms(now)

        goal = Goal(
            id=str(uuid.uuid4()),
            title=clean,
            description=description or "",
            timeframe=timeframe,
            category_id=category_id,
            start_at=start_at,
            end_at=end_at,
            duration_value=value,
            duration_unit=policy_for(timeframe).unit,
            created_at=now_ts,
            updated_at=now_ts,
        )
        goal.status = derive_status(goal, now)

        self.state.goals.insert(0, goal)
        self._save()

        logger.info(f"Added {timeframe.value} goal: {clean} ({goal.id})")
        return goal

    def edit_goal(
        self,
        goal_id: str,
        title: str,
        category_id: str,
        start_at: str,
        duration_value: DurationInput,
        description: Optional[str] = None,
    ) -> Goal:
        """
        Update a goal's title, category and window.

        A DONE goal stays DONE (keeping its doneAt, or stamping one if
        it has none). Otherwise the status is re-derived.
        """
        goal = self.get_goal(goal_id)
        clean = self._clean_title(title)
        category_id = self._check_category(category_id)
        start_at, end_at, value = self._window(goal.timeframe, start_at, duration_value)

        now = self.clock()
        now_ts = to_ms(now)

        updates = {
            "title": clean,
            "category_id": category_id,
            "start_at": start_at,
            "end_at": end_at,
            "duration_value": value,
            "duration_unit": policy_for(goal.timeframe).unit,
            "updated_at": now_ts,
        }
        if description is not None:
            updates["description"] = description

        updated = goal.model_copy(update=updates)
        if goal.is_done:
            updated.done_at = goal.done_at if goal.done_at is not None else now_ts
        else:
            updated.status = derive_status(updated, now)
            updated.done_at = None

        self._replace(updated)
        self._save()

        logger.info(f"Edited goal {goal_id}")
        return updated

    def toggle_done(self, goal_id: str) -> Goal:
        """Flip a goal in or out of DONE, stamping or clearing doneAt."""
        goal = self.get_goal(goal_id)
        now_ts = to_ms(self.clock())

        if goal.is_done:
            updated = goal.model_copy(
                update={"status": GoalStatus.IN_PROGRESS, "done_at": None, "updated_at": now_ts}
            )
        else:
            updated = goal.model_copy(
                update={"status": GoalStatus.DONE, "done_at": now_ts, "updated_at": now_ts}
            )

        self._replace(updated)
        self._save()

        logger.info(f"Goal {goal_id} -> {updated.status.value}")
        return updated

    def remove_goal(self, goal_id: str) -> None:
        """Hard delete."""
        goal = self.get_goal(goal_id)
        self.state.goals = [g for g in self.state.goals if g.id != goal.id]
        self._save()
        logger.info(f"Removed goal {goal_id}")

    def _replace(self, updated: Goal):
        self.state.goals = [updated if g.id == updated.id else g for g in self.state.goals]

    # Read-side views

    def grouped_view(
        self, timeframe: Timeframe, category_filter: str = "all", query: str = ""
    ) -> dict[str, list[Goal]]:
        return group_goals(
            self.state.goals, Timeframe(timeframe), self.clock(), category_filter, query
        )

    def timeframe_stats(self, timeframe: Timeframe) -> TimeframeStats:
        return compute_timeframe_stats(self.state.goals, Timeframe(timeframe), self.clock())

    def totals(self) -> Totals:
        return compute_totals(self.state.goals, self.clock())

    def home_stats(self) -> HomeStats:
        return compute_home_stats(self.state.goals, self.clock())
