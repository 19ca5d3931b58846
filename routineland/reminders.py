"""Best-effort start-of-goal reminders.

A reminder fires once per (goal, start) pair when a goal's window opens.
The firing ledger lives in storage, so restarts don't repeat reminders.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, Optional, Union

from routineland.goals.dates import parse_local_datetime, to_ms
from routineland.goals.models import Goal
from routineland.storage.repository import StateRepository

logger = logging.getLogger(__name__)

Notifier = Callable[[Goal], Union[None, Awaitable[None]]]


def reminder_key(goal: Goal) -> str:
    return f"{goal.id}:{goal.start_at}"


def _start_of(goal: Goal) -> Optional[datetime]:
    try:
        return parse_local_datetime(goal.start_at)
    except ValueError:
        return None


def due_reminders(
    goals: Iterable[Goal],
    now: datetime,
    fired: dict[str, int],
    lookback: timedelta,
) -> tuple[list[Goal], dict[str, int]]:
    """
    Find goals whose start falls within the lookback window.

    Args:
        goals: Candidate goals
        now: Reference time
        fired: Ledger of already-fired reminder keys
        lookback: How far in the past a start still counts

    Returns:
        Tuple of (goals to notify, updated ledger)
    """
    ledger = dict(fired)
    due = []

    for goal in goals:
        if goal.is_done:
            continue

        start = _start_of(goal)
        if start is None or start > now or start < now - lookback:
            continue

        key = reminder_key(goal)
        if key in ledger:
            continue

        ledger[key] = to_ms(now)
        due.append(goal)

    return due, ledger


def next_wake_time(
    goals: Iterable[Goal],
    now: datetime,
    min_lead: timedelta = timedelta(seconds=2),
) -> Optional[datetime]:
    """Earliest start of a not-done goal strictly after now + min_lead."""
    upcoming = []
    for goal in goals:
        if goal.is_done:
            continue
        start = _start_of(goal)
        if start is not None and start > now + min_lead:
            upcoming.append(start)

    return min(upcoming) if upcoming else None


def log_notification(goal: Goal) -> None:
    logger.info(f"⏰ Starting now: {goal.title} ({goal.start_at})")


class ReminderEngine:
    """Polls stored goals and fires reminders as their windows open."""

    def __init__(
        self,
        repository: StateRepository,
        notify: Notifier = log_notification,
        poll_interval: float = 30,
        lookback: float = 120,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the engine.

        Args:
            repository: Source of goals, prefs and the firing ledger
            notify: Called once per due goal (may be async)
            poll_interval: Longest sleep between checks, in seconds
            lookback: Seconds after a start during which it still fires
            clock: Returns the current local time
        """
        self.repository = repository
        self.notify = notify
        self.poll_interval = poll_interval
        self.lookback = timedelta(seconds=lookback)
        self.clock = clock
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def tick(self) -> list[Goal]:
        """Fire every due reminder once. Returns the goals notified."""
        if not self.repository.load_reminder_prefs().enabled:
            return []

        state = self.repository.load_state()
        goals = state.goals if state else []

        due, ledger = due_reminders(
            goals, self.clock(), self.repository.load_fired(), self.lookback
        )

        for goal in due:
            try:
                result = self.notify(goal)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Reminder for {goal.id} failed: {e}")

        if due:
            self.repository.save_fired(ledger)
            logger.info(f"Fired {len(due)} reminder(s)")

        return due

    def next_delay(self) -> float:
        """Seconds until the next goal starts, capped at the poll interval."""
        state = self.repository.load_state()
        now = self.clock()
        wake = next_wake_time(state.goals if state else [], now)
        if wake is None:
            return self.poll_interval
        return max(0.0, min(self.poll_interval, (wake - now).total_seconds()))

    async def run(self):
        """Loop until stop() is called."""
        logger.info("Reminder engine started")
        while not self._stopped.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                pass
        logger.info("Reminder engine stopped")

    def start(self) -> asyncio.Task:
        self._stopped.clear()
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        self._stopped.set()
        if self._task:
            await self._task
            self._task = None
