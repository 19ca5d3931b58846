"""Goal domain models."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Timeframe(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


TIMEFRAMES: tuple[Timeframe, ...] = (
    Timeframe.DAILY,
    Timeframe.WEEKLY,
    Timeframe.MONTHLY,
    Timeframe.YEARLY,
)

TIMEFRAME_LABELS: dict[Timeframe, str] = {
    Timeframe.DAILY: "Daily goals",
    Timeframe.WEEKLY: "Weekly goals",
    Timeframe.MONTHLY: "Monthly goals",
    Timeframe.YEARLY: "Yearly goals",
}


class GoalStatus(str, Enum):
    """Only DONE is ever set by the user; the others are derived on read."""

    FUTURE = "FUTURE"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class DurationUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


Number = Union[int, float]


class WireModel(BaseModel):
    """Base for models persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump to the JSON-ready persisted shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Category(WireModel):
    """Fixed reference category."""

    id: str
    display_name: str
    color: str


# Ids are load-bearing for stored goals; only the display names may change.
DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="home", display_name="Home chores", color="#60A5FA"),
    Category(id="work", display_name="Work", color="#34D399"),
    Category(id="health", display_name="Health & fitness", color="#F87171"),
    Category(id="study", display_name="Learning & leisure", color="#FBBF24"),
    Category(id="other", display_name="Other", color="#A78BFA"),
)

CATEGORY_IDS: frozenset[str] = frozenset(c.id for c in DEFAULT_CATEGORIES)

# Legacy category ids from older installs
CATEGORY_ALIASES: dict[str, str] = {
    "chores": "home",
    "house": "home",
    "home_chores": "home",
    "job": "work",
    "office": "work",
    "fitness": "health",
    "sport": "health",
    "gym": "health",
    "training": "health",
    "health_fitness": "health",
    "learning": "study",
    "learn": "study",
    "leisure": "study",
    "hobby": "study",
    "topic": "study",
    "subject": "study",
    "friends": "other",
    "social": "other",
    "relationships": "other",
    "contact": "other",
    "networking": "other",
    "misc": "other",
}


class Goal(WireModel):
    """A trackable objective scoped to a timeframe."""

    id: str
    title: str
    description: str = ""

    timeframe: Timeframe
    category_id: str

    # Local wall-clock "YYYY-MM-DDTHH:MM"
    start_at: str
    end_at: str

    duration_value: Number
    duration_unit: DurationUnit

    status: GoalStatus = GoalStatus.IN_PROGRESS
    done_at: Optional[int] = None  # epoch ms

    created_at: int
    updated_at: int

    # Legacy date-only fields, kept only as migration artifacts
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @property
    def is_done(self) -> bool:
        """The only authoritative part of the stored status."""
        return self.status == GoalStatus.DONE

    @property
    def completed_at(self) -> int:
        """Completion timestamp, falling back for legacy goals without doneAt."""
        if self.done_at is not None:
            return self.done_at
        if self.updated_at is not None:
            return self.updated_at
        return self.created_at


class StoredState(WireModel):
    """The persisted document."""

    categories: list[Category] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    goals: list[Goal] = Field(default_factory=list)


class UiPrefs(WireModel):
    """Last-used form defaults and filters for one timeframe."""

    category_id: str = "home"
    category_filter: str = "all"
    query: str = ""


class ReminderPrefs(WireModel):
    enabled: bool = False


class GoalValidationError(Exception):
    """User input rejected; the message is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class GoalNotFoundError(Exception):
    """No goal with the requested id."""
