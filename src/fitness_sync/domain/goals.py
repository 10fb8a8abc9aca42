"""Domain models for fitness goals."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from fitness_sync.domain.common import SortOrder


class GoalStatus(StrEnum):
    """Lifecycle status of a goal."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class GoalPriority(StrEnum):
    """Priority of a goal."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProgressDirection(StrEnum):
    """Whether progress means moving the value up or down towards the target."""

    INCREASE = "increase"
    DECREASE = "decrease"


# Goal types whose progress is measured as a reduction towards the target.
DECREASING_GOAL_TYPES = frozenset({"weight-loss", "fat-loss", "reduction"})


@dataclass(frozen=True)
class ProgressEntry:
    """A single recorded progress value."""

    value: float
    date: datetime
    notes: str | None = None


@dataclass(frozen=True)
class Goal:
    """A user goal with target and current values."""

    id: str
    title: str
    status: GoalStatus
    priority: GoalPriority
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    category: str | None = None
    type: str | None = None
    target_value: float | None = None
    current_value: float = 0.0
    starting_value: float | None = None
    unit: str | None = None
    start_date: datetime | None = None
    target_date: datetime | None = None
    last_progress_update: datetime | None = None
    completed_at: datetime | None = None
    status_reason: str | None = None
    direction: ProgressDirection | None = None
    progress: list[ProgressEntry] = field(default_factory=list)

    @property
    def progress_direction(self) -> ProgressDirection:
        """Explicit direction if set, otherwise derived from the goal type."""
        if self.direction is not None:
            return self.direction
        if self.type in DECREASING_GOAL_TYPES:
            return ProgressDirection.DECREASE
        return ProgressDirection.INCREASE


@dataclass(frozen=True)
class GoalFilters:
    """Filters applied to the next goal fetch."""

    status: str | None = None
    type: str | None = None
    priority: str | None = None
    category: str | None = None
    search: str | None = None
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class GoalProgress:
    """Display progress of a goal."""

    current: float
    target: float
    percent: float
    is_complete: bool


@dataclass(frozen=True)
class GoalSyncResult:
    """Goal refreshed from related data plus the fields that changed."""

    goal: Goal
    updated_fields: list[str]


@dataclass(frozen=True)
class GoalSummary:
    """Dashboard summary across all goals."""

    total: int
    active: int
    completed: int
    overdue: int
    completion_rate: float


@dataclass(frozen=True)
class GoalAnalytics:
    """Goal counts broken down by attribute."""

    by_status: dict[str, int]
    by_type: dict[str, int]
    by_category: dict[str, int]
    average_progress: float


@dataclass(frozen=True)
class GoalInsights:
    """Schedule health for a single goal."""

    goal_id: str
    progress_percent: float
    time_progress_percent: float
    days_remaining: int | None
    health_status: str


def progress_ratio(goal: Goal) -> float | None:
    """Return unclamped progress towards the target as a percentage.

    Returns None when the goal has no usable target value.
    """
    if not goal.target_value:
        return None
    if goal.progress_direction is ProgressDirection.DECREASE:
        start = goal.starting_value
        if start is None or start == goal.target_value:
            return 100.0 if goal.current_value <= goal.target_value else 0.0
        return (start - goal.current_value) / (start - goal.target_value) * 100
    return goal.current_value / goal.target_value * 100


def display_percent(ratio: float) -> float:
    """Clamp a progress ratio into the displayable 0-100 range."""
    return max(0.0, min(ratio, 100.0))


def time_progress_percent(goal: Goal, now: datetime) -> float:
    """Return elapsed share of the goal's scheduled duration."""
    start = goal.start_date or goal.created_at
    if goal.target_date is None:
        return 0.0
    total_days = (goal.target_date - start).total_seconds() / 86400
    if total_days <= 0:
        return 0.0
    passed_days = max((now - start).total_seconds() / 86400, 0.0)
    return min(passed_days / total_days * 100, 100.0)


def health_status(goal: Goal, now: datetime) -> str:
    """Classify whether a goal is on track relative to elapsed time."""
    if goal.status is GoalStatus.COMPLETED:
        return "completed"
    if goal.status is GoalStatus.CANCELLED:
        return "failed"
    ratio = progress_ratio(goal)
    goal_percent = display_percent(ratio) if ratio is not None else 0.0
    time_percent = time_progress_percent(goal, now)
    if time_percent > goal_percent + 20:
        return "behind"
    if goal_percent > time_percent + 20:
        return "ahead"
    return "on-track"
