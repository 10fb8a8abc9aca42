"""Domain models for workouts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from fitness_sync.domain.common import SortOrder


class CompletionStatus(StrEnum):
    """Progress of a workout session."""

    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ExerciseSet:
    """One set of an exercise."""

    set_number: int
    reps: int | None = None
    weight_value: float | None = None
    weight_unit: str | None = None
    duration_seconds: float | None = None
    completed: bool = False


@dataclass(frozen=True)
class Exercise:
    """An exercise performed within a workout."""

    name: str
    id: str | None = None
    category: str | None = None
    muscle_groups: list[str] = field(default_factory=list)
    sets: list[ExerciseSet] = field(default_factory=list)
    notes: str | None = None

    @property
    def volume(self) -> float:
        """Total reps times weight across sets."""
        return sum(
            (item.reps or 0) * (item.weight_value or 0) for item in self.sets
        )


@dataclass(frozen=True)
class WorkoutDuration:
    """Planned and actual length in minutes."""

    planned: float | None = None
    actual: float | None = None


@dataclass(frozen=True)
class Workout:
    """A workout session or template."""

    id: str
    name: str
    start_time: datetime
    completion_status: CompletionStatus
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    type: str | None = None
    intensity: str | None = None
    duration: WorkoutDuration = field(default_factory=WorkoutDuration)
    exercises: list[Exercise] = field(default_factory=list)
    end_time: datetime | None = None
    calories_burned: float | None = None
    tags: list[str] = field(default_factory=list)
    is_template: bool = False
    template_name: str | None = None
    notes: str | None = None

    @property
    def total_sets(self) -> int:
        return sum(len(exercise.sets) for exercise in self.exercises)

    @property
    def total_volume(self) -> float:
        return sum(exercise.volume for exercise in self.exercises)


@dataclass(frozen=True)
class WorkoutFilters:
    """Filters applied to the next workout fetch."""

    type: str | None = None
    status: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    search: str | None = None
    sort_by: str = "startTime"
    sort_order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class WorkoutStats:
    """Totals over a range of workouts."""

    total_workouts: int
    total_duration: float
    total_calories: float
    workout_types: list[str]
    recent_workouts: list[Workout]
