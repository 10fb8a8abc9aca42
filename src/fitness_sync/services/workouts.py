"""Workouts slice: cached sessions, their exercises and templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from fitness_sync.domain.common import Page
from fitness_sync.domain.workouts import Workout, WorkoutFilters, WorkoutStats
from fitness_sync.services.slice import (
    BASE_OPERATION_KINDS,
    CollectionSlice,
    CollectionState,
)


class WorkoutGateway(Protocol):
    """Remote operations on the current user's workouts."""

    async def list(
        self, filters: WorkoutFilters, page: int, limit: int
    ) -> Page[Workout]:
        """Return a page of workouts matching the filters."""

    async def get(self, workout_id: str) -> Workout:
        """Return a single workout."""

    async def create(self, payload: dict[str, object]) -> Workout:
        """Create a workout."""

    async def update(self, workout_id: str, patch: dict[str, object]) -> Workout:
        """Apply a partial update and return the full workout."""

    async def delete(self, workout_id: str) -> None:
        """Delete a workout."""

    async def start(self, workout_id: str) -> Workout:
        """Mark a workout in progress, stamping its start time."""

    async def complete(self, workout_id: str) -> Workout:
        """Mark a workout completed, stamping its end time."""

    async def add_exercise(
        self, workout_id: str, exercise: dict[str, object]
    ) -> Workout:
        """Append an exercise and return the workout."""

    async def update_exercise(
        self, workout_id: str, exercise_id: str, patch: dict[str, object]
    ) -> Workout:
        """Update one exercise and return the workout."""

    async def delete_exercise(self, workout_id: str, exercise_id: str) -> Workout:
        """Remove one exercise and return the workout."""

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> WorkoutStats:
        """Return totals over a range of workouts."""

    async def list_templates(self) -> list[Workout]:
        """Return the workouts marked as templates."""

    async def create_from_template(
        self, template_id: str, name: str | None
    ) -> Workout:
        """Create a planned workout copied from a template."""


@dataclass
class WorkoutsState(CollectionState[Workout, WorkoutFilters]):
    stats: WorkoutStats | None = None
    templates: list[Workout] = field(default_factory=list)

    @property
    def workouts(self) -> list[Workout]:
        return self.items

    @property
    def current_workout(self) -> Workout | None:
        return self.current


@dataclass
class WorkoutsSlice(CollectionSlice[Workout, WorkoutFilters]):
    """Mediates workout sessions through the gateway."""

    name = "workouts"
    operation_kinds = (
        *BASE_OPERATION_KINDS,
        "start",
        "complete",
        "exercise",
        "stats",
        "templates",
    )

    gateway: WorkoutGateway
    state: WorkoutsState = field(init=False)

    def _initial_state(self) -> WorkoutsState:
        return WorkoutsState(
            filters=self._default_filters(),
            pagination=self._initial_pagination(),
            status=self._new_status(),
        )

    def _default_filters(self) -> WorkoutFilters:
        return WorkoutFilters()

    async def fetch_workouts(
        self,
        filters: WorkoutFilters | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Workout] | None:
        """Fetch a page of workouts and replace the cache with it."""
        resolved_filters = filters or self.state.filters
        resolved_page = page or self.state.pagination.page
        resolved_limit = limit or self.state.pagination.limit
        return await self._fetch_page(
            lambda: self.gateway.list(resolved_filters, resolved_page, resolved_limit),
            "Failed to fetch workouts",
        )

    async def fetch_workout(self, workout_id: str) -> Workout | None:
        return await self._fetch_current(
            lambda: self.gateway.get(workout_id), "Failed to fetch workout"
        )

    async def create_workout(self, data: dict[str, object]) -> Workout | None:
        return await self._create(
            lambda: self.gateway.create(data), "Failed to create workout"
        )

    async def update_workout(
        self, workout_id: str, patch: dict[str, object]
    ) -> Workout | None:
        return await self._mutate(
            "update",
            workout_id,
            lambda: self.gateway.update(workout_id, patch),
            "Failed to update workout",
        )

    async def delete_workout(self, workout_id: str) -> bool:
        return await self._remove(
            workout_id,
            lambda: self.gateway.delete(workout_id),
            "Failed to delete workout",
        )

    async def start_workout(self, workout_id: str) -> Workout | None:
        return await self._mutate(
            "start",
            workout_id,
            lambda: self.gateway.start(workout_id),
            "Failed to start workout",
        )

    async def complete_workout(self, workout_id: str) -> Workout | None:
        return await self._mutate(
            "complete",
            workout_id,
            lambda: self.gateway.complete(workout_id),
            "Failed to complete workout",
        )

    async def add_exercise(
        self, workout_id: str, exercise: dict[str, object]
    ) -> Workout | None:
        return await self._mutate(
            "exercise",
            workout_id,
            lambda: self.gateway.add_exercise(workout_id, exercise),
            "Failed to add exercise",
        )

    async def update_exercise(
        self, workout_id: str, exercise_id: str, patch: dict[str, object]
    ) -> Workout | None:
        return await self._mutate(
            "exercise",
            workout_id,
            lambda: self.gateway.update_exercise(workout_id, exercise_id, patch),
            "Failed to update exercise",
        )

    async def delete_exercise(
        self, workout_id: str, exercise_id: str
    ) -> Workout | None:
        return await self._mutate(
            "exercise",
            workout_id,
            lambda: self.gateway.delete_exercise(workout_id, exercise_id),
            "Failed to delete exercise",
        )

    async def fetch_stats(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> WorkoutStats | None:
        return await self._run(
            "stats",
            lambda: self.gateway.get_stats(start_date, end_date),
            self._set_stats,
            "Failed to fetch workout stats",
        )

    async def fetch_templates(self) -> list[Workout] | None:
        return await self._run(
            "templates",
            self.gateway.list_templates,
            self._set_templates,
            "Failed to fetch workout templates",
        )

    async def create_from_template(
        self, template_id: str, name: str | None = None
    ) -> Workout | None:
        """Create a workout from a template and prepend it like a create."""
        return await self._create(
            lambda: self.gateway.create_from_template(template_id, name),
            "Failed to create workout from template",
        )

    def _set_stats(self, stats: WorkoutStats) -> None:
        self.state.stats = stats

    def _set_templates(self, templates: list[Workout]) -> None:
        self.state.templates = templates
