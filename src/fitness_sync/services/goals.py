"""Goals slice: cached goals and the gateway calls that change them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol

from fitness_sync.domain.common import Page
from fitness_sync.domain.goals import (
    Goal,
    GoalAnalytics,
    GoalFilters,
    GoalInsights,
    GoalStatus,
    GoalSummary,
    GoalSyncResult,
)
from fitness_sync.services.slice import (
    BASE_OPERATION_KINDS,
    CollectionSlice,
    CollectionState,
    record_key,
)


class GoalGateway(Protocol):
    """Remote operations on the current user's goals."""

    async def list(self, filters: GoalFilters, page: int, limit: int) -> Page[Goal]:
        """Return a page of goals matching the filters."""

    async def get(self, goal_id: str) -> Goal:
        """Return a single goal."""

    async def create(self, payload: dict[str, object]) -> Goal:
        """Create a goal and return it with server-assigned fields."""

    async def update(self, goal_id: str, patch: dict[str, object]) -> Goal:
        """Apply a partial update and return the full goal."""

    async def delete(self, goal_id: str) -> None:
        """Delete a goal."""

    async def update_progress(
        self, goal_id: str, progress: dict[str, object]
    ) -> Goal:
        """Record a progress value and return the updated goal."""

    async def update_status(
        self, goal_id: str, status: GoalStatus, reason: str | None
    ) -> Goal:
        """Change the goal status and return the updated goal."""

    async def sync(self, goal_id: str) -> GoalSyncResult:
        """Recompute the goal's current value from related data."""

    async def get_analytics(self) -> GoalAnalytics:
        """Return goal breakdowns."""

    async def get_summary(self) -> GoalSummary:
        """Return the goal dashboard summary."""

    async def get_insights(self, goal_id: str) -> GoalInsights:
        """Return schedule insights for a goal."""


@dataclass
class GoalsState(CollectionState[Goal, GoalFilters]):
    """Goals cache with analytics, summary and insight caches."""

    analytics: GoalAnalytics | None = None
    summary: GoalSummary | None = None
    insights: GoalInsights | None = None

    @property
    def goals(self) -> list[Goal]:
        return self.items

    @property
    def current_goal(self) -> Goal | None:
        return self.current


@dataclass
class GoalsSlice(CollectionSlice[Goal, GoalFilters]):
    """Mediates every goal mutation through the gateway."""

    name = "goals"
    operation_kinds = (
        *BASE_OPERATION_KINDS,
        "progress",
        "status",
        "sync",
        "analytics",
        "summary",
        "insights",
    )

    gateway: GoalGateway
    state: GoalsState = field(init=False)

    def _initial_state(self) -> GoalsState:
        return GoalsState(
            filters=self._default_filters(),
            pagination=self._initial_pagination(),
            status=self._new_status(),
        )

    def _default_filters(self) -> GoalFilters:
        return GoalFilters()

    async def fetch_goals(
        self,
        filters: GoalFilters | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Goal] | None:
        """Fetch a page of goals and replace the cache with it."""
        resolved_filters = filters or self.state.filters
        resolved_page = page or self.state.pagination.page
        resolved_limit = limit or self.state.pagination.limit
        return await self._fetch_page(
            lambda: self.gateway.list(resolved_filters, resolved_page, resolved_limit),
            "Failed to fetch goals",
        )

    async def fetch_goal(self, goal_id: str) -> Goal | None:
        """Fetch a goal into the focus slot."""
        return await self._fetch_current(
            lambda: self.gateway.get(goal_id), "Failed to fetch goal"
        )

    async def create_goal(self, data: dict[str, object]) -> Goal | None:
        """Create a goal and prepend it to the cache."""
        return await self._create(
            lambda: self.gateway.create(data), "Failed to create goal"
        )

    async def update_goal(self, goal_id: str, patch: dict[str, object]) -> Goal | None:
        """Update a goal in place."""
        return await self._mutate(
            "update",
            goal_id,
            lambda: self.gateway.update(goal_id, patch),
            "Failed to update goal",
        )

    async def delete_goal(self, goal_id: str) -> bool:
        """Delete a goal and drop it from the cache."""
        return await self._remove(
            goal_id, lambda: self.gateway.delete(goal_id), "Failed to delete goal"
        )

    async def update_progress(
        self, goal_id: str, progress: dict[str, object]
    ) -> Goal | None:
        """Record progress for a goal."""
        return await self._mutate(
            "progress",
            goal_id,
            lambda: self.gateway.update_progress(goal_id, progress),
            "Failed to update goal progress",
        )

    async def update_status(
        self, goal_id: str, status: GoalStatus, reason: str | None = None
    ) -> Goal | None:
        """Change a goal's status."""
        return await self._mutate(
            "status",
            goal_id,
            lambda: self.gateway.update_status(goal_id, status, reason),
            "Failed to update goal status",
        )

    async def sync_goal(self, goal_id: str) -> GoalSyncResult | None:
        """Refresh a goal's current value from related data."""
        return await self._run(
            "sync",
            lambda: self.gateway.sync(goal_id),
            lambda result: self._replace_record(result.goal),
            "Failed to sync goal",
            fence_key=record_key(goal_id),
        )

    async def fetch_analytics(self) -> GoalAnalytics | None:
        """Load goal analytics."""
        return await self._run(
            "analytics",
            self.gateway.get_analytics,
            self._set_analytics,
            "Failed to fetch goal analytics",
        )

    async def fetch_summary(self) -> GoalSummary | None:
        """Load the goal dashboard summary."""
        return await self._run(
            "summary",
            self.gateway.get_summary,
            self._set_summary,
            "Failed to fetch goal summary",
        )

    async def fetch_insights(self, goal_id: str) -> GoalInsights | None:
        """Load schedule insights for a goal."""
        return await self._run(
            "insights",
            lambda: self.gateway.get_insights(goal_id),
            self._set_insights,
            "Failed to fetch goal insights",
        )

    async def optimistic_complete(
        self, goal_id: str, now: datetime | None = None
    ) -> Goal | None:
        """Mark a goal completed locally, then confirm or roll back."""
        completed_at = now or datetime.now(tz=UTC)
        applied = self.apply_optimistic(
            goal_id,
            lambda goal: replace(
                goal, status=GoalStatus.COMPLETED, completed_at=completed_at
            ),
        )
        if applied is None:
            return None
        result = await self.update_status(goal_id, GoalStatus.COMPLETED)
        if result is None:
            self.rollback(goal_id)
        return result

    async def optimistic_update_progress(
        self, goal_id: str, current_value: float, now: datetime | None = None
    ) -> Goal | None:
        """Set a goal's progress locally, then confirm or roll back."""
        updated_at = now or datetime.now(tz=UTC)
        applied = self.apply_optimistic(
            goal_id,
            lambda goal: replace(
                goal, current_value=current_value, last_progress_update=updated_at
            ),
        )
        if applied is None:
            return None
        result = await self.update_progress(goal_id, {"currentValue": current_value})
        if result is None:
            self.rollback(goal_id)
        return result

    def clear_analytics(self) -> None:
        """Drop cached analytics."""
        self.state.analytics = None

    def clear_summary(self) -> None:
        """Drop the cached summary."""
        self.state.summary = None

    def clear_insights(self) -> None:
        """Drop cached insights."""
        self.state.insights = None

    def _set_analytics(self, analytics: GoalAnalytics) -> None:
        self.state.analytics = analytics

    def _set_summary(self, summary: GoalSummary) -> None:
        self.state.summary = summary

    def _set_insights(self, insights: GoalInsights) -> None:
        self.state.insights = insights
