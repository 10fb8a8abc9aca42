"""Nutrition slice: cached meals and per-day nutrition records."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Protocol

from fitness_sync.domain.common import Page
from fitness_sync.domain.nutrition import (
    DailyNutrition,
    Meal,
    MealFilters,
    MealType,
    NutritionGoals,
    NutritionRecommendations,
    NutritionStats,
)
from fitness_sync.services.slice import (
    BASE_OPERATION_KINDS,
    CollectionSlice,
    CollectionState,
)


class NutritionGateway(Protocol):
    """Remote operations on the current user's meals and daily nutrition."""

    async def list(self, filters: MealFilters, page: int, limit: int) -> Page[Meal]:
        """Return a page of meals matching the filters."""

    async def get(self, meal_id: str) -> Meal:
        """Return a single meal."""

    async def create(self, payload: dict[str, object]) -> Meal:
        """Log a meal."""

    async def update(self, meal_id: str, patch: dict[str, object]) -> Meal:
        """Apply a partial update and return the full meal."""

    async def delete(self, meal_id: str) -> None:
        """Delete a meal."""

    async def get_daily(self, day: date) -> DailyNutrition:
        """Return meals, water and targets for a day."""

    async def update_daily_goals(
        self, day: date, goals: NutritionGoals
    ) -> DailyNutrition:
        """Set the macro targets for a day."""

    async def add_water_intake(
        self, day: date, amount: float, unit: str
    ) -> DailyNutrition:
        """Add water to a day's intake."""

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> NutritionStats:
        """Return averages over a range of meals."""

    async def get_recommendations(self) -> NutritionRecommendations:
        """Return recommended daily intake."""

    async def get_suggestions(
        self, meal_type: MealType | None, max_calories: float | None
    ) -> list[Meal]:
        """Return previously logged meals fitting the constraints."""


@dataclass
class NutritionState(CollectionState[Meal, MealFilters]):
    daily: dict[date, DailyNutrition] = field(default_factory=dict)
    current_date: date = field(default_factory=date.today)
    stats: NutritionStats | None = None
    recommendations: NutritionRecommendations | None = None
    suggestions: list[Meal] = field(default_factory=list)

    @property
    def meals(self) -> list[Meal]:
        return self.items

    @property
    def current_meal(self) -> Meal | None:
        return self.current


@dataclass
class NutritionSlice(CollectionSlice[Meal, MealFilters]):
    """Mediates meal changes and keeps cached days in step with them."""

    name = "nutrition"
    operation_kinds = (
        *BASE_OPERATION_KINDS,
        "daily",
        "water",
        "stats",
        "recommendations",
        "suggestions",
    )

    gateway: NutritionGateway
    state: NutritionState = field(init=False)

    def _initial_state(self) -> NutritionState:
        return NutritionState(
            filters=self._default_filters(),
            pagination=self._initial_pagination(),
            status=self._new_status(),
        )

    def _default_filters(self) -> MealFilters:
        return MealFilters()

    async def fetch_meals(
        self,
        filters: MealFilters | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Meal] | None:
        """Fetch a page of meals and replace the cache with it."""
        resolved_filters = filters or self.state.filters
        resolved_page = page or self.state.pagination.page
        resolved_limit = limit or self.state.pagination.limit
        return await self._fetch_page(
            lambda: self.gateway.list(resolved_filters, resolved_page, resolved_limit),
            "Failed to fetch meals",
        )

    async def fetch_meal(self, meal_id: str) -> Meal | None:
        return await self._fetch_current(
            lambda: self.gateway.get(meal_id), "Failed to fetch meal"
        )

    async def create_meal(self, data: dict[str, object]) -> Meal | None:
        """Log a meal, prepend it and add it to its cached day."""
        return await self._create(
            lambda: self.gateway.create(data), "Failed to create meal"
        )

    async def update_meal(self, meal_id: str, patch: dict[str, object]) -> Meal | None:
        return await self._mutate(
            "update",
            meal_id,
            lambda: self.gateway.update(meal_id, patch),
            "Failed to update meal",
        )

    async def delete_meal(self, meal_id: str) -> bool:
        return await self._remove(
            meal_id, lambda: self.gateway.delete(meal_id), "Failed to delete meal"
        )

    async def fetch_daily(self, day: date | None = None) -> DailyNutrition | None:
        """Load one day's nutrition, defaulting to the current date."""
        resolved_day = day or self.state.current_date
        return await self._run(
            "daily",
            lambda: self.gateway.get_daily(resolved_day),
            self._store_daily,
            "Failed to fetch daily nutrition",
            fence_key=_daily_key(resolved_day),
        )

    async def update_daily_goals(
        self, day: date, goals: NutritionGoals
    ) -> DailyNutrition | None:
        return await self._run(
            "daily",
            lambda: self.gateway.update_daily_goals(day, goals),
            self._store_daily,
            "Failed to update daily nutrition",
            fence_key=_daily_key(day),
        )

    async def add_water_intake(
        self, day: date, amount: float, unit: str = "ml"
    ) -> DailyNutrition | None:
        return await self._run(
            "water",
            lambda: self.gateway.add_water_intake(day, amount, unit),
            self._store_daily,
            "Failed to add water intake",
            fence_key=_daily_key(day),
        )

    async def fetch_stats(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> NutritionStats | None:
        return await self._run(
            "stats",
            lambda: self.gateway.get_stats(start_date, end_date),
            self._set_stats,
            "Failed to fetch nutrition stats",
        )

    async def fetch_recommendations(self) -> NutritionRecommendations | None:
        return await self._run(
            "recommendations",
            self.gateway.get_recommendations,
            self._set_recommendations,
            "Failed to fetch nutrition recommendations",
        )

    async def fetch_suggestions(
        self, meal_type: MealType | None = None, max_calories: float | None = None
    ) -> list[Meal] | None:
        return await self._run(
            "suggestions",
            lambda: self.gateway.get_suggestions(meal_type, max_calories),
            self._set_suggestions,
            "Failed to fetch meal suggestions",
        )

    def set_current_date(self, day: date) -> None:
        """Select the day the dashboard shows."""
        self.state.current_date = day

    def clear_suggestions(self) -> None:
        self.state.suggestions = []

    def daily_for(self, day: date) -> DailyNutrition | None:
        """Return the cached nutrition for a day, if loaded."""
        return self.state.daily.get(day)

    # Reconciliation with the per-day cache

    def _apply_created(self, record: Meal) -> None:
        super()._apply_created(record)
        self._mirror_meal(record)

    def _swap(self, record: Meal) -> None:
        super()._swap(record)
        self._mirror_meal(record)

    def _apply_removed(self, record_id: str) -> None:
        super()._apply_removed(record_id)
        for day, daily in self.state.daily.items():
            meals = [meal for meal in daily.meals if meal.id != record_id]
            if len(meals) != len(daily.meals):
                self.state.daily[day] = replace(daily, meals=meals)

    def _mirror_meal(self, record: Meal) -> None:
        for day, daily in self.state.daily.items():
            present = any(meal.id == record.id for meal in daily.meals)
            if day == record.day:
                if present:
                    meals = [
                        record if meal.id == record.id else meal for meal in daily.meals
                    ]
                else:
                    meals = [*daily.meals, record]
            elif present:
                meals = [meal for meal in daily.meals if meal.id != record.id]
            else:
                continue
            self.state.daily[day] = replace(daily, meals=meals)

    def _store_daily(self, daily: DailyNutrition) -> None:
        self.state.daily[daily.day] = daily

    def _set_stats(self, stats: NutritionStats) -> None:
        self.state.stats = stats

    def _set_recommendations(self, recommendations: NutritionRecommendations) -> None:
        self.state.recommendations = recommendations

    def _set_suggestions(self, suggestions: list[Meal]) -> None:
        self.state.suggestions = suggestions


def _daily_key(day: date) -> str:
    return f"daily:{day.isoformat()}"
