"""Shared test fixtures."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime

import pytest

from fitness_sync.config import Settings
from fitness_sync.domain.common import GatewayError, Page, Pagination
from fitness_sync.domain.goals import (
    Goal,
    GoalAnalytics,
    GoalFilters,
    GoalInsights,
    GoalPriority,
    GoalStatus,
    GoalSummary,
    GoalSyncResult,
)
from fitness_sync.domain.nutrition import (
    DailyNutrition,
    FoodItem,
    Meal,
    MealFilters,
    MealType,
    NutritionGoals,
    NutritionRecommendations,
    NutritionStats,
    Quantity,
    WaterIntake,
)
from fitness_sync.domain.weight import (
    BulkImportResult,
    LatestWeight,
    WeightComparison,
    WeightEntry,
    WeightFilters,
    WeightStatistics,
    WeightSummary,
    WeightTrends,
    WeightUnit,
    WeightValue,
)
from fitness_sync.domain.workouts import (
    CompletionStatus,
    Exercise,
    Workout,
    WorkoutFilters,
    WorkoutStats,
)
from fitness_sync.services.goals import GoalsSlice
from fitness_sync.services.nutrition import NutritionSlice
from fitness_sync.services.weight import WeightSlice
from fitness_sync.services.workouts import WorkoutsSlice

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def make_goal(goal_id: str = "goal-1", **overrides) -> Goal:  # type: ignore[no-untyped-def]
    values: dict[str, object] = {
        "title": "Run more",
        "status": GoalStatus.ACTIVE,
        "priority": GoalPriority.MEDIUM,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return Goal(id=goal_id, **values)  # type: ignore[arg-type]


def make_entry(
    entry_id: str = "entry-1",
    value: float = 80.0,
    unit: WeightUnit = WeightUnit.KG,
    measured_at: datetime = NOW,
) -> WeightEntry:
    return WeightEntry(
        id=entry_id,
        weight=WeightValue(value=value, unit=unit),
        measured_at=measured_at,
        created_at=measured_at,
        updated_at=measured_at,
    )


def make_food(
    name: str = "Oats", calories: float = 300, protein: float = 10
) -> FoodItem:
    return FoodItem(
        name=name,
        quantity=Quantity(value=100, unit="g"),
        calories=calories,
        protein=protein,
        carbohydrates=50,
        fat=5,
        fiber=8,
    )


def make_meal(
    meal_id: str = "meal-1",
    meal_time: datetime = NOW,
    meal_type: MealType = MealType.BREAKFAST,
    foods: list[FoodItem] | None = None,
) -> Meal:
    return Meal(
        id=meal_id,
        type=meal_type,
        meal_time=meal_time,
        created_at=meal_time,
        updated_at=meal_time,
        foods=foods if foods is not None else [make_food()],
    )


def make_workout(
    workout_id: str = "workout-1",
    status: CompletionStatus = CompletionStatus.PLANNED,
    **overrides: object,
) -> Workout:
    values: dict[str, object] = {
        "name": "Leg day",
        "start_time": NOW,
        "completion_status": status,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return Workout(id=workout_id, **values)  # type: ignore[arg-type]


def _paginate(records: list, page: int, limit: int) -> Page:  # type: ignore[type-arg]
    start = (page - 1) * limit
    return Page(
        data=records[start : start + limit],
        pagination=Pagination.for_total(page, limit, len(records)),
    )


@dataclass
class FakeGatewayBase:
    """Records calls and raises configured failures."""

    failures: dict[str, str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise GatewayError(self.failures[operation])

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"


@dataclass
class InMemoryGoalGateway(FakeGatewayBase):
    """In-memory goal gateway for tests."""

    goals: dict[str, Goal] = field(default_factory=dict)
    sync_values: dict[str, float] = field(default_factory=dict)
    analytics: GoalAnalytics = field(
        default_factory=lambda: GoalAnalytics(
            by_status={"active": 1}, by_type={}, by_category={}, average_progress=0.0
        )
    )
    summary: GoalSummary = field(
        default_factory=lambda: GoalSummary(
            total=1, active=1, completed=0, overdue=0, completion_rate=0.0
        )
    )

    async def list(self, filters: GoalFilters, page: int, limit: int) -> Page[Goal]:
        self._enter("list")
        records = [
            goal
            for goal in self.goals.values()
            if (filters.status is None or goal.status == filters.status)
            and (filters.type is None or goal.type == filters.type)
        ]
        return _paginate(records, page, limit)

    async def get(self, goal_id: str) -> Goal:
        self._enter("get")
        if goal_id not in self.goals:
            raise GatewayError("Goal not found")
        return self.goals[goal_id]

    async def create(self, payload: dict[str, object]) -> Goal:
        self._enter("create")
        goal = make_goal(
            self._next_id("goal"),
            title=str(payload.get("title", "")),
            type=payload.get("type"),
            target_value=payload.get("targetValue"),
            starting_value=payload.get("startingValue"),
            current_value=float(payload.get("currentValue", 0)),  # type: ignore[arg-type]
        )
        self.goals[goal.id] = goal
        return goal

    async def update(self, goal_id: str, patch: dict[str, object]) -> Goal:
        self._enter("update")
        goal = await self.get(goal_id)
        changes = {
            "title": patch.get("title", goal.title),
            "priority": GoalPriority(patch.get("priority", goal.priority)),
        }
        self.goals[goal_id] = replace(goal, **changes)  # type: ignore[arg-type]
        return self.goals[goal_id]

    async def delete(self, goal_id: str) -> None:
        self._enter("delete")
        if self.goals.pop(goal_id, None) is None:
            raise GatewayError("Goal not found")

    async def update_progress(
        self, goal_id: str, progress: dict[str, object]
    ) -> Goal:
        self._enter("update_progress")
        goal = await self.get(goal_id)
        self.goals[goal_id] = replace(
            goal,
            current_value=float(progress["currentValue"]),  # type: ignore[arg-type]
            last_progress_update=NOW,
        )
        return self.goals[goal_id]

    async def update_status(
        self, goal_id: str, status: GoalStatus, reason: str | None
    ) -> Goal:
        self._enter("update_status")
        goal = await self.get(goal_id)
        self.goals[goal_id] = replace(
            goal,
            status=status,
            status_reason=reason,
            completed_at=NOW if status is GoalStatus.COMPLETED else goal.completed_at,
        )
        return self.goals[goal_id]

    async def sync(self, goal_id: str) -> GoalSyncResult:
        self._enter("sync")
        goal = await self.get(goal_id)
        if goal_id not in self.sync_values:
            return GoalSyncResult(goal=goal, updated_fields=[])
        self.goals[goal_id] = replace(goal, current_value=self.sync_values[goal_id])
        return GoalSyncResult(goal=self.goals[goal_id], updated_fields=["currentValue"])

    async def get_analytics(self) -> GoalAnalytics:
        self._enter("get_analytics")
        return self.analytics

    async def get_summary(self) -> GoalSummary:
        self._enter("get_summary")
        return self.summary

    async def get_insights(self, goal_id: str) -> GoalInsights:
        self._enter("get_insights")
        await self.get(goal_id)
        return GoalInsights(
            goal_id=goal_id,
            progress_percent=50.0,
            time_progress_percent=25.0,
            days_remaining=30,
            health_status="ahead",
        )


@dataclass
class InMemoryWeightGateway(FakeGatewayBase):
    """In-memory weight gateway for tests."""

    entries: dict[str, WeightEntry] = field(default_factory=dict)

    def _ordered(self) -> list[WeightEntry]:
        return sorted(
            self.entries.values(), key=lambda entry: entry.measured_at, reverse=True
        )

    async def list(
        self, filters: WeightFilters, page: int, limit: int
    ) -> Page[WeightEntry]:
        self._enter("list")
        return _paginate(self._ordered(), page, limit)

    async def get(self, entry_id: str) -> WeightEntry:
        self._enter("get")
        if entry_id not in self.entries:
            raise GatewayError("Weight entry not found")
        return self.entries[entry_id]

    async def create(self, payload: dict[str, object]) -> WeightEntry:
        self._enter("create")
        weight = payload["weight"]
        entry = make_entry(
            self._next_id("entry"),
            value=float(weight["value"]),  # type: ignore[index]
            unit=WeightUnit(weight.get("unit", "kg")),  # type: ignore[union-attr]
        )
        self.entries[entry.id] = entry
        return entry

    async def update(self, entry_id: str, patch: dict[str, object]) -> WeightEntry:
        self._enter("update")
        entry = await self.get(entry_id)
        self.entries[entry_id] = replace(entry, notes=patch.get("notes"))  # type: ignore[arg-type]
        return self.entries[entry_id]

    async def delete(self, entry_id: str) -> None:
        self._enter("delete")
        if self.entries.pop(entry_id, None) is None:
            raise GatewayError("Weight entry not found")

    async def get_trends(self, period: str, start_date: str | None) -> WeightTrends:
        self._enter("get_trends")
        return WeightTrends(points=[], statistics=None)

    async def get_statistics(
        self, start_date: str | None, end_date: str | None
    ) -> WeightStatistics:
        self._enter("get_statistics")
        values = [entry.weight.value for entry in self.entries.values()]
        return WeightStatistics(
            total_entries=len(values),
            avg_weight=sum(values) / len(values) if values else 0.0,
            min_weight=min(values, default=0.0),
            max_weight=max(values, default=0.0),
        )

    async def get_summary(self) -> WeightSummary:
        self._enter("get_summary")
        ordered = self._ordered()
        return WeightSummary(
            latest=ordered[0] if ordered else None,
            total_entries=len(ordered),
            change_since_first=None,
        )

    async def get_latest(self) -> LatestWeight:
        self._enter("get_latest")
        ordered = self._ordered()
        if not ordered:
            return LatestWeight(entry=None, comparison=None)
        comparison = None
        if len(ordered) > 1:
            comparison = WeightComparison(first=ordered[1], second=ordered[0])
        return LatestWeight(entry=ordered[0], comparison=comparison)

    async def compare_entries(self, first_id: str, second_id: str) -> WeightComparison:
        self._enter("compare_entries")
        return WeightComparison(
            first=await self.get(first_id), second=await self.get(second_id)
        )

    async def bulk_import(self, entries: list[dict[str, object]]) -> BulkImportResult:
        self._enter("bulk_import")
        created = [await self.create(payload) for payload in entries]
        return BulkImportResult(entries=created, imported=len(created))


@dataclass
class InMemoryNutritionGateway(FakeGatewayBase):
    """In-memory nutrition gateway for tests."""

    meals: dict[str, Meal] = field(default_factory=dict)
    goals: dict[date, NutritionGoals] = field(default_factory=dict)
    water: dict[date, float] = field(default_factory=dict)

    async def list(self, filters: MealFilters, page: int, limit: int) -> Page[Meal]:
        self._enter("list")
        records = [
            meal
            for meal in self.meals.values()
            if filters.type is None or meal.type == filters.type
        ]
        return _paginate(records, page, limit)

    async def get(self, meal_id: str) -> Meal:
        self._enter("get")
        if meal_id not in self.meals:
            raise GatewayError("Meal not found")
        return self.meals[meal_id]

    async def create(self, payload: dict[str, object]) -> Meal:
        self._enter("create")
        meal = make_meal(
            self._next_id("meal"),
            meal_time=payload.get("mealTime", NOW),  # type: ignore[arg-type]
            meal_type=MealType(payload.get("type", "breakfast")),
        )
        self.meals[meal.id] = meal
        return meal

    async def update(self, meal_id: str, patch: dict[str, object]) -> Meal:
        self._enter("update")
        meal = await self.get(meal_id)
        self.meals[meal_id] = replace(
            meal,
            meal_time=patch.get("mealTime", meal.meal_time),  # type: ignore[arg-type]
            notes=patch.get("notes", meal.notes),  # type: ignore[arg-type]
        )
        return self.meals[meal_id]

    async def delete(self, meal_id: str) -> None:
        self._enter("delete")
        if self.meals.pop(meal_id, None) is None:
            raise GatewayError("Meal not found")

    def _daily(self, day: date) -> DailyNutrition:
        return DailyNutrition(
            day=day,
            meals=[meal for meal in self.meals.values() if meal.day == day],
            water_intake=WaterIntake(total=self.water.get(day, 0.0), goal=2000),
            goals=self.goals.get(day, NutritionGoals()),
        )

    async def get_daily(self, day: date) -> DailyNutrition:
        self._enter("get_daily")
        return self._daily(day)

    async def update_daily_goals(
        self, day: date, goals: NutritionGoals
    ) -> DailyNutrition:
        self._enter("update_daily_goals")
        self.goals[day] = goals
        return self._daily(day)

    async def add_water_intake(
        self, day: date, amount: float, unit: str
    ) -> DailyNutrition:
        self._enter("add_water_intake")
        self.water[day] = self.water.get(day, 0.0) + amount
        return self._daily(day)

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> NutritionStats:
        self._enter("get_stats")
        return NutritionStats(
            total_meals=len(self.meals),
            average_calories=0.0,
            average_protein=0.0,
            average_carbs=0.0,
            average_fat=0.0,
            meal_types=[],
            recent_meals=[],
        )

    async def get_recommendations(self) -> NutritionRecommendations:
        self._enter("get_recommendations")
        return NutritionRecommendations(
            calories=2200, protein=112, carbohydrates=275, fat=61, fiber=30, water=3000
        )

    async def get_suggestions(
        self, meal_type: MealType | None, max_calories: float | None
    ) -> list[Meal]:
        self._enter("get_suggestions")
        return [
            meal
            for meal in self.meals.values()
            if (meal_type is None or meal.type is meal_type)
            and (max_calories is None or meal.total_calories <= max_calories)
        ]


@dataclass
class InMemoryWorkoutGateway(FakeGatewayBase):
    """In-memory workout gateway for tests."""

    workouts: dict[str, Workout] = field(default_factory=dict)

    async def list(
        self, filters: WorkoutFilters, page: int, limit: int
    ) -> Page[Workout]:
        self._enter("list")
        records = [
            workout
            for workout in self.workouts.values()
            if not workout.is_template
            and (filters.status is None or workout.completion_status == filters.status)
        ]
        return _paginate(records, page, limit)

    async def get(self, workout_id: str) -> Workout:
        self._enter("get")
        if workout_id not in self.workouts:
            raise GatewayError("Workout not found")
        return self.workouts[workout_id]

    async def create(self, payload: dict[str, object]) -> Workout:
        self._enter("create")
        workout = make_workout(self._next_id("workout"), name=payload.get("name", ""))
        self.workouts[workout.id] = workout
        return workout

    async def update(self, workout_id: str, patch: dict[str, object]) -> Workout:
        self._enter("update")
        workout = await self.get(workout_id)
        self.workouts[workout_id] = replace(workout, name=patch.get("name", workout.name))  # type: ignore[arg-type]
        return self.workouts[workout_id]

    async def delete(self, workout_id: str) -> None:
        self._enter("delete")
        if self.workouts.pop(workout_id, None) is None:
            raise GatewayError("Workout not found")

    async def _set(self, workout_id: str, **changes) -> Workout:  # type: ignore[no-untyped-def]
        workout = await self.get(workout_id)
        self.workouts[workout_id] = replace(workout, **changes)
        return self.workouts[workout_id]

    async def start(self, workout_id: str) -> Workout:
        self._enter("start")
        return await self._set(
            workout_id, completion_status=CompletionStatus.IN_PROGRESS, start_time=NOW
        )

    async def complete(self, workout_id: str) -> Workout:
        self._enter("complete")
        return await self._set(
            workout_id, completion_status=CompletionStatus.COMPLETED, end_time=NOW
        )

    async def add_exercise(
        self, workout_id: str, exercise: dict[str, object]
    ) -> Workout:
        self._enter("add_exercise")
        workout = await self.get(workout_id)
        added = Exercise(name=str(exercise["name"]), id=self._next_id("exercise"))
        return await self._set(workout_id, exercises=[*workout.exercises, added])

    async def update_exercise(
        self, workout_id: str, exercise_id: str, patch: dict[str, object]
    ) -> Workout:
        self._enter("update_exercise")
        workout = await self.get(workout_id)
        exercises = [
            replace(item, name=str(patch.get("name", item.name)))
            if item.id == exercise_id
            else item
            for item in workout.exercises
        ]
        return await self._set(workout_id, exercises=exercises)

    async def delete_exercise(self, workout_id: str, exercise_id: str) -> Workout:
        self._enter("delete_exercise")
        workout = await self.get(workout_id)
        exercises = [item for item in workout.exercises if item.id != exercise_id]
        return await self._set(workout_id, exercises=exercises)

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> WorkoutStats:
        self._enter("get_stats")
        return WorkoutStats(
            total_workouts=len(self.workouts),
            total_duration=0.0,
            total_calories=0.0,
            workout_types=[],
            recent_workouts=[],
        )

    async def list_templates(self) -> list[Workout]:
        self._enter("list_templates")
        return [workout for workout in self.workouts.values() if workout.is_template]

    async def create_from_template(
        self, template_id: str, name: str | None
    ) -> Workout:
        self._enter("create_from_template")
        template = await self.get(template_id)
        workout = replace(
            template,
            id=self._next_id("workout"),
            name=name or template.template_name or template.name,
            is_template=False,
            template_name=None,
        )
        self.workouts[workout.id] = workout
        return workout


@pytest.fixture
def settings(tmp_path) -> Settings:  # type: ignore[no-untyped-def]
    return Settings(
        gateway_backend="rest",
        api_base_url="https://api.test/api",
        api_token="test-token",
        snapshot_dir=tmp_path / "snapshots",
        persisted_slices="goals,weight",
    )


@pytest.fixture
def goal_gateway() -> InMemoryGoalGateway:
    return InMemoryGoalGateway()


@pytest.fixture
def goals_slice(goal_gateway: InMemoryGoalGateway) -> GoalsSlice:
    return GoalsSlice(goal_gateway)


@pytest.fixture
def weight_gateway() -> InMemoryWeightGateway:
    return InMemoryWeightGateway()


@pytest.fixture
def weight_slice(weight_gateway: InMemoryWeightGateway) -> WeightSlice:
    return WeightSlice(weight_gateway)


@pytest.fixture
def nutrition_gateway() -> InMemoryNutritionGateway:
    return InMemoryNutritionGateway()


@pytest.fixture
def nutrition_slice(nutrition_gateway: InMemoryNutritionGateway) -> NutritionSlice:
    return NutritionSlice(nutrition_gateway)


@pytest.fixture
def workout_gateway() -> InMemoryWorkoutGateway:
    return InMemoryWorkoutGateway()


@pytest.fixture
def workouts_slice(workout_gateway: InMemoryWorkoutGateway) -> WorkoutsSlice:
    return WorkoutsSlice(workout_gateway)
