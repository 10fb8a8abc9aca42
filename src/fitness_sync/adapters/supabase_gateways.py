"""Gateways over Supabase document tables.

Aggregates the REST backend serves from dedicated endpoints are computed here
from the stored documents.
"""

from __future__ import annotations

import math
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from fitness_sync.adapters.documents import (
    Document,
    format_datetime,
    malformed_documents_as_gateway_errors,
    nutrition_goals_to_document,
    parse_daily_nutrition,
    parse_goal,
    parse_meal,
    parse_weight_entry,
    parse_workout,
)
from fitness_sync.adapters.supabase_documents import DocumentQuery, DocumentTable
from fitness_sync.domain.common import GatewayError, Page, Pagination
from fitness_sync.domain.goals import (
    Goal,
    GoalAnalytics,
    GoalFilters,
    GoalInsights,
    GoalStatus,
    GoalSummary,
    GoalSyncResult,
    display_percent,
    health_status,
    progress_ratio,
    time_progress_percent,
)
from fitness_sync.domain.nutrition import (
    DailyNutrition,
    Meal,
    MealFilters,
    MealType,
    NutritionGoals,
    NutritionRecommendations,
    NutritionStats,
)
from fitness_sync.domain.weight import (
    BulkImportResult,
    LatestWeight,
    TrendStatistics,
    WeightComparison,
    WeightEntry,
    WeightFilters,
    WeightStatistics,
    WeightSummary,
    WeightTrendPoint,
    WeightTrends,
)
from fitness_sync.domain.workouts import (
    CompletionStatus,
    Workout,
    WorkoutFilters,
    WorkoutStats,
)

GOALS_QUERY = DocumentQuery(search_field="title")
WEIGHT_QUERY = DocumentQuery(date_field="measuredAt", search_field="notes")
MEALS_QUERY = DocumentQuery(date_field="mealTime", search_field="name")
WORKOUTS_QUERY = DocumentQuery(
    date_field="startTime",
    search_field="name",
    aliases={"status": "completionStatus"},
)

TREND_PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90, "year": 365}
RECENT_LIMIT = 5
SUGGESTION_POOL = 50

# Defaults used until a profile supplies real body measurements.
REFERENCE_WEIGHT_KG = 70
REFERENCE_CALORIES = 2200


def _day_bounds(day: date) -> tuple[str, str]:
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time.max)
    return start.isoformat() + "Z", end.isoformat() + "Z"


@malformed_documents_as_gateway_errors
@dataclass
class SupabaseGoalGateway:
    """Goals stored as documents, synced against the weight table."""

    goals: DocumentTable
    weights: DocumentTable

    async def list(self, filters: GoalFilters, page: int, limit: int) -> Page[Goal]:
        docs, total = self.goals.page(filters, page, limit, GOALS_QUERY)
        return Page(
            data=[parse_goal(doc) for doc in docs],
            pagination=Pagination.for_total(page, limit, total),
        )

    async def get(self, goal_id: str) -> Goal:
        return parse_goal(self.goals.get(goal_id))

    async def create(self, payload: dict[str, object]) -> Goal:
        doc = {
            "status": GoalStatus.ACTIVE.value,
            "priority": "medium",
            "currentValue": 0,
            "progress": [],
            **payload,
        }
        return parse_goal(self.goals.insert(doc))

    async def update(self, goal_id: str, patch: dict[str, object]) -> Goal:
        return parse_goal(self.goals.update(goal_id, patch))

    async def delete(self, goal_id: str) -> None:
        self.goals.delete(goal_id)

    async def update_progress(
        self, goal_id: str, progress: dict[str, object]
    ) -> Goal:
        value = progress.get("currentValue", progress.get("value"))
        if value is None:
            raise GatewayError("Progress value is required")
        existing = self.goals.get(goal_id)
        stamp = format_datetime(self.goals.clock())
        history = [
            *(existing.get("progress") or []),
            {"value": value, "date": stamp, "notes": progress.get("notes")},
        ]
        return parse_goal(
            self.goals.update(
                goal_id,
                {
                    "currentValue": value,
                    "lastProgressUpdate": stamp,
                    "progress": history,
                },
            )
        )

    async def update_status(
        self, goal_id: str, status: GoalStatus, reason: str | None
    ) -> Goal:
        patch: Document = {"status": status.value, "statusReason": reason}
        if status is GoalStatus.COMPLETED:
            patch["completedAt"] = format_datetime(self.goals.clock())
        return parse_goal(self.goals.update(goal_id, patch))

    async def sync(self, goal_id: str) -> GoalSyncResult:
        """Derive weight goal progress from the latest weigh-in."""
        doc = self.goals.get(goal_id)
        goal_type = doc.get("type")
        if goal_type not in {"weight-loss", "weight-gain"}:
            return GoalSyncResult(goal=parse_goal(doc), updated_fields=[])
        latest = self.weights.documents("measuredAt", desc=True, limit=1)
        if not latest or doc.get("startingValue") is None:
            return GoalSyncResult(goal=parse_goal(doc), updated_fields=[])
        latest_weight = parse_weight_entry(latest[0]).weight.value
        start = float(doc["startingValue"])
        if goal_type == "weight-loss":
            current = max(0.0, start - latest_weight)
        else:
            current = max(0.0, latest_weight - start)
        updated = self.goals.update(
            goal_id,
            {
                "currentValue": current,
                "lastProgressUpdate": format_datetime(self.goals.clock()),
            },
        )
        return GoalSyncResult(
            goal=parse_goal(updated),
            updated_fields=["currentValue", "lastProgressUpdate"],
        )

    async def get_analytics(self) -> GoalAnalytics:
        goals = self._all()
        ratios = [ratio for ratio in map(progress_ratio, goals) if ratio is not None]
        average = sum(display_percent(r) for r in ratios) / len(ratios) if ratios else 0.0
        return GoalAnalytics(
            by_status=dict(Counter(goal.status.value for goal in goals)),
            by_type=dict(Counter(goal.type for goal in goals if goal.type)),
            by_category=dict(Counter(goal.category for goal in goals if goal.category)),
            average_progress=round(average, 1),
        )

    async def get_summary(self) -> GoalSummary:
        goals = self._all()
        now = self.goals.clock()
        active = [goal for goal in goals if goal.status is GoalStatus.ACTIVE]
        completed = sum(1 for goal in goals if goal.status is GoalStatus.COMPLETED)
        overdue = sum(
            1 for goal in active if goal.target_date is not None and goal.target_date < now
        )
        return GoalSummary(
            total=len(goals),
            active=len(active),
            completed=completed,
            overdue=overdue,
            completion_rate=round(completed / len(goals) * 100, 1) if goals else 0.0,
        )

    async def get_insights(self, goal_id: str) -> GoalInsights:
        goal = parse_goal(self.goals.get(goal_id))
        now = self.goals.clock()
        ratio = progress_ratio(goal)
        days_remaining = None
        if goal.target_date is not None:
            days_remaining = math.ceil((goal.target_date - now).total_seconds() / 86400)
        return GoalInsights(
            goal_id=goal.id,
            progress_percent=round(display_percent(ratio), 1) if ratio is not None else 0.0,
            time_progress_percent=round(time_progress_percent(goal, now), 1),
            days_remaining=days_remaining,
            health_status=health_status(goal, now),
        )

    def _all(self) -> list[Goal]:
        return [parse_goal(doc) for doc in self.goals.documents("createdAt")]


@malformed_documents_as_gateway_errors
@dataclass
class SupabaseWeightGateway:
    """Weight entries stored as documents."""

    entries: DocumentTable

    async def list(
        self, filters: WeightFilters, page: int, limit: int
    ) -> Page[WeightEntry]:
        docs, total = self.entries.page(filters, page, limit, WEIGHT_QUERY)
        return Page(
            data=[parse_weight_entry(doc) for doc in docs],
            pagination=Pagination.for_total(page, limit, total),
        )

    async def get(self, entry_id: str) -> WeightEntry:
        return parse_weight_entry(self.entries.get(entry_id))

    async def create(self, payload: dict[str, object]) -> WeightEntry:
        return parse_weight_entry(self.entries.insert(self._with_measured_at(payload)))

    async def update(self, entry_id: str, patch: dict[str, object]) -> WeightEntry:
        return parse_weight_entry(self.entries.update(entry_id, patch))

    async def delete(self, entry_id: str) -> None:
        self.entries.delete(entry_id)

    async def get_trends(self, period: str, start_date: str | None) -> WeightTrends:
        """Average entries per day over the period, oldest first."""
        if start_date is None:
            days = TREND_PERIOD_DAYS.get(period, TREND_PERIOD_DAYS["month"])
            start_date = format_datetime(self.entries.clock() - timedelta(days=days))
        entries = [
            parse_weight_entry(doc)
            for doc in self.entries.documents("measuredAt", desc=False, since=start_date)
        ]
        by_day: dict[date, list[float]] = {}
        for entry in entries:
            by_day.setdefault(entry.measured_at.date(), []).append(entry.weight.value)
        points = [
            WeightTrendPoint(
                day=datetime.combine(day, time.min, tzinfo=entries[0].measured_at.tzinfo),
                avg_weight=round(sum(values) / len(values), 1),
                min_weight=min(values),
                max_weight=max(values),
                count=len(values),
            )
            for day, values in sorted(by_day.items())
        ]
        return WeightTrends(points=points, statistics=_trend_statistics(points))

    async def get_statistics(
        self, start_date: str | None, end_date: str | None
    ) -> WeightStatistics:
        entries = [
            parse_weight_entry(doc)
            for doc in self.entries.documents(
                "measuredAt", since=start_date, until=end_date
            )
        ]
        if not entries:
            return WeightStatistics(
                total_entries=0, avg_weight=0.0, min_weight=0.0, max_weight=0.0
            )
        weights = [entry.weight.value for entry in entries]
        body_fat = [
            entry.body_fat_percentage
            for entry in entries
            if entry.body_fat_percentage is not None
        ]
        return WeightStatistics(
            total_entries=len(entries),
            avg_weight=round(sum(weights) / len(weights), 1),
            min_weight=min(weights),
            max_weight=max(weights),
            avg_body_fat=round(sum(body_fat) / len(body_fat), 1) if body_fat else None,
        )

    async def get_summary(self) -> WeightSummary:
        entries = [
            parse_weight_entry(doc) for doc in self.entries.documents("measuredAt")
        ]
        if not entries:
            return WeightSummary(latest=None, total_entries=0, change_since_first=None)
        latest, first = entries[0], entries[-1]
        return WeightSummary(
            latest=latest,
            total_entries=len(entries),
            change_since_first=round(
                latest.weight.value - first.weight.to(latest.weight.unit).value, 1
            ),
        )

    async def get_latest(self) -> LatestWeight:
        entries = [
            parse_weight_entry(doc)
            for doc in self.entries.documents("measuredAt", limit=2)
        ]
        if not entries:
            return LatestWeight(entry=None, comparison=None)
        comparison = None
        if len(entries) > 1:
            comparison = WeightComparison(first=entries[1], second=entries[0])
        return LatestWeight(entry=entries[0], comparison=comparison)

    async def compare_entries(self, first_id: str, second_id: str) -> WeightComparison:
        return WeightComparison(
            first=parse_weight_entry(self.entries.get(first_id)),
            second=parse_weight_entry(self.entries.get(second_id)),
        )

    async def bulk_import(self, entries: list[dict[str, object]]) -> BulkImportResult:
        created = [
            parse_weight_entry(doc)
            for doc in self.entries.insert_many(
                [self._with_measured_at(entry) for entry in entries]
            )
        ]
        return BulkImportResult(entries=created, imported=len(created))

    def _with_measured_at(self, payload: dict[str, object]) -> Document:
        return {"measuredAt": format_datetime(self.entries.clock()), **payload}


def _trend_statistics(points: list[WeightTrendPoint]) -> TrendStatistics | None:
    if len(points) < 2:  # noqa: PLR2004
        return None
    first, last = points[0], points[-1]
    span_days = (last.day - first.day).total_seconds() / 86400
    total_change = round(last.avg_weight - first.avg_weight, 1)
    per_week = round(total_change / (span_days / 7), 2) if span_days > 0 else 0.0
    return TrendStatistics(
        total_change=total_change,
        avg_change_per_week=per_week,
        time_span_days=span_days,
        starting_weight=first.avg_weight,
        current_weight=last.avg_weight,
    )


@malformed_documents_as_gateway_errors
@dataclass
class SupabaseNutritionGateway:
    """Meals and per-day nutrition documents.

    Daily records are keyed ``{user_id}_{date}`` and created on first access.
    Their meals are read from the meals table rather than stored on the day.
    """

    meals: DocumentTable
    days: DocumentTable

    async def list(self, filters: MealFilters, page: int, limit: int) -> Page[Meal]:
        docs, total = self.meals.page(filters, page, limit, MEALS_QUERY)
        return Page(
            data=[parse_meal(doc) for doc in docs],
            pagination=Pagination.for_total(page, limit, total),
        )

    async def get(self, meal_id: str) -> Meal:
        return parse_meal(self.meals.get(meal_id))

    async def create(self, payload: dict[str, object]) -> Meal:
        doc = {"mealTime": format_datetime(self.meals.clock()), "foods": [], **payload}
        return parse_meal(self.meals.insert(doc))

    async def update(self, meal_id: str, patch: dict[str, object]) -> Meal:
        return parse_meal(self.meals.update(meal_id, patch))

    async def delete(self, meal_id: str) -> None:
        self.meals.delete(meal_id)

    async def get_daily(self, day: date) -> DailyNutrition:
        return self._daily(day, self._day_document(day))

    async def update_daily_goals(
        self, day: date, goals: NutritionGoals
    ) -> DailyNutrition:
        doc = self._day_document(day)
        doc["goals"] = nutrition_goals_to_document(goals)
        return self._daily(day, self.days.upsert(self._day_id(day), doc))

    async def add_water_intake(
        self, day: date, amount: float, unit: str
    ) -> DailyNutrition:
        if amount <= 0:
            raise GatewayError("Water amount must be positive")
        doc = self._day_document(day)
        water = dict(doc.get("waterIntake") or {})
        water["total"] = float(water.get("total", 0)) + amount
        water["unit"] = unit
        doc["waterIntake"] = water
        return self._daily(day, self.days.upsert(self._day_id(day), doc))

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> NutritionStats:
        meals = [
            parse_meal(doc)
            for doc in self.meals.documents("mealTime", since=start_date, until=end_date)
        ]
        count = len(meals)

        def average(values: list[float]) -> float:
            return round(sum(values) / count, 1) if count else 0.0

        return NutritionStats(
            total_meals=count,
            average_calories=average([meal.total_calories for meal in meals]),
            average_protein=average([meal.total_protein for meal in meals]),
            average_carbs=average([meal.total_carbohydrates for meal in meals]),
            average_fat=average([meal.total_fat for meal in meals]),
            meal_types=sorted({meal.type.value for meal in meals}),
            recent_meals=meals[:RECENT_LIMIT],
        )

    async def get_recommendations(self) -> NutritionRecommendations:
        calories = REFERENCE_CALORIES
        return NutritionRecommendations(
            calories=calories,
            protein=round(REFERENCE_WEIGHT_KG * 1.6),
            carbohydrates=round(calories * 0.5 / 4),
            fat=round(calories * 0.25 / 9),
            fiber=30,
            water=3000,
            bmr=1600,
            tdee=calories,
        )

    async def get_suggestions(
        self, meal_type: MealType | None, max_calories: float | None
    ) -> list[Meal]:
        """Return earlier meals of the type that fit under the calorie cap."""
        equals = {"type": meal_type.value} if meal_type is not None else None
        candidates = [
            parse_meal(doc)
            for doc in self.meals.documents(
                "mealTime", limit=SUGGESTION_POOL, equals=equals
            )
        ]
        if max_calories is not None:
            candidates = [
                meal for meal in candidates if meal.total_calories <= max_calories
            ]
        return candidates[:RECENT_LIMIT]

    def _day_id(self, day: date) -> str:
        return f"{self.days.user_id}_{day.isoformat()}"

    def _day_document(self, day: date) -> Document:
        doc = self.days.find(self._day_id(day))
        if doc is None:
            return {"date": day.isoformat(), "waterIntake": {"total": 0, "unit": "ml"}}
        return doc

    def _daily(self, day: date, doc: Document) -> DailyNutrition:
        start, end = _day_bounds(day)
        meals = self.meals.documents("mealTime", desc=False, since=start, until=end)
        return parse_daily_nutrition({**doc, "meals": meals}, day)


@malformed_documents_as_gateway_errors
@dataclass
class SupabaseWorkoutGateway:
    """Workouts and templates stored as documents."""

    workouts: DocumentTable

    async def list(
        self, filters: WorkoutFilters, page: int, limit: int
    ) -> Page[Workout]:
        docs, total = self.workouts.page(filters, page, limit, WORKOUTS_QUERY)
        return Page(
            data=[parse_workout(doc) for doc in docs],
            pagination=Pagination.for_total(page, limit, total),
        )

    async def get(self, workout_id: str) -> Workout:
        return parse_workout(self.workouts.get(workout_id))

    async def create(self, payload: dict[str, object]) -> Workout:
        doc = {
            "startTime": format_datetime(self.workouts.clock()),
            "completionStatus": CompletionStatus.PLANNED.value,
            "exercises": [],
            **payload,
        }
        doc["exercises"] = [_with_exercise_id(item) for item in doc["exercises"]]
        return parse_workout(self.workouts.insert(doc))

    async def update(self, workout_id: str, patch: dict[str, object]) -> Workout:
        return parse_workout(self.workouts.update(workout_id, patch))

    async def delete(self, workout_id: str) -> None:
        self.workouts.delete(workout_id)

    async def start(self, workout_id: str) -> Workout:
        return parse_workout(
            self.workouts.update(
                workout_id,
                {
                    "completionStatus": CompletionStatus.IN_PROGRESS.value,
                    "startTime": format_datetime(self.workouts.clock()),
                },
            )
        )

    async def complete(self, workout_id: str) -> Workout:
        return parse_workout(
            self.workouts.update(
                workout_id,
                {
                    "completionStatus": CompletionStatus.COMPLETED.value,
                    "endTime": format_datetime(self.workouts.clock()),
                },
            )
        )

    async def add_exercise(
        self, workout_id: str, exercise: dict[str, object]
    ) -> Workout:
        doc = self.workouts.get(workout_id)
        exercises = [*(doc.get("exercises") or []), _with_exercise_id(exercise)]
        return parse_workout(self.workouts.update(workout_id, {"exercises": exercises}))

    async def update_exercise(
        self, workout_id: str, exercise_id: str, patch: dict[str, object]
    ) -> Workout:
        exercises = self._exercises(workout_id, exercise_id)
        exercises = [
            {**item, **patch, "_id": exercise_id}
            if item.get("_id") == exercise_id
            else item
            for item in exercises
        ]
        return parse_workout(self.workouts.update(workout_id, {"exercises": exercises}))

    async def delete_exercise(self, workout_id: str, exercise_id: str) -> Workout:
        exercises = [
            item
            for item in self._exercises(workout_id, exercise_id)
            if item.get("_id") != exercise_id
        ]
        return parse_workout(self.workouts.update(workout_id, {"exercises": exercises}))

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> WorkoutStats:
        workouts = [
            parse_workout(doc)
            for doc in self.workouts.documents(
                "startTime", since=start_date, until=end_date
            )
        ]
        return WorkoutStats(
            total_workouts=len(workouts),
            total_duration=sum(
                workout.duration.actual or workout.duration.planned or 0
                for workout in workouts
            ),
            total_calories=sum(workout.calories_burned or 0 for workout in workouts),
            workout_types=sorted({workout.type for workout in workouts if workout.type}),
            recent_workouts=workouts[:RECENT_LIMIT],
        )

    async def list_templates(self) -> list[Workout]:
        return [
            parse_workout(doc)
            for doc in self.workouts.documents(
                "createdAt", equals={"isTemplate": "true"}
            )
        ]

    async def create_from_template(
        self, template_id: str, name: str | None
    ) -> Workout:
        template = self.workouts.get(template_id)
        if not template.get("isTemplate"):
            raise GatewayError("Workout is not a template")
        doc = {
            key: value
            for key, value in template.items()
            if key not in {"templateName", "endTime"}
        }
        doc.update(
            {
                "name": name or template.get("templateName") or template.get("name", ""),
                "isTemplate": False,
                "completionStatus": CompletionStatus.PLANNED.value,
                "startTime": format_datetime(self.workouts.clock()),
                "exercises": [
                    _with_exercise_id({k: v for k, v in item.items() if k != "_id"})
                    for item in template.get("exercises") or []
                ],
            }
        )
        return parse_workout(self.workouts.insert(doc))

    def _exercises(self, workout_id: str, exercise_id: str) -> list[Document]:
        exercises = list(self.workouts.get(workout_id).get("exercises") or [])
        if not any(item.get("_id") == exercise_id for item in exercises):
            raise GatewayError("Exercise not found")
        return exercises


def _with_exercise_id(exercise: dict[str, object]) -> Document:
    if exercise.get("_id"):
        return dict(exercise)
    return {**exercise, "_id": uuid.uuid4().hex}
