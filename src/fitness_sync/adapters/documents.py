"""Conversion between camelCase backend documents and domain records."""

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any, TypeVar

from fitness_sync.domain.common import GatewayError, Page, Pagination
from fitness_sync.domain.goals import (
    Goal,
    GoalAnalytics,
    GoalInsights,
    GoalPriority,
    GoalStatus,
    GoalSummary,
    ProgressDirection,
    ProgressEntry,
)
from fitness_sync.domain.nutrition import (
    DailyNutrition,
    FoodItem,
    Meal,
    MealType,
    NutritionGoals,
    NutritionRecommendations,
    NutritionStats,
    Quantity,
    WaterIntake,
)
from fitness_sync.domain.weight import (
    TrendStatistics,
    WeightComparison,
    WeightEntry,
    WeightStatistics,
    WeightSummary,
    WeightTrendPoint,
    WeightTrends,
    WeightUnit,
    WeightValue,
)
from fitness_sync.domain.workouts import (
    CompletionStatus,
    Exercise,
    ExerciseSet,
    Workout,
    WorkoutDuration,
    WorkoutStats,
)

_logger = logging.getLogger(__name__)

Document = dict[str, Any]
EnumT = TypeVar("EnumT", bound=StrEnum)
RecordT = TypeVar("RecordT")
GatewayT = TypeVar("GatewayT", bound=type)

MALFORMED_ERRORS = (ValueError, TypeError, AttributeError, KeyError)

EPOCH = datetime.min.replace(tzinfo=UTC)


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO timestamp, treating naive values as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(value: object) -> date | None:
    if isinstance(value, str) and len(value) == 10:  # noqa: PLR2004
        return date.fromisoformat(value)
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def format_datetime(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def document_id(doc: Document) -> str:
    return str(doc.get("_id") or doc.get("id") or "")


def _float(value: object, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


def _optional_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _enum(enum_cls: type[EnumT], value: object, default: EnumT) -> EnumT:
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        _logger.warning("Unknown %s value %r", enum_cls.__name__, value)
        return default


def _optional_enum(enum_cls: type[EnumT], value: object) -> EnumT | None:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        _logger.warning("Unknown %s value %r", enum_cls.__name__, value)
        return None


def malformed_documents_as_gateway_errors(cls: GatewayT) -> GatewayT:
    """Make every public coroutine of a gateway report unreadable documents as GatewayError.

    Parsers raise plain ``ValueError``/``TypeError``/``AttributeError``/``KeyError``
    on documents they cannot read; slices only handle ``GatewayError``.
    """
    for name, member in list(vars(cls).items()):
        if name.startswith("_") or not inspect.iscoroutinefunction(member):
            continue
        setattr(cls, name, _reading_documents(member))
    return cls


def _reading_documents(
    method: Callable[..., Awaitable[Any]],
) -> Callable[..., Awaitable[Any]]:
    @functools.wraps(method)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await method(*args, **kwargs)
        except MALFORMED_ERRORS as exc:
            _logger.warning("Malformed response in %s: %s", method.__qualname__, exc)
            raise GatewayError("Malformed response from server") from exc

    return wrapper


def _stamp(doc: Document, key: str) -> datetime:
    return parse_datetime(doc.get(key)) or EPOCH


def _strings(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _nested(doc: Document, key: str) -> Document:
    value = doc.get(key)
    return value if isinstance(value, dict) else {}


# Pagination


def parse_pagination(raw: object, page: int, limit: int, count: int) -> Pagination:
    """Read pagination metadata, deriving it from the item count when absent."""
    if not isinstance(raw, dict):
        return Pagination.for_total(page, limit, count)
    return Pagination.for_total(
        int(raw.get("page") or page),
        int(raw.get("limit") or limit),
        int(raw.get("total", count)),
    )


def parse_page(
    data: list[Document],
    raw_pagination: object,
    page: int,
    limit: int,
    parse: Callable[[Document], RecordT],
) -> Page[RecordT]:
    records = [parse(item) for item in data]
    return Page(
        data=records,
        pagination=parse_pagination(raw_pagination, page, limit, len(records)),
    )


def filters_to_params(filters: Any) -> dict[str, str]:
    """Turn a filters dataclass into camelCase query parameters, dropping unset ones."""
    params: dict[str, str] = {}
    for key, value in asdict(filters).items():
        if value is None or value == "":
            continue
        params[camel_case(key)] = str(value)
    return params


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# Goals


def parse_goal(doc: Document) -> Goal:
    progress_docs = doc.get("progress") or doc.get("progressUpdates") or []
    return Goal(
        id=document_id(doc),
        title=str(doc.get("title", "")),
        status=_enum(GoalStatus, doc.get("status"), GoalStatus.ACTIVE),
        priority=_enum(GoalPriority, doc.get("priority"), GoalPriority.MEDIUM),
        created_at=_stamp(doc, "createdAt"),
        updated_at=_stamp(doc, "updatedAt"),
        description=doc.get("description"),
        category=doc.get("category"),
        type=doc.get("type"),
        target_value=_optional_float(doc.get("targetValue")),
        current_value=_float(doc.get("currentValue")),
        starting_value=_optional_float(doc.get("startingValue")),
        unit=doc.get("unit"),
        start_date=parse_datetime(doc.get("startDate")),
        target_date=parse_datetime(doc.get("targetDate")),
        last_progress_update=parse_datetime(doc.get("lastProgressUpdate")),
        completed_at=parse_datetime(doc.get("completedAt") or doc.get("completedDate")),
        status_reason=doc.get("statusReason"),
        direction=_optional_enum(ProgressDirection, doc.get("direction")),
        progress=[
            ProgressEntry(
                value=_float(item.get("value")),
                date=_stamp(item, "date"),
                notes=item.get("notes"),
            )
            for item in progress_docs
            if isinstance(item, dict)
        ],
    )


def parse_goal_summary(doc: Document) -> GoalSummary:
    return GoalSummary(
        total=int(doc.get("total", 0)),
        active=int(doc.get("active", 0)),
        completed=int(doc.get("completed", 0)),
        overdue=int(doc.get("overdue", 0)),
        completion_rate=_float(doc.get("completionRate")),
    )


def parse_goal_analytics(doc: Document) -> GoalAnalytics:
    return GoalAnalytics(
        by_status={str(k): int(v) for k, v in _nested(doc, "byStatus").items()},
        by_type={str(k): int(v) for k, v in _nested(doc, "byType").items()},
        by_category={str(k): int(v) for k, v in _nested(doc, "byCategory").items()},
        average_progress=_float(doc.get("averageProgress")),
    )


def parse_goal_insights(doc: Document) -> GoalInsights:
    return GoalInsights(
        goal_id=str(doc.get("goalId", "")),
        progress_percent=_float(doc.get("progressPercentage")),
        time_progress_percent=_float(doc.get("timeProgress")),
        days_remaining=(
            int(doc["daysRemaining"]) if doc.get("daysRemaining") is not None else None
        ),
        health_status=str(doc.get("healthStatus", "on-track")),
    )


# Weight


def _weight_value(raw: object) -> WeightValue | None:
    if not isinstance(raw, dict) or raw.get("value") is None:
        return None
    return WeightValue(
        value=_float(raw.get("value")),
        unit=_enum(WeightUnit, raw.get("unit"), WeightUnit.KG),
    )


def parse_weight_entry(doc: Document) -> WeightEntry:
    body_fat = _nested(doc, "bodyFat")
    return WeightEntry(
        id=document_id(doc),
        weight=_weight_value(doc.get("weight")) or WeightValue(value=0.0),
        measured_at=_stamp(doc, "measuredAt"),
        created_at=_stamp(doc, "createdAt"),
        updated_at=_stamp(doc, "updatedAt"),
        body_fat_percentage=_optional_float(
            body_fat.get("percentage", doc.get("bodyFatPercentage"))
        ),
        muscle_mass=_weight_value(doc.get("muscleMass")),
        water_percentage=_optional_float(doc.get("waterPercentage")),
        time_of_day=doc.get("timeOfDay"),
        notes=doc.get("notes"),
    )


def parse_weight_trends(doc: Document | list[Document]) -> WeightTrends:
    """Read trends from either a bare list of points or a trends document."""
    if isinstance(doc, list):
        doc = {"trends": doc}
    points = [
        WeightTrendPoint(
            day=_stamp(item, "date"),
            avg_weight=_float(item.get("avgWeight")),
            min_weight=_float(item.get("minWeight", item.get("avgWeight"))),
            max_weight=_float(item.get("maxWeight", item.get("avgWeight"))),
            count=int(item.get("count", 1)),
        )
        for item in doc.get("trends") or []
    ]
    raw_statistics = doc.get("statistics")
    statistics = None
    if isinstance(raw_statistics, dict):
        statistics = TrendStatistics(
            total_change=_float(raw_statistics.get("totalChange")),
            avg_change_per_week=_float(raw_statistics.get("avgChangePerWeek")),
            time_span_days=_float(raw_statistics.get("timeSpanDays")),
            starting_weight=_float(raw_statistics.get("startingWeight")),
            current_weight=_float(raw_statistics.get("currentWeight")),
        )
    return WeightTrends(points=points, statistics=statistics)


def parse_weight_statistics(doc: Document) -> WeightStatistics:
    return WeightStatistics(
        total_entries=int(doc.get("totalEntries", 0)),
        avg_weight=_float(doc.get("avgWeight")),
        min_weight=_float(doc.get("minWeight")),
        max_weight=_float(doc.get("maxWeight")),
        avg_body_fat=_optional_float(doc.get("avgBodyFat")),
    )


def parse_weight_summary(doc: Document) -> WeightSummary:
    latest = doc.get("latest") or doc.get("latestEntry")
    return WeightSummary(
        latest=parse_weight_entry(latest) if isinstance(latest, dict) else None,
        total_entries=int(doc.get("totalEntries", 0)),
        change_since_first=_optional_float(doc.get("changeSinceFirst")),
    )


def parse_weight_comparison(doc: object) -> WeightComparison | None:
    if not isinstance(doc, dict):
        return None
    first = doc.get("first") or doc.get("entry1")
    second = doc.get("second") or doc.get("entry2")
    if not isinstance(first, dict) or not isinstance(second, dict):
        return None
    return WeightComparison(
        first=parse_weight_entry(first), second=parse_weight_entry(second)
    )


# Nutrition


def parse_food_item(doc: Document) -> FoodItem:
    quantity = _nested(doc, "quantity")
    calories = doc.get("calories")
    macros = _nested(doc, "macronutrients")
    micros = _nested(doc, "micronutrients")
    return FoodItem(
        name=str(doc.get("name", "")),
        quantity=Quantity(
            value=_float(quantity.get("value")), unit=str(quantity.get("unit", "g"))
        ),
        calories=_float(calories.get("total") if isinstance(calories, dict) else calories),
        protein=_float(macros.get("protein", doc.get("protein"))),
        carbohydrates=_float(macros.get("carbohydrates", doc.get("carbohydrates"))),
        fat=_float(_nested_total(macros.get("fat", doc.get("fat")))),
        fiber=_float(macros.get("fiber", doc.get("fiber"))),
        sugar=_float(macros.get("sugar", doc.get("sugar"))),
        sodium=_float(micros.get("sodium", doc.get("sodium"))),
        brand=doc.get("brand"),
        category=doc.get("category"),
    )


def _nested_total(value: object) -> object:
    if isinstance(value, dict):
        return value.get("total")
    return value


def _water(raw: object) -> WaterIntake | None:
    if not isinstance(raw, dict):
        return None
    return WaterIntake(
        total=_float(raw.get("total", raw.get("value"))),
        unit=str(raw.get("unit", "ml")),
        goal=_optional_float(raw.get("goal")),
    )


def parse_meal(doc: Document) -> Meal:
    return Meal(
        id=document_id(doc),
        type=_enum(MealType, doc.get("type"), MealType.OTHER),
        meal_time=_stamp(doc, "mealTime"),
        created_at=_stamp(doc, "createdAt"),
        updated_at=_stamp(doc, "updatedAt"),
        name=doc.get("name"),
        foods=[parse_food_item(item) for item in doc.get("foods") or []],
        water_intake=_water(doc.get("waterIntake")),
        tags=_strings(doc.get("tags")),
        notes=doc.get("notes"),
    )


def parse_nutrition_goals(doc: object) -> NutritionGoals:
    if not isinstance(doc, dict):
        return NutritionGoals()
    return NutritionGoals(
        calories=_optional_float(doc.get("calories")),
        protein=_optional_float(doc.get("protein")),
        carbohydrates=_optional_float(doc.get("carbohydrates")),
        fat=_optional_float(doc.get("fat")),
        fiber=_optional_float(doc.get("fiber")),
    )


def nutrition_goals_to_document(goals: NutritionGoals) -> Document:
    return {key: value for key, value in asdict(goals).items() if value is not None}


def parse_daily_nutrition(doc: Document, day: date | None = None) -> DailyNutrition:
    resolved_day = parse_date(doc.get("date")) or day
    if resolved_day is None:
        raise ValueError("Daily nutrition document has no date")
    return DailyNutrition(
        day=resolved_day,
        meals=[parse_meal(item) for item in doc.get("meals") or [] if isinstance(item, dict)],
        water_intake=_water(doc.get("waterIntake")) or WaterIntake(total=0),
        goals=parse_nutrition_goals(doc.get("goals")),
        id=document_id(doc) or None,
        notes=doc.get("notes"),
        updated_at=parse_datetime(doc.get("updatedAt")),
    )


def parse_nutrition_stats(doc: Document) -> NutritionStats:
    return NutritionStats(
        total_meals=int(doc.get("totalMeals", 0)),
        average_calories=_float(doc.get("averageCalories")),
        average_protein=_float(doc.get("averageProtein")),
        average_carbs=_float(doc.get("averageCarbs")),
        average_fat=_float(doc.get("averageFat")),
        meal_types=_strings(doc.get("mealTypes")),
        recent_meals=[parse_meal(item) for item in doc.get("recentMeals") or []],
    )


def parse_recommendations(doc: Document) -> NutritionRecommendations:
    return NutritionRecommendations(
        calories=_float(doc.get("calories")),
        protein=_float(doc.get("protein")),
        carbohydrates=_float(doc.get("carbohydrates")),
        fat=_float(doc.get("fat")),
        fiber=_float(doc.get("fiber")),
        water=_float(doc.get("water")),
        bmr=_optional_float(doc.get("bmr")),
        tdee=_optional_float(doc.get("tdee")),
    )


# Workouts


def _parse_set(doc: Document, index: int) -> ExerciseSet:
    weight = doc.get("weight")
    duration = doc.get("duration")
    return ExerciseSet(
        set_number=int(doc.get("setNumber") or index + 1),
        reps=int(doc["reps"]) if doc.get("reps") is not None else None,
        weight_value=_optional_float(weight.get("value") if isinstance(weight, dict) else weight),
        weight_unit=weight.get("unit") if isinstance(weight, dict) else None,
        duration_seconds=_optional_float(
            duration.get("value") if isinstance(duration, dict) else duration
        ),
        completed=bool(doc.get("completed", False)),
    )


def parse_exercise(doc: Document) -> Exercise:
    return Exercise(
        name=str(doc.get("name", "")),
        id=document_id(doc) or None,
        category=doc.get("category"),
        muscle_groups=_strings(doc.get("muscleGroups")),
        sets=[_parse_set(item, index) for index, item in enumerate(doc.get("sets") or [])],
        notes=doc.get("notes"),
    )


def parse_workout(doc: Document) -> Workout:
    duration = _nested(doc, "duration")
    return Workout(
        id=document_id(doc),
        name=str(doc.get("name", "")),
        start_time=_stamp(doc, "startTime"),
        completion_status=_enum(
            CompletionStatus, doc.get("completionStatus"), CompletionStatus.PLANNED
        ),
        created_at=_stamp(doc, "createdAt"),
        updated_at=_stamp(doc, "updatedAt"),
        description=doc.get("description"),
        type=doc.get("type"),
        intensity=doc.get("intensity"),
        duration=WorkoutDuration(
            planned=_optional_float(duration.get("planned")),
            actual=_optional_float(duration.get("actual")),
        ),
        exercises=[parse_exercise(item) for item in doc.get("exercises") or []],
        end_time=parse_datetime(doc.get("endTime")),
        calories_burned=_optional_float(doc.get("caloriesBurned")),
        tags=_strings(doc.get("tags")),
        is_template=bool(doc.get("isTemplate", False)),
        template_name=doc.get("templateName"),
        notes=doc.get("notes"),
    )


def parse_workout_stats(doc: Document) -> WorkoutStats:
    return WorkoutStats(
        total_workouts=int(doc.get("totalWorkouts", 0)),
        total_duration=_float(doc.get("totalDuration")),
        total_calories=_float(doc.get("totalCalories")),
        workout_types=_strings(doc.get("workoutTypes")),
        recent_workouts=[parse_workout(item) for item in doc.get("recentWorkouts") or []],
    )
