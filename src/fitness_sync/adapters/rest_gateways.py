"""REST API gateways implemented with httpx."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from fitness_sync.adapters.documents import (
    filters_to_params,
    malformed_documents_as_gateway_errors,
    nutrition_goals_to_document,
    parse_daily_nutrition,
    parse_goal,
    parse_goal_analytics,
    parse_goal_insights,
    parse_goal_summary,
    parse_meal,
    parse_nutrition_stats,
    parse_page,
    parse_recommendations,
    parse_weight_comparison,
    parse_weight_entry,
    parse_weight_statistics,
    parse_weight_summary,
    parse_weight_trends,
    parse_workout,
    parse_workout_stats,
)
from fitness_sync.adapters.rest_models import RestEnvelope, RestErrorBody
from fitness_sync.domain.common import GatewayError, Page
from fitness_sync.domain.goals import (
    Goal,
    GoalAnalytics,
    GoalFilters,
    GoalInsights,
    GoalStatus,
    GoalSummary,
    GoalSyncResult,
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
    WeightComparison,
    WeightEntry,
    WeightFilters,
    WeightStatistics,
    WeightSummary,
    WeightTrends,
)
from fitness_sync.domain.workouts import Workout, WorkoutFilters, WorkoutStats

_logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


@dataclass
class RestApiClient:
    """Authenticated JSON client for the fitness API."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, base_url: str, token: str | None, timeout: float
    ) -> "RestApiClient":
        """Create a client with a managed httpx session."""
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return cls(
            http_client=httpx.AsyncClient(
                base_url=base_url, headers=headers, timeout=timeout
            )
        )

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: object | None = None,
    ) -> RestEnvelope:
        """Send a request and return the parsed envelope, raising GatewayError on failure."""
        try:
            response = await self.http_client.request(
                method, path, params=params, json=json
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            _logger.warning(
                "%s %s returned %s: %s",
                method,
                path,
                exc.response.status_code,
                message,
            )
            raise GatewayError(message) from exc
        except httpx.TransportError as exc:
            _logger.warning("%s %s failed: %s", method, path, exc)
            raise GatewayError(str(exc)) from exc
        if not response.content:
            return RestEnvelope()
        try:
            envelope = RestEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise GatewayError("Malformed response from server") from exc
        if not envelope.success:
            raise GatewayError(envelope.message or "")
        return envelope

    async def data(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: object | None = None,
    ) -> Any:
        """Return only the ``data`` member of the envelope."""
        envelope = await self.request(method, path, params=params, json=json)
        return envelope.data

    async def page(
        self,
        path: str,
        filters: object,
        page: int,
        limit: int,
        parse: Callable[[dict[str, Any]], RecordT],
    ) -> Page[RecordT]:
        """Fetch one page of a list endpoint."""
        params = filters_to_params(filters)
        params.update({"page": str(page), "limit": str(limit)})
        envelope = await self.request("GET", path, params=params)
        raw_pagination = (
            envelope.pagination.model_dump() if envelope.pagination else None
        )
        return parse_page(envelope.data or [], raw_pagination, page, limit, parse)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        return RestErrorBody.model_validate(response.json()).message or ""
    except (ValueError, ValidationError):
        return ""


def _drop_none(params: dict[str, object | None]) -> dict[str, str]:
    return {key: str(value) for key, value in params.items() if value is not None}


@malformed_documents_as_gateway_errors
@dataclass
class RestGoalGateway:
    """Goals over ``/goals``."""

    client: RestApiClient

    async def list(self, filters: GoalFilters, page: int, limit: int) -> Page[Goal]:
        return await self.client.page("/goals", filters, page, limit, parse_goal)

    async def get(self, goal_id: str) -> Goal:
        return parse_goal(await self.client.data("GET", f"/goals/{goal_id}"))

    async def create(self, payload: dict[str, object]) -> Goal:
        return parse_goal(await self.client.data("POST", "/goals", json=payload))

    async def update(self, goal_id: str, patch: dict[str, object]) -> Goal:
        return parse_goal(
            await self.client.data("PUT", f"/goals/{goal_id}", json=patch)
        )

    async def delete(self, goal_id: str) -> None:
        await self.client.request("DELETE", f"/goals/{goal_id}")

    async def update_progress(
        self, goal_id: str, progress: dict[str, object]
    ) -> Goal:
        return parse_goal(
            await self.client.data(
                "PATCH", f"/goals/{goal_id}/progress", json=progress
            )
        )

    async def update_status(
        self, goal_id: str, status: GoalStatus, reason: str | None
    ) -> Goal:
        payload: dict[str, object] = {"status": status.value}
        if reason is not None:
            payload["reason"] = reason
        return parse_goal(
            await self.client.data("PATCH", f"/goals/{goal_id}/status", json=payload)
        )

    async def sync(self, goal_id: str) -> GoalSyncResult:
        data = await self.client.data("POST", f"/goals/{goal_id}/sync")
        return GoalSyncResult(
            goal=parse_goal(data["goal"]),
            updated_fields=[str(name) for name in data.get("updatedFields", [])],
        )

    async def get_analytics(self) -> GoalAnalytics:
        return parse_goal_analytics(
            await self.client.data("GET", "/goals/analytics/overview") or {}
        )

    async def get_summary(self) -> GoalSummary:
        return parse_goal_summary(
            await self.client.data("GET", "/goals/dashboard/summary") or {}
        )

    async def get_insights(self, goal_id: str) -> GoalInsights:
        data = await self.client.data("GET", f"/goals/{goal_id}/insights") or {}
        return parse_goal_insights({"goalId": goal_id, **data})


@malformed_documents_as_gateway_errors
@dataclass
class RestWeightGateway:
    """Weight entries over ``/weight``."""

    client: RestApiClient

    async def list(
        self, filters: WeightFilters, page: int, limit: int
    ) -> Page[WeightEntry]:
        return await self.client.page("/weight", filters, page, limit, parse_weight_entry)

    async def get(self, entry_id: str) -> WeightEntry:
        return parse_weight_entry(await self.client.data("GET", f"/weight/{entry_id}"))

    async def create(self, payload: dict[str, object]) -> WeightEntry:
        return parse_weight_entry(
            await self.client.data("POST", "/weight", json=payload)
        )

    async def update(self, entry_id: str, patch: dict[str, object]) -> WeightEntry:
        return parse_weight_entry(
            await self.client.data("PUT", f"/weight/{entry_id}", json=patch)
        )

    async def delete(self, entry_id: str) -> None:
        await self.client.request("DELETE", f"/weight/{entry_id}")

    async def get_trends(self, period: str, start_date: str | None) -> WeightTrends:
        params = _drop_none({"period": period, "startDate": start_date})
        return parse_weight_trends(
            await self.client.data("GET", "/weight/analytics/trends", params=params)
            or []
        )

    async def get_statistics(
        self, start_date: str | None, end_date: str | None
    ) -> WeightStatistics:
        params = _drop_none({"startDate": start_date, "endDate": end_date})
        return parse_weight_statistics(
            await self.client.data("GET", "/weight/analytics/stats", params=params)
            or {}
        )

    async def get_summary(self) -> WeightSummary:
        return parse_weight_summary(
            await self.client.data("GET", "/weight/dashboard/summary") or {}
        )

    async def get_latest(self) -> LatestWeight:
        data = await self.client.data("GET", "/weight/entry/latest") or {}
        entry = data.get("entry")
        return LatestWeight(
            entry=parse_weight_entry(entry) if entry else None,
            comparison=parse_weight_comparison(data.get("comparison")),
        )

    async def compare_entries(self, first_id: str, second_id: str) -> WeightComparison:
        data = await self.client.data("GET", f"/weight/compare/{first_id}/{second_id}")
        comparison = parse_weight_comparison(data)
        if comparison is None:
            raise GatewayError("Malformed comparison response")
        return comparison

    async def bulk_import(self, entries: list[dict[str, object]]) -> BulkImportResult:
        data = await self.client.data(
            "POST", "/weight/bulk-import", json={"entries": entries}
        )
        created = [parse_weight_entry(item) for item in data.get("entries", [])]
        return BulkImportResult(
            entries=created, imported=int(data.get("imported", len(created)))
        )


@malformed_documents_as_gateway_errors
@dataclass
class RestNutritionGateway:
    """Meals and daily nutrition over ``/nutrition``."""

    client: RestApiClient

    async def list(self, filters: MealFilters, page: int, limit: int) -> Page[Meal]:
        return await self.client.page("/nutrition/meals", filters, page, limit, parse_meal)

    async def get(self, meal_id: str) -> Meal:
        return parse_meal(await self.client.data("GET", f"/nutrition/meals/{meal_id}"))

    async def create(self, payload: dict[str, object]) -> Meal:
        return parse_meal(
            await self.client.data("POST", "/nutrition/meals", json=payload)
        )

    async def update(self, meal_id: str, patch: dict[str, object]) -> Meal:
        return parse_meal(
            await self.client.data("PUT", f"/nutrition/meals/{meal_id}", json=patch)
        )

    async def delete(self, meal_id: str) -> None:
        await self.client.request("DELETE", f"/nutrition/meals/{meal_id}")

    async def get_daily(self, day: date) -> DailyNutrition:
        data = await self.client.data("GET", f"/nutrition/daily/{day.isoformat()}")
        return parse_daily_nutrition(data or {}, day)

    async def update_daily_goals(
        self, day: date, goals: NutritionGoals
    ) -> DailyNutrition:
        data = await self.client.data(
            "PUT",
            f"/nutrition/daily/{day.isoformat()}/goals",
            json={"goals": nutrition_goals_to_document(goals)},
        )
        return parse_daily_nutrition(data or {}, day)

    async def add_water_intake(
        self, day: date, amount: float, unit: str
    ) -> DailyNutrition:
        data = await self.client.data(
            "POST",
            f"/nutrition/daily/{day.isoformat()}/water",
            json={"amount": amount, "unit": unit},
        )
        return parse_daily_nutrition(data or {}, day)

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> NutritionStats:
        params = _drop_none({"startDate": start_date, "endDate": end_date})
        return parse_nutrition_stats(
            await self.client.data("GET", "/nutrition/stats/summary", params=params)
            or {}
        )

    async def get_recommendations(self) -> NutritionRecommendations:
        return parse_recommendations(
            await self.client.data("GET", "/nutrition/goals/recommendations") or {}
        )

    async def get_suggestions(
        self, meal_type: MealType | None, max_calories: float | None
    ) -> list[Meal]:
        params = _drop_none(
            {
                "mealType": meal_type.value if meal_type else None,
                "calories": max_calories,
            }
        )
        data = await self.client.data("GET", "/nutrition/suggestions", params=params)
        return [parse_meal(item) for item in data or []]


@malformed_documents_as_gateway_errors
@dataclass
class RestWorkoutGateway:
    """Workouts over ``/workouts``."""

    client: RestApiClient

    async def list(
        self, filters: WorkoutFilters, page: int, limit: int
    ) -> Page[Workout]:
        return await self.client.page("/workouts", filters, page, limit, parse_workout)

    async def get(self, workout_id: str) -> Workout:
        return parse_workout(await self.client.data("GET", f"/workouts/{workout_id}"))

    async def create(self, payload: dict[str, object]) -> Workout:
        return parse_workout(await self.client.data("POST", "/workouts", json=payload))

    async def update(self, workout_id: str, patch: dict[str, object]) -> Workout:
        return parse_workout(
            await self.client.data("PUT", f"/workouts/{workout_id}", json=patch)
        )

    async def delete(self, workout_id: str) -> None:
        await self.client.request("DELETE", f"/workouts/{workout_id}")

    async def start(self, workout_id: str) -> Workout:
        return parse_workout(
            await self.client.data("PATCH", f"/workouts/{workout_id}/start")
        )

    async def complete(self, workout_id: str) -> Workout:
        return parse_workout(
            await self.client.data("PATCH", f"/workouts/{workout_id}/complete")
        )

    async def add_exercise(
        self, workout_id: str, exercise: dict[str, object]
    ) -> Workout:
        return parse_workout(
            await self.client.data(
                "POST", f"/workouts/{workout_id}/exercises", json=exercise
            )
        )

    async def update_exercise(
        self, workout_id: str, exercise_id: str, patch: dict[str, object]
    ) -> Workout:
        return parse_workout(
            await self.client.data(
                "PUT", f"/workouts/{workout_id}/exercises/{exercise_id}", json=patch
            )
        )

    async def delete_exercise(self, workout_id: str, exercise_id: str) -> Workout:
        return parse_workout(
            await self.client.data(
                "DELETE", f"/workouts/{workout_id}/exercises/{exercise_id}"
            )
        )

    async def get_stats(
        self, start_date: str | None, end_date: str | None
    ) -> WorkoutStats:
        params = _drop_none({"startDate": start_date, "endDate": end_date})
        return parse_workout_stats(
            await self.client.data("GET", "/workouts/stats/summary", params=params)
            or {}
        )

    async def list_templates(self) -> list[Workout]:
        data = await self.client.data("GET", "/workouts/templates/list")
        return [parse_workout(item) for item in data or []]

    async def create_from_template(
        self, template_id: str, name: str | None
    ) -> Workout:
        payload = {"name": name} if name else {}
        return parse_workout(
            await self.client.data(
                "POST", f"/workouts/templates/{template_id}/create", json=payload
            )
        )
