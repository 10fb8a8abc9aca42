"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from fitness_sync.adapters.rest_gateways import (
    RestApiClient,
    RestGoalGateway,
    RestNutritionGateway,
    RestWeightGateway,
    RestWorkoutGateway,
)
from fitness_sync.adapters.supabase_documents import DocumentTable
from fitness_sync.adapters.supabase_gateways import (
    SupabaseGoalGateway,
    SupabaseNutritionGateway,
    SupabaseWeightGateway,
    SupabaseWorkoutGateway,
)
from fitness_sync.config import Settings, parse_persisted_slices
from fitness_sync.services.goals import GoalGateway, GoalsSlice
from fitness_sync.services.nutrition import NutritionGateway, NutritionSlice
from fitness_sync.services.store import JsonFileSnapshotStorage, Store
from fitness_sync.services.weight import WeightGateway, WeightSlice
from fitness_sync.services.workouts import WorkoutGateway, WorkoutsSlice


@dataclass
class Gateways:
    """One gateway per domain plus the hook that releases their resources."""

    goals: GoalGateway
    weight: WeightGateway
    nutrition: NutritionGateway
    workouts: WorkoutGateway
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    goals: GoalsSlice
    weight: WeightSlice
    nutrition: NutritionSlice
    workouts: WorkoutsSlice
    store: Store
    close_resources: Callable[[], Awaitable[None]]


def build_rest_gateways(settings: Settings) -> Gateways:
    api_client = RestApiClient.create(
        base_url=settings.api_base_url,
        token=settings.api_token,
        timeout=settings.api_timeout_seconds,
    )
    return Gateways(
        goals=RestGoalGateway(api_client),
        weight=RestWeightGateway(api_client),
        nutrition=RestNutritionGateway(api_client),
        workouts=RestWorkoutGateway(api_client),
        close_resources=api_client.close,
    )


def build_supabase_gateways(settings: Settings) -> Gateways:
    if not (settings.supabase_url and settings.supabase_key and settings.user_id):
        raise ValueError("supabase backend needs supabase_url, supabase_key and user_id")
    client = create_client(settings.supabase_url, settings.supabase_key)

    def table(name: str, entity: str) -> DocumentTable:
        return DocumentTable(
            client=client, table=name, user_id=settings.user_id, entity=entity
        )

    async def close_resources() -> None:
        return None

    return Gateways(
        goals=SupabaseGoalGateway(
            goals=table("goals", "goal"), weights=table("weight_entries", "weight entry")
        ),
        weight=SupabaseWeightGateway(table("weight_entries", "weight entry")),
        nutrition=SupabaseNutritionGateway(
            meals=table("meals", "meal"),
            days=table("daily_nutrition", "daily nutrition"),
        ),
        workouts=SupabaseWorkoutGateway(table("workouts", "workout")),
        close_resources=close_resources,
    )


def build_gateways(settings: Settings) -> Gateways:
    backend = settings.gateway_backend.strip().lower()
    if backend == "rest":
        return build_rest_gateways(settings)
    if backend == "supabase":
        return build_supabase_gateways(settings)
    raise ValueError(f"Unknown gateway backend: {settings.gateway_backend}")


def build_container(
    settings: Settings | None = None, gateways: Gateways | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    resolved_gateways = gateways or build_gateways(resolved_settings)
    goals = GoalsSlice(
        resolved_gateways.goals, page_limit=resolved_settings.goals_page_limit
    )
    weight = WeightSlice(
        resolved_gateways.weight, page_limit=resolved_settings.weight_page_limit
    )
    nutrition = NutritionSlice(
        resolved_gateways.nutrition,
        page_limit=resolved_settings.nutrition_page_limit,
    )
    workouts = WorkoutsSlice(
        resolved_gateways.workouts,
        page_limit=resolved_settings.workouts_page_limit,
    )
    store = Store.build(
        [goals, weight, nutrition, workouts],
        persisted=parse_persisted_slices(resolved_settings.persisted_slices),
        storage=JsonFileSnapshotStorage(resolved_settings.snapshot_dir),
        close_resources=resolved_gateways.close_resources,
    )

    async def close_resources() -> None:
        await store.close()

    return AppContainer(
        settings=resolved_settings,
        goals=goals,
        weight=weight,
        nutrition=nutrition,
        workouts=workouts,
        store=store,
        close_resources=close_resources,
    )
