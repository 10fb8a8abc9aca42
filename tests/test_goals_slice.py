"""Tests for the goals slice."""

import asyncio
from dataclasses import dataclass, field, replace

from fitness_sync.domain.common import Page, Pagination
from fitness_sync.domain.goals import Goal, GoalFilters, GoalStatus
from fitness_sync.services import selectors
from fitness_sync.services.goals import GoalsSlice
from tests.conftest import InMemoryGoalGateway, make_goal


def test_create_goal_prepends_and_counts(goals_slice: GoalsSlice) -> None:
    goals_slice.state.items = [make_goal("existing")]
    goals_slice.state.pagination = Pagination.for_total(1, 20, 1)

    created = asyncio.run(
        goals_slice.create_goal(
            {
                "title": "Lose weight",
                "type": "weight-loss",
                "startingValue": 80,
                "targetValue": 70,
                "currentValue": 80,
            }
        )
    )

    assert created is not None
    assert [goal.id for goal in goals_slice.state.goals] == [created.id, "existing"]
    assert goals_slice.state.current_goal == created
    assert goals_slice.state.pagination.total == 2
    progress = selectors.goal_progress(goals_slice.state, created.id)
    assert progress is not None
    assert progress.percent == 0
    assert not progress.is_complete


def test_reach_goal_progress_is_half_way(goals_slice: GoalsSlice) -> None:
    created = asyncio.run(
        goals_slice.create_goal(
            {"title": "Run", "type": "distance", "targetValue": 10, "currentValue": 5}
        )
    )

    progress = selectors.goal_progress(goals_slice.state, created.id)

    assert progress is not None
    assert progress.percent == 50


def test_progress_to_target_completes_decreasing_goal(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal = make_goal(
        "goal-1", type="weight-loss", starting_value=80, target_value=70, current_value=80
    )
    goal_gateway.goals[goal.id] = goal
    goals_slice.state.items = [goal]

    updated = asyncio.run(goals_slice.update_progress("goal-1", {"currentValue": 70}))

    assert updated is not None
    progress = selectors.goal_progress(goals_slice.state, "goal-1")
    assert progress.percent == 100
    assert progress.is_complete
    assert goals_slice.state.goals[0].current_value == 70


def test_fetch_computes_page_count(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    for index in range(45):
        goal_gateway.goals[f"goal-{index}"] = make_goal(f"goal-{index}")

    page = asyncio.run(goals_slice.fetch_goals())

    assert page is not None
    assert len(goals_slice.state.goals) == 20
    assert goals_slice.state.pagination.total == 45
    assert goals_slice.state.pagination.pages == 3


def test_failed_delete_keeps_record_and_stores_message(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal = make_goal("goal-1")
    goal_gateway.goals[goal.id] = goal
    goals_slice.state.items = [goal]
    goals_slice.state.pagination = Pagination.for_total(1, 20, 1)
    goal_gateway.failures["delete"] = "Goal is locked"

    deleted = asyncio.run(goals_slice.delete_goal("goal-1"))

    assert deleted is False
    assert goals_slice.state.goals == [goal]
    assert goals_slice.state.pagination.total == 1
    assert goals_slice.state.status["delete"].error == "Goal is locked"
    assert not goals_slice.state.status["delete"].loading


def test_failure_without_message_uses_default(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal_gateway.failures["list"] = ""

    assert asyncio.run(goals_slice.fetch_goals()) is None
    assert goals_slice.state.status["fetch"].error == "Failed to fetch goals"


def test_failed_fetch_keeps_cached_goals(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    for goal_id in ("goal-1", "goal-2"):
        goal_gateway.goals[goal_id] = make_goal(goal_id)
    asyncio.run(goals_slice.fetch_goals())
    cached = list(goals_slice.state.goals)
    pagination = goals_slice.state.pagination
    goal_gateway.failures["list"] = "Service unavailable"

    assert asyncio.run(goals_slice.fetch_goals()) is None
    assert goals_slice.state.goals == cached
    assert goals_slice.state.pagination == pagination
    assert goals_slice.state.status["fetch"].error == "Service unavailable"


def test_failed_fetch_one_keeps_previous_focus(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal_gateway.goals["goal-1"] = make_goal("goal-1")
    asyncio.run(goals_slice.fetch_goal("goal-1"))

    assert asyncio.run(goals_slice.fetch_goal("missing")) is None
    assert goals_slice.state.current_goal.id == "goal-1"
    assert goals_slice.state.status["fetch"].error == "Goal not found"
    assert goals_slice.state.goals == []


def test_new_attempt_clears_previous_error(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal_gateway.failures["create"] = "Title is required"
    asyncio.run(goals_slice.create_goal({"title": ""}))
    assert goals_slice.state.status["create"].error == "Title is required"

    del goal_gateway.failures["create"]
    created = asyncio.run(goals_slice.create_goal({"title": "Run 5k"}))

    assert created is not None
    assert goals_slice.state.status["create"].error is None


def test_delete_unknown_id_floors_total(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal_gateway.goals["ghost"] = make_goal("ghost")

    assert asyncio.run(goals_slice.delete_goal("ghost"))
    assert goals_slice.state.goals == []
    assert goals_slice.state.pagination.total == 0


def test_create_then_delete_leaves_total_unchanged(goals_slice: GoalsSlice) -> None:
    goals_slice.state.pagination = Pagination.for_total(1, 20, 5)

    created = asyncio.run(goals_slice.create_goal({"title": "Swim"}))
    asyncio.run(goals_slice.delete_goal(created.id))

    assert goals_slice.state.pagination.total == 5
    assert goals_slice.state.current_goal is None


def test_update_keeps_position(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goals = [make_goal("a"), make_goal("b"), make_goal("c")]
    goal_gateway.goals.update({goal.id: goal for goal in goals})
    goals_slice.state.items = list(goals)

    asyncio.run(goals_slice.update_goal("b", {"title": "Renamed"}))

    assert [goal.id for goal in goals_slice.state.goals] == ["a", "b", "c"]
    assert goals_slice.state.goals[1].title == "Renamed"


def test_fetch_drops_duplicate_ids(goals_slice: GoalsSlice) -> None:
    page = Page(
        data=[make_goal("a"), make_goal("a", title="Duplicate"), make_goal("b")],
        pagination=Pagination.for_total(1, 20, 3),
    )

    goals_slice._apply_page(page)

    assert [goal.id for goal in goals_slice.state.goals] == ["a", "b"]
    assert goals_slice.state.goals[0].title == "Run more"


def test_update_filters_resets_page(goals_slice: GoalsSlice) -> None:
    goals_slice.set_pagination(page=3, total=60)

    goals_slice.update_filters(status="active")

    assert goals_slice.state.filters.status == "active"
    assert goals_slice.state.pagination.page == 1
    goals_slice.set_pagination(page=2)
    goals_slice.reset_filters()
    assert goals_slice.state.filters == GoalFilters()
    assert goals_slice.state.pagination.page == 1


def test_update_status_records_completion(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal = make_goal("goal-1")
    goal_gateway.goals[goal.id] = goal
    goals_slice.state.items = [goal]

    asyncio.run(goals_slice.update_status("goal-1", GoalStatus.COMPLETED, "done"))

    assert goals_slice.state.goals[0].status is GoalStatus.COMPLETED
    assert goals_slice.state.goals[0].status_reason == "done"
    assert selectors.completion_rate(goals_slice.state) == 100


def test_sync_goal_replaces_cached_goal(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal = make_goal("goal-1", type="weight-loss", target_value=10)
    goal_gateway.goals[goal.id] = goal
    goal_gateway.sync_values[goal.id] = 4
    goals_slice.state.items = [goal]

    result = asyncio.run(goals_slice.sync_goal("goal-1"))

    assert result.updated_fields == ["currentValue"]
    assert goals_slice.state.goals[0].current_value == 4


def test_analytics_summary_and_insights_are_cached(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal_gateway.goals["goal-1"] = make_goal("goal-1")

    asyncio.run(goals_slice.fetch_analytics())
    asyncio.run(goals_slice.fetch_summary())
    asyncio.run(goals_slice.fetch_insights("goal-1"))

    assert goals_slice.state.analytics == goal_gateway.analytics
    assert goals_slice.state.summary == goal_gateway.summary
    assert goals_slice.state.insights.health_status == "ahead"
    goals_slice.clear_analytics()
    goals_slice.clear_summary()
    goals_slice.clear_insights()
    assert goals_slice.state.analytics is None
    assert goals_slice.state.summary is None
    assert goals_slice.state.insights is None


def test_optimistic_complete_rolls_back_on_failure(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal = make_goal("goal-1")
    goal_gateway.goals[goal.id] = goal
    goals_slice.state.items = [goal]
    goal_gateway.failures["update_status"] = "Server unavailable"

    result = asyncio.run(goals_slice.optimistic_complete("goal-1"))

    assert result is None
    assert goals_slice.state.goals[0] == goal
    assert not goals_slice.is_unconfirmed("goal-1")
    assert goals_slice.state.status["status"].error == "Server unavailable"


def test_optimistic_update_progress_confirms(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    goal = make_goal("goal-1", target_value=10)
    goal_gateway.goals[goal.id] = goal
    goals_slice.state.items = [goal]

    result = asyncio.run(goals_slice.optimistic_update_progress("goal-1", 6))

    assert result is not None
    assert goals_slice.state.goals[0].current_value == 6
    assert not goals_slice.is_unconfirmed("goal-1")


def test_optimistic_change_of_uncached_goal_is_ignored(
    goals_slice: GoalsSlice, goal_gateway: InMemoryGoalGateway
) -> None:
    assert asyncio.run(goals_slice.optimistic_complete("missing")) is None
    assert goal_gateway.calls == []


def test_rollback_restores_first_confirmed_version(goals_slice: GoalsSlice) -> None:
    goal = make_goal("goal-1", current_value=1)
    goals_slice.state.items = [goal]

    goals_slice.apply_optimistic("goal-1", lambda item: replace(item, current_value=2))
    goals_slice.apply_optimistic("goal-1", lambda item: replace(item, current_value=3))
    assert goals_slice.is_unconfirmed("goal-1")
    goals_slice.rollback("goal-1")

    assert goals_slice.state.goals[0].current_value == 1


@dataclass
class GatedGoalGateway(InMemoryGoalGateway):
    """Goal gateway whose list calls wait for the test to resolve them."""

    pending: list[asyncio.Future] = field(default_factory=list)

    async def list(self, filters: GoalFilters, page: int, limit: int) -> Page[Goal]:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


def test_stale_fetch_response_is_not_applied() -> None:
    gateway = GatedGoalGateway()
    goals = GoalsSlice(gateway)
    older = Page(data=[make_goal("old")], pagination=Pagination.for_total(1, 20, 1))
    newer = Page(data=[make_goal("new")], pagination=Pagination.for_total(1, 20, 1))

    async def scenario() -> Page[Goal] | None:
        first = asyncio.create_task(goals.fetch_goals())
        second = asyncio.create_task(goals.fetch_goals())
        await asyncio.sleep(0)
        assert goals.state.status["fetch"].in_flight == 2
        gateway.pending[1].set_result(newer)
        await second
        gateway.pending[0].set_result(older)
        return await first

    result = asyncio.run(scenario())

    assert result == older
    assert [goal.id for goal in goals.state.goals] == ["new"]
    assert not goals.state.status["fetch"].loading


def test_page_limit_is_configurable(goal_gateway: InMemoryGoalGateway) -> None:
    goals = GoalsSlice(goal_gateway, page_limit=5)

    assert goals.state.pagination.limit == 5
