"""Tests for store assembly and snapshot persistence."""

import asyncio
import json

import pytest

from fitness_sync.domain.common import SortOrder
from fitness_sync.services.goals import GoalsSlice
from fitness_sync.services.store import JsonFileSnapshotStorage, Store
from fitness_sync.services.weight import WeightSlice
from tests.conftest import InMemoryGoalGateway, InMemoryWeightGateway, make_goal


def _slices() -> tuple[GoalsSlice, WeightSlice]:
    return GoalsSlice(InMemoryGoalGateway()), WeightSlice(InMemoryWeightGateway())


def test_only_allowlisted_slices_are_persisted(tmp_path) -> None:  # type: ignore[no-untyped-def]
    goals, weight = _slices()
    storage = JsonFileSnapshotStorage(tmp_path)
    store = Store.build([goals, weight], persisted=["goals"], storage=storage)
    store.open()
    goals.update_filters(status="active", sort_order=SortOrder.ASC)
    goals.state.items = [make_goal("cached")]
    weight.update_filters(search="morning")

    asyncio.run(store.close())

    saved = json.loads((tmp_path / "goals.json").read_text(encoding="utf-8"))
    assert saved["filters"]["status"] == "active"
    assert "items" not in saved
    assert not (tmp_path / "weight.json").exists()
    assert not store.is_open


def test_open_restores_filters_and_pagination(tmp_path) -> None:  # type: ignore[no-untyped-def]
    goals, weight = _slices()
    first = Store.build(
        [goals, weight], persisted=["goals"], storage=JsonFileSnapshotStorage(tmp_path)
    )
    goals.update_filters(type="strength", sort_order=SortOrder.ASC)
    goals.set_pagination(page=2, total=50)
    first.persist()

    restored_goals, restored_weight = _slices()
    second = Store.build(
        [restored_goals, restored_weight],
        persisted=["goals"],
        storage=JsonFileSnapshotStorage(tmp_path),
    )

    assert second.open() == ["goals"]
    assert second.is_open
    assert restored_goals.state.filters.type == "strength"
    assert restored_goals.state.filters.sort_order is SortOrder.ASC
    assert restored_goals.state.pagination.page == 2
    assert restored_goals.state.pagination.pages == 3
    assert restored_goals.state.goals == []


def test_unreadable_snapshot_is_ignored(tmp_path) -> None:  # type: ignore[no-untyped-def]
    (tmp_path / "goals.json").write_text("{not json", encoding="utf-8")
    goals, weight = _slices()
    store = Store.build(
        [goals, weight], persisted=["goals"], storage=JsonFileSnapshotStorage(tmp_path)
    )

    assert store.open() == []
    assert goals.state.filters.status is None


def test_unknown_allowlist_name_is_rejected() -> None:
    goals, weight = _slices()

    with pytest.raises(ValueError, match="Unknown slices"):
        Store.build([goals, weight], persisted=["sleep"])


def test_duplicate_slice_names_are_rejected() -> None:
    goals, _ = _slices()

    with pytest.raises(ValueError, match="Duplicate slice name"):
        Store.build([goals, GoalsSlice(InMemoryGoalGateway())])


def test_close_releases_resources(tmp_path) -> None:  # type: ignore[no-untyped-def]
    closed: list[bool] = []

    async def close_resources() -> None:
        closed.append(True)

    goals, weight = _slices()
    store = Store.build([goals, weight], close_resources=close_resources)

    asyncio.run(store.close())

    assert closed == [True]
    assert "goals" in store
    assert store["weight"] is weight
