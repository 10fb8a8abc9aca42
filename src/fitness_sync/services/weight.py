"""Weight slice: cached weigh-ins plus trend and summary caches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from fitness_sync.domain.common import Page
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
from fitness_sync.services.slice import (
    BASE_OPERATION_KINDS,
    CURRENT_KEY,
    CollectionSlice,
    CollectionState,
)


class WeightGateway(Protocol):
    """Remote operations on the current user's weight entries."""

    async def list(
        self, filters: WeightFilters, page: int, limit: int
    ) -> Page[WeightEntry]:
        """Return a page of entries matching the filters."""

    async def get(self, entry_id: str) -> WeightEntry:
        """Return a single entry."""

    async def create(self, payload: dict[str, object]) -> WeightEntry:
        """Create an entry."""

    async def update(self, entry_id: str, patch: dict[str, object]) -> WeightEntry:
        """Apply a partial update and return the full entry."""

    async def delete(self, entry_id: str) -> None:
        """Delete an entry."""

    async def get_trends(self, period: str, start_date: str | None) -> WeightTrends:
        """Return daily trend points."""

    async def get_statistics(
        self, start_date: str | None, end_date: str | None
    ) -> WeightStatistics:
        """Return aggregate statistics over a range."""

    async def get_summary(self) -> WeightSummary:
        """Return the weight dashboard summary."""

    async def get_latest(self) -> LatestWeight:
        """Return the most recent entry with its comparison to the previous one."""

    async def compare_entries(self, first_id: str, second_id: str) -> WeightComparison:
        """Compare two entries."""

    async def bulk_import(self, entries: list[dict[str, object]]) -> BulkImportResult:
        """Create many entries at once."""


@dataclass
class WeightState(CollectionState[WeightEntry, WeightFilters]):
    trends: WeightTrends | None = None
    statistics: WeightStatistics | None = None
    summary: WeightSummary | None = None
    comparison: WeightComparison | None = None

    @property
    def entries(self) -> list[WeightEntry]:
        return self.items

    @property
    def current_entry(self) -> WeightEntry | None:
        return self.current


@dataclass
class WeightSlice(CollectionSlice[WeightEntry, WeightFilters]):
    """Mediates weight entry changes and analytics loads."""

    name = "weight"
    operation_kinds = (
        *BASE_OPERATION_KINDS,
        "trends",
        "stats",
        "summary",
        "latest",
        "compare",
        "bulk_import",
    )

    gateway: WeightGateway
    state: WeightState = field(init=False)

    def _initial_state(self) -> WeightState:
        return WeightState(
            filters=self._default_filters(),
            pagination=self._initial_pagination(),
            status=self._new_status(),
        )

    def _default_filters(self) -> WeightFilters:
        return WeightFilters()

    async def fetch_entries(
        self,
        filters: WeightFilters | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[WeightEntry] | None:
        """Fetch a page of entries and replace the cache with it."""
        resolved_filters = filters or self.state.filters
        resolved_page = page or self.state.pagination.page
        resolved_limit = limit or self.state.pagination.limit
        return await self._fetch_page(
            lambda: self.gateway.list(resolved_filters, resolved_page, resolved_limit),
            "Failed to fetch weight entries",
        )

    async def fetch_entry(self, entry_id: str) -> WeightEntry | None:
        return await self._fetch_current(
            lambda: self.gateway.get(entry_id), "Failed to fetch weight entry"
        )

    async def create_entry(self, data: dict[str, object]) -> WeightEntry | None:
        return await self._create(
            lambda: self.gateway.create(data), "Failed to create weight entry"
        )

    async def update_entry(
        self, entry_id: str, patch: dict[str, object]
    ) -> WeightEntry | None:
        return await self._mutate(
            "update",
            entry_id,
            lambda: self.gateway.update(entry_id, patch),
            "Failed to update weight entry",
        )

    async def delete_entry(self, entry_id: str) -> bool:
        return await self._remove(
            entry_id,
            lambda: self.gateway.delete(entry_id),
            "Failed to delete weight entry",
        )

    async def fetch_trends(
        self, period: str = "month", start_date: str | None = None
    ) -> WeightTrends | None:
        """Load daily trend points for a period: week, month, quarter or year."""
        return await self._run(
            "trends",
            lambda: self.gateway.get_trends(period, start_date),
            self._set_trends,
            "Failed to fetch weight trends",
        )

    async def fetch_statistics(
        self, start_date: str | None = None, end_date: str | None = None
    ) -> WeightStatistics | None:
        return await self._run(
            "stats",
            lambda: self.gateway.get_statistics(start_date, end_date),
            self._set_statistics,
            "Failed to fetch weight statistics",
        )

    async def fetch_summary(self) -> WeightSummary | None:
        return await self._run(
            "summary",
            self.gateway.get_summary,
            self._set_summary,
            "Failed to fetch weight summary",
        )

    async def fetch_latest(self) -> LatestWeight | None:
        """Load the latest entry into focus along with its comparison."""
        return await self._run(
            "latest",
            self.gateway.get_latest,
            self._apply_latest,
            "Failed to fetch latest weight entry",
            fence_key=CURRENT_KEY,
        )

    async def compare(self, first_id: str, second_id: str) -> WeightComparison | None:
        """Compare two entries and cache the comparison."""
        return await self._run(
            "compare",
            lambda: self.gateway.compare_entries(first_id, second_id),
            self._set_comparison,
            "Failed to compare weight entries",
        )

    async def bulk_import(
        self, entries: list[dict[str, object]]
    ) -> BulkImportResult | None:
        """Import many entries and prepend them to the cache."""
        return await self._run(
            "bulk_import",
            lambda: self.gateway.bulk_import(entries),
            self._apply_import,
            "Failed to import weight entries",
        )

    def clear_trends(self) -> None:
        self.state.trends = None

    def clear_statistics(self) -> None:
        self.state.statistics = None

    def clear_summary(self) -> None:
        self.state.summary = None

    def clear_comparison(self) -> None:
        self.state.comparison = None

    def _set_trends(self, trends: WeightTrends) -> None:
        self.state.trends = trends

    def _set_statistics(self, statistics: WeightStatistics) -> None:
        self.state.statistics = statistics

    def _set_summary(self, summary: WeightSummary) -> None:
        self.state.summary = summary

    def _set_comparison(self, comparison: WeightComparison) -> None:
        self.state.comparison = comparison

    def _apply_latest(self, latest: LatestWeight) -> None:
        self.state.current = latest.entry
        self.state.comparison = latest.comparison

    def _apply_import(self, result: BulkImportResult) -> None:
        self._prepend(result.entries)
        self.state.pagination = self.state.pagination.with_total(
            self.state.pagination.total + result.imported
        )
