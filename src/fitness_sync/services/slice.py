"""Shared reconciliation logic for domain store slices."""

import itertools
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import asdict, dataclass, field, replace
from typing import Any, ClassVar, Generic, Protocol, TypeVar

from fitness_sync.domain.common import (
    GatewayError,
    OperationStatus,
    Page,
    Pagination,
    SortOrder,
    page_count,
)

_logger = logging.getLogger(__name__)

COLLECTION_KEY = "collection"
CURRENT_KEY = "current"
BASE_OPERATION_KINDS = ("fetch", "create", "update", "delete")


class Record(Protocol):
    """Anything cached by a slice: identified by an immutable string id."""

    @property
    def id(self) -> str: ...


RecordT = TypeVar("RecordT", bound=Record)
FiltersT = TypeVar("FiltersT")
ResultT = TypeVar("ResultT")


@dataclass
class RequestFence:
    """Hands out monotonic tickets and rejects responses older than the last applied."""

    _tickets: Iterator[int] = field(default_factory=itertools.count)
    _applied: dict[str, int] = field(default_factory=dict)

    def issue(self) -> int:
        """Return the next ticket."""
        return next(self._tickets)

    def accept(self, key: str, ticket: int) -> bool:
        """Record the ticket as applied for key unless a newer one already was."""
        if ticket < self._applied.get(key, -1):
            return False
        self._applied[key] = ticket
        return True


@dataclass
class CollectionState(Generic[RecordT, FiltersT]):
    """Cached page of records plus its bookkeeping."""

    filters: FiltersT
    items: list[RecordT] = field(default_factory=list)
    current: RecordT | None = None
    pagination: Pagination = field(default_factory=Pagination)
    status: dict[str, OperationStatus] = field(default_factory=dict)
    unconfirmed: dict[str, RecordT] = field(default_factory=dict)


@dataclass
class CollectionSlice(Generic[RecordT, FiltersT]):
    """Base slice owning one domain's cache and mediating its mutations."""

    name: ClassVar[str] = ""
    operation_kinds: ClassVar[tuple[str, ...]] = BASE_OPERATION_KINDS

    page_limit: int = field(default=20, kw_only=True)
    state: CollectionState[RecordT, FiltersT] = field(init=False)
    _fence: RequestFence = field(init=False, default_factory=RequestFence)

    def __post_init__(self) -> None:
        self.state = self._initial_state()

    def _initial_state(self) -> CollectionState[RecordT, FiltersT]:
        raise NotImplementedError

    def _default_filters(self) -> FiltersT:
        raise NotImplementedError

    def _new_status(self) -> dict[str, OperationStatus]:
        return {kind: OperationStatus() for kind in self.operation_kinds}

    def _initial_pagination(self) -> Pagination:
        return Pagination(page=1, limit=self.page_limit, total=0, pages=0)

    # Gateway mediation

    async def _run(
        self,
        kind: str,
        call: Callable[[], Awaitable[ResultT]],
        apply: Callable[[ResultT], None],
        default_message: str,
        fence_key: str | None = None,
    ) -> ResultT | None:
        status = self.state.status[kind]
        status.in_flight += 1
        status.error = None
        ticket = self._fence.issue()
        try:
            result = await call()
        except GatewayError as exc:
            status.error = exc.message or default_message
            _logger.warning("%s %s failed: %s", self.name, kind, status.error)
            return None
        finally:
            status.in_flight -= 1
        if fence_key is not None and not self._fence.accept(fence_key, ticket):
            _logger.debug(
                "Discarding stale %s %s response for %s", self.name, kind, fence_key
            )
            return result
        apply(result)
        return result

    async def _fetch_page(
        self,
        call: Callable[[], Awaitable[Page[RecordT]]],
        default_message: str,
    ) -> Page[RecordT] | None:
        return await self._run(
            "fetch",
            call,
            self._apply_page,
            default_message,
            fence_key=COLLECTION_KEY,
        )

    async def _fetch_current(
        self,
        call: Callable[[], Awaitable[RecordT]],
        default_message: str,
    ) -> RecordT | None:
        return await self._run(
            "fetch",
            call,
            self._set_current,
            default_message,
            fence_key=CURRENT_KEY,
        )

    async def _create(
        self,
        call: Callable[[], Awaitable[RecordT]],
        default_message: str,
        kind: str = "create",
    ) -> RecordT | None:
        return await self._run(kind, call, self._apply_created, default_message)

    async def _mutate(
        self,
        kind: str,
        record_id: str,
        call: Callable[[], Awaitable[RecordT]],
        default_message: str,
    ) -> RecordT | None:
        return await self._run(
            kind,
            call,
            self._replace_record,
            default_message,
            fence_key=record_key(record_id),
        )

    async def _remove(
        self,
        record_id: str,
        call: Callable[[], Awaitable[None]],
        default_message: str,
    ) -> bool:
        async def delete() -> str:
            await call()
            return record_id

        result = await self._run(
            "delete",
            delete,
            self._apply_removed,
            default_message,
            fence_key=record_key(record_id),
        )
        return result is not None

    # Reconciliation

    def _apply_page(self, page: Page[RecordT]) -> None:
        self.state.items = _unique(page.data)
        self.state.pagination = page.pagination
        self.state.unconfirmed.clear()

    def _set_current(self, record: RecordT) -> None:
        self.state.current = record

    def _apply_created(self, record: RecordT) -> None:
        self._prepend([record])
        self.state.current = record
        self.state.pagination = self.state.pagination.with_total(
            self.state.pagination.total + 1
        )

    def _prepend(self, records: list[RecordT]) -> None:
        incoming = {record.id for record in records}
        self.state.items = [
            *records,
            *(item for item in self.state.items if item.id not in incoming),
        ]

    def _replace_record(self, record: RecordT) -> None:
        self._swap(record)
        self.state.unconfirmed.pop(record.id, None)

    def _swap(self, record: RecordT) -> None:
        for index, existing in enumerate(self.state.items):
            if existing.id == record.id:
                self.state.items[index] = record
                break
        current = self.state.current
        if current is not None and current.id == record.id:
            self.state.current = record

    def _apply_removed(self, record_id: str) -> None:
        self.state.items = [item for item in self.state.items if item.id != record_id]
        current = self.state.current
        if current is not None and current.id == record_id:
            self.state.current = None
        self.state.unconfirmed.pop(record_id, None)
        self.state.pagination = self.state.pagination.with_total(
            self.state.pagination.total - 1
        )

    def find(self, record_id: str) -> RecordT | None:
        """Return the cached record with the id, from the cache or the focus slot."""
        for item in self.state.items:
            if item.id == record_id:
                return item
        current = self.state.current
        if current is not None and current.id == record_id:
            return current
        return None

    # Optimistic updates

    def apply_optimistic(
        self, record_id: str, change: Callable[[RecordT], RecordT]
    ) -> RecordT | None:
        """Apply a local change ahead of server confirmation.

        The last confirmed record is kept so the change can be rolled back.
        Returns None when the record is not cached.
        """
        existing = self.find(record_id)
        if existing is None:
            return None
        self.state.unconfirmed.setdefault(record_id, existing)
        updated = change(existing)
        self._swap(updated)
        return updated

    def confirm(self, record: RecordT) -> None:
        """Replace an optimistic record with the server's version."""
        self._replace_record(record)

    def rollback(self, record_id: str) -> None:
        """Restore the last confirmed record for an optimistic change."""
        confirmed = self.state.unconfirmed.pop(record_id, None)
        if confirmed is not None:
            self._swap(confirmed)

    def is_unconfirmed(self, record_id: str) -> bool:
        """Whether the cached record carries an unconfirmed optimistic change."""
        return record_id in self.state.unconfirmed

    # Filters, pagination and errors

    def update_filters(self, **changes: Any) -> None:
        """Merge filter changes and return to the first page."""
        self.state.filters = replace(self.state.filters, **changes)
        self.state.pagination = replace(self.state.pagination, page=1)

    def reset_filters(self) -> None:
        """Restore default filters and return to the first page."""
        self.state.filters = self._default_filters()
        self.state.pagination = replace(self.state.pagination, page=1)

    def set_pagination(self, **changes: int) -> None:
        """Merge pagination changes."""
        pagination = replace(self.state.pagination, **changes)
        if "limit" in changes or "total" in changes:
            pagination = replace(
                pagination, pages=page_count(pagination.total, pagination.limit)
            )
        self.state.pagination = pagination

    def clear_errors(self) -> None:
        """Clear the last error of every operation kind."""
        for status in self.state.status.values():
            status.error = None

    def clear_error(self, kind: str) -> None:
        """Clear the last error of one operation kind."""
        status = self.state.status.get(kind)
        if status is not None:
            status.error = None

    def clear_current(self) -> None:
        """Drop the focus record."""
        self.state.current = None

    # Snapshots

    def snapshot(self) -> dict[str, object]:
        """Return persistable view state: filters and pagination."""
        return {
            "filters": asdict(self.state.filters),
            "pagination": asdict(self.state.pagination),
        }

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Restore filters and pagination from a snapshot."""
        filters = dict(snapshot.get("filters") or {})
        if "sort_order" in filters:
            filters["sort_order"] = SortOrder(filters["sort_order"])
        self.state.filters = replace(self._default_filters(), **filters)
        pagination = snapshot.get("pagination")
        if pagination:
            self.state.pagination = Pagination(**pagination)


def record_key(record_id: str) -> str:
    """Return the fence key for mutations of one record."""
    return f"record:{record_id}"


def _unique(records: list[RecordT]) -> list[RecordT]:
    seen: set[str] = set()
    unique: list[RecordT] = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique
