"""Shared domain models for cached record collections."""

import math
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Generic, TypeVar

RecordT = TypeVar("RecordT")


class SortOrder(StrEnum):
    """Sort direction for collection queries."""

    ASC = "asc"
    DESC = "desc"


class GatewayError(Exception):
    """Raised by a gateway when a remote call fails."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Pagination:
    """Position of the last fetch within the full remote result set."""

    page: int = 1
    limit: int = 20
    total: int = 0
    pages: int = 0

    @classmethod
    def for_total(cls, page: int, limit: int, total: int) -> "Pagination":
        """Build pagination with page count derived from the total."""
        return cls(page=page, limit=limit, total=total, pages=page_count(total, limit))

    def with_total(self, total: int) -> "Pagination":
        """Return a copy with a new total, floored at zero."""
        total = max(0, total)
        pages = page_count(total, self.limit)
        return replace(self, total=total, pages=pages, page=min(self.page, max(pages, 1)))


@dataclass(frozen=True)
class Page(Generic[RecordT]):
    """A page of records returned by a gateway."""

    data: list[RecordT]
    pagination: Pagination


@dataclass
class OperationStatus:
    """In-flight and last-error bookkeeping for one operation kind."""

    in_flight: int = 0
    error: str | None = None

    @property
    def loading(self) -> bool:
        """Whether any call of this kind is outstanding."""
        return self.in_flight > 0


def page_count(total: int, limit: int) -> int:
    """Return the number of pages needed for total records."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
