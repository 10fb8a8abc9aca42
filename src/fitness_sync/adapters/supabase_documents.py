"""Supabase table of JSON documents scoped to one user."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from fitness_sync.adapters.documents import Document, camel_case, format_datetime
from fitness_sync.domain.common import GatewayError, SortOrder

_logger = logging.getLogger(__name__)

ROW_COLUMNS = "id, user_id, doc, created_at, updated_at"
_ROW_SORT_COLUMNS = {"createdAt": "created_at", "updatedAt": "updated_at"}
_NON_PREDICATE_FILTERS = {"search", "sort_by", "sort_order", "start_date", "end_date"}


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def doc_path(name: str) -> str:
    """Return the PostgREST text path of a document field."""
    return f"doc->>{name}"


@dataclass
class DocumentQuery:
    """How a filters dataclass maps onto document fields."""

    date_field: str | None = None
    search_field: str | None = None
    aliases: dict[str, str] = field(default_factory=dict)


@dataclass
class DocumentTable:
    """Rows of ``{id, user_id, doc, created_at, updated_at}`` owned by one user.

    ``doc`` holds the camelCase document. Every query is scoped to ``user_id``
    so callers never pass identity around.
    """

    client: Client
    table: str
    user_id: str
    entity: str
    clock: Callable[[], datetime] = utcnow

    def _scoped(self, query):  # type: ignore[no-untyped-def]
        return query.eq("user_id", self.user_id)

    def _execute(self, action: str, query) -> Any:  # type: ignore[no-untyped-def]
        try:
            return query.execute()
        except APIError as exc:
            _logger.warning("Supabase %s on %s failed: %s", action, self.table, exc)
            raise GatewayError(exc.message or f"Failed to {action} {self.entity}") from exc

    def to_document(self, row: dict[str, Any]) -> Document:
        """Flatten a row into the document shape parsers expect."""
        doc = dict(row.get("doc") or {})
        doc["_id"] = str(row["id"])
        if row.get("created_at"):
            doc["createdAt"] = row["created_at"]
        if row.get("updated_at"):
            doc["updatedAt"] = row["updated_at"]
        return doc

    def page(
        self, filters: Any, page: int, limit: int, shape: DocumentQuery
    ) -> tuple[list[Document], int]:
        """Return one page of documents plus the total matching count."""
        query = self._scoped(
            self.client.table(self.table).select(ROW_COLUMNS, count="exact")
        )
        for key, value in vars(filters).items():
            if value is None or value == "" or key in _NON_PREDICATE_FILTERS:
                continue
            query = query.eq(doc_path(shape.aliases.get(key, camel_case(key))), str(value))
        if shape.date_field is not None:
            if filters.start_date:
                query = query.gte(doc_path(shape.date_field), filters.start_date)
            if filters.end_date:
                query = query.lte(doc_path(shape.date_field), filters.end_date)
        if shape.search_field is not None and filters.search:
            query = query.ilike(doc_path(shape.search_field), f"%{filters.search}%")
        start = (page - 1) * limit
        query = query.order(
            _sort_column(filters.sort_by), desc=filters.sort_order is SortOrder.DESC
        ).range(start, start + limit - 1)
        response = self._execute("fetch", query)
        docs = [self.to_document(row) for row in response.data or []]
        total = response.count if response.count is not None else len(docs)
        return docs, total

    def documents(
        self,
        order_field: str,
        desc: bool = True,
        limit: int | None = None,
        since: str | None = None,
        until: str | None = None,
        equals: dict[str, str] | None = None,
    ) -> list[Document]:
        """Return documents ordered by a document field, optionally bounded."""
        query = self._scoped(self.client.table(self.table).select(ROW_COLUMNS))
        for name, value in (equals or {}).items():
            query = query.eq(doc_path(name), value)
        if since is not None:
            query = query.gte(doc_path(order_field), since)
        if until is not None:
            query = query.lte(doc_path(order_field), until)
        query = query.order(_sort_column(order_field), desc=desc)
        if limit is not None:
            query = query.limit(limit)
        response = self._execute("fetch", query)
        return [self.to_document(row) for row in response.data or []]

    def get(self, record_id: str) -> Document:
        query = self._scoped(
            self.client.table(self.table).select(ROW_COLUMNS).eq("id", record_id)
        ).limit(1)
        response = self._execute("fetch", query)
        if not response.data:
            raise GatewayError(f"{self.entity.capitalize()} not found")
        return self.to_document(response.data[0])

    def find(self, record_id: str) -> Document | None:
        """Return a document or None when it does not exist."""
        try:
            return self.get(record_id)
        except GatewayError:
            return None

    def insert(self, doc: Document) -> Document:
        return self.insert_many([doc])[0]

    def insert_many(self, docs: list[Document]) -> list[Document]:
        stamp = format_datetime(self.clock())
        rows = [
            {
                "user_id": self.user_id,
                "doc": _strip_row_fields(doc),
                "created_at": stamp,
                "updated_at": stamp,
            }
            for doc in docs
        ]
        if not rows:
            return []
        response = self._execute(
            "create", self.client.table(self.table).insert(rows)
        )
        if not response.data:
            raise GatewayError(f"Failed to create {self.entity}")
        return [self.to_document(row) for row in response.data]

    def update(self, record_id: str, patch: Document) -> Document:
        """Shallow-merge a patch into the stored document."""
        existing = self.get(record_id)
        merged = _strip_row_fields({**existing, **patch})
        query = self._scoped(
            self.client.table(self.table)
            .update({"doc": merged, "updated_at": format_datetime(self.clock())})
            .eq("id", record_id)
        )
        response = self._execute("update", query)
        if not response.data:
            raise GatewayError(f"{self.entity.capitalize()} not found")
        return self.to_document(response.data[0])

    def upsert(self, record_id: str, doc: Document) -> Document:
        """Write a document under a caller-chosen id."""
        stamp = format_datetime(self.clock())
        existing = self.find(record_id)
        row = {
            "id": record_id,
            "user_id": self.user_id,
            "doc": _strip_row_fields(doc),
            "created_at": existing.get("createdAt", stamp) if existing else stamp,
            "updated_at": stamp,
        }
        response = self._execute("update", self.client.table(self.table).upsert(row))
        if not response.data:
            raise GatewayError(f"Failed to save {self.entity}")
        return self.to_document(response.data[0])

    def delete(self, record_id: str) -> None:
        query = self._scoped(
            self.client.table(self.table).delete().eq("id", record_id)
        )
        response = self._execute("delete", query)
        if not response.data:
            raise GatewayError(f"{self.entity.capitalize()} not found")


def _sort_column(name: str) -> str:
    return _ROW_SORT_COLUMNS.get(name) or doc_path(name)


def _strip_row_fields(doc: Document) -> Document:
    return {
        key: value
        for key, value in doc.items()
        if key not in {"_id", "id", "createdAt", "updatedAt", "userId"}
    }
