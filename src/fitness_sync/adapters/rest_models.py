"""Pydantic models for REST API response envelopes."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class RestPagination(BaseModel):
    """Pagination block of a list response."""

    page: int = 1
    limit: int = 20
    total: int = 0
    pages: int = 0


class RestEnvelope(BaseModel):
    """Wrapper every API response is returned in."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    message: str | None = None
    data: Any = None
    pagination: RestPagination | None = None


class RestErrorBody(BaseModel):
    """Body of a failed API response."""

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    message: str | None = None
