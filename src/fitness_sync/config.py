"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

KNOWN_SLICES = ("goals", "weight", "nutrition", "workouts")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    gateway_backend: str = "rest"
    api_base_url: str = "http://localhost:3000/api"
    api_token: str | None = None
    api_timeout_seconds: float = 10.0
    supabase_url: str | None = None
    supabase_key: str | None = None
    user_id: str | None = None
    snapshot_dir: Path = Path(".fitness_sync")
    persisted_slices: str | None = None
    goals_page_limit: int = 20
    weight_page_limit: int = 20
    nutrition_page_limit: int = 20
    workouts_page_limit: int = 20
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="FITNESS_SYNC_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_persisted_slices(raw: str | None) -> frozenset[str]:
    """Parse the slice persistence allowlist from env.

    ``*`` selects every slice; an empty value persists nothing.
    """
    if raw is None:
        return frozenset()
    cleaned = raw.strip()
    if cleaned == "*":
        return frozenset(KNOWN_SLICES)
    names: set[str] = set()
    for chunk in cleaned.split(","):
        value = chunk.strip().lower()
        if not value:
            continue
        if value not in KNOWN_SLICES:
            raise ValueError(f"Unknown slice in persisted_slices: {value}")
        names.add(value)
    return frozenset(names)
