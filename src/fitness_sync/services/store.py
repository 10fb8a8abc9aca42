"""Store assembly: named slices plus the allowlist of slices persisted between runs."""

import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from fitness_sync.services.slice import CollectionSlice

_logger = logging.getLogger(__name__)


class SnapshotStorage(Protocol):
    def load(self, name: str) -> dict[str, Any] | None:
        """Return the saved snapshot for a slice, if any."""

    def save(self, name: str, snapshot: dict[str, Any]) -> None:
        """Persist a slice snapshot."""


@dataclass
class JsonFileSnapshotStorage:
    """Keeps one JSON file per slice under a directory."""

    root: Path

    def _path_for(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def load(self, name: str) -> dict[str, Any] | None:
        path = self._path_for(name)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            _logger.warning("Ignoring unreadable snapshot %s", path)
            return None

    def save(self, name: str, snapshot: dict[str, Any]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._path_for(name).write_text(
            json.dumps(snapshot, ensure_ascii=False, indent=2), encoding="utf-8"
        )


@dataclass
class Store:
    """Owns the slices of one session.

    Only slices named in ``persisted`` are restored on ``open`` and written on
    ``close``. Everything else starts empty every run.
    """

    slices: dict[str, CollectionSlice]
    persisted: frozenset[str] = frozenset()
    storage: SnapshotStorage | None = None
    close_resources: Callable[[], Awaitable[None]] | None = None
    _opened: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        unknown = self.persisted - self.slices.keys()
        if unknown:
            raise ValueError(f"Unknown slices in persistence allowlist: {sorted(unknown)}")

    @classmethod
    def build(
        cls,
        slices: Iterable[CollectionSlice],
        persisted: Iterable[str] = (),
        storage: SnapshotStorage | None = None,
        close_resources: Callable[[], Awaitable[None]] | None = None,
    ) -> "Store":
        by_name: dict[str, CollectionSlice] = {}
        for item in slices:
            if item.name in by_name:
                raise ValueError(f"Duplicate slice name: {item.name}")
            by_name[item.name] = item
        return cls(
            slices=by_name,
            persisted=frozenset(persisted),
            storage=storage,
            close_resources=close_resources,
        )

    def __getitem__(self, name: str) -> CollectionSlice:
        return self.slices[name]

    def __contains__(self, name: object) -> bool:
        return name in self.slices

    def open(self) -> list[str]:
        """Restore persisted slices and return the names restored."""
        restored: list[str] = []
        if self.storage is not None:
            for name in sorted(self.persisted):
                snapshot = self.storage.load(name)
                if snapshot is None:
                    continue
                self.slices[name].restore(snapshot)
                restored.append(name)
        self._opened = True
        if restored:
            _logger.info("Restored slice snapshots: %s", ", ".join(restored))
        return restored

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Return the snapshots of every persisted slice."""
        return {name: self.slices[name].snapshot() for name in sorted(self.persisted)}

    def persist(self) -> None:
        if self.storage is None:
            return
        for name, snapshot in self.snapshot().items():
            self.storage.save(name, snapshot)

    async def close(self) -> None:
        """Persist allowlisted slices and release gateway resources."""
        self.persist()
        self._opened = False
        if self.close_resources is not None:
            await self.close_resources()

    @property
    def is_open(self) -> bool:
        return self._opened
