"""
Published state: one immutable snapshot per source.

Consumers read the store while a refresh is writing it. Every write is a
whole-snapshot reference swap under a lock, so a reader sees either the
previous complete snapshot of a source or the new complete one.

Each source also carries its last error string, retained until that
source's next successful publish.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class Snapshot:
    """The published records of one source at one point in time."""

    source_id: str
    data: Any
    published_at: datetime = field(default_factory=utcnow)
    record_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "published_at": self.published_at.isoformat(),
            "record_count": self.record_count,
        }


class SnapshotStore:
    """
    Thread-safe holder of per-source snapshots and error strings.

    Usage:
        store = SnapshotStore()
        store.publish("analytics", {"Acme": [...]}, record_count=12)
        store.data("analytics", {})
        store.error("analytics")   # None after a successful publish
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, Snapshot] = {}
        self._errors: dict[str, str] = {}

    def publish(
        self,
        source_id: str,
        data: Any,
        *,
        record_count: int | None = None,
        clear_error: bool = True,
        published_at: datetime | None = None,
    ) -> Snapshot:
        """Replace the snapshot of ``source_id``.

        Args:
            record_count: Defaults to ``len(data)`` when data is sized.
            clear_error: Drop the source's last error. A derived rewrite of
                an existing slot (reconciliation) passes False so it does
                not mask the slot's own failure.
        """
        if record_count is None:
            record_count = len(data) if hasattr(data, "__len__") else 0
        snapshot = Snapshot(
            source_id=source_id,
            data=data,
            published_at=published_at or utcnow(),
            record_count=record_count,
        )
        with self._lock:
            self._snapshots[source_id] = snapshot
            if clear_error:
                self._errors.pop(source_id, None)
        return snapshot

    def record_error(self, source_id: str, message: str) -> None:
        """Record a failure; the previous snapshot stays readable."""
        with self._lock:
            self._errors[source_id] = message

    def clear_error(self, source_id: str) -> None:
        with self._lock:
            self._errors.pop(source_id, None)

    def get(self, source_id: str) -> Snapshot | None:
        with self._lock:
            return self._snapshots.get(source_id)

    def data(self, source_id: str, default: Any = None) -> Any:
        snapshot = self.get(source_id)
        return default if snapshot is None else snapshot.data

    def error(self, source_id: str) -> str | None:
        with self._lock:
            return self._errors.get(source_id)

    def errors(self) -> dict[str, str]:
        with self._lock:
            return dict(self._errors)

    def sources(self) -> list[str]:
        with self._lock:
            return list(self._snapshots)

    def as_dict(self) -> dict[str, Any]:
        """Point-in-time copy of every slot's data."""
        with self._lock:
            return {source_id: snapshot.data for source_id, snapshot in self._snapshots.items()}

    def __contains__(self, source_id: object) -> bool:
        with self._lock:
            return source_id in self._snapshots
