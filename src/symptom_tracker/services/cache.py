"""Per-user record cache over a string key-value store."""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol

from symptom_tracker.domain.timestamps import (
    normalize_timestamp,
    to_serialized_timestamp,
)

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "symptom_tracker.cache"


class RecordKind(StrEnum):
    """Kinds of records kept in the cache."""

    FIELD_DEFINITIONS = "field_definitions"
    SYMPTOM_ENTRIES = "symptom_entries"


class KeyValueStore(Protocol):
    """Synchronous string key-value storage."""

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""

    def set(self, key: str, value: str) -> None:
        """Store a value."""

    def remove(self, key: str) -> None:
        """Remove a value if present."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local key-value store."""

    _values: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        self._values[key] = value

    def remove(self, key: str) -> None:
        """Remove a value if present."""
        self._values.pop(key, None)


@dataclass(frozen=True)
class CacheKey:
    """Composite cache key for one user's records of one kind."""

    user_id: str
    kind: RecordKind

    def encode(self) -> str:
        """Encode the key for a string store without separator ambiguity."""
        return json.dumps([CACHE_NAMESPACE, self.user_id, self.kind.value])


@dataclass
class CacheEntry:
    """Snapshot of a user's records."""

    data: list[dict[str, object]]
    written_at: datetime


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CacheStore:
    """Best-effort snapshot cache keyed by user and record kind.

    Entries older than ``ttl_seconds`` are treated as absent; a TTL of None or
    0 disables expiration. Storage errors never propagate: a failed read is a
    miss and a failed write is logged and dropped.
    """

    backend: KeyValueStore
    ttl_seconds: int | None = 3600
    clock: Callable[[], datetime] = _utc_now

    def get(self, user_id: str, kind: RecordKind) -> list[dict[str, object]] | None:
        """Return cached records, or None when absent or expired."""
        entry = self._read(CacheKey(user_id, kind))
        if entry is None:
            return None
        return entry.data

    def put(
        self, user_id: str, kind: RecordKind, data: list[Mapping[str, object]]
    ) -> None:
        """Replace the cached records for a user."""
        self._write(CacheKey(user_id, kind), [dict(record) for record in data])

    def patch_insert(
        self,
        user_id: str,
        kind: RecordKind,
        record: Mapping[str, object],
        prepend: bool = True,
    ) -> None:
        """Add one record to an existing cache entry."""
        key = CacheKey(user_id, kind)
        entry = self._read(key)
        if entry is None:
            return
        if prepend:
            data = [dict(record), *entry.data]
        else:
            data = [*entry.data, dict(record)]
        self._write(key, data)

    def patch_update(
        self,
        user_id: str,
        kind: RecordKind,
        record_id: str,
        partial: Mapping[str, object],
    ) -> None:
        """Merge fields into the cached record with a matching id."""
        key = CacheKey(user_id, kind)
        entry = self._read(key)
        if entry is None:
            return
        data = [
            {**record, **partial} if str(record.get("id")) == record_id else record
            for record in entry.data
        ]
        self._write(key, data)

    def patch_remove(self, user_id: str, kind: RecordKind, record_id: str) -> None:
        """Drop the cached record with a matching id."""
        key = CacheKey(user_id, kind)
        entry = self._read(key)
        if entry is None:
            return
        data = [record for record in entry.data if str(record.get("id")) != record_id]
        self._write(key, data)

    def clear(self, user_id: str, kind: RecordKind | None = None) -> None:
        """Remove one kind, or every kind, of cached records for a user."""
        kinds = [kind] if kind is not None else list(RecordKind)
        for item in kinds:
            self._remove(CacheKey(user_id, item))

    def _read(self, key: CacheKey) -> CacheEntry | None:
        try:
            raw = self.backend.get(key.encode())
        except Exception:
            logger.warning("Cache read failed", exc_info=True)
            return None
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            entry = CacheEntry(
                data=[dict(record) for record in payload["data"]],
                written_at=normalize_timestamp(payload["written_at"]),
            )
        except Exception:
            logger.warning(
                "Discarding corrupt cache entry",
                extra={"user_id": key.user_id, "kind": key.kind.value},
            )
            self._remove(key)
            return None
        if self._is_expired(entry):
            logger.debug(
                "Cache entry expired",
                extra={"user_id": key.user_id, "kind": key.kind.value},
            )
            self._remove(key)
            return None
        return entry

    def _write(self, key: CacheKey, data: list[dict[str, object]]) -> None:
        payload = {"data": data, "written_at": self.clock()}
        try:
            self.backend.set(key.encode(), json.dumps(payload, default=_encode_value))
        except Exception:
            logger.warning("Cache write failed", exc_info=True)

    def _remove(self, key: CacheKey) -> None:
        try:
            self.backend.remove(key.encode())
        except Exception:
            logger.warning("Cache removal failed", exc_info=True)

    def _is_expired(self, entry: CacheEntry) -> bool:
        if not self.ttl_seconds:
            return False
        return self.clock() >= entry.written_at + timedelta(seconds=self.ttl_seconds)


def _encode_value(value: object) -> object:
    if isinstance(value, datetime):
        return to_serialized_timestamp(value)
    raise TypeError(f"Cannot cache value of type {type(value).__name__}")
