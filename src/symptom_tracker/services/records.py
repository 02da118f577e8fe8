"""Cached access to per-user documents in the remote store."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

from symptom_tracker.domain.errors import (
    InvalidRecordData,
    InvalidUserId,
    NotFound,
    PermissionDenied,
    RemoteOperationFailed,
    SymptomTrackerError,
)
from symptom_tracker.domain.timestamps import (
    normalize_timestamp,
    try_normalize_timestamp,
)
from symptom_tracker.services.cache import CacheStore, RecordKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROTECTED_KEYS = frozenset({"id", "user_id"})


class DocumentRepository(Protocol):
    """Remote document collection scoped by an owning user column."""

    def query(  # noqa: PLR0913
        self,
        user_id: str,
        *,
        order_by: str,
        descending: bool = False,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, object]]:
        """Return the user's documents, optionally range-filtered on order_by."""

    def insert(self, user_id: str, fields: dict[str, object]) -> str:
        """Insert a document owned by the user and return its id."""

    def update(self, record_id: str, fields: dict[str, object]) -> None:
        """Apply a partial update to a document."""

    def delete(self, record_id: str) -> None:
        """Delete a document."""

    def get_by_id(self, record_id: str) -> dict[str, object] | None:
        """Return a document by id, if present."""


def validate_user_id(user_id: object) -> str:
    """Ensure a user id is a non-empty string."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidUserId("Invalid or missing user ID")
    return user_id


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CachedRecordAccess:
    """Fetch and mutate one record kind through the cache.

    Reads are served from the cache when a snapshot is present. The snapshot
    holds at most the newest ``snapshot_limit`` records, so a range reaching
    past a full snapshot is read remotely. Writes go to the remote store first
    and then patch the snapshot in place.
    """

    kind: RecordKind
    repository: DocumentRepository
    cache: CacheStore
    order_by: str
    order_key: Callable[[Mapping[str, object]], Any]
    timestamp_fields: tuple[str, ...] = ("created_at", "updated_at")
    snapshot_limit: int = 1000
    clock: Callable[[], datetime] = _utc_now

    def fetch_rows(  # noqa: PLR0913
        self,
        user_id: str,
        *,
        descending: bool = False,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, object]]:
        """Return the user's records sorted on ``order_key``."""
        validate_user_id(user_id)
        start = normalize_timestamp(start) if start is not None else None
        end = normalize_timestamp(end) if end is not None else None
        cached = self.cache.get(user_id, self.kind)
        if cached is not None:
            logger.debug("Cache hit", extra={"user_id": user_id, "kind": self.kind})
            rows = [self._normalize(row) for row in cached]
            if not self._precedes_snapshot(rows, start):
                return self._select(rows, descending, start, end, limit)
            logger.debug(
                "Range starts before cached snapshot",
                extra={"user_id": user_id, "kind": self.kind},
            )
        else:
            logger.debug("Cache miss", extra={"user_id": user_id, "kind": self.kind})
        partial = (
            cached is not None
            or start is not None
            or end is not None
            or limit is not None
        )
        raw_rows = self._remote(
            "fetch",
            lambda: self.repository.query(
                user_id,
                order_by=self.order_by,
                descending=descending if partial else True,
                start=start,
                end=end,
                limit=limit if partial else self.snapshot_limit,
            ),
        )
        rows = [self._normalize(row) for row in raw_rows]
        if not partial:
            self.cache.put(user_id, self.kind, rows)
        return self._select(rows, descending, start, end, limit)

    def get_owned(self, user_id: str, record_id: str) -> dict[str, object]:
        """Return a record after checking that the user owns it."""
        validate_user_id(user_id)
        if not record_id:
            raise InvalidRecordData("No record ID provided")
        row = self._remote("load", lambda: self.repository.get_by_id(record_id))
        if row is None:
            raise NotFound(f"{self.kind.value} record {record_id} not found")
        if str(row.get("user_id")) != user_id:
            raise PermissionDenied(
                f"User does not have permission to access {self.kind.value} record"
            )
        return self._normalize(row)

    def add_row(self, user_id: str, data: Mapping[str, object]) -> str:
        """Insert a record and add it to the cached snapshot."""
        validate_user_id(user_id)
        payload = _writable(data)
        record_id = self._remote(
            "add", lambda: self.repository.insert(user_id, dict(payload))
        )
        record = {
            "id": record_id,
            "user_id": user_id,
            **payload,
            "created_at": self.clock(),
        }
        self.cache.patch_insert(user_id, self.kind, self._normalize(record))
        logger.info(
            "Record added",
            extra={"user_id": user_id, "kind": self.kind, "record_id": record_id},
        )
        return record_id

    def update_row(
        self, user_id: str, record_id: str, partial: Mapping[str, object]
    ) -> None:
        """Update a record owned by the user and patch the cached copy."""
        validate_user_id(user_id)
        payload = _writable(partial)
        self.get_owned(user_id, record_id)
        self._remote("update", lambda: self.repository.update(record_id, payload))
        patch = self._normalize({**payload, "updated_at": self.clock()})
        self.cache.patch_update(user_id, self.kind, record_id, patch)
        logger.info(
            "Record updated",
            extra={"user_id": user_id, "kind": self.kind, "record_id": record_id},
        )

    def delete_row(self, user_id: str, record_id: str) -> None:
        """Delete a record owned by the user and drop the cached copy."""
        self.get_owned(user_id, record_id)
        self._remote("delete", lambda: self.repository.delete(record_id))
        self.cache.patch_remove(user_id, self.kind, record_id)
        logger.info(
            "Record deleted",
            extra={"user_id": user_id, "kind": self.kind, "record_id": record_id},
        )

    def clear_cache(self, user_id: str) -> None:
        """Drop the cached snapshot for the user."""
        validate_user_id(user_id)
        self.cache.clear(user_id, self.kind)

    def _normalize(self, row: Mapping[str, object]) -> dict[str, object]:
        normalized = dict(row)
        for key in self.timestamp_fields:
            raw = normalized.get(key)
            if raw is None:
                continue
            parsed = try_normalize_timestamp(raw)
            if parsed is not None:
                normalized[key] = parsed
        return normalized

    def _precedes_snapshot(
        self, rows: list[dict[str, object]], start: datetime | None
    ) -> bool:
        """Return true when a capped snapshot may be missing rows from ``start``."""
        if start is None or len(rows) < self.snapshot_limit:
            return False
        dates = [row.get(self.order_by) for row in rows]
        oldest = min(
            (value for value in dates if isinstance(value, datetime)), default=None
        )
        return oldest is None or start < oldest

    def _select(
        self,
        rows: list[dict[str, object]],
        descending: bool,
        start: datetime | None,
        end: datetime | None,
        limit: int | None,
    ) -> list[dict[str, object]]:
        if start is not None or end is not None:
            rows = [
                row for row in rows if _in_range(row.get(self.order_by), start, end)
            ]
        rows = sorted(rows, key=self.order_key, reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def _remote(self, action: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except SymptomTrackerError:
            raise
        except Exception as exc:
            logger.warning(
                "Remote operation failed",
                extra={"action": action, "kind": self.kind},
                exc_info=True,
            )
            raise RemoteOperationFailed(
                f"Failed to {action} {self.kind.value}", cause=exc
            ) from exc


def _writable(data: Mapping[str, object]) -> dict[str, object]:
    if not isinstance(data, Mapping) or not data:
        raise InvalidRecordData("Record data must be a non-empty mapping")
    payload = {key: value for key, value in data.items() if key not in PROTECTED_KEYS}
    if not payload:
        raise InvalidRecordData("Record data must be a non-empty mapping")
    return payload


def _in_range(raw: object, start: datetime | None, end: datetime | None) -> bool:
    if not isinstance(raw, datetime):
        return False
    if start is not None and raw < start:
        return False
    return end is None or raw <= end
