"""Services for daily symptom entries."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from symptom_tracker.domain.entries import SymptomEntry, coerce_entry_values
from symptom_tracker.domain.errors import InvalidRecordData, InvalidTimestampFormat
from symptom_tracker.domain.fields import FieldDefinition
from symptom_tracker.services.cache import CacheStore, RecordKind
from symptom_tracker.services.fields import FieldDefinitionService
from symptom_tracker.services.records import (
    CachedRecordAccess,
    DocumentRepository,
    validate_user_id,
)

logger = logging.getLogger(__name__)

DATE_COLUMN = "symptom_date"
VALUES_COLUMN = "values"

# Days are accepted up to the current date in the most advanced timezone.
LATEST_UTC_OFFSET = timedelta(hours=14)

_EARLIEST = datetime.min.replace(tzinfo=UTC)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _entry_order_key(row: Mapping[str, object]) -> datetime:
    value = row.get(DATE_COLUMN)
    return value if isinstance(value, datetime) else _EARLIEST


@dataclass
class SymptomEntryService:
    """Application service for symptom entry operations."""

    access: CachedRecordAccess
    field_service: FieldDefinitionService
    clock: Callable[[], datetime] = _utc_now

    @classmethod
    def create(
        cls,
        repository: DocumentRepository,
        cache: CacheStore,
        field_service: FieldDefinitionService,
        snapshot_limit: int = 1000,
    ) -> "SymptomEntryService":
        """Build the service over a symptom entry collection."""
        return cls(
            access=CachedRecordAccess(
                kind=RecordKind.SYMPTOM_ENTRIES,
                repository=repository,
                cache=cache,
                order_by=DATE_COLUMN,
                order_key=_entry_order_key,
                timestamp_fields=(DATE_COLUMN, "created_at", "updated_at"),
                snapshot_limit=snapshot_limit,
            ),
            field_service=field_service,
        )

    def list_entries(  # noqa: PLR0913
        self,
        user_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        descending: bool = True,
        limit: int | None = None,
        fields: Iterable[FieldDefinition] | None = None,
    ) -> list[SymptomEntry]:
        """Return the user's entries ordered by date.

        Entries whose date cannot be interpreted are logged and left out.
        """
        rows = self.access.fetch_rows(
            user_id, descending=descending, start=start, end=end, limit=limit
        )
        field_list = list(fields) if fields is not None else None
        entries = []
        for row in rows:
            entry = SymptomEntry.from_row(row, field_list)
            if entry is None:
                logger.warning(
                    "Skipping entry with invalid date",
                    extra={"user_id": user_id, "record_id": row.get("id")},
                )
                continue
            entries.append(entry)
        return entries

    def get_entry(self, user_id: str, entry_id: str) -> SymptomEntry:
        """Return one entry after checking ownership."""
        entry = SymptomEntry.from_row(self.access.get_owned(user_id, entry_id))
        if entry is None:
            raise InvalidTimestampFormat(f"Entry {entry_id} has an invalid date")
        return entry

    def find_entry_for_day(self, user_id: str, day: date) -> SymptomEntry | None:
        """Return the user's entry for a calendar day, if one exists."""
        start = datetime.combine(day, time.min, tzinfo=UTC)
        end = datetime.combine(day, time.max, tzinfo=UTC)
        for entry in self.list_entries(user_id, start=start, end=end):
            if entry.symptom_date.date() == day:
                return entry
        return None

    def save_for_day(
        self, user_id: str, day: date, values: Mapping[str, object]
    ) -> str:
        """Create or update the entry for a day and return its id."""
        validate_user_id(user_id)
        self._ensure_not_future(day)
        payload = self._validated_payload(user_id, values)
        existing = self.find_entry_for_day(user_id, day)
        if existing is not None:
            if payload:
                merged = _merge_values(existing, payload)
                self.access.update_row(user_id, existing.id, {VALUES_COLUMN: merged})
            return existing.id
        return self.access.add_row(
            user_id, {DATE_COLUMN: day, VALUES_COLUMN: _merge_values(None, payload)}
        )

    def add_entry(self, user_id: str, day: date, values: Mapping[str, object]) -> str:
        """Create a new entry for a day and return its id."""
        validate_user_id(user_id)
        self._ensure_not_future(day)
        payload = self._validated_payload(user_id, values)
        return self.access.add_row(
            user_id, {DATE_COLUMN: day, VALUES_COLUMN: _merge_values(None, payload)}
        )

    def update_entry(
        self, user_id: str, entry_id: str, values: Mapping[str, object]
    ) -> None:
        """Update values on an existing entry."""
        validate_user_id(user_id)
        payload = self._validated_payload(user_id, values)
        existing = self.get_entry(user_id, entry_id)
        merged = _merge_values(existing, payload)
        self.access.update_row(user_id, entry_id, {VALUES_COLUMN: merged})

    def delete_entry(self, user_id: str, entry_id: str) -> None:
        """Delete an entry."""
        self.access.delete_row(user_id, entry_id)

    def clear_cache(self, user_id: str) -> None:
        """Drop the cached entries for a user."""
        self.access.clear_cache(user_id)

    def validate_values(
        self, user_id: str, day: date, values: Mapping[str, object]
    ) -> dict[str, object]:
        """Check a day's values without writing them."""
        validate_user_id(user_id)
        self._ensure_not_future(day)
        return self._validated_payload(user_id, values)

    def _validated_payload(
        self, user_id: str, values: Mapping[str, object]
    ) -> dict[str, object]:
        if not isinstance(values, Mapping):
            raise InvalidRecordData("Entry values must be a mapping")
        fields = self.field_service.list_fields(user_id)
        coerced = coerce_entry_values(fields, values)
        cleared = {title: None for title, raw in values.items() if raw is None}
        return cleared | {title: value.value for title, value in coerced.items()}

    def _ensure_not_future(self, day: date) -> None:
        latest = (self.clock() + LATEST_UTC_OFFSET).date()
        if day > latest:
            raise InvalidRecordData("Cannot record entries for a future date")


def _merge_values(
    existing: SymptomEntry | None, payload: Mapping[str, object]
) -> dict[str, object]:
    merged = existing.raw_values() if existing is not None else {}
    for title, value in payload.items():
        if value is None:
            merged.pop(title, None)
        else:
            merged[title] = value
    return merged
