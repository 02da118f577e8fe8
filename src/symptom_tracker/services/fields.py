"""Services for managing user-defined fields."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from symptom_tracker.domain.errors import FieldValidationFailed
from symptom_tracker.domain.fields import (
    FieldDefinition,
    coerce_order,
    sort_fields,
    validate_field_payload,
)
from symptom_tracker.services.cache import CacheStore, RecordKind
from symptom_tracker.services.records import (
    CachedRecordAccess,
    DocumentRepository,
    validate_user_id,
)

logger = logging.getLogger(__name__)

# Keys cleared on update so a type change does not leave stale attributes.
_TYPE_SPECIFIC_KEYS = (
    "multiline",
    "point_color",
    "point_style",
    "values",
    "minimum",
    "maximum",
)


@dataclass
class FieldDefinitionService:
    """Application service for field definition operations."""

    access: CachedRecordAccess

    @classmethod
    def create(
        cls,
        repository: DocumentRepository,
        cache: CacheStore,
        snapshot_limit: int = 1000,
    ) -> "FieldDefinitionService":
        """Build the service over a field definition collection."""
        return cls(
            access=CachedRecordAccess(
                kind=RecordKind.FIELD_DEFINITIONS,
                repository=repository,
                cache=cache,
                order_by="order",
                order_key=lambda row: coerce_order(row.get("order")),
                snapshot_limit=snapshot_limit,
            )
        )

    def list_fields(self, user_id: str) -> list[FieldDefinition]:
        """Return the user's fields ordered for display."""
        return sort_fields(_parse_fields(self.access.fetch_rows(user_id)))

    def get_field(self, user_id: str, field_id: str) -> FieldDefinition:
        """Return one field after checking ownership."""
        return FieldDefinition.from_row(self.access.get_owned(user_id, field_id))

    def add_field(self, user_id: str, payload: Mapping[str, object]) -> str:
        """Validate and create a field definition, returning its id."""
        validate_user_id(user_id)
        normalized = validate_field_payload(payload)
        self._ensure_unique_title(user_id, str(normalized["title"]))
        return self.access.add_row(user_id, normalized)

    def update_field(
        self, user_id: str, field_id: str, payload: Mapping[str, object]
    ) -> None:
        """Replace a field definition with a validated payload."""
        validate_user_id(user_id)
        normalized = validate_field_payload(payload)
        self._ensure_unique_title(
            user_id, str(normalized["title"]), exclude_id=field_id
        )
        replacement = {key: None for key in _TYPE_SPECIFIC_KEYS} | normalized
        self.access.update_row(user_id, field_id, replacement)

    def delete_field(self, user_id: str, field_id: str) -> None:
        """Delete a field definition."""
        self.access.delete_row(user_id, field_id)

    def clear_cache(self, user_id: str) -> None:
        """Drop the cached field definitions for a user."""
        self.access.clear_cache(user_id)

    def _ensure_unique_title(
        self, user_id: str, title: str, exclude_id: str | None = None
    ) -> None:
        for existing in self.list_fields(user_id):
            if existing.title == title and existing.id != exclude_id:
                raise FieldValidationFailed(f"A field titled '{title}' already exists")


def _parse_fields(rows: Iterable[Mapping[str, object]]) -> list[FieldDefinition]:
    fields = []
    for row in rows:
        try:
            fields.append(FieldDefinition.from_row(row))
        except (KeyError, ValueError):
            logger.warning(
                "Skipping malformed field definition",
                extra={"record_id": row.get("id")},
            )
    return fields
