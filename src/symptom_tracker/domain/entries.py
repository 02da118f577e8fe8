"""Domain models for daily symptom entries."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from symptom_tracker.domain.errors import FieldValidationFailed, InvalidRecordData
from symptom_tracker.domain.fields import FieldDefinition, FieldType
from symptom_tracker.domain.timestamps import try_normalize_timestamp


class ValueKind(StrEnum):
    """Tags for values stored against a field."""

    TEXT = "text"
    BOOLEAN = "boolean"
    SELECTION = "selection"
    NUMBER = "number"


_KIND_BY_FIELD_TYPE = {
    FieldType.TEXT: ValueKind.TEXT,
    FieldType.BOOLEAN: ValueKind.BOOLEAN,
    FieldType.SELECT: ValueKind.SELECTION,
    FieldType.SLIDER: ValueKind.NUMBER,
}


@dataclass(frozen=True)
class FieldValue:
    """A tagged scalar recorded for one field."""

    kind: ValueKind
    value: str | bool | float

    @classmethod
    def infer(cls, raw: object) -> "FieldValue | None":
        """Infer a value kind from a stored scalar."""
        if isinstance(raw, bool):
            return cls(ValueKind.BOOLEAN, raw)
        if isinstance(raw, int | float):
            return cls(ValueKind.NUMBER, float(raw))
        if isinstance(raw, str):
            return cls(ValueKind.TEXT, raw)
        return None

    def as_number(self) -> float | None:
        """Return the numeric reading of this value, if it has one."""
        if self.kind is ValueKind.NUMBER:
            return float(self.value)
        if self.kind in {ValueKind.TEXT, ValueKind.SELECTION}:
            try:
                return float(str(self.value))
            except ValueError:
                return None
        return None


@dataclass(frozen=True)
class SymptomEntry:
    """One day's recorded values."""

    id: str
    user_id: str
    symptom_date: datetime
    values: dict[str, FieldValue] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, object],
        fields: Iterable[FieldDefinition] | None = None,
    ) -> "SymptomEntry | None":
        """Build an entry from a stored document.

        Returns None when the entry date cannot be interpreted. When ``fields``
        is given, only values for those titles are kept, tagged by field type.
        """
        symptom_date = try_normalize_timestamp(row.get("symptom_date"))
        if symptom_date is None:
            return None
        by_title = {f.title: f for f in fields} if fields is not None else None
        values: dict[str, FieldValue] = {}
        raw_values = row.get("values")
        if not isinstance(raw_values, Mapping):
            raw_values = {}
        for key, raw in raw_values.items():
            if raw is None:
                continue
            if by_title is not None and key not in by_title:
                continue
            value = FieldValue.infer(raw)
            if value is None:
                continue
            if by_title is not None:
                value = _retag(by_title[key], value)
            values[key] = value
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id", "")),
            symptom_date=symptom_date,
            values=values,
            created_at=try_normalize_timestamp(row["created_at"])
            if row.get("created_at") is not None
            else None,
            updated_at=try_normalize_timestamp(row["updated_at"])
            if row.get("updated_at") is not None
            else None,
        )

    def raw_values(self) -> dict[str, object]:
        """Return the plain scalar values keyed by field title."""
        return {title: value.value for title, value in self.values.items()}


def coerce_entry_values(
    fields: Iterable[FieldDefinition], payload: Mapping[str, object]
) -> dict[str, FieldValue]:
    """Validate entry values against the user's field definitions."""
    if not isinstance(payload, Mapping):
        raise InvalidRecordData("Entry values must be a mapping")
    by_title = {f.title: f for f in fields}
    coerced: dict[str, FieldValue] = {}
    for title, raw in payload.items():
        definition = by_title.get(title)
        if definition is None:
            raise FieldValidationFailed(f"Unknown field: {title}")
        if raw is None:
            continue
        coerced[title] = coerce_value(definition, raw)
    return coerced


def coerce_value(definition: FieldDefinition, raw: object) -> FieldValue:
    """Validate one raw value against its field definition."""
    title = definition.title
    if definition.type is FieldType.TEXT:
        if not isinstance(raw, str):
            raise FieldValidationFailed(f"Field '{title}' expects text")
        return FieldValue(ValueKind.TEXT, raw)
    if definition.type is FieldType.BOOLEAN:
        if not isinstance(raw, bool):
            raise FieldValidationFailed(f"Field '{title}' expects true or false")
        return FieldValue(ValueKind.BOOLEAN, raw)
    if definition.type is FieldType.SELECT:
        if not isinstance(raw, str) or raw not in definition.values:
            raise FieldValidationFailed(
                f"Field '{title}' expects one of {list(definition.values)}"
            )
        return FieldValue(ValueKind.SELECTION, raw)
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise FieldValidationFailed(f"Field '{title}' expects a number")
    number = float(raw)
    if definition.minimum is not None and number < definition.minimum:
        raise FieldValidationFailed(f"Field '{title}' is below {definition.minimum}")
    if definition.maximum is not None and number > definition.maximum:
        raise FieldValidationFailed(f"Field '{title}' is above {definition.maximum}")
    return FieldValue(ValueKind.NUMBER, number)


def _retag(definition: FieldDefinition, value: FieldValue) -> FieldValue:
    expected = _KIND_BY_FIELD_TYPE[definition.type]
    if expected is ValueKind.SELECTION and value.kind is ValueKind.TEXT:
        return FieldValue(ValueKind.SELECTION, value.value)
    return value
