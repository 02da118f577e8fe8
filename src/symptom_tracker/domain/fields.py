"""Domain models and validation for user-defined fields."""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum

from symptom_tracker.domain.errors import FieldValidationFailed, UnknownFieldType


class FieldType(StrEnum):
    """Input types a tracked field can have."""

    TEXT = "text"
    BOOLEAN = "boolean"
    SELECT = "select"
    SLIDER = "slider"


REQUIRED_FIELD_KEYS = ("title", "label", "type", "order")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class FieldDefinition:
    """A user-configured tracked attribute."""

    id: str
    user_id: str
    title: str
    label: str
    type: FieldType
    order: int
    multiline: bool = False
    point_color: str | None = None
    point_style: str | None = None
    values: tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "FieldDefinition":
        """Build a field definition from a stored document."""
        raw_values = row.get("values")
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id", "")),
            title=str(row.get("title", "")),
            label=str(row.get("label", "")),
            type=FieldType(str(row.get("type", FieldType.TEXT))),
            order=coerce_order(row.get("order")),
            multiline=bool(row.get("multiline", False)),
            point_color=_optional_str(row.get("point_color")),
            point_style=_optional_str(row.get("point_style")),
            values=tuple(str(v) for v in raw_values)
            if isinstance(raw_values, list | tuple)
            else (),
            minimum=_optional_number(row.get("minimum")),
            maximum=_optional_number(row.get("maximum")),
        )


def coerce_order(raw: object) -> int:
    """Return a sortable order value, falling back to 0."""
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw)
    if isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        return int(match.group(1)) if match else 0
    return 0


def sort_fields(fields: Iterable[FieldDefinition]) -> list[FieldDefinition]:
    """Sort fields by order ascending, keeping insertion order for ties."""
    return sorted(fields, key=lambda field: field.order)


def validate_field_payload(payload: Mapping[str, object]) -> dict[str, object]:
    """Validate a field definition payload and return its normalized form.

    Raises ``UnknownFieldType`` for unsupported types and
    ``FieldValidationFailed`` for any other violation.
    """
    for key in REQUIRED_FIELD_KEYS:
        value = payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise FieldValidationFailed(f"Field '{key}' is required")

    raw_type = str(payload["type"]).strip()
    try:
        field_type = FieldType(raw_type)
    except ValueError as exc:
        raise UnknownFieldType(f"Unknown field type: {raw_type}") from exc

    normalized: dict[str, object] = {
        "title": str(payload["title"]).strip(),
        "label": str(payload["label"]).strip(),
        "type": field_type.value,
        "order": _parse_order(payload["order"]),
    }

    if field_type is FieldType.TEXT:
        normalized["multiline"] = bool(payload.get("multiline", False))
    elif field_type is FieldType.BOOLEAN:
        point_color = payload.get("point_color")
        point_style = payload.get("point_style")
        if not isinstance(point_color, str) or not isinstance(point_style, str):
            raise FieldValidationFailed(
                "Boolean fields require string point_color and point_style"
            )
        normalized["point_color"] = point_color.strip()
        normalized["point_style"] = point_style.strip()
    elif field_type is FieldType.SELECT:
        values = payload.get("values")
        if not isinstance(values, list | tuple):
            raise FieldValidationFailed("Select fields require a list of values")
        cleaned = [str(value).strip() for value in values if str(value).strip()]
        if not cleaned:
            raise FieldValidationFailed("Select fields require at least one value")
        normalized["values"] = cleaned
    else:
        minimum = payload.get("minimum")
        maximum = payload.get("maximum")
        if not _is_number(minimum) or not _is_number(maximum):
            raise FieldValidationFailed("Slider fields require numeric bounds")
        if minimum >= maximum:
            raise FieldValidationFailed("Slider minimum must be below maximum")
        normalized["minimum"] = minimum
        normalized["maximum"] = maximum

    return normalized


def _parse_order(raw: object) -> int:
    if isinstance(raw, bool):
        raise FieldValidationFailed("Field 'order' must be a number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise FieldValidationFailed("Field 'order' must be a number")


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_number(value: object) -> float | None:
    if _is_number(value):
        return float(value)
    return None
