"""Domain models for chart and table views."""

from dataclasses import dataclass, field
from datetime import date, datetime

from symptom_tracker.domain.fields import FieldType

MOVING_AVERAGE_WINDOW = 5
MAX_RANGE_DAYS = 36_500
DEFAULT_POINT_COLOR = "red"
DEFAULT_POINT_STYLE = "star"
POINT_STYLES = frozenset(
    {
        "circle",
        "cross",
        "crossRot",
        "dash",
        "line",
        "rect",
        "rectRounded",
        "rectRot",
        "star",
        "triangle",
    }
)
CATEGORY_PALETTE = (
    "#4e79a7",
    "#f28e2b",
    "#e15759",
    "#76b7b2",
    "#59a14f",
    "#edc948",
    "#b07aa1",
    "#ff9da7",
    "#9c755f",
    "#bab0ac",
)


@dataclass(frozen=True)
class Annotation:
    """A marker drawn where a boolean field was true."""

    date: datetime
    value: str | float
    source_title: str
    color: str
    style: str


@dataclass(frozen=True)
class WeekBucket:
    """Occurrences of each categorical value within one week."""

    week_start: date
    counts: dict[str, int]


@dataclass
class SeriesBundle:
    """Chart-ready series for one field."""

    title: str
    label: str
    field_type: FieldType
    dates: list[datetime]
    values: list[str | float | None]
    moving_average: list[float | None]
    mean: list[float]
    annotations: list[Annotation] = field(default_factory=list)
    category_colors: dict[str, str] = field(default_factory=dict)
    weekly_counts: list[WeekBucket] = field(default_factory=list)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of datetimes."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class SymptomTable:
    """Tabular history of entries."""

    columns: list[str]
    rows: list[dict[str, str]]
