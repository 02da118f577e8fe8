"""Chart and table preparation for symptom entries."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from symptom_tracker.domain.charts import (
    CATEGORY_PALETTE,
    DEFAULT_POINT_COLOR,
    DEFAULT_POINT_STYLE,
    MOVING_AVERAGE_WINDOW,
    POINT_STYLES,
    Annotation,
    DateRange,
    SeriesBundle,
    SymptomTable,
    WeekBucket,
)
from symptom_tracker.domain.entries import FieldValue, SymptomEntry, ValueKind
from symptom_tracker.domain.fields import FieldDefinition, FieldType, sort_fields
from symptom_tracker.services.entries import DATE_COLUMN, SymptomEntryService
from symptom_tracker.services.fields import FieldDefinitionService

CHARTED_TYPES = frozenset({FieldType.SLIDER, FieldType.SELECT})


@dataclass
class ChartService:
    """Service for building chart series and tables from stored entries."""

    field_service: FieldDefinitionService
    entry_service: SymptomEntryService

    def load(
        self,
        user_id: str,
        date_range: DateRange | None = None,
        toggles: Mapping[str, bool] | None = None,
    ) -> list[SeriesBundle]:
        """Fetch the user's fields and entries and prepare chart series."""
        fields = self.field_service.list_fields(user_id)
        entries = self._entries(user_id, date_range, fields)
        return prepare(entries, fields, toggles or {})

    def load_table(
        self, user_id: str, date_range: DateRange | None = None
    ) -> SymptomTable:
        """Fetch the user's history as a table, newest first."""
        fields = self.field_service.list_fields(user_id)
        entries = self._entries(user_id, date_range, fields, descending=True)
        return build_table(entries, fields)

    def _entries(
        self,
        user_id: str,
        date_range: DateRange | None,
        fields: list[FieldDefinition],
        descending: bool = False,
    ) -> list[SymptomEntry]:
        return self.entry_service.list_entries(
            user_id,
            start=date_range.start if date_range else None,
            end=date_range.end if date_range else None,
            descending=descending,
            fields=fields,
        )


def prepare(
    entries: Iterable[SymptomEntry],
    fields: Iterable[FieldDefinition],
    toggles: Mapping[str, bool],
) -> list[SeriesBundle]:
    """Build per-field series, averages, annotations and weekly buckets."""
    ordered = sorted(entries, key=lambda entry: entry.symptom_date)
    if not ordered:
        return []
    sorted_fields = sort_fields(fields)
    flags = [
        field
        for field in sorted_fields
        if field.type is FieldType.BOOLEAN and toggles.get(field.title)
    ]
    bundles = []
    for field in sorted_fields:
        if field.type not in CHARTED_TYPES:
            continue
        dates = [entry.symptom_date for entry in ordered]
        raw = [entry.values.get(field.title) for entry in ordered]
        values = [value.value if value is not None else None for value in raw]
        numbers = [_as_number(value) for value in raw]
        bundle = SeriesBundle(
            title=field.title,
            label=field.label,
            field_type=field.type,
            dates=dates,
            values=values,
            moving_average=moving_average(numbers),
            mean=[_mean(numbers)] * len(numbers),
            annotations=_annotations(ordered, values, flags),
        )
        if field.type is FieldType.SELECT:
            labels = [value if isinstance(value, str) else None for value in values]
            bundle.category_colors = assign_colors(labels)
            bundle.weekly_counts = bucket_by_week(dates, labels)
        bundles.append(bundle)
    return bundles


def moving_average(
    values: list[float], window: int = MOVING_AVERAGE_WINDOW
) -> list[float | None]:
    """Return the trailing mean over ``window`` values, None until it fills."""
    averages: list[float | None] = []
    for index in range(len(values)):
        if index < window - 1:
            averages.append(None)
            continue
        trailing = values[index - window + 1 : index + 1]
        averages.append(sum(trailing) / window)
    return averages


def assign_colors(values: Iterable[str | None]) -> dict[str, str]:
    """Assign a palette color to each distinct value in first-seen order."""
    colors: dict[str, str] = {}
    for value in values:
        if value is None or value in colors:
            continue
        colors[value] = CATEGORY_PALETTE[len(colors) % len(CATEGORY_PALETTE)]
    return colors


def bucket_by_week(
    dates: list[datetime], values: list[str | None]
) -> list[WeekBucket]:
    """Count values per week, starting on the Monday of the earliest date.

    Weeks without any occurrences are omitted.
    """
    if not dates:
        return []
    first_day = min(dates).date()
    week_zero = first_day - timedelta(days=first_day.weekday())
    categories = list(assign_colors(values))
    weeks: dict[int, dict[str, int]] = {}
    for moment, value in zip(dates, values, strict=True):
        if value is None:
            continue
        index = (moment.date() - week_zero).days // 7
        counts = weeks.setdefault(index, dict.fromkeys(categories, 0))
        counts[value] += 1
    return [
        WeekBucket(week_start=week_zero + timedelta(weeks=index), counts=counts)
        for index, counts in sorted(weeks.items())
        if sum(counts.values()) > 0
    ]


def build_table(
    entries: Iterable[SymptomEntry], fields: Iterable[FieldDefinition]
) -> SymptomTable:
    """Lay entries out as rows with one column per field."""
    titles = [field.title for field in sort_fields(fields)]
    rows = []
    for entry in entries:
        row = {"id": entry.id, DATE_COLUMN: entry.symptom_date.strftime("%d/%m")}
        for title in titles:
            row[title] = _format_cell(entry.values.get(title))
        rows.append(row)
    return SymptomTable(columns=[DATE_COLUMN, *titles], rows=rows)


def preset_range(days: int, now: datetime | None = None) -> DateRange:
    """Return the range covering the last ``days`` days through today."""
    current = now or datetime.now(tz=UTC)
    tz = current.tzinfo or UTC
    end = datetime.combine(current.date(), time.max, tzinfo=tz)
    try:
        start_day: date = (end - timedelta(days=days)).date()
    except OverflowError:
        start_day = date.min
    start = datetime.combine(start_day, time.min, tzinfo=tz)
    return DateRange(start=start, end=end)


def resolve_range(
    days: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> DateRange | None:
    """Pick a preset range, an explicit range, or no range at all.

    A preset wins over explicit bounds. An open bound runs to the earliest
    representable time or to the current time.
    """
    if days is not None:
        return preset_range(days, now)
    if start is None and end is None:
        return None
    return DateRange(
        start=start or datetime.min.replace(tzinfo=UTC),
        end=end or now or datetime.now(tz=UTC),
    )


def _annotations(
    entries: list[SymptomEntry],
    values: list[str | float | None],
    flags: list[FieldDefinition],
) -> list[Annotation]:
    markers = []
    for flag in flags:
        color = flag.point_color or DEFAULT_POINT_COLOR
        style = (
            flag.point_style
            if flag.point_style in POINT_STYLES
            else DEFAULT_POINT_STYLE
        )
        for entry, value in zip(entries, values, strict=True):
            marker = entry.values.get(flag.title)
            if marker is None or marker.value is not True or value is None:
                continue
            markers.append(
                Annotation(
                    date=entry.symptom_date,
                    value=value,
                    source_title=flag.title,
                    color=color,
                    style=style,
                )
            )
    return markers


def _as_number(value: FieldValue | None) -> float:
    if value is None:
        return 0.0
    number = value.as_number()
    return number if number is not None else 0.0


def _mean(numbers: list[float]) -> float:
    if not numbers:
        return 0.0
    return sum(numbers) / len(numbers)


def _format_cell(value: FieldValue | None) -> str:
    if value is None:
        return ""
    if value.kind is ValueKind.BOOLEAN:
        return "Yes" if value.value else "No"
    if value.kind is ValueKind.NUMBER and float(value.value).is_integer():
        return str(int(value.value))
    return str(value.value)
