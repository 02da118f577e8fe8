"""Tests for the Supabase document repository."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import pytest

from symptom_tracker.adapters.supabase_document_repository import (
    SupabaseDocumentRepository,
)


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    last_order: tuple[str, bool] | None = None
    last_limit: int | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        self.last_filters = []
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        self.last_filters = []
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        self.last_filters = []
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def lte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lte", column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeTable":
        self.last_limit = count
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_query_applies_owner_range_order_and_limit() -> None:
    client = FakeSupabaseClient()
    table = client.table("symptoms")
    table.queue("select", [{"id": "e1", "user_id": "user-1"}])
    repository = SupabaseDocumentRepository(client, "symptoms")
    start = datetime(2024, 1, 1, tzinfo=UTC)
    end = datetime(2024, 1, 31, tzinfo=UTC)

    rows = repository.query(
        "user-1",
        order_by="symptom_date",
        descending=True,
        start=start,
        end=end,
        limit=5,
    )

    assert rows == [{"id": "e1", "user_id": "user-1"}]
    assert table.last_filters == [
        ("eq", "user_id", "user-1"),
        ("gte", "symptom_date", start.isoformat()),
        ("lte", "symptom_date", end.isoformat()),
    ]
    assert table.last_order == ("symptom_date", True)
    assert table.last_limit == 5


def test_insert_serializes_dates_and_returns_id() -> None:
    client = FakeSupabaseClient()
    table = client.table("symptoms")
    table.queue("insert", [{"id": 42}])
    repository = SupabaseDocumentRepository(client, "symptoms")

    record_id = repository.insert(
        "user-1", {"symptom_date": date(2024, 2, 1), "values": {"pain": 3}}
    )

    assert record_id == "42"
    assert table.last_payload == {
        "user_id": "user-1",
        "symptom_date": "2024-02-01",
        "values": {"pain": 3},
    }


def test_insert_without_data_raises() -> None:
    repository = SupabaseDocumentRepository(FakeSupabaseClient(), "dynamic_fields")

    with pytest.raises(RuntimeError):
        repository.insert("user-1", {"title": "pain"})


def test_update_delete_and_get_by_id() -> None:
    client = FakeSupabaseClient()
    table = client.table("dynamic_fields")
    table.queue("select", [{"id": "f1", "user_id": "user-1", "title": "pain"}])
    repository = SupabaseDocumentRepository(client, "dynamic_fields")

    repository.update("f1", {"label": "Pain"})
    assert table.last_payload == {"label": "Pain"}
    assert table.last_filters == [("eq", "id", "f1")]

    repository.delete("f1")
    assert table.last_filters == [("eq", "id", "f1")]

    assert repository.get_by_id("f1") == {
        "id": "f1",
        "user_id": "user-1",
        "title": "pain",
    }
    assert repository.get_by_id("missing") is None
