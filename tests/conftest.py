"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from symptom_tracker.config import Settings
from symptom_tracker.containers import AppContainer
from symptom_tracker.domain.errors import InvalidTimestampFormat
from symptom_tracker.domain.models import CurrentUser
from symptom_tracker.domain.timestamps import normalize_timestamp
from symptom_tracker.services.cache import CacheStore, InMemoryKeyValueStore
from symptom_tracker.services.charts import ChartService
from symptom_tracker.services.drafts import DraftService
from symptom_tracker.services.entries import SymptomEntryService
from symptom_tracker.services.fields import FieldDefinitionService
from symptom_tracker.services.records import DocumentRepository

USER_TOKEN = "token-1"
OTHER_TOKEN = "token-2"


@dataclass
class InMemoryDocumentRepository(DocumentRepository):
    """In-memory document collection for tests."""

    rows: dict[str, dict[str, object]] = field(default_factory=dict)
    queries: list[dict[str, object]] = field(default_factory=list)
    failing: bool = False

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
        self.queries.append(
            {
                "user_id": user_id,
                "order_by": order_by,
                "descending": descending,
                "start": start,
                "end": end,
                "limit": limit,
            }
        )
        self._check()
        rows = [dict(row) for row in self.rows.values() if row["user_id"] == user_id]
        if start is not None:
            rows = [row for row in rows if _sort_value(row.get(order_by)) >= start]
        if end is not None:
            rows = [row for row in rows if _sort_value(row.get(order_by)) <= end]
        rows.sort(key=lambda row: _sort_value(row.get(order_by)), reverse=descending)
        return rows[:limit] if limit is not None else rows

    def insert(self, user_id: str, fields: dict[str, object]) -> str:
        self._check()
        record_id = uuid4().hex
        self.rows[record_id] = {
            "id": record_id,
            "user_id": user_id,
            **fields,
            "created_at": datetime.now(tz=UTC).isoformat(),
        }
        return record_id

    def update(self, record_id: str, fields: dict[str, object]) -> None:
        self._check()
        self.rows[record_id].update(fields)

    def delete(self, record_id: str) -> None:
        self._check()
        self.rows.pop(record_id, None)

    def get_by_id(self, record_id: str) -> dict[str, object] | None:
        self._check()
        row = self.rows.get(record_id)
        return dict(row) if row is not None else None

    def _check(self) -> None:
        if self.failing:
            raise ConnectionError("store unavailable")


def _sort_value(value: object) -> datetime:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=UTC)
    try:
        return normalize_timestamp(value)
    except InvalidTimestampFormat:
        return datetime.min.replace(tzinfo=UTC)


@dataclass
class FakeIdentityClient:
    """Identity client that accepts a fixed set of tokens."""

    users: dict[str, CurrentUser] = field(
        default_factory=lambda: {
            USER_TOKEN: CurrentUser(uid="user-1", email="one@example.com"),
            OTHER_TOKEN: CurrentUser(uid="user-2"),
        }
    )
    closed: bool = False

    async def get_user(self, access_token: str) -> CurrentUser | None:
        return self.users.get(access_token)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        environment="test",
    )


@pytest.fixture
def field_repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def entry_repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def cache() -> CacheStore:
    return CacheStore(InMemoryKeyValueStore())


@pytest.fixture
def field_service(
    field_repository: InMemoryDocumentRepository, cache: CacheStore
) -> FieldDefinitionService:
    return FieldDefinitionService.create(field_repository, cache)


@pytest.fixture
def entry_service(
    entry_repository: InMemoryDocumentRepository,
    cache: CacheStore,
    field_service: FieldDefinitionService,
) -> SymptomEntryService:
    return SymptomEntryService.create(entry_repository, cache, field_service)


@pytest.fixture
def container(
    settings: Settings,
    cache: CacheStore,
    field_service: FieldDefinitionService,
    entry_service: SymptomEntryService,
) -> AppContainer:
    draft_service = DraftService(entry_service, delay_seconds=0.01)
    identity_client = FakeIdentityClient()

    async def close_resources() -> None:
        await draft_service.close()
        await identity_client.close()

    return AppContainer(
        settings=settings,
        identity_client=identity_client,
        cache=cache,
        field_service=field_service,
        entry_service=entry_service,
        chart_service=ChartService(field_service, entry_service),
        draft_service=draft_service,
        close_resources=close_resources,
    )
