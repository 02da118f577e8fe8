"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from symptom_tracker.adapters.redis_key_value_store import RedisKeyValueStore
from symptom_tracker.adapters.supabase_document_repository import (
    SupabaseDocumentRepository,
)
from symptom_tracker.adapters.supabase_identity_client import (
    HttpxIdentityClient,
    IdentityClient,
)
from symptom_tracker.config import Settings
from symptom_tracker.services.cache import (
    CacheStore,
    InMemoryKeyValueStore,
    KeyValueStore,
)
from symptom_tracker.services.charts import ChartService
from symptom_tracker.services.drafts import DraftService
from symptom_tracker.services.entries import SymptomEntryService
from symptom_tracker.services.fields import FieldDefinitionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_client: IdentityClient
    cache: CacheStore
    field_service: FieldDefinitionService
    entry_service: SymptomEntryService
    chart_service: ChartService
    draft_service: DraftService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    redis_store: RedisKeyValueStore | None = None
    backend: KeyValueStore
    if resolved_settings.redis_url:
        redis_store = RedisKeyValueStore.create(
            resolved_settings.redis_url,
            expire_seconds=resolved_settings.cache_ttl_seconds or None,
        )
        backend = redis_store
    else:
        backend = InMemoryKeyValueStore()
    cache = CacheStore(backend, ttl_seconds=resolved_settings.cache_ttl_seconds)

    field_service = FieldDefinitionService.create(
        SupabaseDocumentRepository(supabase_client, resolved_settings.fields_table),
        cache,
        snapshot_limit=resolved_settings.snapshot_limit,
    )
    entry_service = SymptomEntryService.create(
        SupabaseDocumentRepository(supabase_client, resolved_settings.entries_table),
        cache,
        field_service,
        snapshot_limit=resolved_settings.snapshot_limit,
    )
    chart_service = ChartService(field_service, entry_service)
    draft_service = DraftService(
        entry_service, delay_seconds=resolved_settings.save_debounce_seconds
    )
    identity_client = HttpxIdentityClient.create(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )

    async def close_resources() -> None:
        await draft_service.close()
        await identity_client.close()
        if redis_store is not None:
            redis_store.close()

    return AppContainer(
        settings=resolved_settings,
        identity_client=identity_client,
        cache=cache,
        field_service=field_service,
        entry_service=entry_service,
        chart_service=chart_service,
        draft_service=draft_service,
        close_resources=close_resources,
    )
