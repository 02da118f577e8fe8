"""Tests for container wiring."""

import asyncio

from symptom_tracker.adapters.redis_key_value_store import RedisKeyValueStore
from symptom_tracker.containers import build_container
from symptom_tracker.services.cache import InMemoryKeyValueStore


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.chart_service.entry_service is container.entry_service
    assert isinstance(container.cache.backend, InMemoryKeyValueStore)
    assert container.cache.ttl_seconds == settings.cache_ttl_seconds
    asyncio.run(container.close_resources())


def test_build_container_uses_redis_when_configured(settings) -> None:
    settings = settings.model_copy(update={"redis_url": "redis://localhost:6379/0"})

    container = build_container(settings)

    assert isinstance(container.cache.backend, RedisKeyValueStore)
    asyncio.run(container.close_resources())
