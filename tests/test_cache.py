"""Tests for the per-user record cache."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from symptom_tracker.domain.timestamps import normalize_timestamp
from symptom_tracker.services.cache import (
    CacheKey,
    CacheStore,
    InMemoryKeyValueStore,
    RecordKind,
)

FIELDS = RecordKind.FIELD_DEFINITIONS
ENTRIES = RecordKind.SYMPTOM_ENTRIES


@dataclass
class _Clock:
    now: datetime = datetime(2024, 5, 1, 12, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


@dataclass
class _BrokenStore:
    calls: list[str] = field(default_factory=list)

    def get(self, key: str) -> str | None:
        self.calls.append("get")
        raise ConnectionError("down")

    def set(self, key: str, value: str) -> None:
        self.calls.append("set")
        raise ConnectionError("down")

    def remove(self, key: str) -> None:
        self.calls.append("remove")
        raise ConnectionError("down")


def test_put_and_get_by_user_and_kind() -> None:
    cache = CacheStore(InMemoryKeyValueStore())

    cache.put("user-1", FIELDS, [{"id": "a", "title": "pain"}])

    assert cache.get("user-1", FIELDS) == [{"id": "a", "title": "pain"}]
    assert cache.get("user-1", ENTRIES) is None
    assert cache.get("user-2", FIELDS) is None


def test_keys_do_not_collide_on_separator_characters() -> None:
    first = CacheKey("a_b", FIELDS).encode()
    second = CacheKey("a", FIELDS).encode()

    assert first != second
    assert json.loads(first)[1] == "a_b"


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    backend = InMemoryKeyValueStore()
    cache = CacheStore(backend, ttl_seconds=60, clock=clock)
    cache.put("user-1", ENTRIES, [{"id": "e1"}])

    clock.now += timedelta(seconds=59)
    assert cache.get("user-1", ENTRIES) == [{"id": "e1"}]

    clock.now += timedelta(seconds=1)
    assert cache.get("user-1", ENTRIES) is None
    assert backend.get(CacheKey("user-1", ENTRIES).encode()) is None


def test_zero_ttl_never_expires() -> None:
    clock = _Clock()
    cache = CacheStore(InMemoryKeyValueStore(), ttl_seconds=0, clock=clock)
    cache.put("user-1", ENTRIES, [{"id": "e1"}])

    clock.now += timedelta(days=365)

    assert cache.get("user-1", ENTRIES) == [{"id": "e1"}]


def test_corrupt_entry_is_discarded() -> None:
    backend = InMemoryKeyValueStore()
    key = CacheKey("user-1", FIELDS).encode()
    backend.set(key, "{not json")
    cache = CacheStore(backend)

    assert cache.get("user-1", FIELDS) is None
    assert backend.get(key) is None


def test_patches_apply_only_to_existing_entries() -> None:
    cache = CacheStore(InMemoryKeyValueStore())

    cache.patch_insert("user-1", FIELDS, {"id": "a"})
    assert cache.get("user-1", FIELDS) is None

    cache.put("user-1", FIELDS, [{"id": "a", "title": "pain"}])
    cache.patch_insert("user-1", FIELDS, {"id": "b", "title": "mood"})
    cache.patch_insert("user-1", FIELDS, {"id": "c"}, prepend=False)
    cache.patch_update("user-1", FIELDS, "a", {"title": "ache"})
    cache.patch_remove("user-1", FIELDS, "c")

    assert cache.get("user-1", FIELDS) == [
        {"id": "b", "title": "mood"},
        {"id": "a", "title": "ache"},
    ]


def test_patch_refreshes_write_time() -> None:
    clock = _Clock()
    cache = CacheStore(InMemoryKeyValueStore(), ttl_seconds=60, clock=clock)
    cache.put("user-1", FIELDS, [{"id": "a"}])

    clock.now += timedelta(seconds=50)
    cache.patch_update("user-1", FIELDS, "a", {"title": "pain"})
    clock.now += timedelta(seconds=50)

    assert cache.get("user-1", FIELDS) == [{"id": "a", "title": "pain"}]


def test_datetimes_are_stored_as_seconds_and_nanoseconds() -> None:
    backend = InMemoryKeyValueStore()
    cache = CacheStore(backend)
    moment = datetime(2024, 5, 1, 8, 0, 0, 1_000, tzinfo=UTC)

    cache.put("user-1", ENTRIES, [{"id": "e1", "symptom_date": moment}])

    stored = json.loads(backend.get(CacheKey("user-1", ENTRIES).encode()))
    raw = stored["data"][0]["symptom_date"]
    assert raw == {"seconds": int(moment.timestamp()), "nanoseconds": 1_000_000}
    cached = cache.get("user-1", ENTRIES)
    assert normalize_timestamp(cached[0]["symptom_date"]) == moment


def test_clear_removes_one_or_all_kinds() -> None:
    cache = CacheStore(InMemoryKeyValueStore())
    cache.put("user-1", FIELDS, [{"id": "a"}])
    cache.put("user-1", ENTRIES, [{"id": "e"}])
    cache.put("user-2", FIELDS, [{"id": "z"}])

    cache.clear("user-1", FIELDS)
    assert cache.get("user-1", FIELDS) is None
    assert cache.get("user-1", ENTRIES) == [{"id": "e"}]

    cache.clear("user-1")
    assert cache.get("user-1", ENTRIES) is None
    assert cache.get("user-2", FIELDS) == [{"id": "z"}]


def test_storage_failures_do_not_propagate() -> None:
    backend = _BrokenStore()
    cache = CacheStore(backend)

    cache.put("user-1", FIELDS, [{"id": "a"}])
    assert cache.get("user-1", FIELDS) is None
    cache.clear("user-1")

    assert backend.calls[:2] == ["set", "get"]
