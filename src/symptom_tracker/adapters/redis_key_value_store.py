"""Redis-backed key-value store for the record cache."""

from dataclasses import dataclass

import redis

from symptom_tracker.services.cache import KeyValueStore


@dataclass
class RedisKeyValueStore(KeyValueStore):
    """Key-value store kept in Redis.

    ``expire_seconds`` lets Redis reclaim entries the cache would already
    treat as expired.
    """

    client: redis.Redis
    expire_seconds: int | None = None

    @classmethod
    def create(
        cls, url: str, expire_seconds: int | None = None
    ) -> "RedisKeyValueStore":
        """Create a store with a client connected to ``url``."""
        return cls(
            client=redis.Redis.from_url(url, decode_responses=True),
            expire_seconds=expire_seconds,
        )

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        self.client.set(key, value, ex=self.expire_seconds or None)

    def remove(self, key: str) -> None:
        """Remove a value if present."""
        self.client.delete(key)

    def close(self) -> None:
        """Close the underlying connection pool."""
        self.client.close()
