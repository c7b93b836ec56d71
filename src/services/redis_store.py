"""Redis-backed key/value adapter used by the conversation store."""

from __future__ import annotations

import logging
from typing import Protocol

from redis.asyncio import Redis

from config import RedisConfig

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal async key/value contract consumed by the conversation store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def keys(self, pattern: str) -> list[str]: ...


def create_redis_client(config: RedisConfig) -> Redis:
    """Construct a configured asyncio Redis client instance."""
    return Redis.from_url(
        config.url,
        socket_connect_timeout=config.connect_timeout_seconds,
        socket_timeout=config.socket_timeout_seconds,
        decode_responses=True,
        encoding="utf-8",
    )


class RedisKeyValueStore:
    """Concrete key/value store using redis-py asyncio operations."""

    def __init__(self, *, config: RedisConfig | None = None, client: Redis | None = None) -> None:
        if client is None:
            if config is None:
                raise ValueError("RedisKeyValueStore requires a config or a client")
            client = create_redis_client(config)
        self._client = client

    async def get(self, key: str) -> str | None:
        """Read one value by key."""
        value = await self._client.get(key)
        if value is None:
            return None
        return str(value)

    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        """Set one value with optional TTL in seconds."""
        if ttl_seconds is None:
            await self._client.set(key, value)
            return
        await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> bool:
        """Delete one key and return whether a value existed."""
        return bool(await self._client.delete(key))

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching a glob pattern."""
        return [str(key) for key in await self._client.keys(pattern)]

    async def ping(self) -> bool:
        """Return Redis ping status."""
        try:
            return bool(await self._client.ping())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Redis ping failed: %s", type(exc).__name__)
            return False

    async def close(self) -> None:
        """Release pooled connections."""
        await self._client.aclose()
