"""
Tenant-scoped lookup cache (tenants, active locations).

Two backends share one async interface so the resolver and the store can be
handed either:

- ``InMemoryTTLCache`` — per-process dict with TTL and oldest-first eviction.
- ``RedisTTLCache`` — JSON values in Redis with ``SETEX``; shared by workers.

The instance is created with the app and closed in its lifespan.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any

import redis.asyncio as aioredis

from app.core.config import Settings

logger = logging.getLogger(__name__)


class TTLCache(ABC):
    @abstractmethod
    async def get(self, key: str) -> Any | None: ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...

    async def close(self) -> None:
        return None


class InMemoryTTLCache(TTLCache):
    def __init__(self, max_size: int = 1000, default_ttl: int = 3600) -> None:
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() > expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (value, time.monotonic() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = time.monotonic()
        expired = [k for k, (_, exp) in self._entries.items() if now > exp]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisTTLCache(TTLCache):
    def __init__(self, url: str, default_ttl: int = 3600, prefix: str = "attendance:") -> None:
        self.default_ttl = default_ttl
        self.prefix = prefix
        self._client = aioredis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(self.prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        await self._client.setex(self.prefix + key, ttl, json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client.delete(self.prefix + key)

    async def clear(self) -> None:
        async for key in self._client.scan_iter(match=self.prefix + "*"):
            await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


def resolve_backend(settings: Settings) -> str:
    backend = (settings.CACHE_BACKEND or "").strip().lower()
    if not backend:
        return "redis" if settings.WEB_CONCURRENCY > 1 else "memory"
    if backend == "memory" and settings.WEB_CONCURRENCY > 1:
        logger.warning(
            "In-memory lookup cache with %d workers: location changes reach other "
            "workers only after CACHE_TTL_SECONDS=%d",
            settings.WEB_CONCURRENCY, settings.CACHE_TTL_SECONDS,
        )
    return backend


def build_cache(settings: Settings) -> TTLCache:
    if resolve_backend(settings) == "redis":
        logger.info("Using Redis lookup cache at %s", settings.REDIS_URL)
        return RedisTTLCache(settings.REDIS_URL, default_ttl=settings.CACHE_TTL_SECONDS)
    return InMemoryTTLCache(
        max_size=settings.CACHE_MAX_SIZE, default_ttl=settings.CACHE_TTL_SECONDS
    )
