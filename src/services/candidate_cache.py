"""Optional cache of duplicate-detection candidate windows.

Scanning the ``category x +/-N days`` window is the only non-trivial read
in duplicate detection.  When an admin reopens the suggestions screen for
the same complaint, the window can be served from here instead.

Entries are keyed by category and complaint id and hold the serialised
candidate complaints.  Each category also has a generation token that is
part of every entry key; :meth:`CandidateCache.invalidate_category`
replaces the token, which orphans every cached window in that category at
once.  Writers call it whenever a complaint is added to a category or
changes status inside one.  Orphaned entries age out through TTL and LRU
capacity.  A Redis backend is used when configured and reachable, with
transparent fallback to the in-process LRU, so a missing Redis never
blocks a request.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import OrderedDict
from typing import Protocol, runtime_checkable
from uuid import uuid4

import orjson
import structlog
from pydantic import TypeAdapter, ValidationError

from src.models.complaint import Complaint

logger = structlog.get_logger(__name__)

_COMPLAINT_LIST = TypeAdapter(list[Complaint])


# ---------------------------------------------------------------------------
# Backend protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class CandidateBackend(Protocol):
    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# In-memory LRU backend
# ---------------------------------------------------------------------------


class _Entry:
    __slots__ = ("expires_at", "value")

    def __init__(self, value: bytes, ttl_seconds: int) -> None:
        self.value = value
        self.expires_at = time.monotonic() + ttl_seconds

    @property
    def expired(self) -> bool:
        return time.monotonic() > self.expires_at


class InMemoryCandidateBackend:
    """OrderedDict LRU with per-entry TTL, guarded by an :class:`asyncio.Lock`."""

    __slots__ = ("_data", "_lock", "_max_size")

    def __init__(self, *, max_size: int = 1_000) -> None:
        self._max_size = max_size
        self._data: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expired:
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return entry.value

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        async with self._lock:
            self._data.pop(key, None)
            while len(self._data) >= self._max_size:
                self._data.popitem(last=False)
            self._data[key] = _Entry(value, ttl_seconds)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    @property
    def size(self) -> int:
        return len(self._data)


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------


class RedisCandidateBackend:
    """``redis.asyncio`` backend with a pooled connection."""

    __slots__ = ("_pool", "_redis")

    def __init__(self, url: str, *, max_connections: int = 10) -> None:
        import redis.asyncio as aioredis

        self._pool = aioredis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            decode_responses=False,
        )
        self._redis = aioredis.Redis(connection_pool=self._pool)

    async def get(self, key: str) -> bytes | None:
        return await self._redis.get(key)

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        await self._redis.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception:
            return False

    async def close(self) -> None:
        await self._redis.aclose()
        await self._pool.aclose()


# ---------------------------------------------------------------------------
# CandidateCache  --  public API
# ---------------------------------------------------------------------------


class CandidateCache:
    """Candidate-window cache with Redis -> in-memory fallback.

    Parameters
    ----------
    ttl_seconds:
        Lifetime of each cached window.
    redis_url:
        Redis connection string.  *None* or ``""`` keeps everything in
        process memory.
    max_size:
        Capacity of the in-memory LRU.
    namespace:
        Key prefix, so several deployments can share one Redis.
    """

    __slots__ = (
        "_fallback",
        "_namespace",
        "_redis",
        "_redis_available",
        "_redis_checked",
        "_ttl",
    )

    def __init__(
        self,
        *,
        ttl_seconds: int = 60,
        redis_url: str | None = None,
        max_size: int = 1_000,
        namespace: str = "candidates:",
    ) -> None:
        self._ttl = ttl_seconds
        self._namespace = namespace
        self._fallback = InMemoryCandidateBackend(max_size=max_size)
        self._redis: RedisCandidateBackend | None = None
        self._redis_available = False
        self._redis_checked = False

        if redis_url:
            try:
                self._redis = RedisCandidateBackend(redis_url)
            except Exception:
                logger.warning("candidate_cache.redis_init_failed", redis_url=redis_url)
                self._redis = None

    def _generation_key(self, category_id: int) -> str:
        return f"{self._namespace}gen:{category_id}"

    def _key(self, category_id: int, generation: str, complaint_id: int) -> str:
        return f"{self._namespace}{category_id}:{generation}:{complaint_id}"

    async def _backend(self) -> CandidateBackend:
        """Best available backend; Redis is pinged once, lazily."""
        if self._redis is not None and not self._redis_checked:
            self._redis_checked = True
            self._redis_available = await self._redis.ping()
            if self._redis_available:
                logger.info("candidate_cache.redis_connected")
            else:
                logger.warning("candidate_cache.redis_unavailable_using_inmemory")

        if self._redis_available and self._redis is not None:
            return self._redis
        return self._fallback

    async def _call(self, method: str, *args: object) -> object:
        backend = await self._backend()
        if backend is self._redis:
            try:
                return await getattr(backend, method)(*args)
            except Exception:
                logger.warning("candidate_cache.redis_op_failed", method=method)
                self._redis_available = False
        return await getattr(self._fallback, method)(*args)

    async def _generation(self, category_id: int) -> str:
        """Current generation token of *category_id*, minting one if absent."""
        raw = await self._call("get", self._generation_key(category_id))
        if raw is not None:
            return raw.decode() if isinstance(raw, bytes) else str(raw)
        return await self._rotate(category_id)

    async def _rotate(self, category_id: int) -> str:
        token = uuid4().hex
        # Outlives every entry written under it; losing it early only causes misses
        await self._call("set", self._generation_key(category_id), token.encode(), self._ttl * 10)
        return token

    async def get(self, category_id: int, complaint_id: int) -> list[Complaint] | None:
        generation = await self._generation(category_id)
        raw = await self._call("get", self._key(category_id, generation, complaint_id))
        if raw is None:
            return None
        try:
            return _COMPLAINT_LIST.validate_python(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError):
            logger.warning("candidate_cache.corrupt_entry", category_id=category_id, complaint_id=complaint_id)
            return None

    async def put(self, category_id: int, complaint_id: int, candidates: list[Complaint]) -> None:
        generation = await self._generation(category_id)
        raw = orjson.dumps([c.model_dump(mode="json") for c in candidates])
        await self._call("set", self._key(category_id, generation, complaint_id), raw, self._ttl)

    async def invalidate_category(self, *category_ids: int) -> None:
        """Drop every cached window of the given categories."""
        for category_id in set(category_ids):
            await self._rotate(category_id)
            logger.debug("candidate_cache.category_invalidated", category_id=category_id)

    async def close(self) -> None:
        if self._redis is not None:
            with contextlib.suppress(Exception):
                await self._redis.close()
