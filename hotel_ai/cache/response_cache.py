"""
Response Cache
Stores fully composed chat turns and search results under fingerprint keys

Two backends share one interface:
- RedisCacheBackend: JSON payloads with SETEX
- InMemoryCacheBackend: TTL + LRU dict, used when Redis is disabled

ResponseCache wraps either backend and never raises: a read that fails or
times out is a miss, a write that fails or times out is logged and dropped.
"""

import asyncio
import json
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from loguru import logger


class CacheBackendError(Exception):
    pass


# ============================================
# Backends
# ============================================

class InMemoryCacheBackend:
    """
    Process-local cache with TTL expiry and LRU eviction

    When full, the least recently used entries are evicted down to 80% of
    capacity in one pass.
    """

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return raw

    async def set(self, key: str, raw: str, ttl: int) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (time.monotonic() + ttl, raw)
        if len(self._entries) > self.max_entries:
            self._evict()

    async def delete(self, key: str) -> int:
        return 1 if self._entries.pop(key, None) is not None else 0

    async def delete_pattern(self, pattern: str) -> int:
        prefix = pattern.rstrip("*")
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def ping(self) -> bool:
        return True

    def size(self) -> int:
        return len(self._entries)

    def _evict(self):
        target = int(self.max_entries * 0.8)
        while len(self._entries) > target:
            self._entries.popitem(last=False)


class RedisCacheBackend:
    """Redis-backed cache (redis.asyncio client)"""

    def __init__(self, client):
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else raw

    async def set(self, key: str, raw: str, ttl: int) -> None:
        await self.client.setex(key, ttl, raw)

    async def delete(self, key: str) -> int:
        return int(await self.client.delete(key))

    async def delete_pattern(self, pattern: str) -> int:
        keys = [key async for key in self.client.scan_iter(match=pattern, count=500)]
        if not keys:
            return 0
        return int(await self.client.delete(*keys))

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    def size(self) -> int:
        return -1


# ============================================
# Cache Store
# ============================================

class ResponseCache:
    """
    Cache store adapter with graceful degradation

    Usage:
        cache = ResponseCache(RedisCacheBackend(client), ttl_seconds=3600)

        cached = await cache.get(key)
        if cached is None:
            payload = await compute()
            await cache.set(key, payload)
    """

    def __init__(
        self,
        backend,
        ttl_seconds: int = 3600,
        timeout_seconds: float = 0.5,
    ):
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self.available = True
        self.stats = {"hits": 0, "misses": 0, "writes": 0, "errors": 0}

        logger.info(
            f"Response cache initialized: backend={type(backend).__name__}, "
            f"ttl={ttl_seconds}s, timeout={timeout_seconds}s"
        )

    async def _call(self, coro):
        try:
            result = await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            self.available = False
            raise CacheBackendError(f"cache call exceeded {self.timeout_seconds}s")
        except Exception as e:
            self.available = False
            raise CacheBackendError(str(e)) from e
        self.available = True
        return result

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Look up a cached payload

        Returns:
            The decoded payload, or None on miss, backend error or timeout
        """
        try:
            raw = await self._call(self.backend.get(key))
        except CacheBackendError as e:
            self.stats["errors"] += 1
            logger.warning(f"[Cache Error] get {key[:48]}... treated as miss: {e}")
            return None

        if raw is None:
            self.stats["misses"] += 1
            logger.debug(f"[Cache Miss] {key[:48]}...")
            return None

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            self.stats["errors"] += 1
            logger.warning(f"[Cache Error] corrupt entry {key[:48]}... treated as miss: {e}")
            return None

        self.stats["hits"] += 1
        logger.debug(f"[Cache Hit] {key[:48]}...")
        return payload

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a payload. Concurrent writers of one key race; last write wins.

        Returns:
            True if stored, False if the write was dropped
        """
        try:
            raw = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"[Cache Error] payload for {key[:48]}... not serialisable: {e}")
            return False

        try:
            await self._call(self.backend.set(key, raw, ttl or self.ttl_seconds))
        except CacheBackendError as e:
            self.stats["errors"] += 1
            logger.warning(f"[Cache Error] set {key[:48]}... dropped: {e}")
            return False

        self.stats["writes"] += 1
        return True

    async def invalidate(self, key: str) -> bool:
        try:
            return bool(await self._call(self.backend.delete(key)))
        except CacheBackendError as e:
            logger.warning(f"[Cache Error] invalidate {key[:48]}... failed: {e}")
            return False

    async def purge(self, pattern: str) -> int:
        """Delete every key matching a glob pattern such as 'search:v1:*'"""
        try:
            deleted = await self._call(self.backend.delete_pattern(pattern))
        except CacheBackendError as e:
            logger.error(f"[Cache Error] purge '{pattern}' failed: {e}")
            return 0
        logger.info(f"Purged {deleted} cache entries matching '{pattern}'")
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self._call(self.backend.ping()))
        except CacheBackendError:
            return False

    def get_stats(self) -> Dict[str, Any]:
        lookups = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "hit_rate": round(self.stats["hits"] / lookups, 3) if lookups else 0.0,
            "backend": type(self.backend).__name__,
            "available": self.available,
            "entries": self.backend.size(),
            "ttl_seconds": self.ttl_seconds,
        }
