"""
Caching for frequently requested dashboard data
Redis-backed so invalidation reaches every API worker; without Redis configured
each process keeps its own TTL/LRU cache instead.
"""
import json
import logging
import time
from collections import OrderedDict
from functools import wraps
from threading import Lock
from typing import Any, Callable, Optional

import redis

from .job_lock import get_redis_client

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "inkstudio:cache:"


class LocalCache:
    """Single-process TTL cache with least-recently-used eviction"""

    def __init__(self, max_size: int = 1000, default_ttl: int = 300, clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.misses += 1
                return None

            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"🧹 Cache EVICT: {evicted}")
            self._entries[key] = (self._clock() + (ttl or self.default_ttl), value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = self.misses = self.evictions = 0

    def stats(self) -> dict:
        with self._lock:
            total = self.hits + self.misses
            return {
                "backend": "local",
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "hit_rate": (self.hits / total) if total else 0.0,
            }


class Cache:
    """Redis cache wrapper with JSON serialization and a local fallback"""

    def __init__(self, client: Optional[redis.Redis] = None, local: Optional[LocalCache] = None, default_ttl: int = 300):
        self._client = client
        self.local = local or LocalCache(default_ttl=default_ttl)
        self.default_ttl = default_ttl

    def _get_client(self) -> Optional[redis.Redis]:
        """Explicit client if given, else the shared one from job_lock"""
        return self._client if self._client is not None else get_redis_client()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if client is None:
            return self.local.get(key)

        try:
            value = client.get(KEY_NAMESPACE + key)
        except redis.RedisError as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

        if value is None:
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        logger.debug(f"✅ Cache HIT: {key}")
        return json.loads(value)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL (default 5 minutes); value must be JSON serializable"""
        client = self._get_client()
        if client is None:
            self.local.set(key, value, ttl)
            return True

        try:
            client.setex(KEY_NAMESPACE + key, ttl or self.default_ttl, json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if client is None:
            return self.local.delete(key)

        try:
            return bool(client.delete(KEY_NAMESPACE + key))
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def delete_prefix(self, prefix: str) -> int:
        """Delete all keys starting with prefix (e.g., 'appointments:')"""
        client = self._get_client()
        if client is None:
            return self.local.delete_prefix(prefix)

        deleted = 0
        try:
            # Batched SCAN + DEL
            batch = []
            for redis_key in client.scan_iter(match=f"{KEY_NAMESPACE}{prefix}*", count=500):
                batch.append(redis_key)
                if len(batch) >= 500:
                    deleted += client.delete(*batch)
                    batch = []
            if batch:
                deleted += client.delete(*batch)
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete prefix error for {prefix}: {e}")
        return deleted

    def clear(self) -> None:
        """Drop every cached entry this backend owns"""
        self.local.clear()
        if self._get_client() is not None:
            self.delete_prefix("")

    def stats(self) -> dict:
        client = self._get_client()
        if client is None:
            return self.local.stats()

        try:
            info = client.info("stats")
        except redis.RedisError as e:
            logger.error(f"❌ Failed to get cache stats: {e}")
            return {"backend": "redis", "available": False, "error": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "backend": "redis",
            "available": True,
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / max(hits + misses, 1),
        }


# Global cache instance
cache = Cache()


def cached(key_prefix: str, ttl: int = 300):
    """
    Decorator to cache function results

    Usage:
        @cached("appointments:stats", ttl=60)
        def get_status_summary(self):
            ...
    """

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = key_prefix
            if kwargs:
                cache_key += ":" + ":".join(f"{k}={v}" for k, v in sorted(kwargs.items()))

            result = cache.get(cache_key)
            if result is not None:
                return result

            result = func(*args, **kwargs)
            if result is not None:
                cache.set(cache_key, result, ttl)
            return result

        return wrapper

    return decorator


def invalidate_appointment_cache() -> None:
    deleted = cache.delete_prefix("appointments:")
    if deleted:
        logger.debug(f"🧹 Invalidated {deleted} appointment cache entries")
