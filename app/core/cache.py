from __future__ import annotations

# key/value store: redis with in-memory fallback
import logging
import time
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from redis import Connection, ConnectionPool, Redis, SSLConnection
from redis.exceptions import RedisError

from app.core.config import Settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String key/value store used for persisted client and cache records."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        ...

    def delete(self, key: str) -> None:
        ...


class HybridCacheManager:
    """Hybrid key/value store with Redis + in-memory fallback"""

    def __init__(
        self,
        redis_host: Optional[str] = None,
        redis_port: int = 6379,
        redis_ssl: bool = False,
        max_connections: Optional[int] = None,
        memory_max_size: int = 64 * 1024 * 1024,
        recheck_interval: int = 30 * 60,
    ):
        self.memory_cache: Dict[str, Tuple[bytes, Optional[float]]] = {}
        self._memory_cache_size = 0
        self._memory_lock = Lock()
        self._memory_max_size = memory_max_size
        self._recheck_interval = recheck_interval
        self._last_redis_check: Optional[float] = None
        self.redis_available = False

        if redis_host is None or redis_host.strip() == "":
            self.pool = None
            return
        self.pool = ConnectionPool(
            host=redis_host,
            port=redis_port,
            socket_connect_timeout=0.05,
            socket_timeout=5,
            retry_on_timeout=False,
            max_connections=max_connections,
            connection_class=SSLConnection if redis_ssl else Connection,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "HybridCacheManager":
        return cls(
            redis_host=settings.REDIS_HOST,
            redis_port=settings.REDIS_PORT,
            redis_ssl=settings.REDIS_SSL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            memory_max_size=settings.MEMORY_CACHE_MAX_SIZE,
            recheck_interval=settings.REDIS_RECHECK_INTERVAL,
        )

    def redis_connect(self) -> Optional[Redis]:
        """Connect to Redis, with a cooldown when unavailable"""
        # If Redis is not configured, skip
        if self.pool is None:
            return None

        # If Redis was available, try immediately
        if self.redis_available:
            try:
                rc = Redis(connection_pool=self.pool)
                if rc.ping():
                    return rc
                self.redis_available = False
                self._last_redis_check = time.time()
            except RedisError as e:
                logger.warning("Redis unavailable, falling back to memory: %s", e)
                self.redis_available = False
                self._last_redis_check = time.time()
            return None

        # If Redis is unavailable, only check once per recheck interval
        now = time.time()
        if self._last_redis_check is not None:
            if now - self._last_redis_check < self._recheck_interval:
                return None

        self._last_redis_check = now
        try:
            rc = Redis(connection_pool=self.pool)
            if rc.ping():
                self.redis_available = True
                return rc
        except RedisError as e:
            logger.debug("Redis still unavailable: %s", e)

        return None

    def get(self, key: str) -> Optional[str]:
        """Get a stored string, None when absent or expired"""
        result = self._get_redis(key)
        if result is None:
            result = self._get_memory(key)
        if result is None:
            return None
        try:
            return result.decode("utf-8")
        except UnicodeDecodeError:
            return None

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """Replace the whole value stored under key"""
        data = value.encode("utf-8")

        # Try Redis first
        if self._set_redis(key, data, ttl_seconds):
            return True

        # Fallback to memory
        self._set_memory(key, data, ttl_seconds)
        return True

    def delete(self, key: str) -> None:
        rc = self.redis_connect()
        if rc is not None:
            try:
                rc.delete(key)
            except RedisError as e:
                logger.warning("Failed to delete %s from Redis: %s", key, e)
            finally:
                rc.close()
        with self._memory_lock:
            self._drop_memory(key)

    def _set_redis(self, key: str, data: bytes, ttl_seconds: Optional[int]) -> bool:
        rc = self.redis_connect()
        if rc is None:
            return False
        try:
            if ttl_seconds is not None and ttl_seconds > 0:
                rc.set(key, data, ex=ttl_seconds)
            else:
                rc.set(key, data)
            return True
        except RedisError:
            return False
        finally:
            rc.close()

    def _get_redis(self, key: str) -> Optional[bytes]:
        rc = self.redis_connect()
        if rc is None:
            return None
        try:
            result = rc.get(key)
            if result is not None and result != b'':
                return result
            return None
        except RedisError:
            return None
        finally:
            rc.close()

    def _drop_memory(self, key: str) -> None:
        """Remove a memory entry; caller holds the lock"""
        cached = self.memory_cache.pop(key, None)
        if cached is not None:
            self._memory_cache_size -= len(cached[0])

    def _evict_memory(self, needed: int) -> None:
        """Free room for needed bytes: expired entries first, then the soonest to expire"""
        while self.memory_cache and self._memory_cache_size + needed > self._memory_max_size:
            now = time.time()
            expired = [k for k, (_, exp) in self.memory_cache.items() if exp is not None and exp <= now]
            if not expired:
                expired = [min(self.memory_cache, key=lambda k: self.memory_cache[k][1] or float("inf"))]
            for k in expired:
                self._drop_memory(k)

    def _set_memory(self, key: str, data: bytes, ttl_seconds: Optional[int]) -> None:
        expires_at = None if ttl_seconds is None else time.time() + ttl_seconds
        with self._memory_lock:
            self._drop_memory(key)
            self._evict_memory(len(data))
            self.memory_cache[key] = (data, expires_at)
            self._memory_cache_size += len(data)

    def _get_memory(self, key: str) -> Optional[bytes]:
        """Get from memory, removing the entry once expired"""
        with self._memory_lock:
            cached = self.memory_cache.get(key)
            if cached is None:
                return None
            value, expires_at = cached
            if expires_at is not None and expires_at <= time.time():
                self._drop_memory(key)
                return None
            return value
