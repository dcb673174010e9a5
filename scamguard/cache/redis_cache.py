"""
Redis Document Cache
====================

JSON documents keyed by string, used for user preferences and seller
profiles.

Two backends behind one interface:
    redis   - shared across API workers, survives restarts
    memory  - process-local dict with the same JSON copy semantics

``fallback_to_memory`` decides what a Redis failure means:
    True   log a warning and serve the operation from memory
    False  raise PersistenceError (preference storage uses this so an
           outage reaches the caller instead of silently diverging)

Usage:
    cache = RedisCache(fallback_to_memory=False)
    cache.set("scam_prefs:user-1", {"globalThreshold": 70})
    cache.get("scam_prefs:user-1")

Environment variables (when no URL is given):
    REDIS_URL, or REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD
"""

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)


def build_redis_url() -> str:
    """Redis URL from the environment."""
    url = os.getenv("REDIS_URL")
    if url:
        return url

    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", "6379"))
    db = int(os.getenv("REDIS_DB", "0"))
    password = os.getenv("REDIS_PASSWORD")
    auth = f":{password}@" if password else ""
    return f"redis://{auth}{host}:{port}/{db}"


class _MemoryStore:
    """Serialized documents with optional expiry."""

    def __init__(self):
        self._entries: Dict[str, Tuple[Optional[datetime], str]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at is not None and datetime.now(timezone.utc) >= expires_at:
            del self._entries[key]
            return None
        return json.loads(payload)

    def set(self, key: str, payload: str, ttl: Optional[int]) -> bool:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl) if ttl else None
        self._entries[key] = (expires_at, payload)
        return True

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return [k for k in self._entries if k.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache:
    """
    JSON document cache on Redis, with an optional in-memory fallback.

    Args:
        redis_url: Redis URL; built from the environment when None
        prefix: Namespace prepended to every key
        fallback_to_memory: Serve from memory when Redis fails instead of
            raising PersistenceError
        client: Pre-built Redis client (skips connection setup)
        connect: When False and no client is given, stay in memory
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        prefix: str = "scamguard",
        fallback_to_memory: bool = True,
        client: Optional[Any] = None,
        connect: bool = True,
    ):
        self.prefix = prefix
        self.fallback_to_memory = fallback_to_memory
        self._memory = _MemoryStore()
        self._redis: Optional[Any] = client
        if client is None and connect:
            self._redis = self._connect(redis_url or build_redis_url())

    @classmethod
    def in_memory(cls, prefix: str = "scamguard") -> "RedisCache":
        """Cache that never touches Redis (tests, single-process runs)."""
        return cls(prefix=prefix, fallback_to_memory=True, connect=False)

    def _connect(self, url: str) -> Optional[Any]:
        safe_url = url.split("@")[-1]
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
        try:
            client.ping()
        except redis.RedisError as e:
            if not self.fallback_to_memory:
                # Keep the client; redis-py reconnects on the next command
                logger.error(f"Redis unreachable at {safe_url}: {e}")
                return client
            logger.warning(f"Redis unreachable at {safe_url}: {e}. Serving from memory.")
            return None
        logger.info(f"Redis cache connected: {safe_url}")
        return client

    @property
    def backend(self) -> str:
        return "memory" if self._redis is None else "redis"

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def _run(self, operation: str, on_redis: Callable[[], Any], on_memory: Callable[[], Any]) -> Any:
        """Run against Redis; on failure raise or fall back to memory."""
        if self._redis is None:
            return on_memory()
        try:
            return on_redis()
        except (redis.RedisError, ValueError) as e:
            if not self.fallback_to_memory:
                raise PersistenceError(f"Redis {operation} failed: {e}") from e
            logger.warning(f"Redis {operation} failed: {e}. Serving from memory.")
            return on_memory()

    # =========================================================================
    # DOCUMENT OPERATIONS
    # =========================================================================

    def get(self, key: str) -> Optional[Any]:
        """Decoded document, or None if absent or expired."""
        full_key = self._key(key)

        def from_redis():
            payload = self._redis.get(full_key)
            return None if payload is None else json.loads(payload)

        return self._run("get", from_redis, lambda: self._memory.get(full_key))

    def set(
        self,
        key: str,
        value: Any,
        ttl_hours: Optional[int] = None,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Store a JSON-serializable document.

        Args:
            key: Document key (without prefix)
            value: Document
            ttl_hours: Expiry in hours
            ttl_seconds: Expiry in seconds (takes precedence over ttl_hours)
        """
        full_key = self._key(key)
        ttl = ttl_seconds if ttl_seconds is not None else (ttl_hours * 3600 if ttl_hours else None)
        payload = json.dumps(value, default=str)

        def to_redis():
            if ttl:
                self._redis.setex(full_key, ttl, payload)
            else:
                self._redis.set(full_key, payload)
            return True

        return self._run("set", to_redis, lambda: self._memory.set(full_key, payload, ttl))

    def delete(self, key: str) -> bool:
        """True if a document was removed."""
        full_key = self._key(key)
        return self._run(
            "delete",
            lambda: self._redis.delete(full_key) > 0,
            lambda: self._memory.delete(full_key),
        )

    def exists(self, key: str) -> bool:
        full_key = self._key(key)
        return self._run(
            "exists",
            lambda: self._redis.exists(full_key) > 0,
            lambda: self._memory.get(full_key) is not None,
        )

    def clear_prefix(self, prefix: str) -> int:
        """Delete every document whose key starts with prefix; returns the count."""
        full_prefix = self._key(prefix)

        def from_redis():
            keys = list(self._redis.scan_iter(match=f"{full_prefix}*"))
            return self._redis.delete(*keys) if keys else 0

        def from_memory():
            keys = self._memory.keys_with_prefix(full_prefix)
            for k in keys:
                self._memory.delete(k)
            return len(keys)

        return self._run("clear_prefix", from_redis, from_memory)

    # =========================================================================
    # HEALTH
    # =========================================================================

    def ping(self) -> bool:
        """True when the active backend answers."""
        if self._redis is None:
            return True
        try:
            return bool(self._redis.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "backend": self.backend,
            "fallback_to_memory": self.fallback_to_memory,
            "memory_keys": len(self._memory),
        }
        if self._redis is not None:
            try:
                stats["redis_keys"] = self._redis.dbsize()
                stats["redis_memory_used"] = self._redis.info("memory").get("used_memory_human", "N/A")
            except redis.RedisError as e:
                stats["error"] = str(e)
        return stats

    def close(self) -> None:
        if self._redis is not None:
            try:
                self._redis.close()
            except redis.RedisError as e:
                logger.debug(f"Redis close failed: {e}")
        self._redis = None
