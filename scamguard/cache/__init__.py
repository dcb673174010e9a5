"""
ScamGuard Cache Module
======================

Provides Redis-based JSON key-value storage with optional fallback to an
in-memory cache.

Usage:
    from scamguard.cache import RedisCache

    cache = RedisCache(fallback_to_memory=False)
    cache.set("key", {"data": "value"}, ttl_hours=24)
    result = cache.get("key")
"""

from .redis_cache import RedisCache

__all__ = ["RedisCache"]
