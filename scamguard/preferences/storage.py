"""
Preference Backends
===================

Durable storage for UserPreferences.

Contract (async):
    load(user_id) -> Optional[UserPreferences]
    save(user_id, preferences) -> None

Implementations:
    - InMemoryPreferenceBackend: process-local dict (tests, demos)
    - CachePreferenceBackend: JSON documents in Redis via RedisCache
    - PostgresPreferenceBackend: JSONB rows through a psycopg2 connection pool

Backends raise PersistenceError when the underlying store is unreachable.
Blocking clients run in a worker thread so the event loop stays free.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import psycopg2
from psycopg2 import pool as pg_pool

from ..cache.redis_cache import RedisCache
from ..exceptions import PersistenceError
from .models import UserPreferences

logger = logging.getLogger(__name__)


class PreferenceBackend(ABC):
    """Async key-value persistence for user preferences."""

    @abstractmethod
    async def load(self, user_id: str) -> Optional[UserPreferences]:
        """Return stored preferences, or None if the user has none."""

    @abstractmethod
    async def save(self, user_id: str, preferences: UserPreferences) -> None:
        """Persist preferences for a user."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryPreferenceBackend(PreferenceBackend):
    """Stores serialized documents in a dict."""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def load(self, user_id: str) -> Optional[UserPreferences]:
        document = self._documents.get(user_id)
        if document is None:
            return None
        return UserPreferences.from_dict(json.loads(json.dumps(document)))

    async def save(self, user_id: str, preferences: UserPreferences) -> None:
        self._documents[user_id] = preferences.to_dict()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._documents


class CachePreferenceBackend(PreferenceBackend):
    """
    Preferences stored in Redis under ``<prefix>:scam_prefs:<user_id>``.

    Build the cache with ``fallback_to_memory=False`` so a Redis outage
    surfaces as PersistenceError instead of silently diverging.
    """

    KEY_PREFIX = "scam_prefs"

    def __init__(self, cache: RedisCache):
        self._cache = cache

    def _key(self, user_id: str) -> str:
        return f"{self.KEY_PREFIX}:{user_id}"

    async def load(self, user_id: str) -> Optional[UserPreferences]:
        document = await asyncio.to_thread(self._cache.get, self._key(user_id))
        if document is None:
            return None
        try:
            return UserPreferences.from_dict(document)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Stored preferences for {user_id} are corrupt: {e}", user_id=user_id
            ) from e

    async def save(self, user_id: str, preferences: UserPreferences) -> None:
        await asyncio.to_thread(self._cache.set, self._key(user_id), preferences.to_dict())

    def close(self) -> None:
        self._cache.close()


class PostgresPreferenceBackend(PreferenceBackend):
    """
    Preferences stored as JSONB rows.

    Table:
        user_scam_preferences(user_id TEXT PRIMARY KEY,
                              payload JSONB NOT NULL,
                              updated_at TIMESTAMPTZ NOT NULL)
    """

    CREATE_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS user_scam_preferences (
            user_id     TEXT PRIMARY KEY,
            payload     JSONB NOT NULL,
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """

    def __init__(self, connection_pool: pg_pool.AbstractConnectionPool):
        self._pool = connection_pool

    @classmethod
    def from_params(cls, min_conn: int = 1, max_conn: int = 5, **params) -> "PostgresPreferenceBackend":
        """Create the backend with its own ThreadedConnectionPool."""
        try:
            connection_pool = pg_pool.ThreadedConnectionPool(min_conn, max_conn, **params)
        except psycopg2.Error as e:
            raise PersistenceError(f"Failed to create DB pool: {e}") from e
        logger.info(f"DB pool created: {params.get('host')}:{params.get('port')}/{params.get('dbname')}")
        return cls(connection_pool)

    def _execute(self, sql: str, args: tuple = (), fetch: bool = False):
        conn = self._pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, args)
                row = cur.fetchone() if fetch else None
            conn.commit()
            return row
        except psycopg2.Error:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def ensure_schema(self) -> None:
        try:
            self._execute(self.CREATE_TABLE_SQL)
        except psycopg2.Error as e:
            raise PersistenceError(f"Failed to create preferences table: {e}") from e

    async def load(self, user_id: str) -> Optional[UserPreferences]:
        try:
            row = await asyncio.to_thread(
                self._execute,
                "SELECT payload FROM user_scam_preferences WHERE user_id = %s",
                (user_id,),
                True,
            )
        except psycopg2.Error as e:
            raise PersistenceError(f"Failed to load preferences for {user_id}: {e}", user_id=user_id) from e

        if row is None:
            return None
        payload = row[0] if isinstance(row[0], dict) else json.loads(row[0])
        return UserPreferences.from_dict(payload)

    async def save(self, user_id: str, preferences: UserPreferences) -> None:
        try:
            await asyncio.to_thread(
                self._execute,
                """
                INSERT INTO user_scam_preferences (user_id, payload, updated_at)
                VALUES (%s, %s::jsonb, NOW())
                ON CONFLICT (user_id)
                DO UPDATE SET payload = EXCLUDED.payload, updated_at = NOW()
                """,
                (user_id, json.dumps(preferences.to_dict())),
            )
        except psycopg2.Error as e:
            raise PersistenceError(f"Failed to save preferences for {user_id}: {e}", user_id=user_id) from e

    def close(self) -> None:
        self._pool.closeall()
        logger.info("DB pool closed")
