"""
Preference Store
================

Per-user heuristic preferences with lazy defaults, reconciliation against
the heuristic catalog, an in-process cache and copy-on-read isolation.

RULES:
- First access for a user loads the stored record, or builds and persists
  defaults when none exists.
- A loaded record gains defaults for every catalog heuristic it is missing;
  entries for retired heuristics are never removed.
- Every read returns a deep copy; only the update operations change state.
- Read-modify-write operations for one user are serialized by a per-user
  lock; different users never wait on each other. A user's lock lives only
  while some operation holds or waits on it.
- Backend failures surface as PersistenceError.

Usage:
    store = PreferenceStore(CachePreferenceBackend(RedisCache(fallback_to_memory=False)))
    prefs = await store.get_user_preferences("user-42")
    prefs = await store.update_heuristic("user-42", "price_anomaly", {"weight": 0.9})
"""

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from ..exceptions import NotFoundError, PersistenceError
from ..heuristics.config_schemas import normalize_option_keys, validate_config_options
from ..heuristics.registry import DEFAULT_REGISTRY, HeuristicRegistry
from .models import UserPreferences, clamp_threshold, clamp_weight
from .storage import PreferenceBackend

logger = logging.getLogger(__name__)

# Fields of HeuristicPreference a partial update may touch, keyed by accepted spelling
_UPDATABLE_FIELDS = {
    "enabled": "enabled",
    "weight": "weight",
    "name": "name",
    "description": "description",
    "category": "category",
    "config_options": "config_options",
    "configOptions": "config_options",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PreferenceStore:
    """
    Owner of all users' scam-detection preferences.

    Args:
        backend: Durable storage
        registry: Heuristic catalog used for defaults and reconciliation
        clock: Returns the timestamp stamped on every save
    """

    def __init__(
        self,
        backend: PreferenceBackend,
        registry: HeuristicRegistry = DEFAULT_REGISTRY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.backend = backend
        self.registry = registry
        self._clock = clock
        self._cache: Dict[str, UserPreferences] = {}
        # Per-user locks, dropped once no operation holds or waits on them
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    # =========================================================================
    # READ
    # =========================================================================

    async def get_user_preferences(self, user_id: str) -> UserPreferences:
        """Return a private copy of the user's preferences."""
        async with self._lock(user_id):
            prefs = await self._load(user_id)
        return prefs.copy()

    async def _load(self, user_id: str) -> UserPreferences:
        """Cached record for the user; caller holds the user's lock."""
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        stored = await self._backend_call("load", user_id, self.backend.load(user_id))
        if stored is not None:
            stored.user_id = user_id
            added = stored.reconcile(self.registry)
            if added:
                logger.info(
                    f"Added {len(added)} new heuristic(s) to preferences of {user_id}: {', '.join(added)}",
                    extra={"user_id": user_id},
                )
            self._cache[user_id] = stored
            return stored

        defaults = UserPreferences.defaults(user_id, self.registry)
        await self._save(defaults)
        logger.info(f"Created default preferences for {user_id}", extra={"user_id": user_id})
        return self._cache[user_id]

    # =========================================================================
    # WRITE
    # =========================================================================

    async def save_user_preferences(self, preferences: UserPreferences) -> None:
        """Stamp ``last_updated`` on the given record and persist it."""
        async with self._lock(preferences.user_id):
            await self._save(preferences)

    async def _save(self, preferences: UserPreferences) -> None:
        preferences.last_updated = self._clock()
        snapshot = preferences.copy()
        await self._backend_call(
            "save", preferences.user_id, self.backend.save(preferences.user_id, snapshot)
        )
        self._cache[preferences.user_id] = snapshot

    async def update_heuristic(
        self, user_id: str, heuristic_id: str, updates: Mapping[str, Any]
    ) -> UserPreferences:
        """
        Merge a partial update into one heuristic's settings.

        ``config_options`` are merged key by key; keys absent from the update
        keep their current values. Weight is clamped to [0, 1].

        Raises:
            NotFoundError: If the user has no heuristic with this id
            ConfigValidationError: If the merged config options are invalid
            ValueError: If the update names an unknown field or changes the id
        """
        async with self._lock(user_id):
            prefs = (await self._load(user_id)).copy()

            heuristic = prefs.find(heuristic_id)
            if heuristic is None:
                raise NotFoundError(heuristic_id, user_id=user_id)

            for key, value in updates.items():
                if key == "id":
                    if value != heuristic_id:
                        raise ValueError("heuristic id cannot be changed")
                    continue
                field_name = _UPDATABLE_FIELDS.get(key)
                if field_name is None:
                    raise ValueError(f"Unknown heuristic field: {key}")

                if field_name == "config_options":
                    merged = {
                        **heuristic.config_options,
                        **normalize_option_keys(heuristic_id, value or {}),
                    }
                    heuristic.config_options = validate_config_options(heuristic_id, merged)
                elif field_name == "weight":
                    heuristic.weight = clamp_weight(value)
                elif field_name == "enabled":
                    heuristic.enabled = bool(value)
                else:
                    setattr(heuristic, field_name, value)

            await self._save(prefs)

        logger.info(
            f"Updated heuristic {heuristic_id} for {user_id}: {sorted(updates)}",
            extra={"user_id": user_id, "heuristic_id": heuristic_id},
        )
        return prefs.copy()

    async def update_global_threshold(self, user_id: str, threshold: float) -> UserPreferences:
        """Set the sensitivity dial, clamped to [0, 100]."""
        async with self._lock(user_id):
            prefs = (await self._load(user_id)).copy()
            prefs.global_threshold = clamp_threshold(threshold)
            await self._save(prefs)

        logger.info(
            f"Global threshold for {user_id} set to {prefs.global_threshold}",
            extra={"user_id": user_id},
        )
        return prefs.copy()

    async def reset_to_defaults(self, user_id: str) -> UserPreferences:
        """Discard every customization and rebuild from catalog defaults."""
        async with self._lock(user_id):
            prefs = UserPreferences.defaults(user_id, self.registry)
            await self._save(prefs)

        logger.info(f"Preferences for {user_id} reset to defaults", extra={"user_id": user_id})
        return prefs.copy()

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop cached records (all users when user_id is None)."""
        if user_id is None:
            self._cache.clear()
        else:
            self._cache.pop(user_id, None)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _backend_call(self, operation: str, user_id: str, call):
        try:
            return await call
        except PersistenceError:
            logger.error(f"Preference {operation} failed for {user_id}", extra={"user_id": user_id})
            raise
        except Exception as e:
            logger.error(
                f"Preference {operation} failed for {user_id}: {e}", extra={"user_id": user_id}
            )
            raise PersistenceError(
                f"Failed to {operation} preferences for {user_id}: {e}", user_id=user_id
            ) from e
