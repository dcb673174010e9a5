"""
ScamGuard Preferences
=====================

Per-user heuristic settings and their persistence.

Components:
    - UserPreferences / HeuristicPreference: the per-user data model
    - PreferenceStore: cached, reconciled, lock-protected access
    - PreferenceBackend implementations: in-memory, Redis, PostgreSQL
"""

from .models import (
    DEFAULT_GLOBAL_THRESHOLD,
    HeuristicPreference,
    UserPreferences,
    clamp_threshold,
    clamp_weight,
)
from .storage import (
    CachePreferenceBackend,
    InMemoryPreferenceBackend,
    PostgresPreferenceBackend,
    PreferenceBackend,
)
from .store import PreferenceStore

__all__ = [
    "DEFAULT_GLOBAL_THRESHOLD",
    "HeuristicPreference",
    "UserPreferences",
    "clamp_threshold",
    "clamp_weight",
    "PreferenceBackend",
    "InMemoryPreferenceBackend",
    "CachePreferenceBackend",
    "PostgresPreferenceBackend",
    "PreferenceStore",
]
