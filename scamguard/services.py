"""
ScamGuard Services
==================

Explicit construction of the service graph. The host application (API
lifespan, CLI command) builds one ScamGuardServices at startup and closes
it at shutdown; nothing here is a module-level singleton.

Usage:
    services = build_services(load_settings())
    result = await services.engine.analyze(subject, "user-42")
    services.close()
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .cache.redis_cache import RedisCache
from .config import Settings
from .heuristics.analyzers import AnalyzerRegistry
from .heuristics.builtin import build_default_analyzers
from .heuristics.registry import DEFAULT_REGISTRY, HeuristicRegistry
from .heuristics.runner import HeuristicRunner
from .heuristics.sellers import CachedSellerDirectory
from .preferences.storage import (
    CachePreferenceBackend,
    InMemoryPreferenceBackend,
    PostgresPreferenceBackend,
    PreferenceBackend,
)
from .preferences.store import PreferenceStore
from .scoring.engine import ScoringEngine

logger = logging.getLogger(__name__)


@dataclass
class ScamGuardServices:
    """Everything a caller needs, wired together."""
    registry: HeuristicRegistry
    store: PreferenceStore
    runner: HeuristicRunner
    engine: ScoringEngine
    sellers: CachedSellerDirectory
    cache: RedisCache

    def close(self) -> None:
        self.store.backend.close()
        self.cache.close()
        logger.info("ScamGuard services closed")


def unbacked_heuristics(registry: HeuristicRegistry, analyzers: AnalyzerRegistry) -> List[str]:
    """Ids of heuristics enabled by default that have no registered analyzer."""
    return [d.id for d in registry if d.default_enabled and d.id not in analyzers]


def build_services(
    settings: Settings,
    backend: Optional[PreferenceBackend] = None,
    cache: Optional[RedisCache] = None,
    registry: HeuristicRegistry = DEFAULT_REGISTRY,
) -> ScamGuardServices:
    """
    Wire the service graph from settings.

    Args:
        settings: Application settings
        backend: Preference backend override (tests)
        cache: Key-value cache override (tests)
        registry: Heuristic catalog
    """
    backend_name = settings.engine.preference_backend

    if cache is None:
        if backend_name == "redis":
            cache = RedisCache(
                redis_url=settings.redis.url,
                prefix=settings.redis.prefix,
                fallback_to_memory=settings.redis.fallback_to_memory,
            )
        else:
            cache = RedisCache.in_memory(prefix=settings.redis.prefix)

    if backend is None:
        if backend_name == "redis":
            backend = CachePreferenceBackend(cache)
        elif backend_name == "postgres":
            db = settings.database
            backend = PostgresPreferenceBackend.from_params(
                min_conn=db.pool_min_size, max_conn=db.pool_max_size, **db.connection_dict
            )
            backend.ensure_schema()
        else:
            backend = InMemoryPreferenceBackend()

    sellers = CachedSellerDirectory(cache)
    runner = HeuristicRunner(
        build_default_analyzers(seller_directory=sellers),
        timeout_seconds=settings.engine.timeout,
    )
    store = PreferenceStore(backend, registry=registry)
    engine = ScoringEngine(store, runner, default_user_id=settings.engine.default_user_id)

    unbacked = unbacked_heuristics(registry, runner.analyzers)
    if unbacked:
        logger.warning(
            f"Heuristics enabled by default without an analyzer score 0 and dilute results: "
            f"{', '.join(unbacked)}"
        )

    logger.info(
        f"ScamGuard services ready: backend={backend_name} cache={cache.backend} "
        f"analyzers={len(runner.analyzers)}"
    )
    return ScamGuardServices(
        registry=registry,
        store=store,
        runner=runner,
        engine=engine,
        sellers=sellers,
        cache=cache,
    )
