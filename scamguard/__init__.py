"""
ScamGuard
=========

Multi-heuristic, user-configurable risk scoring for marketplace listings.

Packages:
    - heuristics: descriptor catalog, config schemas, analyzers, runner
    - preferences: per-user heuristic preferences and their persistence
    - scoring: scoring engine, risk classifier, display policy
    - cache: Redis key-value cache with in-memory fallback
    - api: FastAPI application

Usage:
    from scamguard.heuristics import HeuristicRunner, build_default_analyzers
    from scamguard.preferences import InMemoryPreferenceBackend, PreferenceStore
    from scamguard.scoring import ListingSubject, ScoringEngine

    store = PreferenceStore(InMemoryPreferenceBackend())
    engine = ScoringEngine(store, HeuristicRunner(build_default_analyzers()))
    result = await engine.analyze(ListingSubject.from_dict(listing), "user-42")
"""

__version__ = "0.1.0"
