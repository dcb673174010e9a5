"""
Tests for the preference store.

Covers:
1. Lazy defaults and persistence
2. Reconciliation with a grown heuristic catalog
3. Partial updates, validation and NotFoundError
4. Threshold clamping and reset
5. Copy-on-read isolation and concurrent updates
6. Backend failures surfacing as PersistenceError

Usage:
    pytest tests/test_preference_store.py -v
"""

import asyncio
import gc
from datetime import datetime, timezone

import pytest

from scamguard.exceptions import ConfigValidationError, NotFoundError, PersistenceError
from scamguard.heuristics.registry import DEFAULT_REGISTRY, HeuristicDescriptor
from scamguard.preferences.models import UserPreferences
from scamguard.preferences.storage import InMemoryPreferenceBackend, PreferenceBackend
from scamguard.preferences.store import PreferenceStore

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def run(coro):
    return asyncio.run(coro)


def make_store(backend=None, registry=DEFAULT_REGISTRY) -> PreferenceStore:
    return PreferenceStore(backend or InMemoryPreferenceBackend(), registry=registry, clock=lambda: FIXED_NOW)


class FailingBackend(PreferenceBackend):
    """Backend whose store is unreachable."""

    def __init__(self, error=None):
        self.error = error or ConnectionError("connection refused")

    async def load(self, user_id):
        raise self.error

    async def save(self, user_id, preferences):
        raise self.error


class TestDefaults:
    """First access builds and persists catalog defaults."""

    def setup_method(self):
        self.backend = InMemoryPreferenceBackend()
        self.store = make_store(self.backend)

    def test_new_user_gets_every_heuristic(self):
        prefs = run(self.store.get_user_preferences("new-user"))

        assert prefs.user_id == "new-user"
        assert [h.id for h in prefs.heuristics] == DEFAULT_REGISTRY.ids()
        assert prefs.global_threshold == 70
        assert prefs.last_updated == FIXED_NOW

    def test_defaults_are_persisted(self):
        run(self.store.get_user_preferences("new-user"))
        assert "new-user" in self.backend

    def test_default_values_match_catalog(self):
        prefs = run(self.store.get_user_preferences("new-user"))
        price = prefs.find("price_anomaly")

        assert price.enabled is True
        assert price.weight == 0.8
        assert price.config_options == {"z_score_threshold": 2.5, "action": "notify"}

    def test_stored_record_survives_a_new_store(self):
        run(self.store.update_heuristic("u1", "price_anomaly", {"weight": 0.3}))

        reloaded = run(make_store(self.backend).get_user_preferences("u1"))
        assert reloaded.find("price_anomaly").weight == 0.3
        assert reloaded.last_updated == FIXED_NOW


class TestReconciliation:
    """Stored records gain heuristics added to the catalog later."""

    def setup_method(self):
        self.backend = InMemoryPreferenceBackend()
        run(make_store(self.backend).update_heuristic("u1", "price_anomaly", {"weight": 0.2}))
        self.new_descriptor = HeuristicDescriptor(
            id="new_heuristic",
            name="New Heuristic",
            description="Added after the user saved preferences",
            category="Product",
            default_weight=0.4,
        )

    def test_missing_heuristic_added_with_defaults(self):
        store = make_store(self.backend, registry=DEFAULT_REGISTRY.extended(self.new_descriptor))
        prefs = run(store.get_user_preferences("u1"))

        added = prefs.find("new_heuristic")
        assert added is not None
        assert added.weight == 0.4
        assert prefs.heuristics[-1].id == "new_heuristic"
        # Existing customization untouched
        assert prefs.find("price_anomaly").weight == 0.2

    def test_retired_heuristic_is_kept(self):
        document = self.backend._documents["u1"]
        document["heuristics"].append({
            "id": "retired_heuristic",
            "name": "Retired",
            "description": "",
            "category": "Product",
            "enabled": True,
            "weight": 0.5,
            "configOptions": {},
        })

        prefs = run(make_store(self.backend).get_user_preferences("u1"))
        assert prefs.find("retired_heuristic") is not None


class TestUpdateHeuristic:
    """Partial updates merge into a single heuristic."""

    def setup_method(self):
        self.store = make_store()

    def test_weight_and_enabled(self):
        prefs = run(self.store.update_heuristic("u1", "price_anomaly", {"weight": 0.5, "enabled": False}))
        price = prefs.find("price_anomaly")

        assert price.weight == 0.5
        assert price.enabled is False

    def test_weight_is_clamped(self):
        prefs = run(self.store.update_heuristic("u1", "price_anomaly", {"weight": 1.7}))
        assert prefs.find("price_anomaly").weight == 1.0

        prefs = run(self.store.update_heuristic("u1", "price_anomaly", {"weight": -0.2}))
        assert prefs.find("price_anomaly").weight == 0.0

    def test_config_options_are_merged(self):
        prefs = run(self.store.update_heuristic(
            "u1", "new_seller_large_inventory", {"configOptions": {"maxAccountAgeDays": 14}}
        ))
        options = prefs.find("new_seller_large_inventory").config_options

        assert options["max_account_age_days"] == 14
        assert options["min_listing_count"] == 50
        assert options["action"] == "warn"

    def test_invalid_config_options_rejected_without_change(self):
        with pytest.raises(ConfigValidationError):
            run(self.store.update_heuristic(
                "u1", "price_anomaly", {"weight": 0.1, "config_options": {"z_score_threshold": "high"}}
            ))

        prefs = run(self.store.get_user_preferences("u1"))
        assert prefs.find("price_anomaly").weight == 0.8
        assert prefs.find("price_anomaly").config_options["z_score_threshold"] == 2.5

    def test_unknown_heuristic_raises_not_found(self):
        before = run(self.store.get_user_preferences("u1"))

        with pytest.raises(NotFoundError) as exc_info:
            run(self.store.update_heuristic("u1", "does_not_exist", {"weight": 0.1}))

        assert str(exc_info.value) == "Heuristic with ID does_not_exist not found"
        after = run(self.store.get_user_preferences("u1"))
        assert after.to_dict() == before.to_dict()

    def test_id_cannot_change(self):
        with pytest.raises(ValueError):
            run(self.store.update_heuristic("u1", "price_anomaly", {"id": "other"}))

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            run(self.store.update_heuristic("u1", "price_anomaly", {"colour": "red"}))

    def test_other_users_unaffected(self):
        run(self.store.update_heuristic("u1", "price_anomaly", {"enabled": False}))
        other = run(self.store.get_user_preferences("u2"))
        assert other.find("price_anomaly").enabled is True


class TestGlobalThreshold:
    """The sensitivity dial is clamped to [0, 100]."""

    def setup_method(self):
        self.store = make_store()

    @pytest.mark.parametrize("value,expected", [(85, 85), (150, 100), (-10, 0), (42.6, 43)])
    def test_threshold_clamped(self, value, expected):
        prefs = run(self.store.update_global_threshold("u1", value))
        assert prefs.global_threshold == expected


class TestReset:
    """reset_to_defaults discards customizations."""

    def setup_method(self):
        self.store = make_store()

    def test_reset_restores_defaults(self):
        run(self.store.update_heuristic("u1", "price_anomaly", {"weight": 0.1, "enabled": False}))
        run(self.store.update_global_threshold("u1", 20))

        prefs = run(self.store.reset_to_defaults("u1"))

        assert prefs.global_threshold == 70
        assert prefs.find("price_anomaly").weight == 0.8
        assert prefs.find("price_anomaly").enabled is True

    def test_reset_is_idempotent(self):
        first = run(self.store.reset_to_defaults("u1"))
        second = run(self.store.reset_to_defaults("u1"))
        assert first.to_dict() == second.to_dict()


class TestIsolation:
    """Callers never share state with the store."""

    def setup_method(self):
        self.store = make_store()

    def test_mutating_a_read_does_not_leak(self):
        prefs = run(self.store.get_user_preferences("u1"))
        prefs.global_threshold = 5
        prefs.find("price_anomaly").config_options["z_score_threshold"] = 99
        prefs.heuristics.clear()

        fresh = run(self.store.get_user_preferences("u1"))
        assert fresh.global_threshold == 70
        assert fresh.find("price_anomaly").config_options["z_score_threshold"] == 2.5

    def test_mutating_an_update_result_does_not_leak(self):
        prefs = run(self.store.update_global_threshold("u1", 50))
        prefs.global_threshold = 1

        assert run(self.store.get_user_preferences("u1")).global_threshold == 50

    def test_save_user_preferences_stamps_timestamp(self):
        prefs = UserPreferences.defaults("u1", DEFAULT_REGISTRY)
        prefs.global_threshold = 90
        run(self.store.save_user_preferences(prefs))

        assert prefs.last_updated == FIXED_NOW
        assert run(self.store.get_user_preferences("u1")).global_threshold == 90

    def test_invalidate_reloads_from_backend(self):
        run(self.store.update_global_threshold("u1", 40))
        self.store.invalidate("u1")
        assert run(self.store.get_user_preferences("u1")).global_threshold == 40

    def test_saved_preferences_reload_unchanged(self):
        prefs = UserPreferences.defaults("u1", DEFAULT_REGISTRY)
        prefs.global_threshold = 55
        price = prefs.find("price_anomaly")
        price.weight = 0.35
        price.config_options = {"z_score_threshold": 3.5, "action": "warn"}
        prefs.find("image_quality_analysis").enabled = False
        run(self.store.save_user_preferences(prefs))

        self.store.invalidate()

        assert run(self.store.get_user_preferences("u1")) == prefs


class TestConcurrency:
    """Concurrent updates for one user are serialized."""

    def test_idle_user_locks_are_released(self):
        store = make_store()

        async def touch_many():
            await asyncio.gather(*(
                store.update_global_threshold(f"u{i}", 50) for i in range(20)
            ))

        run(touch_many())
        gc.collect()

        assert len(store._locks) == 0

    def test_concurrent_updates_all_land(self):
        store = make_store()
        ids = DEFAULT_REGISTRY.ids()

        async def update_all():
            await asyncio.gather(*(
                store.update_heuristic("u1", heuristic_id, {"weight": 0.11})
                for heuristic_id in ids
            ))
            return await store.get_user_preferences("u1")

        prefs = run(update_all())
        assert all(h.weight == 0.11 for h in prefs.heuristics)

    def test_concurrent_first_access_creates_one_record(self):
        saves = []

        class CountingBackend(InMemoryPreferenceBackend):
            async def save(self, user_id, preferences):
                saves.append(user_id)
                await super().save(user_id, preferences)

        store = make_store(CountingBackend())

        async def read_many():
            return await asyncio.gather(*(store.get_user_preferences("u1") for _ in range(10)))

        results = run(read_many())
        assert len(results) == 10
        assert saves == ["u1"]


class TestPersistenceErrors:
    """Backend failures surface as PersistenceError."""

    def test_load_failure_is_wrapped(self):
        store = make_store(FailingBackend())
        with pytest.raises(PersistenceError) as exc_info:
            run(store.get_user_preferences("u1"))
        assert exc_info.value.user_id == "u1"

    def test_persistence_error_passes_through(self):
        store = make_store(FailingBackend(PersistenceError("redis down")))
        with pytest.raises(PersistenceError, match="redis down"):
            run(store.update_global_threshold("u1", 50))

    def test_failed_save_leaves_cache_untouched(self):
        class FlakyBackend(InMemoryPreferenceBackend):
            fail = False

            async def save(self, user_id, preferences):
                if self.fail:
                    raise PersistenceError("write failed")
                await super().save(user_id, preferences)

        backend = FlakyBackend()
        store = make_store(backend)
        run(store.get_user_preferences("u1"))

        backend.fail = True
        with pytest.raises(PersistenceError):
            run(store.update_global_threshold("u1", 10))

        assert run(store.get_user_preferences("u1")).global_threshold == 70
