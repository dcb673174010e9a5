"""
Tests for the scoring engine.

Covers:
1. Weighted aggregation and the global threshold adjustment
2. Disabled heuristics and the empty-weight case
3. Failure isolation (exceptions, timeouts, missing analyzers)
4. Risk factor selection and order
5. Batch analysis

Usage:
    pytest tests/test_scoring_engine.py -v
"""

import asyncio

import pytest

from scamguard.exceptions import PersistenceError
from scamguard.heuristics.analyzers import AnalyzerOutput, AnalyzerRegistry
from scamguard.heuristics.builtin import PriceAnomalyAnalyzer
from scamguard.heuristics.registry import HeuristicDescriptor, HeuristicRegistry
from scamguard.heuristics.runner import HeuristicRunner
from scamguard.models import AnalysisResult, HeuristicResult, ListingSubject, PriceInfo, RiskLevel
from scamguard.preferences.storage import InMemoryPreferenceBackend, PreferenceBackend
from scamguard.preferences.store import PreferenceStore
from scamguard.scoring.engine import ScoringEngine, aggregate


def make_subject(price=20.0, market=100.0, **kwargs) -> ListingSubject:
    """Create a test listing."""
    return ListingSubject(
        title=kwargs.pop("title", "Wireless Headphones"),
        description=kwargs.pop("description", "Wireless headphones with noise cancelling"),
        price=PriceInfo(current=price, market=market),
        **kwargs,
    )


def make_descriptor(heuristic_id: str, weight: float, enabled: bool = True) -> HeuristicDescriptor:
    return HeuristicDescriptor(
        id=heuristic_id,
        name=heuristic_id.replace("_", " ").title(),
        description=f"Test heuristic {heuristic_id}",
        category="Pricing",
        default_enabled=enabled,
        default_weight=weight,
    )


def fixed(score, findings=None):
    """Analyzer returning a constant output."""
    async def analyzer(subject, options):
        return AnalyzerOutput(score=score, findings=list(findings or []))
    return analyzer


def make_engine(registry: HeuristicRegistry, analyzers: AnalyzerRegistry, timeout=None):
    store = PreferenceStore(InMemoryPreferenceBackend(), registry=registry)
    runner = HeuristicRunner(analyzers, timeout_seconds=timeout)
    return ScoringEngine(store, runner), store, runner


def run(coro):
    return asyncio.run(coro)


class TestAggregate:
    """Pure aggregation arithmetic."""

    def test_weighted_average_at_reference_threshold(self):
        results = [
            HeuristicResult("a", "A", 0.8, True, 0.5, ["a"]),
            HeuristicResult("b", "B", 0.2, True, 0.5, ["b"]),
        ]
        probability, raw, factors = aggregate(results, 70)

        assert raw == pytest.approx(0.5)
        assert probability == pytest.approx(0.5)
        assert factors == ["a"]

    def test_disabled_results_are_ignored(self):
        results = [
            HeuristicResult("a", "A", 0.9, True, 0.5, ["a"]),
            HeuristicResult.disabled("b", "B", 1.0),
        ]
        probability, raw, _ = aggregate(results, 70)
        assert raw == pytest.approx(0.9)
        assert probability == pytest.approx(0.9)

    def test_no_enabled_weight_is_zero(self):
        results = [HeuristicResult.disabled("a", "A", 0.8)]
        assert aggregate(results, 100) == (0.0, 0.0, [])
        assert aggregate([], 70) == (0.0, 0.0, [])

    def test_zero_weights_are_zero(self):
        results = [HeuristicResult("a", "A", 1.0, True, 0.0, ["a"])]
        assert aggregate(results, 70) == (0.0, 0.0, [])

    def test_probability_is_clamped(self):
        results = [HeuristicResult("a", "A", 1.0, True, 1.0, [])]
        probability, raw, _ = aggregate(results, 100)
        assert raw == pytest.approx(1.0)
        assert probability == 1.0

    def test_threshold_is_monotonic(self):
        results = [HeuristicResult("a", "A", 0.4, True, 0.7, [])]
        previous = -1.0
        for threshold in range(0, 101, 5):
            probability, _, _ = aggregate(results, threshold)
            assert 0.0 <= probability <= 1.0
            assert probability >= previous
            previous = probability

    def test_zero_threshold_gives_zero(self):
        results = [HeuristicResult("a", "A", 1.0, True, 1.0, ["a"])]
        probability, _, _ = aggregate(results, 0)
        assert probability == 0.0

    def test_findings_at_cutoff_are_not_risk_factors(self):
        results = [
            HeuristicResult("a", "A", 0.5, True, 0.5, ["at cutoff"]),
            HeuristicResult("b", "B", 0.51, True, 0.5, ["above cutoff"]),
        ]
        _, _, factors = aggregate(results, 70)
        assert factors == ["above cutoff"]

    @pytest.mark.parametrize("weight", [0.09, 0.18, 0.35, 0.36, 0.37, 0.5, 1.0])
    def test_breakpoint_score_is_not_lost_to_float_noise(self, weight):
        results = [HeuristicResult("a", "A", 0.8, True, weight, ["a"])]
        probability, raw, _ = aggregate(results, 70)
        assert raw == 0.8
        assert probability == 0.8

    def test_threshold_adjustment_lands_on_breakpoint(self):
        results = [HeuristicResult("a", "A", 0.7, True, 1.0, ["a"])]
        probability, _, _ = aggregate(results, 80)
        assert probability == 0.8


class TestBreakpointClassification:
    """Weighted means equal to a breakpoint classify into the upper band."""

    @pytest.mark.parametrize("weight", [0.09, 0.18, 0.35, 0.36, 0.37])
    def test_single_heuristic_at_critical_breakpoint(self, weight):
        registry = HeuristicRegistry([make_descriptor("h", weight)])
        engine, _, _ = make_engine(registry, AnalyzerRegistry({"h": fixed(0.8, ["x"])}))

        result = run(engine.analyze(make_subject(), "u1"))

        assert result.probability == 0.8
        assert result.overall_risk_level == RiskLevel.CRITICAL


class TestScoringScenarios:
    """End-to-end scenarios through preferences, runner and aggregation."""

    def setup_method(self):
        self.registry = HeuristicRegistry([make_descriptor("price_anomaly", 0.8)])
        self.analyzers = AnalyzerRegistry({"price_anomaly": PriceAnomalyAnalyzer()})
        self.engine, self.store, self.runner = make_engine(self.registry, self.analyzers)

    def test_price_at_twenty_percent_of_market_is_critical(self):
        result = run(self.engine.analyze(make_subject(price=20, market=100), "u1"))

        assert result.probability == pytest.approx(0.8)
        assert result.overall_risk_level == RiskLevel.CRITICAL
        assert result.risk_factors == ["Price is suspiciously low (20% of market price)"]
        assert result.detailed_results[0].heuristic_id == "price_anomaly"

    def test_halved_threshold_lowers_risk(self):
        run(self.store.update_global_threshold("u1", 35))
        result = run(self.engine.analyze(make_subject(price=20, market=100), "u1"))

        assert result.raw_probability == pytest.approx(0.8)
        assert result.probability == pytest.approx(0.4)
        assert result.overall_risk_level == RiskLevel.MEDIUM
        assert result.global_threshold == 35

    def test_fair_price_is_low_risk(self):
        result = run(self.engine.analyze(make_subject(price=95, market=100), "u1"))

        assert result.probability == 0.0
        assert result.overall_risk_level == RiskLevel.LOW
        assert result.risk_factors == []

    def test_anonymous_analysis_uses_default_profile(self):
        run(self.engine.analyze(make_subject()))
        assert "default" in self.store.backend

    def test_result_serializes_camel_case(self):
        result = run(self.engine.analyze(make_subject(), "u1"))
        data = result.to_dict()
        assert data["overallRiskLevel"] == "CRITICAL"
        assert data["detailedResults"][0]["heuristicId"] == "price_anomaly"


class TestDisabledHeuristics:
    """Disabled heuristics never run and never count."""

    def setup_method(self):
        self.calls = []

        async def tracking(subject, options):
            self.calls.append("b")
            return AnalyzerOutput(1.0, ["should not appear"])

        self.registry = HeuristicRegistry([
            make_descriptor("a", 0.5),
            make_descriptor("b", 0.9),
        ])
        self.analyzers = AnalyzerRegistry({"a": fixed(0.6, ["a finding"]), "b": tracking})
        self.engine, self.store, _ = make_engine(self.registry, self.analyzers)

    def test_disabled_heuristic_reported_with_zero_score(self):
        run(self.store.update_heuristic("u1", "b", {"enabled": False}))
        result = run(self.engine.analyze(make_subject(), "u1"))

        assert self.calls == []
        disabled = result.detailed_results[1]
        assert disabled.enabled is False
        assert disabled.score == 0.0
        assert disabled.findings == []
        assert result.probability == pytest.approx(0.6)
        assert result.risk_factors == ["a finding"]

    def test_all_disabled_gives_zero(self):
        run(self.store.update_heuristic("u1", "a", {"enabled": False}))
        run(self.store.update_heuristic("u1", "b", {"enabled": False}))
        result = run(self.engine.analyze(make_subject(), "u1"))

        assert result.probability == 0.0
        assert result.risk_factors == []
        assert result.overall_risk_level == RiskLevel.LOW
        assert len(result.detailed_results) == 2


class TestFailureIsolation:
    """A broken heuristic scores 0 but keeps its weight."""

    def test_raising_analyzer_scores_zero(self):
        def broken(subject, options):
            raise RuntimeError("boom")

        registry = HeuristicRegistry([make_descriptor("good", 0.5), make_descriptor("bad", 0.5)])
        analyzers = AnalyzerRegistry({"good": fixed(1.0, ["good"]), "bad": broken})
        engine, _, runner = make_engine(registry, analyzers)

        result = run(engine.analyze(make_subject(), "u1"))

        assert result.detailed_results[1].score == 0.0
        assert result.probability == pytest.approx(0.5)
        assert result.risk_factors == ["good"]
        assert runner.get_stats()["failures_by_heuristic"] == {"bad": 1}

    def test_timed_out_analyzer_scores_zero(self):
        async def slow(subject, options):
            await asyncio.sleep(1)
            return AnalyzerOutput(1.0, ["slow"])

        registry = HeuristicRegistry([make_descriptor("fast", 0.5), make_descriptor("slow", 0.5)])
        analyzers = AnalyzerRegistry({"fast": fixed(0.8), "slow": slow})
        engine, _, runner = make_engine(registry, analyzers, timeout=0.05)

        result = run(engine.analyze(make_subject(), "u1"))

        assert result.detailed_results[1].score == 0.0
        assert result.probability == pytest.approx(0.4)
        assert runner.get_stats()["timeouts"] == 1

    def test_missing_analyzer_counts_weight(self):
        registry = HeuristicRegistry([make_descriptor("a", 0.5), make_descriptor("unbacked", 0.5)])
        engine, _, runner = make_engine(registry, AnalyzerRegistry({"a": fixed(1.0)}))

        result = run(engine.analyze(make_subject(), "u1"))

        assert result.probability == pytest.approx(0.5)
        assert runner.get_stats()["missing"] == 1

    def test_preference_failure_propagates(self):
        class BrokenBackend(PreferenceBackend):
            async def load(self, user_id):
                raise PersistenceError("down")

            async def save(self, user_id, preferences):
                raise PersistenceError("down")

        store = PreferenceStore(BrokenBackend(), registry=HeuristicRegistry([make_descriptor("a", 0.5)]))
        engine = ScoringEngine(store, HeuristicRunner(AnalyzerRegistry({"a": fixed(1.0)})))

        with pytest.raises(PersistenceError):
            run(engine.analyze(make_subject(), "u1"))


class TestRiskFactorOrder:
    """Risk factors follow catalog order, not completion order."""

    def test_catalog_order_is_kept(self):
        async def late(subject, options):
            await asyncio.sleep(0.02)
            return AnalyzerOutput(0.9, ["first", "first again"])

        registry = HeuristicRegistry([
            make_descriptor("one", 0.5),
            make_descriptor("two", 0.5),
            make_descriptor("three", 0.5),
        ])
        analyzers = AnalyzerRegistry({
            "one": late,
            "two": fixed(0.3, ["not significant"]),
            "three": fixed(0.7, ["third"]),
        })
        engine, _, _ = make_engine(registry, analyzers)

        result = run(engine.analyze(make_subject(), "u1"))

        assert result.risk_factors == ["first", "first again", "third"]
        assert [r.heuristic_id for r in result.detailed_results] == ["one", "two", "three"]


class TestBatchAnalysis:
    """analyze_batch scores every listing with one preference snapshot."""

    def setup_method(self):
        registry = HeuristicRegistry([make_descriptor("price_anomaly", 0.8)])
        analyzers = AnalyzerRegistry({"price_anomaly": PriceAnomalyAnalyzer()})
        self.engine, _, _ = make_engine(registry, analyzers)

    def test_results_in_input_order(self):
        subjects = [
            make_subject(price=20, market=100),
            make_subject(price=100, market=100),
            make_subject(price=200, market=100),
        ]
        results = run(self.engine.analyze_batch(subjects, "u1"))

        assert len(results) == 3
        assert all(isinstance(r, AnalysisResult) for r in results)
        assert results[0].overall_risk_level == RiskLevel.CRITICAL
        assert results[1].probability == 0.0
        assert results[2].probability == pytest.approx(0.6)

    def test_empty_batch(self):
        assert run(self.engine.analyze_batch([], "u1")) == []
