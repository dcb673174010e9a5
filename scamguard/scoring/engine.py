"""
ScamGuard Scoring Engine
========================

Turns the per-heuristic results for a listing into one probability and a
risk level.

ALGORITHM:
    1. Resolve the user's preferences ("default" profile when anonymous)
    2. Run enabled heuristics concurrently; disabled ones score 0
    3. raw = Σ(score × weight) / Σ(weight), over enabled heuristics only
       (no enabled weight → probability 0, no risk factors, no scaling)
    4. probability = min(1, raw × global_threshold / 70)
       70 is the default threshold, so untouched users get the raw value;
       the adjustment is multiplicative and never flips a zero into risk
    5. risk factors = findings of enabled heuristics scoring above 0.5,
       in catalog order
    6. risk level = classify(probability)

Heuristic failures never escape analyze(); only a preference load failure
(PersistenceError) does, since no meaningful partial result exists.

Usage:
    engine = ScoringEngine(store, HeuristicRunner(build_default_analyzers()))
    result = await engine.analyze(subject, user_id="user-42")
    print(result.probability, result.overall_risk_level)
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Tuple

from ..heuristics.runner import HeuristicRunner
from ..models import AnalysisResult, HeuristicResult, ListingSubject
from ..preferences.models import DEFAULT_GLOBAL_THRESHOLD, UserPreferences
from ..preferences.store import PreferenceStore
from .classifier import classify

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default"

# A heuristic's findings become risk factors only above this score
SIGNIFICANCE_CUTOFF = 0.5

# Threshold at which the sensitivity adjustment is neutral
REFERENCE_THRESHOLD = DEFAULT_GLOBAL_THRESHOLD

# Decimal places kept after aggregation, so float noise such as
# 0.7999999999999999 cannot drop a result below a band breakpoint
PROBABILITY_PRECISION = 9


def aggregate(
    results: Sequence[HeuristicResult], global_threshold: float
) -> Tuple[float, float, List[str]]:
    """
    Combine heuristic results into a probability.

    Args:
        results: Heuristic results in catalog order
        global_threshold: User sensitivity, 0-100

    Returns:
        (probability, raw_probability, risk_factors)
    """
    enabled = [r for r in results if r.enabled]
    total_weight = sum(r.weight for r in enabled)
    if total_weight <= 0:
        return 0.0, 0.0, []

    raw = round(sum(r.score * r.weight for r in enabled) / total_weight, PROBABILITY_PRECISION)
    adjusted = raw * global_threshold / REFERENCE_THRESHOLD
    probability = min(1.0, max(0.0, round(adjusted, PROBABILITY_PRECISION)))

    risk_factors = [
        finding
        for r in enabled
        if r.score > SIGNIFICANCE_CUTOFF
        for finding in r.findings
    ]
    return probability, raw, risk_factors


class ScoringEngine:
    """
    Weighted, user-configurable scam risk scoring.

    Args:
        preferences: Preference store resolving per-user settings
        runner: Heuristic dispatcher
        default_user_id: Profile used when analyze() gets no user id
    """

    def __init__(
        self,
        preferences: PreferenceStore,
        runner: HeuristicRunner,
        default_user_id: str = DEFAULT_USER_ID,
    ):
        self.preferences = preferences
        self.runner = runner
        self.default_user_id = default_user_id

    async def analyze(self, subject: ListingSubject, user_id: Optional[str] = None) -> AnalysisResult:
        """
        Score one listing for a user.

        Raises:
            PersistenceError: If the user's preferences cannot be loaded
        """
        prefs = await self.preferences.get_user_preferences(user_id or self.default_user_id)
        return await self._analyze_with(subject, prefs)

    async def analyze_batch(
        self, subjects: Sequence[ListingSubject], user_id: Optional[str] = None
    ) -> List[AnalysisResult]:
        """
        Score many listings with one preference snapshot (catalog browsing).

        Returns:
            Results in input order
        """
        if not subjects:
            return []
        prefs = await self.preferences.get_user_preferences(user_id or self.default_user_id)
        return list(await asyncio.gather(*(self._analyze_with(s, prefs) for s in subjects)))

    async def _analyze_with(self, subject: ListingSubject, prefs: UserPreferences) -> AnalysisResult:
        started = time.perf_counter()
        results = await self.runner.run(subject, prefs.heuristics)
        probability, raw, risk_factors = aggregate(results, prefs.global_threshold)
        level = classify(probability)

        logger.info(
            f"Listing {subject.listing_id or subject.title[:40]!r} scored {probability:.2f} ({level.value})",
            extra={
                "user_id": prefs.user_id,
                "score": round(probability, 4),
                "risk_level": level.value,
                "duration": round(time.perf_counter() - started, 4),
            },
        )

        return AnalysisResult(
            probability=probability,
            risk_factors=risk_factors,
            detailed_results=results,
            overall_risk_level=level,
            raw_probability=raw,
            global_threshold=prefs.global_threshold,
        )
