"""
Heuristic Runner
================

Fans one listing out to every enabled heuristic and joins the results.

Each enabled heuristic runs as its own asyncio task. A task never raises:
exceptions, timeouts, invalid scores, invalid config options and missing
analyzers all collapse into a zero-score result and a warning log line, so
one broken heuristic cannot fail the whole analysis.

Disabled heuristics are never dispatched; they are reported with a zero
score so the caller sees the complete list.
"""

import asyncio
import logging
import math
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Set

from ..exceptions import AnalyzerFailure
from ..models import HeuristicResult, ListingSubject
from .analyzers import AnalyzerRegistry, coerce_output
from .config_schemas import parse_config_options

if TYPE_CHECKING:
    from ..preferences.models import HeuristicPreference

logger = logging.getLogger(__name__)


class HeuristicRunner:
    """
    Concurrent, failure-isolated heuristic dispatcher.

    Args:
        analyzers: Registry mapping heuristic ids to analyzers
        timeout_seconds: Optional per-invocation timeout. A timed-out
            heuristic scores 0, like any other failure.
    """

    def __init__(self, analyzers: AnalyzerRegistry, timeout_seconds: Optional[float] = None):
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.analyzers = analyzers
        self.timeout_seconds = timeout_seconds
        self._stats: Dict[str, int] = {
            "invocations": 0,
            "failures": 0,
            "timeouts": 0,
            "missing": 0,
        }
        self._failures_by_heuristic: Dict[str, int] = {}
        self._warned_missing: Set[str] = set()

    async def run(
        self,
        subject: ListingSubject,
        preferences: Sequence["HeuristicPreference"],
    ) -> List[HeuristicResult]:
        """
        Run all enabled heuristics concurrently.

        Returns:
            One HeuristicResult per preference, in preference order.
        """
        slots: List[Optional[HeuristicResult]] = []
        pending = []
        positions = []

        for index, pref in enumerate(preferences):
            if pref.enabled:
                slots.append(None)
                pending.append(self._run_one(subject, pref))
                positions.append(index)
            else:
                slots.append(HeuristicResult.disabled(pref.id, pref.name, pref.weight))

        if pending:
            for index, result in zip(positions, await asyncio.gather(*pending)):
                slots[index] = result

        return [result for result in slots if result is not None]

    async def _run_one(self, subject: ListingSubject, pref: "HeuristicPreference") -> HeuristicResult:
        started = time.perf_counter()
        try:
            score, findings = await self._invoke(subject, pref)
        except AnalyzerFailure as failure:
            self._record_failure(failure)
            score, findings = 0.0, []
        except Exception as e:
            self._record_failure(AnalyzerFailure(pref.id, f"{type(e).__name__}: {e}", e))
            score, findings = 0.0, []

        logger.debug(
            f"Heuristic {pref.id} scored {score:.2f}",
            extra={
                "heuristic_id": pref.id,
                "score": score,
                "duration": round(time.perf_counter() - started, 4),
            },
        )
        return HeuristicResult(
            heuristic_id=pref.id,
            name=pref.name,
            score=score,
            enabled=True,
            weight=pref.weight,
            findings=findings,
        )

    async def _invoke(self, subject: ListingSubject, pref: "HeuristicPreference"):
        analyzer = self.analyzers.get(pref.id)
        if analyzer is None:
            raise AnalyzerFailure(pref.id, "no analyzer registered")

        options = parse_config_options(pref.id, pref.config_options)

        self._stats["invocations"] += 1
        call = analyzer.analyze(subject, options)
        if self.timeout_seconds is not None:
            try:
                raw = await asyncio.wait_for(call, timeout=self.timeout_seconds)
            except asyncio.TimeoutError as e:
                raise AnalyzerFailure(pref.id, f"timed out after {self.timeout_seconds}s", e) from e
        else:
            raw = await call

        output = coerce_output(raw)
        return _normalize_score(pref.id, output.score), [str(f) for f in output.findings]

    def _record_failure(self, failure: AnalyzerFailure) -> None:
        heuristic_id = failure.heuristic_id
        if failure.reason == "no analyzer registered":
            self._stats["missing"] += 1
            # Missing analyzers are a deployment choice; warn once per id
            if heuristic_id in self._warned_missing:
                logger.debug(str(failure), extra={"heuristic_id": heuristic_id})
                return
            self._warned_missing.add(heuristic_id)
            logger.warning(str(failure), extra={"heuristic_id": heuristic_id})
            return

        self._stats["failures"] += 1
        if isinstance(failure.cause, asyncio.TimeoutError):
            self._stats["timeouts"] += 1
        self._failures_by_heuristic[heuristic_id] = self._failures_by_heuristic.get(heuristic_id, 0) + 1
        logger.warning(
            f"{failure}; scoring it 0",
            extra={"heuristic_id": heuristic_id},
            exc_info=failure.cause is not None and not isinstance(failure.cause, asyncio.TimeoutError),
        )

    def get_stats(self) -> Dict[str, Any]:
        """Invocation and failure counters since construction."""
        return {
            **self._stats,
            "failures_by_heuristic": dict(self._failures_by_heuristic),
            "registered_analyzers": self.analyzers.ids(),
        }


def _normalize_score(heuristic_id: str, score: Any) -> float:
    """Clamp a score to [0, 1]; reject anything that is not a finite number."""
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise AnalyzerFailure(heuristic_id, f"score is not a number: {score!r}")
    if not math.isfinite(score):
        raise AnalyzerFailure(heuristic_id, f"score is not finite: {score!r}")
    return min(1.0, max(0.0, float(score)))
