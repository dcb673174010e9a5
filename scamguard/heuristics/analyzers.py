"""
Heuristic Analyzers
===================

Contract between the scoring engine and the code that actually inspects a
listing, plus the registry mapping heuristic ids to analyzers.

An analyzer receives the listing and its validated options and returns an
AnalyzerOutput (score in [0, 1] plus human-readable findings). Missing
optional listing data must yield a neutral score, not an exception; the
runner turns genuine exceptions into a zero score anyway.

Usage:
    registry = AnalyzerRegistry()
    registry.register("price_anomaly", PriceAnomalyAnalyzer())
    registry.register("my_check", FunctionAnalyzer(lambda subject, options: AnalyzerOutput(0.2)))
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..models import ListingSubject
from .config_schemas import HeuristicOptions


@dataclass
class AnalyzerOutput:
    """Score and findings produced by one analyzer."""
    score: float = 0.0
    findings: List[str] = field(default_factory=list)

    @classmethod
    def neutral(cls) -> "AnalyzerOutput":
        """Result for "insufficient data"."""
        return cls(score=0.0, findings=[])


class HeuristicAnalyzer(ABC):
    """Base class for analyzers."""

    @abstractmethod
    async def analyze(self, subject: ListingSubject, options: HeuristicOptions) -> AnalyzerOutput:
        """Score a listing."""


class FunctionAnalyzer(HeuristicAnalyzer):
    """
    Adapts a plain callable to the analyzer contract.

    Coroutine functions are awaited; regular functions run in a worker
    thread so that slow synchronous analyzers do not block the fan-out.
    The callable may return an AnalyzerOutput or a ``{"score", "findings"}``
    mapping.
    """

    def __init__(self, func: Callable[[ListingSubject, HeuristicOptions], Any]):
        self._func = func

    async def analyze(self, subject: ListingSubject, options: HeuristicOptions) -> AnalyzerOutput:
        if inspect.iscoroutinefunction(self._func):
            result = await self._func(subject, options)
        else:
            result = await asyncio.to_thread(self._func, subject, options)
            if inspect.isawaitable(result):
                result = await result
        return coerce_output(result)


def coerce_output(result: Any) -> AnalyzerOutput:
    """Accept an AnalyzerOutput or a mapping with score / findings keys."""
    if isinstance(result, AnalyzerOutput):
        return result
    if isinstance(result, dict):
        return AnalyzerOutput(
            score=result.get("score", 0.0),
            findings=list(result.get("findings") or []),
        )
    raise TypeError(f"Analyzer returned unsupported type {type(result).__name__}")


class AnalyzerRegistry:
    """Mapping of heuristic id to analyzer. A missing id is a lookup miss."""

    def __init__(self, analyzers: Optional[Dict[str, HeuristicAnalyzer]] = None):
        self._analyzers: Dict[str, HeuristicAnalyzer] = {}
        for heuristic_id, analyzer in (analyzers or {}).items():
            self.register(heuristic_id, analyzer)

    def register(self, heuristic_id: str, analyzer: Any) -> None:
        """Register an analyzer; plain callables are wrapped in FunctionAnalyzer."""
        if not isinstance(analyzer, HeuristicAnalyzer):
            if not callable(analyzer):
                raise TypeError(f"Analyzer for {heuristic_id} must be callable")
            analyzer = FunctionAnalyzer(analyzer)
        self._analyzers[heuristic_id] = analyzer

    def unregister(self, heuristic_id: str) -> None:
        self._analyzers.pop(heuristic_id, None)

    def get(self, heuristic_id: str) -> Optional[HeuristicAnalyzer]:
        return self._analyzers.get(heuristic_id)

    def ids(self) -> List[str]:
        return list(self._analyzers)

    def __contains__(self, heuristic_id: object) -> bool:
        return heuristic_id in self._analyzers

    def __iter__(self) -> Iterator[str]:
        return iter(self._analyzers)

    def __len__(self) -> int:
        return len(self._analyzers)
