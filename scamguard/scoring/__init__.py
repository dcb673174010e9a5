"""
ScamGuard Scoring Module
========================

Weighted, user-configurable risk scoring for marketplace listings.

Components:
    - ScoringEngine: runs heuristics, aggregates, scales by sensitivity
    - classify: probability -> LOW / MEDIUM / HIGH / CRITICAL
    - DisplayPolicy / screen_listings: how scored listings are shown

Usage:
    from scamguard.scoring import ScoringEngine, classify

    result = await engine.analyze(subject, user_id)
    print(result.overall_risk_level)
"""

from ..models import AnalysisResult, HeuristicResult, ListingSubject, PriceInfo, RiskLevel
from .classifier import RISK_BANDS, classify
from .engine import (
    DEFAULT_USER_ID,
    REFERENCE_THRESHOLD,
    SIGNIFICANCE_CUTOFF,
    ScoringEngine,
    aggregate,
)
from .display import DisplayPolicy, ScreenedListing, ScreenResult, screen_listings

__all__ = [
    # Models
    "AnalysisResult",
    "HeuristicResult",
    "ListingSubject",
    "PriceInfo",
    "RiskLevel",
    # Classification
    "RISK_BANDS",
    "classify",
    # Engine
    "DEFAULT_USER_ID",
    "REFERENCE_THRESHOLD",
    "SIGNIFICANCE_CUTOFF",
    "ScoringEngine",
    "aggregate",
    # Display
    "DisplayPolicy",
    "ScreenedListing",
    "ScreenResult",
    "screen_listings",
]
