"""
Risk Classifier
===============

Maps a final probability to a risk band. The breakpoints are a user-facing
contract (they are explained in onboarding copy) and must not move.

    [0.0, 0.3)  LOW
    [0.3, 0.6)  MEDIUM
    [0.6, 0.8)  HIGH
    [0.8, 1.0]  CRITICAL

Lower bounds are inclusive. Out-of-range inputs fall into the nearest band.
"""

from typing import Tuple

from ..models import RiskLevel

# (exclusive upper bound, level), ascending
RISK_BANDS: Tuple[Tuple[float, RiskLevel], ...] = (
    (0.3, RiskLevel.LOW),
    (0.6, RiskLevel.MEDIUM),
    (0.8, RiskLevel.HIGH),
)


def classify(probability: float) -> RiskLevel:
    """Risk level for a probability in [0, 1]."""
    for upper, level in RISK_BANDS:
        if probability < upper:
            return level
    return RiskLevel.CRITICAL
