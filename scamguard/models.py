"""
ScamGuard Data Models
=====================

Dataclasses shared by the heuristics runner, the scoring engine and the API.

Models:
    - PriceInfo: current price plus optional market / original reference prices
    - ListingSubject: the marketplace listing being analyzed
    - HeuristicResult: one heuristic's outcome for one analysis
    - AnalysisResult: the engine's aggregated verdict
    - RiskLevel: LOW / MEDIUM / HIGH / CRITICAL
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class RiskLevel(str, Enum):
    """Discrete risk band derived from the final probability."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class PriceInfo:
    """Listing price with optional reference prices."""
    current: float
    market: Optional[float] = None
    original: Optional[float] = None
    currency: str = "USD"

    def __post_init__(self):
        if self.current is None or self.current < 0:
            raise ValueError("current price must be a non-negative number")


@dataclass(frozen=True)
class ListingSubject:
    """
    A marketplace listing submitted for analysis.

    Only ``title``, ``description`` and ``price`` are required. Analyzers
    treat every optional field as "insufficient data" when it is missing.
    """
    title: str
    description: str
    price: PriceInfo
    images: List[str] = field(default_factory=list)
    seller_id: Optional[str] = None
    category_id: Optional[str] = None
    listing_id: Optional[str] = None
    brand: Optional[str] = None
    platform: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ListingSubject":
        """
        Build a subject from a loosely shaped mapping.

        Accepts either a nested price (``{"price": {"current": 10, "market": 50}}``)
        or flat fields (``price``, ``marketPrice`` / ``market_price``,
        ``originalPrice`` / ``original_price``). Keys may be camelCase or
        snake_case.
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        raw_price = data.get("price")
        if isinstance(raw_price, Mapping):
            price = PriceInfo(
                current=float(raw_price["current"]),
                market=_optional_float(raw_price.get("market")),
                original=_optional_float(raw_price.get("original")),
                currency=raw_price.get("currency") or "USD",
            )
        else:
            if raw_price is None:
                raise ValueError("listing price is required")
            price = PriceInfo(
                current=float(raw_price),
                market=_optional_float(pick("marketPrice", "market_price")),
                original=_optional_float(pick("originalPrice", "original_price")),
                currency=pick("currency") or "USD",
            )

        seller = data.get("seller")
        seller_id = pick("sellerId", "seller_id")
        if seller_id is None and isinstance(seller, Mapping):
            seller_id = seller.get("id")

        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            price=price,
            images=list(data.get("images") or []),
            seller_id=seller_id,
            category_id=pick("categoryId", "category_id"),
            listing_id=pick("id", "listingId", "listing_id"),
            brand=pick("brand"),
            platform=pick("platform"),
        )


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


@dataclass
class HeuristicResult:
    """Outcome of one heuristic for one analysis call."""
    heuristic_id: str
    name: str
    score: float
    enabled: bool
    weight: float
    findings: List[str] = field(default_factory=list)

    @classmethod
    def disabled(cls, heuristic_id: str, name: str, weight: float) -> "HeuristicResult":
        """Zero-score placeholder reported for a disabled heuristic."""
        return cls(heuristic_id=heuristic_id, name=name, score=0.0, enabled=False, weight=weight)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heuristicId": self.heuristic_id,
            "name": self.name,
            "score": self.score,
            "enabled": self.enabled,
            "weight": self.weight,
            "findings": list(self.findings),
        }


@dataclass
class AnalysisResult:
    """
    Aggregated verdict for a listing.

    ``probability`` is the final, threshold-scaled value in [0, 1];
    ``raw_probability`` is the weighted average before scaling.
    """
    probability: float
    risk_factors: List[str]
    detailed_results: List[HeuristicResult]
    overall_risk_level: RiskLevel
    raw_probability: float = 0.0
    global_threshold: int = 70

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": self.probability,
            "riskFactors": list(self.risk_factors),
            "detailedResults": [r.to_dict() for r in self.detailed_results],
            "overallRiskLevel": self.overall_risk_level.value,
            "rawProbability": self.raw_probability,
            "globalThreshold": self.global_threshold,
        }
