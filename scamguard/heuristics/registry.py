"""
Heuristic Descriptor Registry
=============================

Static catalog of every heuristic the engine knows about.

Each descriptor carries the defaults a new user starts with: enabled flag,
weight (0-1) and heuristic-specific config options. Descriptors are created
once at import time and never mutated; per-user tunables live in
``scamguard.preferences.models.HeuristicPreference``.

Adding a heuristic:
    1. Append a HeuristicDescriptor to DEFAULT_HEURISTICS
    2. Add its options schema in config_schemas.py
    3. Register an analyzer for its id (see analyzers.py)

Existing users pick up the new descriptor automatically: the preference
store reconciles stored preferences against this catalog on load.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class HeuristicDescriptor:
    """Immutable catalog entry for one heuristic."""
    id: str
    name: str
    description: str
    category: str
    default_enabled: bool = True
    default_weight: float = 0.5
    default_config_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.0 <= self.default_weight <= 1.0:
            raise ValueError(f"default_weight for {self.id} must be within [0, 1]")
        # Freeze the options mapping so the catalog cannot drift at runtime
        object.__setattr__(
            self, "default_config_options", MappingProxyType(dict(self.default_config_options))
        )


@dataclass(frozen=True)
class HeuristicCategory:
    """UI grouping for heuristics."""
    id: str
    name: str
    icon: str


DEFAULT_HEURISTICS: Tuple[HeuristicDescriptor, ...] = (
    HeuristicDescriptor(
        id="price_anomaly",
        name="Price Anomaly Detection",
        description="Identifies products with prices significantly lower or higher than market average",
        category="Pricing",
        default_enabled=True,
        default_weight=0.8,
        default_config_options={
            "z_score_threshold": 2.5,  # standard deviations from mean to flag
            "action": "notify",
        },
    ),
    HeuristicDescriptor(
        id="new_seller_large_inventory",
        name="New Seller with Large Inventory",
        description="Flags new sellers (< 30 days) with unusually large product catalogs",
        category="Seller",
        default_enabled=True,
        default_weight=0.7,
        default_config_options={
            "max_account_age_days": 30,
            "min_listing_count": 50,
            "action": "warn",
        },
    ),
    HeuristicDescriptor(
        id="review_pattern_analysis",
        name="Suspicious Review Patterns",
        description="Detects unusual patterns in review timing, ratings, or content",
        category="Reviews",
        default_enabled=True,
        default_weight=0.75,
        default_config_options={
            "velocity_threshold": 20,  # max reviews per day that seems normal
            "perfect_ratio_threshold": 0.9,  # max share of 5-star reviews that seems normal
            "action": "highlight",
        },
    ),
    HeuristicDescriptor(
        id="image_quality_analysis",
        name="Image Quality Analysis",
        description="Checks for poor quality, inconsistent, or manipulated product images",
        category="Visual",
        default_enabled=True,
        default_weight=0.6,
        default_config_options={
            "quality_threshold": 0.4,
            "min_image_count": 2,
            "action": "notify",
        },
    ),
    HeuristicDescriptor(
        id="specification_anomalies",
        name="Specification Anomalies",
        description="Identifies products with specifications that are unrealistic for their category or price",
        category="Product",
        default_enabled=True,
        default_weight=0.7,
        default_config_options={
            "z_score_threshold": 3.0,
            "action": "warn",
        },
    ),
    HeuristicDescriptor(
        id="cross_platform_verification",
        name="Cross-Platform Verification",
        description="Compares product listings across platforms to identify inconsistencies",
        category="Verification",
        default_enabled=True,
        default_weight=0.65,
        default_config_options={
            "min_match_score": 0.7,
            "action": "highlight",
        },
    ),
    HeuristicDescriptor(
        id="seller_history_analysis",
        name="Seller History Analysis",
        description="Analyzes seller's past behavior, ratings, and customer satisfaction",
        category="Seller",
        default_enabled=True,
        default_weight=0.75,
        default_config_options={
            "min_history_months": 3,
            "min_transaction_count": 10,
            "low_rating_threshold": 3.5,
            "action": "warn",
        },
    ),
    HeuristicDescriptor(
        id="product_description_analysis",
        name="Product Description Analysis",
        description="Checks for inconsistencies between product title, description, and specifications",
        category="Product",
        default_enabled=True,
        default_weight=0.6,
        default_config_options={
            "min_description_length": 50,
            "action": "notify",
        },
    ),
)


HEURISTIC_CATEGORIES: Tuple[HeuristicCategory, ...] = (
    HeuristicCategory(id="Pricing", name="Pricing Analysis", icon="price-tag"),
    HeuristicCategory(id="Seller", name="Seller Verification", icon="store"),
    HeuristicCategory(id="Reviews", name="Review Analysis", icon="star"),
    HeuristicCategory(id="Visual", name="Visual Verification", icon="image"),
    HeuristicCategory(id="Product", name="Product Validation", icon="box"),
    HeuristicCategory(id="Verification", name="Cross-Verification", icon="shield-check"),
)


class HeuristicRegistry:
    """
    Ordered, read-only collection of heuristic descriptors.

    Order is registration order; it drives the order of preference lists,
    detailed results and risk factors.
    """

    def __init__(
        self,
        descriptors: Iterable[HeuristicDescriptor] = DEFAULT_HEURISTICS,
        categories: Iterable[HeuristicCategory] = HEURISTIC_CATEGORIES,
    ):
        self._descriptors: Dict[str, HeuristicDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in self._descriptors:
                raise ValueError(f"Duplicate heuristic id: {descriptor.id}")
            self._descriptors[descriptor.id] = descriptor
        self._categories: Tuple[HeuristicCategory, ...] = tuple(categories)

    def __iter__(self) -> Iterator[HeuristicDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, heuristic_id: object) -> bool:
        return heuristic_id in self._descriptors

    def get(self, heuristic_id: str) -> Optional[HeuristicDescriptor]:
        """Return the descriptor for an id, or None."""
        return self._descriptors.get(heuristic_id)

    def ids(self) -> List[str]:
        return list(self._descriptors)

    @property
    def categories(self) -> Tuple[HeuristicCategory, ...]:
        return self._categories

    def by_category(self) -> Dict[str, List[HeuristicDescriptor]]:
        """Group descriptors by category id, categories in catalog order."""
        grouped: Dict[str, List[HeuristicDescriptor]] = {c.id: [] for c in self._categories}
        for descriptor in self._descriptors.values():
            grouped.setdefault(descriptor.category, []).append(descriptor)
        return grouped

    def extended(self, *descriptors: HeuristicDescriptor) -> "HeuristicRegistry":
        """Return a new registry with extra descriptors appended."""
        return HeuristicRegistry(list(self) + list(descriptors), self._categories)


DEFAULT_REGISTRY = HeuristicRegistry()
