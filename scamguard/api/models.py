"""
ScamGuard API Models
====================

Pydantic models for API request/response serialization.
Field names are snake_case in Python and camelCase on the wire, aligned with
the extension's TypeScript types.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..heuristics.config_schemas import HeuristicAction
from ..heuristics.registry import HeuristicCategory, HeuristicDescriptor
from ..models import AnalysisResult, HeuristicResult, ListingSubject, PriceInfo, RiskLevel
from ..preferences.models import HeuristicPreference, UserPreferences
from ..scoring.display import DisplayPolicy


class CamelModel(BaseModel):
    """Base model serializing to camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# REQUESTS
# ============================================================================

class ListingInput(CamelModel):
    """A listing as sent by the extension."""
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0)
    market_price: Optional[float] = Field(None, gt=0)
    original_price: Optional[float] = Field(None, gt=0)
    currency: str = "USD"
    images: List[str] = Field(default_factory=list)
    seller_id: Optional[str] = None
    category_id: Optional[str] = None
    brand: Optional[str] = None
    platform: Optional[str] = None

    def to_subject(self) -> ListingSubject:
        return ListingSubject(
            title=self.title,
            description=self.description,
            price=PriceInfo(
                current=self.price,
                market=self.market_price,
                original=self.original_price,
                currency=self.currency,
            ),
            images=list(self.images),
            seller_id=self.seller_id,
            category_id=self.category_id,
            listing_id=self.id,
            brand=self.brand,
            platform=self.platform,
        )


class AnalyzeRequest(CamelModel):
    listing: ListingInput
    user_id: Optional[str] = None


class DisplayPolicyModel(CamelModel):
    critical_action: HeuristicAction = HeuristicAction.HIDE
    high_action: HeuristicAction = HeuristicAction.WARN
    medium_action: HeuristicAction = HeuristicAction.HIGHLIGHT
    low_action: HeuristicAction = HeuristicAction.NONE
    hide_products_completely: bool = False

    def to_policy(self) -> DisplayPolicy:
        return DisplayPolicy(
            actions={
                RiskLevel.CRITICAL: self.critical_action,
                RiskLevel.HIGH: self.high_action,
                RiskLevel.MEDIUM: self.medium_action,
                RiskLevel.LOW: self.low_action,
            },
            hide_completely=self.hide_products_completely,
        )


class ScreenRequest(CamelModel):
    listings: List[ListingInput] = Field(..., max_length=200)
    user_id: Optional[str] = None
    policy: DisplayPolicyModel = Field(default_factory=DisplayPolicyModel)


class HeuristicUpdateRequest(CamelModel):
    """Partial update; only fields that are set are applied."""
    enabled: Optional[bool] = None
    weight: Optional[float] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    config_options: Optional[Dict[str, Any]] = None

    def to_updates(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ThresholdRequest(CamelModel):
    threshold: float


# ============================================================================
# RESPONSES
# ============================================================================

class HeuristicResultModel(CamelModel):
    heuristic_id: str
    name: str
    score: float
    enabled: bool
    weight: float
    findings: List[str]

    @classmethod
    def from_result(cls, result: HeuristicResult) -> "HeuristicResultModel":
        return cls(
            heuristic_id=result.heuristic_id,
            name=result.name,
            score=result.score,
            enabled=result.enabled,
            weight=result.weight,
            findings=list(result.findings),
        )


class AnalysisResponse(CamelModel):
    probability: float
    risk_factors: List[str]
    detailed_results: List[HeuristicResultModel]
    overall_risk_level: RiskLevel
    raw_probability: float
    global_threshold: int

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResponse":
        return cls(
            probability=result.probability,
            risk_factors=list(result.risk_factors),
            detailed_results=[HeuristicResultModel.from_result(r) for r in result.detailed_results],
            overall_risk_level=result.overall_risk_level,
            raw_probability=result.raw_probability,
            global_threshold=result.global_threshold,
        )


class ScreenedListingModel(CamelModel):
    listing: ListingInput
    analysis: AnalysisResponse
    action: HeuristicAction
    display_warning: bool
    hidden: bool


class ScreenResponse(CamelModel):
    items: List[ScreenedListingModel]
    total_found: int
    filtered: int


class HeuristicPreferenceModel(CamelModel):
    id: str
    name: str
    description: str
    category: str
    enabled: bool
    weight: float
    config_options: Dict[str, Any]

    @classmethod
    def from_preference(cls, pref: HeuristicPreference) -> "HeuristicPreferenceModel":
        return cls(
            id=pref.id,
            name=pref.name,
            description=pref.description,
            category=pref.category,
            enabled=pref.enabled,
            weight=pref.weight,
            config_options=dict(pref.config_options),
        )


class PreferencesResponse(CamelModel):
    user_id: str
    heuristics: List[HeuristicPreferenceModel]
    global_threshold: int
    last_updated: Optional[datetime] = None

    @classmethod
    def from_preferences(cls, prefs: UserPreferences) -> "PreferencesResponse":
        return cls(
            user_id=prefs.user_id,
            heuristics=[HeuristicPreferenceModel.from_preference(h) for h in prefs.heuristics],
            global_threshold=prefs.global_threshold,
            last_updated=prefs.last_updated,
        )


class HeuristicDescriptorModel(CamelModel):
    id: str
    name: str
    description: str
    category: str
    default_enabled: bool
    default_weight: float
    default_config_options: Dict[str, Any]

    @classmethod
    def from_descriptor(cls, descriptor: HeuristicDescriptor) -> "HeuristicDescriptorModel":
        return cls(
            id=descriptor.id,
            name=descriptor.name,
            description=descriptor.description,
            category=descriptor.category,
            default_enabled=descriptor.default_enabled,
            default_weight=descriptor.default_weight,
            default_config_options=dict(descriptor.default_config_options),
        )


class HeuristicCategoryModel(CamelModel):
    id: str
    name: str
    icon: str

    @classmethod
    def from_category(cls, category: HeuristicCategory) -> "HeuristicCategoryModel":
        return cls(id=category.id, name=category.name, icon=category.icon)


class CatalogResponse(CamelModel):
    heuristics: List[HeuristicDescriptorModel]
    categories: List[HeuristicCategoryModel]
    analyzers: List[str]


class HealthResponse(CamelModel):
    status: str
    version: str
    preference_backend: str
    cache: Dict[str, Any]
    timestamp: datetime
