"""
Heuristic Config Schemas
========================

Pydantic models validating the ``config_options`` of each heuristic.

Every schema:
    - accepts snake_case field names or their camelCase aliases
      (``z_score_threshold`` / ``zScoreThreshold``), so preferences saved by
      older frontends keep loading
    - fills missing keys with defaults
    - keeps unknown keys untouched (forward compatibility)

Usage:
    options = validate_config_options("price_anomaly", {"zScoreThreshold": 3})
    # {"z_score_threshold": 3.0, "action": "notify"}
"""

from enum import Enum
from typing import Any, Dict, Mapping, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..exceptions import ConfigValidationError


class HeuristicAction(str, Enum):
    """What the UI does with a listing flagged by a heuristic."""
    NONE = "none"
    NOTIFY = "notify"
    WARN = "warn"
    HIGHLIGHT = "highlight"
    HIDE = "hide"


class HeuristicOptions(BaseModel):
    """Base schema shared by all heuristics; also used for unknown ids."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        use_enum_values=True,
    )

    action: HeuristicAction = HeuristicAction.NOTIFY


class PriceAnomalyOptions(HeuristicOptions):
    z_score_threshold: float = Field(2.5, gt=0)


class NewSellerLargeInventoryOptions(HeuristicOptions):
    action: HeuristicAction = HeuristicAction.WARN
    max_account_age_days: int = Field(30, ge=0)
    min_listing_count: int = Field(50, ge=0)


class ReviewPatternOptions(HeuristicOptions):
    action: HeuristicAction = HeuristicAction.HIGHLIGHT
    velocity_threshold: float = Field(20, gt=0)
    perfect_ratio_threshold: float = Field(0.9, ge=0, le=1)


class ImageQualityOptions(HeuristicOptions):
    quality_threshold: float = Field(0.4, ge=0, le=1)
    min_image_count: int = Field(2, ge=0)


class SpecificationAnomalyOptions(HeuristicOptions):
    action: HeuristicAction = HeuristicAction.WARN
    z_score_threshold: float = Field(3.0, gt=0)


class CrossPlatformOptions(HeuristicOptions):
    action: HeuristicAction = HeuristicAction.HIGHLIGHT
    min_match_score: float = Field(0.7, ge=0, le=1)


class SellerHistoryOptions(HeuristicOptions):
    action: HeuristicAction = HeuristicAction.WARN
    min_history_months: int = Field(3, ge=0)
    min_transaction_count: int = Field(10, ge=0)
    low_rating_threshold: float = Field(3.5, ge=0, le=5)


class DescriptionAnalysisOptions(HeuristicOptions):
    min_description_length: int = Field(50, ge=0)


OPTIONS_SCHEMAS: Dict[str, Type[HeuristicOptions]] = {
    "price_anomaly": PriceAnomalyOptions,
    "new_seller_large_inventory": NewSellerLargeInventoryOptions,
    "review_pattern_analysis": ReviewPatternOptions,
    "image_quality_analysis": ImageQualityOptions,
    "specification_anomalies": SpecificationAnomalyOptions,
    "cross_platform_verification": CrossPlatformOptions,
    "seller_history_analysis": SellerHistoryOptions,
    "product_description_analysis": DescriptionAnalysisOptions,
}


def schema_for(heuristic_id: str) -> Type[HeuristicOptions]:
    """Schema class for a heuristic id; the permissive base for unknown ids."""
    return OPTIONS_SCHEMAS.get(heuristic_id, HeuristicOptions)


def normalize_option_keys(heuristic_id: str, options: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rename camelCase aliases of known fields to their snake_case names.

    When both spellings are present the one appearing later wins. Unknown
    keys are kept as given.
    """
    schema = schema_for(heuristic_id)
    names = {info.alias: name for name, info in schema.model_fields.items() if info.alias}
    return {names.get(key, key): value for key, value in options.items()}


def parse_config_options(heuristic_id: str, options: Mapping[str, Any]) -> HeuristicOptions:
    """
    Validate options and return the typed schema instance.

    Raises:
        ConfigValidationError: If any option has the wrong type or range
    """
    try:
        return schema_for(heuristic_id).model_validate(normalize_option_keys(heuristic_id, options))
    except ValidationError as e:
        raise ConfigValidationError(heuristic_id, e.errors(include_url=False)) from e


def validate_config_options(heuristic_id: str, options: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate options and return the normalized snake_case mapping."""
    return parse_config_options(heuristic_id, options).model_dump(mode="json")
