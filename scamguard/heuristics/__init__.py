"""
ScamGuard Heuristics
====================

Everything the engine needs to know about individual heuristics.

Components:
    - HeuristicRegistry / DEFAULT_HEURISTICS: catalog of descriptors and defaults
    - config_schemas: per-heuristic option validation (pydantic)
    - AnalyzerRegistry: heuristic id -> analyzer
    - HeuristicRunner: concurrent, failure-isolated dispatch
    - build_default_analyzers: deterministic reference analyzers
"""

from .registry import (
    DEFAULT_HEURISTICS,
    DEFAULT_REGISTRY,
    HEURISTIC_CATEGORIES,
    HeuristicCategory,
    HeuristicDescriptor,
    HeuristicRegistry,
)
from .config_schemas import (
    HeuristicAction,
    HeuristicOptions,
    normalize_option_keys,
    parse_config_options,
    validate_config_options,
)
from .analyzers import (
    AnalyzerOutput,
    AnalyzerRegistry,
    FunctionAnalyzer,
    HeuristicAnalyzer,
)
from .sellers import CachedSellerDirectory, SellerDirectory, SellerProfile
from .builtin import build_default_analyzers
from .runner import HeuristicRunner

__all__ = [
    # Catalog
    "DEFAULT_HEURISTICS",
    "DEFAULT_REGISTRY",
    "HEURISTIC_CATEGORIES",
    "HeuristicCategory",
    "HeuristicDescriptor",
    "HeuristicRegistry",
    # Options
    "HeuristicAction",
    "HeuristicOptions",
    "normalize_option_keys",
    "parse_config_options",
    "validate_config_options",
    # Analyzers
    "AnalyzerOutput",
    "AnalyzerRegistry",
    "FunctionAnalyzer",
    "HeuristicAnalyzer",
    "build_default_analyzers",
    # Sellers
    "CachedSellerDirectory",
    "SellerDirectory",
    "SellerProfile",
    # Dispatch
    "HeuristicRunner",
]
