"""
Display Policy
==============

Decides how a scored listing is presented while browsing a catalog.

Each risk level maps to an action:
    none       show normally
    notify     show normally, mention the analysis
    highlight  show with a highlight        (display_warning)
    warn       show with a warning banner   (display_warning)
    hide       collapse the listing         (hidden)

With ``hide_completely`` the hidden listings are removed from the result
instead of being collapsed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Sequence, Tuple, TypeVar

from ..heuristics.config_schemas import HeuristicAction
from ..models import AnalysisResult, RiskLevel

T = TypeVar("T")

_WARNING_ACTIONS = (HeuristicAction.WARN, HeuristicAction.HIGHLIGHT)


def _default_actions() -> Dict[RiskLevel, HeuristicAction]:
    return {
        RiskLevel.CRITICAL: HeuristicAction.HIDE,
        RiskLevel.HIGH: HeuristicAction.WARN,
        RiskLevel.MEDIUM: HeuristicAction.HIGHLIGHT,
        RiskLevel.LOW: HeuristicAction.NONE,
    }


@dataclass
class DisplayPolicy:
    """Per-risk-level display actions."""
    actions: Dict[RiskLevel, HeuristicAction] = field(default_factory=_default_actions)
    hide_completely: bool = False

    def action_for(self, level: RiskLevel) -> HeuristicAction:
        return self.actions.get(level, _default_actions()[level])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayPolicy":
        """Build from ``{"criticalAction": "hide", ..., "hideProductsCompletely": true}``."""
        actions = _default_actions()
        for level in RiskLevel:
            key = f"{level.value.lower()}Action"
            if data.get(key) is not None:
                actions[level] = HeuristicAction(data[key])
        return cls(
            actions=actions,
            hide_completely=bool(data.get("hideProductsCompletely", False)),
        )


@dataclass
class ScreenedListing(Generic[T]):
    """A listing with its analysis and display decision."""
    listing: T
    analysis: AnalysisResult
    action: HeuristicAction
    display_warning: bool
    hidden: bool


@dataclass
class ScreenResult(Generic[T]):
    """Outcome of screening a catalog page."""
    items: List[ScreenedListing[T]]
    total_found: int
    filtered: int


def screen_listings(
    analyzed: Sequence[Tuple[T, AnalysisResult]], policy: DisplayPolicy
) -> ScreenResult[T]:
    """
    Apply a display policy to analyzed listings.

    Args:
        analyzed: (listing, analysis) pairs in display order
        policy: User display policy

    Returns:
        ScreenResult; ``filtered`` counts listings removed by hide_completely
    """
    items: List[ScreenedListing[T]] = []
    for listing, analysis in analyzed:
        action = policy.action_for(analysis.overall_risk_level)
        hidden = action == HeuristicAction.HIDE
        if hidden and policy.hide_completely:
            continue
        items.append(
            ScreenedListing(
                listing=listing,
                analysis=analysis,
                action=action,
                display_warning=action in _WARNING_ACTIONS,
                hidden=hidden,
            )
        )

    return ScreenResult(items=items, total_found=len(analyzed), filtered=len(analyzed) - len(items))
