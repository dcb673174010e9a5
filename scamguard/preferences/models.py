"""
Preference Models
=================

Per-user, mutable copies of the heuristic catalog tunables.

    UserPreferences
    ├── user_id
    ├── heuristics: [HeuristicPreference, ...]   one per descriptor, catalog order
    ├── global_threshold: 0-100                  sensitivity dial, default 70
    └── last_updated                             stamped on every save

Serialized form (backends, API) uses the camelCase field names of the
original extension storage format.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..heuristics.registry import HeuristicDescriptor

DEFAULT_GLOBAL_THRESHOLD = 70
MIN_GLOBAL_THRESHOLD = 0
MAX_GLOBAL_THRESHOLD = 100


def clamp_weight(weight: float) -> float:
    """Clamp a heuristic weight to [0, 1]."""
    return min(1.0, max(0.0, float(weight)))


def clamp_threshold(threshold: float) -> int:
    """Clamp a global threshold to [0, 100] and round it to an integer."""
    return int(round(min(MAX_GLOBAL_THRESHOLD, max(MIN_GLOBAL_THRESHOLD, float(threshold)))))


@dataclass
class HeuristicPreference:
    """A user's settings for one heuristic."""
    id: str
    name: str
    description: str
    category: str
    enabled: bool
    weight: float
    config_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.weight = clamp_weight(self.weight)

    @classmethod
    def from_descriptor(cls, descriptor: HeuristicDescriptor) -> "HeuristicPreference":
        return cls(
            id=descriptor.id,
            name=descriptor.name,
            description=descriptor.description,
            category=descriptor.category,
            enabled=descriptor.default_enabled,
            weight=descriptor.default_weight,
            config_options=dict(descriptor.default_config_options),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "enabled": self.enabled,
            "weight": self.weight,
            "configOptions": copy.deepcopy(self.config_options),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HeuristicPreference":
        options = data.get("configOptions", data.get("config_options")) or {}
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            category=data.get("category", ""),
            enabled=bool(data.get("enabled", True)),
            weight=data.get("weight", 0.0),
            config_options=dict(options),
        )


@dataclass
class UserPreferences:
    """All scam-detection settings owned by one user."""
    user_id: str
    heuristics: List[HeuristicPreference] = field(default_factory=list)
    global_threshold: int = DEFAULT_GLOBAL_THRESHOLD
    last_updated: Optional[datetime] = None

    @classmethod
    def defaults(
        cls, user_id: str, descriptors: Iterable[HeuristicDescriptor]
    ) -> "UserPreferences":
        """Fresh preferences built from catalog defaults."""
        return cls(
            user_id=user_id,
            heuristics=[HeuristicPreference.from_descriptor(d) for d in descriptors],
            global_threshold=DEFAULT_GLOBAL_THRESHOLD,
        )

    def find(self, heuristic_id: str) -> Optional[HeuristicPreference]:
        for heuristic in self.heuristics:
            if heuristic.id == heuristic_id:
                return heuristic
        return None

    def enabled_heuristics(self) -> List[HeuristicPreference]:
        return [h for h in self.heuristics if h.enabled]

    def reconcile(self, descriptors: Iterable[HeuristicDescriptor]) -> List[str]:
        """
        Append defaults for every descriptor missing from this record.

        Entries for descriptors no longer in the catalog are kept.

        Returns:
            Ids of the heuristics that were added
        """
        known = {h.id for h in self.heuristics}
        added = []
        for descriptor in descriptors:
            if descriptor.id not in known:
                self.heuristics.append(HeuristicPreference.from_descriptor(descriptor))
                added.append(descriptor.id)
        return added

    def copy(self) -> "UserPreferences":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "heuristics": [h.to_dict() for h in self.heuristics],
            "globalThreshold": self.global_threshold,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        return cls(
            user_id=data.get("userId", data.get("user_id")),
            heuristics=[HeuristicPreference.from_dict(h) for h in data.get("heuristics") or []],
            global_threshold=clamp_threshold(
                data.get("globalThreshold", data.get("global_threshold", DEFAULT_GLOBAL_THRESHOLD))
            ),
            last_updated=_parse_timestamp(data.get("lastUpdated", data.get("last_updated"))),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept ISO strings, datetimes, or epoch milliseconds (extension format)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return datetime.fromisoformat(value)
