"""
Seller Directory
================

Seller reputation lookup consumed by the seller heuristics.

The directory is an external collaborator of the engine; this module ships
a cache-backed implementation that keeps a running rating average per
seller, the way the extension's local storage did.

Usage:
    directory = CachedSellerDirectory(RedisCache())
    await directory.record_rating("seller-1", 4.0)
    profile = await directory.get_profile("seller-1")
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..cache.redis_cache import RedisCache

logger = logging.getLogger(__name__)


@dataclass
class SellerProfile:
    """What we know about a seller."""
    seller_id: str
    rating: Optional[float] = None
    rating_count: int = 0
    rating_total: float = 0.0
    account_age_days: Optional[int] = None
    listing_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SellerProfile":
        return cls(
            seller_id=data["seller_id"],
            rating=data.get("rating"),
            rating_count=int(data.get("rating_count") or 0),
            rating_total=float(data.get("rating_total") or 0.0),
            account_age_days=data.get("account_age_days"),
            listing_count=data.get("listing_count"),
        )


class SellerDirectory(ABC):
    """Lookup of seller profiles by id."""

    @abstractmethod
    async def get_profile(self, seller_id: str) -> Optional[SellerProfile]:
        """Return the seller's profile, or None if the seller is unknown."""


class CachedSellerDirectory(SellerDirectory):
    """Seller profiles stored as JSON in the key-value cache."""

    KEY_PREFIX = "seller"

    def __init__(self, cache: RedisCache):
        self._cache = cache

    def _key(self, seller_id: str) -> str:
        return f"{self.KEY_PREFIX}:{seller_id}"

    async def get_profile(self, seller_id: str) -> Optional[SellerProfile]:
        data = await asyncio.to_thread(self._cache.get, self._key(seller_id))
        if data is None:
            return None
        return SellerProfile.from_dict(data)

    async def save_profile(self, profile: SellerProfile) -> None:
        await asyncio.to_thread(self._cache.set, self._key(profile.seller_id), profile.to_dict())

    async def record_rating(self, seller_id: str, rating: float) -> SellerProfile:
        """
        Fold a new rating into the seller's running average.

        Args:
            seller_id: Seller identifier
            rating: Rating between 0 and 5

        Returns:
            Updated profile
        """
        if not 0 <= rating <= 5:
            raise ValueError("rating must be between 0 and 5")

        profile = await self.get_profile(seller_id) or SellerProfile(seller_id=seller_id)
        profile.rating_total += rating
        profile.rating_count += 1
        profile.rating = profile.rating_total / profile.rating_count
        await self.save_profile(profile)

        logger.debug(
            f"Seller {seller_id} rating updated: {profile.rating:.2f} ({profile.rating_count} ratings)"
        )
        return profile
