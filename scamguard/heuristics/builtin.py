"""
Reference Analyzers
===================

Deterministic analyzers for the heuristics whose inputs are carried by the
listing itself (price, images, description) or by the seller directory.

These are intentionally simple rules. Heuristics that need external data
sources (review forensics, specification statistics, cross-platform
matching) have no reference analyzer: register one with the
AnalyzerRegistry to enable them.

SCORES:
    price_anomaly                  0.8 price < 50% of market
                                   0.6 price > 150% of market
                                   0.7 discount > 70% of original price
    image_quality_analysis         0.6 fewer images than min_image_count
    product_description_analysis   0.5 description shorter than min_description_length
                                   0.4 description shares no keyword with the title
    seller_history_analysis        0.7 no rating history
                                   0.6 rating below low_rating_threshold
                                   0.4 perfect 5.0 rating
                                   0.3 fewer rated transactions than min_transaction_count
                                   0.3 account younger than min_history_months
    new_seller_large_inventory     0.8 young account with a large catalog
                                   0.5 young account

OPTIONS READ ELSEWHERE:
    price_anomaly.z_score_threshold and image_quality_analysis.quality_threshold
    are validated and stored but need data a listing does not carry (a price
    distribution for the category, per-image quality scores). They are read by
    analyzers registered in place of PriceAnomalyAnalyzer / ImageQualityAnalyzer.
"""

import re
from typing import Optional

from ..models import ListingSubject
from .analyzers import AnalyzerOutput, AnalyzerRegistry, HeuristicAnalyzer
from .config_schemas import (
    DescriptionAnalysisOptions,
    HeuristicOptions,
    ImageQualityOptions,
    NewSellerLargeInventoryOptions,
    SellerHistoryOptions,
)
from .sellers import SellerDirectory

_WORD_RE = re.compile(r"[a-z0-9]+")
_MIN_KEYWORD_LENGTH = 4
_DAYS_PER_MONTH = 30


class PriceAnomalyAnalyzer(HeuristicAnalyzer):
    """Compares the price against the declared market and original prices."""

    LOW_RATIO = 0.5
    HIGH_RATIO = 1.5
    DISCOUNT_RATIO = 0.7

    async def analyze(self, subject: ListingSubject, options: HeuristicOptions) -> AnalyzerOutput:
        price = subject.price
        score = 0.0
        findings = []

        if price.market:
            ratio = price.current / price.market
            if ratio < self.LOW_RATIO:
                score = 0.8
                findings.append(
                    f"Price is suspiciously low ({round(ratio * 100)}% of market price)"
                )
            elif ratio > self.HIGH_RATIO:
                score = 0.6
                findings.append(
                    f"Price is unusually high ({round(ratio * 100)}% of market price)"
                )

        if price.original and price.current:
            discount = 1 - price.current / price.original
            if discount > self.DISCOUNT_RATIO:
                score = max(score, 0.7)
                findings.append(f"Unusually high discount ({round(discount * 100)}% off)")

        return AnalyzerOutput(score=score, findings=findings)


class ImageQualityAnalyzer(HeuristicAnalyzer):
    """Flags listings with too few product images."""

    async def analyze(self, subject: ListingSubject, options: ImageQualityOptions) -> AnalyzerOutput:
        if not subject.images:
            return AnalyzerOutput.neutral()

        if len(subject.images) < options.min_image_count:
            return AnalyzerOutput(
                score=0.6,
                findings=["Product has too few images, which is suspicious for quality products"],
            )
        return AnalyzerOutput.neutral()


class DescriptionAnalyzer(HeuristicAnalyzer):
    """Checks description length and consistency with the title."""

    async def analyze(
        self, subject: ListingSubject, options: DescriptionAnalysisOptions
    ) -> AnalyzerOutput:
        description = subject.description.strip()
        score = 0.0
        findings = []

        if len(description) < options.min_description_length:
            score = 0.5
            findings.append(
                f"Product description is unusually short ({len(description)} characters)"
            )

        keywords = {
            w for w in _WORD_RE.findall(subject.title.lower()) if len(w) >= _MIN_KEYWORD_LENGTH
        }
        if description and keywords:
            description_words = set(_WORD_RE.findall(description.lower()))
            if not keywords & description_words:
                score = max(score, 0.4)
                findings.append("Product description does not mention any key term from the title")

        return AnalyzerOutput(score=score, findings=findings)


class SellerHistoryAnalyzer(HeuristicAnalyzer):
    """Scores the seller's rating history."""

    def __init__(self, directory: SellerDirectory):
        self._directory = directory

    async def analyze(self, subject: ListingSubject, options: SellerHistoryOptions) -> AnalyzerOutput:
        if not subject.seller_id:
            return AnalyzerOutput.neutral()

        profile = await self._directory.get_profile(subject.seller_id)
        rating: Optional[float] = profile.rating if profile else None

        if rating is None:
            return AnalyzerOutput(score=0.7, findings=["New seller with no rating history"])

        score = 0.0
        findings = []
        if rating < options.low_rating_threshold:
            score = 0.6
            findings.append(f"Seller has a low rating ({rating:.1f} out of 5)")
        elif rating == 5.0:
            score = 0.4
            findings.append(
                "Seller has a perfect 5.0 rating, which can sometimes indicate fake reviews"
            )

        if profile.rating_count < options.min_transaction_count:
            score = max(score, 0.3)
            findings.append(f"Seller has only {profile.rating_count} rated transactions")

        if (
            profile.account_age_days is not None
            and profile.account_age_days < options.min_history_months * _DAYS_PER_MONTH
        ):
            score = max(score, 0.3)
            findings.append(
                f"Seller has less than {options.min_history_months} months of selling history"
            )

        return AnalyzerOutput(score=score, findings=findings)


class NewSellerInventoryAnalyzer(HeuristicAnalyzer):
    """Flags young seller accounts, especially ones with large catalogs."""

    def __init__(self, directory: SellerDirectory):
        self._directory = directory

    async def analyze(
        self, subject: ListingSubject, options: NewSellerLargeInventoryOptions
    ) -> AnalyzerOutput:
        if not subject.seller_id:
            return AnalyzerOutput.neutral()

        profile = await self._directory.get_profile(subject.seller_id)
        if profile is None or profile.account_age_days is None:
            return AnalyzerOutput.neutral()

        if profile.account_age_days >= options.max_account_age_days:
            return AnalyzerOutput.neutral()

        if profile.listing_count is not None and profile.listing_count >= options.min_listing_count:
            return AnalyzerOutput(
                score=0.8,
                findings=[
                    f"New account (< {options.max_account_age_days} days) with unusually large "
                    f"product catalog ({profile.listing_count} listings)"
                ],
            )
        return AnalyzerOutput(
            score=0.5,
            findings=[f"Seller account is less than {options.max_account_age_days} days old"],
        )


def build_default_analyzers(seller_directory: Optional[SellerDirectory] = None) -> AnalyzerRegistry:
    """
    Registry with every reference analyzer.

    Seller heuristics are only registered when a seller directory is given.
    """
    registry = AnalyzerRegistry()
    registry.register("price_anomaly", PriceAnomalyAnalyzer())
    registry.register("image_quality_analysis", ImageQualityAnalyzer())
    registry.register("product_description_analysis", DescriptionAnalyzer())
    if seller_directory is not None:
        registry.register("seller_history_analysis", SellerHistoryAnalyzer(seller_directory))
        registry.register("new_seller_large_inventory", NewSellerInventoryAnalyzer(seller_directory))
    return registry
