"""Keyword classification of order line descriptions."""

from typing import Optional

from stock.models import StockKind, FeedType, FeedCompany
from stock.services.base_service import ClassificationError


def classify_stock_kind(description: str) -> Optional[str]:
    """Returns None for lines that are not tracked as stock."""
    text = (description or "").lower()

    if "sasso" in text and "chick" in text:
        return StockKind.SASSO_CHICKS
    if "broiler" in text and "chick" in text:
        return StockKind.BROILER_CHICKS
    if "feed" in text:
        return StockKind.FEED
    return None


def match_feed_type(description: str) -> Optional[str]:
    text = (description or "").lower()

    if "broiler" in text:
        if "starter" in text:
            if "mp" in text:
                return FeedType.BROILER_STARTER_MP
            if "mv" in text:
                return FeedType.BROILER_STARTER_MV
            return FeedType.BROILER_STARTER
        if "grower" in text:
            if "mp" in text:
                return FeedType.BROILER_GROWER_MP
            if "mv" in text:
                return FeedType.BROILER_GROWER_MV
            return FeedType.BROILER_GROWER
        if "finisher" in text:
            return FeedType.BROILER_FINISHER

    if "layer" in text:
        backbone = "backbone" in text
        if "starter" in text:
            return FeedType.BACKBONE_LAYER_STARTER if backbone else FeedType.LAYER_STARTER
        if "grower" in text:
            return FeedType.BACKBONE_LAYER_GROWER if backbone else FeedType.LAYER_GROWER
        if "mash" in text:
            return FeedType.BACKBONE_COMPLETE_LAYER_MASH if backbone else FeedType.COMPLETE_LAYER_MASH

    if "local" in text and "feed" in text:
        return FeedType.LOCAL_FEED

    return None


def classify_feed_type(description: str) -> str:
    feed_type = match_feed_type(description)
    if feed_type is None:
        raise ClassificationError(description)
    return feed_type


def feed_company_for(feed_type: str) -> str:
    if feed_type.startswith("BACKBONE_"):
        return FeedCompany.BACKBONE
    if feed_type == FeedType.LOCAL_FEED:
        return FeedCompany.LOCAL
    if feed_type.endswith("_MP") or feed_type.endswith("_MV"):
        return FeedCompany.ARVINES
    return FeedCompany.SILVERLAND
