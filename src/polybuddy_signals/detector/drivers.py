"""Resolution-driver extraction from market question text.

Keyword tables are ordered (pattern, value) pairs; the first pattern found in
the lower-cased question wins, so table order is part of the contract.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from polybuddy_signals.detector.models import (
    AssetCategory,
    NarrativeDependency,
    ResolutionDrivers,
    ResolutionSource,
)
from polybuddy_signals.ingestor.models import MarketMeta

logger = logging.getLogger(__name__)

RESOLUTION_WINDOW = timedelta(hours=24)

# Full names plus tickers long enough not to collide with common words
# ("eth" in "whether", "sol" in "resolution").
CRYPTO_ASSETS: tuple[tuple[str, str], ...] = (
    ("bitcoin", "BTC"),
    ("btc", "BTC"),
    ("ethereum", "ETH"),
    ("solana", "SOL"),
    ("dogecoin", "DOGE"),
    ("doge", "DOGE"),
    ("xrp", "XRP"),
)

POLITICAL_FIGURES: tuple[tuple[str, str], ...] = (
    ("trump", "TRUMP"),
    ("biden", "BIDEN"),
    ("harris", "HARRIS"),
    ("desantis", "DESANTIS"),
    ("newsom", "NEWSOM"),
)

ECONOMIC_INDICATORS: tuple[tuple[str, str], ...] = (
    ("fed", "FED"),
    ("inflation", "CPI"),
    ("recession", "RECESSION"),
    ("unemployment", "UNEMPLOYMENT"),
)

# Checked in order; a later table is consulted only when earlier ones miss.
ASSET_TABLES: tuple[tuple[AssetCategory, tuple[tuple[str, str], ...]], ...] = (
    (AssetCategory.CRYPTO, CRYPTO_ASSETS),
    (AssetCategory.POLITICS, POLITICAL_FIGURES),
    (AssetCategory.ECONOMICS, ECONOMIC_INDICATORS),
)


def _first_match(text: str, table: tuple[tuple[str, str], ...]) -> str | None:
    for pattern, value in table:
        if pattern in text:
            return value
    return None


def match_underlying_asset(question: str) -> tuple[str | None, AssetCategory | None]:
    """Return ``(asset_code, asset_category)`` for the first matching table."""
    text = question.lower()
    for category, table in ASSET_TABLES:
        asset = _first_match(text, table)
        if asset is not None:
            return asset, category
    return None, None


def narrative_dependency(question: str, asset_category: AssetCategory | None) -> NarrativeDependency | None:
    text = question.lower()
    if "election" in text or "vote" in text:
        return NarrativeDependency.ELECTION
    if "approve" in text or "approval" in text:
        return NarrativeDependency.APPROVAL_RATING
    if "price" in text and asset_category is AssetCategory.CRYPTO:
        return NarrativeDependency.PRICE_MOVEMENT
    if "win" in text or "winner" in text:
        return NarrativeDependency.COMPETITION_OUTCOME
    return None


def resolution_source(asset_category: AssetCategory | None, category: str | None) -> ResolutionSource | None:
    if asset_category is AssetCategory.CRYPTO:
        return ResolutionSource.EXCHANGE_PRICE
    if asset_category is AssetCategory.POLITICS:
        return ResolutionSource.OFFICIAL_RESULTS
    if "sports" in (category or "").lower():
        return ResolutionSource.GAME_RESULT
    return None


def extract_drivers(meta: MarketMeta) -> ResolutionDrivers:
    """Identify what a market's resolution depends on.

    Args:
        meta: Market question, category and end date.

    Returns:
        ResolutionDrivers; every field may be None when nothing matched.
    """
    asset, asset_category = match_underlying_asset(meta.question)
    window_start = meta.end_date - RESOLUTION_WINDOW if meta.end_date else None

    drivers = ResolutionDrivers(
        market_id=meta.market_id,
        underlying_asset=asset,
        asset_category=asset_category,
        narrative_dependency=narrative_dependency(meta.question, asset_category),
        resolution_source=resolution_source(asset_category, meta.category),
        resolution_window_start=window_start,
        resolution_window_end=meta.end_date,
    )
    logger.debug("Resolution drivers for %s: %s", meta.market_id, drivers.to_dict())
    return drivers
