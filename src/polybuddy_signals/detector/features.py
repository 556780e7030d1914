"""Feature extraction from market snapshot sequences.

Turns a newest-first sequence of snapshots (index 0 is the most recent
observation) plus static market metadata into the 0-100 scores consumed by
the behavior and flow classifiers.

Every formula degrades to a documented default when the window is too short
or a denominator is zero; extraction never raises for insufficient data.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import UTC, datetime

from polybuddy_signals.detector.models import BehaviorFeatures, FlowFeatures
from polybuddy_signals.ingestor.models import MarketMeta, MarketSnapshot

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 50
MIN_STABILITY_SNAPSHOTS = 5
MIN_POSITIVE_VALUES = 3
EARLY_WINDOW = 5
REPRICING_SCALE = 500.0

# (keyword, score); first keyword found in the category wins.
CADENCE_KEYWORDS: tuple[tuple[str, int], ...] = (
    ("sports", 90),
    ("crypto", 80),
    ("politics", 40),
    ("election", 40),
)

# (upper bound in hours, score) for time-to-resolution buckets.
RESOLUTION_BUCKETS: tuple[tuple[float, int], ...] = (
    (24.0, 10),
    (168.0, 30),
    (720.0, 50),
    (2160.0, 70),
)
RESOLUTION_BUCKET_MAX = 90


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    if math.isnan(value):
        return lo
    return max(lo, min(hi, value))


def _mean(xs: Sequence[float]) -> float:
    return sum(xs) / len(xs) if xs else 0.0


def _pstddev(xs: Sequence[float]) -> float:
    if len(xs) < 2:
        return 0.0
    mean = _mean(xs)
    return math.sqrt(sum((x - mean) ** 2 for x in xs) / len(xs))


def _positive(xs: Sequence[float]) -> list[float]:
    return [x for x in xs if x > 0]


def hours_until(end_date: datetime | None, *, now: datetime) -> float | None:
    """Hours from ``now`` until ``end_date`` (negative once passed)."""
    if end_date is None:
        return None
    if end_date.tzinfo is None:
        end_date = end_date.replace(tzinfo=UTC)
    return (end_date - now).total_seconds() / 3600.0


def stability_score(values: Sequence[float]) -> int:
    """Coefficient-of-variation stability over the positive values.

    Needs at least five observations with three or more positive values;
    otherwise returns the neutral default.
    """
    if len(values) < MIN_STABILITY_SNAPSHOTS:
        return DEFAULT_SCORE
    positives = _positive(values)
    if len(positives) < MIN_POSITIVE_VALUES:
        return DEFAULT_SCORE
    mean = _mean(positives)
    if mean <= 0:
        return DEFAULT_SCORE
    cv = _pstddev(positives) / mean
    return round(_clamp(100.0 - 100.0 * cv))


def liquidity_stability(snapshots: Sequence[MarketSnapshot]) -> int:
    return stability_score([s.liquidity for s in snapshots])


def price_stability(snapshots: Sequence[MarketSnapshot]) -> int:
    """Inverted mean absolute consecutive price move, scaled x500."""
    if len(snapshots) < MIN_STABILITY_SNAPSHOTS:
        return DEFAULT_SCORE
    delta = _mean_abs_delta([s.price for s in snapshots])
    return round(_clamp(100.0 - delta * REPRICING_SCALE))


def participant_concentration(snapshots: Sequence[MarketSnapshot]) -> int:
    if len(snapshots) < MIN_STABILITY_SNAPSHOTS:
        return DEFAULT_SCORE
    positives = _positive([s.volume_24h for s in snapshots])
    if len(positives) < MIN_POSITIVE_VALUES:
        return DEFAULT_SCORE
    mean = _mean(positives)
    return round(_clamp((max(positives) / mean) * 20.0))


def info_cadence(category: str | None) -> int:
    cat = (category or "").lower()
    for keyword, score in CADENCE_KEYWORDS:
        if keyword in cat:
            return score
    return DEFAULT_SCORE


def info_structure(category: str | None, hours_to_resolution: float | None) -> int:
    cat = (category or "").lower()
    if hours_to_resolution is not None and hours_to_resolution < 24:
        return 90
    if "sports" in cat:
        return 95
    if "will" in cat and "2025" in cat:
        return 70
    return DEFAULT_SCORE


def time_to_resolution(hours_to_resolution: float | None) -> int:
    if hours_to_resolution is None:
        return DEFAULT_SCORE
    for upper, score in RESOLUTION_BUCKETS:
        if hours_to_resolution < upper:
            return score
    return RESOLUTION_BUCKET_MAX


def extract_behavior_features(
    snapshots: Sequence[MarketSnapshot],
    meta: MarketMeta,
    *,
    now: datetime | None = None,
) -> BehaviorFeatures:
    """Compute the five behavior dimensions for a market.

    Args:
        snapshots: Newest-first snapshots (typically up to 100).
        meta: Market metadata (category and end date are used).
        now: Reference time for time-to-resolution (defaults to now, UTC).

    Returns:
        BehaviorFeatures with every score in 0..100.

    Raises:
        ValueError: If ``now`` is timezone-naive.
    """
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    hours = hours_until(meta.end_date, now=now)
    features = BehaviorFeatures(
        market_id=meta.market_id,
        info_cadence=info_cadence(meta.category),
        info_structure=info_structure(meta.category, hours),
        liquidity_stability=liquidity_stability(snapshots),
        time_to_resolution=time_to_resolution(hours),
        participant_concentration=participant_concentration(snapshots),
    )
    logger.debug(
        "Behavior features for %s from %d snapshots: %s",
        meta.market_id,
        len(snapshots),
        features.to_dict(),
    )
    return features


def _mean_abs_delta(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return _mean([abs(values[i] - values[i + 1]) for i in range(len(values) - 1)])


def large_early_trades_pct(snapshots: Sequence[MarketSnapshot]) -> float:
    """Mean volume of the oldest five snapshots relative to the overall mean."""
    if len(snapshots) < EARLY_WINDOW:
        return 0.0
    volumes = [max(0.0, s.volume_24h) for s in snapshots]
    overall = _mean(volumes)
    if overall <= 0:
        return 0.0
    early = _mean(volumes[-EARLY_WINDOW:])
    return _clamp(early / overall * 100.0)


def order_book_concentration(snapshots: Sequence[MarketSnapshot]) -> float:
    positives = _positive([s.liquidity for s in snapshots])
    if len(positives) < MIN_POSITIVE_VALUES:
        return float(DEFAULT_SCORE)
    mean = _mean(positives)
    return _clamp((max(positives) - min(positives)) / mean * 50.0)


def depth_shift_speed(snapshots: Sequence[MarketSnapshot]) -> float:
    """Mean absolute relative change between consecutive depth readings.

    Pairs whose older reading is not positive are skipped.
    """
    if len(snapshots) < 2:
        return 0.0
    changes: list[float] = []
    for newer, older in zip(snapshots, snapshots[1:]):
        if older.depth <= 0:
            continue
        changes.append(abs(newer.depth - older.depth) / older.depth)
    if not changes:
        return 0.0
    return _clamp(_mean(changes) * 100.0)


def repricing_speed(snapshots: Sequence[MarketSnapshot]) -> float:
    if len(snapshots) < 2:
        return 0.0
    return _clamp(_mean_abs_delta([s.price for s in snapshots]) * REPRICING_SCALE)


def extract_flow_features(snapshots: Sequence[MarketSnapshot], *, market_id: str | None = None) -> FlowFeatures:
    """Compute the four flow metrics from newest-first snapshots (up to 50).

    Args:
        snapshots: Newest-first snapshots; the tail holds the oldest readings.
        market_id: Market identifier when ``snapshots`` is empty.

    Returns:
        FlowFeatures with every metric in 0..100.
    """
    mid = market_id or (snapshots[0].market_id if snapshots else "")
    features = FlowFeatures(
        market_id=mid,
        large_early_trades_pct=large_early_trades_pct(snapshots),
        order_book_concentration=order_book_concentration(snapshots),
        depth_shift_speed=depth_shift_speed(snapshots),
        repricing_speed=repricing_speed(snapshots),
    )
    logger.debug("Flow features for %s from %d snapshots: %s", mid, len(snapshots), features)
    return features
