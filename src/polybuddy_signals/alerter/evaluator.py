"""Alert evaluation against the latest market state."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from polybuddy_signals.alerter.models import (
    AlertCondition,
    AlertEvaluation,
    LiquidityDropCondition,
    MarketState,
    PriceMoveCondition,
    ResolutionApproachingCondition,
    RetailSignalCondition,
    VolumeSpikeCondition,
)
from polybuddy_signals.detector.features import hours_until

logger = logging.getLogger(__name__)

DEFAULT_VOLUME_SPIKE_BASELINE = Decimal("10000")
DEFAULT_SIGNAL_MAX_AGE = timedelta(hours=4)


def _evaluate_price_move(condition: PriceMoveCondition, state: MarketState) -> AlertEvaluation:
    if state.price is None:
        return AlertEvaluation(False, "No price available for this market")
    threshold_pct = f"{condition.threshold * 100:.0f}%"
    price_pct = f"{state.price * 100:.1f}%"
    if condition.direction == "above":
        crossed = state.price >= condition.threshold
    else:
        crossed = state.price <= condition.threshold
    if crossed:
        return AlertEvaluation(
            True,
            f"Price moved {condition.direction} {threshold_pct} (current: {price_pct})",
        )
    return AlertEvaluation(
        False,
        f"Price {price_pct} has not moved {condition.direction} {threshold_pct}",
    )


def _evaluate_volume_spike(
    condition: VolumeSpikeCondition,
    state: MarketState,
    baseline: Decimal,
) -> AlertEvaluation:
    if state.volume_24h is None:
        return AlertEvaluation(False, "No volume available for this market")
    limit = float(baseline) * condition.multiplier
    if state.volume_24h > limit:
        return AlertEvaluation(
            True,
            f"24h volume ${state.volume_24h:,.0f} is above {condition.multiplier:g}x "
            f"the ${float(baseline):,.0f} baseline",
        )
    return AlertEvaluation(False, f"24h volume ${state.volume_24h:,.0f} is below ${limit:,.0f}")


def _evaluate_resolution(
    condition: ResolutionApproachingCondition,
    state: MarketState,
    now: datetime,
) -> AlertEvaluation:
    hours = hours_until(state.end_date, now=now)
    if hours is None:
        return AlertEvaluation(False, "Market has no end date")
    if 0 < hours <= condition.hours_before_end:
        return AlertEvaluation(True, f"Market resolves in {hours:.1f} hours")
    return AlertEvaluation(False, f"Market resolves in {hours:.1f} hours")


def _as_utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def _evaluate_retail_signal(
    condition: RetailSignalCondition,
    state: MarketState,
    now: datetime,
    max_age: timedelta,
) -> AlertEvaluation:
    signals = state.retail_signals.get(condition.signal_type) or ()
    name = condition.signal_type.value.replace("_", " ")
    if not signals:
        return AlertEvaluation(False, f"No {name} signal for this market")

    cutoff = now - max_age
    fresh = sorted(
        (s for s in signals if _as_utc(s.computed_at) >= cutoff),
        key=lambda s: _as_utc(s.computed_at),
        reverse=True,
    )
    if not fresh:
        return AlertEvaluation(False, f"No {name} signal newer than {max_age}")
    matching = [s for s in fresh if s.is_favorable == condition.expects_favorable]
    if not matching:
        return AlertEvaluation(False, f"No recent {name} signal matches the alert polarity")
    qualifying = [s for s in matching if s.confidence.rank >= condition.min_confidence.rank]
    if not qualifying:
        best = max(matching, key=lambda s: s.confidence.rank)
        return AlertEvaluation(
            False,
            f"{name.capitalize()} confidence {best.confidence.value} is below "
            f"{condition.min_confidence.value}",
        )

    signal = qualifying[0]

    label = f" ({signal.label})" if signal.label else ""
    if condition.expects_favorable:
        text = f"{name.capitalize()} signal detected{label} with {signal.confidence.value} confidence"
    else:
        text = f"Warning: {name} detected{label} with {signal.confidence.value} confidence"
    return AlertEvaluation(True, text)


def evaluate_alert(
    condition: AlertCondition,
    state: MarketState,
    *,
    now: datetime | None = None,
    volume_baseline: Decimal = DEFAULT_VOLUME_SPIKE_BASELINE,
    signal_max_age: timedelta = DEFAULT_SIGNAL_MAX_AGE,
) -> AlertEvaluation:
    """Decide whether an alert condition is met.

    Args:
        condition: Parsed alert condition.
        state: Latest market state (snapshot values, end date, retail signals).
        now: Reference time (defaults to now, UTC).
        volume_baseline: Assumed average 24h volume for volume spikes.
        signal_max_age: Retail signals older than this are ignored.

    Returns:
        AlertEvaluation with the trigger decision and a human-readable message.

    Raises:
        ValueError: If ``now`` is timezone-naive.
    """
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    if isinstance(condition, PriceMoveCondition):
        result = _evaluate_price_move(condition, state)
    elif isinstance(condition, VolumeSpikeCondition):
        result = _evaluate_volume_spike(condition, state, volume_baseline)
    elif isinstance(condition, ResolutionApproachingCondition):
        result = _evaluate_resolution(condition, state, now)
    elif isinstance(condition, LiquidityDropCondition):
        # TODO: needs a liquidity history baseline from the snapshot store over time_window.
        result = AlertEvaluation(False, "Liquidity drop tracking is not available yet")
    else:
        result = _evaluate_retail_signal(condition, state, now, signal_max_age)

    logger.debug(
        "Alert %s on %s: trigger=%s (%s)",
        condition.type.value,
        state.market_id,
        result.should_trigger,
        result.message,
    )
    return result
