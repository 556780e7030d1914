"""Flow guard: liquidity and order-flow classification.

Combines the four flow metrics into a "pro" composite and a "noisy"
composite and labels the market as pro-dominant, historically noisy or
retail-actionable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from polybuddy_signals.detector.models import (
    FlowFeatures,
    FlowLabel,
    FlowProfile,
    SignalConfidence,
    WhyBullet,
)

logger = logging.getLogger(__name__)

PRO_DOMINANT_THRESHOLD = 60.0
PRO_HIGH_CONFIDENCE_THRESHOLD = 75.0
NOISY_THRESHOLD = 50.0
RETAIL_HIGH_CONFIDENCE_THRESHOLD = 30.0
MIN_RELIABLE_SNAPSHOTS = 10
MIN_METRIC_SNAPSHOTS = 2


@dataclass(frozen=True)
class FlowInterpretation:
    display_label: str
    common_retail_mistake: str


FLOW_INTERPRETATIONS: dict[FlowLabel, FlowInterpretation] = {
    FlowLabel.PRO_DOMINANT: FlowInterpretation(
        display_label="Pro-Dominant",
        common_retail_mistake="Trading at market against faster, better-informed flow.",
    ),
    FlowLabel.HISTORICALLY_NOISY: FlowInterpretation(
        display_label="Historically Noisy",
        common_retail_mistake="Reading meaning into price jumps that reverse within hours.",
    ),
    FlowLabel.RETAIL_ACTIONABLE: FlowInterpretation(
        display_label="Retail Actionable",
        common_retail_mistake="Chasing price movements instead of waiting for a clear entry.",
    ),
}


def pro_score(features: FlowFeatures) -> float:
    return (
        0.3 * features.large_early_trades_pct
        + 0.3 * features.order_book_concentration
        + 0.4 * features.repricing_speed
    )


def noisy_score(features: FlowFeatures) -> float:
    return 0.5 * features.depth_shift_speed + 0.5 * abs(50.0 - features.order_book_concentration)


def _pro_bullets(features: FlowFeatures) -> tuple[WhyBullet, ...]:
    return (
        WhyBullet(
            text="Early volume was heavy relative to the rest of the window",
            metric="Large Early Trades",
            value=round(features.large_early_trades_pct),
            unit="%",
        ),
        WhyBullet(
            text="Liquidity is concentrated and swings between snapshots",
            metric="Book Concentration",
            value=round(features.order_book_concentration),
            unit="/100",
        ),
        WhyBullet(
            text="Prices reprice quickly after new information",
            metric="Repricing Speed",
            value=round(features.repricing_speed),
            unit="/100",
        ),
    )


def _noisy_bullets(features: FlowFeatures, snapshot_count: int) -> tuple[WhyBullet, ...]:
    return (
        WhyBullet(
            text="Order book depth shifts sharply between snapshots",
            metric="Depth Shift Speed",
            value=round(features.depth_shift_speed),
            unit="/100",
        ),
        WhyBullet(
            text="Liquidity distribution is uneven",
            metric="Book Concentration",
            value=round(features.order_book_concentration),
            unit="/100",
        ),
        WhyBullet(
            text=f"Based on {snapshot_count} snapshots of history",
            metric="Snapshots",
            value=snapshot_count,
            unit="snapshots",
        ),
    )


def _actionable_bullets(features: FlowFeatures, pro: float) -> tuple[WhyBullet, ...]:
    return (
        WhyBullet(
            text="Little sign of professional flow",
            metric="Pro Score",
            value=round(pro),
            unit="/100",
        ),
        WhyBullet(
            text="Order book depth is steady",
            metric="Depth Shift Speed",
            value=round(features.depth_shift_speed),
            unit="/100",
        ),
        WhyBullet(
            text="Prices move gradually",
            metric="Repricing Speed",
            value=round(features.repricing_speed),
            unit="/100",
        ),
    )


def classify_flow(
    features: FlowFeatures,
    snapshot_count: int,
    *,
    computed_at: datetime | None = None,
) -> FlowProfile:
    """Label a market's order flow.

    Args:
        features: Metrics from ``extract_flow_features``.
        snapshot_count: Number of snapshots the metrics were computed from.
        computed_at: Timestamp recorded on the profile (defaults to now, UTC).

    Returns:
        FlowProfile with label, confidence and exactly three why-bullets.
    """
    pro = pro_score(features)
    noisy = noisy_score(features)

    if pro > PRO_DOMINANT_THRESHOLD:
        label = FlowLabel.PRO_DOMINANT
        confidence = (
            SignalConfidence.HIGH if pro > PRO_HIGH_CONFIDENCE_THRESHOLD else SignalConfidence.MEDIUM
        )
        bullets = _pro_bullets(features)
    elif noisy > NOISY_THRESHOLD or snapshot_count < MIN_RELIABLE_SNAPSHOTS:
        label = FlowLabel.HISTORICALLY_NOISY
        confidence = (
            SignalConfidence.LOW if snapshot_count < MIN_RELIABLE_SNAPSHOTS else SignalConfidence.MEDIUM
        )
        bullets = _noisy_bullets(features, snapshot_count)
    else:
        label = FlowLabel.RETAIL_ACTIONABLE
        confidence = (
            SignalConfidence.HIGH if pro < RETAIL_HIGH_CONFIDENCE_THRESHOLD else SignalConfidence.MEDIUM
        )
        bullets = _actionable_bullets(features, pro)

    has_metrics = snapshot_count >= MIN_METRIC_SNAPSHOTS
    interpretation = FLOW_INTERPRETATIONS[label]

    logger.debug(
        "Flow for %s: %s (%s) pro=%.2f noisy=%.2f snapshots=%d",
        features.market_id,
        label.value,
        confidence.value,
        pro,
        noisy,
        snapshot_count,
    )
    return FlowProfile(
        market_id=features.market_id,
        label=label,
        confidence=confidence,
        pro_score=round(pro, 2),
        noisy_score=round(noisy, 2),
        why_bullets=bullets,
        display_label=interpretation.display_label,
        common_retail_mistake=interpretation.common_retail_mistake,
        large_early_trades_pct=round(features.large_early_trades_pct, 2) if has_metrics else None,
        order_book_concentration=round(features.order_book_concentration, 2) if has_metrics else None,
        depth_shift_speed=round(features.depth_shift_speed, 2) if has_metrics else None,
        repricing_speed=round(features.repricing_speed, 2) if has_metrics else None,
        snapshot_count=snapshot_count,
        computed_at=computed_at or datetime.now(UTC),
    )
