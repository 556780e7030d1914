"""Behavior cluster classification.

Assigns one of six behavior clusters to a market from its dimension scores
using an ordered rule list (first match wins, the last rule always matches)
and attaches the static retail interpretation for the cluster.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from polybuddy_signals.detector.models import (
    BehaviorCluster,
    BehaviorFeatures,
    BehaviorProfile,
    RetailFriendliness,
    WhyBullet,
)

logger = logging.getLogger(__name__)

SPORTS_CATEGORY_KEYWORDS: tuple[str, ...] = ("sports", "nba", "nfl", "soccer")

CLUSTER_EXPLANATIONS: dict[BehaviorCluster, str] = {
    BehaviorCluster.SPORTS_SCHEDULED: (
        "Sports market with a known schedule; information arrives at game time."
    ),
    BehaviorCluster.BINARY_CATALYST: (
        "Highly structured market resolving within days; a single catalyst decides the outcome."
    ),
    BehaviorCluster.HIGH_VOLATILITY: (
        "Frequent information flow with unstable liquidity; expect sharp price swings."
    ),
    BehaviorCluster.LONG_DURATION: (
        "Resolution is months away; prices drift slowly as information accumulates."
    ),
    BehaviorCluster.SCHEDULED_EVENT: (
        "Structured market tied to a scheduled event with a known decision date."
    ),
    BehaviorCluster.CONTINUOUS_INFO: (
        "Information arrives continuously without a single scheduled catalyst."
    ),
}


@dataclass(frozen=True)
class RetailInterpretation:
    friendliness: RetailFriendliness
    common_mistake: str
    why_retail_loses: str
    when_retail_can_compete: str


@dataclass(frozen=True)
class ClusterDisplayInfo:
    label: str
    description: str
    color: str
    icon: str


RETAIL_INTERPRETATIONS: dict[BehaviorCluster, RetailInterpretation] = {
    BehaviorCluster.SCHEDULED_EVENT: RetailInterpretation(
        friendliness=RetailFriendliness.FAVORABLE,
        common_mistake="Entering just before the scheduled date and paying peak-uncertainty prices.",
        why_retail_loses="Prepared traders price the known date early, so late entries buy the crowded side.",
        when_retail_can_compete="When you position well ahead of the event and size for either outcome.",
    ),
    BehaviorCluster.CONTINUOUS_INFO: RetailInterpretation(
        friendliness=RetailFriendliness.NEUTRAL,
        common_mistake="Reacting to every headline instead of holding a thesis.",
        why_retail_loses="Full-time watchers process the news flow faster than occasional traders.",
        when_retail_can_compete="When you have a clear long-term view and ignore short-term noise.",
    ),
    BehaviorCluster.BINARY_CATALYST: RetailInterpretation(
        friendliness=RetailFriendliness.UNFAVORABLE,
        common_mistake="Treating a single-catalyst coin flip as a sure thing and over-sizing.",
        why_retail_loses="One decision settles the market and informed traders move before the public.",
        when_retail_can_compete="Only with small size and a loss you have accepted up front.",
    ),
    BehaviorCluster.HIGH_VOLATILITY: RetailInterpretation(
        friendliness=RetailFriendliness.UNFAVORABLE,
        common_mistake="Chasing spikes and panic-selling the dips that follow.",
        why_retail_loses="Sharp swings punish late entries and thin books widen spreads at the worst time.",
        when_retail_can_compete="With limit orders placed away from the mid during calm periods.",
    ),
    BehaviorCluster.LONG_DURATION: RetailInterpretation(
        friendliness=RetailFriendliness.FAVORABLE,
        common_mistake="Locking up capital for months to capture a few cents of edge.",
        why_retail_loses="Opportunity cost and slow drift erode returns before resolution.",
        when_retail_can_compete="When the price is clearly off from the long-run base rate.",
    ),
    BehaviorCluster.SPORTS_SCHEDULED: RetailInterpretation(
        friendliness=RetailFriendliness.NEUTRAL,
        common_mistake="Backing a favorite team rather than judging the price.",
        why_retail_loses="Sharp bettors and live data feeds reprice the market at game time.",
        when_retail_can_compete="Before lineups and injury news, while the price still reflects stale information.",
    ),
}

NEUTRAL_INTERPRETATION = RetailInterpretation(
    friendliness=RetailFriendliness.NEUTRAL,
    common_mistake="No common mistake recorded for this market type.",
    why_retail_loses="No structural disadvantage recorded for this market type.",
    when_retail_can_compete="Apply normal position sizing and review the market structure.",
)

CLUSTER_DISPLAY_INFO: dict[BehaviorCluster, ClusterDisplayInfo] = {
    BehaviorCluster.SCHEDULED_EVENT: ClusterDisplayInfo(
        label="Scheduled Event",
        description="Tied to known dates like elections or earnings",
        color="blue",
        icon="calendar",
    ),
    BehaviorCluster.CONTINUOUS_INFO: ClusterDisplayInfo(
        label="Continuous Info",
        description="Ongoing situation with constant news flow",
        color="purple",
        icon="newspaper",
    ),
    BehaviorCluster.BINARY_CATALYST: ClusterDisplayInfo(
        label="Binary Catalyst",
        description="Single decision or event triggers resolution",
        color="orange",
        icon="lightning",
    ),
    BehaviorCluster.HIGH_VOLATILITY: ClusterDisplayInfo(
        label="High Volatility",
        description="Jumpy prices driven by sentiment and news",
        color="red",
        icon="chart-line",
    ),
    BehaviorCluster.LONG_DURATION: ClusterDisplayInfo(
        label="Long Duration",
        description="Resolution months or years away",
        color="green",
        icon="clock",
    ),
    BehaviorCluster.SPORTS_SCHEDULED: ClusterDisplayInfo(
        label="Sports / Scheduled",
        description="Athletic events with known timing",
        color="teal",
        icon="trophy",
    ),
}

_TIMEFRAME_LABELS: tuple[str, ...] = ("minutes", "hours", "days", "weeks", "months")


def get_retail_interpretation(cluster: BehaviorCluster | str) -> RetailInterpretation:
    """Look up the retail interpretation, falling back to a neutral entry."""
    try:
        key = BehaviorCluster(cluster)
    except ValueError:
        logger.warning("No retail interpretation for cluster %r; using neutral fallback", cluster)
        return NEUTRAL_INTERPRETATION
    return RETAIL_INTERPRETATIONS.get(key, NEUTRAL_INTERPRETATION)


def get_cluster_display_info(cluster: BehaviorCluster) -> ClusterDisplayInfo:
    return CLUSTER_DISPLAY_INFO[cluster]


def _assign_cluster(features: BehaviorFeatures, category: str | None) -> tuple[BehaviorCluster, int]:
    cat = (category or "").lower()
    if any(keyword in cat for keyword in SPORTS_CATEGORY_KEYWORDS):
        return BehaviorCluster.SPORTS_SCHEDULED, 95
    if features.info_structure > 80 and features.time_to_resolution < 30:
        return BehaviorCluster.BINARY_CATALYST, 85
    if features.info_cadence > 70 and features.liquidity_stability < 40:
        return BehaviorCluster.HIGH_VOLATILITY, 75
    if features.time_to_resolution > 70:
        return BehaviorCluster.LONG_DURATION, 80
    if features.info_structure > 60:
        return BehaviorCluster.SCHEDULED_EVENT, 70
    return BehaviorCluster.CONTINUOUS_INFO, 65


def build_why_bullets(features: BehaviorFeatures) -> tuple[WhyBullet, ...]:
    """Timeframe, information structure and liquidity justifications."""
    timeframe = _TIMEFRAME_LABELS[min(features.time_to_resolution // 25, len(_TIMEFRAME_LABELS) - 1)]
    structure = "scheduled events" if features.info_structure > 60 else "unstructured news"
    if features.liquidity_stability > 60:
        liquidity = "stable"
    elif features.liquidity_stability > 30:
        liquidity = "moderate"
    else:
        liquidity = "volatile"

    return (
        WhyBullet(
            text=f"Resolution timeframe: {timeframe}",
            metric="Time Score",
            value=features.time_to_resolution,
            unit="/100",
        ),
        WhyBullet(
            text=f"Information arrives via {structure}",
            metric="Structure",
            value=features.info_structure,
            unit="/100",
        ),
        WhyBullet(
            text=f"Liquidity conditions are {liquidity}",
            metric="Stability",
            value=features.liquidity_stability,
            unit="/100",
        ),
    )


def classify_behavior(
    features: BehaviorFeatures,
    category: str | None,
    *,
    computed_at: datetime | None = None,
) -> BehaviorProfile:
    """Classify a market into a behavior cluster.

    Args:
        features: Dimension scores from ``extract_behavior_features``.
        category: Market category text (may be None).
        computed_at: Timestamp recorded on the profile (defaults to now, UTC).

    Returns:
        BehaviorProfile with cluster, confidence, explanation and the
        retail interpretation for the cluster.
    """
    cluster, confidence = _assign_cluster(features, category)
    interpretation = get_retail_interpretation(cluster)

    logger.debug(
        "Market %s classified as %s (confidence=%d)",
        features.market_id,
        cluster.value,
        confidence,
    )
    return BehaviorProfile(
        features=features,
        cluster=cluster,
        cluster_label=CLUSTER_DISPLAY_INFO[cluster].label,
        confidence=confidence,
        explanation=CLUSTER_EXPLANATIONS[cluster],
        retail_friendliness=interpretation.friendliness,
        common_retail_mistake=interpretation.common_mistake,
        why_retail_loses_here=interpretation.why_retail_loses,
        when_retail_can_compete=interpretation.when_retail_can_compete,
        why_bullets=build_why_bullets(features),
        computed_at=computed_at or datetime.now(UTC),
    )
