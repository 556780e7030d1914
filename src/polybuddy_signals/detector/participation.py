"""Participation structure scoring.

Scores the market setup (liquidity, spread, volume, depth, stability) and
participant quality for the YES side, estimates an ownership breakdown
from volume, and derives the NO side by bounded jitter from the YES scores.

The ownership breakdown is a volume heuristic, not real holder data.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from polybuddy_signals.detector.features import liquidity_stability, price_stability
from polybuddy_signals.detector.models import (
    ParticipantQualityBand,
    ParticipationProfile,
    ParticipationResult,
    ParticipationSide,
    ParticipationSummary,
    SetupQualityBand,
)
from polybuddy_signals.ingestor.models import MarketSnapshot

logger = logging.getLogger(__name__)

NO_INSIGHT = "No specific insight available."

SETUP_JITTER_RANGE = 10
PARTICIPANT_JITTER_RANGE = 15

BEHAVIOR_INSIGHTS: dict[tuple[ParticipationSummary, SetupQualityBand], str] = {
    (ParticipationSummary.FEW_DOMINANT, SetupQualityBand.HISTORICALLY_FAVORABLE): (
        "Concentrated markets with stable liquidity have historically shown orderly price discovery."
    ),
    (ParticipationSummary.FEW_DOMINANT, SetupQualityBand.MIXED_WORKABLE): (
        "Markets with dominant participants can reprice quickly when new information arrives."
    ),
    (ParticipationSummary.FEW_DOMINANT, SetupQualityBand.NEUTRAL): (
        "Concentration patterns in this market are typical for its category."
    ),
    (ParticipationSummary.FEW_DOMINANT, SetupQualityBand.HISTORICALLY_UNFORGIVING): (
        "Markets with few large participants historically show wider spreads and less predictable fills."
    ),
    (ParticipationSummary.MIXED_PARTICIPATION, SetupQualityBand.HISTORICALLY_FAVORABLE): (
        "Balanced participation has historically supported stable trading conditions."
    ),
    (ParticipationSummary.MIXED_PARTICIPATION, SetupQualityBand.MIXED_WORKABLE): (
        "Mixed participation typically provides adequate liquidity for moderate-sized orders."
    ),
    (ParticipationSummary.MIXED_PARTICIPATION, SetupQualityBand.NEUTRAL): (
        "Participation structure is unremarkable for this market type."
    ),
    (ParticipationSummary.MIXED_PARTICIPATION, SetupQualityBand.HISTORICALLY_UNFORGIVING): (
        "Mixed structures with low liquidity have historically shown execution challenges."
    ),
    (ParticipationSummary.BROAD_RETAIL, SetupQualityBand.HISTORICALLY_FAVORABLE): (
        "Broad participation has historically provided deep liquidity and tight spreads."
    ),
    (ParticipationSummary.BROAD_RETAIL, SetupQualityBand.MIXED_WORKABLE): (
        "Retail-heavy markets can experience volume-driven price moves."
    ),
    (ParticipationSummary.BROAD_RETAIL, SetupQualityBand.NEUTRAL): (
        "Participation breadth is typical for retail-accessible markets."
    ),
    (ParticipationSummary.BROAD_RETAIL, SetupQualityBand.HISTORICALLY_UNFORGIVING): (
        "Retail-dominated markets with low quality metrics have historically shown choppy price action."
    ),
}


@dataclass(frozen=True)
class BandDisplayInfo:
    label: str
    description: str
    color: str


SETUP_QUALITY_DISPLAY: dict[SetupQualityBand, BandDisplayInfo] = {
    SetupQualityBand.HISTORICALLY_FAVORABLE: BandDisplayInfo(
        label="Historically Favorable",
        description="Markets with similar structure have historically shown orderly trading conditions.",
        color="emerald",
    ),
    SetupQualityBand.MIXED_WORKABLE: BandDisplayInfo(
        label="Mixed but Workable",
        description="Structure has shown mixed historical behavior but generally supports trading.",
        color="yellow",
    ),
    SetupQualityBand.NEUTRAL: BandDisplayInfo(
        label="Neutral Structure",
        description="Typical structure with no strong historical patterns.",
        color="gray",
    ),
    SetupQualityBand.HISTORICALLY_UNFORGIVING: BandDisplayInfo(
        label="Historically Challenging",
        description="Markets with similar structure have historically shown challenging conditions.",
        color="red",
    ),
}

PARTICIPANT_QUALITY_DISPLAY: dict[ParticipantQualityBand, BandDisplayInfo] = {
    ParticipantQualityBand.STRONG: BandDisplayInfo(
        label="Strong Participation",
        description="Significant activity from experienced participants.",
        color="emerald",
    ),
    ParticipantQualityBand.MODERATE: BandDisplayInfo(
        label="Moderate Participation",
        description="Mix of participant experience levels.",
        color="yellow",
    ),
    ParticipantQualityBand.LIMITED: BandDisplayInfo(
        label="Limited Participation",
        description="Few experienced participants active on this side.",
        color="gray",
    ),
}


@dataclass(frozen=True)
class OwnershipBreakdown:
    large_pct: int
    mid_pct: int
    small_pct: int

    @property
    def summary(self) -> ParticipationSummary:
        if self.large_pct >= 45:
            return ParticipationSummary.FEW_DOMINANT
        if self.small_pct >= 50:
            return ParticipationSummary.BROAD_RETAIL
        return ParticipationSummary.MIXED_PARTICIPATION


def _clamp_score(value: float) -> int:
    return int(max(0, min(100, value)))


def setup_quality_score(
    latest: MarketSnapshot,
    *,
    liquidity_stability_score: int,
    price_stability_score: int,
) -> int:
    """Score market structure from 0 (unforgiving) to 100 (favorable)."""
    score = 50

    if latest.liquidity > 0:
        if latest.liquidity > 100_000:
            score += 25
        elif latest.liquidity > 50_000:
            score += 20
        elif latest.liquidity > 20_000:
            score += 15
        elif latest.liquidity > 5_000:
            score += 10
        else:
            score += 5

    # Tighter spreads are rewarded, wide spreads penalized.
    if latest.spread < 0.01:
        score += 15
    elif latest.spread < 0.02:
        score += 10
    elif latest.spread < 0.05:
        score += 5
    elif latest.spread > 0.1:
        score -= 15
    elif latest.spread > 0.05:
        score -= 5

    if latest.volume_24h > 50_000:
        score += 15
    elif latest.volume_24h > 10_000:
        score += 10
    elif latest.volume_24h > 1_000:
        score += 5

    score += math.floor(liquidity_stability_score * 0.15)

    if latest.depth > 50_000:
        score += 10
    elif latest.depth > 20_000:
        score += 7
    elif latest.depth > 5_000:
        score += 4

    score += math.floor((price_stability_score - 50) * 0.2)
    return _clamp_score(score)


def participant_quality_score(latest: MarketSnapshot) -> int:
    score = 50
    if latest.volume_24h > 100_000:
        score += 30
    elif latest.volume_24h > 25_000:
        score += 20
    elif latest.volume_24h > 5_000:
        score += 10

    if latest.liquidity > 100_000:
        score += 20
    elif latest.liquidity > 50_000:
        score += 15
    elif latest.liquidity > 20_000:
        score += 10
    return _clamp_score(score)


def setup_quality_band(score: int) -> SetupQualityBand:
    if score >= 80:
        return SetupQualityBand.HISTORICALLY_FAVORABLE
    if score >= 60:
        return SetupQualityBand.MIXED_WORKABLE
    if score >= 40:
        return SetupQualityBand.NEUTRAL
    return SetupQualityBand.HISTORICALLY_UNFORGIVING


def participant_quality_band(score: int) -> ParticipantQualityBand:
    if score >= 70:
        return ParticipantQualityBand.STRONG
    if score >= 45:
        return ParticipantQualityBand.MODERATE
    return ParticipantQualityBand.LIMITED


def ownership_breakdown(volume_24h: float) -> OwnershipBreakdown:
    if volume_24h > 100_000:
        return OwnershipBreakdown(45, 35, 20)
    if volume_24h > 25_000:
        return OwnershipBreakdown(35, 40, 25)
    if volume_24h < 1_000:
        return OwnershipBreakdown(15, 30, 55)
    return OwnershipBreakdown(30, 40, 30)


def behavior_insight(summary: ParticipationSummary, band: SetupQualityBand) -> str:
    return BEHAVIOR_INSIGHTS.get((summary, band), NO_INSIGHT)


class ParticipationScorer:
    """Scores YES/NO participation profiles for a market.

    Args:
        rng: Source of NO-side jitter. Pass a seeded ``random.Random`` for
            reproducible output.
    """

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def _jitter(self, width: int) -> int:
        return math.floor((self._rng.random() - 0.5) * width)

    def _profile(
        self,
        *,
        market_id: str,
        side: ParticipationSide,
        setup: int,
        participant: int,
        breakdown: OwnershipBreakdown,
        computed_at: datetime,
    ) -> ParticipationProfile:
        band = setup_quality_band(setup)
        summary = breakdown.summary
        return ParticipationProfile(
            market_id=market_id,
            side=side,
            setup_quality_score=setup,
            setup_quality_band=band,
            participant_quality_score=participant,
            participant_quality_band=participant_quality_band(participant),
            participation_summary=summary,
            large_pct=breakdown.large_pct,
            mid_pct=breakdown.mid_pct,
            small_pct=breakdown.small_pct,
            behavior_insight=behavior_insight(summary, band),
            computed_at=computed_at,
        )

    def score(
        self,
        latest: MarketSnapshot,
        history: Sequence[MarketSnapshot],
        *,
        computed_at: datetime | None = None,
    ) -> ParticipationResult:
        """Score both sides of a market.

        Args:
            latest: Most recent snapshot.
            history: Up to 20 earlier snapshots, newest first.
            computed_at: Timestamp recorded on both profiles.

        Returns:
            ParticipationResult holding the YES and NO profiles.
        """
        computed_at = computed_at or datetime.now(UTC)
        liq_stability = liquidity_stability(history)
        px_stability = price_stability(history)

        setup_yes = setup_quality_score(
            latest,
            liquidity_stability_score=liq_stability,
            price_stability_score=px_stability,
        )
        participant_yes = participant_quality_score(latest)
        breakdown = ownership_breakdown(latest.volume_24h)

        # NO side is an estimate derived from YES until opposite-book data exists.
        setup_no = _clamp_score(setup_yes + self._jitter(SETUP_JITTER_RANGE))
        participant_no = _clamp_score(participant_yes + self._jitter(PARTICIPANT_JITTER_RANGE))

        logger.debug(
            "Participation for %s: setup=%d/%d participant=%d/%d (liq_stab=%d px_stab=%d)",
            latest.market_id,
            setup_yes,
            setup_no,
            participant_yes,
            participant_no,
            liq_stability,
            px_stability,
        )
        return ParticipationResult(
            yes=self._profile(
                market_id=latest.market_id,
                side=ParticipationSide.YES,
                setup=setup_yes,
                participant=participant_yes,
                breakdown=breakdown,
                computed_at=computed_at,
            ),
            no=self._profile(
                market_id=latest.market_id,
                side=ParticipationSide.NO,
                setup=setup_no,
                participant=participant_no,
                breakdown=breakdown,
                computed_at=computed_at,
            ),
        )


def score_participation(
    latest: MarketSnapshot,
    history: Sequence[MarketSnapshot],
    *,
    rng: random.Random | None = None,
) -> ParticipationResult:
    return ParticipationScorer(rng=rng).score(latest, history)
