"""Tests for participation structure scoring."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta

import pytest

from polybuddy_signals.detector.models import (
    ParticipantQualityBand,
    ParticipationSide,
    ParticipationSummary,
    SetupQualityBand,
)
from polybuddy_signals.detector.participation import (
    BEHAVIOR_INSIGHTS,
    NO_INSIGHT,
    PARTICIPANT_QUALITY_DISPLAY,
    SETUP_QUALITY_DISPLAY,
    OwnershipBreakdown,
    ParticipationScorer,
    behavior_insight,
    ownership_breakdown,
    participant_quality_band,
    participant_quality_score,
    score_participation,
    setup_quality_band,
    setup_quality_score,
)
from polybuddy_signals.ingestor.models import MarketSnapshot

MARKET_ID = "55555555-5555-4555-8555-555555555555"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def make_snapshot(
    *,
    price: float = 0.5,
    volume_24h: float = 0.0,
    liquidity: float = 0.0,
    spread: float = 0.05,
    depth: float = 0.0,
    taken_at: datetime = NOW,
) -> MarketSnapshot:
    return MarketSnapshot(
        market_id=MARKET_ID,
        price=price,
        volume_24h=volume_24h,
        liquidity=liquidity,
        spread=spread,
        depth=depth,
        taken_at=taken_at,
    )


class FixedRandom(random.Random):
    """Random source that always returns the same draw."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self._value = value

    def random(self) -> float:
        return self._value


def _setup(snapshot: MarketSnapshot, *, liq: int = 0, px: int = 50) -> int:
    return setup_quality_score(snapshot, liquidity_stability_score=liq, price_stability_score=px)


class TestSetupQualityScore:
    @pytest.mark.parametrize(
        ("liquidity", "bonus"),
        [(0.0, 0), (1_000.0, 5), (10_000.0, 10), (30_000.0, 15), (60_000.0, 20), (200_000.0, 25)],
    )
    def test_liquidity_tiers(self, liquidity: float, bonus: int) -> None:
        assert _setup(make_snapshot(liquidity=liquidity)) == 50 + bonus

    @pytest.mark.parametrize(
        ("spread", "adjustment"),
        [(0.005, 15), (0.015, 10), (0.03, 5), (0.05, 0), (0.07, -5), (0.2, -15)],
    )
    def test_spread_tiers(self, spread: float, adjustment: int) -> None:
        assert _setup(make_snapshot(spread=spread)) == 50 + adjustment

    @pytest.mark.parametrize(
        ("volume", "bonus"),
        [(500.0, 0), (5_000.0, 5), (20_000.0, 10), (80_000.0, 15)],
    )
    def test_volume_tiers(self, volume: float, bonus: int) -> None:
        assert _setup(make_snapshot(volume_24h=volume)) == 50 + bonus

    @pytest.mark.parametrize(
        ("depth", "bonus"),
        [(1_000.0, 0), (10_000.0, 4), (30_000.0, 7), (80_000.0, 10)],
    )
    def test_depth_tiers(self, depth: float, bonus: int) -> None:
        assert _setup(make_snapshot(depth=depth)) == 50 + bonus

    def test_stability_contributions(self) -> None:
        snapshot = make_snapshot()
        assert _setup(snapshot, liq=100) == 65
        assert _setup(snapshot, px=0) == 40
        assert _setup(snapshot, px=100) == 60

    def test_clamped_to_100(self) -> None:
        snapshot = make_snapshot(liquidity=150_000.0, spread=0.005, volume_24h=60_000.0, depth=60_000.0)
        # 50 + 25 + 15 + 15 + 7 + 10 = 122
        assert _setup(snapshot, liq=50, px=50) == 100

    def test_clamped_to_zero(self) -> None:
        assert _setup(make_snapshot(spread=0.5), liq=0, px=-500) == 0


class TestParticipantQualityScore:
    @pytest.mark.parametrize(
        ("volume", "liquidity", "expected"),
        [
            (0.0, 0.0, 50),
            (6_000.0, 0.0, 60),
            (30_000.0, 0.0, 70),
            (150_000.0, 0.0, 80),
            (0.0, 30_000.0, 60),
            (0.0, 60_000.0, 65),
            (150_000.0, 150_000.0, 100),
        ],
    )
    def test_tiers(self, volume: float, liquidity: float, expected: int) -> None:
        assert participant_quality_score(make_snapshot(volume_24h=volume, liquidity=liquidity)) == expected


class TestBands:
    @pytest.mark.parametrize(
        ("score", "band"),
        [
            (100, SetupQualityBand.HISTORICALLY_FAVORABLE),
            (80, SetupQualityBand.HISTORICALLY_FAVORABLE),
            (79, SetupQualityBand.MIXED_WORKABLE),
            (60, SetupQualityBand.MIXED_WORKABLE),
            (59, SetupQualityBand.NEUTRAL),
            (40, SetupQualityBand.NEUTRAL),
            (39, SetupQualityBand.HISTORICALLY_UNFORGIVING),
            (0, SetupQualityBand.HISTORICALLY_UNFORGIVING),
        ],
    )
    def test_setup_band(self, score: int, band: SetupQualityBand) -> None:
        assert setup_quality_band(score) is band

    @pytest.mark.parametrize(
        ("score", "band"),
        [
            (70, ParticipantQualityBand.STRONG),
            (69, ParticipantQualityBand.MODERATE),
            (45, ParticipantQualityBand.MODERATE),
            (44, ParticipantQualityBand.LIMITED),
        ],
    )
    def test_participant_band(self, score: int, band: ParticipantQualityBand) -> None:
        assert participant_quality_band(score) is band

    def test_every_band_has_display_info(self) -> None:
        assert set(SETUP_QUALITY_DISPLAY) == set(SetupQualityBand)
        assert set(PARTICIPANT_QUALITY_DISPLAY) == set(ParticipantQualityBand)


class TestOwnershipBreakdown:
    @pytest.mark.parametrize(
        ("volume", "expected", "summary"),
        [
            (150_000.0, (45, 35, 20), ParticipationSummary.FEW_DOMINANT),
            (100_000.0, (35, 40, 25), ParticipationSummary.MIXED_PARTICIPATION),
            (30_000.0, (35, 40, 25), ParticipationSummary.MIXED_PARTICIPATION),
            (5_000.0, (30, 40, 30), ParticipationSummary.MIXED_PARTICIPATION),
            (1_000.0, (30, 40, 30), ParticipationSummary.MIXED_PARTICIPATION),
            (999.0, (15, 30, 55), ParticipationSummary.BROAD_RETAIL),
        ],
    )
    def test_volume_heuristic(
        self,
        volume: float,
        expected: tuple[int, int, int],
        summary: ParticipationSummary,
    ) -> None:
        breakdown = ownership_breakdown(volume)

        assert (breakdown.large_pct, breakdown.mid_pct, breakdown.small_pct) == expected
        assert breakdown.summary is summary

    def test_percentages_sum_to_100(self) -> None:
        for volume in (0.0, 999.0, 1_000.0, 26_000.0, 1e9):
            b = ownership_breakdown(volume)
            assert b.large_pct + b.mid_pct + b.small_pct == 100

    def test_large_share_checked_before_small_share(self) -> None:
        assert OwnershipBreakdown(45, 0, 55).summary is ParticipationSummary.FEW_DOMINANT


class TestBehaviorInsight:
    def test_table_is_complete(self) -> None:
        for summary in ParticipationSummary:
            for band in SetupQualityBand:
                assert (summary, band) in BEHAVIOR_INSIGHTS
                assert behavior_insight(summary, band) != NO_INSIGHT

    def test_known_text(self) -> None:
        text = behavior_insight(ParticipationSummary.BROAD_RETAIL, SetupQualityBand.MIXED_WORKABLE)
        assert text == "Retail-heavy markets can experience volume-driven price moves."


class TestParticipationScorer:
    def test_deep_market_without_history(self) -> None:
        latest = make_snapshot(liquidity=150_000.0, spread=0.005, volume_24h=60_000.0, depth=60_000.0)
        result = ParticipationScorer(rng=FixedRandom(0.5)).score(latest, [], computed_at=NOW)

        yes = result.yes
        assert yes.side is ParticipationSide.YES
        assert yes.setup_quality_score == 100
        assert yes.setup_quality_band is SetupQualityBand.HISTORICALLY_FAVORABLE
        assert yes.participant_quality_score == 90
        assert yes.participant_quality_band is ParticipantQualityBand.STRONG
        assert yes.participation_summary is ParticipationSummary.MIXED_PARTICIPATION
        assert (yes.large_pct, yes.mid_pct, yes.small_pct) == (35, 40, 25)
        assert yes.behavior_insight == (
            "Balanced participation has historically supported stable trading conditions."
        )
        assert yes.computed_at == NOW

    def test_zero_jitter_mirrors_yes(self) -> None:
        latest = make_snapshot(liquidity=30_000.0, spread=0.03, volume_24h=8_000.0, depth=10_000.0)
        result = ParticipationScorer(rng=FixedRandom(0.5)).score(latest, [])

        assert result.no.side is ParticipationSide.NO
        assert result.no.setup_quality_score == result.yes.setup_quality_score
        assert result.no.participant_quality_score == result.yes.participant_quality_score
        assert result.no.participation_summary is result.yes.participation_summary

    def test_jitter_bounds(self) -> None:
        latest = make_snapshot(liquidity=30_000.0, spread=0.03, volume_24h=8_000.0, depth=10_000.0)
        low = ParticipationScorer(rng=FixedRandom(0.0)).score(latest, [])
        high = ParticipationScorer(rng=FixedRandom(0.999)).score(latest, [])

        assert low.no.setup_quality_score == low.yes.setup_quality_score - 5
        assert low.no.participant_quality_score == low.yes.participant_quality_score - 8
        assert high.no.setup_quality_score == high.yes.setup_quality_score + 4
        assert high.no.participant_quality_score == high.yes.participant_quality_score + 7

    def test_no_side_reclamped(self) -> None:
        latest = make_snapshot(liquidity=150_000.0, spread=0.005, volume_24h=150_000.0, depth=60_000.0)
        result = ParticipationScorer(rng=FixedRandom(0.999)).score(latest, [])

        assert result.yes.participant_quality_score == 100
        assert result.no.participant_quality_score == 100
        assert result.no.setup_quality_score == 100

    def test_seeded_scorers_agree(self) -> None:
        latest = make_snapshot(liquidity=30_000.0, spread=0.03, volume_24h=8_000.0, depth=10_000.0)
        a = ParticipationScorer(rng=random.Random(7)).score(latest, [], computed_at=NOW)
        b = ParticipationScorer(rng=random.Random(7)).score(latest, [], computed_at=NOW)
        assert a == b

    def test_history_feeds_stability(self) -> None:
        latest = make_snapshot()
        history = [
            make_snapshot(price=0.5, liquidity=20_000.0, taken_at=NOW - timedelta(minutes=15 * (i + 1)))
            for i in range(20)
        ]
        result = ParticipationScorer(rng=FixedRandom(0.5)).score(latest, history)
        # liquidity stability 100 -> +15, price stability 100 -> +10
        assert result.yes.setup_quality_score == 75

    def test_empty_snapshot_is_scored(self) -> None:
        empty = MarketSnapshot.empty(MARKET_ID, taken_at=NOW)
        result = score_participation(empty, [], rng=FixedRandom(0.5))

        assert result.yes.market_id == MARKET_ID
        # 50 + 15 (zero spread) + floor(50 * 0.15)
        assert result.yes.setup_quality_score == 72
        assert result.yes.participant_quality_score == 50
        assert result.yes.participation_summary is ParticipationSummary.BROAD_RETAIL

    def test_scores_bounded_under_extreme_inputs(self) -> None:
        rng = random.Random(99)
        scorer = ParticipationScorer(rng=random.Random(3))
        for _ in range(300):
            def extreme() -> float:
                return rng.choice([0.0, -1e12, 1e12, rng.uniform(-1e6, 1e6)])

            snapshots = [
                MarketSnapshot(
                    market_id=MARKET_ID,
                    price=rng.uniform(-5.0, 5.0),
                    volume_24h=extreme(),
                    liquidity=extreme(),
                    spread=rng.uniform(-1.0, 1.0),
                    depth=extreme(),
                    taken_at=NOW - timedelta(minutes=i),
                )
                for i in range(rng.randint(1, 21))
            ]
            result = scorer.score(snapshots[0], snapshots[1:])
            for profile in (result.yes, result.no):
                assert 0 <= profile.setup_quality_score <= 100
                assert 0 <= profile.participant_quality_score <= 100
