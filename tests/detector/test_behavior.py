"""Tests for behavior cluster classification."""

from __future__ import annotations

import logging
import random
from datetime import UTC, datetime, timedelta

import pytest

from polybuddy_signals.detector.behavior import (
    CLUSTER_DISPLAY_INFO,
    NEUTRAL_INTERPRETATION,
    RETAIL_INTERPRETATIONS,
    build_why_bullets,
    classify_behavior,
    get_retail_interpretation,
)
from polybuddy_signals.detector.features import extract_behavior_features
from polybuddy_signals.detector.models import BehaviorCluster, BehaviorFeatures, RetailFriendliness
from polybuddy_signals.ingestor.models import MarketMeta

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def make_features(
    *,
    info_cadence: int = 50,
    info_structure: int = 50,
    liquidity_stability: int = 50,
    time_to_resolution: int = 50,
    participant_concentration: int = 50,
) -> BehaviorFeatures:
    return BehaviorFeatures(
        market_id="33333333-3333-4333-8333-333333333333",
        info_cadence=info_cadence,
        info_structure=info_structure,
        liquidity_stability=liquidity_stability,
        time_to_resolution=time_to_resolution,
        participant_concentration=participant_concentration,
    )


class TestClusterRules:
    @pytest.mark.parametrize("category", ["Sports", "NBA", "nfl playoffs", "Soccer"])
    def test_sports_category_first(self, category: str) -> None:
        features = make_features(info_structure=95, time_to_resolution=10)
        profile = classify_behavior(features, category)

        assert profile.cluster is BehaviorCluster.SPORTS_SCHEDULED
        assert profile.confidence == 95

    def test_binary_catalyst(self) -> None:
        profile = classify_behavior(make_features(info_structure=90, time_to_resolution=10), "Politics")

        assert profile.cluster is BehaviorCluster.BINARY_CATALYST
        assert profile.confidence == 85

    def test_binary_catalyst_outranks_high_volatility(self) -> None:
        features = make_features(
            info_cadence=80,
            liquidity_stability=20,
            info_structure=90,
            time_to_resolution=10,
        )
        assert classify_behavior(features, "Crypto").cluster is BehaviorCluster.BINARY_CATALYST

    def test_high_volatility(self) -> None:
        profile = classify_behavior(make_features(info_cadence=80, liquidity_stability=30), "Crypto")

        assert profile.cluster is BehaviorCluster.HIGH_VOLATILITY
        assert profile.confidence == 75

    def test_long_duration(self) -> None:
        profile = classify_behavior(make_features(time_to_resolution=90), "Science")

        assert profile.cluster is BehaviorCluster.LONG_DURATION
        assert profile.confidence == 80

    def test_scheduled_event(self) -> None:
        profile = classify_behavior(make_features(info_structure=70), None)

        assert profile.cluster is BehaviorCluster.SCHEDULED_EVENT
        assert profile.confidence == 70

    def test_continuous_info_fallback(self) -> None:
        profile = classify_behavior(make_features(), None)

        assert profile.cluster is BehaviorCluster.CONTINUOUS_INFO
        assert profile.confidence == 65

    def test_thresholds_are_strict(self) -> None:
        # info_structure must exceed 80 and time must be below 30.
        features = make_features(info_structure=80, time_to_resolution=29)
        assert classify_behavior(features, None).cluster is BehaviorCluster.SCHEDULED_EVENT


class TestNbaMarketResolvingSoon:
    def test_category_rule_beats_binary_catalyst(self) -> None:
        meta = MarketMeta(
            market_id="33333333-3333-4333-8333-333333333333",
            question="Will the Celtics win tonight?",
            category="NBA Sports",
            end_date=NOW + timedelta(hours=12),
        )
        features = extract_behavior_features([], meta, now=NOW)
        profile = classify_behavior(features, meta.category, computed_at=NOW)

        assert features.info_structure == 90
        assert features.time_to_resolution == 10
        assert profile.cluster is BehaviorCluster.SPORTS_SCHEDULED
        assert profile.confidence == 95


class TestClassificationProperties:
    def test_total_over_random_inputs(self) -> None:
        rng = random.Random(42)
        categories = [None, "", "Sports", "Crypto", "Politics", "NBA", "Science"]
        for _ in range(500):
            features = make_features(
                info_cadence=rng.randint(0, 100),
                info_structure=rng.randint(0, 100),
                liquidity_stability=rng.randint(0, 100),
                time_to_resolution=rng.randint(0, 100),
                participant_concentration=rng.randint(0, 100),
            )
            profile = classify_behavior(features, rng.choice(categories))

            assert profile.cluster in BehaviorCluster
            assert profile.confidence in {95, 85, 75, 80, 70, 65}
            assert len(profile.why_bullets) == 3

    def test_idempotent(self) -> None:
        features = make_features(info_cadence=80, liquidity_stability=10)
        first = classify_behavior(features, "Crypto", computed_at=NOW)
        second = classify_behavior(features, "Crypto", computed_at=NOW)

        assert (first.cluster, first.confidence, first.explanation) == (
            second.cluster,
            second.confidence,
            second.explanation,
        )
        assert first == second


class TestRetailInterpretation:
    def test_every_cluster_has_interpretation_and_display_info(self) -> None:
        for cluster in BehaviorCluster:
            assert cluster in RETAIL_INTERPRETATIONS
            assert cluster in CLUSTER_DISPLAY_INFO

    def test_profile_carries_interpretation(self) -> None:
        profile = classify_behavior(make_features(time_to_resolution=90), None)
        interpretation = RETAIL_INTERPRETATIONS[BehaviorCluster.LONG_DURATION]

        assert profile.retail_friendliness is interpretation.friendliness
        assert profile.common_retail_mistake == interpretation.common_mistake
        assert profile.why_retail_loses_here == interpretation.why_retail_loses
        assert profile.when_retail_can_compete == interpretation.when_retail_can_compete
        assert profile.cluster_label == "Long Duration"

    def test_unknown_cluster_falls_back_to_neutral(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            interpretation = get_retail_interpretation("lunar_cycle")

        assert interpretation is NEUTRAL_INTERPRETATION
        assert interpretation.friendliness is RetailFriendliness.NEUTRAL
        assert "lunar_cycle" in caplog.text

    def test_lookup_by_string_value(self) -> None:
        assert get_retail_interpretation("binary_catalyst") is RETAIL_INTERPRETATIONS[BehaviorCluster.BINARY_CATALYST]


class TestWhyBullets:
    @pytest.mark.parametrize(
        ("time_score", "label"),
        [(10, "minutes"), (30, "hours"), (50, "days"), (70, "days"), (75, "weeks"), (90, "weeks"), (100, "months")],
    )
    def test_timeframe_label(self, time_score: int, label: str) -> None:
        bullets = build_why_bullets(make_features(time_to_resolution=time_score))

        assert bullets[0].text == f"Resolution timeframe: {label}"
        assert bullets[0].metric == "Time Score"
        assert bullets[0].value == time_score
        assert bullets[0].unit == "/100"

    def test_structure_bullet(self) -> None:
        assert "scheduled events" in build_why_bullets(make_features(info_structure=61))[1].text
        assert "unstructured news" in build_why_bullets(make_features(info_structure=60))[1].text

    @pytest.mark.parametrize(("stability", "word"), [(61, "stable"), (31, "moderate"), (30, "volatile")])
    def test_liquidity_bullet(self, stability: int, word: str) -> None:
        bullet = build_why_bullets(make_features(liquidity_stability=stability))[2]

        assert bullet.text == f"Liquidity conditions are {word}"
        assert bullet.metric == "Stability"
