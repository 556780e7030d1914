"""Tests for hidden exposure classification."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from polybuddy_signals.detector.drivers import extract_drivers
from polybuddy_signals.detector.exposure import (
    ExposureWarningLevel,
    classify_exposure,
    summarize_exposure,
    windows_overlap,
)
from polybuddy_signals.detector.models import (
    AssetCategory,
    ExposureLabel,
    NarrativeDependency,
    ResolutionDrivers,
    ResolutionSource,
    SharedDriverType,
)
from polybuddy_signals.ingestor.models import MarketMeta

END = datetime(2026, 11, 3, 23, 59, tzinfo=UTC)


def make_drivers(
    market_id: str = "a",
    *,
    asset: str | None = None,
    category: AssetCategory | None = None,
    narrative: NarrativeDependency | None = None,
    source: ResolutionSource | None = None,
    end: datetime | None = None,
) -> ResolutionDrivers:
    return ResolutionDrivers(
        market_id=market_id,
        underlying_asset=asset,
        asset_category=category,
        narrative_dependency=narrative,
        resolution_source=source,
        resolution_window_start=end - timedelta(hours=24) if end else None,
        resolution_window_end=end,
    )


@dataclass
class FakeLink:
    market_a_id: str
    market_b_id: str
    exposure_label: ExposureLabel


class TestClassifyExposure:
    def test_same_asset_is_highly_linked(self) -> None:
        result = classify_exposure(
            make_drivers("a", asset="BTC", category=AssetCategory.CRYPTO),
            make_drivers("b", asset="BTC", category=AssetCategory.CRYPTO),
        )

        assert result.label is ExposureLabel.HIGHLY_LINKED
        assert result.shared_driver_type is SharedDriverType.ASSET
        assert result.shared_value == "BTC"
        assert "BTC" in result.explanation

    def test_same_narrative_is_highly_linked(self) -> None:
        result = classify_exposure(
            make_drivers("a", asset="TRUMP", narrative=NarrativeDependency.ELECTION),
            make_drivers("b", asset="HARRIS", narrative=NarrativeDependency.ELECTION),
        )

        assert result.label is ExposureLabel.HIGHLY_LINKED
        assert result.shared_driver_type is SharedDriverType.NARRATIVE

    def test_same_category_overlapping_windows(self) -> None:
        result = classify_exposure(
            make_drivers("a", asset="BTC", category=AssetCategory.CRYPTO, end=END),
            make_drivers("b", asset="ETH", category=AssetCategory.CRYPTO, end=END + timedelta(hours=12)),
        )

        assert result.label is ExposureLabel.PARTIALLY_LINKED
        assert result.shared_driver_type is SharedDriverType.CATEGORY_TIME

    def test_same_category_disjoint_windows(self) -> None:
        result = classify_exposure(
            make_drivers("a", asset="BTC", category=AssetCategory.CRYPTO, end=END),
            make_drivers("b", asset="ETH", category=AssetCategory.CRYPTO, end=END + timedelta(days=30)),
        )

        assert result.label is ExposureLabel.PARTIALLY_LINKED
        assert result.shared_driver_type is SharedDriverType.CATEGORY

    def test_same_category_without_end_dates(self) -> None:
        result = classify_exposure(
            make_drivers("a", asset="FED", category=AssetCategory.ECONOMICS),
            make_drivers("b", asset="CPI", category=AssetCategory.ECONOMICS),
        )
        assert result.shared_driver_type is SharedDriverType.CATEGORY

    def test_same_resolution_source(self) -> None:
        result = classify_exposure(
            make_drivers("a", source=ResolutionSource.GAME_RESULT),
            make_drivers("b", source=ResolutionSource.GAME_RESULT),
        )

        assert result.label is ExposureLabel.PARTIALLY_LINKED
        assert result.shared_driver_type is SharedDriverType.RESOLUTION_SOURCE

    def test_nothing_shared_is_independent(self) -> None:
        result = classify_exposure(make_drivers("a"), make_drivers("b"))

        assert result.label is ExposureLabel.INDEPENDENT
        assert result.shared_driver_type is SharedDriverType.NONE
        assert not result.is_linked

    def test_missing_values_never_match(self) -> None:
        # Both None on every field must not count as a shared driver.
        result = classify_exposure(make_drivers("a", end=END), make_drivers("b", end=END))
        assert result.label is ExposureLabel.INDEPENDENT

    def test_two_bitcoin_questions(self) -> None:
        a = extract_drivers(MarketMeta(market_id="a", question="Will Bitcoin hit $150k?", end_date=END))
        b = extract_drivers(MarketMeta(market_id="b", question="Bitcoin above $80k on Friday?"))

        result = classify_exposure(a, b)
        assert result.label is ExposureLabel.HIGHLY_LINKED
        assert result.shared_driver_type is SharedDriverType.ASSET


class TestSymmetry:
    def test_classification_is_order_independent(self) -> None:
        pool = [
            make_drivers("a", asset="BTC", category=AssetCategory.CRYPTO, end=END),
            make_drivers("b", asset="ETH", category=AssetCategory.CRYPTO, end=END + timedelta(hours=6)),
            make_drivers("c", asset="ETH", category=AssetCategory.CRYPTO, narrative=NarrativeDependency.PRICE_MOVEMENT),
            make_drivers("d", asset="TRUMP", category=AssetCategory.POLITICS, narrative=NarrativeDependency.ELECTION),
            make_drivers("e", narrative=NarrativeDependency.ELECTION, source=ResolutionSource.OFFICIAL_RESULTS),
            make_drivers("f", source=ResolutionSource.OFFICIAL_RESULTS, end=END),
            make_drivers("g"),
            make_drivers("h", asset="CPI", category=AssetCategory.ECONOMICS, end=END + timedelta(days=60)),
        ]
        for a, b in itertools.product(pool, repeat=2):
            assert classify_exposure(a, b) == classify_exposure(b, a)


class TestWindowsOverlap:
    def test_touching_windows_overlap(self) -> None:
        a = make_drivers("a", end=END)
        b = make_drivers("b", end=END + timedelta(hours=24))
        assert windows_overlap(a, b)

    def test_missing_bound(self) -> None:
        assert not windows_overlap(make_drivers("a", end=END), make_drivers("b"))


class TestSummarizeExposure:
    def test_high_when_any_highly_linked(self) -> None:
        links = [
            FakeLink("m", "x", ExposureLabel.PARTIALLY_LINKED),
            FakeLink("y", "m", ExposureLabel.HIGHLY_LINKED),
        ]
        summary = summarize_exposure("m", links)

        assert summary.warning_level is ExposureWarningLevel.HIGH
        assert summary.highly_linked == ("y",)
        assert summary.partially_linked == ("x",)

    def test_partial_only(self) -> None:
        summary = summarize_exposure("m", [FakeLink("m", "x", ExposureLabel.PARTIALLY_LINKED)])
        assert summary.warning_level is ExposureWarningLevel.PARTIAL

    def test_no_links(self) -> None:
        summary = summarize_exposure("m", [])

        assert summary.warning_level is ExposureWarningLevel.NONE
        assert summary.to_dict() == {
            "market_id": "m",
            "warning_level": "none",
            "highly_linked": [],
            "partially_linked": [],
            "links": [],
        }

    @pytest.mark.parametrize("label", list(ExposureLabel))
    def test_links_rendered_with_other_market(self, label: ExposureLabel) -> None:
        summary = summarize_exposure("m", [FakeLink("m", "other", label)])
        assert summary.links == ({"market_id": "other", "exposure_label": label.value},)
