"""Hidden exposure classification between pairs of markets.

Two markets are linked when their resolution drivers overlap. Explanatory
text is parameterized only by the shared driver value, so classifying
(A, B) and (B, A) yields identical results.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from polybuddy_signals.detector.models import (
    ExposureClassification,
    ExposureLabel,
    ResolutionDrivers,
    SharedDriverType,
)


class ExposureWarningLevel(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    HIGH = "high"


class StoredExposureLink(Protocol):
    market_a_id: str
    market_b_id: str
    exposure_label: ExposureLabel


@dataclass(frozen=True)
class ExposureSummary:
    """Stored links touching one market, grouped by strength."""

    market_id: str
    warning_level: ExposureWarningLevel
    highly_linked: tuple[str, ...] = ()
    partially_linked: tuple[str, ...] = ()
    links: tuple[dict[str, object], ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "market_id": self.market_id,
            "warning_level": self.warning_level.value,
            "highly_linked": list(self.highly_linked),
            "partially_linked": list(self.partially_linked),
            "links": list(self.links),
        }


def _humanize(value: str) -> str:
    return value.replace("_", " ")


def windows_overlap(a: ResolutionDrivers, b: ResolutionDrivers) -> bool:
    """Closed-interval overlap of two resolution windows (False if any bound is missing)."""
    start_a, end_a = a.resolution_window_start, a.resolution_window_end
    start_b, end_b = b.resolution_window_start, b.resolution_window_end
    if start_a is None or end_a is None or start_b is None or end_b is None:
        return False
    return start_a <= end_b and start_b <= end_a


def _linked(
    label: ExposureLabel,
    driver_type: SharedDriverType,
    shared: str,
    explanation: str,
    example: str,
    mistake: str,
) -> ExposureClassification:
    return ExposureClassification(
        label=label,
        shared_driver_type=driver_type,
        shared_value=shared,
        explanation=explanation,
        example_outcome=example,
        mistake_prevented=mistake,
    )


def classify_exposure(a: ResolutionDrivers, b: ResolutionDrivers) -> ExposureClassification:
    """Classify how strongly two markets share resolution drivers.

    Args:
        a: Drivers of the first market.
        b: Drivers of the second market.

    Returns:
        ExposureClassification; label and shared driver type do not depend
        on argument order.
    """
    if a.underlying_asset is not None and a.underlying_asset == b.underlying_asset:
        asset = a.underlying_asset
        return _linked(
            ExposureLabel.HIGHLY_LINKED,
            SharedDriverType.ASSET,
            asset,
            f"Both markets resolve on the price of {asset}.",
            f"A sharp move in {asset} can settle both markets the same way.",
            f"Treating two positions on {asset} as diversification.",
        )

    if a.narrative_dependency is not None and a.narrative_dependency == b.narrative_dependency:
        narrative = _humanize(a.narrative_dependency.value)
        return _linked(
            ExposureLabel.HIGHLY_LINKED,
            SharedDriverType.NARRATIVE,
            a.narrative_dependency.value,
            f"Both markets depend on the same {narrative} narrative.",
            f"A single {narrative} result can move both markets together.",
            "Doubling exposure to one storyline without realizing it.",
        )

    if a.asset_category is not None and a.asset_category == b.asset_category:
        category = a.asset_category.value
        if windows_overlap(a, b):
            return _linked(
                ExposureLabel.PARTIALLY_LINKED,
                SharedDriverType.CATEGORY_TIME,
                category,
                f"Both are {category} markets resolving in overlapping windows.",
                f"{category.capitalize()} news inside the shared window can reprice both markets at once.",
                "Stacking correlated positions that resolve at the same time.",
            )
        return _linked(
            ExposureLabel.PARTIALLY_LINKED,
            SharedDriverType.CATEGORY,
            category,
            f"Both markets belong to the {category} category.",
            f"A broad {category} shift can move both markets in the same direction.",
            "Assuming markets in the same sector are independent.",
        )

    if a.resolution_source is not None and a.resolution_source == b.resolution_source:
        source = _humanize(a.resolution_source.value)
        return _linked(
            ExposureLabel.PARTIALLY_LINKED,
            SharedDriverType.RESOLUTION_SOURCE,
            a.resolution_source.value,
            f"Both markets resolve from the same source ({source}).",
            f"A delay or dispute over the {source} affects both markets.",
            "Ignoring shared resolution risk across positions.",
        )

    return ExposureClassification(
        label=ExposureLabel.INDEPENDENT,
        shared_driver_type=SharedDriverType.NONE,
        explanation="No shared resolution drivers were found.",
        example_outcome="The outcome of one market says little about the other.",
        mistake_prevented="None; these markets can be sized independently.",
    )


def summarize_exposure(market_id: str, links: Iterable[StoredExposureLink]) -> ExposureSummary:
    """Group a market's stored links and derive a warning level.

    ``high`` if any link is highly linked, ``partial`` if any is partially
    linked, otherwise ``none``.
    """
    highly: list[str] = []
    partially: list[str] = []
    rendered: list[dict[str, object]] = []
    for link in links:
        other = link.market_b_id if link.market_a_id == market_id else link.market_a_id
        label = ExposureLabel(link.exposure_label)
        if label is ExposureLabel.HIGHLY_LINKED:
            highly.append(other)
        elif label is ExposureLabel.PARTIALLY_LINKED:
            partially.append(other)
        rendered.append({"market_id": other, "exposure_label": label.value})

    if highly:
        level = ExposureWarningLevel.HIGH
    elif partially:
        level = ExposureWarningLevel.PARTIAL
    else:
        level = ExposureWarningLevel.NONE

    return ExposureSummary(
        market_id=market_id,
        warning_level=level,
        highly_linked=tuple(highly),
        partially_linked=tuple(partially),
        links=tuple(rendered),
    )

