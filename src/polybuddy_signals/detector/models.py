"""Data models for the detector module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class BehaviorCluster(str, Enum):
    """How information and liquidity typically evolve in a market."""

    SCHEDULED_EVENT = "scheduled_event"
    CONTINUOUS_INFO = "continuous_info"
    BINARY_CATALYST = "binary_catalyst"
    HIGH_VOLATILITY = "high_volatility"
    LONG_DURATION = "long_duration"
    SPORTS_SCHEDULED = "sports_scheduled"


class RetailFriendliness(str, Enum):
    FAVORABLE = "favorable"
    NEUTRAL = "neutral"
    UNFAVORABLE = "unfavorable"


class FlowLabel(str, Enum):
    HISTORICALLY_NOISY = "historically_noisy"
    PRO_DOMINANT = "pro_dominant"
    RETAIL_ACTIONABLE = "retail_actionable"


class SignalConfidence(str, Enum):
    """Ordinal confidence; compare with ``rank``, never by string."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_ORDER.index(self)


_CONFIDENCE_ORDER: tuple[SignalConfidence, ...] = (
    SignalConfidence.LOW,
    SignalConfidence.MEDIUM,
    SignalConfidence.HIGH,
)


class AssetCategory(str, Enum):
    CRYPTO = "crypto"
    POLITICS = "politics"
    ECONOMICS = "economics"


class NarrativeDependency(str, Enum):
    ELECTION = "election"
    APPROVAL_RATING = "approval_rating"
    PRICE_MOVEMENT = "price_movement"
    COMPETITION_OUTCOME = "competition_outcome"


class ResolutionSource(str, Enum):
    EXCHANGE_PRICE = "exchange_price"
    OFFICIAL_RESULTS = "official_results"
    GAME_RESULT = "game_result"


class ExposureLabel(str, Enum):
    INDEPENDENT = "independent"
    PARTIALLY_LINKED = "partially_linked"
    HIGHLY_LINKED = "highly_linked"


class SharedDriverType(str, Enum):
    ASSET = "asset"
    NARRATIVE = "narrative"
    CATEGORY_TIME = "category_time"
    CATEGORY = "category"
    RESOLUTION_SOURCE = "resolution_source"
    NONE = "none"


class ParticipationSide(str, Enum):
    YES = "YES"
    NO = "NO"


class SetupQualityBand(str, Enum):
    HISTORICALLY_FAVORABLE = "historically_favorable"
    MIXED_WORKABLE = "mixed_workable"
    NEUTRAL = "neutral"
    HISTORICALLY_UNFORGIVING = "historically_unforgiving"


class ParticipantQualityBand(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    LIMITED = "limited"


class ParticipationSummary(str, Enum):
    FEW_DOMINANT = "few_dominant"
    MIXED_PARTICIPATION = "mixed_participation"
    BROAD_RETAIL = "broad_retail"


@dataclass(frozen=True)
class WhyBullet:
    """One human-readable justification line with the metric behind it."""

    text: str
    metric: str
    value: float
    unit: str

    def to_dict(self) -> dict[str, object]:
        return {"text": self.text, "metric": self.metric, "value": self.value, "unit": self.unit}


@dataclass(frozen=True)
class BehaviorFeatures:
    """Five 0-100 dimension scores describing market behavior."""

    market_id: str
    info_cadence: int
    info_structure: int
    liquidity_stability: int
    time_to_resolution: int
    participant_concentration: int

    def to_dict(self) -> dict[str, object]:
        return {
            "info_cadence": self.info_cadence,
            "info_structure": self.info_structure,
            "liquidity_stability": self.liquidity_stability,
            "time_to_resolution": self.time_to_resolution,
            "participant_concentration": self.participant_concentration,
        }


@dataclass(frozen=True)
class BehaviorProfile:
    """Behavior cluster assignment for one market.

    Attributes:
        features: Dimension scores the cluster was derived from.
        cluster: Assigned behavior cluster.
        cluster_label: Display label for the cluster.
        confidence: 0-100 confidence for the assignment.
        explanation: Fixed explanation for the matching rule.
        retail_friendliness: Static retail interpretation for the cluster.
        common_retail_mistake: Static text keyed by cluster.
        why_retail_loses_here: Static text keyed by cluster.
        when_retail_can_compete: Static text keyed by cluster.
        why_bullets: Timeframe, structure and liquidity justifications.
        computed_at: When the classification ran.
    """

    features: BehaviorFeatures
    cluster: BehaviorCluster
    cluster_label: str
    confidence: int
    explanation: str
    retail_friendliness: RetailFriendliness
    common_retail_mistake: str
    why_retail_loses_here: str
    when_retail_can_compete: str
    why_bullets: tuple[WhyBullet, ...] = ()
    computed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def market_id(self) -> str:
        return self.features.market_id

    def to_dict(self) -> dict[str, object]:
        return {
            "market_id": self.market_id,
            "dimensions": self.features.to_dict(),
            "cluster": self.cluster.value,
            "cluster_label": self.cluster_label,
            "confidence": self.confidence,
            "explanation": self.explanation,
            "retail_friendliness": self.retail_friendliness.value,
            "common_retail_mistake": self.common_retail_mistake,
            "why_retail_loses_here": self.why_retail_loses_here,
            "when_retail_can_compete": self.when_retail_can_compete,
            "why_bullets": [b.to_dict() for b in self.why_bullets],
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass(frozen=True)
class FlowFeatures:
    """Four 0-100 flow metrics extracted from recent snapshots."""

    market_id: str
    large_early_trades_pct: float
    order_book_concentration: float
    depth_shift_speed: float
    repricing_speed: float


@dataclass(frozen=True)
class FlowProfile:
    """Flow-guard classification for one market.

    Metric fields are None when fewer than two snapshots were available.
    """

    market_id: str
    label: FlowLabel
    confidence: SignalConfidence
    pro_score: float
    noisy_score: float
    why_bullets: tuple[WhyBullet, ...]
    display_label: str
    common_retail_mistake: str
    large_early_trades_pct: float | None
    order_book_concentration: float | None
    depth_shift_speed: float | None
    repricing_speed: float | None
    snapshot_count: int
    computed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, object]:
        return {
            "market_id": self.market_id,
            "label": self.label.value,
            "display_label": self.display_label,
            "confidence": self.confidence.value,
            "pro_score": self.pro_score,
            "noisy_score": self.noisy_score,
            "why_bullets": [b.to_dict() for b in self.why_bullets],
            "common_retail_mistake": self.common_retail_mistake,
            "large_early_trades_pct": self.large_early_trades_pct,
            "order_book_concentration": self.order_book_concentration,
            "depth_shift_speed": self.depth_shift_speed,
            "repricing_speed": self.repricing_speed,
            "snapshot_count": self.snapshot_count,
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass(frozen=True)
class ResolutionDrivers:
    """What a market's outcome ultimately depends on."""

    market_id: str
    underlying_asset: str | None = None
    asset_category: AssetCategory | None = None
    narrative_dependency: NarrativeDependency | None = None
    resolution_source: ResolutionSource | None = None
    resolution_window_start: datetime | None = None
    resolution_window_end: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "market_id": self.market_id,
            "underlying_asset": self.underlying_asset,
            "asset_category": self.asset_category.value if self.asset_category else None,
            "narrative_dependency": (
                self.narrative_dependency.value if self.narrative_dependency else None
            ),
            "resolution_source": self.resolution_source.value if self.resolution_source else None,
            "resolution_window_start": (
                self.resolution_window_start.isoformat() if self.resolution_window_start else None
            ),
            "resolution_window_end": (
                self.resolution_window_end.isoformat() if self.resolution_window_end else None
            ),
        }


@dataclass(frozen=True)
class ExposureClassification:
    """Relationship between two markets' resolution drivers."""

    label: ExposureLabel
    shared_driver_type: SharedDriverType
    explanation: str
    example_outcome: str
    mistake_prevented: str
    shared_value: str | None = None

    @property
    def is_linked(self) -> bool:
        return self.label is not ExposureLabel.INDEPENDENT

    def to_dict(self) -> dict[str, object]:
        return {
            "exposure_label": self.label.value,
            "shared_driver_type": self.shared_driver_type.value,
            "shared_value": self.shared_value,
            "explanation": self.explanation,
            "example_outcome": self.example_outcome,
            "mistake_prevented": self.mistake_prevented,
        }


@dataclass(frozen=True)
class ParticipationProfile:
    """Participation structure estimate for one side of a market."""

    market_id: str
    side: ParticipationSide
    setup_quality_score: int
    setup_quality_band: SetupQualityBand
    participant_quality_score: int
    participant_quality_band: ParticipantQualityBand
    participation_summary: ParticipationSummary
    large_pct: int
    mid_pct: int
    small_pct: int
    behavior_insight: str
    computed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, object]:
        return {
            "market_id": self.market_id,
            "side": self.side.value,
            "setup_quality_score": self.setup_quality_score,
            "setup_quality_band": self.setup_quality_band.value,
            "participant_quality_score": self.participant_quality_score,
            "participant_quality_band": self.participant_quality_band.value,
            "participation_summary": self.participation_summary.value,
            "breakdown": {
                "large_pct": self.large_pct,
                "mid_pct": self.mid_pct,
                "small_pct": self.small_pct,
            },
            "behavior_insight": self.behavior_insight,
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass(frozen=True)
class ParticipationResult:
    yes: ParticipationProfile
    no: ParticipationProfile

    def to_dict(self) -> dict[str, object]:
        return {"yes": self.yes.to_dict(), "no": self.no.to_dict()}
