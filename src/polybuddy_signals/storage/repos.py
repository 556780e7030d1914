"""Repository pattern implementations for data access.

This module provides data access abstractions for market metadata,
snapshots, derived profiles, exposure links, retail signals, alerts and
notifications.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, delete, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from polybuddy_signals.alerter.models import (
    AlertStatus,
    Notification,
    RetailSignalState,
    RetailSignalType,
)
from polybuddy_signals.detector.models import (
    AssetCategory,
    BehaviorProfile,
    ExposureClassification,
    ExposureLabel,
    FlowProfile,
    NarrativeDependency,
    ParticipationResult,
    ResolutionDrivers,
    ResolutionSource,
    SignalConfidence,
)
from polybuddy_signals.ingestor.models import MarketMeta, MarketSnapshot
from polybuddy_signals.storage.models import (
    AlertModel,
    BehaviorProfileModel,
    ExposureLinkModel,
    FlowProfileModel,
    MarketModel,
    MarketSnapshotModel,
    NotificationModel,
    ParticipationProfileModel,
    ResolutionDriversModel,
    RetailSignalModel,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from polybuddy_signals.storage.models import Base

logger = logging.getLogger(__name__)


def _ensure_utc(ts: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on round-trip; stored values are always UTC.
    if ts is None:
        return None
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def _float_or_none(value: Any) -> float | None:
    return float(value) if value is not None else None


async def _upsert(
    session: AsyncSession,
    model: type[Base],
    values: dict[str, Any],
    *,
    index_elements: list[str],
) -> None:
    """INSERT ... ON CONFLICT DO UPDATE for PostgreSQL or SQLite."""
    insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={k: stmt.excluded[k] for k in values if k not in index_elements},
    )
    await session.execute(stmt)
    await session.flush()


# ============================================================================
# Markets and snapshots
# ============================================================================


@dataclass
class MarketDTO:
    """Data transfer object for market metadata."""

    id: str
    question: str
    category: str | None = None
    end_date: datetime | None = None
    resolved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: MarketModel) -> MarketDTO:
        return cls(
            id=model.id,
            question=model.question,
            category=model.category,
            end_date=_ensure_utc(model.end_date),
            resolved=model.resolved,
            created_at=_ensure_utc(model.created_at),
            updated_at=_ensure_utc(model.updated_at),
        )

    def to_meta(self) -> MarketMeta:
        return MarketMeta(
            market_id=self.id,
            question=self.question,
            category=self.category,
            end_date=self.end_date,
        )


class MarketRepository:
    """Repository for market metadata."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, market_id: str) -> MarketDTO | None:
        result = await self.session.execute(select(MarketModel).where(MarketModel.id == market_id))
        model = result.scalar_one_or_none()
        return MarketDTO.from_model(model) if model else None

    async def upsert(self, dto: MarketDTO, *, now: datetime | None = None) -> None:
        now = now or datetime.now(UTC)
        await _upsert(
            self.session,
            MarketModel,
            {
                "id": dto.id,
                "question": dto.question,
                "category": dto.category,
                "end_date": dto.end_date,
                "resolved": dto.resolved,
                "updated_at": now,
            },
            index_elements=["id"],
        )

    async def list_unresolved(self, *, exclude_id: str | None = None, limit: int = 200) -> list[MarketDTO]:
        """Unresolved markets, most recently updated first."""
        stmt = select(MarketModel).where(MarketModel.resolved.is_(False))
        if exclude_id is not None:
            stmt = stmt.where(MarketModel.id != exclude_id)
        stmt = stmt.order_by(MarketModel.updated_at.desc(), MarketModel.id).limit(limit)
        result = await self.session.execute(stmt)
        return [MarketDTO.from_model(m) for m in result.scalars().all()]


class MarketSnapshotRepository:
    """Read access to collector snapshots (plus inserts for seeding and tests)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, snapshot: MarketSnapshot) -> None:
        self.session.add(
            MarketSnapshotModel(
                market_id=snapshot.market_id,
                price=snapshot.price,
                volume_24h=snapshot.volume_24h,
                liquidity=snapshot.liquidity,
                spread=snapshot.spread,
                depth=snapshot.depth,
                taken_at=snapshot.taken_at,
            )
        )
        await self.session.flush()

    async def list_recent(self, market_id: str, *, limit: int) -> list[MarketSnapshot]:
        """Most recent snapshots for a market, newest first."""
        result = await self.session.execute(
            select(MarketSnapshotModel)
            .where(MarketSnapshotModel.market_id == market_id)
            .order_by(MarketSnapshotModel.taken_at.desc(), MarketSnapshotModel.id.desc())
            .limit(limit)
        )
        return [
            MarketSnapshot(
                market_id=m.market_id,
                price=float(m.price),
                volume_24h=float(m.volume_24h),
                liquidity=float(m.liquidity),
                spread=float(m.spread),
                depth=float(m.depth),
                taken_at=_ensure_utc(m.taken_at),
            )
            for m in result.scalars().all()
        ]

    async def get_latest(self, market_id: str) -> MarketSnapshot | None:
        recent = await self.list_recent(market_id, limit=1)
        return recent[0] if recent else None


# ============================================================================
# Derived market profiles
# ============================================================================


@dataclass
class BehaviorProfileDTO:
    market_id: str
    cluster: str
    confidence: int
    explanation: str
    retail_friendliness: str
    common_retail_mistake: str
    why_retail_loses_here: str
    when_retail_can_compete: str
    dimensions: dict[str, int]
    why_bullets: list[dict[str, Any]]
    computed_at: datetime

    @classmethod
    def from_model(cls, model: BehaviorProfileModel) -> BehaviorProfileDTO:
        return cls(
            market_id=model.market_id,
            cluster=model.cluster,
            confidence=model.confidence,
            explanation=model.explanation,
            retail_friendliness=model.retail_friendliness,
            common_retail_mistake=model.common_retail_mistake,
            why_retail_loses_here=model.why_retail_loses_here,
            when_retail_can_compete=model.when_retail_can_compete,
            dimensions={
                "info_cadence": model.info_cadence,
                "info_structure": model.info_structure,
                "liquidity_stability": model.liquidity_stability,
                "time_to_resolution": model.time_to_resolution,
                "participant_concentration": model.participant_concentration,
            },
            why_bullets=list(model.why_bullets or []),
            computed_at=_ensure_utc(model.computed_at),
        )


class BehaviorProfileRepository:
    """One behavior profile per market; upsert replaces every field."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(self, profile: BehaviorProfile) -> None:
        features = profile.features
        await _upsert(
            self.session,
            BehaviorProfileModel,
            {
                "market_id": profile.market_id,
                "info_cadence": features.info_cadence,
                "info_structure": features.info_structure,
                "liquidity_stability": features.liquidity_stability,
                "time_to_resolution": features.time_to_resolution,
                "participant_concentration": features.participant_concentration,
                # cluster and confidence are always written together
                "cluster": profile.cluster.value,
                "confidence": profile.confidence,
                "explanation": profile.explanation,
                "retail_friendliness": profile.retail_friendliness.value,
                "common_retail_mistake": profile.common_retail_mistake,
                "why_retail_loses_here": profile.why_retail_loses_here,
                "when_retail_can_compete": profile.when_retail_can_compete,
                "why_bullets": [b.to_dict() for b in profile.why_bullets],
                "computed_at": profile.computed_at,
                "updated_at": datetime.now(UTC),
            },
            index_elements=["market_id"],
        )

    async def get(self, market_id: str) -> BehaviorProfileDTO | None:
        result = await self.session.execute(
            select(BehaviorProfileModel).where(BehaviorProfileModel.market_id == market_id)
        )
        model = result.scalar_one_or_none()
        return BehaviorProfileDTO.from_model(model) if model else None


@dataclass
class FlowProfileDTO:
    market_id: str
    label: str
    confidence: str
    why_bullets: list[dict[str, Any]]
    common_retail_mistake: str
    large_early_trades_pct: float | None
    order_book_concentration: float | None
    depth_shift_speed: float | None
    repricing_speed: float | None
    computed_at: datetime

    @classmethod
    def from_model(cls, model: FlowProfileModel) -> FlowProfileDTO:
        return cls(
            market_id=model.market_id,
            label=model.label,
            confidence=model.confidence,
            why_bullets=list(model.why_bullets or []),
            common_retail_mistake=model.common_retail_mistake,
            large_early_trades_pct=_float_or_none(model.large_early_trades_pct),
            order_book_concentration=_float_or_none(model.order_book_concentration),
            depth_shift_speed=_float_or_none(model.depth_shift_speed),
            repricing_speed=_float_or_none(model.repricing_speed),
            computed_at=_ensure_utc(model.computed_at),
        )


class FlowProfileRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(self, profile: FlowProfile) -> None:
        await _upsert(
            self.session,
            FlowProfileModel,
            {
                "market_id": profile.market_id,
                "label": profile.label.value,
                "confidence": profile.confidence.value,
                "why_bullets": [b.to_dict() for b in profile.why_bullets],
                "common_retail_mistake": profile.common_retail_mistake,
                "large_early_trades_pct": profile.large_early_trades_pct,
                "order_book_concentration": profile.order_book_concentration,
                "depth_shift_speed": profile.depth_shift_speed,
                "repricing_speed": profile.repricing_speed,
                "computed_at": profile.computed_at,
                "updated_at": datetime.now(UTC),
            },
            index_elements=["market_id"],
        )

    async def get(self, market_id: str) -> FlowProfileDTO | None:
        result = await self.session.execute(
            select(FlowProfileModel).where(FlowProfileModel.market_id == market_id)
        )
        model = result.scalar_one_or_none()
        return FlowProfileDTO.from_model(model) if model else None


class ResolutionDriversRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(self, drivers: ResolutionDrivers) -> None:
        await _upsert(
            self.session,
            ResolutionDriversModel,
            {
                "market_id": drivers.market_id,
                "underlying_asset": drivers.underlying_asset,
                "asset_category": drivers.asset_category.value if drivers.asset_category else None,
                "narrative_dependency": (
                    drivers.narrative_dependency.value if drivers.narrative_dependency else None
                ),
                "resolution_source": (
                    drivers.resolution_source.value if drivers.resolution_source else None
                ),
                "resolution_window_start": drivers.resolution_window_start,
                "resolution_window_end": drivers.resolution_window_end,
                "computed_at": datetime.now(UTC),
            },
            index_elements=["market_id"],
        )

    async def get(self, market_id: str) -> ResolutionDrivers | None:
        result = await self.session.execute(
            select(ResolutionDriversModel).where(ResolutionDriversModel.market_id == market_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return ResolutionDrivers(
            market_id=model.market_id,
            underlying_asset=model.underlying_asset,
            asset_category=AssetCategory(model.asset_category) if model.asset_category else None,
            narrative_dependency=(
                NarrativeDependency(model.narrative_dependency) if model.narrative_dependency else None
            ),
            resolution_source=(
                ResolutionSource(model.resolution_source) if model.resolution_source else None
            ),
            resolution_window_start=_ensure_utc(model.resolution_window_start),
            resolution_window_end=_ensure_utc(model.resolution_window_end),
        )


# ============================================================================
# Exposure links
# ============================================================================


@dataclass
class ExposureLinkDTO:
    market_a_id: str
    market_b_id: str
    exposure_label: ExposureLabel
    shared_driver_type: str
    explanation: str
    example_outcome: str
    mistake_prevented: str
    id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: ExposureLinkModel) -> ExposureLinkDTO:
        return cls(
            id=model.id,
            market_a_id=model.market_a_id,
            market_b_id=model.market_b_id,
            exposure_label=ExposureLabel(model.exposure_label),
            shared_driver_type=model.shared_driver_type,
            explanation=model.explanation,
            example_outcome=model.example_outcome,
            mistake_prevented=model.mistake_prevented,
            created_at=_ensure_utc(model.created_at),
        )


class ExposureLinkRepository:
    """Stored links for unordered market pairs."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _pair_clause(a_id: str, b_id: str) -> ColumnElement[bool]:
        return or_(
            (ExposureLinkModel.market_a_id == a_id) & (ExposureLinkModel.market_b_id == b_id),
            (ExposureLinkModel.market_a_id == b_id) & (ExposureLinkModel.market_b_id == a_id),
        )

    async def exists(self, a_id: str, b_id: str) -> bool:
        """Whether a link exists for the pair in either orientation."""
        result = await self.session.execute(
            select(ExposureLinkModel.id).where(self._pair_clause(a_id, b_id)).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def insert(self, a_id: str, b_id: str, classification: ExposureClassification) -> None:
        if not classification.is_linked:
            raise ValueError("independent pairs are not stored")
        self.session.add(
            ExposureLinkModel(
                market_a_id=a_id,
                market_b_id=b_id,
                exposure_label=classification.label.value,
                shared_driver_type=classification.shared_driver_type.value,
                explanation=classification.explanation,
                example_outcome=classification.example_outcome,
                mistake_prevented=classification.mistake_prevented,
            )
        )
        await self.session.flush()

    async def list_for_market(self, market_id: str) -> list[ExposureLinkDTO]:
        result = await self.session.execute(
            select(ExposureLinkModel)
            .where(
                or_(
                    ExposureLinkModel.market_a_id == market_id,
                    ExposureLinkModel.market_b_id == market_id,
                )
            )
            .order_by(ExposureLinkModel.id)
        )
        return [ExposureLinkDTO.from_model(m) for m in result.scalars().all()]


# ============================================================================
# Participation profiles
# ============================================================================


class ParticipationProfileRepository:
    """YES/NO participation rows, fully replaced on recompute."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def replace(self, result: ParticipationResult) -> None:
        market_id = result.yes.market_id
        await self.session.execute(
            delete(ParticipationProfileModel).where(ParticipationProfileModel.market_id == market_id)
        )
        for profile in (result.yes, result.no):
            self.session.add(
                ParticipationProfileModel(
                    market_id=profile.market_id,
                    side=profile.side.value,
                    setup_quality_score=profile.setup_quality_score,
                    setup_quality_band=profile.setup_quality_band.value,
                    participant_quality_score=profile.participant_quality_score,
                    participant_quality_band=profile.participant_quality_band.value,
                    participation_summary=profile.participation_summary.value,
                    large_pct=profile.large_pct,
                    mid_pct=profile.mid_pct,
                    small_pct=profile.small_pct,
                    behavior_insight=profile.behavior_insight,
                    computed_at=profile.computed_at,
                )
            )
        await self.session.flush()

    async def list_for_market(self, market_id: str) -> list[ParticipationProfileModel]:
        result = await self.session.execute(
            select(ParticipationProfileModel)
            .where(ParticipationProfileModel.market_id == market_id)
            .order_by(ParticipationProfileModel.side.desc())
        )
        return list(result.scalars().all())


# ============================================================================
# Retail signals
# ============================================================================


@dataclass
class RetailSignalDTO:
    market_id: str
    signal_type: RetailSignalType
    is_favorable: bool
    confidence: SignalConfidence
    computed_at: datetime
    label: str | None = None

    def to_state(self) -> RetailSignalState:
        return RetailSignalState(
            signal_type=self.signal_type,
            is_favorable=self.is_favorable,
            confidence=self.confidence,
            computed_at=self.computed_at,
            label=self.label,
        )


class RetailSignalRepository:
    """Retail signals produced elsewhere; read back for alert evaluation."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, dto: RetailSignalDTO) -> None:
        self.session.add(
            RetailSignalModel(
                market_id=dto.market_id,
                signal_type=dto.signal_type.value,
                label=dto.label,
                is_favorable=dto.is_favorable,
                confidence=dto.confidence.value,
                computed_at=dto.computed_at,
            )
        )
        await self.session.flush()

    async def recent_by_type(
        self,
        market_id: str,
        *,
        since: datetime,
    ) -> dict[RetailSignalType, list[RetailSignalState]]:
        """Signals of each type computed at or after ``since``, newest first."""
        result = await self.session.execute(
            select(RetailSignalModel)
            .where(
                (RetailSignalModel.market_id == market_id)
                & (RetailSignalModel.computed_at >= since)
            )
            .order_by(RetailSignalModel.computed_at.desc(), RetailSignalModel.id.desc())
        )
        recent: dict[RetailSignalType, list[RetailSignalState]] = {}
        for model in result.scalars().all():
            try:
                signal_type = RetailSignalType(model.signal_type)
                confidence = SignalConfidence(model.confidence)
            except ValueError:
                logger.warning("Skipping retail signal %s with unknown type or confidence", model.id)
                continue
            state = RetailSignalState(
                signal_type=signal_type,
                is_favorable=model.is_favorable,
                confidence=confidence,
                computed_at=_ensure_utc(model.computed_at),
                label=model.label,
            )
            recent.setdefault(signal_type, []).append(state)
        return recent


# ============================================================================
# Alerts and notifications
# ============================================================================


@dataclass
class AlertDTO:
    user_id: str
    market_id: str
    type: str
    condition: dict[str, Any]
    status: AlertStatus = AlertStatus.ACTIVE
    id: int | None = None
    triggered_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: AlertModel) -> AlertDTO:
        return cls(
            id=model.id,
            user_id=model.user_id,
            market_id=model.market_id,
            type=model.type,
            condition=dict(model.condition or {}),
            status=AlertStatus(model.status),
            triggered_at=_ensure_utc(model.triggered_at),
            created_at=_ensure_utc(model.created_at),
        )


class AlertRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, dto: AlertDTO) -> int:
        model = AlertModel(
            user_id=dto.user_id,
            market_id=dto.market_id,
            type=dto.type,
            condition=dto.condition,
            status=dto.status.value,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def get(self, alert_id: int) -> AlertDTO | None:
        result = await self.session.execute(select(AlertModel).where(AlertModel.id == alert_id))
        model = result.scalar_one_or_none()
        return AlertDTO.from_model(model) if model else None

    async def list_active(self) -> list[AlertDTO]:
        result = await self.session.execute(
            select(AlertModel).where(AlertModel.status == AlertStatus.ACTIVE.value).order_by(AlertModel.id)
        )
        return [AlertDTO.from_model(m) for m in result.scalars().all()]

    async def mark_triggered(self, alert_id: int, *, at: datetime) -> bool:
        """Move an active alert to triggered. Returns False if it was not active."""
        result = await self.session.execute(
            update(AlertModel)
            .where((AlertModel.id == alert_id) & (AlertModel.status == AlertStatus.ACTIVE.value))
            .values(status=AlertStatus.TRIGGERED.value, triggered_at=at)
        )
        await self.session.flush()
        return bool(result.rowcount)


class NotificationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, notification: Notification) -> int:
        model = NotificationModel(
            user_id=notification.user_id,
            alert_id=notification.alert_id,
            market_id=notification.market_id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            metadata_json=notification.metadata,
            created_at=notification.created_at,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def list_for_user(self, user_id: str) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.id)
        )
        return list(result.scalars().all())
