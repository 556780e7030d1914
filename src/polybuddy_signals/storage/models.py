"""SQLAlchemy models for persistent storage.

This module defines the database schema for market metadata, snapshots,
derived market profiles, exposure links, retail signals, alerts and
notifications.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MarketModel(Base):
    """Market metadata (question, category, end date)."""

    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_markets_resolved", "resolved"),)


class MarketSnapshotModel(Base):
    """Point-in-time market observation written by the collector."""

    __tablename__ = "market_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[str] = mapped_column(String(36), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    volume_24h: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    liquidity: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    spread: Mapped[Decimal] = mapped_column(Numeric(10, 6), nullable=False)
    depth: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    taken_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_market_snapshots_market_taken", "market_id", "taken_at"),)


class BehaviorProfileModel(Base):
    """One behavior cluster assignment per market (replaced on recompute)."""

    __tablename__ = "market_behavior_profiles"

    market_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    info_cadence: Mapped[int] = mapped_column(Integer, nullable=False)
    info_structure: Mapped[int] = mapped_column(Integer, nullable=False)
    liquidity_stability: Mapped[int] = mapped_column(Integer, nullable=False)
    time_to_resolution: Mapped[int] = mapped_column(Integer, nullable=False)
    participant_concentration: Mapped[int] = mapped_column(Integer, nullable=False)
    cluster: Mapped[str] = mapped_column(String(30), nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, nullable=False)
    retail_friendliness: Mapped[str] = mapped_column(String(20), nullable=False)
    common_retail_mistake: Mapped[str] = mapped_column(Text, nullable=False)
    why_retail_loses_here: Mapped[str] = mapped_column(Text, nullable=False)
    when_retail_can_compete: Mapped[str] = mapped_column(Text, nullable=False)
    why_bullets: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class FlowProfileModel(Base):
    """One flow-guard classification per market (replaced on recompute)."""

    __tablename__ = "market_flow_profiles"

    market_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    label: Mapped[str] = mapped_column(String(30), nullable=False)
    confidence: Mapped[str] = mapped_column(String(10), nullable=False)
    why_bullets: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    common_retail_mistake: Mapped[str] = mapped_column(Text, nullable=False)
    large_early_trades_pct: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    order_book_concentration: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    depth_shift_speed: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    repricing_speed: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ResolutionDriversModel(Base):
    """Extracted resolution drivers per market (replaced on recompute)."""

    __tablename__ = "market_resolution_drivers"

    market_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    underlying_asset: Mapped[str | None] = mapped_column(String(20), nullable=True)
    asset_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    narrative_dependency: Mapped[str | None] = mapped_column(String(30), nullable=True)
    resolution_source: Mapped[str | None] = mapped_column(String(30), nullable=True)
    resolution_window_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_window_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ExposureLinkModel(Base):
    """Non-independent exposure link between two markets.

    At most one row per unordered pair; the repository checks both
    orientations before inserting.
    """

    __tablename__ = "market_exposure_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_a_id: Mapped[str] = mapped_column(String(36), nullable=False)
    market_b_id: Mapped[str] = mapped_column(String(36), nullable=False)
    exposure_label: Mapped[str] = mapped_column(String(20), nullable=False)
    shared_driver_type: Mapped[str] = mapped_column(String(20), nullable=False)
    explanation: Mapped[str] = mapped_column(Text, nullable=False)
    example_outcome: Mapped[str] = mapped_column(Text, nullable=False)
    mistake_prevented: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("market_a_id", "market_b_id", name="uq_market_exposure_pair"),
        Index("idx_market_exposure_links_a", "market_a_id"),
        Index("idx_market_exposure_links_b", "market_b_id"),
    )


class ParticipationProfileModel(Base):
    """Participation structure per (market, side)."""

    __tablename__ = "market_participation_profiles"

    market_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    side: Mapped[str] = mapped_column(String(3), primary_key=True)
    setup_quality_score: Mapped[int] = mapped_column(Integer, nullable=False)
    setup_quality_band: Mapped[str] = mapped_column(String(30), nullable=False)
    participant_quality_score: Mapped[int] = mapped_column(Integer, nullable=False)
    participant_quality_band: Mapped[str] = mapped_column(String(20), nullable=False)
    participation_summary: Mapped[str] = mapped_column(String(30), nullable=False)
    large_pct: Mapped[int] = mapped_column(Integer, nullable=False)
    mid_pct: Mapped[int] = mapped_column(Integer, nullable=False)
    small_pct: Mapped[int] = mapped_column(Integer, nullable=False)
    behavior_insight: Mapped[str] = mapped_column(Text, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RetailSignalModel(Base):
    """Retail signal written by the signal producer and read by alert evaluation."""

    __tablename__ = "retail_signals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[str] = mapped_column(String(36), nullable=False)
    signal_type: Mapped[str] = mapped_column(String(30), nullable=False)
    label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_favorable: Mapped[bool] = mapped_column(Boolean, nullable=False)
    confidence: Mapped[str] = mapped_column(String(10), nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_retail_signals_market_type_computed", "market_id", "signal_type", "computed_at"),
    )


class AlertModel(Base):
    """User-defined alert on a market."""

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    market_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    condition: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_alerts_status", "status"),
        Index("idx_alerts_user", "user_id"),
    )


class NotificationModel(Base):
    """Notification emitted when an alert triggers."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    alert_id: Mapped[int] = mapped_column(Integer, nullable=False)
    market_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes.
    metadata_json: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_notifications_user_read", "user_id", "read"),)
