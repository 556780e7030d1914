"""Initial schema for markets, derived signal profiles, alerts and notifications.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Markets table
    op.create_table(
        "markets",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_markets_resolved", "markets", ["resolved"])

    # Collector snapshots
    op.create_table(
        "market_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("price", sa.Numeric(10, 6), nullable=False),
        sa.Column("volume_24h", sa.Numeric(20, 2), nullable=False),
        sa.Column("liquidity", sa.Numeric(20, 2), nullable=False),
        sa.Column("spread", sa.Numeric(10, 6), nullable=False),
        sa.Column("depth", sa.Numeric(20, 2), nullable=False),
        sa.Column("taken_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_market_snapshots_market_taken",
        "market_snapshots",
        ["market_id", "taken_at"],
    )

    # Behavior profiles
    op.create_table(
        "market_behavior_profiles",
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("info_cadence", sa.Integer(), nullable=False),
        sa.Column("info_structure", sa.Integer(), nullable=False),
        sa.Column("liquidity_stability", sa.Integer(), nullable=False),
        sa.Column("time_to_resolution", sa.Integer(), nullable=False),
        sa.Column("participant_concentration", sa.Integer(), nullable=False),
        sa.Column("cluster", sa.String(30), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False),
        sa.Column("retail_friendliness", sa.String(20), nullable=False),
        sa.Column("common_retail_mistake", sa.Text(), nullable=False),
        sa.Column("why_retail_loses_here", sa.Text(), nullable=False),
        sa.Column("when_retail_can_compete", sa.Text(), nullable=False),
        sa.Column("why_bullets", sa.JSON(), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("market_id"),
    )

    # Flow profiles
    op.create_table(
        "market_flow_profiles",
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("label", sa.String(30), nullable=False),
        sa.Column("confidence", sa.String(10), nullable=False),
        sa.Column("why_bullets", sa.JSON(), nullable=False),
        sa.Column("common_retail_mistake", sa.Text(), nullable=False),
        sa.Column("large_early_trades_pct", sa.Numeric(6, 2), nullable=True),
        sa.Column("order_book_concentration", sa.Numeric(6, 2), nullable=True),
        sa.Column("depth_shift_speed", sa.Numeric(6, 2), nullable=True),
        sa.Column("repricing_speed", sa.Numeric(6, 2), nullable=True),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("market_id"),
    )

    # Resolution drivers
    op.create_table(
        "market_resolution_drivers",
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("underlying_asset", sa.String(20), nullable=True),
        sa.Column("asset_category", sa.String(20), nullable=True),
        sa.Column("narrative_dependency", sa.String(30), nullable=True),
        sa.Column("resolution_source", sa.String(30), nullable=True),
        sa.Column("resolution_window_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_window_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("market_id"),
    )

    # Exposure links (one row per unordered pair)
    op.create_table(
        "market_exposure_links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("market_a_id", sa.String(36), nullable=False),
        sa.Column("market_b_id", sa.String(36), nullable=False),
        sa.Column("exposure_label", sa.String(20), nullable=False),
        sa.Column("shared_driver_type", sa.String(20), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False),
        sa.Column("example_outcome", sa.Text(), nullable=False),
        sa.Column("mistake_prevented", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("market_a_id", "market_b_id", name="uq_market_exposure_pair"),
    )
    op.create_index("idx_market_exposure_links_a", "market_exposure_links", ["market_a_id"])
    op.create_index("idx_market_exposure_links_b", "market_exposure_links", ["market_b_id"])

    # Participation profiles (YES/NO per market)
    op.create_table(
        "market_participation_profiles",
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("side", sa.String(3), nullable=False),
        sa.Column("setup_quality_score", sa.Integer(), nullable=False),
        sa.Column("setup_quality_band", sa.String(30), nullable=False),
        sa.Column("participant_quality_score", sa.Integer(), nullable=False),
        sa.Column("participant_quality_band", sa.String(20), nullable=False),
        sa.Column("participation_summary", sa.String(30), nullable=False),
        sa.Column("large_pct", sa.Integer(), nullable=False),
        sa.Column("mid_pct", sa.Integer(), nullable=False),
        sa.Column("small_pct", sa.Integer(), nullable=False),
        sa.Column("behavior_insight", sa.Text(), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("market_id", "side"),
    )

    # Retail signals
    op.create_table(
        "retail_signals",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("signal_type", sa.String(30), nullable=False),
        sa.Column("label", sa.String(100), nullable=True),
        sa.Column("is_favorable", sa.Boolean(), nullable=False),
        sa.Column("confidence", sa.String(10), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_retail_signals_market_type_computed",
        "retail_signals",
        ["market_id", "signal_type", "computed_at"],
    )

    # Alerts
    op.create_table(
        "alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("condition", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_alerts_status", "alerts", ["status"])
    op.create_index("idx_alerts_user", "alerts", ["user_id"])

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("alert_id", sa.Integer(), nullable=False),
        sa.Column("market_id", sa.String(36), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "read"])


def downgrade() -> None:
    op.drop_index("idx_notifications_user_read", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("idx_alerts_user", table_name="alerts")
    op.drop_index("idx_alerts_status", table_name="alerts")
    op.drop_table("alerts")

    op.drop_index("idx_retail_signals_market_type_computed", table_name="retail_signals")
    op.drop_table("retail_signals")

    op.drop_table("market_participation_profiles")

    op.drop_index("idx_market_exposure_links_b", table_name="market_exposure_links")
    op.drop_index("idx_market_exposure_links_a", table_name="market_exposure_links")
    op.drop_table("market_exposure_links")

    op.drop_table("market_resolution_drivers")
    op.drop_table("market_flow_profiles")
    op.drop_table("market_behavior_profiles")

    op.drop_index("idx_market_snapshots_market_taken", table_name="market_snapshots")
    op.drop_table("market_snapshots")

    op.drop_index("idx_markets_resolved", table_name="markets")
    op.drop_table("markets")
