"""Signal pipeline orchestrator.

This module provides the SignalPipeline class that loads market telemetry
from storage, runs the classifiers and writes the derived profiles back,
plus the exposure-link batch and the alert sweep.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from polybuddy_signals.alerter.dispatcher import NotificationDispatcher
from polybuddy_signals.alerter.evaluator import evaluate_alert
from polybuddy_signals.alerter.formatter import build_notification
from polybuddy_signals.alerter.models import (
    InvalidAlertConditionError,
    MarketState,
    Notification,
    parse_alert_condition,
)
from polybuddy_signals.detector.behavior import classify_behavior
from polybuddy_signals.detector.drivers import extract_drivers
from polybuddy_signals.detector.exposure import ExposureSummary, classify_exposure, summarize_exposure
from polybuddy_signals.detector.features import extract_behavior_features, extract_flow_features
from polybuddy_signals.detector.flow_guard import classify_flow
from polybuddy_signals.detector.models import (
    BehaviorProfile,
    ExposureLabel,
    FlowProfile,
    ParticipationResult,
    ResolutionDrivers,
)
from polybuddy_signals.detector.participation import ParticipationScorer
from polybuddy_signals.ingestor.models import MarketSnapshot
from polybuddy_signals.storage.database import DatabaseManager
from polybuddy_signals.storage.repos import (
    AlertRepository,
    BehaviorProfileRepository,
    ExposureLinkRepository,
    FlowProfileRepository,
    MarketDTO,
    MarketRepository,
    MarketSnapshotRepository,
    NotificationRepository,
    ParticipationProfileRepository,
    ResolutionDriversRepository,
    RetailSignalRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from polybuddy_signals.config import Settings

logger = logging.getLogger(__name__)


class MarketNotFoundError(LookupError):
    """Raised when a market id is not present in the metadata store."""


class InvalidMarketIdError(ValueError):
    """Raised when a market id is not a UUID string."""


def validate_market_id(market_id: str) -> str:
    try:
        uuid.UUID(str(market_id))
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidMarketIdError(f"Invalid market id: {market_id!r}") from e
    return market_id


@dataclass(frozen=True)
class ExposureBatchResult:
    links_created: int = 0
    highly_linked: int = 0
    partially_linked: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "links_created": self.links_created,
            "highly_linked": self.highly_linked,
            "partially_linked": self.partially_linked,
        }


@dataclass(frozen=True)
class AlertSweepResult:
    evaluated: int = 0
    triggered: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"evaluated": self.evaluated, "triggered": self.triggered, "skipped": self.skipped}


@dataclass(frozen=True)
class MarketSignals:
    """Every per-market profile produced by one refresh."""

    behavior: BehaviorProfile
    flow: FlowProfile
    drivers: ResolutionDrivers
    participation: ParticipationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "behavior": self.behavior.to_dict(),
            "flow": self.flow.to_dict(),
            "drivers": self.drivers.to_dict(),
            "participation": self.participation.to_dict(),
        }


class SignalPipeline:
    """Runs the classifiers for stored markets and persists the results.

    Each public operation runs in its own session: it commits on success and
    rolls back on error. NotFound and InvalidInput errors propagate unchanged.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        db: DatabaseManager | None = None,
        dispatcher: NotificationDispatcher | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings.
            db: Database manager (built from ``settings.database.url`` if omitted).
            dispatcher: Extra notification channels for triggered alerts.
            rng: Source of participation NO-side jitter; seeded from
                ``SCORING_PARTICIPATION_SEED`` when omitted and configured.
        """
        self._settings = settings
        self._scoring = settings.scoring
        self._db = db or DatabaseManager(settings.database.url)
        self._dispatcher = dispatcher or NotificationDispatcher([])
        if rng is None and self._scoring.participation_seed is not None:
            rng = random.Random(self._scoring.participation_seed)
        self._participation = ParticipationScorer(rng=rng)

    @property
    def db(self) -> DatabaseManager:
        return self._db

    async def init_schema(self) -> None:
        await self._db.init_schema_async()

    async def close(self) -> None:
        await self._db.dispose_async()

    async def __aenter__(self) -> SignalPipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _load_market(self, session: AsyncSession, market_id: str) -> MarketDTO:
        validate_market_id(market_id)
        market = await MarketRepository(session).get(market_id)
        if market is None:
            raise MarketNotFoundError(f"Market not found: {market_id}")
        return market

    # ------------------------------------------------------------------
    # Per-market profiles
    # ------------------------------------------------------------------

    async def refresh_behavior(self, market_id: str, *, now: datetime | None = None) -> BehaviorProfile:
        now = now or datetime.now(UTC)
        async with self._db.get_async_session() as session:
            market = await self._load_market(session, market_id)
            snapshots = await MarketSnapshotRepository(session).list_recent(
                market_id, limit=self._scoring.behavior_window
            )
            features = extract_behavior_features(snapshots, market.to_meta(), now=now)
            profile = classify_behavior(features, market.category, computed_at=now)
            await BehaviorProfileRepository(session).upsert(profile)

        logger.info(
            "Behavior profile for %s: %s (confidence=%d)",
            market_id,
            profile.cluster.value,
            profile.confidence,
        )
        return profile

    async def refresh_flow(self, market_id: str, *, now: datetime | None = None) -> FlowProfile:
        now = now or datetime.now(UTC)
        async with self._db.get_async_session() as session:
            await self._load_market(session, market_id)
            snapshots = await MarketSnapshotRepository(session).list_recent(
                market_id, limit=self._scoring.flow_window
            )
            features = extract_flow_features(snapshots, market_id=market_id)
            profile = classify_flow(features, len(snapshots), computed_at=now)
            await FlowProfileRepository(session).upsert(profile)

        logger.info(
            "Flow profile for %s: %s (%s, %d snapshots)",
            market_id,
            profile.label.value,
            profile.confidence.value,
            profile.snapshot_count,
        )
        return profile

    async def refresh_drivers(self, market_id: str) -> ResolutionDrivers:
        async with self._db.get_async_session() as session:
            market = await self._load_market(session, market_id)
            drivers = extract_drivers(market.to_meta())
            await ResolutionDriversRepository(session).upsert(drivers)

        logger.info(
            "Resolution drivers for %s: asset=%s category=%s",
            market_id,
            drivers.underlying_asset,
            drivers.asset_category.value if drivers.asset_category else None,
        )
        return drivers

    async def refresh_participation(
        self,
        market_id: str,
        *,
        now: datetime | None = None,
    ) -> ParticipationResult:
        now = now or datetime.now(UTC)
        async with self._db.get_async_session() as session:
            await self._load_market(session, market_id)
            snapshots = await MarketSnapshotRepository(session).list_recent(
                market_id, limit=self._scoring.participation_window + 1
            )
            if snapshots:
                latest, history = snapshots[0], snapshots[1:]
            else:
                logger.info("No snapshots for %s; scoring participation from an empty snapshot", market_id)
                latest, history = MarketSnapshot.empty(market_id, taken_at=now), []
            result = self._participation.score(latest, history, computed_at=now)
            await ParticipationProfileRepository(session).replace(result)

        logger.info(
            "Participation for %s: setup=%d (%s) participant=%d (%s)",
            market_id,
            result.yes.setup_quality_score,
            result.yes.setup_quality_band.value,
            result.yes.participant_quality_score,
            result.yes.participant_quality_band.value,
        )
        return result

    async def refresh_market(self, market_id: str, *, now: datetime | None = None) -> MarketSignals:
        """Recompute behavior, flow, drivers and participation for one market."""
        now = now or datetime.now(UTC)
        return MarketSignals(
            behavior=await self.refresh_behavior(market_id, now=now),
            flow=await self.refresh_flow(market_id, now=now),
            drivers=await self.refresh_drivers(market_id),
            participation=await self.refresh_participation(market_id, now=now),
        )

    # ------------------------------------------------------------------
    # Exposure links
    # ------------------------------------------------------------------

    async def link_exposures(self, market_id: str) -> ExposureBatchResult:
        """Classify a market against other unresolved markets and store new links.

        Pairs that already have a link in either orientation are skipped and
        left as they are.
        """
        created = highly = partially = 0
        async with self._db.get_async_session() as session:
            market = await self._load_market(session, market_id)
            target = extract_drivers(market.to_meta())
            await ResolutionDriversRepository(session).upsert(target)

            links = ExposureLinkRepository(session)
            candidates = await MarketRepository(session).list_unresolved(
                exclude_id=market_id,
                limit=self._scoring.exposure_candidate_limit,
            )
            for candidate in candidates:
                if await links.exists(market_id, candidate.id):
                    continue
                classification = classify_exposure(target, extract_drivers(candidate.to_meta()))
                if not classification.is_linked:
                    continue
                await links.insert(market_id, candidate.id, classification)
                created += 1
                if classification.label is ExposureLabel.HIGHLY_LINKED:
                    highly += 1
                else:
                    partially += 1

        logger.info(
            "Exposure batch for %s: %d candidates, %d links created (%d high, %d partial)",
            market_id,
            len(candidates),
            created,
            highly,
            partially,
        )
        return ExposureBatchResult(links_created=created, highly_linked=highly, partially_linked=partially)

    async def get_exposure_summary(self, market_id: str) -> ExposureSummary:
        async with self._db.get_async_session() as session:
            await self._load_market(session, market_id)
            links = await ExposureLinkRepository(session).list_for_market(market_id)
        return summarize_exposure(market_id, links)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def _market_state(
        self,
        session: AsyncSession,
        market: MarketDTO | None,
        market_id: str,
        *,
        now: datetime,
    ) -> MarketState:
        latest = await MarketSnapshotRepository(session).get_latest(market_id)
        since = now - timedelta(hours=self._scoring.signal_max_age_hours)
        signals = await RetailSignalRepository(session).recent_by_type(market_id, since=since)
        return MarketState(
            market_id=market_id,
            price=latest.price if latest else None,
            volume_24h=latest.volume_24h if latest else None,
            liquidity=latest.liquidity if latest else None,
            end_date=market.end_date if market else None,
            retail_signals=signals,
        )

    async def check_alerts(self, *, now: datetime | None = None) -> AlertSweepResult:
        """Evaluate every active alert and trigger the ones whose condition holds.

        A triggered alert moves to ``triggered`` and gets a notification row;
        the notification is then pushed to the dispatcher's channels after
        the transaction commits. Alerts with malformed conditions are logged
        and skipped.
        """
        now = now or datetime.now(UTC)
        evaluated = triggered = skipped = 0
        pending: list[Notification] = []

        async with self._db.get_async_session() as session:
            alerts = AlertRepository(session)
            notifications = NotificationRepository(session)
            markets = MarketRepository(session)
            states: dict[str, tuple[MarketDTO | None, MarketState]] = {}

            for alert in await alerts.list_active():
                try:
                    condition = parse_alert_condition(alert.type, alert.condition)
                except InvalidAlertConditionError as e:
                    logger.warning("Skipping alert %s: %s", alert.id, e)
                    skipped += 1
                    continue

                if alert.market_id not in states:
                    market = await markets.get(alert.market_id)
                    states[alert.market_id] = (
                        market,
                        await self._market_state(session, market, alert.market_id, now=now),
                    )
                market, state = states[alert.market_id]

                evaluation = evaluate_alert(
                    condition,
                    state,
                    now=now,
                    volume_baseline=self._scoring.volume_spike_baseline,
                    signal_max_age=timedelta(hours=self._scoring.signal_max_age_hours),
                )
                evaluated += 1
                if not evaluation.should_trigger:
                    continue

                if self._settings.dry_run:
                    logger.info("[DRY RUN] Would trigger alert %s: %s", alert.id, evaluation.message)
                    triggered += 1
                    continue

                if alert.id is None or not await alerts.mark_triggered(alert.id, at=now):
                    continue
                notification = build_notification(
                    alert_id=alert.id,
                    user_id=alert.user_id,
                    market_id=alert.market_id,
                    condition=condition,
                    evaluation=evaluation,
                    question=market.question if market else None,
                )
                await notifications.insert(notification)
                pending.append(notification)
                triggered += 1
                logger.info("Alert %s triggered: %s", alert.id, evaluation.message)

        for notification in pending:
            await self._dispatcher.dispatch(notification)

        logger.info(
            "Alert sweep: %d evaluated, %d triggered, %d skipped",
            evaluated,
            triggered,
            skipped,
        )
        return AlertSweepResult(evaluated=evaluated, triggered=triggered, skipped=skipped)
