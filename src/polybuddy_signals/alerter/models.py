"""Data models for alert conditions, market state and notifications."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal, Union

from polybuddy_signals.detector.models import SignalConfidence


class InvalidAlertConditionError(ValueError):
    """Raised when a stored or submitted alert condition is malformed."""


class AlertType(str, Enum):
    PRICE_MOVE = "price_move"
    VOLUME_SPIKE = "volume_spike"
    LIQUIDITY_DROP = "liquidity_drop"
    RESOLUTION_APPROACHING = "resolution_approaching"
    FAVORABLE_STRUCTURE = "favorable_structure"
    STRUCTURAL_MISPRICING = "structural_mispricing"
    CROWD_CHASING = "crowd_chasing"
    EVENT_WINDOW = "event_window"
    RETAIL_FRIENDLY = "retail_friendly"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    TRIGGERED = "triggered"
    DISMISSED = "dismissed"


class RetailSignalType(str, Enum):
    FAVORABLE_STRUCTURE = "favorable_structure"
    STRUCTURAL_MISPRICING = "structural_mispricing"
    CROWD_CHASING = "crowd_chasing"
    EVENT_WINDOW = "event_window"
    RETAIL_FRIENDLINESS = "retail_friendliness"


# Alert types answered by a stored retail signal, and the signal they read.
SIGNAL_ALERT_TYPES: dict[AlertType, RetailSignalType] = {
    AlertType.FAVORABLE_STRUCTURE: RetailSignalType.FAVORABLE_STRUCTURE,
    AlertType.STRUCTURAL_MISPRICING: RetailSignalType.STRUCTURAL_MISPRICING,
    AlertType.CROWD_CHASING: RetailSignalType.CROWD_CHASING,
    AlertType.EVENT_WINDOW: RetailSignalType.EVENT_WINDOW,
    AlertType.RETAIL_FRIENDLY: RetailSignalType.RETAIL_FRIENDLINESS,
}


@dataclass(frozen=True)
class PriceMoveCondition:
    direction: Literal["above", "below"]
    threshold: float
    type: AlertType = AlertType.PRICE_MOVE


@dataclass(frozen=True)
class VolumeSpikeCondition:
    multiplier: float
    time_window: str = "24h"
    type: AlertType = AlertType.VOLUME_SPIKE


@dataclass(frozen=True)
class LiquidityDropCondition:
    drop_percent: float
    time_window: str = "24h"
    type: AlertType = AlertType.LIQUIDITY_DROP


@dataclass(frozen=True)
class ResolutionApproachingCondition:
    hours_before_end: float
    type: AlertType = AlertType.RESOLUTION_APPROACHING


@dataclass(frozen=True)
class RetailSignalCondition:
    """Condition satisfied by a fresh retail signal of the mapped type."""

    type: AlertType
    min_confidence: SignalConfidence = SignalConfidence.LOW

    @property
    def signal_type(self) -> RetailSignalType:
        return SIGNAL_ALERT_TYPES[self.type]

    @property
    def expects_favorable(self) -> bool:
        # crowd_chasing is a warning alert: it fires on unfavorable signals.
        return self.type is not AlertType.CROWD_CHASING


AlertCondition = Union[
    PriceMoveCondition,
    VolumeSpikeCondition,
    LiquidityDropCondition,
    ResolutionApproachingCondition,
    RetailSignalCondition,
]


def _field(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return None


def _number(data: Mapping[str, Any], *names: str, default: float | None = None) -> float:
    raw = _field(data, *names)
    if raw is None:
        if default is not None:
            return default
        raise InvalidAlertConditionError(f"Alert condition is missing '{names[0]}'")
    try:
        return float(raw)
    except (TypeError, ValueError) as e:
        raise InvalidAlertConditionError(f"Alert condition field '{names[0]}' must be numeric") from e


def parse_alert_condition(alert_type: str | AlertType, data: Mapping[str, Any] | None) -> AlertCondition:
    """Build a typed condition from an alert's type and its JSON condition.

    Both snake_case and camelCase keys are accepted.

    Raises:
        InvalidAlertConditionError: Unknown type, missing field or out-of-range value.
    """
    try:
        kind = AlertType(alert_type)
    except ValueError as e:
        raise InvalidAlertConditionError(f"Unknown alert type: {alert_type!r}") from e
    data = data or {}

    if kind is AlertType.PRICE_MOVE:
        direction = _field(data, "direction")
        if direction not in ("above", "below"):
            raise InvalidAlertConditionError("price_move direction must be 'above' or 'below'")
        threshold = _number(data, "threshold")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidAlertConditionError("price_move threshold must be within 0..1")
        return PriceMoveCondition(direction=direction, threshold=threshold)

    if kind is AlertType.VOLUME_SPIKE:
        multiplier = _number(data, "multiplier")
        if multiplier < 1.0:
            raise InvalidAlertConditionError("volume_spike multiplier must be >= 1")
        window = str(_field(data, "time_window", "timeWindow") or "24h")
        return VolumeSpikeCondition(multiplier=multiplier, time_window=window)

    if kind is AlertType.LIQUIDITY_DROP:
        drop = _number(data, "drop_percent", "dropPercent")
        if not 0.0 <= drop <= 100.0:
            raise InvalidAlertConditionError("liquidity_drop dropPercent must be within 0..100")
        window = str(_field(data, "time_window", "timeWindow") or "24h")
        return LiquidityDropCondition(drop_percent=drop, time_window=window)

    if kind is AlertType.RESOLUTION_APPROACHING:
        hours = _number(data, "hours_before_end", "hoursBeforeEnd", default=24.0)
        if hours <= 0:
            raise InvalidAlertConditionError("resolution_approaching hoursBeforeEnd must be > 0")
        return ResolutionApproachingCondition(hours_before_end=hours)

    raw_confidence = _field(data, "min_confidence", "minConfidence") or SignalConfidence.LOW.value
    try:
        min_confidence = SignalConfidence(raw_confidence)
    except ValueError as e:
        raise InvalidAlertConditionError(f"Unknown confidence level: {raw_confidence!r}") from e
    return RetailSignalCondition(type=kind, min_confidence=min_confidence)


@dataclass(frozen=True)
class RetailSignalState:
    """Latest retail signal of one type for a market."""

    signal_type: RetailSignalType
    is_favorable: bool
    confidence: SignalConfidence
    computed_at: datetime
    label: str | None = None


@dataclass(frozen=True)
class MarketState:
    """Latest observable state of a market, as seen by alert evaluation."""

    market_id: str
    price: float | None = None
    volume_24h: float | None = None
    liquidity: float | None = None
    end_date: datetime | None = None
    # Recent signals per type, newest first.
    retail_signals: Mapping[RetailSignalType, Sequence[RetailSignalState]] = field(default_factory=dict)


@dataclass(frozen=True)
class AlertEvaluation:
    should_trigger: bool
    message: str


@dataclass(frozen=True)
class Notification:
    """Record handed to notification sinks when an alert triggers."""

    user_id: str
    alert_id: int
    market_id: str
    type: AlertType
    title: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for Redis stream publishing."""
        return {
            "user_id": self.user_id,
            "alert_id": self.alert_id,
            "market_id": self.market_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }
