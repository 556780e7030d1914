"""Alerting layer - Alert evaluation and notification delivery."""

from polybuddy_signals.alerter.dispatcher import (
    DispatchResult,
    NotificationDispatcher,
    RedisStreamChannel,
)
from polybuddy_signals.alerter.evaluator import evaluate_alert
from polybuddy_signals.alerter.formatter import build_notification
from polybuddy_signals.alerter.models import (
    AlertEvaluation,
    AlertStatus,
    AlertType,
    InvalidAlertConditionError,
    MarketState,
    Notification,
    parse_alert_condition,
)

__all__ = [
    "AlertEvaluation",
    "AlertStatus",
    "AlertType",
    "DispatchResult",
    "InvalidAlertConditionError",
    "MarketState",
    "Notification",
    "NotificationDispatcher",
    "RedisStreamChannel",
    "build_notification",
    "evaluate_alert",
    "parse_alert_condition",
]
