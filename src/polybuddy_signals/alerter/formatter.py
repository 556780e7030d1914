"""Notification formatting for triggered alerts.

This module turns an alert evaluation into the title, message and metadata
handed to notification sinks.
"""

from __future__ import annotations

import dataclasses

from polybuddy_signals.alerter.models import (
    AlertCondition,
    AlertEvaluation,
    AlertType,
    Notification,
)

DEFAULT_TITLE = "Market Alert"
MAX_QUESTION_CHARS = 80

NOTIFICATION_TITLES: dict[AlertType, str] = {
    AlertType.PRICE_MOVE: "Price Movement Alert",
    AlertType.VOLUME_SPIKE: "Volume Spike Detected",
    AlertType.LIQUIDITY_DROP: "Liquidity Drop Detected",
    AlertType.RESOLUTION_APPROACHING: "Resolution Approaching",
    AlertType.FAVORABLE_STRUCTURE: "Favorable Structure Signal",
    AlertType.STRUCTURAL_MISPRICING: "Structural Mispricing Signal",
    AlertType.CROWD_CHASING: "Crowd Chasing Warning",
    AlertType.EVENT_WINDOW: "Event Window Open",
    AlertType.RETAIL_FRIENDLY: "Retail-Friendly Market",
}


def get_title(alert_type: AlertType | str) -> str:
    """Get the notification title for an alert type."""
    try:
        return NOTIFICATION_TITLES.get(AlertType(alert_type), DEFAULT_TITLE)
    except ValueError:
        return DEFAULT_TITLE


def truncate_question(question: str, chars: int = MAX_QUESTION_CHARS) -> str:
    """Shorten a market question for notification text."""
    if len(question) <= chars:
        return question
    return question[: chars - 3].rstrip() + "..."


def condition_to_dict(condition: AlertCondition) -> dict[str, object]:
    data: dict[str, object] = {}
    for f in dataclasses.fields(condition):
        value = getattr(condition, f.name)
        data[f.name] = value.value if hasattr(value, "value") else value
    return data


def build_notification(
    *,
    alert_id: int,
    user_id: str,
    market_id: str,
    condition: AlertCondition,
    evaluation: AlertEvaluation,
    question: str | None = None,
) -> Notification:
    """Assemble the notification for a triggered alert.

    Args:
        alert_id: Triggered alert.
        user_id: Alert owner.
        market_id: Market the alert watches.
        condition: Parsed alert condition.
        evaluation: Evaluation that triggered the alert.
        question: Market question, prefixed to the message when known.

    Returns:
        Notification ready for a sink.
    """
    message = evaluation.message
    if question:
        message = f"{truncate_question(question)}: {message}"
    return Notification(
        user_id=user_id,
        alert_id=alert_id,
        market_id=market_id,
        type=condition.type,
        title=get_title(condition.type),
        message=message,
        metadata={
            "alert_type": condition.type.value,
            "condition": condition_to_dict(condition),
            "evaluation": evaluation.message,
        },
    )
