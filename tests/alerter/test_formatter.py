"""Tests for notification formatting."""

from __future__ import annotations

from polybuddy_signals.alerter.formatter import (
    DEFAULT_TITLE,
    NOTIFICATION_TITLES,
    build_notification,
    condition_to_dict,
    get_title,
    truncate_question,
)
from polybuddy_signals.alerter.models import (
    AlertEvaluation,
    AlertType,
    PriceMoveCondition,
    RetailSignalCondition,
)
from polybuddy_signals.detector.models import SignalConfidence


class TestTitles:
    def test_every_alert_type_has_title(self) -> None:
        assert set(NOTIFICATION_TITLES) == set(AlertType)

    def test_known_titles(self) -> None:
        assert get_title(AlertType.PRICE_MOVE) == "Price Movement Alert"
        assert get_title("volume_spike") == "Volume Spike Detected"
        assert get_title("resolution_approaching") == "Resolution Approaching"

    def test_unknown_type_uses_fallback(self) -> None:
        assert get_title("something_else") == DEFAULT_TITLE == "Market Alert"


class TestTruncateQuestion:
    def test_short_question_unchanged(self) -> None:
        assert truncate_question("Will it rain?") == "Will it rain?"

    def test_long_question_truncated(self) -> None:
        question = "Will " + "very " * 30 + "long things happen?"
        truncated = truncate_question(question, chars=40)

        assert len(truncated) <= 40
        assert truncated.endswith("...")


class TestConditionToDict:
    def test_enums_become_values(self) -> None:
        data = condition_to_dict(RetailSignalCondition(AlertType.EVENT_WINDOW, SignalConfidence.MEDIUM))
        assert data == {"type": "event_window", "min_confidence": "medium"}

    def test_price_move(self) -> None:
        data = condition_to_dict(PriceMoveCondition("above", 0.7))
        assert data == {"direction": "above", "threshold": 0.7, "type": "price_move"}


class TestBuildNotification:
    def test_fields(self) -> None:
        condition = PriceMoveCondition("above", 0.7)
        evaluation = AlertEvaluation(True, "Price moved above 70% (current: 75.0%)")
        notification = build_notification(
            alert_id=7,
            user_id="user-1",
            market_id="m-1",
            condition=condition,
            evaluation=evaluation,
            question="Will Bitcoin close above $100k?",
        )

        assert notification.alert_id == 7
        assert notification.user_id == "user-1"
        assert notification.type is AlertType.PRICE_MOVE
        assert notification.title == "Price Movement Alert"
        assert notification.message == (
            "Will Bitcoin close above $100k?: Price moved above 70% (current: 75.0%)"
        )
        assert notification.metadata["alert_type"] == "price_move"
        assert notification.metadata["evaluation"] == evaluation.message
        assert notification.metadata["condition"] == {
            "direction": "above",
            "threshold": 0.7,
            "type": "price_move",
        }

    def test_without_question(self) -> None:
        notification = build_notification(
            alert_id=1,
            user_id="u",
            market_id="m",
            condition=PriceMoveCondition("below", 0.2),
            evaluation=AlertEvaluation(True, "Price moved below 20% (current: 15.0%)"),
        )
        assert notification.message == "Price moved below 20% (current: 15.0%)"

    def test_to_dict_is_serializable(self) -> None:
        notification = build_notification(
            alert_id=1,
            user_id="u",
            market_id="m",
            condition=PriceMoveCondition("below", 0.2),
            evaluation=AlertEvaluation(True, "msg"),
        )
        data = notification.to_dict()

        assert data["type"] == "price_move"
        assert isinstance(data["created_at"], str)
