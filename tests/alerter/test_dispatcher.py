"""Tests for notification channels and the dispatcher."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from polybuddy_signals.alerter.dispatcher import (
    DEFAULT_STREAM_MAXLEN,
    NotificationDispatcher,
    RedisStreamChannel,
)
from polybuddy_signals.alerter.models import AlertType, Notification


def make_notification(alert_id: int = 1) -> Notification:
    return Notification(
        user_id="user-1",
        alert_id=alert_id,
        market_id="m-1",
        type=AlertType.PRICE_MOVE,
        title="Price Movement Alert",
        message="Price moved above 70% (current: 75.0%)",
        metadata={"alert_type": "price_move", "condition": {"threshold": 0.7}},
        created_at=datetime(2026, 10, 19, 12, 0, tzinfo=UTC),
    )


class StubChannel:
    def __init__(self, name: str, *, result: bool = True, error: Exception | None = None) -> None:
        self.name = name
        self._result = result
        self._error = error
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> bool:
        if self._error is not None:
            raise self._error
        self.sent.append(notification)
        return self._result


# ============================================================================
# RedisStreamChannel
# ============================================================================


class TestRedisStreamChannel:
    @pytest.mark.asyncio
    async def test_xadd_fields(self) -> None:
        redis = AsyncMock()
        channel = RedisStreamChannel(redis, stream_key="signals:notifications")

        assert await channel.send(make_notification(alert_id=42)) is True

        redis.xadd.assert_awaited_once()
        args, kwargs = redis.xadd.call_args
        assert args[0] == "signals:notifications"
        fields = args[1]
        assert fields["alert_id"] == "42"
        assert fields["type"] == "price_move"
        assert fields["created_at"] == "2026-10-19T12:00:00+00:00"
        assert json.loads(fields["metadata"]) == {
            "alert_type": "price_move",
            "condition": {"threshold": 0.7},
        }
        assert kwargs == {"maxlen": DEFAULT_STREAM_MAXLEN, "approximate": True}

    @pytest.mark.asyncio
    async def test_custom_maxlen(self) -> None:
        redis = AsyncMock()
        channel = RedisStreamChannel(redis, stream_key="s", maxlen=50)

        await channel.send(make_notification())

        assert redis.xadd.call_args.kwargs["maxlen"] == 50

    @pytest.mark.asyncio
    async def test_redis_error_propagates(self) -> None:
        redis = AsyncMock()
        redis.xadd.side_effect = ConnectionError("down")
        channel = RedisStreamChannel(redis, stream_key="s")

        with pytest.raises(ConnectionError):
            await channel.send(make_notification())


# ============================================================================
# NotificationDispatcher
# ============================================================================


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_all_channels_succeed(self) -> None:
        first, second = StubChannel("first"), StubChannel("second")
        dispatcher = NotificationDispatcher([first, second])

        result = await dispatcher.dispatch(make_notification())

        assert result.success_count == 2
        assert result.all_succeeded
        assert len(first.sent) == len(second.sent) == 1

    @pytest.mark.asyncio
    async def test_failures_are_counted_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        dispatcher = NotificationDispatcher(
            [
                StubChannel("ok"),
                StubChannel("broken", error=RuntimeError("boom")),
                StubChannel("refused", result=False),
            ]
        )

        with caplog.at_level("WARNING"):
            result = await dispatcher.dispatch(make_notification())

        assert result.success_count == 1
        assert result.failure_count == 2
        assert result.failed_channels == ["broken", "refused"]
        assert not result.all_succeeded
        assert "broken" in caplog.text

    @pytest.mark.asyncio
    async def test_no_channels(self) -> None:
        result = await NotificationDispatcher([]).dispatch(make_notification())

        assert result.success_count == 0
        assert result.all_succeeded

    def test_channels_are_copied(self) -> None:
        channels = [StubChannel("a")]
        dispatcher = NotificationDispatcher(channels)
        channels.append(StubChannel("b"))

        assert [c.name for c in dispatcher.channels] == ["a"]
