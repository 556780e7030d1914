"""Notification fan-out to delivery channels.

Triggered-alert notifications are always persisted by the pipeline; the
dispatcher additionally pushes them to any configured channels. A failing
channel is logged and counted, never raised, so one broken channel cannot
block the alert sweep.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Protocol

from redis.asyncio import Redis

from polybuddy_signals.alerter.models import Notification

logger = logging.getLogger(__name__)

DEFAULT_STREAM_MAXLEN = 10_000


class NotificationChannel(Protocol):
    name: str

    async def send(self, notification: Notification) -> bool:
        ...


@dataclass
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    failed_channels: list[str] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0


class RedisStreamChannel:
    """Publishes notifications to a Redis stream (XADD, approximate MAXLEN trim)."""

    name = "redis_stream"

    def __init__(self, redis: Redis, *, stream_key: str, maxlen: int = DEFAULT_STREAM_MAXLEN) -> None:
        self._redis = redis
        self._stream_key = stream_key
        self._maxlen = maxlen

    async def send(self, notification: Notification) -> bool:
        payload = notification.to_dict()
        fields = {
            key: json.dumps(value) if isinstance(value, (dict, list)) else str(value)
            for key, value in payload.items()
        }
        await self._redis.xadd(self._stream_key, fields, maxlen=self._maxlen, approximate=True)
        return True


class NotificationDispatcher:
    """Sends a notification to every channel concurrently."""

    def __init__(self, channels: list[NotificationChannel]) -> None:
        self._channels = list(channels)

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    async def dispatch(self, notification: Notification) -> DispatchResult:
        result = DispatchResult()
        if not self._channels:
            return result

        outcomes = await asyncio.gather(
            *(channel.send(notification) for channel in self._channels),
            return_exceptions=True,
        )
        for channel, outcome in zip(self._channels, outcomes):
            if isinstance(outcome, BaseException) or outcome is False:
                result.failure_count += 1
                result.failed_channels.append(channel.name)
                logger.warning(
                    "Notification channel %s failed for alert %s: %s",
                    channel.name,
                    notification.alert_id,
                    outcome,
                )
            else:
                result.success_count += 1
        return result
