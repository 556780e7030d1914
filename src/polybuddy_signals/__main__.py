"""Command line entry point.

Usage:
    python -m polybuddy_signals init-db
    python -m polybuddy_signals score-market MARKET_ID
    python -m polybuddy_signals link-exposure MARKET_ID
    python -m polybuddy_signals check-alerts
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import ValidationError
from redis.asyncio import Redis

from polybuddy_signals.alerter.dispatcher import NotificationChannel, NotificationDispatcher, RedisStreamChannel
from polybuddy_signals.config import Settings, get_settings
from polybuddy_signals.pipeline import InvalidMarketIdError, MarketNotFoundError, SignalPipeline
from polybuddy_signals.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INVALID_INPUT = 2


def _json_default(x: object) -> str:
    if isinstance(x, datetime):
        return x.isoformat()
    if isinstance(x, Decimal):
        return str(x)
    if isinstance(x, Enum):
        return str(x.value)
    raise TypeError(f"Object of type {type(x).__name__} is not JSON serializable")


def _emit(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, default=_json_default, sort_keys=True) + "\n")
    sys.stdout.flush()


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.get_logging_level(),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polybuddy-signals",
        description="Score and classify prediction markets from stored telemetry.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables on the configured database")

    score = sub.add_parser("score-market", help="Recompute behavior, flow, drivers and participation")
    score.add_argument("market_id", help="Market UUID")

    link = sub.add_parser("link-exposure", help="Classify shared exposure against other open markets")
    link.add_argument("market_id", help="Market UUID")

    sub.add_parser("check-alerts", help="Evaluate every active alert once")
    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    redis: Redis | None = None
    channels: list[NotificationChannel] = []
    if settings.redis.notifications_enabled:
        redis = Redis.from_url(settings.redis.url)
        channels.append(RedisStreamChannel(redis, stream_key=settings.redis.notifications_stream))

    pipeline = SignalPipeline(
        settings,
        db=DatabaseManager(settings.database.url),
        dispatcher=NotificationDispatcher(channels),
    )
    try:
        if args.command == "init-db":
            await pipeline.init_schema()
            return {"status": "ok"}
        if args.command == "score-market":
            signals = await pipeline.refresh_market(args.market_id)
            return signals.to_dict()
        if args.command == "link-exposure":
            batch = await pipeline.link_exposures(args.market_id)
            summary = await pipeline.get_exposure_summary(args.market_id)
            return {**batch.to_dict(), "summary": summary.to_dict()}
        if args.command == "check-alerts":
            sweep = await pipeline.check_alerts()
            return sweep.to_dict()
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await pipeline.close()
        if redis is not None:
            await redis.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        sys.stderr.write(f"Invalid configuration: {e}\n")
        return EXIT_INVALID_INPUT

    _configure_logging(settings)
    logger.info("Starting with settings: %s", settings.redacted_summary())

    try:
        payload = asyncio.run(_run(args, settings))
    except InvalidMarketIdError as e:
        logger.error("%s", e)
        _emit({"error": "invalid_input", "message": str(e)})
        return EXIT_INVALID_INPUT
    except MarketNotFoundError as e:
        logger.error("%s", e)
        _emit({"error": "not_found", "message": str(e)})
        return EXIT_NOT_FOUND

    _emit(payload)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
