"""Data models for market telemetry consumed by the scoring engine."""

import contextlib
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def _parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw if raw.tzinfo is not None else raw.replace(tzinfo=UTC)
    with contextlib.suppress(ValueError, AttributeError):
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return None


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time observation of a market's book and activity.

    Attributes:
        market_id: Market identifier.
        price: YES price in 0..1.
        volume_24h: Rolling 24h volume (USD).
        liquidity: Visible liquidity (USD).
        spread: Best ask minus best bid.
        depth: Orderbook depth near mid (USD).
        taken_at: When the snapshot was captured.
    """

    market_id: str
    price: float
    volume_24h: float
    liquidity: float
    spread: float
    depth: float
    taken_at: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MarketSnapshot":
        """Create a MarketSnapshot from a collector payload.

        Missing numeric fields default to 0 so partial payloads still
        produce a usable (degraded) snapshot.
        """
        taken_at = _parse_timestamp(data.get("taken_at") or data.get("takenAt"))
        if taken_at is None:
            raise ValueError("snapshot payload requires a valid taken_at timestamp")
        return cls(
            market_id=str(data.get("market_id") or data.get("marketId") or ""),
            price=float(data.get("price") or 0),
            volume_24h=float(data.get("volume_24h") or data.get("volume24h") or 0),
            liquidity=float(data.get("liquidity") or 0),
            spread=float(data.get("spread") or 0),
            depth=float(data.get("depth") or 0),
            taken_at=taken_at,
        )

    @classmethod
    def empty(cls, market_id: str, *, taken_at: datetime | None = None) -> "MarketSnapshot":
        """All-zero snapshot used when a market has no telemetry yet."""
        return cls(
            market_id=market_id,
            price=0.0,
            volume_24h=0.0,
            liquidity=0.0,
            spread=0.0,
            depth=0.0,
            taken_at=taken_at or datetime.now(UTC),
        )


@dataclass(frozen=True)
class MarketMeta:
    """Slow-changing descriptive record for a market."""

    market_id: str
    question: str
    category: str | None = None
    end_date: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MarketMeta":
        """Create a MarketMeta from a metadata payload."""
        category = data.get("category")
        return cls(
            market_id=str(data.get("market_id") or data.get("id") or ""),
            question=str(data.get("question", "")),
            category=str(category) if category else None,
            end_date=_parse_timestamp(data.get("end_date") or data.get("endDate")),
        )
