"""Input layer - Market snapshot and metadata records."""

from polybuddy_signals.ingestor.models import MarketMeta, MarketSnapshot

__all__ = [
    "MarketMeta",
    "MarketSnapshot",
]
