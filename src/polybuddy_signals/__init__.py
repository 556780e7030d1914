"""Heuristic signal scoring and classification for prediction markets."""

__version__ = "0.1.0"
