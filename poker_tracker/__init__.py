"""Poker session tracker: session lifecycle, day aggregation, import/export."""

__version__ = "0.3.0"
