"""Ticker ingestion, candles, technical indicators, back-testing and a signal-recording trader for bitFlyer."""

__version__ = "0.1.0"