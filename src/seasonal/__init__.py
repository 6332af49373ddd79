"""Resumable, rate-limit-aware daily candle ingestion with monthly seasonality rollups."""

__version__ = "0.1.0"
