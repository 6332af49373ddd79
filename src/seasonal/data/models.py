"""Data models for symbols, daily/monthly candles and processing state.

CRITICAL: All prices and volumes use Decimal. Never use float for OHLCV values.
All timestamps are Unix milliseconds (UTC).
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass
class Symbol:
    """A tradable instrument in the symbol registry."""

    symbol: str
    base_asset: str
    quote_asset: str
    is_active: bool = True
    created_at: int | None = None
    updated_at: int | None = None


@dataclass
class DailyCandle:
    """A single daily OHLCV candle keyed by (symbol, timestamp).

    timestamp is the open time of the day; close_time is the exchange's
    closing millisecond for the bucket.
    """

    symbol: str
    timestamp: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int | None = None


@dataclass
class MonthlyCandle:
    """Monthly OHLCV rolled up from daily candles, keyed by (symbol, year, month).

    return_pct is the month-over-month change of close as a fraction
    (0.05 == +5%), or None when the preceding month is not stored.
    """

    symbol: str
    year: int
    month: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    return_pct: Decimal | None = None


@dataclass
class Gap:
    """A closed range [start, end] of missing daily data."""

    start: int
    end: int


@dataclass
class ProcessingState:
    """Persisted progress of the current ingestion run.

    A single row is reused across invocations. last_processed_index is -1
    when no symbol of the current run has completed yet.
    """

    id: int | None = None
    last_processed_symbol: str | None = None
    last_processed_index: int = -1
    total_symbols: int = 0
    is_processing: bool = False
    started_at: int | None = None
    updated_at: int | None = None
