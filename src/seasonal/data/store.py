"""Typed read/write abstraction over the candle database.

Provides CandleStore with typed methods for the symbol registry, daily
and monthly candles. All SQL for those tables is isolated behind this
interface; processing_state is owned by ProgressTracker.

CRITICAL: All prices and volumes are stored as TEXT in SQLite, restored as Decimal on read.
"""

import time
from decimal import Decimal

from seasonal.data.database import CandleDatabase
from seasonal.data.models import DailyCandle, MonthlyCandle, Symbol
from seasonal.logging import get_logger

logger = get_logger(__name__)

_UPSERT_DAILY_SQL = (
    "INSERT INTO daily_candles "
    "(symbol, timestamp, open, high, low, close, volume, close_time) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT (symbol, timestamp) DO UPDATE SET "
    "open = excluded.open, high = excluded.high, low = excluded.low, "
    "close = excluded.close, volume = excluded.volume, "
    "close_time = excluded.close_time"
)

_UPSERT_MONTHLY_SQL = (
    "INSERT INTO monthly_candles "
    "(symbol, year, month, open, high, low, close, volume, return_pct, updated_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT (symbol, year, month) DO UPDATE SET "
    "open = excluded.open, high = excluded.high, low = excluded.low, "
    "close = excluded.close, volume = excluded.volume, "
    "return_pct = excluded.return_pct, updated_at = excluded.updated_at"
)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CandleStore:
    """Async store for symbols, daily candles and monthly candles.

    Wraps CandleDatabase with typed read/write methods. Every write is
    an upsert keyed by the table's natural key, so repeating a write is
    harmless.

    Usage:
        async with CandleDatabase("data/seasonal.db") as database:
            store = CandleStore(database)
            await store.upsert_daily_candles(candles)
    """

    def __init__(self, database: CandleDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Symbol registry
    # ──────────────────────────────────────────────

    async def upsert_symbol(self, symbol: Symbol) -> None:
        """Insert or refresh a symbol, reactivating it and keeping created_at."""
        now_ms = _now_ms()
        await self._database.execute(
            "INSERT INTO symbols "
            "(symbol, base_asset, quote_asset, is_active, created_at, updated_at) "
            "VALUES (?, ?, ?, 1, ?, ?) "
            "ON CONFLICT (symbol) DO UPDATE SET "
            "base_asset = excluded.base_asset, quote_asset = excluded.quote_asset, "
            "is_active = 1, updated_at = excluded.updated_at",
            (symbol.symbol, symbol.base_asset, symbol.quote_asset, now_ms, now_ms),
        )

    async def set_symbol_active(self, symbol: str, is_active: bool) -> None:
        """Flip the active flag of a symbol. Symbols are never deleted."""
        await self._database.execute(
            "UPDATE symbols SET is_active = ?, updated_at = ? WHERE symbol = ?",
            (1 if is_active else 0, _now_ms(), symbol),
        )

    async def get_symbols(self, active_only: bool = True) -> list[Symbol]:
        """Return registered symbols ordered by name."""
        query = (
            "SELECT symbol, base_asset, quote_asset, is_active, created_at, updated_at "
            "FROM symbols"
        )
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY symbol ASC"

        rows = await self._database.execute(query)
        return [
            Symbol(
                symbol=row["symbol"],
                base_asset=row["base_asset"],
                quote_asset=row["quote_asset"],
                is_active=bool(row["is_active"]),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    # ──────────────────────────────────────────────
    # Daily candles
    # ──────────────────────────────────────────────

    async def upsert_daily_candles(self, candles: list[DailyCandle]) -> int:
        """Insert or overwrite daily candles keyed by (symbol, timestamp).

        Returns the number of candles written.
        """
        if not candles:
            return 0

        data = [
            (
                c.symbol,
                c.timestamp,
                str(c.open),
                str(c.high),
                str(c.low),
                str(c.close),
                str(c.volume),
                c.close_time,
            )
            for c in candles
        ]
        await self._database.execute_many(_UPSERT_DAILY_SQL, data)

        logger.debug(
            "upserted_daily_candles",
            symbol=candles[0].symbol,
            count=len(candles),
        )
        return len(candles)

    async def count_daily_candles(self) -> int:
        """Total number of stored daily candles across all symbols."""
        rows = await self._database.execute(
            "SELECT COUNT(*) AS count FROM daily_candles"
        )
        return int(rows[0]["count"])

    async def get_last_daily_timestamp(self, symbol: str) -> int | None:
        """Open time of the newest stored daily candle, or None if there is none."""
        rows = await self._database.execute(
            "SELECT MAX(timestamp) AS last_timestamp FROM daily_candles WHERE symbol = ?",
            (symbol,),
        )
        if not rows or rows[0]["last_timestamp"] is None:
            return None
        return int(rows[0]["last_timestamp"])

    async def get_daily_timestamps(
        self, symbol: str, start_ms: int, end_ms: int
    ) -> list[int]:
        """Stored daily open times within [start_ms, end_ms], ascending."""
        rows = await self._database.execute(
            "SELECT timestamp FROM daily_candles "
            "WHERE symbol = ? AND timestamp >= ? AND timestamp <= ? "
            "ORDER BY timestamp ASC",
            (symbol, start_ms, end_ms),
        )
        return [int(row["timestamp"]) for row in rows]

    async def get_daily_candles(
        self,
        symbol: str,
        since_ms: int | None = None,
        until_ms: int | None = None,
    ) -> list[DailyCandle]:
        """Query daily candles for a symbol within an optional time range.

        Returns list of DailyCandle ordered by timestamp ASC.
        """
        conditions = ["symbol = ?"]
        params: list = [symbol]

        if since_ms is not None:
            conditions.append("timestamp >= ?")
            params.append(since_ms)
        if until_ms is not None:
            conditions.append("timestamp <= ?")
            params.append(until_ms)

        where = " AND ".join(conditions)
        rows = await self._database.execute(
            f"SELECT symbol, timestamp, open, high, low, close, volume, close_time "
            f"FROM daily_candles WHERE {where} ORDER BY timestamp ASC",
            params,
        )
        return [
            DailyCandle(
                symbol=row["symbol"],
                timestamp=int(row["timestamp"]),
                open=Decimal(row["open"]),
                high=Decimal(row["high"]),
                low=Decimal(row["low"]),
                close=Decimal(row["close"]),
                volume=Decimal(row["volume"]),
                close_time=row["close_time"],
            )
            for row in rows
        ]

    # ──────────────────────────────────────────────
    # Monthly candles
    # ──────────────────────────────────────────────

    async def upsert_monthly_candle(self, candle: MonthlyCandle) -> None:
        """Insert or fully replace one monthly candle."""
        await self._database.execute(
            _UPSERT_MONTHLY_SQL,
            (
                candle.symbol,
                candle.year,
                candle.month,
                str(candle.open),
                str(candle.high),
                str(candle.low),
                str(candle.close),
                str(candle.volume),
                str(candle.return_pct) if candle.return_pct is not None else None,
                _now_ms(),
            ),
        )

    async def get_monthly_close(
        self, symbol: str, year: int, month: int
    ) -> Decimal | None:
        """Stored close of one month, or None if that month is absent."""
        rows = await self._database.execute(
            "SELECT close FROM monthly_candles WHERE symbol = ? AND year = ? AND month = ?",
            (symbol, year, month),
        )
        if not rows:
            return None
        return Decimal(rows[0]["close"])

    async def get_monthly_candles(self, symbol: str) -> list[MonthlyCandle]:
        """All monthly candles of a symbol ordered by (year, month) ASC."""
        rows = await self._database.execute(
            "SELECT symbol, year, month, open, high, low, close, volume, return_pct "
            "FROM monthly_candles WHERE symbol = ? ORDER BY year ASC, month ASC",
            (symbol,),
        )
        return [
            MonthlyCandle(
                symbol=row["symbol"],
                year=int(row["year"]),
                month=int(row["month"]),
                open=Decimal(row["open"]),
                high=Decimal(row["high"]),
                low=Decimal(row["low"]),
                close=Decimal(row["close"]),
                volume=Decimal(row["volume"]),
                return_pct=(
                    Decimal(row["return_pct"]) if row["return_pct"] is not None else None
                ),
            )
            for row in rows
        ]

    # ──────────────────────────────────────────────
    # Status
    # ──────────────────────────────────────────────

    async def get_data_status(self) -> dict:
        """Aggregate data status for status reporting.

        Returns dict with active_symbols, daily_candles, monthly_candles,
        earliest_daily_ms and latest_daily_ms.
        """
        rows = await self._database.execute(
            "SELECT "
            "(SELECT COUNT(*) FROM symbols WHERE is_active = 1) AS active_symbols, "
            "(SELECT COUNT(*) FROM daily_candles) AS daily_candles, "
            "(SELECT COUNT(*) FROM monthly_candles) AS monthly_candles, "
            "(SELECT MIN(timestamp) FROM daily_candles) AS earliest_daily_ms, "
            "(SELECT MAX(timestamp) FROM daily_candles) AS latest_daily_ms"
        )
        return dict(rows[0])
