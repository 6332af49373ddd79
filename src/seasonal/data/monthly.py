"""Monthly rollup of daily candles with month-over-month returns.

Months are derived from the candle open time in UTC and written in
ascending (year, month) order, because each month's return reads the
stored close of the month before it.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from seasonal.data.models import DailyCandle, MonthlyCandle
from seasonal.data.store import CandleStore
from seasonal.exceptions import StorageError
from seasonal.logging import get_logger
from seasonal.retry import RetryPolicy, Sleep

logger = get_logger(__name__)


def month_of(timestamp_ms: int) -> tuple[int, int]:
    """(year, month) of a Unix-millisecond timestamp in UTC."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.year, dt.month


def previous_month(year: int, month: int) -> tuple[int, int]:
    """The calendar month before (year, month); January wraps to December."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def compute_return(close: Decimal, prev_close: Decimal | None) -> Decimal | None:
    """(close - prev_close) / prev_close, or None without a usable prior close."""
    if prev_close is None or prev_close == 0:
        return None
    return (close - prev_close) / prev_close


def aggregate_monthly(candles: list[DailyCandle]) -> list[MonthlyCandle]:
    """Fold daily candles into monthly OHLCV, ascending by (year, month).

    Candles are sorted by timestamp first, so open comes from the first
    day of the month and close from the last. return_pct is left unset.
    """
    groups: dict[tuple[int, int], list[DailyCandle]] = {}
    for candle in sorted(candles, key=lambda c: c.timestamp):
        groups.setdefault(month_of(candle.timestamp), []).append(candle)

    monthly = []
    for (year, month), group in sorted(groups.items()):
        monthly.append(
            MonthlyCandle(
                symbol=group[0].symbol,
                year=year,
                month=month,
                open=group[0].open,
                high=max(c.high for c in group),
                low=min(c.low for c in group),
                close=group[-1].close,
                volume=sum((c.volume for c in group), Decimal("0")),
            )
        )
    return monthly


class MonthlyAggregator:
    """Rebuilds a symbol's monthly candles from its stored daily candles.

    Safe to call after any daily-candle mutation: every month is fully
    recomputed and upserted. One month failing to write never stops
    the others.
    """

    def __init__(
        self,
        store: CandleStore,
        policy: RetryPolicy,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._policy = policy
        self._sleep = sleep

    async def rebuild_monthly(self, symbol: str) -> int:
        """Recompute and upsert all monthly candles for symbol.

        Returns the number of months written. Raises StorageError only if
        the daily candles themselves cannot be loaded.
        """
        daily = await self._store.get_daily_candles(symbol)
        if not daily:
            logger.debug("no_daily_candles_for_rollup", symbol=symbol)
            return 0

        written = 0
        for candle in aggregate_monthly(daily):
            candle.return_pct = await self._lookup_return(candle)
            if await self._write_month(candle):
                written += 1

        logger.info(
            "monthly_rollup_complete",
            symbol=symbol,
            months=written,
            daily_candles=len(daily),
        )
        return written

    async def _lookup_return(self, candle: MonthlyCandle) -> Decimal | None:
        prev_year, prev_month = previous_month(candle.year, candle.month)
        try:
            prev_close = await self._store.get_monthly_close(
                candle.symbol, prev_year, prev_month
            )
        except StorageError as e:
            logger.error(
                "monthly_return_lookup_failed",
                symbol=candle.symbol,
                year=candle.year,
                month=candle.month,
                error=str(e),
            )
            if e.rate_limited:
                await self._sleep(self._policy.storage_cooldown)
            return None
        return compute_return(candle.close, prev_close)

    async def _write_month(self, candle: MonthlyCandle) -> bool:
        try:
            await self._store.upsert_monthly_candle(candle)
            return True
        except StorageError as e:
            logger.error(
                "monthly_candle_store_failed",
                symbol=candle.symbol,
                year=candle.year,
                month=candle.month,
                error=str(e),
            )
            if not e.rate_limited:
                return False

        await self._sleep(self._policy.storage_cooldown)
        try:
            await self._store.upsert_monthly_candle(candle)
            return True
        except StorageError as e:
            logger.error(
                "monthly_candle_retry_failed",
                symbol=candle.symbol,
                year=candle.year,
                month=candle.month,
                error=str(e),
            )
            return False
