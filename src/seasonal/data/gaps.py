"""Gap detection over stored daily candles.

A gap is a stretch of days with no stored candle. Consecutive candles
are expected one day apart; only spacing above 1.5 days is reported so
that a slightly irregular upstream cadence is not flagged as missing data.
"""

import asyncio

from seasonal.data.models import Gap
from seasonal.data.store import CandleStore
from seasonal.logging import get_logger
from seasonal.retry import RetryPolicy, Sleep, with_storage_retry

logger = get_logger(__name__)

DAY_MS = 86_400_000
GAP_THRESHOLD_MS = int(DAY_MS * 1.5)


def find_gaps_in_timestamps(
    timestamps: list[int], start_ms: int, end_ms: int
) -> list[Gap]:
    """Compute missing-day ranges from ascending stored timestamps.

    With no timestamps the whole [start_ms, end_ms] range is one gap.
    """
    if not timestamps:
        return [Gap(start=start_ms, end=end_ms)]

    gaps: list[Gap] = []
    prev = timestamps[0]
    for current in timestamps[1:]:
        if current - prev > GAP_THRESHOLD_MS:
            gaps.append(Gap(start=prev + DAY_MS, end=current - DAY_MS))
        prev = current

    last = timestamps[-1]
    if end_ms - last > GAP_THRESHOLD_MS:
        gaps.append(Gap(start=last + DAY_MS, end=end_ms))

    return gaps


class GapDetector:
    """Finds sub-ranges with missing daily data for a symbol.

    Errors never propagate: a throttled store gets one cooldown and one
    retry, anything else is logged and reported as "no gaps". An empty
    result is therefore not a completeness guarantee.
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

    async def find_gaps(self, symbol: str, start_ms: int, end_ms: int) -> list[Gap]:
        """Return ascending, non-overlapping gaps within [start_ms, end_ms]."""
        try:
            timestamps = await with_storage_retry(
                self._policy,
                lambda: self._store.get_daily_timestamps(symbol, start_ms, end_ms),
                sleep=self._sleep,
                label="find_gaps",
            )
        except Exception as e:
            logger.error(
                "gap_detection_failed",
                symbol=symbol,
                error=str(e),
            )
            return []

        gaps = find_gaps_in_timestamps(timestamps, start_ms, end_ms)
        if gaps:
            logger.info(
                "gaps_found",
                symbol=symbol,
                count=len(gaps),
                stored_days=len(timestamps),
            )
        return gaps
