"""Binance public market-data client.

Talks to the unauthenticated data API (data-api.binance.vision by
default): exchangeInfo for the instrument listing and klines for daily
candles. Every request goes through ResilientFetcher.

Kline rows are arrays: [openTime, open, high, low, close, volume,
closeTime, ...]. Prices arrive as strings and are kept as Decimal.
Klines are returned oldest first; pagination walks FORWARD from startTime.
"""

import asyncio
from decimal import Decimal, InvalidOperation

from seasonal.config import ExchangeSettings
from seasonal.data.models import DailyCandle
from seasonal.exceptions import FetchError
from seasonal.exchange.client import MarketDataClient
from seasonal.exchange.fetch import ResilientFetcher
from seasonal.exchange.types import Instrument
from seasonal.logging import get_logger
from seasonal.retry import Sleep

logger = get_logger(__name__)


def parse_kline(symbol: str, row: list) -> DailyCandle:
    """Convert one kline array into a DailyCandle."""
    try:
        return DailyCandle(
            symbol=symbol,
            timestamp=int(row[0]),
            open=Decimal(str(row[1])),
            high=Decimal(str(row[2])),
            low=Decimal(str(row[3])),
            close=Decimal(str(row[4])),
            volume=Decimal(str(row[5])),
            close_time=int(row[6]) if len(row) > 6 else None,
        )
    except (IndexError, TypeError, ValueError, InvalidOperation) as e:
        raise FetchError(f"Malformed kline for {symbol}: {row!r}") from e


class BinanceClient(MarketDataClient):
    """MarketDataClient backed by the Binance public REST API."""

    def __init__(
        self,
        fetcher: ResilientFetcher,
        settings: ExchangeSettings,
        page_delay: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self._page_delay = page_delay
        self._sleep = sleep

    def _url(self, path: str) -> str:
        return self._settings.base_url.rstrip("/") + path

    async def list_instruments(self) -> list[Instrument]:
        data = await self._fetcher.fetch(self._url(self._settings.instruments_path))
        if not isinstance(data, dict) or not isinstance(data.get("symbols"), list):
            raise FetchError("Malformed instrument listing: missing 'symbols' array")

        instruments = []
        for item in data["symbols"]:
            try:
                instruments.append(
                    Instrument(
                        symbol=item["symbol"],
                        base_asset=item.get("baseAsset", ""),
                        quote_asset=item.get("quoteAsset", ""),
                        status=item.get("status", ""),
                    )
                )
            except (KeyError, TypeError):
                logger.warning("skipping_malformed_instrument", item=str(item)[:100])

        logger.info("instruments_listed", count=len(instruments))
        return instruments

    async def fetch_daily_candles(
        self,
        symbol: str,
        start_ms: int,
        end_ms: int | None = None,
        limit: int = 1000,
    ) -> list[DailyCandle]:
        params: dict = {
            "symbol": symbol,
            "interval": self._settings.candle_interval,
            "startTime": start_ms,
            "limit": limit,
        }
        if end_ms is not None:
            params["endTime"] = end_ms

        data = await self._fetcher.fetch(
            self._url(self._settings.candles_path), params=params
        )
        if not isinstance(data, list):
            raise FetchError(f"Malformed kline response for {symbol}: expected a list")
        return [parse_kline(symbol, row) for row in data]

    async def fetch_daily_history(
        self,
        symbol: str,
        start_ms: int,
        end_ms: int,
        page_limit: int = 1000,
    ) -> list[DailyCandle]:
        """Walk FORWARD from start_ms to end_ms one page at a time.

        Stops on an empty page, a short page, or a page that makes no progress.
        """
        candles: list[DailyCandle] = []
        cursor = start_ms

        while cursor <= end_ms:
            page = await self.fetch_daily_candles(symbol, cursor, end_ms, page_limit)
            if not page:
                break

            candles.extend(page)
            newest = page[-1].timestamp
            if len(page) < page_limit or newest < cursor:
                break

            cursor = newest + 1
            # Rate limit safety delay between paginated calls
            await self._sleep(self._page_delay)

        logger.debug(
            "daily_history_fetched",
            symbol=symbol,
            candles=len(candles),
        )
        return candles
