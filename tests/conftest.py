"""Shared test fixtures for the seasonal ingestion engine."""

from collections.abc import Callable
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from seasonal.config import IngestionSettings
from seasonal.data.database import CandleDatabase
from seasonal.data.models import DailyCandle
from seasonal.data.store import CandleStore
from seasonal.exceptions import ServerError
from seasonal.exchange.client import MarketDataClient
from seasonal.exchange.types import Instrument
from seasonal.retry import RetryPolicy

DAY_MS = 86_400_000
D0 = 1_704_067_200_000  # 2024-01-01T00:00:00Z
NOW_MS = 1_768_435_200_000  # 2026-01-15T00:00:00Z


def _price(timestamp: int) -> Decimal:
    """Deterministic, strictly increasing price per day."""
    return Decimal(1000 + (timestamp - D0) // DAY_MS)


def build_candle(
    symbol: str,
    timestamp: int,
    open_: Decimal | None = None,
    high: Decimal | None = None,
    low: Decimal | None = None,
    close: Decimal | None = None,
    volume: Decimal = Decimal("10"),
) -> DailyCandle:
    base = _price(timestamp)
    return DailyCandle(
        symbol=symbol,
        timestamp=timestamp,
        open=open_ if open_ is not None else base,
        high=high if high is not None else base + 5,
        low=low if low is not None else base - 5,
        close=close if close is not None else base + 1,
        volume=volume,
        close_time=timestamp + DAY_MS - 1,
    )


class FakeMarketData(MarketDataClient):
    """In-memory exchange: one candle per UTC day up to now_ms for every symbol."""

    def __init__(self, instruments: list[Instrument], now_ms: int = NOW_MS) -> None:
        self.instruments = instruments
        self.now_ms = now_ms
        self.fail_symbols: set[str] = set()
        self.list_error: Exception | None = None
        self.history_calls: list[tuple[str, int, int]] = []
        self.page_calls: list[tuple[str, int, int | None, int]] = []

    def _series(self, symbol: str, start_ms: int, end_ms: int | None) -> list[DailyCandle]:
        first = -(-start_ms // DAY_MS) * DAY_MS  # first day open >= start_ms
        last = min(end_ms if end_ms is not None else self.now_ms, self.now_ms)
        return [build_candle(symbol, ts) for ts in range(first, last + 1, DAY_MS)]

    async def list_instruments(self) -> list[Instrument]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.instruments)

    async def fetch_daily_candles(
        self,
        symbol: str,
        start_ms: int,
        end_ms: int | None = None,
        limit: int = 1000,
    ) -> list[DailyCandle]:
        self.page_calls.append((symbol, start_ms, end_ms, limit))
        if symbol in self.fail_symbols:
            raise ServerError("https://example.test/klines", 503, 6)
        return self._series(symbol, start_ms, end_ms)[:limit]

    async def fetch_daily_history(
        self,
        symbol: str,
        start_ms: int,
        end_ms: int,
        page_limit: int = 1000,
    ) -> list[DailyCandle]:
        self.history_calls.append((symbol, start_ms, end_ms))
        if symbol in self.fail_symbols:
            raise ServerError("https://example.test/klines", 503, 6)
        return self._series(symbol, start_ms, end_ms)


@pytest.fixture
def candle_factory() -> Callable[..., DailyCandle]:
    """Factory building DailyCandle objects with deterministic defaults."""
    return build_candle


@pytest.fixture
def fake_market_factory() -> Callable[..., FakeMarketData]:
    """Factory building a FakeMarketData exchange for given instruments."""
    return FakeMarketData


@pytest.fixture
def policy() -> RetryPolicy:
    """Retry policy with small, easily asserted delays."""
    return RetryPolicy(max_retries=3, initial_backoff=1.0, storage_cooldown=15.0)


@pytest.fixture
def ingestion_settings() -> IngestionSettings:
    """Ingestion settings with all pacing delays disabled."""
    return IngestionSettings(
        db_path=":memory:",
        popular_symbols=["BTCUSDT", "ETHUSDT"],
        registry_item_delay=0.0,
        registry_batch_delay=0.0,
        candle_batch_delay=0.0,
        symbol_delay=0.0,
    )


@pytest.fixture
def sleep() -> AsyncMock:
    """Recording stand-in for asyncio.sleep."""
    return AsyncMock(return_value=None)


@pytest_asyncio.fixture
async def database(tmp_path):
    """Connected CandleDatabase backed by a temporary file."""
    db = CandleDatabase(str(tmp_path / "candles.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def store(database: CandleDatabase) -> CandleStore:
    return CandleStore(database)
