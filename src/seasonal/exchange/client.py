"""Abstract market-data client interface.

Defines the contract the ingestion engine depends on, keeping
exchange-specific URLs and payload shapes in the concrete implementation.
"""

from abc import ABC, abstractmethod

from seasonal.data.models import DailyCandle
from seasonal.exchange.types import Instrument


class MarketDataClient(ABC):
    """Abstract base class for market-data API clients."""

    @abstractmethod
    async def list_instruments(self) -> list[Instrument]:
        """Return the exchange's full instrument listing."""
        ...

    @abstractmethod
    async def fetch_daily_candles(
        self,
        symbol: str,
        start_ms: int,
        end_ms: int | None = None,
        limit: int = 1000,
    ) -> list[DailyCandle]:
        """Fetch one page of daily candles opening at or after start_ms."""
        ...

    @abstractmethod
    async def fetch_daily_history(
        self,
        symbol: str,
        start_ms: int,
        end_ms: int,
        page_limit: int = 1000,
    ) -> list[DailyCandle]:
        """Fetch every daily candle in [start_ms, end_ms], paginating forward."""
        ...
