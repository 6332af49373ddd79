"""Exchange client layer -- resilient HTTP fetch and Binance market data."""

from seasonal.exchange.binance_client import BinanceClient
from seasonal.exchange.client import MarketDataClient
from seasonal.exchange.fetch import ResilientFetcher
from seasonal.exchange.types import Instrument

__all__ = ["BinanceClient", "Instrument", "MarketDataClient", "ResilientFetcher"]
