"""Symbol universe selection for ingestion runs.

Filters the exchange listing down to tradable spot pairs in the
configured quote asset, and narrows that list to the bootstrap
allowlist when no history has been ingested yet.
"""

from seasonal.exchange.types import Instrument


def select_universe(instruments: list[Instrument], quote_asset: str = "USDT") -> list[Instrument]:
    """Keep instruments that are trading and quoted in quote_asset.

    Listing order is preserved so that progress indices stay stable
    between invocations.
    """
    return [i for i in instruments if i.is_trading and i.quote_asset == quote_asset]


def select_bootstrap(
    instruments: list[Instrument], popular_symbols: list[str]
) -> list[Instrument]:
    """Restrict instruments to the popular-symbol allowlist, preserving order."""
    allowed = set(popular_symbols)
    return [i for i in instruments if i.symbol in allowed]
