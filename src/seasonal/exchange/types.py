"""Exchange-specific type definitions."""

from dataclasses import dataclass


@dataclass
class Instrument:
    """One entry of the exchange instrument listing."""

    symbol: str
    base_asset: str
    quote_asset: str
    status: str

    @property
    def is_trading(self) -> bool:
        return self.status == "TRADING"
