"""Candle persistence layer.

Provides data models, SQLite database management, the typed candle
store, gap detection, monthly rollup, progress tracking and symbol
universe selection.
"""

from seasonal.data.database import CandleDatabase
from seasonal.data.gaps import GapDetector
from seasonal.data.models import DailyCandle, Gap, MonthlyCandle, ProcessingState, Symbol
from seasonal.data.monthly import MonthlyAggregator
from seasonal.data.progress import ProgressTracker
from seasonal.data.store import CandleStore
from seasonal.data.universe import select_bootstrap, select_universe

__all__ = [
    "CandleDatabase",
    "CandleStore",
    "DailyCandle",
    "Gap",
    "GapDetector",
    "MonthlyAggregator",
    "MonthlyCandle",
    "ProcessingState",
    "ProgressTracker",
    "Symbol",
    "select_bootstrap",
    "select_universe",
]
