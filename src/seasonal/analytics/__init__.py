"""Analytics over stored monthly candles."""

from seasonal.analytics.seasonality import MonthlyAverage, SeasonalityReport, build_seasonality

__all__ = ["MonthlyAverage", "SeasonalityReport", "build_seasonality"]
