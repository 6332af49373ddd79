"""Seasonality statistics from monthly returns.

Turns a symbol's monthly candles into the two views used for seasonality
analysis: the average return of each calendar month across years, and a
year-by-month heatmap of individual returns. Months without a return
(first stored month, or a missing predecessor) are ignored.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from seasonal.data.models import MonthlyCandle

MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass
class MonthlyAverage:
    """Mean month-over-month return of one calendar month."""

    month: int
    month_name: str
    average_return: Decimal = Decimal("0")
    count: int = 0


@dataclass
class SeasonalityReport:
    monthly_averages: list[MonthlyAverage] = field(default_factory=list)
    heatmap: dict[str, Decimal] = field(default_factory=dict)  # "YYYY-M" -> return
    years: list[int] = field(default_factory=list)


def month_name(month: int) -> str:
    """Short English name for a 1-based month number, "" if out of range."""
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return ""


def build_seasonality(candles: list[MonthlyCandle]) -> SeasonalityReport:
    """Aggregate monthly candles into per-month averages and a heatmap.

    An empty input yields an empty report (no month rows).
    """
    if not candles:
        return SeasonalityReport()

    totals = [Decimal("0")] * 12
    counts = [0] * 12
    heatmap: dict[str, Decimal] = {}

    for candle in candles:
        if candle.return_pct is None or not 1 <= candle.month <= 12:
            continue
        totals[candle.month - 1] += candle.return_pct
        counts[candle.month - 1] += 1
        heatmap[f"{candle.year}-{candle.month}"] = candle.return_pct

    averages = [
        MonthlyAverage(
            month=i + 1,
            month_name=MONTH_NAMES[i],
            average_return=totals[i] / counts[i] if counts[i] else Decimal("0"),
            count=counts[i],
        )
        for i in range(12)
    ]

    return SeasonalityReport(
        monthly_averages=averages,
        heatmap=heatmap,
        years=sorted({c.year for c in candles}),
    )
