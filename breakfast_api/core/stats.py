"""
Check-in aggregation.

Turns month grids (users x days booleans) into daily, weekly and monthly
figures. Average daily usage only counts days on which at least one person
checked in, so quiet weekends and holidays do not drag the average down.
"""
import logging
import math
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from .models import MonthlyGrid, MonthlyStats, RangeStats

logger = logging.getLogger(__name__)


def day_counts(grid: MonthlyGrid) -> pd.Series:
    """Number of check-ins per day, indexed by day of month (1..N)."""
    days = list(range(1, grid.days_in_month + 1))
    if not grid.raw_data:
        return pd.Series(0, index=days, dtype="int64")

    df = pd.DataFrame(
        [list(row[:grid.days_in_month]) + [False] * (grid.days_in_month - len(row)) for row in grid.raw_data],
        columns=days
    ).astype(bool)
    return df.sum(axis=0).astype("int64")


def _keyed_by_date(counts: pd.Series, year: int, month: int) -> Dict[str, int]:
    return {date(year, month, int(day)).isoformat(): int(count) for day, count in counts.items()}


def daily_counts(grid: MonthlyGrid) -> Dict[str, int]:
    """Per-day counts keyed ``YYYY-MM-DD``."""
    return _keyed_by_date(day_counts(grid), grid.year, grid.month)


def week_of_month(day: int) -> int:
    """7-day buckets counted from the 1st (days 1-7 -> 1, 29-31 -> 5)."""
    return math.ceil(day / 7)


def weekly_counts(counts: pd.Series, month: int) -> Dict[str, int]:
    """Sum day counts into week-of-month buckets keyed ``<month>-W<week>``."""
    if counts.empty:
        return {}
    weeks = counts.groupby(lambda day: week_of_month(int(day))).sum()
    return {f"{month}-W{int(week)}": int(total) for week, total in weeks.sort_index().items()}


def _round_half_up(numerator: int, denominator: int) -> float:
    """Two decimals, halves rounded away from zero (9 / 8 -> 1.13)."""
    quotient = Decimal(numerator) / Decimal(denominator)
    return float(quotient.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _headline(counts: Dict[str, int]) -> Tuple[int, int, float, Optional[str], int]:
    """Total, active days, average over active days, best day and its count."""
    series = pd.Series(counts, dtype="int64")
    total = int(series.sum()) if not series.empty else 0
    active_days = int((series > 0).sum()) if not series.empty else 0
    average = _round_half_up(total, active_days) if active_days > 0 else 0.0

    best_day, best_count = None, 0
    if total > 0:
        # idxmax keeps the first (earliest) day on ties
        best_day = str(series.idxmax())
        best_count = int(series.max())
    return total, active_days, average, best_day, best_count


def summarize_month(grid: MonthlyGrid) -> MonthlyStats:
    """Daily, weekly and headline figures for one month grid."""
    counts = day_counts(grid)
    daily = _keyed_by_date(counts, grid.year, grid.month)
    total, active_days, average, best_day, best_count = _headline(daily)

    return MonthlyStats(
        daily_stats=daily,
        weekly_stats=weekly_counts(counts, grid.month),
        total_count=total,
        average_daily=average,
        active_days=active_days,
        best_day=best_day,
        best_day_count=best_count
    )


def iter_dates(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def summarize_range(counts_by_date: Dict[date, int], start: date, end: date) -> RangeStats:
    """
    Aggregate per-day counts between ``start`` and ``end`` inclusive.

    Days in the range that are missing from ``counts_by_date`` count as 0.
    """
    daily = {day.isoformat(): int(counts_by_date.get(day, 0)) for day in iter_dates(start, end)}
    total, active_days, average, best_day, best_count = _headline(daily)
    logger.debug(f"Summarized {len(daily)} days from {start} to {end}: {total} check-ins")

    return RangeStats(
        start_date=start,
        end_date=end,
        daily_stats=daily,
        total_count=total,
        average_daily=average,
        active_days=active_days,
        best_day=best_day,
        best_day_count=best_count
    )
