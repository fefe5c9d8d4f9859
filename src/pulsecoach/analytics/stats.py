"""Windowed statistics shared by every calculator.

This is the shared foundation for the analytics modules.  It provides:
  - Rounding helpers matching the dashboard's integer presentation
  - Averages / population standard deviation / percentages
  - Calendar windows (current window vs. the preceding window of equal length)
  - Streak detection over date-keyed daily values
  - Pearson correlation over paired daily series
  - Clock-of-day helpers for bedtime / wake-time statistics

A "window" of N days ending on ``today`` is the closed date range
``[today - (N-1), today]``; its baseline is ``[today - (2N-1), today - N]``.
Both are computed by :func:`window_bounds` so every calculator agrees on
them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

import numpy as np
from scipy import stats as sps

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (``-2.5 -> -2``)."""
    return int(math.floor(value + 0.5))


def round1(value: float | None) -> float | None:
    """Round to one decimal, passing ``None`` through."""
    if value is None:
        return None
    return round(float(value), 1)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def average(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for empty input."""
    arr = np.fromiter((float(v) for v in values), dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def mean_or_none(values: Iterable[float | None]) -> float | None:
    """Mean of the non-``None`` values, or ``None`` if there are none."""
    present = [float(v) for v in values if v is not None]
    if not present:
        return None
    return float(np.mean(present))


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for fewer than 2 samples."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=np.float64), ddof=0))


def pct(part: float, total: float) -> int:
    """``part`` as a rounded percentage of ``total`` (0 if total <= 0)."""
    if total <= 0:
        return 0
    return round_half_up(part / total * 100.0)


# ---------------------------------------------------------------------------
# Calendar windows
# ---------------------------------------------------------------------------


def week_start(today: date) -> date:
    """Sunday on or before ``today``."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def days_elapsed_in_week(today: date) -> int:
    """1 on Sunday ... 7 on Saturday."""
    return (today - week_start(today)).days + 1


def days_left_in_week(today: date) -> int:
    """Days from ``today`` through Saturday, inclusive of today."""
    return 7 - days_elapsed_in_week(today) + 1


def window_bounds(today: date, days: int, offset: int = 0) -> tuple[date, date]:
    """Closed range of ``days`` days ending ``offset`` whole windows before today.

    ``offset=0`` is the current window, ``offset=1`` its baseline.
    """
    if days <= 0:
        raise ValueError("window length must be positive")
    end = today - timedelta(days=days * offset)
    start = end - timedelta(days=days - 1)
    return start, end


def in_range(day: date, start: date, end: date) -> bool:
    return start <= day <= end


def rows_between(rows: Iterable[T], start: date, end: date) -> list[T]:
    """Rows whose ``.date`` falls within ``[start, end]``."""
    return [r for r in rows if start <= r.date <= end]  # type: ignore[attr-defined]


def day_label(day: date | datetime) -> str:
    """Short weekday label, e.g. ``"Tue"``."""
    return day.strftime("%a")


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


@dataclass
class TrendMetric:
    """A current value compared with its baseline."""

    current: float
    baseline: float
    delta: float
    delta_pct: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def trend_metric(current: float, baseline: float) -> TrendMetric:
    delta = current - baseline
    delta_pct = None if baseline == 0 else delta / baseline * 100.0
    return TrendMetric(current=current, baseline=baseline, delta=delta, delta_pct=delta_pct)


def windowed_delta(
    rows: Sequence[T],
    window_days: int,
    today: date,
    value: Callable[[T], float | None],
    how: str = "mean",
) -> TrendMetric:
    """Compare the last ``window_days`` days with the preceding block.

    Args:
        rows: Daily rows with a ``.date`` attribute.
        window_days: Window length in days.
        today: Last day of the current window.
        value: Extracts the metric from a row; ``None`` means "no data".
        how: ``"mean"`` (missing days excluded from the denominator) or
            ``"sum"`` (missing days contribute 0).
    """
    if how not in ("mean", "sum"):
        raise ValueError(f"unknown aggregation: {how!r}")

    def _agg(start: date, end: date) -> float:
        vals = [value(r) for r in rows_between(rows, start, end)]
        present = [float(v) for v in vals if v is not None]
        if how == "sum":
            return float(sum(present))
        return average(present)

    current = _agg(*window_bounds(today, window_days, 0))
    baseline = _agg(*window_bounds(today, window_days, 1))
    return trend_metric(current, baseline)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

STREAK_LOOKBACK_DAYS = 120


def current_streak(
    daily: Mapping[date, float],
    target: float,
    today: date,
    lookback: int = STREAK_LOOKBACK_DAYS,
) -> int:
    """Consecutive days ending today that meet ``target``.

    A missing day breaks the streak.
    """
    streak = 0
    for offset in range(lookback):
        v = daily.get(today - timedelta(days=offset))
        if v is None or v < target:
            break
        streak += 1
    return streak


def best_streak(daily: Mapping[date, float], target: float) -> int:
    """Longest run of calendar-consecutive days that each meet ``target``.

    Recomputed from the full history on every call; a gap in the date
    sequence ends a run even if both neighbours qualified.
    """
    best = 0
    run = 0
    prev: date | None = None
    for day in sorted(daily):
        if daily[day] < target:
            run = 0
        elif prev is not None and run > 0 and (day - prev).days == 1:
            run += 1
        else:
            run = 1
        best = max(best, run)
        prev = day
    return best


def last_break(
    daily: Mapping[date, float],
    target: float,
    today: date,
    lookback: int = STREAK_LOOKBACK_DAYS,
) -> date | None:
    """Most recent logged day below ``target`` (missing days are skipped)."""
    for offset in range(lookback):
        day = today - timedelta(days=offset)
        v = daily.get(day)
        if v is not None and v < target:
            return day
    return None


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------

MIN_CORRELATION_SAMPLES = 8


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float | None:
    """Pearson r over paired samples.

    Returns None with fewer than 8 pairs or when either series is constant.
    """
    n = min(len(xs), len(ys))
    if n < MIN_CORRELATION_SAMPLES:
        return None
    x = np.asarray(xs[:n], dtype=np.float64)
    y = np.asarray(ys[:n], dtype=np.float64)
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return None
    r = float(sps.pearsonr(x, y)[0])
    if math.isnan(r):
        return None
    return r


# ---------------------------------------------------------------------------
# Clock-of-day
# ---------------------------------------------------------------------------

MINUTES_PER_DAY = 24 * 60


def clock_minutes(ts: datetime, for_bedtime: bool = False) -> int:
    """Minutes after midnight.

    Bedtimes before noon are pushed to the next day (+24h) so that a
    23:30 / 00:30 pair averages to midnight instead of noon.  Wake times
    are never shifted.
    """
    minutes = ts.hour * 60 + ts.minute
    if for_bedtime and minutes < 12 * 60:
        return minutes + MINUTES_PER_DAY
    return minutes


def minutes_to_clock(value: float) -> str:
    """Format minutes after midnight as ``HH:MM``, wrapping past 24h."""
    normalized = round_half_up(value) % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"
