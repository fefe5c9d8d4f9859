"""Multi-window trends (7/30/90 days) and correlation insights."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import (
    DailyActivitySummary,
    DailyHeartZones,
    DailySleepRecord,
    DayDashboard,
)

TREND_WINDOWS = (7, 30, 90)
TREND_LOOKBACK_DAYS = 2 * max(TREND_WINDOWS)
CORRELATION_LOOKBACK_DAYS = 90

MIN_ABS_R = 0.15


@dataclass
class TrendWindow:
    days: int
    zone2_total: stats.TrendMetric
    avg_sleep_hours: stats.TrendMetric
    avg_steps: stats.TrendMetric
    avg_resting_heart_rate: stats.TrendMetric


@dataclass
class TrendPayload:
    windows: list[TrendWindow]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CorrelationInsight:
    id: str
    title: str
    detail: str
    r: float
    confidence: str  # "low" | "medium" | "high"
    direction: str  # "positive" | "negative"
    sample_size: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


def build_trends(
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    today: date,
    windows: Sequence[int] = TREND_WINDOWS,
) -> TrendPayload:
    """Current-vs-baseline deltas for each window length."""
    out = []
    for days in windows:
        out.append(TrendWindow(
            days=days,
            zone2_total=stats.windowed_delta(zones, days, today, lambda r: r.zone2_minutes, how="sum"),
            avg_sleep_hours=stats.windowed_delta(sleeps, days, today, lambda r: r.minutes_asleep / 60.0),
            avg_steps=stats.windowed_delta(summaries, days, today, lambda r: r.steps),
            avg_resting_heart_rate=stats.windowed_delta(
                zones, days, today, lambda r: r.resting_heart_rate
            ),
        ))
    return TrendPayload(windows=out)


# ---------------------------------------------------------------------------
# Correlations
# ---------------------------------------------------------------------------


def correlation_confidence(abs_r: float, n: int) -> str:
    if n >= 45 and abs_r >= 0.45:
        return "high"
    if n >= 20 and abs_r >= 0.25:
        return "medium"
    return "low"


def build_insight(
    insight_id: str,
    title: str,
    x_label: str,
    y_label: str,
    xs: Sequence[float],
    ys: Sequence[float],
) -> CorrelationInsight | None:
    """One insight, or None if the sample is too small or the link too weak."""
    r = stats.pearson(xs, ys)
    if r is None or abs(r) < MIN_ABS_R:
        return None

    n = min(len(xs), len(ys))
    direction = "positive" if r >= 0 else "negative"
    relation = "increase together" if direction == "positive" else "move in opposite directions"
    return CorrelationInsight(
        id=insight_id,
        title=title,
        detail=f"{x_label.capitalize()} and {y_label} {relation} (r={r:.2f}, n={n}).",
        r=r,
        confidence=correlation_confidence(abs(r), n),
        direction=direction,
        sample_size=n,
    )


def insufficient_data_insight(days_observed: int) -> CorrelationInsight:
    return CorrelationInsight(
        id="insufficient-data",
        title="Not enough stable signal yet",
        detail=(
            "Keep syncing daily. Correlation insights unlock once there is "
            "enough variation and sample size."
        ),
        r=0.0,
        confidence="low",
        direction="positive",
        sample_size=days_observed,
    )


def build_correlation_insights(
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    today: date,
) -> list[CorrelationInsight]:
    """Pearson-based insights over the last 90 days, strongest first.

    Only dates on which both series have a value are paired.
    """
    start, end = stats.window_bounds(today, CORRELATION_LOOKBACK_DAYS)
    steps = {r.date: float(r.steps) for r in stats.rows_between(summaries, start, end)}
    sleep_h = {r.date: r.minutes_asleep / 60.0 for r in stats.rows_between(sleeps, start, end)}
    zone_rows = stats.rows_between(zones, start, end)
    zone2 = {r.date: float(r.zone2_minutes) for r in zone_rows}
    rhr = {r.date: float(r.resting_heart_rate) for r in zone_rows if r.resting_heart_rate is not None}

    def _paired(a: dict[date, float], b: dict[date, float]) -> tuple[list[float], list[float]]:
        keys = sorted(a.keys() & b.keys())
        return [a[k] for k in keys], [b[k] for k in keys]

    candidates = [
        build_insight("sleep-steps", "Sleep vs Steps", "sleep duration", "daily steps", *_paired(sleep_h, steps)),
        build_insight("sleep-zone2", "Sleep vs Zone 2", "sleep duration", "zone 2 minutes", *_paired(sleep_h, zone2)),
        build_insight("zone2-rhr", "Zone 2 vs Resting HR", "zone 2 minutes", "resting heart rate", *_paired(zone2, rhr)),
    ]
    insights = [c for c in candidates if c is not None]
    if not insights:
        observed = len(steps.keys() | sleep_h.keys() | zone2.keys())
        return [insufficient_data_insight(observed)]
    return sorted(insights, key=lambda i: abs(i.r), reverse=True)


# ---------------------------------------------------------------------------
# Demo variants
# ---------------------------------------------------------------------------


def _rows_from_calendar(days: Sequence[DayDashboard], today: date):
    past = [d for d in days if d.day <= today]
    summaries = [DailyActivitySummary(date=d.day, steps=d.steps) for d in past]
    sleeps = [
        DailySleepRecord(date=d.day, minutes_asleep=d.sleep_minutes)
        for d in past
        if d.sleep is not None
    ]
    zones = [
        DailyHeartZones(date=d.day, zone2_minutes=d.zone2_minutes, resting_heart_rate=d.resting_heart_rate)
        for d in past
    ]
    return summaries, sleeps, zones


def build_demo_trends(days: Sequence[DayDashboard], today: date) -> TrendPayload:
    return build_trends(*_rows_from_calendar(days, today), today)


def build_demo_correlation_insights(days: Sequence[DayDashboard], today: date) -> list[CorrelationInsight]:
    return build_correlation_insights(*_rows_from_calendar(days, today), today)
