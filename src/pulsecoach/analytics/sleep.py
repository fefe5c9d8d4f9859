"""Sleep debt, schedule consistency, stage trends and smart flags.

Works over the last ~21 nights.  Windows:

  last 14 nights  -- debt, poor-night count, consistency, score latest
  last 7 nights   -- stage averages, bedtime average, 7-day score average
  prior 7 nights  -- baseline for the stage and bedtime comparisons
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.analytics.sleep_score import score_record
from pulsecoach.models import DailySleepRecord, DayDashboard, SleepScoreMode

LOOKBACK_DAYS = 21

# Bedtime shift (minutes later than prior week) that raises a drift flag
BEDTIME_DRIFT_MINUTES = 45

# REM delta (minutes/night) below which a drop flag is raised
REM_DROP_MINUTES = -15

# Consistency penalty per minute of combined bed/wake std
CONSISTENCY_PENALTY = 0.65

# Defaults for synthetic nights that lack a detailed record
DEMO_IN_BED_PADDING = 42
DEMO_EFFICIENCY = 90

STABLE_FLAG = "Sleep patterns look stable this week."


@dataclass
class SleepConsistency:
    bedtime_std_minutes: int
    wake_std_minutes: int
    score: int
    avg_bedtime: str
    avg_wake_time: str


@dataclass
class StageTrend:
    deep_delta: int
    rem_delta: int
    light_delta: int
    wake_delta: int


@dataclass
class SleepInsights:
    target_sleep_hours: float
    sleep_score: dict[str, int | None]
    sleep_debt_hours: float
    poor_nights_last14: int
    consistency: SleepConsistency
    stage_trend: StageTrend
    smart_flags: list[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _bedtimes(rows: Sequence[DailySleepRecord]) -> list[int]:
    return [stats.clock_minutes(r.sleep_start, for_bedtime=True) for r in rows if r.sleep_start]


def _wake_times(rows: Sequence[DailySleepRecord]) -> list[int]:
    return [stats.clock_minutes(r.sleep_end) for r in rows if r.sleep_end]


def consistency(rows14: Sequence[DailySleepRecord]) -> SleepConsistency:
    beds = _bedtimes(rows14)
    wakes = _wake_times(rows14)
    bed_std = stats.stddev(beds)
    wake_std = stats.stddev(wakes)
    score = max(0, stats.round_half_up(100 - (bed_std + wake_std) * CONSISTENCY_PENALTY))
    return SleepConsistency(
        bedtime_std_minutes=stats.round_half_up(bed_std),
        wake_std_minutes=stats.round_half_up(wake_std),
        score=score,
        avg_bedtime=stats.minutes_to_clock(stats.average(beds)) if beds else "n/a",
        avg_wake_time=stats.minutes_to_clock(stats.average(wakes)) if wakes else "n/a",
    )


def _stage_delta(current, baseline, attr: str) -> float:
    # Nights without stage data are excluded, not counted as zero.
    cur = stats.mean_or_none(getattr(r, attr) for r in current) or 0.0
    base = stats.mean_or_none(getattr(r, attr) for r in baseline) or 0.0
    return cur - base


def stage_trend(
    rows7: Sequence[DailySleepRecord],
    prev7: Sequence[DailySleepRecord],
) -> StageTrend:
    return StageTrend(
        deep_delta=stats.round_half_up(_stage_delta(rows7, prev7, "deep_minutes")),
        rem_delta=stats.round_half_up(_stage_delta(rows7, prev7, "rem_minutes")),
        light_delta=stats.round_half_up(_stage_delta(rows7, prev7, "light_minutes")),
        wake_delta=stats.round_half_up(_stage_delta(rows7, prev7, "wake_minutes")),
    )


def recent_nights_below(
    rows: Sequence[DailySleepRecord],
    threshold_minutes: float,
    nights: int = 3,
) -> bool:
    """True if the ``nights`` most recent records (by date) are all short."""
    recent = sorted(rows, key=lambda r: r.date, reverse=True)[:nights]
    return len(recent) == nights and all(r.minutes_asleep < threshold_minutes for r in recent)


def bedtime_shift(
    current: Sequence[DailySleepRecord],
    baseline: Sequence[DailySleepRecord],
) -> float | None:
    """Average bedtime of ``current`` minus that of ``baseline``, in minutes.

    None unless both windows have at least one bedtime.
    """
    cur = stats.average(_bedtimes(current))
    base = stats.average(_bedtimes(baseline))
    if cur <= 0 or base <= 0:
        return None
    return cur - base


def smart_flags(
    rows: Sequence[DailySleepRecord],
    rows7: Sequence[DailySleepRecord],
    prev7: Sequence[DailySleepRecord],
    target_minutes: float,
    rem_delta: float,
) -> list[str]:
    flags: list[str] = []

    if recent_nights_below(rows, target_minutes):
        flags.append("Three poor sleep nights in a row. Consider an early recovery night.")

    shift = bedtime_shift(rows7, prev7)
    if shift is not None and shift > BEDTIME_DRIFT_MINUTES:
        flags.append(
            f"Bedtime drifted later by {stats.round_half_up(shift)} minutes vs prior week."
        )

    if rem_delta < REM_DROP_MINUTES:
        flags.append(
            f"REM sleep is down {stats.round_half_up(abs(rem_delta))} min/night vs prior week."
        )

    if not flags:
        flags.append(STABLE_FLAG)
    return flags


def build_sleep_insights(
    rows: Sequence[DailySleepRecord],
    target_sleep_hours: float,
    mode: SleepScoreMode | str,
    today: date,
) -> SleepInsights:
    """Compute the sleep insights payload.

    Args:
        rows: Nightly records (typically the last 21 days), any order.
        target_sleep_hours: Nightly sleep target.
        mode: Sleep-score weighting profile.
        today: Reference date.
    """
    rows = sorted(rows, key=lambda r: r.date)
    rows14 = stats.rows_between(rows, *stats.window_bounds(today, 14))
    rows7 = stats.rows_between(rows, *stats.window_bounds(today, 7))
    prev7 = stats.rows_between(rows, *stats.window_bounds(today, 7, offset=1))

    target_min = target_sleep_hours * 60
    debt_minutes = sum(max(0.0, target_min - r.minutes_asleep) for r in rows14)
    poor_nights = sum(1 for r in rows14 if r.minutes_asleep < target_min)

    trend = stage_trend(rows7, prev7)

    scores14 = [score_record(r, target_sleep_hours, mode).total for r in rows14]
    scores7 = [score_record(r, target_sleep_hours, mode).total for r in rows7]

    return SleepInsights(
        target_sleep_hours=target_sleep_hours,
        sleep_score={
            "latest": scores14[-1] if scores14 else None,
            "average7d": stats.round_half_up(stats.average(scores7)) if scores7 else None,
        },
        sleep_debt_hours=round(debt_minutes / 60.0, 1),
        poor_nights_last14=poor_nights,
        consistency=consistency(rows14),
        stage_trend=trend,
        smart_flags=smart_flags(
            rows, rows7, prev7, target_min, _stage_delta(rows7, prev7, "rem_minutes")
        ),
    )


def build_demo_sleep_insights(
    days: Sequence[DayDashboard],
    target_sleep_hours: float,
    mode: SleepScoreMode | str,
    today: date,
) -> SleepInsights:
    """Same payload, derived from a synthetic calendar."""
    rows: list[DailySleepRecord] = []
    for d in sorted(days, key=lambda d: d.date):
        if d.sleep is None or d.day > today:
            continue
        s = d.sleep
        rows.append(DailySleepRecord(
            date=d.day,
            minutes_asleep=d.sleep_minutes,
            time_in_bed=s.time_in_bed or d.sleep_minutes + DEMO_IN_BED_PADDING,
            efficiency=s.efficiency or DEMO_EFFICIENCY,
            deep_minutes=s.deep_minutes,
            rem_minutes=s.rem_minutes,
            light_minutes=s.light_minutes,
            wake_minutes=s.wake_minutes,
            sleep_start=s.sleep_start,
            sleep_end=s.sleep_end,
        ))
    return build_sleep_insights(rows[-LOOKBACK_DAYS:], target_sleep_hours, mode, today)
