"""Month calendar of merged daily rows, live or synthetic.

The calendar grid runs from the Sunday on or before the first of the
month to the Saturday on or after its last day.  The synthetic variant is
what every ``build_demo_*`` entry point consumes when no data source is
connected.
"""

from __future__ import annotations

import calendar as _cal
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.analytics.goals import WeeklySummary, build_weekly_summary
from pulsecoach.analytics.sleep_score import DEFAULT_GOAL_HOURS, score_record
from pulsecoach.models import (
    ActivityLogEntry,
    DailyActivitySummary,
    DailyHeartZones,
    DailySleepRecord,
    DayDashboard,
    SleepScoreMode,
)


@dataclass
class CalendarPayload:
    month: str  # "YYYY-MM"
    start_date: str
    end_date: str
    days: list[DayDashboard]
    weekly_summary: WeeklySummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "days": [d.to_dict() for d in self.days],
            "weekly_summary": vars(self.weekly_summary).copy(),
        }


def parse_month(month: str | None, today: date) -> date:
    """First day of ``"YYYY-MM"``, or of today's month when None."""
    if month is None:
        return today.replace(day=1)
    try:
        return datetime.strptime(month, "%Y-%m").date()
    except ValueError:
        raise ValueError(f"month must look like YYYY-MM, got {month!r}") from None


def grid_bounds(month_start: date) -> tuple[date, date]:
    last = _cal.monthrange(month_start.year, month_start.month)[1]
    month_end = month_start.replace(day=last)
    start = stats.week_start(month_start)
    end = stats.week_start(month_end) + timedelta(days=6)
    return start, end


def _grid_days(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def merge_days(
    grid: Sequence[date],
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    logs: Sequence[ActivityLogEntry],
    sleep_goal_hours: float = DEFAULT_GOAL_HOURS,
    mode: SleepScoreMode | str = SleepScoreMode.FITBIT,
) -> list[DayDashboard]:
    """Merge raw rows into one :class:`DayDashboard` per ``grid`` day.

    Rows dated outside the grid are ignored; grid days without rows keep
    zero values.
    """
    by_day = {d: DayDashboard(date=d.isoformat()) for d in grid}

    for s in summaries:
        day = by_day.get(s.date)
        if day is None:
            continue
        day.steps = s.steps
        day.active_minutes = s.active_minutes
        day.sedentary_minutes = s.sedentary_minutes
        day.lightly_active_minutes = s.lightly_active_minutes or 0
        day.fairly_active_minutes = s.fairly_active_minutes or 0
        day.very_active_minutes = s.very_active_minutes or 0

    for rec in sleeps:
        day = by_day.get(rec.date)
        if day is None:
            continue
        breakdown = score_record(rec, sleep_goal_hours, mode)
        day.sleep_minutes = rec.minutes_asleep
        day.sleep_score = breakdown.total
        day.sleep_score_breakdown = breakdown.to_dict()
        day.sleep = rec

    for z in zones:
        day = by_day.get(z.date)
        if day is None:
            continue
        day.zone2_minutes = z.zone2_minutes
        day.cardio_minutes = z.cardio_minutes or 0
        day.peak_minutes = z.peak_minutes or 0
        day.out_of_range_minutes = z.out_of_range_minutes or 0
        day.resting_heart_rate = z.resting_heart_rate

    for entry in sorted(logs, key=lambda a: a.start_time):
        day = by_day.get(entry.start_time.date())
        if day is not None:
            day.activities.append(entry)

    return [by_day[d] for d in sorted(by_day)]


def build_calendar(
    month: str | None,
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    logs: Sequence[ActivityLogEntry],
    today: date,
    sleep_goal_hours: float = DEFAULT_GOAL_HOURS,
    mode: SleepScoreMode | str = SleepScoreMode.FITBIT,
    weekly_summary: WeeklySummary | None = None,
) -> CalendarPayload:
    """Month grid of merged daily rows.

    ``weekly_summary`` covers the trailing 7 days ending ``today``; pass it
    in when those rows lie outside the grid, otherwise it is computed from
    the rows given here.
    """
    month_start = parse_month(month, today)
    start, end = grid_bounds(month_start)
    if weekly_summary is None:
        weekly_summary = build_weekly_summary(summaries, sleeps, zones, today)

    return CalendarPayload(
        month=month_start.strftime("%Y-%m"),
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        days=merge_days(_grid_days(start, end), summaries, sleeps, zones, logs, sleep_goal_hours, mode),
        weekly_summary=weekly_summary,
    )


# ---------------------------------------------------------------------------
# Synthetic calendar
# ---------------------------------------------------------------------------


def synthetic_day(day: date) -> tuple[
    DailyActivitySummary, DailySleepRecord, DailyHeartZones, list[ActivityLogEntry]
]:
    """Deterministic signals for one past day, keyed off the day of month."""
    i = day.day
    zone2 = (i * 7) % 72
    active = 32 + (i * 3) % 58
    asleep = 340 + (i * 13) % 140
    very = stats.round_half_up(active * 0.18)
    fairly = stats.round_half_up(active * 0.27)

    summary = DailyActivitySummary(
        date=day,
        steps=4500 + (i * 631) % 9000,
        active_minutes=active,
        sedentary_minutes=max(0, 24 * 60 - asleep - active),
        lightly_active_minutes=max(0, active - very - fairly),
        fairly_active_minutes=fairly,
        very_active_minutes=very,
    )
    sleep = DailySleepRecord(
        date=day,
        minutes_asleep=asleep,
        time_in_bed=asleep + 42,
        efficiency=91,
        deep_minutes=stats.round_half_up(asleep * 0.18),
        rem_minutes=stats.round_half_up(asleep * 0.22),
        light_minutes=stats.round_half_up(asleep * 0.53),
        wake_minutes=stats.round_half_up(asleep * 0.07),
        sleep_start=datetime.combine(day, time(22, 45)),
        sleep_end=datetime.combine(day + timedelta(days=1), time(6, 45)),
    )
    zones = DailyHeartZones(
        date=day,
        zone2_minutes=zone2,
        cardio_minutes=max(0, zone2 - 18),
        peak_minutes=max(0, zone2 // 4 - 2),
        out_of_range_minutes=80 + i % 20,
        resting_heart_rate=float(56 + i % 6),
    )
    logs: list[ActivityLogEntry] = []
    if i % 2 == 0:
        logs.append(ActivityLogEntry(
            id=f"{day.isoformat()}-a",
            start_time=datetime.combine(day, time(7, 0)),
            duration_minutes=38,
            name="Brisk Walk",
            calories=240,
            distance=3.4,
            steps=4500,
        ))
    return summary, sleep, zones, logs


def synthetic_rows(start: date, end: date, today: date):
    """Synthetic raw rows for every day in ``[start, min(end, today)]``."""
    summaries, sleeps, zones, logs = [], [], [], []
    for day in _grid_days(start, min(end, today)):
        s, sl, z, lg = synthetic_day(day)
        summaries.append(s)
        sleeps.append(sl)
        zones.append(z)
        logs.extend(lg)
    return summaries, sleeps, zones, logs


def build_demo_calendar(
    month: str | None,
    today: date,
    sleep_goal_hours: float = DEFAULT_GOAL_HOURS,
    mode: SleepScoreMode | str = SleepScoreMode.FITBIT,
    history_days: int = 0,
) -> CalendarPayload:
    """A synthetic calendar; days after ``today`` are left empty.

    ``history_days`` extends the grid backwards so that long-window demo
    payloads (step streaks, 90-day trends) have enough history.
    """
    month_start = parse_month(month, today)
    start, end = grid_bounds(month_start)
    if history_days > 0:
        start = min(start, today - timedelta(days=history_days - 1))

    summaries, sleeps, zones, logs = synthetic_rows(start, end, today)
    week_rows = synthetic_rows(today - timedelta(days=6), today, today)
    return CalendarPayload(
        month=month_start.strftime("%Y-%m"),
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        days=merge_days(
            _grid_days(start, end), summaries, sleeps, zones, logs, sleep_goal_hours, mode
        ),
        weekly_summary=build_weekly_summary(week_rows[0], week_rows[1], week_rows[2], today),
    )
