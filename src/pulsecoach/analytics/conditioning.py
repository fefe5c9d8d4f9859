"""Conditioning load, intensity polarization and a short forward plan.

Easy load is light activity plus Zone 2; hard load is cardio plus peak
zone minutes.  A polarized week keeps hard load near 20% of the total.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import (
    ActivityLogEntry,
    DailyActivitySummary,
    DailyHeartZones,
    DailySleepRecord,
    DayDashboard,
)

LOOKBACK_DAYS = 14
DEFAULT_TARGET_WORKOUT_DAYS = 4

ZONE2_LOW = 150  # weekly minutes
ZONE2_HIGH = 300
ZONE2_PLAN_TARGET = 180
HARD_PCT_LIMIT = 25
SEDENTARY_HOURS_LIMIT = 12
HIGH_INTENSITY_DAY_MINUTES = 12
HIGH_INTENSITY_DAYS_LIMIT = 3
HARD_SESSION_MAX_MINUTES = 25
HARD_CAP_FLOOR = 30
HARD_CAP_FRACTION = 0.2


@dataclass
class ConditioningRow:
    """One merged day of activity, sleep and zone minutes."""

    date: date
    active_minutes: int = 0
    sedentary_minutes: int = 0
    lightly_active_minutes: int = 0
    fairly_active_minutes: int = 0
    very_active_minutes: int = 0
    minutes_asleep: int = 0
    zone2_minutes: int = 0
    cardio_minutes: int = 0
    peak_minutes: int = 0

    @property
    def hard_minutes(self) -> int:
        return self.cardio_minutes + self.peak_minutes


@dataclass
class ConditioningInsights:
    weekly: dict[str, Any]
    adherence: dict[str, int]
    polarized_plan: dict[str, Any]
    coach_notes: list[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def zone2_status(total: int) -> str:
    if total < ZONE2_LOW:
        return "low"
    if total > ZONE2_HIGH:
        return "high"
    return "target"


def merge_rows(
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    today: date,
    days: int = LOOKBACK_DAYS,
) -> list[ConditioningRow]:
    """One row per calendar day in the window; missing days are all-zero.

    Summaries without an intensity split get one estimated from active
    minutes (50% light, 30% fairly, rest very active).
    """
    start, _ = stats.window_bounds(today, days)
    by_day = {start + timedelta(days=i): ConditioningRow(date=start + timedelta(days=i)) for i in range(days)}

    for s in summaries:
        row = by_day.get(s.date)
        if row is None:
            continue
        row.active_minutes = s.active_minutes
        row.sedentary_minutes = s.sedentary_minutes
        row.lightly_active_minutes = (
            s.lightly_active_minutes
            if s.lightly_active_minutes is not None
            else max(0, stats.round_half_up(s.active_minutes * 0.5))
        )
        row.fairly_active_minutes = (
            s.fairly_active_minutes
            if s.fairly_active_minutes is not None
            else max(0, stats.round_half_up(s.active_minutes * 0.3))
        )
        row.very_active_minutes = (
            s.very_active_minutes
            if s.very_active_minutes is not None
            else max(0, s.active_minutes - row.lightly_active_minutes - row.fairly_active_minutes)
        )
    for sl in sleeps:
        row = by_day.get(sl.date)
        if row is not None:
            row.minutes_asleep = sl.minutes_asleep
    for z in zones:
        row = by_day.get(z.date)
        if row is None:
            continue
        row.zone2_minutes = z.zone2_minutes
        row.cardio_minutes = z.cardio_minutes or 0
        row.peak_minutes = z.peak_minutes or 0

    return [by_day[d] for d in sorted(by_day)]


def count_workout_days(logs: Sequence[ActivityLogEntry], today: date) -> int:
    """Distinct days with a logged activity in the current calendar week."""
    start = stats.week_start(today)
    return len({a.start_time.date() for a in logs if start <= a.start_time.date() <= today})


def coach_notes(
    zone2: int,
    easy_pct: int,
    hard_pct: int,
    sedentary_hours: float,
    high_intensity_days: int,
) -> list[str]:
    notes: list[str] = []
    if zone2 < ZONE2_LOW:
        notes.append(
            f"Zone 2 volume is {zone2}m this week. Push toward 150-300m for aerobic base."
        )
    if hard_pct > HARD_PCT_LIMIT:
        notes.append(
            f"Intensity split is {easy_pct}/{hard_pct}. "
            "Shift next sessions to easy effort to stay near 80/20."
        )
    if sedentary_hours > SEDENTARY_HOURS_LIMIT:
        notes.append(
            f"Sedentary time is {sedentary_hours:g}h/day. "
            "Add short movement breaks every 60-90 minutes."
        )
    if high_intensity_days > HIGH_INTENSITY_DAYS_LIMIT:
        notes.append("High-intensity load appears elevated this week. Keep hard days to 1-3 weekly.")
    if not notes:
        notes.append("Conditioning load and intensity split look balanced. Keep your current pattern.")
    return notes


def build_conditioning_insights(
    rows: Sequence[ConditioningRow],
    workout_days: int,
    today: date,
    target_workout_days: int = DEFAULT_TARGET_WORKOUT_DAYS,
) -> ConditioningInsights:
    """Compute the conditioning payload.

    Args:
        rows: Merged daily rows in date order (typically 14); the last 7
            form the weekly window.
        workout_days: Distinct workout days in the current calendar week.
        today: Reference date (the plan starts tomorrow).
        target_workout_days: Weekly workout-day goal.
    """
    week = list(rows)[-7:]

    active = sum(r.active_minutes for r in week)
    zone2 = sum(r.zone2_minutes for r in week)
    hard = sum(r.hard_minutes for r in week)
    easy = sum(r.lightly_active_minutes + r.zone2_minutes for r in week)
    load = easy + hard

    sedentary_hours = (
        round(sum(r.sedentary_minutes for r in week) / len(week) / 60.0, 1) if week else 0.0
    )
    high_intensity_days = sum(1 for r in week if r.hard_minutes >= HIGH_INTENSITY_DAY_MINUTES)
    easy_pct = stats.pct(easy, load)
    hard_pct = stats.pct(hard, load)

    suggested_easy = max(0, ZONE2_PLAN_TARGET - zone2)
    hard_cap = max(HARD_CAP_FLOOR, stats.round_half_up((active + hard) * HARD_CAP_FRACTION))
    plan_days = [stats.day_label(today + timedelta(days=i)) for i in (1, 2, 3)]
    sessions = [
        {"day": plan_days[0], "type": "easy", "minutes": max(30, math.ceil(suggested_easy / 2) or 30)},
        {"day": plan_days[1], "type": "easy", "minutes": max(25, math.ceil(suggested_easy / 2) or 25)},
        {"day": plan_days[2], "type": "hard", "minutes": min(HARD_SESSION_MAX_MINUTES, hard_cap)},
    ]

    return ConditioningInsights(
        weekly={
            "active_minutes": active,
            "avg_daily_active_minutes": stats.round_half_up(active / len(week)) if week else 0,
            "sedentary_hours": sedentary_hours,
            "zone2_minutes": zone2,
            "hard_minutes": hard,
            "easy_minutes": easy,
            "easy_pct": easy_pct,
            "hard_pct": hard_pct,
            "high_intensity_days": high_intensity_days,
            "zone2_status": zone2_status(zone2),
        },
        adherence={
            "workout_days": workout_days,
            "target_workout_days": target_workout_days,
            "adherence_pct": min(100, stats.pct(workout_days, target_workout_days)),
            "remaining_workout_days": max(0, target_workout_days - workout_days),
        },
        polarized_plan={
            "suggested_easy_minutes": suggested_easy,
            "suggested_hard_minutes_cap": hard_cap,
            "sessions": sessions,
        },
        coach_notes=coach_notes(zone2, easy_pct, hard_pct, sedentary_hours, high_intensity_days),
    )


def build_demo_conditioning_insights(
    days: Sequence[DayDashboard],
    today: date,
    target_workout_days: int = DEFAULT_TARGET_WORKOUT_DAYS,
) -> ConditioningInsights:
    """Same payload, derived from a synthetic calendar."""
    past = sorted((d for d in days if d.day <= today), key=lambda d: d.date)
    rows = [
        ConditioningRow(
            date=d.day,
            active_minutes=d.active_minutes,
            sedentary_minutes=d.sedentary_minutes,
            lightly_active_minutes=d.lightly_active_minutes,
            fairly_active_minutes=d.fairly_active_minutes,
            very_active_minutes=d.very_active_minutes,
            minutes_asleep=d.sleep_minutes,
            zone2_minutes=d.zone2_minutes,
            cardio_minutes=d.cardio_minutes,
            peak_minutes=d.peak_minutes,
        )
        for d in past[-LOOKBACK_DAYS:]
    ]
    logs = [a for d in past for a in d.activities]
    return build_conditioning_insights(rows, count_workout_days(logs, today), today, target_workout_days)
