"""Resting-HR baseline, readiness score and a Zone 2 session planner."""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import DailyHeartZones, DailySleepRecord, DayDashboard

HEART_LOOKBACK_DAYS = 30
SLEEP_LOOKBACK_DAYS = 7

TARGET_ZONE2_DAYS = 5
WEEKLY_ZONE2_MINUTES = 150
MIN_SESSION_MINUTES = 20

# Readiness deductions
RHR_DELTA_LIMIT = 3.0
RHR_PENALTY = 30
SLEEP_HOURS_LIMIT = 6.5
SLEEP_PENALTY = 25
ZONE2_3DAY_LIMIT = 120
LOAD_PENALTY = 15


@dataclass
class RhrBaseline:
    rhr7d: float | None
    rhr30d: float | None
    today_rhr: float | None
    delta_vs_30d: float | None
    status: str  # "improving" | "stable" | "elevated" | "unknown"


@dataclass
class Readiness:
    score: int
    label: str  # "High" | "Moderate" | "Low"
    reasons: list[str]


@dataclass
class Zone2Planner:
    target_zone2_days: int
    completed_zone2_days: int
    remaining_days: int
    suggested_sessions: list[dict[str, Any]]


@dataclass
class RhrZone2Insights:
    baseline: RhrBaseline
    readiness: Readiness
    planner: Zone2Planner

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def rhr_status(delta: float | None) -> str:
    if delta is None:
        return "unknown"
    if delta <= -2:
        return "improving"
    if delta >= 2:
        return "elevated"
    return "stable"


def readiness_label(score: int) -> str:
    if score >= 75:
        return "High"
    if score >= 50:
        return "Moderate"
    return "Low"


def score_readiness(
    delta_vs_30d: float | None,
    avg_sleep_hours: float | None,
    zone2_last3: float,
) -> Readiness:
    """Start at 100 and deduct for elevated RHR, short sleep and recent load."""
    score = 100
    reasons: list[str] = []

    if delta_vs_30d is not None and delta_vs_30d > RHR_DELTA_LIMIT:
        score -= RHR_PENALTY
        reasons.append(f"RHR is up {delta_vs_30d:.1f} bpm vs 30d baseline.")
    if avg_sleep_hours is not None and avg_sleep_hours < SLEEP_HOURS_LIMIT:
        score -= SLEEP_PENALTY
        reasons.append(f"Recent sleep average is {avg_sleep_hours:.1f}h.")
    if zone2_last3 > ZONE2_3DAY_LIMIT:
        score -= LOAD_PENALTY
        reasons.append("High Zone2 load in the last 3 days.")

    score = max(0, min(100, score))
    if not reasons:
        reasons.append("RHR, sleep, and recent load look balanced.")
    return Readiness(score=score, label=readiness_label(score), reasons=reasons)


def plan_zone2(week: Sequence[DailyHeartZones], today: date) -> Zone2Planner:
    """Spread the remaining weekly Zone 2 volume over the days left this week."""
    completed = sum(1 for r in week if r.zone2_minutes > 0)
    remaining = max(0, TARGET_ZONE2_DAYS - completed)
    remaining_days = max(1, stats.days_left_in_week(today))
    weekly_total = sum(r.zone2_minutes for r in week)

    per_session = 0
    if remaining > 0:
        per_session = max(
            MIN_SESSION_MINUTES,
            math.ceil((WEEKLY_ZONE2_MINUTES - weekly_total) / remaining),
        )

    sessions = [
        {"day": stats.day_label(today + timedelta(days=i + 1)), "minutes": per_session}
        for i in range(min(remaining, remaining_days))
    ]
    return Zone2Planner(
        target_zone2_days=TARGET_ZONE2_DAYS,
        completed_zone2_days=completed,
        remaining_days=remaining_days,
        suggested_sessions=sessions,
    )


def build_rhr_zone2_insights(
    heart_rows: Sequence[DailyHeartZones],
    sleep_rows: Sequence[DailySleepRecord],
    today: date,
) -> RhrZone2Insights:
    """Compute the RHR / Zone 2 payload.

    Args:
        heart_rows: Heart-zone rows for the last 30 days.
        sleep_rows: Sleep rows for the last 7 days.
        today: Reference date.
    """
    rows30 = stats.rows_between(heart_rows, *stats.window_bounds(today, HEART_LOOKBACK_DAYS))
    rows7 = stats.rows_between(heart_rows, *stats.window_bounds(today, 7))
    sleep7 = stats.rows_between(sleep_rows, *stats.window_bounds(today, SLEEP_LOOKBACK_DAYS))

    rhr7d = stats.mean_or_none(r.resting_heart_rate for r in rows7)
    rhr30d = stats.mean_or_none(r.resting_heart_rate for r in rows30)
    today_rhr = next((r.resting_heart_rate for r in rows30 if r.date == today), None)
    delta = today_rhr - rhr30d if today_rhr is not None and rhr30d is not None else None

    avg_sleep_hours = stats.mean_or_none(r.minutes_asleep / 60.0 for r in sleep7)
    zone2_last3 = sum(r.zone2_minutes for r in stats.rows_between(rows30, *stats.window_bounds(today, 3)))

    return RhrZone2Insights(
        baseline=RhrBaseline(
            rhr7d=stats.round1(rhr7d),
            rhr30d=stats.round1(rhr30d),
            today_rhr=today_rhr,
            delta_vs_30d=stats.round1(delta),
            status=rhr_status(delta),
        ),
        readiness=score_readiness(delta, avg_sleep_hours, zone2_last3),
        planner=plan_zone2(rows7, today),
    )


def build_demo_rhr_zone2_insights(days: Sequence[DayDashboard], today: date) -> RhrZone2Insights:
    """Same payload, derived from a synthetic calendar."""
    past = [d for d in days if d.day <= today]
    heart = [
        DailyHeartZones(
            date=d.day,
            zone2_minutes=d.zone2_minutes,
            cardio_minutes=d.cardio_minutes,
            peak_minutes=d.peak_minutes,
            out_of_range_minutes=d.out_of_range_minutes,
            resting_heart_rate=d.resting_heart_rate,
        )
        for d in past
    ]
    sleeps = [
        DailySleepRecord(date=d.day, minutes_asleep=d.sleep_minutes)
        for d in past
        if d.sleep is not None
    ]
    return build_rhr_zone2_insights(heart, sleeps, today)
