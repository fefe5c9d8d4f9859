"""Step pacing, streaks and coaching.

Inputs are ~120 days of daily step totals and ~14 days of activity log
entries.  Weekly figures use the current calendar week (Sunday start).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import ActivityLogEntry, DailyActivitySummary, DayDashboard

SUMMARY_LOOKBACK_DAYS = 120
ACTIVITY_LOOKBACK_DAYS = 14

# Pacing band, as a fraction of the daily target
PACING_TOLERANCE = 0.2

# Remaining steps today above which coaching suggests a dedicated walk
WALK_PROMPT_THRESHOLD = 1500

MORNING_END_HOUR = 12
AFTERNOON_END_HOUR = 17


@dataclass
class WeeklyPacing:
    target_total: int
    current_total: int
    expected_by_today: int
    status: str  # "ahead" | "on_track" | "behind"
    gap: int


@dataclass
class PeakWindow:
    label: str
    steps: int
    pace: float  # steps per minute


@dataclass
class StepInsights:
    daily_target: int
    today_steps: int
    weekly_pacing: WeeklyPacing
    streaks: dict[str, Any]
    peak_windows: list[PeakWindow]
    distribution: dict[str, int]
    coaching: dict[str, Any]
    progression_plan: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Pieces
# ---------------------------------------------------------------------------


def weekly_pacing(
    rows: Sequence[DailyActivitySummary],
    daily_target: int,
    today: date,
) -> WeeklyPacing:
    start = stats.week_start(today)
    current_total = sum(r.steps for r in stats.rows_between(rows, start, today))
    expected = daily_target * stats.days_elapsed_in_week(today)
    gap = current_total - expected

    status = "on_track"
    if gap > daily_target * PACING_TOLERANCE:
        status = "ahead"
    elif gap < -daily_target * PACING_TOLERANCE:
        status = "behind"

    return WeeklyPacing(
        target_total=daily_target * 7,
        current_total=current_total,
        expected_by_today=expected,
        status=status,
        gap=gap,
    )


def _time_label(ts: datetime) -> str:
    """``"Mon 7:05 AM"``."""
    hour12 = ts.hour % 12 or 12
    suffix = "AM" if ts.hour < 12 else "PM"
    return f"{ts:%a} {hour12}:{ts:%M} {suffix}"


def peak_windows(activities: Sequence[ActivityLogEntry], top: int = 3) -> list[PeakWindow]:
    """Top activities by step count, with their pace in steps/minute."""
    candidates = [
        a for a in activities
        if (a.steps or 0) > 0 and a.duration_minutes > 0
    ]
    candidates.sort(key=lambda a: a.steps or 0, reverse=True)
    return [
        PeakWindow(
            label=_time_label(a.start_time),
            steps=int(a.steps or 0),
            pace=round(a.steps / a.duration_minutes, 1),
        )
        for a in candidates[:top]
    ]


def time_of_day_distribution(activities: Sequence[ActivityLogEntry]) -> dict[str, int]:
    """Share of logged activity steps by start hour (percent, rounded)."""
    totals = {"morning": 0, "afternoon": 0, "evening": 0}
    for a in activities:
        steps = a.steps or 0
        if not steps:
            continue
        hour = a.start_time.hour
        if hour < MORNING_END_HOUR:
            totals["morning"] += steps
        elif hour < AFTERNOON_END_HOUR:
            totals["afternoon"] += steps
        else:
            totals["evening"] += steps

    total = sum(totals.values())
    if total == 0:
        return totals
    return {k: stats.pct(v, total) for k, v in totals.items()}


def coaching(
    pacing: WeeklyPacing,
    daily_target: int,
    today_steps: int,
    today: date,
) -> dict[str, Any]:
    remaining_days = max(1, stats.days_left_in_week(today))
    remaining_weekly = max(0, pacing.target_total - pacing.current_total)
    today_target = max(daily_target, math.ceil(remaining_weekly / remaining_days))
    remaining_today = max(0, today_target - today_steps)

    if remaining_today > WALK_PROMPT_THRESHOLD:
        message = f"Need {remaining_today:,} more steps today. Add a 20-30 minute walk."
    elif remaining_today > 0:
        message = f"Need {remaining_today:,} more steps to hit today's coaching target."
    else:
        message = "You are on track. Keep your usual walking routine."

    return {"today_target": today_target, "message": message}


def progression_plan(
    pacing: WeeklyPacing,
    daily_target: int,
    today: date,
) -> list[dict[str, Any]]:
    """Per-day targets for the days after today in the current week."""
    remaining_days = stats.days_left_in_week(today) - 1
    if remaining_days <= 0:
        return []
    remaining = max(0, pacing.target_total - pacing.current_total)
    per_day = max(daily_target, math.ceil(remaining / remaining_days))
    return [
        {"day": stats.day_label(today + timedelta(days=i)), "target": per_day}
        for i in range(1, remaining_days + 1)
    ]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def build_step_insights(
    summaries: Sequence[DailyActivitySummary],
    activities: Sequence[ActivityLogEntry],
    daily_target: int,
    today: date,
) -> StepInsights:
    """Compute the step insights payload.

    Args:
        summaries: Daily step rows (typically the last 120 days).
        activities: Activity log entries (typically the last 14 days).
        daily_target: Steps per day goal.
        today: Reference date.
    """
    daily = {r.date: r.steps for r in summaries}
    today_steps = daily.get(today, 0)
    pacing = weekly_pacing(summaries, daily_target, today)
    last = stats.last_break(daily, daily_target, today)

    return StepInsights(
        daily_target=daily_target,
        today_steps=today_steps,
        weekly_pacing=pacing,
        streaks={
            "current": stats.current_streak(daily, daily_target, today),
            "best": stats.best_streak(daily, daily_target),
            "last_break": last.isoformat() if last else None,
        },
        peak_windows=peak_windows(activities),
        distribution=time_of_day_distribution(activities),
        coaching=coaching(pacing, daily_target, today_steps, today),
        progression_plan=progression_plan(pacing, daily_target, today),
    )


def build_demo_step_insights(
    days: Sequence[DayDashboard],
    daily_target: int,
    today: date,
) -> StepInsights:
    """Same payload, derived from a synthetic calendar."""
    past = sorted((d for d in days if d.day <= today), key=lambda d: d.date)
    summaries = [
        DailyActivitySummary(date=d.day, steps=d.steps)
        for d in past[-SUMMARY_LOOKBACK_DAYS:]
    ]
    cutoff = today - timedelta(days=ACTIVITY_LOOKBACK_DAYS)
    activities = [a for d in past if d.day >= cutoff for a in d.activities]
    return build_step_insights(summaries, activities, daily_target, today)
