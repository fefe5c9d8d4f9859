"""Weekly goal progress and nudges."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import (
    DailyActivitySummary,
    DailyHeartZones,
    DailySleepRecord,
    WeeklyGoals,
)

SLEEP_NUDGE_HOURS = 0.15
STEPS_NUDGE = 350


@dataclass
class WeeklySummary:
    """Trailing-7-day totals shown next to the calendar."""

    total_zone2_minutes: int = 0
    average_sleep_hours: float = 0.0
    average_steps: int = 0
    average_active_minutes: int = 0
    average_sedentary_hours: float = 0.0
    zone2_days_count: int = 0


@dataclass
class GoalProgress:
    label: str
    unit: str
    current: float
    target: float
    percent: int
    remaining: float


@dataclass
class GoalsPayload:
    goals: WeeklyGoals
    progress: list[GoalProgress] = field(default_factory=list)
    nudges: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["goals"] = self.goals.to_dict()
        return d


def build_weekly_summary(
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    today: date,
) -> WeeklySummary:
    start, end = stats.window_bounds(today, 7)
    act = stats.rows_between(summaries, start, end)
    slp = stats.rows_between(sleeps, start, end)
    zn = stats.rows_between(zones, start, end)

    return WeeklySummary(
        total_zone2_minutes=sum(z.zone2_minutes for z in zn),
        average_sleep_hours=stats.average(s.minutes_asleep for s in slp) / 60.0,
        average_steps=stats.round_half_up(stats.average(a.steps for a in act)),
        average_active_minutes=stats.round_half_up(stats.average(a.active_minutes for a in act)),
        average_sedentary_hours=round(stats.average(a.sedentary_minutes for a in act) / 60.0, 1),
        zone2_days_count=sum(1 for z in zn if z.zone2_minutes > 0),
    )


def _percent(current: float, target: float) -> int:
    if target <= 0:
        return 0
    return min(100, stats.round_half_up(current / target * 100.0))


def goal_progress(summary: WeeklySummary, goals: WeeklyGoals) -> list[GoalProgress]:
    rows = [
        ("Zone 2 this week", "m", summary.total_zone2_minutes, goals.zone2_target_minutes),
        ("Avg sleep", "h", summary.average_sleep_hours, goals.avg_sleep_target_hours),
        ("Avg steps", "steps", summary.average_steps, goals.avg_steps_target),
    ]
    return [
        GoalProgress(
            label=label,
            unit=unit,
            current=current,
            target=target,
            percent=_percent(current, target),
            remaining=max(0, target - current),
        )
        for label, unit, current, target in rows
    ]


def goal_nudges(summary: WeeklySummary, goals: WeeklyGoals) -> list[str]:
    nudges: list[str] = []

    zone2_gap = goals.zone2_target_minutes - summary.total_zone2_minutes
    if zone2_gap > 0:
        nudges.append(f"Need {zone2_gap} more Zone 2 minutes this week. Try 2 to 3 brisk sessions.")

    sleep_gap = goals.avg_sleep_target_hours - summary.average_sleep_hours
    if sleep_gap > SLEEP_NUDGE_HOURS:
        nudges.append(
            f"Add about {stats.round_half_up(sleep_gap * 60)} minutes/night to hit your sleep goal."
        )

    steps_gap = goals.avg_steps_target - summary.average_steps
    if steps_gap > STEPS_NUDGE:
        nudges.append(
            f"Increase by about {steps_gap:,} steps/day to reach your weekly step target."
        )

    if not nudges:
        nudges.append("All weekly goals are on track. Keep your routine consistent.")
    return nudges


def build_goals_payload(summary: WeeklySummary, goals: WeeklyGoals) -> GoalsPayload:
    return GoalsPayload(
        goals=goals,
        progress=goal_progress(summary, goals),
        nudges=goal_nudges(summary, goals),
    )
