"""Live entry points: read rows from a store, then run a pure calculator.

Each function reads the clock at most once (``today`` defaults to
``date.today()``) and fetches its independent row sets concurrently.  A
:class:`~pulsecoach.store.StoreError` from any read propagates unchanged.

The ``demo`` helper at the bottom serves the same payload shapes from a
synthetic calendar, with no store access.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Any, Callable

from pulsecoach import alerts
from pulsecoach.analytics import (
    calendar,
    conditioning,
    goals,
    recovery,
    rhr_zone2,
    sleep,
    stats,
    steps,
    trends,
)
from pulsecoach.models import WeeklyGoals
from pulsecoach.store import Store

logger = logging.getLogger(__name__)

MAX_WORKERS = 4


def fetch_all(**reads: Callable[[], Any]) -> dict[str, Any]:
    """Run independent reads in parallel and return results by name."""
    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(reads)) or 1) as pool:
        futures = {name: pool.submit(fn) for name, fn in reads.items()}
        return {name: fut.result() for name, fut in futures.items()}


def _since(today: date, days: int) -> tuple[date, date]:
    return stats.window_bounds(today, days)


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------


def step_insights(store: Store, user_id: str, today: date | None = None) -> steps.StepInsights:
    today = today or date.today()
    rows = fetch_all(
        summaries=lambda: store.activity_summaries(user_id, *_since(today, steps.SUMMARY_LOOKBACK_DAYS)),
        logs=lambda: store.activity_logs(user_id, *_since(today, steps.ACTIVITY_LOOKBACK_DAYS)),
        goals=lambda: store.weekly_goals(user_id),
    )
    return steps.build_step_insights(rows["summaries"], rows["logs"], rows["goals"].avg_steps_target, today)


def sleep_insights(store: Store, user_id: str, today: date | None = None) -> sleep.SleepInsights:
    today = today or date.today()
    rows = fetch_all(
        sleeps=lambda: store.sleep_records(user_id, *_since(today, sleep.LOOKBACK_DAYS)),
        goals=lambda: store.weekly_goals(user_id),
    )
    g = rows["goals"]
    return sleep.build_sleep_insights(rows["sleeps"], g.avg_sleep_target_hours, g.sleep_score_mode, today)


def conditioning_insights(
    store: Store, user_id: str, today: date | None = None
) -> conditioning.ConditioningInsights:
    today = today or date.today()
    window = _since(today, conditioning.LOOKBACK_DAYS)
    rows = fetch_all(
        summaries=lambda: store.activity_summaries(user_id, *window),
        sleeps=lambda: store.sleep_records(user_id, *window),
        zones=lambda: store.heart_zones(user_id, *window),
        logs=lambda: store.activity_logs(user_id, stats.week_start(today), today),
    )
    merged = conditioning.merge_rows(rows["summaries"], rows["sleeps"], rows["zones"], today)
    return conditioning.build_conditioning_insights(
        merged, conditioning.count_workout_days(rows["logs"], today), today
    )


def rhr_zone2_insights(store: Store, user_id: str, today: date | None = None) -> rhr_zone2.RhrZone2Insights:
    today = today or date.today()
    rows = fetch_all(
        zones=lambda: store.heart_zones(user_id, *_since(today, rhr_zone2.HEART_LOOKBACK_DAYS)),
        sleeps=lambda: store.sleep_records(user_id, *_since(today, rhr_zone2.SLEEP_LOOKBACK_DAYS)),
    )
    return rhr_zone2.build_rhr_zone2_insights(rows["zones"], rows["sleeps"], today)


def recovery_signals(store: Store, user_id: str, today: date | None = None) -> recovery.RecoverySignals:
    today = today or date.today()
    rows = store.recovery_biomarkers(user_id, *_since(today, recovery.LOOKBACK_DAYS))
    return recovery.build_recovery_signals(rows, today)


def _trend_rows(store: Store, user_id: str, today: date, days: int) -> dict[str, Any]:
    window = _since(today, days)
    return fetch_all(
        summaries=lambda: store.activity_summaries(user_id, *window),
        sleeps=lambda: store.sleep_records(user_id, *window),
        zones=lambda: store.heart_zones(user_id, *window),
    )


def trend_payload(store: Store, user_id: str, today: date | None = None) -> trends.TrendPayload:
    today = today or date.today()
    rows = _trend_rows(store, user_id, today, trends.TREND_LOOKBACK_DAYS)
    return trends.build_trends(rows["summaries"], rows["sleeps"], rows["zones"], today)


def correlation_insights(
    store: Store, user_id: str, today: date | None = None
) -> list[trends.CorrelationInsight]:
    today = today or date.today()
    rows = _trend_rows(store, user_id, today, trends.CORRELATION_LOOKBACK_DAYS)
    return trends.build_correlation_insights(rows["summaries"], rows["sleeps"], rows["zones"], today)


def weekly_summary(store: Store, user_id: str, today: date | None = None) -> goals.WeeklySummary:
    today = today or date.today()
    rows = _trend_rows(store, user_id, today, 7)
    return goals.build_weekly_summary(rows["summaries"], rows["sleeps"], rows["zones"], today)


def goals_payload(store: Store, user_id: str, today: date | None = None) -> goals.GoalsPayload:
    today = today or date.today()
    return goals.build_goals_payload(weekly_summary(store, user_id, today), store.weekly_goals(user_id))


def calendar_payload(
    store: Store, user_id: str, month: str | None = None, today: date | None = None
) -> calendar.CalendarPayload:
    today = today or date.today()
    start, end = calendar.grid_bounds(calendar.parse_month(month, today))
    start = min(start, today - timedelta(days=6))
    end = max(end, today)
    rows = fetch_all(
        summaries=lambda: store.activity_summaries(user_id, start, end),
        sleeps=lambda: store.sleep_records(user_id, start, end),
        zones=lambda: store.heart_zones(user_id, start, end),
        logs=lambda: store.activity_logs(user_id, start, end),
        goals=lambda: store.weekly_goals(user_id),
    )
    g = rows["goals"]
    return calendar.build_calendar(
        month,
        rows["summaries"],
        rows["sleeps"],
        rows["zones"],
        rows["logs"],
        today,
        sleep_goal_hours=g.avg_sleep_target_hours,
        mode=g.sleep_score_mode,
    )


def evaluate_alerts(store: Store, user_id: str, today: date | None = None):
    return alerts.evaluate_alerts(store, user_id, today or date.today())


LIVE: dict[str, Callable[..., Any]] = {
    "steps": step_insights,
    "sleep": sleep_insights,
    "conditioning": conditioning_insights,
    "rhr-zone2": rhr_zone2_insights,
    "recovery": recovery_signals,
    "trends": trend_payload,
    "correlations": correlation_insights,
    "goals": goals_payload,
    "calendar": calendar_payload,
}


# ---------------------------------------------------------------------------
# Demo payloads
# ---------------------------------------------------------------------------

# Synthetic history needed by each demo calculator
DEMO_HISTORY_DAYS = {
    "steps": steps.SUMMARY_LOOKBACK_DAYS,
    "sleep": sleep.LOOKBACK_DAYS,
    "conditioning": conditioning.LOOKBACK_DAYS,
    "rhr-zone2": rhr_zone2.HEART_LOOKBACK_DAYS,
    "recovery": recovery.LOOKBACK_DAYS,
    "trends": trends.TREND_LOOKBACK_DAYS,
    "correlations": trends.CORRELATION_LOOKBACK_DAYS,
    "goals": 7,
    "calendar": 0,
}

DEMO_CALCULATORS = tuple(DEMO_HISTORY_DAYS)


def demo(
    name: str,
    today: date,
    month: str | None = None,
    user_goals: WeeklyGoals | None = None,
) -> Any:
    """Demo payload ``name`` for ``today``, built from a synthetic calendar.

    ``month`` only selects the grid of the ``calendar`` demo; the other
    calculators always read history ending at ``today``.
    """
    if name not in DEMO_HISTORY_DAYS:
        raise ValueError(f"unknown calculator {name!r}; expected one of {', '.join(DEMO_CALCULATORS)}")
    g = user_goals or WeeklyGoals()

    cal = calendar.build_demo_calendar(
        month if name == "calendar" else None,
        today,
        sleep_goal_hours=g.avg_sleep_target_hours,
        mode=g.sleep_score_mode,
        history_days=DEMO_HISTORY_DAYS[name],
    )
    if name == "calendar":
        return cal

    days = cal.days
    builders: dict[str, Callable[[], Any]] = {
        "steps": lambda: steps.build_demo_step_insights(days, g.avg_steps_target, today),
        "sleep": lambda: sleep.build_demo_sleep_insights(
            days, g.avg_sleep_target_hours, g.sleep_score_mode, today
        ),
        "conditioning": lambda: conditioning.build_demo_conditioning_insights(days, today),
        "rhr-zone2": lambda: rhr_zone2.build_demo_rhr_zone2_insights(days, today),
        "recovery": lambda: recovery.build_demo_recovery_signals(days, today),
        "trends": lambda: trends.build_demo_trends(days, today),
        "correlations": lambda: trends.build_demo_correlation_insights(days, today),
        "goals": lambda: goals.build_goals_payload(cal.weekly_summary, g),
    }
    logger.debug("building demo %s for %s from %d synthetic days", name, today, len(days))
    return builders[name]()
