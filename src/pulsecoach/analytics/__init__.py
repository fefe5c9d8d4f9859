"""Pure analytics engine over daily wearable rows.

Every entry point takes an explicit ``today`` and already-fetched rows; none
touches a store or the clock.

Modules:
    stats         -- Rounding, windows, trend deltas, streaks, correlation
    sleep_score   -- Nightly sleep score with duration/depth/restoration
    steps         -- Weekly pacing, streaks, peak windows, coaching
    sleep         -- Consistency, sleep debt, stage trends, smart flags
    conditioning  -- Zone 2 load, polarized intensity, weekly plan
    rhr_zone2     -- Resting-HR baseline, readiness, Zone 2 planner
    recovery      -- Sparse premium biomarkers (VO2, HRV, SpO2, ...)
    trends        -- 7/30/90-day trends and correlation insights
    goals         -- Weekly summary, goal progress and nudges
    calendar      -- Month grid of merged days, live or synthetic
"""

from pulsecoach.analytics.stats import (
    round_half_up,
    average,
    stddev,
    window_bounds,
    trend_metric,
    TrendMetric,
    current_streak,
    best_streak,
    pearson,
)
from pulsecoach.analytics.sleep_score import (
    SleepScoreInput,
    SleepScoreBreakdown,
    calculate_sleep_score,
    calculate_sleep_score_detailed,
    score_record,
)
from pulsecoach.analytics.steps import (
    build_step_insights,
    build_demo_step_insights,
    StepInsights,
)
from pulsecoach.analytics.sleep import (
    build_sleep_insights,
    build_demo_sleep_insights,
    SleepInsights,
)
from pulsecoach.analytics.conditioning import (
    build_conditioning_insights,
    build_demo_conditioning_insights,
    ConditioningInsights,
)
from pulsecoach.analytics.rhr_zone2 import (
    build_rhr_zone2_insights,
    build_demo_rhr_zone2_insights,
    RhrZone2Insights,
)
from pulsecoach.analytics.recovery import (
    build_recovery_signals,
    build_demo_recovery_signals,
    RecoverySignals,
)
from pulsecoach.analytics.trends import (
    build_trends,
    build_demo_trends,
    build_correlation_insights,
    build_demo_correlation_insights,
    TrendPayload,
    CorrelationInsight,
)
from pulsecoach.analytics.goals import (
    build_weekly_summary,
    build_goals_payload,
    WeeklySummary,
    GoalsPayload,
)
from pulsecoach.analytics.calendar import (
    build_calendar,
    build_demo_calendar,
    CalendarPayload,
)

__all__ = [
    # stats
    "round_half_up",
    "average",
    "stddev",
    "window_bounds",
    "trend_metric",
    "TrendMetric",
    "current_streak",
    "best_streak",
    "pearson",
    # sleep_score
    "SleepScoreInput",
    "SleepScoreBreakdown",
    "calculate_sleep_score",
    "calculate_sleep_score_detailed",
    "score_record",
    # steps
    "build_step_insights",
    "build_demo_step_insights",
    "StepInsights",
    # sleep
    "build_sleep_insights",
    "build_demo_sleep_insights",
    "SleepInsights",
    # conditioning
    "build_conditioning_insights",
    "build_demo_conditioning_insights",
    "ConditioningInsights",
    # rhr_zone2
    "build_rhr_zone2_insights",
    "build_demo_rhr_zone2_insights",
    "RhrZone2Insights",
    # recovery
    "build_recovery_signals",
    "build_demo_recovery_signals",
    "RecoverySignals",
    # trends
    "build_trends",
    "build_demo_trends",
    "build_correlation_insights",
    "build_demo_correlation_insights",
    "TrendPayload",
    "CorrelationInsight",
    # goals
    "build_weekly_summary",
    "build_goals_payload",
    "WeeklySummary",
    "GoalsPayload",
    # calendar
    "build_calendar",
    "build_demo_calendar",
    "CalendarPayload",
]
