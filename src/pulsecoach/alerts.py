"""Rule-based alert evaluation.

The evaluator builds one :class:`AlertSnapshot` of weekly aggregates, runs
every rule in :data:`RULES` against it, and upserts one
:class:`~pulsecoach.models.AlertEvent` per firing rule, keyed by
``(user_id, today, rule type)``.  Rules that do not fire leave existing
rows untouched; resolution is a separate, manual path
(:func:`resolve_alert`).

Windows, relative to ``today``:
    week            [today-6, today]
    prior week      [today-13, today-7]   (bedtime and REM only)
    current RHR     [today-2, today]
    baseline RHR    [today-16, today-3]
    recent sleeps   [today-20, today]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import (
    AlertEvent,
    AlertPreference,
    DailyActivitySummary,
    DailyHeartZones,
    DailySleepRecord,
    Severity,
)
from pulsecoach.store import Store

logger = logging.getLogger(__name__)

RECENT_SLEEP_DAYS = 21
BASELINE_HR_START = 16
BASELINE_HR_END = 3
CURRENT_HR_DAYS = 3

HIGH_ZONE2_LOAD = 180
POOR_SLEEP_NIGHTS = 3
BEDTIME_DRIFT_MINUTES = 45
REM_DROP_RATIO = 0.85


@dataclass
class AlertCandidate:
    type: str
    severity: Severity
    message: str


@dataclass
class AlertSnapshot:
    """Aggregates shared by every rule."""

    avg_sleep_hours: float = 0.0
    avg_steps: float = 0.0
    zone2_days: int = 0
    zone2_total: int = 0
    current_hr: float = 0.0
    baseline_hr: float = 0.0
    last_nights: list[int] = field(default_factory=list)  # newest first
    bedtime_avg: float = 0.0
    prior_bedtime_avg: float = 0.0
    rem_avg: float = 0.0
    prior_rem_avg: float = 0.0

    @property
    def rhr_delta(self) -> float:
        return self.current_hr - self.baseline_hr


def build_snapshot(
    summaries: Sequence[DailyActivitySummary],
    sleeps: Sequence[DailySleepRecord],
    zones: Sequence[DailyHeartZones],
    today: date,
) -> AlertSnapshot:
    """Aggregate raw rows (any range covering the last 21 days)."""
    week = stats.window_bounds(today, 7)
    prior_week = stats.window_bounds(today, 7, offset=1)

    week_sleeps = stats.rows_between(sleeps, *week)
    prior_sleeps = stats.rows_between(sleeps, *prior_week)
    week_zones = stats.rows_between(zones, *week)
    current_hr = stats.rows_between(zones, *stats.window_bounds(today, CURRENT_HR_DAYS))
    baseline_hr = stats.rows_between(
        zones, today - timedelta(days=BASELINE_HR_START), today - timedelta(days=BASELINE_HR_END)
    )
    recent = stats.rows_between(sleeps, *stats.window_bounds(today, RECENT_SLEEP_DAYS))
    recent = sorted(recent, key=lambda r: r.date, reverse=True)

    def _bedtimes(rows: Sequence[DailySleepRecord]) -> list[int]:
        return [stats.clock_minutes(r.sleep_start, for_bedtime=True) for r in rows if r.sleep_start]

    return AlertSnapshot(
        avg_sleep_hours=stats.average(r.minutes_asleep for r in week_sleeps) / 60.0,
        avg_steps=stats.average(r.steps for r in stats.rows_between(summaries, *week)),
        zone2_days=sum(1 for r in week_zones if r.zone2_minutes > 0),
        zone2_total=sum(r.zone2_minutes for r in week_zones),
        current_hr=stats.average(
            r.resting_heart_rate for r in current_hr if r.resting_heart_rate is not None
        ),
        baseline_hr=stats.average(
            r.resting_heart_rate for r in baseline_hr if r.resting_heart_rate is not None
        ),
        last_nights=[r.minutes_asleep for r in recent[:POOR_SLEEP_NIGHTS]],
        bedtime_avg=stats.average(_bedtimes(week_sleeps)),
        prior_bedtime_avg=stats.average(_bedtimes(prior_sleeps)),
        rem_avg=stats.average(r.rem_minutes for r in week_sleeps if r.rem_minutes is not None),
        prior_rem_avg=stats.average(r.rem_minutes for r in prior_sleeps if r.rem_minutes is not None),
    )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

Rule = Callable[[AlertSnapshot, AlertPreference], "AlertCandidate | None"]


def _sleep_short(snap: AlertSnapshot, prefs: AlertPreference) -> bool:
    return 0 < snap.avg_sleep_hours < prefs.min_sleep_hours


def _rhr_elevated(snap: AlertSnapshot, prefs: AlertPreference) -> bool:
    return snap.baseline_hr > 0 and snap.rhr_delta >= prefs.max_resting_hr_delta


def low_sleep(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    if not _sleep_short(snap, prefs):
        return None
    return AlertCandidate(
        "low_sleep",
        Severity.MEDIUM,
        f"Average sleep is {snap.avg_sleep_hours:.1f}h, below target {prefs.min_sleep_hours:.1f}h.",
    )


def low_steps(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    if not 0 < snap.avg_steps < prefs.min_avg_steps:
        return None
    return AlertCandidate(
        "low_steps",
        Severity.MEDIUM,
        f"Average steps are {stats.round_half_up(snap.avg_steps):,}, below target {prefs.min_avg_steps:,}.",
    )


def low_zone2_days(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    if snap.zone2_days >= prefs.min_zone2_days:
        return None
    return AlertCandidate(
        "low_zone2_days",
        Severity.LOW,
        f"Zone 2 activity logged on {snap.zone2_days} day(s); target is {prefs.min_zone2_days} day(s).",
    )


def elevated_rhr(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    if not _rhr_elevated(snap, prefs):
        return None
    return AlertCandidate(
        "elevated_rhr",
        Severity.HIGH,
        f"Resting HR is up by {snap.rhr_delta:.1f} bpm vs baseline. Prioritize recovery today.",
    )


def combined_recovery_risk(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    if not (_sleep_short(snap, prefs) and _rhr_elevated(snap, prefs) and snap.zone2_total >= HIGH_ZONE2_LOAD):
        return None
    return AlertCandidate(
        "combined_recovery_risk",
        Severity.HIGH,
        "RHR elevated + low sleep + high Zone2 load. Consider a lighter recovery day.",
    )


def poor_sleep_streak(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    threshold = prefs.min_sleep_hours * 60
    nights = snap.last_nights
    if len(nights) < POOR_SLEEP_NIGHTS or not all(m < threshold for m in nights):
        return None
    return AlertCandidate(
        "poor_sleep_streak",
        Severity.HIGH,
        "Three consecutive low-sleep nights detected. Schedule a recovery night.",
    )


def bedtime_drift(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    if snap.bedtime_avg <= 0 or snap.prior_bedtime_avg <= 0:
        return None
    shift = snap.bedtime_avg - snap.prior_bedtime_avg
    if shift <= BEDTIME_DRIFT_MINUTES:
        return None
    return AlertCandidate(
        "bedtime_drift",
        Severity.MEDIUM,
        f"Bedtime drifted later by {stats.round_half_up(shift)} minutes vs prior week.",
    )


def rem_drop(snap: AlertSnapshot, prefs: AlertPreference) -> AlertCandidate | None:
    prev = snap.prior_rem_avg
    if prev <= 0 or snap.rem_avg >= prev * REM_DROP_RATIO:
        return None
    drop = stats.round_half_up((prev - snap.rem_avg) / prev * 100)
    return AlertCandidate(
        "rem_drop",
        Severity.MEDIUM,
        f"REM sleep dropped by {drop}% vs prior week.",
    )


RULES: list[Rule] = [
    low_sleep,
    low_steps,
    low_zone2_days,
    elevated_rhr,
    combined_recovery_risk,
    poor_sleep_streak,
    bedtime_drift,
    rem_drop,
]


def evaluate_rules(snap: AlertSnapshot, prefs: AlertPreference) -> list[AlertCandidate]:
    """Every candidate that fires, in rule-table order."""
    candidates = []
    for rule in RULES:
        candidate = rule(snap, prefs)
        if candidate is not None:
            logger.debug("rule %s fired: %s", candidate.type, candidate.message)
            candidates.append(candidate)
    return candidates


# ---------------------------------------------------------------------------
# Store-facing entry points
# ---------------------------------------------------------------------------


def evaluate_alerts(
    store: Store,
    user_id: str,
    today: date,
    now: datetime | None = None,
) -> list[AlertEvent]:
    """Evaluate every rule for ``today`` and upsert the ones that fire.

    Returns the upserted events (empty when alerts are disabled or nothing
    fires).  A :class:`~pulsecoach.store.StoreError` from any read or write
    propagates; upserts already written stay written.
    """
    prefs = store.alert_preference(user_id)
    if not prefs.alerts_enabled:
        logger.debug("alerts disabled for %s", user_id)
        return []

    start, end = stats.window_bounds(today, RECENT_SLEEP_DAYS)
    snap = build_snapshot(
        store.activity_summaries(user_id, start, end),
        store.sleep_records(user_id, start, end),
        store.heart_zones(user_id, start, end),
        today,
    )
    candidates = evaluate_rules(snap, prefs)

    now = now or datetime.combine(today, time())
    day_key = today.isoformat()
    events = [
        store.upsert_alert(user_id, day_key, c.type, c.severity, c.message, now)
        for c in candidates
    ]
    logger.info("upserted %d alert(s) for %s on %s", len(events), user_id, day_key)
    return events


def list_recent_alerts(store: Store, user_id: str, limit: int = 20) -> list[AlertEvent]:
    """Newest first; ``limit`` is clamped to 1..100."""
    return store.list_alerts(user_id, limit)


def resolve_alert(store: Store, alert_id: str, now: datetime) -> AlertEvent | None:
    return store.resolve_alert(alert_id, now)
