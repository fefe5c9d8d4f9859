"""Storage interface consumed by the service layer and the alert evaluator.

Reads are keyed by ``(user_id, date range)`` with both bounds inclusive.
Preferences and goals are per-user singletons, created with defaults on
first read.  Alert events are unique on ``(user_id, day_key, type)``.

Implementations:
    MemoryStore   -- dict-backed, for tests and demos
    SqlStore      -- SQLAlchemy, see :mod:`pulsecoach.db`
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable

from pulsecoach.models import (
    ActivityLogEntry,
    AlertEvent,
    AlertPreference,
    DailyActivitySummary,
    DailyHeartZones,
    DailyRecoveryBiomarkers,
    DailySleepRecord,
    Severity,
    WeeklyGoals,
)

logger = logging.getLogger(__name__)

MAX_ALERT_LIMIT = 100


class StoreError(Exception):
    """A read or write against the backing store failed.

    Distinct from an empty result, which is always an empty list.
    """


def clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_ALERT_LIMIT))


def new_id() -> str:
    return uuid.uuid4().hex


class Store(ABC):
    """Everything the engine reads and the one thing it writes."""

    # -- daily rows ---------------------------------------------------------

    @abstractmethod
    def activity_summaries(self, user_id: str, start: date, end: date) -> list[DailyActivitySummary]:
        ...

    @abstractmethod
    def sleep_records(self, user_id: str, start: date, end: date) -> list[DailySleepRecord]:
        ...

    @abstractmethod
    def heart_zones(self, user_id: str, start: date, end: date) -> list[DailyHeartZones]:
        ...

    @abstractmethod
    def recovery_biomarkers(self, user_id: str, start: date, end: date) -> list[DailyRecoveryBiomarkers]:
        ...

    @abstractmethod
    def activity_logs(self, user_id: str, start: date, end: date) -> list[ActivityLogEntry]:
        """Entries whose start time falls on a day in ``[start, end]``."""

    # -- writes used by sync and tests ----------------------------------------

    @abstractmethod
    def put_activity_summary(self, user_id: str, row: DailyActivitySummary) -> None:
        ...

    @abstractmethod
    def put_sleep_record(self, user_id: str, row: DailySleepRecord) -> None:
        ...

    @abstractmethod
    def put_heart_zones(self, user_id: str, row: DailyHeartZones) -> None:
        ...

    @abstractmethod
    def put_recovery_biomarkers(self, user_id: str, row: DailyRecoveryBiomarkers) -> None:
        ...

    @abstractmethod
    def replace_activity_logs(self, user_id: str, day: date, entries: Iterable[ActivityLogEntry]) -> None:
        """Drop every log entry starting on ``day`` and store ``entries``."""

    # -- per-user settings ----------------------------------------------------

    @abstractmethod
    def alert_preference(self, user_id: str) -> AlertPreference:
        ...

    @abstractmethod
    def save_alert_preference(self, user_id: str, pref: AlertPreference) -> AlertPreference:
        ...

    @abstractmethod
    def weekly_goals(self, user_id: str) -> WeeklyGoals:
        ...

    @abstractmethod
    def save_weekly_goals(self, user_id: str, goals: WeeklyGoals) -> WeeklyGoals:
        ...

    # -- alerts ---------------------------------------------------------------

    @abstractmethod
    def upsert_alert(
        self,
        user_id: str,
        day_key: str,
        alert_type: str,
        severity: Severity,
        message: str,
        now: datetime,
    ) -> AlertEvent:
        """Create the alert, or refresh it and clear ``resolved_at``."""

    @abstractmethod
    def list_alerts(self, user_id: str, limit: int = 20) -> list[AlertEvent]:
        """Newest first."""

    @abstractmethod
    def resolve_alert(self, alert_id: str, now: datetime) -> AlertEvent | None:
        ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def _between(rows: dict[tuple[str, date], object], user_id: str, start: date, end: date) -> list:
    return [
        row
        for (uid, day), row in sorted(rows.items(), key=lambda kv: kv[0][1])
        if uid == user_id and start <= day <= end
    ]


class MemoryStore(Store):
    """Dict-backed store.  Every read and write holds one lock; returned rows are copies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._summaries: dict[tuple[str, date], DailyActivitySummary] = {}
        self._sleeps: dict[tuple[str, date], DailySleepRecord] = {}
        self._zones: dict[tuple[str, date], DailyHeartZones] = {}
        self._biomarkers: dict[tuple[str, date], DailyRecoveryBiomarkers] = {}
        self._logs: dict[str, list[ActivityLogEntry]] = {}
        self._prefs: dict[str, AlertPreference] = {}
        self._goals: dict[str, WeeklyGoals] = {}
        self._alerts: list[tuple[str, AlertEvent]] = []

    def activity_summaries(self, user_id, start, end):
        with self._lock:
            return [replace(r) for r in _between(self._summaries, user_id, start, end)]

    def sleep_records(self, user_id, start, end):
        with self._lock:
            return [replace(r) for r in _between(self._sleeps, user_id, start, end)]

    def heart_zones(self, user_id, start, end):
        with self._lock:
            return [replace(r) for r in _between(self._zones, user_id, start, end)]

    def recovery_biomarkers(self, user_id, start, end):
        with self._lock:
            return [replace(r) for r in _between(self._biomarkers, user_id, start, end)]

    def activity_logs(self, user_id, start, end):
        with self._lock:
            entries = [
                replace(e)
                for e in self._logs.get(user_id, [])
                if start <= e.start_time.date() <= end
            ]
        return sorted(entries, key=lambda e: e.start_time)

    def put_activity_summary(self, user_id, row):
        with self._lock:
            self._summaries[(user_id, row.date)] = replace(row)

    def put_sleep_record(self, user_id, row):
        with self._lock:
            self._sleeps[(user_id, row.date)] = replace(row)

    def put_heart_zones(self, user_id, row):
        with self._lock:
            self._zones[(user_id, row.date)] = replace(row)

    def put_recovery_biomarkers(self, user_id, row):
        with self._lock:
            self._biomarkers[(user_id, row.date)] = replace(row)

    def replace_activity_logs(self, user_id, day, entries):
        with self._lock:
            kept = [e for e in self._logs.get(user_id, []) if e.start_time.date() != day]
            kept.extend(replace(e) for e in entries)
            self._logs[user_id] = kept

    def alert_preference(self, user_id):
        with self._lock:
            pref = self._prefs.setdefault(user_id, AlertPreference())
            return replace(pref)

    def save_alert_preference(self, user_id, pref):
        with self._lock:
            self._prefs[user_id] = replace(pref)
        return replace(pref)

    def weekly_goals(self, user_id):
        with self._lock:
            goals = self._goals.setdefault(user_id, WeeklyGoals())
            return replace(goals)

    def save_weekly_goals(self, user_id, goals):
        with self._lock:
            self._goals[user_id] = replace(goals)
        return replace(goals)

    def upsert_alert(self, user_id, day_key, alert_type, severity, message, now):
        with self._lock:
            for uid, event in self._alerts:
                if uid == user_id and event.day_key == day_key and event.type == alert_type:
                    event.severity = severity
                    event.message = message
                    event.resolved_at = None
                    logger.debug("updated alert %s/%s/%s", user_id, day_key, alert_type)
                    return replace(event)

            event = AlertEvent(
                id=new_id(),
                user_id=user_id,
                day_key=day_key,
                type=alert_type,
                severity=severity,
                message=message,
                created_at=now,
            )
            self._alerts.append((user_id, event))
            logger.debug("created alert %s/%s/%s", user_id, day_key, alert_type)
            return replace(event)

    def list_alerts(self, user_id, limit=20):
        with self._lock:
            mine = [replace(e) for uid, e in reversed(self._alerts) if uid == user_id]
        mine.sort(key=lambda e: e.created_at, reverse=True)
        return mine[:clamp_limit(limit)]

    def resolve_alert(self, alert_id, now):
        with self._lock:
            for _, event in self._alerts:
                if event.id == alert_id:
                    event.resolved_at = now
                    return replace(event)
        return None
