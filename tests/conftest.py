"""Shared fixtures and row builders for the pulsecoach test suite."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from pulsecoach.db import SqlStore
from pulsecoach.models import (
    ActivityLogEntry,
    DailyActivitySummary,
    DailyHeartZones,
    DailyRecoveryBiomarkers,
    DailySleepRecord,
)
from pulsecoach.store import MemoryStore

# A Tuesday: the week began on Sunday 2024-01-07, three days have elapsed.
TODAY = date(2024, 1, 9)


def ago(days: int, today: date = TODAY) -> date:
    return today - timedelta(days=days)


def last_n_days(n: int, today: date = TODAY) -> list[date]:
    """``n`` consecutive days ending ``today``, oldest first."""
    return [today - timedelta(days=i) for i in range(n - 1, -1, -1)]


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------


def activity(day: date, steps: int = 8000, active: int = 45, sedentary: int = 600, **kw) -> DailyActivitySummary:
    return DailyActivitySummary(date=day, steps=steps, active_minutes=active, sedentary_minutes=sedentary, **kw)


def night(
    day: date,
    minutes: int = 450,
    bed: tuple[int, int] | None = (23, 0),
    wake: tuple[int, int] | None = (7, 0),
    efficiency: float = 90.0,
    deep: int | None = 80,
    rem: int | None = 95,
    light: int | None = 240,
    wake_minutes: int | None = 35,
) -> DailySleepRecord:
    """The main sleep ending on the morning of ``day``."""
    start = None
    if bed is not None:
        start = datetime.combine(day, time(*bed))
        if bed[0] >= 12:
            start -= timedelta(days=1)
    end = datetime.combine(day, time(*wake)) if wake is not None else None
    return DailySleepRecord(
        date=day,
        minutes_asleep=minutes,
        time_in_bed=minutes + (wake_minutes or 0),
        efficiency=efficiency,
        deep_minutes=deep,
        rem_minutes=rem,
        light_minutes=light,
        wake_minutes=wake_minutes,
        sleep_start=start,
        sleep_end=end,
    )


def zones(day: date, zone2: int = 20, rhr: float | None = 58.0, cardio: int = 0, peak: int = 0) -> DailyHeartZones:
    return DailyHeartZones(
        date=day,
        zone2_minutes=zone2,
        cardio_minutes=cardio,
        peak_minutes=peak,
        out_of_range_minutes=900,
        resting_heart_rate=rhr,
    )


def biomarkers(day: date, **kw) -> DailyRecoveryBiomarkers:
    return DailyRecoveryBiomarkers(date=day, **kw)


def workout(
    start: datetime,
    steps: int | None = 3000,
    minutes: float = 30.0,
    name: str = "Walk",
) -> ActivityLogEntry:
    return ActivityLogEntry(
        id=f"log-{start:%Y%m%d%H%M}",
        start_time=start,
        duration_minutes=minutes,
        name=name,
        steps=steps,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sql_store() -> SqlStore:
    store = SqlStore("sqlite://")
    store.create_schema()
    return store


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each store implementation in turn."""
    if request.param == "memory":
        return MemoryStore()
    s = SqlStore("sqlite://")
    s.create_schema()
    return s
