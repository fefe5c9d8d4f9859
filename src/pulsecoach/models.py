"""Row and preference types shared by the analytics engine and the stores.

Every daily row is keyed by a calendar ``date``.  Optional fields are
``None`` when the upstream API did not report them; ``None`` is never the
same thing as ``0`` (see the recovery and sleep-stage calculators).
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any


class SleepScoreMode(str, Enum):
    """Weighting profile used by the sleep scorer."""

    FITBIT = "fitbit"
    RECOVERY = "recovery"

    @classmethod
    def parse(cls, value: SleepScoreMode | str) -> SleepScoreMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"unknown sleep score mode: {value!r}") from None


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Daily rows
# ---------------------------------------------------------------------------


@dataclass
class DailyActivitySummary:
    """One day of activity totals."""

    date: date
    steps: int = 0
    active_minutes: int = 0
    sedentary_minutes: int = 0
    lightly_active_minutes: int | None = None
    fairly_active_minutes: int | None = None
    very_active_minutes: int | None = None
    calories_out: int | None = None


@dataclass
class DailySleepRecord:
    """Main sleep of the night attributed to ``date``."""

    date: date
    minutes_asleep: int = 0
    time_in_bed: int = 0
    efficiency: float = 0.0  # 0-100
    deep_minutes: int | None = None
    rem_minutes: int | None = None
    light_minutes: int | None = None
    wake_minutes: int | None = None
    sleep_start: datetime | None = None
    sleep_end: datetime | None = None


@dataclass
class DailyHeartZones:
    """Heart-rate zone minutes and resting HR for one day."""

    date: date
    zone2_minutes: int = 0  # "Fat Burn"
    cardio_minutes: int | None = None
    peak_minutes: int | None = None
    out_of_range_minutes: int | None = None
    resting_heart_rate: float | None = None


@dataclass
class DailyRecoveryBiomarkers:
    """Sparse premium biomarkers.  Every field is independently optional."""

    date: date
    cardio_fitness_score: float | None = None
    vo2_max: float | None = None
    hrv_rmssd: float | None = None
    hrv_deep_rmssd: float | None = None
    breathing_rate: float | None = None
    spo2_avg: float | None = None
    spo2_min: float | None = None
    spo2_max: float | None = None
    skin_temp_c: float | None = None
    core_temp_c: float | None = None


@dataclass
class ActivityLogEntry:
    """A logged workout or auto-detected activity."""

    id: str
    start_time: datetime
    duration_minutes: float = 0.0
    name: str = ""
    calories: float | None = None
    distance: float | None = None
    steps: int | None = None


# ---------------------------------------------------------------------------
# Per-user settings
# ---------------------------------------------------------------------------


@dataclass
class AlertPreference:
    min_sleep_hours: float = 6.5
    min_avg_steps: int = 7000
    min_zone2_days: int = 3
    max_resting_hr_delta: float = 4.0
    alerts_enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class WeeklyGoals:
    zone2_target_minutes: int = 180
    avg_sleep_target_hours: float = 7.0
    avg_steps_target: int = 8500
    sleep_score_mode: SleepScoreMode = SleepScoreMode.FITBIT

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["sleep_score_mode"] = self.sleep_score_mode.value
        return d


@dataclass
class AlertEvent:
    """A persisted alert.  At most one per (user_id, day_key, type)."""

    id: str
    user_id: str
    day_key: str  # ISO date, e.g. "2026-10-19"
    type: str
    severity: Severity
    message: str
    created_at: datetime
    resolved_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
            "day_key": self.day_key,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


# ---------------------------------------------------------------------------
# Calendar row (merged view of one day, live or synthetic)
# ---------------------------------------------------------------------------


@dataclass
class DayDashboard:
    """All raw signals for one calendar day, merged across entity types.

    This is the unit the demo builders consume: a synthetic calendar is a
    list of these.
    """

    date: str  # ISO date
    steps: int = 0
    active_minutes: int = 0
    sedentary_minutes: int = 0
    lightly_active_minutes: int = 0
    fairly_active_minutes: int = 0
    very_active_minutes: int = 0
    sleep_minutes: int = 0
    sleep_score: int | None = None
    sleep_score_breakdown: dict[str, int] | None = None
    zone2_minutes: int = 0
    cardio_minutes: int = 0
    peak_minutes: int = 0
    out_of_range_minutes: int = 0
    resting_heart_rate: float | None = None
    activities: list[ActivityLogEntry] = field(default_factory=list)
    sleep: DailySleepRecord | None = None

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)

    @property
    def has_activity(self) -> bool:
        return len(self.activities) > 0

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["has_activity"] = self.has_activity
        for act in d["activities"]:
            act["start_time"] = act["start_time"].isoformat()
        if d["sleep"] is not None:
            d["sleep"]["date"] = d["sleep"]["date"].isoformat()
            for key in ("sleep_start", "sleep_end"):
                if d["sleep"][key] is not None:
                    d["sleep"][key] = d["sleep"][key].isoformat()
        return d
