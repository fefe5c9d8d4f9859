"""Recovery signals from sparse premium biomarkers.

Each biomarker is reported independently: its latest non-null value and a
7-day delta against the preceding 7-day block.  A missing value is never
treated as zero; a metric with no data at all reports ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Callable, Sequence

from pulsecoach.analytics import stats
from pulsecoach.models import DailyRecoveryBiomarkers, DayDashboard

LOOKBACK_DAYS = 30

VO2_IMPROVEMENT = 0.5
HRV_DROP_MS = -5.0
SPO2_LOW_PCT = 94.0

Picker = Callable[[DailyRecoveryBiomarkers], "float | None"]


@dataclass
class RecoveryMetric:
    value: float | None
    delta7d: float | None
    unit: str
    source: str


@dataclass
class RecoverySignals:
    has_any_data: bool
    date_label: str
    cardio_fitness: RecoveryMetric
    vo2_max: RecoveryMetric
    hrv_rmssd: RecoveryMetric
    breathing_rate: RecoveryMetric
    spo2_avg: RecoveryMetric
    skin_temp_c: RecoveryMetric
    core_temp_c: RecoveryMetric
    notes: list[str]

    def metrics(self) -> list[RecoveryMetric]:
        return [
            self.cardio_fitness,
            self.vo2_max,
            self.hrv_rmssd,
            self.breathing_rate,
            self.spo2_avg,
            self.skin_temp_c,
            self.core_temp_c,
        ]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# (field, unit, source) for each tracked metric, in payload order
TRACKED: list[tuple[str, str, str]] = [
    ("cardio_fitness_score", "score", "Fitbit Cardio Score API"),
    ("vo2_max", "ml/kg/min", "Fitbit Cardio Score API"),
    ("hrv_rmssd", "ms", "Fitbit HRV API"),
    ("breathing_rate", "br/min", "Fitbit Breathing Rate API"),
    ("spo2_avg", "%", "Fitbit SpO2 API"),
    ("skin_temp_c", "C", "Fitbit Skin Temperature API"),
    ("core_temp_c", "C", "Fitbit Core Temperature API"),
]


def latest_value(rows: Sequence[DailyRecoveryBiomarkers], pick: Picker) -> float | None:
    """Most recent non-null value, scanning backward by date."""
    for row in reversed(rows):
        v = pick(row)
        if v is not None:
            return float(v)
    return None


def recovery_metric(
    rows: Sequence[DailyRecoveryBiomarkers],
    pick: Picker,
    unit: str,
    source: str,
    today: date,
) -> RecoveryMetric:
    latest = latest_value(rows, pick)
    last7 = stats.mean_or_none(pick(r) for r in stats.rows_between(rows, *stats.window_bounds(today, 7)))
    prior7 = stats.mean_or_none(
        pick(r) for r in stats.rows_between(rows, *stats.window_bounds(today, 7, offset=1))
    )

    delta = None
    if prior7 is not None:
        if latest is not None:
            delta = latest - prior7
        elif last7 is not None:
            delta = last7 - prior7

    return RecoveryMetric(value=stats.round1(latest), delta7d=stats.round1(delta), unit=unit, source=source)


def recovery_notes(signals: RecoverySignals) -> list[str]:
    notes: list[str] = []
    if not signals.has_any_data:
        notes.append(
            "No premium biomarker data returned yet. "
            "Reconnect Fitbit with expanded scopes, then sync recent days."
        )

    vo2 = signals.vo2_max
    if vo2.value is not None and vo2.delta7d is not None and vo2.delta7d > VO2_IMPROVEMENT:
        notes.append(f"VO2 max improved by {vo2.delta7d:.1f} over prior week.")

    hrv = signals.hrv_rmssd
    if hrv.value is not None and hrv.delta7d is not None and hrv.delta7d < HRV_DROP_MS:
        notes.append(
            f"HRV dropped by {abs(hrv.delta7d):.1f}ms vs prior week. Consider lighter training."
        )

    spo2 = signals.spo2_avg
    if spo2.value is not None and spo2.value < SPO2_LOW_PCT:
        notes.append(f"Average SpO2 is {spo2.value:g}%. Confirm sensor fit and monitor trend.")

    if not notes:
        notes.append("Recovery biomarkers are stable based on available Fitbit API data.")
    return notes


def build_recovery_signals(
    rows: Sequence[DailyRecoveryBiomarkers],
    today: date,
) -> RecoverySignals:
    """Compute the recovery-signals payload.

    Args:
        rows: Biomarker rows for up to the last 30 days, any order.
        today: Reference date.
    """
    rows = sorted(rows, key=lambda r: r.date)
    metrics = [
        recovery_metric(rows, lambda r, f=name: getattr(r, f), unit, source, today)
        for name, unit, source in TRACKED
    ]
    signals = RecoverySignals(
        has_any_data=any(m.value is not None for m in metrics),
        date_label=rows[-1].date.isoformat() if rows else "n/a",
        cardio_fitness=metrics[0],
        vo2_max=metrics[1],
        hrv_rmssd=metrics[2],
        breathing_rate=metrics[3],
        spo2_avg=metrics[4],
        skin_temp_c=metrics[5],
        core_temp_c=metrics[6],
        notes=[],
    )
    signals.notes = recovery_notes(signals)
    return signals


def synthetic_biomarkers(day: date, idx: int) -> DailyRecoveryBiomarkers:
    """Deterministic, gently oscillating biomarkers for demo calendars."""
    return DailyRecoveryBiomarkers(
        date=day,
        cardio_fitness_score=42 + (idx % 4),
        vo2_max=39 + ((idx * 0.2) % 2),
        hrv_rmssd=45 + ((idx * 2) % 12),
        breathing_rate=14 + ((idx * 0.1) % 1),
        spo2_avg=96 + ((idx * 0.1) % 1),
        skin_temp_c=-0.2 + ((idx * 0.03) % 0.4),
        core_temp_c=36.6 + ((idx * 0.02) % 0.3),
    )


def build_demo_recovery_signals(days: Sequence[DayDashboard], today: date) -> RecoverySignals:
    """Same payload, with synthetic biomarkers for each calendar day."""
    past = sorted((d for d in days if d.day <= today), key=lambda d: d.date)[-LOOKBACK_DAYS:]
    rows = [synthetic_biomarkers(d.day, i) for i, d in enumerate(past)]
    return build_recovery_signals(rows, today)
