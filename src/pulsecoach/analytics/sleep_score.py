"""Nightly sleep score (0-100) with a duration / depth / restoration breakdown.

Three components, each a weighted fraction in [0, 1]:

  duration     -- time asleep vs. goal, with a small asleep-vs-awake term
  depth        -- (deep + REM) share of time asleep, saturating at 50%
  restoration  -- reported efficiency blended with a restlessness term

The weights depend on the scoring mode: ``fitbit`` favours duration,
``recovery`` favours restoration.  Each component is rounded on its own
and the total is their sum, so the breakdown always adds up exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict

from pulsecoach.analytics.stats import round_half_up
from pulsecoach.models import DailySleepRecord, SleepScoreMode


@dataclass(frozen=True)
class ScoreWeights:
    duration: int
    depth: int
    restoration: int


WEIGHTS: dict[SleepScoreMode, ScoreWeights] = {
    SleepScoreMode.FITBIT: ScoreWeights(duration=50, depth=25, restoration=25),
    SleepScoreMode.RECOVERY: ScoreWeights(duration=35, depth=20, restoration=45),
}

DEFAULT_GOAL_HOURS = 8.0

# (deep + REM) / asleep at which the depth component saturates
DEPTH_SATURATION = 0.5


@dataclass
class SleepScoreInput:
    minutes_asleep: float
    time_in_bed: float
    efficiency: float
    deep_minutes: float
    rem_minutes: float
    wake_minutes: float

    @classmethod
    def from_record(cls, rec: DailySleepRecord) -> SleepScoreInput:
        """Build scorer input from a stored night; missing stages score as 0."""
        return cls(
            minutes_asleep=rec.minutes_asleep,
            time_in_bed=rec.time_in_bed,
            efficiency=rec.efficiency,
            deep_minutes=rec.deep_minutes or 0,
            rem_minutes=rec.rem_minutes or 0,
            wake_minutes=rec.wake_minutes or 0,
        )


@dataclass
class SleepScoreBreakdown:
    duration: int
    depth: int
    restoration: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def calculate_sleep_score_detailed(
    inp: SleepScoreInput,
    goal_hours: float = DEFAULT_GOAL_HOURS,
    mode: SleepScoreMode | str = SleepScoreMode.FITBIT,
) -> SleepScoreBreakdown:
    """Score one night.

    Args:
        inp: The night's sleep signals (minutes; efficiency in percent).
        goal_hours: Sleep goal in hours.
        mode: Weighting profile, ``"fitbit"`` or ``"recovery"``.

    Returns:
        SleepScoreBreakdown whose components sum to ``total``.
    """
    weights = WEIGHTS[SleepScoreMode.parse(mode)]

    goal_minutes = max(1, round_half_up(goal_hours * 60))
    asleep = max(0.0, inp.minutes_asleep)
    in_bed = max(1.0, inp.time_in_bed or (inp.minutes_asleep + inp.wake_minutes))
    wake = max(0.0, inp.wake_minutes)

    duration_goal = _clamp(asleep / goal_minutes)
    asleep_vs_awake = _clamp(1 - wake / in_bed)
    quality_ratio = (max(0.0, inp.deep_minutes) + max(0.0, inp.rem_minutes)) / max(1.0, asleep)
    efficiency_norm = _clamp(inp.efficiency / 100.0)
    restlessness_norm = _clamp(1 - wake / in_bed)

    duration = round_half_up(weights.duration * _clamp(duration_goal * 0.8 + asleep_vs_awake * 0.2))
    depth = round_half_up(weights.depth * _clamp(quality_ratio / DEPTH_SATURATION))
    restoration = round_half_up(
        weights.restoration * _clamp(efficiency_norm * 0.65 + restlessness_norm * 0.35)
    )

    total = int(_clamp(duration + depth + restoration, 0, 100))
    return SleepScoreBreakdown(duration=duration, depth=depth, restoration=restoration, total=total)


def calculate_sleep_score(
    inp: SleepScoreInput,
    goal_hours: float = DEFAULT_GOAL_HOURS,
    mode: SleepScoreMode | str = SleepScoreMode.FITBIT,
) -> int:
    """Total score only; identical to ``calculate_sleep_score_detailed(...).total``."""
    return calculate_sleep_score_detailed(inp, goal_hours, mode).total


def score_record(
    rec: DailySleepRecord,
    goal_hours: float = DEFAULT_GOAL_HOURS,
    mode: SleepScoreMode | str = SleepScoreMode.FITBIT,
) -> SleepScoreBreakdown:
    return calculate_sleep_score_detailed(SleepScoreInput.from_record(rec), goal_hours, mode)
