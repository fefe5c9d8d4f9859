"""Tests for pulsecoach.analytics.conditioning -- load and polarization."""

from datetime import date, datetime

from pulsecoach.analytics.calendar import build_demo_calendar
from pulsecoach.analytics.conditioning import (
    ConditioningRow,
    build_conditioning_insights,
    build_demo_conditioning_insights,
    count_workout_days,
    merge_rows,
    zone2_status,
)
from tests.conftest import TODAY, activity, ago, last_n_days, night, workout, zones


def _rows(days: int = 7, **kw) -> list[ConditioningRow]:
    base = dict(
        active_minutes=60,
        sedentary_minutes=600,
        lightly_active_minutes=30,
        zone2_minutes=20,
        cardio_minutes=5,
        peak_minutes=0,
    )
    base.update(kw)
    return [ConditioningRow(date=d, **base) for d in last_n_days(days)]


class TestMergeRows:
    def test_zero_fills_missing_days(self):
        merged = merge_rows([activity(TODAY)], [], [zones(ago(3))], TODAY)
        assert len(merged) == 14
        assert merged[0].date == ago(13)
        assert merged[-1].date == TODAY
        assert merged[-2].active_minutes == 0
        assert merged[-4].zone2_minutes == 20

    def test_estimates_intensity_split(self):
        merged = merge_rows([activity(TODAY, active=60)], [], [], TODAY)
        today = merged[-1]
        assert (today.lightly_active_minutes, today.fairly_active_minutes, today.very_active_minutes) == (30, 18, 12)

    def test_keeps_reported_split(self):
        row = activity(TODAY, active=60, lightly_active_minutes=40, fairly_active_minutes=15, very_active_minutes=5)
        today = merge_rows([row], [], [], TODAY)[-1]
        assert today.lightly_active_minutes == 40
        assert today.very_active_minutes == 5

    def test_sleep_and_zones(self):
        merged = merge_rows([], [night(TODAY, minutes=400)], [zones(TODAY, cardio=10, peak=4)], TODAY)
        assert merged[-1].minutes_asleep == 400
        assert merged[-1].hard_minutes == 14


class TestWorkoutDays:
    def test_counts_distinct_days_this_week(self):
        logs = [
            workout(datetime(2024, 1, 7, 7, 0)),
            workout(datetime(2024, 1, 7, 18, 0)),
            workout(datetime(2024, 1, 9, 12, 0)),
            workout(datetime(2024, 1, 6, 9, 0)),
        ]
        assert count_workout_days(logs, TODAY) == 2


class TestBuildConditioning:
    def test_weekly_totals(self):
        ins = build_conditioning_insights(_rows(), 2, TODAY)
        w = ins.weekly
        assert w["active_minutes"] == 420
        assert w["avg_daily_active_minutes"] == 60
        assert w["zone2_minutes"] == 140
        assert w["hard_minutes"] == 35
        assert w["easy_minutes"] == 350
        assert (w["easy_pct"], w["hard_pct"]) == (91, 9)
        assert w["sedentary_hours"] == 10.0
        assert w["high_intensity_days"] == 0
        assert w["zone2_status"] == "low"

    def test_uses_last_seven_rows(self):
        ins = build_conditioning_insights(_rows(14), 0, TODAY)
        assert ins.weekly["active_minutes"] == 420

    def test_plan(self):
        plan = build_conditioning_insights(_rows(), 2, TODAY).polarized_plan
        assert plan["suggested_easy_minutes"] == 40
        assert plan["suggested_hard_minutes_cap"] == 91
        assert [s["day"] for s in plan["sessions"]] == ["Wed", "Thu", "Fri"]
        assert [s["minutes"] for s in plan["sessions"]] == [30, 25, 25]
        assert [s["type"] for s in plan["sessions"]] == ["easy", "easy", "hard"]

    def test_adherence(self):
        a = build_conditioning_insights(_rows(), 2, TODAY).adherence
        assert a == {
            "workout_days": 2,
            "target_workout_days": 4,
            "adherence_pct": 50,
            "remaining_workout_days": 2,
        }

    def test_adherence_capped(self):
        a = build_conditioning_insights(_rows(), 5, TODAY).adherence
        assert a["adherence_pct"] == 100
        assert a["remaining_workout_days"] == 0

    def test_low_zone2_note(self):
        notes = build_conditioning_insights(_rows(), 2, TODAY).coach_notes
        assert notes == ["Zone 2 volume is 140m this week. Push toward 150-300m for aerobic base."]

    def test_hard_heavy_week(self):
        notes = build_conditioning_insights(_rows(zone2_minutes=30, cardio_minutes=30), 4, TODAY).coach_notes
        assert any(n.startswith("Intensity split is") for n in notes)
        assert "High-intensity load appears elevated this week. Keep hard days to 1-3 weekly." in notes

    def test_sedentary_note(self):
        notes = build_conditioning_insights(_rows(zone2_minutes=30, sedentary_minutes=780), 4, TODAY).coach_notes
        assert "Sedentary time is 13h/day. Add short movement breaks every 60-90 minutes." in notes

    def test_balanced(self):
        notes = build_conditioning_insights(_rows(zone2_minutes=30), 4, TODAY).coach_notes
        assert notes == ["Conditioning load and intensity split look balanced. Keep your current pattern."]

    def test_empty(self):
        ins = build_conditioning_insights([], 0, TODAY)
        assert ins.weekly["avg_daily_active_minutes"] == 0
        assert ins.weekly["easy_pct"] == 0


class TestZone2Status:
    def test_bands(self):
        assert zone2_status(100) == "low"
        assert zone2_status(150) == "target"
        assert zone2_status(300) == "target"
        assert zone2_status(301) == "high"


class TestDemo:
    def test_demo(self):
        cal = build_demo_calendar(None, TODAY, history_days=14)
        ins = build_demo_conditioning_insights(cal.days, TODAY)
        assert ins.weekly["active_minutes"] > 0
        assert ins.adherence["workout_days"] >= 1
        assert date.fromisoformat(cal.start_date) <= ago(13)
