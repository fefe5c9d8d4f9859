"""Tests for pulsecoach.service -- live store-backed payloads and demos."""

import json
from datetime import date, datetime

import pytest

from pulsecoach import service
from pulsecoach.models import WeeklyGoals
from pulsecoach.store import MemoryStore, StoreError
from tests.conftest import TODAY, activity, last_n_days, night, workout, zones

USER = "u1"


@pytest.fixture
def seeded() -> MemoryStore:
    store = MemoryStore()
    for i, d in enumerate(last_n_days(30)):
        store.put_activity_summary(USER, activity(d, steps=7000 + 50 * i))
        store.put_sleep_record(USER, night(d, minutes=420))
        store.put_heart_zones(USER, zones(d, zone2=25, rhr=57.0))
    store.replace_activity_logs(USER, TODAY, [workout(datetime(2024, 1, 9, 7, 30), steps=3200)])
    return store


class TestFetchAll:
    def test_results_by_name(self):
        out = service.fetch_all(a=lambda: 1, b=lambda: [2])
        assert out == {"a": 1, "b": [2]}

    def test_error_propagates(self):
        def boom():
            raise StoreError("read daily_sleep failed")

        with pytest.raises(StoreError):
            service.fetch_all(ok=lambda: 1, bad=boom)


class TestLive:
    def test_step_target_comes_from_goals(self, seeded):
        assert service.step_insights(seeded, USER, TODAY).daily_target == 8500
        seeded.save_weekly_goals(USER, WeeklyGoals(avg_steps_target=10000))
        ins = service.step_insights(seeded, USER, TODAY)
        assert ins.daily_target == 10000
        assert ins.today_steps == 7000 + 50 * 29
        assert [p.label for p in ins.peak_windows] == ["Tue 7:30 AM"]

    def test_sleep_uses_goal_target(self, seeded):
        seeded.save_weekly_goals(USER, WeeklyGoals(avg_sleep_target_hours=8.0))
        ins = service.sleep_insights(seeded, USER, TODAY)
        assert ins.target_sleep_hours == 8.0
        assert ins.sleep_debt_hours == 14.0

    def test_rhr_zone2(self, seeded):
        ins = service.rhr_zone2_insights(seeded, USER, TODAY)
        assert ins.baseline.rhr30d == 57.0
        assert ins.baseline.status == "stable"

    def test_conditioning_counts_logged_days(self, seeded):
        ins = service.conditioning_insights(seeded, USER, TODAY)
        assert ins.adherence["workout_days"] == 1

    def test_weekly_summary_and_goals(self, seeded):
        summary = service.weekly_summary(seeded, USER, TODAY)
        assert summary.total_zone2_minutes == 175
        assert summary.zone2_days_count == 7
        payload = service.goals_payload(seeded, USER, TODAY)
        assert payload.progress[0].remaining == 5

    def test_calendar(self, seeded):
        cal = service.calendar_payload(seeded, USER, today=TODAY)
        day = next(d for d in cal.days if d.date == "2024-01-09")
        assert day.has_activity
        assert day.sleep_minutes == 420
        assert cal.weekly_summary.zone2_days_count == 7

    def test_calendar_other_month_keeps_current_week(self, seeded):
        cal = service.calendar_payload(seeded, USER, month="2023-11", today=TODAY)
        assert cal.month == "2023-11"
        assert cal.weekly_summary.total_zone2_minutes == 175

    def test_calendar_bad_month(self, seeded):
        with pytest.raises(ValueError):
            service.calendar_payload(seeded, USER, month="2024-13", today=TODAY)

    @pytest.mark.parametrize("name", sorted(service.LIVE))
    def test_every_calculator_on_empty_store(self, name):
        payload = service.LIVE[name](MemoryStore(), USER, today=TODAY)
        assert payload is not None

    def test_evaluate_alerts(self, seeded):
        events = service.evaluate_alerts(seeded, USER, TODAY)
        assert [e.type for e in events] == []

    def test_store_error_propagates(self):
        class Broken(MemoryStore):
            def heart_zones(self, user_id, start, end):
                raise StoreError("read daily_heart_zones failed")

        with pytest.raises(StoreError):
            service.rhr_zone2_insights(Broken(), USER, TODAY)


class TestDemo:
    @pytest.mark.parametrize("name", service.DEMO_CALCULATORS)
    def test_every_calculator(self, name):
        payload = service.demo(name, TODAY)
        plain = [p.to_dict() for p in payload] if isinstance(payload, list) else payload.to_dict()
        json.dumps(plain, default=str)

    def test_unknown(self):
        with pytest.raises(ValueError, match="unknown calculator"):
            service.demo("bogus", TODAY)

    def test_goals_follow_user_goals(self):
        payload = service.demo("goals", TODAY, user_goals=WeeklyGoals(zone2_target_minutes=60))
        assert payload.goals.zone2_target_minutes == 60

    def test_steps_demo_has_long_history(self):
        payload = service.demo("steps", TODAY)
        assert payload.today_steps > 0

    def test_calendar_month(self):
        cal = service.demo("calendar", TODAY, month="2023-12")
        assert cal.month == "2023-12"
        assert all(d.steps > 0 for d in cal.days if d.day <= TODAY)

    def test_month_only_moves_the_calendar(self):
        today = date(2024, 3, 15)
        sleep = service.demo("sleep", today, month="2024-01")
        assert sleep.sleep_score["latest"] is not None
        assert sleep.to_dict() == service.demo("sleep", today).to_dict()
        steps = service.demo("steps", today, month="2024-01")
        assert steps.today_steps > 0
        assert steps.to_dict() == service.demo("steps", today).to_dict()
