"""Tests for pulsecoach.alerts -- rule evaluation and idempotent upserts."""

from datetime import datetime

import pytest

from pulsecoach.alerts import (
    AlertSnapshot,
    build_snapshot,
    evaluate_alerts,
    evaluate_rules,
    list_recent_alerts,
    low_steps,
    resolve_alert,
)
from pulsecoach.models import AlertPreference, Severity
from pulsecoach.store import MemoryStore, StoreError
from tests.conftest import TODAY, ago, last_n_days, night, zones

USER = "u1"


def _load(store, sleeps=(), heart=(), summaries=()):
    for row in sleeps:
        store.put_sleep_record(USER, row)
    for row in heart:
        store.put_heart_zones(USER, row)
    for row in summaries:
        store.put_activity_summary(USER, row)


def _types(events):
    return [e.type for e in events]


class TestSnapshotRules:
    def test_low_steps_message(self):
        c = low_steps(AlertSnapshot(avg_steps=6543.4), AlertPreference())
        assert c.message == "Average steps are 6,543, below target 7,000."
        assert c.severity is Severity.MEDIUM

    def test_no_steps_is_not_low(self):
        assert low_steps(AlertSnapshot(avg_steps=0), AlertPreference()) is None

    def test_elevated_rhr(self):
        heart = [zones(ago(i), rhr=55.0) for i in range(3, 17)]
        heart += [zones(ago(i), rhr=60.0) for i in range(3)]
        snap = build_snapshot([], [], heart, TODAY)
        assert snap.baseline_hr == 55.0
        assert snap.current_hr == 60.0
        fired = {c.type: c for c in evaluate_rules(snap, AlertPreference())}
        assert set(fired) == {"elevated_rhr"}
        assert fired["elevated_rhr"].message == (
            "Resting HR is up by 5.0 bpm vs baseline. Prioritize recovery today."
        )
        assert fired["elevated_rhr"].severity is Severity.HIGH

    def test_combined_recovery_risk(self):
        heart = [zones(ago(i), zone2=30, rhr=55.0) for i in range(3, 17)]
        heart += [zones(ago(i), zone2=30, rhr=60.0) for i in range(3)]
        sleeps = [night(d, minutes=348) for d in last_n_days(7)]
        snap = build_snapshot([], sleeps, heart, TODAY)
        assert snap.zone2_total == 210
        types = [c.type for c in evaluate_rules(snap, AlertPreference())]
        assert "combined_recovery_risk" in types
        assert "low_sleep" in types
        assert "poor_sleep_streak" in types

    def test_bedtime_drift(self):
        sleeps = [night(ago(i), bed=(22, 30)) for i in range(7, 14)]
        sleeps += [night(ago(i), bed=(23, 45)) for i in range(7)]
        snap = build_snapshot([], sleeps, [], TODAY)
        fired = {c.type: c for c in evaluate_rules(snap, AlertPreference())}
        assert fired["bedtime_drift"].message == "Bedtime drifted later by 75 minutes vs prior week."

    def test_small_drift_ignored(self):
        sleeps = [night(ago(i), bed=(23, 0)) for i in range(7, 14)]
        sleeps += [night(ago(i), bed=(23, 30)) for i in range(7)]
        snap = build_snapshot([], sleeps, [], TODAY)
        assert "bedtime_drift" not in [c.type for c in evaluate_rules(snap, AlertPreference())]

    def test_rem_drop(self):
        sleeps = [night(ago(i), rem=100) for i in range(7, 14)]
        sleeps += [night(ago(i), rem=80) for i in range(7)]
        snap = build_snapshot([], sleeps, [], TODAY)
        fired = {c.type: c for c in evaluate_rules(snap, AlertPreference())}
        assert fired["rem_drop"].message == "REM sleep dropped by 20% vs prior week."

    def test_rem_ignores_missing_stages(self):
        sleeps = [night(ago(i), rem=100) for i in range(7, 14)]
        sleeps += [night(ago(i), rem=None if i % 2 else 95) for i in range(7)]
        snap = build_snapshot([], sleeps, [], TODAY)
        assert snap.rem_avg == 95.0
        assert "rem_drop" not in [c.type for c in evaluate_rules(snap, AlertPreference())]

    def test_streak_needs_three_nights(self):
        snap = build_snapshot([], [night(ago(0), minutes=300), night(ago(1), minutes=300)], [], TODAY)
        assert "poor_sleep_streak" not in [c.type for c in evaluate_rules(snap, AlertPreference())]


class TestEvaluateAlerts:
    def test_disabled(self, store):
        store.save_alert_preference(USER, AlertPreference(alerts_enabled=False))
        _load(store, sleeps=[night(d, minutes=300) for d in last_n_days(7)])
        assert evaluate_alerts(store, USER, TODAY) == []
        assert store.list_alerts(USER) == []

    def test_low_sleep(self, store):
        _load(store, sleeps=[night(d, minutes=348) for d in last_n_days(7)])
        events = evaluate_alerts(store, USER, TODAY)
        by_type = {e.type: e for e in events}
        assert by_type["low_sleep"].message == "Average sleep is 5.8h, below target 6.5h."
        assert by_type["low_sleep"].day_key == "2024-01-09"
        assert by_type["low_sleep"].created_at == datetime(2024, 1, 9)
        assert "low_zone2_days" in by_type

    def test_empty_store_only_flags_zone2(self, store):
        events = evaluate_alerts(store, USER, TODAY)
        assert _types(events) == ["low_zone2_days"]
        assert events[0].message == "Zone 2 activity logged on 0 day(s); target is 3 day(s)."
        assert events[0].severity is Severity.LOW

    def test_idempotent(self, store):
        _load(store, sleeps=[night(d, minutes=348) for d in last_n_days(7)])
        first = evaluate_alerts(store, USER, TODAY)
        second = evaluate_alerts(store, USER, TODAY)
        assert sorted(e.id for e in first) == sorted(e.id for e in second)
        stored = list_recent_alerts(store, USER)
        assert len(stored) == len(first)
        assert _types(stored).count("low_sleep") == 1

    def test_cleared_condition_leaves_row(self, store):
        _load(store, sleeps=[night(d, minutes=348) for d in last_n_days(7)])
        evaluate_alerts(store, USER, TODAY)
        _load(store, sleeps=[night(d, minutes=480) for d in last_n_days(7)])
        events = evaluate_alerts(store, USER, TODAY)
        assert "low_sleep" not in _types(events)
        low = [e for e in store.list_alerts(USER) if e.type == "low_sleep"]
        assert len(low) == 1
        assert low[0].message == "Average sleep is 5.8h, below target 6.5h."

    def test_upsert_reopens_resolved(self, store):
        _load(store, sleeps=[night(d, minutes=348) for d in last_n_days(7)])
        event = next(e for e in evaluate_alerts(store, USER, TODAY) if e.type == "low_sleep")
        resolved = resolve_alert(store, event.id, datetime(2024, 1, 9, 12, 0))
        assert resolved.resolved_at == datetime(2024, 1, 9, 12, 0)
        assert not resolved.is_open
        again = next(e for e in evaluate_alerts(store, USER, TODAY) if e.type == "low_sleep")
        assert again.id == event.id
        assert again.is_open

    def test_new_day_new_rows(self, store):
        evaluate_alerts(store, USER, ago(1))
        evaluate_alerts(store, USER, TODAY)
        stored = list_recent_alerts(store, USER)
        assert [e.day_key for e in stored] == ["2024-01-09", "2024-01-08"]

    def test_users_are_isolated(self, store):
        evaluate_alerts(store, USER, TODAY)
        assert list_recent_alerts(store, "someone-else") == []

    def test_resolve_unknown(self, store):
        assert resolve_alert(store, "missing", datetime(2024, 1, 9)) is None

    def test_limit_is_clamped(self, store):
        for i in range(5):
            evaluate_alerts(store, USER, ago(i))
        assert len(list_recent_alerts(store, USER, limit=0)) == 1
        assert len(list_recent_alerts(store, USER, limit=3)) == 3
        assert len(list_recent_alerts(store, USER, limit=500)) == 5


class FailingStore(MemoryStore):
    def sleep_records(self, user_id, start, end):
        raise StoreError("read daily_sleep failed")


class TestStoreErrors:
    def test_read_failure_propagates(self):
        store = FailingStore()
        with pytest.raises(StoreError):
            evaluate_alerts(store, USER, TODAY)
        assert store.list_alerts(USER) == []


class FailingWriteStore(MemoryStore):
    def upsert_alert(self, user_id, day_key, alert_type, severity, message, now):
        if alert_type == "low_zone2_days":
            raise StoreError("write alert_events failed")
        return super().upsert_alert(user_id, day_key, alert_type, severity, message, now)


class TestWriteErrors:
    def test_write_failure_propagates(self):
        store = FailingWriteStore()
        _load(store, sleeps=[night(d, minutes=348) for d in last_n_days(7)])
        with pytest.raises(StoreError, match="write alert_events failed"):
            evaluate_alerts(store, USER, TODAY)
        # rules ahead of the failing one were already written
        assert _types(store.list_alerts(USER)) == ["low_sleep"]
