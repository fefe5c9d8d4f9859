"""Tests for pulsecoach.analytics.trends -- trend windows and correlations."""

import pytest

from pulsecoach.analytics.calendar import build_demo_calendar
from pulsecoach.analytics.trends import (
    build_correlation_insights,
    build_demo_correlation_insights,
    build_demo_trends,
    build_insight,
    build_trends,
    correlation_confidence,
)
from tests.conftest import TODAY, activity, ago, last_n_days, night, zones


class TestTrends:
    def test_windows(self):
        payload = build_trends([], [], [], TODAY)
        assert [w.days for w in payload.windows] == [7, 30, 90]

    def test_zone2_is_summed(self):
        rows = [zones(ago(i), zone2=10) for i in range(7)]
        rows += [zones(ago(i), zone2=5) for i in range(7, 14)]
        w7 = build_trends([], [], rows, TODAY).windows[0]
        assert w7.zone2_total.current == 70
        assert w7.zone2_total.baseline == 35
        assert w7.zone2_total.delta_pct == pytest.approx(100.0)

    def test_averages(self):
        sleeps = [night(ago(i), minutes=480) for i in range(7)]
        steps = [activity(ago(0), steps=9000), activity(ago(1), steps=7000)]
        w7 = build_trends(steps, sleeps, [], TODAY).windows[0]
        assert w7.avg_sleep_hours.current == 8.0
        assert w7.avg_steps.current == 8000
        assert w7.avg_steps.baseline == 0
        assert w7.avg_steps.delta_pct is None

    def test_rhr_ignores_missing(self):
        rows = [zones(ago(0), rhr=60.0), zones(ago(1), rhr=None)]
        w7 = build_trends([], [], rows, TODAY).windows[0]
        assert w7.avg_resting_heart_rate.current == 60.0


class TestConfidence:
    def test_bands(self):
        assert correlation_confidence(0.5, 45) == "high"
        assert correlation_confidence(0.5, 44) == "medium"
        assert correlation_confidence(0.3, 20) == "medium"
        assert correlation_confidence(0.3, 19) == "low"
        assert correlation_confidence(0.2, 90) == "low"


class TestInsight:
    def test_weak_dropped(self):
        xs = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]
        ys = [5.0, 1.0, 4.0, 2.0, 6.0, 3.0, 2.0, 4.0]
        assert build_insight("a-b", "A vs B", "a", "b", xs, ys) is None

    def test_detail(self):
        xs = [float(i) for i in range(10)]
        ins = build_insight("a-b", "A vs B", "sleep duration", "daily steps", xs, [2 * x for x in xs])
        assert ins.detail == "Sleep duration and daily steps increase together (r=1.00, n=10)."
        assert ins.direction == "positive"


class TestCorrelations:
    def test_too_few_pairs_falls_back(self):
        days = last_n_days(5)
        steps = [activity(d, steps=5000 + 100 * i) for i, d in enumerate(days)]
        sleeps = [night(d, minutes=400 + 10 * i) for i, d in enumerate(days)]
        out = build_correlation_insights(steps, sleeps, [], TODAY)
        assert len(out) == 1
        assert out[0].id == "insufficient-data"
        assert out[0].sample_size == 5

    def test_sleep_steps(self):
        days = last_n_days(20)
        steps = [activity(d, steps=5000 + 100 * i) for i, d in enumerate(days)]
        sleeps = [night(d, minutes=400 + 10 * i) for i, d in enumerate(days)]
        out = build_correlation_insights(steps, sleeps, [], TODAY)
        assert [i.id for i in out] == ["sleep-steps"]
        assert out[0].confidence == "medium"
        assert out[0].sample_size == 20
        assert out[0].detail == "Sleep duration and daily steps increase together (r=1.00, n=20)."

    def test_only_paired_dates(self):
        days = last_n_days(20)
        steps = [activity(d, steps=5000 + 100 * i) for i, d in enumerate(days)]
        sleeps = [night(d, minutes=400 + 10 * i) for i, d in enumerate(days[:7])]
        out = build_correlation_insights(steps, sleeps, [], TODAY)
        assert out[0].id == "insufficient-data"

    def test_sorted_by_strength(self):
        days = last_n_days(30)
        noise = [3, -2, 0, 4, -4, 1, -1, 2, -3, 0] * 3
        sleeps = [night(d, minutes=400 + 5 * i) for i, d in enumerate(days)]
        steps = [activity(d, steps=6000 + 40 * i + 300 * noise[i]) for i, d in enumerate(days)]
        heart = [zones(d, zone2=10 + i, rhr=70.0 - 0.5 * i) for i, d in enumerate(days)]
        out = build_correlation_insights(steps, sleeps, heart, TODAY)
        strengths = [abs(i.r) for i in out]
        assert strengths == sorted(strengths, reverse=True)
        zone2_rhr = next(i for i in out if i.id == "zone2-rhr")
        assert zone2_rhr.direction == "negative"
        assert zone2_rhr.detail.startswith("Zone 2 minutes and resting heart rate move in opposite directions")


class TestDemo:
    def test_demo_trends(self):
        cal = build_demo_calendar(None, TODAY, history_days=180)
        payload = build_demo_trends(cal.days, TODAY)
        assert payload.windows[2].avg_steps.current > 0
        assert payload.windows[2].avg_steps.baseline > 0

    def test_demo_correlations(self):
        cal = build_demo_calendar(None, TODAY, history_days=90)
        out = build_demo_correlation_insights(cal.days, TODAY)
        assert len(out) >= 1
