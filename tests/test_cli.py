"""Tests for the pulsecoach command line."""

import json

import pytest
from click.testing import CliRunner

from pulsecoach.cli import main


@pytest.fixture
def runner(monkeypatch):
    for var in ("PULSECOACH_DATABASE_URL", "PULSECOACH_USER_ID", "PULSECOACH_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return CliRunner()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'coach.db'}"


def _invoke(runner, *args):
    result = runner.invoke(main, list(args))
    assert result.exit_code == 0, result.output
    return result.output


class TestScoreSleep:
    def test_breakdown(self, runner):
        out = _invoke(
            runner, "score-sleep",
            "--asleep", "480", "--in-bed", "500", "--efficiency", "50",
            "--deep", "120", "--rem", "120", "--wake", "20",
        )
        assert json.loads(out) == {"duration": 50, "depth": 25, "restoration": 17, "total": 92}

    def test_recovery_mode(self, runner):
        out = _invoke(
            runner, "score-sleep",
            "--asleep", "480", "--in-bed", "500", "--efficiency", "50",
            "--deep", "120", "--rem", "120", "--wake", "20", "--mode", "recovery",
        )
        assert json.loads(out)["total"] == 85

    def test_requires_minutes(self, runner):
        result = runner.invoke(main, ["score-sleep", "--in-bed", "500"])
        assert result.exit_code != 0


class TestDemo:
    def test_steps(self, runner):
        payload = json.loads(_invoke(runner, "demo", "steps", "--today", "2024-01-09"))
        assert payload["daily_target"] == 8500
        assert len(payload["progression_plan"]) == 4

    def test_correlations_is_a_list(self, runner):
        payload = json.loads(_invoke(runner, "demo", "correlations", "--today", "2024-01-09"))
        assert isinstance(payload, list)

    def test_calendar_month(self, runner):
        payload = json.loads(_invoke(runner, "demo", "calendar", "--today", "2024-01-09", "--month", "2024-01"))
        assert payload["start_date"] == "2023-12-31"

    def test_unknown_calculator(self, runner):
        result = runner.invoke(main, ["demo", "bogus"])
        assert result.exit_code != 0
        assert "expected one of" in result.output

    def test_malformed_month(self, runner):
        result = runner.invoke(main, ["demo", "calendar", "--today", "2024-01-09", "--month", "January"])
        assert result.exit_code == 2
        assert "--month" in result.output
        assert "YYYY-MM" in result.output


class TestDatabaseCommands:
    def test_init_and_alerts(self, runner, db_url):
        out = _invoke(runner, "--database-url", db_url, "init-db")
        assert out.strip() == f"Schema ready at {db_url}"

        out = _invoke(runner, "--database-url", db_url, "alerts", "evaluate", "--today", "2024-01-09")
        assert out.strip() == "[low] low_zone2_days: Zone 2 activity logged on 0 day(s); target is 3 day(s)."

        out = _invoke(runner, "--database-url", db_url, "alerts", "list")
        assert out.strip().startswith("2024-01-09 [low] low_zone2_days (open):")

        events = json.loads(_invoke(runner, "--database-url", db_url, "alerts", "list", "--json"))
        assert len(events) == 1
        alert_id = events[0]["id"]

        out = _invoke(runner, "--database-url", db_url, "alerts", "resolve", alert_id)
        assert out.strip() == "Resolved low_zone2_days (2024-01-09)."
        events = json.loads(_invoke(runner, "--database-url", db_url, "alerts", "list", "--json"))
        assert events[0]["resolved_at"] is not None

    def test_resolve_unknown(self, runner, db_url):
        _invoke(runner, "--database-url", db_url, "init-db")
        result = runner.invoke(main, ["--database-url", db_url, "alerts", "resolve", "nope"])
        assert result.exit_code == 1
        assert "no alert with id nope" in result.output

    def test_users_are_separate(self, runner, db_url):
        _invoke(runner, "--database-url", db_url, "init-db")
        _invoke(runner, "--database-url", db_url, "--user", "alice", "alerts", "evaluate", "--today", "2024-01-09")
        out = _invoke(runner, "--database-url", db_url, "--user", "bob", "alerts", "list")
        assert out == ""

    def test_insights_on_empty_database(self, runner, db_url):
        _invoke(runner, "--database-url", db_url, "init-db")
        payload = json.loads(_invoke(runner, "--database-url", db_url, "insights", "sleep", "--today", "2024-01-09"))
        assert payload["target_sleep_hours"] == 7.0
        assert payload["sleep_score"]["latest"] is None

    def test_missing_schema_is_reported(self, runner, db_url):
        result = runner.invoke(main, ["--database-url", db_url, "insights", "steps", "--today", "2024-01-09"])
        assert result.exit_code == 1
        assert "init-db" in result.output

    def test_database_url_from_env(self, runner, db_url, monkeypatch):
        monkeypatch.setenv("PULSECOACH_DATABASE_URL", db_url)
        out = _invoke(runner, "init-db")
        assert db_url in out

    def test_init_db_unreachable_path(self, runner, tmp_path):
        url = f"sqlite:///{tmp_path / 'missing' / 'coach.db'}"
        result = runner.invoke(main, ["--database-url", url, "init-db"])
        assert result.exit_code == 1
        assert "Error: schema creation failed (check --database-url)" in result.output
