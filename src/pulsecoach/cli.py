"""CLI for the pulsecoach analytics engine."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any

import click

from pulsecoach.config import Settings

DATE = click.DateTime(formats=["%Y-%m-%d"])


def _day(value: datetime | None) -> date:
    return value.date() if value is not None else date.today()


def _plain(payload: Any) -> Any:
    if isinstance(payload, list):
        return [_plain(p) for p in payload]
    if hasattr(payload, "to_dict"):
        return payload.to_dict()
    return payload


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(_plain(payload), indent=2, default=str))


def _store(ctx: click.Context):
    from pulsecoach.db import SqlStore

    settings: Settings = ctx.obj
    return SqlStore(settings.database_url)


@contextmanager
def _store_errors(hint: str = "run `pulsecoach init-db` first?"):
    from pulsecoach.store import StoreError

    try:
        yield
    except StoreError as exc:
        raise click.ClickException(f"{exc} ({hint})") from exc


@click.group()
@click.option("--database-url", default=None, help="Overrides PULSECOACH_DATABASE_URL.")
@click.option("--user", "user_id", default=None, help="Overrides PULSECOACH_USER_ID.")
@click.pass_context
def main(ctx: click.Context, database_url: str | None, user_id: str | None) -> None:
    """Sleep, activity and recovery coaching from daily wearable data."""
    settings = Settings.from_env()
    if database_url or user_id:
        settings = Settings(
            database_url=database_url or settings.database_url,
            user_id=user_id or settings.user_id,
            log_level=settings.log_level,
        )
    logging.basicConfig(
        level=settings.log_level_number,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


@main.command("score-sleep")
@click.option("--asleep", type=int, required=True, help="Minutes asleep.")
@click.option("--in-bed", type=int, required=True, help="Minutes in bed.")
@click.option("--efficiency", type=float, default=0.0, help="Sleep efficiency, 0-100.")
@click.option("--deep", type=int, default=0, help="Deep sleep minutes.")
@click.option("--rem", type=int, default=0, help="REM sleep minutes.")
@click.option("--wake", type=int, default=0, help="Minutes awake during the night.")
@click.option("--goal-hours", type=float, default=8.0, help="Sleep goal in hours.")
@click.option("--mode", type=click.Choice(["fitbit", "recovery"]), default="fitbit", help="Weighting profile.")
def score_sleep(
    asleep: int,
    in_bed: int,
    efficiency: float,
    deep: int,
    rem: int,
    wake: int,
    goal_hours: float,
    mode: str,
) -> None:
    """Score one night of sleep."""
    from pulsecoach.analytics.sleep_score import SleepScoreInput, calculate_sleep_score_detailed

    inp = SleepScoreInput(
        minutes_asleep=asleep,
        time_in_bed=in_bed,
        efficiency=efficiency,
        deep_minutes=deep,
        rem_minutes=rem,
        wake_minutes=wake,
    )
    _echo_json(calculate_sleep_score_detailed(inp, goal_hours, mode))


@main.command()
@click.argument("calculator")
@click.option("--today", type=DATE, default=None, help="Reference date (YYYY-MM-DD).")
@click.option("--month", default=None, help="Calendar month (YYYY-MM).")
def demo(calculator: str, today: datetime | None, month: str | None) -> None:
    """Print a synthetic-data payload for CALCULATOR."""
    from pulsecoach import service

    if calculator not in service.DEMO_CALCULATORS:
        raise click.BadParameter(
            f"expected one of: {', '.join(service.DEMO_CALCULATORS)}", param_hint="CALCULATOR"
        )
    try:
        payload = service.demo(calculator, _day(today), month=month)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--month") from exc
    _echo_json(payload)


@main.command()
@click.argument("calculator")
@click.option("--today", type=DATE, default=None, help="Reference date (YYYY-MM-DD).")
@click.pass_context
def insights(ctx: click.Context, calculator: str, today: datetime | None) -> None:
    """Print a live payload for CALCULATOR from the configured database."""
    from pulsecoach import service

    if calculator not in service.LIVE:
        raise click.BadParameter(f"expected one of: {', '.join(service.LIVE)}", param_hint="CALCULATOR")
    with _store_errors():
        payload = service.LIVE[calculator](_store(ctx), ctx.obj.user_id, today=_day(today))
    _echo_json(payload)


@main.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database schema."""
    from pulsecoach.db import init_db as do_init

    with _store_errors(hint="check --database-url"):
        do_init(ctx.obj.database_url)
    click.echo(f"Schema ready at {ctx.obj.database_url}")


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


@main.group()
def alerts() -> None:
    """Evaluate and inspect alerts."""


@alerts.command("evaluate")
@click.option("--today", type=DATE, default=None, help="Reference date (YYYY-MM-DD).")
@click.pass_context
def alerts_evaluate(ctx: click.Context, today: datetime | None) -> None:
    """Evaluate alert rules and store the ones that fire."""
    from pulsecoach.alerts import evaluate_alerts

    with _store_errors():
        events = evaluate_alerts(_store(ctx), ctx.obj.user_id, _day(today))
    if not events:
        click.echo("No alerts.")
        return
    for event in events:
        click.echo(f"[{event.severity.value}] {event.type}: {event.message}")


@alerts.command("list")
@click.option("--limit", "-n", default=20, help="Max alerts to show (1-100).")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of text.")
@click.pass_context
def alerts_list(ctx: click.Context, limit: int, as_json: bool) -> None:
    """List recent alerts, newest first."""
    from pulsecoach.alerts import list_recent_alerts

    with _store_errors():
        events = list_recent_alerts(_store(ctx), ctx.obj.user_id, limit)
    if as_json:
        _echo_json(events)
        return
    for event in events:
        state = "open" if event.is_open else "resolved"
        click.echo(f"{event.day_key} [{event.severity.value}] {event.type} ({state}): {event.message}")


@alerts.command("resolve")
@click.argument("alert_id")
@click.pass_context
def alerts_resolve(ctx: click.Context, alert_id: str) -> None:
    """Mark an alert as resolved."""
    from pulsecoach.alerts import resolve_alert

    with _store_errors():
        event = resolve_alert(_store(ctx), alert_id, datetime.now())
    if event is None:
        raise click.ClickException(f"no alert with id {alert_id}")
    click.echo(f"Resolved {event.type} ({event.day_key}).")


if __name__ == "__main__":
    main()
