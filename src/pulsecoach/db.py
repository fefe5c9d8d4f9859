"""SQLAlchemy implementation of :class:`pulsecoach.store.Store`.

One table per daily entity, unique on ``(user_id, date)``.  Writes are
select-then-insert/update inside a single session; any SQLAlchemy error is
logged and re-raised as :class:`StoreError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict, fields
from datetime import date, datetime
from typing import Iterable, Iterator

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pulsecoach.config import DEFAULT_DATABASE_URL
from pulsecoach.models import (
    ActivityLogEntry,
    AlertEvent,
    AlertPreference,
    DailyActivitySummary,
    DailyHeartZones,
    DailyRecoveryBiomarkers,
    DailySleepRecord,
    Severity,
    SleepScoreMode,
    WeeklyGoals,
)
from pulsecoach.store import Store, StoreError, clamp_limit, new_id

logger = logging.getLogger(__name__)


Base = declarative_base()


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class ActivitySummaryRow(Base):
    __tablename__ = "daily_activity_summary"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    steps = Column(Integer, nullable=False, default=0)
    active_minutes = Column(Integer, nullable=False, default=0)
    sedentary_minutes = Column(Integer, nullable=False, default=0)
    lightly_active_minutes = Column(Integer, nullable=True)
    fairly_active_minutes = Column(Integer, nullable=True)
    very_active_minutes = Column(Integer, nullable=True)
    calories_out = Column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_activity_user_date"),)


class SleepRow(Base):
    """Main sleep only; naps are not stored."""
    __tablename__ = "daily_sleep"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    minutes_asleep = Column(Integer, nullable=False, default=0)
    time_in_bed = Column(Integer, nullable=False, default=0)
    efficiency = Column(Float, nullable=False, default=0.0)
    deep_minutes = Column(Integer, nullable=True)
    rem_minutes = Column(Integer, nullable=True)
    light_minutes = Column(Integer, nullable=True)
    wake_minutes = Column(Integer, nullable=True)
    sleep_start = Column(DateTime, nullable=True)
    sleep_end = Column(DateTime, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_sleep_user_date"),)


class HeartZonesRow(Base):
    __tablename__ = "daily_heart_zones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    zone2_minutes = Column(Integer, nullable=False, default=0)  # fat burn
    cardio_minutes = Column(Integer, nullable=True)
    peak_minutes = Column(Integer, nullable=True)
    out_of_range_minutes = Column(Integer, nullable=True)
    resting_heart_rate = Column(Float, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_zones_user_date"),)


class RecoveryBiomarkersRow(Base):
    __tablename__ = "daily_recovery_biomarkers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    cardio_fitness_score = Column(Float, nullable=True)
    vo2_max = Column(Float, nullable=True)
    hrv_rmssd = Column(Float, nullable=True)
    hrv_deep_rmssd = Column(Float, nullable=True)
    breathing_rate = Column(Float, nullable=True)
    spo2_avg = Column(Float, nullable=True)
    spo2_min = Column(Float, nullable=True)
    spo2_max = Column(Float, nullable=True)
    skin_temp_c = Column(Float, nullable=True)
    core_temp_c = Column(Float, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_biomarkers_user_date"),)


class ActivityLogRow(Base):
    __tablename__ = "activity_log"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # start_time's day
    id = Column(String, nullable=False)  # upstream log id
    start_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Float, nullable=False, default=0.0)
    name = Column(String, nullable=False, default="")
    calories = Column(Float, nullable=True)
    distance = Column(Float, nullable=True)
    steps = Column(Integer, nullable=True)


class AlertPreferenceRow(Base):
    __tablename__ = "alert_preference"

    user_id = Column(String, primary_key=True)
    min_sleep_hours = Column(Float, nullable=False)
    min_avg_steps = Column(Integer, nullable=False)
    min_zone2_days = Column(Integer, nullable=False)
    max_resting_hr_delta = Column(Float, nullable=False)
    alerts_enabled = Column(Boolean, nullable=False)


class WeeklyGoalsRow(Base):
    __tablename__ = "weekly_goals"

    user_id = Column(String, primary_key=True)
    zone2_target_minutes = Column(Integer, nullable=False)
    avg_sleep_target_hours = Column(Float, nullable=False)
    avg_steps_target = Column(Integer, nullable=False)
    sleep_score_mode = Column(String, nullable=False)


class AlertEventRow(Base):
    __tablename__ = "alert_event"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    day_key = Column(String, nullable=False)
    type = Column(String, nullable=False)
    severity = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)
    resolved_at = Column(DateTime, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "day_key", "type", name="uq_alert_user_day_type"),)


# ---------------------------------------------------------------------------
# Row <-> dataclass
# ---------------------------------------------------------------------------


def _to_dataclass(cls, obj):
    return cls(**{f.name: getattr(obj, f.name) for f in fields(cls)})


def _alert_from_row(obj: AlertEventRow) -> AlertEvent:
    return AlertEvent(
        id=obj.id,
        user_id=obj.user_id,
        day_key=obj.day_key,
        type=obj.type,
        severity=Severity(obj.severity),
        message=obj.message,
        created_at=obj.created_at,
        resolved_at=obj.resolved_at,
    )


def _goals_from_row(obj: WeeklyGoalsRow) -> WeeklyGoals:
    return WeeklyGoals(
        zone2_target_minutes=obj.zone2_target_minutes,
        avg_sleep_target_hours=obj.avg_sleep_target_hours,
        avg_steps_target=obj.avg_steps_target,
        sleep_score_mode=SleepScoreMode.parse(obj.sleep_score_mode),
    )


def make_engine(url: str = DEFAULT_DATABASE_URL) -> Engine:
    """Engine for ``url``; SQLite connections may be shared across threads."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SqlStore(Store):
    def __init__(self, engine: Engine | str = DEFAULT_DATABASE_URL) -> None:
        self.engine = make_engine(engine) if isinstance(engine, str) else engine
        self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.error("schema creation failed: %s", exc)
            raise StoreError("schema creation failed") from exc

    @contextmanager
    def _session(self, what: str) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("%s failed: %s", what, exc)
            raise StoreError(f"{what} failed") from exc
        finally:
            session.close()

    # -- daily rows -----------------------------------------------------------

    def _read_daily(self, model, cls, user_id: str, start: date, end: date) -> list:
        with self._session(f"read {model.__tablename__}") as s:
            stmt = (
                select(model)
                .where(model.user_id == user_id, model.date >= start, model.date <= end)
                .order_by(model.date)
            )
            return [_to_dataclass(cls, obj) for obj in s.execute(stmt).scalars()]

    def _upsert_daily(self, model, user_id: str, row) -> None:
        values = asdict(row)
        with self._session(f"upsert {model.__tablename__}") as s:
            obj = s.execute(
                select(model).where(model.user_id == user_id, model.date == row.date)
            ).scalar_one_or_none()
            if obj is None:
                s.add(model(user_id=user_id, **values))
            else:
                for key, value in values.items():
                    setattr(obj, key, value)
        logger.debug("upserted %s %s/%s", model.__tablename__, user_id, row.date)

    def activity_summaries(self, user_id, start, end):
        return self._read_daily(ActivitySummaryRow, DailyActivitySummary, user_id, start, end)

    def sleep_records(self, user_id, start, end):
        return self._read_daily(SleepRow, DailySleepRecord, user_id, start, end)

    def heart_zones(self, user_id, start, end):
        return self._read_daily(HeartZonesRow, DailyHeartZones, user_id, start, end)

    def recovery_biomarkers(self, user_id, start, end):
        return self._read_daily(RecoveryBiomarkersRow, DailyRecoveryBiomarkers, user_id, start, end)

    def activity_logs(self, user_id, start, end):
        with self._session("read activity_log") as s:
            stmt = (
                select(ActivityLogRow)
                .where(
                    ActivityLogRow.user_id == user_id,
                    ActivityLogRow.date >= start,
                    ActivityLogRow.date <= end,
                )
                .order_by(ActivityLogRow.start_time)
            )
            return [_to_dataclass(ActivityLogEntry, obj) for obj in s.execute(stmt).scalars()]

    def put_activity_summary(self, user_id, row):
        self._upsert_daily(ActivitySummaryRow, user_id, row)

    def put_sleep_record(self, user_id, row):
        self._upsert_daily(SleepRow, user_id, row)

    def put_heart_zones(self, user_id, row):
        self._upsert_daily(HeartZonesRow, user_id, row)

    def put_recovery_biomarkers(self, user_id, row):
        self._upsert_daily(RecoveryBiomarkersRow, user_id, row)

    def replace_activity_logs(self, user_id: str, day: date, entries: Iterable[ActivityLogEntry]) -> None:
        entries = list(entries)
        with self._session("replace activity_log") as s:
            s.execute(
                delete(ActivityLogRow).where(ActivityLogRow.user_id == user_id, ActivityLogRow.date == day)
            )
            for entry in entries:
                s.add(ActivityLogRow(user_id=user_id, date=entry.start_time.date(), **asdict(entry)))
        logger.debug("replaced %d activity logs for %s/%s", len(entries), user_id, day)

    # -- per-user settings ----------------------------------------------------

    def alert_preference(self, user_id: str) -> AlertPreference:
        with self._session("read alert_preference") as s:
            obj = s.get(AlertPreferenceRow, user_id)
            if obj is None:
                obj = AlertPreferenceRow(user_id=user_id, **asdict(AlertPreference()))
                s.add(obj)
            return _to_dataclass(AlertPreference, obj)

    def save_alert_preference(self, user_id: str, pref: AlertPreference) -> AlertPreference:
        with self._session("save alert_preference") as s:
            s.merge(AlertPreferenceRow(user_id=user_id, **asdict(pref)))
        return pref

    def weekly_goals(self, user_id: str) -> WeeklyGoals:
        with self._session("read weekly_goals") as s:
            obj = s.get(WeeklyGoalsRow, user_id)
            if obj is None:
                obj = WeeklyGoalsRow(user_id=user_id, **WeeklyGoals().to_dict())
                s.add(obj)
            return _goals_from_row(obj)

    def save_weekly_goals(self, user_id: str, goals: WeeklyGoals) -> WeeklyGoals:
        with self._session("save weekly_goals") as s:
            s.merge(WeeklyGoalsRow(user_id=user_id, **goals.to_dict()))
        return goals

    # -- alerts ---------------------------------------------------------------

    def upsert_alert(self, user_id, day_key, alert_type, severity, message, now):
        with self._session("upsert alert_event") as s:
            obj = s.execute(
                select(AlertEventRow).where(
                    AlertEventRow.user_id == user_id,
                    AlertEventRow.day_key == day_key,
                    AlertEventRow.type == alert_type,
                )
            ).scalar_one_or_none()
            if obj is None:
                obj = AlertEventRow(
                    id=new_id(),
                    user_id=user_id,
                    day_key=day_key,
                    type=alert_type,
                    created_at=now,
                )
                s.add(obj)
            obj.severity = Severity(severity).value
            obj.message = message
            obj.resolved_at = None
            event = _alert_from_row(obj)
        logger.debug("upserted alert %s/%s/%s", user_id, day_key, alert_type)
        return event

    def list_alerts(self, user_id: str, limit: int = 20) -> list[AlertEvent]:
        with self._session("list alert_event") as s:
            stmt = (
                select(AlertEventRow)
                .where(AlertEventRow.user_id == user_id)
                .order_by(AlertEventRow.created_at.desc())
                .limit(clamp_limit(limit))
            )
            return [_alert_from_row(obj) for obj in s.execute(stmt).scalars()]

    def resolve_alert(self, alert_id: str, now: datetime) -> AlertEvent | None:
        with self._session("resolve alert_event") as s:
            obj = s.get(AlertEventRow, alert_id)
            if obj is None:
                return None
            obj.resolved_at = now
            return _alert_from_row(obj)


def init_db(url: str = DEFAULT_DATABASE_URL) -> SqlStore:
    """Create every table (if missing) and return a store bound to ``url``."""
    store = SqlStore(url)
    store.create_schema()
    logger.info("database schema ready at %s", url)
    return store
