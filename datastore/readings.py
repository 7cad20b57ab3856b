from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Iterable, NoReturn, Optional, Sequence

from sqlalchemy import Engine, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from models.records import Base, Reading
from services.errors import DataSourceUnavailable
from services.time_ranges import TimeWindow
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingStore:
    """Filtered reads and single inserts against the ``sensor_data`` table.

    Every call opens its own session, so one store can be shared across the
    worker threads of the snapshot aggregator.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def latest(self, sensors: Sequence[str], cluster: Optional[str] = None) -> Optional[Reading]:
        statement = select(Reading).where(Reading.sensor.in_(list(sensors)))
        if cluster is not None:
            statement = statement.where(Reading.cluster == cluster)
        statement = statement.order_by(Reading.timestamp.desc(), Reading.id.desc()).limit(1)
        try:
            with self._session_factory() as session:
                return session.scalars(statement).first()
        except SQLAlchemyError as exc:
            self._raise_unavailable("latest", exc, sensor=",".join(sensors), cluster=cluster)

    def in_window(
        self, window: TimeWindow, sensors: Optional[Iterable[str]] = None
    ) -> list[Reading]:
        statement = select(Reading).where(
            Reading.timestamp >= window.start,
            Reading.timestamp < window.end,
        )
        sensor_list = list(sensors) if sensors is not None else None
        if sensor_list is not None:
            statement = statement.where(Reading.sensor.in_(sensor_list))
        statement = statement.order_by(Reading.timestamp.asc(), Reading.id.asc())
        try:
            with self._session_factory() as session:
                return list(session.scalars(statement))
        except SQLAlchemyError as exc:
            self._raise_unavailable("in_window", exc)

    def recent(
        self,
        cluster: Optional[str] = None,
        sensor: Optional[str] = None,
        limit: int = 100,
        descending: bool = True,
    ) -> list[Reading]:
        statement = select(Reading)
        if cluster:
            statement = statement.where(Reading.cluster == cluster)
        if sensor:
            statement = statement.where(Reading.sensor == sensor)
        if descending:
            statement = statement.order_by(Reading.timestamp.desc(), Reading.id.desc())
        else:
            statement = statement.order_by(Reading.timestamp.asc(), Reading.id.asc())
        statement = statement.limit(limit)
        try:
            with self._session_factory() as session:
                return list(session.scalars(statement))
        except SQLAlchemyError as exc:
            self._raise_unavailable("recent", exc, sensor=sensor, cluster=cluster)

    def insert(
        self,
        cluster: str,
        sensor: str,
        value: float,
        unit: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Reading:
        reading = Reading(
            cluster=cluster,
            sensor=sensor,
            value=value,
            unit=unit or None,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        try:
            with self._session_factory.begin() as session:
                session.add(reading)
                session.flush()
                session.refresh(reading)
        except SQLAlchemyError as exc:
            self._raise_unavailable("insert", exc, sensor=sensor, cluster=cluster)
        return reading

    @staticmethod
    def _raise_unavailable(operation: str, exc: SQLAlchemyError, **context: Optional[str]) -> NoReturn:
        logger.error(
            "Reading store %s query failed",
            operation,
            exc_info=exc,
            extra={"reason": type(exc).__name__, **context},
        )
        raise DataSourceUnavailable(f"Reading store {operation} query failed.") from exc


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    connect_args: dict[str, object] = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def build_store(engine: Engine) -> ReadingStore:
    return ReadingStore(sessionmaker(bind=engine, expire_on_commit=False))


@lru_cache
def build_default_engine(database_url: Optional[str] = None) -> Engine:
    settings = get_settings()
    return build_engine(settings.database_url if database_url is None else database_url)


@lru_cache
def build_default_store(database_url: Optional[str] = None) -> ReadingStore:
    return build_store(build_default_engine(database_url))
