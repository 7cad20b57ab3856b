"""ORM models for persisted sensor readings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class UTCDateTime(TypeDecorator):
    """Store instants as UTC and always hand back timezone-aware values.

    SQLite drops tzinfo on the way out, so naive values coming back from the
    driver are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Reading(Base):
    """One timestamped value reported by a sensor within a cluster."""

    __tablename__ = "sensor_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cluster: Mapped[str] = mapped_column(String(64), nullable=False)
    sensor: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    timestamp: Mapped[datetime] = mapped_column("ts", UTCDateTime(), nullable=False)

    __table_args__ = (Index("idx_sensor_data_sensor_ts", "sensor", "ts"),)

    def __repr__(self) -> str:
        return (
            f"Reading(id={self.id!r}, cluster={self.cluster!r}, sensor={self.sensor!r}, "
            f"value={self.value!r}, unit={self.unit!r}, timestamp={self.timestamp!r})"
        )
