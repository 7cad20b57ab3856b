"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator

from services.time_ranges import isoformat_utc


class ReadingIn(BaseModel):
    """Body accepted by the ingest endpoint."""

    cluster: str = Field(..., min_length=1)
    sensor: str = Field(..., min_length=1)
    value: float = Field(..., strict=True, allow_inf_nan=False)
    unit: Optional[str] = None
    timestamp: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "ts"),
        description="Measurement instant; defaults to the time of ingestion.",
    )

    @field_validator("cluster", "sensor")
    @classmethod
    def _strip_labels(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("must not be blank")
        return candidate

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ReadingOut(BaseModel):
    """A stored reading as returned by the API."""

    model_config = {"from_attributes": True}

    id: int
    cluster: str
    sensor: str
    value: float
    unit: Optional[str] = None
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return isoformat_utc(value)


class IngestResponse(BaseModel):
    message: str
    data: ReadingOut


class ReadingListResponse(BaseModel):
    data: List[ReadingOut]


class HistoryPoint(BaseModel):
    model_config = {"from_attributes": True}

    timestamp: datetime
    sensor: str
    value: float
    unit: Optional[str] = None

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return isoformat_utc(value)


class HistoryResponse(BaseModel):
    data: List[HistoryPoint]


class SeriesSensor(BaseModel):
    """Chart metadata for one aligned dataset."""

    sensor: str
    title: str
    unit: str
    chart_color: str
    chart_axis: str


class SeriesResponse(BaseModel):
    labels: List[str]
    datasets: Dict[str, List[Optional[float]]]
    sensors: List[SeriesSensor] = Field(default_factory=list)


class LoginResponse(BaseModel):
    success: bool = True
