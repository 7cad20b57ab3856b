"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.schemas import (
    HistoryPoint,
    HistoryResponse,
    IngestResponse,
    LoginResponse,
    ReadingIn,
    ReadingListResponse,
    ReadingOut,
    SeriesResponse,
    SeriesSensor,
)
from datastore.readings import ReadingStore, build_default_store
from models.catalog import history_sensors, presentation_for
from services.access_gate import COOKIE_NAME, SESSION_TTL, AccessGate
from services.csv_export import export_filename, render_csv
from services.errors import (
    BadRequest,
    DataSourceUnavailable,
    InvalidCredentials,
    InvalidRangeError,
    ServerMisconfigured,
)
from services.series import group_series
from services.snapshot import SnapshotAggregator, build_default_aggregator, snapshot_payload
from services.time_ranges import (
    isoformat_utc,
    parse_instant,
    resolve_export_range,
    resolve_history_range,
)
from settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store() -> ReadingStore:
    return build_default_store()


def get_aggregator() -> SnapshotAggregator:
    return build_default_aggregator()


def get_gate() -> AccessGate:
    return AccessGate.from_settings(get_settings())


def _bad_range(exc: InvalidRangeError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _unavailable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


async def _read_json(request: Request, message: str) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise BadRequest(message) from exc


@router.get(
    "/api/sensors/latest",
    summary="Most recent reading for every configured sensor.",
)
def latest_snapshot(
    aggregator: SnapshotAggregator = Depends(get_aggregator),
) -> Dict[str, Optional[Dict[str, Any]]]:
    try:
        snapshot = aggregator.collect()
    except DataSourceUnavailable as exc:
        raise _unavailable("Failed to fetch latest sensor data") from exc
    return snapshot_payload(snapshot)


@router.get(
    "/api/sensors/history",
    response_model=HistoryResponse,
    summary="All readings inside a time range, oldest first.",
)
def history(
    range_key: Optional[str] = Query(None, alias="range"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    store: ReadingStore = Depends(get_store),
) -> HistoryResponse:
    try:
        window = resolve_history_range(
            range_key, start=parse_instant(start_date), end=parse_instant(end_date)
        )
    except InvalidRangeError as exc:
        raise _bad_range(exc) from exc
    try:
        readings = store.in_window(window)
    except DataSourceUnavailable as exc:
        raise _unavailable("Failed to fetch history data") from exc
    logger.info("History served", extra={"range_key": range_key, "row_count": len(readings)})
    return HistoryResponse(data=[HistoryPoint.model_validate(reading) for reading in readings])


@router.get(
    "/api/sensors/history/series",
    response_model=SeriesResponse,
    summary="History readings aligned per sensor for charting.",
)
def history_series(
    range_key: Optional[str] = Query(None, alias="range"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    lang: str = Query("de"),
    store: ReadingStore = Depends(get_store),
) -> SeriesResponse:
    descriptors = history_sensors()
    sensor_ids = [descriptor.sensor_id for descriptor in descriptors]
    try:
        window = resolve_history_range(
            range_key, start=parse_instant(start_date), end=parse_instant(end_date)
        )
    except InvalidRangeError as exc:
        raise _bad_range(exc) from exc
    try:
        readings = store.in_window(window, sensors=sensor_ids)
    except DataSourceUnavailable as exc:
        raise _unavailable("Failed to fetch history data") from exc

    table = group_series(readings, sensor_ids)
    sensors = []
    for descriptor in descriptors:
        presentation = presentation_for(descriptor.sensor_id)
        sensors.append(
            SeriesSensor(
                sensor=descriptor.sensor_id,
                title=descriptor.title(lang),
                unit=descriptor.unit,
                chart_color=presentation.chart_color,
                chart_axis=presentation.chart_axis,
            )
        )
    return SeriesResponse(
        labels=[isoformat_utc(label) for label in table.labels],
        datasets=table.datasets,
        sensors=sensors,
    )


@router.get(
    "/api/sensors/export",
    summary="Download readings as a CSV file.",
    response_class=Response,
)
def export_csv(
    data_types: Optional[str] = Query(None, alias="dataTypes"),
    time_span: Optional[str] = Query(None, alias="timeSpan"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    store: ReadingStore = Depends(get_store),
) -> Response:
    requested = [item.strip() for item in (data_types or "").split(",") if item.strip()]
    sensors = None if not requested or "all" in requested else requested
    try:
        window = resolve_export_range(
            time_span, start=parse_instant(start_date), end=parse_instant(end_date)
        )
    except InvalidRangeError as exc:
        raise _bad_range(exc) from exc
    try:
        readings = store.in_window(window, sensors=sensors)
    except DataSourceUnavailable as exc:
        raise _unavailable("Failed to export CSV data") from exc

    logger.info("CSV export generated", extra={"range_key": time_span, "row_count": len(readings)})
    filename = export_filename(datetime.now(timezone.utc))
    return Response(
        content=render_csv(readings),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/api/sensor-data",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    summary="Store one sensor reading.",
)
async def ingest_reading(
    request: Request,
    store: ReadingStore = Depends(get_store),
) -> IngestResponse:
    try:
        body = await _read_json(request, "Request body must be JSON.")
        try:
            payload = ReadingIn.model_validate(body)
        except ValidationError as exc:
            raise BadRequest("Missing required fields: cluster, sensor, and value") from exc
    except BadRequest as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        reading = await run_in_threadpool(
            store.insert,
            cluster=payload.cluster,
            sensor=payload.sensor,
            value=payload.value,
            unit=payload.unit,
            timestamp=payload.timestamp,
        )
    except DataSourceUnavailable as exc:
        raise _unavailable("Failed to save sensor data") from exc
    logger.info("Reading stored", extra={"sensor": reading.sensor, "cluster": reading.cluster})
    return IngestResponse(
        message="Sensor data saved successfully",
        data=ReadingOut.model_validate(reading),
    )


@router.get(
    "/api/sensor-data",
    response_model=ReadingListResponse,
    summary="List raw readings, newest first by default.",
)
def list_readings(
    cluster: Optional[str] = Query(None),
    sensor: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=10000),
    order_by: str = Query("desc", alias="orderBy"),
    store: ReadingStore = Depends(get_store),
) -> ReadingListResponse:
    try:
        readings = store.recent(
            cluster=cluster,
            sensor=sensor,
            limit=limit,
            descending=order_by != "asc",
        )
    except DataSourceUnavailable as exc:
        raise _unavailable("Failed to fetch sensor data") from exc
    return ReadingListResponse(data=[ReadingOut.model_validate(reading) for reading in readings])


@router.post(
    "/api/auth/login",
    response_model=LoginResponse,
    summary="Exchange the site password for a session cookie.",
)
async def login(
    request: Request,
    response: Response,
    gate: AccessGate = Depends(get_gate),
) -> LoginResponse:
    try:
        gate.ensure_configured()
        body = await _read_json(request, "Invalid request. Password expected as JSON.")
        # Anything that parsed as JSON but carries no usable password is a wrong password.
        candidate = body.get("password") if isinstance(body, dict) else None
        token = gate.login(candidate)
    except ServerMisconfigured as exc:
        logger.error("Login attempted without a configured password")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    except BadRequest as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except InvalidCredentials as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(SESSION_TTL.total_seconds()),
        path="/",
        httponly=True,
        samesite="lax",
        secure=get_settings().session_cookie_secure,
    )
    return LoginResponse(success=True)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
