from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api import get_aggregator, get_store
from datastore.readings import ReadingStore
from models.catalog import CATALOG, SensorKind, history_sensors, presentation_for
from services.errors import DataSourceUnavailable, InvalidRangeError
from services.formatting import decimal_to_dms, format_with_unit, freshness
from services.series import group_series
from services.snapshot import LocationValue, NumericSensorValue, Snapshot, SnapshotAggregator
from services.time_ranges import RANGE_OFFSETS, resolve_history_range


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

_LOCALES = ("de", "en")
_HISTORY_RANGES = ("1h", "5h", "1d", "1w")


def _locale(lang: Optional[str]) -> str:
    return lang if lang in _LOCALES else "de"


def _cards(snapshot: Snapshot, locale: str, now: datetime) -> list[dict[str, Any]]:
    cards: list[dict[str, Any]] = []
    for descriptor in CATALOG:
        if descriptor.kind is SensorKind.coordinate:
            continue
        entry = snapshot.get(descriptor.sensor_id)
        card: dict[str, Any] = {
            "sensor_id": descriptor.sensor_id,
            "title": descriptor.title(locale),
            "icon": presentation_for(descriptor.sensor_id).icon,
            "display": None,
            "freshness": None,
        }
        if isinstance(entry, NumericSensorValue):
            card["display"] = format_with_unit(
                descriptor.format_value(entry.value), entry.unit or descriptor.unit
            )
            card["freshness"] = freshness(entry.timestamp, now)
        elif isinstance(entry, LocationValue):
            card["display"] = entry.place
            card["freshness"] = freshness(entry.timestamp, now)
        cards.append(card)
    return cards


def _position(snapshot: Snapshot) -> Optional[str]:
    lat = snapshot.get("gnss_lat")
    lon = snapshot.get("gnss_lon")
    if isinstance(lat, NumericSensorValue) and isinstance(lon, NumericSensorValue):
        return decimal_to_dms(lat.value, lon.value)
    return None


router = APIRouter(include_in_schema=False)


@router.get("/", name="dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    lang: Optional[str] = Query(None),
    aggregator: SnapshotAggregator = Depends(get_aggregator),
) -> HTMLResponse:
    locale = _locale(lang)
    try:
        snapshot = aggregator.collect()
    except DataSourceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch latest sensor data",
        ) from exc

    now = datetime.now(timezone.utc)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "locale": locale,
            "cards": _cards(snapshot, locale, now),
            "position": _position(snapshot),
        },
    )


@router.get("/history", name="history_page", response_class=HTMLResponse)
def history_page(
    request: Request,
    range_key: Optional[str] = Query(None, alias="range"),
    lang: Optional[str] = Query(None),
    store: ReadingStore = Depends(get_store),
) -> HTMLResponse:
    locale = _locale(lang)
    selected = range_key if range_key in RANGE_OFFSETS else "1h"
    descriptors = history_sensors()
    try:
        window = resolve_history_range(selected)
        readings = store.in_window(window, sensors=[d.sensor_id for d in descriptors])
    except InvalidRangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DataSourceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch history data",
        ) from exc

    table = group_series(readings, [d.sensor_id for d in descriptors])
    columns = [
        {
            "sensor_id": d.sensor_id,
            "title": d.title(locale),
            "unit": d.unit,
            "color": presentation_for(d.sensor_id).chart_color,
            "format": d.format_value,
        }
        for d in descriptors
    ]
    rows = [
        {
            "label": label.strftime("%Y-%m-%d %H:%M"),
            "cells": [table.datasets[d.sensor_id][index] for d in descriptors],
        }
        for index, label in enumerate(table.labels)
    ]
    return templates.TemplateResponse(
        request,
        "history.html",
        {
            "locale": locale,
            "ranges": _HISTORY_RANGES,
            "selected": selected,
            "columns": columns,
            "rows": rows,
        },
    )


@router.get("/password", name="password_page", response_class=HTMLResponse)
def password_page(request: Request, lang: Optional[str] = Query(None)) -> HTMLResponse:
    return templates.TemplateResponse(request, "password.html", {"locale": _locale(lang)})
