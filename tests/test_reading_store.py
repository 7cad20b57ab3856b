"""Tests for the SQLAlchemy-backed reading store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest

from datastore.readings import ReadingStore, build_engine, build_store, init_schema
from services.errors import DataSourceUnavailable
from services.time_ranges import TimeWindow

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path) -> Iterator[ReadingStore]:
    engine = build_engine(f"sqlite:///{tmp_path / 'readings.db'}")
    init_schema(engine)
    yield build_store(engine)
    engine.dispose()


def test_insert_assigns_id_and_keeps_timestamp_aware(store: ReadingStore) -> None:
    reading = store.insert("station", "temperature", 21.5, unit="°C", timestamp=T0)

    assert reading.id is not None
    assert reading.timestamp == T0
    assert reading.timestamp.tzinfo is not None


def test_insert_defaults_timestamp_to_now(store: ReadingStore) -> None:
    before = datetime.now(timezone.utc)

    reading = store.insert("station", "humidity", 40.0)

    assert before - timedelta(seconds=1) <= reading.timestamp <= datetime.now(timezone.utc)
    assert reading.unit is None


def test_insert_normalizes_offsets_to_utc(store: ReadingStore) -> None:
    local = datetime(2024, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))

    store.insert("station", "temperature", 1.0, timestamp=local)

    stored = store.latest(["temperature"])
    assert stored is not None
    assert stored.timestamp == T0
    assert stored.timestamp.utcoffset() == timedelta(0)


def test_latest_picks_most_recent_across_sensor_names(store: ReadingStore) -> None:
    store.insert("station", "location", 0.0, unit="Berlin, DE", timestamp=T0)
    store.insert("station", "gps", 0.0, unit="Hamburg, DE", timestamp=T0 + timedelta(minutes=5))
    store.insert("station", "temperature", 20.0, timestamp=T0 + timedelta(minutes=10))

    latest = store.latest(["location", "gps"])

    assert latest is not None
    assert latest.unit == "Hamburg, DE"


def test_latest_filters_by_cluster(store: ReadingStore) -> None:
    store.insert("gnss", "lat", 52.5, timestamp=T0)
    store.insert("other", "lat", 10.0, timestamp=T0 + timedelta(minutes=1))

    latest = store.latest(["lat"], cluster="gnss")

    assert latest is not None
    assert latest.value == 52.5


def test_latest_returns_none_when_empty(store: ReadingStore) -> None:
    assert store.latest(["temperature"]) is None


def test_in_window_is_half_open_and_ascending(store: ReadingStore) -> None:
    store.insert("station", "temperature", 3.0, timestamp=T0 + timedelta(minutes=30))
    store.insert("station", "temperature", 1.0, timestamp=T0)
    store.insert("station", "humidity", 2.0, timestamp=T0 + timedelta(minutes=10))
    store.insert("station", "temperature", 9.0, timestamp=T0 + timedelta(hours=1))

    window = TimeWindow(start=T0, end=T0 + timedelta(hours=1))
    readings = store.in_window(window)

    assert [r.value for r in readings] == [1.0, 2.0, 3.0]


def test_in_window_filters_by_sensor(store: ReadingStore) -> None:
    store.insert("station", "temperature", 1.0, timestamp=T0)
    store.insert("station", "humidity", 2.0, timestamp=T0)

    window = TimeWindow(start=T0 - timedelta(hours=1), end=T0 + timedelta(hours=1))
    readings = store.in_window(window, sensors=["humidity"])

    assert [r.sensor for r in readings] == ["humidity"]


def test_recent_applies_filters_limit_and_order(store: ReadingStore) -> None:
    for minute in range(5):
        store.insert("station", "temperature", float(minute), timestamp=T0 + timedelta(minutes=minute))
    store.insert("roof", "temperature", 99.0, timestamp=T0 + timedelta(hours=1))

    newest = store.recent(cluster="station", limit=2)
    oldest = store.recent(sensor="temperature", limit=2, descending=False)

    assert [r.value for r in newest] == [4.0, 3.0]
    assert [r.value for r in oldest] == [0.0, 1.0]


def test_missing_schema_surfaces_as_unavailable(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    broken = build_store(engine)

    try:
        with pytest.raises(DataSourceUnavailable):
            broken.latest(["temperature"])
        with pytest.raises(DataSourceUnavailable):
            broken.insert("station", "temperature", 1.0)
    finally:
        engine.dispose()
