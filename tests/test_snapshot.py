"""Tests for the latest-value snapshot aggregator."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional, Sequence

import pytest

from datastore.readings import ReadingStore, build_engine, build_store, init_schema
from models.catalog import CATALOG
from models.records import Reading
from services.errors import DataSourceUnavailable
from services.snapshot import (
    LocationValue,
    NumericSensorValue,
    SnapshotAggregator,
    snapshot_payload,
)

T1 = datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
T2 = T1 + timedelta(minutes=15)


@pytest.fixture
def store(tmp_path) -> Iterator[ReadingStore]:
    engine = build_engine(f"sqlite:///{tmp_path / 'snapshot.db'}")
    init_schema(engine)
    yield build_store(engine)
    engine.dispose()


@pytest.fixture
def aggregator(store: ReadingStore) -> Iterator[SnapshotAggregator]:
    instance = SnapshotAggregator(store=store, workers=3)
    yield instance
    instance.shutdown()


def test_every_catalog_sensor_is_present(aggregator: SnapshotAggregator) -> None:
    snapshot = aggregator.collect()

    assert set(snapshot) == {descriptor.sensor_id for descriptor in CATALOG}
    assert all(entry is None for entry in snapshot.values())


def test_numeric_sensor_reports_latest_reading(
    store: ReadingStore, aggregator: SnapshotAggregator
) -> None:
    store.insert("station", "temperature", 19.0, unit="°C", timestamp=T1)
    store.insert("station", "temperature", 21.5, unit="°C", timestamp=T2)

    snapshot = aggregator.collect()

    assert snapshot["temperature"] == NumericSensorValue(value=21.5, unit="°C", timestamp=T2)
    assert snapshot["humidity"] is None


def test_location_takes_newest_of_location_and_gps(
    store: ReadingStore, aggregator: SnapshotAggregator
) -> None:
    store.insert("station", "location", 0.0, unit="Berlin, DE", timestamp=T1)
    store.insert("station", "gps", 0.0, unit="Hamburg, DE", timestamp=T2)

    snapshot = aggregator.collect()

    assert snapshot["location"] == LocationValue(place="Hamburg, DE", timestamp=T2)


def test_location_payload_carries_place_in_value(
    store: ReadingStore, aggregator: SnapshotAggregator
) -> None:
    store.insert("station", "location", 0.0, unit="Berlin, DE", timestamp=T1)
    store.insert("station", "humidity", 45.0, unit="%", timestamp=T1)

    payload = snapshot_payload(aggregator.collect())

    assert payload["location"] == {"value": "Berlin, DE", "timestamp": "2024-02-01T10:00:00.000Z"}
    assert payload["humidity"] == {
        "value": 45.0,
        "unit": "%",
        "timestamp": "2024-02-01T10:00:00.000Z",
    }


def test_gnss_position_requires_both_coordinates(
    store: ReadingStore, aggregator: SnapshotAggregator
) -> None:
    store.insert("gnss", "lat", 52.52, timestamp=T1)

    snapshot = aggregator.collect()

    assert snapshot["gnss_lat"] is None
    assert snapshot["gnss_lon"] is None


def test_gnss_position_defaults_unit_to_degrees(
    store: ReadingStore, aggregator: SnapshotAggregator
) -> None:
    store.insert("gnss", "lat", 52.52, timestamp=T1)
    store.insert("gnss", "lon", 13.405, timestamp=T1)
    store.insert("other", "lon", 99.0, timestamp=T2)

    snapshot = aggregator.collect()

    assert snapshot["gnss_lat"] == NumericSensorValue(value=52.52, unit="deg", timestamp=T1)
    assert snapshot["gnss_lon"] == NumericSensorValue(value=13.405, unit="deg", timestamp=T1)


class RecordingStore:
    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.calls: list[tuple[tuple[str, ...], Optional[str]]] = []
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def latest(self, sensors: Sequence[str], cluster: Optional[str] = None) -> Optional[Reading]:
        with self._lock:
            self.calls.append((tuple(sensors), cluster))
        if self.fail_on is not None and self.fail_on in sensors:
            raise DataSourceUnavailable("boom")
        return None


def test_one_query_per_sensor_with_location_aliases() -> None:
    recording = RecordingStore()
    aggregator = SnapshotAggregator(store=recording, workers=2)  # type: ignore[arg-type]
    try:
        aggregator.collect()
    finally:
        aggregator.shutdown()

    assert len(recording.calls) == len(CATALOG)
    assert (("location", "gps"), None) in recording.calls
    assert (("lat",), "gnss") in recording.calls


def test_any_failed_query_fails_the_whole_snapshot() -> None:
    failing = RecordingStore(fail_on="humidity")
    aggregator = SnapshotAggregator(store=failing, workers=2)  # type: ignore[arg-type]
    try:
        with pytest.raises(DataSourceUnavailable):
            aggregator.collect()
    finally:
        aggregator.shutdown()


def test_unreachable_store_fails_the_whole_snapshot(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'no_schema.db'}")
    aggregator = SnapshotAggregator(store=build_store(engine), workers=2)
    try:
        with pytest.raises(DataSourceUnavailable):
            aggregator.collect()
    finally:
        aggregator.shutdown()
        engine.dispose()
