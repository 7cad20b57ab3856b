"""Latest-value snapshot across every catalog sensor."""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from datastore.readings import ReadingStore, build_default_store
from models.catalog import CATALOG, SensorDescriptor, SensorKind
from models.records import Reading
from services.errors import DataSourceUnavailable
from services.time_ranges import isoformat_utc
from settings import get_settings

logger = logging.getLogger(__name__)

_GNSS_PAIR = ("gnss_lat", "gnss_lon")


@dataclass(frozen=True)
class NumericSensorValue:
    value: float
    unit: Optional[str]
    timestamp: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "unit": self.unit,
            "timestamp": isoformat_utc(self.timestamp),
        }


@dataclass(frozen=True)
class LocationValue:
    place: str
    timestamp: datetime

    def to_payload(self) -> Dict[str, Any]:
        # Existing consumers read the place text from "value".
        return {"value": self.place, "timestamp": isoformat_utc(self.timestamp)}


SnapshotEntry = Union[NumericSensorValue, LocationValue]
Snapshot = Dict[str, Optional[SnapshotEntry]]


def place_from_reading(reading: Reading) -> str:
    """Location rows carry their free-text place name in the ``unit`` column."""
    return reading.unit or ""


def _numeric_entry(descriptor: SensorDescriptor, reading: Reading) -> SnapshotEntry:
    return NumericSensorValue(value=reading.value, unit=reading.unit, timestamp=reading.timestamp)


def _coordinate_entry(descriptor: SensorDescriptor, reading: Reading) -> SnapshotEntry:
    return NumericSensorValue(
        value=reading.value,
        unit=reading.unit or descriptor.unit,
        timestamp=reading.timestamp,
    )


def _location_entry(descriptor: SensorDescriptor, reading: Reading) -> SnapshotEntry:
    return LocationValue(place=place_from_reading(reading), timestamp=reading.timestamp)


_ENTRY_BUILDERS: Mapping[SensorKind, Callable[[SensorDescriptor, Reading], SnapshotEntry]] = {
    SensorKind.numeric: _numeric_entry,
    SensorKind.coordinate: _coordinate_entry,
    SensorKind.location: _location_entry,
}


def snapshot_payload(snapshot: Snapshot) -> Dict[str, Optional[Dict[str, Any]]]:
    return {
        sensor_id: entry.to_payload() if entry is not None else None
        for sensor_id, entry in snapshot.items()
    }


class SnapshotAggregator:
    """Fans out one latest-reading query per sensor and joins them all."""

    def __init__(
        self,
        store: ReadingStore,
        catalog: Sequence[SensorDescriptor] = CATALOG,
        workers: int = 4,
    ) -> None:
        self.store = store
        self.catalog = tuple(catalog)
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snapshot")

    def collect(self) -> Snapshot:
        start_time = time.perf_counter()
        futures: Dict[str, Future[Optional[Reading]]] = {
            descriptor.sensor_id: self.executor.submit(
                self.store.latest, descriptor.source_sensors, descriptor.cluster
            )
            for descriptor in self.catalog
        }
        done, not_done = wait(futures.values(), return_when=FIRST_EXCEPTION)
        failed = [future for future in done if future.exception() is not None]
        if failed:
            for future in not_done:
                future.cancel()
            # Let in-flight queries settle before reporting the failure.
            wait(not_done)
            raise DataSourceUnavailable("Could not load the latest sensor readings.") from failed[
                0
            ].exception()

        snapshot: Snapshot = {}
        for descriptor in self.catalog:
            reading = futures[descriptor.sensor_id].result()
            if reading is None:
                snapshot[descriptor.sensor_id] = None
                continue
            snapshot[descriptor.sensor_id] = _ENTRY_BUILDERS[descriptor.kind](descriptor, reading)

        self._pair_coordinates(snapshot)
        logger.debug(
            "Snapshot assembled",
            extra={
                "row_count": sum(entry is not None for entry in snapshot.values()),
                "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return snapshot

    def shutdown(self) -> None:
        """Release worker threads during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _pair_coordinates(snapshot: Snapshot) -> None:
        # A position is only meaningful when both halves are known.
        present = [key for key in _GNSS_PAIR if key in snapshot]
        if present and any(snapshot[key] is None for key in present):
            for key in present:
                snapshot[key] = None


@lru_cache
def build_default_aggregator(workers: Optional[int] = None) -> SnapshotAggregator:
    """Factory that wires the aggregator with the configured store."""
    settings = get_settings()
    worker_count = workers or settings.snapshot_workers
    return SnapshotAggregator(store=build_default_store(), workers=worker_count)
