"""Alignment of flat readings into chart-ready multi-sensor series."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence


class TimedValue(Protocol):
    sensor: str
    value: float
    timestamp: datetime


@dataclass
class SeriesTable:
    """Shared timestamp labels plus one equally long value list per sensor.

    ``None`` marks that a sensor reported nothing at that label; charts are
    expected to span the gap rather than plot a zero.
    """

    labels: List[datetime] = field(default_factory=list)
    datasets: Dict[str, List[Optional[float]]] = field(default_factory=dict)


def group_series(readings: Iterable[TimedValue], sensors: Sequence[str]) -> SeriesTable:
    wanted = list(dict.fromkeys(sensors))
    wanted_set = set(wanted)
    by_timestamp: Dict[datetime, Dict[str, float]] = {}

    for reading in readings:
        if reading.sensor not in wanted_set:
            continue
        # A later duplicate for the same sensor and instant overwrites the earlier one.
        by_timestamp.setdefault(reading.timestamp, {})[reading.sensor] = reading.value

    labels = sorted(by_timestamp)
    datasets: Dict[str, List[Optional[float]]] = {
        sensor_id: [by_timestamp[label].get(sensor_id) for label in labels]
        for sensor_id in wanted
    }
    return SeriesTable(labels=labels, datasets=datasets)
