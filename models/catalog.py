"""Static sensor catalog.

The catalog is the single place that decides which sensors the dashboard
knows about. ``CATALOG`` carries everything the data pipeline needs (which
store rows feed a sensor, how values are formatted, where a sensor shows up);
``PRESENTATION`` carries chart and card styling and is only read by the web
and chart layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

DEFAULT_LOCALE = "de"


class SensorKind(str, Enum):
    """How a sensor's latest reading is surfaced."""

    numeric = "numeric"
    location = "location"
    coordinate = "coordinate"


@dataclass(frozen=True)
class SensorDescriptor:
    sensor_id: str
    kind: SensorKind
    titles: Mapping[str, str]
    descriptions: Mapping[str, str] = field(default_factory=dict)
    unit: str = ""
    precision: Optional[int] = None
    include_in_history: bool = False
    include_in_export: bool = False
    source_sensors: Tuple[str, ...] = ()
    cluster: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.source_sensors:
            object.__setattr__(self, "source_sensors", (self.sensor_id,))

    def title(self, locale: str = DEFAULT_LOCALE) -> str:
        return self.titles.get(locale) or self.titles[DEFAULT_LOCALE]

    def description(self, locale: str = DEFAULT_LOCALE) -> str:
        return self.descriptions.get(locale) or self.descriptions.get(DEFAULT_LOCALE, "")

    def format_value(self, value: float | str) -> str:
        if self.precision is None or isinstance(value, str):
            return str(value)
        return f"{value:.{self.precision}f}"


@dataclass(frozen=True)
class SensorPresentation:
    chart_color: str
    chart_axis: str = "y"
    icon: str = "activity"


CATALOG: Tuple[SensorDescriptor, ...] = (
    SensorDescriptor(
        sensor_id="temperature",
        kind=SensorKind.numeric,
        titles={"de": "Temperatur", "en": "Temperature"},
        descriptions={"de": "Temperaturdaten in °C", "en": "Temperature data in °C"},
        unit="°C",
        precision=1,
        include_in_history=True,
        include_in_export=True,
    ),
    SensorDescriptor(
        sensor_id="humidity",
        kind=SensorKind.numeric,
        titles={"de": "Luftfeuchtigkeit", "en": "Humidity"},
        descriptions={"de": "Feuchtigkeitsdaten in %", "en": "Humidity data in %"},
        unit="%",
        precision=0,
        include_in_history=True,
        include_in_export=True,
    ),
    SensorDescriptor(
        sensor_id="air_pressure",
        kind=SensorKind.numeric,
        titles={"de": "Luftdruck", "en": "Air pressure"},
        descriptions={"de": "Druckdaten in hPa", "en": "Pressure data in hPa"},
        unit="hPa",
        precision=0,
        include_in_history=True,
        include_in_export=True,
    ),
    SensorDescriptor(
        sensor_id="location",
        kind=SensorKind.location,
        titles={"de": "Standort", "en": "Location"},
        descriptions={"de": "GPS-Koordinaten und Adresse", "en": "GPS coordinates and address"},
        include_in_export=True,
        # Older stations report the place under "gps".
        source_sensors=("location", "gps"),
    ),
    SensorDescriptor(
        sensor_id="gnss_lat",
        kind=SensorKind.coordinate,
        titles={"de": "Breitengrad", "en": "Latitude"},
        unit="deg",
        precision=6,
        source_sensors=("lat",),
        cluster="gnss",
    ),
    SensorDescriptor(
        sensor_id="gnss_lon",
        kind=SensorKind.coordinate,
        titles={"de": "Längengrad", "en": "Longitude"},
        unit="deg",
        precision=6,
        source_sensors=("lon",),
        cluster="gnss",
    ),
)

PRESENTATION: Mapping[str, SensorPresentation] = MappingProxyType(
    {
        "temperature": SensorPresentation(chart_color="#e74c3c", icon="thermometer"),
        "humidity": SensorPresentation(chart_color="#3498db", icon="droplets"),
        "air_pressure": SensorPresentation(chart_color="#27ae60", chart_axis="y2", icon="gauge"),
        "location": SensorPresentation(chart_color="#9b59b6", icon="map-pin"),
        "gnss_lat": SensorPresentation(chart_color="#8e44ad", icon="locate"),
        "gnss_lon": SensorPresentation(chart_color="#8e44ad", icon="locate"),
    }
)

_BY_ID: Mapping[str, SensorDescriptor] = MappingProxyType(
    {descriptor.sensor_id: descriptor for descriptor in CATALOG}
)

if len(_BY_ID) != len(CATALOG):
    raise RuntimeError("Sensor catalog contains duplicate sensor identifiers.")


def get_descriptor(sensor_id: str) -> SensorDescriptor:
    try:
        return _BY_ID[sensor_id]
    except KeyError:
        raise KeyError(f"Unknown sensor {sensor_id!r}.") from None


def history_sensors() -> Tuple[SensorDescriptor, ...]:
    return tuple(descriptor for descriptor in CATALOG if descriptor.include_in_history)


def export_sensors() -> Tuple[SensorDescriptor, ...]:
    return tuple(descriptor for descriptor in CATALOG if descriptor.include_in_export)


def presentation_for(sensor_id: str) -> SensorPresentation:
    return PRESENTATION.get(sensor_id, SensorPresentation(chart_color="#7f8c8d"))
