"""Display helpers used by the dashboard pages."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional


_TIME_STATUS_TEXT: Dict[str, Dict[str, str]] = {
    "de": {"now": "Jetzt", "minutes": "Min.", "hours": "Std."},
    "en": {"now": "Now", "minutes": "Min. ago", "hours": "h ago"},
}


@dataclass(frozen=True)
class Freshness:
    level: str
    minutes: int

    def label(self, locale: str = "de") -> str:
        text = _TIME_STATUS_TEXT.get(locale, _TIME_STATUS_TEXT["de"])
        if self.level == "now":
            return text["now"]
        if self.level == "outdated":
            return f"{self.minutes // 60}{text['hours']}"
        return f"{self.minutes} {text['minutes']}"


def format_with_unit(value: float | str, unit: Optional[str]) -> str:
    if unit:
        return f"{value} {unit}".strip()
    return str(value)


def freshness(timestamp: datetime, now: Optional[datetime] = None) -> Freshness:
    reference = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    minutes = max(0, math.floor((reference - timestamp).total_seconds() / 60))
    if minutes <= 1:
        return Freshness(level="now", minutes=minutes)
    if minutes <= 5:
        return Freshness(level="recent", minutes=minutes)
    if minutes <= 60:
        return Freshness(level="stale", minutes=minutes)
    return Freshness(level="outdated", minutes=minutes)


def _dms_part(decimal: float, positive: str, negative: str, decimals: int) -> str:
    direction = positive if decimal >= 0 else negative
    magnitude = abs(decimal)
    degrees = math.floor(magnitude)
    minutes = math.floor((magnitude - degrees) * 60)
    seconds = (magnitude - degrees - minutes / 60) * 3600
    return f"{degrees}° {minutes}' {seconds:.{decimals}f}'' {direction}"


def decimal_to_dms(lat: float, lon: float, decimals: int = 2) -> str:
    """Format a position as degrees, minutes and seconds."""
    return f"{_dms_part(lat, 'N', 'S', decimals)}, {_dms_part(lon, 'E', 'W', decimals)}"
