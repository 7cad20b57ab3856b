"""Resolution of symbolic range keys into concrete time windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Mapping, Optional

from services.errors import InvalidRangeError

CUSTOM_RANGE = "custom"

RANGE_OFFSETS: Mapping[str, timedelta] = MappingProxyType(
    {
        "1h": timedelta(hours=1),
        "2h": timedelta(hours=2),
        "5h": timedelta(hours=5),
        "6h": timedelta(hours=6),
        "12h": timedelta(hours=12),
        "1d": timedelta(days=1),
        "1w": timedelta(weeks=1),
    }
)

# History charts and CSV exports fall back differently; kept as two defaults
# until product decides whether they should match.
HISTORY_DEFAULT_RANGE = "1h"
EXPORT_DEFAULT_RANGE = "1d"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= _as_utc(instant) < self.end


def resolve_history_range(
    key: Optional[str],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    return _resolve(key, HISTORY_DEFAULT_RANGE, start, end, now)


def resolve_export_range(
    key: Optional[str],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    return _resolve(key, EXPORT_DEFAULT_RANGE, start, end, now)


def _resolve(
    key: Optional[str],
    default_key: str,
    start: Optional[datetime],
    end: Optional[datetime],
    now: Optional[datetime],
) -> TimeWindow:
    reference = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    candidate = (key or "").strip()

    if candidate == CUSTOM_RANGE:
        if start is None or end is None:
            raise InvalidRangeError("Custom range requires both a start and an end date.")
        window_start = _as_utc(start)
        window_end = _as_utc(end)
        if window_start >= window_end:
            raise InvalidRangeError("Custom range start must be before its end.")
        return TimeWindow(start=window_start, end=window_end)

    offset = RANGE_OFFSETS.get(candidate, RANGE_OFFSETS[default_key])
    window_end = _as_utc(end) if end is not None else reference
    return TimeWindow(start=window_end - offset, end=window_end)


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Blank input yields ``None``; anything unparseable raises
    :class:`InvalidRangeError`.
    """
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise InvalidRangeError(f"Invalid timestamp {value!r}.") from exc

    return _as_utc(parsed)


def isoformat_utc(instant: datetime) -> str:
    """Render ``instant`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    text = _as_utc(instant).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
