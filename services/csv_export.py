"""CSV rendering for sensor data exports.

The format is consumed by existing spreadsheets and scripts, so it is kept
deliberately simple: a field containing a comma is wrapped in double quotes,
and nothing else is escaped. Embedded quotes or line breaks pass through as
they are. The whole document is built in memory.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from services.time_ranges import isoformat_utc

CSV_HEADER = "id,ts,cluster,sensor,value,unit"
NO_DATA_LINE = "No data found for the selected criteria."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ExportRow(Protocol):
    id: int
    cluster: str
    sensor: str
    value: float
    unit: Optional[str]
    timestamp: datetime


def render_csv(readings: Iterable[ExportRow]) -> str:
    rows = [_render_row(reading) for reading in readings]
    if not rows:
        return f"{CSV_HEADER}\n{NO_DATA_LINE}"
    return CSV_HEADER + "\n" + "\n".join(rows)


def export_filename(now: datetime) -> str:
    millis = (now - _EPOCH) // timedelta(milliseconds=1)
    return f"messstation-export-{millis}.csv"


def _render_row(reading: ExportRow) -> str:
    return ",".join(
        (
            str(reading.id),
            isoformat_utc(reading.timestamp),
            _escape(reading.cluster),
            _escape(reading.sensor),
            _format_number(reading.value),
            _escape(reading.unit),
        )
    )


def _escape(value: Optional[str]) -> str:
    if value is None:
        return ""
    text = str(value)
    if "," in text:
        return f'"{text}"'
    return text


def _format_number(value: Optional[float]) -> str:
    """Write numbers the way existing export files do.

    Shortest round-trip digits, plain notation for decimal exponents from
    -6 up to 21, otherwise ``1e-7`` / ``1.5e+21`` style. Whole numbers carry
    no ``.0``.
    """
    if value is None:
        return ""
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number == 0:
        return "0"

    sign, digit_tuple, exponent = Decimal(repr(number)).as_tuple()
    digits = "".join(str(digit) for digit in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    count = len(digits)
    point = count + exponent
    prefix = "-" if sign else ""

    if count <= point <= 21:
        return prefix + digits + "0" * (point - count)
    if 0 < point <= 21:
        return prefix + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return prefix + "0." + "0" * -point + digits

    power = point - 1
    mantissa = digits if count == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{prefix}{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"
