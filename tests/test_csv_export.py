from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.records import Reading
from services.csv_export import export_filename, render_csv


def _reading(**overrides) -> Reading:
    fields = {
        "id": 7,
        "cluster": "station",
        "sensor": "temperature",
        "value": 21.5,
        "unit": "°C",
        "timestamp": datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Reading(**fields)


def test_empty_input_yields_placeholder_line() -> None:
    assert render_csv([]) == (
        "id,ts,cluster,sensor,value,unit\nNo data found for the selected criteria."
    )


def test_single_row_layout() -> None:
    document = render_csv([_reading()])

    assert document == (
        "id,ts,cluster,sensor,value,unit\n"
        "7,2024-01-01T12:00:00.000Z,station,temperature,21.5,°C"
    )


def test_comma_in_unit_is_quoted_and_other_fields_are_not() -> None:
    document = render_csv([_reading(sensor="location", value=0.0, unit="Berlin, DE")])

    row = document.splitlines()[1]
    assert row == '7,2024-01-01T12:00:00.000Z,station,location,0,"Berlin, DE"'


def test_quotes_and_newlines_are_not_escaped() -> None:
    document = render_csv([_reading(unit='say "hi"')])

    assert document.endswith(',say "hi"')


def test_missing_unit_renders_empty_field() -> None:
    document = render_csv([_reading(unit=None, value=3.0)])

    assert document.splitlines()[1].endswith(",temperature,3,")


def test_rows_keep_caller_order_without_trailing_newline() -> None:
    first = _reading(id=1, value=1.25)
    second = _reading(id=2, value=-4.0, timestamp=datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc))

    document = render_csv([first, second])

    lines = document.split("\n")
    assert [line.split(",")[0] for line in lines[1:]] == ["1", "2"]
    assert lines[2].split(",")[4] == "-4"
    assert not document.endswith("\n")


def test_export_filename_uses_epoch_milliseconds() -> None:
    now = datetime(2024, 1, 1, 0, 0, 0, 123000, tzinfo=timezone.utc)

    assert export_filename(now) == "messstation-export-1704067200123.csv"


@pytest.mark.parametrize(
    "value,expected",
    [
        (0.0, "0"),
        (100.0, "100"),
        (0.001, "0.001"),
        (1e-7, "1e-7"),
        (1.5e-7, "1.5e-7"),
        (1e16, "10000000000000000"),
        (1.5e21, "1.5e+21"),
        (-1013.25, "-1013.25"),
    ],
)
def test_value_column_matches_existing_export_notation(value: float, expected: str) -> None:
    document = render_csv([_reading(value=value)])

    assert document.splitlines()[1].split(",")[4] == expected
