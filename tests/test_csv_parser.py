"""Unit tests for meter CSV parser."""

from pathlib import Path

import pytest

from daily_health_journal.infrastructure.parsers.csv_parser import GlucoseCSVParser
from daily_health_journal.utils.exceptions import ParsingError
from daily_health_journal.utils.parameters import CSVImportConfig, ProcessingConfig

EXPORT = """# meter export v3
timestamp;reading_type;reading_sample_type;reading_value
2025-06-10T07:30:00.000-04:00;glucose;blood;95
2025-06-10T08:00:00.000-04:00;ketone;blood;0,8
2025-06-10T09:00:00.000-04:00;glucose;urine;100
2025-06-10T10:00:00;glucose;blood;101
not-a-date;glucose;blood;99
2025-06-11T07:00:00.000+00:00;glucose;blood;abc
2025-06-11T07:05:00.000+00:00;insulin;blood;4
"""


def _parser() -> GlucoseCSVParser:
    return GlucoseCSVParser(CSVImportConfig(), ProcessingConfig(timezone="America/New_York"))


def test_parse_accepts_only_valid_blood_readings(tmp_path: Path) -> None:
    """Test filtering of reading types, sample types and malformed rows."""
    path = tmp_path / "export.csv"
    path.write_text(EXPORT, encoding="utf-8")

    readings = _parser().parse(path)

    if len(readings) != 2:
        raise AssertionError(f"Expected 2 readings, got {len(readings)}")

    glucose, ketone = readings
    if glucose.reading_type != "glucose" or glucose.value != 95.0:
        raise AssertionError(f"Unexpected first reading {glucose}")
    if glucose.row_number != 3:
        raise AssertionError(f"Expected row 3, got {glucose.row_number}")
    if glucose.timestamp.utcoffset() is None:
        raise AssertionError("Expected timezone-aware timestamp")
    if glucose.timestamp.hour != 7 or glucose.timestamp.minute != 30:
        raise AssertionError(f"Unexpected local time {glucose.timestamp}")
    if ketone.reading_type != "ketone" or ketone.value != 0.8:
        raise AssertionError(f"Unexpected second reading {ketone}")


def test_parse_without_header(tmp_path: Path) -> None:
    """Test an export with only a version line."""
    path = tmp_path / "export.csv"
    path.write_text(
        "# v1\n2025-06-10T07:30:00.123+02:00;glucose;blood;5.6;mmol\n", encoding="utf-8"
    )

    readings = _parser().parse(path)

    if len(readings) != 1:
        raise AssertionError(f"Expected 1 reading, got {len(readings)}")
    if readings[0].value != 5.6:
        raise AssertionError(f"Expected value 5.6, got {readings[0].value}")


def test_parse_empty_file(tmp_path: Path) -> None:
    """Test that an empty export yields no readings."""
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    if _parser().parse(path) != []:
        raise AssertionError("Expected no readings")


def test_parse_missing_file(tmp_path: Path) -> None:
    """Test that an unreadable file raises ParsingError."""
    with pytest.raises(ParsingError):
        _parser().parse(tmp_path / "missing.csv")


def test_parse_row_requires_four_columns() -> None:
    """Test row validation directly."""
    parser = _parser()

    if parser.parse_row(["2025-06-10T07:30:00.000-04:00", "glucose", "blood"], "f.csv", 1):
        raise AssertionError("Expected short row rejected")

    reading = parser.parse_row(
        ['"2025-06-10T07:30:00.000-04:00"', "Glucose", "Blood", " 120 "], "f.csv", 2
    )
    if reading is None or reading.value != 120.0:
        raise AssertionError(f"Expected accepted reading, got {reading}")


def test_parse_rows_wider_than_header(tmp_path: Path) -> None:
    """Test rows carrying a trailing unit column after a 4-column header."""
    path = tmp_path / "export.csv"
    path.write_text(
        "timestamp;reading_type;reading_sample_type;reading_value\n"
        "2025-06-10T07:30:00.000-04:00;glucose;blood;95;mg/dL\n"
        "2025-06-10T19:30:00.000-04:00;glucose;blood;118;mg/dL\n",
        encoding="utf-8",
    )

    readings = _parser().parse(path)

    if [r.value for r in readings] != [95.0, 118.0]:
        raise AssertionError(f"Expected 95 and 118, got {[r.value for r in readings]}")
    if [r.row_number for r in readings] != [2, 3]:
        raise AssertionError(f"Unexpected row numbers {[r.row_number for r in readings]}")


def test_parse_malformed_first_line_without_header(tmp_path: Path) -> None:
    """Test that a malformed leading line does not drop the rows after it."""
    path = tmp_path / "export.csv"
    path.write_text(
        "garbage\n"
        "2025-06-10T07:30:00.000-04:00;glucose;blood;95\n"
        "2025-06-10T08:00:00.000-04:00;ketone;blood;1.1\n",
        encoding="utf-8",
    )

    readings = _parser().parse(path)

    if len(readings) != 2:
        raise AssertionError(f"Expected 2 readings, got {len(readings)}")
    if readings[1].reading_type != "ketone" or readings[1].row_number != 3:
        raise AssertionError(f"Unexpected second reading {readings[1]}")


def test_parse_one_wide_row_keeps_line_numbers(tmp_path: Path) -> None:
    """Test that an unusually wide row is read and later rows keep their line numbers."""
    path = tmp_path / "export.csv"
    path.write_text(
        "# meter export v3\n"
        "timestamp;reading_type;reading_sample_type;reading_value;unit\n"
        "2025-06-10T07:30:00.000-04:00;glucose;blood;95;mg/dL\n"
        "2025-06-10T12:00:00.000-04:00;glucose;blood;140;mg/dL;after lunch;manual\n"
        "\n"
        "2025-06-10T19:30:00.000-04:00;glucose;blood;99;mg/dL\n",
        encoding="utf-8",
    )

    readings = _parser().parse(path)

    if [r.value for r in readings] != [95.0, 140.0, 99.0]:
        raise AssertionError(f"Expected 3 readings, got {[r.value for r in readings]}")
    if [r.row_number for r in readings] != [3, 4, 6]:
        raise AssertionError(f"Expected rows 3, 4, 6, got {[r.row_number for r in readings]}")
