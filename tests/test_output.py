"""Unit tests for output service."""

import json
from datetime import date
from pathlib import Path

import pandas as pd

from daily_health_journal.domain.daily_record import DailyHealthRecord, SleepDuration
from daily_health_journal.services.output import OutputService
from daily_health_journal.utils.parameters import OutputConfig, OutputFilesConfig


def _config(tmp_path: Path, formats: list[str]) -> OutputConfig:
    return OutputConfig(
        dir=str(tmp_path / "output"),
        files=OutputFilesConfig(
            records_csv="records.csv", records_parquet="records.parquet"
        ),
        formats=formats,
    )


def _records() -> list[DailyHealthRecord]:
    later = DailyHealthRecord(calendar_day=date(2025, 6, 10))
    later.apply_sync("steps", 8000)
    later.apply_sync("sleep_duration", SleepDuration(hours=6, minutes=45))
    earlier = DailyHealthRecord(calendar_day=date(2025, 6, 9))
    earlier.apply_sync("weight", 181.2)
    earlier.edit("glucose", 99.0)
    return [later, earlier]


def test_write_csv(tmp_path: Path) -> None:
    """Test CSV export with flattened values and provenance."""
    paths = OutputService(_config(tmp_path, ["csv"])).write_records(_records())

    if len(paths) != 1:
        raise AssertionError(f"Expected 1 file, got {paths}")

    df = pd.read_csv(paths[0])

    if list(df["calendar_day"]) != ["2025-06-09", "2025-06-10"]:
        raise AssertionError(f"Expected ascending days, got {list(df['calendar_day'])}")
    if df.loc[1, "sleep_duration"] != "6h 45m":
        raise AssertionError(f"Unexpected sleep text {df.loc[1, 'sleep_duration']}")
    sources = json.loads(df.loc[0, "field_sources"])
    if sources != {"glucose": "user", "weight": "sync"}:
        raise AssertionError(f"Unexpected provenance {sources}")


def test_write_parquet(tmp_path: Path) -> None:
    """Test Parquet export."""
    paths = OutputService(_config(tmp_path, ["parquet"])).write_records(_records())

    df = pd.read_parquet(paths[0])

    if len(df) != 2:
        raise AssertionError(f"Expected 2 rows, got {len(df)}")
    if list(df.loc[1, "synced_fields"]) != ["sleep_duration", "steps"]:
        raise AssertionError(f"Unexpected synced fields {df.loc[1, 'synced_fields']}")


def test_no_records(tmp_path: Path) -> None:
    """Test that nothing is written without records."""
    if OutputService(_config(tmp_path, ["csv", "parquet"])).write_records([]) != []:
        raise AssertionError("Expected no files")
