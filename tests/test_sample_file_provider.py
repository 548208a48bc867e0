"""Unit tests for the samples export provider."""

from datetime import date, datetime
from pathlib import Path

import pytest
import pytz

from daily_health_journal.infrastructure.provider.sample_file import SampleFileProvider
from daily_health_journal.utils.parameters import ProcessingConfig, ProviderConfig

SAMPLES = """metric,start,end,value
steps,2025-06-10T08:00:00-04:00,2025-06-10T09:00:00-04:00,1200
steps,2025-06-10T18:00:00-04:00,2025-06-10T19:00:00-04:00,800
steps,2025-06-11T08:00:00-04:00,2025-06-11T09:00:00-04:00,500
glucose,2025-06-10T07:00:00-04:00,2025-06-10T07:00:00-04:00,98
glucose,2025-06-10T20:00:00-04:00,2025-06-10T20:00:00-04:00,105
sleep,2025-06-09T23:00:00-04:00,2025-06-10T06:30:00-04:00,asleep
sleep,2025-06-10T06:30:00-04:00,2025-06-10T06:45:00-04:00,awake
heart_rate,2025-06-10T10:00:00-04:00,,60
heart_rate,2025-06-10T11:00:00-04:00,,80
weight,2025-06-10T07:00:00-04:00,,80
"""

DAY = date(2025, 6, 10)


def _provider(path: Path, unit: str = "lb") -> SampleFileProvider:
    return SampleFileProvider(
        ProviderConfig(samples_path=str(path), weight_unit=unit),
        ProcessingConfig(timezone="America/New_York"),
    )


@pytest.fixture
def samples_path(tmp_path: Path) -> Path:
    path = tmp_path / "samples.csv"
    path.write_text(SAMPLES, encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_daily_metrics(samples_path: Path) -> None:
    """Test per-day aggregation of each metric."""
    provider = _provider(samples_path)

    steps = await provider.steps_for_day(DAY)
    glucose = await provider.glucose_for_day(DAY)
    sleep = await provider.sleep_duration_for_day(DAY)
    heart_rate = await provider.heart_rate_stats_for_day(DAY)
    weight = await provider.weight_for_day(DAY)

    if steps != 2000:
        raise AssertionError(f"Expected 2000 steps, got {steps}")
    if glucose != 105.0:
        raise AssertionError(f"Expected latest glucose 105, got {glucose}")
    if sleep is None or str(sleep) != "7h 30m":
        raise AssertionError(f"Expected 7h 30m asleep, got {sleep}")
    if heart_rate is None or (heart_rate.min, heart_rate.max, heart_rate.avg) != (60, 80, 70):
        raise AssertionError(f"Unexpected heart rate {heart_rate}")
    if weight != 176.4:
        raise AssertionError(f"Expected 176.4 lb, got {weight}")


@pytest.mark.asyncio
async def test_absent_day(samples_path: Path) -> None:
    """Test that a day without samples is absent rather than an error."""
    provider = _provider(samples_path, unit="kg")
    empty_day = date(2025, 6, 12)

    if await provider.steps_for_day(empty_day) != 0:
        raise AssertionError("Expected 0 steps")
    if await provider.glucose_for_day(empty_day) is not None:
        raise AssertionError("Expected no glucose")
    if await provider.sleep_duration_for_day(empty_day) is not None:
        raise AssertionError("Expected no sleep")
    if await provider.weight_for_day(DAY) != 80.0:
        raise AssertionError("Expected weight in kg")


@pytest.mark.asyncio
async def test_authorize(samples_path: Path, tmp_path: Path) -> None:
    """Test access checks."""
    if not await _provider(samples_path).authorize():
        raise AssertionError("Expected access to a readable export")
    if not await _provider(tmp_path / "new.csv").authorize():
        raise AssertionError("Expected access when the export can be created")
    if await _provider(tmp_path / "missing" / "samples.csv").authorize():
        raise AssertionError("Expected denial for a missing directory")


@pytest.mark.asyncio
async def test_write_glucose_replaces_same_day(samples_path: Path) -> None:
    """Test delete-then-write of glucose samples."""
    provider = _provider(samples_path)
    timestamp = pytz.timezone("America/New_York").localize(datetime(2025, 6, 10, 12, 0))

    await provider.write_glucose_sample(110.0, timestamp)

    if await provider.glucose_for_day(DAY) != 110.0:
        raise AssertionError("Expected written glucose to read back")

    reopened = _provider(samples_path)
    if await reopened.glucose_for_day(DAY) != 110.0:
        raise AssertionError("Expected written glucose persisted")
    if await reopened.steps_for_day(DAY) != 2000:
        raise AssertionError("Expected other samples preserved")
