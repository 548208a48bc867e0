"""Unit tests for glucose import service."""

from datetime import date
from pathlib import Path

import pytest

from daily_health_journal.services.glucose_import import GlucoseImportService
from daily_health_journal.utils.exceptions import AuthorizationError
from daily_health_journal.utils.parameters import CSVImportConfig, ProcessingConfig

EXPORT = """# meter export v3
timestamp;reading_type;reading_sample_type;reading_value
2025-06-09T07:30:00.000-04:00;glucose;blood;95
2025-06-10T08:00:00.000-04:00;ketone;blood;0.8
2025-06-10T21:00:00.000-04:00;glucose;blood;112
"""


def _service(provider) -> GlucoseImportService:
    return GlucoseImportService(
        provider, CSVImportConfig(), ProcessingConfig(timezone="America/New_York")
    )


def _export(tmp_path: Path) -> Path:
    path = tmp_path / "export.csv"
    path.write_text(EXPORT, encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_import_writes_and_verifies(provider, tmp_path: Path) -> None:
    """Test a clean import."""
    result = await _service(provider).import_file(_export(tmp_path))

    if result.glucose_readings != 2 or result.written != 2:
        raise AssertionError(f"Expected 2 glucose readings written, got {result}")
    if result.ketone_readings != 1:
        raise AssertionError(f"Expected 1 ketone reading counted, got {result.ketone_readings}")
    if [value for value, _ in provider.writes] != [95.0, 112.0]:
        raise AssertionError(f"Unexpected writes {provider.writes}")
    if result.verified_days != [date(2025, 6, 9), date(2025, 6, 10)]:
        raise AssertionError(f"Unexpected verified days {result.verified_days}")
    if not result.ok:
        raise AssertionError("Expected a clean result")


@pytest.mark.asyncio
async def test_read_back_mismatch_is_recorded(provider, tmp_path: Path) -> None:
    """Test verification failure without retry."""
    provider.readback_offset = 5.0

    result = await _service(provider).import_file(_export(tmp_path))

    if len(result.verification_failures) != 2:
        raise AssertionError(f"Expected 2 mismatches, got {result.verification_failures}")
    if len(provider.writes) != 2:
        raise AssertionError(f"Expected exactly one write per reading, got {len(provider.writes)}")
    if result.ok:
        raise AssertionError("Expected result flagged as failed")


@pytest.mark.asyncio
async def test_write_failure_continues_batch(provider, tmp_path: Path) -> None:
    """Test that a rejected write is recorded and the batch goes on."""
    provider.fail_writes = True

    result = await _service(provider).import_file(_export(tmp_path))

    if len(result.write_failures) != 2:
        raise AssertionError(f"Expected 2 write failures, got {result.write_failures}")
    if result.written != 0 or result.verification_failures:
        raise AssertionError(f"Expected nothing written or verified, got {result}")


@pytest.mark.asyncio
async def test_import_requires_authorization(provider, tmp_path: Path) -> None:
    """Test that a denied provider stops the import."""
    provider.granted = False

    with pytest.raises(AuthorizationError):
        await _service(provider).import_file(_export(tmp_path))

    if provider.writes:
        raise AssertionError("Expected no writes")
