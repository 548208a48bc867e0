"""
Glucose import service.

Writes blood glucose readings from a meter export to the metrics provider and
verifies each write by reading the day back.
"""

import logging
from datetime import date
from pathlib import Path

from pydantic import BaseModel, Field

from daily_health_journal.domain.reading import ImportedReading, ReadingType
from daily_health_journal.infrastructure.parsers.csv_parser import GlucoseCSVParser
from daily_health_journal.infrastructure.provider.base import ExternalMetricsProvider
from daily_health_journal.utils.exceptions import AuthorizationError, VerificationError
from daily_health_journal.utils.parameters import CSVImportConfig, ProcessingConfig
from daily_health_journal.utils.timezone_utils import calendar_day

logger = logging.getLogger(__name__)


class ImportResult(BaseModel):
    """Summary of one import run."""

    file_name: str
    glucose_readings: int = 0
    ketone_readings: int = 0
    written: int = 0
    verified_days: list[date] = Field(default_factory=list)
    write_failures: list[str] = Field(default_factory=list)
    verification_failures: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.write_failures and not self.verification_failures


class GlucoseImportService:
    """
    Service importing meter exports into the metrics provider.

    Ketone readings are parsed and counted only; the provider accepts glucose
    writes alone. A failed write or mismatched read-back is recorded and the
    batch continues.
    """

    def __init__(
        self,
        provider: ExternalMetricsProvider,
        csv_config: CSVImportConfig,
        processing_config: ProcessingConfig,
    ) -> None:
        """
        Initialize glucose import service.

        Args:
            provider: Metrics provider to write to.
            csv_config: CSV import configuration (tolerance, parsing rules).
            processing_config: Processing configuration (for timezone).
        """
        self.provider = provider
        self.csv_config = csv_config
        self.timezone = processing_config.timezone
        self.parser = GlucoseCSVParser(csv_config, processing_config)

    async def verify(self, day: date, expected: float) -> None:
        """
        Read a day's glucose back and compare it to what was written.

        Raises:
            VerificationError: If the value read back differs beyond tolerance.
        """
        actual = await self.provider.glucose_for_day(day)
        if actual is None or abs(actual - expected) > self.csv_config.glucose_tolerance:
            raise VerificationError(day, expected, actual)

    async def write_reading(self, reading: ImportedReading, result: ImportResult) -> None:
        day = calendar_day(reading.timestamp, self.timezone)

        try:
            await self.provider.write_glucose_sample(reading.value, reading.timestamp)
        except Exception as e:
            message = f"Row {reading.row_number}: failed to write glucose for {day}: {e}"
            logger.error(message)
            result.write_failures.append(message)
            return

        result.written += 1
        try:
            await self.verify(day, reading.value)
        except VerificationError as e:
            logger.warning(f"Row {reading.row_number}: {e}")
            result.verification_failures.append(str(e))
            return

        if day not in result.verified_days:
            result.verified_days.append(day)

    async def import_file(self, file_path: Path) -> ImportResult:
        """
        Import every glucose reading of a meter export.

        Args:
            file_path: Path to the CSV export.

        Returns:
            Import summary.

        Raises:
            ParsingError: If the file cannot be read.
            AuthorizationError: If provider access was denied.
        """
        readings = self.parser.parse(file_path)
        result = ImportResult(file_name=file_path.name)

        if not await self.provider.authorize():
            raise AuthorizationError(f"Access to {self.provider.DISPLAY_NAME} was not granted")

        for reading in readings:
            if reading.reading_type == ReadingType.KETONE:
                result.ketone_readings += 1
                continue

            result.glucose_readings += 1
            await self.write_reading(reading, result)

        logger.info(
            f"Imported {file_path.name}: {result.written}/{result.glucose_readings} glucose "
            f"written, {len(result.verification_failures)} mismatches, "
            f"{result.ketone_readings} ketone readings skipped"
        )
        return result
