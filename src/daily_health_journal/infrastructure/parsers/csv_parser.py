"""
CSV parser for meter reading exports.

Reads semicolon-delimited exports whose first four columns are
``timestamp; reading_type; reading_sample_type; reading_value``. Only blood
glucose and blood ketone readings are accepted; malformed rows are skipped.
"""

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from daily_health_journal.domain.reading import ImportedReading, ReadingType
from daily_health_journal.utils.exceptions import ParsingError
from daily_health_journal.utils.parameters import CSVImportConfig, ProcessingConfig
from daily_health_journal.utils.timezone_utils import parse_timestamp

logger = logging.getLogger(__name__)

HEADER_MARKER = "reading_type"


class GlucoseCSVParser:
    """
    Parser for meter reading CSV exports.

    Handles encoding detection, leading version/comment lines, header
    detection and per-row validation.
    """

    def __init__(self, csv_config: CSVImportConfig, processing_config: ProcessingConfig) -> None:
        """
        Initialize CSV parser.

        Args:
            csv_config: CSV import configuration.
            processing_config: Processing configuration (for timezone).
        """
        self.csv_config = csv_config
        self.processing_config = processing_config
        self.accepted_types = {t.strip().lower() for t in csv_config.accepted_reading_types}

    def _detect_encoding(self, file_path: Path) -> str:
        """
        Detect file encoding.

        Args:
            file_path: Path to CSV file.

        Returns:
            Detected encoding.
        """
        for encoding in self.csv_config.encodings:
            try:
                with open(file_path, encoding=encoding) as f:
                    f.read()
                logger.debug(f"Detected encoding: {encoding}")
                return encoding
            except (UnicodeDecodeError, LookupError):
                continue

        logger.warning("Encoding detection failed, using utf-8")
        return "utf-8"

    def _read_lines(self, file_path: Path, encoding: str) -> list[str]:
        with open(file_path, encoding=encoding) as f:
            return f.read().splitlines()

    def _header_index(self, lines: list[str]) -> int | None:
        """
        Locate the header line.

        Exports start with a version line and a header; either may be absent.

        Returns:
            0-based index of the header line, or None if there is none.
        """
        for idx, line in enumerate(lines):
            if HEADER_MARKER in line.lower():
                return idx
        return None

    def _safe_float_conversion(self, value: Any) -> float | None:
        """
        Safely convert value to float, handling comma decimal separator.

        Args:
            value: Value to convert.

        Returns:
            Float value or None if conversion fails.
        """
        if pd.isna(value):
            return None

        if isinstance(value, (int, float)):
            return float(value)

        if isinstance(value, str):
            value = value.strip().replace(",", ".")
            try:
                return float(value)
            except ValueError:
                return None

        return None

    def parse_row(self, columns: list[Any], file_name: str, row_number: int) -> ImportedReading | None:
        """
        Validate one row.

        Args:
            columns: Cell values in file order; trailing empty cells are ignored.
            file_name: Source file name.
            row_number: 1-based line number for logging.

        Returns:
            The accepted reading, or None if the row does not qualify.
        """
        cells = ["" if pd.isna(c) else str(c).strip().strip('"') for c in columns]
        while cells and not cells[-1]:
            cells.pop()

        if len(cells) < 4:
            logger.debug(f"Row {row_number}: fewer than 4 columns, skipping")
            return None

        timestamp_str, reading_type, sample_type, value_str = cells[:4]

        if reading_type.lower() not in self.accepted_types:
            return None
        if sample_type.lower() != self.csv_config.accepted_sample_type:
            return None
        if not timestamp_str:
            logger.debug(f"Row {row_number}: empty timestamp, skipping")
            return None

        value = self._safe_float_conversion(value_str)
        if value is None:
            logger.debug(f"Row {row_number}: invalid value {value_str!r}, skipping")
            return None

        try:
            timestamp = parse_timestamp(
                timestamp_str, self.processing_config.timezone, require_offset=True
            )
        except (ValueError, OverflowError) as e:
            logger.warning(f"Row {row_number}: failed to parse timestamp: {e}")
            return None

        return ImportedReading(
            timestamp=timestamp,
            reading_type=ReadingType(reading_type.lower()),
            value=value,
            source_file_name=file_name,
            row_number=row_number,
        )

    def parse(self, file_path: Path) -> list[ImportedReading]:
        """
        Parse CSV file into accepted readings.

        Every line is read with the width of the widest line, so short,
        long or malformed lines never shift or drop their neighbours.

        Args:
            file_path: Path to CSV file.

        Returns:
            List of accepted readings in file order.

        Raises:
            ParsingError: If the file cannot be read at all.
        """
        delimiter = self.csv_config.delimiter
        try:
            encoding = self._detect_encoding(file_path)
            lines = self._read_lines(file_path, encoding)
            if not any(line.strip() for line in lines):
                logger.warning(f"{file_path.name} contains no rows")
                return []

            width = max(4, max(line.count(delimiter) + 1 for line in lines))
            df = pd.read_csv(
                file_path,
                encoding=encoding,
                sep=delimiter,
                header=None,
                names=list(range(width)),
                index_col=False,
                dtype=str,
                skip_blank_lines=False,
                engine="python",
            )
        except pd.errors.EmptyDataError:
            logger.warning(f"{file_path.name} contains no rows")
            return []
        except Exception as e:
            raise ParsingError(f"Failed to parse CSV file {file_path}: {e}") from e

        header_idx = self._header_index(lines)
        records: list[ImportedReading] = []

        # Row positions match source lines since blank lines are kept.
        for position, row in enumerate(df.itertuples(index=False)):
            row_number = position + 1
            if position == header_idx:
                continue
            try:
                columns = list(row)
                if not pd.isna(columns[0]) and str(columns[0]).lstrip().startswith("#"):
                    continue
                reading = self.parse_row(columns, file_path.name, row_number)
                if reading is not None:
                    records.append(reading)
            except Exception as e:
                logger.warning(f"Failed to parse row {row_number}: {e}")
                continue

        logger.info(f"Parsed {len(records)} readings from {file_path.name}")
        return records
