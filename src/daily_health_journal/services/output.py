"""
Output service for exporting journal records.

Handles CSV and Parquet output with provenance serialization.
"""

import logging
from pathlib import Path

import pandas as pd

from daily_health_journal.domain.daily_record import DailyHealthRecord
from daily_health_journal.utils.parameters import OutputConfig

logger = logging.getLogger(__name__)


class OutputService:
    """
    Service for writing records to output files.

    Nested values are flattened to text; Parquet adds the list of synced fields.
    """

    def __init__(self, config: OutputConfig) -> None:
        """
        Initialize output service.

        Args:
            config: Output configuration.
        """
        self.config = config
        self.output_dir = Path(config.dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write_records(self, records: list[DailyHealthRecord]) -> list[Path]:
        """
        Write records to CSV and/or Parquet, oldest day first.

        Args:
            records: Records to export.

        Returns:
            Paths written.
        """
        if not records:
            logger.warning("No records to write")
            return []

        ordered = sorted(records, key=lambda r: r.calendar_day)
        written: list[Path] = []

        if "csv" in self.config.formats:
            written.append(self._write_csv(ordered))

        if "parquet" in self.config.formats:
            written.append(self._write_parquet(ordered))

        logger.info(f"Wrote {len(ordered)} records to output")
        return written

    def _write_csv(self, records: list[DailyHealthRecord]) -> Path:
        """
        Write records to CSV file.

        Args:
            records: List of records.
        """
        csv_path = self.output_dir / self.config.files.records_csv

        df = pd.DataFrame([r.to_dict(for_csv=True) for r in records])

        df.to_csv(csv_path, index=False, encoding="utf-8")
        logger.info(f"Wrote CSV to {csv_path}")
        return csv_path

    def _write_parquet(self, records: list[DailyHealthRecord]) -> Path:
        """
        Write records to Parquet file.

        Args:
            records: List of records.
        """
        parquet_path = self.output_dir / self.config.files.records_parquet

        df = pd.DataFrame([r.to_dict(for_csv=True) for r in records])
        df["synced_fields"] = [sorted(r.synced_fields()) for r in records]

        df.to_parquet(  # type: ignore[call-overload]
            parquet_path,
            engine=self.config.parquet.engine,
            compression=self.config.parquet.compression,
            index=False,
        )
        logger.info(f"Wrote Parquet to {parquet_path}")
        return parquet_path
