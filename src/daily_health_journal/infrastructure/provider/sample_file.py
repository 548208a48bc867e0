"""
Metrics provider backed by a local samples export.

The export is a CSV with one sample per row::

    metric,start,end,value
    steps,2025-06-10T08:00:00-04:00,2025-06-10T09:00:00-04:00,1200
    sleep,2025-06-09T23:10:00-04:00,2025-06-10T06:40:00-04:00,asleep

Supported metrics are ``steps``, ``glucose`` (mg/dL), ``weight`` (kg),
``heart_rate`` (bpm) and ``sleep`` (value ``asleep`` marks time asleep).
"""

import logging
from datetime import date, datetime, timedelta
from pathlib import Path

import pandas as pd

from daily_health_journal.domain.daily_record import HeartRateStats, SleepDuration
from daily_health_journal.infrastructure.provider.base import ExternalMetricsProvider
from daily_health_journal.utils.exceptions import FetchError, ProviderWriteError
from daily_health_journal.utils.parameters import ProcessingConfig, ProviderConfig
from daily_health_journal.utils.timezone_utils import calendar_day, day_bounds

logger = logging.getLogger(__name__)

COLUMNS = ["metric", "start", "end", "value"]
POUNDS_PER_KILOGRAM = 2.20462
ASLEEP = "asleep"


class SampleFileProvider(ExternalMetricsProvider):
    """
    Provider reading samples from a CSV export with pandas.

    The export is read once and cached; glucose writes update both the cache
    and the file.
    """

    DISPLAY_NAME = "Sample export"

    def __init__(self, config: ProviderConfig, processing_config: ProcessingConfig) -> None:
        """
        Initialize the provider.

        Args:
            config: Provider configuration (export path, weight unit).
            processing_config: Processing configuration (for timezone).
        """
        self.path = Path(config.samples_path)
        self.weight_unit = config.weight_unit
        self.timezone = processing_config.timezone
        self._frame: pd.DataFrame | None = None

    def _load(self) -> pd.DataFrame:
        """
        Read the export, parsing timestamps to UTC.

        Returns:
            DataFrame with the export's samples (empty if the file is missing).
        """
        if self._frame is not None:
            return self._frame

        if not self.path.exists():
            logger.warning(f"Samples export not found: {self.path}")
            self._frame = pd.DataFrame(
                {
                    "metric": pd.Series(dtype=str),
                    "start": pd.Series(dtype="datetime64[ns, UTC]"),
                    "end": pd.Series(dtype="datetime64[ns, UTC]"),
                    "value": pd.Series(dtype=str),
                }
            )
            return self._frame

        df = pd.read_csv(self.path, dtype=str)
        missing = [col for col in COLUMNS if col not in df.columns]
        if missing:
            raise ValueError(f"Samples export is missing columns: {missing}")

        df["metric"] = df["metric"].str.strip().str.lower()
        df["start"] = pd.to_datetime(df["start"], utc=True, format="ISO8601")
        df["end"] = pd.to_datetime(df["end"], utc=True, format="ISO8601").fillna(df["start"])
        df["value"] = df["value"].str.strip()

        self._frame = df[COLUMNS]
        logger.info(f"Loaded {len(self._frame)} samples from {self.path}")
        return self._frame

    def _samples(self, metric: str, day: date) -> pd.DataFrame:
        """
        Samples of one metric starting within a calendar day, oldest first.

        Raises:
            FetchError: If the export cannot be read.
        """
        try:
            df = self._load()
        except Exception as e:
            raise FetchError(metric, day, str(e)) from e

        start, end = day_bounds(day, self.timezone)
        mask = (
            (df["metric"] == metric)
            & (df["start"] >= pd.Timestamp(start))
            & (df["start"] < pd.Timestamp(end))
        )
        return df[mask].sort_values("start")

    @staticmethod
    def _numeric(samples: pd.DataFrame) -> pd.Series:
        return pd.to_numeric(samples["value"].str.replace(",", "."), errors="coerce").dropna()

    async def authorize(self) -> bool:
        """Grant access when the export is readable, or can be created for writes."""
        if not self.path.exists():
            granted = self.path.parent.is_dir()
            logger.info(f"{self.DISPLAY_NAME} authorization: {granted} (no export yet)")
            return granted

        try:
            self._load()
        except Exception as e:
            logger.error(f"Failed to read samples export {self.path}: {e}")
            return False
        return True

    async def steps_for_day(self, day: date) -> int:
        values = self._numeric(self._samples("steps", day))
        steps = int(round(values.sum())) if not values.empty else 0
        logger.debug(f"Fetched {steps} steps for {day}")
        return steps

    async def glucose_for_day(self, day: date) -> float | None:
        values = self._numeric(self._samples("glucose", day))
        if values.empty:
            return None
        return float(values.iloc[-1])

    async def sleep_duration_for_day(self, day: date) -> SleepDuration | None:
        try:
            df = self._load()
        except Exception as e:
            raise FetchError("sleep_duration", day, str(e)) from e

        _, end_of_day = day_bounds(day, self.timezone)
        start_of_previous_day, _ = day_bounds(day - timedelta(days=1), self.timezone)
        mask = (
            (df["metric"] == "sleep")
            & (df["value"].str.lower() == ASLEEP)
            & (df["start"] >= pd.Timestamp(start_of_previous_day))
            & (df["end"] <= pd.Timestamp(end_of_day))
        )
        asleep = df[mask]
        total_seconds = (asleep["end"] - asleep["start"]).dt.total_seconds().sum()

        if total_seconds <= 0:
            logger.info(f"No sleep data found for {day}")
            return None

        duration = SleepDuration.from_seconds(total_seconds)
        logger.info(f"Fetched sleep for {day}: {duration}")
        return duration

    async def heart_rate_stats_for_day(self, day: date) -> HeartRateStats | None:
        values = self._numeric(self._samples("heart_rate", day))
        if values.empty:
            return None
        return HeartRateStats(
            min=float(values.min()), max=float(values.max()), avg=round(float(values.mean()), 1)
        )

    async def weight_for_day(self, day: date) -> float | None:
        values = self._numeric(self._samples("weight", day))
        if values.empty:
            return None
        weight_kg = float(values.iloc[-1])
        if self.weight_unit == "lb":
            return round(weight_kg * POUNDS_PER_KILOGRAM, 1)
        return weight_kg

    async def write_glucose_sample(self, value: float, timestamp: datetime) -> None:
        day = calendar_day(timestamp, self.timezone)
        try:
            df = self._load()
        except Exception as e:
            raise ProviderWriteError(f"Failed to read samples export {self.path}: {e}") from e

        start, end = day_bounds(day, self.timezone)
        same_day = (
            (df["metric"] == "glucose")
            & (df["start"] >= pd.Timestamp(start))
            & (df["start"] < pd.Timestamp(end))
        )
        if same_day.any():
            logger.debug(f"Deleting {int(same_day.sum())} glucose samples for {day}")

        ts = pd.Timestamp(timestamp).tz_convert("UTC")
        row = pd.DataFrame({"metric": ["glucose"], "start": [ts], "end": [ts], "value": [str(value)]})
        updated = pd.concat([df[~same_day], row], ignore_index=True)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            serialized = updated.copy()
            for col in ("start", "end"):
                serialized[col] = serialized[col].map(lambda t: t.isoformat())
            serialized.to_csv(self.path, index=False)
        except OSError as e:
            raise ProviderWriteError(f"Failed to write samples export {self.path}: {e}") from e

        self._frame = updated
        logger.info(f"Wrote glucose {value} for {day}")
