"""
External metrics provider contract.

Every provider implementation subclasses :class:`ExternalMetricsProvider` and is
passed explicitly to the components that need it, so tests can substitute a
fake. Reads resolve to a value or None; "no data" is never an error. A read
that fails (as opposed to finding nothing) raises :class:`FetchError`.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime

from daily_health_journal.domain.daily_record import HeartRateStats, SleepDuration


class ExternalMetricsProvider(ABC):
    """
    Read-mostly interface over an external health-metrics source.

    Subclasses must implement:
        - authorize()
        - steps_for_day()
        - glucose_for_day()
        - sleep_duration_for_day()
        - heart_rate_stats_for_day()
        - weight_for_day()
        - write_glucose_sample()
    """

    #: Human-readable name for logging.
    DISPLAY_NAME: str = "Unknown Provider"

    @abstractmethod
    async def authorize(self) -> bool:
        """
        Request read (and glucose write) access.

        Returns:
            True if access is granted.
        """

    @abstractmethod
    async def steps_for_day(self, day: date) -> int:
        """
        Total steps for a calendar day.

        Returns:
            Step count, 0 when the provider has no samples.
        """

    @abstractmethod
    async def glucose_for_day(self, day: date) -> float | None:
        """Most recent blood glucose sample of the day in mg/dL."""

    @abstractmethod
    async def sleep_duration_for_day(self, day: date) -> SleepDuration | None:
        """
        Time asleep for the night ending on the given day.

        Sleep that ended on ``day`` is counted, looking back to the start of
        the previous day.
        """

    @abstractmethod
    async def heart_rate_stats_for_day(self, day: date) -> HeartRateStats | None:
        """Minimum, maximum and average heart rate over the day."""

    @abstractmethod
    async def weight_for_day(self, day: date) -> float | None:
        """Most recent body weight sample of the day."""

    @abstractmethod
    async def write_glucose_sample(self, value: float, timestamp: datetime) -> None:
        """
        Store a glucose sample, replacing any samples on the same day.

        Existing same-day glucose samples are deleted before the new one is
        written. The write is not transactional; callers verify it by reading
        back :meth:`glucose_for_day`.

        Raises:
            DailyHealthJournalError: If the delete or write fails.
        """
