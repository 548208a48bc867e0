"""Shared fixtures: an in-memory metrics provider and record stores."""

from datetime import date, datetime

import pytest

from daily_health_journal.domain.daily_record import HeartRateStats, SleepDuration
from daily_health_journal.infrastructure.provider.base import ExternalMetricsProvider
from daily_health_journal.infrastructure.store.record_store import JsonRecordStore
from daily_health_journal.services.field_sync import FieldSyncCoordinator
from daily_health_journal.services.weekly_aggregate import WeeklyAggregateCalculator
from daily_health_journal.utils.exceptions import PersistenceError, ProviderWriteError
from daily_health_journal.utils.timezone_utils import calendar_day

TIMEZONE = "America/New_York"


class FakeMetricsProvider(ExternalMetricsProvider):
    """Provider serving values from dictionaries keyed by day."""

    DISPLAY_NAME = "Fake provider"

    def __init__(self) -> None:
        self.granted = True
        self.steps: dict[date, int] = {}
        self.glucose: dict[date, float] = {}
        self.sleep: dict[date, SleepDuration] = {}
        self.heart_rate: dict[date, HeartRateStats] = {}
        self.weight: dict[date, float] = {}
        self.failing: set[str] = set()
        self.fail_writes = False
        self.readback_offset = 0.0
        self.authorize_calls = 0
        self.calls: list[tuple[str, date]] = []
        self.writes: list[tuple[float, datetime]] = []

    def _check(self, field: str, day: date) -> None:
        self.calls.append((field, day))
        if field in self.failing:
            raise RuntimeError(f"{field} unavailable")

    async def authorize(self) -> bool:
        self.authorize_calls += 1
        return self.granted

    async def steps_for_day(self, day: date) -> int:
        self._check("steps", day)
        return self.steps.get(day, 0)

    async def glucose_for_day(self, day: date) -> float | None:
        self._check("glucose", day)
        value = self.glucose.get(day)
        return value + self.readback_offset if value is not None else None

    async def sleep_duration_for_day(self, day: date) -> SleepDuration | None:
        self._check("sleep_duration", day)
        return self.sleep.get(day)

    async def heart_rate_stats_for_day(self, day: date) -> HeartRateStats | None:
        self._check("heart_rate", day)
        return self.heart_rate.get(day)

    async def weight_for_day(self, day: date) -> float | None:
        self._check("weight", day)
        return self.weight.get(day)

    async def write_glucose_sample(self, value: float, timestamp: datetime) -> None:
        if self.fail_writes:
            raise ProviderWriteError("write rejected")
        self.writes.append((value, timestamp))
        self.glucose[calendar_day(timestamp, TIMEZONE)] = value


class FlakyRecordStore(JsonRecordStore):
    """In-memory store whose saves start failing after ``saves_remaining`` reaches 0."""

    def __init__(self) -> None:
        super().__init__(None)
        self.saves_remaining: int | None = None

    def save(self) -> None:
        if self.saves_remaining is not None:
            if self.saves_remaining <= 0:
                raise PersistenceError("disk full")
            self.saves_remaining -= 1
        super().save()


@pytest.fixture
def provider() -> FakeMetricsProvider:
    return FakeMetricsProvider()


@pytest.fixture
def store() -> FlakyRecordStore:
    return FlakyRecordStore()


@pytest.fixture
def coordinator(provider: FakeMetricsProvider) -> FieldSyncCoordinator:
    return FieldSyncCoordinator(provider)


@pytest.fixture
def aggregator(provider: FakeMetricsProvider) -> WeeklyAggregateCalculator:
    return WeeklyAggregateCalculator(provider)
