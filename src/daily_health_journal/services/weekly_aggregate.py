"""
Weekly step aggregate service.

Computes the trailing 7-day step total for a day, either from the local store
(and cached on records) or live from the metrics provider before a local
record exists.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import date, timedelta

from daily_health_journal.infrastructure.provider.base import ExternalMetricsProvider
from daily_health_journal.infrastructure.store.record_store import DailyRecordStore
from daily_health_journal.utils.exceptions import FetchError
from daily_health_journal.utils.timezone_utils import WEEK_LENGTH_DAYS, week_window

logger = logging.getLogger(__name__)


class WeeklyAggregateCalculator:
    """
    Service for trailing 7-day step totals.

    Days without a record (or without steps) count as 0.
    """

    def __init__(self, provider: ExternalMetricsProvider | None = None) -> None:
        """
        Initialize weekly aggregate calculator.

        Args:
            provider: Metrics provider for live totals; store-only use needs none.
        """
        self.provider = provider

    @staticmethod
    def cached_week_total(store: DailyRecordStore, day: date) -> int:
        """
        Sum of stored steps over [day-6, day].

        Args:
            store: Record store.
            day: Last day of the window.

        Returns:
            Step total, missing days counted as 0.
        """
        window = store.fetch_range(day - timedelta(days=WEEK_LENGTH_DAYS - 1), day)
        return sum(record.steps or 0 for record in window.values())

    def refresh(self, store: DailyRecordStore, day: date) -> int:
        """
        Recompute the cached total of ``day`` and of every later record whose window contains it.

        Call whenever the steps of ``day`` may have changed; the caller persists.

        Returns:
            The total for ``day``.
        """
        affected = store.fetch_range(day, day + timedelta(days=WEEK_LENGTH_DAYS - 1))
        for record in affected.values():
            record.week_total_steps_cache = self.cached_week_total(store, record.calendar_day)

        total = self.cached_week_total(store, day)
        logger.debug(f"Week total for {day}: {total} ({len(affected)} caches refreshed)")
        return total

    async def iter_live_week_total(self, day: date) -> AsyncIterator[tuple[date, int]]:
        """
        Accumulate the week total from the provider one day at a time.

        Yields:
            Tuple of (day just added, running total), oldest day first.

        Raises:
            ValueError: If no provider was configured.
        """
        if self.provider is None:
            raise ValueError("A metrics provider is required for live totals")

        running_total = 0
        for current in week_window(day):
            try:
                steps = await self.provider.steps_for_day(current)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(str(FetchError("steps", current, str(e))))
                steps = 0

            running_total += steps
            yield current, running_total

    async def live_week_total(
        self, day: date, on_progress: Callable[[date, int], None] | None = None
    ) -> int:
        """
        Sum of provider steps over [day-6, day], fetched sequentially.

        Args:
            day: Last day of the window.
            on_progress: Optional callback receiving each running total.

        Returns:
            Step total.
        """
        total = 0
        async for current, total in self.iter_live_week_total(day):
            if on_progress:
                on_progress(current, total)

        logger.info(f"Live week total for {day}: {total}")
        return total
