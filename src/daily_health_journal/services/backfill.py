"""
Backfill service.

Creates a record for every calendar day missing from the store, from the
earliest stored day up to today, populated from the metrics provider.

Usage::

    scheduler = BackfillScheduler(coordinator, aggregator, sync_config)
    async for progress in scheduler.iter_run(store):
        logger.info(f"Backfill progress: {progress.pct_complete}%")
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import date

from daily_health_journal.domain.daily_record import DailyHealthRecord
from daily_health_journal.infrastructure.store.record_store import DailyRecordStore
from daily_health_journal.services.field_sync import FieldSyncCoordinator
from daily_health_journal.services.weekly_aggregate import WeeklyAggregateCalculator
from daily_health_journal.utils.exceptions import PersistenceError
from daily_health_journal.utils.parameters import SyncConfig
from daily_health_journal.utils.timezone_utils import day_range, today

logger = logging.getLogger(__name__)


@dataclass
class BackfillProgress:
    """Progress update emitted after each backfilled day.

    Attributes:
        current_day:       Day just processed (today when nothing was pending).
        processed_days:    Days processed so far.
        total_days:        Days pending at the start of the run.
        created:           Whether a record was created for current_day.
        populated_fields:  Fields the provider returned for current_day.
        is_complete:       True on the last update of the run.
    """

    current_day: date
    processed_days: int
    total_days: int
    created: bool = False
    populated_fields: list[str] = field(default_factory=list)
    is_complete: bool = False

    @property
    def pct_complete(self) -> float:
        if self.total_days == 0:
            return 100.0
        return round(self.processed_days / self.total_days * 100, 1)


class BackfillScheduler:
    """
    Service filling gaps in the record store from the metrics provider.

    Days are processed one at a time in ascending order. Each day's record is
    inserted and saved without yielding to the event loop, so a cancelled run
    never leaves a half-written day.
    """

    def __init__(
        self,
        coordinator: FieldSyncCoordinator,
        aggregator: WeeklyAggregateCalculator,
        sync_config: SyncConfig | None = None,
        timezone: str = "America/New_York",
        clock: Callable[[], date] | None = None,
    ) -> None:
        """
        Initialize backfill scheduler.

        Args:
            coordinator: Field sync coordinator wrapping the provider.
            aggregator: Weekly aggregate calculator for the step caches.
            sync_config: Sync configuration (per-day delay).
            timezone: Timezone defining "today".
            clock: Returns the current day; defaults to today in ``timezone``.
        """
        self.coordinator = coordinator
        self.aggregator = aggregator
        self.sync_config = sync_config or SyncConfig()
        self.clock = clock or (lambda: today(timezone))

    def pending_days(self, store: DailyRecordStore) -> list[date]:
        """
        Days that need a record.

        Returns:
            Today alone for an empty store; otherwise every day in
            [earliest stored day, today] without a record, ascending.
        """
        current = self.clock()
        earliest = store.earliest_day()
        if earliest is None:
            return [current]

        existing = store.fetch_range(earliest, current)
        return [day for day in day_range(earliest, current) if day not in existing]

    def _create_record(self, store: DailyRecordStore, record: DailyHealthRecord) -> None:
        """
        Insert, refresh the week caches and commit, rolling back on failure.

        Raises:
            PersistenceError: If the store cannot be saved.
        """
        try:
            store.insert(record)
            self.aggregator.refresh(store, record.calendar_day)
            store.save()
        except PersistenceError:
            store.rollback()
            logger.error(f"Failed to save backfilled record for {record.calendar_day}")
            raise

    async def iter_run(self, store: DailyRecordStore) -> AsyncIterator[BackfillProgress]:
        """
        Run a backfill, yielding progress after each day.

        This is an async generator; cancellation takes effect between days.

        Raises:
            AuthorizationError: If provider access was denied (before any work).
            PersistenceError: If a day cannot be saved; earlier days stay saved.
        """
        await self.coordinator.ensure_authorized()

        pending = self.pending_days(store)
        total_days = len(pending)
        if not pending:
            logger.info("Backfill already complete")
            yield BackfillProgress(
                current_day=self.clock(), processed_days=0, total_days=0, is_complete=True
            )
            return

        logger.info(f"Backfilling {total_days} days from {pending[0]} to {pending[-1]}")
        delay_s = self.sync_config.backfill_delay_ms / 1000.0

        for processed, day in enumerate(pending, start=1):
            bundle = await self.coordinator.fetch_external_bundle(day)

            created = False
            if store.fetch_by_day(day) is None:
                self._create_record(store, DailyHealthRecord.from_bundle(bundle))
                created = True
            else:
                logger.info(f"Record for {day} was created during backfill, skipping")

            yield BackfillProgress(
                current_day=day,
                processed_days=processed,
                total_days=total_days,
                created=created,
                populated_fields=sorted(bundle.populated_fields()),
                is_complete=processed == total_days,
            )

            if delay_s > 0 and processed < total_days:
                await asyncio.sleep(delay_s)

    async def run(
        self,
        store: DailyRecordStore,
        on_progress: Callable[[BackfillProgress], None] | None = None,
    ) -> list[date]:
        """
        Run a backfill to completion.

        Args:
            store: Record store to fill.
            on_progress: Optional callback receiving each progress update.

        Returns:
            Days for which a record was created, ascending.
        """
        created_days: list[date] = []
        async for progress in self.iter_run(store):
            if progress.created:
                created_days.append(progress.current_day)
            if on_progress:
                on_progress(progress)

        logger.info(f"Backfill created {len(created_days)} records")
        return created_days
