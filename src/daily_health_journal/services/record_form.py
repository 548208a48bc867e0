"""
Record form view-model.

Holds the editable state of one day's record: initial population from the
store and the provider, explicit field edits, debounced day lookups, save,
delete and undo.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from daily_health_journal.domain.daily_record import (
    TRACKED_FIELD_NAMES,
    USER_FIELD_NAMES,
    DailyHealthRecord,
    FieldEdit,
    TrackedField,
)
from daily_health_journal.infrastructure.store.record_store import DailyRecordStore
from daily_health_journal.services.field_sync import FieldSyncCoordinator
from daily_health_journal.services.weekly_aggregate import WeeklyAggregateCalculator
from daily_health_journal.utils.debounce import Debouncer
from daily_health_journal.utils.exceptions import (
    AuthorizationError,
    FetchError,
    PersistenceError,
    ValidationError,
)
from daily_health_journal.utils.parameters import SyncConfig
from daily_health_journal.utils.timezone_utils import today

logger = logging.getLogger(__name__)


class FormState(str, Enum):
    """Lifecycle of the form."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    SAVING = "saving"


class DayLookup(BaseModel):
    """Live provider values for a selected day."""

    day: date
    steps: int | None = None
    week_total: int | None = None


class RecordFormViewModel:
    """
    Editable form over the record of one calendar day.

    Edits go to a working copy (``draft``); :meth:`save` writes every field of
    the draft to the stored record. Build instances with :meth:`create`.
    """

    def __init__(
        self,
        store: DailyRecordStore,
        coordinator: FieldSyncCoordinator,
        aggregator: WeeklyAggregateCalculator,
        day: date,
        sync_config: SyncConfig | None = None,
        timezone_str: str = "America/New_York",
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.store = store
        self.coordinator = coordinator
        self.aggregator = aggregator
        self.day = day
        self.sync_config = sync_config or SyncConfig()
        self.timezone = timezone_str
        self.clock = clock or (lambda: today(timezone_str))

        self.state = FormState.IDLE
        self.draft = DailyHealthRecord(calendar_day=day)
        self.has_unsaved_changes = False
        self.selected_lookup: DayLookup | None = None

        self._debouncer = Debouncer(self.sync_config.debounce_seconds)
        self._deleted: DailyHealthRecord | None = None

    @classmethod
    async def create(
        cls,
        store: DailyRecordStore,
        coordinator: FieldSyncCoordinator,
        aggregator: WeeklyAggregateCalculator,
        day: date | None = None,
        sync_config: SyncConfig | None = None,
        timezone_str: str = "America/New_York",
        clock: Callable[[], date] | None = None,
    ) -> "RecordFormViewModel":
        """
        Build a form and wait until it is READY.

        Args:
            store: Record store.
            coordinator: Field sync coordinator wrapping the provider.
            aggregator: Weekly aggregate calculator.
            day: Day to edit; defaults to today.
            sync_config: Sync configuration (overwrite policy, debounce delay).
            timezone_str: Timezone defining "today".
            clock: Returns the current day; defaults to today in ``timezone_str``.
        """
        form = cls(
            store,
            coordinator,
            aggregator,
            day or (clock() if clock else today(timezone_str)),
            sync_config=sync_config,
            timezone_str=timezone_str,
            clock=clock,
        )
        await form._initialize()
        return form

    @property
    def is_interactive(self) -> bool:
        return self.state not in (FormState.INITIALIZING, FormState.SAVING)

    @property
    def record(self) -> DailyHealthRecord | None:
        """Stored record for the form's day, if any."""
        return self.store.fetch_by_day(self.day)

    async def _current_steps(self) -> int | None:
        """Today's steps from the provider; None for other days or on failure."""
        if self.day != self.clock():
            return None

        try:
            await self.coordinator.ensure_authorized()
            return await self.coordinator.provider.steps_for_day(self.day)
        except asyncio.CancelledError:
            raise
        except AuthorizationError as e:
            logger.warning(f"Skipping current steps: {e}")
        except Exception as e:
            logger.warning(str(FetchError("steps", self.day, str(e))))
        return None

    async def _existing_record(self) -> DailyHealthRecord | None:
        try:
            return self.store.fetch_by_day(self.day)
        except Exception as e:
            logger.error(f"Failed to read record for {self.day}: {e}")
            return None

    async def _initialize(self) -> None:
        self.state = FormState.INITIALIZING
        logger.debug(f"Initializing form for {self.day}")

        steps, existing = await asyncio.gather(self._current_steps(), self._existing_record())

        if existing is not None:
            self.draft = existing.model_copy(deep=True)
        if steps is not None:
            self.coordinator.merge_field(
                self.draft, TrackedField.STEPS, steps, self.sync_config.overwrite
            )

        self.state = FormState.READY
        logger.info(f"Form ready for {self.day} (existing record: {existing is not None})")

    def get_field(self, name: str) -> Any:
        return getattr(self.draft, name)

    def set_field(self, name: str, value: Any) -> FieldEdit:
        """
        Edit one field of the draft.

        Tracked fields lose their provenance flag.

        Raises:
            ValidationError: If the field is unknown, the value is invalid or
                a save is in progress.
        """
        if self.state == FormState.SAVING:
            raise ValidationError("Cannot edit while saving")

        edit = self.draft.edit(name, value)
        if self.state == FormState.READY and edit.changed:
            self.has_unsaved_changes = True
        return edit

    async def _lookup_day(self, day: date) -> DayLookup:
        try:
            await self.coordinator.ensure_authorized()
        except AuthorizationError as e:
            logger.warning(f"Skipping lookup for {day}: {e}")
            return DayLookup(day=day)

        try:
            steps = await self.coordinator.provider.steps_for_day(day)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(str(FetchError("steps", day, str(e))))
            steps = None

        week_total = await self.aggregator.live_week_total(day)
        return DayLookup(day=day, steps=steps, week_total=week_total)

    async def select_day(self, day: date) -> DayLookup | None:
        """
        Look up live steps and the live week total for a day, debounced.

        Only the most recent selection is applied; superseded calls return
        None.
        """
        current, lookup = await self._debouncer.submit(day, lambda: self._lookup_day(day))
        if not current:
            return None

        self.selected_lookup = lookup
        return lookup

    def _write_fields(self, record: DailyHealthRecord) -> None:
        for name in sorted(TRACKED_FIELD_NAMES | USER_FIELD_NAMES):
            setattr(record, name, getattr(self.draft, name))
        record.field_sources = dict(self.draft.field_sources)
        record.updated_at = datetime.now(timezone.utc)

    def save(self) -> DailyHealthRecord:
        """
        Write the draft to the store in full and persist.

        Returns:
            The stored record.

        Raises:
            ValidationError: If the form is not READY.
            PersistenceError: If the store cannot be saved; the store is
                rolled back and unsaved changes are kept.
        """
        if self.state != FormState.READY:
            raise ValidationError(f"Cannot save while {self.state.value}")

        self.state = FormState.SAVING
        try:
            record = self.store.fetch_by_day(self.day)
            if record is None:
                record = self.draft.model_copy(deep=True)
                self.store.insert(record)
            else:
                self._write_fields(record)

            self.aggregator.refresh(self.store, self.day)
            self.store.save()
        except PersistenceError:
            self.store.rollback()
            logger.error(f"Failed to save record for {self.day}; changes kept")
            raise
        finally:
            self.state = FormState.READY

        self.draft.week_total_steps_cache = record.week_total_steps_cache
        self.has_unsaved_changes = False
        logger.info(f"Saved record for {self.day}")
        return record

    def delete_record(self) -> bool:
        """
        Delete the stored record for the form's day and reset the draft.

        Returns:
            True if a record was deleted.

        Raises:
            PersistenceError: If the store cannot be saved; the store is
                rolled back.
        """
        record = self.store.fetch_by_day(self.day)
        if record is None:
            logger.info(f"No record to delete for {self.day}")
            return False

        try:
            self.store.delete(record)
            self.aggregator.refresh(self.store, self.day)
            self.store.save()
        except PersistenceError:
            self.store.rollback()
            raise

        self._deleted = record
        self.draft = DailyHealthRecord(calendar_day=self.day)
        self.has_unsaved_changes = False
        logger.info(f"Deleted record for {self.day}")
        return True

    def undo_delete(self) -> bool:
        """
        Restore the last deleted record, once.

        Returns:
            False if nothing was deleted or a record for that day was created
            in the meantime.

        Raises:
            PersistenceError: If the store cannot be saved; the store is
                rolled back.
        """
        record = self._deleted
        self._deleted = None
        if record is None:
            return False

        if self.store.fetch_by_day(record.calendar_day) is not None:
            logger.warning(f"Cannot undo delete: a record for {record.calendar_day} exists")
            return False

        try:
            self.store.insert(record)
            self.aggregator.refresh(self.store, record.calendar_day)
            self.store.save()
        except PersistenceError:
            self.store.rollback()
            raise

        self.draft = record.model_copy(deep=True)
        self.has_unsaved_changes = False
        logger.info(f"Restored record for {record.calendar_day}")
        return True

    @property
    def can_undo_delete(self) -> bool:
        return self._deleted is not None
