"""
Field sync service.

Fetches one day's values from the metrics provider and merges them into a
record under the fill-empty or overwrite policy, keeping provenance flags in
step with the values.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from daily_health_journal.domain.daily_record import (
    SYNCED_FIELDS,
    DailyHealthRecord,
    ExternalDayBundle,
    FieldEdit,
    TrackedField,
)
from daily_health_journal.infrastructure.provider.base import ExternalMetricsProvider
from daily_health_journal.utils.exceptions import AuthorizationError, FetchError

logger = logging.getLogger(__name__)


class FieldSyncCoordinator:
    """
    Service reconciling daily records with the external metrics provider.

    Each field is fetched independently: a failure in one only leaves that
    field absent in the bundle.
    """

    def __init__(self, provider: ExternalMetricsProvider) -> None:
        """
        Initialize field sync coordinator.

        Args:
            provider: Metrics provider to read from.
        """
        self.provider = provider
        self._authorized: bool | None = None

    @property
    def authorized(self) -> bool | None:
        """Cached authorization outcome; None until requested."""
        return self._authorized

    async def ensure_authorized(self) -> None:
        """
        Request provider access once per session.

        Raises:
            AuthorizationError: If access was denied.
        """
        if self._authorized is None:
            try:
                self._authorized = bool(await self.provider.authorize())
            except Exception as e:
                logger.error(f"{self.provider.DISPLAY_NAME} authorization failed: {e}")
                self._authorized = False

            logger.info(f"{self.provider.DISPLAY_NAME} authorized: {self._authorized}")

        if not self._authorized:
            raise AuthorizationError(f"Access to {self.provider.DISPLAY_NAME} was not granted")

    def _fetchers(self) -> dict[TrackedField, Callable[[date], Awaitable[Any]]]:
        return {
            TrackedField.STEPS: self.provider.steps_for_day,
            TrackedField.GLUCOSE: self.provider.glucose_for_day,
            TrackedField.SLEEP_DURATION: self.provider.sleep_duration_for_day,
            TrackedField.HEART_RATE: self.provider.heart_rate_stats_for_day,
            TrackedField.WEIGHT: self.provider.weight_for_day,
        }

    async def _fetch_field(
        self, field: TrackedField, fetch: Callable[[date], Awaitable[Any]], day: date
    ) -> Any:
        """
        Fetch one field, degrading any failure to an absent value.

        Returns:
            The provider value, or None on absence or failure.
        """
        try:
            return await fetch(day)
        except asyncio.CancelledError:
            raise
        except FetchError as e:
            logger.warning(str(e))
        except Exception as e:
            logger.warning(str(FetchError(field.value, day, str(e))))
        return None

    async def fetch_external_bundle(self, day: date) -> ExternalDayBundle:
        """
        Fetch every synced field for one day concurrently.

        All fetches are awaited before the bundle is built, whatever their
        individual outcome.

        Args:
            day: Calendar day to fetch.

        Returns:
            Bundle with one value (or None) per synced field.
        """
        fetchers = self._fetchers()
        requested = [f for f in SYNCED_FIELDS if f in fetchers]

        results = await asyncio.gather(
            *(self._fetch_field(f, fetchers[f], day) for f in requested)
        )

        bundle = ExternalDayBundle(day=day, **{f.value: v for f, v in zip(requested, results)})
        logger.debug(f"Fetched bundle for {day}: {sorted(bundle.populated_fields())}")
        return bundle

    @staticmethod
    def merge_field(
        record: DailyHealthRecord, field: TrackedField, value: Any, overwrite: bool
    ) -> FieldEdit | None:
        """
        Apply the fill-empty or overwrite policy to a single field.

        Returns:
            The edit, or None when the policy left the field untouched.
        """
        if overwrite or record.get(field) is None:
            return record.apply_sync(field, value)
        return None

    def merge(
        self, record: DailyHealthRecord, bundle: ExternalDayBundle, overwrite: bool
    ) -> list[FieldEdit]:
        """
        Merge a bundle into a record in memory.

        For each synced field, the bundle value replaces the record value when
        ``overwrite`` is set or the record value is absent; the provenance
        flag becomes True iff the written value is present. Otherwise the
        field and its flag are left untouched. Persistence is the caller's
        responsibility.

        Args:
            record: Record to update.
            bundle: Values fetched for the record's day.
            overwrite: Replace present values too, clearing them when the
                bundle has none.

        Returns:
            Edits applied, one per written field.
        """
        if bundle.day != record.calendar_day:
            logger.warning(
                f"Merging bundle for {bundle.day} into record for {record.calendar_day}"
            )

        edits: list[FieldEdit] = []
        for field in SYNCED_FIELDS:
            edit = self.merge_field(record, field, bundle.get(field), overwrite)
            if edit is not None:
                edits.append(edit)

        changed = [e.field for e in edits if e.changed]
        if changed:
            logger.info(f"Merged {changed} into record for {record.calendar_day}")
        return edits

    async def sync_record(self, record: DailyHealthRecord, overwrite: bool) -> list[FieldEdit]:
        """
        Fetch and merge the record's day in one step.

        Raises:
            AuthorizationError: If provider access was denied.
        """
        await self.ensure_authorized()
        bundle = await self.fetch_external_bundle(record.calendar_day)
        return self.merge(record, bundle, overwrite)
