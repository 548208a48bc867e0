"""
Daily record store.

Defines the store contract the engine relies on and a JSON-file implementation
with commit/rollback semantics: inserts, deletes and in-place edits become
durable on :meth:`save` and can be discarded with :meth:`rollback`.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Any
from uuid import UUID

from daily_health_journal.domain.daily_record import DailyHealthRecord
from daily_health_journal.utils.exceptions import PersistenceError, ValidationError

logger = logging.getLogger(__name__)


class DailyRecordStore(ABC):
    """
    Persisted collection of per-day records keyed by calendar day.

    Records returned by the fetch methods are live objects: mutating them
    changes the pending state, which :meth:`save` commits.
    """

    @abstractmethod
    def fetch_all(self, descending: bool = True) -> list[DailyHealthRecord]:
        """Return all records sorted by calendar day."""

    @abstractmethod
    def fetch_by_day(self, day: date) -> DailyHealthRecord | None:
        """Return the record for a calendar day, if any."""

    @abstractmethod
    def insert(self, record: DailyHealthRecord) -> None:
        """
        Add a record.

        Raises:
            ValidationError: If a different record already exists for that day.
        """

    @abstractmethod
    def delete(self, record: DailyHealthRecord) -> None:
        """Remove a record."""

    @abstractmethod
    def save(self) -> None:
        """
        Commit pending changes.

        Raises:
            PersistenceError: If the changes cannot be written.
        """

    @abstractmethod
    def rollback(self) -> None:
        """Discard changes made since the last successful save."""

    def is_empty(self) -> bool:
        return not self.fetch_all()

    def earliest_day(self) -> date | None:
        records = self.fetch_all(descending=False)
        return records[0].calendar_day if records else None

    def fetch_range(self, start: date, end: date) -> dict[date, DailyHealthRecord]:
        """Return records with start <= calendar_day <= end, keyed by day."""
        return {
            r.calendar_day: r for r in self.fetch_all(descending=False) if start <= r.calendar_day <= end
        }


class JsonRecordStore(DailyRecordStore):
    """
    Record store persisted as a JSON list.

    With ``path=None`` the store lives in memory only and :meth:`save` just
    commits the snapshot used by :meth:`rollback`.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        """
        Open the store.

        Args:
            path: JSON file location, created on first save.

        Raises:
            PersistenceError: If an existing store file cannot be read.
        """
        self.path = Path(path) if path is not None else None
        self._records: dict[UUID, DailyHealthRecord] = {}
        self._committed: list[dict[str, Any]] = []

        self._load()

    def _load(self) -> None:
        """Load records from disk."""
        if self.path is None or not self.path.exists():
            logger.debug("Starting with an empty record store")
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            records = [DailyHealthRecord.model_validate(item) for item in raw]
            self._check_unique_days(records)
        except Exception as e:
            raise PersistenceError(f"Failed to open record store {self.path}: {e}") from e

        self._records = {r.id: r for r in records}
        self._committed = [r.model_dump(mode="json") for r in records]
        logger.info(f"Loaded {len(records)} records from {self.path}")

    @staticmethod
    def _check_unique_days(records: list[DailyHealthRecord]) -> None:
        seen: set[date] = set()
        for record in records:
            if record.calendar_day in seen:
                raise ValidationError(
                    f"More than one record for {record.calendar_day.isoformat()}"
                )
            seen.add(record.calendar_day)

    def fetch_all(self, descending: bool = True) -> list[DailyHealthRecord]:
        return sorted(self._records.values(), key=lambda r: r.calendar_day, reverse=descending)

    def fetch_by_day(self, day: date) -> DailyHealthRecord | None:
        for record in self._records.values():
            if record.calendar_day == day:
                return record
        return None

    def insert(self, record: DailyHealthRecord) -> None:
        existing = self.fetch_by_day(record.calendar_day)
        if existing is not None and existing.id != record.id:
            raise ValidationError(
                f"A record for {record.calendar_day.isoformat()} already exists"
            )
        self._records[record.id] = record
        logger.debug(f"Inserted record for {record.calendar_day}")

    def delete(self, record: DailyHealthRecord) -> None:
        if self._records.pop(record.id, None) is None:
            logger.warning(f"Record {record.id} is not in the store")
            return
        logger.debug(f"Deleted record for {record.calendar_day}")

    def save(self) -> None:
        records = self.fetch_all(descending=False)
        self._check_unique_days(records)
        payload = [r.model_dump(mode="json") for r in records]

        if self.path is not None:
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_path, self.path)
            except OSError as e:
                raise PersistenceError(f"Failed to save record store {self.path}: {e}") from e

        self._committed = payload
        logger.debug(f"Saved {len(payload)} records")

    def rollback(self) -> None:
        records = [DailyHealthRecord.model_validate(item) for item in self._committed]
        self._records = {r.id: r for r in records}
        logger.info(f"Rolled back record store to {len(records)} committed records")
