"""
Settings service.

Loads and saves journal settings, deriving the initial weight from the
earliest record the first time it is needed.
"""

import json
import logging
from pathlib import Path

from daily_health_journal.domain.settings import JournalSettings
from daily_health_journal.infrastructure.store.record_store import DailyRecordStore
from daily_health_journal.utils.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class SettingsService:
    """Service persisting :class:`JournalSettings` as a JSON file."""

    def __init__(self, path: Path | str, store: DailyRecordStore) -> None:
        self.path = Path(path)
        self.store = store

    def _read(self) -> JournalSettings:
        if not self.path.exists():
            return JournalSettings()

        try:
            with open(self.path, encoding="utf-8") as f:
                return JournalSettings.model_validate(json.load(f))
        except Exception as e:
            raise PersistenceError(f"Failed to read settings {self.path}: {e}") from e

    def load(self) -> JournalSettings:
        """
        Load settings.

        When no initial weight is set, it is taken from the weight of the
        earliest record and persisted.

        Raises:
            PersistenceError: If the settings file cannot be read or written.
        """
        settings = self._read()

        if settings.initial_weight is None:
            earliest = self.store.fetch_all(descending=False)
            if earliest and earliest[0].weight is not None:
                settings.initial_weight = earliest[0].weight
                logger.info(
                    f"Initial weight set to {settings.initial_weight} from "
                    f"{earliest[0].calendar_day}"
                )
                self.save(settings)

        return settings

    def save(self, settings: JournalSettings) -> None:
        """
        Persist settings.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(settings.model_dump(mode="json"), f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Failed to save settings {self.path}: {e}") from e

        logger.debug(f"Saved settings to {self.path}")
