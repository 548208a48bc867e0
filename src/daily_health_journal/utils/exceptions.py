"""Custom exceptions for the daily health journal."""

from datetime import date


class DailyHealthJournalError(Exception):
    """Base exception for all daily health journal errors."""

    pass


class ConfigurationError(DailyHealthJournalError):
    """Raised when there is a configuration error."""

    pass


class AuthorizationError(DailyHealthJournalError):
    """Raised when access to the metrics provider is denied or undetermined."""

    pass


class FetchError(DailyHealthJournalError):
    """Raised when reading one field from the metrics provider fails."""

    def __init__(self, field: str, day: date, reason: str) -> None:
        super().__init__(f"Failed to fetch {field} for {day.isoformat()}: {reason}")
        self.field = field
        self.day = day
        self.reason = reason


class PersistenceError(DailyHealthJournalError):
    """Raised when the record store cannot be opened or saved."""

    pass


class VerificationError(DailyHealthJournalError):
    """Raised when a provider write does not read back as written."""

    def __init__(self, day: date, expected: float, actual: float | None) -> None:
        super().__init__(
            f"Read-back mismatch for {day.isoformat()}: wrote {expected}, read {actual}"
        )
        self.day = day
        self.expected = expected
        self.actual = actual


class ParsingError(DailyHealthJournalError):
    """Raised when file parsing fails."""

    pass


class ValidationError(DailyHealthJournalError):
    """Raised when data validation fails."""

    pass


class ProviderWriteError(DailyHealthJournalError):
    """Raised when the metrics provider rejects or fails a write."""

    pass
