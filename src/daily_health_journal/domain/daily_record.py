"""
Daily health record domain models.

This module defines the per-day record schema, the value types of its tracked
fields, field-level provenance and the bundle of externally fetched values.
"""

import json
import re
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from daily_health_journal.utils.exceptions import ValidationError


class FieldSource(str, Enum):
    """Who last wrote a tracked field."""

    USER = "user"
    SYNC = "sync"


class TrackedField(str, Enum):
    """Fields that carry a provenance flag."""

    STEPS = "steps"
    GLUCOSE = "glucose"
    KETONES = "ketones"
    BLOOD_PRESSURE = "blood_pressure"
    WEIGHT = "weight"
    SLEEP_DURATION = "sleep_duration"
    HEART_RATE = "heart_rate"


# Tracked fields the metrics provider can supply; ketones and blood pressure
# are tracked but only ever user-entered.
SYNCED_FIELDS: tuple[TrackedField, ...] = (
    TrackedField.STEPS,
    TrackedField.GLUCOSE,
    TrackedField.SLEEP_DURATION,
    TrackedField.HEART_RATE,
    TrackedField.WEIGHT,
)

TRACKED_FIELD_NAMES = frozenset(f.value for f in TrackedField)

USER_FIELD_NAMES = frozenset(
    {
        "wake_time",
        "stress_level",
        "walked_am",
        "walked_pm",
        "went_to_gym",
        "light_therapy",
        "first_meal_time",
        "last_meal_time",
        "notes",
        "weather",
    }
)


class StressLevel(str, Enum):
    """Self-reported stress level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BloodPressure(BaseModel):
    """Blood pressure reading in mmHg."""

    systolic: int = Field(gt=0)
    diastolic: int = Field(gt=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, text: str) -> "BloodPressure":
        """
        Parse the "systolic/diastolic" text form (e.g. "120/80").

        Raises:
            ValidationError: If the text is not two positive integers separated by "/".
        """
        match = re.fullmatch(r"\s*(\d+)\s*/\s*(\d+)\s*", text)
        if not match:
            raise ValidationError(f"Invalid blood pressure: {text!r}")
        return cls(systolic=int(match.group(1)), diastolic=int(match.group(2)))

    def __str__(self) -> str:
        return f"{self.systolic}/{self.diastolic}"


class SleepDuration(BaseModel):
    """Sleep duration split into hours and minutes."""

    hours: int = Field(ge=0)
    minutes: int = Field(ge=0, lt=60)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_seconds(cls, seconds: float) -> "SleepDuration":
        total_minutes = int(seconds // 60)
        return cls(hours=total_minutes // 60, minutes=total_minutes % 60)

    @classmethod
    def parse(cls, text: str) -> "SleepDuration":
        """
        Parse the "7h 30m" text form; either part may be omitted ("7h", "45m").

        Raises:
            ValidationError: If the text does not match or minutes exceed 59.
        """
        match = re.fullmatch(r"\s*(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?\s*", text.lower())
        if not match or not any(match.groups()):
            raise ValidationError(f"Invalid sleep duration: {text!r}")
        try:
            return cls(hours=int(match.group(1) or 0), minutes=int(match.group(2) or 0))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid sleep duration: {text!r}") from e

    @property
    def total_minutes(self) -> int:
        return self.hours * 60 + self.minutes

    def __str__(self) -> str:
        return f"{self.hours}h {self.minutes}m"


class HeartRateStats(BaseModel):
    """Heart rate statistics for one day in beats per minute."""

    min: float
    max: float
    avg: float

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, text: str) -> "HeartRateStats":
        """Parse the "min/max/avg" text form (e.g. "52/141/71.5")."""
        parts = [part.strip() for part in text.split("/")]
        if len(parts) != 3:
            raise ValidationError(f"Invalid heart rate, expected min/max/avg: {text!r}")
        try:
            low, high, avg = (float(part) for part in parts)
        except ValueError as e:
            raise ValidationError(f"Invalid heart rate, expected min/max/avg: {text!r}") from e
        if not low <= avg <= high:
            raise ValidationError(f"Invalid heart rate, expected min <= avg <= max: {text!r}")
        return cls(min=low, max=high, avg=avg)

    def __str__(self) -> str:
        return f"{self.min:g}/{self.max:g}/{self.avg:g}"


class FieldEdit(BaseModel):
    """
    Outcome of one field mutation.

    Carries both the value transition and the provenance transition so callers
    never need to observe the record to learn what changed.
    """

    field: str
    previous: Any = None
    value: Any = None
    was_synced: bool = False
    is_synced: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def changed(self) -> bool:
        return self.previous != self.value or self.was_synced != self.is_synced


class ExternalDayBundle(BaseModel):
    """Values fetched from the metrics provider for one day in a single pass."""

    day: date
    steps: int | None = None
    glucose: float | None = None
    sleep_duration: SleepDuration | None = None
    heart_rate: HeartRateStats | None = None
    weight: float | None = None

    def get(self, field: TrackedField | str) -> Any:
        return getattr(self, TrackedField(field).value)

    def populated_fields(self) -> set[str]:
        """Names of synced fields the provider returned a value for."""
        return {f.value for f in SYNCED_FIELDS if self.get(f) is not None}


class DailyHealthRecord(BaseModel):
    """
    One day's health journal entry.

    Tracked fields carry a provenance entry in ``field_sources``: ``sync`` while
    the value was last written by a merge, ``user`` once the user edits it.
    Mutate tracked fields through :meth:`edit` and :meth:`apply_sync` so value
    and provenance always change together.
    """

    id: UUID = Field(default_factory=uuid4, description="Opaque record identifier")
    calendar_day: date = Field(description="Calendar day this record belongs to (unique)")
    wake_time: time | None = None

    steps: int | None = Field(None, ge=0, description="Step count")
    glucose: float | None = Field(None, description="Blood glucose in mg/dL")
    ketones: float | None = Field(None, description="Blood ketones in mmol/L")
    blood_pressure: BloodPressure | None = None
    weight: float | None = Field(None, description="Body weight in the configured unit")
    sleep_duration: SleepDuration | None = None
    heart_rate: HeartRateStats | None = None

    stress_level: StressLevel | None = None
    walked_am: bool = False
    walked_pm: bool = False
    went_to_gym: bool = False
    light_therapy: bool = False
    first_meal_time: time | None = None
    last_meal_time: time | None = None
    notes: str | None = None
    weather: str | None = Field(None, description="Weather snapshot text")

    field_sources: dict[str, FieldSource] = Field(
        default_factory=dict,
        description="Mapping of tracked field names to who last wrote them",
    )
    week_total_steps_cache: int | None = Field(
        None, description="Sum of steps over the 7 days ending at calendar_day"
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    def get(self, field: TrackedField | str) -> Any:
        return getattr(self, TrackedField(field).value)

    def is_synced(self, field: TrackedField | str) -> bool:
        """Provenance flag: True while the field holds a value written by a merge."""
        name = TrackedField(field).value
        return self.field_sources.get(name) == FieldSource.SYNC and self.get(name) is not None

    def synced_fields(self) -> set[str]:
        return {f.value for f in TrackedField if self.is_synced(f)}

    def edit(self, field: str, value: Any) -> FieldEdit:
        """
        Apply a direct user edit.

        Editing a tracked field always clears its provenance flag.

        Args:
            field: Tracked or user-owned field name.
            value: New value (None clears the field).

        Returns:
            The value and provenance transition.

        Raises:
            ValidationError: If the field is unknown or the value is invalid.
        """
        if field not in TRACKED_FIELD_NAMES and field not in USER_FIELD_NAMES:
            raise ValidationError(f"Unknown record field: {field}")

        previous = getattr(self, field)
        was_synced = field in TRACKED_FIELD_NAMES and self.is_synced(field)

        try:
            setattr(self, field, value)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid value for {field}: {value!r}") from e
        if field in TRACKED_FIELD_NAMES:
            self.field_sources[field] = FieldSource.USER
        self.updated_at = datetime.now(timezone.utc)

        return FieldEdit(
            field=field,
            previous=previous,
            value=getattr(self, field),
            was_synced=was_synced,
            is_synced=False,
        )

    def apply_sync(self, field: TrackedField | str, value: Any) -> FieldEdit:
        """
        Write a provider value and its provenance together.

        The provenance flag is set iff the value is present.
        """
        name = TrackedField(field).value
        previous = getattr(self, name)
        was_synced = self.is_synced(name)

        setattr(self, name, value)
        if value is None:
            self.field_sources.pop(name, None)
        else:
            self.field_sources[name] = FieldSource.SYNC
        self.updated_at = datetime.now(timezone.utc)

        return FieldEdit(
            field=name,
            previous=previous,
            value=value,
            was_synced=was_synced,
            is_synced=value is not None,
        )

    @classmethod
    def from_bundle(cls, bundle: ExternalDayBundle) -> "DailyHealthRecord":
        """Build a new record for the bundle's day with every populated field marked synced."""
        record = cls(calendar_day=bundle.day)
        for field in SYNCED_FIELDS:
            value = bundle.get(field)
            if value is not None:
                record.apply_sync(field, value)
        return record

    def to_dict(self, for_csv: bool = False) -> dict[str, Any]:
        """
        Convert record to dictionary representation.

        Args:
            for_csv: If True, flatten nested values to text and serialize
                provenance to a JSON string.

        Returns:
            Dictionary representation of the record.
        """
        data = self.model_dump(mode="json")

        if for_csv:
            data["blood_pressure"] = str(self.blood_pressure) if self.blood_pressure else None
            data["sleep_duration"] = str(self.sleep_duration) if self.sleep_duration else None
            heart_rate = data.pop("heart_rate") or {}
            data["heart_rate_min"] = heart_rate.get("min")
            data["heart_rate_max"] = heart_rate.get("max")
            data["heart_rate_avg"] = heart_rate.get("avg")
            data["field_sources"] = json.dumps(data["field_sources"], sort_keys=True)

        return data
