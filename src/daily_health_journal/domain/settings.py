"""Journal-wide user settings."""

from pydantic import BaseModel, Field


class JournalSettings(BaseModel):
    """Weight goal settings shown alongside the daily records."""

    weight_target: float | None = Field(100.0, description="Target body weight")
    initial_weight: float | None = Field(
        None, description="Starting weight; derived from the earliest record when unset"
    )
