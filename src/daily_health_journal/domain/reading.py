"""Readings imported from meter CSV exports."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReadingType(str, Enum):
    """Kinds of blood reading accepted from an export."""

    GLUCOSE = "glucose"
    KETONE = "ketone"


class ImportedReading(BaseModel):
    """
    One accepted row of a meter export.

    Used during import before the value is written to the metrics provider.
    """

    timestamp: datetime = Field(description="Reading timestamp (timezone-aware)")
    reading_type: ReadingType
    value: float
    source_file_name: str = Field(description="Name of the source file")
    row_number: int = Field(description="1-based line number in the source file")

    model_config = ConfigDict(use_enum_values=True)
