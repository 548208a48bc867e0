"""
Configuration and parameter loading using Pydantic.

This module provides centralized configuration management for the entire application.
All parameters are loaded from YAML and validated using Pydantic models.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from daily_health_journal.utils.exceptions import ConfigurationError


class ProcessingConfig(BaseModel):
    """Calendar configuration."""

    timezone: str = "America/New_York"


class StoreConfig(BaseModel):
    """Local record store configuration."""

    path: str
    settings_path: str


class ProviderConfig(BaseModel):
    """External metrics provider configuration."""

    samples_path: str
    weight_unit: str = Field("lb", pattern="^(lb|kg)$")


class SyncConfig(BaseModel):
    """Reconciliation policy configuration."""

    overwrite: bool = False
    debounce_seconds: float = 0.5
    backfill_delay_ms: int = 0


class CSVImportConfig(BaseModel):
    """CSV reading import configuration."""

    encodings: list[str] = Field(default_factory=lambda: ["utf-8"])
    delimiter: str = ";"
    accepted_reading_types: list[str] = Field(default_factory=lambda: ["glucose", "ketone"])
    accepted_sample_type: str = "blood"
    glucose_tolerance: float = 0.01


class OutputFilesConfig(BaseModel):
    """Output file names configuration."""

    records_csv: str
    records_parquet: str


class ParquetConfig(BaseModel):
    """Parquet output configuration."""

    compression: str = "snappy"
    engine: str = "pyarrow"


class OutputConfig(BaseModel):
    """Output configuration."""

    dir: str
    files: OutputFilesConfig
    formats: list[str]
    parquet: ParquetConfig = Field(default_factory=ParquetConfig)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str
    file: str | None = None
    console: bool = True


class AppConfig(BaseSettings):
    """Main application configuration."""

    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    store: StoreConfig
    provider: ProviderConfig
    sync: SyncConfig = Field(default_factory=SyncConfig)
    csv_import: CSVImportConfig = Field(default_factory=CSVImportConfig)
    output: OutputConfig
    logging: LoggingConfig

    model_config = SettingsConfigDict(env_prefix="DHJ_", case_sensitive=False)


class ParameterLoader:
    """
    Centralized parameter loader for the application.

    Loads and validates configuration from YAML files using Pydantic models.
    Provides type-safe access to all configuration parameters.
    """

    def __init__(self, config_path: str = "config/config.yaml") -> None:
        """
        Initialize parameter loader.

        Args:
            config_path: Path to the YAML configuration file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        self.config_path = Path(config_path)
        self.config: AppConfig
        self._load_config()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, encoding="utf-8") as f:
                config_dict = yaml.safe_load(f) or {}

            self.config = AppConfig(**config_dict)

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def get_processing_config(self) -> ProcessingConfig:
        """Get calendar configuration."""
        return self.config.processing

    def get_store_config(self) -> StoreConfig:
        """Get record store configuration."""
        return self.config.store

    def get_provider_config(self) -> ProviderConfig:
        """Get metrics provider configuration."""
        return self.config.provider

    def get_sync_config(self) -> SyncConfig:
        """Get reconciliation policy configuration."""
        return self.config.sync

    def get_csv_import_config(self) -> CSVImportConfig:
        """Get CSV import configuration."""
        return self.config.csv_import

    def get_output_config(self) -> OutputConfig:
        """Get output configuration."""
        return self.config.output

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration."""
        return self.config.logging

    def get_raw_config(self) -> dict[str, Any]:
        """
        Get raw configuration dictionary.

        Returns:
            Dictionary representation of the configuration.
        """
        return self.config.model_dump()
