"""
Command-line interface for Daily Health Journal.

Provides commands for backfilling, syncing, editing and exporting daily records.
"""

import asyncio
from datetime import date
from pathlib import Path
from typing import Any

import typer

from daily_health_journal.domain.daily_record import (
    BloodPressure,
    DailyHealthRecord,
    HeartRateStats,
    SleepDuration,
)
from daily_health_journal.infrastructure.provider.sample_file import SampleFileProvider
from daily_health_journal.infrastructure.store.record_store import JsonRecordStore
from daily_health_journal.services.backfill import BackfillProgress, BackfillScheduler
from daily_health_journal.services.field_sync import FieldSyncCoordinator
from daily_health_journal.services.glucose_import import GlucoseImportService
from daily_health_journal.services.output import OutputService
from daily_health_journal.services.record_form import RecordFormViewModel
from daily_health_journal.services.settings import SettingsService
from daily_health_journal.services.weekly_aggregate import WeeklyAggregateCalculator
from daily_health_journal.utils.exceptions import DailyHealthJournalError, PersistenceError
from daily_health_journal.utils.logging_config import get_logger, setup_logging
from daily_health_journal.utils.parameters import ParameterLoader
from daily_health_journal.utils.timezone_utils import today

app = typer.Typer(help="Daily Health Journal - Daily health records reconciled with a metrics provider")

logger = get_logger(__name__)

TEXT_PARSERS = {
    "blood_pressure": BloodPressure.parse,
    "sleep_duration": SleepDuration.parse,
    "heart_rate": HeartRateStats.parse,
}


def init_config(config_path: str = "config/config.yaml") -> ParameterLoader:
    """
    Initialize configuration and logging.

    Args:
        config_path: Path to configuration file.

    Returns:
        Parameter loader instance.
    """
    param_loader = ParameterLoader(config_path)
    setup_logging(param_loader.get_logging_config())
    return param_loader


class Engine:
    """Components wired from configuration for one command."""

    def __init__(self, param_loader: ParameterLoader) -> None:
        self.processing_config = param_loader.get_processing_config()
        self.sync_config = param_loader.get_sync_config()
        self.timezone = self.processing_config.timezone

        self.store = JsonRecordStore(param_loader.get_store_config().path)
        self.provider = SampleFileProvider(
            param_loader.get_provider_config(), self.processing_config
        )
        self.coordinator = FieldSyncCoordinator(self.provider)
        self.aggregator = WeeklyAggregateCalculator(self.provider)


def _parse_day(value: str | None, timezone: str) -> date:
    if value is None:
        return today(timezone)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid day {value!r}, expected YYYY-MM-DD") from e


def _parse_assignment(assignment: str) -> tuple[str, Any]:
    """Split ``field=value``; an empty value clears the field."""
    if "=" not in assignment:
        raise typer.BadParameter(f"Expected field=value, got {assignment!r}")

    field, text = (part.strip() for part in assignment.split("=", 1))
    if not text:
        return field, None
    if field in TEXT_PARSERS:
        return field, TEXT_PARSERS[field](text)
    return field, text


def _fail(action: str, error: Exception) -> typer.Exit:
    logger.error(f"{action} failed: {error}")
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(code=1)


@app.command()
def backfill(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    delay_ms: int | None = typer.Option(None, help="Override per-day delay from config"),
) -> None:
    """
    Create records for every missing day up to today.

    Starts from the earliest stored day; an empty store gets today's record.
    """
    try:
        param_loader = init_config(config_path)
        engine = Engine(param_loader)

        if delay_ms is not None:
            engine.sync_config.backfill_delay_ms = delay_ms

        scheduler = BackfillScheduler(
            engine.coordinator, engine.aggregator, engine.sync_config, timezone=engine.timezone
        )

        def report(progress: BackfillProgress) -> None:
            if progress.created:
                fields = ", ".join(progress.populated_fields) or "no provider data"
                typer.echo(
                    f"  [{progress.pct_complete:5.1f}%] {progress.current_day}: {fields}"
                )

        created = asyncio.run(scheduler.run(engine.store, on_progress=report))
        typer.echo(f"Backfill created {len(created)} records")

    except DailyHealthJournalError as e:
        raise _fail("Backfill", e) from e


@app.command("sync-day")
def sync_day(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    day: str | None = typer.Option(None, help="Day to sync (YYYY-MM-DD), defaults to today"),
    overwrite: bool | None = typer.Option(
        None, "--overwrite/--fill-empty", help="Override merge policy from config"
    ),
) -> None:
    """
    Merge provider values for one day into its record, creating it if needed.
    """
    try:
        param_loader = init_config(config_path)
        engine = Engine(param_loader)
        target = _parse_day(day, engine.timezone)
        policy = engine.sync_config.overwrite if overwrite is None else overwrite

        async def _sync() -> list[str]:
            await engine.coordinator.ensure_authorized()
            bundle = await engine.coordinator.fetch_external_bundle(target)

            record = engine.store.fetch_by_day(target)
            try:
                if record is None:
                    record = DailyHealthRecord.from_bundle(bundle)
                    engine.store.insert(record)
                    changed = sorted(bundle.populated_fields())
                else:
                    edits = engine.coordinator.merge(record, bundle, policy)
                    changed = [e.field for e in edits if e.changed]
                engine.aggregator.refresh(engine.store, target)
                engine.store.save()
            except PersistenceError:
                engine.store.rollback()
                raise
            return changed

        changed = asyncio.run(_sync())
        typer.echo(f"Synced {target}: {', '.join(changed) if changed else 'no changes'}")

    except DailyHealthJournalError as e:
        raise _fail("Sync", e) from e


@app.command("week-total")
def week_total(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    day: str | None = typer.Option(None, help="Last day of the week (YYYY-MM-DD)"),
    live: bool = typer.Option(False, help="Sum provider steps instead of stored records"),
) -> None:
    """
    Show the step total of the 7 days ending at a day.
    """
    try:
        param_loader = init_config(config_path)
        engine = Engine(param_loader)
        target = _parse_day(day, engine.timezone)

        if live:

            async def _live() -> int:
                await engine.coordinator.ensure_authorized()
                return await engine.aggregator.live_week_total(
                    target, on_progress=lambda d, total: typer.echo(f"  {d}: {total}")
                )

            total = asyncio.run(_live())
        else:
            total = engine.aggregator.cached_week_total(engine.store, target)

        typer.echo(f"Week total ending {target}: {total} steps")

    except DailyHealthJournalError as e:
        raise _fail("Week total", e) from e


@app.command("import-glucose")
def import_glucose(
    file: Path = typer.Argument(..., help="Meter CSV export to import"),
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
) -> None:
    """
    Write blood glucose readings from a meter export to the provider.

    Each write is verified by reading the day back.
    """
    try:
        param_loader = init_config(config_path)
        engine = Engine(param_loader)

        service = GlucoseImportService(
            engine.provider, param_loader.get_csv_import_config(), engine.processing_config
        )
        result = asyncio.run(service.import_file(file))

        typer.echo(f"Imported {result.file_name}:")
        typer.echo(f"  Glucose readings: {result.glucose_readings}")
        typer.echo(f"  Written: {result.written}")
        typer.echo(f"  Ketone readings (not written): {result.ketone_readings}")
        for failure in result.write_failures + result.verification_failures:
            typer.echo(f"  ! {failure}")

        if not result.ok:
            raise typer.Exit(code=1)

    except DailyHealthJournalError as e:
        raise _fail("Import", e) from e


@app.command()
def export(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    output_format: str | None = typer.Option(
        None, help="Output format: csv, parquet, or both"
    ),
) -> None:
    """
    Export all records to CSV and/or Parquet.
    """
    try:
        param_loader = init_config(config_path)
        output_config = param_loader.get_output_config()

        if output_format:
            if output_format == "both":
                output_config.formats = ["csv", "parquet"]
            else:
                output_config.formats = [output_format]

        store = JsonRecordStore(param_loader.get_store_config().path)
        paths = OutputService(output_config).write_records(store.fetch_all())

        for path in paths:
            typer.echo(f"  - {path}")

    except DailyHealthJournalError as e:
        raise _fail("Export", e) from e


@app.command("list")
def list_records(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    limit: int = typer.Option(14, help="Number of most recent days to show"),
) -> None:
    """
    List the most recent records, newest first.

    Values written by the provider are marked with an asterisk.
    """
    try:
        param_loader = init_config(config_path)
        store = JsonRecordStore(param_loader.get_store_config().path)

        for record in store.fetch_all()[:limit]:
            synced = record.synced_fields()
            cells = []
            for name in ("steps", "glucose", "weight", "sleep_duration"):
                value = getattr(record, name)
                if value is not None:
                    cells.append(f"{name}={value}{'*' if name in synced else ''}")
            week = record.week_total_steps_cache
            typer.echo(
                f"{record.calendar_day}  {'  '.join(cells)}"
                + (f"  week={week}" if week is not None else "")
            )

    except DailyHealthJournalError as e:
        raise _fail("List", e) from e


@app.command()
def edit(
    assignments: list[str] = typer.Argument(..., help="field=value pairs; empty value clears"),
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    day: str | None = typer.Option(None, help="Day to edit (YYYY-MM-DD), defaults to today"),
) -> None:
    """
    Edit fields of one day's record and save it.

    Edited tracked fields are marked as user-entered.
    """
    try:
        param_loader = init_config(config_path)
        engine = Engine(param_loader)
        target = _parse_day(day, engine.timezone)

        form = asyncio.run(
            RecordFormViewModel.create(
                engine.store,
                engine.coordinator,
                engine.aggregator,
                day=target,
                sync_config=engine.sync_config,
                timezone_str=engine.timezone,
            )
        )
        for assignment in assignments:
            field, value = _parse_assignment(assignment)
            change = form.set_field(field, value)
            typer.echo(f"  {change.field}: {change.previous} -> {change.value}")

        form.save()
        typer.echo(f"Saved {target}")

    except DailyHealthJournalError as e:
        raise _fail("Edit", e) from e


@app.command()
def delete(
    day: str = typer.Argument(..., help="Day to delete (YYYY-MM-DD)"),
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
) -> None:
    """
    Delete the record of one day.
    """
    try:
        param_loader = init_config(config_path)
        engine = Engine(param_loader)
        target = _parse_day(day, engine.timezone)

        form = asyncio.run(
            RecordFormViewModel.create(
                engine.store,
                engine.coordinator,
                engine.aggregator,
                day=target,
                sync_config=engine.sync_config,
                timezone_str=engine.timezone,
            )
        )
        if form.delete_record():
            typer.echo(f"Deleted {target}")
        else:
            typer.echo(f"No record for {target}")

    except DailyHealthJournalError as e:
        raise _fail("Delete", e) from e


@app.command()
def settings(
    config_path: str = typer.Option("config/config.yaml", help="Path to configuration file"),
    weight_target: float | None = typer.Option(None, help="Set the target weight"),
    initial_weight: float | None = typer.Option(None, help="Set the initial weight"),
) -> None:
    """
    Show or update journal settings.
    """
    try:
        param_loader = init_config(config_path)
        store_config = param_loader.get_store_config()
        store = JsonRecordStore(store_config.path)

        service = SettingsService(store_config.settings_path, store)
        current = service.load()

        if weight_target is not None or initial_weight is not None:
            if weight_target is not None:
                current.weight_target = weight_target
            if initial_weight is not None:
                current.initial_weight = initial_weight
            service.save(current)

        typer.echo(f"Weight target: {current.weight_target}")
        typer.echo(f"Initial weight: {current.initial_weight}")

    except DailyHealthJournalError as e:
        raise _fail("Settings", e) from e


if __name__ == "__main__":
    app()
