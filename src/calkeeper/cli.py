"""CLI for calkeeper — add and remove events on the application's calendar."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError

from calkeeper.config import DEFAULT_CONFIG_FILENAME, AppConfig, ConfigError, load_config
from calkeeper.core.logging import configure_logging
from calkeeper.errors import StoreUnavailableError
from calkeeper.models import (
    AbsoluteAlarm,
    AlarmPreset,
    EntityType,
    EventRequest,
    RecurrenceFrequency,
    RelativeAlarm,
    StructuredLocation,
    alarm_from_value,
    frequency_labels,
)
from calkeeper.scheduler import EventScheduler
from calkeeper.stores import JsonFileCalendarStore

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path("calkeeper-store.json")


@dataclass
class _CliState:
    config: AppConfig
    store_path: Path


def _datetime_option(
    ctx: click.Context,  # noqa: ARG001
    param: click.Parameter,  # noqa: ARG001
    value: str | None,
) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter(f"not an ISO 8601 date-time: {value!r}") from exc


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=f"Config file or directory containing {DEFAULT_CONFIG_FILENAME}",
)
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STORE_PATH,
    show_default=True,
    help="JSON file holding calendars and events",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, store_path: Path) -> None:
    """calkeeper — keep an application's events on a dedicated calendar."""
    config = _load_app_config(config_path)
    configure_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=Path(config.logging.file) if config.logging.file else None,
        app_name="calkeeper",
    )
    ctx.obj = _CliState(config=config, store_path=store_path)


@cli.command()
@click.option("--title", default=None, help="Event title")
@click.option("--start", required=True, callback=_datetime_option, help="ISO 8601 date-time")
@click.option("--end", default=None, callback=_datetime_option, help="ISO 8601 date-time")
@click.option(
    "--repeat",
    type=click.Choice([frequency.value for frequency in RecurrenceFrequency]),
    default=None,
    help="Repeat frequency",
)
@click.option(
    "--until",
    default=None,
    callback=_datetime_option,
    help="Last date of a repeating event (ISO 8601)",
)
@click.option(
    "--alarm",
    "alarms",
    multiple=True,
    help="Offset in seconds (e.g. -900), preset label, or ISO 8601 date-time",
)
@click.option("--all-day", is_flag=True, default=False, help="Mark as an all-day event")
@click.option("--notes", default=None)
@click.option("--location", default=None, help="Location title")
@click.option("--timezone", default=None, help="IANA timezone; defaults to the configured one")
@click.pass_obj
def add(
    state: _CliState,
    title: str | None,
    start: datetime,
    end: datetime | None,
    repeat: str | None,
    until: datetime | None,
    alarms: tuple[str, ...],
    all_day: bool,
    notes: str | None,
    location: str | None,
    timezone: str | None,
) -> None:
    """Add an event and print its identifier."""
    try:
        request = EventRequest(
            title=title,
            start=start,
            end=end,
            recurrence_end=until,
            recurrence=RecurrenceFrequency(repeat) if repeat else None,
            alarms=[_parse_alarm(value) for value in alarms],
            all_day=all_day,
            notes=notes,
            location=StructuredLocation(title=location) if location else None,
            timezone=timezone,
        )
    except ValidationError as exc:
        click.echo(f"Invalid event: {exc.error_count()} error(s)")
        for error in exc.errors():
            loc = ".".join(str(part) for part in error["loc"])
            click.echo(f"  {loc}: {error['msg']}")
        sys.exit(1)

    scheduler = _open_scheduler(state)
    result = scheduler.add_event(request)
    if result.error is not None:
        click.echo(f"Failed to add event: {result.error}")
        sys.exit(1)
    click.echo(result.event_id)


@cli.command()
@click.argument("event_ids", nargs=-1)
@click.pass_obj
def remove(state: _CliState, event_ids: tuple[str, ...]) -> None:
    """Remove events (and their future occurrences) by identifier."""
    scheduler = _open_scheduler(state)
    try:
        scheduler.remove_events(event_ids)
    except StoreUnavailableError as exc:
        click.echo(str(exc))
        sys.exit(1)
    click.echo(f"Requested removal of {len(set(filter(None, event_ids)))} event(s)")


@cli.command("calendars")
@click.pass_obj
def calendars_cmd(state: _CliState) -> None:
    """List the event calendars in the store."""
    store = _open_store(state)
    calendars = store.list_calendars(EntityType.event)
    if not calendars:
        click.echo(f"No calendars in {state.store_path}")
        return

    click.echo(f"{'Title':<24} {'Color':<9} {'Source':<12} {'Identifier'}")
    click.echo("-" * 80)
    for calendar in sorted(calendars, key=lambda c: c.title):
        color = calendar.color.hex if calendar.color else "-"
        source = calendar.source.source_type.value if calendar.source else "-"
        click.echo(f"{calendar.title:<24} {color:<9} {source:<12} {calendar.identifier}")


@cli.command()
def presets() -> None:
    """List alarm presets and repeat labels."""
    click.echo("Alarms:")
    for preset in AlarmPreset:
        click.echo(f"  {int(preset):>8}  {preset.label}")
    click.echo("Repeat:")
    for label in frequency_labels():
        click.echo(f"  {label}")


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is None:
        default_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
        if not default_path.exists():
            return AppConfig()
        config_path = default_path
    try:
        return load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Invalid configuration: {exc}")
        sys.exit(1)


def _open_store(state: _CliState) -> JsonFileCalendarStore:
    try:
        return JsonFileCalendarStore(state.store_path)
    except StoreUnavailableError as exc:
        click.echo(str(exc))
        sys.exit(1)


def _open_scheduler(state: _CliState) -> EventScheduler:
    return EventScheduler(_open_store(state), state.config.scheduler)


def _parse_alarm(value: str) -> AbsoluteAlarm | RelativeAlarm:
    """Parse ``--alarm`` as seconds, an ISO 8601 date-time, or a preset label."""
    try:
        offset = float(value)
    except ValueError:
        pass
    else:
        try:
            return alarm_from_value(offset)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--alarm") from exc
    try:
        return alarm_from_value(datetime.fromisoformat(value))
    except ValueError:
        pass
    try:
        return alarm_from_value(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--alarm") from exc
