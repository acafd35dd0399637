"""
Command line interface for the personal calendar application.
"""

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta

from tabulate import tabulate

from pcal.config.error_aggregator import shutdown_error_aggregator
from pcal.config.logging import setup_logging
from pcal.config.settings import ConfigurationManager
from pcal.exceptions import CalendarNotFoundError
from pcal.exceptions import ConfigError
from pcal.exceptions import ParseError
from pcal.exceptions import PcalError
from pcal.exceptions import StorageError
from pcal.exceptions import ValidationError
from pcal.services.calendar_repository import CalendarRepository, validate_calendar_name
from pcal.services.calendar_service import CalendarService, EventFields
from pcal.services.date_filter import DateFilter
from pcal.utils.cli_utils import (
    ArgumentValidator,
    CLIBuilder,
    CLIContext,
    CLIOptionFactory,
    CommandCategory,
    CommandRegistry,
    create_command_group,
)
from pcal.utils.logging_utils import get_logger
from pcal.utils.timezone_utils import TimezoneManager

TIME_FORMAT = "%Y-%m-%d %H:%M"


def _timezone(ctx: CLIContext) -> TimezoneManager:
    return TimezoneManager(ctx.config.timezone)

def _parse_datetime(tz: TimezoneManager, value: str, option: str) -> datetime:
    try:
        return tz.parse_datetime(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {option}: {value}", {"error": str(e)})

def _parse_date(value: str, option: str) -> date:
    try:
        return TimezoneManager.parse_date(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {option}: {value}", {"error": str(e)})

def _parse_until(tz: TimezoneManager, value: str) -> datetime:
    """A bare date allows occurrences throughout that day."""
    try:
        day = TimezoneManager.parse_date(value)
    except ValueError:
        return _parse_datetime(tz, value, '--until')
    return tz.localize_datetime(datetime.combine(day, time(23, 59, 59)))

def _event_fields(ctx: CLIContext) -> EventFields:
    args = ctx.args
    tz = _timezone(ctx)
    return EventFields(
        title=args.title,
        start=_parse_datetime(tz, args.start, 'start') if args.start else None,
        end=_parse_datetime(tz, args.end, '--end') if args.end else None,
        duration=timedelta(minutes=args.duration) if args.duration is not None else None,
        location=args.location,
        description=args.description,
        frequency=args.freq,
        interval=args.interval,
        count=args.count,
        until=_parse_until(tz, args.until) if args.until else None,
        clear_recurrence=getattr(args, 'no_recurrence', False)
    )

def _format_time(tz: TimezoneManager, moment: datetime | None) -> str:
    if moment is None:
        return '-'
    return tz.to_local(moment).strftime(TIME_FORMAT)

def _calendar_name(ctx: CLIContext) -> str:
    return validate_calendar_name(ctx.args.calendar or ctx.config.default_calendar)

def _open_service(ctx: CLIContext) -> tuple[CalendarRepository, CalendarService]:
    """Load the selected calendar; the default one is created on first use."""
    repository = CalendarRepository(ctx.config.data_dir)
    name = _calendar_name(ctx)
    if name != ctx.config.default_calendar and not repository.exists(name):
        raise CalendarNotFoundError(name)
    calendar = repository.load_or_create(name)
    return repository, CalendarService(calendar, ctx.config)

def _save(ctx: CLIContext, repository: CalendarRepository, service: CalendarService) -> None:
    if service.dirty:
        path = repository.save(service.calendar)
        ctx.logger.debug(f"Saved {path}")

@create_command_group('events', 'Event commands', CommandCategory.EVENT)
class EventCommands:
    """Event command implementations."""

    @staticmethod
    @CommandRegistry.register(
        name='add',
        help_text='Add an event to the calendar',
        category=CommandCategory.EVENT,
        options=[
            *CLIOptionFactory.create_event_options(),
            *CLIOptionFactory.create_recurrence_options(),
            CLIOptionFactory.create_overwrite_option()
        ]
    )
    def add_event(ctx: CLIContext) -> int:
        """Add a single or recurring event."""
        repository, service = _open_service(ctx)
        event = service.add(_event_fields(ctx), overwrite=ctx.args.overwrite)
        _save(ctx, repository, service)
        print(f"Added event {event.id}: {event.title}")
        return 0

    @staticmethod
    @CommandRegistry.register(
        name='edit',
        help_text='Change fields of an event',
        category=CommandCategory.EVENT,
        options=[
            CLIOptionFactory.create_event_id_option(),
            *CLIOptionFactory.create_event_options(for_edit=True),
            *CLIOptionFactory.create_recurrence_options(),
            {
                'name': '--no-recurrence',
                'action': 'store_true',
                'help': 'Turn a recurring event into a single one'
            }
        ]
    )
    def edit_event(ctx: CLIContext) -> int:
        """Edit an event; changing identity fields gives it a new id."""
        repository, service = _open_service(ctx)
        old_id = service.store.resolve(ctx.args.id)
        event = service.edit(old_id, _event_fields(ctx))
        _save(ctx, repository, service)
        if event.id != old_id:
            print(f"Updated event {event.id} (was {old_id}): {event.title}")
        else:
            print(f"Updated event {event.id}: {event.title}")
        return 0

    @staticmethod
    @CommandRegistry.register(
        name='remove',
        help_text='Remove an event, or every event with --all',
        category=CommandCategory.EVENT,
        options=[
            {**CLIOptionFactory.create_event_id_option(), 'nargs': '?'},
            {
                'name': '--all',
                'action': 'store_true',
                'help': 'Remove every event of the calendar'
            }
        ]
    )
    def remove_event(ctx: CLIContext) -> int:
        """Remove one or all events."""
        if bool(ctx.args.id) == bool(ctx.args.all):
            raise ValidationError("Give either an event id or --all")

        repository, service = _open_service(ctx)
        if ctx.args.all:
            count = service.remove_all()
            _save(ctx, repository, service)
            print(f"Removed {count} events")
            return 0

        event = service.remove(ctx.args.id)
        _save(ctx, repository, service)
        print(f"Removed event {event.id}: {event.title}")
        return 0

    @staticmethod
    @CommandRegistry.register(
        name='show',
        help_text='Show one event in detail',
        category=CommandCategory.EVENT,
        options=[
            CLIOptionFactory.create_event_id_option(),
            CLIOptionFactory.create_format_option()
        ]
    )
    def show_event(ctx: CLIContext) -> int:
        """Show an event with its next occurrence."""
        _, service = _open_service(ctx)
        details = service.show(ctx.args.id)

        if ctx.args.format == 'json':
            print(json.dumps(details.to_dict(), indent=2))
            return 0

        tz = _timezone(ctx)
        event = details.event
        rows = [
            ['ID', event.id],
            ['Title', event.title],
            ['Start', event.start.isoformat()],
            ['End', event.end.isoformat()],
            ['Location', event.location or '-'],
            ['Description', event.description or '-'],
            ['Repeats', event.recurrence.describe() if event.recurrence else 'no'],
            ['Next', _format_time(tz, details.next_occurrence)],
        ]
        if event.is_recurring:
            rows.append(['Last', _format_time(tz, details.last_occurrence) if details.last_occurrence else 'never ends'])
            if details.total_occurrences is not None:
                rows.append(['Occurrences', details.total_occurrences])
        print(tabulate(rows, tablefmt='plain'))
        return 0

@create_command_group('list', 'List commands', CommandCategory.LIST)
class ListCommands:
    """List command implementations."""

    @staticmethod
    @CommandRegistry.register(
        name='list',
        help_text='List upcoming events (default: from today onwards)',
        category=CommandCategory.LIST,
        options=[
            *CLIOptionFactory.create_date_filter_options(),
            CLIOptionFactory.create_format_option()
        ]
    )
    def list_events(ctx: CLIContext) -> int:
        """List occurrences matching a date filter."""
        args = ctx.args
        date_filter = DateFilter.from_flags(
            today=args.today,
            week=args.week,
            month=args.month,
            from_date=_parse_date(args.from_date, '--from') if args.from_date else None,
            until_date=_parse_date(args.until_date, '--until') if args.until_date else None
        )

        _, service = _open_service(ctx)
        occurrences = service.list_occurrences(date_filter)

        if args.format == 'json':
            print(json.dumps([occurrence.to_dict() for occurrence in occurrences], indent=2))
            return 0

        if not occurrences:
            print(f"No events ({date_filter.describe()})")
            return 0

        tz = _timezone(ctx)
        rows = [
            [
                occurrence.event.id,
                _format_time(tz, occurrence.start),
                _format_time(tz, occurrence.end),
                occurrence.event.title,
                occurrence.event.location or '',
                occurrence.event.recurrence.describe() if occurrence.event.recurrence else ''
            ]
            for occurrence in occurrences
        ]
        print(tabulate(rows, headers=['ID', 'Start', 'End', 'Title', 'Location', 'Repeats']))
        return 0

@create_command_group('transfer', 'Import and export commands', CommandCategory.TRANSFER)
class TransferCommands:
    """Import and export command implementations."""

    @staticmethod
    @CommandRegistry.register(
        name='import',
        help_text='Import events from an iCalendar (.ics) file',
        category=CommandCategory.TRANSFER,
        options=[
            {
                'name': 'file',
                'help': 'Path to the .ics file'
            },
            CLIOptionFactory.create_overwrite_option()
        ]
    )
    def import_ics(ctx: CLIContext) -> int:
        """Import events; readable events are kept even if others fail."""
        try:
            with open(ctx.args.file, encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            raise StorageError(f"Cannot read {ctx.args.file}", details={"error": str(e)})

        repository, service = _open_service(ctx)
        result = service.import_ics(text, overwrite=ctx.args.overwrite)
        _save(ctx, repository, service)

        print(f"Imported {len(result.added)} events")
        if result.skipped:
            print(f"Skipped {len(result.skipped)} events that already exist")
        for block in result.partially_supported:
            print(f"Note: ignored {', '.join(block.ignored_rrule_parts)} in '{block.event.title}'")
        for error in result.errors:
            ctx.logger.error(f"Could not import {error}")
        return 0 if result.ok else 1

    @staticmethod
    @CommandRegistry.register(
        name='export',
        help_text='Export the calendar as iCalendar',
        category=CommandCategory.TRANSFER,
        options=[
            {
                'name': '--output',
                'help': 'File to write (default: standard output)'
            }
        ]
    )
    def export_ics(ctx: CLIContext) -> int:
        """Write every event as iCalendar text."""
        _, service = _open_service(ctx)
        text = service.export_ics()

        if not ctx.args.output:
            sys.stdout.write(text)
            return 0

        try:
            with open(ctx.args.output, 'w', encoding='utf-8', newline='') as f:
                f.write(text)
        except OSError as e:
            raise StorageError(f"Cannot write {ctx.args.output}", details={"error": str(e)})
        print(f"Exported {len(service.calendar)} events to {ctx.args.output}")
        return 0

@create_command_group('calendar', 'Manage calendars', CommandCategory.CALENDAR)
class CalendarCommands:
    """Calendar management command implementations."""

    @staticmethod
    @CommandRegistry.register(
        name='create',
        help_text='Create an empty calendar',
        category=CommandCategory.CALENDAR,
        options=[{'name': 'name', 'help': 'Calendar name'}],
        parent_command='calendar'
    )
    def create_calendar(ctx: CLIContext) -> int:
        repository = CalendarRepository(ctx.config.data_dir)
        calendar = repository.create(validate_calendar_name(ctx.args.name))
        print(f"Created calendar {calendar.name}")
        return 0

    @staticmethod
    @CommandRegistry.register(
        name='delete',
        help_text='Delete a calendar and all its events',
        category=CommandCategory.CALENDAR,
        options=[{'name': 'name', 'help': 'Calendar name'}],
        parent_command='calendar'
    )
    def delete_calendar(ctx: CLIContext) -> int:
        repository = CalendarRepository(ctx.config.data_dir)
        repository.delete(validate_calendar_name(ctx.args.name))
        print(f"Deleted calendar {ctx.args.name}")
        return 0

    @staticmethod
    @CommandRegistry.register(
        name='list',
        help_text='List calendars',
        category=CommandCategory.CALENDAR,
        options=[CLIOptionFactory.create_format_option()],
        parent_command='calendar'
    )
    def list_calendars(ctx: CLIContext) -> int:
        """List calendars with their totals."""
        repository = CalendarRepository(ctx.config.data_dir)
        summaries = [
            CalendarService(repository.load(name), ctx.config).summary()
            for name in repository.list_names()
        ]

        if ctx.args.format == 'json':
            print(json.dumps([vars(summary) for summary in summaries], indent=2))
            return 0

        if not summaries:
            print("No calendars")
            return 0

        rows = [
            [
                '*' if summary.name == ctx.config.default_calendar else '',
                summary.name,
                summary.events,
                summary.recurring,
                summary.occurrences,
                summary.unbounded
            ]
            for summary in summaries
        ]
        print(tabulate(rows, headers=['', 'Name', 'Events', 'Recurring', 'Occurrences', 'Endless']))
        return 0

COMMAND_GROUPS = [EventCommands, ListCommands, TransferCommands, CalendarCommands]

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser from the registered commands."""
    builder = CLIBuilder(
        description='Personal calendar: keep events and recurring events, import and export iCalendar',
        prog='pcal'
    )

    for group in COMMAND_GROUPS:
        metadata = group._command_group_metadata
        builder.add_group_help(metadata['name'], metadata['help_text'])

    for command in CommandRegistry.all_commands():
        builder.add_command(command)

    return builder.build()

def _report_error(logger: logging.Logger, error: PcalError) -> None:
    logger.error(error.message)
    if isinstance(error, ParseError):
        for block_error in error.block_errors:
            logger.error(f"  {block_error}")
    elif error.details and 'candidates' in error.details:
        logger.error(f"  Matching ids: {', '.join(error.details['candidates'])}")

def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    logger = get_logger(__name__)

    try:
        config = ConfigurationManager().reload_config(args.config_dir)
    except ConfigError as e:
        setup_logging(None, verbose=args.verbose, log_file=args.log_file)
        logger.error(f"Configuration error: {e.message}")
        return 1

    try:
        setup_logging(config, verbose=args.verbose, log_file=args.log_file)

        ctx = CLIContext(
            args=args,
            logger=logger,
            config=config,
            parser=parser
        )

        command = CommandRegistry.get_command(args.command_key)
        if not command:
            logger.error(f"Unknown command: {args.command}")
            return 1

        errors = ArgumentValidator.validate_args(args, command)
        if errors:
            for error in errors:
                logger.error(error)
            return 1

        return command.handler(ctx)

    except PcalError as e:
        _report_error(logger, e)
        return 1
    except Exception:
        logger.exception("Unhandled exception")
        return 1
    finally:
        shutdown_error_aggregator()

if __name__ == '__main__':
    sys.exit(main())
