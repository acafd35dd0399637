"""
Calendar service: one entry point per calendar command.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from pcal.config.env import default_config_dir, default_data_dir
from pcal.config.types import AppConfig
from pcal.exceptions import BlockError, DuplicateError, PcalError, ValidationError, handle_errors
from pcal.models.calendar import Calendar
from pcal.models.event import Event, RecurrenceRule, make_event, make_rule
from pcal.services.calendar import CalendarBuilder, ParsedBlock, parse_calendar
from pcal.services.calendar_store import CalendarStore
from pcal.services.date_filter import DateFilter, window_for
from pcal.services.recurrence import (
    Window,
    count_occurrences,
    last_occurrence,
    next_occurrence,
    occurrences_in,
)
from pcal.utils.logging_utils import EnhancedLoggerMixin, log_execution
from pcal.utils.timezone_utils import TimezoneManager


@dataclass
class EventFields:
    """Event fields as given to Add and Edit.

    For Edit, None leaves a field unchanged and an empty string clears
    location or description.
    """
    title: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    duration: Optional[timedelta] = None
    location: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[str] = None
    interval: Optional[int] = None
    count: Optional[int] = None
    until: Optional[datetime] = None
    clear_recurrence: bool = False

    @property
    def has_rule_parts(self) -> bool:
        return any(value is not None for value in (self.frequency, self.interval, self.count, self.until))

@dataclass
class Occurrence:
    """One concrete instance of an event."""
    event: Event
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.event.id,
            "title": self.event.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "location": self.event.location,
            "recurring": self.event.is_recurring,
        }

@dataclass
class ImportResult:
    """What an import added, skipped and could not read."""
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[BlockError] = field(default_factory=list)
    partially_supported: list[ParsedBlock] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

@dataclass
class EventDetails:
    """An event with its upcoming schedule."""
    event: Event
    next_occurrence: Optional[datetime]
    last_occurrence: Optional[datetime]
    total_occurrences: Optional[int]

    def to_dict(self) -> dict[str, Any]:
        data = self.event.to_dict()
        data["next_occurrence"] = self.next_occurrence.isoformat() if self.next_occurrence else None
        data["last_occurrence"] = self.last_occurrence.isoformat() if self.last_occurrence else None
        data["total_occurrences"] = self.total_occurrences
        return data

@dataclass
class CalendarSummary:
    """Totals shown for a calendar."""
    name: str
    events: int
    recurring: int
    occurrences: int
    unbounded: int

    def __str__(self) -> str:
        text = f"Calendar '{self.name}': {self.events} events ({self.recurring} recurring), {self.occurrences} occurrences"
        if self.unbounded:
            text += f", {self.unbounded} repeating forever"
        return text

class CalendarService(EnhancedLoggerMixin):
    """Runs calendar commands against one loaded calendar."""

    def __init__(self, calendar: Calendar, config: Optional[AppConfig] = None, now: Optional[datetime] = None):
        """Initialize service.

        Args:
            calendar: Calendar to work on; mutated in place
            config: Application configuration, defaults when omitted
            now: Fixed current time, mostly for tests
        """
        super().__init__()
        self.config = config or AppConfig(data_dir=default_data_dir(), config_dir=default_config_dir())
        self.calendar = calendar
        self.store = CalendarStore(calendar)
        self.tz_manager = TimezoneManager(self.config.timezone)
        self._now = now
        self.dirty = False
        self.set_log_context(service="calendar", calendar=calendar.name)

    def now(self) -> datetime:
        """Current time in the configured timezone."""
        if self._now is not None:
            return self._now
        return self.tz_manager.now()

    @property
    def horizon(self) -> timedelta:
        return timedelta(days=self.config.expansion_horizon_days)

    def _default_duration(self) -> timedelta:
        return timedelta(minutes=self.config.default_duration_minutes)

    @staticmethod
    def _build_rule(fields: EventFields, current: Optional[RecurrenceRule] = None) -> Optional[RecurrenceRule]:
        if fields.clear_recurrence:
            if fields.has_rule_parts:
                raise ValidationError("Cannot both remove and change the recurrence")
            return None
        if not fields.has_rule_parts:
            return current

        frequency = fields.frequency or (current.frequency if current else None)
        if frequency is None:
            raise ValidationError("A recurrence needs a frequency")
        return make_rule(
            frequency,
            interval=fields.interval if fields.interval is not None else (current.interval if current else 1),
            count=fields.count if fields.count is not None else (current.count if current else None),
            until=fields.until if fields.until is not None else (current.until if current else None),
        )

    @log_execution(level='DEBUG')
    def add(self, fields: EventFields, overwrite: bool = False) -> Event:
        """Create and store an event.

        Raises:
            ValidationError: For missing or invalid fields
            DuplicateError: If the same event already exists and overwrite is False
        """
        with handle_errors(PcalError, "calendar", "add event"):
            if fields.title is None or fields.start is None:
                raise ValidationError("An event needs a title and a start")
            if fields.clear_recurrence:
                raise ValidationError("A new event has no recurrence to remove")
            if fields.end is not None and fields.duration is not None:
                raise ValidationError("Give either an end or a duration, not both")

            end_or_duration = fields.end if fields.end is not None else fields.duration
            if end_or_duration is None:
                end_or_duration = self._default_duration()

            event = make_event(
                fields.title,
                fields.start,
                end_or_duration,
                location=fields.location,
                recurrence=self._build_rule(fields),
                description=fields.description,
            )
            self.store.add(event, overwrite=overwrite)
            self.dirty = True
            self.info(f"Added event {event.id}", title=event.title)
            return event

    @log_execution(level='DEBUG')
    def import_ics(self, text: str, overwrite: bool = False) -> ImportResult:
        """Add every readable event of an iCalendar document.

        Readable events are kept even when other blocks fail.

        Raises:
            ParseError: If the document holds no VEVENT at all
        """
        with handle_errors(PcalError, "calendar", "import events"):
            parsed = parse_calendar(text)
            result = ImportResult(errors=list(parsed.errors), partially_supported=parsed.partially_supported)

            for event in parsed.events:
                try:
                    self.store.add(event, overwrite=overwrite)
                except DuplicateError:
                    self.info(f"Skipping existing event {event.id}", title=event.title)
                    result.skipped.append(event.id)
                    continue
                result.added.append(event.id)

            if result.added:
                self.dirty = True
            for error in result.errors:
                self.warning(f"Could not import {error}")
            self.info(
                f"Imported {len(result.added)} events",
                skipped=len(result.skipped),
                failed=len(result.errors)
            )
            return result

    def remove(self, event_id: str) -> Event:
        """Raises NotFoundError for unknown or already removed ids."""
        with handle_errors(PcalError, "calendar", "remove event"):
            event = self.store.remove(event_id)
            self.dirty = True
            self.info(f"Removed event {event.id}", title=event.title)
            return event

    def remove_all(self) -> int:
        count = self.store.remove_all()
        if count:
            self.dirty = True
        self.info(f"Removed {count} events")
        return count

    def _window_for_event(self, event: Event, window: Window) -> Window:
        rule = event.recurrence
        if rule is None or rule.bounded or window.bounded:
            return window
        return window.capped((window.start or self.now()) + self.horizon)

    @log_execution(level='DEBUG')
    def list_occurrences(self, date_filter: Optional[DateFilter] = None) -> list[Occurrence]:
        """Occurrences of every event that start inside the filter, in time order.

        Events repeating forever are expanded up to the configured horizon
        when the filter has no end.
        """
        date_filter = date_filter or DateFilter.upcoming()
        window = window_for(date_filter, self.now(), self.config.first_weekday)

        occurrences = []
        for event in self.store.list():
            for start in occurrences_in(event, self._window_for_event(event, window)):
                occurrences.append(Occurrence(event, start, start + event.duration))

        occurrences.sort(key=lambda occurrence: (occurrence.start, occurrence.event.title, occurrence.event.id))
        self.debug(f"Listed {len(occurrences)} occurrences", filter=date_filter.describe())
        return occurrences

    def show(self, event_id: str) -> EventDetails:
        """Raises NotFoundError for unknown ids."""
        with handle_errors(PcalError, "calendar", "show event"):
            event = self.store.get(event_id)
            bounded = event.recurrence is None or event.recurrence.bounded
            return EventDetails(
                event=event,
                next_occurrence=next_occurrence(event, self.now()),
                last_occurrence=last_occurrence(event) if bounded else None,
                total_occurrences=count_occurrences(event),
            )

    @log_execution(level='DEBUG')
    def edit(self, event_id: str, fields: EventFields) -> Event:
        """Rebuild an event from its current fields merged with the changes.

        The id is recomputed, so changing the title, start, location or
        recurrence gives the event a new id. It keeps its place in the list.

        Raises:
            NotFoundError: For unknown ids
            ValidationError: If the merged fields are invalid
            DuplicateError: If the result is identical to another stored event
        """
        with handle_errors(PcalError, "calendar", "edit event"):
            current = self.store.get(event_id)
            changes: dict[str, Any] = {}
            for name in ("title", "start", "end", "duration", "location", "description"):
                value = getattr(fields, name)
                if value is not None:
                    changes[name] = value
            if fields.clear_recurrence or fields.has_rule_parts:
                changes["recurrence"] = self._build_rule(fields, current.recurrence)

            if not changes:
                raise ValidationError("Nothing to change", {"event_id": current.id})

            edited = current.replace(**changes)
            if edited == current:
                return current

            self.store.replace(current.id, edited)
            self.dirty = True
            if edited.id != current.id:
                self.info(f"Event {current.id} is now {edited.id}", title=edited.title)
            else:
                self.info(f"Updated event {edited.id}", title=edited.title)
            return edited

    def export_ics(self) -> str:
        """The whole calendar as iCalendar text."""
        return CalendarBuilder(stamp=self.now()).to_ical(self.calendar)

    def summary(self) -> CalendarSummary:
        events = self.store.list()
        counts = [count_occurrences(event) for event in events]
        return CalendarSummary(
            name=self.calendar.name,
            events=len(events),
            recurring=sum(1 for event in events if event.is_recurring),
            occurrences=sum(count for count in counts if count is not None),
            unbounded=sum(1 for count in counts if count is None),
        )
