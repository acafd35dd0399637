"""
iCalendar parsing.

The input is split into VEVENT blocks first and every block is read on its
own with icalendar, so one broken event does not hide the others.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from icalendar import Event as ICalEvent
from icalendar import vRecur

from pcal.exceptions import BlockError, ParseError, ValidationError
from pcal.models.event import Event, Frequency, RecurrenceRule, make_event, make_rule
from pcal.services.calendar.builders.event_builder import OFFSET_PROPERTY
from pcal.utils.timezone_utils import fixed_offset, parse_offset

logger = logging.getLogger(__name__)

SUPPORTED_RRULE_PARTS = ('FREQ', 'INTERVAL', 'COUNT', 'UNTIL')

_FOLD_RE = re.compile(r'\r?\n[ \t]')


@dataclass
class ParsedBlock:
    """An event read from one VEVENT block."""
    index: int
    event: Event
    ignored_rrule_parts: list[str] = field(default_factory=list)

    @property
    def partially_supported(self) -> bool:
        return bool(self.ignored_rrule_parts)

@dataclass
class ParseResult:
    """Outcome of reading a whole iCalendar document."""
    blocks: list[ParsedBlock] = field(default_factory=list)
    errors: list[BlockError] = field(default_factory=list)

    @property
    def events(self) -> list[Event]:
        return [block.event for block in self.blocks]

    @property
    def partially_supported(self) -> list[ParsedBlock]:
        """Blocks that were read with some RRULE parts ignored."""
        return [block for block in self.blocks if block.partially_supported]

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise ParseError if any block failed."""
        if self.errors:
            raise ParseError(
                f"{len(self.errors)} of {len(self.errors) + len(self.blocks)} events could not be read",
                self.errors
            )

def unfold(text: str) -> str:
    """Join folded content lines and normalize line endings."""
    return _FOLD_RE.sub('', text).replace('\r\n', '\n').replace('\r', '\n')

def split_vevents(text: str) -> tuple[list[tuple[int, str]], list[BlockError]]:
    """Cut unfolded text into VEVENT blocks.

    Blocks that are never closed are reported as errors, with the index they
    would have had.
    """
    blocks: list[tuple[int, str]] = []
    errors: list[BlockError] = []
    current: Optional[list[str]] = None
    index = 0

    for line in text.split('\n'):
        marker = line.strip().upper()
        if marker == 'BEGIN:VEVENT':
            if current is not None:
                errors.append(BlockError(index, "VEVENT is not terminated"))
                index += 1
            current = [line.strip()]
        elif marker == 'END:VEVENT' and current is not None:
            current.append(line.strip())
            blocks.append((index, '\r\n'.join(current) + '\r\n'))
            current = None
            index += 1
        elif current is not None and line.strip():
            current.append(line.rstrip())

    if current is not None:
        errors.append(BlockError(index, "VEVENT is not terminated"))

    return blocks, errors

def _property_errors(component: ICalEvent) -> dict[str, str]:
    return {str(name).upper(): str(message) for name, message in getattr(component, 'errors', [])}

def _read_datetime(component: ICalEvent, name: str, index: int, errors: dict[str, str]) -> Optional[datetime]:
    """Read a DATE-TIME property.

    Floating values are taken as UTC. Zone-qualified values keep the offset
    in effect at that instant; a TZID that cannot be resolved is an error.
    """
    if name in errors:
        raise _block_error(index, f"Invalid value: {errors[name]}", name)
    prop = component.get(name)
    if prop is None:
        return None
    value = getattr(prop, 'dt', None)
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            tzid = prop.params.get('TZID') if hasattr(prop, 'params') else None
            if tzid:
                raise _block_error(index, f"Unknown timezone {tzid}", name)
            return value.replace(tzinfo=timezone.utc)
        return fixed_offset(value)
    if isinstance(value, date):
        raise _block_error(index, "Date-only values are not supported, a date-time is required", name)
    raise _block_error(index, f"Expected a date-time, got {prop.to_ical()!r}", name)

def _read_duration(component: ICalEvent, index: int, errors: dict[str, str]) -> Optional[timedelta]:
    if 'DURATION' in errors:
        raise _block_error(index, f"Invalid value: {errors['DURATION']}", 'DURATION')
    prop = component.get('DURATION')
    if prop is None:
        return None
    value = getattr(prop, 'dt', None)
    if not isinstance(value, timedelta):
        raise _block_error(index, "Expected a duration", 'DURATION')
    return value

def _first(values: Any) -> Any:
    if isinstance(values, list):
        return values[0] if values else None
    return values

def _read_until(value: Any, start: datetime) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            return value.replace(tzinfo=start.tzinfo)
        return value
    # A date bound includes the whole day
    return datetime.combine(value, time(23, 59, 59), tzinfo=start.tzinfo)

def _read_rrule(
    component: ICalEvent,
    start: datetime,
    index: int,
    errors: dict[str, str]
) -> tuple[Optional[RecurrenceRule], list[str]]:
    """Reduce RRULE to FREQ/INTERVAL/COUNT/UNTIL and name everything dropped."""
    if 'RRULE' in errors:
        raise _block_error(index, f"Invalid value: {errors['RRULE']}", 'RRULE')
    prop = component.get('RRULE')
    if prop is None:
        return None, []

    ignored: list[str] = []
    if isinstance(prop, list):
        # Only the first rule is honoured
        ignored.extend('RRULE' for _ in prop[1:])
        prop = prop[0]
    if not isinstance(prop, vRecur):
        raise _block_error(index, "Invalid recurrence rule", 'RRULE')

    parts = {str(key).upper(): value for key, value in prop.items()}
    ignored = sorted(key for key in parts if key not in SUPPORTED_RRULE_PARTS) + ignored

    freq = _first(parts.get('FREQ'))
    if not freq:
        raise _block_error(index, "Recurrence rule has no FREQ", 'RRULE')
    if str(freq).upper() not in {f.value for f in Frequency}:
        raise _block_error(index, f"Unsupported frequency: {freq}", 'RRULE')

    until = _first(parts.get('UNTIL'))
    try:
        rule = make_rule(
            str(freq),
            interval=_first(parts.get('INTERVAL')) or 1,
            count=_first(parts.get('COUNT')),
            until=_read_until(until, start) if until is not None else None,
        )
    except ValidationError as e:
        raise _block_error(index, e.message, 'RRULE')
    return rule, ignored

class _BlockFailure(Exception):
    def __init__(self, error: BlockError):
        super().__init__(str(error))
        self.error = error

def _block_error(index: int, message: str, field_name: Optional[str] = None) -> _BlockFailure:
    return _BlockFailure(BlockError(index, message, field_name))

def _text(component: ICalEvent, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value) if value is not None else None

def _read_block(block: str, index: int) -> ParsedBlock:
    try:
        component = ICalEvent.from_ical(block)
    except ValueError as e:
        raise _block_error(index, f"Malformed VEVENT: {e}")
    if isinstance(component, list):
        component = component[0]

    errors = _property_errors(component)

    title = _text(component, 'SUMMARY')
    if not title or not title.strip():
        raise _block_error(index, "Missing SUMMARY", 'SUMMARY')

    start = _read_datetime(component, 'DTSTART', index, errors)
    if start is None:
        raise _block_error(index, "Missing DTSTART", 'DTSTART')

    end = _read_datetime(component, 'DTEND', index, errors)
    end_or_duration: Any = end
    if end is None:
        end_or_duration = _read_duration(component, index, errors)

    offset_text = _text(component, OFFSET_PROPERTY)
    if offset_text:
        try:
            offset = parse_offset(offset_text)
        except ValueError as e:
            raise _block_error(index, str(e), OFFSET_PROPERTY)
        start = start.astimezone(offset)
        if isinstance(end_or_duration, datetime):
            end_or_duration = end_or_duration.astimezone(offset)

    rule, ignored = _read_rrule(component, start, index, errors)

    try:
        event = make_event(
            title,
            start,
            end_or_duration,
            location=_text(component, 'LOCATION'),
            recurrence=rule,
            description=_text(component, 'DESCRIPTION'),
        )
    except ValidationError as e:
        raise _block_error(index, e.message)

    if ignored:
        logger.warning(
            f"Event '{event.title}' uses unsupported recurrence parts {', '.join(ignored)}; "
            "they were ignored"
        )
    return ParsedBlock(index=index, event=event, ignored_rrule_parts=ignored)

def parse_calendar(text: str) -> ParseResult:
    """Read every VEVENT in an iCalendar document.

    Raises:
        ParseError: If the text holds no VEVENT at all
    """
    blocks, split_errors = split_vevents(unfold(text))
    if not blocks and not split_errors:
        raise ParseError("No VEVENT found in calendar data")

    result = ParseResult(errors=list(split_errors))
    for index, block in blocks:
        try:
            result.blocks.append(_read_block(block, index))
        except _BlockFailure as failure:
            logger.warning(f"Skipping unreadable event: {failure.error}")
            result.errors.append(failure.error)

    result.errors.sort(key=lambda error: error.index)
    logger.debug(f"Parsed {len(result.blocks)} events with {len(result.errors)} errors")
    return result

def parse_event(text: str) -> Event:
    """Read exactly one event.

    Raises:
        ParseError: If the text does not hold exactly one readable VEVENT
    """
    result = parse_calendar(text)
    result.raise_for_errors()
    if len(result.blocks) != 1:
        raise ParseError(f"Expected exactly one VEVENT, found {len(result.blocks)}")
    return result.blocks[0].event
