"""
Event model for the personal calendar.

An event's id is a content hash of the fields that identify it (title, start
instant, location and recurrence rule), so re-adding the same input always
yields the same id, across processes and reloads.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

from pcal.exceptions import ValidationError
from pcal.utils.timezone_utils import fixed_offset

ID_LENGTH = 16

class Frequency(str, Enum):
    """Supported recurrence frequencies."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @classmethod
    def parse(cls, value: Union[str, 'Frequency']) -> 'Frequency':
        """Look up a frequency by name, case-insensitively."""
        if isinstance(value, Frequency):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Unsupported frequency: {value}",
                {"frequency": value, "supported": [f.value for f in cls]}
            )

@dataclass(frozen=True)
class RecurrenceRule:
    """FREQ/INTERVAL/COUNT/UNTIL subset of an iCalendar RRULE.

    ``until`` is an inclusive bound on occurrence starts, stored in UTC.
    """
    frequency: Frequency
    interval: int = 1
    count: Optional[int] = None
    until: Optional[datetime] = None

    @property
    def bounded(self) -> bool:
        """Whether the rule ends on its own."""
        return self.count is not None or self.until is not None

    def describe(self) -> str:
        """Human readable summary, e.g. "every 2 weeks, 5 times"."""
        unit = {
            Frequency.DAILY: "day",
            Frequency.WEEKLY: "week",
            Frequency.MONTHLY: "month",
            Frequency.YEARLY: "year",
        }[self.frequency]
        text = f"every {unit}" if self.interval == 1 else f"every {self.interval} {unit}s"
        if self.count is not None:
            text += f", {self.count} times"
        if self.until is not None:
            text += f", until {self.until.strftime('%Y-%m-%d %H:%M')} UTC"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "count": self.count,
            "until": self.until.isoformat() if self.until else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'RecurrenceRule':
        until = data.get("until")
        try:
            until_dt = datetime.fromisoformat(until) if until else None
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid recurrence until: {until}", {"until": until})
        return make_rule(
            data.get("frequency", ""),
            interval=data.get("interval", 1) or 1,
            count=data.get("count"),
            until=until_dt,
        )

@dataclass(frozen=True)
class Event:
    """A single or recurring calendar event.

    Build instances with make_event(); the constructor does not validate.
    """
    id: str
    title: str
    start: datetime
    end: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    recurrence: Optional[RecurrenceRule] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def overlaps(self, other: 'Event') -> bool:
        """Whether the first instances of both events share any time."""
        if self.start == other.start:
            return True
        return self.start < other.end and other.start < self.end

    def replace(self, **changes: Any) -> 'Event':
        """Rebuild the event with some fields changed.

        Accepts title, start, end, duration, location, description and
        recurrence. The id is recomputed from the result.
        """
        unknown = set(changes) - {"title", "start", "end", "duration", "location", "description", "recurrence"}
        if unknown:
            raise ValidationError(f"Cannot change {', '.join(sorted(unknown))}")
        if "end" in changes and "duration" in changes:
            raise ValidationError("Give either an end or a duration, not both")

        start = changes.get("start", self.start)
        if "end" in changes:
            end_or_duration: Union[datetime, timedelta, None] = changes["end"]
        elif "duration" in changes:
            end_or_duration = changes["duration"]
        else:
            # Moving the start keeps the length of the event
            end_or_duration = self.duration

        return make_event(
            changes.get("title", self.title),
            start,
            end_or_duration,
            location=changes.get("location", self.location),
            description=changes.get("description", self.description),
            recurrence=changes.get("recurrence", self.recurrence),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "location": self.location,
            "description": self.description,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Event':
        """Rebuild a stored event, checking the stored id against its content."""
        try:
            start = datetime.fromisoformat(data["start"])
            end = datetime.fromisoformat(data["end"])
        except KeyError as e:
            raise ValidationError(f"Stored event is missing {e.args[0]}", {"event": data.get("id")})
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Stored event has an invalid date: {e}", {"event": data.get("id")})

        recurrence = data.get("recurrence")
        event = make_event(
            data.get("title", ""),
            start,
            end,
            location=data.get("location"),
            description=data.get("description"),
            recurrence=RecurrenceRule.from_dict(recurrence) if recurrence else None,
        )

        stored_id = data.get("id")
        if stored_id and stored_id != event.id:
            raise ValidationError(
                "Stored event id does not match its content",
                {"stored_id": stored_id, "computed_id": event.id}
            )
        return event

def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None

def make_rule(
    frequency: Union[str, Frequency],
    interval: int = 1,
    count: Optional[int] = None,
    until: Optional[datetime] = None,
) -> RecurrenceRule:
    """Validate and build a recurrence rule.

    Raises:
        ValidationError: For an unknown frequency, interval <= 0, count <= 0
            or a naive until
    """
    freq = Frequency.parse(frequency)

    try:
        interval = int(interval)
    except (TypeError, ValueError):
        raise ValidationError(f"Interval must be an integer, got {interval!r}")
    if interval <= 0:
        raise ValidationError("Interval must be a positive integer", {"interval": interval})

    if count is not None:
        try:
            count = int(count)
        except (TypeError, ValueError):
            raise ValidationError(f"Count must be an integer, got {count!r}")
        if count <= 0:
            raise ValidationError("Count must be a positive integer", {"count": count})

    if until is not None:
        if until.tzinfo is None or until.utcoffset() is None:
            raise ValidationError("Recurrence until must carry a UTC offset", {"until": until.isoformat()})
        until = until.astimezone(timezone.utc)

    return RecurrenceRule(frequency=freq, interval=interval, count=count, until=until)

def compute_event_id(
    title: str,
    start: datetime,
    location: Optional[str],
    recurrence: Optional[RecurrenceRule],
) -> str:
    """Content hash of the identity fields.

    The start is hashed as a UTC instant so the same moment written with a
    different offset produces the same id.
    """
    payload = {
        "title": title,
        "start": start.astimezone(timezone.utc).isoformat(),
        "location": location,
        "recurrence": recurrence.to_dict() if recurrence else None,
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:ID_LENGTH]

def make_event(
    title: str,
    start: datetime,
    end_or_duration: Union[datetime, timedelta, None] = None,
    location: Optional[str] = None,
    recurrence: Optional[RecurrenceRule] = None,
    description: Optional[str] = None,
) -> Event:
    """Validate the fields and build an Event with its content-derived id.

    ``end_or_duration`` is either the end date-time or a duration; None means
    a zero-length event.

    Raises:
        ValidationError: If the title is empty, start is naive, the end comes
            before the start or the duration is negative, or the
            recurrence rule is invalid
    """
    clean_title = _clean_text(title)
    if not clean_title:
        raise ValidationError("Event title must not be empty")

    if not isinstance(start, datetime):
        raise ValidationError(f"Event start must be a datetime, got {type(start).__name__}")
    if start.tzinfo is None or start.utcoffset() is None:
        raise ValidationError("Event start must carry a UTC offset", {"start": start.isoformat()})
    start = fixed_offset(start)

    if end_or_duration is None:
        end = start
    elif isinstance(end_or_duration, timedelta):
        if end_or_duration < timedelta(0):
            raise ValidationError("Event duration must not be negative", {"duration": str(end_or_duration)})
        end = start + end_or_duration
    elif isinstance(end_or_duration, datetime):
        if end_or_duration.tzinfo is None or end_or_duration.utcoffset() is None:
            raise ValidationError("Event end must carry a UTC offset", {"end": end_or_duration.isoformat()})
        end = end_or_duration.astimezone(start.tzinfo)
    else:
        raise ValidationError(f"Event end must be a datetime or duration, got {type(end_or_duration).__name__}")

    if end < start:
        raise ValidationError(
            "Event end must not be before its start",
            {"start": start.isoformat(), "end": end.isoformat()}
        )

    if recurrence is not None and not isinstance(recurrence, RecurrenceRule):
        raise ValidationError(f"Invalid recurrence rule: {recurrence!r}")
    if recurrence is not None:
        recurrence = make_rule(recurrence.frequency, recurrence.interval, recurrence.count, recurrence.until)

    clean_location = _clean_text(location)
    return Event(
        id=compute_event_id(clean_title, start, clean_location, recurrence),
        title=clean_title,
        start=start,
        end=end,
        location=clean_location,
        description=_clean_text(description),
        recurrence=recurrence,
    )
