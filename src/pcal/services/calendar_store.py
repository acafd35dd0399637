"""
In-memory event store for one calendar.
"""

from pcal.exceptions import DuplicateError, NotFoundError
from pcal.models.calendar import Calendar
from pcal.models.event import Event
from pcal.utils.logging_utils import EnhancedLoggerMixin


class CalendarStore(EnhancedLoggerMixin):
    """Keyed, insertion-ordered collection of events backed by a Calendar.

    Ids may be given in full or as a unique prefix.
    """

    def __init__(self, calendar: Calendar):
        super().__init__()
        self.calendar = calendar
        self.set_log_context(calendar=calendar.name)

    @property
    def _events(self) -> dict[str, Event]:
        return self.calendar.events

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def resolve(self, id_or_prefix: str) -> str:
        """Full id for an exact id or a unique id prefix.

        Raises:
            NotFoundError: If nothing or more than one event matches
        """
        if id_or_prefix in self._events:
            return id_or_prefix

        candidates = [event_id for event_id in self._events if id_or_prefix and event_id.startswith(id_or_prefix)]
        if len(candidates) == 1:
            return candidates[0]
        if candidates:
            raise NotFoundError(
                f"Event id '{id_or_prefix}' is ambiguous",
                id_or_prefix,
                {"candidates": sorted(candidates)}
            )
        raise NotFoundError(f"No event with id '{id_or_prefix}'", id_or_prefix)

    def add(self, event: Event, overwrite: bool = False) -> str:
        """Store an event under its id.

        Raises:
            DuplicateError: If the id is taken and overwrite is False
        """
        if event.id in self._events and not overwrite:
            raise DuplicateError(f"Event '{event.title}' already exists", event.id)

        for other in self._events.values():
            if other.id != event.id and not other.is_recurring and not event.is_recurring and event.overlaps(other):
                self.warning(f"Event '{event.title}' overlaps with '{other.title}'", event_id=event.id, other_id=other.id)

        self._events[event.id] = event
        self.debug(f"Added event {event.id}", title=event.title)
        return event.id

    def get(self, event_id: str) -> Event:
        """Raises NotFoundError for unknown ids."""
        return self._events[self.resolve(event_id)]

    def remove(self, event_id: str) -> Event:
        """Delete and return an event.

        Raises:
            NotFoundError: If the id is unknown, including when it was already removed
        """
        event = self._events.pop(self.resolve(event_id))
        self.debug(f"Removed event {event.id}", title=event.title)
        return event

    def remove_all(self) -> int:
        """Delete every event and return how many there were."""
        count = len(self._events)
        self._events.clear()
        self.debug(f"Removed all {count} events")
        return count

    def list(self) -> list[Event]:
        """Events in insertion order."""
        return list(self._events.values())

    def replace(self, event_id: str, event: Event) -> str:
        """Swap an event for a rebuilt one, keeping its position.

        Raises:
            NotFoundError: If the old id is unknown
            DuplicateError: If the new id belongs to another stored event
        """
        old_id = self.resolve(event_id)
        if event.id != old_id and event.id in self._events:
            raise DuplicateError(f"Event '{event.title}' already exists", event.id)

        self.calendar.events = {
            (event.id if key == old_id else key): (event if key == old_id else value)
            for key, value in self._events.items()
        }
        self.debug(f"Replaced event {old_id} with {event.id}", title=event.title)
        return event.id
