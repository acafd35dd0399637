"""
Calendar model: a named, insertion-ordered collection of events.
"""

from dataclasses import dataclass, field
from typing import Any

from pcal.exceptions import ValidationError
from pcal.models.event import Event


@dataclass
class Calendar:
    """Named collection of events keyed by event id.

    Dict order is insertion order, which is the order events are listed in.
    """
    name: str
    events: dict[str, Event] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.events)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "events": [event.to_dict() for event in self.events.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Calendar':
        name = data.get("name")
        if not name:
            raise ValidationError("Stored calendar has no name")

        calendar = cls(name=name)
        for item in data.get("events", []):
            event = Event.from_dict(item)
            if event.id in calendar.events:
                raise ValidationError(
                    f"Stored calendar '{name}' contains event {event.id} twice",
                    {"calendar": name, "event_id": event.id}
                )
            calendar.events[event.id] = event
        return calendar
