"""Tests for the event model."""

from datetime import datetime, timedelta, timezone

import pytest

from pcal.exceptions import ValidationError
from pcal.models.event import (
    Event,
    Frequency,
    RecurrenceRule,
    compute_event_id,
    make_event,
    make_rule,
)

UTC = timezone.utc
PLUS_TWO = timezone(timedelta(hours=2))


def test_make_event_basic():
    """Test building a single event from an end time."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    event = make_event("  Lunch  ", start, start + timedelta(hours=1), location="Cafe")

    assert event.title == "Lunch"
    assert event.location == "Cafe"
    assert event.duration == timedelta(hours=1)
    assert not event.is_recurring
    assert len(event.id) == 16
    int(event.id, 16)

def test_make_event_with_duration_and_default_end():
    """Test duration input and the zero-length default."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    assert make_event("Call", start, timedelta(minutes=30)).end == start + timedelta(minutes=30)
    assert make_event("Reminder", start).end == start

def test_end_uses_start_offset():
    """Test that the end is expressed in the start's fixed offset."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=PLUS_TWO)
    end = datetime(2024, 6, 15, 13, 0, tzinfo=UTC)
    event = make_event("Meeting", start, end)

    assert event.end.utcoffset() == timedelta(hours=2)
    assert event.end.hour == 15

@pytest.mark.parametrize("kwargs", [
    {"title": "", "start": datetime(2024, 6, 15, 14, 0, tzinfo=UTC)},
    {"title": "   ", "start": datetime(2024, 6, 15, 14, 0, tzinfo=UTC)},
    {"title": "Naive", "start": datetime(2024, 6, 15, 14, 0)},
    {
        "title": "Backwards",
        "start": datetime(2024, 6, 15, 14, 0, tzinfo=UTC),
        "end_or_duration": datetime(2024, 6, 15, 13, 0, tzinfo=UTC),
    },
    {
        "title": "Negative",
        "start": datetime(2024, 6, 15, 14, 0, tzinfo=UTC),
        "end_or_duration": timedelta(minutes=-5),
    },
])
def test_make_event_rejects_invalid_fields(kwargs):
    """Test validation of event fields."""
    with pytest.raises(ValidationError):
        make_event(**kwargs)

def test_id_is_stable_for_same_input():
    """Test that re-adding identical input yields the same id."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    rule = make_rule("weekly", interval=2, count=3)
    first = make_event("Yoga", start, timedelta(hours=1), location="Gym", recurrence=rule)
    second = make_event("Yoga", start, timedelta(hours=1), location="Gym", recurrence=make_rule("WEEKLY", 2, 3))

    assert first.id == second.id

def test_id_ignores_offset_of_same_instant():
    """Test that the same instant written in another offset keeps the id."""
    utc_start = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
    local_start = datetime(2024, 6, 15, 14, 0, tzinfo=PLUS_TWO)

    assert make_event("Yoga", utc_start).id == make_event("Yoga", local_start).id

def test_id_changes_with_identity_fields():
    """Test that every identity field contributes to the id."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    base = make_event("Yoga", start, location="Gym")

    assert make_event("Pilates", start, location="Gym").id != base.id
    assert make_event("Yoga", start + timedelta(minutes=1), location="Gym").id != base.id
    assert make_event("Yoga", start, location="Park").id != base.id
    assert make_event("Yoga", start, location="Gym", recurrence=make_rule("DAILY", count=2)).id != base.id

def test_id_ignores_description_and_end():
    """Test that non-identity fields leave the id alone."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    base = make_event("Yoga", start, timedelta(hours=1))

    assert make_event("Yoga", start, timedelta(hours=2), description="Bring a mat").id == base.id

def test_compute_event_id_matches_make_event():
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    event = make_event("Yoga", start, location="Gym")
    assert compute_event_id("Yoga", start, "Gym", None) == event.id

def test_make_rule_validation():
    """Test recurrence rule validation."""
    with pytest.raises(ValidationError):
        make_rule("DAILY", interval=0)
    with pytest.raises(ValidationError):
        make_rule("DAILY", count=0)
    with pytest.raises(ValidationError):
        make_rule("HOURLY")
    with pytest.raises(ValidationError):
        make_rule("DAILY", until=datetime(2024, 7, 1))

@pytest.mark.parametrize("rule", [
    RecurrenceRule(Frequency.DAILY, interval=0),
    RecurrenceRule(Frequency.DAILY, count=0),
    RecurrenceRule(Frequency.DAILY, count=-2),
    RecurrenceRule(Frequency.DAILY, until=datetime(2024, 7, 1)),
])
def test_make_event_validates_a_rule_built_directly(rule):
    with pytest.raises(ValidationError):
        make_event("Walk", datetime(2024, 6, 1, 9, tzinfo=UTC), recurrence=rule)

def test_make_event_normalizes_a_rule_built_directly():
    rule = RecurrenceRule(Frequency.DAILY, until=datetime(2024, 7, 1, 2, 0, tzinfo=PLUS_TWO))
    event = make_event("Walk", datetime(2024, 6, 1, 9, tzinfo=UTC), recurrence=rule)

    assert event.recurrence.until.utcoffset() == timedelta(0)
    assert event == make_event("Walk", datetime(2024, 6, 1, 9, tzinfo=UTC), recurrence=make_rule("DAILY", until=rule.until))

def test_make_rule_normalizes_until_to_utc():
    rule = make_rule("monthly", until=datetime(2024, 7, 1, 2, 0, tzinfo=PLUS_TWO))

    assert rule.frequency is Frequency.MONTHLY
    assert rule.until == datetime(2024, 7, 1, 0, 0, tzinfo=UTC)
    assert rule.until.utcoffset() == timedelta(0)
    assert rule.bounded

def test_rule_describe():
    assert make_rule("WEEKLY", interval=2, count=5).describe() == "every 2 weeks, 5 times"
    assert make_rule("DAILY").describe() == "every day"
    assert not make_rule("DAILY").bounded

def test_replace_keeps_duration_when_moving_start():
    """Test that moving the start keeps the length and recomputes the id."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    event = make_event("Yoga", start, timedelta(minutes=45))
    moved = event.replace(start=start + timedelta(days=1))

    assert moved.duration == timedelta(minutes=45)
    assert moved.id != event.id

def test_replace_rejects_unknown_fields():
    event = make_event("Yoga", datetime(2024, 6, 15, 14, 0, tzinfo=UTC))
    with pytest.raises(ValidationError):
        event.replace(id="abc")

def test_overlaps():
    """Test overlap detection between single events."""
    start = datetime(2024, 6, 15, 14, 0, tzinfo=UTC)
    event = make_event("A", start, timedelta(hours=1))

    assert event.overlaps(make_event("B", start + timedelta(minutes=30), timedelta(hours=1)))
    assert not event.overlaps(make_event("C", start + timedelta(hours=1), timedelta(hours=1)))
    assert event.overlaps(make_event("D", start))

def test_dict_round_trip():
    """Test converting an event to a mapping and back."""
    event = make_event(
        "Yoga",
        datetime(2024, 6, 15, 14, 0, tzinfo=PLUS_TWO),
        timedelta(hours=1),
        location="Gym",
        description="Mat",
        recurrence=make_rule("WEEKLY", until=datetime(2024, 8, 1, tzinfo=UTC)),
    )
    restored = Event.from_dict(event.to_dict())

    assert restored == event
    assert restored.start.utcoffset() == timedelta(hours=2)
    assert isinstance(restored.recurrence, RecurrenceRule)

def test_from_dict_rejects_tampered_id():
    data = make_event("Yoga", datetime(2024, 6, 15, 14, 0, tzinfo=UTC)).to_dict()
    data["id"] = "0" * 16

    with pytest.raises(ValidationError):
        Event.from_dict(data)
