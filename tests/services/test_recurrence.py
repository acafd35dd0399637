"""Tests for recurrence expansion."""

from datetime import datetime, timedelta, timezone

import pytest

from pcal.exceptions import RecurrenceBoundError, ValidationError
from pcal.models.event import make_event, make_rule
from pcal.services.recurrence import (
    Window,
    add_months,
    clamp_day,
    count_occurrences,
    iter_rule,
    last_occurrence,
    next_occurrence,
    occurrences_in,
)

UTC = timezone.utc


def utc(*args):
    return datetime(*args, tzinfo=UTC)

def test_single_event_inside_and_outside_window():
    """Test that a single event yields its start only when inside the window."""
    event = make_event("Once", utc(2024, 6, 15, 10))

    assert list(occurrences_in(event, Window(utc(2024, 6, 15), utc(2024, 6, 16)))) == [event.start]
    assert list(occurrences_in(event, Window(utc(2024, 6, 16), utc(2024, 6, 17)))) == []
    assert list(occurrences_in(event, Window(utc(2024, 6, 14), utc(2024, 6, 15, 10)))) == [event.start]
    assert list(occurrences_in(event, Window(utc(2024, 6, 14), utc(2024, 6, 15, 10), end_inclusive=False))) == []

def test_daily_count():
    """Test a daily rule with a count of five."""
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", count=5))

    assert list(iter_rule(event)) == [utc(2024, 1, day, 9) for day in range(1, 6)]

def test_daily_count_inside_window():
    """Test that skipped occurrences still count toward the count."""
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", count=5))

    window = Window(utc(2024, 1, 3), utc(2024, 1, 10))
    assert list(occurrences_in(event, window)) == [utc(2024, 1, 3, 9), utc(2024, 1, 4, 9), utc(2024, 1, 5, 9)]
    assert list(occurrences_in(event, Window(utc(2024, 1, 10), utc(2024, 2, 1)))) == []

def test_occurrence_on_window_end_is_included():
    """Test that the window end is inclusive unless asked otherwise."""
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", count=5))

    window = Window(utc(2024, 1, 1), utc(2024, 1, 3, 9))
    assert list(occurrences_in(event, window)) == [utc(2024, 1, 1, 9), utc(2024, 1, 2, 9), utc(2024, 1, 3, 9)]
    assert window.contains(utc(2024, 1, 3, 9))

    half_open = Window(utc(2024, 1, 1), utc(2024, 1, 3, 9), end_inclusive=False)
    assert list(occurrences_in(event, half_open)) == [utc(2024, 1, 1, 9), utc(2024, 1, 2, 9)]
    assert not half_open.contains(utc(2024, 1, 3, 9))

def test_weekly_interval():
    event = make_event("Review", utc(2024, 6, 3, 9), recurrence=make_rule("WEEKLY", interval=2, count=3))

    assert list(iter_rule(event)) == [utc(2024, 6, 3, 9), utc(2024, 6, 17, 9), utc(2024, 7, 1, 9)]

def test_monthly_clamps_month_end_without_drift():
    """Test Jan 31 monthly: Feb 29, Mar 31, Apr 30."""
    event = make_event("Rent", utc(2024, 1, 31, 8), recurrence=make_rule("MONTHLY", count=4))

    assert list(iter_rule(event)) == [
        utc(2024, 1, 31, 8),
        utc(2024, 2, 29, 8),
        utc(2024, 3, 31, 8),
        utc(2024, 4, 30, 8),
    ]

def test_monthly_clamps_in_non_leap_year():
    event = make_event("Rent", utc(2023, 1, 31, 8), recurrence=make_rule("MONTHLY", count=2))

    assert list(iter_rule(event))[1] == utc(2023, 2, 28, 8)

def test_yearly_leap_day():
    """Test Feb 29 yearly: Feb 28 in common years, Feb 29 again in leap years."""
    event = make_event("Leap party", utc(2024, 2, 29, 20), recurrence=make_rule("YEARLY", count=5))

    assert list(iter_rule(event)) == [
        utc(2024, 2, 29, 20),
        utc(2025, 2, 28, 20),
        utc(2026, 2, 28, 20),
        utc(2027, 2, 28, 20),
        utc(2028, 2, 29, 20),
    ]

def test_monthly_window_skips_ahead():
    """Test that expansion starting late in an unbounded monthly rule stays on the anchor day."""
    event = make_event("Rent", utc(2024, 1, 31, 8), recurrence=make_rule("MONTHLY"))

    window = Window(utc(2024, 5, 1), utc(2024, 7, 1))
    assert list(occurrences_in(event, window)) == [utc(2024, 5, 31, 8), utc(2024, 6, 30, 8)]

def test_until_is_inclusive():
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", until=utc(2024, 1, 3, 9)))

    assert list(iter_rule(event)) == [utc(2024, 1, 1, 9), utc(2024, 1, 2, 9), utc(2024, 1, 3, 9)]

@pytest.mark.parametrize("count, until, expected", [
    (10, utc(2024, 1, 3, 9), 3),
    (2, utc(2024, 1, 31, 9), 2),
])
def test_count_and_until_whichever_first(count, until, expected):
    """Test that count and until together stop at whichever is reached first."""
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", count=count, until=until))

    assert count_occurrences(event) == expected

def test_unbounded_rule_needs_window_end():
    """Test that an unbounded rule with an open window raises."""
    event = make_event("Forever", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY"))

    with pytest.raises(RecurrenceBoundError):
        occurrences_in(event, Window(utc(2024, 1, 1), None))
    with pytest.raises(RecurrenceBoundError):
        last_occurrence(event)

    assert len(list(occurrences_in(event, Window(utc(2024, 1, 1), utc(2024, 1, 8))))) == 7
    assert count_occurrences(event) is None

def test_sequence_is_restartable_and_increasing():
    """Test that each iteration starts over and occurrences strictly increase."""
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", interval=3, count=6))
    sequence = occurrences_in(event, Window())

    first = list(sequence)
    assert first == list(sequence)
    assert len(first) == 6
    assert all(a < b for a, b in zip(first, first[1:]))
    assert sequence.first() == utc(2024, 1, 1, 9)

def test_last_occurrence():
    event = make_event("Rent", utc(2024, 1, 31, 8), recurrence=make_rule("MONTHLY", count=3))
    assert last_occurrence(event) == utc(2024, 3, 31, 8)

def test_window_validation():
    with pytest.raises(ValidationError):
        Window(utc(2024, 1, 2), utc(2024, 1, 1))
    with pytest.raises(ValidationError):
        Window(datetime(2024, 1, 1), None)

def test_window_capped():
    window = Window(utc(2024, 1, 1), None)

    assert window.capped(utc(2024, 2, 1)) == Window(utc(2024, 1, 1), utc(2024, 2, 1))
    assert Window(utc(2024, 1, 1), utc(2024, 1, 5)).capped(utc(2024, 2, 1)).end == utc(2024, 1, 5)

def test_clamp_day_and_add_months():
    assert clamp_day(2024, 2, 31) == 29
    assert clamp_day(2023, 2, 30) == 28
    assert clamp_day(2024, 4, 15) == 15
    assert add_months(utc(2024, 12, 31), 2) == utc(2025, 2, 28)
    assert add_months(utc(2024, 3, 31), -1) == utc(2024, 2, 29)

def test_fixed_offset_is_kept():
    start = datetime(2024, 3, 1, 9, tzinfo=timezone(timedelta(hours=-5)))
    event = make_event("Call", start, recurrence=make_rule("DAILY", count=2))

    assert all(moment.utcoffset() == timedelta(hours=-5) for moment in iter_rule(event))

def test_next_occurrence_beyond_a_year():
    """Test that the next occurrence is found however far ahead it lies."""
    event = make_event("Census", utc(2024, 3, 1, 9), recurrence=make_rule("YEARLY", interval=2))

    assert next_occurrence(event, utc(2024, 6, 15, 10)) == utc(2026, 3, 1, 9)
    assert next_occurrence(event, utc(2024, 3, 1, 9)) == utc(2024, 3, 1, 9)

def test_next_occurrence_respects_rule_end():
    event = make_event("Walk", utc(2024, 1, 1, 9), recurrence=make_rule("DAILY", count=3))

    assert next_occurrence(event, utc(2024, 1, 2, 12)) == utc(2024, 1, 3, 9)
    assert next_occurrence(event, utc(2024, 1, 3, 12)) is None
    once = make_event("Once", utc(2024, 6, 15, 10))
    assert next_occurrence(once, utc(2024, 6, 15, 11)) is None
