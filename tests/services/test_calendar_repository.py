"""Tests for JSON calendar storage."""

import json

import pytest

from pcal.exceptions import CalendarExistsError, CalendarNotFoundError, StorageError, ValidationError
from pcal.models.calendar import Calendar
from pcal.services.calendar_repository import CalendarRepository


@pytest.fixture
def repository(data_dir):
    return CalendarRepository(data_dir)

def test_save_and_load_round_trip(repository, calendar, data_dir):
    """Test that order and ids survive a save and load."""
    path = repository.save(calendar)

    assert path == data_dir / "personal.json"
    loaded = repository.load("personal")
    assert list(loaded.events) == list(calendar.events)
    assert loaded.events == calendar.events

def test_save_leaves_no_temporary_files(repository, calendar, data_dir):
    repository.save(calendar)
    repository.save(calendar)

    assert [path.name for path in data_dir.iterdir()] == ["personal.json"]

def test_load_missing(repository):
    with pytest.raises(CalendarNotFoundError):
        repository.load("nope")

def test_create_and_exists(repository):
    """Test creating a calendar, then creating it again."""
    assert not repository.exists("work")

    calendar = repository.create("work")
    assert calendar.name == "work"
    assert len(calendar) == 0
    assert repository.exists("work")

    with pytest.raises(CalendarExistsError):
        repository.create("work")

def test_list_names(repository):
    assert repository.list_names() == []
    for name in ("work", "home", "club"):
        repository.create(name)

    assert repository.list_names() == ["club", "home", "work"]

def test_delete(repository):
    repository.create("work")
    repository.delete("work")

    assert not repository.exists("work")
    with pytest.raises(CalendarNotFoundError):
        repository.delete("work")

def test_malformed_file(repository, data_dir):
    data_dir.mkdir(parents=True)
    (data_dir / "broken.json").write_text("{not json", encoding="utf-8")
    (data_dir / "list.json").write_text("[]", encoding="utf-8")

    with pytest.raises(StorageError):
        repository.load("broken")
    with pytest.raises(StorageError):
        repository.load("list")

def test_tampered_event_id(repository, calendar, data_dir):
    """Test that a stored id not matching the event content is rejected."""
    repository.save(calendar)
    path = data_dir / "personal.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    data["events"][0]["title"] = "Changed by hand"
    path.write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(StorageError):
        repository.load("personal")

@pytest.mark.parametrize("name", ["", "../escape", "a/b", ".hidden", "cal.json"])
def test_invalid_names(repository, name):
    with pytest.raises(ValidationError):
        repository.exists(name)

def test_load_or_create_does_not_write(repository, data_dir):
    calendar = repository.load_or_create("fresh")

    assert calendar == Calendar(name="fresh")
    assert not data_dir.exists()
