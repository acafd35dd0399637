"""Tests for CLI argument parsing and the command handlers."""

import json

import pytest

from pcal.cli import create_parser, main
from pcal.services.calendar_repository import CalendarRepository


def test_global_options():
    """Test global CLI options."""
    parser = create_parser()

    args = parser.parse_args(['-c', 'work', '--config-dir', '/tmp/pcal', '-v', '--log-file', 'test.log', 'list'])
    assert args.calendar == 'work'
    assert args.config_dir == '/tmp/pcal'
    assert args.verbose is True
    assert args.log_file == 'test.log'

def test_add_command():
    """Test add command arguments."""
    parser = create_parser()

    args = parser.parse_args([
        'add', 'Team review', '2024-06-15 14:00',
        '--duration', '90',
        '--location', 'Room 4',
        '--freq', 'weekly',
        '--interval', '2',
        '--count', '5'
    ])
    assert args.command == 'add'
    assert args.command_key == 'add'
    assert args.title == 'Team review'
    assert args.start == '2024-06-15 14:00'
    assert args.duration == 90
    assert args.freq == 'WEEKLY'
    assert args.interval == 2
    assert args.count == 5
    assert args.overwrite is False

def test_list_command():
    """Test list command filters."""
    parser = create_parser()

    args = parser.parse_args(['list'])
    assert not (args.today or args.week or args.month)
    assert args.from_date is None and args.until_date is None
    assert args.format == 'text'

    args = parser.parse_args(['list', '--from', '2024-06-01', '--until', '2024-06-30', '--format', 'json'])
    assert args.from_date == '2024-06-01'
    assert args.until_date == '2024-06-30'
    assert args.format == 'json'

def test_calendar_subcommands():
    parser = create_parser()

    args = parser.parse_args(['calendar', 'list'])
    assert args.command_key == 'calendar list'
    args = parser.parse_args(['calendar', 'create', 'work'])
    assert args.command_key == 'calendar create'
    assert args.name == 'work'

def test_remove_command():
    parser = create_parser()

    assert parser.parse_args(['remove', 'abc123']).id == 'abc123'
    args = parser.parse_args(['remove', '--all'])
    assert args.id is None
    assert args.all is True

def test_invalid_choice_exits():
    with pytest.raises(SystemExit):
        create_parser().parse_args(['add', 'Title', '2024-06-15 14:00', '--freq', 'hourly'])


@pytest.fixture
def run(config_dir, data_dir, monkeypatch, capsys):
    """Run the CLI against temporary directories and return (exit code, stdout)."""
    monkeypatch.setenv("PCAL_DATA_DIR", str(data_dir))

    def _run(*argv):
        code = main(['--config-dir', str(config_dir), *argv])
        return code, capsys.readouterr().out
    return _run

def listed(run, *argv):
    code, out = run('list', '--from', '2099-01-01', '--until', '2099-12-31', '--format', 'json', *argv)
    assert code == 0
    return json.loads(out)

def test_add_list_show_remove(run, data_dir):
    """Test the main event workflow end to end."""
    code, out = run('add', 'Dentist', '2099-01-05 10:00', '--duration', '30', '--location', 'Main St')
    assert code == 0
    assert out.startswith('Added event ')
    assert (data_dir / 'calendar.json').exists()

    events = listed(run)
    assert [event['title'] for event in events] == ['Dentist']
    event_id = events[0]['id']

    code, out = run('show', event_id[:6], '--format', 'json')
    assert code == 0
    details = json.loads(out)
    assert details['location'] == 'Main St'
    assert details['next_occurrence'] == '2099-01-05T10:00:00+00:00'

    code, out = run('remove', event_id)
    assert code == 0
    assert listed(run) == []

    code, _ = run('remove', event_id)
    assert code == 1

def test_add_duplicate_fails(run):
    assert run('add', 'Dentist', '2099-01-05 10:00')[0] == 0
    assert run('add', 'Dentist', '2099-01-05 10:00')[0] == 1
    assert run('add', 'Dentist', '2099-01-05 10:00', '--overwrite')[0] == 0

def test_recurring_event_listing(run):
    """Test that each occurrence of a recurring event is listed."""
    run('add', 'Rent', '2099-01-31 08:00', '--freq', 'monthly', '--count', '3')

    events = listed(run)
    assert [event['start'] for event in events] == [
        '2099-01-31T08:00:00+00:00',
        '2099-02-28T08:00:00+00:00',
        '2099-03-31T08:00:00+00:00',
    ]

def test_text_listing(run):
    run('add', 'Dentist', '2099-01-05 10:00', '--location', 'Main St')

    code, out = run('list', '--from', '2099-01-01')
    assert code == 0
    assert 'Dentist' in out
    assert '2099-01-05 10:00' in out
    assert 'Main St' in out

    code, out = run('list', '--today')
    assert code == 0
    assert out.startswith('No events')

def test_conflicting_filters_fail(run):
    assert run('list', '--today', '--week')[0] == 1
    assert run('list', '--from', 'someday')[0] == 1

def test_edit_changes_id(run):
    run('add', 'Dentist', '2099-01-05 10:00')
    old_id = listed(run)[0]['id']

    code, out = run('edit', old_id, '--title', 'Orthodontist')
    assert code == 0
    assert f'(was {old_id})' in out

    events = listed(run)
    assert [event['title'] for event in events] == ['Orthodontist']
    assert events[0]['id'] != old_id

def test_import_export(run, tmp_path):
    """Test importing an .ics file with one bad event and exporting it again."""
    ics = tmp_path / 'in.ics'
    ics.write_text(
        "BEGIN:VCALENDAR\r\nVERSION:2.0\r\n"
        "BEGIN:VEVENT\r\nSUMMARY:Concert\r\nDTSTART:20990301T190000Z\r\nDTEND:20990301T220000Z\r\nEND:VEVENT\r\n"
        "BEGIN:VEVENT\r\nSUMMARY:Broken\r\nEND:VEVENT\r\n"
        "END:VCALENDAR\r\n",
        encoding='utf-8'
    )

    code, out = run('import', str(ics))
    assert code == 1
    assert 'Imported 1 events' in out
    assert [event['title'] for event in listed(run)] == ['Concert']

    exported = tmp_path / 'out.ics'
    code, _ = run('export', '--output', str(exported))
    assert code == 0
    text = exported.read_text(encoding='utf-8')
    assert 'SUMMARY:Concert' in text
    assert 'DTSTART:20990301T190000Z' in text

    code, out = run('export')
    assert code == 0
    assert 'BEGIN:VCALENDAR' in out

def test_import_missing_file(run, tmp_path):
    assert run('import', str(tmp_path / 'missing.ics'))[0] == 1

def test_remove_all(run):
    run('add', 'One', '2099-01-05 10:00')
    run('add', 'Two', '2099-01-06 10:00')

    code, out = run('remove', '--all')
    assert code == 0
    assert 'Removed 2 events' in out
    assert run('remove')[0] == 1

def test_calendar_management(run, data_dir):
    """Test creating, using, listing and deleting calendars."""
    assert run('calendar', 'create', 'work')[0] == 0
    assert run('calendar', 'create', 'work')[0] == 1

    assert run('-c', 'work', 'add', 'Standup', '2099-01-05 09:00')[0] == 0
    assert run('-c', 'missing', 'add', 'Standup', '2099-01-05 09:00')[0] == 1

    code, out = run('calendar', 'list', '--format', 'json')
    assert code == 0
    assert [(c['name'], c['events']) for c in json.loads(out)] == [('work', 1)]

    assert run('calendar', 'delete', 'work')[0] == 0
    assert not CalendarRepository(data_dir).exists('work')
    assert run('calendar', 'delete', 'work')[0] == 1

def test_bad_config_fails(run, config_dir):
    (config_dir / 'config.yaml').write_text('timezone: Mars/Olympus\n', encoding='utf-8')
    assert run('list')[0] == 1

def test_configured_timezone_applies_to_input(run, config_dir):
    (config_dir / 'config.yaml').write_text('timezone: Europe/Helsinki\n', encoding='utf-8')
    run('add', 'Sauna', '2099-06-15 18:00')

    events = listed(run)
    assert events[0]['start'] == '2099-06-15T18:00:00+03:00'
