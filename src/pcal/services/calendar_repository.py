"""
JSON file storage for calendars.

Each calendar lives in ``{data_dir}/{name}.json``.
"""

import json
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path

from pcal.exceptions import CalendarExistsError
from pcal.exceptions import CalendarNotFoundError
from pcal.exceptions import PcalError
from pcal.exceptions import StorageError
from pcal.exceptions import ValidationError
from pcal.exceptions import handle_errors
from pcal.models.calendar import Calendar
from pcal.utils.logging_utils import EnhancedLoggerMixin

_NAME_RE = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')

FORMAT_VERSION = 1


def validate_calendar_name(name: str) -> str:
    """Calendar names become file names, so only plain names are allowed."""
    if not name or not _NAME_RE.match(name) or name.endswith('.json'):
        raise ValidationError(
            f"Invalid calendar name '{name}': use letters, digits, '.', '_' and '-'",
            {"calendar": name}
        )
    return name

class CalendarRepository(EnhancedLoggerMixin):
    """Loads and saves whole calendars as JSON documents."""

    def __init__(self, data_dir: str | Path):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.set_log_context(data_dir=str(self.data_dir))

    def _path(self, name: str) -> Path:
        return self.data_dir / f"{validate_calendar_name(name)}.json"

    def exists(self, name: str) -> bool:
        return self._path(name).exists()

    def list_names(self) -> list[str]:
        """Names of all stored calendars, sorted."""
        if not self.data_dir.is_dir():
            return []
        return sorted(path.stem for path in self.data_dir.glob("*.json") if _NAME_RE.match(path.stem))

    def load(self, name: str) -> Calendar:
        """Read a calendar.

        Raises:
            CalendarNotFoundError: If there is no such calendar
            StorageError: If the file cannot be read or is malformed
        """
        path = self._path(name)
        if not path.exists():
            raise CalendarNotFoundError(name)

        try:
            with open(path, encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Calendar file {path} is not valid JSON", details={"error": str(e)})
        except OSError as e:
            raise StorageError(f"Cannot read calendar file {path}", details={"error": str(e)})

        if not isinstance(data, dict):
            raise StorageError(f"Calendar file {path} must hold an object", details={"calendar": name})
        data.setdefault("name", name)

        try:
            calendar = Calendar.from_dict(data)
        except ValidationError as e:
            raise StorageError(f"Calendar file {path} is malformed: {e.message}", details=e.details)

        self.debug(f"Loaded calendar {name} with {len(calendar)} events")
        return calendar

    def save(self, calendar: Calendar) -> Path:
        """Write a calendar through a temporary file and an atomic rename.

        Raises:
            StorageError: If the file cannot be written
        """
        path = self._path(calendar.name)
        data = {
            "version": FORMAT_VERSION,
            "updated": datetime.now().astimezone().isoformat(),
            **calendar.to_dict(),
        }

        with handle_errors(PcalError, "storage", "save calendar"):
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{calendar.name}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, 'w', encoding='utf-8') as f:
                        json.dump(data, f, indent=2, ensure_ascii=False)
                    os.replace(tmp_name, path)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
            except OSError as e:
                raise StorageError(f"Cannot write calendar file {path}", details={"error": str(e)})

        self.debug(f"Saved calendar {calendar.name} with {len(calendar)} events")
        return path

    def create(self, name: str) -> Calendar:
        """Create an empty calendar.

        Raises:
            CalendarExistsError: If the name is taken
        """
        if self.exists(name):
            raise CalendarExistsError(name)
        calendar = Calendar(name=name)
        self.save(calendar)
        self.info(f"Created calendar {name}")
        return calendar

    def delete(self, name: str) -> None:
        """Raises CalendarNotFoundError if there is no such calendar."""
        path = self._path(name)
        if not path.exists():
            raise CalendarNotFoundError(name)
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Cannot delete calendar file {path}", details={"error": str(e)})
        self.info(f"Deleted calendar {name}")

    def load_or_create(self, name: str) -> Calendar:
        """Existing calendar, or a new empty one that is not written yet."""
        if self.exists(name):
            return self.load(name)
        return Calendar(name=name)
