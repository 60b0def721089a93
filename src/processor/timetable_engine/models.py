"""Data models for timetable grid extraction."""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


class Weekday(Enum):
    """Enumeration for days of the week."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_string(cls, day_str: str) -> Optional['Weekday']:
        """
        Match a full day name, ignoring case. Abbreviations are not accepted.

        Args:
            day_str: Text to match (e.g., "monday", "MONDAY")

        Returns:
            Weekday enum or None if not matched
        """
        if not day_str or not isinstance(day_str, str):
            return None

        day_str = day_str.strip().lower()
        for day in cls:
            if day.value.lower() == day_str:
                return day
        return None

    @classmethod
    def fuzzy_match(cls, day_str: str) -> Optional['Weekday']:
        """
        Map a misspelled or abbreviated day to its canonical weekday.

        The first three lowercase characters decide the match, so "Mon",
        "monday" and "Mondya" all resolve to MONDAY.

        Args:
            day_str: String representation of weekday

        Returns:
            Weekday enum or None if not matched
        """
        exact = cls.from_string(day_str)
        if exact:
            return exact

        if not day_str or not isinstance(day_str, str):
            return None

        prefix = day_str.strip().lower()[:3]
        if not prefix:
            return None

        for day in cls:
            if day.value.lower().startswith(prefix):
                return day
        return None

    @classmethod
    def names(cls) -> list[str]:
        return [day.value for day in cls]


@dataclass(frozen=True)
class TimeSlot:
    """A canonical period of the institution's day."""
    start: str  # HH:MM
    end: str  # HH:MM

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class PositionedText:
    """A single text run with page coordinates (y increases upward)."""
    text: str
    x: float
    y: float
    width: float = 0.0
    font_size: float = 0.0


@dataclass(frozen=True)
class RowBand:
    """Vertical band of the grid belonging to one day."""
    day: str
    top: float
    bottom: float = -math.inf

    def contains(self, y: float) -> bool:
        return self.bottom < y <= self.top


@dataclass(frozen=True)
class ColumnBand:
    """Horizontal band of the grid belonging to one period."""
    left: float
    right: float
    period_index: int
    start_time: str
    end_time: str

    def contains(self, x: float) -> bool:
        return self.left <= x < self.right


@dataclass
class Cell:
    """Text runs that fall inside one (day, period) band pair."""
    day: str
    period_index: int
    texts: list[PositionedText] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, int]:
        return (self.day, self.period_index)


ENTRY_FIELDS = (
    'day', 'start_time', 'end_time', 'subject',
    'teacher', 'room', 'block', 'class_name',
)


@dataclass
class ScheduleEntry:
    """Represents a single structured timetable record."""
    day: str
    start_time: str
    end_time: str
    subject: str = ""
    teacher: str = ""
    room: str = ""
    block: str = ""
    class_name: str = ""

    @property
    def slot_key(self) -> tuple[str, str, str]:
        return (self.day, self.start_time, self.end_time)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'ScheduleEntry':
        """
        Build an entry from a loosely shaped mapping.

        Missing or null values become empty strings and non-string values are
        coerced, so JSON coming back from an external service never breaks
        construction.
        """
        values = {}
        for name in ENTRY_FIELDS:
            value = data.get(name) if isinstance(data, dict) else None
            values[name] = "" if value is None else str(value).strip()
        return cls(**values)

    def __str__(self) -> str:
        return f"{self.day} {self.start_time}-{self.end_time}: {self.subject}"


@dataclass
class ExtractionResult:
    """Represents the complete output of one pipeline run."""
    entries: list[ScheduleEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    raw_cell_count: int = 0
    final_entry_count: int = 0

    def entries_by_day(self, day: str) -> list[ScheduleEntry]:
        """Get all entries for a specific day."""
        return [entry for entry in self.entries if entry.day == day]

    def to_dict(self) -> dict:
        return {
            'entries': [entry.to_dict() for entry in self.entries],
            'errors': list(self.errors),
            'rawCellCount': self.raw_cell_count,
            'finalEntryCount': self.final_entry_count,
        }

    def __len__(self) -> int:
        return len(self.entries)
