"""Exceptions, input checks and entry validation for the timetable engine."""

import re
from pathlib import Path
from typing import List, Optional, Tuple

from .models import ScheduleEntry, Weekday

# Supported file extensions (text-bearing documents only)
SUPPORTED_EXTENSIONS = {'.pdf'}

_TIME_RE = re.compile(r'(\d{1,2}):(\d{2})')


class TimetableExtractionError(Exception):
    """Base class for errors that abort timetable extraction."""
    pass


class ExtractionError(TimetableExtractionError):
    """The document could not be decoded."""
    pass


class NoTextFoundError(TimetableExtractionError):
    """The document decoded but holds no text runs."""
    pass


class NoDayLabelsFoundError(TimetableExtractionError):
    """No day-name labels were found, so the grid cannot be recovered."""
    pass


class ValidationError(TimetableExtractionError):
    """Custom exception for input validation errors."""
    pass


class ConfigError(ValueError):
    """Invalid extractor configuration."""
    pass


class RefinementError(Exception):
    """The external refinement service gave an unusable answer."""
    pass


def validate_file_path(file_path: str, supported_extensions: set = SUPPORTED_EXTENSIONS) -> Path:
    """
    Validate file path and extension.

    Args:
        file_path: Path to validate
        supported_extensions: Set of supported file extensions

    Returns:
        Validated Path object

    Raises:
        ValidationError: If validation fails
    """
    try:
        path = Path(file_path)
    except TypeError as e:
        raise ValidationError(f"Invalid file path: {e}")

    if not path.exists():
        raise ValidationError(f"File not found: {path}")

    if not path.is_file():
        raise ValidationError(f"Path is not a file: {path}")

    if path.suffix.lower() not in supported_extensions:
        raise ValidationError(
            f"Unsupported file format: {path.suffix}. "
            f"Supported formats: {', '.join(sorted(supported_extensions))}"
        )

    return path


def is_supported_file(file_path: str) -> bool:
    """
    Quick check if file is supported.

    Args:
        file_path: Path to check

    Returns:
        True if file extension is supported
    """
    try:
        path = Path(file_path)
        return path.suffix.lower() in SUPPORTED_EXTENSIONS
    except TypeError:
        return False


def sanitize_text(text: str) -> str:
    """
    Collapse whitespace in a text run and drop NUL characters.

    Args:
        text: Raw run text from the PDF

    Returns:
        Cleaned text; empty for whitespace-only runs
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.replace("\x00", "")).strip()


def normalize_time(value: str) -> str:
    """
    Normalize a time string to zero-padded HH:MM.

    Args:
        value: Time text such as "9:00", "09:00" or "9:00 AM"

    Returns:
        Normalized time, or an empty string when no time can be parsed
    """
    if not value or not isinstance(value, str):
        return ""
    match = _TIME_RE.search(value)
    if not match:
        return ""
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return ""
    return f"{hours:02d}:{minutes:02d}"


def time_to_minutes(value: str) -> Optional[int]:
    """Minutes since midnight for an HH:MM string, or None."""
    normalized = normalize_time(value)
    if not normalized:
        return None
    hours, minutes = normalized.split(':')
    return int(hours) * 60 + int(minutes)


def _unique(values: List[str]) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def merge_slot_entries(entries: List[ScheduleEntry]) -> ScheduleEntry:
    """
    Merge entries that share one (day, start_time, end_time) slot.

    Simultaneous classes (e.g. lab sections) keep every distinct subject,
    teacher, room, block and class name.
    """
    first = entries[0]
    if len(entries) == 1:
        return first

    teachers = []
    for entry in entries:
        teachers.extend(t.strip() for t in entry.teacher.split(','))

    return ScheduleEntry(
        day=first.day,
        start_time=first.start_time,
        end_time=first.end_time,
        subject=' / '.join(_unique([e.subject for e in entries])),
        teacher=', '.join(_unique(teachers)),
        room=', '.join(_unique([e.room for e in entries])),
        block=', '.join(_unique([e.block for e in entries])),
        class_name=', '.join(_unique([e.class_name for e in entries])),
    )


def validate_and_deduplicate(entries: List[ScheduleEntry]) -> Tuple[List[ScheduleEntry], List[str]]:
    """
    Validate entries and merge those that land on the same slot.

    Entries with an unknown day or unparseable times are dropped and
    reported. Entries without a meaningful subject are dropped silently.

    Args:
        entries: Entries to validate (not modified)

    Returns:
        Tuple of (valid entries with unique slot keys, error messages)
    """
    errors: List[str] = []
    groups: dict = {}

    for entry in entries:
        day = Weekday.fuzzy_match(entry.day)
        if day is None:
            errors.append(f'Invalid day "{entry.day}" for subject "{entry.subject}"')
            continue

        start_time = normalize_time(entry.start_time)
        end_time = normalize_time(entry.end_time)
        if not start_time or not end_time:
            errors.append(f"Invalid time for {day.value} {entry.subject}")
            continue

        subject = entry.subject.strip()
        if len(subject) < 2:
            continue

        normalized = ScheduleEntry(
            day=day.value,
            start_time=start_time,
            end_time=end_time,
            subject=subject,
            teacher=entry.teacher.strip(),
            room=entry.room.strip(),
            block=entry.block.strip(),
            class_name=entry.class_name.strip(),
        )
        groups.setdefault(normalized.slot_key, []).append(normalized)

    valid = [merge_slot_entries(slot_entries) for slot_entries in groups.values()]
    return valid, errors


def format_result_summary(entries: List[ScheduleEntry], limit: int = 3) -> str:
    """
    Generate a short per-day summary of extracted entries.

    Args:
        entries: Entries to summarize
        limit: Number of sample entries to show

    Returns:
        Formatted report string
    """
    if not entries:
        return "No entries extracted"

    lines = [f"Total Entries: {len(entries)}"]
    for day in Weekday:
        count = sum(1 for e in entries if e.day == day.value)
        if count:
            lines.append(f"  {day.value}: {count} entries")

    lines.append("Sample Entries:")
    for i, entry in enumerate(entries[:limit], 1):
        subject = entry.subject[:40] + "..." if len(entry.subject) > 40 else entry.subject
        lines.append(f"  {i}. {entry.day} | {entry.start_time}-{entry.end_time} | {subject}")
    if len(entries) > limit:
        lines.append(f"  ... and {len(entries) - limit} more entries")

    return '\n'.join(lines)
