"""Extractor configuration: time-slot table and geometric thresholds."""

import json
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Union

from .models import TimeSlot
from .utils import ConfigError

# Institution period table. Period "N." in a header maps to entry N-1.
DEFAULT_TIME_SLOTS = (
    TimeSlot('08:10', '09:00'),
    TimeSlot('09:00', '09:50'),
    TimeSlot('09:50', '10:40'),
    TimeSlot('10:40', '11:30'),
    TimeSlot('11:30', '12:20'),
    TimeSlot('12:20', '13:10'),
    TimeSlot('13:10', '14:00'),
    TimeSlot('14:00', '14:50'),
    TimeSlot('14:50', '15:40'),
    TimeSlot('15:40', '16:30'),
    TimeSlot('16:30', '17:20'),
)

# Page furniture printed by timetable generators and institution letterheads
DEFAULT_NOISE_PATTERNS = (
    r'^(timetable generated|asc timetables|page \d)',
    r'^(manav rachna|university|sector|faridabad|declared|great place)',
)

_HHMM_RE = re.compile(r'^\d{2}:\d{2}$')


@dataclass(frozen=True)
class ExtractorConfig:
    """
    Grid extraction parameters.

    The y/x thresholds were tuned on one generator's layout (aSc Timetables
    exports); other institutions' documents may need recalibration.
    """
    time_slots: tuple = DEFAULT_TIME_SLOTS

    # Row detection
    day_dedup_tolerance: float = 10.0
    row_top_padding: float = 35.0

    # Column detection
    min_period_markers: int = 3
    min_time_anchors: int = 2
    anchor_dedup_distance: float = 25.0
    column_left_shift: float = 8.0
    day_column_width: float = 80.0

    # Cell mapping
    label_gutter_tolerance: float = 10.0
    default_label_width: float = 50.0
    noise_patterns: tuple = DEFAULT_NOISE_PATTERNS

    # Cell classification
    subgroup_gap: float = 12.0
    subgroup_min_size: int = 2

    # Refinement
    raw_text_line_tolerance: float = 3.0
    refine_acceptance_ratio: float = 0.5

    def validate(self) -> 'ExtractorConfig':
        if not self.time_slots:
            raise ConfigError("time_slots must not be empty")
        for slot in self.time_slots:
            if not isinstance(slot, TimeSlot):
                raise ConfigError(f"time_slots entries must be TimeSlot, got {type(slot).__name__}")
            if not _HHMM_RE.match(slot.start) or not _HHMM_RE.match(slot.end):
                raise ConfigError(f"time slot must use zero-padded HH:MM: {slot}")
        for name in ('day_dedup_tolerance', 'row_top_padding', 'anchor_dedup_distance',
                     'column_left_shift', 'day_column_width', 'label_gutter_tolerance',
                     'default_label_width', 'subgroup_gap', 'raw_text_line_tolerance'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        if self.min_period_markers < 1 or self.min_time_anchors < 1:
            raise ConfigError("min_period_markers and min_time_anchors must be >= 1")
        if self.subgroup_min_size < 1:
            raise ConfigError("subgroup_min_size must be >= 1")
        if not (0.0 <= self.refine_acceptance_ratio <= 1.0):
            raise ConfigError("refine_acceptance_ratio must be within [0, 1]")
        for pattern in self.noise_patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"Invalid noise pattern {pattern!r}: {e}")
        return self

    def slot_for_period(self, period_number: int) -> Optional[TimeSlot]:
        """Time slot for a 1-based period number, or None if out of range."""
        if 1 <= period_number <= len(self.time_slots):
            return self.time_slots[period_number - 1]
        return None

    def slot_by_start(self, start: str) -> Optional[TimeSlot]:
        for slot in self.time_slots:
            if slot.start == start:
                return slot
        return None


def _parse_slot(raw) -> TimeSlot:
    if isinstance(raw, dict):
        return TimeSlot(str(raw.get('start', '')), str(raw.get('end', '')))
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        return TimeSlot(str(raw[0]), str(raw[1]))
    raise ConfigError(f"Cannot read time slot from {raw!r}")


def config_from_dict(data: dict) -> ExtractorConfig:
    """Build a validated config from a plain mapping (e.g. parsed JSON)."""
    known = {f.name for f in fields(ExtractorConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    values = dict(data)
    if 'time_slots' in values:
        values['time_slots'] = tuple(_parse_slot(raw) for raw in values['time_slots'])
    if 'noise_patterns' in values:
        values['noise_patterns'] = tuple(values['noise_patterns'])
    return ExtractorConfig(**values).validate()


def load_config(path: Union[str, Path]) -> ExtractorConfig:
    """
    Load extractor configuration from a JSON file.

    Args:
        path: JSON file with any ExtractorConfig field; time_slots given as
            [start, end] pairs or {"start": ..., "end": ...} objects

    Returns:
        Validated ExtractorConfig

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")
    return config_from_dict(data)


@dataclass(frozen=True)
class RefinerSettings:
    """Connection settings for the external text-completion service."""
    api_key: str = ""
    model: str = "google/gemini-2.0-flash-001"
    base_url: str = "https://openrouter.ai/api/v1"
    timeout_s: float = 60.0
    max_tokens: int = 8192
    extra_headers: dict = field(default_factory=dict)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, environ=None) -> 'RefinerSettings':
        environ = os.environ if environ is None else environ
        timeout = environ.get('TIMETABLE_AI_TIMEOUT')
        try:
            timeout_s = float(timeout) if timeout else cls.timeout_s
        except ValueError:
            raise ConfigError(f"TIMETABLE_AI_TIMEOUT must be a number, got {timeout!r}")
        return cls(
            api_key=environ.get('OPENROUTER_API_KEY', ''),
            model=environ.get('TIMETABLE_AI_MODEL') or cls.model,
            base_url=environ.get('TIMETABLE_AI_BASE_URL') or cls.base_url,
            timeout_s=timeout_s,
        )
