"""Timetable Engine Package for grid-based PDF timetable extraction."""

__version__ = "0.2.0"

from .main import extract_timetable, process_timetable, save_to_json, build_refiner
from .models import (
    Cell,
    ColumnBand,
    ExtractionResult,
    PositionedText,
    RowBand,
    ScheduleEntry,
    TimeSlot,
    Weekday,
)
from .config import DEFAULT_TIME_SLOTS, ExtractorConfig, RefinerSettings, load_config
from .text_extractor import TextExtractor
from .table_detector import TableDetector
from .parser import TimetableParser
from .classifier import DEFAULT_RULES, FieldClassifier, FieldRule
from .refiner import OpenAIRefiner, PassthroughRefiner, Refiner
from .utils import (
    ExtractionError,
    NoDayLabelsFoundError,
    NoTextFoundError,
    TimetableExtractionError,
    ValidationError,
    is_supported_file,
    validate_and_deduplicate,
)

__all__ = [
    'extract_timetable',
    'process_timetable',
    'save_to_json',
    'build_refiner',
    'Cell',
    'ColumnBand',
    'ExtractionResult',
    'PositionedText',
    'RowBand',
    'ScheduleEntry',
    'TimeSlot',
    'Weekday',
    'DEFAULT_TIME_SLOTS',
    'ExtractorConfig',
    'RefinerSettings',
    'load_config',
    'TextExtractor',
    'TableDetector',
    'TimetableParser',
    'DEFAULT_RULES',
    'FieldClassifier',
    'FieldRule',
    'OpenAIRefiner',
    'PassthroughRefiner',
    'Refiner',
    'ExtractionError',
    'NoDayLabelsFoundError',
    'NoTextFoundError',
    'TimetableExtractionError',
    'ValidationError',
    'is_supported_file',
    'validate_and_deduplicate',
]
