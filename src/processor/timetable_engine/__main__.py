"""Main module for running the timetable engine."""

import sys

from timetable_engine.main import process_timetable
from timetable_engine.config import RefinerSettings
from timetable_engine.utils import TimetableExtractionError

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m timetable_engine <file_path>")
        print("\nExample: python -m timetable_engine /path/to/timetable.pdf")
        sys.exit(1)

    try:
        process_timetable(sys.argv[1], refiner_settings=RefinerSettings.from_env())
    except TimetableExtractionError as e:
        print(f"\n✗ {e}")
        sys.exit(1)
