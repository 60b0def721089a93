"""Command-line entry point for the timetable engine."""

import json
import sys
from dataclasses import replace
from pathlib import Path

# Add parent directory to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.exc import SQLAlchemyError

from timetable_engine import process_timetable, save_to_json, is_supported_file
from timetable_engine.config import ConfigError, ExtractorConfig, RefinerSettings, load_config
from timetable_engine.database import get_db_engine, create_tables, save_result
from timetable_engine.utils import TimetableExtractionError


def _option_value(name: str):
    """Value following a --flag on the command line, or None."""
    if name not in sys.argv:
        return None
    idx = sys.argv.index(name)
    if idx + 1 < len(sys.argv):
        return sys.argv[idx + 1]
    return None


def print_usage() -> None:
    print("="*70)
    print("TIMETABLE ENGINE - Command Line Interface")
    print("="*70)
    print("\nUsage: python scripts/run.py <file_path> [options]")
    print("\nArguments:")
    print("  file_path    Path to timetable PDF (required)")
    print("\nOptions:")
    print("  --output     Specify output JSON file path")
    print("  --config     JSON file overriding time slots and thresholds")
    print("  --no-ai      Skip AI refinement even if OPENROUTER_API_KEY is set")
    print("  --timeout    Seconds allowed for AI refinement")
    print("  --db         SQLite database path to persist entries")
    print("\nSupported formats: PDF (text-based, not scanned)")
    print("\nExamples:")
    print("  python scripts/run.py timetable.pdf")
    print("  python scripts/run.py timetable.pdf --output results.json --no-ai")
    print("  python scripts/run.py timetable.pdf --db ../../db/timetable.sqlite")


def main():
    """Main entry point for command-line execution."""

    if len(sys.argv) < 2 or sys.argv[1].startswith('--'):
        print_usage()
        sys.exit(1)

    file_path = sys.argv[1]
    output_path = _option_value('--output') or Path(file_path).stem + "_extracted.json"
    config_path = _option_value('--config')
    db_path = _option_value('--db')

    # Validate file
    if not is_supported_file(file_path):
        print("\n✗ Error: Unsupported file format")
        print("  Supported formats: PDF")
        sys.exit(1)

    try:
        config = load_config(config_path) if config_path else ExtractorConfig()

        settings = RefinerSettings() if '--no-ai' in sys.argv else RefinerSettings.from_env()
        timeout = _option_value('--timeout')
        if timeout:
            settings = replace(settings, timeout_s=float(timeout))
    except (ConfigError, ValueError) as e:
        print(f"\n✗ Configuration Error: {e}")
        sys.exit(1)

    try:
        result = process_timetable(file_path, config=config, refiner_settings=settings)
    except TimetableExtractionError as e:
        print(f"\n✗ Extraction Error: {e}")
        sys.exit(1)

    if result.errors:
        print("\n" + "="*70)
        print("VALIDATION ERRORS")
        print("="*70)
        for error in result.errors:
            print(f"⚠ {error}")

    print("\n" + "="*70)
    print("SAVING RESULTS")
    print("="*70)
    save_to_json(result, output_path)
    print(f"✓ Saved to: {output_path}")

    if db_path:
        try:
            engine = get_db_engine(db_path)
            create_tables(engine)
            source_id = save_result(engine, str(Path(file_path).resolve()), result)
        except SQLAlchemyError as e:
            print(f"\n✗ Database Error: {e}")
            sys.exit(1)
        # Print result JSON so callers can parse the source id
        print(json.dumps({"timetable_source_id": source_id}))

    print("\n✓ Processing completed successfully!")


if __name__ == "__main__":
    main()
