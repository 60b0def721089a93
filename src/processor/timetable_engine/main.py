"""Core execution logic for the timetable engine."""

import asyncio
import json
from pathlib import Path
from typing import Optional, Union

from .config import ExtractorConfig, RefinerSettings
from .models import ExtractionResult
from .parser import TimetableParser
from .refiner import OpenAIRefiner, PassthroughRefiner, Refiner, build_raw_text, refine_entries
from .table_detector import TableDetector
from .text_extractor import TextExtractor
from .utils import (
    NoDayLabelsFoundError,
    NoTextFoundError,
    format_result_summary,
    validate_and_deduplicate,
    validate_file_path,
)

NO_TEXT_MESSAGE = (
    "No text found in PDF. The file may be image-based (scanned). "
    "Please use a digital PDF."
)
NO_DAY_LABELS_MESSAGE = (
    "Could not find day labels (Monday, Tuesday, etc.) in the PDF. "
    "Please ensure the timetable has day headers."
)


def build_refiner(settings: Optional[RefinerSettings], config: Optional[ExtractorConfig] = None) -> Refiner:
    """OpenAIRefiner when a credential is configured, otherwise a passthrough."""
    if settings and settings.enabled:
        return OpenAIRefiner(settings, config)
    return PassthroughRefiner()


async def extract_timetable(
    source: Union[str, Path, bytes],
    config: Optional[ExtractorConfig] = None,
    refiner: Optional[Refiner] = None,
    timeout_s: Optional[float] = None,
    verbose: bool = True,
) -> ExtractionResult:
    """
    Run the full extraction pipeline on one document.

    Args:
        source: Path to a PDF, or the raw PDF bytes
        config: Extraction parameters (default: ExtractorConfig())
        refiner: Optional refinement collaborator; skipped when None
        timeout_s: Seconds allowed for the refinement call
        verbose: Print stage progress

    Returns:
        ExtractionResult with deduplicated entries and per-entry errors

    Raises:
        ExtractionError: If the document cannot be decoded
        NoTextFoundError: If the document holds no text runs
        NoDayLabelsFoundError: If no day labels are found
    """
    config = config or ExtractorConfig()
    log = print if verbose else (lambda *args, **kwargs: None)

    # Step 1: Extract positioned text
    log("\n[1/6] Extracting positioned text...")
    texts = await asyncio.to_thread(TextExtractor().extract, source)
    if not texts:
        raise NoTextFoundError(NO_TEXT_MESSAGE)
    log(f"✓ Extracted {len(texts)} text items")

    # Step 2: Detect grid
    log("\n[2/6] Detecting timetable grid...")
    detector = TableDetector(config)
    rows = detector.detect_rows(texts)
    if not rows:
        raise NoDayLabelsFoundError(NO_DAY_LABELS_MESSAGE)
    log(f"✓ Found {len(rows)} day rows: {', '.join(r.day for r in rows)}")

    columns = detector.detect_columns(texts, rows)
    log(f"✓ Found {len(columns)} time columns")

    # Step 3: Map text to cells
    log("\n[3/6] Mapping text to cells...")
    parser = TimetableParser(config)
    cells = parser.map_cells(texts, rows, columns)
    log(f"✓ Mapped {len(cells)} cells")

    # Step 4: Classify cell contents
    log("\n[4/6] Parsing cells into entries...")
    entries = parser.parse_cells(cells, columns)
    log(f"✓ Parsed {len(entries)} entries from grid")

    # Step 5: Optional AI refinement
    if refiner is not None:
        log("\n[5/6] Refining entries...")
        raw_text = build_raw_text(texts, config.raw_text_line_tolerance)
        entries = await refine_entries(
            refiner, entries, raw_text, config=config, timeout_s=timeout_s, verbose=verbose
        )
        log(f"✓ After refinement: {len(entries)} entries")
    else:
        log("\n[5/6] Refinement disabled")

    # Step 6: Validate and deduplicate
    log("\n[6/6] Validating entries...")
    valid, errors = validate_and_deduplicate(entries)
    log(f"✓ Final: {len(valid)} valid entries, {len(errors)} errors")

    return ExtractionResult(
        entries=valid,
        errors=errors,
        raw_cell_count=len(cells),
        final_entry_count=len(valid),
    )


def process_timetable(
    file_path: str,
    config: Optional[ExtractorConfig] = None,
    refiner_settings: Optional[RefinerSettings] = None,
    verbose: bool = True,
) -> ExtractionResult:
    """
    Process a single timetable file and extract structured data.

    Args:
        file_path: Absolute or relative path to the timetable PDF
        config: Extraction parameters (default: ExtractorConfig())
        refiner_settings: External refinement settings; refinement runs only
            when they carry an API key
        verbose: Print stage progress and a summary

    Returns:
        ExtractionResult containing validated entries

    Raises:
        ValidationError: If the file is missing or not a PDF
        TimetableExtractionError: If the document is rejected
    """
    path = validate_file_path(file_path)
    config = config or ExtractorConfig()

    refiner = None
    timeout_s = None
    if refiner_settings and refiner_settings.enabled:
        refiner = build_refiner(refiner_settings, config)
        timeout_s = refiner_settings.timeout_s

    if verbose:
        print(f"▶ Processing Timetable: {path.name}")

    result = asyncio.run(
        extract_timetable(path, config=config, refiner=refiner, timeout_s=timeout_s, verbose=verbose)
    )

    if verbose:
        print(f"\n{'─'*60}")
        print(format_result_summary(result.entries))
        print(f"{'─'*60}")

    return result


def save_to_json(result: ExtractionResult, output_path: str) -> None:
    """
    Save an extraction result to a JSON file.

    Args:
        result: ExtractionResult to save
        output_path: Path to output JSON file
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
