"""Optional refinement of heuristic entries by an external language model."""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from .config import ExtractorConfig, RefinerSettings
from .models import PositionedText, ScheduleEntry, TimeSlot
from .utils import RefinementError, normalize_time, time_to_minutes

_FENCE_RE = re.compile(r'```(?:json)?\s*\n?', re.IGNORECASE)
_ARRAY_RE = re.compile(r'\[[\s\S]*\]')


class Refiner(ABC):
    """Proposes corrected entries; never trusted with time values."""

    @abstractmethod
    async def refine(self, entries: List[ScheduleEntry], raw_text: str) -> List[ScheduleEntry]:
        raise NotImplementedError


class PassthroughRefiner(Refiner):
    """Returns the heuristic entries unchanged."""

    async def refine(self, entries: List[ScheduleEntry], raw_text: str) -> List[ScheduleEntry]:
        return list(entries)


class OpenAIRefiner(Refiner):
    """Refines entries through an OpenAI-compatible chat completion endpoint."""

    def __init__(self, settings: RefinerSettings, config: Optional[ExtractorConfig] = None):
        """
        Initialize the refiner.

        Args:
            settings: Credential, model and endpoint of the completion service
            config: Extraction parameters; its time-slot table is quoted in the prompt
        """
        self.settings = settings
        self.config = config or ExtractorConfig()

    def build_messages(self, entries: List[ScheduleEntry], raw_text: str) -> List[dict]:
        periods = ', '.join(
            f"{i}: {slot}" for i, slot in enumerate(self.config.time_slots, 1)
        )
        system = (
            "You are a timetable data validator. You receive:\n"
            "1. Raw text extracted from a PDF timetable\n"
            "2. A preliminary parsed list of timetable entries with CORRECT time slots\n\n"
            "Your job is to ONLY:\n"
            "- Fix incorrect subject/room/teacher/class_name field assignments\n"
            "- Add any MISSING entries that appear in the raw text but were missed\n"
            "- Remove duplicate entries\n"
            "- Ensure class_name contains the section (like \"CSE 6A\")\n"
            "- Teacher codes: SOE_ASK, CDC_PRIYA, HCL_Sonia, etc.\n"
            "- Room codes: HF09, LAB02, HS-08, NG-04, LF03, etc.\n\n"
            "DO NOT CHANGE start_time or end_time values. They are already correct from grid detection.\n"
            f"The time periods are:\n{periods}\n\n"
            "If a cell has MULTIPLE classes (sub-rows), create separate entries with the SAME time slot.\n\n"
            "Return ONLY a JSON array. Each: "
            "{\"day\",\"start_time\",\"end_time\",\"subject\",\"teacher\",\"room\",\"block\",\"class_name\"}\n"
            "No markdown, no explanation."
        )
        user = (
            f"RAW TEXT FROM PDF:\n{raw_text}\n\n---\n\n"
            f"PRELIMINARY PARSED ENTRIES ({len(entries)} found):\n{summarize_entries(entries)}\n\n"
            "Verify, fix field assignments, and add missing entries. "
            "DO NOT change any start_time or end_time. Return COMPLETE JSON array."
        )
        return [
            {'role': 'system', 'content': system},
            {'role': 'user', 'content': user},
        ]

    async def refine(self, entries: List[ScheduleEntry], raw_text: str) -> List[ScheduleEntry]:
        if not self.settings.enabled:
            return list(entries)

        async with AsyncOpenAI(
            api_key=self.settings.api_key,
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_s,
            max_retries=0,
        ) as client:
            response = await client.chat.completions.create(
                model=self.settings.model,
                max_tokens=self.settings.max_tokens,
                messages=self.build_messages(entries, raw_text),
                extra_headers=self.settings.extra_headers or None,
            )

        if not response.choices:
            raise RefinementError("Completion returned no choices")
        content = response.choices[0].message.content or ''
        return parse_refinement_response(content)


def summarize_entries(entries: List[ScheduleEntry]) -> str:
    return '\n'.join(
        f"{i}. {e.day} {e.start_time}-{e.end_time}: {e.subject} | room:{e.room} "
        f"| class:{e.class_name} | teacher:{e.teacher}"
        for i, e in enumerate(entries, 1)
    )


def build_raw_text(texts: List[PositionedText], line_tolerance: float = 3.0) -> str:
    """
    Reconstruct the page as plain text for the completion prompt.

    Runs are grouped into visual lines by y-proximity; each run is tagged
    with its rounded x position so the model can see column alignment.

    Args:
        texts: All text runs of the document
        line_tolerance: Maximum y distance from the line's first run

    Returns:
        Lines top-to-bottom, runs joined with " | "
    """
    ordered = sorted(texts, key=lambda t: (-t.y, t.x))

    lines = []
    current: List[str] = []
    current_y = None
    for item in ordered:
        token = f"[x:{round(item.x)}]{item.text}"
        if current_y is None or abs(item.y - current_y) > line_tolerance:
            if current:
                lines.append(' | '.join(current))
            current = [token]
            current_y = item.y
        else:
            current.append(token)
    if current:
        lines.append(' | '.join(current))

    return '\n'.join(lines)


def _entries_from_json(data) -> List[ScheduleEntry]:
    if isinstance(data, dict):
        data = data.get('timetable') or data.get('data') or []
    if not isinstance(data, list):
        raise RefinementError(f"Expected a JSON array, got {type(data).__name__}")
    return [ScheduleEntry.from_dict(item) for item in data if isinstance(item, dict)]


def parse_refinement_response(content: str) -> List[ScheduleEntry]:
    """
    Parse a completion into entries.

    Accepts a bare JSON array, an object wrapping the array under
    "timetable" or "data", markdown code fences, and arrays embedded in
    surrounding prose.

    Raises:
        RefinementError: If no JSON array can be recovered
    """
    cleaned = _FENCE_RE.sub('', content or '').strip()

    try:
        return _entries_from_json(json.loads(cleaned))
    except json.JSONDecodeError:
        pass

    match = _ARRAY_RE.search(cleaned)
    if not match:
        raise RefinementError("No JSON array found in completion")
    try:
        return _entries_from_json(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        raise RefinementError(f"Malformed JSON array in completion: {e}") from e


def snap_to_time_slot(entry: ScheduleEntry, slots: Sequence[TimeSlot]) -> ScheduleEntry:
    """
    Force an entry's times onto the canonical slot table.

    The start time picks the slot with the same start, otherwise the slot
    whose start is nearest in minutes; the end time always becomes that
    slot's end. An entry whose start cannot be parsed is returned as-is.
    """
    start = normalize_time(entry.start_time)
    if not start or not slots:
        return entry

    for slot in slots:
        if slot.start == start:
            return replace(entry, start_time=slot.start, end_time=slot.end)

    minutes = time_to_minutes(start)
    nearest = min(slots, key=lambda s: abs(time_to_minutes(s.start) - minutes))
    return replace(entry, start_time=nearest.start, end_time=nearest.end)


def accept_refinement(
    original: List[ScheduleEntry],
    refined: List[ScheduleEntry],
    ratio: float = 0.5,
) -> bool:
    """A refined list is trusted only if it kept a reasonable share of the entries."""
    return len(refined) >= len(original) * ratio


async def refine_entries(
    refiner: Refiner,
    entries: List[ScheduleEntry],
    raw_text: str,
    config: Optional[ExtractorConfig] = None,
    timeout_s: Optional[float] = None,
    verbose: bool = False,
) -> List[ScheduleEntry]:
    """
    Run a refiner with a timeout, gate its answer and re-snap its times.

    Any failure (network, timeout, parse, rejected answer) returns the
    heuristic entries unchanged.

    Args:
        refiner: Refinement collaborator
        entries: Heuristic entries
        raw_text: Page reconstruction from build_raw_text
        config: Extraction parameters (time slots, acceptance ratio)
        timeout_s: Seconds to wait for the refiner; None waits indefinitely
        verbose: Print a warning when refinement is skipped

    Returns:
        Refined entries with canonical times, or the heuristic entries
    """
    config = config or ExtractorConfig()

    try:
        refined = await asyncio.wait_for(refiner.refine(list(entries), raw_text), timeout=timeout_s)
        if not isinstance(refined, list) or not all(isinstance(item, ScheduleEntry) for item in refined):
            raise RefinementError(f"Refiner returned {type(refined).__name__}, expected a list of entries")
    except Exception as e:
        if verbose:
            print(f"  ⚠ AI refinement skipped: {type(e).__name__}: {e}")
        return entries

    if not accept_refinement(entries, refined, config.refine_acceptance_ratio):
        if verbose:
            print(f"  ⚠ AI refinement rejected: {len(refined)} entries for {len(entries)} parsed")
        return entries

    return [snap_to_time_slot(entry, config.time_slots) for entry in refined]
