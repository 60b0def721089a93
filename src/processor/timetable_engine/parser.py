"""Parser that maps positioned text into grid cells and schedule entries."""

import re
from typing import Dict, List, Optional, Tuple

from .classifier import FieldClassifier
from .config import ExtractorConfig
from .models import Cell, ColumnBand, PositionedText, RowBand, ScheduleEntry, Weekday
from .table_detector import PERIOD_MARKER_RE

_TIME_RANGE_RE = re.compile(r'^\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}$')
_SINGLE_TIME_RE = re.compile(r'^\d{1,2}:\d{2}$')


def reading_order(texts: List[PositionedText]) -> List[PositionedText]:
    """Top-to-bottom, then left-to-right."""
    return sorted(texts, key=lambda t: (-t.y, t.x, t.text))


class TimetableParser:
    """Maps text runs into grid cells and classifies each cell's contents."""

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        classifier: Optional[FieldClassifier] = None,
    ):
        """
        Initialize the parser.

        Args:
            config: Extraction parameters (default: ExtractorConfig())
            classifier: Token classifier (default: FieldClassifier with built-in rules)
        """
        self.config = config or ExtractorConfig()
        self.classifier = classifier or FieldClassifier()
        self._noise_res = [re.compile(p, re.IGNORECASE) for p in self.config.noise_patterns]

    def is_noise_text(self, text: str) -> bool:
        """
        Check whether a run is page furniture rather than cell content.

        Args:
            text: Run text

        Returns:
            True for single characters, generator/letterhead lines, period
            headers and bare time strings
        """
        if len(text) <= 1:
            return True
        if any(pattern.search(text) for pattern in self._noise_res):
            return True
        if PERIOD_MARKER_RE.match(text):
            return True
        if _TIME_RANGE_RE.match(text) or _SINGLE_TIME_RE.match(text):
            return True
        return False

    def label_gutter_edge(self, texts: List[PositionedText]) -> float:
        """
        X position left of which runs belong to the day-label column.

        Args:
            texts: All text runs of the document

        Returns:
            Rightmost day-label edge minus the gutter tolerance
        """
        edges = [
            t.x + (t.width or self.config.default_label_width)
            for t in texts
            if Weekday.from_string(t.text)
        ]
        return max(edges, default=0.0) - self.config.label_gutter_tolerance

    def map_cells(
        self,
        texts: List[PositionedText],
        rows: List[RowBand],
        columns: List[ColumnBand],
    ) -> List[Cell]:
        """
        Assign each data run to the (day, period) band pair it falls inside.

        Args:
            texts: All text runs of the document
            rows: Row bands, top of page first
            columns: Column bands, left to right

        Returns:
            Populated cells ordered by row then period; runs outside every
            band pair are dropped
        """
        if not rows or not columns:
            return []

        header_y = rows[0].top
        gutter = self.label_gutter_edge(texts)
        cells: Dict[Tuple[str, int], Cell] = {}

        for item in texts:
            if item.y > header_y:
                continue
            if Weekday.from_string(item.text):
                continue
            if item.x < gutter:
                continue
            if self.is_noise_text(item.text):
                continue

            row = next((r for r in rows if r.contains(item.y)), None)
            col = next((c for c in columns if c.contains(item.x)), None)
            if row is None or col is None:
                continue

            key = (row.day, col.period_index)
            if key not in cells:
                cells[key] = Cell(day=row.day, period_index=col.period_index)
            cells[key].texts.append(item)

        row_order = {r.day: i for i, r in reversed(list(enumerate(rows)))}
        return sorted(cells.values(), key=lambda c: (row_order[c.day], c.period_index))

    def split_subgroups(self, texts: List[PositionedText]) -> List[List[PositionedText]]:
        """
        Split a cell's runs into clusters separated by vertical gaps.

        A new cluster starts only when the gap exceeds the configured
        threshold and the current cluster already holds enough runs, so a
        two-line class name is not broken apart.

        Args:
            texts: Runs of one cell in reading order

        Returns:
            List of clusters, each in reading order
        """
        if not texts:
            return []

        groups = []
        current = [texts[0]]
        for prev, item in zip(texts, texts[1:]):
            gap = abs(prev.y - item.y)
            if gap > self.config.subgroup_gap and len(current) >= self.config.subgroup_min_size:
                groups.append(current)
                current = [item]
            else:
                current.append(item)
        groups.append(current)

        return groups

    def parse_cell(self, cell: Cell, columns: List[ColumnBand]) -> List[ScheduleEntry]:
        """
        Classify the contents of one cell into one or more entries.

        Args:
            cell: Populated grid cell
            columns: Column bands (supply the cell's time slot)

        Returns:
            List of entries sharing the cell's day and time slot
        """
        col = next((c for c in columns if c.period_index == cell.period_index), None)
        if col is None or not cell.texts:
            return []

        ordered = reading_order(cell.texts)

        entries = []
        for group in self.split_subgroups(ordered):
            entry = self.classifier.classify(
                [t.text for t in group], cell.day, col.start_time, col.end_time
            )
            if entry:
                entries.append(entry)

        # Gap splitting can strand the subject in its own short group; retry flat
        if not entries:
            entry = self.classifier.classify(
                [t.text for t in ordered], cell.day, col.start_time, col.end_time
            )
            if entry:
                entries.append(entry)

        return entries

    def parse_cells(self, cells: List[Cell], columns: List[ColumnBand]) -> List[ScheduleEntry]:
        entries = []
        for cell in cells:
            entries.extend(self.parse_cell(cell, columns))
        return entries
