"""Timetable grid detection from positioned text."""

import math
import re
from typing import List, Optional, Tuple

from .config import ExtractorConfig
from .models import ColumnBand, PositionedText, RowBand, Weekday

PERIOD_MARKER_RE = re.compile(r'^\d{1,2}\.$')
TIME_ANCHOR_RE = re.compile(r'\d{1,2}:\d{2}')

_DAY_ORDER = {day.value: idx for idx, day in enumerate(Weekday)}


class TableDetector:
    """Infers day rows and period columns of a timetable grid."""

    def __init__(self, config: Optional[ExtractorConfig] = None):
        """
        Initialize table detector.

        Args:
            config: Extraction parameters (default: ExtractorConfig())
        """
        self.config = config or ExtractorConfig()

    def detect_grid(self, texts: List[PositionedText]) -> Tuple[List[RowBand], List[ColumnBand]]:
        """
        Detect both axes of the grid.

        Returns:
            Tuple of (row bands, column bands); both empty when no day labels exist
        """
        rows = self.detect_rows(texts)
        if not rows:
            return [], []
        return rows, self.detect_columns(texts, rows)

    def detect_rows(self, texts: List[PositionedText]) -> List[RowBand]:
        """
        Build one vertical band per day label, top of page first.

        Args:
            texts: All text runs of the document

        Returns:
            Non-overlapping row bands in descending-y order; empty if no
            day-name labels were found
        """
        labels = []
        for item in texts:
            day = Weekday.from_string(item.text)
            if day:
                labels.append((day.value, item.y, item.x))

        if not labels:
            return []

        # Top of page (higher y) first; ties broken so input order never matters
        labels.sort(key=lambda d: (-d[1], d[2], _DAY_ORDER[d[0]]))

        tolerance = self.config.day_dedup_tolerance
        unique = []
        for day, y, x in labels:
            if any(u_day == day and abs(u_y - y) < tolerance for u_day, u_y, _ in unique):
                continue
            unique.append((day, y, x))

        padding = self.config.row_top_padding
        tops = [y + padding for _, y, _ in unique]

        rows = []
        for i, (day, _, _) in enumerate(unique):
            bottom = tops[i + 1] if i + 1 < len(tops) else -math.inf
            rows.append(RowBand(day=day, top=tops[i], bottom=bottom))

        return rows

    def detect_columns(self, texts: List[PositionedText], rows: List[RowBand]) -> List[ColumnBand]:
        """
        Build one horizontal band per period from the header above the first day row.

        Strategies, in order: numbered period markers ("1.", "2.", ...),
        explicit HH:MM anchors, then an even split of the page width.

        Args:
            texts: All text runs of the document
            rows: Row bands from detect_rows (must not be empty)

        Returns:
            Non-overlapping column bands in ascending-x order
        """
        if not texts or not rows:
            return []

        header_bottom = rows[0].top
        header = [t for t in texts if t.y > header_bottom]

        anchors = self._period_marker_anchors(header)
        if anchors is None:
            anchors = self._time_string_anchors(header)
            if len(anchors) < self.config.min_time_anchors:
                anchors = self._even_division_anchors(texts)

        return self._build_columns(anchors)

    def _period_marker_anchors(self, header: List[PositionedText]) -> Optional[List[Tuple[float, int]]]:
        """
        Anchors from "N." period headers, each mapped to table entry N-1.

        Returns None when the header holds too few "N." runs. The count is
        taken before out-of-range and out-of-order numbers are dropped.
        """
        markers = sorted(
            (t for t in header if PERIOD_MARKER_RE.match(t.text)),
            key=lambda t: (t.x, -t.y, t.text),
        )
        if len(markers) < self.config.min_period_markers:
            return None

        anchors = []
        for marker in markers:
            number = int(marker.text[:-1])
            if self.config.slot_for_period(number) is None:
                continue
            # Period indices must increase left to right
            if anchors and number - 1 <= anchors[-1][1]:
                continue
            anchors.append((marker.x, number - 1))

        return anchors

    def _time_string_anchors(self, header: List[PositionedText]) -> List[Tuple[float, int]]:
        """Anchors from HH:MM header labels, assigned to table entries in column order."""
        candidates = sorted(
            (t for t in header if TIME_ANCHOR_RE.search(t.text)),
            key=lambda t: (t.x, -t.y, t.text),
        )

        xs: List[float] = []
        for item in candidates:
            if not any(abs(x - item.x) < self.config.anchor_dedup_distance for x in xs):
                xs.append(item.x)

        return [(x, idx) for idx, x in enumerate(xs)]

    def _even_division_anchors(self, texts: List[PositionedText]) -> List[Tuple[float, int]]:
        """Anchors spread evenly across the page right of the day-label column."""
        min_x = min(t.x for t in texts)
        max_x = max(t.x for t in texts)
        data_start = min_x + self.config.day_column_width
        data_width = max_x - data_start
        count = len(self.config.time_slots)

        return [(data_start + (data_width / count) * i, i) for i in range(count)]

    def _build_columns(self, anchors: List[Tuple[float, int]]) -> List[ColumnBand]:
        slots = self.config.time_slots
        anchors = [a for a in anchors if a[1] < len(slots)][:len(slots)]
        shift = self.config.column_left_shift

        columns = []
        for i, (x, period_index) in enumerate(anchors):
            right = anchors[i + 1][0] - shift if i + 1 < len(anchors) else math.inf
            slot = slots[period_index]
            columns.append(ColumnBand(
                left=x - shift,
                right=right,
                period_index=period_index,
                start_time=slot.start,
                end_time=slot.end,
            ))

        return columns

