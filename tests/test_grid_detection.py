from __future__ import annotations

import math
import random
import unittest

from timetable_engine.config import ExtractorConfig
from timetable_engine.models import PositionedText
from timetable_engine.table_detector import TableDetector


def _t(text: str, x: float, y: float, width: float = 30.0) -> PositionedText:
    return PositionedText(text=text, x=x, y=y, width=width, font_size=9.0)


def _period_header(count: int = 4, y: float = 700.0) -> list[PositionedText]:
    return [_t(f"{i}.", 100.0 * i, y, width=8.0) for i in range(1, count + 1)]


class TestRowDetection(unittest.TestCase):
    def test_rows_are_built_top_down_with_padding(self) -> None:
        texts = [_t("Monday", 20, 600, 40), _t("Tuesday", 20, 500, 45), _t("Physics", 200, 590)]
        rows = TableDetector().detect_rows(texts)

        self.assertEqual([r.day for r in rows], ["Monday", "Tuesday"])
        self.assertEqual(rows[0].top, 635.0)
        self.assertEqual(rows[0].bottom, 535.0)
        self.assertEqual(rows[1].top, 535.0)
        self.assertEqual(rows[1].bottom, -math.inf)

    def test_day_labels_are_case_insensitive_and_exact(self) -> None:
        texts = [_t("MONDAY", 20, 600), _t("tuesday", 20, 500), _t("Mon", 20, 400), _t("Monday class", 20, 300)]
        rows = TableDetector().detect_rows(texts)
        self.assertEqual([r.day for r in rows], ["Monday", "Tuesday"])

    def test_near_duplicate_labels_are_merged(self) -> None:
        texts = [_t("Monday", 20, 600), _t("Monday", 700, 605), _t("Tuesday", 20, 500)]
        rows = TableDetector().detect_rows(texts)
        self.assertEqual([r.day for r in rows], ["Monday", "Tuesday"])
        self.assertEqual(rows[0].top, 640.0)

    def test_no_day_labels_yields_no_rows(self) -> None:
        self.assertEqual(TableDetector().detect_rows([_t("Physics", 100, 100)]), [])
        self.assertEqual(TableDetector().detect_grid([_t("Physics", 100, 100)]), ([], []))

    def test_bands_do_not_overlap(self) -> None:
        texts = [_t(day, 20, 600 - 80 * i) for i, day in enumerate(
            ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"])]
        rows = TableDetector().detect_rows(texts)
        for upper, lower in zip(rows, rows[1:]):
            self.assertEqual(upper.bottom, lower.top)
            self.assertGreater(upper.top, lower.top)

    def test_padding_is_configurable(self) -> None:
        rows = TableDetector(ExtractorConfig(row_top_padding=5)).detect_rows([_t("Friday", 20, 100)])
        self.assertEqual(rows[0].top, 105.0)


class TestColumnDetection(unittest.TestCase):
    def setUp(self) -> None:
        self.detector = TableDetector()
        self.days = [_t("Monday", 20, 600, 40), _t("Tuesday", 20, 500, 45)]

    def _columns(self, texts):
        rows = self.detector.detect_rows(texts)
        return self.detector.detect_columns(texts, rows)

    def test_period_markers_index_the_time_slot_table(self) -> None:
        columns = self._columns(self.days + _period_header(4))

        self.assertEqual([c.period_index for c in columns], [0, 1, 2, 3])
        self.assertEqual([c.left for c in columns], [92.0, 192.0, 292.0, 392.0])
        self.assertEqual([c.right for c in columns[:-1]], [192.0, 292.0, 392.0])
        self.assertEqual(columns[-1].right, math.inf)
        self.assertEqual((columns[1].start_time, columns[1].end_time), ("09:00", "09:50"))

    def test_period_numbers_map_by_value_not_position(self) -> None:
        header = [_t("3.", 100, 700), _t("4.", 200, 700), _t("5.", 300, 700)]
        columns = self._columns(self.days + header)

        self.assertEqual([c.period_index for c in columns], [2, 3, 4])
        self.assertEqual(columns[0].start_time, "09:50")

    def test_markers_outside_the_table_are_ignored(self) -> None:
        header = _period_header(3) + [_t("12.", 400, 700)]
        columns = self._columns(self.days + header)
        self.assertEqual([c.period_index for c in columns], [0, 1, 2])

    def test_period_markers_below_header_are_ignored(self) -> None:
        # Markers inside the grid body do not count as headers
        body = [_t("1.", 100, 590), _t("2.", 200, 590), _t("3.", 300, 590)]
        header = [_t("08:10 - 09:00", 100, 700), _t("09:00 - 09:50", 200, 700)]
        columns = self._columns(self.days + body + header)
        self.assertEqual(len(columns), 2)

    def test_marker_count_includes_unusable_numbers(self) -> None:
        header = [
            _t("1.", 100, 720), _t("2.", 200, 720), _t("15.", 300, 720),
            _t("08:10 - 09:00", 100, 700), _t("09:00 - 09:50", 200, 700), _t("09:50 - 10:40", 300, 700),
        ]
        columns = self._columns(self.days + header)

        self.assertEqual([c.period_index for c in columns], [0, 1])
        self.assertEqual(columns[-1].right, math.inf)

    def test_time_strings_are_used_when_markers_are_scarce(self) -> None:
        header = [
            _t("1.", 100, 720),
            _t("08:10 - 09:00", 100, 700),
            _t("08:10", 110, 690),  # within 25 units of the first anchor
            _t("09:00 - 09:50", 200, 700),
            _t("09:50 - 10:40", 300, 700),
        ]
        columns = self._columns(self.days + header)

        self.assertEqual([c.left for c in columns], [92.0, 192.0, 292.0])
        self.assertEqual([c.period_index for c in columns], [0, 1, 2])
        self.assertEqual(columns[2].end_time, "10:40")

    def test_even_division_fallback(self) -> None:
        texts = self.days + [_t("Physics", 1200, 590)]
        columns = self._columns(texts)

        self.assertEqual(len(columns), 11)
        self.assertEqual(columns[0].left, 92.0)
        self.assertEqual(columns[1].left, 192.0)
        self.assertEqual(columns[-1].right, math.inf)
        self.assertEqual(columns[-1].period_index, 10)

    def test_columns_never_exceed_slot_table(self) -> None:
        header = [_t(f"{8 + i}:00", 100 + 60 * i, 700) for i in range(14)]
        columns = self._columns(self.days + header)
        self.assertEqual(len(columns), 11)
        indices = [c.period_index for c in columns]
        self.assertEqual(indices, sorted(set(indices)))


class TestGridOrderInvariance(unittest.TestCase):
    def test_detection_ignores_input_order(self) -> None:
        texts = (
            [_t("Monday", 20, 600, 40), _t("Tuesday", 20, 500, 45), _t("Monday", 22, 602, 40)]
            + _period_header(5)
            + [_t("Mathematics", 205, 600), _t("HF09", 210, 590), _t("Physics", 305, 500)]
        )
        detector = TableDetector()
        expected = detector.detect_grid(texts)

        rng = random.Random(1234)
        for _ in range(10):
            shuffled = list(texts)
            rng.shuffle(shuffled)
            self.assertEqual(detector.detect_grid(shuffled), expected)


if __name__ == "__main__":
    unittest.main()
