from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from timetable_engine.models import PositionedText
from timetable_engine.text_extractor import TextExtractor
from timetable_engine.utils import ExtractionError


def _page(height: float, words: list[dict]) -> MagicMock:
    page = MagicMock()
    page.height = height
    page.extract_words.return_value = words
    return page


def _pdf(*pages: MagicMock) -> MagicMock:
    pdf = MagicMock()
    pdf.pages = list(pages)
    pdf.__enter__.return_value = pdf
    pdf.__exit__.return_value = False
    return pdf


class TestTextExtractor(unittest.TestCase):
    def test_coordinates_are_flipped_and_rounded(self) -> None:
        page = _page(842.0, [
            {"text": "Monday", "x0": 20.04, "x1": 60.37, "bottom": 242.26, "size": 9.0},
            {"text": "  Data   Structures ", "x0": 205.0, "x1": 260.0, "bottom": 250.0, "size": 8.5},
        ])
        with patch("timetable_engine.text_extractor.pdfplumber.open", return_value=_pdf(page)) as open_pdf:
            texts = TextExtractor().extract("timetable.pdf")

        open_pdf.assert_called_once_with("timetable.pdf")
        self.assertEqual(texts, [
            PositionedText("Monday", 20.0, 599.7, 40.3, 9.0),
            PositionedText("Data Structures", 205.0, 592.0, 55.0, 8.5),
        ])
        kwargs = page.extract_words.call_args.kwargs
        self.assertEqual(kwargs["extra_attrs"], ["size"])

    def test_blank_runs_are_dropped(self) -> None:
        page = _page(600.0, [
            {"text": "   ", "x0": 10.0, "x1": 20.0, "bottom": 100.0},
            {"text": "\x00", "x0": 10.0, "x1": 20.0, "bottom": 100.0},
            {"text": "HF09", "x0": 10.0, "x1": 30.0, "bottom": 100.0},
        ])
        with patch("timetable_engine.text_extractor.pdfplumber.open", return_value=_pdf(page)):
            texts = TextExtractor().extract("timetable.pdf")

        self.assertEqual([t.text for t in texts], ["HF09"])
        self.assertEqual(texts[0].font_size, 0.0)

    def test_pages_are_concatenated_in_order(self) -> None:
        first = _page(100.0, [{"text": "Monday", "x0": 1.0, "x1": 2.0, "bottom": 50.0}])
        second = _page(100.0, [{"text": "Tuesday", "x0": 1.0, "x1": 2.0, "bottom": 50.0}])
        with patch("timetable_engine.text_extractor.pdfplumber.open", return_value=_pdf(first, second)):
            texts = TextExtractor().extract("timetable.pdf")

        self.assertEqual([(t.text, t.y) for t in texts], [("Monday", 50.0), ("Tuesday", 50.0)])

    def test_image_only_document_yields_nothing(self) -> None:
        with patch("timetable_engine.text_extractor.pdfplumber.open", return_value=_pdf(_page(842.0, []))):
            self.assertEqual(TextExtractor().extract(b"%PDF-1.4"), [])

    def test_bytes_are_wrapped_in_a_stream(self) -> None:
        with patch("timetable_engine.text_extractor.pdfplumber.open", return_value=_pdf()) as open_pdf:
            TextExtractor().extract(b"%PDF-1.4")
        stream = open_pdf.call_args.args[0]
        self.assertEqual(stream.read(), b"%PDF-1.4")

    def test_decoder_failure_is_wrapped(self) -> None:
        with patch("timetable_engine.text_extractor.pdfplumber.open", side_effect=ValueError("No /Root object")):
            with self.assertRaises(ExtractionError) as ctx:
                TextExtractor().extract(b"garbage")
        self.assertIn("No /Root object", str(ctx.exception))

    def test_corrupt_bytes(self) -> None:
        with self.assertRaises(ExtractionError):
            TextExtractor().extract(b"not a pdf")


if __name__ == "__main__":
    unittest.main()
