"""Positioned text extraction from PDF documents using pdfplumber."""

import io
from pathlib import Path
from typing import List, Union

import pdfplumber

from .models import PositionedText
from .utils import ExtractionError, sanitize_text


def _round1(value: float) -> float:
    return round(float(value or 0.0), 1)


class TextExtractor:
    """Extracts text runs with page coordinates from text-bearing PDFs."""

    def __init__(self, x_tolerance: float = 3.0, y_tolerance: float = 3.0):
        """
        Initialize text extractor.

        Args:
            x_tolerance: Horizontal gap (points) that still joins characters into one run
            y_tolerance: Vertical drift (points) allowed within one run
        """
        self.x_tolerance = x_tolerance
        self.y_tolerance = y_tolerance

    def extract(self, source: Union[str, Path, bytes]) -> List[PositionedText]:
        """
        Extract positioned text runs from every page of a document.

        Pages are concatenated in page order. Coordinates use a y-up frame
        (origin at the bottom-left of the page) and are rounded to one decimal.

        Args:
            source: Path to a PDF file, or the raw PDF bytes

        Returns:
            List of PositionedText; empty when the document holds no text
            (typically a scanned, image-only file)

        Raises:
            ExtractionError: If the document cannot be decoded
        """
        stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else str(source)

        try:
            with pdfplumber.open(stream) as pdf:
                items: List[PositionedText] = []
                for page in pdf.pages:
                    items.extend(self.extract_page(page))
                return items
        except FileNotFoundError:
            raise
        except Exception as e:
            raise ExtractionError(f"Error decoding PDF: {type(e).__name__}: {e}") from e

    def extract_page(self, page) -> List[PositionedText]:
        """
        Extract positioned text runs from one pdfplumber page.

        Args:
            page: pdfplumber Page object

        Returns:
            List of PositionedText for the page
        """
        words = page.extract_words(
            x_tolerance=self.x_tolerance,
            y_tolerance=self.y_tolerance,
            keep_blank_chars=True,
            extra_attrs=['size'],
        )

        page_height = float(page.height)
        items = []
        for word in words:
            text = sanitize_text(word.get('text', ''))
            if not text:
                continue

            x0 = float(word['x0'])
            x1 = float(word.get('x1', x0))
            items.append(PositionedText(
                text=text,
                x=_round1(x0),
                y=_round1(page_height - float(word['bottom'])),
                width=_round1(x1 - x0),
                font_size=_round1(abs(float(word.get('size', 0.0)))),
            ))

        return items
