"""
Text Layer Adapters

The extraction core consumes positioned glyphs page by page. A text layer
supplies them: PyMuPDF for real PDFs, or a static in-memory mapping for
callers that already hold glyphs.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import PageDecodeError
from .models import PositionedGlyph

try:
    import fitz  # PyMuPDF
    PYMUPDF_AVAILABLE = True
except ImportError:
    PYMUPDF_AVAILABLE = False

logger = logging.getLogger(__name__)


class TextLayer:
    """
    Source of positioned glyphs for one document.

    Pages are numbered from 1. ``get_page_glyphs`` raises PageDecodeError
    when a page cannot be decoded.
    """

    @property
    def page_count(self) -> int:
        raise NotImplementedError

    def get_page_glyphs(self, page_number: int) -> List[PositionedGlyph]:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class StaticTextLayer(TextLayer):
    """Glyphs already in memory, keyed by page number."""

    def __init__(self, pages: Dict[int, Sequence[PositionedGlyph]], page_count: Optional[int] = None):
        self._pages = {number: list(glyphs) for number, glyphs in pages.items()}
        self._page_count = page_count if page_count is not None else max(self._pages, default=0)

    @classmethod
    def from_glyphs(cls, glyphs: Sequence[PositionedGlyph]) -> "StaticTextLayer":
        pages: Dict[int, List[PositionedGlyph]] = {}
        for glyph in glyphs:
            pages.setdefault(glyph.page, []).append(glyph)
        return cls(pages)

    @property
    def page_count(self) -> int:
        return self._page_count

    def get_page_glyphs(self, page_number: int) -> List[PositionedGlyph]:
        if page_number < 1 or page_number > self._page_count:
            raise PageDecodeError(page_number, "page out of range")
        return list(self._pages.get(page_number, []))


class PyMuPDFTextLayer(TextLayer):
    """
    Reads words and their fonts from a PDF with PyMuPDF.

    PyMuPDF measures y downward from the top of the page; glyph
    coordinates are flipped so a larger y is nearer the top.
    """

    def __init__(self, pdf_path: Optional[str] = None, data: Optional[bytes] = None):
        if not PYMUPDF_AVAILABLE:
            raise ImportError("PyMuPDF is required to read PDFs: pip install pymupdf")
        if pdf_path is None and data is None:
            raise ValueError("Either pdf_path or data is required")

        if data is not None:
            self._doc = fitz.open(stream=data, filetype="pdf")
        else:
            self._doc = fitz.open(pdf_path)
        self.pdf_path = pdf_path

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def get_page_glyphs(self, page_number: int) -> List[PositionedGlyph]:
        if page_number < 1 or page_number > self.page_count:
            raise PageDecodeError(page_number, "page out of range")
        try:
            page = self._doc[page_number - 1]
            height = page.rect.height
            fonts = _span_fonts(page)
            glyphs = []
            for x0, y0, x1, y1, word, *_ in page.get_text("words"):
                if not word.strip():
                    continue
                glyphs.append(PositionedGlyph(
                    text=word,
                    x0=x0,
                    y0=height - y1,
                    x1=x1,
                    y1=height - y0,
                    page=page_number,
                    font_name=_font_at(fonts, (x0 + x1) / 2, (y0 + y1) / 2),
                ))
            return glyphs
        except Exception as e:
            raise PageDecodeError(page_number, str(e)) from e

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None


_SpanFont = Tuple[float, float, float, float, str]


def _span_fonts(page) -> List[_SpanFont]:
    spans = []
    for block in page.get_text("dict").get("blocks", []):
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                x0, y0, x1, y1 = span["bbox"]
                spans.append((x0, y0, x1, y1, span.get("font", "")))
    return spans


def _font_at(spans: List[_SpanFont], x: float, y: float) -> Optional[str]:
    for x0, y0, x1, y1, font in spans:
        if x0 <= x <= x1 and y0 <= y <= y1:
            return font or None
    return None
