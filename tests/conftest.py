"""
Shared fixtures: glyph builders for in-memory documents.
"""

import sys
from pathlib import Path
from typing import List, Sequence

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.models import PositionedGlyph

CHAR_WIDTH = 5.0
LINE_HEIGHT = 10.0
LINE_SPACING = 20.0
TOP_OF_PAGE = 780.0


def text_line_glyphs(text: str, y: float, page: int = 1, x: float = 40.0) -> List[PositionedGlyph]:
    """One glyph per word, 3pt apart so the words form a single column."""
    glyphs = []
    for word in text.split():
        width = CHAR_WIDTH * len(word)
        glyphs.append(PositionedGlyph(word, x, y, x + width, y + LINE_HEIGHT, page))
        x += width + 3.0
    return glyphs


def row_glyphs(
    cells: Sequence[str],
    columns_x: Sequence[float],
    y: float,
    page: int = 1,
    font_name: str = None,
) -> List[PositionedGlyph]:
    """One glyph per non-empty cell, placed at its column's x position."""
    glyphs = []
    for cell, x in zip(cells, columns_x):
        if not cell:
            continue
        glyphs.append(PositionedGlyph(
            cell, x, y, x + CHAR_WIDTH * len(cell), y + LINE_HEIGHT, page, font_name,
        ))
    return glyphs


@pytest.fixture
def make_glyphs():
    """Build glyphs for a list of text lines, top of page first."""
    def build(lines: Sequence[str], page: int = 1) -> List[PositionedGlyph]:
        glyphs = []
        for index, text in enumerate(lines):
            glyphs.extend(text_line_glyphs(text, TOP_OF_PAGE - index * LINE_SPACING, page))
        return glyphs
    return build


@pytest.fixture
def make_lines(make_glyphs):
    """Reconstructed TextLines for a list of text lines."""
    from extraction.line_reconstructor import reconstruct_lines

    def build(lines: Sequence[str], page: int = 1):
        return reconstruct_lines(make_glyphs(lines, page))
    return build


TABLE_COLUMNS_X = [40.0, 100.0, 300.0, 360.0, 420.0, 500.0, 580.0]


@pytest.fixture
def table_glyphs():
    """Build a positioned table: header row, then body rows beneath it."""
    def build(
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        columns_x: Sequence[float] = TABLE_COLUMNS_X,
        page: int = 1,
        title: str = None,
    ) -> List[PositionedGlyph]:
        y = TOP_OF_PAGE
        glyphs = []
        if title:
            glyphs.extend(row_glyphs([title], columns_x, y, page))
            y -= LINE_SPACING
        glyphs.extend(row_glyphs(headers, columns_x, y, page, font_name="Helvetica-Bold"))
        for row in rows:
            y -= LINE_SPACING
            glyphs.extend(row_glyphs(row, columns_x, y, page))
        return glyphs
    return build


@pytest.fixture
def sample_table_rows():
    return [
        ["A-01", "Excavation in rock", "m3", "120", "15", "1800"],
        ["A-02", "Backfill material", "m3", "80", "10", "800"],
        ["", "Formwork to slab", "m2", "60", "25", "1500"],
    ]


SIX_HEADERS = ["Item", "Description", "Unit", "Qty", "Rate", "Amount"]
