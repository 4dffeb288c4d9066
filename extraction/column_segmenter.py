"""
Column Segmenter

Splits a line's glyph group into columns wherever the horizontal gap
between neighbouring glyphs exceeds a threshold, and finds table regions
(header row followed by body rows) across a page.
"""

import logging
from dataclasses import dataclass, field
from itertools import groupby
from typing import List, Optional

from .field_matcher import looks_like_header_row
from .models import BoundingBox, ExtractedTable, PositionedGlyph, TextLine

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_GAP = 10.0
MIN_HEADER_COLUMNS = 3


@dataclass
class Column:
    """Consecutive glyphs with no large horizontal gap between them."""
    glyphs: List[PositionedGlyph] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(g.text.strip() for g in self.glyphs if g.text.strip())

    @property
    def x0(self) -> float:
        return self.glyphs[0].x0

    @property
    def x1(self) -> float:
        return max(g.x1 for g in self.glyphs)


def segment_columns(
    glyphs: List[PositionedGlyph],
    gap_threshold: float = DEFAULT_COLUMN_GAP,
) -> List[Column]:
    """
    Group a line's glyphs into columns.

    Args:
        glyphs: Glyphs of one line (sorted here by x0)
        gap_threshold: Gap that starts a new column

    Returns:
        Columns left to right, without whitespace-only glyphs
    """
    visible = sorted((g for g in glyphs if g.text.strip()), key=lambda g: g.x0)

    columns: List[Column] = []
    previous: Optional[PositionedGlyph] = None
    for glyph in visible:
        if previous is None or glyph.x0 - previous.x1 > gap_threshold:
            columns.append(Column())
        columns[-1].glyphs.append(glyph)
        previous = glyph
    return columns


def column_texts(glyphs: List[PositionedGlyph], gap_threshold: float = DEFAULT_COLUMN_GAP) -> List[str]:
    return [c.text for c in segment_columns(glyphs, gap_threshold)]


def is_likely_header(line: TextLine, columns: List[Column]) -> bool:
    """Bold rows and rows with three or more columns may be headers."""
    return line.is_bold or len(columns) >= MIN_HEADER_COLUMNS


def table_confidence(headers: List[str], rows: List[List[str]]) -> float:
    """
    Score a table by column-count consistency times data fill.

    Rows whose cell count differs from the header count pull the score
    down but never make it invalid.
    """
    width = len(headers)
    if width == 0 or not rows:
        return 0.0

    consistency = sum(
        min(len(row), width) / max(len(row), width) for row in rows if row
    ) / len(rows)

    filled = sum(1 for row in rows for cell in row[:width] if cell.strip())
    fill = filled / (len(rows) * width)

    return max(0.0, min(1.0, consistency * fill))


def detect_table_regions(
    lines: List[TextLine],
    gap_threshold: float = DEFAULT_COLUMN_GAP,
) -> List[ExtractedTable]:
    """
    Find header rows and accumulate body rows beneath them.

    A header candidate (bold, or three or more columns) only opens a new
    table when its cells read like column names. Body rows accumulate
    until the next header or the end of the page.

    Args:
        lines: Reconstructed lines, any number of pages
        gap_threshold: Column gap passed to the segmenter

    Returns:
        Tables that have at least one body row
    """
    tables: List[ExtractedTable] = []

    for page, page_lines in groupby(lines, key=lambda line: line.page):
        current: Optional[ExtractedTable] = None

        for line in page_lines:
            columns = segment_columns(line.glyphs, gap_threshold)
            if not columns:
                continue
            cells = [c.text for c in columns]
            spans = [(c.x0, c.x1) for c in columns]
            box = line.bounding_box

            if is_likely_header(line, columns) and looks_like_header_row(cells):
                if current is not None and current.rows:
                    tables.append(current)
                current = ExtractedTable(
                    page=page,
                    headers=cells,
                    header_spans=spans,
                    bounding_box=box,
                )
                continue

            if current is None:
                continue

            current.rows.append(cells)
            current.row_spans.append(spans)
            if box is not None:
                current.bounding_box = (
                    current.bounding_box.union(box) if current.bounding_box else box
                )

        if current is not None and current.rows:
            tables.append(current)

    for table in tables:
        table.confidence = table_confidence(table.headers, table.rows)

    logger.debug(f"Detected {len(tables)} table regions")
    return tables
