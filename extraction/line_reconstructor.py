"""
Line Reconstructor

Groups positioned glyphs into text lines by vertical proximity. Lines come
out top of page first; glyphs within a line run left to right.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .models import PositionedGlyph, TextLine

logger = logging.getLogger(__name__)

DEFAULT_LINE_TOLERANCE = 2.0


def reconstruct_lines(
    glyphs: Iterable[PositionedGlyph],
    tolerance: float = DEFAULT_LINE_TOLERANCE,
    max_pages: Optional[int] = None,
) -> List[TextLine]:
    """
    Rebuild ordered text lines from an unordered glyph stream.

    Glyphs whose y coordinate differs from a line's anchor by less than
    ``tolerance`` join that line. Lines without visible text are dropped.

    Args:
        glyphs: Glyphs for one or more pages, in any order
        tolerance: Maximum vertical distance inside one line
        max_pages: Only the first N pages (by page number) are used

    Returns:
        Lines ordered by page, then top to bottom
    """
    by_page: Dict[int, List[PositionedGlyph]] = defaultdict(list)
    for glyph in glyphs:
        by_page[glyph.page].append(glyph)

    pages = sorted(by_page)
    if max_pages is not None:
        pages = pages[:max(0, max_pages)]

    lines: List[TextLine] = []
    for page in pages:
        lines.extend(_page_lines(page, by_page[page], tolerance))

    logger.debug(f"Reconstructed {len(lines)} lines from {len(pages)} pages")
    return lines


def _page_lines(page: int, glyphs: List[PositionedGlyph], tolerance: float) -> List[TextLine]:
    ordered = sorted(glyphs, key=lambda g: (-g.y0, g.x0))

    lines: List[TextLine] = []
    current: Optional[TextLine] = None
    for glyph in ordered:
        if current is None or abs(current.y - glyph.y0) >= tolerance:
            current = TextLine(page=page, y=glyph.y0)
            lines.append(current)
        current.glyphs.append(glyph)

    result = []
    for line in lines:
        line.glyphs.sort(key=lambda g: g.x0)
        if line.text:
            result.append(line)
    return result


def lines_to_text(lines: List[TextLine]) -> str:
    """Plain text of the lines, one per row."""
    return "\n".join(line.text for line in lines)
