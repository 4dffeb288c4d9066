"""
Tests for the Line Reconstructor and Column Segmenter

Vertical grouping, ordering, page handling, column splitting and
table region detection.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.models import PositionedGlyph
from extraction.line_reconstructor import reconstruct_lines, lines_to_text
from extraction.column_segmenter import (
    segment_columns, column_texts, table_confidence, detect_table_regions
)


def glyph(text, x, y, page=1, font_name=None):
    return PositionedGlyph(text, x, y, x + 5 * len(text), y + 10, page, font_name)


class TestReconstructLines:
    """Tests for grouping glyphs into lines."""

    def test_empty_stream(self):
        """No glyphs, no lines, no exception."""
        assert reconstruct_lines([]) == []

    def test_top_of_page_first(self):
        glyphs = [glyph("bottom", 40, 100), glyph("top", 40, 700), glyph("middle", 40, 400)]
        lines = reconstruct_lines(glyphs)
        assert [line.text for line in lines] == ["top", "middle", "bottom"]

    def test_left_to_right_within_line(self):
        glyphs = [glyph("world", 100, 500), glyph("hello", 40, 500)]
        lines = reconstruct_lines(glyphs)
        assert len(lines) == 1
        assert lines[0].text == "hello world"

    def test_tolerance_joins_close_glyphs(self):
        """Glyphs less than 2 units apart vertically share a line."""
        glyphs = [glyph("a", 40, 500), glyph("b", 80, 501.5)]
        assert len(reconstruct_lines(glyphs)) == 1

    def test_tolerance_splits_distant_glyphs(self):
        glyphs = [glyph("a", 40, 500), glyph("b", 80, 497)]
        assert len(reconstruct_lines(glyphs)) == 2

    def test_custom_tolerance(self):
        glyphs = [glyph("a", 40, 500), glyph("b", 80, 497)]
        assert len(reconstruct_lines(glyphs, tolerance=5)) == 1

    def test_pages_in_order(self):
        """Page 1 lines come before page 2 lines regardless of y."""
        glyphs = [glyph("second", 40, 800, page=2), glyph("first", 40, 100, page=1)]
        lines = reconstruct_lines(glyphs)
        assert [(line.page, line.text) for line in lines] == [(1, "first"), (2, "second")]

    def test_max_pages(self):
        glyphs = [glyph("one", 40, 500, page=1), glyph("two", 40, 500, page=2)]
        lines = reconstruct_lines(glyphs, max_pages=1)
        assert [line.text for line in lines] == ["one"]

    def test_whitespace_lines_dropped(self):
        glyphs = [glyph("   ", 40, 500), glyph("text", 40, 300)]
        lines = reconstruct_lines(glyphs)
        assert [line.text for line in lines] == ["text"]

    def test_lines_to_text(self):
        glyphs = [glyph("a", 40, 500), glyph("b", 40, 300)]
        assert lines_to_text(reconstruct_lines(glyphs)) == "a\nb"

    def test_bold_line(self):
        glyphs = [glyph("Head", 40, 500, font_name="Arial-BoldMT")]
        assert reconstruct_lines(glyphs)[0].is_bold

    def test_glyph_geometry(self):
        g = glyph("Tiles", 40, 500, font_name="Helvetica-Black")
        assert g.width == 25
        assert g.center_x == 52.5
        assert g.is_bold
        assert not glyph("Tiles", 40, 500).is_bold


class TestSegmentColumns:
    """Tests for horizontal gap splitting."""

    def test_small_gaps_stay_together(self):
        glyphs = [glyph("Item", 10, 500), glyph("Code", 33, 500), glyph("Description", 100, 500)]
        assert column_texts(glyphs) == ["Item Code", "Description"]

    def test_custom_gap(self):
        glyphs = [glyph("Item", 10, 500), glyph("Code", 33, 500)]
        assert len(segment_columns(glyphs, gap_threshold=2)) == 2

    def test_column_extent(self):
        columns = segment_columns([glyph("Item", 10, 500), glyph("Code", 33, 500)])
        assert columns[0].x0 == 10
        assert columns[0].x1 == 53


class TestTableConfidence:
    """Tests for column-count consistency times fill."""

    def test_full_table(self):
        assert table_confidence(["a", "b", "c"], [["1", "2", "3"]]) == 1.0

    def test_short_row(self):
        assert table_confidence(["a", "b", "c"], [["1", "2"]]) == pytest.approx(4 / 9)

    def test_empty(self):
        assert table_confidence([], [["1"]]) == 0.0
        assert table_confidence(["a"], []) == 0.0


class TestDetectTableRegions:
    """Tests for header detection and body accumulation."""

    def test_header_and_rows(self, table_glyphs, sample_table_rows):
        from conftest import SIX_HEADERS
        lines = reconstruct_lines(table_glyphs(SIX_HEADERS, sample_table_rows, title="Bill No. 1"))
        tables = detect_table_regions(lines)

        assert len(tables) == 1
        table = tables[0]
        assert table.headers == SIX_HEADERS
        assert len(table.rows) == 3
        assert len(table.row_spans) == 3
        assert table.page == 1
        assert 0.0 < table.confidence <= 1.0

    def test_numeric_row_is_not_a_header(self):
        lines = reconstruct_lines([glyph("120", 40, 500), glyph("15", 100, 500), glyph("1800", 200, 500)])
        assert detect_table_regions(lines) == []

    def test_header_without_rows_is_dropped(self, table_glyphs):
        from conftest import SIX_HEADERS
        lines = reconstruct_lines(table_glyphs(SIX_HEADERS, []))
        assert detect_table_regions(lines) == []

    def test_tables_per_page(self, table_glyphs, sample_table_rows):
        from conftest import SIX_HEADERS
        glyphs = table_glyphs(SIX_HEADERS, sample_table_rows[:1], page=1)
        glyphs += table_glyphs(SIX_HEADERS, sample_table_rows[1:], page=2)
        tables = detect_table_regions(reconstruct_lines(glyphs))
        assert [t.page for t in tables] == [1, 2]
        assert [len(t.rows) for t in tables] == [1, 2]
