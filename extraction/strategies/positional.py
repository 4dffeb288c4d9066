"""
Position-Based Parsing

Finds table regions from glyph positions, maps their columns to fields
once per table and reads one line item per body row.
"""

import logging
import re
from typing import Dict, List, Optional

from ..column_segmenter import DEFAULT_COLUMN_GAP, detect_table_regions
from ..field_matcher import HeaderMatch, infer_column_roles, match_headers
from ..mapping_profiles import MappingProfile, apply_profile
from ..models import ColumnSpan, ExtractedTable, ExtractionResult, LineItem, SemanticField, StrategyId, TextLine
from ..numeric import normalize_digits, normalize_number
from ..vocabulary import is_stop_line
from .base import ExtractionStrategy, build_line_item

logger = logging.getLogger(__name__)

_HAS_DIGIT = re.compile(r'\d')


def align_cells(
    header_spans: List[ColumnSpan],
    cells: List[str],
    cell_spans: List[ColumnSpan],
) -> List[str]:
    """
    Place body cells under the header columns they overlap most.

    Cells overlapping no header go to the header with the nearest centre.
    Several cells landing under one header are joined with a space.
    """
    aligned = [""] * len(header_spans)
    if not header_spans:
        return aligned

    for cell, (x0, x1) in zip(cells, cell_spans):
        overlaps = [max(0.0, min(x1, hx1) - max(x0, hx0)) for hx0, hx1 in header_spans]
        best = max(range(len(header_spans)), key=lambda i: overlaps[i])
        if overlaps[best] <= 0:
            center = (x0 + x1) / 2
            best = min(
                range(len(header_spans)),
                key=lambda i: abs(center - (header_spans[i][0] + header_spans[i][1]) / 2),
            )
        aligned[best] = f"{aligned[best]} {cell}".strip()
    return aligned


def _number(cell: str) -> Optional[float]:
    if not cell or not _HAS_DIGIT.search(normalize_digits(cell)):
        return None
    return normalize_number(cell)


class PositionBasedStrategy(ExtractionStrategy):
    """Row/column parsing grounded on glyph coordinates."""

    strategy_id = StrategyId.POSITION_BASED

    def __init__(
        self,
        column_gap: float = DEFAULT_COLUMN_GAP,
        profile: Optional[MappingProfile] = None,
    ):
        self.column_gap = column_gap
        self.profile = profile

    def extract(self, lines: List[TextLine]) -> ExtractionResult:
        tables = detect_table_regions(lines, self.column_gap)

        items: List[LineItem] = []
        for table in tables:
            items.extend(self.extract_table(table, start_index=len(items)))

        logger.debug(f"Position-based parsing found {len(items)} items in {len(tables)} tables")
        return ExtractionResult(items=items, strategy_id=self.strategy_id, tables=tables)

    def map_table(self, table: ExtractedTable, rows: List[List[str]]) -> HeaderMatch:
        """Profile first, then header matching, then role inference."""
        if self.profile is not None:
            header_match = apply_profile(self.profile, table.headers)
            if header_match.is_usable:
                return header_match
            logger.debug(f"Profile '{self.profile.name}' does not fit table on page {table.page}")

        header_match = match_headers(table.headers)
        if header_match.is_usable:
            return header_match

        inferred = infer_column_roles(rows)
        if inferred.is_usable:
            inferred.mapping.columns = list(table.headers)
            return inferred
        return header_match

    def extract_table(self, table: ExtractedTable, start_index: int = 0) -> List[LineItem]:
        rows = [
            align_cells(table.header_spans, cells, spans)
            for cells, spans in zip(table.rows, table.row_spans)
        ]
        header_match = self.map_table(table, rows)
        mapping = header_match.mapping

        items = []
        for row in rows:
            values: Dict[SemanticField, str] = {
                f: row[i].strip() for f, i in mapping.fields.items() if i < len(row)
            }
            quantity = _number(values.get(SemanticField.QUANTITY, ""))
            unit_price = _number(values.get(SemanticField.UNIT_PRICE, ""))
            total_price = _number(values.get(SemanticField.TOTAL_PRICE, ""))
            # Rows with only a total are subtotal or carried-forward lines
            if quantity is None and unit_price is None:
                continue
            if is_stop_line(" ".join(row)):
                continue

            code = normalize_digits(values.get(SemanticField.ITEM_CODE) or "")

            unmapped = {
                mapping.columns[i] if i < len(mapping.columns) else f"column_{i + 1}": row[i]
                for i in mapping.unmapped
                if i < len(row) and row[i].strip()
            }

            item = build_line_item(
                self.strategy_id,
                item_code=code,
                description=values.get(SemanticField.DESCRIPTION),
                unit=values.get(SemanticField.UNIT),
                quantity=quantity,
                unit_price=unit_price,
                total_price=total_price,
                category=values.get(SemanticField.CATEGORY) or None,
                wbs_code=values.get(SemanticField.WBS_CODE) or None,
                notes=values.get(SemanticField.NOTES) or None,
                source_page=table.page,
                unmapped=unmapped,
                fallback_code=f"PDF-{start_index + len(items) + 1:03d}",
            )
            items.append(item)
        return items

