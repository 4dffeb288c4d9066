"""
Pattern Matching

Single-line shape patterns tried in priority order; the first match wins.
Higher recall than structural analysis on one-line items, lower precision.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ..models import ExtractionResult, LineItem, StrategyId, TextLine
from ..numeric import normalize_digits, normalize_number
from ..vocabulary import (
    GENERIC_CODE,
    HIERARCHICAL_CODE,
    SERVICE_CODE,
    UNIT_ALTERNATION,
    is_stop_line,
    is_unit_token,
)
from .base import ExtractionStrategy, build_line_item

logger = logging.getLogger(__name__)

_NUMBER = r'-?\d[\d,٬٫.]*'
_CODE = rf'(?:{SERVICE_CODE}|{HIERARCHICAL_CODE}|{GENERIC_CODE})'
_END = r'(?=\s|$)'


@dataclass(frozen=True)
class LinePattern:
    """A named single-line item shape."""
    name: str
    regex: re.Pattern
    has_unit: bool = True


# =============================================================================
# PATTERNS (priority order)
# =============================================================================

LINE_PATTERNS: List[LinePattern] = [
    # 9xxxxxx service code rows: code, description, unit, qty, price[, total]
    LinePattern(
        name="service_code_row",
        regex=re.compile(
            rf'^\s*(?P<code>{SERVICE_CODE})\s+(?P<desc>.+?)\s+(?P<unit>{UNIT_ALTERNATION}){_END}'
            rf'\s+(?P<qty>{_NUMBER}){_END}(?:\s+(?P<price>{_NUMBER}){_END})?(?:\s+(?P<total>{_NUMBER}){_END})?',
            re.IGNORECASE,
        ),
    ),
    # Full row: code, description, unit, qty, price, total
    LinePattern(
        name="code_desc_unit_qty_price_total",
        regex=re.compile(
            rf'^\s*(?P<code>{_CODE})\s+(?P<desc>.+?)\s+(?P<unit>{UNIT_ALTERNATION}){_END}'
            rf'\s+(?P<qty>{_NUMBER})\s+(?P<price>{_NUMBER})\s+(?P<total>{_NUMBER}){_END}',
            re.IGNORECASE,
        ),
    ),
    # Code, description, unit, qty [, price]
    LinePattern(
        name="code_desc_unit_qty",
        regex=re.compile(
            rf'^\s*(?P<code>{_CODE})\s+(?P<desc>.+?)\s+(?P<unit>{UNIT_ALTERNATION}){_END}'
            rf'\s+(?P<qty>{_NUMBER}){_END}(?:\s+(?P<price>{_NUMBER}){_END})?',
            re.IGNORECASE,
        ),
    ),
    # No unit: code, description, numbers
    LinePattern(
        name="code_desc_numbers",
        regex=re.compile(
            rf'^\s*(?P<code>{_CODE})\s+(?P<desc>.*?[^\d\s,.٬٫-].*?)'
            rf'\s+(?P<qty>{_NUMBER})(?:\s+(?P<price>{_NUMBER}))?(?:\s+(?P<total>{_NUMBER}))?\s*$',
        ),
        has_unit=False,
    ),
]


class PatternMatchingStrategy(ExtractionStrategy):
    """Ordered single-line regex shapes with bilingual unit tokens."""

    strategy_id = StrategyId.PATTERN_MATCHING

    def __init__(self, patterns: Optional[List[LinePattern]] = None):
        self.patterns = patterns if patterns is not None else LINE_PATTERNS

    def extract(self, lines: List[TextLine]) -> ExtractionResult:
        items: List[LineItem] = []
        for line in lines:
            text = normalize_digits(line.text).strip()
            if not text or is_stop_line(text):
                continue
            item = self.match_line(text, page=line.page)
            if item is not None:
                items.append(item)

        logger.debug(f"Pattern matching found {len(items)} items in {len(lines)} lines")
        return ExtractionResult(items=items, strategy_id=self.strategy_id)

    def match_line(self, text: str, page: Optional[int] = None) -> Optional[LineItem]:
        """Try each pattern in order against one line."""
        for pattern in self.patterns:
            match = pattern.regex.match(text)
            if not match:
                continue
            groups = match.groupdict()
            description = (groups.get("desc") or "").strip()
            if pattern.has_unit and not is_unit_token(groups.get("unit") or ""):
                continue
            if not description:
                continue

            logger.debug(f"Line matched {pattern.name}: {text[:60]}")
            return build_line_item(
                self.strategy_id,
                item_code=groups["code"],
                description=description,
                unit=groups.get("unit") if pattern.has_unit else None,
                quantity=_figure(groups.get("qty")),
                unit_price=_figure(groups.get("price")),
                total_price=_figure(groups.get("total")),
                source_page=page,
            )
        return None


def _figure(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    return normalize_number(raw)
