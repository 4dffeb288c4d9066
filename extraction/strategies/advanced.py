"""
Advanced Structural Analysis

Walks the document line by line. A leading code token opens a new record;
following lines without a code continue its description. Section headings
set the category for the items beneath them.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import ExtractionResult, LineItem, StrategyId, TextLine
from ..numeric import is_numeric_token, normalize_digits, normalize_number
from ..vocabulary import is_stop_line, match_code_token, section_title
from .base import ExtractionStrategy, build_line_item, figures_to_amounts, split_trailing_figures

logger = logging.getLogger(__name__)

# Records whose description is this short are layout noise
MIN_DESCRIPTION_LENGTH = 4

# Continuation lines need some letters to be description text
MIN_CONTINUATION_LENGTH = 3


@dataclass
class _OpenRecord:
    """Record being assembled across one or more lines."""
    code: str
    page: int
    category: Optional[str]
    description_parts: List[str] = field(default_factory=list)
    unit: Optional[str] = None
    figures: List[float] = field(default_factory=list)

    def absorb(self, tokens: List[str]) -> None:
        text_tokens, unit, figures = split_trailing_figures(tokens)
        if text_tokens:
            self.description_parts.append(" ".join(text_tokens))
        if unit and self.unit is None:
            self.unit = unit
        if figures and not self.figures:
            self.figures = figures

    @property
    def description(self) -> str:
        return " ".join(self.description_parts).strip()


def _is_purely_numeric(tokens: List[str]) -> bool:
    return bool(tokens) and all(is_numeric_token(t) for t in tokens)


def _has_letters(text: str) -> bool:
    return any(ch.isalpha() for ch in text)


class AdvancedAnalysisStrategy(ExtractionStrategy):
    """Code-token driven parsing with multi-line descriptions."""

    strategy_id = StrategyId.ADVANCED_ANALYSIS

    def extract(self, lines: List[TextLine]) -> ExtractionResult:
        items: List[LineItem] = []
        current: Optional[_OpenRecord] = None
        category: Optional[str] = None

        for line in lines:
            text = normalize_digits(line.text).strip()
            if not text:
                continue

            heading = section_title(text)
            if heading:
                self._close(current, items)
                current = None
                category = heading
                continue

            if is_stop_line(text):
                continue

            code_match = match_code_token(text)
            if code_match:
                self._close(current, items)
                code, remainder = code_match
                current = _OpenRecord(code=code, page=line.page, category=category)
                current.absorb(remainder.split())
                continue

            if current is None:
                continue

            tokens = text.split()
            if _is_purely_numeric(tokens):
                # Figures wrapped onto their own line
                if not current.figures:
                    current.figures = [normalize_number(t) for t in tokens]
                continue

            if len(text) >= MIN_CONTINUATION_LENGTH and _has_letters(text):
                current.absorb(tokens)

        self._close(current, items)
        logger.debug(f"Advanced analysis found {len(items)} items in {len(lines)} lines")
        return ExtractionResult(items=items, strategy_id=self.strategy_id)

    def _close(self, record: Optional[_OpenRecord], items: List[LineItem]) -> None:
        if record is None:
            return
        description = record.description
        if len(description) < MIN_DESCRIPTION_LENGTH:
            return

        quantity, unit_price, total_price = figures_to_amounts(record.figures)
        items.append(build_line_item(
            self.strategy_id,
            item_code=record.code,
            description=description,
            unit=record.unit,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            category=record.category,
            source_page=record.page,
        ))
