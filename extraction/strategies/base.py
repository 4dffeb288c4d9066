"""
Strategy Contract

Every extraction strategy turns reconstructed lines into an
ExtractionResult. Strategies hold no mutable state between calls, so the
orchestrator can run them in any order or retry them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..confidence import record_confidence
from ..models import ExtractionResult, LineItem, SemanticField, StrategyId, TextLine
from ..numeric import is_numeric_token, normalize_number
from ..vocabulary import is_service_code, is_unit_token

DEFAULT_UNIT = "EA"


class ExtractionStrategy(ABC):
    """One self-contained extraction algorithm."""

    strategy_id: StrategyId

    @abstractmethod
    def extract(self, lines: List[TextLine]) -> ExtractionResult:
        """Extract line items from ordered text lines."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.strategy_id.value})"


def build_line_item(
    strategy: StrategyId,
    item_code: Optional[str] = None,
    description: Optional[str] = None,
    unit: Optional[str] = None,
    quantity: Optional[float] = None,
    unit_price: Optional[float] = None,
    total_price: Optional[float] = None,
    category: Optional[str] = None,
    wbs_code: Optional[str] = None,
    notes: Optional[str] = None,
    source_page: Optional[int] = None,
    unmapped: Optional[dict] = None,
    fallback_code: Optional[str] = None,
) -> LineItem:
    """
    Assemble a LineItem, recording which primary fields came from source.

    Arguments left as None are defaulted: quantities and prices to 0, the
    unit to EA, the total to quantity * unit price and the code to
    ``fallback_code``. Defaulted fields do not count toward confidence.
    """
    populated = set()
    if item_code:
        populated.add(SemanticField.ITEM_CODE)
    if description:
        populated.add(SemanticField.DESCRIPTION)
    if unit:
        populated.add(SemanticField.UNIT)
    if quantity is not None:
        populated.add(SemanticField.QUANTITY)
    if unit_price is not None:
        populated.add(SemanticField.UNIT_PRICE)
    if total_price is not None:
        populated.add(SemanticField.TOTAL_PRICE)

    code = (item_code or "").strip() or (fallback_code or "")
    qty = quantity if quantity is not None else 0.0
    price = unit_price if unit_price is not None else 0.0
    total = total_price if total_price is not None else qty * price

    service_code = None
    if code and is_service_code(code):
        service_code = code
        service_note = f"Service Code: {code}"
        notes = f"{notes}; {service_note}" if notes else service_note

    return LineItem(
        item_code=code,
        description=" ".join((description or "").split()),
        unit=(unit or DEFAULT_UNIT).strip(),
        quantity=qty,
        unit_price=price,
        total_price=total,
        category=category,
        wbs_code=wbs_code,
        notes=notes,
        service_code=service_code,
        confidence=record_confidence(populated),
        populated_fields=frozenset(populated),
        unmapped=dict(unmapped or {}),
        source_page=source_page,
        strategy=strategy,
    )


def split_trailing_figures(tokens: List[str]) -> Tuple[List[str], Optional[str], List[float]]:
    """
    Separate "description ... unit qty price total" into its parts.

    The trailing run of numeric tokens holds the figures; a unit token
    directly before that run is the unit. Everything earlier is text.

    Returns:
        (description_tokens, unit or None, figures)
    """
    end = len(tokens)
    start = end
    while start > 0 and is_numeric_token(tokens[start - 1]):
        start -= 1
    figures = [normalize_number(t) for t in tokens[start:end]]

    unit = None
    text_end = start
    if start > 0 and is_unit_token(tokens[start - 1]):
        unit = tokens[start - 1]
        text_end = start - 1

    # Unit with no figures after it still ends the description
    if not figures and text_end == end and end > 0 and is_unit_token(tokens[-1]):
        unit = tokens[-1]
        text_end = end - 1

    # Without a unit to anchor them, extra leading figures belong to the text
    if unit is None and len(figures) > 3:
        text_end = end - 3
        figures = figures[-3:]

    return tokens[:text_end], unit, figures


def figures_to_amounts(figures: List[float]) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    """First figure is the quantity, then unit price, then total."""
    quantity = figures[0] if len(figures) > 0 else None
    unit_price = figures[1] if len(figures) > 1 else None
    total_price = figures[2] if len(figures) > 2 else None
    return quantity, unit_price, total_price
