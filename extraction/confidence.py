"""
Extraction Confidence Scorer

Per-record confidence is the share of the six primary fields that came
from the document rather than from defaults. Table-level confidence
combines record completeness with structural consistency.
"""

from typing import Iterable, List, Optional

from .models import ExtractedTable, LineItem, PRIMARY_FIELDS, SemanticField

# Relative difference tolerated between a supplied total and quantity * price
TOTAL_TOLERANCE = 0.01


def record_confidence(populated: Iterable[SemanticField]) -> float:
    """Fraction of the primary fields populated from source data."""
    populated = set(populated)
    hits = sum(1 for f in PRIMARY_FIELDS if f in populated)
    return hits / len(PRIMARY_FIELDS)


def total_is_consistent(item: LineItem, tolerance: float = TOTAL_TOLERANCE) -> bool:
    """A supplied total agrees with quantity * unit price (within tolerance)."""
    if not item.total_supplied or item.unit_price == 0:
        return True
    expected = item.quantity * item.unit_price
    if expected == 0:
        return item.total_price == 0
    return abs(item.total_price - expected) / abs(expected) <= tolerance


def arithmetic_consistency(items: List[LineItem]) -> float:
    if not items:
        return 0.0
    return sum(1 for item in items if total_is_consistent(item)) / len(items)


def score_items(
    items: List[LineItem],
    tables: Optional[List[ExtractedTable]] = None,
) -> float:
    """
    Overall confidence for an extraction.

    Mean record confidence multiplied by structural consistency, where
    consistency averages arithmetic agreement of totals with the detected
    tables' own confidence (when position-based parsing produced tables).

    Returns:
        Score in [0, 1]; 0.0 for no items
    """
    if not items:
        return 0.0

    completeness = sum(item.confidence for item in items) / len(items)

    signals = [arithmetic_consistency(items)]
    if tables:
        signals.append(sum(t.confidence for t in tables) / len(tables))
    consistency = sum(signals) / len(signals)

    return max(0.0, min(1.0, completeness * consistency))
