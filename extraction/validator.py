"""
Item Validator & Deduplicator

Drops records with invalid quantities or prices, substitutes missing
descriptions, collapses duplicates (last write wins) and sorts by item
code. Per-record problems are collected, never raised.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Tuple

from .confidence import total_is_consistent
from .models import LineItem

logger = logging.getLogger(__name__)

# =============================================================================
# THRESHOLDS
# =============================================================================

DEDUP_DESCRIPTION_PREFIX = 20
LOW_CONFIDENCE_THRESHOLD = 0.3


class IssueSeverity(Enum):
    ERROR = "error"         # Item dropped
    WARNING = "warning"     # Item kept but flagged


@dataclass
class ValidationIssue:
    """A single validation finding for one record."""
    severity: IssueSeverity
    message: str
    item_code: str = ""
    field: str = ""

    def to_dict(self) -> Dict:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "item_code": self.item_code,
            "field": self.field,
        }


@dataclass
class ValidationOutcome:
    """Valid, deduplicated, sorted items plus what was found on the way."""
    items: List[LineItem] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    duplicates_removed: int = 0

    @property
    def errors(self) -> List[str]:
        return [i.message for i in self.issues if i.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> List[str]:
        return [i.message for i in self.issues if i.severity == IssueSeverity.WARNING]


def validate_item(item: LineItem) -> Tuple[LineItem, List[ValidationIssue]]:
    """
    Check one record.

    Returns:
        (possibly corrected item, issues); the item must be dropped when
        any issue is an ERROR
    """
    issues: List[ValidationIssue] = []
    code = item.item_code

    if item.quantity <= 0:
        issues.append(ValidationIssue(
            IssueSeverity.ERROR,
            f"Item {code}: quantity must be greater than 0 (got {item.quantity:g})",
            code, "quantity",
        ))

    if item.unit_price < 0:
        issues.append(ValidationIssue(
            IssueSeverity.ERROR,
            f"Item {code}: unit price cannot be negative (got {item.unit_price:g})",
            code, "unit_price",
        ))
    elif item.unit_price == 0:
        issues.append(ValidationIssue(
            IssueSeverity.WARNING,
            f"Item {code}: unit price is 0",
            code, "unit_price",
        ))

    if not item.description.strip():
        issues.append(ValidationIssue(
            IssueSeverity.WARNING,
            f"Item {code}: missing description, using 'Item {code}'",
            code, "description",
        ))
        item = replace(item, description=f"Item {code}")

    if item.confidence < LOW_CONFIDENCE_THRESHOLD:
        issues.append(ValidationIssue(
            IssueSeverity.WARNING,
            f"Item {code}: low extraction confidence ({item.confidence:.0%})",
            code, "confidence",
        ))

    if not total_is_consistent(item):
        issues.append(ValidationIssue(
            IssueSeverity.WARNING,
            f"Item {code}: total {item.total_price:g} differs from quantity x unit price "
            f"({item.quantity * item.unit_price:g})",
            code, "total_price",
        ))

    return item, issues


def dedup_key(item: LineItem) -> Tuple[str, str]:
    return item.item_code, item.description[:DEDUP_DESCRIPTION_PREFIX]


def deduplicate(items: List[LineItem]) -> List[LineItem]:
    """
    Keep one record per (item code, first 20 description characters).

    The later record replaces the earlier one. No field-level merge.
    """
    unique: Dict[Tuple[str, str], LineItem] = {}
    for item in items:
        key = dedup_key(item)
        if key in unique:
            del unique[key]
        unique[key] = item
    return list(unique.values())


def sort_items(items: List[LineItem]) -> List[LineItem]:
    return sorted(items, key=lambda item: item.item_code)


def validate_items(items: List[LineItem]) -> ValidationOutcome:
    """
    Validate, deduplicate and sort extracted records.

    Steps:
    1. Validate each record; drop those with errors
    2. Deduplicate survivors (last write wins)
    3. Sort by item code
    """
    outcome = ValidationOutcome()

    valid: List[LineItem] = []
    for item in items:
        checked, issues = validate_item(item)
        outcome.issues.extend(issues)
        if any(i.severity == IssueSeverity.ERROR for i in issues):
            continue
        valid.append(checked)

    unique = deduplicate(valid)
    outcome.duplicates_removed = len(valid) - len(unique)
    outcome.items = sort_items(unique)

    logger.info(
        f"Validation: {len(outcome.items)} items kept, {len(outcome.errors)} errors, "
        f"{len(outcome.warnings)} warnings, {outcome.duplicates_removed} duplicates removed"
    )
    return outcome
