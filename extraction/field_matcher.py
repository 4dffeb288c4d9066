"""
Header/Field Matcher

Maps column headers onto semantic fields using bilingual (English and
Arabic) name variants. Exact matches score 0.95 and partial matches 0.8;
when a header fits several fields the highest score wins.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .models import FieldMapping, SemanticField
from .numeric import is_numeric_token, normalize_digits
from .vocabulary import CODE_TOKEN_PATTERN, is_unit_token

logger = logging.getLogger(__name__)

EXACT_MATCH_CONFIDENCE = 0.95
PARTIAL_MATCH_CONFIDENCE = 0.8
INFERRED_CONFIDENCE = 0.6

# =============================================================================
# FIELD NAME VARIANTS
# =============================================================================
# Order inside each list does not matter; order of the dict decides ties.

FIELD_VARIANTS: Dict[SemanticField, List[str]] = {
    SemanticField.ITEM_CODE: [
        'item code', 'code', 'item no', 'item no.', 'item number', 'item', 'no.', 'no',
        '#', 'sl no', 'sl. no.', 's.no', 'serial', 'ref', 'reference', 'ref no',
        'رمز', 'كود', 'رقم', 'رقم البند', 'بند', 'البند', 'م',
    ],
    SemanticField.DESCRIPTION: [
        'description', 'desc', 'item description', 'item name', 'name', 'title',
        'details', 'description of work', 'work description', 'particulars',
        'الوصف', 'البيان', 'الاسم', 'التفاصيل', 'وصف البند', 'بيان الأعمال',
    ],
    SemanticField.UNIT: [
        'unit', 'uom', 'unit of measure', 'measurement', 'measure', 'units',
        'الوحدة', 'وحدة', 'وحدة القياس', 'قياس',
    ],
    SemanticField.QUANTITY: [
        'quantity', 'qty', 'qnt', 'qty.', 'quantities', 'count', 'num',
        'الكمية', 'كمية', 'الكميات', 'عدد', 'الكم',
    ],
    SemanticField.UNIT_PRICE: [
        'unit price', 'price', 'unit cost', 'cost', 'rate', 'unit rate', 'u.price',
        'سعر الوحدة', 'سعر', 'تكلفة', 'معدل', 'الفئة السعرية',
    ],
    SemanticField.TOTAL_PRICE: [
        'total', 'total price', 'total cost', 'amount', 'subtotal', 'extended price',
        'total amount', 'value',
        'الإجمالي', 'المجموع', 'الكلي', 'السعر الإجمالي', 'القيمة', 'المبلغ',
    ],
    SemanticField.CATEGORY: [
        'category', 'cat', 'type', 'class', 'group', 'section', 'trade', 'division',
        'الفئة', 'النوع', 'الصنف', 'المجموعة', 'القسم',
    ],
    SemanticField.WBS_CODE: [
        'wbs', 'wbs code', 'work breakdown', 'work breakdown structure', 'structure', 'level',
        'هيكل التفصيل', 'المستوى',
    ],
    SemanticField.NOTES: [
        'notes', 'remarks', 'comments', 'note', 'comment', 'remark',
        'ملاحظات', 'تعليقات', 'ملاحظة', 'تعليق',
    ],
}

_EDGE_PUNCTUATION = " \t\r\n.:;,-_()[]{}*/\\|\"'"


def normalize_header(header: str) -> str:
    """Lowercase, collapse whitespace, strip surrounding punctuation."""
    text = normalize_digits(header or "").lower()
    text = re.sub(r'\s+', ' ', text)
    return text.strip(_EDGE_PUNCTUATION)


_NORMALIZED_VARIANTS: Dict[SemanticField, List[str]] = {
    f: [v.lower() for v in variants] for f, variants in FIELD_VARIANTS.items()
}

_PARTIAL_PATTERNS: Dict[SemanticField, List[re.Pattern]] = {
    f: [
        re.compile(r'(?<!\w)' + re.escape(v.strip(_EDGE_PUNCTUATION)) + r'(?!\w)')
        for v in variants
        # Single characters and symbols are only trusted as exact matches
        if len(v.strip(_EDGE_PUNCTUATION)) > 2
    ]
    for f, variants in _NORMALIZED_VARIANTS.items()
}


def detect_column_type(header: str) -> Tuple[Optional[SemanticField], float]:
    """
    Find the semantic field a single header names.

    Returns:
        (field, confidence), or (None, 0.0) when nothing matches
    """
    text = normalize_header(header)
    if not text:
        return None, 0.0

    best_field: Optional[SemanticField] = None
    best_confidence = 0.0
    for semantic_field, variants in _NORMALIZED_VARIANTS.items():
        if text in variants or text in (v.strip(_EDGE_PUNCTUATION) for v in variants):
            confidence = EXACT_MATCH_CONFIDENCE
        elif any(p.search(text) for p in _PARTIAL_PATTERNS[semantic_field]):
            confidence = PARTIAL_MATCH_CONFIDENCE
        else:
            continue
        if confidence > best_confidence:
            best_field, best_confidence = semantic_field, confidence

    return best_field, best_confidence


def looks_like_header_row(cells: Sequence[str]) -> bool:
    """At least two cells name distinct fields, and none is a bare number."""
    if any(is_numeric_token(c) for c in cells):
        return False
    fields = {detect_column_type(c)[0] for c in cells}
    fields.discard(None)
    return len(fields) >= 2


@dataclass
class HeaderMatch:
    """Result of matching one table's headers."""
    mapping: FieldMapping
    errors: List[str] = field(default_factory=list)

    @property
    def column_confidences(self) -> Dict[int, float]:
        return self.mapping.confidences

    @property
    def is_usable(self) -> bool:
        return (
            SemanticField.DESCRIPTION in self.mapping.fields
            and SemanticField.QUANTITY in self.mapping.fields
        )


def match_headers(headers: Sequence[str]) -> HeaderMatch:
    """
    Build a FieldMapping for a header row.

    Each field goes to the column that matches it best (leftmost on ties).
    A column claimed by no field ends up in the unmapped bag. Missing
    required fields are reported, not ignored.
    """
    headers = list(headers)
    candidates: Dict[SemanticField, Tuple[int, float]] = {}
    confidences: Dict[int, float] = {}

    for index, header in enumerate(headers):
        semantic_field, confidence = detect_column_type(header)
        confidences[index] = confidence
        if semantic_field is None:
            continue
        current = candidates.get(semantic_field)
        if current is None or confidence > current[1]:
            candidates[semantic_field] = (index, confidence)

    mapping = FieldMapping(
        columns=headers,
        fields={f: index for f, (index, _) in candidates.items()},
    )
    mapped_columns = set(mapping.fields.values())
    mapping.confidences = {i: c for i, c in confidences.items() if i in mapped_columns}
    mapping.unmapped = [i for i in range(len(headers)) if i not in mapped_columns]

    errors = [f"Missing required field: {f.value}" for f in mapping.missing_required()]
    if errors:
        logger.debug(f"Header match incomplete for {headers}: {errors}")
    return HeaderMatch(mapping=mapping, errors=errors)


# =============================================================================
# ROLE INFERENCE (no usable headers)
# =============================================================================

def _share(values: List[str], predicate) -> float:
    present = [v for v in values if v.strip()]
    if not present:
        return 0.0
    return sum(1 for v in present if predicate(v)) / len(present)


def infer_column_roles(rows: Sequence[Sequence[str]]) -> HeaderMatch:
    """
    Guess column roles from cell values when headers are missing or useless.

    Heuristics, applied per column:
    - mostly code-shaped values -> item code (leftmost such column)
    - mostly unit tokens -> unit
    - mostly numbers -> quantity, unit price, total price, left to right
    - the remaining column with the longest text -> description
    """
    width = max((len(r) for r in rows), default=0)
    columns = [[row[i] if i < len(row) else "" for row in rows] for i in range(width)]

    fields: Dict[SemanticField, int] = {}
    numeric_columns = []
    for index, values in enumerate(columns):
        if _share(values, is_unit_token) >= 0.6:
            fields.setdefault(SemanticField.UNIT, index)
        elif _share(values, is_numeric_token) >= 0.6:
            numeric_columns.append(index)
        elif SemanticField.ITEM_CODE not in fields and _share(
            values, lambda v: bool(CODE_TOKEN_PATTERN.match(normalize_digits(v) + " "))
        ) >= 0.6:
            fields[SemanticField.ITEM_CODE] = index

    # A leading numeric column before any text is usually a serial number
    if numeric_columns and SemanticField.ITEM_CODE not in fields and numeric_columns[0] == 0 and len(numeric_columns) > 2:
        fields[SemanticField.ITEM_CODE] = numeric_columns.pop(0)

    for semantic_field, index in zip(
        (SemanticField.QUANTITY, SemanticField.UNIT_PRICE, SemanticField.TOTAL_PRICE),
        numeric_columns,
    ):
        fields[semantic_field] = index

    taken = set(fields.values())
    text_columns = [i for i in range(width) if i not in taken]
    if text_columns:
        longest = max(
            text_columns,
            key=lambda i: sum(len(v) for v in columns[i]) / max(1, len(columns[i])),
        )
        fields[SemanticField.DESCRIPTION] = longest

    mapping = FieldMapping(
        columns=[f"column_{i + 1}" for i in range(width)],
        fields=fields,
        confidences={i: INFERRED_CONFIDENCE for i in fields.values()},
        unmapped=[i for i in range(width) if i not in set(fields.values())],
    )
    errors = [f"Missing required field: {f.value}" for f in mapping.missing_required()]
    return HeaderMatch(mapping=mapping, errors=errors)
