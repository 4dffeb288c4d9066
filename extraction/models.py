"""
Data Model for BOQ Extraction

Glyphs and lines coming from the text layer, tables found by
position-based parsing, the semantic field enumeration and the canonical
LineItem record produced by every strategy.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class PositionedGlyph:
    """A rendered text fragment with its bounding box.

    Coordinates follow the text-layer convention where a larger y is
    nearer the top of the page.
    """
    text: str
    x0: float
    y0: float
    x1: float
    y1: float
    page: int = 1
    font_name: Optional[str] = None

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def center_x(self) -> float:
        return (self.x0 + self.x1) / 2

    @property
    def is_bold(self) -> bool:
        if not self.font_name:
            return False
        name = self.font_name.lower()
        return "bold" in name or "black" in name


@dataclass(frozen=True)
class BoundingBox:
    x0: float
    y0: float
    x1: float
    y1: float

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min(self.x0, other.x0),
            min(self.y0, other.y0),
            max(self.x1, other.x1),
            max(self.y1, other.y1),
        )

    @classmethod
    def around(cls, glyphs: List[PositionedGlyph]) -> Optional["BoundingBox"]:
        if not glyphs:
            return None
        return cls(
            min(g.x0 for g in glyphs),
            min(g.y0 for g in glyphs),
            max(g.x1 for g in glyphs),
            max(g.y1 for g in glyphs),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1}


@dataclass
class TextLine:
    """Glyphs sharing a y-band, ordered left to right."""
    page: int
    y: float
    glyphs: List[PositionedGlyph] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(g.text.strip() for g in self.glyphs if g.text.strip())

    @property
    def bounding_box(self) -> Optional[BoundingBox]:
        return BoundingBox.around(self.glyphs)

    @property
    def is_bold(self) -> bool:
        visible = [g for g in self.glyphs if g.text.strip()]
        return bool(visible) and all(g.is_bold for g in visible)


# Horizontal extent of one column: (x0, x1)
ColumnSpan = Tuple[float, float]


@dataclass
class ExtractedTable:
    """A table-like region reconstructed from glyph positions.

    Rows may have a different number of cells than there are headers;
    that lowers confidence but does not invalidate the table.
    """
    page: int
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    confidence: float = 0.0
    bounding_box: Optional[BoundingBox] = None
    header_spans: List[ColumnSpan] = field(default_factory=list)
    row_spans: List[List[ColumnSpan]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "headers": self.headers,
            "rows": self.rows,
            "confidence": round(self.confidence, 3),
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
        }


class SemanticField(Enum):
    """Fields a column can be mapped onto."""
    ITEM_CODE = "item_code"
    DESCRIPTION = "description"
    UNIT = "unit"
    QUANTITY = "quantity"
    UNIT_PRICE = "unit_price"
    TOTAL_PRICE = "total_price"
    CATEGORY = "category"
    WBS_CODE = "wbs_code"
    NOTES = "notes"


PRIMARY_FIELDS: Tuple[SemanticField, ...] = (
    SemanticField.ITEM_CODE,
    SemanticField.DESCRIPTION,
    SemanticField.UNIT,
    SemanticField.QUANTITY,
    SemanticField.UNIT_PRICE,
    SemanticField.TOTAL_PRICE,
)

REQUIRED_FIELDS: Tuple[SemanticField, ...] = (
    SemanticField.ITEM_CODE,
    SemanticField.DESCRIPTION,
    SemanticField.QUANTITY,
    SemanticField.UNIT_PRICE,
)


@dataclass
class FieldMapping:
    """Association of semantic fields to column indices for one table.

    A field maps to at most one column. Columns that match no field stay
    in ``unmapped`` and their values travel with the item untouched.
    """
    columns: List[str] = field(default_factory=list)
    fields: Dict[SemanticField, int] = field(default_factory=dict)
    confidences: Dict[int, float] = field(default_factory=dict)
    unmapped: List[int] = field(default_factory=list)

    def column_for(self, semantic_field: SemanticField) -> Optional[int]:
        return self.fields.get(semantic_field)

    def missing_required(self) -> List[SemanticField]:
        return [f for f in REQUIRED_FIELDS if f not in self.fields]

    @property
    def average_confidence(self) -> float:
        mapped = [self.confidences.get(i, 0.0) for i in self.fields.values()]
        if not mapped:
            return 0.0
        return sum(mapped) / len(mapped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": {
                f.value: {
                    "column": index,
                    "header": self.columns[index] if index < len(self.columns) else "",
                    "confidence": self.confidences.get(index, 0.0),
                }
                for f, index in self.fields.items()
            },
            "unmapped": [
                self.columns[i] if i < len(self.columns) else str(i)
                for i in self.unmapped
            ],
        }


class StrategyId(Enum):
    """The closed set of extraction strategies."""
    ADVANCED_ANALYSIS = "advanced_analysis"
    PATTERN_MATCHING = "pattern_matching"
    POSITION_BASED = "position_based"


@dataclass
class LineItem:
    """One bill-of-quantities line item."""
    item_code: str
    description: str
    unit: str
    quantity: float
    unit_price: float
    total_price: float
    category: Optional[str] = None
    wbs_code: Optional[str] = None
    notes: Optional[str] = None
    service_code: Optional[str] = None
    confidence: float = 0.0
    populated_fields: FrozenSet[SemanticField] = frozenset()
    unmapped: Dict[str, str] = field(default_factory=dict)
    source_page: Optional[int] = None
    strategy: Optional[StrategyId] = None

    @property
    def total_supplied(self) -> bool:
        """True when the total came from the document, not quantity * price."""
        return SemanticField.TOTAL_PRICE in self.populated_fields

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "item_code": self.item_code,
            "description": self.description,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "confidence": round(self.confidence, 3),
        }
        for key in ("category", "wbs_code", "notes", "service_code", "source_page"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.unmapped:
            data["unmapped"] = dict(self.unmapped)
        if self.strategy is not None:
            data["strategy"] = self.strategy.value
        return data


@dataclass
class ExtractionResult:
    """Output of one strategy run."""
    items: List[LineItem]
    strategy_id: StrategyId
    tables: List[ExtractedTable] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.items)

    @classmethod
    def empty(cls, strategy_id: StrategyId) -> "ExtractionResult":
        return cls(items=[], strategy_id=strategy_id)
