"""
Format and Language Detection

Classifies a document's dominant script (Arabic, English or mixed) and,
from its column headers, which family of BOQ layout it follows.
"""

from enum import Enum
from typing import Dict, Sequence

from .field_matcher import detect_column_type
from .models import SemanticField

# A script "wins" when it makes up more than this share of letters
DOMINANT_SCRIPT_SHARE = 0.7

_ARABIC_RANGES = (
    (0x0600, 0x06FF),
    (0x0750, 0x077F),
    (0x08A0, 0x08FF),
    (0xFB50, 0xFDFF),
    (0xFE70, 0xFEFF),
)


class BOQFormat(Enum):
    CONSTRUCTION = "construction"
    PROCUREMENT = "procurement"
    ENGINEERING = "engineering"
    STANDARD = "standard"


def _is_arabic(ch: str) -> bool:
    code = ord(ch)
    return any(low <= code <= high for low, high in _ARABIC_RANGES)


def script_shares(text: str) -> Dict[str, float]:
    arabic = sum(1 for ch in text if ch.isalpha() and _is_arabic(ch))
    latin = sum(1 for ch in text if ch.isascii() and ch.isalpha())
    total = arabic + latin
    if total == 0:
        return {"ar": 0.0, "en": 0.0}
    return {"ar": arabic / total, "en": latin / total}


def detect_language(text: str) -> str:
    """
    Return "ar", "en" or "mixed".

    Text with no letters counts as English.
    """
    shares = script_shares(text or "")
    if shares["ar"] > DOMINANT_SCRIPT_SHARE:
        return "ar"
    if shares["en"] > DOMINANT_SCRIPT_SHARE or (shares["ar"] == 0 and shares["en"] == 0):
        return "en"
    return "mixed"


def detect_boq_format(headers: Sequence[str]) -> BOQFormat:
    """
    Guess the layout family from which fields the headers cover.

    - WBS column: engineering
    - category or section column with pricing: construction
    - pricing with no unit column: procurement
    """
    fields = {detect_column_type(h)[0] for h in headers}
    fields.discard(None)

    has_pricing = SemanticField.UNIT_PRICE in fields or SemanticField.TOTAL_PRICE in fields
    if SemanticField.WBS_CODE in fields:
        return BOQFormat.ENGINEERING
    if SemanticField.CATEGORY in fields and has_pricing:
        return BOQFormat.CONSTRUCTION
    if has_pricing and SemanticField.UNIT not in fields:
        return BOQFormat.PROCUREMENT
    return BOQFormat.STANDARD
