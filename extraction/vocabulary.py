"""
Bilingual Vocabulary

Unit tokens, item-code shapes, section headings and the header/footer
stoplist shared by the line-based strategies. Everything here works on
text that has already been through ``normalize_digits``.
"""

import re
from typing import Optional, Tuple

from .numeric import normalize_digits, is_numeric_token

# =============================================================================
# UNITS OF MEASURE
# =============================================================================

LATIN_UNITS = {
    'm', 'm2', 'm²', 'm3', 'm³', 'sqm', 'sq.m', 'cum', 'cu.m', 'lm', 'l.m', 'ml', 'rm',
    'mm', 'km', 'ha', 'nr', 'no', 'no.', 'nos', 'ea', 'each', 'pcs', 'pc', 'set', 'sets',
    'kg', 'ton', 'tons', 't', 'l', 'ltr', 'litre', 'liter', 'bag', 'bags',
    'day', 'days', 'hour', 'hours', 'hr', 'hrs', 'month', 'week',
    'ls', 'l.s', 'l.s.', 'lot', 'lump', 'job', 'item', 'sum', 'trip',
}

ARABIC_UNITS = {
    'م', 'م2', 'م²', 'م3', 'م³', 'م.ط', 'مط', 'م.م', 'متر', 'مترمربع', 'مترمكعب',
    'لتر', 'كيس', 'طن', 'كجم', 'كغ', 'ساعة', 'يوم', 'شهر', 'عدد', 'قطعة',
    'مقطوعية', 'مقطوع', 'طقم', 'رحلة',
}

UNIT_TOKENS = {u.lower() for u in LATIN_UNITS} | ARABIC_UNITS

# Longest first so "m2" wins over "m" inside an alternation
UNIT_ALTERNATION = "|".join(
    re.escape(u) for u in sorted(UNIT_TOKENS, key=len, reverse=True)
)

# =============================================================================
# ITEM CODES
# =============================================================================

# 31.2.3.1, 1.1, 02.10
HIERARCHICAL_CODE = r'\d{1,3}(?:\.\d{1,4}){1,6}'

# Purchase-request service codes: seven digits, leading 9
SERVICE_CODE = r'9\d{6}'

# ITEM-001, A1, EW-01.2, C/12
GENERIC_CODE = r'[A-Za-z]{1,8}[-_/.]?\d+(?:[-_/.][A-Za-z0-9]+)*'

CODE_TOKEN_PATTERN = re.compile(
    rf'^\s*({SERVICE_CODE}|{HIERARCHICAL_CODE}|{GENERIC_CODE})(?=\s|$)'
)

SERVICE_CODE_PATTERN = re.compile(rf'^{SERVICE_CODE}$')
HIERARCHICAL_CODE_PATTERN = re.compile(rf'^{HIERARCHICAL_CODE}$')

# =============================================================================
# SECTION HEADINGS AND STOPLIST
# =============================================================================

# Roman numerals are matched case-sensitively so words like "civil" stay text
ROMAN_NUMERAL = r'(?-i:M{0,3}(?:CM|CD|D?C{0,3})(?:XC|XL|L?X{0,3})(?:IX|IV|V?I{0,3}))'

# "DIVISION 31", "SECTION IV", "القسم ٣": the keyword needs a number after it
SECTION_KEYWORD_PATTERN = re.compile(
    r'^\s*(?:division|section|part|chapter|bill\s+no\.?|القسم|الباب|الجزء|الفصل)\s+'
    rf'(?:[0-9٠-٩۰-۹]+(?:\.[0-9]+)*|(?-i:(?=[IVXLCDM])){ROMAN_NUMERAL})'
    r'(?=$|[\s.:\-–)])',
    re.IGNORECASE
)

# "02 - EARTHWORKS"
NUMBERED_SECTION_PATTERN = re.compile(r'^\s*\d+(?:\.\d+)*\s*[-–]\s*\D+$')

STOP_PHRASES = [
    'description', 'item code', 'unit price', 'total price', 'page',
    'carried forward', 'brought forward', 'carried to summary',
    'sub total', 'sub-total', 'subtotal', 'grand total', 'total amount',
    'الوصف', 'البيان', 'سعر الوحدة', 'الإجمالي', 'المجموع', 'صفحة',
    'مرحل', 'منقول',
]

STOP_PATTERN = re.compile(
    r'(?<!\w)(?:' + "|".join(re.escape(p) for p in STOP_PHRASES) + r')(?!\w)',
    re.IGNORECASE
)


def is_unit_token(token: str) -> bool:
    """True if the token is a known Latin or Arabic unit of measure."""
    if not token:
        return False
    return normalize_digits(token.strip()).lower() in UNIT_TOKENS


def is_stop_line(line: str) -> bool:
    """Header, footer and carried-forward lines never describe an item."""
    return bool(STOP_PATTERN.search(line))


def is_service_code(code: str) -> bool:
    return bool(SERVICE_CODE_PATTERN.match(normalize_digits(code or "")))


def match_code_token(line: str) -> Optional[Tuple[str, str]]:
    """
    Split a leading item code from the rest of a line.

    A code only counts when something non-numeric follows it, so a row of
    bare figures such as "12.5 120 1500" is not mistaken for an item.

    Returns:
        (code, remainder) or None
    """
    text = normalize_digits(line)
    match = CODE_TOKEN_PATTERN.match(text)
    if not match:
        return None

    code = match.group(1)
    if is_unit_token(code):
        return None

    remainder = text[match.end():].strip()
    if not remainder:
        return None
    first = remainder.split()[0]
    if is_numeric_token(first):
        return None
    return code, remainder


def section_title(line: str) -> Optional[str]:
    """Return the heading text when a line opens a new BOQ section."""
    text = normalize_digits(line).strip()
    if not text:
        return None
    keyword = SECTION_KEYWORD_PATTERN.match(text)
    if keyword:
        if any(is_numeric_token(t) for t in text[keyword.end():].split()):
            return None
        return text
    if NUMBERED_SECTION_PATTERN.match(text):
        return text
    return None
