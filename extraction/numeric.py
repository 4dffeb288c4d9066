"""
Numeric Normalizer

Canonicalizes locale-variant numbers (Arabic-Indic and Eastern Arabic
digits, Arabic thousands and decimal separators) into plain floats.
Also usable on its own for cleaning spreadsheet cells.
"""

import re
from typing import Optional, Union

# ٠-٩ (U+0660..U+0669) and ۰-۹ (U+06F0..U+06F9)
ARABIC_INDIC_DIGITS = "٠١٢٣٤٥٦٧٨٩"
EASTERN_ARABIC_DIGITS = "۰۱۲۳۴۵۶۷۸۹"

ARABIC_THOUSANDS_SEPARATOR = "٬"
ARABIC_DECIMAL_SEPARATOR = "٫"

_DIGIT_TABLE = str.maketrans(
    ARABIC_INDIC_DIGITS + EASTERN_ARABIC_DIGITS,
    "0123456789" * 2,
)

# Longest leading float, so "31.2.3" parses like a lenient float reader
_FLOAT_PREFIX = re.compile(r'\d+(?:\.\d*)?|\.\d+')

# A whitespace token made only of digits and separators, optional sign
_NUMERIC_TOKEN = re.compile(r'^[-+]?(?:\d[\d,٬٫.]*|[.٫]\d+)%?$')


def normalize_digits(text: str) -> str:
    """Map Arabic-Indic and Eastern Arabic digits to 0-9, leaving the rest."""
    if not text:
        return ""
    return text.translate(_DIGIT_TABLE)


def normalize_number_string(raw: Optional[str]) -> str:
    """
    Apply the textual normalization steps and return the cleaned string.

    Steps, in order:
    1. Arabic-Indic and Eastern Arabic digits become Latin digits
    2. Thousands separators (',' and '٬') are removed
    3. The Arabic decimal separator '٫' becomes '.'
    4. Anything that is not a digit, a dot or a leading minus is dropped

    The result is a fixed point: feeding it back returns the same string.
    """
    if raw is None:
        return ""
    text = normalize_digits(str(raw)).strip()
    text = text.replace(",", "").replace(ARABIC_THOUSANDS_SEPARATOR, "")
    text = text.replace(ARABIC_DECIMAL_SEPARATOR, ".")

    negative = text.startswith("-")
    cleaned = re.sub(r'[^0-9.]', '', text)
    if negative and cleaned:
        cleaned = "-" + cleaned
    return cleaned


def normalize_number(raw: Union[str, int, float, None]) -> float:
    """
    Parse a locale-variant numeric string into a float.

    Numbers pass through unchanged; None and unparseable text give 0.0.

    Examples:
        normalize_number("١٬٢٣٤٫٥٠") -> 1234.5
        normalize_number("1,250.00") -> 1250.0
        normalize_number("SAR 3,400") -> 3400.0
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw)

    cleaned = normalize_number_string(raw)
    negative = cleaned.startswith("-")
    match = _FLOAT_PREFIX.match(cleaned.lstrip("-"))
    if not match:
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    return -value if negative else value


def is_numeric_token(token: str) -> bool:
    """True if a whitespace-delimited token reads as a number."""
    if not token:
        return False
    return bool(_NUMERIC_TOKEN.match(normalize_digits(token.strip())))
