"""
Locale-aware amount and date parsing.

Bank exports mix Brazilian ("1.234,56") and English ("1,234.56") number
formats, accounting parentheses, trailing minus signs and several date
layouts. Everything here is a pure function so the decoders, the schema
detector and the JSON validator share one set of rules.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import math
import re

import pandas as pd

# Anything that cannot be part of a number: currency symbols and codes,
# whitespace, letters
_NON_NUMERIC = re.compile(r"[^\d,.\-+()]")
_NUMERIC_PREFIX = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

# Amount-shaped cell: optional sign/parentheses/currency around grouped digits
AMOUNT_SHAPE = re.compile(
    r"^\(?[-+]?\s*(?:R\$|US\$|\$|€|£|[A-Z]{3})?\s*[-+]?\d[\d.,\s]*\)?\s*-?$",
    re.IGNORECASE,
)
DATE_SHAPE = re.compile(
    r"^(?:"
    r"\d{1,2}/\d{1,2}(?:/\d{2}|/\d{4})?"
    r"|\d{1,2}[.-]\d{1,2}[.-]\d{4}"
    r"|\d{4}-\d{1,2}-\d{1,2}(?:[T ].*)?"
    r"|\d{8}(?:\d{4,6})?(?:\.\d+)?(?:\[.*\])?"
    r")$"
)

_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_DAY_MONTH_SHORT_YEAR = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")
_DAY_MONTH = re.compile(r"^(\d{1,2})/(\d{1,2})$")
_ISO_LIKE = re.compile(r"^\d{4}[-/.]\d{1,2}[-/.]\d{1,2}")
_MONTH_NAME = re.compile(r"[A-Za-z]{3,}")


def try_parse_amount(raw: Any, interchange: bool = False) -> Optional[Decimal]:
    """
    Parse a signed amount, returning None when nothing numeric is found.

    Args:
        raw: Cell value (string, number or Decimal)
        interchange: True for OFX values, whose decimal separator is always "."

    Returns:
        Decimal amount or None
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        return Decimal(str(raw))

    text = str(raw).strip()
    if not text:
        return None

    negative = "(" in text and ")" in text
    text = _NON_NUMERIC.sub("", text).replace("(", "").replace(")", "")

    # "123,45-" -> "-123,45"
    if text.endswith("-") and not text.startswith("-"):
        text = "-" + text[:-1]

    if not interchange:
        has_comma = "," in text
        has_dot = "." in text
        if has_comma and has_dot:
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        elif has_comma:
            text = text.replace(",", ".", 1)

    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return None

    try:
        value = Decimal(match.group())
    except InvalidOperation:
        return None

    return -abs(value) if negative else value


def parse_amount(raw: Any, interchange: bool = False) -> Decimal:
    """Parse a signed amount; blank or unparsable cells resolve to zero."""
    value = try_parse_amount(raw, interchange=interchange)
    return value if value is not None else Decimal("0")


def is_amount_shaped(value: str) -> bool:
    text = value.strip()
    return bool(text) and AMOUNT_SHAPE.match(text) is not None


def is_date_shaped(value: str) -> bool:
    return DATE_SHAPE.match(value.strip()) is not None


def is_partial_date(raw: Any) -> bool:
    """True for year-less "DD/MM" values whose year has to be assumed."""
    if raw is None or isinstance(raw, (date, datetime)):
        return False
    return _DAY_MONTH.match(str(raw).strip()) is not None


def parse_date(raw: Any, reference_year: Optional[int] = None) -> Optional[date]:
    """
    Parse a calendar date from the layouts found in bank exports.

    Supported: YYYYMMDD (any trailing time segment is ignored, the value is
    taken as midday of that day), DD/MM/YYYY (also with "." or "-"),
    DD/MM/YY (>= 70 is 19xx), DD/MM (reference_year or the current year) and
    ISO-like strings.

    Returns:
        The date, or None when the value cannot be parsed
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    cleaned = str(raw).strip()
    if not cleaned:
        return None

    match = _COMPACT_DATE.match(cleaned)
    if match:
        return _build_date(match.group(1), match.group(2), match.group(3))

    match = _DAY_MONTH_YEAR.match(cleaned)
    if match:
        return _build_date(match.group(3), match.group(2), match.group(1))

    match = _DAY_MONTH_SHORT_YEAR.match(cleaned)
    if match:
        short_year = int(match.group(3))
        year = 1900 + short_year if short_year >= 70 else 2000 + short_year
        return _build_date(year, match.group(2), match.group(1))

    match = _DAY_MONTH.match(cleaned)
    if match:
        year = reference_year if reference_year is not None else date.today().year
        return _build_date(year, match.group(2), match.group(1))

    if _ISO_LIKE.match(cleaned) or _MONTH_NAME.search(cleaned):
        return _parse_generic(cleaned)

    return None


def _build_date(year: Any, month: Any, day: Any) -> Optional[date]:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def _parse_generic(value: str) -> Optional[date]:
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return None

    if pd.isna(parsed):
        return None
    return parsed.date()
