from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Collection, Mapping
from datetime import date, datetime, timedelta
from typing import Any

"""Field-level normalizers used by the row transformer.

Each normalizer returns (normalized_value, error_message). On failure the
original value is returned unchanged together with the message; blank input
is never an error here (required checks happen later in the transformer).

Date parsing is day-first for every slash/dash form, including ambiguous ones:
1/5/2024 is 1 May 2024, never 5 January.
"""

__all__ = [
    "FLOW_VALUES",
    "INVALID_DATE",
    "INVALID_AMOUNT",
    "NEGATIVE_AMOUNT",
    "INVALID_FLOW",
    "INVALID_MAJOR_CATEGORY",
    "SUGGESTIONS",
    "is_blank",
    "strip_accents",
    "normalize_date",
    "normalize_amount",
    "normalize_flow",
    "detect_flow",
    "normalize_major_category",
    "normalize_text",
]

FLOW_VALUES = ("ENTRADA", "SAIDA")

INVALID_DATE = "Invalid date format"
INVALID_AMOUNT = "Invalid amount"
NEGATIVE_AMOUNT = "Amount cannot be negative"
INVALID_FLOW = "Invalid flow value"
INVALID_MAJOR_CATEGORY = "Invalid major category"

SUGGESTIONS: dict[str, str] = {
    INVALID_DATE: "Use YYYY-MM-DD, DD/MM/YYYY or DD-MM-YYYY (e.g. 2024-01-15)",
    INVALID_AMOUNT: "Enter a number such as 1234.56 or 1.234,56",
    NEGATIVE_AMOUNT: "Enter a positive number",
    INVALID_FLOW: "Use ENTRADA for income or SAIDA for expenses",
}

EXCEL_EPOCH = date(1899, 12, 30)
_MAX_EXCEL_SERIAL = 2958465  # 9999-12-31

_ISO_RE = re.compile(
    r"^(\d{4})-(\d{1,2})-(\d{1,2})"
    r"(?:[T ]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})([/-])(\d{1,2})\2(\d{4})$")

_CURRENCY_RE = re.compile(r"[€$£\s]|EUR|USD|GBP", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
_THOUSANDS_COMMA_RE = re.compile(r"^-?\d{1,3}(?:,\d{3})+$")
_DECIMAL_PERIOD_RE = re.compile(r"\.\d{2}$")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def _from_excel_serial(value: float) -> tuple[Any, str | None]:
    if not 1 <= value <= _MAX_EXCEL_SERIAL:
        return value, INVALID_DATE
    return (EXCEL_EPOCH + timedelta(days=int(value))).isoformat(), None


def normalize_date(value: Any) -> tuple[Any, str | None]:
    """Normalize a date cell to an ISO YYYY-MM-DD string."""
    if is_blank(value):
        return None, None
    if isinstance(value, datetime):
        return value.date().isoformat(), None
    if isinstance(value, date):
        return value.isoformat(), None
    if isinstance(value, bool):
        return value, INVALID_DATE
    if isinstance(value, (int, float)):
        return _from_excel_serial(value)

    text = str(value).strip()
    m = _ISO_RE.match(text)
    if m:
        year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    else:
        m = _DAY_FIRST_RE.match(text)
        if not m:
            return value, INVALID_DATE
        day, month, year = int(m.group(1)), int(m.group(3)), int(m.group(4))
    try:
        return date(year, month, day).isoformat(), None
    except ValueError:
        return value, INVALID_DATE


def _parse_amount_text(text: str) -> float | None:
    """Resolve European vs US separators and parse.

    - both separators: the right-most one is the decimal mark
    - comma only: groups of three digits are thousands, otherwise a single
      comma is the decimal mark
    - period only: a single period followed by exactly two trailing digits is
      the decimal mark, otherwise periods are thousands separators
    """
    if text.startswith("+"):
        text = text[1:]
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        if _THOUSANDS_COMMA_RE.match(text):
            text = text.replace(",", "")
        elif text.count(",") == 1:
            text = text.replace(",", ".")
        else:
            return None
    elif "." in text:
        if not (text.count(".") == 1 and _DECIMAL_PERIOD_RE.search(text)):
            text = text.replace(".", "")
    if not _NUMBER_RE.match(text):
        return None
    return float(text)


def normalize_amount(value: Any) -> tuple[Any, str | None]:
    """Normalize a currency cell to a float."""
    if is_blank(value):
        return None, None
    if isinstance(value, bool):
        return value, INVALID_AMOUNT
    if isinstance(value, (int, float)):
        amount: float | None = float(value)
    else:
        amount = _parse_amount_text(_CURRENCY_RE.sub("", str(value)))
    if amount is None or math.isinf(amount):
        return value, INVALID_AMOUNT
    if amount < 0:
        return value, NEGATIVE_AMOUNT
    return amount, None


def normalize_flow(value: Any, aliases: Mapping[str, str] | None = None) -> tuple[Any, str | None]:
    if is_blank(value):
        return None, None
    key = str(value).strip().upper()
    if key in FLOW_VALUES:
        return key, None
    alias = (aliases or {}).get(key)
    if alias in FLOW_VALUES:
        return alias, None
    return value, INVALID_FLOW


def detect_flow(income: Any, outgoing: Any) -> str | None:
    """Flow implied by which amount column is populated (income wins)."""
    if not is_blank(income):
        return "ENTRADA"
    if not is_blank(outgoing):
        return "SAIDA"
    return None


def normalize_major_category(
    value: Any,
    allowed: Collection[str],
    aliases: Mapping[str, str] | None = None,
) -> tuple[Any, str | None]:
    if is_blank(value):
        return None, None
    key = re.sub(r"\s+", "_", str(value).strip().upper())
    aliases = aliases or {}
    for candidate in (key, aliases.get(key), strip_accents(key)):
        if candidate and candidate in allowed:
            return candidate, None
    return value, INVALID_MAJOR_CATEGORY


def normalize_text(value: Any, vocabulary: Collection[str] | None = None) -> str | None:
    """Trim text; snap to the canonical spelling when a vocabulary is given."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value).strip()
    if vocabulary:
        folded = text.casefold()
        for canonical in vocabulary:
            if canonical.casefold() == folded:
                return canonical
    return text
