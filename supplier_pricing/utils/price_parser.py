"""
Price Parser
============

Parses raw spreadsheet cells into domestic-currency (ARS) amounts.

Supplier lists mix conventions freely: ``"$ 2.690"``, ``"1.256,33"``,
``2690.0`` straight from the workbook, or codes such as ``"A123"`` sitting in
a price column. The rules are applied in a fixed order:

1. Reject single-letter-plus-digits codes ("A123").
2. Strip everything except digits, ``.`` and ``,``.
3. A ``.`` followed by exactly three digits is a thousands separator.
4. If a plain float parse fails, drop every ``.`` and read ``,`` as the
   decimal point.
5. Only positive finite numbers are accepted.

Example inputs:
- "$ 2.690" → 2690.0
- "1.256,33" → 1256.33
- "123.10" → 123.1
- "A123" → None
"""

import math
import re
from typing import Any, Final, Mapping

# =============================================================================
# Patterns
# =============================================================================

CODE_VALUE_RE: Final = re.compile(r"^[A-Za-z]\d+$")
NON_NUMERIC_RE: Final = re.compile(r"[^\d.,]")
THOUSANDS_DOT_RE: Final = re.compile(r"\.\d{3}(?!\d)")

# Field names that never hold prices even when their values look numeric.
NON_PRICE_FIELD_RE: Final = re.compile(
    r"c[oó]d|sku|ean|upc|art[ií]culo|\bid\b|nro|modelo|model|marca|brand|"
    r"tipo|rubro|categor|familia|descrip|detalle|stock|cantidad",
    re.IGNORECASE,
)

PLAUSIBLE_PRICE_MIN: Final[float] = 1_000.0
PLAUSIBLE_PRICE_MAX: Final[float] = 1_000_000.0


# =============================================================================
# Core Parsing
# =============================================================================


def _accept(value: float) -> float | None:
    if math.isfinite(value) and value > 0:
        return value
    return None


def _parse_comma_decimal(cleaned: str) -> float | None:
    """Rule 4: drop dots, read the comma as decimal point."""
    try:
        return float(cleaned.replace(".", "").replace(",", "."))
    except ValueError:
        return None


def parse_price(raw: Any) -> float | None:
    """
    Parse a raw cell value into a positive amount.

    Args:
        raw: Cell value (str, int, float or None)

    Returns:
        The amount, or None when the value is not a usable price

    Examples:
        >>> parse_price("$ 2.690")
        2690.0
        >>> parse_price("1.256,33")
        1256.33
        >>> parse_price("A123") is None
        True
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        return _accept(float(raw))

    text = str(raw).strip()
    if not text or CODE_VALUE_RE.match(text):
        return None

    cleaned = NON_NUMERIC_RE.sub("", text)
    if not cleaned:
        return None

    if THOUSANDS_DOT_RE.search(cleaned):
        cleaned = cleaned.replace(".", "")

    try:
        value: float | None = float(cleaned)
    except ValueError:
        value = _parse_comma_decimal(cleaned)

    if value is None:
        return None
    return _accept(value)


def is_code_like_token(raw: Any) -> bool:
    """
    Check whether a value reads as a product code rather than an amount.

    Codes are letter-prefixed tokens ("A123", "M18FD") or bare one/two digit
    numbers (pack sizes, line numbers).
    """
    if raw is None:
        return False
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return 0 < abs(raw) < 100 and float(raw).is_integer()
    text = str(raw).strip()
    if CODE_VALUE_RE.match(text):
        return True
    if re.fullmatch(r"\d{1,2}", text):
        return True
    return bool(re.fullmatch(r"[A-Za-z]{1,4}[-\s]?\d+[A-Za-z]?", text))


def in_plausible_range(value: float | None) -> bool:
    """Check the open 1,000-1,000,000 band used for price discovery."""
    return value is not None and PLAUSIBLE_PRICE_MIN < value < PLAUSIBLE_PRICE_MAX


# =============================================================================
# Alternate Price Discovery
# =============================================================================


def find_alternate_price(
    fields: Mapping[str, Any],
    exclude: str | None = None,
) -> float | None:
    """
    Search the other fields of a row for a plausible price.

    Skips ``exclude`` (the mapped price column), fields whose name suggests a
    code/brand/type/description, and code-like values.
    """
    for name, raw in fields.items():
        if name == exclude or NON_PRICE_FIELD_RE.search(str(name)):
            continue
        if is_code_like_token(raw):
            continue
        value = parse_price(raw)
        if in_plausible_range(value):
            return value
    return None


def find_comma_price(
    fields: Mapping[str, Any],
    exclude: str | None = None,
) -> float | None:
    """Last resort: any comma-containing string that reads as a decimal amount."""
    for name, raw in fields.items():
        if name == exclude or not isinstance(raw, str) or "," not in raw:
            continue
        value = _parse_comma_decimal(NON_NUMERIC_RE.sub("", raw))
        if in_plausible_range(value):
            return value
    return None
