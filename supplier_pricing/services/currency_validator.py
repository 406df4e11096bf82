"""
Currency Validator
==================

Advisory check of whether a resolved price looks like an ARS amount. The
result only annotates the product; pricing never depends on it.

Bands:
- short domestic format (up to 3 integer digits, optional 2 decimals):
  100-500 is a typical battery price (0.98), 50-1000 a generic one (0.95)
- otherwise any amount strictly between 1,000 and 1,000,000 (0.85)
- anything else is implausible (0.80)
"""

import re
from typing import Any, Final

from supplier_pricing.schemas.pricing import CurrencyCheck
from supplier_pricing.utils.text import cell_to_text

DOMESTIC_SHORT_RE: Final = re.compile(r"^\$?\d{1,3}([.,]\d{2})?$")

NARROW_BAND: Final[tuple[float, float]] = (100.0, 500.0)
WIDE_BAND: Final[tuple[float, float]] = (50.0, 1_000.0)
LARGE_BAND: Final[tuple[float, float]] = (1_000.0, 1_000_000.0)


def validate_currency(price: Any) -> CurrencyCheck:
    """
    Classify a price as a plausible domestic amount.

    Args:
        price: Resolved price (number) or its raw text

    Returns:
        CurrencyCheck with plausibility, confidence (0-1) and reason
    """
    text = cell_to_text(price).replace(" ", "")

    if DOMESTIC_SHORT_RE.match(text):
        value = float(text.lstrip("$").replace(",", "."))
        if NARROW_BAND[0] <= value <= NARROW_BAND[1]:
            return CurrencyCheck(
                plausible=True, confidence=0.98, reason="typical battery price in ARS"
            )
        if WIDE_BAND[0] <= value <= WIDE_BAND[1]:
            return CurrencyCheck(
                plausible=True, confidence=0.95, reason="price in the generic ARS band"
            )

    try:
        value = float(text.replace("$", "").replace(",", ""))
    except ValueError:
        value = 0.0
    if LARGE_BAND[0] < value < LARGE_BAND[1]:
        return CurrencyCheck(
            plausible=True, confidence=0.85, reason="large positive ARS amount"
        )

    return CurrencyCheck(
        plausible=False, confidence=0.80, reason="amount outside ARS plausibility bands"
    )
