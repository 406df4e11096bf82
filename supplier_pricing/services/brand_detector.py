"""
Brand Detection
===============

Recognizes known supplier brands in file names, sheet names and free text.
Used to derive the file and per-sheet vendor hints and the per-row brand
used for vendor discounts.
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from supplier_pricing.schemas.sheets import RowRecord
from supplier_pricing.utils.text import cell_to_text, normalize_text

# Brand -> aliases, normalized (lowercase, no accents).
KNOWN_BRANDS: dict[str, tuple[str, ...]] = {
    "LUSQTOFF": ("lusqtoff", "lusq", "lq"),
    "LIQUI MOLY": (
        "liqui moly",
        "liqui-moly",
        "liquimoly",
        "made in germany",
        "deutsche autoteile",
    ),
    "MOURA": ("moura",),
    "VARTA": ("varta",),
    "MOTUL": ("motul",),
    "SHELL": ("shell",),
    "ELF": ("elf",),
    "BOSCH": ("bosch",),
    "MAKITA": ("makita",),
    "DEWALT": ("dewalt",),
    "STANLEY": ("stanley",),
    "NGK": ("ngk",),
    "PIRELLI": ("pirelli",),
    "METZELER": ("metzeler",),
    "YUASA": ("yuasa",),
    "AGV": ("agv",),
    "PROTORK": ("protork",),
    "RIFFEL": ("riffel",),
}

# File/sheet keywords that name the vendor even without the brand itself.
VENDOR_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("moura", "MOURA"),
    ("liqui moly", "LIQUI MOLY"),
    ("aditivos", "LIQUI MOLY"),
    ("varta", "VARTA"),
)

_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (brand, re.compile(rf"(?<![a-z0-9]){re.escape(alias)}(?![a-z0-9])"))
    for brand, aliases in KNOWN_BRANDS.items()
    for alias in aliases
]


@dataclass(frozen=True)
class BrandDetection:
    brand: str
    source: str


def find_brand(text: str | None) -> str | None:
    """First known brand mentioned in ``text``."""
    normalized = normalize_text(text).replace("_", " ")
    if not normalized:
        return None
    for brand, pattern in _PATTERNS:
        if pattern.search(normalized):
            return brand
    return None


def infer_vendor_hint(
    file_name: str | None,
    sheet_names: Iterable[str] = (),
) -> BrandDetection | None:
    """Vendor implied by the file name or sheet names."""
    candidates = [("file", file_name or "")] + [("sheet", name) for name in sheet_names]
    for source, text in candidates:
        normalized = normalize_text(text).replace("_", " ")
        for keyword, vendor in VENDOR_KEYWORDS:
            if keyword in normalized:
                return BrandDetection(brand=vendor, source=source)
    for source, text in candidates:
        brand = find_brand(text)
        if brand:
            return BrandDetection(brand=brand, source=source)
    return None


def sheet_vendor_hints(rows: Iterable[RowRecord]) -> dict[str, str]:
    """
    Vendor per sheet, for rows that carry no brand of their own.

    A sheet named after a vendor ("MOURA", "Aditivos") gets that vendor;
    otherwise the brand most often mentioned in the sheet's rows wins.
    Sheets with neither are left out.
    """
    mentions: dict[str, Counter[str]] = {}
    for record in rows:
        counter = mentions.setdefault(record.sheet, Counter())
        text = " ".join(cell_to_text(value) for value in record.fields.values())
        brand = find_brand(text)
        if brand:
            counter[brand] += 1

    hints: dict[str, str] = {}
    for sheet, counter in mentions.items():
        detection = infer_vendor_hint(None, [sheet])
        if detection:
            hints[sheet] = detection.brand
        elif counter:
            hints[sheet] = counter.most_common(1)[0][0]
    return hints
