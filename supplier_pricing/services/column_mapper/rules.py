"""
Column Rules
============

Blacklists and sample profiling shared by every mapping path.

A column is blacklisted when its name or most of its sampled content looks
like a physical dimension/unit (pallet, weight, size, Ah, CCA, voltage) or a
foreign currency (USD markers). No mapped field may point at such a column.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Final, Mapping, Sequence

from supplier_pricing.schemas.mapping import FieldEvidence
from supplier_pricing.utils.price_parser import parse_price
from supplier_pricing.utils.text import cell_to_text, normalize_text

DIMENSION_NAME_RE: Final = re.compile(
    r"pallet|palet|\bkg\b|kilo|peso|largo|ancho|\balto\b|altura|\bmm\b|\bcm\b|"
    r"\bah\b|\bcca\b|dimens|unidad(?:es)? por pallet|capacidad|volumen|voltaje|"
    r"\bvolts?\b|\bv\b"
)
USD_NAME_RE: Final = re.compile(r"usd|u\$s|us\$|dolar|dollar")

DIMENSION_VALUE_RE: Final = re.compile(
    r"^\d+(?:[.,]\d+)?\s*(?:ah|v|kg|mm|cm|cca|lts?|w)$|^\d+\s*[x×]\s*\d+(?:\s*[x×]\s*\d+)?"
)
USD_VALUE_RE: Final = re.compile(r"^(?:usd|u\$s|us\$)\s*[\d.,]+$|^[\d.,]+\s*(?:usd|u\$s)$")

# Share of sampled values that must match before content alone blacklists a column.
CONTENT_BLACKLIST_RATIO: Final[float] = 0.5


@dataclass
class ColumnProfile:
    """Sampled statistics of a single column."""

    column: str
    samples: list[str] = field(default_factory=list)
    non_empty: int = 0
    numeric: int = 0
    range_min: float | None = None
    range_max: float | None = None

    @property
    def coverage(self) -> float:
        """Share of non-empty sampled values that parse as prices."""
        return self.numeric / self.non_empty if self.non_empty else 0.0


def column_values(rows: Sequence[Mapping[str, Any]], column: str) -> list[str]:
    """Non-blank text values of ``column`` across ``rows``."""
    values = []
    for row in rows:
        text = cell_to_text(row.get(column))
        if text:
            values.append(text)
    return values


def profile_column(rows: Sequence[Mapping[str, Any]], column: str) -> ColumnProfile:
    """Compute coverage and range of a column over the sampled rows."""
    profile = ColumnProfile(column=column)
    parsed: list[float] = []
    for row in rows:
        raw = row.get(column)
        text = cell_to_text(raw)
        if not text:
            continue
        profile.non_empty += 1
        if len(profile.samples) < 5:
            profile.samples.append(text)
        value = parse_price(raw)
        if value is not None:
            parsed.append(value)
    profile.numeric = len(parsed)
    if parsed:
        profile.range_min = min(parsed)
        profile.range_max = max(parsed)
    return profile


def blacklist_reason(
    column: str,
    rows: Sequence[Mapping[str, Any]] = (),
) -> str | None:
    """
    Why ``column`` may not be mapped, or None when it is allowed.

    Returns ``"dimension"`` or ``"usd"``.
    """
    name = normalize_text(column)
    if USD_NAME_RE.search(name):
        return "usd"
    if DIMENSION_NAME_RE.search(name):
        return "dimension"

    values = [normalize_text(v) for v in column_values(rows, column)]
    if not values:
        return None
    threshold = len(values) * CONTENT_BLACKLIST_RATIO
    if sum(1 for v in values if USD_VALUE_RE.search(v)) > threshold:
        return "usd"
    if sum(1 for v in values if DIMENSION_VALUE_RE.search(v)) > threshold:
        return "dimension"
    return None


def is_blacklisted(column: str, rows: Sequence[Mapping[str, Any]] = ()) -> bool:
    return blacklist_reason(column, rows) is not None


def build_evidence(
    column: str,
    rows: Sequence[Mapping[str, Any]],
    rationale: str,
    numeric: bool = False,
) -> FieldEvidence:
    """Evidence block for a chosen column, recomputed from the sample rows."""
    profile = profile_column(rows, column)
    evidence = FieldEvidence(column=column, samples=profile.samples, rationale=rationale)
    if numeric:
        evidence.numeric_coverage = round(profile.coverage, 3)
        evidence.range_min = profile.range_min
        evidence.range_max = profile.range_max
    return evidence
