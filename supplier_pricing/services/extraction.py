"""
Row Extraction
==============

Typed access to a raw row through the resolved column mapping, so pricing
code never deals with string-keyed lookups directly.
"""

from dataclasses import dataclass
from typing import Any

from supplier_pricing.schemas.mapping import ColumnMapping
from supplier_pricing.schemas.sheets import RowRecord
from supplier_pricing.services.brand_detector import find_brand
from supplier_pricing.services.column_mapper.heuristics import ID_NAME_RE
from supplier_pricing.utils.fallback import Provider, first_success
from supplier_pricing.utils.price_parser import (
    find_alternate_price,
    find_comma_price,
    is_code_like_token,
    parse_price,
)
from supplier_pricing.utils.text import cell_to_text, normalize_text

MIN_DESCRIPTION_LENGTH = 6


@dataclass(frozen=True)
class ResolvedPrice:
    """Base price plus where it was found."""

    value: float
    source: str  # mapped | alternate | comma | unresolved

    @property
    def resolved(self) -> bool:
        return self.value > 0


class MappedRow:
    """
    A row record viewed through a column mapping.

    Column lookups fall back to accent/case-insensitive header matching,
    since rows from earlier sheets may spell a header differently from the
    consolidated header list.
    """

    def __init__(self, record: RowRecord, mapping: ColumnMapping) -> None:
        self.record = record
        self.mapping = mapping
        self._normalized = {normalize_text(k): k for k in record.fields}

    def get(self, column: str | None) -> Any:
        if column is None:
            return None
        fields = self.record.fields
        if column in fields:
            return fields[column]
        key = self._normalized.get(normalize_text(column))
        return fields[key] if key is not None else None

    def text(self, column: str | None) -> str | None:
        return cell_to_text(self.get(column)) or None

    # -------------------------------------------------------------------------
    # Mapped fields
    # -------------------------------------------------------------------------

    @property
    def identifier(self) -> str | None:
        value = self.text(self.mapping.identifier) or self.text(self.mapping.model)
        if value:
            return value
        for name, raw in self.record.fields.items():
            text = cell_to_text(raw)
            if text and ID_NAME_RE.search(normalize_text(name)):
                return text
        return None

    @property
    def model(self) -> str | None:
        return self.text(self.mapping.model) or self.identifier

    @property
    def type(self) -> str | None:
        return self.text(self.mapping.type)

    @property
    def description(self) -> str | None:
        value = self.text(self.mapping.description)
        if value and len(value) >= MIN_DESCRIPTION_LENGTH:
            return value
        # Longest free-text cell that is not a number or a code.
        candidates = [
            text
            for raw in self.record.fields.values()
            if (text := cell_to_text(raw))
            and len(text.split()) >= 3
            and parse_price(text) is None
        ]
        return max(candidates, key=len) if candidates else value

    @property
    def brand(self) -> str | None:
        """Brand column value, else a known brand mentioned in the row."""
        value = self.text(self.mapping.brand)
        if value:
            return value
        return find_brand(self.description) or find_brand(self.model)

    # -------------------------------------------------------------------------
    # Price discovery
    # -------------------------------------------------------------------------

    def _mapped_price(self) -> float | None:
        raw = self.get(self.mapping.price)
        if is_code_like_token(raw):
            return None
        return parse_price(raw)

    def resolve_price(self) -> ResolvedPrice:
        """Mapped column, then alternate numeric search, then comma search."""
        fields = self.record.fields
        exclude = self.mapping.price
        resolution = first_success(
            [
                Provider("mapped", self._mapped_price),
                Provider("alternate", lambda: find_alternate_price(fields, exclude)),
                Provider("comma", lambda: find_comma_price(fields, exclude)),
            ],
            chain="price_discovery",
            errors=(ValueError,),
        )
        if resolution is None:
            return ResolvedPrice(value=0.0, source="unresolved")
        return ResolvedPrice(value=resolution.value, source=resolution.provider)
