"""
Mapping Post-Check
==================

Rules every assistant-produced mapping must satisfy before it is accepted.
Each violated rule yields one reason string; the reasons are sent back to
the assistant verbatim as retry feedback, so they are written in Spanish.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from supplier_pricing.config.settings import Settings
from supplier_pricing.schemas.mapping import (
    MAPPED_FIELDS,
    ColumnClassification,
    ColumnMapping,
)
from supplier_pricing.services.column_mapper.rules import blacklist_reason, profile_column

_FORBIDDEN_CATEGORIES = {"dimension", "moneda_usd"}

_FIELD_LABELS = {
    "type": "tipo",
    "identifier": "identificador",
    "model": "modelo",
    "brand": "marca",
    "description": "descripcion",
    "price": "precio_ars",
}


@dataclass(frozen=True)
class MappingThresholds:
    """Acceptance thresholds for assisted mappings."""

    min_confidence: float = 0.7
    min_price_coverage: float = 0.8
    min_price_max: float = 100_000

    @classmethod
    def from_settings(cls, settings: Settings) -> "MappingThresholds":
        return cls(
            min_confidence=settings.mapping_min_confidence,
            min_price_coverage=settings.mapping_min_price_coverage,
            min_price_max=settings.mapping_min_price_max,
        )


def validate_mapping(
    mapping: ColumnMapping,
    sample_rows: Sequence[Mapping[str, Any]],
    thresholds: MappingThresholds = MappingThresholds(),
    classifications: Sequence[ColumnClassification] = (),
) -> list[str]:
    """
    Check a mapping against the acceptance rules.

    Args:
        mapping: Candidate mapping
        sample_rows: Rows the assistant saw, used to recompute coverage
        thresholds: Acceptance thresholds
        classifications: The assistant's own per-column classification

    Returns:
        Violated rules; empty when the mapping is acceptable
    """
    reasons: list[str] = []

    if mapping.confidence < thresholds.min_confidence:
        reasons.append(
            f"confianza {mapping.confidence:.2f} menor al mínimo {thresholds.min_confidence:.2f}"
        )

    classified = {c.column: c.category for c in classifications}
    for field_name in MAPPED_FIELDS:
        column = getattr(mapping, field_name)
        if column is None:
            continue
        label = _FIELD_LABELS[field_name]
        reason = blacklist_reason(column, sample_rows)
        if reason == "dimension":
            reasons.append(
                f"{label} usa '{column}', que coincide con la lista negra de dimensiones/unidades"
            )
        elif reason == "usd":
            reasons.append(f"{label} usa '{column}', que parece una columna en USD")
        if classified.get(column) in _FORBIDDEN_CATEGORIES:
            reasons.append(
                f"{label} usa '{column}', clasificada por vos como {classified[column]}"
            )

    if mapping.price is None:
        reasons.append("precio_ars sin columna elegida")
    else:
        profile = profile_column(sample_rows, mapping.price)
        if profile.coverage < thresholds.min_price_coverage:
            reasons.append(
                f"precio_ars '{mapping.price}' con cobertura numérica {profile.coverage:.0%} "
                f"(mínimo {thresholds.min_price_coverage:.0%})"
            )
        if profile.range_max is None or profile.range_max < thresholds.min_price_max:
            reasons.append(
                f"precio_ars '{mapping.price}' con máximo {profile.range_max or 0:,.0f} "
                f"(menor a {thresholds.min_price_max:,.0f}, no parece ARS)"
            )

    return reasons
