"""
Forced Overrides
================

Header conventions that are common and unambiguous in supplier price lists
take precedence over whatever mapping was produced:

- "PVP Off Line", then "Precio de Lista", then "Precio Unitario" -> price
- a header containing "codigo" -> identifier (and model when unset)
- "rubro" -> type, "marca" -> brand, "descripcion" -> description

Matching is case- and accent-insensitive substring matching. Blacklisted
headers are skipped so that overrides cannot violate the mapping invariant.
"""

from typing import Any, Mapping, Sequence

from supplier_pricing.schemas.mapping import ColumnMapping
from supplier_pricing.services.column_mapper.rules import build_evidence, is_blacklisted
from supplier_pricing.utils.logger import get_logger
from supplier_pricing.utils.text import normalize_text

logger = get_logger(__name__)

FORCED_PRICE_HEADERS: tuple[str, ...] = ("pvp off line", "precio de lista", "precio unitario")
FORCED_FIELD_HEADERS: tuple[tuple[str, str], ...] = (
    ("identifier", "codigo"),
    ("type", "rubro"),
    ("brand", "marca"),
    ("description", "descripcion"),
)
FORCED_FIELD_CONFIDENCE = 0.95


def _find_header(
    headers: Sequence[str],
    needle: str,
    sample_rows: Sequence[Mapping[str, Any]],
) -> str | None:
    for header in headers:
        if needle in normalize_text(header) and not is_blacklisted(header, sample_rows):
            return header
    return None


def apply_forced_overrides(
    mapping: ColumnMapping,
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]] = (),
) -> ColumnMapping:
    """
    Return a new mapping with the authoritative header rules applied.

    Args:
        mapping: Mapping produced by the assistant or the heuristic mapper
        headers: Consolidated header list
        sample_rows: Rows used to recompute evidence for overridden fields

    Returns:
        The overridden mapping (``mapping`` itself when no rule matched)
    """
    forced: dict[str, str] = {}

    for needle in FORCED_PRICE_HEADERS:
        header = _find_header(headers, needle, sample_rows)
        if header:
            forced["price"] = header
            break

    for field, needle in FORCED_FIELD_HEADERS:
        header = _find_header(headers, needle, sample_rows)
        if header:
            forced[field] = header

    if "identifier" in forced and mapping.model is None:
        forced["model"] = forced["identifier"]

    if not forced:
        return mapping

    notes = list(mapping.notes)
    evidence = dict(mapping.evidence)
    field_confidence = dict(mapping.field_confidence)
    for field, header in forced.items():
        previous = getattr(mapping, field)
        if previous != header:
            notes.append(f"forced override: {field} '{previous}' -> '{header}'")
            logger.info(
                "column_mapper.forced_override",
                field=field,
                previous=previous,
                column=header,
            )
        evidence[field] = build_evidence(
            header,
            sample_rows,
            "forced header convention",
            numeric=field == "price",
        )
        field_confidence[field] = FORCED_FIELD_CONFIDENCE

    return mapping.model_copy(
        update={
            **forced,
            "evidence": evidence,
            "field_confidence": field_confidence,
            "forced_fields": sorted(set(mapping.forced_fields) | set(forced)),
            "notes": notes,
        }
    )
