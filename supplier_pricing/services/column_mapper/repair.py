"""
Header Reference Repair
=======================

The assistant must answer with column names. When it answers with a cell
value instead ("$ 45.900", "M18FD") or a name that is not in the header
list, the reference is repaired here: the value is looked up in the sampled
rows, then price fields fall back to the most price-like column, then to
keyword matching. Any substitution caps the overall confidence at 0.6 and
is recorded in the notes.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from supplier_pricing.schemas.mapping import MAPPED_FIELDS, AssistantMappingResponse
from supplier_pricing.services.column_mapper.heuristics import HeuristicColumnMapper
from supplier_pricing.services.column_mapper.rules import is_blacklisted
from supplier_pricing.utils.logger import get_logger
from supplier_pricing.utils.text import cell_to_text, normalize_text

logger = get_logger(__name__)

REPAIRED_CONFIDENCE_CAP = 0.6

_FIELD_TERMS: dict[str, list[str]] = {
    "type": HeuristicColumnMapper.TYPE_TERMS,
    "model": HeuristicColumnMapper.MODEL_TERMS,
    "identifier": HeuristicColumnMapper.MODEL_TERMS,
    "brand": HeuristicColumnMapper.BRAND_TERMS,
    "description": HeuristicColumnMapper.DESCRIPTION_TERMS,
    "price": HeuristicColumnMapper.PRICE_TERMS,
}


@dataclass
class RepairResult:
    """Field-to-header references after repair."""

    columns: dict[str, str | None]
    confidence: float
    notes: list[str] = field(default_factory=list)
    repaired: bool = False


def _column_containing(
    value: str,
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]],
) -> str | None:
    wanted = normalize_text(value)
    for header in headers:
        if any(normalize_text(cell_to_text(row.get(header))) == wanted for row in sample_rows):
            return header
    return None


def _substitute(
    field_name: str,
    value: str,
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]],
) -> str | None:
    allowed = [h for h in headers if not is_blacklisted(h, sample_rows)]

    column = _column_containing(value, allowed, sample_rows)
    if column:
        return column
    if field_name == "price":
        column = HeuristicColumnMapper.scan_price_column(allowed, sample_rows)
        if column:
            return column
    return HeuristicColumnMapper.match_terms(allowed, _FIELD_TERMS[field_name])


def repair_references(
    response: AssistantMappingResponse,
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]],
) -> RepairResult:
    """
    Resolve every field of the assistant response to a real header.

    Exact names pass through, case or accent variants are normalized to the
    real header, anything else is substituted or dropped.
    """
    by_normalized = {normalize_text(h): h for h in headers}
    result = RepairResult(columns={}, confidence=response.confidence)

    for field_name in MAPPED_FIELDS:
        value = getattr(response, field_name)
        if value is None or value in headers:
            result.columns[field_name] = value
            continue

        normalized = by_normalized.get(normalize_text(value))
        if normalized is not None:
            result.columns[field_name] = normalized
            continue

        substitute = _substitute(field_name, value, headers, sample_rows)
        result.columns[field_name] = substitute
        result.repaired = True
        if substitute:
            result.notes.append(
                f"{field_name}: '{value}' is not a column name; replaced by '{substitute}'"
            )
        else:
            result.notes.append(
                f"{field_name}: '{value}' is not a column name and no column matched"
            )
        logger.warning(
            "column_mapper.reference_repaired",
            field=field_name,
            returned=value,
            column=substitute,
        )

    if result.repaired:
        result.confidence = min(result.confidence, REPAIRED_CONFIDENCE_CAP)
    return result
