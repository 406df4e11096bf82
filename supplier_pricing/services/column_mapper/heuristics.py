"""
Heuristic Column Mapper
=======================

Deterministic mapping used when the assistant produces no usable result.

- Fields are matched by keyword lists against normalized header names.
- The identifier column is chosen by scoring name, uniqueness and
  code-likeness of its sampled values.
- When no price column matches by name, sampled values are scanned for a
  1,000-1,000,000 magnitude that is not a code.

Blacklisted columns (dimensions, USD) are never selected.
"""

import re
from typing import Any, Mapping, Sequence

from supplier_pricing.schemas.mapping import ColumnMapping, FieldEvidence
from supplier_pricing.services.column_mapper.rules import (
    build_evidence,
    column_values,
    is_blacklisted,
)
from supplier_pricing.utils.logger import get_logger
from supplier_pricing.utils.price_parser import (
    NON_PRICE_FIELD_RE,
    in_plausible_range,
    is_code_like_token,
    parse_price,
)
from supplier_pricing.utils.text import normalize_text

logger = get_logger(__name__)

ID_NAME_RE = re.compile(
    r"sku|\bcod(igo)?\b|\bref\b|referencia|part ?(number|no)|modelo|articulo|"
    r"\bitem\b|\bean\b|\bupc\b|\bnro\b|\bid\b"
)
CODE_VALUE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-._/]{1,30}$")
ID_SCORE_THRESHOLD = 4


def score_identifier_column(header: str, values: Sequence[str]) -> int:
    """
    Score how likely a column holds product identifiers.

    +3 identifier-like name, +4/+2 for >90%/>70% unique values,
    +3/+1 for >70%/>40% code-shaped values, -3 when most values are
    sentences of four or more words.
    """
    score = 3 if ID_NAME_RE.search(normalize_text(header)) else 0
    if not values:
        return score

    total = len(values)
    uniqueness = len(set(values)) / total
    if uniqueness > 0.9:
        score += 4
    elif uniqueness > 0.7:
        score += 2

    code_ratio = sum(1 for v in values if CODE_VALUE_RE.match(v)) / total
    if code_ratio > 0.7:
        score += 3
    elif code_ratio > 0.4:
        score += 1

    long_text_ratio = sum(1 for v in values if len(v.split()) >= 4) / total
    if long_text_ratio > 0.5:
        score -= 3
    return score


class HeuristicColumnMapper:
    """
    Keyword and value based column mapper.

    Example:
        mapping = HeuristicColumnMapper().map(headers, sample_rows)
        mapping.source  # "heuristic"
    """

    TYPE_TERMS: list[str] = ["tipo", "categoria", "familia", "clase", "rubro"]
    MODEL_TERMS: list[str] = ["modelo", "model", "codigo", "sku", "id"]
    BRAND_TERMS: list[str] = ["marca", "brand", "fabricante"]
    DESCRIPTION_TERMS: list[str] = [
        "descripcion",
        "description",
        "detalle",
        "denominacion",
        "producto",
        "aplicacion",
    ]
    # Ordered: the first matching term wins.
    PRICE_TERMS: list[str] = [
        "pvp off line",
        "precio de lista",
        "precio lista",
        "precio unitario",
        "contado",
        "precio",
        "pvp",
        "price",
        "importe",
        "valor",
        "costo",
    ]

    NAME_MATCH_CONFIDENCE: float = 0.6
    VALUE_SCAN_CONFIDENCE: float = 0.4

    def map(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, Any]],
    ) -> ColumnMapping:
        """Map headers to product fields without the assistant."""
        allowed = [h for h in headers if not is_blacklisted(h, sample_rows)]

        field_confidence: dict[str, float] = {}
        evidence: dict[str, FieldEvidence] = {}
        notes: list[str] = []

        def record(field: str, column: str | None, rationale: str, confidence: float) -> None:
            if column is None:
                return
            field_confidence[field] = confidence
            evidence[field] = build_evidence(
                column, sample_rows, rationale, numeric=field == "price"
            )

        type_col = self.match_terms(allowed, self.TYPE_TERMS)
        brand_col = self.match_terms(allowed, self.BRAND_TERMS)
        description_col = self.match_terms(allowed, self.DESCRIPTION_TERMS)
        model_col = self.match_terms(allowed, self.MODEL_TERMS)
        identifier_col = self.pick_identifier_column(allowed, sample_rows)

        price_col = self.match_terms(allowed, self.PRICE_TERMS)
        price_rationale = "header matches a price term"
        price_confidence = self.NAME_MATCH_CONFIDENCE
        if price_col is None:
            price_col = self.scan_price_column(allowed, sample_rows)
            price_rationale = "values fall in the 1,000-1,000,000 price band"
            price_confidence = self.VALUE_SCAN_CONFIDENCE
            if price_col:
                notes.append(f"price column '{price_col}' found by value scan")

        if identifier_col is None and model_col is not None:
            identifier_col = model_col
        if model_col is None:
            model_col = identifier_col

        record("type", type_col, "header matches a type term", self.NAME_MATCH_CONFIDENCE)
        record("brand", brand_col, "header matches a brand term", self.NAME_MATCH_CONFIDENCE)
        record(
            "description",
            description_col,
            "header matches a description term",
            self.NAME_MATCH_CONFIDENCE,
        )
        record("model", model_col, "header matches a model term", self.NAME_MATCH_CONFIDENCE)
        record(
            "identifier",
            identifier_col,
            "best identifier score (name, uniqueness, code shape)",
            self.NAME_MATCH_CONFIDENCE,
        )
        record("price", price_col, price_rationale, price_confidence)

        confidence = 0.2
        confidence += 0.25 if price_col else 0.0
        confidence += 0.15 if identifier_col else 0.0
        confidence += 0.05 if description_col else 0.0
        confidence += 0.05 if brand_col else 0.0

        mapping = ColumnMapping(
            type=type_col,
            identifier=identifier_col,
            model=model_col,
            brand=brand_col,
            description=description_col,
            price=price_col,
            confidence=round(confidence, 2),
            field_confidence=field_confidence,
            evidence=evidence,
            source="heuristic",
            notes=notes,
        )
        logger.info("heuristic_mapper.mapped", columns=mapping.columns())
        return mapping

    @staticmethod
    def match_terms(headers: Sequence[str], terms: Sequence[str]) -> str | None:
        normalized = [(h, normalize_text(h)) for h in headers]
        for term in terms:
            pattern = re.compile(rf"\b{re.escape(term)}\b")
            for header, name in normalized:
                if pattern.search(name):
                    return header
        return None

    @staticmethod
    def pick_identifier_column(
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, Any]],
    ) -> str | None:
        """Highest scoring identifier column at or above the threshold."""
        best: str | None = None
        best_score = ID_SCORE_THRESHOLD - 1
        for header in headers:
            values = column_values(sample_rows, header)
            named_like_id = bool(ID_NAME_RE.search(normalize_text(header)))
            if values and not named_like_id:
                # Unique numeric columns are usually prices, not codes.
                price_like = sum(1 for v in values if in_plausible_range(parse_price(v)))
                if price_like / len(values) > 0.5:
                    continue
            score = score_identifier_column(header, values)
            if score > best_score:
                best, best_score = header, score
        return best

    @staticmethod
    def scan_price_column(
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, Any]],
    ) -> str | None:
        """Column whose sampled values most often look like prices."""
        best: str | None = None
        best_hits = 0
        for header in headers:
            if NON_PRICE_FIELD_RE.search(header):
                continue
            hits = 0
            for row in sample_rows:
                raw = row.get(header)
                if is_code_like_token(raw):
                    continue
                if in_plausible_range(parse_price(raw)):
                    hits += 1
            if hits > best_hits:
                best, best_hits = header, hits
        return best
