"""
Unit tests for the column mapping rules.

Tests blacklists, heuristic mapping, forced overrides, reference repair,
the post-check and prompt building.
"""

from typing import Any

import pytest

from supplier_pricing.schemas.mapping import (
    AssistantMappingResponse,
    ColumnClassification,
    ColumnMapping,
)
from supplier_pricing.services.column_mapper.heuristics import (
    HeuristicColumnMapper,
    score_identifier_column,
)
from supplier_pricing.services.column_mapper.overrides import apply_forced_overrides
from supplier_pricing.services.column_mapper.prompts import (
    build_feedback_prompt,
    build_mapping_prompt,
)
from supplier_pricing.services.column_mapper.repair import repair_references
from supplier_pricing.services.column_mapper.rules import (
    blacklist_reason,
    build_evidence,
    profile_column,
)
from supplier_pricing.services.column_mapper.validation import (
    MappingThresholds,
    validate_mapping,
)

NETO_HEADERS = ["Item", "Nombre", "Neto"]
NETO_ROWS = [
    {"Item": "A1", "Nombre": "Filtro de aceite", "Neto": "$ 15.200"},
    {"Item": "A2", "Nombre": "Filtro de aire", "Neto": "$ 18.900"},
    {"Item": "A3", "Nombre": "Filtro de combustible", "Neto": "$ 21.400"},
]


@pytest.fixture
def battery_mapping() -> ColumnMapping:
    return ColumnMapping(
        identifier="Codigo",
        model="Codigo",
        brand="Marca",
        description="Descripcion",
        price="PVP Off Line",
        confidence=0.92,
        source="llm",
    )


class TestBlacklist:
    """Tests for blacklist_reason."""

    @pytest.mark.parametrize("header", ["Peso (kg)", "Unidades por pallet", "Ah", "CCA", "V"])
    def test_dimension_names(self, header: str) -> None:
        """Dimension and unit headers are blacklisted by name."""
        assert blacklist_reason(header) == "dimension"

    @pytest.mark.parametrize("header", ["Precio USD", "Lista U$S", "Valor dólar"])
    def test_usd_names(self, header: str) -> None:
        """Foreign currency headers are blacklisted by name."""
        assert blacklist_reason(header) == "usd"

    def test_dimension_content(self) -> None:
        """Most values carrying a unit blacklist the column."""
        rows = [{"Dato": "45 Ah"}, {"Dato": "50Ah"}, {"Dato": "65 Ah"}]
        assert blacklist_reason("Dato", rows) == "dimension"

    def test_usd_content(self) -> None:
        """Most values carrying a USD marker blacklist the column."""
        rows = [{"Lista": "USD 120"}, {"Lista": "USD 150"}, {"Lista": "180"}]
        assert blacklist_reason("Lista", rows) == "usd"

    def test_price_column_is_allowed(self, battery_sample_rows) -> None:
        """A plain ARS price column is not blacklisted."""
        assert blacklist_reason("PVP Off Line", battery_sample_rows) is None


class TestProfiling:
    """Tests for profile_column and build_evidence."""

    def test_profile_coverage_and_range(self, battery_sample_rows) -> None:
        """Coverage and range are computed from parsed values."""
        profile = profile_column(battery_sample_rows, "PVP Off Line")
        assert profile.coverage == 1.0
        assert profile.range_min == 98500.0
        assert profile.range_max == 265000.0
        assert len(profile.samples) == 5

    def test_evidence_for_text_column_has_no_range(self, battery_sample_rows) -> None:
        """Numeric statistics are only attached to price evidence."""
        evidence = build_evidence("Codigo", battery_sample_rows, "códigos")
        assert evidence.samples[0] == "M18FD"
        assert evidence.numeric_coverage is None


class TestHeuristicMapper:
    """Tests for HeuristicColumnMapper."""

    def test_battery_headers(self, battery_headers, battery_sample_rows) -> None:
        """Keyword matching maps every battery column."""
        mapping = HeuristicColumnMapper().map(battery_headers, battery_sample_rows)

        assert mapping.source == "heuristic"
        assert mapping.columns() == {
            "identifier": "Codigo",
            "model": "Codigo",
            "brand": "Marca",
            "description": "Descripcion",
            "price": "PVP Off Line",
        }
        assert mapping.confidence == pytest.approx(0.7)
        assert mapping.evidence["price"].range_max == 265000.0

    def test_price_found_by_value_scan(self) -> None:
        """Without a price term the column is found by magnitude."""
        mapping = HeuristicColumnMapper().map(NETO_HEADERS, NETO_ROWS)

        assert mapping.price == "Neto"
        assert mapping.field_confidence["price"] == HeuristicColumnMapper.VALUE_SCAN_CONFIDENCE
        assert mapping.identifier == "Item"
        assert any("value scan" in note for note in mapping.notes)

    def test_blacklisted_columns_are_never_selected(self) -> None:
        """A weight column full of large numbers is not a price."""
        rows = [
            {"Codigo": "A1", "Descripcion": "Bateria 12x45", "Peso": "12.500"},
            {"Codigo": "A2", "Descripcion": "Bateria 12x65", "Peso": "15.800"},
        ]
        mapping = HeuristicColumnMapper().map(["Codigo", "Descripcion", "Peso"], rows)
        assert mapping.price is None
        assert "Peso" not in mapping.columns().values()

    def test_identifier_score(self) -> None:
        """Named, unique, code-shaped columns score highest."""
        codes = ["M18FD", "M20GD", "M22GD", "M24KD"]
        sentences = ["Bateria de arranque para auto", "Bateria de arranque para moto"] * 2
        assert score_identifier_column("Codigo", codes) == 10
        assert score_identifier_column("Detalle", sentences) < 4


class TestForcedOverrides:
    """Tests for apply_forced_overrides."""

    def test_pvp_off_line_beats_assistant_choice(self, battery_sample_rows) -> None:
        """The conventional price header replaces the chosen price column."""
        headers = ["Codigo", "Descripcion", "Marca", "Precio Contado", "PVP Off Line"]
        rows = [{**row, "Precio Contado": row["PVP Off Line"]} for row in battery_sample_rows]
        mapping = ColumnMapping(price="Precio Contado", confidence=0.9, source="llm")

        result = apply_forced_overrides(mapping, headers, rows)

        assert result.price == "PVP Off Line"
        assert result.identifier == "Codigo"
        assert result.model == "Codigo"
        assert result.brand == "Marca"
        assert result.description == "Descripcion"
        assert result.forced_fields == ["brand", "description", "identifier", "model", "price"]
        assert result.field_confidence["price"] == 0.95
        assert "forced override: price 'Precio Contado' -> 'PVP Off Line'" in result.notes
        assert result.source == "llm"

    def test_model_is_kept_when_already_set(self) -> None:
        """The codigo rule only fills the model when it is unset."""
        mapping = ColumnMapping(model="Modelo", price="Precio", confidence=0.9)
        result = apply_forced_overrides(mapping, ["Código Interno", "Modelo", "Precio"])

        assert result.identifier == "Código Interno"
        assert result.model == "Modelo"

    def test_no_rule_returns_same_mapping(self) -> None:
        """Without a conventional header the mapping is returned untouched."""
        mapping = ColumnMapping(price="Neto", identifier="Item")
        assert apply_forced_overrides(mapping, NETO_HEADERS, NETO_ROWS) is mapping

    def test_blacklisted_header_is_skipped(self) -> None:
        """A conventional header in USD does not win."""
        headers = ["Precio de Lista USD", "Precio Unitario"]
        result = apply_forced_overrides(ColumnMapping(), headers)
        assert result.price == "Precio Unitario"


class TestRepairReferences:
    """Tests for repair_references."""

    def _response(self, base: dict[str, Any], **changes: Any) -> AssistantMappingResponse:
        return AssistantMappingResponse.model_validate({**base, **changes})

    def test_exact_names_pass_through(
        self, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """Real header names are kept and confidence is unchanged."""
        result = repair_references(
            self._response(valid_assistant_response), battery_headers, battery_sample_rows
        )
        assert not result.repaired
        assert result.confidence == 0.92
        assert result.columns["price"] == "PVP Off Line"

    def test_case_variant_is_normalized(
        self, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """A different spelling of a header resolves to the real header."""
        response = self._response(valid_assistant_response, modelo="CODIGO", marca="marca")
        result = repair_references(response, battery_headers, battery_sample_rows)

        assert result.columns["model"] == "Codigo"
        assert result.columns["brand"] == "Marca"
        assert not result.repaired

    def test_cell_value_is_replaced_by_its_column(
        self, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """A cell value returned as a column name is traced back to its column."""
        response = self._response(valid_assistant_response, precio_ars="$ 152.300")
        result = repair_references(response, battery_headers, battery_sample_rows)

        assert result.columns["price"] == "PVP Off Line"
        assert result.repaired
        assert result.confidence == 0.6
        assert result.notes == [
            "price: '$ 152.300' is not a column name; replaced by 'PVP Off Line'"
        ]

    def test_unknown_name_without_match_is_dropped(
        self, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """A name nothing can stand in for resolves to None."""
        response = self._response(valid_assistant_response, tipo="Categoria")
        result = repair_references(response, battery_headers, battery_sample_rows)

        assert result.columns["type"] is None
        assert result.repaired
        assert "no column matched" in result.notes[0]


class TestValidateMapping:
    """Tests for validate_mapping."""

    def test_valid_mapping_has_no_reasons(self, battery_mapping, battery_sample_rows) -> None:
        """A confident ARS mapping passes."""
        assert validate_mapping(battery_mapping, battery_sample_rows) == []

    def test_low_confidence(self, battery_mapping, battery_sample_rows) -> None:
        """Confidence below the threshold is a violation."""
        mapping = battery_mapping.model_copy(update={"confidence": 0.5})
        reasons = validate_mapping(mapping, battery_sample_rows)
        assert reasons == ["confianza 0.50 menor al mínimo 0.70"]

    def test_missing_price(self, battery_mapping, battery_sample_rows) -> None:
        """A mapping without price is rejected."""
        mapping = battery_mapping.model_copy(update={"price": None})
        assert validate_mapping(mapping, battery_sample_rows) == ["precio_ars sin columna elegida"]

    def test_small_prices_do_not_look_like_ars(self) -> None:
        """A price column topping out below 100,000 is rejected."""
        mapping = ColumnMapping(price="Neto", identifier="Item", confidence=0.9)
        reasons = validate_mapping(mapping, NETO_ROWS)
        assert len(reasons) == 1
        assert "no parece ARS" in reasons[0]

    def test_low_numeric_coverage(self, battery_mapping, battery_sample_rows) -> None:
        """Too many non-numeric price cells are rejected."""
        rows = [
            {**row, "PVP Off Line": "consultar"} if i % 2 else row
            for i, row in enumerate(battery_sample_rows)
        ]
        reasons = validate_mapping(battery_mapping, rows)
        assert any("cobertura numérica 50%" in r for r in reasons)

    def test_blacklisted_column(self, battery_mapping, battery_sample_rows) -> None:
        """Pointing any field at a dimension column is rejected."""
        mapping = battery_mapping.model_copy(update={"type": "Capacidad Ah"})
        reasons = validate_mapping(mapping, battery_sample_rows)
        assert any("lista negra" in r and "Capacidad Ah" in r for r in reasons)

    def test_self_classified_dimension(self, battery_mapping, battery_sample_rows) -> None:
        """A column the assistant itself classified as a dimension is rejected."""
        classifications = [ColumnClassification(column="Codigo", category="dimension")]
        reasons = validate_mapping(
            battery_mapping, battery_sample_rows, MappingThresholds(), classifications
        )
        assert any("clasificada por vos como dimension" in r for r in reasons)


class TestPrompts:
    """Tests for prompt builders."""

    def test_mapping_prompt_carries_context(self, battery_headers, battery_sample_rows) -> None:
        """Headers, sheets, file, vendor and samples are included."""
        prompt = build_mapping_prompt(
            battery_headers,
            battery_sample_rows,
            file_name="lista_moura.xlsx",
            vendor_hint="MOURA",
            sheet_names=["Baterias"],
        )
        assert 'COLUMNAS: ["Codigo", "Descripcion", "Marca", "PVP Off Line"]' in prompt
        assert 'HOJAS: ["Baterias"]' in prompt
        assert "ARCHIVO: lista_moura.xlsx" in prompt
        assert "PROVEEDOR: MOURA" in prompt
        assert "$ 152.300" in prompt

    def test_feedback_prompt_lists_reasons(self) -> None:
        """Each violated rule is listed."""
        prompt = build_feedback_prompt(["precio_ars sin columna elegida", "confianza baja"])
        assert prompt.startswith("DIAGNÓSTICO: el mapeo anterior fue INVALIDADO.")
        assert "- precio_ars sin columna elegida\n- confianza baja" in prompt
