"""Tests for the assistant response contract and resolved mapping schemas."""

import pytest
from pydantic import ValidationError

from supplier_pricing.schemas.mapping import AssistantMappingResponse, ColumnMapping


class TestAssistantMappingResponse:
    """Tests for AssistantMappingResponse validation."""

    def test_spanish_keys(self, valid_assistant_response) -> None:
        """Spanish keys populate the English fields."""
        response = AssistantMappingResponse.model_validate(valid_assistant_response)

        assert response.price == "PVP Off Line"
        assert response.model == "Codigo"
        assert response.identifier == "Codigo"
        assert response.confidence == 0.92
        assert response.evidence["precio_ars"].range_max == 265000
        assert response.classifications[0].category == "modelo"
        assert response.notes_list() == ["mapeo directo"]

    def test_null_strings_become_none(self) -> None:
        """Blank and 'null' strings mean no column."""
        response = AssistantMappingResponse.model_validate(
            {"tipo": "null", "marca": "  ", "confianza": 0.8}
        )
        assert response.type is None
        assert response.brand is None

    def test_percentage_confidence(self) -> None:
        """A confidence given as a percentage is scaled to 0-1."""
        response = AssistantMappingResponse.model_validate({"confianza": 85})
        assert response.confidence == pytest.approx(0.85)

    def test_confidence_required(self) -> None:
        """Answers without confianza are rejected."""
        with pytest.raises(ValidationError):
            AssistantMappingResponse.model_validate({"precio_ars": "Precio"})

    def test_unknown_category(self) -> None:
        """Unknown column categories become desconocida."""
        response = AssistantMappingResponse.model_validate(
            {
                "confianza": 0.9,
                "clasificacion_columnas": [{"columna": "X", "categoria_inferida": "otra"}],
                "evidencia": {"tipo": None},
            }
        )
        assert response.classifications[0].category == "desconocida"
        assert response.evidence == {}


class TestColumnMapping:
    """Tests for ColumnMapping."""

    def test_columns_lists_set_fields(self) -> None:
        """Only fields with a header are listed."""
        mapping = ColumnMapping(identifier="Codigo", price="Precio")
        assert mapping.columns() == {"identifier": "Codigo", "price": "Precio"}

    def test_frozen(self) -> None:
        """Mappings cannot be mutated in place."""
        mapping = ColumnMapping(price="Precio")
        with pytest.raises(ValidationError):
            mapping.price = "Otro"
