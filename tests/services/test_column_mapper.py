"""
Tests for the column mapper.

Covers the assisted retry state machine, the heuristic fallback and the
forced header overrides, with the assistant replaced by an AsyncMock.
"""

import pytest

from supplier_pricing.services.column_mapper import AssistedColumnMapper, ColumnMapper
from supplier_pricing.utils.errors import LLMError, MappingError


def low_confidence(response: dict) -> dict:
    return {**response, "confianza": 0.5}


class TestAssistedColumnMapper:
    """Tests for AssistedColumnMapper."""

    async def test_accepted_on_first_attempt(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """A valid answer is accepted without retry."""
        mock_llm_client.complete_json.return_value = valid_assistant_response

        mapping = await AssistedColumnMapper(mock_llm_client).map(
            battery_headers, battery_sample_rows, file_name="lista_moura.xlsx"
        )

        assert mapping.source == "llm"
        assert mapping.attempts == 1
        assert mapping.price == "PVP Off Line"
        assert mapping.confidence == 0.92
        assert mapping.evidence["price"].rationale == "precio final en pesos"
        assert mock_llm_client.complete_json.await_count == 1

    async def test_retry_sends_feedback(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """A rejected answer is retried with the violated rules appended."""
        mock_llm_client.complete_json.side_effect = [
            low_confidence(valid_assistant_response),
            valid_assistant_response,
        ]

        mapping = await AssistedColumnMapper(mock_llm_client).map(
            battery_headers, battery_sample_rows
        )

        assert mapping.attempts == 2
        first_prompt = mock_llm_client.complete_json.call_args_list[0].args[0]
        retry_prompt = mock_llm_client.complete_json.call_args_list[1].args[0]
        assert retry_prompt.startswith(first_prompt)
        assert "DIAGNÓSTICO: el mapeo anterior fue INVALIDADO." in retry_prompt
        assert "- confianza 0.50 menor al mínimo 0.70" in retry_prompt

    async def test_fails_after_retry(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """Two rejected answers raise MappingError with the reasons."""
        mock_llm_client.complete_json.return_value = low_confidence(valid_assistant_response)

        with pytest.raises(MappingError) as exc_info:
            await AssistedColumnMapper(mock_llm_client).map(battery_headers, battery_sample_rows)

        assert exc_info.value.details["attempts"] == 2
        assert exc_info.value.details["reasons"] == ["confianza 0.50 menor al mínimo 0.70"]
        assert mock_llm_client.complete_json.await_count == 2

    async def test_no_retry_budget(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """With max_retries=0 the first rejection is final."""
        mock_llm_client.complete_json.return_value = low_confidence(valid_assistant_response)

        with pytest.raises(MappingError):
            await AssistedColumnMapper(mock_llm_client, max_retries=0).map(
                battery_headers, battery_sample_rows
            )
        assert mock_llm_client.complete_json.await_count == 1

    async def test_malformed_json_is_retried(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """A non-JSON answer counts as a rejected attempt."""
        mock_llm_client.complete_json.side_effect = [
            LLMError("Assistant returned non-JSON content", details={"reason": "malformed_json"}),
            valid_assistant_response,
        ]

        mapping = await AssistedColumnMapper(mock_llm_client).map(
            battery_headers, battery_sample_rows
        )
        assert mapping.attempts == 2

    async def test_schema_violation_is_retried(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """An answer missing required keys is fed back as a schema error."""
        incomplete = {k: v for k, v in valid_assistant_response.items() if k != "confianza"}
        mock_llm_client.complete_json.side_effect = [incomplete, valid_assistant_response]

        mapping = await AssistedColumnMapper(mock_llm_client).map(
            battery_headers, battery_sample_rows
        )

        assert mapping.attempts == 2
        retry_prompt = mock_llm_client.complete_json.call_args_list[1].args[0]
        assert "no cumple el esquema (campos: confianza)" in retry_prompt

    async def test_transport_error_is_not_retried(
        self, mock_llm_client, battery_headers, battery_sample_rows
    ) -> None:
        """An unreachable assistant fails immediately."""
        mock_llm_client.complete_json.side_effect = LLMError(
            "Assistant unreachable", details={"reason": "transport"}
        )

        with pytest.raises(LLMError):
            await AssistedColumnMapper(mock_llm_client).map(battery_headers, battery_sample_rows)
        assert mock_llm_client.complete_json.await_count == 1


class TestColumnMapper:
    """Tests for ColumnMapper provider order and overrides."""

    async def test_heuristic_fallback_on_transport_error(
        self, mock_llm_client, battery_headers, battery_sample_rows
    ) -> None:
        """When the assistant is down the heuristic mapping is used."""
        mock_llm_client.complete_json.side_effect = LLMError(
            "Assistant unreachable", details={"reason": "transport"}
        )
        mapper = ColumnMapper(AssistedColumnMapper(mock_llm_client))

        mapping = await mapper.map(battery_headers, battery_sample_rows)

        assert mapping.source == "heuristic"
        assert mapping.price == "PVP Off Line"
        assert mapping.identifier == "Codigo"

    async def test_heuristic_fallback_on_rejection(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """Rejected assistant answers fall back to heuristics."""
        mock_llm_client.complete_json.return_value = low_confidence(valid_assistant_response)
        mapper = ColumnMapper(AssistedColumnMapper(mock_llm_client))

        mapping = await mapper.map(battery_headers, battery_sample_rows)
        assert mapping.source == "heuristic"

    async def test_without_assistant(self, battery_headers, battery_sample_rows) -> None:
        """Without an assistant the heuristics run directly."""
        mapping = await ColumnMapper().map(battery_headers, battery_sample_rows)
        assert mapping.source == "heuristic"
        assert mapping.attempts == 0

    async def test_forced_override_beats_assistant(
        self, mock_llm_client, valid_assistant_response, battery_headers, battery_sample_rows
    ) -> None:
        """The PVP Off Line convention wins over the assistant's price column."""
        headers = [*battery_headers, "Precio Contado"]
        rows = [{**row, "Precio Contado": row["PVP Off Line"]} for row in battery_sample_rows]
        mock_llm_client.complete_json.return_value = {
            **valid_assistant_response,
            "precio_ars": "Precio Contado",
        }

        mapping = await ColumnMapper(AssistedColumnMapper(mock_llm_client)).map(headers, rows)

        assert mapping.source == "llm"
        assert mapping.price == "PVP Off Line"
        assert "price" in mapping.forced_fields
        assert "forced override: price 'Precio Contado' -> 'PVP Off Line'" in mapping.notes

    async def test_nothing_resolvable_is_fatal(self) -> None:
        """Without price and identifier columns mapping fails."""
        rows = [{"Foo": "sin dato", "Bar": "sin dato"}] * 3
        with pytest.raises(MappingError, match="Neither a price nor an identifier"):
            await ColumnMapper().map(["Foo", "Bar"], rows)
