"""
Column Mapper
=============

Maps consolidated headers to {type, identifier, model, brand, description,
price}.

Two paths, tried in order:
1. ``AssistedColumnMapper`` - text-completion assistant under a strict JSON
   contract, post-checked, retried once with feedback.
2. ``HeuristicColumnMapper`` - keyword and value rules.

Forced header overrides are applied to whichever mapping wins.

The assisted path is an explicit state machine:

    REQUESTING -> VALIDATING -> ACCEPTED
                      |
                      v (violations, retries left)
                  RETRYING -> VALIDATING -> ACCEPTED | FAILED
"""

from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from supplier_pricing.schemas.mapping import (
    AssistantMappingResponse,
    ColumnMapping,
    FieldEvidence,
)
from supplier_pricing.services.column_mapper.heuristics import HeuristicColumnMapper
from supplier_pricing.services.column_mapper.overrides import apply_forced_overrides
from supplier_pricing.services.column_mapper.prompts import (
    MAPPING_SYSTEM_PROMPT,
    build_feedback_prompt,
    build_mapping_prompt,
)
from supplier_pricing.services.column_mapper.repair import repair_references
from supplier_pricing.services.column_mapper.rules import build_evidence
from supplier_pricing.services.column_mapper.validation import (
    MappingThresholds,
    validate_mapping,
)
from supplier_pricing.services.llm.client import LLMClient
from supplier_pricing.utils.errors import LLMError, MappingError
from supplier_pricing.utils.fallback import AsyncProvider, afirst_success
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

# Assistant evidence keys per mapped field.
_EVIDENCE_KEYS = {
    "type": "tipo",
    "identifier": "identificador",
    "model": "modelo",
    "brand": "marca",
    "description": "descripcion",
    "price": "precio_ars",
}


class MappingState(str, Enum):
    """States of one assisted mapping run."""

    REQUESTING = "requesting"
    VALIDATING = "validating"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    FAILED = "failed"


class AssistedColumnMapper:
    """
    Column mapping through the text-completion assistant.

    Raises ``LLMError`` when the assistant is unreachable and
    ``MappingError`` when no answer passes the post-check within the retry
    budget. Nothing is silently accepted.
    """

    def __init__(
        self,
        client: LLMClient,
        thresholds: MappingThresholds | None = None,
        max_retries: int = 1,
    ) -> None:
        self.client = client
        self.thresholds = thresholds or MappingThresholds()
        self.max_retries = max_retries
        self._log = logger.bind(component="AssistedColumnMapper")

    async def map(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, Any]],
        file_name: str | None = None,
        vendor_hint: str | None = None,
        sheet_names: Sequence[str] = (),
    ) -> ColumnMapping:
        request = build_mapping_prompt(
            headers, sample_rows, file_name, vendor_hint, sheet_names
        )
        state = MappingState.REQUESTING
        feedback: str | None = None
        attempts = 0
        reasons: list[str] = []
        raw: dict[str, Any] = {}
        transitions: list[str] = [state.value]

        while True:
            if state in (MappingState.REQUESTING, MappingState.RETRYING):
                attempts += 1
                prompt = request if feedback is None else f"{request}\n\n{feedback}"
                try:
                    raw = await self.client.complete_json(
                        prompt, system_prompt=MAPPING_SYSTEM_PROMPT
                    )
                except LLMError as e:
                    if e.details.get("reason") != "malformed_json":
                        raise
                    raw = {}
                    reasons = [f"respuesta no es JSON válido: {e.message}"]
                    state = self._after_rejection(attempts)
                else:
                    state = MappingState.VALIDATING

            elif state == MappingState.VALIDATING:
                mapping, reasons = self._check(raw, headers, sample_rows, attempts)
                if not reasons:
                    state = MappingState.ACCEPTED
                    transitions.append(state.value)
                    self._log.info(
                        "column_mapper.accepted",
                        attempts=attempts,
                        confidence=mapping.confidence,
                        columns=mapping.columns(),
                        transitions=transitions,
                    )
                    return mapping
                state = self._after_rejection(attempts)

            if state == MappingState.RETRYING:
                feedback = build_feedback_prompt(reasons)
                transitions.append(state.value)
                self._log.warning(
                    "column_mapper.retrying", attempt=attempts, reasons=reasons
                )
            elif state == MappingState.FAILED:
                transitions.append(state.value)
                self._log.warning(
                    "column_mapper.failed",
                    attempts=attempts,
                    reasons=reasons,
                    transitions=transitions,
                )
                raise MappingError(
                    "Assistant mapping rejected after retry",
                    details={"reasons": reasons, "attempts": attempts},
                )
            else:
                transitions.append(state.value)

    def _after_rejection(self, attempts: int) -> MappingState:
        if attempts <= self.max_retries:
            return MappingState.RETRYING
        return MappingState.FAILED

    def _check(
        self,
        raw: dict[str, Any],
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, Any]],
        attempts: int,
    ) -> tuple[ColumnMapping, list[str]]:
        """Parse, repair and post-check one assistant answer."""
        try:
            response = AssistantMappingResponse.model_validate(raw)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            return ColumnMapping(attempts=attempts), [
                f"respuesta no cumple el esquema (campos: {', '.join(fields)})"
            ]

        repaired = repair_references(response, headers, sample_rows)
        mapping = ColumnMapping(
            **repaired.columns,
            confidence=repaired.confidence,
            field_confidence={
                name: repaired.confidence
                for name, column in repaired.columns.items()
                if column is not None
            },
            evidence=self._evidence(response, repaired.columns, sample_rows),
            source="llm",
            attempts=attempts,
            notes=[*response.notes_list(), *repaired.notes],
        )
        return mapping, validate_mapping(
            mapping, sample_rows, self.thresholds, response.classifications
        )

    @staticmethod
    def _evidence(
        response: AssistantMappingResponse,
        columns: dict[str, str | None],
        sample_rows: Sequence[Mapping[str, Any]],
    ) -> dict[str, FieldEvidence]:
        evidence: dict[str, FieldEvidence] = {}
        for field_name, column in columns.items():
            if column is None:
                continue
            reported = response.evidence.get(_EVIDENCE_KEYS[field_name])
            rationale = reported.rationale if reported else "chosen by assistant"
            evidence[field_name] = build_evidence(
                column, sample_rows, rationale, numeric=field_name == "price"
            )
        return evidence


class ColumnMapper:
    """
    Full mapping: assistant first, heuristics second, forced overrides last.

    Example:
        mapper = ColumnMapper(AssistedColumnMapper(client))
        mapping = await mapper.map(headers, sample_rows, file_name="moura.xlsx")
    """

    def __init__(
        self,
        assisted: AssistedColumnMapper | None = None,
        heuristic: HeuristicColumnMapper | None = None,
    ) -> None:
        self.assisted = assisted
        self.heuristic = heuristic or HeuristicColumnMapper()

    async def map(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, Any]],
        file_name: str | None = None,
        vendor_hint: str | None = None,
        sheet_names: Sequence[str] = (),
    ) -> ColumnMapping:
        """
        Resolve the mapping for one consolidated dataset.

        Raises:
            MappingError: Neither a price nor an identifier column resolved
        """
        providers: list[AsyncProvider[ColumnMapping]] = []
        assisted = self.assisted
        if assisted is not None:

            async def from_assistant() -> ColumnMapping | None:
                return await assisted.map(
                    headers, sample_rows, file_name, vendor_hint, sheet_names
                )

            providers.append(AsyncProvider("assistant", from_assistant))

        async def from_heuristics() -> ColumnMapping | None:
            return self.heuristic.map(headers, sample_rows)

        providers.append(AsyncProvider("heuristic", from_heuristics))

        resolution = await afirst_success(
            providers, chain="column_mapping", errors=(LLMError, MappingError)
        )
        if resolution is None:
            raise MappingError("No column mapping could be produced")

        mapping = apply_forced_overrides(resolution.value, headers, sample_rows)
        if mapping.price is None and mapping.identifier is None and mapping.model is None:
            raise MappingError(
                "Neither a price nor an identifier column could be resolved",
                details={"headers": list(headers), "mapping": mapping.model_dump()},
            )

        logger.info(
            "column_mapper.resolved",
            source=mapping.source,
            provider=resolution.provider,
            forced=mapping.forced_fields,
            columns=mapping.columns(),
        )
        return mapping
