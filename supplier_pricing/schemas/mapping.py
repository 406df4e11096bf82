"""
Column Mapping Schemas
======================

The resolved mapping from raw headers to the product fields, plus the JSON
contract the assistant must answer with. The assistant speaks Spanish keys
(``tipo``, ``precio_ars``, ...); aliases translate them to field names.
"""

from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAPPED_FIELDS: tuple[str, ...] = (
    "type",
    "identifier",
    "model",
    "brand",
    "description",
    "price",
)

ColumnCategory = Literal[
    "precio_ars",
    "modelo",
    "tipo",
    "descripcion",
    "marca",
    "identificador",
    "dimension",
    "moneda_usd",
    "desconocida",
]


# =============================================================================
# Assistant Response Contract
# =============================================================================


class AssistantFieldEvidence(BaseModel):
    """Evidence block for one field as reported by the assistant."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    column: str | None = Field(default=None, alias="columna_elegida")
    samples: list[str] = Field(default_factory=list, alias="muestras")
    rationale: str = Field(default="", alias="motivo")
    numeric_coverage: float | None = Field(default=None, alias="coverage_numerico")
    range_min: float | None = Field(default=None, alias="rango_min")
    range_max: float | None = Field(default=None, alias="rango_max")

    @field_validator("samples", mode="before")
    @classmethod
    def coerce_samples(cls, v: object) -> list[str]:
        if v is None:
            return []
        if not isinstance(v, list):
            v = [v]
        return [str(item) for item in v]


class ColumnClassification(BaseModel):
    """The assistant's classification of a single column."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    column: str = Field(alias="columna")
    category: ColumnCategory = Field(default="desconocida", alias="categoria_inferida")
    reason: str = Field(default="", alias="motivo_breve")

    @field_validator("category", mode="before")
    @classmethod
    def unknown_category(cls, v: object) -> object:
        return v if v in get_args(ColumnCategory) else "desconocida"


class AssistantMappingResponse(BaseModel):
    """Strict JSON object the assistant must return."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str | None = Field(default=None, alias="tipo")
    model: str | None = Field(default=None, alias="modelo")
    brand: str | None = Field(default=None, alias="marca")
    price: str | None = Field(default=None, alias="precio_ars")
    description: str | None = Field(default=None, alias="descripcion")
    identifier: str | None = Field(default=None, alias="identificador")
    confidence: float = Field(alias="confianza", ge=0.0, le=1.0)
    evidence: dict[str, AssistantFieldEvidence] = Field(
        default_factory=dict, alias="evidencia"
    )
    classifications: list[ColumnClassification] = Field(
        default_factory=list, alias="clasificacion_columnas"
    )
    notes: str | list[str] | None = Field(default=None, alias="notas")

    @field_validator("type", "model", "brand", "price", "description", "identifier", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        if v is None:
            return None
        text = str(v).strip()
        if not text or text.lower() in {"null", "none", "n/a"}:
            return None
        return text

    @field_validator("confidence", mode="before")
    @classmethod
    def percent_to_fraction(cls, v: object) -> object:
        # Some models answer 85 instead of 0.85.
        if isinstance(v, (int, float)) and 1 < v <= 100:
            return v / 100
        return v

    @field_validator("evidence", mode="before")
    @classmethod
    def drop_null_evidence(cls, v: object) -> object:
        if isinstance(v, dict):
            return {k: item for k, item in v.items() if isinstance(item, dict)}
        return {}

    def notes_list(self) -> list[str]:
        if self.notes is None:
            return []
        if isinstance(self.notes, str):
            return [self.notes] if self.notes.strip() else []
        return [str(n) for n in self.notes]


# =============================================================================
# Resolved Mapping
# =============================================================================


class FieldEvidence(BaseModel):
    """Why a column was chosen for a field, recomputed from the sample rows."""

    column: str
    samples: list[str] = Field(default_factory=list)
    rationale: str = ""
    numeric_coverage: float | None = None
    range_min: float | None = None
    range_max: float | None = None


class ColumnMapping(BaseModel):
    """
    Resolved semantic mapping for one consolidated dataset.

    Each field is a header name or None. Instances are frozen; overrides
    build a new mapping with ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    type: str | None = None
    identifier: str | None = None
    model: str | None = None
    brand: str | None = None
    description: str | None = None
    price: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    field_confidence: dict[str, float] = Field(default_factory=dict)
    evidence: dict[str, FieldEvidence] = Field(default_factory=dict)
    source: Literal["llm", "heuristic"] = "heuristic"
    forced_fields: list[str] = Field(default_factory=list)
    attempts: int = 0
    notes: list[str] = Field(default_factory=list)

    def columns(self) -> dict[str, str]:
        """Mapped field name to header, for fields that are set."""
        return {
            name: getattr(self, name)
            for name in MAPPED_FIELDS
            if getattr(self, name) is not None
        }
