"""
Sheet Schemas
=============

Consolidated row records and per-sheet scoring diagnostics.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class RowRecord:
    """
    One data row from a surviving sheet.

    ``fields`` keeps the raw cells keyed by that sheet's own headers, in
    column order. Typed access goes through :class:`MappedRow`.
    """

    sheet: str
    row_number: int
    fields: dict[str, Any] = field(default_factory=dict)


class SheetScore(BaseModel):
    """Scoring diagnostics for one sheet."""

    sheet_name: str
    header_row_index: int = 0
    headers: list[str] = Field(default_factory=list)
    row_count: int = 0
    price_column: str | None = None
    price_tier: str | None = Field(
        default=None, description="primary | secondary | tertiary"
    )
    identifier_column: str | None = None
    brand_column: str | None = None
    description_column: str | None = None
    category_column: str | None = None
    key_columns: int = 0
    score: int = 0
    discarded: bool = False
    discard_reason: str | None = None
    filtered_rows: int = Field(default=0, description="Rows dropped as noise")


@dataclass
class SheetSelection:
    """Result of sheet selection: consolidated rows plus diagnostics."""

    rows: list[RowRecord]
    headers: list[str]
    diagnostics: list[SheetScore]

    @property
    def surviving_sheets(self) -> list[str]:
        return [d.sheet_name for d in self.diagnostics if not d.discarded]
