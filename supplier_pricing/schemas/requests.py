"""
Request Schemas
===============

Pydantic models for API request validation.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ProcessFileRequest(BaseModel):
    """Request to price a supplier file already stored on a shared volume."""

    file_path: str = Field(
        ...,
        min_length=1,
        description="Path to the workbook (.xlsx, .xlsm or .csv)",
        examples=["/shared/uploads/lista_moura_2024.xlsx"],
    )
    vendor: str | None = Field(
        default=None,
        max_length=100,
        description="Forced vendor/brand name; overrides detection",
    )
    config: dict[str, Any] | None = Field(
        default=None,
        description="Prior pricing configuration blob (used when the service is down)",
    )

    @field_validator("vendor")
    @classmethod
    def strip_vendor(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None
