"""Column mapping: assistant path, heuristics and forced overrides."""

from supplier_pricing.services.column_mapper.heuristics import HeuristicColumnMapper
from supplier_pricing.services.column_mapper.mapper import (
    AssistedColumnMapper,
    ColumnMapper,
    MappingState,
)
from supplier_pricing.services.column_mapper.overrides import apply_forced_overrides
from supplier_pricing.services.column_mapper.validation import (
    MappingThresholds,
    validate_mapping,
)

__all__ = [
    "AssistedColumnMapper",
    "ColumnMapper",
    "HeuristicColumnMapper",
    "MappingState",
    "MappingThresholds",
    "apply_forced_overrides",
    "validate_mapping",
]
