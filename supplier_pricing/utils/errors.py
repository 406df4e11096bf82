"""
Custom Exception Classes
========================

Application-specific exceptions. Every error carries a human message and a
``details`` dict that is returned verbatim to API callers.
"""

from typing import Any


class PricingPipelineError(Exception):
    """Base exception for the pricing pipeline."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParsingError(PricingPipelineError):
    """Raised when a workbook file cannot be read."""

    pass


class InputError(PricingPipelineError):
    """
    Raised when the input cannot produce a catalog.

    Empty file, empty sheet set or no usable sheet. ``details`` holds the
    per-sheet diagnostics so the caller can see why each sheet was dropped.
    """

    pass


class NoUsableSheetError(InputError):
    """Raised when every sheet was discarded by the scorer."""

    pass


class LLMError(PricingPipelineError):
    """Raised when the assistant is unreachable or returns malformed output."""

    pass


class MappingError(PricingPipelineError):
    """Raised when no acceptable column mapping could be produced."""

    pass


class ConfigurationError(PricingPipelineError):
    """Raised when a pricing configuration source returns invalid data."""

    pass


class EquivalenceLookupError(PricingPipelineError):
    """Raised when the equivalence collaborator fails."""

    pass


class ProcessingTimeoutError(PricingPipelineError):
    """Raised when a processing run exceeds its time budget."""

    pass
