"""
Tessera Error Hierarchy

Every failure the conversion core can report is a precondition or structural
invariant violation. None of them are retryable: the caller aborts the
conversion and no partial output is kept.

Usage:
    from tessera.errors import ConversionError, TierMismatchError

    try:
        tree = transform(frames)
    except ConversionError as e:
        logger.error(f"Conversion aborted: {e}")
"""

from typing import Any, Dict, Optional

__all__ = [
    "ConversionError",
    "EmptyInputError",
    "TierOrderError",
    "TierMismatchError",
    "ItemCapacityError",
    "SchemaError",
    "ConfigurationError",
]


class ConversionError(Exception):
    """Base exception for all tessera errors.

    Attributes:
        message: Human-readable description of the broken invariant
        context: Extra values useful for debugging (frame index, chain, ...)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class EmptyInputError(ConversionError):
    """The record source produced no frames."""


class TierOrderError(ConversionError):
    """A tier is flagged present while its parent tier is absent."""


class TierMismatchError(ConversionError):
    """A frame is missing a tier that frame zero resolved as present."""


class ItemCapacityError(ConversionError):
    """A frame holds more items than the fixed flat-sink capacity."""


class SchemaError(ConversionError):
    """A generated schema could not be built or rendered."""


class ConfigurationError(ConversionError):
    """Invalid conversion configuration."""
