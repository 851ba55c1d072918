"""Custom exception hierarchy for the furniture estimator."""

from __future__ import annotations


class EstimatorError(Exception):
    """Base exception for all estimator-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(EstimatorError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(EstimatorError):
    """Base class for validation errors."""
    pass


class InputValidationError(ValidationError):
    """Raised when analysis input (groups, markers) cannot be used."""
    pass


class CatalogError(EstimatorError):
    """Base class for price catalog errors."""
    pass


class CatalogLoadError(CatalogError):
    """Raised when price list files cannot be read."""
    pass


class MaterialNotFoundError(CatalogError):
    """Raised when a SKU resolves in none of the catalogs."""
    pass


class VisionError(EstimatorError):
    """Raised when the drawing analysis model fails."""
    pass


class VisionAPIError(VisionError):
    """Raised when the Gemini API call fails."""
    pass


class VisionResponseParseError(VisionError):
    """Raised when the model output holds no parseable JSON."""
    pass


class AnalysisError(EstimatorError):
    """Raised when the expansion pipeline cannot complete."""
    pass
