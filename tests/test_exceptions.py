"""Tests for custom exception hierarchy."""

import pytest

from core.exceptions import (
    AnalysisError,
    CatalogError,
    CatalogLoadError,
    ConfigurationError,
    EstimatorError,
    InputValidationError,
    MaterialNotFoundError,
    ValidationError,
    VisionAPIError,
    VisionError,
    VisionResponseParseError,
)
from services.api.exception_handlers import status_code_for


def test_estimator_error_base():
    """Test base EstimatorError."""
    error = EstimatorError("Test error", {"key": "value"})
    assert str(error) == "Test error"
    assert error.message == "Test error"
    assert error.details == {"key": "value"}


def test_details_default_to_empty_dict():
    error = AnalysisError("Pipeline failed")
    assert error.details == {}
    assert isinstance(error, EstimatorError)


def test_configuration_error():
    """Test ConfigurationError."""
    error = ConfigurationError("Config missing", {"setting": "vision.api_key_env"})
    assert isinstance(error, EstimatorError)
    assert error.message == "Config missing"


def test_input_validation_error():
    error = InputValidationError("Bad payload")
    assert isinstance(error, ValidationError)
    assert isinstance(error, EstimatorError)


def test_catalog_errors():
    """Catalog load and lookup errors share a base."""
    assert isinstance(CatalogLoadError("unreadable"), CatalogError)
    assert isinstance(MaterialNotFoundError("W980"), CatalogError)


def test_vision_errors():
    """Test VisionAPIError and VisionResponseParseError."""
    error = VisionAPIError("API call failed", {"model": "gemini-2.5-pro"})
    assert isinstance(error, VisionError)
    assert error.details == {"model": "gemini-2.5-pro"}
    assert isinstance(VisionResponseParseError("no json"), VisionError)


def test_exception_raising():
    """Test that exceptions can be raised and caught."""
    with pytest.raises(EstimatorError) as exc_info:
        raise MaterialNotFoundError("Material not found", {"sku": "X1"})

    assert exc_info.value.message == "Material not found"
    assert exc_info.value.details == {"sku": "X1"}


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (ConfigurationError("x"), 400),
        (InputValidationError("x"), 400),
        (MaterialNotFoundError("x"), 404),
        (VisionAPIError("x"), 502),
        (VisionResponseParseError("x"), 502),
        (CatalogLoadError("x"), 503),
        (AnalysisError("x"), 500),
    ],
)
def test_status_code_mapping(error, status):
    assert status_code_for(error) == status
