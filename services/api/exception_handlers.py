"""FastAPI exception handlers for custom exceptions."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from core.exceptions import (
    CatalogLoadError,
    ConfigurationError,
    EstimatorError,
    MaterialNotFoundError,
    ValidationError,
    VisionError,
)


def status_code_for(exc: EstimatorError) -> int:
    if isinstance(exc, (ConfigurationError, ValidationError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, MaterialNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, VisionError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, CatalogLoadError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def estimator_exception_handler(request: Request, exc: EstimatorError) -> JSONResponse:
    """Handle estimator-specific exceptions."""
    status_code = status_code_for(exc)

    logger.error(
        "Estimator exception: {type} - {message}",
        type=type(exc).__name__,
        message=str(exc),
        details=exc.details,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )
