"""
Global exception handlers for FastAPI application.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from loguru import logger

from searchbridge.utils.exceptions import (
    SearchBridgeException,
    CatalogItemNotFoundError,
    EngineConnectionError,
    EngineError,
    PartialImportFailure,
    InvalidInputError,
)
from searchbridge.core.logging import log_error
from searchbridge.utils.formatters import format_error_response


async def search_bridge_exception_handler(request: Request, exc: SearchBridgeException) -> JSONResponse:
    """Handle custom search bridge exceptions."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    # Map exception types to status codes
    if isinstance(exc, CatalogItemNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidInputError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, PartialImportFailure):
        status_code = status.HTTP_207_MULTI_STATUS
    elif isinstance(exc, (EngineConnectionError, EngineError)):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    error_response = format_error_response(exc, status_code)

    if status_code >= 500:
        logger.opt(exception=exc).error(f"Search bridge exception: {exc.message}")
    else:
        logger.warning(f"Search bridge exception: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=error_response
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", []))
        errors.append({
            "field": field,
            "message": error.get("msg"),
            "type": error.get("type")
        })

    error_response = {
        "error": "ValidationError",
        "detail": "Request validation failed",
        "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "errors": errors
    }

    logger.warning(f"Validation error: {errors}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions."""
    error_response = {
        "error": exc.__class__.__name__,
        "detail": str(exc),
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
    }

    log_error(exc, context={"path": request.url.path})

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response
    )
