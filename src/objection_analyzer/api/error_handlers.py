"""
FastAPI exception handlers for structured error responses.

Maps domain exceptions to HTTP status codes. Provider problems are
upstream failures (502/503/504); store problems make the service
unavailable (503).
"""

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from objection_analyzer.api.models import ErrorResponse
from objection_analyzer.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMTimeoutError,
)
from objection_analyzer.persistence.exceptions import PersistenceFailure
from objection_analyzer.validation.exceptions import PipelineError

logger = structlog.get_logger(__name__)


def _error(status_code: int, error: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """
    Handle pipeline errors that escaped to the API.

    Maps to 422 Unprocessable Entity.
    """
    logger.warning("Pipeline error", error_type=type(exc).__name__, reason=exc.reason, details=exc.details)
    return _error(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "pipeline_failed",
        exc.message,
        {"reason": exc.reason, **exc.details},
    )


async def llm_connection_error_handler(request: Request, exc: LLMConnectionError) -> JSONResponse:
    """
    Handle provider connection errors.

    Maps to 502 Bad Gateway (upstream service unavailable).
    """
    logger.error("Provider connection error", error=str(exc))
    return _error(
        status.HTTP_502_BAD_GATEWAY,
        "provider_connection_failed",
        "Unable to connect to the model server",
    )


async def llm_timeout_error_handler(request: Request, exc: LLMTimeoutError) -> JSONResponse:
    """
    Handle provider timeouts.

    Maps to 504 Gateway Timeout.
    """
    logger.error("Provider timeout", error=str(exc))
    return _error(
        status.HTTP_504_GATEWAY_TIMEOUT,
        "provider_timeout",
        "Model server request timed out",
    )


async def llm_error_handler(request: Request, exc: LLMClientError) -> JSONResponse:
    """
    Handle remaining provider errors (generation, embedding, unknown model).

    Maps to 503 Service Unavailable.
    """
    logger.error("Provider error", error_type=type(exc).__name__, error=str(exc))
    return _error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "provider_unavailable",
        exc.message,
        exc.details,
    )


async def persistence_error_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    """
    Handle store failures.

    Maps to 503 Service Unavailable.
    """
    logger.error("Persistence failure", error=str(exc))
    return _error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "store_unavailable",
        exc.message,
    )


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors raised inside handlers.

    Maps to 400 Bad Request.
    """
    logger.warning("Invalid request data", errors=exc.errors())
    return _error(
        status.HTTP_400_BAD_REQUEST,
        "invalid_request",
        "Request validation failed",
        {"errors": exc.errors(include_url=False, include_context=False)},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
    )


# Exception handler mapping for FastAPI app.add_exception_handler().
# Starlette resolves handlers along the MRO, so subclasses listed here
# take precedence over their bases.
EXCEPTION_HANDLERS = {
    PipelineError: pipeline_error_handler,
    LLMConnectionError: llm_connection_error_handler,
    LLMTimeoutError: llm_timeout_error_handler,
    LLMClientError: llm_error_handler,
    PersistenceFailure: persistence_error_handler,
    PydanticValidationError: pydantic_validation_error_handler,
    Exception: generic_error_handler,
}
