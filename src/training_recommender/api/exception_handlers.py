"""
Exception handlers for the FastAPI application.

Every engine failure is rendered as ``{"error": {"code", "message", "details"}}``
with the HTTP status carried by the exception class.
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ErrorCode, TrainingRecommenderError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    details: Dict[str, Any] | None = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": code.value, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def engine_error_handler(
    request: Request,
    exc: TrainingRecommenderError,
) -> JSONResponse:
    """Render an engine error; server-side failures are logged."""
    if exc.code is ErrorCode.COLLABORATOR_UNAVAILABLE:
        logger.warning(f"{exc!r} on {request.method} {request.url.path}")
    elif exc.status_code >= 500:
        logger.error(f"{exc!r} on {request.method} {request.url.path}")
    return create_error_response(exc.status_code, exc.code, exc.message, exc.details or None)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError | PydanticValidationError,
) -> JSONResponse:
    """Flatten pydantic errors into field/message/type triples."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return create_error_response(
        422,
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        {"errors": errors},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return create_error_response(500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TrainingRecommenderError, engine_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PydanticValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
