"""Global exception handlers for FastAPI."""

import logging
from typing import Any

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    ForbiddenTransitionError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _field_details(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts to {"field", "message"} pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in errors
    ]


def _envelope(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValidationError)
    async def billing_validation_handler(request: Request, exc: ValidationError):
        return _envelope(request, 400, ErrorCodes.VALIDATION_ERROR, str(exc), exc.details or None)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _envelope(request, 404, ErrorCodes.NOT_FOUND, str(exc))

    @app.exception_handler(ForbiddenTransitionError)
    async def forbidden_transition_handler(request: Request, exc: ForbiddenTransitionError):
        return _envelope(request, 403, ErrorCodes.INVALID_STATUS_TRANSITION, str(exc))

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(request: Request, exc: InvalidStateError):
        return _envelope(request, 409, ErrorCodes.INVOICE_INVALID_STATE, str(exc))

    @app.exception_handler(pydantic.ValidationError)
    async def model_validation_handler(request: Request, exc: pydantic.ValidationError):
        return _envelope(
            request, 422, ErrorCodes.VALIDATION_ERROR,
            f"{exc.error_count()} validation error(s)",
            _field_details(exc.errors()),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _envelope(
            request, 422, ErrorCodes.VALIDATION_ERROR,
            "Request validation failed",
            _field_details(list(exc.errors())),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _envelope(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _envelope(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
