"""Domain errors and the HTTP error payload every failure is rendered as."""

from __future__ import annotations

import logging
from datetime import datetime
from http import HTTPStatus
from typing import Any
from uuid import UUID

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

BODY_FIELD = "Request Body"
TIMESTAMP_FIELDS = {"startAt", "finishAt", "start_at", "finish_at"}
# Whole-body failures: no body at all, or a body that is not a JSON object.
UNREADABLE_BODY_TYPES = {"missing", "model_attributes_type", "dict_type", "model_type"}


class EventsError(Exception):
    """Base class for business-rule failures raised by the service layer."""


class EventNotFoundError(EventsError):
    def __init__(self, event_id: UUID):
        self.event_id = event_id
        super().__init__(f"Event not found with id: {event_id}")


# Business error -> (status, error label). Unlisted subclasses fall back to 500.
BUSINESS_ERROR_STATUS: dict[type[EventsError], tuple[int, str]] = {
    EventNotFoundError: (status.HTTP_404_NOT_FOUND, "Not Found"),
}


class FieldViolation(BaseModel):
    field: str
    rejected_value: Any = Field(default=None, serialization_alias="rejectedValue")
    message: str


class ErrorResponse(BaseModel):
    timestamp: datetime
    status: int
    error: str
    message: str
    path: str
    field_errors: list[FieldViolation] = Field(default_factory=list, serialization_alias="fieldErrors")


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    violations: list[FieldViolation] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        timestamp=datetime.now(),
        status=status_code,
        error=error,
        message=message,
        path=request.url.path,
        field_errors=violations or [],
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


def _violation(error: dict[str, Any]) -> FieldViolation:
    location = [str(part) for part in error.get("loc", ())[1:]]
    error_type = error.get("type")

    if error_type == "missing" or (
        location and location[-1] in TIMESTAMP_FIELDS and error.get("input") is None
    ):
        message = "must not be null"
    else:
        message = str(error.get("msg", "")).removeprefix("Value error, ")

    # Missing values and model-level rules have no single rejected value.
    if not location or error_type == "missing":
        rejected_value = None
    else:
        rejected_value = jsonable_encoder(error.get("input"))

    return FieldViolation(
        field=".".join(location) or BODY_FIELD,
        rejected_value=rejected_value,
        message=message,
    )


def _is_unreadable_body(error: dict[str, Any]) -> bool:
    """
    True for failures that happen before any field rule applies.

    That is bad JSON, a missing or non-object body, or a timestamp that
    cannot be read as a zoned date-time. A null timestamp is a field
    violation instead.
    """
    location = tuple(error.get("loc", ()))
    if location[:1] != ("body",):
        return False

    error_type = error.get("type")
    if error_type == "json_invalid":
        return True
    if len(location) == 1:
        return error_type in UNREADABLE_BODY_TYPES
    return (
        str(location[-1]) in TIMESTAMP_FIELDS
        and error_type != "missing"
        and error.get("input") is not None
    )


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.debug("Validation failed for request: %s %s", request.url.path, errors)

    if any(_is_unreadable_body(error) for error in errors):
        return _error_response(request, status.HTTP_400_BAD_REQUEST, "Bad Request", "Invalid JSON format")

    in_body = all(tuple(error.get("loc", ()))[:1] == ("body",) for error in errors)
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Validation Failed" if in_body else "Constraint Violation",
        "Request validation failed",
        [_violation(error) for error in errors],
    )


async def handle_business_error(request: Request, exc: EventsError) -> JSONResponse:
    mapped = BUSINESS_ERROR_STATUS.get(type(exc))
    if mapped is None:
        logger.error("Unmapped business error for request: %s", request.url.path, exc_info=exc)
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Unknown Error", "An unexpected error occurred"
        )

    status_code, error = mapped
    logger.debug("Business error for request %s: %s", request.url.path, exc)
    return _error_response(request, status_code, error, str(exc))


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    try:
        error = HTTPStatus(exc.status_code).phrase
    except ValueError:
        error = "Unknown Error"
    response = _error_response(request, exc.status_code, error, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error for request: %s", request.url.path, exc_info=exc)
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Unknown Error", "An unexpected error occurred"
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(EventsError, handle_business_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
