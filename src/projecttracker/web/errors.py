"""Mapping of service errors to HTTP responses.

| Error                     | Status |
|---------------------------|--------|
| NotFoundError             | 404    |
| ValidationFailedError     | 400    |
| RequestValidationError    | 400    |
| pydantic.ValidationError  | 400    |
| ConflictError             | 409    |
| InternalFailureError      | 500    |
| SQLAlchemyError           | 500    |

Request validation failures are reshaped into the same body as
ValidationFailedError so clients see one error format.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from projecttracker.errors import (
    ConflictError,
    InternalFailureError,
    NotFoundError,
    ProjectTrackerError,
    ValidationFailedError,
)
from projecttracker.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR: dict[type[ProjectTrackerError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    InternalFailureError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: ProjectTrackerError) -> int:
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def _field_name(location: tuple[int | str, ...]) -> str:
    parts = [str(part) for part in location]
    if len(parts) > 1 and parts[0] in REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts)


def _field_errors(errors: list[Any]) -> dict[str, str]:
    field_errors: dict[str, str] = {}
    for error in errors:
        field_errors.setdefault(_field_name(tuple(error.get("loc", ()))), error.get("msg", "invalid"))
    return field_errors


async def handle_service_error(request: Request, exc: ProjectTrackerError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("request_internal_failure", path=request.url.path, error=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, error=exc.code, status_code=code)
    return JSONResponse(status_code=code, content=exc.to_dict())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors = _field_errors(list(exc.errors()))
    error = ValidationFailedError("Validation failed", field_errors)
    logger.info("request_validation_failed", path=request.url.path, fields=sorted(field_errors))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())


async def handle_model_validation(request: Request, exc: ValidationError) -> JSONResponse:
    field_errors = _field_errors(list(exc.errors()))
    error = ValidationFailedError("Validation failed", field_errors)
    logger.info("request_validation_failed", path=request.url.path, fields=sorted(field_errors))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalFailureError().to_dict(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on an application."""
    app.add_exception_handler(ProjectTrackerError, handle_service_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, handle_model_validation)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, handle_database_error)  # type: ignore[arg-type]
