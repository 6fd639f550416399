"""
Central error handling for OmniHR Attendance Backend

Domain errors raised by the attendance core plus the FastAPI handlers that
render every failure with the same JSON envelope.
"""
import logging
import traceback

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class AttendanceError(Exception):
    """Base class for business-rule failures reported synchronously to the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ConflictError(AttendanceError):
    """An open session already exists, or a concurrent insert lost the race."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(AttendanceError):
    """No open session exists to act on."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(AttendanceError):
    """Session too short, or malformed coordinate input."""

    status_code = status.HTTP_400_BAD_REQUEST


class DependencyError(AttendanceError):
    """Shift or branch lookup failed unexpectedly (as opposed to returning nothing)."""

    status_code = status.HTTP_502_BAD_GATEWAY


class ForbiddenError(AttendanceError):
    status_code = status.HTTP_403_FORBIDDEN


def _error_body(status_code: int, detail, request: Request) -> dict:
    return {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }


async def attendance_exception_handler(request: Request, exc: AttendanceError) -> JSONResponse:
    """
    Handle domain errors raised by the attendance core

    Args:
        request: FastAPI request object
        exc: AttendanceError instance

    Returns:
        JSONResponse carrying the error's status code and detail
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail, request),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail, request),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(422, "Validation error: Invalid request data", request),
        )

    # ctx may hold exception instances (e.g. ValueError from field validators)
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    body = _error_body(422, "Validation error", request)
    body["errors"] = errors
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(500, "Internal server error", request),
        )

    body = _error_body(500, str(exc), request)
    body["traceback"] = traceback.format_exc() if settings.APP_ENV == "local" else None
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
