"""Custom exceptions and handlers for consistent error responses.

Every error leaves the API as:

    {"error": {"code": "...", "message": "...", "details": {...}}}

Service code raises the LotKeeperError subclasses below; the handlers turn
them into responses.  The ``get_db`` dependency has already rolled the
session back by the time a handler runs.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class LotKeeperError(Exception):
    """Base exception for LotKeeper application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class BusinessLogicError(LotKeeperError):
    """Exception for business rule violations (e.g. duplicate crew lot no)."""

    def __init__(self, message: str, error_code: str = "BUSINESS_LOGIC_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
        )


class ResourceNotFoundError(LotKeeperError):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class LookupNotFoundError(LotKeeperError):
    """A reference name did not resolve to an ID.

    Treated as a data-integrity failure: the enclosing transaction aborts.
    """

    def __init__(self, table: str, value):
        self.table = table
        self.value = value
        super().__init__(
            message=f"No {table} row named '{value}'",
            error_code="LOOKUP_NOT_FOUND",
            details={"table": table, "value": value},
        )


class DataIntegrityError(LotKeeperError):
    """Stored data is inconsistent (e.g. a lot without its schedule batch)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="DATA_INTEGRITY_ERROR")


class DuplicateGrnError(LotKeeperError):
    """A GRN with this number has already been issued."""

    def __init__(self, grn_no: str):
        self.grn_no = grn_no
        super().__init__(
            message=f"GRN {grn_no} already exists",
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_GRN",
            details={"grnNo": grn_no},
        )


class DuplicateScheduleError(LotKeeperError):
    """A lot number is already scheduled for the job."""

    def __init__(self, job_no: str, lot_nos: list[int]):
        super().__init__(
            message=f"Lot No {', '.join(str(n) for n in lot_nos)} already scheduled for Job No {job_no}",
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_SCHEDULE",
            details={"jobNo": job_no, "lotNos": lot_nos},
        )


class DocumentGenerationError(LotKeeperError):
    """The GRN renderer failed to produce a document."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="DOCUMENT_GENERATION_FAILED",
        )


class InvalidPhotoError(BusinessLogicError):
    """A base64 photo payload could not be decoded."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_PHOTO")


class SyncBatchError(LotKeeperError):
    """A sync job failed; the whole batch has been rolled back."""

    def __init__(self, job_id, message: str):
        self.job_id = job_id
        super().__init__(
            message=message,
            error_code="SYNC_BATCH_FAILED",
            details={"failedJobId": job_id},
        )


# ── Response body ───────────────────────────────────────────

def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Build the ``{"error": {code, message, details?}}`` body."""
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


# ── Handlers ────────────────────────────────────────────────

async def lotkeeper_exception_handler(request: Request, exc: LotKeeperError) -> JSONResponse:
    """Service-layer errors carry their own status and code."""
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level, "%s %s -> %s: %s",
        request.method, request.url.path, exc.error_code, exc.message,
        extra={"error_code": exc.error_code, **_where(request)},
    )
    return create_error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail, extra=_where(request))
    response = create_error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")
    for name, value in (getattr(exc, "headers", None) or {}).items():
        response.headers[name] = value
    return response


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Request bodies that fail pydantic validation."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning("Validation error on %s (%d fields)", request.url.path, len(errors), extra=_where(request))
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": errors},
    )


# Driver message fragment → (code, message); first match wins
_INTEGRITY_RULES = (
    ("unique", "DUPLICATE_RECORD", "A record with this value already exists"),
    ("foreign key", "FOREIGN_KEY_VIOLATION", "Referenced record does not exist"),
    ("not null", "NULL_VALUE_NOT_ALLOWED", "Required field is missing"),
    ("check constraint", "CHECK_VIOLATION", "Record violates a consistency rule"),
)


async def database_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations that slipped past the service checks."""
    driver_message = str(getattr(exc, "orig", None) or exc)
    logger.error("Integrity error on %s: %s", request.url.path, driver_message, extra=_where(request))

    lowered = driver_message.lower()
    for fragment, code, message in _INTEGRITY_RULES:
        if fragment in lowered:
            break
    else:
        code, message = "INTEGRITY_ERROR", "Database constraint violation"
    return create_error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message, code)


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database unavailable on %s: %s", request.url.path, exc, extra=_where(request))
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database temporarily unavailable. Please try again.",
        "DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: never leak internals to the client."""
    logger.error(
        "Unhandled %s on %s", type(exc).__name__, request.url.path,
        extra={**_where(request), "traceback": traceback.format_exc()},
        exc_info=True,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


_HANDLERS = (
    (LotKeeperError, lotkeeper_exception_handler),
    (HTTPException, http_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (ValidationError, validation_exception_handler),
    (IntegrityError, database_exception_handler),
    (OperationalError, operational_exception_handler),
    (Exception, general_exception_handler),
)


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, handler)
