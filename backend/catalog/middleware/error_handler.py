"""Global error handling: domain errors to HTTP status codes."""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from catalog.errors import (
    BulkIndexError,
    CatalogError,
    DuplicateEdge,
    EntityNotFound,
    IndexBuildCancelled,
    IndexEngineError,
    IndexEngineUnavailable,
    InvalidSortKey,
)

logger = structlog.get_logger()

# Most specific first
_STATUS_CODES: list[tuple[type[CatalogError], int]] = [
    (EntityNotFound, 404),
    (DuplicateEdge, 409),
    (IndexEngineUnavailable, 503),
    (IndexEngineError, 502),
    (BulkIndexError, 503),
    (IndexBuildCancelled, 409),
]


def status_for(exc: CatalogError) -> int:
    for exc_type, status in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 400


def register_error_handlers(app: FastAPI):
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Return structured validation errors."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(l) for l in error.get("loc", []))
            errors.append({
                "field": loc,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "value_error"),
            })

        logger.warning(
            "validation_error",
            path=request.url.path,
            method=request.method,
            errors=errors,
        )

        return ORJSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": errors},
        )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        status = status_for(exc)
        content = {"detail": str(exc), "error": type(exc).__name__}
        if isinstance(exc, InvalidSortKey):
            content["allowed"] = exc.allowed
        if isinstance(exc, (BulkIndexError, IndexBuildCancelled)):
            content["indexed"] = exc.indexed

        log = logger.error if status >= 500 else logger.warning
        log("catalog_error", path=request.url.path, method=request.method, status=status, error=str(exc))
        return ORJSONResponse(status_code=status, content=content)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions - log and return 500."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            traceback=traceback.format_exc(),
        )

        return ORJSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
