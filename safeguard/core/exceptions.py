import logging
from fastapi.exceptions import RequestValidationError
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SafeGuardError(Exception):
    """Base class for domain errors raised by the engines and services."""

    status_code = 400


class ValidationError(SafeGuardError, ValueError):
    """Missing or malformed input."""


class MissingWorkerIdError(ValidationError):
    def __init__(self, message: str = "missing worker id"):
        super().__init__(message)


class NotFoundError(SafeGuardError, LookupError):
    status_code = 404


def error_result(exc: Exception) -> dict:
    """Boundary shape for call sites that must not raise."""
    return {"success": False, "error": str(exc)}


def register_exception_handlers(app):
    @app.exception_handler(SafeGuardError)
    async def domain_exception_handler(request: Request, exc: SafeGuardError):
        logger.info("Domain error", extra={"status_code": exc.status_code, "error_type": type(exc).__name__})
        return JSONResponse(error_result(exc), status_code=exc.status_code)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.info("HTTP exception", extra={"status_code": exc.status_code})
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation error", extra={"errors": exc.errors()})
        return JSONResponse({"error": "Validation error", "details": exc.errors()}, status_code=422)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse({"error": "Internal server error"}, status_code=500)
