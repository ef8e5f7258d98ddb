"""Service errors and global exception handlers - generic messages for 5xx"""
import uuid
import traceback
from datetime import datetime, timezone
from fastapi import Request, HTTPException, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError


class LagAnalyticsError(Exception):
    """Base class for service-level errors."""
    status_code = 500


class CallNotFoundError(LagAnalyticsError):
    status_code = 404

    def __init__(self, call_id: str):
        super().__init__(f"Call not found: {call_id}")
        self.call_id = call_id


class DataSourceError(LagAnalyticsError):
    """The call log store could not be queried."""
    status_code = 503


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log full error, return generic message to client"""
    request_id = str(uuid.uuid4())

    logger.error(
        f"Request failed: {request.method} {request.url.path} "
        f"[{request_id}] {type(exc).__name__}: {exc}\n{traceback.format_exc()}"
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "An error occurred while processing your request",
            "request_id": request_id,
            "timestamp": _timestamp()
        }
    )


async def lag_analytics_exception_handler(request: Request, exc: LagAnalyticsError) -> JSONResponse:
    request_id = str(uuid.uuid4())

    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {request.method} {request.url.path} [{request_id}] {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "Call data is temporarily unavailable",
                "request_id": request_id,
                "timestamp": _timestamp()
            }
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc), "request_id": request_id}
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request and Pydantic validation errors"""
    request_id = str(uuid.uuid4())
    errors = exc.errors() if isinstance(exc, (ValidationError, RequestValidationError)) else []

    logger.warning(f"Validation error: {request.method} {request.url.path} [{request_id}] {errors}")

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation failed",
            "details": jsonable_errors(errors),
            "request_id": request_id
        }
    )


def jsonable_errors(errors: list) -> list:
    # ctx may hold exception instances that JSONResponse can't serialize
    return [{k: v for k, v in error.items() if k != "ctx"} for error in errors]


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """5xx: generic error, 4xx: specific error"""
    request_id = str(uuid.uuid4())

    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {request.method} {request.url.path} [{request_id}] {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "An error occurred",
                "request_id": request_id,
                "timestamp": _timestamp()
            }
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "request_id": request_id}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers"""
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(LagAnalyticsError, lag_analytics_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
