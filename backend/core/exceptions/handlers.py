from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime

from .api_exceptions import APIException
from .utils import get_correlation_id


def _request_logger(request: Request):
    return getattr(request.app.state, "logger", None)


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle custom API exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "error_code": exc.error_code,
            "correlation_id": exc.correlation_id,
            "timestamp": exc.timestamp,
            "detail": exc.detail if exc.detail != exc.message else None
        }
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "error_code": f"HTTP_{exc.status_code}",
            "correlation_id": get_correlation_id(),
            "timestamp": datetime.now().isoformat()
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors, malformed JSON included, as 400"""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"][1:])  # Skip 'body' prefix
        errors[field or "body"] = error["msg"]

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Validation failed",
            "error_code": "VALIDATION_ERROR",
            "correlation_id": get_correlation_id(),
            "timestamp": datetime.now().isoformat(),
            "errors": errors
        }
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy database errors"""
    correlation_id = get_correlation_id()

    logger = _request_logger(request)
    if logger:
        logger.error(
            "Database error",
            metadata={"correlation_id": correlation_id, "path": request.url.path},
            exception=exc,
        )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "A database error occurred",
            "error_code": "DATABASE_ERROR",
            "correlation_id": correlation_id,
            "timestamp": datetime.now().isoformat()
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    correlation_id = get_correlation_id()

    logger = _request_logger(request)
    if logger:
        logger.error(
            "Unexpected error",
            metadata={"correlation_id": correlation_id, "path": request.url.path},
            exception=exc,
        )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "An unexpected error occurred",
            "error_code": "INTERNAL_ERROR",
            "correlation_id": correlation_id,
            "timestamp": datetime.now().isoformat()
        }
    )
