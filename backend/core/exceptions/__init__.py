from .api_exceptions import (
    APIException,
    ValidationException,
    DatabaseException,
)

from .errors import (
    CalendarError,
    ValidationError,
    NotFoundError,
    ConflictError,
    TransportError,
    AlreadyRunningError,
)

from .handlers import (
    api_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    sqlalchemy_exception_handler,
    general_exception_handler
)

from .utils import get_correlation_id

__all__ = [
    # API exceptions
    "APIException",
    "ValidationException",
    "DatabaseException",

    # Domain errors
    "CalendarError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "TransportError",
    "AlreadyRunningError",

    # Handlers
    "api_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "sqlalchemy_exception_handler",
    "general_exception_handler",

    # Utils
    "get_correlation_id",
]
