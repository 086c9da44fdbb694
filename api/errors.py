"""
Error kinds raised by the API and the single normalizer that turns any
exception into the uniform response envelope.
"""

from typing import Dict, Type

import structlog
from fastapi import status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class APIError(Exception):
    """Base class for errors that carry a user-facing message."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class BadRequestError(APIError):
    """Malformed identifier, business-rule violation or duplicate."""


class UnauthorizedError(APIError):
    """Missing, invalid or expired session, or an ownership violation."""


class ForbiddenError(APIError):
    """Authenticated but not allowed."""


class NotFoundError(APIError):
    """Requested user, book or review does not exist."""


class ServerError(APIError):
    """Unexpected or storage failure."""


class PayloadValidationError(APIError):
    """
    A request payload violated its schema.

    Carries every violated field, not just the first one.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(format_field_errors(self.errors))


# Validation failures currently surface as server errors; change the
# PayloadValidationError entry to 400 to report them as client errors.
ERROR_STATUS_CODES: Dict[Type[APIError], int] = {
    PayloadValidationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    BadRequestError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ServerError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def format_field_errors(errors: Dict[str, str]) -> str:
    """Render a field -> message mapping as one human-readable string."""
    return ", \n ".join(f"{field}: {message}" for field, message in errors.items())


def status_code_for(exc: Exception) -> int:
    """Look up the HTTP status for an exception, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_error(exc: Exception) -> JSONResponse:
    """
    Normalize any exception into a failure envelope.

    Args:
        exc: The exception raised while handling a request

    Returns:
        JSONResponse carrying the failure envelope
    """
    from api.responses import error_response

    status_code = status_code_for(exc)

    if isinstance(exc, PayloadValidationError):
        logger.warning("Payload validation failed", errors=exc.errors)
        message = exc.message
    elif isinstance(exc, APIError):
        logger.warning(
            "Request rejected",
            error_type=type(exc).__name__,
            error=exc.message,
            status_code=status_code
        )
        message = exc.message
    else:
        logger.error("Unexpected error", error=str(exc), exc_info=exc)
        message = str(exc)

    return error_response(status_code, message)
