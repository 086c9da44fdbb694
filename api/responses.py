"""
Uniform response envelope builders.

Every endpoint answers with ``{result, statusCode, message, success}``.
Failure envelopes leave ``result`` out.
"""

from typing import Any, Optional

from bson import ObjectId
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from api.models import ResponseEnvelope


def send_response(
    result: Any = None,
    status_code: int = status.HTTP_200_OK,
    message: str = "Success",
    success: bool = True
) -> JSONResponse:
    """
    Build an envelope response.

    Args:
        result: Payload for successful responses
        status_code: HTTP status code, repeated inside the envelope
        message: Human-readable message
        success: Whether the request succeeded

    Returns:
        JSONResponse with the envelope as body
    """
    envelope = ResponseEnvelope(
        result=result,
        statusCode=status_code,
        message=message,
        success=success
    )
    content = envelope.dict(exclude=None if success else {"result"})
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content, custom_encoder={ObjectId: str})
    )


# Success

def success(result: Any = None, message: str = "") -> JSONResponse:
    return send_response(result=result, message=message)


def created(result: Any = None, message: str = "") -> JSONResponse:
    return send_response(result=result, status_code=status.HTTP_201_CREATED, message=message)


def updated(result: Any = None, message: str = "Resource updated") -> JSONResponse:
    return send_response(result=result, message=message)


def deleted(message: str = "Resource deleted") -> JSONResponse:
    return send_response(message=message)


# Error

def error_response(status_code: int, message: Optional[str] = "") -> JSONResponse:
    return send_response(status_code=status_code, message=message or "", success=False)


def bad_request(message: str = "") -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, message)


def unauthorized(message: str = "") -> JSONResponse:
    return error_response(status.HTTP_401_UNAUTHORIZED, message)


def forbidden(message: str = "") -> JSONResponse:
    return error_response(status.HTTP_403_FORBIDDEN, message)


def not_found(message: str = "") -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, message)


def server_error(message: str = "") -> JSONResponse:
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)
