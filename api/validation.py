"""
Field-level validation rules shared by the request schemas.

Each check is a plain function that returns the cleaned value or raises
ValueError with the message shown to the client. The pydantic models in
api.models wire them to fields; validate_payload runs a model and collects
every failure at once.
"""

import re
from typing import Any, Dict, List, Optional, Type, TypeVar

from bson import ObjectId
from pydantic import BaseModel, ValidationError

from api.errors import BadRequestError, PayloadValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

OBJECT_ID_PATTERN = re.compile(r'^[0-9a-fA-F]{24}$')
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
PASSWORD_PATTERN = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$')
AUTHOR_PATTERN = re.compile(r"^[a-zA-Z\s\-'.]+$")

MAX_GENRES = 5
MAX_GENRE_LENGTH = 50

# Prefix of the message EmailStr raises for a malformed address
INVALID_EMAIL_PREFIX = "value is not a valid email address"


def clean_string(value: Any) -> Any:
    """Trim strings; anything else is left for the type check to reject."""
    if isinstance(value, str):
        return value.strip()
    return value


def check_length(
    value: str,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
    min_message: str = "",
    max_message: str = "",
) -> str:
    if min_length is not None and len(value) < min_length:
        raise ValueError(min_message)
    if max_length is not None and len(value) > max_length:
        raise ValueError(max_message)
    return value


def validate_name(value: str) -> str:
    return check_length(value, min_length=1, min_message="Name is required")


def normalize_email(value: str) -> str:
    """Lowercase an address already checked by EmailStr."""
    return value.lower()


def validate_password(value: str) -> str:
    check_length(value, min_length=8, min_message="Password must be at least 8 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


def validate_username(value: str) -> str:
    check_length(
        value,
        min_length=3,
        max_length=30,
        min_message="Username must be at least 3 characters",
        max_message="Username cannot exceed 30 characters",
    )
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, underscores and hyphens")
    return value.lower()


def validate_title(value: str) -> str:
    return check_length(
        value,
        min_length=1,
        max_length=200,
        min_message="Title is required",
        max_message="Title cannot exceed 200 characters",
    )


def validate_author(value: str) -> str:
    check_length(
        value,
        min_length=2,
        max_length=100,
        min_message="Author name must be at least 2 characters",
        max_message="Author name cannot exceed 100 characters",
    )
    if not AUTHOR_PATTERN.match(value):
        raise ValueError("Author name can only contain letters, spaces, hyphens, apostrophes, and periods")
    return value


def clean_genres(value: Any) -> Any:
    if isinstance(value, list):
        return [clean_string(genre) for genre in value]
    return value


def validate_genres(value: List[str]) -> List[str]:
    if len(value) < 1:
        raise ValueError("At least one genre is required")
    if len(value) > MAX_GENRES:
        raise ValueError(f"Maximum {MAX_GENRES} genres allowed")
    if any(len(genre) < 1 for genre in value):
        raise ValueError("Genre cannot be empty")
    if any(len(genre) > MAX_GENRE_LENGTH for genre in value):
        raise ValueError(f"Each genre cannot exceed {MAX_GENRE_LENGTH} characters")
    return value


def validate_description(value: str) -> str:
    return check_length(
        value,
        min_length=10,
        max_length=2000,
        min_message="Description must be at least 10 characters",
        max_message="Description cannot exceed 2000 characters",
    )


def validate_rating(value: Any) -> Any:
    """Accept only JSON numbers with no fractional part, in 1..5."""
    if value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Rating must be a number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("Rating must be a whole number")
        value = int(value)
    if value < 1:
        raise ValueError("Rating must be at least 1")
    if value > 5:
        raise ValueError("Rating cannot exceed 5")
    return value


def validate_comment(value: str) -> str:
    return check_length(
        value,
        min_length=5,
        max_length=1000,
        min_message="Comment must be at least 5 characters",
        max_message="Comment cannot exceed 1000 characters",
    )


def collect_field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into field -> message, first message per field."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        if error["type"] == "missing":
            message = "Required"
        else:
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            if message.startswith(INVALID_EMAIL_PREFIX):
                message = "Invalid email"
        errors.setdefault(field, message)
    return errors


def validate_payload(schema: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """
    Validate a request payload against a schema.

    Args:
        schema: pydantic model class describing the payload
        data: Decoded JSON body

    Returns:
        Parsed model instance

    Raises:
        PayloadValidationError: With every violated field
    """
    try:
        return schema(**data)
    except ValidationError as e:
        raise PayloadValidationError(collect_field_errors(e))


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def parse_object_id(value: str, resource: str) -> ObjectId:
    """
    Check an identifier's shape before it reaches storage.

    Raises:
        BadRequestError: "Invalid <resource> ID format"
    """
    if not is_valid_object_id(value):
        raise BadRequestError(f"Invalid {resource} ID format")
    return ObjectId(value)
