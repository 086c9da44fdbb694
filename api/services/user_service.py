"""
User service layer for account operations.

Handles signup, login, profile updates and self-service deletion.
"""

from typing import Any, Dict, Optional, Tuple

import structlog
from pymongo.errors import DuplicateKeyError

from api.auth import (
    RequestContext, check_password_async, create_access_token, hash_password_async,
)
from api.database import APIDatabaseService
from api.errors import BadRequestError, NotFoundError, UnauthorizedError
from api.models import UserCreate, UserRole, UserUpdate
from api.serializers import public_user, serialize_document

logger = structlog.get_logger(__name__)


def _duplicate_user_message(error: DuplicateKeyError) -> str:
    """Pick the message for a unique-index violation on the users collection."""
    details = error.details or {}
    keys = details.get("keyPattern") or details.get("keyValue")
    if keys:
        is_email = "email" in keys
    else:
        # Older servers only name the index in the message
        is_email = "index: email_1" in str(error)
    return "Email already in use" if is_email else "Username already taken"


async def register_user(db: APIDatabaseService, payload: UserCreate) -> Tuple[Dict[str, Any], str]:
    """
    Create an account and issue its first session token.

    Args:
        db: Database service
        payload: Validated signup payload

    Returns:
        Tuple of (public user document, session token)

    Raises:
        BadRequestError: If the email or username is taken
    """
    if await db.get_user_by_email(payload.email):
        raise BadRequestError("Email already in use")

    if await db.get_user_by_username(payload.user_name):
        raise BadRequestError("Username already taken")

    hashed_password = await hash_password_async(payload.password)

    try:
        user = await db.create_user({
            "name": payload.name,
            "email": payload.email,
            "password": hashed_password,
            "userName": payload.user_name,
            "role": UserRole.USER.value,
        })
    except DuplicateKeyError as e:
        raise BadRequestError(_duplicate_user_message(e))

    token = create_access_token(user["_id"])
    logger.info("User registered", user_id=str(user["_id"]), user_name=payload.user_name)
    return public_user(user), token


async def login_user(
    db: APIDatabaseService,
    email: Optional[Any],
    password: Optional[Any]
) -> Tuple[Dict[str, Any], str]:
    """
    Check credentials and issue a session token.

    Raises:
        BadRequestError: If email or password is missing
        UnauthorizedError: If the credentials do not match
    """
    clean_email = email.strip().lower() if isinstance(email, str) else None

    if not clean_email or not password or not isinstance(password, str):
        raise BadRequestError("Email and password are required")

    user = await db.get_user_by_email(clean_email)
    if not user:
        raise UnauthorizedError("Invalid credentials")

    if not await check_password_async(password, user.get("password", "")):
        logger.warning("Login failed", user_id=str(user["_id"]))
        raise UnauthorizedError("Invalid credentials")

    token = create_access_token(user["_id"])
    logger.info("User logged in", user_id=str(user["_id"]))
    return public_user(user), token


def current_user(context: RequestContext) -> Dict[str, Any]:
    """The acting user as loaded by authentication (password already excluded)."""
    return serialize_document(context.user)


async def update_user(db: APIDatabaseService, context: RequestContext, payload: UserUpdate) -> Dict[str, Any]:
    """
    Apply a partial profile update.

    Only name, username and password change; the email is fixed at signup.

    Raises:
        BadRequestError: If the new username is taken
    """
    update_data: Dict[str, Any] = {}

    if payload.name:
        update_data["name"] = payload.name

    if payload.user_name:
        if payload.user_name != context.user.get("userName"):
            existing = await db.get_user_by_username(payload.user_name)
            if existing:
                raise BadRequestError("Username already taken")
        update_data["userName"] = payload.user_name

    if payload.password:
        update_data["password"] = await hash_password_async(payload.password)

    try:
        user = await db.update_user(context.user_id, update_data)
    except DuplicateKeyError as e:
        raise BadRequestError(_duplicate_user_message(e))

    if not user:
        raise NotFoundError("User not found")

    logger.info("User updated", user_id=str(context.user_id), fields=sorted(update_data))
    return public_user(user)


async def delete_user(db: APIDatabaseService, context: RequestContext) -> None:
    """Delete the acting user's account."""
    if not await db.delete_user(context.user_id):
        raise NotFoundError("User not found")
