"""
Authentication for the FastAPI API.

Session tokens are HS256 JWTs carrying the user id. They travel in the
``access_token`` cookie or an ``Authorization: Bearer`` header.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
import structlog
from bson import ObjectId
from fastapi import Depends, Request, Response

from api.config import config
from api.database import APIDatabaseService
from api.dependencies import get_db_service
from api.errors import NotFoundError, UnauthorizedError
from api.models import UserRole
from api.permissions import ensure_admin
from api.validation import is_valid_object_id

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_COOKIE = "access_token"


@dataclass(frozen=True)
class RequestContext:
    """Authenticated identity for one request, passed explicitly to services."""
    user: Dict[str, Any]

    @property
    def user_id(self) -> ObjectId:
        return self.user["_id"]

    @property
    def role(self) -> str:
        return self.user.get("role", UserRole.USER.value)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


# Passwords

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def check_password_async(password: str, hashed: str) -> bool:
    return await asyncio.to_thread(check_password, password, hashed)


# Tokens

def create_access_token(user_id: ObjectId, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token for a user.

    Args:
        user_id: Id of the authenticated user
        expires_delta: Lifetime; defaults to the configured hours

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(hours=config.access_token_expire_hours)
    payload = {
        "id": str(user_id),
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str) -> ObjectId:
    """
    Verify a session token and return the user id it carries.

    Raises:
        UnauthorizedError: If the token is expired or invalid
    """
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Session has expired, please login again")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid authentication token")

    user_id = payload.get("id")
    if not is_valid_object_id(user_id):
        raise UnauthorizedError("Invalid authentication token")
    return ObjectId(user_id)


def extract_token(request: Request) -> Optional[str]:
    """Session token from the cookie, else from a Bearer authorization header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token

    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer"):
        parts = authorization.split(" ")
        if len(parts) > 1 and parts[1]:
            return parts[1]
    return None


# Cookies

def get_cookie_options() -> Dict[str, Any]:
    """Session cookie attributes; cross-site and secure only in production."""
    is_production = config.is_production()
    return {
        "httponly": True,
        "secure": is_production,
        "samesite": "none" if is_production else "lax",
        "max_age": config.access_token_expire_hours * 60 * 60,
    }


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(ACCESS_TOKEN_COOKIE, token, **get_cookie_options())


def clear_session_cookie(response: Response) -> None:
    options = get_cookie_options()
    options.pop("max_age")
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)


# Dependencies

async def authenticate(
    request: Request,
    db: APIDatabaseService = Depends(get_db_service)
) -> RequestContext:
    """
    Resolve the acting user for a request.

    Raises:
        UnauthorizedError: Missing, expired or invalid token
        NotFoundError: Token refers to a user that no longer exists
    """
    token = extract_token(request)
    if not token:
        raise UnauthorizedError("Authentication required")

    user_id = decode_access_token(token)

    user = await db.get_user_by_id(user_id)
    if not user:
        logger.warning("Token refers to missing user", user_id=str(user_id))
        raise NotFoundError("User not found")

    return RequestContext(user=user)


async def require_admin(context: RequestContext = Depends(authenticate)) -> RequestContext:
    """Authenticate and require the admin role."""
    ensure_admin(context)
    return context
