"""
User API endpoints: signup, login, logout and profile management.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.auth import RequestContext, authenticate, clear_session_cookie, set_session_cookie
from api.database import APIDatabaseService
from api.dependencies import get_db_service, get_json_body
from api.errors import handle_error
from api.models import UserCreate, UserUpdate
from api.responses import created, deleted, success, updated
from api.services import user_service
from api.validation import validate_payload

router = APIRouter(prefix="/user", tags=["Users"])


@router.post("/signup")
async def signup(
    body: Dict[str, Any] = Depends(get_json_body),
    db: APIDatabaseService = Depends(get_db_service)
):
    """
    Register a new account and start a session.

    - **name**: Display name
    - **email**: Unique email address (case-insensitive)
    - **password**: At least 8 characters with upper, lower, digit and symbol
    - **userName**: Unique handle, 3-30 of letters, digits, `_` and `-`
    """
    try:
        payload = validate_payload(UserCreate, body)
        user, token = await user_service.register_user(db, payload)

        response = created(user, "User created successfully")
        set_session_cookie(response, token)
        return response

    except Exception as e:
        return handle_error(e)


@router.post("/login")
async def login(
    body: Dict[str, Any] = Depends(get_json_body),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Check credentials and set the session cookie."""
    try:
        user, token = await user_service.login_user(db, body.get("email"), body.get("password"))

        response = success(user, "Logged in successfully")
        set_session_cookie(response, token)
        return response

    except Exception as e:
        return handle_error(e)


@router.post("/logout")
async def logout():
    """Clear the session cookie."""
    try:
        response = success(None, "Logged out successfully")
        clear_session_cookie(response)
        return response

    except Exception as e:
        return handle_error(e)


@router.get("/me")
async def get_current_user(context: RequestContext = Depends(authenticate)):
    """Return the authenticated user."""
    try:
        return success(user_service.current_user(context), "User retrieved successfully")

    except Exception as e:
        return handle_error(e)


@router.patch("/update")
async def update_user(
    body: Dict[str, Any] = Depends(get_json_body),
    context: RequestContext = Depends(authenticate),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Partially update the authenticated user's name, username or password."""
    try:
        payload = validate_payload(UserUpdate, body)
        user = await user_service.update_user(db, context, payload)
        return updated(user, "User updated successfully")

    except Exception as e:
        return handle_error(e)


@router.delete("/delete")
async def delete_user(
    context: RequestContext = Depends(authenticate),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Delete the authenticated user's account and end the session."""
    try:
        await user_service.delete_user(db, context)

        response = deleted("User deleted successfully")
        clear_session_cookie(response)
        return response

    except Exception as e:
        return handle_error(e)
