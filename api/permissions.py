"""
Authorization checks composed by the resource services.
"""

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

from api.errors import BadRequestError, UnauthorizedError

if TYPE_CHECKING:
    from api.auth import RequestContext

REVIEW_EDIT_WINDOW = timedelta(days=30)


def is_same_user(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def ensure_owner(context: "RequestContext", owner_id: Any, message: str) -> None:
    """Only the owner or author of a resource may act on it."""
    if not is_same_user(context.user_id, owner_id):
        raise UnauthorizedError(message)


def ensure_admin(context: "RequestContext") -> None:
    if not context.is_admin:
        raise UnauthorizedError("Admin access required")


def ensure_not_book_owner(context: "RequestContext", book: Dict[str, Any]) -> None:
    if is_same_user(context.user_id, book.get("createdBy")):
        raise BadRequestError("You cannot review your own book")


def ensure_within_edit_window(created_at: datetime, now: Optional[datetime] = None) -> None:
    """
    Reviews can only be edited for 30 days after creation.

    Naive datetimes are taken to be UTC, matching what MongoDB returns.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if created_at < now - REVIEW_EDIT_WINDOW:
        raise BadRequestError("Reviews older than 30 days cannot be updated")
