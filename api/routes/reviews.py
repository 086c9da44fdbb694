"""
Review API endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from api.auth import RequestContext, authenticate
from api.database import APIDatabaseService
from api.dependencies import get_db_service, get_json_body
from api.errors import handle_error
from api.models import ReviewCreate, ReviewUpdate
from api.responses import created, deleted, success, updated
from api.services import review_service
from api.validation import validate_payload

router = APIRouter(tags=["Reviews"])


@router.get("/books/{book_id}/reviews")
async def get_book_reviews(
    book_id: str,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: APIDatabaseService = Depends(get_db_service)
):
    """
    List a book's reviews.

    - **sort**: newest (default), oldest, rating-high or rating-low
    - **page**: Page number (starts from 1)
    - **limit**: Items per page (1-50, default 10)
    """
    try:
        result = await review_service.list_book_reviews(db, book_id, page=page, limit=limit, sort=sort)
        return success(result, "Reviews retrieved successfully")

    except Exception as e:
        return handle_error(e)


@router.post("/books/{book_id}/reviews")
async def create_review(
    book_id: str,
    body: Dict[str, Any] = Depends(get_json_body),
    context: RequestContext = Depends(authenticate),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Review a book the authenticated user did not create."""
    try:
        payload = validate_payload(ReviewCreate, body)
        review = await review_service.create_review(db, context, book_id, payload)
        return created(review, "Review created successfully")

    except Exception as e:
        return handle_error(e)


@router.put("/reviews/{review_id}")
async def update_review(
    review_id: str,
    body: Dict[str, Any] = Depends(get_json_body),
    context: RequestContext = Depends(authenticate),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Update the authenticated user's review; only within 30 days of posting."""
    try:
        payload = validate_payload(ReviewUpdate, body)
        review = await review_service.update_review(db, context, review_id, payload)
        return updated(review, "Review updated successfully")

    except Exception as e:
        return handle_error(e)


@router.delete("/reviews/{review_id}")
async def delete_review(
    review_id: str,
    context: RequestContext = Depends(authenticate),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Delete the authenticated user's review."""
    try:
        await review_service.delete_review(db, context, review_id)
        return deleted("Review deleted successfully")

    except Exception as e:
        return handle_error(e)
