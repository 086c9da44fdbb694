"""
Review service layer.

Enforces the review rules: no reviewing your own book, one review per
user per book, author-only edits within 30 days, author-only deletes.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from pymongo.errors import DuplicateKeyError

from api.auth import RequestContext
from api.database import APIDatabaseService
from api.errors import BadRequestError, NotFoundError
from api.models import ReviewCreate, ReviewQueryParams, ReviewSort, ReviewUpdate
from api.pagination import build_pagination, parse_page_params
from api.permissions import ensure_not_book_owner, ensure_owner, ensure_within_edit_window
from api.serializers import serialize_document, serialize_documents
from api.validation import parse_object_id

logger = structlog.get_logger(__name__)

ALREADY_REVIEWED_MESSAGE = "You have already reviewed this book"


async def create_review(
    db: APIDatabaseService,
    context: RequestContext,
    book_id: str,
    payload: ReviewCreate
) -> Dict[str, Any]:
    """
    Post the acting user's review of a book.

    Raises:
        BadRequestError: Malformed id, own book, or already reviewed
        NotFoundError: If the book does not exist
    """
    book_object_id = parse_object_id(book_id, "book")

    book = await db.get_book_by_id(book_object_id)
    if not book:
        raise NotFoundError("Book not found")

    ensure_not_book_owner(context, book)

    if await db.find_review(book_object_id, context.user_id):
        raise BadRequestError(ALREADY_REVIEWED_MESSAGE)

    try:
        review = await db.create_review({
            "book": book_object_id,
            "user": context.user_id,
            "rating": payload.rating,
            "comment": payload.comment,
        })
    except DuplicateKeyError:
        # A concurrent submission won the unique (book, user) index
        raise BadRequestError(ALREADY_REVIEWED_MESSAGE)

    populated = await db.get_review_detail(review["_id"])
    return serialize_document(populated or review)


async def update_review(
    db: APIDatabaseService,
    context: RequestContext,
    review_id: str,
    payload: ReviewUpdate,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Edit the acting user's own review, if it is at most 30 days old.

    Raises:
        BadRequestError: Malformed id or edit window closed
        NotFoundError: If the review does not exist
        UnauthorizedError: If the review belongs to someone else
    """
    review_object_id = parse_object_id(review_id, "review")

    review = await db.get_review_by_id(review_object_id)
    if not review:
        raise NotFoundError("Review not found")

    ensure_owner(context, review.get("user"), "You can only update your own reviews")
    ensure_within_edit_window(review["createdAt"], now)

    update_data = {
        field: value
        for field, value in (("rating", payload.rating), ("comment", payload.comment))
        if value is not None
    }

    updated = await db.update_review(review_object_id, update_data)
    if not updated:
        raise NotFoundError("Review not found")

    logger.info("Review updated", review_id=review_id, fields=sorted(update_data))
    return serialize_document(updated)


async def delete_review(db: APIDatabaseService, context: RequestContext, review_id: str) -> None:
    """
    Delete the acting user's own review. Admins get no override.

    Raises:
        BadRequestError: Malformed id
        NotFoundError: If the review does not exist
        UnauthorizedError: If the review belongs to someone else
    """
    review_object_id = parse_object_id(review_id, "review")

    review = await db.get_review_by_id(review_object_id)
    if not review:
        raise NotFoundError("Review not found")

    ensure_owner(context, review.get("user"), "You can only delete your own reviews")

    if not await db.delete_review(review_object_id):
        raise NotFoundError("Review not found")


async def list_book_reviews(
    db: APIDatabaseService,
    book_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: Optional[str] = None
) -> Dict[str, Any]:
    """
    One page of a book's reviews.

    ``sort`` is one of newest (default), oldest, rating-high, rating-low;
    anything else means newest.
    """
    book_object_id = parse_object_id(book_id, "book")

    book = await db.get_book_by_id(book_object_id)
    if not book:
        raise NotFoundError("Book not found")

    page_params = parse_page_params(page, limit)
    review_sort = ReviewSort(sort) if sort in {option.value for option in ReviewSort} else ReviewSort.NEWEST

    reviews, total = await db.list_reviews(ReviewQueryParams(
        book_id=book_object_id,
        sort=review_sort,
        page=page_params.page,
        limit=page_params.limit,
    ))
    return {
        "reviews": serialize_documents(reviews),
        "pagination": build_pagination(page_params.page, page_params.limit, total),
    }
