"""
Book service layer: creation, listing, search and detail views.
"""

from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from api.database import APIDatabaseService
from api.errors import BadRequestError, NotFoundError
from api.models import (
    BookCreate, BookQueryParams, BookSortField, ReviewQueryParams, SortOrder,
)
from api.pagination import build_pagination, parse_page_params
from api.serializers import serialize_document, serialize_documents
from api.validation import parse_object_id

logger = structlog.get_logger(__name__)

DUPLICATE_BOOK_MESSAGE = "A book with this title and author already exists"
MIN_SEARCH_LENGTH = 2


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_book_query(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    title: Optional[str] = None,
    author: Optional[str] = None,
    genre: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
) -> BookQueryParams:
    """
    Build a book query object from raw query-string values.

    Unknown sort fields fall back to the default (newest first).

    Raises:
        BadRequestError: If the page parameters are out of range
    """
    page_params = parse_page_params(page, limit)

    sort_by = BookSortField.CREATED_AT
    sort_order = SortOrder.DESC
    if sort in {field.value for field in BookSortField}:
        sort_by = BookSortField(sort)
        sort_order = SortOrder.ASC if order == SortOrder.ASC.value else SortOrder.DESC

    return BookQueryParams(
        title=_clean(title),
        author=_clean(author),
        genre=_clean(genre),
        search=_clean(search),
        sort_by=sort_by,
        sort_order=sort_order,
        page=page_params.page,
        limit=page_params.limit,
    )


async def create_book(db: APIDatabaseService, payload: BookCreate, created_by: ObjectId) -> Dict[str, Any]:
    """
    Create a book owned by ``created_by``.

    Args:
        db: Database service
        payload: Validated book payload
        created_by: Id of the user recorded as the book's owner

    Raises:
        BadRequestError: If a book with the same title and author exists
    """
    existing = await db.find_book_by_title_and_author(payload.title, payload.author)
    if existing:
        raise BadRequestError(DUPLICATE_BOOK_MESSAGE)

    try:
        book = await db.create_book({
            "title": payload.title,
            "author": payload.author,
            "genre": payload.genre,
            "description": payload.description,
            "createdBy": created_by,
        })
    except DuplicateKeyError:
        # Lost a race with a concurrent insert of the same book
        raise BadRequestError(DUPLICATE_BOOK_MESSAGE)

    book["averageRating"] = 0
    return serialize_document(book)


async def list_books(db: APIDatabaseService, query: BookQueryParams) -> Dict[str, Any]:
    """Books for one page plus pagination metadata."""
    books, total = await db.list_books(query)
    return {
        "books": serialize_documents(books),
        "pagination": build_pagination(query.page, query.limit, total),
    }


async def search_books(
    db: APIDatabaseService,
    text: Optional[str],
    page: Optional[str] = None,
    limit: Optional[str] = None
) -> Dict[str, Any]:
    """
    Free-text search over title, author and genre.

    Raises:
        BadRequestError: If the search text is shorter than two characters
    """
    if not text or len(text.strip()) < MIN_SEARCH_LENGTH:
        raise BadRequestError(f"Search query must be at least {MIN_SEARCH_LENGTH} characters")

    query = build_book_query(page=page, limit=limit, search=text)
    return await list_books(db, query)


async def get_book(
    db: APIDatabaseService,
    book_id: str,
    page: Optional[str] = None,
    review_limit: Optional[str] = None
) -> Dict[str, Any]:
    """
    One book with its creator, average rating and a page of its reviews.

    Raises:
        BadRequestError: If the id is malformed or the page parameters are out of range
        NotFoundError: If the book does not exist
    """
    object_id = parse_object_id(book_id, "book")
    page_params = parse_page_params(page, review_limit)

    book = await db.get_book_detail(object_id)
    if not book:
        raise NotFoundError("Book not found")

    reviews, total_reviews = await db.list_reviews(ReviewQueryParams(
        book_id=object_id,
        page=page_params.page,
        limit=page_params.limit,
    ))

    book_data = serialize_document(book)
    book_data["reviews"] = serialize_documents(reviews)
    book_data["pagination"] = build_pagination(page_params.page, page_params.limit, total_reviews)
    return book_data
