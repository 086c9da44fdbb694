"""
Book API endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from api.auth import RequestContext, authenticate
from api.database import APIDatabaseService
from api.dependencies import get_db_service, get_json_body
from api.errors import handle_error
from api.models import BookCreate
from api.responses import created, success
from api.services import book_service
from api.validation import validate_payload

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("")
async def get_books(
    title: Optional[str] = None,
    author: Optional[str] = None,
    genre: Optional[str] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: APIDatabaseService = Depends(get_db_service)
):
    """
    Get books with filtering, sorting, and pagination.

    - **title**, **author**, **genre**: Case-insensitive partial matches
    - **sort**: title, author or createdAt (default createdAt)
    - **order**: asc or desc (default desc)
    - **page**: Page number (starts from 1)
    - **limit**: Items per page (1-50, default 10)
    """
    try:
        query = book_service.build_book_query(
            page=page, limit=limit, title=title, author=author,
            genre=genre, sort=sort, order=order
        )
        result = await book_service.list_books(db, query)
        return success(result, "Books retrieved successfully")

    except Exception as e:
        return handle_error(e)


@router.get("/search")
async def search_books(
    query: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: APIDatabaseService = Depends(get_db_service)
):
    """Search title, author and genre; the query needs at least 2 characters."""
    try:
        result = await book_service.search_books(db, query, page=page, limit=limit)
        return success(result, "Search results retrieved successfully")

    except Exception as e:
        return handle_error(e)


@router.get("/{book_id}")
async def get_book(
    book_id: str,
    page: Optional[str] = None,
    reviewLimit: Optional[str] = None,
    db: APIDatabaseService = Depends(get_db_service)
):
    """
    Get a single book with its average rating and a page of reviews.

    - **page**: Review page number
    - **reviewLimit**: Reviews per page (1-50, default 10)
    """
    try:
        book = await book_service.get_book(db, book_id, page=page, review_limit=reviewLimit)
        return success(book, "Book retrieved successfully")

    except Exception as e:
        return handle_error(e)


@router.post("")
async def create_book(
    body: Dict[str, Any] = Depends(get_json_body),
    context: RequestContext = Depends(authenticate),
    db: APIDatabaseService = Depends(get_db_service)
):
    """Create a book owned by the authenticated user."""
    try:
        payload = validate_payload(BookCreate, body)
        book = await book_service.create_book(db, payload, created_by=context.user_id)
        return created(book, "Book created successfully")

    except Exception as e:
        return handle_error(e)
