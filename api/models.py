"""
API models and schemas for the FastAPI application.

Request payload schemas, query objects handed to the storage
adapter, and the response envelope.
"""

from enum import Enum
from typing import Any, List, Optional

from bson import ObjectId
from pydantic import BaseModel, EmailStr, Field, validator

from api.validation import (
    clean_genres, clean_string, validate_author, validate_comment,
    normalize_email, validate_description, validate_genres, validate_name,
    validate_password, validate_rating, validate_title, validate_username,
)


class UserRole(str, Enum):
    """Account roles."""
    USER = "user"
    ADMIN = "admin"


class BookSortField(str, Enum):
    """Whitelisted sort fields for book listings."""
    TITLE = "title"
    AUTHOR = "author"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    """Sort order options."""
    ASC = "asc"
    DESC = "desc"


class ReviewSort(str, Enum):
    """Sort options for review listings."""
    NEWEST = "newest"
    OLDEST = "oldest"
    RATING_HIGH = "rating-high"
    RATING_LOW = "rating-low"


# Request payloads

class UserCreate(BaseModel):
    """Signup payload."""
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address, stored lowercased")
    password: str = Field(..., description="Plaintext password, hashed before storage")
    user_name: str = Field(..., alias="userName", description="Unique handle, stored lowercased")

    class Config:
        populate_by_name = True

    @validator('name', 'email', 'user_name', pre=True)
    def strip_strings(cls, v):
        return clean_string(v)

    @validator('name')
    def check_name(cls, v):
        return v if v is None else validate_name(v)

    @validator('email')
    def lowercase_email(cls, v):
        return v if v is None else normalize_email(v)

    @validator('password')
    def check_password(cls, v):
        return v if v is None else validate_password(v)

    @validator('user_name')
    def check_user_name(cls, v):
        return v if v is None else validate_username(v)


class UserUpdate(UserCreate):
    """Partial profile update; only supplied fields are applied."""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    user_name: Optional[str] = Field(None, alias="userName")


class BookCreate(BaseModel):
    """Book creation payload."""
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Author name")
    genre: List[str] = Field(..., description="One to five genre tags")
    description: str = Field(..., description="Book description")

    @validator('title', 'author', 'description', pre=True)
    def strip_strings(cls, v):
        return clean_string(v)

    @validator('genre', pre=True)
    def strip_genres(cls, v):
        return clean_genres(v)

    @validator('title')
    def check_title(cls, v):
        return v if v is None else validate_title(v)

    @validator('author')
    def check_author(cls, v):
        return v if v is None else validate_author(v)

    @validator('genre')
    def check_genre(cls, v):
        return v if v is None else validate_genres(v)

    @validator('description')
    def check_description(cls, v):
        return v if v is None else validate_description(v)


class ReviewCreate(BaseModel):
    """Review creation payload."""
    rating: int = Field(..., description="Whole-number rating from 1 to 5")
    comment: str = Field(..., description="Review text")

    @validator('rating', pre=True)
    def check_rating(cls, v):
        return validate_rating(v)

    @validator('comment', pre=True)
    def strip_comment(cls, v):
        return clean_string(v)

    @validator('comment')
    def check_comment(cls, v):
        return v if v is None else validate_comment(v)


class ReviewUpdate(ReviewCreate):
    """Partial review update; only supplied fields are applied."""
    rating: Optional[int] = None
    comment: Optional[str] = None


# Query objects

class BookQueryParams(BaseModel):
    """Filters, sort and page for book listings and search."""
    title: Optional[str] = Field(None, description="Partial, case-insensitive title match")
    author: Optional[str] = Field(None, description="Partial, case-insensitive author match")
    genre: Optional[str] = Field(None, description="Partial, case-insensitive genre match")
    search: Optional[str] = Field(None, description="Matches title, author or any genre")
    sort_by: BookSortField = Field(BookSortField.CREATED_AT, description="Sort field")
    sort_order: SortOrder = Field(SortOrder.DESC, description="Sort order")
    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(10, ge=1, le=50, description="Items per page")


class ReviewQueryParams(BaseModel):
    """Sort and page for one book's reviews."""
    book_id: ObjectId = Field(..., description="Book whose reviews are listed")
    sort: ReviewSort = Field(ReviewSort.NEWEST, description="Sort option")
    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(10, ge=1, le=50, description="Items per page")

    class Config:
        arbitrary_types_allowed = True


# Responses

class Pagination(BaseModel):
    """Pagination metadata attached to list results."""
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total: int = Field(..., description="Total number of matching items")
    pages: int = Field(..., description="Total number of pages")


class ResponseEnvelope(BaseModel):
    """Uniform response wrapper used by every endpoint."""
    result: Optional[Any] = Field(None, description="Payload, omitted on failure")
    statusCode: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human-readable message")
    success: bool = Field(..., description="Whether the request succeeded")
