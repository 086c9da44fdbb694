"""
Database service layer for the FastAPI application.

Translates the typed query objects from api.models into MongoDB
filters, sorts and aggregation pipelines, and owns every collection access.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collation import Collation

from api.models import BookQueryParams, ReviewQueryParams, ReviewSort, SortOrder

logger = structlog.get_logger(__name__)

# Case-insensitive comparison for the (title, author) uniqueness index
CASE_INSENSITIVE = Collation(locale="en", strength=2)

USER_SUMMARY = {"name": 1, "userName": 1}
BOOK_SUMMARY = {"title": 1, "author": 1}


def contains(text: str) -> Dict[str, str]:
    """Case-insensitive literal substring match."""
    return {"$regex": re.escape(text.strip()), "$options": "i"}


def equals_ignoring_case(text: str) -> Dict[str, str]:
    """Case-insensitive literal whole-value match."""
    return {"$regex": f"^{re.escape(text.strip())}$", "$options": "i"}


def build_book_filter(query: BookQueryParams) -> Dict[str, Any]:
    """
    Build the MongoDB filter for a book query.

    Args:
        query: Book query object

    Returns:
        MongoDB filter document
    """
    filter_query: Dict[str, Any] = {}

    if query.title:
        filter_query["title"] = contains(query.title)
    if query.author:
        filter_query["author"] = contains(query.author)
    if query.genre:
        filter_query["genre"] = contains(query.genre)

    if query.search:
        pattern = contains(query.search)
        filter_query["$or"] = [
            {"title": pattern},
            {"author": pattern},
            {"genre": pattern},
        ]

    return filter_query


def build_book_sort(query: BookQueryParams) -> List[Tuple[str, int]]:
    direction = ASCENDING if query.sort_order == SortOrder.ASC else DESCENDING
    return [(query.sort_by.value, direction), ("_id", direction)]


def build_review_sort(sort: ReviewSort) -> List[Tuple[str, int]]:
    if sort == ReviewSort.RATING_HIGH:
        return [("rating", DESCENDING), ("createdAt", DESCENDING)]
    if sort == ReviewSort.RATING_LOW:
        return [("rating", ASCENDING), ("createdAt", DESCENDING)]
    if sort == ReviewSort.OLDEST:
        return [("createdAt", ASCENDING), ("_id", ASCENDING)]
    return [("createdAt", DESCENDING), ("_id", DESCENDING)]


def _populate(local_field: str, collection: str, projection: Dict[str, int]) -> List[Dict[str, Any]]:
    """
    Pipeline stages replacing a reference with a projected copy of the
    referenced document, or null when it no longer exists.
    """
    return [
        {"$lookup": {
            "from": collection,
            "localField": local_field,
            "foreignField": "_id",
            "pipeline": [{"$project": projection}],
            "as": local_field,
        }},
        {"$unwind": {"path": f"${local_field}", "preserveNullAndEmptyArrays": True}},
        {"$addFields": {local_field: {"$ifNull": [f"${local_field}", None]}}},
    ]


def _average_rating() -> List[Dict[str, Any]]:
    """Pipeline stages adding ``averageRating`` (one decimal, 0 without reviews)."""
    return [
        {"$lookup": {
            "from": "reviews",
            "localField": "_id",
            "foreignField": "book",
            "pipeline": [{"$project": {"rating": 1}}],
            "as": "_ratings",
        }},
        {"$addFields": {
            "averageRating": {"$ifNull": [{"$round": [{"$avg": "$_ratings.rating"}, 1]}, 0]}
        }},
        {"$project": {"_ratings": 0}},
    ]


class APIDatabaseService:
    """Database service for API operations."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.users_collection = database.users
        self.books_collection = database.books
        self.reviews_collection = database.reviews

    async def create_indexes(self) -> None:
        """Create uniqueness and lookup indexes."""
        try:
            await self.users_collection.create_index("email", unique=True)
            await self.users_collection.create_index("userName", unique=True)

            await self.books_collection.create_index(
                [("title", ASCENDING), ("author", ASCENDING)],
                unique=True,
                collation=CASE_INSENSITIVE,
                name="title_author_unique_ci"
            )
            await self.books_collection.create_index([("createdAt", DESCENDING)])

            # One review per user per book
            await self.reviews_collection.create_index(
                [("book", ASCENDING), ("user", ASCENDING)],
                unique=True
            )
            await self.reviews_collection.create_index([("book", ASCENDING), ("createdAt", DESCENDING)])

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    # Users

    async def get_user_by_id(self, user_id: ObjectId, include_password: bool = False) -> Optional[Dict[str, Any]]:
        projection = None if include_password else {"password": 0}
        return await self.users_collection.find_one({"_id": user_id}, projection)

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.users_collection.find_one({"email": email})

    async def get_user_by_username(self, user_name: str) -> Optional[Dict[str, Any]]:
        return await self.users_collection.find_one({"userName": user_name})

    async def create_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a user document.

        Raises:
            DuplicateKeyError: If the email or username is taken
        """
        now = datetime.utcnow()
        document = {**user, "createdAt": now, "updatedAt": now}
        result = await self.users_collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("User created", user_id=str(result.inserted_id))
        return document

    async def update_user(self, user_id: ObjectId, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply a partial update and return the updated user without its password.

        Raises:
            DuplicateKeyError: If the new username is taken
        """
        update_data = {**update_data, "updatedAt": datetime.utcnow()}
        return await self.users_collection.find_one_and_update(
            {"_id": user_id},
            {"$set": update_data},
            projection={"password": 0},
            return_document=ReturnDocument.AFTER
        )

    async def delete_user(self, user_id: ObjectId) -> bool:
        result = await self.users_collection.delete_one({"_id": user_id})
        if result.deleted_count > 0:
            logger.info("User deleted", user_id=str(user_id))
            return True
        logger.warning("User not found for deletion", user_id=str(user_id))
        return False

    # Books

    async def find_book_by_title_and_author(self, title: str, author: str) -> Optional[Dict[str, Any]]:
        return await self.books_collection.find_one({
            "title": equals_ignoring_case(title),
            "author": equals_ignoring_case(author),
        })

    async def create_book(self, book: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a book document.

        Raises:
            DuplicateKeyError: If the (title, author) pair already exists
        """
        now = datetime.utcnow()
        document = {**book, "createdAt": now, "updatedAt": now}
        result = await self.books_collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("Book created", book_id=str(result.inserted_id), title=document.get("title"))
        return document

    async def get_book_by_id(self, book_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Raw book document, without populated references."""
        return await self.books_collection.find_one({"_id": book_id})

    async def get_book_detail(self, book_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Book with its creator populated and its average rating."""
        pipeline = [
            {"$match": {"_id": book_id}},
            *_populate("createdBy", "users", USER_SUMMARY),
            *_average_rating(),
        ]
        documents = await self.books_collection.aggregate(pipeline).to_list(length=1)
        return documents[0] if documents else None

    async def list_books(self, query: BookQueryParams) -> Tuple[List[Dict[str, Any]], int]:
        """
        Get books with filtering, sorting, and pagination.

        Args:
            query: Book query object

        Returns:
            Tuple of (books for the requested page, total matching books)
        """
        try:
            filter_query = build_book_filter(query)
            skip = (query.page - 1) * query.limit

            pipeline = [
                {"$match": filter_query},
                {"$sort": dict(build_book_sort(query))},
                {"$skip": skip},
                {"$limit": query.limit},
                *_populate("createdBy", "users", USER_SUMMARY),
                *_average_rating(),
            ]
            books = await self.books_collection.aggregate(pipeline).to_list(length=query.limit)
            total = await self.books_collection.count_documents(filter_query)
            return books, total

        except Exception as e:
            logger.error("Failed to list books", error=str(e), query=query.dict())
            raise

    # Reviews

    async def find_review(self, book_id: ObjectId, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.reviews_collection.find_one({"book": book_id, "user": user_id})

    async def create_review(self, review: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a review document.

        Raises:
            DuplicateKeyError: If the user already reviewed the book
        """
        now = datetime.utcnow()
        document = {**review, "createdAt": now, "updatedAt": now}
        result = await self.reviews_collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info(
            "Review created",
            review_id=str(result.inserted_id),
            book_id=str(document.get("book")),
            user_id=str(document.get("user"))
        )
        return document

    async def get_review_by_id(self, review_id: ObjectId) -> Optional[Dict[str, Any]]:
        return await self.reviews_collection.find_one({"_id": review_id})

    async def get_review_detail(self, review_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Review with its author and book populated."""
        pipeline = [
            {"$match": {"_id": review_id}},
            *_populate("user", "users", USER_SUMMARY),
            *_populate("book", "books", BOOK_SUMMARY),
        ]
        documents = await self.reviews_collection.aggregate(pipeline).to_list(length=1)
        return documents[0] if documents else None

    async def update_review(self, review_id: ObjectId, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update and return the populated review."""
        update_data = {**update_data, "updatedAt": datetime.utcnow()}
        result = await self.reviews_collection.update_one({"_id": review_id}, {"$set": update_data})
        if result.matched_count == 0:
            logger.warning("Review not found for update", review_id=str(review_id))
            return None
        return await self.get_review_detail(review_id)

    async def delete_review(self, review_id: ObjectId) -> bool:
        result = await self.reviews_collection.delete_one({"_id": review_id})
        if result.deleted_count > 0:
            logger.info("Review deleted", review_id=str(review_id))
            return True
        logger.warning("Review not found for deletion", review_id=str(review_id))
        return False

    async def list_reviews(self, query: ReviewQueryParams) -> Tuple[List[Dict[str, Any]], int]:
        """
        Get one book's reviews with sorting and pagination.

        Returns:
            Tuple of (reviews for the requested page, total reviews of the book)
        """
        try:
            filter_query = {"book": query.book_id}
            skip = (query.page - 1) * query.limit

            pipeline = [
                {"$match": filter_query},
                {"$sort": dict(build_review_sort(query.sort))},
                {"$skip": skip},
                {"$limit": query.limit},
                *_populate("user", "users", USER_SUMMARY),
            ]
            reviews = await self.reviews_collection.aggregate(pipeline).to_list(length=query.limit)
            total = await self.reviews_collection.count_documents(filter_query)
            return reviews, total

        except Exception as e:
            logger.error("Failed to list reviews", error=str(e), book_id=str(query.book_id))
            raise

    # Monitoring

    async def get_stats(self) -> Dict[str, Any]:
        """Collection counts for administrators."""
        try:
            return {
                "total_users": await self.users_collection.count_documents({}),
                "total_books": await self.books_collection.count_documents({}),
                "total_reviews": await self.reviews_collection.count_documents({}),
                "last_updated": datetime.utcnow().isoformat()
            }
        except Exception as e:
            logger.error("Failed to get stats", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
