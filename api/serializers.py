"""
Conversion of MongoDB documents into JSON-ready dictionaries.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional

from bson import ObjectId

DEFAULT_FIELDS_TO_REMOVE = ["createdAt", "updatedAt", "password"]


def serialize_document(value: Any) -> Any:
    """
    Recursively make a document JSON-ready.

    ``_id`` becomes ``id``, ObjectIds become strings and datetimes become
    ISO-8601 strings. Lists and nested documents are handled.
    """
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "_id":
                key = "id"
            result[key] = serialize_document(item)
        return result
    if isinstance(value, list):
        return [serialize_document(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def remove_fields(data: Any, fields: Optional[Iterable[str]] = None, append: bool = False) -> Any:
    """
    Drop fields from a document or a list of documents.

    Args:
        data: Document or list of documents
        fields: Fields to drop; defaults to DEFAULT_FIELDS_TO_REMOVE
        append: Drop ``fields`` in addition to the defaults

    Returns:
        Copies of the documents without the fields
    """
    fields = list(fields or [])
    if append:
        to_remove = set(fields) | set(DEFAULT_FIELDS_TO_REMOVE)
    else:
        to_remove = set(fields or DEFAULT_FIELDS_TO_REMOVE)

    if isinstance(data, list):
        return [remove_fields(item, to_remove) for item in data]
    if not isinstance(data, dict):
        return data
    return {key: value for key, value in data.items() if key not in to_remove}


def public_user(user: dict) -> dict:
    """User document as returned after signup, login and update."""
    return serialize_document(remove_fields(user, ["password"], append=True))


def serialize_documents(documents: List[dict]) -> List[dict]:
    return [serialize_document(document) for document in documents]
