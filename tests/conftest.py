"""
Pytest configuration and shared fixtures.
"""

import os

# Settings are read when api.config is first imported
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.auth import RequestContext, create_access_token
from api.database import APIDatabaseService
from api.dependencies import get_db_service
from api.main import app


@pytest.fixture
def mock_db_service():
    """Create a mock database service for testing."""
    return AsyncMock(spec=APIDatabaseService)


@pytest.fixture
def client(mock_db_service):
    """Create test client wired to the mock database service."""
    app.dependency_overrides[get_db_service] = lambda: mock_db_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_user():
    """User document as loaded by authentication (no password)."""
    now = datetime.utcnow()
    return {
        "_id": ObjectId(),
        "name": "Ada Reader",
        "email": "ada@example.com",
        "userName": "ada_reader",
        "role": "user",
        "createdAt": now,
        "updatedAt": now,
    }


@pytest.fixture
def admin_user():
    """Admin user document."""
    now = datetime.utcnow()
    return {
        "_id": ObjectId(),
        "name": "Site Admin",
        "email": "admin@example.com",
        "userName": "admin",
        "role": "admin",
        "createdAt": now,
        "updatedAt": now,
    }


@pytest.fixture
def other_user_id():
    """Id of some other user."""
    return ObjectId()


@pytest.fixture
def user_context(sample_user):
    """Request context for the sample user."""
    return RequestContext(user=sample_user)


@pytest.fixture
def auth_headers(sample_user, mock_db_service):
    """Bearer header for the sample user, with the user resolvable by id."""
    mock_db_service.get_user_by_id.return_value = sample_user
    token = create_access_token(sample_user["_id"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user, mock_db_service):
    """Bearer header for the admin user."""
    mock_db_service.get_user_by_id.return_value = admin_user
    token = create_access_token(admin_user["_id"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_book(other_user_id):
    """Book document created by another user."""
    now = datetime.utcnow()
    return {
        "_id": ObjectId(),
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": ["Science Fiction"],
        "description": "A desert planet and the spice that rules the universe.",
        "createdBy": other_user_id,
        "createdAt": now,
        "updatedAt": now,
    }


@pytest.fixture
def make_review(sample_user, sample_book):
    """Factory for review documents by the sample user."""
    def _make(days_old: int = 0, user_id=None):
        created_at = datetime.utcnow() - timedelta(days=days_old)
        return {
            "_id": ObjectId(),
            "book": sample_book["_id"],
            "user": user_id or sample_user["_id"],
            "rating": 4,
            "comment": "Sprawling and strange.",
            "createdAt": created_at,
            "updatedAt": created_at,
        }
    return _make
