"""
Unit tests for authorization rules.
"""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from api.auth import RequestContext
from api.errors import BadRequestError, UnauthorizedError
from api.permissions import (
    ensure_admin, ensure_not_book_owner, ensure_owner, ensure_within_edit_window,
    is_same_user,
)


class TestOwnership:
    """Test cases for owner checks."""

    def test_same_user_compares_string_forms(self):
        user_id = ObjectId()

        assert is_same_user(user_id, str(user_id))
        assert not is_same_user(user_id, ObjectId())
        assert not is_same_user(user_id, None)
        assert not is_same_user(None, None)

    def test_owner_passes(self, user_context, sample_user):
        ensure_owner(user_context, sample_user["_id"], "nope")

    def test_non_owner_rejected_with_message(self, user_context, other_user_id):
        with pytest.raises(UnauthorizedError) as exc_info:
            ensure_owner(user_context, other_user_id, "You can only update your own reviews")

        assert exc_info.value.message == "You can only update your own reviews"

    def test_admin_is_not_an_owner(self, admin_user, other_user_id):
        """Admins get no ownership override."""
        with pytest.raises(UnauthorizedError):
            ensure_owner(RequestContext(user=admin_user), other_user_id, "nope")


class TestAdmin:
    """Test cases for the admin role check."""

    def test_admin_passes(self, admin_user):
        ensure_admin(RequestContext(user=admin_user))

    def test_user_rejected(self, user_context):
        with pytest.raises(UnauthorizedError) as exc_info:
            ensure_admin(user_context)

        assert exc_info.value.message == "Admin access required"

    def test_role_defaults_to_user(self):
        context = RequestContext(user={"_id": ObjectId()})

        assert context.role == "user"
        assert not context.is_admin


class TestSelfReview:
    """Test cases for reviewing one's own book."""

    def test_own_book_rejected(self, user_context, sample_book, sample_user):
        book = {**sample_book, "createdBy": sample_user["_id"]}

        with pytest.raises(BadRequestError) as exc_info:
            ensure_not_book_owner(user_context, book)

        assert exc_info.value.message == "You cannot review your own book"

    def test_other_users_book_allowed(self, user_context, sample_book):
        ensure_not_book_owner(user_context, sample_book)

    def test_book_without_owner_allowed(self, user_context, sample_book):
        book = {key: value for key, value in sample_book.items() if key != "createdBy"}
        ensure_not_book_owner(user_context, book)


class TestEditWindow:
    """Test cases for the 30-day review edit window."""

    NOW = datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("days_old", [0, 1, 29, 30])
    def test_recent_reviews_editable(self, days_old):
        ensure_within_edit_window(self.NOW - timedelta(days=days_old), now=self.NOW)

    @pytest.mark.parametrize("days_old", [31, 90])
    def test_old_reviews_locked(self, days_old):
        with pytest.raises(BadRequestError) as exc_info:
            ensure_within_edit_window(self.NOW - timedelta(days=days_old), now=self.NOW)

        assert exc_info.value.message == "Reviews older than 30 days cannot be updated"

    def test_just_past_window(self):
        with pytest.raises(BadRequestError):
            ensure_within_edit_window(self.NOW - timedelta(days=30, seconds=1), now=self.NOW)

    def test_naive_datetimes_treated_as_utc(self):
        """MongoDB hands back naive UTC datetimes."""
        naive_now = self.NOW.replace(tzinfo=None)

        ensure_within_edit_window(naive_now - timedelta(days=29), now=self.NOW)

        with pytest.raises(BadRequestError):
            ensure_within_edit_window(naive_now - timedelta(days=31), now=self.NOW)

    def test_defaults_to_current_time(self):
        ensure_within_edit_window(datetime.utcnow() - timedelta(days=1))

        with pytest.raises(BadRequestError):
            ensure_within_edit_window(datetime.utcnow() - timedelta(days=31))
