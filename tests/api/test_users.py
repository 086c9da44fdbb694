"""
Tests for the account endpoints under /v1/user.
"""

from datetime import datetime

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from api.auth import check_password, decode_access_token, hash_password


def signup_body(**overrides):
    body = {
        "name": "A",
        "email": "a@x.com",
        "password": "Abc123!@",
        "userName": "alice",
    }
    body.update(overrides)
    return body


def insert_user(document):
    """Stand-in for a successful insert."""
    now = datetime.utcnow()
    return {**document, "_id": ObjectId(), "createdAt": now, "updatedAt": now}


@pytest.fixture
def fresh_signup(mock_db_service):
    """Neither the email nor the username is taken."""
    mock_db_service.get_user_by_email.return_value = None
    mock_db_service.get_user_by_username.return_value = None
    mock_db_service.create_user.side_effect = insert_user
    return mock_db_service


class TestSignup:
    """Test cases for POST /v1/user/signup."""

    def test_signup_creates_user(self, client, fresh_signup):
        response = client.post("/v1/user/signup", json=signup_body())

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["statusCode"] == 201
        assert data["message"] == "User created successfully"
        assert data["result"]["email"] == "a@x.com"
        assert data["result"]["userName"] == "alice"
        assert data["result"]["role"] == "user"
        assert "password" not in data["result"]
        assert "createdAt" not in data["result"]

    def test_password_is_stored_hashed(self, client, fresh_signup):
        client.post("/v1/user/signup", json=signup_body())

        stored = fresh_signup.create_user.call_args.args[0]
        assert stored["password"] != "Abc123!@"
        assert check_password("Abc123!@", stored["password"])

    def test_signup_sets_session_cookie(self, client, fresh_signup):
        response = client.post("/v1/user/signup", json=signup_body())

        token = response.cookies.get("access_token")
        assert token
        assert str(decode_access_token(token)) == response.json()["result"]["id"]
        assert "httponly" in response.headers["set-cookie"].lower()

    def test_email_and_username_are_lowercased(self, client, fresh_signup):
        client.post("/v1/user/signup", json=signup_body(email="A@X.com", userName="Alice"))

        stored = fresh_signup.create_user.call_args.args[0]
        assert stored["email"] == "a@x.com"
        assert stored["userName"] == "alice"

    def test_duplicate_email_differing_in_case(self, client, fresh_signup):
        fresh_signup.get_user_by_email.return_value = {"_id": ObjectId(), "email": "a@x.com"}

        response = client.post("/v1/user/signup", json=signup_body(email="A@X.COM"))

        assert response.status_code == 400
        assert response.json()["message"] == "Email already in use"
        fresh_signup.get_user_by_email.assert_awaited_once_with("a@x.com")
        fresh_signup.create_user.assert_not_called()

    def test_duplicate_username(self, client, fresh_signup):
        fresh_signup.get_user_by_username.return_value = {"_id": ObjectId(), "userName": "alice"}

        response = client.post("/v1/user/signup", json=signup_body())

        assert response.status_code == 400
        assert response.json()["message"] == "Username already taken"

    def test_unique_index_race(self, client, fresh_signup):
        """A concurrent signup that wins the unique index still yields a 400."""
        fresh_signup.create_user.side_effect = DuplicateKeyError(
            "E11000 duplicate key error collection: book_reviews.users index: email_1",
            11000,
            {"keyPattern": {"email": 1}}
        )

        response = client.post("/v1/user/signup", json=signup_body())

        assert response.status_code == 400
        assert response.json()["message"] == "Email already in use"

    def test_username_race_mentioning_email(self, client, fresh_signup):
        """The index that failed decides the message, not the duplicate value."""
        fresh_signup.create_user.side_effect = DuplicateKeyError(
            'E11000 duplicate key error collection: book_reviews.users index: userName_1 '
            'dup key: { userName: "myemail" }',
            11000,
            {"keyPattern": {"userName": 1}, "keyValue": {"userName": "myemail"}}
        )

        response = client.post("/v1/user/signup", json=signup_body(userName="myemail"))

        assert response.status_code == 400
        assert response.json()["message"] == "Username already taken"

    def test_race_without_key_details(self, client, fresh_signup):
        fresh_signup.create_user.side_effect = DuplicateKeyError(
            "E11000 duplicate key error collection: book_reviews.users index: email_1",
            11000
        )

        response = client.post("/v1/user/signup", json=signup_body())

        assert response.json()["message"] == "Email already in use"

    def test_invalid_payload(self, client, fresh_signup):
        response = client.post("/v1/user/signup", json=signup_body(email="nope", password="short"))

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert "result" not in data
        assert data["message"].startswith("email: Invalid email, \n password: ")
        fresh_signup.create_user.assert_not_called()

    def test_empty_body_reports_required_fields(self, client, fresh_signup):
        response = client.post("/v1/user/signup")

        assert response.status_code == 500
        assert "name: Required" in response.json()["message"]

    def test_body_must_be_an_object(self, client, fresh_signup):
        response = client.post("/v1/user/signup", json=[signup_body()])

        assert response.status_code == 400
        assert response.json()["message"] == "Request body must be a JSON object"
        fresh_signup.create_user.assert_not_called()

    def test_malformed_json(self, client, fresh_signup):
        response = client.post(
            "/v1/user/signup",
            content=b"{not json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid JSON body"


class TestLogin:
    """Test cases for POST /v1/user/login."""

    @pytest.fixture
    def stored_user(self, mock_db_service):
        user = insert_user({
            "name": "A",
            "email": "a@x.com",
            "userName": "alice",
            "role": "user",
            "password": hash_password("Abc123!@"),
        })
        mock_db_service.get_user_by_email.return_value = user
        return user

    def test_login_success(self, client, stored_user):
        response = client.post("/v1/user/login", json={"email": "A@x.com ", "password": "Abc123!@"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Logged in successfully"
        assert data["result"]["id"] == str(stored_user["_id"])
        assert "password" not in data["result"]
        assert decode_access_token(response.cookies["access_token"]) == stored_user["_id"]

    def test_wrong_password(self, client, stored_user):
        response = client.post("/v1/user/login", json={"email": "a@x.com", "password": "Wrong123!"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"
        assert "access_token" not in response.cookies

    def test_unknown_email(self, client, mock_db_service):
        mock_db_service.get_user_by_email.return_value = None

        response = client.post("/v1/user/login", json={"email": "nobody@x.com", "password": "Abc123!@"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.parametrize("body", [
        {},
        {"email": "a@x.com"},
        {"password": "Abc123!@"},
        {"email": "  ", "password": "Abc123!@"},
    ])
    def test_missing_credentials(self, client, mock_db_service, body):
        response = client.post("/v1/user/login", json=body)

        assert response.status_code == 400
        assert response.json()["message"] == "Email and password are required"
        mock_db_service.get_user_by_email.assert_not_called()


class TestLogout:
    """Test cases for POST /v1/user/logout."""

    def test_logout_clears_cookie(self, client):
        response = client.post("/v1/user/logout")

        assert response.status_code == 200
        assert response.json() == {
            "result": None,
            "statusCode": 200,
            "message": "Logged out successfully",
            "success": True,
        }
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("access_token=")
        assert "Max-Age=0" in set_cookie


class TestCurrentUser:
    """Test cases for GET /v1/user/me."""

    def test_me_keeps_timestamps(self, client, auth_headers, sample_user):
        response = client.get("/v1/user/me", headers=auth_headers)

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["email"] == sample_user["email"]
        assert result["createdAt"] == sample_user["createdAt"].isoformat()


class TestUpdateUser:
    """Test cases for PATCH /v1/user/update."""

    def test_update_name(self, client, auth_headers, mock_db_service, sample_user):
        mock_db_service.update_user.return_value = {**sample_user, "name": "New Name"}

        response = client.patch("/v1/user/update", json={"name": "New Name"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["result"]["name"] == "New Name"
        mock_db_service.update_user.assert_awaited_once_with(sample_user["_id"], {"name": "New Name"})

    def test_email_is_not_updatable(self, client, auth_headers, mock_db_service, sample_user):
        mock_db_service.update_user.return_value = sample_user

        client.patch(
            "/v1/user/update",
            json={"name": "New Name", "email": "new@x.com"},
            headers=auth_headers
        )

        update_data = mock_db_service.update_user.call_args.args[1]
        assert "email" not in update_data

    def test_password_is_rehashed(self, client, auth_headers, mock_db_service, sample_user):
        mock_db_service.update_user.return_value = sample_user

        client.patch("/v1/user/update", json={"password": "Xyz789$%"}, headers=auth_headers)

        update_data = mock_db_service.update_user.call_args.args[1]
        assert update_data["password"] != "Xyz789$%"
        assert check_password("Xyz789$%", update_data["password"])

    def test_username_taken(self, client, auth_headers, mock_db_service):
        mock_db_service.get_user_by_username.return_value = {"_id": ObjectId(), "userName": "bob"}

        response = client.patch("/v1/user/update", json={"userName": "Bob"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Username already taken"
        mock_db_service.get_user_by_username.assert_awaited_once_with("bob")
        mock_db_service.update_user.assert_not_called()

    def test_keeping_own_username_skips_lookup(self, client, auth_headers, mock_db_service, sample_user):
        mock_db_service.update_user.return_value = sample_user

        response = client.patch("/v1/user/update", json={"userName": "ada_reader"}, headers=auth_headers)

        assert response.status_code == 200
        mock_db_service.get_user_by_username.assert_not_called()

    def test_invalid_update(self, client, auth_headers, mock_db_service):
        response = client.patch("/v1/user/update", json={"userName": "x"}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["message"] == "userName: Username must be at least 3 characters"

    def test_requires_authentication(self, client):
        response = client.patch("/v1/user/update", json={"name": "New Name"})

        assert response.status_code == 401


class TestDeleteUser:
    """Test cases for DELETE /v1/user/delete."""

    def test_delete_own_account(self, client, auth_headers, mock_db_service, sample_user):
        mock_db_service.delete_user.return_value = True

        response = client.delete("/v1/user/delete", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"
        assert "Max-Age=0" in response.headers["set-cookie"]
        mock_db_service.delete_user.assert_awaited_once_with(sample_user["_id"])

    def test_already_gone(self, client, auth_headers, mock_db_service):
        mock_db_service.delete_user.return_value = False

        response = client.delete("/v1/user/delete", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"
