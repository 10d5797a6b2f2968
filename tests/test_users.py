"""
Tests for signup, login and token handling
"""
import pytest
from datetime import timedelta
from sqlalchemy import select

from app.core.security import (
    authenticate_token, create_access_token, issue_token, verify_password
)
from app.modules.users.models import User

from tests.conftest import TEST_PASSWORD

FAILED_403 = {"status": "FAILED", "status_code": 403, "current_page": 1, "total_page": 1}


class TestTokens:

    @pytest.mark.unit
    def test_issued_token_resolves_to_user(self):
        assert authenticate_token(issue_token(42)) == 42

    @pytest.mark.unit
    def test_garbage_token_rejected(self):
        assert authenticate_token("not-a-jwt") is None

    @pytest.mark.unit
    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "42"}, expires_delta=timedelta(minutes=-1))
        assert authenticate_token(token) is None


class TestSignup:
    """Tests for POST /signup"""

    @pytest.mark.integration
    async def test_user_is_created_successfully(self, client, db_session):
        payload = {"name": "Ada Lovelace", "email": "ada@loanledger.com", "password": "engine42"}

        response = await client.post("/signup", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["meta"]["status"] == "SUCCESS"
        assert body["data"]["message"] == "Account created successfully!"

        result = await db_session.execute(select(User).where(User.email == payload["email"]))
        user = result.scalar_one()
        assert user.name == "Ada Lovelace"
        assert verify_password("engine42", user.hashed_password)
        assert authenticate_token(body["data"]["token"]) == user.id

    @pytest.mark.integration
    @pytest.mark.parametrize("payload,key,message", [
        ({"email": "a@loanledger.com", "password": "secret1"}, "name", "The name field is required."),
        ({"name": "A", "password": "secret1"}, "email", "The email field is required."),
        ({"name": "A", "email": "nope", "password": "secret1"}, "email", "The email must be a valid email address."),
        ({"name": "A", "email": "a@loanledger.com"}, "password", "The password field is required."),
        ({"name": "A", "email": "a@loanledger.com", "password": "12345"}, "password", "The password must be at least 6 characters."),
    ])
    async def test_field_validation(self, client, payload, key, message):
        response = await client.post("/signup", json=payload)

        assert response.status_code == 403
        assert response.json() == {"meta": FAILED_403, "error": [{"key": key, "message": message}]}

    @pytest.mark.integration
    async def test_email_already_taken(self, client, test_user):
        payload = {"name": "Copy", "email": test_user.email, "password": "secret1"}

        response = await client.post("/signup", json=payload)

        assert response.status_code == 403
        assert response.json()["error"] == [
            {"key": "email", "message": "The email has already been taken."}
        ]

    @pytest.mark.integration
    async def test_taken_email_reported_with_other_field_errors(self, client, db_session, test_user):
        email = test_user.email
        payload = {"email": email, "password": "12345"}

        response = await client.post("/signup", json=payload)

        assert response.status_code == 403
        assert response.json() == {
            "meta": FAILED_403,
            "error": [
                {"key": "name", "message": "The name field is required."},
                {"key": "email", "message": "The email has already been taken."},
                {"key": "password", "message": "The password must be at least 6 characters."},
            ],
        }

        count = await db_session.execute(select(User).where(User.email == email))
        assert len(count.scalars().all()) == 1


class TestLogin:
    """Tests for POST /login"""

    @pytest.mark.integration
    async def test_email_required_validation(self, client):
        response = await client.post("/login", json={"password": "whatever"})

        assert response.status_code == 403
        assert response.json() == {
            "meta": FAILED_403,
            "error": [{"key": "email", "message": "The email field is required."}],
        }

    @pytest.mark.integration
    async def test_password_required_validation(self, client, test_user):
        response = await client.post("/login", json={"email": test_user.email})

        assert response.status_code == 403
        assert response.json() == {
            "meta": FAILED_403,
            "error": [{"key": "password", "message": "The password field is required."}],
        }

    @pytest.mark.integration
    async def test_email_exists_validation(self, client, test_user):
        response = await client.post(
            "/login", json={"email": "nobody@loanledger.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 403
        assert response.json() == {
            "meta": FAILED_403,
            "error": [{"key": "email", "message": "The selected email is invalid."}],
        }

    @pytest.mark.integration
    async def test_user_login_success(self, client, test_user):
        user_id = test_user.id

        response = await client.post(
            "/login", json={"email": test_user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["message"] == "Logged in successfully!"
        assert authenticate_token(body["data"]["token"]) == user_id

    @pytest.mark.integration
    async def test_user_login_failure(self, client, test_user):
        response = await client.post(
            "/login", json={"email": test_user.email, "password": "wrong-password"}
        )

        assert response.status_code == 404
        assert response.json() == {
            "meta": {"status": "FAILED", "status_code": 404, "current_page": 1, "total_page": 1},
            "error": [{"key": "message", "message": "These credentials do not match our records."}],
        }

    @pytest.mark.integration
    async def test_login_token_authorizes_loan_routes(self, client, test_user):
        response = await client.post(
            "/login", json={"email": test_user.email, "password": TEST_PASSWORD}
        )
        token = response.json()["data"]["token"]

        response = await client.post(
            "/loan/apply",
            json={"amount": 100, "duration": 12},
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200


@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
