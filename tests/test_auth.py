import uuid

import jwt
import pytest

from conftest import make_token
from routers.auth.helpers import auth_helpers
from utils.errors import UnauthorizedError


class TestVerifyToken:
    def test_valid_token_carries_role(self):
        user_id = uuid.uuid4()
        user = auth_helpers.verify_token(make_token(user_id, "supplier", "sam@example.com"))

        assert user.id == str(user_id)
        assert user.role == "supplier"
        assert user.email == "sam@example.com"

    def test_expired_token(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            auth_helpers.verify_token(make_token(uuid.uuid4(), "buyer", expires_in=-60))
        assert exc_info.value.message == "Token expired"

    def test_token_signed_with_another_key(self):
        token = jwt.encode({"sub": str(uuid.uuid4())}, "some-other-secret-key-of-decent-length", algorithm="HS256")
        with pytest.raises(UnauthorizedError) as exc_info:
            auth_helpers.verify_token(token)
        assert exc_info.value.message == "Invalid token"


class TestAuthenticatedRoutes:
    def test_expired_token_is_401(self, client):
        headers = {"Authorization": f"Bearer {make_token(uuid.uuid4(), 'buyer', expires_in=-60)}"}

        response = client.get("/cart/", headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_garbage_token_is_401(self, client):
        response = client.get("/cart/", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"
