"""Tests for user API endpoints."""

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

CREDENTIALS = {"email": "vaidya@example.com", "password": "ghee-and-honey"}


@pytest.fixture
def registered(client: TestClient) -> dict:
    """A registered customer."""
    response = client.post("/users/register", json={**CREDENTIALS, "name": "Vaidya"})
    assert response.status_code == 201
    return response.json()


class TestRegister:
    """Tests for POST /users/register."""

    def test_register(self, registered: dict) -> None:
        """Registration returns the new customer."""
        assert registered["email"] == "vaidya@example.com"
        assert registered["role"] == "customer"
        assert registered["name"] == "Vaidya"

    def test_duplicate_email(self, client: TestClient, registered: dict) -> None:
        """Registering the same email again is rejected."""
        response = client.post("/users/register", json=CREDENTIALS)

        assert response.status_code == 400
        assert response.json()["error_code"] == "EMAIL_ALREADY_REGISTERED"

    def test_invalid_email(self, client: TestClient) -> None:
        """A malformed email fails validation."""
        response = client.post(
            "/users/register", json={"email": "not-an-email", "password": "ghee-and-honey"}
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "email"

    def test_short_password(self, client: TestClient) -> None:
        """Short passwords are rejected."""
        response = client.post(
            "/users/register", json={"email": "a@example.com", "password": "short"}
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "password"


class TestLogin:
    """Tests for POST /users/login."""

    def test_login(self, client: TestClient, registered: dict) -> None:
        """Valid credentials return a bearer token that works on protected routes."""
        response = client.post("/users/login", json=CREDENTIALS)

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == registered["id"]
        assert data["cart_merged"] is False

        orders = client.get("/orders", headers={"Authorization": f"Bearer {data['token']}"})
        assert orders.status_code == 200

    def test_wrong_password(self, client: TestClient, registered: dict) -> None:
        """A wrong password is 401."""
        response = client.post(
            "/users/login", json={**CREDENTIALS, "password": "wrong-password"}
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_CREDENTIALS"

    def test_login_merges_cart_from_body(
        self,
        client: TestClient,
        registered: dict,
        seed_product: Callable[..., str],
    ) -> None:
        """The anonymous cart named in the body becomes the user's cart."""
        product_id = seed_product()
        client.post(
            "/cart",
            json={"product_id": product_id, "quantity": 2},
            headers={"X-Session-ID": "anon-9"},
        )

        response = client.post("/users/login", json={**CREDENTIALS, "session_id": "anon-9"})

        assert response.json()["cart_merged"] is True
        token = response.json()["token"]
        cart = client.get("/cart", headers={"Authorization": f"Bearer {token}"}).json()
        assert cart["items"][0]["quantity"] == 2

    def test_login_merges_cart_from_header(
        self,
        client: TestClient,
        registered: dict,
        seed_product: Callable[..., str],
    ) -> None:
        """The X-Session-ID header works as well as the body field."""
        product_id = seed_product()
        client.post("/cart", json={"product_id": product_id}, headers={"X-Session-ID": "anon-9"})

        response = client.post(
            "/users/login", json=CREDENTIALS, headers={"X-Session-ID": "anon-9"}
        )

        assert response.json()["cart_merged"] is True
