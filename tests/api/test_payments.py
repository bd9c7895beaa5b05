"""Tests for payment API endpoints."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from vedashop.domain.exceptions import PaymentProviderError

ADDRESS = {"street": "3 Ashram Rd", "postal_code": "249201", "city": "Rishikesh", "country": "IN"}


@pytest.fixture
def order(
    client: TestClient,
    seed_product: Callable[..., str],
    create_user: Callable[..., tuple[str, dict[str, str]]],
) -> dict[str, Any]:
    """A pending 29.97 order and its owner's headers."""
    user_id, headers = create_user()
    product_id = seed_product(price_cents=999)
    client.post("/cart", json={"product_id": product_id, "quantity": 3}, headers=headers)
    placed = client.post("/orders", json=ADDRESS, headers=headers).json()["order"]
    return {"id": placed["id"], "user_id": user_id, "headers": headers}


class TestCreatePayment:
    """Tests for POST /payments/create."""

    def test_for_order(
        self, client: TestClient, order: dict[str, Any], payment_provider: AsyncMock
    ) -> None:
        """Paying an order returns the client secret and a pending payment."""
        response = client.post(
            "/payments/create", json={"order_id": order["id"]}, headers=order["headers"]
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["order_id"] == order["id"]
        assert data["amount"] == {"amount": 2997, "currency": "USD"}
        assert data["client_secret"] == "pi_test_1_secret_1"
        payment_provider.create_payment_intent.assert_awaited_once()

    def test_explicit_amount(
        self,
        client: TestClient,
        create_user: Callable[..., tuple[str, dict[str, str]]],
    ) -> None:
        """A payment can be started for an explicit amount and currency."""
        _, headers = create_user()

        response = client.post(
            "/payments/create",
            json={"amount": 1500, "currency": "eur", "payment_method": "paypal"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["amount"] == {"amount": 1500, "currency": "EUR"}

    def test_missing_amount(
        self,
        client: TestClient,
        create_user: Callable[..., tuple[str, dict[str, str]]],
        payment_provider: AsyncMock,
    ) -> None:
        """Without an order, a missing amount is rejected before the provider is called."""
        _, headers = create_user()

        response = client.post("/payments/create", json={"currency": "USD"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "amount"
        payment_provider.create_payment_intent.assert_not_awaited()

    def test_provider_failure(
        self, client: TestClient, order: dict[str, Any], payment_provider: AsyncMock
    ) -> None:
        """Provider errors are 502 and nothing is recorded."""
        payment_provider.create_payment_intent.side_effect = PaymentProviderError(
            "Payment provider request failed: timed out"
        )

        response = client.post(
            "/payments/create", json={"order_id": order["id"]}, headers=order["headers"]
        )

        assert response.status_code == 502
        assert response.json()["error_code"] == "PAYMENT_PROVIDER_ERROR"
        assert client.get("/payments", headers=order["headers"]).json()["total"] == 0

    def test_requires_authentication(self, client: TestClient) -> None:
        """Anonymous callers cannot start payments."""
        response = client.post("/payments/create", json={"amount": 100, "currency": "USD"})

        assert response.status_code == 401


class TestPaymentStatus:
    """Tests for GET /payments and GET /payments/{id}/status."""

    def test_status_and_list(self, client: TestClient, order: dict[str, Any]) -> None:
        """A created payment is listed and its status readable."""
        created = client.post(
            "/payments/create", json={"order_id": order["id"]}, headers=order["headers"]
        ).json()

        status_response = client.get(
            f"/payments/{created['payment_id']}/status", headers=order["headers"]
        )
        listing = client.get("/payments", headers=order["headers"]).json()

        assert status_response.status_code == 200
        assert status_response.json() == {"payment_id": created["payment_id"], "status": "pending"}
        assert listing["total"] == 1
        assert listing["items"][0]["transaction_id"] == "pi_test_1"

    def test_unknown_payment(self, client: TestClient, order: dict[str, Any]) -> None:
        """Unknown payments are 404."""
        response = client.get("/payments/missing/status", headers=order["headers"])

        assert response.status_code == 404
        assert response.json()["error_code"] == "PAYMENT_NOT_FOUND"


class TestRetryFailedOrder:
    """Tests for paying an order an admin marked failed."""

    def test_new_attempt_pays_failed_order(
        self,
        client: TestClient,
        order: dict[str, Any],
        create_user: Callable[..., tuple[str, dict[str, str]]],
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A failed order accepts a new payment and its success marks it paid."""
        _, admin_headers = create_user(role="admin")
        marked = client.put(
            f"/orders/{order['id']}", json={"status": "failed"}, headers=admin_headers
        )
        assert marked.json()["status"] == "failed"

        retry = client.post(
            "/payments/create", json={"order_id": order["id"]}, headers=order["headers"]
        )
        assert retry.status_code == 201
        assert retry.json()["amount"] == {"amount": 2997, "currency": "USD"}

        payload, headers = webhook_event(
            "payment_intent.succeeded", "pi_test_1", metadata={"order_id": order["id"]}
        )
        assert client.post("/payments/webhook", content=payload, headers=headers).status_code == 200

        final = client.get(f"/orders/{order['id']}", headers=order["headers"]).json()
        assert final["status"] == "paid"
        assert [h["to_status"] for h in final["status_history"]] == ["pending", "failed", "paid"]

    def test_cancelled_order_rejected(
        self,
        client: TestClient,
        order: dict[str, Any],
        create_user: Callable[..., tuple[str, dict[str, str]]],
        payment_provider: AsyncMock,
    ) -> None:
        """Cancelled orders stay closed to payments."""
        _, admin_headers = create_user(role="admin")
        client.put(f"/orders/{order['id']}", json={"status": "cancelled"}, headers=admin_headers)

        response = client.post(
            "/payments/create", json={"order_id": order["id"]}, headers=order["headers"]
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_STATE"
        payment_provider.create_payment_intent.assert_not_awaited()
