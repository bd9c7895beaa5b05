"""Tests for API middleware and error rendering."""

from fastapi.testclient import TestClient


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        """Should generate request ID if not in request headers."""
        response = client.get("/health")
        assert response.status_code == 200
        # UUID format
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        """Should use request ID from request headers."""
        custom_id = "custom-request-id-12345"
        response = client.get("/health", headers={"X-Request-ID": custom_id})
        assert response.headers["X-Request-ID"] == custom_id

    def test_request_id_in_error_body(self, client: TestClient) -> None:
        """Error responses carry the request ID for correlation."""
        response = client.get("/cart", headers={"X-Request-ID": "trace-42"})

        assert response.status_code == 400
        assert response.json()["request_id"] == "trace-42"
        assert response.headers["X-Request-ID"] == "trace-42"


class TestAuthentication:
    """Tests for bearer token handling."""

    def test_protected_endpoint_requires_token(self, client: TestClient) -> None:
        """Protected endpoints reject anonymous callers."""
        response = client.get("/orders")

        assert response.status_code == 401
        data = response.json()
        assert data["error_code"] == "UNAUTHENTICATED"
        assert set(data) == {"error_code", "message", "details", "request_id"}

    def test_invalid_auth_format_rejected(self, client: TestClient) -> None:
        """Invalid authorization header format should be rejected."""
        response = client.get("/orders", headers={"Authorization": "InvalidFormat"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"

    def test_invalid_token_rejected(self, client: TestClient) -> None:
        """An unverifiable token should be rejected."""
        response = client.get("/orders", headers={"Authorization": "Bearer invalid-token"})

        assert response.status_code == 401
