"""Payment provider HTTP client.

Talks to the Stripe REST API to create payment intents. Every call is
bounded by a timeout; transport errors and non-2xx responses surface as
PaymentProviderError.
"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from fastapi import Request

from vedashop.domain.exceptions import PaymentProviderError
from vedashop.infrastructure.config import settings

logger = structlog.get_logger()


@dataclass
class PaymentIntent:
    """Payment intent as returned by the provider."""

    transaction_id: str
    client_secret: str
    amount_cents: int
    currency: str
    status: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PaymentIntent":
        """Create from API response data."""
        return cls(
            transaction_id=data.get("id", ""),
            client_secret=data.get("client_secret", ""),
            amount_cents=int(data.get("amount", 0)),
            currency=str(data.get("currency", "")).upper(),
            status=data.get("status", "unknown"),
        )


class PaymentProviderClient:
    """HTTP client for the payment provider.

    Provides a single create-intent call with error handling and
    response normalization.
    """

    def __init__(
        self,
        base_url: str | None = None,
        secret_key: str | None = None,
        timeout: float | None = None,
        request_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize payment provider client.

        Args:
            base_url: Provider API base URL.
            secret_key: Provider secret key, sent as a bearer token.
            timeout: Request timeout in seconds.
            request_id: Optional request ID for correlation.
            transport: Optional httpx transport, e.g. a MockTransport.
        """
        self.base_url = base_url or settings.payment_provider_url
        self.secret_key = secret_key or settings.payment_provider_secret_key
        self.timeout = timeout or settings.payment_provider_timeout
        self.request_id = request_id
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.secret_key}"}
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentIntent:
        """Create a payment intent.

        Args:
            amount_cents: Amount in minor units.
            currency: ISO currency code; sent lowercase.
            metadata: Key/value pairs echoed back on webhook events.
            idempotency_key: Optional provider idempotency key.

        Returns:
            The created intent.

        Raises:
            PaymentProviderError: On transport failure, timeout or non-2xx.
        """
        form: dict[str, str] = {
            "amount": str(amount_cents),
            "currency": currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in (metadata or {}).items():
            form[f"metadata[{key}]"] = value

        headers = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            client = await self._get_client()
            response = await client.post("/v1/payment_intents", data=form, headers=headers)
        except httpx.RequestError as e:
            logger.error(
                "Payment intent request failed",
                amount_cents=amount_cents,
                currency=currency,
                error=str(e),
            )
            raise PaymentProviderError(f"Payment provider request failed: {e}") from e

        if response.status_code not in (200, 201):
            logger.error(
                "Payment provider rejected intent",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise PaymentProviderError(
                "Payment provider rejected the payment intent",
                status_code=response.status_code,
            )

        intent = PaymentIntent.from_api_response(response.json())
        if not intent.transaction_id:
            raise PaymentProviderError("Payment provider returned no intent id")

        logger.info(
            "Payment intent created",
            transaction_id=intent.transaction_id,
            amount_cents=intent.amount_cents,
        )
        return intent


async def get_payment_provider(
    request: Request,
) -> AsyncGenerator[PaymentProviderClient, None]:
    """Yield a per-request payment provider client.

    Args:
        request: Incoming request, for the correlation ID.

    Yields:
        PaymentProviderClient, closed when the request finishes.
    """
    client = PaymentProviderClient(request_id=getattr(request.state, "request_id", None))
    try:
        yield client
    finally:
        await client.close()
