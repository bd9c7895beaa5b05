"""Payment webhook processing service.

Handles incoming payment provider events with:
- HMAC signature verification before anything else is touched
- Idempotent ledger upserts keyed by transaction id
- Exactly-once order payment and cart clearing under replays
- Acceptance of unknown event types
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.application.order_service import OrderService
from vedashop.domain.exceptions import InvalidArgumentError, InvalidSignatureError
from vedashop.domain.state_machines import PaymentStatus
from vedashop.domain.value_objects import UserOwner
from vedashop.infrastructure.config import settings
from vedashop.infrastructure.models import PaymentModel
from vedashop.infrastructure.repositories import (
    CartRepository,
    OrderRepository,
    PaymentRepository,
)
from vedashop.infrastructure.security import WebhookSignatureVerifier

logger = structlog.get_logger()

# payments.amount_cents is a 32-bit integer column
MAX_AMOUNT_CENTS = 2**31 - 1


class WebhookEventType(str, Enum):
    """Payment provider event types this service acts on."""

    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.payment_failed"


class EventStatus(str, Enum):
    """Outcome of a webhook event."""

    PROCESSED = "processed"
    IGNORED = "ignored"


@dataclass
class WebhookEvent:
    """A verified payment provider event.

    Attributes:
        event_id: Provider event identifier.
        event_type: Raw event type string.
        data: The event's ``data.object`` payload.
    """

    event_id: str
    event_type: str
    data: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: bytes) -> "WebhookEvent":
        """Parse a raw provider payload.

        Raises:
            InvalidArgumentError: If the body is not a JSON event object.
        """
        try:
            body = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidArgumentError(f"Webhook payload is not valid JSON: {e}") from e
        if not isinstance(body, dict) or not body.get("type"):
            raise InvalidArgumentError("Webhook payload has no event type", field="type")

        data = body.get("data") or {}
        obj = data.get("object") if isinstance(data, dict) else None
        return cls(
            event_id=str(body.get("id", "")),
            event_type=str(body["type"]),
            data=obj if isinstance(obj, dict) else {},
        )

    def validate_payment_object(self) -> None:
        """Check the fields a payment event writes to the ledger.

        Raises:
            InvalidArgumentError: If a field has the wrong shape.
        """
        obj = self.data
        if not self.transaction_id:
            raise InvalidArgumentError(
                "Payment event has no transaction id", field="data.object.id"
            )

        amount = obj.get("amount", 0)
        # bool is an int subclass
        if (
            isinstance(amount, bool)
            or not isinstance(amount, int)
            or not 0 <= amount <= MAX_AMOUNT_CENTS
        ):
            raise InvalidArgumentError(
                "Webhook amount must be a non-negative integer in cents",
                field="data.object.amount",
            )
        methods = obj.get("payment_method_types")
        if methods is not None and (
            not isinstance(methods, list)
            or not all(isinstance(m, str) and 0 < len(m) <= 30 for m in methods)
        ):
            raise InvalidArgumentError(
                "Webhook payment_method_types must be a list of strings",
                field="data.object.payment_method_types",
            )
        currency = obj.get("currency")
        if currency is not None and not (
            isinstance(currency, str) and len(currency) == 3 and currency.isalpha()
        ):
            raise InvalidArgumentError(
                "Webhook currency must be a three-letter code",
                field="data.object.currency",
            )

    @property
    def transaction_id(self) -> str:
        return str(self.data.get("id") or "")

    @property
    def amount_cents(self) -> int:
        return self.data.get("amount", 0)

    @property
    def payment_method(self) -> str:
        methods = self.data.get("payment_method_types") or ["card"]
        return methods[0]

    @property
    def currency(self) -> str:
        return (self.data.get("currency") or settings.default_currency).upper()

    @property
    def metadata(self) -> dict[str, str]:
        metadata = self.data.get("metadata")
        if not isinstance(metadata, dict):
            return {}
        return {str(k): str(v) for k, v in metadata.items() if v is not None}


@dataclass
class WebhookResult:
    """Result of webhook processing.

    Attributes:
        event_id: The event ID.
        event_type: The event type.
        status: Whether the event was acted on or ignored.
        message: Status message.
        payment_id: Ledger row touched by the event, if any.
        order_paid: Whether this delivery flipped the order to paid.
    """

    event_id: str
    event_type: str
    status: EventStatus
    message: str
    payment_id: str | None = None
    order_paid: bool = False


class WebhookService:
    """Verifies and applies payment provider events."""

    def __init__(
        self,
        session: AsyncSession,
        verifier: WebhookSignatureVerifier | None = None,
    ) -> None:
        """Initialize webhook service.

        Args:
            session: Request-scoped database session.
            verifier: Signature verifier. Defaults to one built from settings.
        """
        self.verifier = verifier or WebhookSignatureVerifier()
        self.payments = PaymentRepository(session)
        self.orders = OrderRepository(session)
        self.carts = CartRepository(session)
        self.order_service = OrderService(session)
        self._handlers: dict[str, Callable[[WebhookEvent], Awaitable[WebhookResult]]] = {
            WebhookEventType.PAYMENT_SUCCEEDED.value: self._handle_payment_succeeded,
            WebhookEventType.PAYMENT_FAILED.value: self._handle_payment_failed,
        }

    async def handle(self, payload: bytes, signature: str | None) -> WebhookResult:
        """Verify and process a raw webhook delivery.

        Args:
            payload: Raw request body, exactly as received.
            signature: Provider signature header.

        Returns:
            WebhookResult describing what was done.

        Raises:
            InvalidSignatureError: If the signature does not verify.
            InvalidArgumentError: If a verified payload is malformed.
        """
        if not self.verifier.verify(payload, signature):
            raise InvalidSignatureError("Webhook signature verification failed")

        event = WebhookEvent.from_payload(payload)
        logger.info(
            "Processing payment webhook",
            event_id=event.event_id,
            event_type=event.event_type,
            transaction_id=event.transaction_id,
        )

        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.info(
                "Ignoring unhandled webhook event type",
                event_id=event.event_id,
                event_type=event.event_type,
            )
            return WebhookResult(
                event_id=event.event_id,
                event_type=event.event_type,
                status=EventStatus.IGNORED,
                message=f"Event type {event.event_type} not handled",
            )

        event.validate_payment_object()
        return await handler(event)

    async def _record(self, event: WebhookEvent, status: PaymentStatus) -> PaymentModel:
        """Upsert the ledger row for the event's transaction."""
        metadata = event.metadata
        order_id = metadata.get("order_id") or None
        if order_id is not None and await self.orders.get(order_id) is None:
            logger.warning(
                "Webhook references unknown order",
                order_id=order_id,
                transaction_id=event.transaction_id,
            )
            order_id = None

        return await self.payments.upsert(
            transaction_id=event.transaction_id,
            status=status.value,
            amount_cents=event.amount_cents,
            currency=event.currency,
            order_id=order_id,
            user_id=metadata.get("user_id") or None,
            payment_method=event.payment_method,
        )

    async def _handle_payment_succeeded(self, event: WebhookEvent) -> WebhookResult:
        payment = await self._record(event, PaymentStatus.SUCCESS)

        order_paid = False
        if payment.order_id:
            order_paid = await self.order_service.mark_paid(
                payment.order_id, event.transaction_id
            )
            if order_paid:
                order = await self.orders.get(payment.order_id)
                cart_id = await self.carts.get_cart_id(UserOwner(order.user_id))
                if cart_id is not None:
                    await self.carts.delete_cart(cart_id)
                    logger.info(
                        "Cart cleared after payment",
                        order_id=order.id,
                        user_id=order.user_id,
                        cart_id=cart_id,
                    )
            else:
                logger.info(
                    "Order already paid or cancelled; payment recorded only",
                    order_id=payment.order_id,
                    transaction_id=event.transaction_id,
                )

        return WebhookResult(
            event_id=event.event_id,
            event_type=event.event_type,
            status=EventStatus.PROCESSED,
            message="Payment recorded as success",
            payment_id=payment.id,
            order_paid=order_paid,
        )

    async def _handle_payment_failed(self, event: WebhookEvent) -> WebhookResult:
        payment = await self._record(event, PaymentStatus.FAILED)

        # The order stays pending so the shopper can retry payment.
        logger.info(
            "Payment failed",
            payment_id=payment.id,
            transaction_id=event.transaction_id,
            order_id=payment.order_id,
        )
        return WebhookResult(
            event_id=event.event_id,
            event_type=event.event_type,
            status=EventStatus.PROCESSED,
            message="Payment recorded as failed",
            payment_id=payment.id,
        )
