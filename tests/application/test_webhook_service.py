"""Tests for payment webhook processing."""

import json
from collections.abc import Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.application.cart_service import CartService
from vedashop.application.checkout_service import CheckoutService
from vedashop.application.order_service import OrderService
from vedashop.application.payment_service import PaymentService
from vedashop.application.webhook_service import EventStatus, WebhookEvent, WebhookService
from vedashop.domain.exceptions import InvalidArgumentError, InvalidSignatureError
from vedashop.domain.state_machines import OrderStatus, PaymentStatus
from vedashop.domain.value_objects import DeliveryDetails, UserOwner
from vedashop.infrastructure.repositories import PaymentRepository
from vedashop.infrastructure.security import build_signature_header

SUCCEEDED = "payment_intent.succeeded"
FAILED = "payment_intent.payment_failed"
DETAILS = DeliveryDetails(street="7 Lotus Marg", postal_code="110001", city="Delhi", country="IN")


@pytest.fixture
def place_order(
    session: AsyncSession, add_product: Callable[..., Awaitable[str]]
) -> Callable[[str], Awaitable[str]]:
    """Place a 3 x 9.99 order for a user and return its id."""

    async def _place(user_id: str) -> str:
        product_id = await add_product(price_cents=999)
        await CartService(session).add_item(UserOwner(user_id), product_id, 3)
        result = await CheckoutService(session).place_order(user_id, DETAILS)
        await session.commit()
        return result.order.id

    return _place


class TestWebhookEvent:
    """Tests for parsing raw events."""

    def test_parses_transaction_and_metadata(self) -> None:
        """The intent id and metadata are taken from data.object."""
        event = WebhookEvent.from_payload(
            b'{"id":"evt_1","type":"payment_intent.succeeded",'
            b'"data":{"object":{"id":"pi_1","metadata":{"order_id":"o-1"}}}}'
        )
        assert event.event_id == "evt_1"
        assert event.transaction_id == "pi_1"
        assert event.metadata == {"order_id": "o-1"}

    def test_invalid_json(self) -> None:
        """A body that is not JSON is rejected."""
        with pytest.raises(InvalidArgumentError):
            WebhookEvent.from_payload(b"not json")

    def test_missing_type(self) -> None:
        """An event without a type is rejected."""
        with pytest.raises(InvalidArgumentError):
            WebhookEvent.from_payload(b'{"id":"evt_1"}')

    @pytest.mark.parametrize(
        "fields",
        [
            {"amount": "12.50"},
            {"amount": 12.5},
            {"amount": -1},
            {"amount": True},
            {"amount": 10**20},
            {"payment_method_types": "card"},
            {"payment_method_types": [7]},
            {"currency": "dollars"},
        ],
    )
    def test_malformed_payment_fields(self, fields: dict) -> None:
        """Ledger fields with the wrong shape are rejected."""
        event = WebhookEvent(
            event_id="evt_1",
            event_type="payment_intent.succeeded",
            data={"id": "pi_1", "amount": 100, "currency": "usd", **fields},
        )
        with pytest.raises(InvalidArgumentError):
            event.validate_payment_object()

    def test_payment_fields_defaults(self) -> None:
        """Missing method and currency fall back to card and the shop currency."""
        event = WebhookEvent(
            event_id="evt_1", event_type="payment_intent.succeeded", data={"id": "pi_1"}
        )
        event.validate_payment_object()
        assert event.amount_cents == 0
        assert event.payment_method == "card"
        assert event.currency == "USD"


class TestWebhookService:
    """Tests for WebhookService.handle."""

    @pytest.mark.asyncio
    async def test_bad_signature_touches_nothing(
        self,
        session: AsyncSession,
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """An unverified delivery is rejected before the ledger is written."""
        payload, _ = webhook_event(SUCCEEDED, "pi_1")

        with pytest.raises(InvalidSignatureError):
            await WebhookService(session).handle(payload, "t=1,v1=forged")

        assert await PaymentRepository(session).get_by_transaction_id("pi_1") is None

    @pytest.mark.asyncio
    async def test_unknown_event_type_ignored(
        self,
        session: AsyncSession,
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """Unhandled event types are acknowledged without side effects."""
        payload, headers = webhook_event("charge.refunded", "pi_1")

        result = await WebhookService(session).handle(payload, headers["Stripe-Signature"])

        assert result.status == EventStatus.IGNORED
        assert await PaymentRepository(session).get_by_transaction_id("pi_1") is None

    @pytest.mark.asyncio
    async def test_success_pays_order_and_clears_cart(
        self,
        session: AsyncSession,
        add_product: Callable[..., Awaitable[str]],
        place_order: Callable[[str], Awaitable[str]],
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A success event records the payment, pays the order and empties the cart."""
        order_id = await place_order("u-1")
        extra = await add_product()
        carts = CartService(session)
        await carts.add_item(UserOwner("u-1"), extra, 1)
        payload, headers = webhook_event(
            SUCCEEDED, "pi_1", metadata={"order_id": order_id, "user_id": "u-1"}
        )

        result = await WebhookService(session).handle(payload, headers["Stripe-Signature"])

        assert result.status == EventStatus.PROCESSED
        assert result.order_paid
        order = await OrderService(session).get_order(order_id, "u-1")
        assert order.status == OrderStatus.PAID
        payment = await PaymentRepository(session).get_by_transaction_id("pi_1")
        assert payment.status == PaymentStatus.SUCCESS.value
        assert payment.order_id == order_id
        assert payment.amount_cents == 2997
        assert payment.currency == "USD"
        assert (await carts.get_cart(UserOwner("u-1"))).is_empty

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(
        self,
        session: AsyncSession,
        place_order: Callable[[str], Awaitable[str]],
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """Delivering the same success twice flips the order once and keeps one row."""
        order_id = await place_order("u-1")
        payload, headers = webhook_event(SUCCEEDED, "pi_1", metadata={"order_id": order_id})
        service = WebhookService(session)

        first = await service.handle(payload, headers["Stripe-Signature"])
        second = await service.handle(payload, headers["Stripe-Signature"])

        assert first.order_paid
        assert not second.order_paid
        assert first.payment_id == second.payment_id
        order = await OrderService(session).get_order(order_id, "u-1")
        assert [e.to_status for e in order.status_history] == ["pending", "paid"]
        assert len(await PaymentService(session).list_payments("u-1", is_admin=True)) == 1

    @pytest.mark.asyncio
    async def test_failure_leaves_order_pending(
        self,
        session: AsyncSession,
        place_order: Callable[[str], Awaitable[str]],
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A failed payment is recorded; the order stays payable."""
        order_id = await place_order("u-1")
        payload, headers = webhook_event(FAILED, "pi_1", metadata={"order_id": order_id})

        result = await WebhookService(session).handle(payload, headers["Stripe-Signature"])

        assert result.status == EventStatus.PROCESSED
        payment = await PaymentRepository(session).get_by_transaction_id("pi_1")
        assert payment.status == PaymentStatus.FAILED.value
        order = await OrderService(session).get_order(order_id, "u-1")
        assert order.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_late_failure_keeps_order_paid(
        self,
        session: AsyncSession,
        place_order: Callable[[str], Awaitable[str]],
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A failure arriving after success updates the ledger but never unpays the order."""
        order_id = await place_order("u-1")
        service = WebhookService(session)
        ok, ok_headers = webhook_event(SUCCEEDED, "pi_1", metadata={"order_id": order_id})
        bad, bad_headers = webhook_event(FAILED, "pi_1", metadata={"order_id": order_id})

        await service.handle(ok, ok_headers["Stripe-Signature"])
        await service.handle(bad, bad_headers["Stripe-Signature"])

        payment = await PaymentRepository(session).get_by_transaction_id("pi_1")
        assert payment.status == PaymentStatus.FAILED.value
        order = await OrderService(session).get_order(order_id, "u-1")
        assert order.status == OrderStatus.PAID

    @pytest.mark.asyncio
    async def test_unknown_order_is_dropped(
        self,
        session: AsyncSession,
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A metadata order id that does not exist is not linked."""
        payload, headers = webhook_event(SUCCEEDED, "pi_1", metadata={"order_id": "ghost"})

        result = await WebhookService(session).handle(payload, headers["Stripe-Signature"])

        assert not result.order_paid
        payment = await PaymentRepository(session).get_by_transaction_id("pi_1")
        assert payment.order_id is None
        assert payment.status == PaymentStatus.SUCCESS.value

    @pytest.mark.asyncio
    async def test_missing_transaction_id(
        self,
        session: AsyncSession,
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A handled event without an intent id is malformed."""
        payload, headers = webhook_event(SUCCEEDED, "")

        with pytest.raises(InvalidArgumentError):
            await WebhookService(session).handle(payload, headers["Stripe-Signature"])

    @pytest.mark.asyncio
    async def test_non_integer_amount_rejected(self, session: AsyncSession) -> None:
        """A verified success with a decimal string amount writes nothing."""
        payload = json.dumps(
            {
                "id": "evt_1",
                "type": SUCCEEDED,
                "data": {"object": {"id": "pi_1", "amount": "12.50", "currency": "usd"}},
            }
        ).encode()

        with pytest.raises(InvalidArgumentError):
            await WebhookService(session).handle(payload, build_signature_header(payload))

        assert await PaymentRepository(session).get_by_transaction_id("pi_1") is None

    @pytest.mark.asyncio
    async def test_failed_order_paid_by_new_attempt(
        self,
        session: AsyncSession,
        place_order: Callable[[str], Awaitable[str]],
        webhook_event: Callable[..., tuple[bytes, dict[str, str]]],
    ) -> None:
        """A success for an order marked failed pays it and clears the cart."""
        order_id = await place_order("u-1")
        await OrderService(session).update_status(order_id, OrderStatus.FAILED, actor="admin")
        payload, headers = webhook_event(SUCCEEDED, "pi_2", metadata={"order_id": order_id})

        result = await WebhookService(session).handle(payload, headers["Stripe-Signature"])

        assert result.order_paid
        order = await OrderService(session).get_order(order_id, "u-1")
        assert order.status == OrderStatus.PAID
