"""Payment application service.

Starts payments with the provider and reads the payment ledger. Ledger
writes are upserts keyed by the provider transaction id, so retries and
webhook replays never produce duplicate rows.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.domain.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    OrderNotFoundError,
    PaymentNotFoundError,
)
from vedashop.domain.state_machines import OrderStatus, PaymentMethod, PaymentStatus
from vedashop.domain.value_objects import Money
from vedashop.infrastructure.models import PaymentModel
from vedashop.infrastructure.payment_provider import PaymentProviderClient
from vedashop.infrastructure.repositories import OrderRepository, PaymentRepository

logger = structlog.get_logger()


# ============================================================================
# Payment Data Transfer Objects
# ============================================================================


@dataclass
class PaymentDTO:
    """Payment data transfer object."""

    id: str
    transaction_id: str
    amount_cents: int
    currency: str
    payment_method: str
    status: PaymentStatus
    order_id: str | None
    user_id: str | None
    created_at: datetime
    updated_at: datetime


@dataclass
class CreatePaymentResult:
    """Result of starting a payment."""

    payment: PaymentDTO
    client_secret: str


def payment_to_dto(payment: PaymentModel) -> PaymentDTO:
    """Convert a PaymentModel to a PaymentDTO."""
    return PaymentDTO(
        id=payment.id,
        transaction_id=payment.transaction_id,
        amount_cents=payment.amount_cents,
        currency=payment.currency,
        payment_method=payment.payment_method,
        status=PaymentStatus(payment.status),
        order_id=payment.order_id,
        user_id=payment.user_id,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


# ============================================================================
# Payment Service
# ============================================================================


class PaymentService:
    """Application service for payments."""

    def __init__(
        self,
        session: AsyncSession,
        provider: PaymentProviderClient | None = None,
    ) -> None:
        """Initialize payment service.

        Args:
            session: Request-scoped database session.
            provider: Payment provider client; required for create_payment.
        """
        self.payments = PaymentRepository(session)
        self.orders = OrderRepository(session)
        self.provider = provider

    async def create_payment(
        self,
        user_id: str,
        order_id: str | None = None,
        amount_cents: int | None = None,
        currency: str | None = None,
        payment_method: PaymentMethod = PaymentMethod.CARD,
    ) -> CreatePaymentResult:
        """Start a payment with the provider.

        With an ``order_id`` the amount and currency come from the order,
        which must belong to the caller and be pending or failed. Without one,
        both ``amount_cents`` and ``currency`` are required.

        Nothing is written when the provider call fails.

        Raises:
            InvalidArgumentError: If amount or currency is missing.
            OrderNotFoundError: If the order does not exist.
            ForbiddenError: If the order belongs to another user.
            InvalidStateError: If the order is paid or cancelled.
            PaymentProviderError: If the provider fails or times out.
        """
        if self.provider is None:
            raise RuntimeError("PaymentService.create_payment needs a provider client")

        if order_id is not None:
            order = await self.orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.user_id != user_id:
                raise ForbiddenError("Order belongs to another user", details={"order_id": order_id})
            if not OrderStatus(order.status).is_payable():
                raise InvalidStateError(
                    f"Order {order_id} is {order.status} and cannot be paid",
                    details={"order_id": order_id, "status": order.status},
                )
            money = Money(order.total_cents, order.currency)
        else:
            if amount_cents is None:
                raise InvalidArgumentError("Amount is required", field="amount")
            if not currency:
                raise InvalidArgumentError("Currency is required", field="currency")
            if amount_cents < 1:
                raise InvalidArgumentError("Amount must be positive", field="amount")
            money = Money(amount_cents, currency)

        metadata = {"user_id": user_id}
        if order_id is not None:
            metadata["order_id"] = order_id

        intent = await self.provider.create_payment_intent(
            amount_cents=money.amount_cents,
            currency=money.currency,
            metadata=metadata,
        )

        payment = await self.payments.upsert(
            transaction_id=intent.transaction_id,
            status=PaymentStatus.PENDING.value,
            amount_cents=money.amount_cents,
            currency=money.currency,
            order_id=order_id,
            user_id=user_id,
            payment_method=payment_method.value,
            overwrite_status=False,
        )

        logger.info(
            "Payment created",
            payment_id=payment.id,
            transaction_id=intent.transaction_id,
            order_id=order_id,
            amount_cents=money.amount_cents,
            currency=money.currency,
        )
        return CreatePaymentResult(
            payment=payment_to_dto(payment),
            client_secret=intent.client_secret,
        )

    async def get_payment(self, payment_id: str, user_id: str, is_admin: bool = False) -> PaymentDTO:
        """Get a payment visible to the caller.

        Raises:
            PaymentNotFoundError: If the payment does not exist.
            ForbiddenError: If the payment belongs to another user.
        """
        payment = await self.payments.get(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        if not is_admin and payment.user_id not in (None, user_id):
            raise ForbiddenError("Payment belongs to another user", details={"payment_id": payment_id})
        return payment_to_dto(payment)

    async def list_payments(self, user_id: str, is_admin: bool = False) -> list[PaymentDTO]:
        """List the caller's payments, or all payments for an admin."""
        payments = await self.payments.list_payments(None if is_admin else user_id)
        return [payment_to_dto(payment) for payment in payments]
