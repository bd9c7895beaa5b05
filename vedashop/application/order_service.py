"""Order application service.

Orchestrates order lifecycle management including:
- Reading orders for their owner or an admin
- Manual status transitions by admins
- Marking orders paid when the payment provider confirms
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.domain.exceptions import ForbiddenError, InvalidStateTransitionError, OrderNotFoundError
from vedashop.domain.state_machines import OrderStatus, validate_order_transition
from vedashop.infrastructure.models import DeliveryAddressModel, OrderModel
from vedashop.infrastructure.repositories import DeliveryAddressRepository, OrderRepository

logger = structlog.get_logger()


# ============================================================================
# Order Data Transfer Objects
# ============================================================================


@dataclass
class OrderItemDTO:
    """Order item data transfer object."""

    product_id: str
    name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        """Calculate line total."""
        return self.unit_price_cents * self.quantity


@dataclass
class StatusHistoryEntry:
    """Status history entry."""

    from_status: str | None
    to_status: str
    reason: str | None = None
    actor: str | None = None
    created_at: datetime | None = None


@dataclass
class OrderDTO:
    """Order data transfer object."""

    id: str
    user_id: str
    status: OrderStatus
    items: list[OrderItemDTO]
    total_cents: int
    currency: str
    created_at: datetime
    updated_at: datetime
    status_history: list[StatusHistoryEntry] = field(default_factory=list)


@dataclass
class DeliveryAddressDTO:
    """Delivery address data transfer object."""

    id: str
    user_id: str
    street: str
    postal_code: str
    city: str
    country: str
    full_name: str | None = None
    order_id: str | None = None
    payment_id: str | None = None


def order_to_dto(order: OrderModel) -> OrderDTO:
    """Convert a loaded OrderModel (with items and history) to an OrderDTO."""
    return OrderDTO(
        id=order.id,
        user_id=order.user_id,
        status=OrderStatus(order.status),
        items=[
            OrderItemDTO(
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
            )
            for item in order.items
        ],
        total_cents=order.total_cents,
        currency=order.currency,
        created_at=order.created_at,
        updated_at=order.updated_at,
        status_history=[
            StatusHistoryEntry(
                from_status=entry.from_status,
                to_status=entry.to_status,
                reason=entry.reason,
                actor=entry.actor,
                created_at=entry.created_at,
            )
            for entry in order.status_history
        ],
    )


def address_to_dto(address: DeliveryAddressModel) -> DeliveryAddressDTO:
    """Convert a DeliveryAddressModel to a DeliveryAddressDTO."""
    return DeliveryAddressDTO(
        id=address.id,
        user_id=address.user_id,
        full_name=address.full_name,
        street=address.street,
        postal_code=address.postal_code,
        city=address.city,
        country=address.country,
        order_id=address.order_id,
        payment_id=address.payment_id,
    )


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for order operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order service.

        Args:
            session: Request-scoped database session.
        """
        self.orders = OrderRepository(session)
        self.addresses = DeliveryAddressRepository(session)

    async def _load(self, order_id: str) -> OrderModel:
        order = await self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def get_order(self, order_id: str, user_id: str, is_admin: bool = False) -> OrderDTO:
        """Get an order visible to the caller.

        Raises:
            OrderNotFoundError: If the order does not exist.
            ForbiddenError: If the caller neither owns the order nor is an admin.
        """
        order = await self._load(order_id)
        if not is_admin and order.user_id != user_id:
            raise ForbiddenError(
                "Order belongs to another user",
                details={"order_id": order_id},
            )
        return order_to_dto(order)

    async def get_delivery_address(self, order_id: str) -> DeliveryAddressDTO | None:
        """Get the delivery address recorded for an order."""
        address = await self.addresses.get_for_order(order_id)
        return address_to_dto(address) if address else None

    async def list_orders(self, user_id: str, is_admin: bool = False) -> list[OrderDTO]:
        """List the caller's orders, or all orders for an admin."""
        orders = await self.orders.list_orders(None if is_admin else user_id)
        return [order_to_dto(order) for order in orders]

    async def update_status(
        self,
        order_id: str,
        target: OrderStatus,
        actor: str,
        reason: str | None = None,
    ) -> OrderDTO:
        """Manually move an order to a new status.

        Args:
            order_id: Order identifier.
            target: Requested status.
            actor: Who requested the change, for the audit trail.
            reason: Optional free-text reason.

        Returns:
            The updated order.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidStateTransitionError: If the transition is not allowed,
                including when a concurrent update moved the order first.
        """
        order = await self._load(order_id)
        current = OrderStatus(order.status)
        validate_order_transition(order_id, current, target)

        changed = await self.orders.transition_status(
            order_id,
            from_status=current.value,
            to_status=target.value,
            reason=reason or "Manual status change",
            actor=actor,
        )
        if not changed:
            latest = await self._load(order_id)
            raise InvalidStateTransitionError(
                entity_type="Order",
                entity_id=order_id,
                current_state=latest.status,
                target_state=target.value,
                allowed_transitions=[
                    s.value for s in OrderStatus(latest.status).allowed_transitions()
                ],
            )

        logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=current.value,
            to_status=target.value,
            actor=actor,
        )
        return order_to_dto(await self._load(order_id))

    async def mark_paid(self, order_id: str, transaction_id: str) -> bool:
        """Flip a pending or failed order to paid.

        Each attempt is a conditional update, so at most one call wins.

        Returns:
            True only for the call that performed the flip. Replays, and
            orders already paid or cancelled, return False.
        """
        for from_status in (OrderStatus.PENDING, OrderStatus.FAILED):
            changed = await self.orders.transition_status(
                order_id,
                from_status=from_status.value,
                to_status=OrderStatus.PAID.value,
                reason=f"Payment {transaction_id} succeeded",
                actor="payment_provider",
            )
            if changed:
                logger.info(
                    "Order marked paid",
                    order_id=order_id,
                    from_status=from_status.value,
                    transaction_id=transaction_id,
                )
                return True
        return False
