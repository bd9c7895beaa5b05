"""Checkout application service.

Turns a user's cart into a pending order:
1. Load the cart (missing or empty fails)
2. Freeze prices against the live catalog
3. Persist the order and its delivery address
4. Delete the cart

All steps run on the request's session and commit together.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.application.order_service import (
    DeliveryAddressDTO,
    OrderDTO,
    address_to_dto,
    order_to_dto,
)
from vedashop.application.pricing import snapshot_prices
from vedashop.domain.exceptions import CartEmptyError
from vedashop.domain.value_objects import DeliveryDetails, UserOwner
from vedashop.infrastructure.config import settings
from vedashop.infrastructure.repositories import (
    CartRepository,
    DeliveryAddressRepository,
    OrderRepository,
    ProductRepository,
)

logger = structlog.get_logger()


@dataclass
class CheckoutResult:
    """Result of placing an order."""

    order: OrderDTO
    delivery_address: DeliveryAddressDTO


class CheckoutService:
    """Places orders from carts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize checkout service.

        Args:
            session: Request-scoped database session.
        """
        self.carts = CartRepository(session)
        self.products = ProductRepository(session)
        self.orders = OrderRepository(session)
        self.addresses = DeliveryAddressRepository(session)

    async def place_order(self, user_id: str, details: DeliveryDetails) -> CheckoutResult:
        """Place an order from the user's cart.

        Args:
            user_id: Authenticated user placing the order.
            details: Validated delivery details.

        Returns:
            CheckoutResult with the pending order and its delivery address.

        Raises:
            CartEmptyError: If the user has no cart or the cart has no lines.
            UnpriceableItemError: If a line's product is gone or unpriced.
        """
        owner = UserOwner(user_id)
        cart_id = await self.carts.get_cart_id(owner)
        if cart_id is None:
            raise CartEmptyError(user_id)

        rows = await self.carts.list_lines(cart_id)
        if not rows:
            raise CartEmptyError(user_id)

        products = await self.products.get_many([row.product_id for row in rows])
        snapshot = snapshot_prices(
            [(row.product_id, row.quantity) for row in rows],
            products,
            currency=settings.default_currency,
        )

        order = await self.orders.create(
            user_id=user_id,
            lines=snapshot.lines,
            total_cents=snapshot.total_cents,
            currency=snapshot.total.currency,
        )
        address = await self.addresses.create(user_id, details, order_id=order.id)
        await self.carts.delete_cart(cart_id)

        logger.info(
            "Order placed",
            order_id=order.id,
            user_id=user_id,
            item_count=len(snapshot.lines),
            total_cents=snapshot.total_cents,
        )
        return CheckoutResult(
            order=order_to_dto(order),
            delivery_address=address_to_dto(address),
        )
