"""Tests for placing orders from carts."""

from collections.abc import Awaitable, Callable

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.application.cart_service import CartService
from vedashop.application.checkout_service import CheckoutService
from vedashop.application.order_service import OrderService
from vedashop.domain.exceptions import CartEmptyError, UnpriceableItemError
from vedashop.domain.state_machines import OrderStatus
from vedashop.domain.value_objects import DeliveryDetails, UserOwner
from vedashop.infrastructure.models import ProductModel

DETAILS = DeliveryDetails(
    full_name="Asha Rao",
    street="12 Temple Road",
    postal_code="560001",
    city="Bengaluru",
    country="India",
)


class TestPlaceOrder:
    """Tests for CheckoutService.place_order."""

    @pytest.mark.asyncio
    async def test_places_pending_order(
        self, session: AsyncSession, add_product: Callable[..., Awaitable[str]]
    ) -> None:
        """The cart becomes a pending order with frozen lines and an address."""
        product_id = await add_product(name="Tulsi Tea", price_cents=999)
        await CartService(session).add_item(UserOwner("u-1"), product_id, 3)

        result = await CheckoutService(session).place_order("u-1", DETAILS)

        order = result.order
        assert order.status == OrderStatus.PENDING
        assert order.user_id == "u-1"
        assert order.total_cents == 2997
        assert order.currency == "USD"
        assert [(i.name, i.quantity, i.unit_price_cents) for i in order.items] == [
            ("Tulsi Tea", 3, 999)
        ]
        assert [entry.to_status for entry in order.status_history] == ["pending"]

        address = result.delivery_address
        assert address.order_id == order.id
        assert address.city == "Bengaluru"
        assert address.full_name == "Asha Rao"

    @pytest.mark.asyncio
    async def test_cart_is_deleted(
        self, session: AsyncSession, add_product: Callable[..., Awaitable[str]]
    ) -> None:
        """Placing an order removes the cart."""
        product_id = await add_product()
        carts = CartService(session)
        await carts.add_item(UserOwner("u-1"), product_id, 1)

        await CheckoutService(session).place_order("u-1", DETAILS)

        cart = await carts.get_cart(UserOwner("u-1"))
        assert cart.is_empty
        assert cart.cart_id is None

    @pytest.mark.asyncio
    async def test_missing_cart_rejected(self, session: AsyncSession) -> None:
        """A user without a cart cannot check out."""
        with pytest.raises(CartEmptyError):
            await CheckoutService(session).place_order("u-1", DETAILS)

    @pytest.mark.asyncio
    async def test_empty_cart_rejected(
        self, session: AsyncSession, add_product: Callable[..., Awaitable[str]]
    ) -> None:
        """A cart whose lines were all removed cannot be checked out."""
        product_id = await add_product()
        carts = CartService(session)
        await carts.add_item(UserOwner("u-1"), product_id, 1)
        await carts.remove_item(UserOwner("u-1"), product_id)

        with pytest.raises(CartEmptyError):
            await CheckoutService(session).place_order("u-1", DETAILS)

    @pytest.mark.asyncio
    async def test_unpriceable_line_fails_checkout(
        self, session: AsyncSession, add_product: Callable[..., Awaitable[str]]
    ) -> None:
        """A line whose product lost its price fails the whole checkout."""
        priced = await add_product(price_cents=100)
        unpriced = await add_product(price_cents=None)
        carts = CartService(session)
        await carts.add_item(UserOwner("u-1"), priced, 1)
        await carts.add_item(UserOwner("u-1"), unpriced, 1)

        with pytest.raises(UnpriceableItemError):
            await CheckoutService(session).place_order("u-1", DETAILS)

        assert len((await carts.get_cart(UserOwner("u-1"))).items) == 2

    @pytest.mark.asyncio
    async def test_prices_are_frozen(
        self, session: AsyncSession, add_product: Callable[..., Awaitable[str]]
    ) -> None:
        """Later catalog price changes do not affect a placed order."""
        product_id = await add_product(price_cents=999)
        await CartService(session).add_item(UserOwner("u-1"), product_id, 3)
        placed = await CheckoutService(session).place_order("u-1", DETAILS)

        await session.execute(
            update(ProductModel).where(ProductModel.id == product_id).values(price_cents=5000)
        )
        await session.commit()

        order = await OrderService(session).get_order(placed.order.id, "u-1")
        assert order.total_cents == 2997
        assert order.items[0].unit_price_cents == 999
