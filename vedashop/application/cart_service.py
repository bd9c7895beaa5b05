"""Cart application service.

Orchestrates cart mutations for both authenticated and anonymous owners:
- Adding items (increments an existing line)
- Setting quantities (overwrites an existing line)
- Removing items (idempotent)
- Reading the cart joined with live catalog data
- Clearing the cart
"""

from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.domain.exceptions import InvalidQuantityError, ProductNotFoundError
from vedashop.domain.value_objects import MAX_LINE_QUANTITY, Owner
from vedashop.infrastructure.repositories import CartRepository, ProductRepository

logger = structlog.get_logger()


# ============================================================================
# Cart Data Transfer Objects
# ============================================================================


@dataclass
class CartItemDTO:
    """Cart line joined with the live product."""

    product_id: str
    quantity: int
    name: str | None = None
    unit_price_cents: int | None = None
    image_url: str | None = None

    @property
    def line_total_cents(self) -> int:
        """Calculate line total; zero for a line that cannot be priced."""
        if self.unit_price_cents is None:
            return 0
        return self.unit_price_cents * self.quantity


@dataclass
class CartDTO:
    """Cart view. An owner with no cart sees an empty one."""

    items: list[CartItemDTO] = field(default_factory=list)
    cart_id: str | None = None

    @property
    def total_price_cents(self) -> int:
        """Sum of line totals at live prices."""
        return sum(item.line_total_cents for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


# ============================================================================
# Cart Service
# ============================================================================


class CartService:
    """Application service for cart operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize cart service.

        Args:
            session: Request-scoped database session.
        """
        self.carts = CartRepository(session)
        self.products = ProductRepository(session)

    async def _validate(self, product_id: str, quantity: int) -> None:
        if not 1 <= quantity <= MAX_LINE_QUANTITY:
            raise InvalidQuantityError(quantity, MAX_LINE_QUANTITY)
        if await self.products.get(product_id) is None:
            raise ProductNotFoundError(product_id)

    async def add_item(self, owner: Owner, product_id: str, quantity: int) -> CartDTO:
        """Add a product to the owner's cart.

        Creates the cart on first use. If the product is already in the
        cart, the quantity is added to the existing line.

        Args:
            owner: Cart owner.
            product_id: Product to add.
            quantity: Quantity to add. The line is capped at
                MAX_LINE_QUANTITY.

        Returns:
            The updated cart.

        Raises:
            InvalidQuantityError: If quantity is outside 1 to MAX_LINE_QUANTITY.
            ProductNotFoundError: If the product does not exist.
        """
        await self._validate(product_id, quantity)

        cart_id = await self.carts.ensure_cart(owner)
        await self.carts.add_quantity(cart_id, product_id, quantity)

        logger.info(
            "Item added to cart",
            owner=str(owner),
            cart_id=cart_id,
            product_id=product_id,
            quantity=quantity,
        )
        return await self._load(cart_id)

    async def set_quantity(self, owner: Owner, product_id: str, quantity: int) -> CartDTO:
        """Set the quantity of a product in the owner's cart.

        An existing line is overwritten; an absent line is created.

        Raises:
            InvalidQuantityError: If quantity is outside 1 to MAX_LINE_QUANTITY.
            ProductNotFoundError: If the product does not exist.
        """
        await self._validate(product_id, quantity)

        cart_id = await self.carts.ensure_cart(owner)
        await self.carts.set_quantity(cart_id, product_id, quantity)

        logger.info(
            "Cart quantity set",
            owner=str(owner),
            cart_id=cart_id,
            product_id=product_id,
            quantity=quantity,
        )
        return await self._load(cart_id)

    async def remove_item(self, owner: Owner, product_id: str) -> CartDTO:
        """Remove a product from the owner's cart.

        Removing an absent product, or removing from a missing cart, is a
        no-op that returns the current cart.
        """
        cart_id = await self.carts.get_cart_id(owner)
        if cart_id is None:
            return CartDTO()

        removed = await self.carts.remove_item(cart_id, product_id)
        if removed:
            logger.info(
                "Item removed from cart",
                owner=str(owner),
                cart_id=cart_id,
                product_id=product_id,
            )
        return await self._load(cart_id)

    async def get_cart(self, owner: Owner) -> CartDTO:
        """Get the owner's cart, or an empty cart if none exists."""
        cart_id = await self.carts.get_cart_id(owner)
        if cart_id is None:
            return CartDTO()
        return await self._load(cart_id)

    async def clear(self, owner: Owner) -> CartDTO:
        """Delete the owner's cart and all its lines."""
        cart_id = await self.carts.get_cart_id(owner)
        if cart_id is not None:
            await self.carts.delete_cart(cart_id)
            logger.info("Cart cleared", owner=str(owner), cart_id=cart_id)
        return CartDTO()

    async def _load(self, cart_id: str) -> CartDTO:
        rows = await self.carts.list_lines(cart_id)
        return CartDTO(
            cart_id=cart_id,
            items=[
                CartItemDTO(
                    product_id=row.product_id,
                    quantity=row.quantity,
                    name=row.name,
                    unit_price_cents=row.price_cents,
                    image_url=row.image_url,
                )
                for row in rows
            ],
        )
