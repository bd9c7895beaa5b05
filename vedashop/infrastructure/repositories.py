"""Database repositories.

Thin async data-access objects over the request's AsyncSession. Every
cart quantity write and every payment write is a single store-level
upsert, so concurrent requests never lose updates to an application
read-modify-write.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vedashop.domain.value_objects import (
    MAX_LINE_QUANTITY,
    DeliveryDetails,
    Owner,
    PricedLine,
    UserOwner,
)
from vedashop.infrastructure.models import (
    CartItemModel,
    CartModel,
    DeliveryAddressModel,
    OrderItemModel,
    OrderModel,
    OrderStatusHistoryModel,
    PaymentModel,
    ProductModel,
    UserModel,
)


def _insert_for(session: AsyncSession) -> Any:
    """Return the dialect ``insert`` construct that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Upserts are not supported on dialect: {dialect}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Users
# ============================================================================


class UserRepository:
    """Data access for user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str) -> UserModel | None:
        return await self.session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> UserModel | None:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        password_hash: str,
        name: str | None = None,
        role: str = "customer",
    ) -> UserModel:
        user = UserModel(
            id=str(uuid4()),
            email=email,
            name=name,
            password_hash=password_hash,
            role=role,
        )
        self.session.add(user)
        await self.session.flush()
        return user


# ============================================================================
# Catalog
# ============================================================================


class ProductRepository:
    """Read access to the product catalog."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, product_id: str) -> ProductModel | None:
        return await self.session.get(ProductModel, product_id)

    async def get_many(self, product_ids: list[str]) -> dict[str, ProductModel]:
        """Load products by ID.

        Returns:
            Mapping of product ID to product; missing IDs are absent.
        """
        if not product_ids:
            return {}
        result = await self.session.execute(
            select(ProductModel).where(ProductModel.id.in_(product_ids))
        )
        return {product.id: product for product in result.scalars()}


# ============================================================================
# Carts
# ============================================================================


@dataclass
class CartLineRow:
    """Cart line joined with the live catalog.

    Product fields are None when the product has been removed.
    """

    product_id: str
    quantity: int
    name: str | None
    price_cents: int | None
    image_url: str | None


class CartRepository:
    """Data access for carts and cart lines."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _owner_clause(owner: Owner) -> Any:
        if isinstance(owner, UserOwner):
            return CartModel.user_id == owner.user_id
        return CartModel.session_id == owner.session_id

    async def get_cart_id(self, owner: Owner) -> str | None:
        """Get the ID of the owner's cart, if one exists."""
        result = await self.session.execute(
            select(CartModel.id).where(self._owner_clause(owner))
        )
        return result.scalar_one_or_none()

    async def ensure_cart(self, owner: Owner) -> str:
        """Get the owner's cart ID, creating the cart if needed.

        Concurrent first adds for the same owner converge on one cart
        through the unique owner columns.
        """
        insert = _insert_for(self.session)
        if isinstance(owner, UserOwner):
            values = {"user_id": owner.user_id, "session_id": None}
            conflict_column = "user_id"
        else:
            values = {"user_id": None, "session_id": owner.session_id}
            conflict_column = "session_id"

        now = _utcnow()
        stmt = (
            insert(CartModel)
            .values(id=str(uuid4()), created_at=now, updated_at=now, **values)
            .on_conflict_do_nothing(index_elements=[conflict_column])
        )
        await self.session.execute(stmt)

        cart_id = await self.get_cart_id(owner)
        if cart_id is None:
            raise RuntimeError(f"Cart for {owner} vanished after upsert")
        return cart_id

    async def add_quantity(self, cart_id: str, product_id: str, quantity: int) -> None:
        """Insert a line or increment its quantity in one statement.

        The summed quantity is capped at MAX_LINE_QUANTITY.
        """
        insert = _insert_for(self.session)
        stmt = insert(CartItemModel).values(
            id=str(uuid4()),
            cart_id=cart_id,
            product_id=product_id,
            quantity=quantity,
            created_at=_utcnow(),
        )
        summed = CartItemModel.__table__.c.quantity + stmt.excluded.quantity
        stmt = stmt.on_conflict_do_update(
            index_elements=["cart_id", "product_id"],
            set_={
                "quantity": case(
                    (summed > MAX_LINE_QUANTITY, MAX_LINE_QUANTITY),
                    else_=summed,
                )
            },
        )
        await self.session.execute(stmt)

    async def set_quantity(self, cart_id: str, product_id: str, quantity: int) -> None:
        """Insert a line or overwrite its quantity in one statement."""
        insert = _insert_for(self.session)
        stmt = insert(CartItemModel).values(
            id=str(uuid4()),
            cart_id=cart_id,
            product_id=product_id,
            quantity=quantity,
            created_at=_utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["cart_id", "product_id"],
            set_={"quantity": stmt.excluded.quantity},
        )
        await self.session.execute(stmt)

    async def remove_item(self, cart_id: str, product_id: str) -> int:
        """Delete a line.

        Returns:
            Number of rows removed (0 when the line was absent).
        """
        result = await self.session.execute(
            delete(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        )
        return result.rowcount or 0

    async def list_lines(self, cart_id: str) -> list[CartLineRow]:
        """List cart lines joined with the live catalog, oldest first."""
        result = await self.session.execute(
            select(
                CartItemModel.product_id,
                CartItemModel.quantity,
                ProductModel.name,
                ProductModel.price_cents,
                ProductModel.image_url,
            )
            .outerjoin(ProductModel, ProductModel.id == CartItemModel.product_id)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.created_at, CartItemModel.id)
        )
        return [
            CartLineRow(
                product_id=row.product_id,
                quantity=row.quantity,
                name=row.name,
                price_cents=row.price_cents,
                image_url=row.image_url,
            )
            for row in result
        ]

    async def delete_cart(self, cart_id: str) -> None:
        """Delete a cart and its lines."""
        await self.session.execute(
            delete(CartItemModel).where(CartItemModel.cart_id == cart_id)
        )
        await self.session.execute(delete(CartModel).where(CartModel.id == cart_id))

    async def assign_to_user(self, cart_id: str, user_id: str) -> None:
        """Re-key a session cart to a user."""
        await self.session.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(user_id=user_id, session_id=None, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )


# ============================================================================
# Orders
# ============================================================================


class OrderRepository:
    """Data access for orders, their frozen lines and status history."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: str,
        lines: list[PricedLine],
        total_cents: int,
        currency: str,
        actor: str | None = None,
    ) -> OrderModel:
        """Persist a pending order with its frozen lines."""
        order_id = str(uuid4())
        order = OrderModel(
            id=order_id,
            user_id=user_id,
            status="pending",
            total_cents=total_cents,
            currency=currency,
            items=[
                OrderItemModel(
                    id=str(uuid4()),
                    order_id=order_id,
                    position=position,
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                )
                for position, line in enumerate(lines)
            ],
            status_history=[
                OrderStatusHistoryModel(
                    id=str(uuid4()),
                    order_id=order_id,
                    from_status=None,
                    to_status="pending",
                    reason="Order placed",
                    actor=actor or user_id,
                )
            ],
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def get(self, order_id: str) -> OrderModel | None:
        """Load an order with lines and history, bypassing stale identity map state."""
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(
                selectinload(OrderModel.items),
                selectinload(OrderModel.status_history),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_orders(self, user_id: str | None = None) -> list[OrderModel]:
        """List orders newest first; all orders when ``user_id`` is None."""
        stmt = (
            select(OrderModel)
            .options(
                selectinload(OrderModel.items),
                selectinload(OrderModel.status_history),
            )
            .order_by(OrderModel.created_at.desc(), OrderModel.id)
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def transition_status(
        self,
        order_id: str,
        from_status: str,
        to_status: str,
        reason: str | None = None,
        actor: str | None = None,
    ) -> bool:
        """Move an order between states with a conditional update.

        Returns:
            True if this call performed the transition; False if the order
            was not in ``from_status`` (already moved or missing).
        """
        result = await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == from_status)
            .values(status=to_status, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        self.session.add(
            OrderStatusHistoryModel(
                id=str(uuid4()),
                order_id=order_id,
                from_status=from_status,
                to_status=to_status,
                reason=reason,
                actor=actor,
            )
        )
        await self.session.flush()
        return True


# ============================================================================
# Delivery Addresses
# ============================================================================


class DeliveryAddressRepository:
    """Write-once register of delivery addresses."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        user_id: str,
        details: DeliveryDetails,
        order_id: str | None = None,
        payment_id: str | None = None,
    ) -> DeliveryAddressModel:
        address = DeliveryAddressModel(
            id=str(uuid4()),
            user_id=user_id,
            full_name=details.full_name,
            street=details.street,
            postal_code=details.postal_code,
            city=details.city,
            country=details.country,
            order_id=order_id,
            payment_id=payment_id,
        )
        self.session.add(address)
        await self.session.flush()
        return address

    async def get_for_order(self, order_id: str) -> DeliveryAddressModel | None:
        result = await self.session.execute(
            select(DeliveryAddressModel)
            .where(DeliveryAddressModel.order_id == order_id)
            .order_by(DeliveryAddressModel.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


# ============================================================================
# Payments
# ============================================================================


class PaymentRepository:
    """Payment ledger keyed by the provider transaction id."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(
        self,
        transaction_id: str,
        status: str,
        amount_cents: int,
        currency: str,
        order_id: str | None = None,
        user_id: str | None = None,
        payment_method: str = "card",
        overwrite_status: bool = True,
    ) -> PaymentModel:
        """Insert a payment or update the existing one for the transaction.

        Status is last-write-wins when ``overwrite_status`` is set. Links
        to an order or user are filled in only where still empty. Amount
        and currency keep the values of the first write.

        Returns:
            The payment row as stored after the upsert.
        """
        insert = _insert_for(self.session)
        table = PaymentModel.__table__
        now = _utcnow()
        stmt = insert(PaymentModel).values(
            id=str(uuid4()),
            transaction_id=transaction_id,
            order_id=order_id,
            user_id=user_id,
            amount_cents=amount_cents,
            currency=currency,
            payment_method=payment_method,
            status=status,
            created_at=now,
            updated_at=now,
        )
        set_: dict[str, Any] = {
            "order_id": func.coalesce(table.c.order_id, stmt.excluded.order_id),
            "user_id": func.coalesce(table.c.user_id, stmt.excluded.user_id),
            "updated_at": stmt.excluded.updated_at,
        }
        if overwrite_status:
            set_["status"] = stmt.excluded.status
        stmt = stmt.on_conflict_do_update(index_elements=["transaction_id"], set_=set_)
        await self.session.execute(stmt)

        payment = await self.get_by_transaction_id(transaction_id)
        if payment is None:
            raise RuntimeError(f"Payment {transaction_id} vanished after upsert")
        return payment

    async def get(self, payment_id: str) -> PaymentModel | None:
        result = await self.session.execute(
            select(PaymentModel)
            .where(PaymentModel.id == payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_transaction_id(self, transaction_id: str) -> PaymentModel | None:
        result = await self.session.execute(
            select(PaymentModel)
            .where(PaymentModel.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_payments(self, user_id: str | None = None) -> list[PaymentModel]:
        """List payments newest first; all payments when ``user_id`` is None."""
        stmt = select(PaymentModel).order_by(PaymentModel.created_at.desc(), PaymentModel.id)
        if user_id is not None:
            stmt = stmt.where(PaymentModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars())
