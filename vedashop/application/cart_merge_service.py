"""Cart merge service.

Folds an anonymous session cart into a user's cart when the user logs
in or explicitly syncs.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.domain.value_objects import SessionOwner, UserOwner
from vedashop.infrastructure.repositories import CartRepository

logger = structlog.get_logger()


@dataclass
class MergeResult:
    """Outcome of a cart merge.

    Attributes:
        merged: Whether a session cart existed and was folded in.
        rekeyed: Whether the session cart was handed to the user as-is.
        lines_merged: Number of session lines applied to the user cart.
    """

    merged: bool
    rekeyed: bool = False
    lines_merged: int = 0


class CartMergeService:
    """Merges session carts into user carts."""

    def __init__(self, session: AsyncSession) -> None:
        self.carts = CartRepository(session)

    async def merge(self, session_id: str | None, user_id: str) -> MergeResult:
        """Merge the session's cart into the user's cart.

        - No session ID or no session cart: nothing happens.
        - Session cart but no user cart: the session cart becomes the
          user's cart.
        - Both carts: each session line is added to the user cart,
          summing quantities for products already present, then the
          session cart is deleted.

        Args:
            session_id: Anonymous session identifier, if any.
            user_id: Authenticated user identifier.

        Returns:
            MergeResult describing what happened.
        """
        if not session_id:
            return MergeResult(merged=False)

        session_cart_id = await self.carts.get_cart_id(SessionOwner(session_id))
        if session_cart_id is None:
            return MergeResult(merged=False)

        user_cart_id = await self.carts.get_cart_id(UserOwner(user_id))
        if user_cart_id is None:
            await self.carts.assign_to_user(session_cart_id, user_id)
            logger.info(
                "Session cart assigned to user",
                cart_id=session_cart_id,
                user_id=user_id,
            )
            return MergeResult(merged=True, rekeyed=True)

        lines = await self.carts.list_lines(session_cart_id)
        for line in lines:
            await self.carts.add_quantity(user_cart_id, line.product_id, line.quantity)
        await self.carts.delete_cart(session_cart_id)

        logger.info(
            "Session cart merged into user cart",
            session_cart_id=session_cart_id,
            user_cart_id=user_cart_id,
            user_id=user_id,
            lines_merged=len(lines),
        )
        return MergeResult(merged=True, lines_merged=len(lines))
