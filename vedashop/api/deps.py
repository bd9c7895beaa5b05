"""API dependencies.

Identity resolution and service construction, injected into route
handlers via Depends().

Identity rules:
- ``Authorization: Bearer <token>`` identifies a user
- otherwise ``X-Session-ID`` (or a ``session_id`` query parameter)
  identifies an anonymous session
- neither is an error for routes that need a cart owner
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.application.cart_merge_service import CartMergeService
from vedashop.application.cart_service import CartService
from vedashop.application.checkout_service import CheckoutService
from vedashop.application.order_service import OrderService
from vedashop.application.payment_service import PaymentService
from vedashop.application.user_service import UserService
from vedashop.application.webhook_service import WebhookService
from vedashop.domain.exceptions import ForbiddenError, InvalidArgumentError, UnauthenticatedError
from vedashop.domain.state_machines import UserRole
from vedashop.domain.value_objects import Owner, SessionOwner, UserOwner
from vedashop.infrastructure.database import get_session
from vedashop.infrastructure.payment_provider import PaymentProviderClient, get_payment_provider
from vedashop.infrastructure.security import decode_token

SessionDep = Annotated[AsyncSession, Depends(get_session)]


# ============================================================================
# Identity
# ============================================================================


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller taken from the access token."""

    id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser | None:
    """Resolve the caller from a bearer token, if one was sent.

    Raises:
        UnauthenticatedError: If a token was sent but is malformed,
            invalid or expired.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("Invalid Authorization header format. Use 'Bearer <token>'")

    payload = decode_token(token.strip())
    if not payload or not payload.get("sub"):
        raise UnauthenticatedError("Invalid or expired token")

    try:
        role = UserRole(payload.get("role", UserRole.CUSTOMER.value))
    except ValueError:
        role = UserRole.CUSTOMER
    return CurrentUser(id=str(payload["sub"]), role=role)


async def get_current_user(
    user: Annotated[CurrentUser | None, Depends(get_optional_user)],
) -> CurrentUser:
    """Require an authenticated caller."""
    if user is None:
        raise UnauthenticatedError("Authentication required")
    return user


async def require_admin(
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Require an admin caller."""
    if not user.is_admin:
        raise ForbiddenError("Admin role required")
    return user


async def get_session_id(
    x_session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
    session_id: Annotated[str | None, Query()] = None,
) -> str | None:
    """Anonymous session identifier from header or query string."""
    return x_session_id or session_id or None


async def get_owner(
    user: Annotated[CurrentUser | None, Depends(get_optional_user)],
    session_id: Annotated[str | None, Depends(get_session_id)],
) -> Owner:
    """Resolve the cart owner for this request.

    Raises:
        InvalidArgumentError: If neither a token nor a session id was sent.
    """
    if user is not None:
        return UserOwner(user.id)
    if session_id:
        return SessionOwner(session_id)
    raise InvalidArgumentError(
        "Send a bearer token or an X-Session-ID header",
        field="session_id",
    )


# ============================================================================
# Services
# ============================================================================


def get_cart_service(session: SessionDep) -> CartService:
    return CartService(session)


def get_cart_merge_service(session: SessionDep) -> CartMergeService:
    return CartMergeService(session)


def get_checkout_service(session: SessionDep) -> CheckoutService:
    return CheckoutService(session)


def get_order_service(session: SessionDep) -> OrderService:
    return OrderService(session)


def get_payment_service(
    session: SessionDep,
    provider: Annotated[PaymentProviderClient, Depends(get_payment_provider)],
) -> PaymentService:
    return PaymentService(session, provider)


def get_webhook_service(session: SessionDep) -> WebhookService:
    return WebhookService(session)


def get_user_service(session: SessionDep) -> UserService:
    return UserService(session)
