"""User account service.

Registration and login. Login verifies credentials, issues an access
token and folds the caller's anonymous cart into the user's cart.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vedashop.application.cart_merge_service import CartMergeService
from vedashop.domain.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidArgumentError,
    InvalidCredentialsError,
)
from vedashop.domain.state_machines import UserRole
from vedashop.infrastructure.repositories import UserRepository
from vedashop.infrastructure.security import create_access_token, hash_password, verify_password

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8


@dataclass
class UserDTO:
    """User data transfer object."""

    id: str
    email: str
    name: str | None
    role: UserRole


@dataclass
class LoginResult:
    """Result of a login.

    Attributes:
        token: Bearer access token.
        user: The authenticated user.
        cart_merged: Whether an anonymous cart was folded into the user's
            cart. False both when there was nothing to merge and when the
            merge failed.
    """

    token: str
    user: UserDTO
    cart_merged: bool


class UserService:
    """Application service for user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user service.

        Args:
            session: Request-scoped database session.
        """
        self.session = session
        self.users = UserRepository(session)

    async def register(self, email: str, password: str, name: str | None = None) -> UserDTO:
        """Create a customer account.

        Raises:
            InvalidArgumentError: If the password is too short.
            EmailAlreadyRegisteredError: If the email is taken.
        """
        normalized = email.strip().lower()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgumentError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )
        if await self.users.get_by_email(normalized) is not None:
            raise EmailAlreadyRegisteredError(normalized)

        try:
            user = await self.users.create(
                email=normalized,
                password_hash=hash_password(password),
                name=name,
                role=UserRole.CUSTOMER.value,
            )
        except IntegrityError as e:
            raise EmailAlreadyRegisteredError(normalized) from e

        logger.info("User registered", user_id=user.id)
        return UserDTO(id=user.id, email=user.email, name=user.name, role=UserRole(user.role))

    async def login(self, email: str, password: str, session_id: str | None = None) -> LoginResult:
        """Authenticate a user and merge their anonymous cart.

        The merge is best-effort: on a store failure it is rolled back and
        logged, and the login still succeeds with ``cart_merged`` False.

        Raises:
            InvalidCredentialsError: If the email or password is wrong.
        """
        user = await self.users.get_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login rejected", email_domain=email.rpartition("@")[2])
            raise InvalidCredentialsError()

        dto = UserDTO(id=user.id, email=user.email, name=user.name, role=UserRole(user.role))
        token = create_access_token(dto.id, dto.role.value)

        cart_merged = False
        try:
            result = await CartMergeService(self.session).merge(session_id, dto.id)
            await self.session.flush()
            cart_merged = result.merged
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(
                "Cart merge failed during login",
                user_id=dto.id,
                session_id=session_id,
                error=str(e),
            )

        logger.info("User logged in", user_id=dto.id, cart_merged=cart_merged)
        return LoginResult(token=token, user=dto, cart_merged=cart_merged)
