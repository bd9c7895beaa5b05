"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass
from typing import Self

from vedashop.domain.exceptions import InvalidArgumentError


# ============================================================================
# Cart Owner
# ============================================================================


@dataclass(frozen=True)
class UserOwner:
    """Cart owned by an authenticated user."""

    user_id: str

    def __post_init__(self) -> None:
        """Validate owner identifier."""
        if not self.user_id:
            raise InvalidArgumentError("User ID must not be empty", field="user_id")

    def __str__(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True)
class SessionOwner:
    """Cart owned by an anonymous session."""

    session_id: str

    def __post_init__(self) -> None:
        """Validate owner identifier."""
        if not self.session_id:
            raise InvalidArgumentError("Session ID must not be empty", field="session_id")

    def __str__(self) -> str:
        return f"session:{self.session_id}"


# Exactly one of the two; a cart is never owned by both or by neither.
Owner = UserOwner | SessionOwner

# Largest quantity a single cart line may hold.
MAX_LINE_QUANTITY = 999


# ============================================================================
# Money
# ============================================================================


@dataclass(frozen=True)
class Money:
    """Represents monetary value with currency.

    Money is stored in the smallest currency unit (cents for USD/EUR)
    to avoid floating-point precision issues.

    Attributes:
        amount_cents: Amount in smallest currency unit (e.g., cents).
        currency: ISO 4217 currency code (e.g., 'USD', 'EUR').
    """

    amount_cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        """Validate money constraints."""
        if self.amount_cents < 0:
            raise InvalidArgumentError(
                f"Money amount cannot be negative: {self.amount_cents}",
                field="amount",
            )
        # Normalize currency to uppercase
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = "USD") -> Self:
        """Create zero amount money.

        Args:
            currency: Currency code.

        Returns:
            Money with zero amount.
        """
        return cls(amount_cents=0, currency=currency)

    def __add__(self, other: "Money") -> "Money":
        """Add two money amounts.

        Raises:
            InvalidArgumentError: If currencies don't match.
        """
        if self.currency != other.currency:
            raise InvalidArgumentError(
                f"Currency mismatch: {self.currency} vs {other.currency}",
                field="currency",
            )
        return Money(
            amount_cents=self.amount_cents + other.amount_cents,
            currency=self.currency,
        )

    def __mul__(self, quantity: int) -> "Money":
        """Multiply money by quantity."""
        return Money(
            amount_cents=self.amount_cents * quantity,
            currency=self.currency,
        )


# ============================================================================
# Delivery Details
# ============================================================================


@dataclass(frozen=True)
class DeliveryDetails:
    """Shipping destination captured at checkout.

    Street, postal code, city and country are mandatory. The full name
    is optional.
    """

    street: str
    postal_code: str
    city: str
    country: str
    full_name: str | None = None

    def __post_init__(self) -> None:
        """Validate mandatory fields are present and non-blank."""
        for field_name in ("street", "postal_code", "city", "country"):
            value = getattr(self, field_name)
            if value is None or not str(value).strip():
                raise InvalidArgumentError(
                    f"Delivery field '{field_name}' is required",
                    field=field_name,
                )
            object.__setattr__(self, field_name, str(value).strip())
        if self.full_name is not None:
            object.__setattr__(self, "full_name", self.full_name.strip() or None)


# ============================================================================
# Priced Lines
# ============================================================================


@dataclass(frozen=True)
class PricedLine:
    """A cart line frozen against the catalog at checkout time."""

    product_id: str
    name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        """Calculate line total."""
        return self.unit_price_cents * self.quantity
