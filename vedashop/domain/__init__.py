"""Domain layer - value objects, state machines and exceptions.

- **Value Objects**: Money, cart owners, delivery details, priced lines
- **State Machines**: OrderStatus transitions, payment status values
- **Exceptions**: DomainError hierarchy carrying error codes and HTTP status

Example usage:
    from vedashop.domain import Money, OrderStatus

    total = Money(amount_cents=999) * 3  # 29.97 USD
    OrderStatus.PENDING.can_transition_to(OrderStatus.PAID)  # True
"""

from vedashop.domain.exceptions import (
    CartEmptyError,
    ConflictError,
    DomainError,
    EmailAlreadyRegisteredError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidCredentialsError,
    InvalidQuantityError,
    InvalidSignatureError,
    InvalidStateError,
    InvalidStateTransitionError,
    NotFoundError,
    OrderNotFoundError,
    PaymentNotFoundError,
    PaymentProviderError,
    ProductNotFoundError,
    UnauthenticatedError,
    UnpriceableItemError,
    UpstreamError,
)
from vedashop.domain.state_machines import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    UserRole,
    validate_order_transition,
)
from vedashop.domain.value_objects import (
    DeliveryDetails,
    Money,
    Owner,
    PricedLine,
    SessionOwner,
    UserOwner,
)

__all__ = [
    # Value objects
    "DeliveryDetails",
    "Money",
    "Owner",
    "PricedLine",
    "SessionOwner",
    "UserOwner",
    # State machines
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "UserRole",
    "validate_order_transition",
    # Exceptions
    "CartEmptyError",
    "ConflictError",
    "DomainError",
    "EmailAlreadyRegisteredError",
    "ForbiddenError",
    "InvalidArgumentError",
    "InvalidCredentialsError",
    "InvalidQuantityError",
    "InvalidSignatureError",
    "InvalidStateError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "OrderNotFoundError",
    "PaymentNotFoundError",
    "PaymentProviderError",
    "ProductNotFoundError",
    "UnauthenticatedError",
    "UnpriceableItemError",
    "UpstreamError",
]
