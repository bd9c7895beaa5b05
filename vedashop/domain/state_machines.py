"""State machines for domain entities.

Deterministic state machines for orders and payments. Order transitions
are enforced; payment status follows provider events and is recorded as
last-write-wins.
"""

from enum import Enum

from vedashop.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PENDING ──────────────► CANCELLED
          │    │
          │    │ payment failed (manual)
          │    ▼
          │  FAILED
          │    │
          │    │ retried payment succeeded
          ▼    ▼
           PAID
    """

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return sorted(_ORDER_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_payable(self) -> bool:
        """Check if a payment may still be started for the order.

        A failed order takes a new payment attempt; it never reopens
        to pending.
        """
        return self in (OrderStatus.PENDING, OrderStatus.FAILED)


# Order state transitions. A failed order is not reopened to pending.
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),  # Terminal state
    OrderStatus.FAILED: {OrderStatus.PAID},
    OrderStatus.CANCELLED: set(),  # Terminal state
}


# ============================================================================
# Payment Status
# ============================================================================


class PaymentStatus(str, Enum):
    """Payment states as reported by the provider."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """Payment methods recorded on a payment."""

    CARD = "card"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"


class UserRole(str, Enum):
    """Account roles."""

    CUSTOMER = "customer"
    ADMIN = "admin"


# ============================================================================
# Helpers
# ============================================================================


def validate_order_transition(
    order_id: str,
    current: OrderStatus,
    target: OrderStatus,
) -> None:
    """Validate an order state transition.

    Args:
        order_id: Order ID for error messages.
        current: Current order status.
        target: Target order status.

    Raises:
        InvalidStateTransitionError: If transition is not allowed.
    """
    if not current.can_transition_to(target):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in current.allowed_transitions()],
        )
