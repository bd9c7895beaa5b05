"""Domain exceptions.

All errors that represent business rule violations in the shop pipeline.
Each exception carries a machine-readable ``error_code`` and the HTTP
``status_code`` the API layer renders it with, so handlers never need to
map exception types by hand.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code: str = "DOMAIN_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Error Kinds
# ============================================================================


class InvalidArgumentError(DomainError):
    """Raised when request input is malformed or out of range."""

    error_code = "INVALID_ARGUMENT"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid argument error.

        Args:
            message: Human-readable error message.
            field: Name of the offending field, if any.
            details: Optional additional error context.
        """
        merged = dict(details or {})
        if field:
            merged["field"] = field
        super().__init__(message, details=merged)
        self.field = field


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: str) -> None:
        """Initialize not found error.

        Args:
            entity_type: Type of entity (e.g., "Product", "Order").
            entity_id: ID that was looked up.
        """
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidStateError(DomainError):
    """Raised when an operation is not valid in the current state."""

    error_code = "INVALID_STATE"
    status_code = 400


class UnauthenticatedError(DomainError):
    """Raised when the caller could not be authenticated."""

    error_code = "UNAUTHENTICATED"
    status_code = 401


class ForbiddenError(DomainError):
    """Raised when the caller is authenticated but not allowed."""

    error_code = "FORBIDDEN"
    status_code = 403


class ConflictError(DomainError):
    """Raised on a store-level duplicate.

    Callers treat a conflict on an idempotent write as success.
    """

    error_code = "CONFLICT"
    status_code = 409


class UpstreamError(DomainError):
    """Raised when an external collaborator fails or times out."""

    error_code = "UPSTREAM_ERROR"
    status_code = 502


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(InvalidStateError):
    """Raised when an invalid state transition is attempted."""

    error_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Cart Errors
# ============================================================================


class InvalidQuantityError(InvalidArgumentError):
    """Raised when a cart quantity is outside the allowed range."""

    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, maximum: int) -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The rejected quantity.
            maximum: Largest allowed quantity.
        """
        super().__init__(
            f"Quantity must be between 1 and {maximum}, got {quantity}",
            field="quantity",
            details={"quantity": quantity, "maximum": maximum},
        )


class ProductNotFoundError(NotFoundError):
    """Raised when a product is not in the catalog."""

    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str) -> None:
        """Initialize product not found error.

        Args:
            product_id: The missing product ID.
        """
        super().__init__("Product", product_id)


class CartEmptyError(InvalidStateError):
    """Raised when checking out a missing or empty cart."""

    error_code = "CART_EMPTY"

    def __init__(self, user_id: str) -> None:
        """Initialize cart empty error.

        Args:
            user_id: Owner of the empty cart.
        """
        super().__init__("Cart is empty", details={"user_id": user_id})


# ============================================================================
# Pricing Errors
# ============================================================================


class UnpriceableItemError(InvalidStateError):
    """Raised when a cart line cannot be priced.

    The product was deleted from the catalog or has no price. The whole
    operation fails; lines are never skipped.
    """

    error_code = "UNPRICEABLE_ITEM"

    def __init__(self, product_id: str, reason: str) -> None:
        """Initialize unpriceable item error.

        Args:
            product_id: The product that cannot be priced.
            reason: Either "missing_product" or "missing_price".
        """
        super().__init__(
            f"Cannot price product {product_id}: {reason}",
            details={"product_id": product_id, "reason": reason},
        )
        self.product_id = product_id
        self.reason = reason


# ============================================================================
# Order Errors
# ============================================================================


class OrderNotFoundError(NotFoundError):
    """Raised when an order does not exist."""

    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str) -> None:
        """Initialize order not found error.

        Args:
            order_id: The missing order ID.
        """
        super().__init__("Order", order_id)


# ============================================================================
# Payment Errors
# ============================================================================


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment does not exist."""

    error_code = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str) -> None:
        """Initialize payment not found error.

        Args:
            payment_id: The missing payment ID.
        """
        super().__init__("Payment", payment_id)


class PaymentProviderError(UpstreamError):
    """Raised when the payment provider call fails."""

    error_code = "PAYMENT_PROVIDER_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize payment provider error.

        Args:
            message: Description of the failure.
            status_code: HTTP status returned by the provider, if any.
        """
        super().__init__(message, details={"provider_status_code": status_code})
        self.provider_status_code = status_code


class InvalidSignatureError(UnauthenticatedError):
    """Raised when a webhook signature cannot be verified.

    Rendered as 400 on the webhook endpoint.
    """

    error_code = "INVALID_SIGNATURE"
    status_code = 400


# ============================================================================
# User Errors
# ============================================================================


class InvalidCredentialsError(UnauthenticatedError):
    """Raised when login credentials do not match."""

    error_code = "INVALID_CREDENTIALS"

    def __init__(self) -> None:
        """Initialize invalid credentials error."""
        super().__init__("Invalid email or password")


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when registering an email that is already taken."""

    error_code = "EMAIL_ALREADY_REGISTERED"
    status_code = 400

    def __init__(self, email: str) -> None:
        """Initialize email already registered error.

        Args:
            email: The duplicate email address.
        """
        super().__init__("Email is already registered", details={"email": email})
