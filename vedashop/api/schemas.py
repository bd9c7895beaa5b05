"""API schemas for the Vedashop API.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from vedashop.domain.state_machines import PaymentMethod
from vedashop.domain.value_objects import MAX_LINE_QUANTITY


# ============================================================================
# Common Schemas
# ============================================================================


class PriceSchema(BaseModel):
    """Price representation."""

    amount: int = Field(..., description="Amount in smallest currency unit (cents)")
    currency: str = Field(default="USD", description="ISO 4217 currency code")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Cart Schemas
# ============================================================================


class CartItemRequest(BaseModel):
    """Request to add a product to the cart."""

    product_id: str = Field(..., min_length=1, description="Product identifier")
    quantity: int = Field(default=1, description=f"Quantity (1 to {MAX_LINE_QUANTITY})")


class CartQuantityRequest(BaseModel):
    """Request to set the quantity of a cart line."""

    quantity: int = Field(..., description=f"New quantity (1 to {MAX_LINE_QUANTITY})")


class CartSyncRequest(BaseModel):
    """Request to merge an anonymous cart into the caller's cart."""

    session_id: str = Field(..., min_length=1, description="Anonymous session identifier")


class CartItemSchema(BaseModel):
    """Cart line with live product data."""

    product_id: str
    name: str | None = None
    image_url: str | None = None
    quantity: int
    unit_price: int | None = Field(None, description="Live unit price in cents")
    line_total: int = Field(..., description="Line total in cents")


class CartResponse(BaseModel):
    """Cart contents. An owner without a cart gets an empty one."""

    items: list[CartItemSchema] = Field(default_factory=list)
    total_price: int = Field(default=0, description="Cart total in cents")
    currency: str = "USD"


# ============================================================================
# Order Schemas
# ============================================================================


class OrderStatusEnum(str, Enum):
    """Order status values."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CheckoutRequest(BaseModel):
    """Delivery details submitted at checkout."""

    full_name: str | None = Field(None, max_length=255)
    street: str = Field(..., max_length=500)
    postal_code: str = Field(..., max_length=20)
    city: str = Field(..., max_length=100)
    country: str = Field(..., max_length=100)


class OrderStatusUpdateRequest(BaseModel):
    """Admin request to change an order's status."""

    status: OrderStatusEnum
    reason: str | None = Field(None, max_length=500)


class OrderItemSchema(BaseModel):
    """Frozen order line."""

    product_id: str
    name: str
    quantity: int
    unit_price: PriceSchema
    line_total: PriceSchema


class OrderStatusHistorySchema(BaseModel):
    """Order status history entry."""

    from_status: str | None = None
    to_status: str
    reason: str | None = None
    actor: str | None = None
    created_at: datetime | None = None


class DeliveryAddressSchema(BaseModel):
    """Delivery address recorded for an order."""

    id: str
    full_name: str | None = None
    street: str
    postal_code: str
    city: str
    country: str
    order_id: str | None = None
    payment_id: str | None = None


class OrderResponse(BaseModel):
    """Order details."""

    id: str
    user_id: str
    status: OrderStatusEnum
    items: list[OrderItemSchema]
    total: PriceSchema
    status_history: list[OrderStatusHistorySchema] = Field(default_factory=list)
    delivery_address: DeliveryAddressSchema | None = None
    created_at: datetime
    updated_at: datetime


class CheckoutResponse(BaseModel):
    """Result of placing an order."""

    order: OrderResponse
    delivery_address: DeliveryAddressSchema


class OrdersListResponse(BaseModel):
    """List of orders."""

    items: list[OrderResponse]
    total: int


# ============================================================================
# Payment Schemas
# ============================================================================


class PaymentCreateRequest(BaseModel):
    """Request to start a payment.

    Either ``order_id`` or both ``amount`` and ``currency``.
    """

    order_id: str | None = Field(None, description="Order to pay for")
    amount: int | None = Field(None, description="Amount in cents when no order is given")
    currency: str | None = Field(None, min_length=3, max_length=3, description="ISO 4217 code")
    payment_method: PaymentMethod = Field(default=PaymentMethod.CARD)


class PaymentCreateResponse(BaseModel):
    """Started payment."""

    payment_id: str
    client_secret: str
    status: str
    order_id: str | None = None
    amount: PriceSchema


class PaymentSchema(BaseModel):
    """Payment ledger entry."""

    id: str
    transaction_id: str
    order_id: str | None = None
    amount: PriceSchema
    payment_method: str
    status: str
    created_at: datetime
    updated_at: datetime


class PaymentsListResponse(BaseModel):
    """List of payments."""

    items: list[PaymentSchema]
    total: int


class PaymentStatusResponse(BaseModel):
    """Payment status."""

    payment_id: str
    status: str


class WebhookResponse(BaseModel):
    """Response to a verified webhook delivery."""

    received: bool = True
    event_id: str
    status: str
    message: str


# ============================================================================
# User Schemas
# ============================================================================


class RegisterRequest(BaseModel):
    """Account registration request."""

    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., max_length=128)
    name: str | None = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """Login request."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)
    session_id: str | None = Field(
        None, description="Anonymous session whose cart should be merged"
    )


class UserResponse(BaseModel):
    """Account details."""

    id: str
    email: str
    name: str | None = None
    role: str


class LoginResponse(BaseModel):
    """Login result."""

    token: str
    token_type: str = "bearer"
    user: UserResponse
    cart_merged: bool
