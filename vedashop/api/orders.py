"""Order API endpoints.

Provides endpoints for order lifecycle management:
- POST /orders - place an order from the caller's cart
- GET /orders - list orders (own orders; admins see all)
- GET /orders/{id} - order details and status
- PUT /orders/{id} - change an order's status (admin)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from vedashop.api.deps import (
    CurrentUser,
    get_checkout_service,
    get_current_user,
    get_order_service,
    require_admin,
)
from vedashop.api.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    DeliveryAddressSchema,
    ErrorResponse,
    OrderItemSchema,
    OrderResponse,
    OrdersListResponse,
    OrderStatusEnum,
    OrderStatusHistorySchema,
    OrderStatusUpdateRequest,
    PriceSchema,
)
from vedashop.application.checkout_service import CheckoutService
from vedashop.application.order_service import DeliveryAddressDTO, OrderDTO, OrderService
from vedashop.domain.state_machines import OrderStatus
from vedashop.domain.value_objects import DeliveryDetails

router = APIRouter(prefix="/orders", tags=["Orders"])


# ============================================================================
# Converters
# ============================================================================


def address_to_schema(address: DeliveryAddressDTO) -> DeliveryAddressSchema:
    """Convert DeliveryAddressDTO to DeliveryAddressSchema."""
    return DeliveryAddressSchema(
        id=address.id,
        full_name=address.full_name,
        street=address.street,
        postal_code=address.postal_code,
        city=address.city,
        country=address.country,
        order_id=address.order_id,
        payment_id=address.payment_id,
    )


def order_to_response(
    order: OrderDTO,
    delivery_address: DeliveryAddressDTO | None = None,
) -> OrderResponse:
    """Convert OrderDTO to OrderResponse."""
    currency = order.currency

    items = [
        OrderItemSchema(
            product_id=item.product_id,
            name=item.name,
            quantity=item.quantity,
            unit_price=PriceSchema(amount=item.unit_price_cents, currency=currency),
            line_total=PriceSchema(amount=item.line_total_cents, currency=currency),
        )
        for item in order.items
    ]

    status_history = [
        OrderStatusHistorySchema(
            from_status=entry.from_status,
            to_status=entry.to_status,
            reason=entry.reason,
            actor=entry.actor,
            created_at=entry.created_at,
        )
        for entry in order.status_history
    ]

    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        status=OrderStatusEnum(order.status.value),
        items=items,
        total=PriceSchema(amount=order.total_cents, currency=currency),
        status_history=status_history,
        delivery_address=address_to_schema(delivery_address) if delivery_address else None,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Place order",
    description="Convert the caller's cart into a pending order with a delivery address.",
)
async def place_order(
    request: CheckoutRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> CheckoutResponse:
    """Place an order from the caller's cart.

    Prices are frozen at this moment; later catalog changes do not
    affect the order.

    Args:
        request: Delivery details.
        user: Authenticated caller.
        service: Checkout service.

    Returns:
        The pending order and its delivery address.
    """
    details = DeliveryDetails(
        full_name=request.full_name,
        street=request.street,
        postal_code=request.postal_code,
        city=request.city,
        country=request.country,
    )
    result = await service.place_order(user.id, details)
    return CheckoutResponse(
        order=order_to_response(result.order, result.delivery_address),
        delivery_address=address_to_schema(result.delivery_address),
    )


@router.get(
    "",
    response_model=OrdersListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List orders",
    description="List the caller's orders, newest first. Admins see every order.",
)
async def list_orders(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrdersListResponse:
    """List orders visible to the caller."""
    orders = await service.list_orders(user.id, is_admin=user.is_admin)
    return OrdersListResponse(
        items=[order_to_response(order) for order in orders],
        total=len(orders),
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Get order details",
)
async def get_order(
    order_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderResponse:
    """Get an order with its items, status history and delivery address.

    Args:
        order_id: Order identifier.
        user: Authenticated caller.
        service: Order service.

    Returns:
        Order details.
    """
    order = await service.get_order(order_id, user.id, is_admin=user.is_admin)
    address = await service.get_delivery_address(order_id)
    return order_to_response(order, address)


@router.put(
    "/{order_id}",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Update order status",
    description="Manually move an order to a new status. Pending orders may become "
    "paid, failed or cancelled; paid and cancelled orders are final.",
)
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderResponse:
    """Change an order's status.

    Args:
        order_id: Order identifier.
        request: Target status and optional reason.
        admin: Authenticated admin.
        service: Order service.

    Returns:
        Updated order.
    """
    order = await service.update_status(
        order_id,
        OrderStatus(request.status.value),
        actor=admin.id,
        reason=request.reason,
    )
    return order_to_response(order)
