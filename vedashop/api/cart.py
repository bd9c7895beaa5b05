"""Cart API endpoints.

Provides endpoints for the shopper's cart:
- POST /cart - add a product (increments an existing line)
- PUT /cart/{product_id} - set a line's quantity
- GET /cart - cart contents with live prices
- DELETE /cart/{product_id} - remove a line (idempotent)
- DELETE /cart - clear the cart
- POST /cart/sync - merge an anonymous cart into the caller's cart

The cart owner is the authenticated user, or the anonymous session
named by the X-Session-ID header.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from vedashop.api.deps import (
    CurrentUser,
    get_cart_merge_service,
    get_cart_service,
    get_current_user,
    get_owner,
)
from vedashop.api.schemas import (
    CartItemRequest,
    CartItemSchema,
    CartQuantityRequest,
    CartResponse,
    CartSyncRequest,
    ErrorResponse,
)
from vedashop.application.cart_merge_service import CartMergeService
from vedashop.application.cart_service import CartDTO, CartService
from vedashop.domain.value_objects import Owner, UserOwner
from vedashop.infrastructure.config import settings

router = APIRouter(prefix="/cart", tags=["Cart"])


# ============================================================================
# Converters
# ============================================================================


def cart_to_response(cart: CartDTO) -> CartResponse:
    """Convert CartDTO to CartResponse."""
    return CartResponse(
        items=[
            CartItemSchema(
                product_id=item.product_id,
                name=item.name,
                image_url=item.image_url,
                quantity=item.quantity,
                unit_price=item.unit_price_cents,
                line_total=item.line_total_cents,
            )
            for item in cart.items
        ],
        total_price=cart.total_price_cents,
        currency=settings.default_currency,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=CartResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Add to cart",
    description="Add a product to the cart. An existing line's quantity is increased.",
)
async def add_to_cart(
    request: CartItemRequest,
    owner: Annotated[Owner, Depends(get_owner)],
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Add a product to the caller's cart.

    Args:
        request: Product and quantity to add.
        owner: Resolved cart owner.
        service: Cart service.

    Returns:
        The updated cart.
    """
    cart = await service.add_item(owner, request.product_id, request.quantity)
    return cart_to_response(cart)


@router.put(
    "/{product_id}",
    response_model=CartResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Set cart quantity",
    description="Set the quantity of a product in the cart, replacing the current value.",
)
async def set_cart_quantity(
    product_id: str,
    request: CartQuantityRequest,
    owner: Annotated[Owner, Depends(get_owner)],
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Set a line's quantity in the caller's cart."""
    cart = await service.set_quantity(owner, product_id, request.quantity)
    return cart_to_response(cart)


@router.get(
    "",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Get cart",
)
async def get_cart(
    owner: Annotated[Owner, Depends(get_owner)],
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Get the caller's cart; an empty cart if there is none."""
    cart = await service.get_cart(owner)
    return cart_to_response(cart)


@router.delete(
    "/{product_id}",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Remove from cart",
    description="Remove a product from the cart. Removing an absent product is a no-op.",
)
async def remove_from_cart(
    product_id: str,
    owner: Annotated[Owner, Depends(get_owner)],
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Remove a product from the caller's cart."""
    cart = await service.remove_item(owner, product_id)
    return cart_to_response(cart)


@router.delete(
    "",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Clear cart",
)
async def clear_cart(
    owner: Annotated[Owner, Depends(get_owner)],
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Delete the caller's cart."""
    cart = await service.clear(owner)
    return cart_to_response(cart)


@router.post(
    "/sync",
    response_model=CartResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Merge anonymous cart",
    description="Merge the cart of an anonymous session into the authenticated user's cart.",
)
async def sync_cart(
    request: CartSyncRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    merge_service: Annotated[CartMergeService, Depends(get_cart_merge_service)],
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Merge a session cart into the caller's cart.

    Args:
        request: Session whose cart should be merged.
        user: Authenticated caller.
        merge_service: Cart merge service.
        service: Cart service.

    Returns:
        The caller's cart after the merge.
    """
    await merge_service.merge(request.session_id, user.id)
    cart = await service.get_cart(UserOwner(user.id))
    return cart_to_response(cart)
