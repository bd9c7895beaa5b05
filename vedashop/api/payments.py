"""Payment API endpoints.

Provides:
- POST /payments/create - start a payment with the provider
- POST /payments/webhook - receive provider events (signature verified)
- GET /payments - list payments (own payments; admins see all)
- GET /payments/{id}/status - payment status
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import PlainTextResponse

from vedashop.api.deps import (
    CurrentUser,
    get_current_user,
    get_payment_service,
    get_webhook_service,
)
from vedashop.api.schemas import (
    ErrorResponse,
    PaymentCreateRequest,
    PaymentCreateResponse,
    PaymentSchema,
    PaymentsListResponse,
    PaymentStatusResponse,
    PriceSchema,
    WebhookResponse,
)
from vedashop.application.payment_service import PaymentDTO, PaymentService
from vedashop.application.webhook_service import WebhookService
from vedashop.domain.exceptions import InvalidArgumentError, InvalidSignatureError

logger = structlog.get_logger()

router = APIRouter(prefix="/payments", tags=["Payments"])


# ============================================================================
# Converters
# ============================================================================


def payment_to_schema(payment: PaymentDTO) -> PaymentSchema:
    """Convert PaymentDTO to PaymentSchema."""
    return PaymentSchema(
        id=payment.id,
        transaction_id=payment.transaction_id,
        order_id=payment.order_id,
        amount=PriceSchema(amount=payment.amount_cents, currency=payment.currency),
        payment_method=payment.payment_method,
        status=payment.status.value,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/create",
    response_model=PaymentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Create payment",
    description="Start a payment for an order, or for an explicit amount and currency.",
)
async def create_payment(
    request: PaymentCreateRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> PaymentCreateResponse:
    """Start a payment with the provider.

    Args:
        request: Order reference, or amount and currency.
        user: Authenticated caller.
        service: Payment service.

    Returns:
        The pending payment and the provider client secret.
    """
    result = await service.create_payment(
        user_id=user.id,
        order_id=request.order_id,
        amount_cents=request.amount,
        currency=request.currency,
        payment_method=request.payment_method,
    )
    payment = result.payment
    return PaymentCreateResponse(
        payment_id=payment.id,
        client_secret=result.client_secret,
        status=payment.status.value,
        order_id=payment.order_id,
        amount=PriceSchema(amount=payment.amount_cents, currency=payment.currency),
    )


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={400: {"content": {"text/plain": {}}}},
    summary="Receive payment provider webhook",
    description="Receive and process payment events with signature verification.",
)
async def receive_payment_webhook(
    request: Request,
    service: Annotated[WebhookService, Depends(get_webhook_service)],
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> WebhookResponse | PlainTextResponse:
    """Receive and process a payment provider event.

    The raw body is verified against the ``Stripe-Signature`` header
    before anything is parsed. Verified events always get a 200, even
    when their type is not handled. Rejections are plain text.

    Args:
        request: The incoming request.
        service: Webhook service.
        stripe_signature: Provider signature header.

    Returns:
        WebhookResponse with processing result, or a plain text 400.
    """
    payload = await request.body()

    try:
        result = await service.handle(payload, stripe_signature)
    except InvalidSignatureError as e:
        logger.warning("Rejected payment webhook", reason=e.message)
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)
    except InvalidArgumentError as e:
        logger.warning("Malformed payment webhook", reason=e.message)
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)

    return WebhookResponse(
        event_id=result.event_id,
        status=result.status.value,
        message=result.message,
    )


@router.get(
    "",
    response_model=PaymentsListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List payments",
)
async def list_payments(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> PaymentsListResponse:
    """List payments visible to the caller."""
    payments = await service.list_payments(user.id, is_admin=user.is_admin)
    return PaymentsListResponse(
        items=[payment_to_schema(payment) for payment in payments],
        total=len(payments),
    )


@router.get(
    "/{payment_id}/status",
    response_model=PaymentStatusResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Get payment status",
)
async def get_payment_status(
    payment_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> PaymentStatusResponse:
    """Get the current status of a payment."""
    payment = await service.get_payment(payment_id, user.id, is_admin=user.is_admin)
    return PaymentStatusResponse(payment_id=payment.id, status=payment.status.value)
