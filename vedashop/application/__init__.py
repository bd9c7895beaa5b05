"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from vedashop.application.cart_merge_service import CartMergeService
from vedashop.application.cart_service import CartService
from vedashop.application.checkout_service import CheckoutService
from vedashop.application.order_service import OrderService
from vedashop.application.payment_service import PaymentService
from vedashop.application.user_service import UserService
from vedashop.application.webhook_service import WebhookService

__all__ = [
    "CartMergeService",
    "CartService",
    "CheckoutService",
    "OrderService",
    "PaymentService",
    "UserService",
    "WebhookService",
]
