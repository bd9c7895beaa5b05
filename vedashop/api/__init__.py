"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from vedashop.api.cart import router as cart_router
from vedashop.api.health import router as health_router
from vedashop.api.orders import router as orders_router
from vedashop.api.payments import router as payments_router
from vedashop.api.users import router as users_router

__all__ = [
    "cart_router",
    "health_router",
    "orders_router",
    "payments_router",
    "users_router",
]
