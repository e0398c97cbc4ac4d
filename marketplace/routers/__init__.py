"""
API routers, one per marketplace domain.
"""
from .addresses import router as addresses_router
from .bids import router as bids_router
from .cart import router as cart_router
from .categories import router as categories_router
from .coupons import router as coupons_router
from .feedback import router as feedback_router
from .messages import router as messages_router
from .orders import router as orders_router
from .payments import router as payments_router
from .products import router as products_router
from .returns import router as returns_router
from .reviews import router as reviews_router
from .shipping import router as shipping_router
from .stores import router as stores_router

__all__ = [
    "addresses_router",
    "bids_router",
    "cart_router",
    "categories_router",
    "coupons_router",
    "feedback_router",
    "messages_router",
    "orders_router",
    "payments_router",
    "products_router",
    "returns_router",
    "reviews_router",
    "shipping_router",
    "stores_router",
]
