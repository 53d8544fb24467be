"""FastAPI routers package."""

from .booking import router as booking_router
from .chat import router as chat_router
from .health import router as health_router
from .metrics import router as metrics_router
from .payment import router as payment_router
from .property import router as property_router

__all__ = [
    "booking_router",
    "chat_router",
    "health_router",
    "metrics_router",
    "payment_router",
    "property_router",
]
