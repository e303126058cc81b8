"""REST API routers and shared dependencies."""

from .deps import close_exotel_service, get_exotel_service, sanitize_error_message
from .routes import router, webhooks

__all__ = [
    "close_exotel_service",
    "get_exotel_service",
    "router",
    "sanitize_error_message",
    "webhooks",
]
