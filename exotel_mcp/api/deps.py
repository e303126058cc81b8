"""FastAPI dependency injection functions.

This module contains shared dependencies for API and MCP endpoints:
- The process-wide ExotelService and its collaborators
- Error sanitization
"""

import logging

from ..auth.credentials import AuthError
from ..auth.session import get_auth_store
from ..services.callbacks import CallbackStore
from ..services.exotel import ExotelService
from ..vendor.cache import MetadataCache
from ..vendor.client import VendorClient
from ..config import settings

logger = logging.getLogger(__name__)

_service: ExotelService | None = None


# ============ SERVICE ============


def get_exotel_service() -> ExotelService:
    """Get or create the shared ExotelService.

    The vendor client's connection pool is created on first use and closed
    by close_exotel_service() at shutdown.
    """
    global _service
    if _service is None:
        _service = ExotelService(
            client=VendorClient(),
            cache=MetadataCache(
                sweep_threshold=settings.metadata_cache_sweep_threshold,
                max_entries=settings.metadata_cache_max_entries,
            ),
            callbacks=CallbackStore(),
            store=get_auth_store(),
            settings=settings,
        )
        logger.info(f"Exotel service created (callback id {_service.callback_id})")
    return _service


async def close_exotel_service() -> None:
    global _service
    if _service is not None:
        await _service.drain()
        await _service.client.aclose()
        _service = None


# ============ ERROR SANITIZATION ============


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize error messages to prevent information disclosure.

    Returns a generic message for unexpected errors while preserving
    useful information for known error types.
    """
    if isinstance(error, AuthError):
        return str(error)

    error_str = str(error)

    # Known safe error patterns that can be returned to client
    safe_patterns = [
        "Authorization header is required",
        "Unknown tool",
        "Missing required argument",
        "Invalid parameter",
        "No callback data provided",
    ]

    for pattern in safe_patterns:
        if pattern.lower() in error_str.lower():
            return error_str

    # Log the actual error for debugging
    logger.error(f"Request error: {error}", exc_info=True)

    return "An internal error occurred. Please try again later."
