"""Pydantic models for Exotel MCP Server request/response schemas."""

# ============ REQUEST MODELS ============
from .requests import BulkDynamicSmsRequest, BulkSmsRequest, MessageItem

# ============ RESPONSE MODELS ============
from .responses import CallbackAck, ErrorResponse, HealthResponse

__all__ = [
    # Requests
    "BulkDynamicSmsRequest",
    "BulkSmsRequest",
    "MessageItem",
    # Responses
    "CallbackAck",
    "ErrorResponse",
    "HealthResponse",
]
