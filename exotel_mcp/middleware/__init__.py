"""Middleware for the Exotel MCP Server.

This package contains ASGI middleware components:
- AuthContextMiddleware: per-request auth context and header capture
- SecurityHeadersMiddleware: Adds security headers to responses
"""

from .auth_context import AuthContextMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = ["AuthContextMiddleware", "SecurityHeadersMiddleware"]
