"""JSON-RPC 2.0 helpers for MCP transport.

This module provides utility functions for creating JSON-RPC 2.0
responses, errors and MCP tool results.

See: https://www.jsonrpc.org/specification
"""

import json
from typing import Any

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


def jsonrpc_response(id: Any, result: Any) -> dict:
    """Create a JSON-RPC 2.0 success response.

    Args:
        id: Request ID (must match the request)
        result: The result payload

    Returns:
        JSON-RPC 2.0 response dict
    """
    return {"jsonrpc": "2.0", "id": id, "result": result}


def jsonrpc_error(id: Any, code: int, message: str) -> dict:
    """Create a JSON-RPC 2.0 error response.

    Args:
        id: Request ID (can be None for parse errors)
        code: Error code (negative integer)
        message: Human-readable error message

    Returns:
        JSON-RPC 2.0 error response dict
    """
    return {"jsonrpc": "2.0", "id": id, "error": {"code": code, "message": message}}


def is_notification(message: Any) -> bool:
    """A request without an id expects no response."""
    return isinstance(message, dict) and "id" not in message


def tool_result(payload: Any, is_error: bool = False) -> dict:
    """Wrap a tool's return value as MCP text content.

    Strings pass through unchanged; anything else is serialized as JSON.
    """
    text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    return {"content": [{"type": "text", "text": text}], "isError": is_error}
