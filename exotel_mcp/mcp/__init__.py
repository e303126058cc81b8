"""MCP (Model Context Protocol) transport module.

This module contains components for the MCP Streamable HTTP transport:
- Tool definitions for tools/list
- JSON-RPC 2.0 helpers

The transport router lives in .transport (it depends on the API layer, so it
is not imported here).
"""

from .jsonrpc import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    is_notification,
    jsonrpc_error,
    jsonrpc_response,
    tool_result,
)
from .tool_defs import TOOL_DEFINITIONS, TOOL_NAMES

__all__ = [
    # Tool definitions
    "TOOL_DEFINITIONS",
    "TOOL_NAMES",
    # JSON-RPC helpers
    "jsonrpc_response",
    "jsonrpc_error",
    "is_notification",
    "tool_result",
    # Error codes
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
]
