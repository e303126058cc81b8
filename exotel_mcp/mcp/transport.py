"""MCP Streamable HTTP transport.

POST /mcp takes a JSON-RPC 2.0 request or batch and answers with JSON.
GET /mcp (and /sse) opens an event stream that announces the connection.

The caller's Authorization header is captured for the session by
AuthContextMiddleware before any of this runs; tools read it back through
the ExotelService.
"""

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from ..api.deps import get_exotel_service, sanitize_error_message
from ..services.exotel import ExotelService
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
from .tool_defs import TOOL_DEFINITIONS, required_arguments

logger = logging.getLogger(__name__)

router = APIRouter(tags=["MCP Transport"])

PROTOCOL_VERSION = "2025-06-18"
SERVER_INFO = {"name": "exotel-mcp-server", "version": "1.0.0"}
SESSION_HEADER = "Mcp-Session-Id"

ToolHandler = Callable[[ExotelService, dict], Awaitable[Any]]

TOOL_HANDLERS: dict[str, ToolHandler] = {
    "sendSmsToUser": lambda s, a: s.send_sms_to_user(
        a["toNumber"], a["message"], a["dltTemplateId"], a["dltEntityId"]
    ),
    "sendMessageToBulkNumbers": lambda s, a: s.send_message_to_bulk_numbers(
        a["toNumbers"], a["message"]
    ),
    "sendDynamicBulkSms": lambda s, a: s.send_dynamic_bulk_sms(a["messages"]),
    "sendVoiceCallToUser": lambda s, a: s.send_voice_call_to_user(a["toNumber"]),
    "outgoingCallToConnectNumber": lambda s, a: s.outgoing_call_to_connect_number(
        a["fromNumber"], a["toNumber"]
    ),
    "connectNumberToCallFlow": lambda s, a: s.connect_number_to_call_flow(
        a["appId"], a["fromNumber"]
    ),
    "getBulkCallDetails": lambda s, a: s.get_bulk_call_details(a["fromNumber"]),
    "getNumberMetadata": lambda s, a: s.get_number_metadata(a["number"]),
    "getSmsCallbacks": lambda s, a: s.get_sms_callbacks(a["phoneNumber"]),
    "getVoiceCallCallbacks": lambda s, a: s.get_voice_call_callbacks(a["phoneNumber"]),
    "getCallFlowCallbacks": lambda s, a: s.get_call_flow_callbacks(a["fromNumber"]),
    "searchVoiceCallbacksByNumber": lambda s, a: s.search_voice_callbacks_by_number(
        a["phoneNumber"]
    ),
    "getCallDetails": lambda s, a: s.get_call_details(a["callSid"]),
}


# ============ JSON-RPC DISPATCH ============


async def handle_message(message: Any, service: ExotelService) -> dict | None:
    """Handle a single JSON-RPC message. Returns None for notifications."""
    if not isinstance(message, dict) or not isinstance(message.get("method"), str):
        return jsonrpc_error(
            message.get("id") if isinstance(message, dict) else None,
            INVALID_REQUEST,
            "Invalid Request",
        )

    method = message["method"]
    if is_notification(message):
        logger.debug(f"Notification received: {method}")
        return None

    id = message["id"]
    params = message.get("params") or {}
    if not isinstance(params, dict):
        return jsonrpc_error(id, INVALID_PARAMS, "Invalid parameter: params must be an object")

    if method == "initialize":
        return jsonrpc_response(
            id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "serverInfo": SERVER_INFO,
                "capabilities": {"tools": {"listChanged": False}},
            },
        )
    elif method == "ping":
        return jsonrpc_response(id, {})
    elif method == "tools/list":
        return jsonrpc_response(id, {"tools": TOOL_DEFINITIONS})
    elif method == "tools/call":
        return await handle_call_tool(id, params, service)
    else:
        return jsonrpc_error(id, METHOD_NOT_FOUND, f"Method not found: {method}")


async def handle_call_tool(id: Any, params: dict, service: ExotelService) -> dict:
    """Handle MCP tools/call request."""
    tool_name = params.get("name")
    arguments = params.get("arguments") or {}

    handler = TOOL_HANDLERS.get(tool_name) if isinstance(tool_name, str) else None
    if handler is None:
        logger.warning(f"Unknown tool requested: {tool_name}")
        return jsonrpc_response(id, tool_result(f"Unknown tool: {tool_name}", is_error=True))

    if not isinstance(arguments, dict):
        return jsonrpc_error(id, INVALID_PARAMS, "Invalid parameter: arguments must be an object")

    missing = [name for name in required_arguments(tool_name) if arguments.get(name) is None]
    if missing:
        return jsonrpc_error(
            id, INVALID_PARAMS, f"Missing required argument(s) for {tool_name}: {', '.join(missing)}"
        )

    logger.info(f"Calling tool {tool_name}")
    try:
        payload = await handler(service, arguments)
    except Exception as e:
        logger.error(f"Tool {tool_name} failed: {e}", exc_info=True)
        return jsonrpc_response(id, tool_result(sanitize_error_message(e), is_error=True))

    return jsonrpc_response(id, tool_result(payload))


# ============ ENDPOINTS ============


@router.post("/mcp")
async def mcp_transport_endpoint(
    request: Request,
    service: ExotelService = Depends(get_exotel_service),
):
    """
    MCP Streamable HTTP endpoint (JSON-RPC format).

    Config example:
    ```json
    {"mcpServers": {"exotel": {"type": "http", "url": "http://localhost:8085/mcp",
      "headers": {"Authorization": "Bearer {\\"token\\": \\"...\\", \\"account_sid\\": \\"...\\"}"}}}}
    ```
    """
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(jsonrpc_error(None, PARSE_ERROR, "Parse error"), status_code=400)

    messages = body if isinstance(body, list) else [body]
    if not messages:
        return JSONResponse(jsonrpc_error(None, INVALID_REQUEST, "Invalid Request"), status_code=400)

    responses = []
    for message in messages:
        response = await handle_message(message, service)
        if response is not None:
            responses.append(response)

    headers = {}
    starts_session = any(
        isinstance(m, dict) and m.get("method") == "initialize" for m in messages
    )
    if starts_session and not request.headers.get(SESSION_HEADER):
        headers[SESSION_HEADER] = uuid.uuid4().hex

    if not responses:
        return Response(status_code=202, headers=headers)
    if isinstance(body, list):
        return JSONResponse(responses, headers=headers)
    return JSONResponse(responses[0], headers=headers)


async def _connection_events():
    yield f"data: {json.dumps({'type': 'connection_established'})}\n\n"


@router.get("/mcp")
@router.get("/sse")
async def mcp_sse_endpoint():
    """Server-sent event stream for MCP clients that open a GET channel."""
    return StreamingResponse(
        _connection_events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
