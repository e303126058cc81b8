"""MCP Tool Definitions for the Exotel gateway.

This module contains all tool definitions returned by the tools/list method.
Each tool definition includes the schema for its input parameters.

Tool Categories:
    - SMS: sendSmsToUser, sendMessageToBulkNumbers, sendDynamicBulkSms
    - Voice: sendVoiceCallToUser, outgoingCallToConnectNumber, connectNumberToCallFlow
    - Vendor lookups: getBulkCallDetails, getNumberMetadata
    - Status callbacks: getSmsCallbacks, getVoiceCallCallbacks, getCallFlowCallbacks,
      searchVoiceCallbacksByNumber, getCallDetails

Authentication is never a tool argument: it comes from the Authorization
header of the MCP session.
"""

_AUTH_NOTE = "Authentication is handled automatically from the session."

_PHONE = {"type": "string", "description": "Phone number, e.g. +919876543210 or 09876543210"}

TOOL_DEFINITIONS: list[dict] = [
    # ============ SMS Tools ============
    {
        "name": "sendSmsToUser",
        "description": (
            "Send an SMS message to a single user using DLT-compliant parameters. "
            f"Requires phone number, DLT template ID, DLT entity ID, and message content. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "toNumber": _PHONE,
                "message": {"type": "string", "description": "SMS body"},
                "dltTemplateId": {"type": "string", "description": "DLT template ID"},
                "dltEntityId": {"type": "string", "description": "DLT entity ID"},
            },
            "required": ["toNumber", "message", "dltTemplateId", "dltEntityId"],
        },
    },
    {
        "name": "sendMessageToBulkNumbers",
        "description": (
            "Send same SMS to multiple phone numbers at once. "
            f"Requires phone numbers list and message. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "toNumbers": {"type": "array", "items": {"type": "string"}, "minItems": 1},
                "message": {"type": "string", "description": "SMS body"},
            },
            "required": ["toNumbers", "message"],
        },
    },
    {
        "name": "sendDynamicBulkSms",
        "description": (
            "Send dynamic SMS to multiple numbers in one request. Each message can have "
            f"different content. Requires list of messages with Body and To fields. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "messages": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "object",
                        "properties": {
                            "Body": {"type": "string"},
                            "To": {"type": "string"},
                        },
                        "required": ["Body", "To"],
                    },
                },
            },
            "required": ["messages"],
        },
    },
    # ============ Voice Tools ============
    {
        "name": "sendVoiceCallToUser",
        "description": (
            "Initiates a voice call to the specified user number using a fixed source number. "
            f"Requires phone number. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"toNumber": _PHONE},
            "required": ["toNumber"],
        },
    },
    {
        "name": "outgoingCallToConnectNumber",
        "description": (
            "Initiates an outgoing voice call from a specified number to a target number. "
            f"Requires from number and to number. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"fromNumber": _PHONE, "toNumber": _PHONE},
            "required": ["fromNumber", "toNumber"],
        },
    },
    {
        "name": "connectNumberToCallFlow",
        "description": (
            "Initiate a voice call to connect a number to a predefined call flow using the "
            f"provided app ID. Requires app ID and from number. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "appId": {"type": "string", "description": "Call flow (app) ID"},
                "fromNumber": _PHONE,
            },
            "required": ["appId", "fromNumber"],
        },
    },
    # ============ Vendor Lookups ============
    {
        "name": "getBulkCallDetails",
        "description": f"Fetch bulk voice call details based on passed from number. Requires from number. {_AUTH_NOTE}",
        "inputSchema": {
            "type": "object",
            "properties": {"fromNumber": _PHONE},
            "required": ["fromNumber"],
        },
    },
    {
        "name": "getNumberMetadata",
        "description": (
            "Retrieve metadata details for a given phone number with caching for better "
            f"performance. Requires phone number. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"number": _PHONE},
            "required": ["number"],
        },
    },
    # ============ Status Callback Lookups ============
    {
        "name": "getSmsCallbacks",
        "description": (
            "Fetch all SMS callback with status records from the database for the given user "
            f"and phone number. Requires phone number. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"phoneNumber": _PHONE},
            "required": ["phoneNumber"],
        },
    },
    {
        "name": "getVoiceCallCallbacks",
        "description": (
            "Fetch all voice call callback with status records for the given phone number. "
            f"Searches in BOTH to_number OR from_number. Requires phone number. {_AUTH_NOTE}"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"phoneNumber": _PHONE},
            "required": ["phoneNumber"],
        },
    },
    {
        "name": "getCallFlowCallbacks",
        "description": f"Fetch voice call callback records placed from the given number. {_AUTH_NOTE}",
        "inputSchema": {
            "type": "object",
            "properties": {"fromNumber": _PHONE},
            "required": ["fromNumber"],
        },
    },
    {
        "name": "searchVoiceCallbacksByNumber",
        "description": (
            "Search voice callbacks by phone number in BOTH to_number OR from_number "
            "(limited results, readable summary)"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"phoneNumber": _PHONE},
            "required": ["phoneNumber"],
        },
    },
    {
        "name": "getCallDetails",
        "description": "Get detailed information for a specific CallSid",
        "inputSchema": {
            "type": "object",
            "properties": {"callSid": {"type": "string", "description": "Call SID"}},
            "required": ["callSid"],
        },
    },
]

TOOL_NAMES: frozenset[str] = frozenset(tool["name"] for tool in TOOL_DEFINITIONS)


def required_arguments(tool_name: str) -> list[str]:
    for tool in TOOL_DEFINITIONS:
        if tool["name"] == tool_name:
            return list(tool["inputSchema"].get("required", []))
    return []
