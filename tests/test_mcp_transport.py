"""Tests for the MCP Streamable HTTP transport."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from exotel_mcp.api.deps import get_exotel_service
from exotel_mcp.auth.session import GLOBAL_KEY, get_auth_store
from exotel_mcp.mcp.tool_defs import TOOL_DEFINITIONS
from exotel_mcp.server import app

AUTH = 'Bearer {"token":"tok-123","account_sid":"ACC","from_number":"08000000000"}'


@pytest.fixture
def client(service):
    app.dependency_overrides[get_exotel_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def rpc(method: str, params: dict | None = None, id: int | None = 1) -> dict:
    message = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    if id is not None:
        message["id"] = id
    return message


def test_initialize_issues_session_id(client):
    response = client.post("/mcp", json=rpc("initialize", {"protocolVersion": "2025-06-18"}))

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["protocolVersion"] == "2025-06-18"
    assert result["serverInfo"]["name"] == "exotel-mcp-server"
    assert "tools" in result["capabilities"]
    assert response.headers["Mcp-Session-Id"]


def test_tools_list(client):
    response = client.post("/mcp", json=rpc("tools/list"))

    tools = response.json()["result"]["tools"]
    assert len(tools) == len(TOOL_DEFINITIONS)
    assert {"sendSmsToUser", "getNumberMetadata", "getCallDetails"} <= {t["name"] for t in tools}


def test_ping(client):
    assert client.post("/mcp", json=rpc("ping")).json() == {"jsonrpc": "2.0", "id": 1, "result": {}}


def test_tools_call_uses_captured_authorization(client, vendor):
    vendor.handler = lambda request: httpx.Response(200, json={"Numbers": {"Sid": "N1"}})

    response = client.post(
        "/mcp",
        json=rpc("tools/call", {"name": "getNumberMetadata", "arguments": {"number": "09876543210"}}),
        headers={"Authorization": AUTH, "Mcp-Session-Id": "s1"},
    )

    result = response.json()["result"]
    assert result["isError"] is False
    assert json.loads(result["content"][0]["text"]) == {"Numbers": {"Sid": "N1"}}
    assert vendor.requests[0].headers["Authorization"] == "Bearer tok-123"
    assert vendor.requests[0].url.path == "/v1/Accounts/ACC/Numbers/09876543210"

    store = get_auth_store()
    assert store.get("s1") == AUTH
    assert store.get(GLOBAL_KEY) == AUTH


def test_dict_results_are_serialized_as_text(client, fake_db):
    response = client.post(
        "/mcp",
        json=rpc("tools/call", {"name": "getSmsCallbacks", "arguments": {"phoneNumber": "9876543210"}}),
        headers={"Authorization": AUTH},
    )

    payload = json.loads(response.json()["result"]["content"][0]["text"])
    assert payload["search_info"]["formatted_number"] == "09876543210"
    assert payload["status_data"] == []


def test_unknown_tool_is_error_result(client):
    response = client.post("/mcp", json=rpc("tools/call", {"name": "noSuchTool", "arguments": {}}))

    result = response.json()["result"]
    assert result["isError"] is True
    assert "Unknown tool: noSuchTool" in result["content"][0]["text"]


def test_missing_arguments_are_invalid_params(client):
    response = client.post(
        "/mcp", json=rpc("tools/call", {"name": "sendSmsToUser", "arguments": {"toNumber": "1"}})
    )

    error = response.json()["error"]
    assert error["code"] == -32602
    assert "message" in error["message"]


def test_unknown_method(client):
    error = client.post("/mcp", json=rpc("prompts/list")).json()["error"]

    assert error["code"] == -32601


def test_parse_error(client):
    response = client.post(
        "/mcp", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32700


def test_notification_gets_no_body(client):
    response = client.post("/mcp", json=rpc("notifications/initialized", id=None))

    assert response.status_code == 202
    assert response.content == b""


def test_batch_skips_notifications(client):
    response = client.post(
        "/mcp",
        json=[rpc("ping", id=1), rpc("notifications/initialized", id=None), rpc("tools/list", id=2)],
    )

    body = response.json()
    assert [item["id"] for item in body] == [1, 2]


def test_invalid_request(client):
    response = client.post("/mcp", json=[42])

    assert response.json()[0]["error"]["code"] == -32600


def test_sse_handshake(client):
    response = client.get("/mcp")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert 'data: {"type": "connection_established"}' in response.text
