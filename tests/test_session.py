"""Tests for session keys and Authorization header resolution."""

import asyncio
import threading

import pytest

from exotel_mcp.auth.credentials import NO_CREDENTIAL
from exotel_mcp.auth.session import (
    GLOBAL_KEY,
    AuthHeaderStore,
    RequestContext,
    current_request_context,
    current_session_key,
    request_scope,
    resolve_auth_header,
)


@pytest.fixture
def store() -> AuthHeaderStore:
    return AuthHeaderStore()


def test_session_key_without_context_is_thread_derived():
    assert current_session_key() == f"MCP-{threading.get_ident()}"


def test_session_key_uses_transport_session():
    with request_scope(RequestContext(session_id="sess-1")):
        assert current_session_key() == "sess-1"
    assert current_request_context() is None


def test_transport_header_wins_and_is_bound(store):
    store.bind("sess-1", "Bearer old")

    with request_scope(RequestContext(session_id="sess-1", authorization="Bearer new")):
        assert resolve_auth_header(store) == "Bearer new"

    assert store.get("sess-1") == "Bearer new"
    assert store.last_known == "Bearer new"


def test_session_binding_used_when_request_has_no_header(store):
    store.bind("sess-2", "Basic bound")
    store.bind("other", "Basic other")

    with request_scope(RequestContext(session_id="sess-2")):
        assert resolve_auth_header(store) == "Basic bound"


def test_blank_transport_header_is_ignored(store):
    store.bind("sess-3", "Basic bound")

    with request_scope(RequestContext(session_id="sess-3", authorization="   ")):
        assert resolve_auth_header(store) == "Basic bound"


def test_mcp_key_falls_back_to_global(store):
    store.bind(GLOBAL_KEY, "Bearer global")
    store.bind("HTTP-10.0.0.1", "Bearer later")

    # No request context: thread key, which carries the MCP- marker
    assert resolve_auth_header(store) == "Bearer global"


def test_mcp_key_scans_other_mcp_keys(store):
    store.bind("MCP-someone-else", "Bearer theirs")
    store.bind("HTTP-10.0.0.1", "Bearer http")

    assert resolve_auth_header(store) == "Bearer theirs"


def test_non_mcp_key_skips_marker_fallbacks(store):
    store.bind("MCP-someone-else", "Bearer theirs")
    store.bind("HTTP-10.0.0.1", "Bearer last")

    with request_scope(RequestContext(session_id="HTTP-10.0.0.2")):
        assert resolve_auth_header(store) == "Bearer last"


def test_empty_store_returns_sentinel(store):
    assert resolve_auth_header(store) == NO_CREDENTIAL


def test_capture_binds_session_thread_and_global_keys(store):
    store.capture("sess-abc", "Bearer captured")

    assert store.get("sess-abc") == "Bearer captured"
    assert store.get(f"MCP-{threading.get_ident()}") == "Bearer captured"
    assert store.get(GLOBAL_KEY) == "Bearer captured"
    assert len(store) == 3


def test_clear(store):
    store.capture("sess-abc", "Bearer captured")
    store.clear()

    assert len(store) == 0
    assert store.last_known is None


@pytest.mark.asyncio
async def test_concurrent_tasks_see_their_own_context(store):
    async def resolve_in(session_id: str, header: str) -> str:
        with request_scope(RequestContext(session_id=session_id, authorization=header)):
            await asyncio.sleep(0)
            return resolve_auth_header(store)

    results = await asyncio.gather(
        resolve_in("sess-a", "Bearer a"),
        resolve_in("sess-b", "Bearer b"),
    )

    assert results == ["Bearer a", "Bearer b"]
