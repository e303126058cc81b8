"""Request context middleware.

Binds every HTTP request to a RequestContext (session id, Authorization
header, request id) for the duration of the request, and records the
Authorization header of MCP traffic in the process-wide AuthHeaderStore so
later tool calls on the same session can find it.
"""

import logging

from ..auth.session import (
    AuthHeaderStore,
    RequestContext,
    get_auth_store,
    request_scope,
)

logger = logging.getLogger(__name__)

MCP_PATH_PREFIXES = ("/mcp", "/sse")
SESSION_HEADER = b"mcp-session-id"


def is_mcp_path(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in MCP_PATH_PREFIXES)


def session_id_for(headers: dict[bytes, bytes], client: tuple | None) -> str:
    """Session key for a transport request.

    The Mcp-Session-Id header, else "HTTP-<client host>". These keys never
    carry the MCP- marker, which is reserved for invocations with no
    transport context.
    """
    session_header = headers.get(SESSION_HEADER, b"").decode("latin-1").strip()
    host = client[0] if client else "unknown"
    return session_header or f"HTTP-{host}"


class AuthContextMiddleware:
    """
    Run each HTTP request inside a request_scope.

    Uses pure ASGI middleware pattern like SecurityHeadersMiddleware so
    streaming responses keep the context for their whole lifetime.
    """

    def __init__(self, app, store: AuthHeaderStore | None = None):
        self.app = app
        self.store = store

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        headers = dict(scope.get("headers", []))
        raw_auth = headers.get(b"authorization")
        authorization = raw_auth.decode("latin-1") if raw_auth else None
        session_id = session_id_for(headers, scope.get("client"))
        request_id = scope.get("state", {}).get("request_id")

        if authorization and authorization.strip() and is_mcp_path(path):
            store = self.store if self.store is not None else get_auth_store()
            store.capture(session_id, authorization)
        elif is_mcp_path(path):
            logger.debug(f"No Authorization header on {path} for session {session_id}")

        ctx = RequestContext(
            session_id=session_id,
            authorization=authorization,
            request_id=request_id,
        )
        with request_scope(ctx):
            await self.app(scope, receive, send)
