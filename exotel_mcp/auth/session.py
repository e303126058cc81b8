"""Session-scoped Authorization header resolution.

The transport layer publishes a RequestContext for every HTTP request through
a context variable, so tool code running inside that request sees the caller's
own header directly. Invocations that have no transport context (background
tasks, non-HTTP channels) fall back to the process-wide AuthHeaderStore.

The store is best-effort identity correlation, not an isolation boundary:
the global key, the marker scan and the last-known header can hand one
caller's credential to another caller's invocation. Each such fallback is
logged so that it shows up in operations.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

from .credentials import NO_CREDENTIAL, mask_secret

logger = logging.getLogger(__name__)

# Marker for session keys derived from the executing thread
THREAD_KEY_PREFIX = "MCP-"
# Well-known key shared by every captured MCP request
GLOBAL_KEY = "MCP-GLOBAL"


@dataclass(frozen=True)
class RequestContext:
    """Transport-level facts about the current inbound request."""

    session_id: str
    authorization: str | None = None
    request_id: str | None = None


_request_context: ContextVar[RequestContext | None] = ContextVar(
    "exotel_request_context", default=None
)


def current_request_context() -> RequestContext | None:
    """Return the RequestContext of the current request, if any."""
    return _request_context.get()


@contextmanager
def request_scope(ctx: RequestContext) -> Iterator[RequestContext]:
    """Publish a RequestContext for the duration of the block."""
    token = _request_context.set(ctx)
    try:
        yield ctx
    finally:
        _request_context.reset(token)


def thread_session_key() -> str:
    """Session key derived from the executing thread."""
    return f"{THREAD_KEY_PREFIX}{threading.get_ident()}"


def current_session_key() -> str:
    """Stable key identifying the current caller.

    Uses the transport session id when a request context exists, otherwise a
    thread-derived key carrying the MCP- marker. Never fails.
    """
    ctx = current_request_context()
    if ctx is not None and ctx.session_id:
        return ctx.session_id
    return thread_session_key()


class AuthHeaderStore:
    """Thread-safe mapping of session key to raw Authorization header.

    Entries live for the process lifetime and are never evicted, so the map
    grows by one key per distinct Mcp-Session-Id or client host seen on MCP
    traffic.
    """

    def __init__(self) -> None:
        self._headers: dict[str, str] = {}
        self._last_known: str | None = None
        self._lock = threading.Lock()

    def bind(self, session_key: str, header: str) -> None:
        """Store a header for a session key (last write wins)."""
        with self._lock:
            self._headers[session_key] = header
            self._last_known = header
        logger.debug(f"Bound Authorization header for session {session_key}: {mask_secret(header)}")

    def capture(self, session_key: str, header: str) -> None:
        """Bind a header under the session key and the MCP fallback keys."""
        with self._lock:
            self._headers[session_key] = header
            self._headers[thread_session_key()] = header
            self._headers[GLOBAL_KEY] = header
            self._last_known = header
        logger.info(f"Captured Authorization header for session {session_key}: {mask_secret(header)}")

    def get(self, session_key: str) -> str | None:
        with self._lock:
            return self._headers.get(session_key)

    def scan(self, prefix: str) -> tuple[str, str] | None:
        """First (key, header) whose key starts with prefix, in arbitrary order."""
        with self._lock:
            for key, header in self._headers.items():
                if key.startswith(prefix):
                    return key, header
        return None

    @property
    def last_known(self) -> str | None:
        return self._last_known

    def clear(self) -> None:
        with self._lock:
            self._headers.clear()
            self._last_known = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._headers)


_store = AuthHeaderStore()


def get_auth_store() -> AuthHeaderStore:
    """Process-wide AuthHeaderStore."""
    return _store


def resolve_auth_header(store: AuthHeaderStore | None = None) -> str:
    """Best available raw Authorization header for the current operation.

    Fallback chain, first hit wins:
        1. Header on the current transport request (also stored for the session)
        2. Header bound to the current session key
        3. For MCP- keys: the global key, then any other MCP- key
        4. The last known header
        5. The NO_CREDENTIAL sentinel

    Never raises.
    """
    if store is None:
        store = _store
    session_key = current_session_key()
    ctx = current_request_context()

    if ctx is not None and ctx.authorization and ctx.authorization.strip():
        store.bind(session_key, ctx.authorization)
        return ctx.authorization

    stored = store.get(session_key)
    if stored is not None:
        logger.debug(f"Using stored Authorization header for session {session_key}")
        return stored

    if session_key.startswith(THREAD_KEY_PREFIX):
        global_header = store.get(GLOBAL_KEY)
        if global_header is not None:
            logger.info(f"Using global MCP Authorization header for session {session_key}")
            return global_header

        found = store.scan(THREAD_KEY_PREFIX)
        if found is not None:
            key, header = found
            logger.info(f"Using Authorization header of session {key} for session {session_key}")
            return header

    last_known = store.last_known
    if last_known is not None:
        logger.info(f"Using last known Authorization header for session {session_key}")
        return last_known

    logger.warning(f"No Authorization header available for session {session_key}")
    return NO_CREDENTIAL
