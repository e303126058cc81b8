"""Authorization header capture, resolution and parsing."""

from .credentials import (
    NO_CREDENTIAL,
    AuthError,
    AuthResult,
    AuthScheme,
    CredentialBundle,
    default_credentials,
    mask_secret,
    md5_hex,
    parse_auth_header,
)
from .session import (
    GLOBAL_KEY,
    THREAD_KEY_PREFIX,
    AuthHeaderStore,
    RequestContext,
    current_request_context,
    current_session_key,
    get_auth_store,
    request_scope,
    resolve_auth_header,
)

__all__ = [
    # Credentials
    "NO_CREDENTIAL",
    "AuthError",
    "AuthResult",
    "AuthScheme",
    "CredentialBundle",
    "default_credentials",
    "mask_secret",
    "md5_hex",
    "parse_auth_header",
    # Session resolution
    "GLOBAL_KEY",
    "THREAD_KEY_PREFIX",
    "AuthHeaderStore",
    "RequestContext",
    "current_request_context",
    "current_session_key",
    "get_auth_store",
    "request_scope",
    "resolve_auth_header",
]
