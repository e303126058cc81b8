"""Credential bundle parsing for Exotel Authorization headers.

Clients send a loosely structured Authorization header carrying the vendor
account fields, for example:

    Authorization: Bearer {'token':'abc123','from_number':'08000000000',
                           'account_sid':'ACC1','api_domain':'https://api.exotel.com'}

The header is parsed into an immutable CredentialBundle. Parsing never raises;
when the header is missing the result carries an AuthError alongside a default
bundle so the caller can decide whether to continue.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping

from ..config import settings

logger = logging.getLogger(__name__)

# Returned by the resolver when no header could be found anywhere
NO_CREDENTIAL = "default_auth_header"

# Token used when a parsed header carries no "token" field
DEFAULT_TOKEN = "default_token"

# Fields that map onto dedicated CredentialBundle attributes
KNOWN_FIELDS = (
    "token",
    "from_number",
    "caller_id",
    "api_domain",
    "account_sid",
    "exotel_portal_url",
    "auth_type",
)


class AuthScheme(StrEnum):
    """Authorization schemes understood by the vendor API."""

    BASIC = "Basic"
    BEARER = "Bearer"


class AuthError(Exception):
    """Raised (or reported) when no usable credential is available."""


@dataclass(frozen=True)
class CredentialBundle:
    """Structured form of a parsed Authorization header."""

    token: str
    token_md5: str
    from_number: str
    caller_id: str
    api_domain: str
    account_sid: str
    exotel_portal_url: str
    auth_type: AuthScheme = AuthScheme.BASIC
    extra: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def user_id(self) -> str:
        """Tenant identifier used to scope stored callback records."""
        return self.token_md5

    @property
    def authorization(self) -> str:
        """Outbound Authorization header value."""
        return f"{self.auth_type.value} {self.token}"

    def account_url(self, path: str) -> str:
        """Build a vendor URL under this account."""
        return f"{self.api_domain}/v1/Accounts/{self.account_sid}/{path.lstrip('/')}"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of parsing a header: always a bundle, optionally an error."""

    bundle: CredentialBundle
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def md5_hex(value: str | None) -> str:
    """Lowercase hex MD5 digest of a string."""
    if value is None:
        value = "default_input"
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def mask_secret(value: str | None) -> str:
    """Mask a token or header for logging."""
    if value is None:
        return "[NULL]"
    if not value.strip():
        return "[EMPTY]"
    if len(value) < 10:
        return "***"
    return f"{value[:6]}***{value[-4:]}"


def _build_bundle(fields: Mapping[str, str], scheme: AuthScheme) -> CredentialBundle:
    token = fields.get("token", DEFAULT_TOKEN)
    extra = {k: v for k, v in fields.items() if k not in KNOWN_FIELDS}
    return CredentialBundle(
        token=token,
        token_md5=md5_hex(token),
        from_number=fields.get("from_number", settings.default_from_number),
        caller_id=fields.get("caller_id", settings.default_caller_id),
        api_domain=fields.get("api_domain", settings.default_api_domain),
        account_sid=fields.get("account_sid", settings.default_account_sid),
        exotel_portal_url=fields.get("exotel_portal_url", settings.default_portal_url),
        auth_type=scheme,
        extra=MappingProxyType(extra),
    )


def default_credentials() -> CredentialBundle:
    """Default bundle with a timestamp-derived synthetic token."""
    token = f"{DEFAULT_TOKEN}_{int(time.time() * 1000)}"
    return _build_bundle({"token": token}, AuthScheme.BASIC)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def split_scheme(header: str) -> tuple[AuthScheme, str]:
    """Detect a leading scheme token and strip it."""
    value = header.strip()
    if value.startswith("Bearer "):
        return AuthScheme.BEARER, value[len("Bearer ") :]
    if value.startswith("Basic "):
        return AuthScheme.BASIC, value[len("Basic ") :]
    return AuthScheme.BASIC, value


def parse_auth_fields(blob: str) -> dict[str, str]:
    """Parse a JSON-ish blob into a flat dict of strings.

    Single quotes are rewritten to double quotes and a missing outer brace
    pair is added. Raises ValueError if the result is not a JSON object.
    """
    text = blob.strip()
    if "'" in text:
        text = text.replace("'", '"')
    if not text.startswith("{"):
        text = "{" + text + "}"
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError("Authorization payload is not a JSON object")
    return {str(k): _as_text(v) for k, v in parsed.items()}


def parse_auth_header(header: str | None) -> AuthResult:
    """Parse a raw Authorization header into a CredentialBundle.

    Args:
        header: Raw header value (scheme prefix optional)

    Returns:
        AuthResult whose bundle is always usable. The error is set only when
        the header was absent, so callers can reject the request instead of
        proceeding with default credentials.
    """
    if header is None or not header.strip() or header.strip() == NO_CREDENTIAL:
        logger.warning("Authorization header is missing, falling back to default credentials")
        return AuthResult(default_credentials(), AuthError("Authorization header is required"))

    scheme, blob = split_scheme(header)
    logger.debug(f"Parsing {scheme.value} authorization header: {mask_secret(header)}")

    try:
        fields = parse_auth_fields(blob)
    except (ValueError, RecursionError) as e:
        logger.warning(f"Authorization header is not JSON ({e}), using it as a raw token")
        return AuthResult(_build_bundle({"token": header.strip()}, scheme))

    if "token" not in fields:
        logger.warning("Authorization header has no token field, using default token")

    bundle = _build_bundle(fields, scheme)
    logger.debug(
        f"Parsed credentials: account_sid={bundle.account_sid}, api_domain={bundle.api_domain}, "
        f"from_number={bundle.from_number}, token={mask_secret(bundle.token)}"
    )
    return AuthResult(bundle)
