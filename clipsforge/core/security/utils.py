"""
Security Utilities

Request ID tracking, client identification, hashing, masking and
security event logging.
"""

import hashlib
import re
import secrets
from typing import Any, Dict, Optional

from starlette.requests import HTTPConnection

from clipsforge.config import logger
from clipsforge.core.security.constants import REQUEST_ID_HEADER

SENSITIVE_KEYS = frozenset({
    "token",
    "password",
    "secret",
    "key",
    "authorization",
    "signature",
})


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return secrets.token_hex(16)


def get_request_id(conn: HTTPConnection) -> str:
    """Reuse a well-formed inbound request ID, otherwise mint a new one."""
    request_id = conn.headers.get(REQUEST_ID_HEADER)
    if request_id and len(request_id) <= 64 and re.match(r"^[a-zA-Z0-9_-]+$", request_id):
        return request_id
    return generate_request_id()


def get_client_ip(conn: HTTPConnection) -> str:
    """First address of X-Forwarded-For, falling back to the socket peer."""
    forwarded = conn.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return conn.client.host if conn.client else "unknown"


def hash_token(token: str) -> str:
    """
    Short SHA-256 digest of a secret, safe to write to logs.

    Used for bearer tokens and Ayrshare profile keys.
    """
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def mask_sensitive_data(
    data: Dict[str, Any],
    sensitive_keys: frozenset = SENSITIVE_KEYS,
) -> Dict[str, Any]:
    """Replace values whose key looks secret with ``[REDACTED]`` (recursive)."""
    masked = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(s in key_lower for s in sensitive_keys):
            masked[key] = "[REDACTED]"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value, sensitive_keys)
        else:
            masked[key] = value
    return masked


def log_security_event(
    event_type: str,
    request: Optional[HTTPConnection] = None,
    user_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    level: str = "warning",
) -> None:
    """Log a security-relevant event with structured data."""
    log_data: Dict[str, Any] = {
        "security_event": event_type,
        "user_id": user_id,
    }

    if request is not None:
        log_data["client_ip"] = get_client_ip(request)
        log_data["path"] = str(request.url.path)
        # WebSocket connections have no method
        log_data["method"] = getattr(request, "method", "WEBSOCKET")
        log_data["request_id"] = getattr(request.state, "request_id", None) or get_request_id(request)

    if details:
        log_data["details"] = mask_sensitive_data(details)

    log_func = getattr(logger, level, logger.warning)
    log_func("Security event: %s | %s", event_type, log_data)
