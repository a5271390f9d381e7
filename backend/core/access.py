"""
Request gating for the tool namespace (``/api``).

Two modes, fixed at startup by ``Settings.auth_configured``:

- provider unconfigured: every ``/api`` request needs the shared secret in
  ``x-internal-system-key``, except public routes and webhooks.
- provider configured: public routes pass untouched; a valid secret on an
  ``/api`` route marks the call as trusted. A missing secret is not a denial
  here, route handlers decide what an untrusted caller may do.
"""

import hmac
import re
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import HTTPException, Request, status

from core.config import Settings

logger = structlog.get_logger(__name__)

INTERNAL_KEY_HEADER = "x-internal-system-key"

TOOL_NAMESPACE_PREFIX = "/api"
WEBHOOK_PREFIX = "/api/webhooks"

PUBLIC_ROUTE_PATTERNS = [
    r"/",
    r"/shop.*",
    r"/search.*",
    r"/inventory.*",
    r"/admin.*",
    r"/api/auth/bridge",
    r"/api/inventory/sync",
]
_PUBLIC_ROUTES = [re.compile(p) for p in PUBLIC_ROUTE_PATTERNS]


def is_public_route(path: str) -> bool:
    return any(p.fullmatch(path) for p in _PUBLIC_ROUTES)


def is_tool_route(path: str) -> bool:
    return path == TOOL_NAMESPACE_PREFIX or path.startswith(TOOL_NAMESPACE_PREFIX + "/")


def is_webhook_route(path: str) -> bool:
    return path == WEBHOOK_PREFIX or path.startswith(WEBHOOK_PREFIX + "/")


def secrets_match(presented: Optional[str], expected: Optional[str]) -> bool:
    """Exact byte comparison; an empty value on either side never matches."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    # Caller proved machine identity with the shared secret.
    trusted: bool = False
    reason: Optional[str] = None


ALLOW = GateDecision(allowed=True)
ALLOW_TRUSTED = GateDecision(allowed=True, trusted=True)


class AccessGate:
    def __init__(self, settings: Settings):
        self.provider_configured = settings.auth_configured
        self.internal_key = settings.internal_system_key

    def authorize(self, request: Request) -> GateDecision:
        return self.check(request.url.path, request.headers.get(INTERNAL_KEY_HEADER))

    def check(self, path: str, presented_key: Optional[str]) -> GateDecision:
        has_secret = secrets_match(presented_key, self.internal_key)

        if is_public_route(path):
            return ALLOW_TRUSTED if has_secret else ALLOW
        if not is_tool_route(path) or is_webhook_route(path):
            return ALLOW
        if has_secret:
            return ALLOW_TRUSTED
        if self.provider_configured:
            return ALLOW

        reason = "missing internal system key" if not presented_key else "invalid internal system key"
        return GateDecision(allowed=False, reason=reason)


def require_internal_key(request: Request) -> None:
    """Route-level re-check for endpoints the gate lets through as public."""
    expected = request.app.state.settings.internal_system_key
    if not secrets_match(request.headers.get(INTERNAL_KEY_HEADER), expected):
        logger.warning("internal key rejected", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal system key",
        )
