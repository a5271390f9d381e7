"""
Caller identity resolution.

Order, first hit wins:
1. primary provider (fastapi-users JWT in the Authorization header)
2. bridge session cookie (JWT signed with AUTH_SECRET carrying
   ``{"user_id": ..., "role": ...}``)
3. anonymous

Provider failures and forged or malformed cookies never raise out of ``resolve``;
they degrade to the next source.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
import structlog
from fastapi import Request
from fastapi_users.jwt import decode_jwt, generate_jwt

from core.auth import TOKEN_AUDIENCE
from core.config import Settings

logger = structlog.get_logger(__name__)

SOURCE_PRIMARY = "primary"
SOURCE_BRIDGE = "bridge"
SOURCE_NONE = "none"

BRIDGE_AUDIENCE = ["app:bridge-session"]


@dataclass(frozen=True)
class CallerIdentity:
    user_id: Optional[str] = None
    role: Optional[str] = None
    source: str = SOURCE_NONE

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = CallerIdentity()


class IdentityProviderError(Exception):
    pass


class ProviderNotConfigured(IdentityProviderError):
    pass


class NoActiveSession(IdentityProviderError):
    pass


def _role_from_claims(claims: Dict[str, Any]) -> Optional[str]:
    metadata = claims.get("metadata")
    if not isinstance(metadata, dict):
        return None
    role = metadata.get("role")
    return str(role) if role is not None else None


class PrimaryIdentityProvider:
    """Verifies the bearer token issued by the fastapi-users JWT backend.

    Verification is stateless: signature, audience and expiry are checked
    against the configured secret, no database round trip.
    """

    def __init__(self, settings: Settings):
        self.configured = settings.auth_configured
        self.secret = settings.auth_secret

    async def authenticate(self, request: Request) -> Dict[str, Any]:
        if not self.configured:
            raise ProviderNotConfigured("primary identity provider is not configured")

        scheme, _, token = (request.headers.get("authorization") or "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise NoActiveSession("no bearer token")

        try:
            return decode_jwt(token.strip(), self.secret, TOKEN_AUDIENCE)
        except jwt.PyJWTError as e:
            raise NoActiveSession(f"invalid token: {e}") from e


def parse_bridge_cookie(raw: Optional[str], secret: Optional[str]) -> Optional[CallerIdentity]:
    """Verify and decode a bridge cookie, or None when it is absent, forged or malformed."""
    if not raw or not secret:
        return None
    try:
        payload = decode_jwt(raw, secret, BRIDGE_AUDIENCE)
    except jwt.PyJWTError as e:
        logger.warning("rejected bridge session cookie", reason=str(e))
        return None

    user_id = payload.get("user_id")
    if not isinstance(user_id, str) or not user_id:
        return None
    role = payload.get("role")
    return CallerIdentity(
        user_id=user_id,
        role=str(role) if role is not None else None,
        source=SOURCE_BRIDGE,
    )


def encode_bridge_cookie(
    user_id: str,
    role: Optional[str],
    secret: str,
    lifetime_seconds: Optional[int] = None,
) -> str:
    data = {"user_id": user_id, "role": role, "aud": BRIDGE_AUDIENCE}
    return generate_jwt(data, secret, lifetime_seconds)


class IdentityResolver:
    def __init__(self, settings: Settings, provider: Optional[PrimaryIdentityProvider] = None):
        self.cookie_name = settings.bridge_cookie_name
        self.bridge_secret = settings.auth_secret or None
        self.provider = provider or PrimaryIdentityProvider(settings)

    async def resolve(self, request: Request) -> CallerIdentity:
        try:
            claims = await self.provider.authenticate(request)
        except IdentityProviderError as e:
            logger.debug("primary identity skipped", reason=str(e))
        except Exception:
            logger.exception("primary identity provider failed")
        else:
            user_id = claims.get("sub")
            if user_id:
                return CallerIdentity(
                    user_id=str(user_id),
                    role=_role_from_claims(claims),
                    source=SOURCE_PRIMARY,
                )

        bridged = parse_bridge_cookie(request.cookies.get(self.cookie_name), self.bridge_secret)
        if bridged is not None:
            return bridged

        return ANONYMOUS


async def get_caller_identity(request: Request) -> CallerIdentity:
    """FastAPI dependency; resolves once per request and caches on request.state."""
    cached = getattr(request.state, "caller_identity", None)
    if cached is not None:
        return cached
    identity = await request.app.state.identity_resolver.resolve(request)
    request.state.caller_identity = identity
    return identity
