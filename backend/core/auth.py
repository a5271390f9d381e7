"""fastapi-users wiring for the primary identity provider (JWT bearer)."""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from fastapi_users.jwt import generate_jwt

from db.users import User, get_user_db

logger = structlog.get_logger(__name__)

TOKEN_AUDIENCE = ["fastapi-users:auth"]


class RoleClaimJWTStrategy(JWTStrategy):
    """JWT strategy that also publishes the user's role under ``metadata.role``."""

    async def write_token(self, user: User) -> str:
        data = {
            "sub": str(user.id),
            "aud": self.token_audience,
            "metadata": {"role": user.role},
        }
        return generate_jwt(data, self.encode_key, self.lifetime_seconds, algorithm=self.algorithm)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    def __init__(self, user_db, secret: str):
        super().__init__(user_db)
        self.reset_password_token_secret = secret
        self.verification_token_secret = secret

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("user registered", user_id=str(user.id))


async def get_user_manager(request: Request, user_db=Depends(get_user_db)):
    yield UserManager(user_db, request.app.state.settings.auth_secret)


def get_jwt_strategy(request: Request) -> JWTStrategy:
    settings = request.app.state.settings
    return RoleClaimJWTStrategy(
        secret=settings.auth_secret,
        lifetime_seconds=settings.auth_token_lifetime_seconds,
        token_audience=TOKEN_AUDIENCE,
    )


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")

auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)
