"""
Bridge session endpoints.

A user signed in with the primary provider can mint a bridge cookie, which
then identifies them on requests that skip the provider (machine calls,
provider outages).
"""

from fastapi import APIRouter, Depends, Request, Response, status

from core.auth import current_active_user
from core.identity import CallerIdentity, encode_bridge_cookie, get_caller_identity
from db.users import User
from schemas.identity import CallerIdentityRead

router = APIRouter()


@router.get("", response_model=CallerIdentityRead)
async def read_bridge_identity(identity: CallerIdentity = Depends(get_caller_identity)):
    return CallerIdentityRead(user_id=identity.user_id, role=identity.role, source=identity.source)


@router.post("", response_model=CallerIdentityRead)
async def open_bridge_session(
    request: Request,
    response: Response,
    user: User = Depends(current_active_user),
):
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.bridge_cookie_name,
        value=encode_bridge_cookie(
            str(user.id),
            user.role,
            settings.auth_secret,
            settings.auth_token_lifetime_seconds,
        ),
        max_age=settings.auth_token_lifetime_seconds,
        httponly=True,
        samesite="lax",
    )
    return CallerIdentityRead(user_id=str(user.id), role=user.role, source="bridge")


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def close_bridge_session(request: Request):
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(request.app.state.settings.bridge_cookie_name)
    return response
