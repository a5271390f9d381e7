"""Agent tool endpoint: GET returns tool metadata, POST invokes a tool."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.identity import CallerIdentity, get_caller_identity
from core.tools import ToolError, tool_metadata
from db.database import get_async_session
from schemas.tools import ToolCall

logger = structlog.get_logger(__name__)

router = APIRouter()


async def require_tool_caller(
    request: Request,
    identity: CallerIdentity = Depends(get_caller_identity),
) -> CallerIdentity:
    """Callers need the shared secret (checked by the gate) or a resolved identity."""
    access = getattr(request.state, "access", None)
    if (access is not None and access.trusted) or identity.is_authenticated:
        return identity
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
    )


@router.get("")
async def get_tools():
    return tool_metadata()


@router.post("")
async def invoke_tool(
    call: ToolCall,
    request: Request,
    caller: CallerIdentity = Depends(require_tool_caller),
    db: AsyncSession = Depends(get_async_session),
):
    structlog.contextvars.bind_contextvars(tool=call.tool, caller_source=caller.source)
    try:
        result = await request.app.state.tool_dispatcher.dispatch(db, call.tool, call.params)
    except ToolError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_response())
    finally:
        structlog.contextvars.unbind_contextvars("tool", "caller_source")
    return result.to_response()
