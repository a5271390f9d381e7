from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.access import AccessGate
from core.auth import auth_backend, fastapi_users
from core.config import Settings, settings as default_settings
from core.identity import IdentityResolver
from core.logging import configure_logging
from core.tools import ToolDispatcher, validation_details
from db.database import create_db_and_tables
from routers.auth_bridge import router as auth_bridge_router
from routers.inventory import router as inventory_router
from routers.mcp import router as mcp_router
from schemas.users import UserRead, UserCreate, UserUpdate

logger = structlog.get_logger(__name__)

TOOL_ENDPOINT = "/api/mcp"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    yield


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title="Stock Locator API",
        description="Agent tools for finding nearby stock and reserving it",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.access_gate = AccessGate(settings)
    app.state.identity_resolver = IdentityResolver(settings)
    app.state.tool_dispatcher = ToolDispatcher(timeout_seconds=settings.tool_timeout_seconds)

    @app.middleware("http")
    async def access_gate_middleware(request: Request, call_next):
        decision = request.app.state.access_gate.authorize(request)
        if not decision.allowed:
            logger.warning("request denied", path=request.url.path, reason=decision.reason)
            return JSONResponse(
                status_code=401,
                content={"error": "Unauthorized: Invalid Internal System Key"},
            )
        request.state.access = decision
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Tool callers always get the {"error": ...} shape
        if request.url.path.rstrip("/") != TOOL_ENDPOINT:
            return await request_validation_exception_handler(request, exc)
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid request body", "details": validation_details(exc.errors())},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Authentication routes (fastapi-users), only with a provisioned provider
    if settings.auth_configured:
        app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
        app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
        app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

    # Agent tools and their support endpoints
    app.include_router(mcp_router, prefix=TOOL_ENDPOINT, tags=["tools"])
    app.include_router(auth_bridge_router, prefix="/api/auth/bridge", tags=["auth"])
    app.include_router(inventory_router, prefix="/api/inventory", tags=["inventory"])

    logger.info("app created", auth_configured=settings.auth_configured)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
