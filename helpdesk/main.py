"""FastAPI application entry point."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from helpdesk.api.v1.agent_router import router as agent_router
from helpdesk.api.v1.quick_reply_router import router as quick_reply_router
from helpdesk.api.v1.session_router import router as session_router
from helpdesk.api.v1.stats_router import router as stats_router
from helpdesk.core.config import settings
from helpdesk.core.database import Base, engine
from helpdesk.core.exceptions import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
)
from helpdesk.core.middleware import AuthMiddleware
from helpdesk.core.redis import close_redis, init_redis, redis_is_healthy
from helpdesk.schemas.response_schema import ApiResponse, success_response
from helpdesk.services.waiting_sweeper import run_waiting_sweeper

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.app.env,
        auto_assign=settings.support.auto_assign_on_start,
        waiting_timeout_seconds=settings.support.waiting_timeout_seconds,
    )
    await init_redis()
    if settings.app.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    sweeper: asyncio.Task[None] | None = None
    if settings.support.waiting_timeout_enabled:
        sweeper = asyncio.create_task(run_waiting_sweeper())

    yield

    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await close_redis()
    await engine.dispose()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app.name,
    description="Live customer support sessions between customers and agents",
    version=settings.app.version,
    lifespan=lifespan,
    debug=settings.app.debug,
)

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit.default],
    enabled=settings.rate_limit.enabled,
)
app.state.limiter = limiter


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Custom handler for rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "status": 429,
            "message": "Rate limit exceeded",
            "code": "RATE_LIMIT_EXCEEDED",
            "category": "rate_limit",
        },
    )


# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(
    RateLimitExceeded, rate_limit_exceeded_handler  # type: ignore[arg-type]
)
app.add_exception_handler(
    RequestValidationError, validation_exception_handler  # type: ignore[arg-type]
)

# Middleware (registration order: inner→outer, execution order: outer→inner)
app.add_middleware(AuthMiddleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=ApiResponse[dict])
async def health_check() -> dict:
    """Health check endpoint; reports degraded when Redis is unreachable."""
    redis_ok = await redis_is_healthy()
    return success_response(
        {
            "status": "healthy" if redis_ok else "degraded",
            "redis": "ok" if redis_ok else "unavailable",
        }
    )


@app.get("/", response_model=ApiResponse[dict])
async def root() -> dict:
    """Root endpoint."""
    return success_response(
        {
            "app": settings.app.name,
            "version": settings.app.version,
            "docs": "/docs",
        }
    )


# Register routers
app.include_router(session_router)
app.include_router(agent_router)
app.include_router(quick_reply_router)
app.include_router(stats_router)
