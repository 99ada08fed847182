"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.fs_common.errors import AppError
from src.fs_common.redis_client import close_redis, ping_redis
from src.fs_common.response import render_error
from src.fs_gateway.api.router import router as access_router
from src.fs_gateway.middleware.request_log import RequestLogMiddleware
from src.fs_gateway.middleware.session_context import SessionContextMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: check Redis. Shutdown: close the client."""
    # Unreachable Redis does not block startup; the gate answers per ACCESS_FAIL_OPEN
    await ping_redis()
    yield
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Last added runs first: RequestLog wraps SessionContext so every error carries a request_id
app.add_middleware(SessionContextMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return render_error(request, exc)


app.include_router(access_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
