"""Shared test fixtures."""

from collections.abc import AsyncGenerator, Callable, Mapping
from typing import Any

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from src.fs_access.gate import AccessGate
from src.fs_common.errors import AppError
from src.fs_common.response import render_error
from src.fs_gateway.api.router import router as access_router
from src.fs_gateway.auth.access_limit import AccessLimitGuard, enforce_access_limit
from src.fs_gateway.middleware.request_log import RequestLogMiddleware
from src.fs_gateway.middleware.session_context import SessionContextMiddleware
from tests.fakes import ALICE, BOB, FakeSessions, InMemoryCounterStore


@pytest.fixture
def store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions({"tok-alice": ALICE, "tok-bob": BOB})


@pytest.fixture
def make_app(
    store: InMemoryCounterStore, sessions: FakeSessions
) -> Callable[..., FastAPI]:
    """Build an app wired like src.main but with in-memory collaborators."""

    def _make(
        gate: AccessGate | None = None,
        session_service: Any = None,
        fail_open: bool = False,
        extra_limits: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> FastAPI:
        app = FastAPI()
        app.add_middleware(
            SessionContextMiddleware,
            sessions=session_service or sessions,
            fail_open=fail_open,
        )
        app.add_middleware(RequestLogMiddleware)

        @app.exception_handler(AppError)
        async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
            return render_error(request, exc)

        app.include_router(access_router, prefix="/api/v1")
        app.dependency_overrides[enforce_access_limit] = AccessLimitGuard(
            gate=gate or AccessGate(store),
            fail_open=fail_open,
            extra_limits=extra_limits or {},
        )
        return app

    return _make


@pytest.fixture
async def client(make_app: Callable[..., FastAPI]) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the in-memory wired app."""
    transport = ASGITransport(app=make_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
