"""Session middleware: resolve the session user and hold it for the request.

Per request:
  1. Resolve the session user from the `token` query param or cookie.
  2. Hold the user in the request context (src.fs_access.user_context) so
     the access-limit dependency and handlers read it without another
     Redis lookup.
  3. Clear the request context, whatever happened downstream.

Rate limiting itself runs later, in the enforce_access_limit dependency
(src.fs_gateway.auth.access_limit), where the routed endpoint is known.

A Redis failure during lookup raises StoreUnavailableError.
ACCESS_FAIL_OPEN=False (default) answers 503; True logs the failure and
continues as an anonymous request.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings
from src.fs_access.user_context import user_scope
from src.fs_common.errors import StoreUnavailableError
from src.fs_common.redis_client import get_redis
from src.fs_common.response import render_error
from src.fs_gateway.auth.session import SessionService, token_from_request

logger = logging.getLogger("fs.access")


class SessionContextMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        sessions: SessionService | None = None,
        fail_open: bool = settings.ACCESS_FAIL_OPEN,
    ) -> None:
        super().__init__(app)
        self._sessions = sessions
        self._fail_open = fail_open

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            sessions = await self._get_sessions()
            user = await sessions.get_by_token(token_from_request(request))
        except StoreUnavailableError as exc:
            if not self._fail_open:
                # Middleware sits outside FastAPI's exception handlers
                logger.exception("Rejecting %s: %s", request.url.path, exc.message)
                return render_error(request, exc)
            logger.error("Session lookup failed, treating %s as anonymous", request.url.path)
            user = None

        with user_scope(user):
            return await call_next(request)

    async def _get_sessions(self) -> SessionService:
        if self._sessions is None:
            self._sessions = SessionService(await get_redis())
        return self._sessions
