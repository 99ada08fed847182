"""FastAPI dependency that runs the AccessGate for the routed endpoint.

Attach once per router:
    router = APIRouter(dependencies=[Depends(enforce_access_limit)])

Runs after SessionContextMiddleware has put the session user in the request
context and before the endpoint's own dependencies. Denials raise
SessionError (401) / AccessLimitReachedError (429), rendered by the app's
AppError handler.

Redis failures raise StoreUnavailableError. fail_open=False (default)
answers 503; True logs the failure and lets the request through unlimited.
Tests swap the guard with app.dependency_overrides[enforce_access_limit].
"""

import logging
from collections.abc import Mapping
from typing import Any

from starlette.requests import Request

from config.settings import settings
from src.fs_access.counter_store import RedisCounterStore
from src.fs_access.gate import AccessGate
from src.fs_access.policy import PolicyRegistry
from src.fs_access.user_context import get_user
from src.fs_common.errors import StoreUnavailableError
from src.fs_common.redis_client import get_redis

logger = logging.getLogger("fs.access")


class AccessLimitGuard:
    def __init__(
        self,
        gate: AccessGate | None = None,
        fail_open: bool = settings.ACCESS_FAIL_OPEN,
        atomic: bool = settings.ACCESS_ATOMIC_COUNTER,
        extra_limits: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self._gate = gate
        self._fail_open = fail_open
        self._atomic = atomic
        self._extra_limits = settings.ACCESS_LIMITS if extra_limits is None else extra_limits
        self._registry: PolicyRegistry | None = None

    async def __call__(self, request: Request) -> None:
        policy = self._policies(request).resolve(request.scope)
        if policy is None:
            return

        try:
            gate = await self._get_gate()
            decision = await gate.evaluate(request.url.path, policy, get_user())
        except StoreUnavailableError as exc:
            if not self._fail_open:
                logger.exception("Rejecting %s: %s", request.url.path, exc.message)
                raise
            logger.error("Access gate failed, passing %s unlimited", request.url.path)
            return

        if not decision.allowed and decision.reason is not None:
            raise decision.reason.to_error()

    def _policies(self, request: Request) -> PolicyRegistry:
        if self._registry is None:
            registry = PolicyRegistry.for_app(request.app)
            registry.register_many(self._extra_limits)
            logger.info("Access limits declared on %d endpoint(s)/path(s)", len(registry))
            self._registry = registry
        return self._registry

    async def _get_gate(self) -> AccessGate:
        if self._gate is None:
            self._gate = AccessGate(RedisCounterStore(await get_redis()), atomic=self._atomic)
        return self._gate


enforce_access_limit = AccessLimitGuard()
