"""Access gate: login check + fixed-window counter per endpoint (and per user).

Counter key:
    need_login=True  -> "<endpoint>_<nickname>"  (limit per user)
    need_login=False -> "<endpoint>"             (limit shared by all callers)

The window starts at the first hit (key created with TTL = policy.seconds)
and is never extended by later increments. Once the stored count reaches
max_count every request is denied until the key expires.

Two update modes:
    atomic=True   one Lua round-trip (CounterStore.incr_below); cannot overshoot.
    atomic=False  GET, then SET(1)/INCR. Two concurrent callers may both read
                  the same value, so the count can exceed max_count slightly,
                  but a count already >= max_count is never incremented.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from src.fs_access.counter_store import CounterStore
from src.fs_access.policy import AccessLimit
from src.fs_common.errors import AccessLimitReachedError, AppError, SessionError
from src.fs_common.keys import AccessKey
from src.fs_gateway.user.schemas import SessionUser

logger = logging.getLogger("fs.access")


class DenyReason(str, Enum):
    SESSION_ERROR = "SESSION_ERROR"
    ACCESS_LIMIT_REACHED = "ACCESS_LIMIT_REACHED"

    def to_error(self) -> AppError:
        if self is DenyReason.SESSION_ERROR:
            return SessionError()
        return AccessLimitReachedError()


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "GateDecision":
        return cls(allowed=False, reason=reason)


def counter_key(endpoint_key: str, policy: AccessLimit, user: SessionUser | None) -> str:
    if policy.need_login and user is not None:
        return f"{endpoint_key}_{user.nickname}"
    return endpoint_key


class AccessGate:
    """Stateless apart from the injected store; one instance per store."""

    def __init__(self, store: CounterStore, atomic: bool = True) -> None:
        self._store = store
        self._atomic = atomic

    async def evaluate(
        self,
        endpoint_key: str,
        policy: AccessLimit | None,
        user: SessionUser | None,
    ) -> GateDecision:
        if policy is None:
            return GateDecision.allow()

        if policy.need_login and user is None:
            logger.info("Access denied (no session): %s", endpoint_key)
            return GateDecision.deny(DenyReason.SESSION_ERROR)

        key = counter_key(endpoint_key, policy, user)
        prefix = AccessKey.with_expire(policy.seconds)

        if self._atomic:
            allowed = await self._store.incr_below(prefix, key, policy.max_count) is not None
        else:
            allowed = await self._check_then_incr(prefix, key, policy.max_count)

        if not allowed:
            logger.info(
                "Access limit reached: key=%s max_count=%d window=%ds",
                key,
                policy.max_count,
                policy.seconds,
            )
            return GateDecision.deny(DenyReason.ACCESS_LIMIT_REACHED)
        return GateDecision.allow()

    async def _check_then_incr(self, prefix: AccessKey, key: str, max_count: int) -> bool:
        count = await self._store.get(prefix, key)
        if count is None:
            await self._store.set(prefix, key, 1)
            return True
        if count < max_count:
            await self._store.incr(prefix, key)
            return True
        return False
