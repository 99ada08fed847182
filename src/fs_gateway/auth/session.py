"""Session token lookup.

A session is a SessionUser serialized as JSON under UserKey:tk<token>.
Every successful lookup re-writes the entry with a fresh TTL, so active
users stay logged in (sliding expiry).

The token travels as a query parameter or a cookie with the same name; the
query parameter wins when both are present and non-empty.
"""

import logging
import uuid

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError
from starlette.requests import Request

from config.settings import settings
from src.fs_common.errors import StoreUnavailableError
from src.fs_common.keys import UserKey
from src.fs_gateway.user.schemas import SessionUser

logger = logging.getLogger("fs.session")


def token_from_request(request: Request, name: str = settings.TOKEN_NAME) -> str | None:
    param_token = request.query_params.get(name)
    if param_token:
        return param_token
    cookie_token = request.cookies.get(name)
    if cookie_token:
        return cookie_token
    return None


class SessionService:
    def __init__(
        self,
        redis: aioredis.Redis,
        expire_seconds: int = settings.SESSION_EXPIRE_SECONDS,
    ) -> None:
        self._redis = redis
        self._prefix = UserKey.token(expire_seconds)

    async def get_by_token(self, token: str | None) -> SessionUser | None:
        """Return the session user for `token` and slide its expiry, or None."""
        if not token:
            return None
        key = self._prefix.real_key(token)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise StoreUnavailableError("Session store unavailable") from exc
        if raw is None:
            return None

        try:
            user = SessionUser.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed session payload for key=%s", key)
            return None

        # Extend the session on every authenticated request
        await self._save(key, raw)
        return user

    async def create(self, user: SessionUser) -> str:
        """Issue a new token for `user` and store the session."""
        token = uuid.uuid4().hex
        await self._save(self._prefix.real_key(token), user.model_dump_json())
        return token

    async def _save(self, key: str, payload: str) -> None:
        try:
            await self._redis.set(key, payload, ex=self._prefix.expire_seconds)
        except RedisError as exc:
            raise StoreUnavailableError("Session store unavailable") from exc
