"""Redis key namespaces.

Every stored key is `<ClassName>:<prefix><key>`, e.g.
    AccessKey:access/api/v1/seckill/path_alice
    UserKey:tk3f9a...

expire_seconds = 0 means "no expiry".
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class KeyPrefix:
    prefix: str
    expire_seconds: int = 0

    @property
    def namespace(self) -> str:
        return f"{type(self).__name__}:{self.prefix}"

    def real_key(self, key: str) -> str:
        return f"{self.namespace}{key}"


class AccessKey(KeyPrefix):
    """Counter keys for per-endpoint access limiting."""

    @classmethod
    def with_expire(cls, expire_seconds: int) -> "AccessKey":
        return cls(prefix="access", expire_seconds=expire_seconds)


class UserKey(KeyPrefix):
    """Session token -> serialized SessionUser."""

    @classmethod
    def token(cls, expire_seconds: int) -> "UserKey":
        return cls(prefix="tk", expire_seconds=expire_seconds)
