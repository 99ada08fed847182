"""Per-endpoint access limit declaration.

Usage:
    @router.get("/seckill/{goods_id}/path")
    @access_limit(seconds=5, max_count=5, need_login=True)
    async def seckill_path(goods_id: int) -> ApiResponse: ...

The decorator only tags the endpoint function. PolicyRegistry collects the
tags into an `endpoint -> AccessLimit` table once per app (walking included
routers and mounts), plus explicit `route path -> AccessLimit` entries.
At request time the policy is looked up from the endpoint the router
dispatched to (scope["endpoint"]), so it does not depend on how the app
nests its routes.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from starlette.routing import BaseRoute
from starlette.types import Scope

_POLICY_ATTR = "__access_limit__"
_REGISTRY_STATE_ATTR = "access_policies"

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class AccessLimit:
    seconds: int
    max_count: int
    need_login: bool = True

    def __post_init__(self) -> None:
        for name in ("seconds", "max_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AccessLimit":
        return cls(
            seconds=data["seconds"],
            max_count=data["max_count"],
            need_login=data.get("need_login", True),
        )


def access_limit(seconds: int, max_count: int, need_login: bool = True) -> Callable[[F], F]:
    """Attach an AccessLimit to a route endpoint function."""
    policy = AccessLimit(seconds=seconds, max_count=max_count, need_login=need_login)

    def decorator(func: F) -> F:
        setattr(func, _POLICY_ATTR, policy)
        return func

    return decorator


def get_access_limit(endpoint: Callable[..., Any] | None) -> AccessLimit | None:
    return getattr(endpoint, _POLICY_ATTR, None)


def iter_routes(routes: Iterable[BaseRoute]) -> Iterator[BaseRoute]:
    """Yield every route, descending into mounts and included routers."""
    for route in routes:
        yield route
        nested = getattr(route, "routes", None)
        if nested is None:
            nested = getattr(getattr(route, "original_router", None), "routes", None)
        if nested:
            yield from iter_routes(nested)


class PolicyRegistry:
    def __init__(self, routes: Iterable[BaseRoute] = ()) -> None:
        self._by_endpoint: dict[Callable[..., Any], AccessLimit] = {}
        self._by_path: dict[str, AccessLimit] = {}
        for route in iter_routes(routes):
            endpoint = getattr(route, "endpoint", None)
            policy = get_access_limit(endpoint)
            if endpoint is not None and policy is not None:
                self._by_endpoint[endpoint] = policy

    @classmethod
    def for_app(cls, app: Any) -> "PolicyRegistry":
        """Build the registry on first use and cache it on app.state."""
        registry = getattr(app.state, _REGISTRY_STATE_ATTR, None)
        if registry is None:
            registry = cls(app.routes)
            setattr(app.state, _REGISTRY_STATE_ATTR, registry)
        return registry

    def register(self, path: str, policy: AccessLimit) -> None:
        """Explicitly attach a policy to a route path; wins over decorators."""
        self._by_path[path] = policy

    def register_many(self, table: Mapping[str, Mapping[str, Any]]) -> None:
        for path, data in table.items():
            self.register(path, AccessLimit.from_mapping(data))

    def get(self, path: str) -> AccessLimit | None:
        return self._by_path.get(path)

    def resolve(self, scope: Scope) -> AccessLimit | None:
        """Policy for a routed request scope, or None when unguarded."""
        route = scope.get("route")
        for path in (getattr(route, "path", None), scope.get("path")):
            if path is not None and path in self._by_path:
                return self._by_path[path]

        endpoint = scope.get("endpoint") or getattr(route, "endpoint", None)
        if endpoint is None:
            return None
        policy = self._by_endpoint.get(endpoint)
        if policy is None:
            # Endpoint registered after the table was built
            policy = get_access_limit(endpoint)
        return policy

    def __len__(self) -> int:
        return len(self._by_endpoint) + len(self._by_path)
