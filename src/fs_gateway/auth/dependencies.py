"""FastAPI dependencies: read the session user resolved by SessionContextMiddleware.

Usage in any router:
    from src.fs_gateway.auth.dependencies import require_user

    @router.get("/me")
    async def me(user: SessionUser = Depends(require_user)):
        ...
"""

from fastapi import Depends

from src.fs_access.user_context import get_user
from src.fs_common.errors import SessionError
from src.fs_gateway.user.schemas import SessionUser


async def get_current_user() -> SessionUser | None:
    """The session user for this request, or None for anonymous callers."""
    return get_user()


async def require_user(
    user: SessionUser | None = Depends(get_current_user),
) -> SessionUser:
    """Raises SessionError (HTTP 401) when the request carries no valid session."""
    if user is None:
        raise SessionError()
    return user
