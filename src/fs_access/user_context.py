"""Request-scoped holder for the resolved session user.

Backed by a ContextVar, so each request task (and any threadpool call it
makes, which runs in a copy of the context) sees only its own user.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

from src.fs_gateway.user.schemas import SessionUser

_user_var: ContextVar[SessionUser | None] = ContextVar("session_user", default=None)


def set_user(user: SessionUser | None) -> Token[SessionUser | None]:
    return _user_var.set(user)


def get_user() -> SessionUser | None:
    return _user_var.get()


def remove_user(token: Token[SessionUser | None] | None = None) -> None:
    """Clear the slot; restores the previous value when given the set() token."""
    if token is not None:
        _user_var.reset(token)
    else:
        _user_var.set(None)


@contextmanager
def user_scope(user: SessionUser | None) -> Iterator[SessionUser | None]:
    """Hold `user` in the slot for the duration of the block, then clear it."""
    token = set_user(user)
    try:
        yield user
    finally:
        remove_user(token)
