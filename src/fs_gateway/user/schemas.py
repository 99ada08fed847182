"""Pydantic schemas for session users.

SessionUser is what the session store holds per token and what the access
gate keys per-user counters on (nickname).
"""

from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    id: int
    nickname: str = Field(..., min_length=1, max_length=64)


class UserInfo(BaseModel):
    """Minimal user info embedded in responses."""

    user_id: int
    nickname: str
