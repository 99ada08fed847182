"""Sample guarded API: who-am-I, seckill path and vote.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

import uuid

from fastapi import APIRouter, Depends, Request, status

from src.fs_access.policy import access_limit
from src.fs_common.response import ApiResponse, success_response
from src.fs_gateway.auth.access_limit import enforce_access_limit
from src.fs_gateway.auth.dependencies import get_current_user, require_user
from src.fs_gateway.user.schemas import SessionUser, UserInfo

router = APIRouter(tags=["access"], dependencies=[Depends(enforce_access_limit)])


def _get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


@router.get(
    "/users/me",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Current session user",
)
async def me(
    request: Request,
    user: SessionUser = Depends(require_user),
) -> ApiResponse:
    data = UserInfo(user_id=user.id, nickname=user.nickname)
    resp = success_response(data.model_dump())
    resp.request_id = _get_request_id(request)
    return resp


@router.get(
    "/seckill/{goods_id}/path",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Issue a one-off seckill path (5 per user per 5s)",
)
@access_limit(seconds=5, max_count=5, need_login=True)
async def seckill_path(
    request: Request,
    goods_id: int,
    user: SessionUser = Depends(require_user),
) -> ApiResponse:
    resp = success_response({"goods_id": goods_id, "path": uuid.uuid4().hex})
    resp.request_id = _get_request_id(request)
    return resp


@router.post(
    "/vote",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Anonymous vote (3 per 60s, shared by all callers)",
)
@access_limit(seconds=60, max_count=3, need_login=False)
async def vote(
    request: Request,
    user: SessionUser | None = Depends(get_current_user),
) -> ApiResponse:
    resp = success_response({"voter": user.nickname if user else None})
    resp.request_id = _get_request_id(request)
    resp.message = "Vote recorded"
    return resp
