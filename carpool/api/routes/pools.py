"""
Pool endpoints
==============

POST   /api/v1/pools               -- create a pool (creator auto-joins)
GET    /api/v1/pools               -- list by status / type / date, annotated with can_join
GET    /api/v1/pools/available     -- only the pools the caller may join
GET    /api/v1/pools/mine          -- pools created or joined by the caller
POST   /api/v1/pools/cleanup       -- sweep stale completed pools
GET    /api/v1/pools/{pool_id}     -- pool details
POST   /api/v1/pools/{pool_id}/join
POST   /api/v1/pools/{pool_id}/leave
PATCH  /api/v1/pools/{pool_id}/status
DELETE /api/v1/pools/{pool_id}
"""

from datetime import date
from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.api.dependencies import Clock, get_clock, get_current_session, get_db
from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import (
    CleanupResponse,
    MessageResponse,
    PoolActionResponse,
    PoolCreateRequest,
    PoolListResponse,
    PoolResponse,
    PoolStatusUpdateRequest,
    PoolTypeFilter,
)
from carpool.domain.eligibility import PoolFilters, check_join
from carpool.domain.entities import Location, Pool
from carpool.domain.enums import PoolStatus, PoolType
from carpool.infrastructure.redis_client import get_redis
from carpool.services.auth import AuthSession
from carpool.services.pools import PoolService
from carpool.workers.cleanup import sweep_completed_pools

router = APIRouter(prefix="/pools", tags=["pools"])


def _type_filter(value: Optional[str]) -> Optional[PoolType]:
    if value is None or value == "all":
        return None
    return PoolType(value)


@router.post(
    "",
    status_code=201,
    response_model=PoolActionResponse,
    summary="Create a pool",
)
@limiter.limit(RATE_LIMIT)
async def create_pool(
    request: Request,
    body: PoolCreateRequest,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    draft = Pool(
        source=body.source.strip(),
        destination=body.destination.strip(),
        source_location=Location(body.source_coords.lat, body.source_coords.lng),
        destination_location=Location(body.dest_coords.lat, body.dest_coords.lng),
        date=body.date,
        time=body.time,
        max_seats=body.max_seats,
        fare=body.fare,
        type=body.type,
    )
    pool = await PoolService(db).create(auth.rider, draft, clock())
    return PoolActionResponse(
        message="Pool created successfully", pool=PoolResponse.from_entity(pool)
    )


@router.get(
    "",
    response_model=PoolListResponse,
    summary="List pools",
    description=(
        "Returns every pool matching the status / type / date filters. "
        "Gender and community restrictions are not applied here; each item "
        "carries ``can_join`` and ``ineligible_reason`` for the caller."
    ),
)
@limiter.limit(RATE_LIMIT)
async def list_pools(
    request: Request,
    status: PoolStatus = PoolStatus.UPCOMING,
    type: Optional[PoolTypeFilter] = None,
    date: Optional[date] = Query(None),
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    pools = await PoolService(db).list_pools(
        status=status, pool_type=_type_filter(type), on_date=date
    )
    viewer = auth.rider
    items = [PoolResponse.from_entity(p, check_join(p, viewer)) for p in pools]
    return PoolListResponse(pools=items, count=len(items))


@router.get(
    "/available",
    response_model=PoolListResponse,
    summary="Upcoming pools the caller may join",
)
@limiter.limit(RATE_LIMIT)
async def available_pools(
    request: Request,
    type: Optional[PoolTypeFilter] = None,
    date: Optional[date] = Query(None),
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    filters = PoolFilters(type=_type_filter(type), date=date)
    pools = await PoolService(db).available_for(auth.rider, filters)
    items = [PoolResponse.from_entity(p) for p in pools]
    return PoolListResponse(pools=items, count=len(items))


@router.get(
    "/mine",
    response_model=PoolListResponse,
    summary="Pools created or joined by the caller",
)
@limiter.limit(RATE_LIMIT)
async def my_pools(
    request: Request,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    pools = await PoolService(db).mine(auth.user_id)
    items = [PoolResponse.from_entity(p) for p in pools]
    return PoolListResponse(pools=items, count=len(items))


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    summary="Delete completed pools past the retention window",
)
@limiter.limit(RATE_LIMIT)
async def cleanup_old_pools(
    request: Request,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    clock: Clock = Depends(get_clock),
):
    result = await sweep_completed_pools(db, redis, clock())
    if result.skipped:
        message = "Cleanup already in progress"
    else:
        message = f"Deleted {result.deleted} old completed pool(s)"
    return CleanupResponse(
        message=message, deleted_count=result.deleted, skipped=result.skipped
    )


@router.get(
    "/{pool_id}",
    response_model=PoolResponse,
    summary="Get a pool",
)
@limiter.limit(RATE_LIMIT)
async def get_pool(
    request: Request,
    pool_id: int,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    pool = await PoolService(db).get(pool_id)
    return PoolResponse.from_entity(pool, check_join(pool, auth.rider))


@router.post(
    "/{pool_id}/join",
    response_model=PoolActionResponse,
    summary="Join a pool",
)
@limiter.limit(RATE_LIMIT)
async def join_pool(
    request: Request,
    pool_id: int,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = await PoolService(db).join(pool_id, auth.rider, clock())
    return PoolActionResponse(
        message=result.message, pool=PoolResponse.from_entity(result.pool)
    )


@router.post(
    "/{pool_id}/leave",
    response_model=PoolActionResponse,
    summary="Leave a pool",
    description=(
        "Leaving less than an hour before departure deducts trust points; "
        "``penalty_applied`` reports whether that happened."
    ),
)
@limiter.limit(RATE_LIMIT)
async def leave_pool(
    request: Request,
    pool_id: int,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = await PoolService(db).leave(pool_id, auth.user_id, clock())
    return PoolActionResponse(
        message=result.message,
        pool=PoolResponse.from_entity(result.pool),
        penalty_applied=result.penalty_applied,
    )


@router.patch(
    "/{pool_id}/status",
    response_model=PoolActionResponse,
    summary="Start, complete or cancel a pool",
)
@limiter.limit(RATE_LIMIT)
async def update_pool_status(
    request: Request,
    pool_id: int,
    body: PoolStatusUpdateRequest,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = await PoolService(db).change_status(
        pool_id, auth.user_id, body.status, clock()
    )
    return PoolActionResponse(
        message=result.message,
        pool=PoolResponse.from_entity(result.pool),
        penalty_applied=result.penalty_applied,
    )


@router.delete(
    "/{pool_id}",
    response_model=MessageResponse,
    summary="Delete a pool nobody else has joined",
)
@limiter.limit(RATE_LIMIT)
async def delete_pool(
    request: Request,
    pool_id: int,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    await PoolService(db).delete(pool_id, auth.user_id)
    return MessageResponse(message="Pool deleted successfully")
