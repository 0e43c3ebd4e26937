"""
Completed-pool cleanup sweep
============================

Not scheduled: the dashboard triggers it opportunistically on load.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one caller sweeps at a time;
  callers that lose the race skip instead of waiting.

Algorithm per sweep
-------------------
1. Acquire the lock (or skip).
2. Delete every ``completed`` pool whose last update is older than the
   retention window, keeping its feedback and penalty history.
3. Release the lock.

A failing sweep is logged and reported as zero deletions; it must never
break the page that triggered it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.config import settings
from carpool.infrastructure.locks import DistributedLock, LockNotAcquired
from carpool.infrastructure.repositories import PoolRepository

logger = logging.getLogger(__name__)

LOCK_KEY = "pool_cleanup"


@dataclass
class SweepResult:
    deleted: int = 0
    skipped: bool = False


async def sweep_completed_pools(
    session: AsyncSession,
    redis: aioredis.Redis,
    now: datetime,
    retention_days: int | None = None,
) -> SweepResult:
    """Run one sweep.  Returns how many pools were deleted."""
    days = settings.cleanup_retention_days if retention_days is None else retention_days
    cutoff = now - timedelta(days=days)
    deleted: int | None = None

    try:
        async with DistributedLock(redis, LOCK_KEY, ttl_seconds=60):
            try:
                async with session.begin_nested():
                    deleted = await PoolRepository(session).delete_completed_before(
                        cutoff
                    )
            except SQLAlchemyError:
                logger.exception("Error in cleanup sweep")
                deleted = 0
    except LockNotAcquired:
        logger.debug("Cleanup lock held by another caller, skipping sweep")
        return SweepResult(skipped=True)
    except RedisError:
        # Raised either acquiring (nothing swept) or releasing (sweep done).
        logger.exception("Redis error around the cleanup lock")
        if deleted is None:
            return SweepResult(skipped=True)

    if deleted:
        logger.info("Cleanup sweep: %d completed pools deleted", deleted)
    return SweepResult(deleted=deleted)
