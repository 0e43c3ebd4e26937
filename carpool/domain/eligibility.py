"""
Eligibility Filter
==================

The single authority on who may see and join a pool.  The join guard, the
``can_join`` annotation on listings and the "available pools" view all go
through this module, so server and client can no longer disagree.

Visibility rules (first failure wins)
-------------------------------------
1. Viewer is not already a ``joined`` participant and the pool is not full.
2. ``women-only`` pools: viewer must be female.
3. ``community`` pools: viewer's tags must intersect the creator's tags.
4. Caller-supplied filters (exact type, exact date) must hold.

Checks return an ``Eligibility`` value instead of raising; the lifecycle
layer decides whether a refusal becomes an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from .entities import Pool, Rider
from .enums import ErrorKind, Gender, PoolStatus, PoolType


@dataclass(frozen=True)
class Eligibility:
    allowed: bool
    reason: Optional[str] = None
    kind: Optional[ErrorKind] = None

    def __bool__(self) -> bool:
        return self.allowed


ELIGIBLE = Eligibility(allowed=True)


def _refuse(reason: str, kind: ErrorKind) -> Eligibility:
    return Eligibility(allowed=False, reason=reason, kind=kind)


def shares_community(viewer: Rider, creator: Optional[Rider]) -> bool:
    """True when any of the viewer's tags matches any of the creator's."""
    if creator is None:
        return False
    return bool(viewer.communities & creator.communities)


def check_pool_type(pool: Pool, viewer: Rider) -> Eligibility:
    """Gender / community restriction implied by the pool type."""
    if pool.type == PoolType.WOMEN_ONLY and viewer.gender != Gender.FEMALE:
        return _refuse(
            "This pool is restricted to women only", ErrorKind.AUTHORIZATION
        )
    if pool.type == PoolType.COMMUNITY and not shares_community(
        viewer, pool.creator
    ):
        return _refuse(
            "This pool is restricted to community members only",
            ErrorKind.AUTHORIZATION,
        )
    return ELIGIBLE


def check_join(pool: Pool, viewer: Rider) -> Eligibility:
    """Preconditions for *viewer* joining *pool*, in guard order."""
    if pool.status != PoolStatus.UPCOMING:
        return _refuse("Cannot join a pool that is not upcoming", ErrorKind.STATE)
    if pool.is_joined(viewer.id):
        return _refuse(
            "You are already a participant in this pool", ErrorKind.STATE
        )
    if pool.is_full:
        return _refuse("Pool is full", ErrorKind.STATE)
    return check_pool_type(pool, viewer)


def evaluate(pool: Pool, viewer: Rider) -> Eligibility:
    """Visibility rules 1-3 for *viewer*."""
    if pool.is_joined(viewer.id):
        return _refuse(
            "You are already a participant in this pool", ErrorKind.STATE
        )
    if pool.is_full:
        return _refuse("Pool is full", ErrorKind.STATE)
    return check_pool_type(pool, viewer)


@dataclass(frozen=True)
class PoolFilters:
    type: Optional[PoolType] = None
    date: Optional[date] = None

    def matches(self, pool: Pool) -> bool:
        if self.type is not None and pool.type != self.type:
            return False
        if self.date is not None and pool.date != self.date:
            return False
        return True


def is_visible(
    pool: Pool, viewer: Rider, filters: Optional[PoolFilters] = None
) -> bool:
    if not evaluate(pool, viewer):
        return False
    return filters is None or filters.matches(pool)


def visible_pools(
    pools: Iterable[Pool], viewer: Rider, filters: Optional[PoolFilters] = None
) -> list[Pool]:
    return [p for p in pools if is_visible(p, viewer, filters)]
