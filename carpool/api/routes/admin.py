"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- simple health check
"""

from fastapi import APIRouter, Request

from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import HealthResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
@limiter.limit(RATE_LIMIT)
async def health(request: Request):
    return HealthResponse()
