"""
FastAPI application factory.

* Registers routes for auth, pools, feedback and admin.
* Maps domain policy violations onto HTTP status codes.
* Closes the Redis pool and the DB engine via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from carpool.api.middleware import limiter
from carpool.api.routes import admin, auth, feedback, pools
from carpool.domain.enums import ErrorKind
from carpool.domain.errors import PolicyViolation
from carpool.infrastructure.database import dispose_engine
from carpool.infrastructure.redis_client import close_redis

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.STATE: 409,
    ErrorKind.NOT_FOUND: 404,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release shared connections on shutdown."""
    yield
    await close_redis()
    await dispose_engine()


async def policy_violation_handler(request: Request, exc: PolicyViolation):
    status_code = STATUS_BY_KIND[exc.kind]
    logger.info(
        "%s %s rejected (%s): %s",
        request.method,
        request.url.path,
        exc.kind.value,
        exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "kind": exc.kind.value},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Community Carpool API",
        description=(
            "Lets riders publish shared trips, join them under gender and "
            "community restrictions, run them through their lifecycle and "
            "rate each other afterwards to build a trust score."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(PolicyViolation, policy_violation_handler)

    # Routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(pools.router, prefix="/api/v1")
    app.include_router(feedback.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
