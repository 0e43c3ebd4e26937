"""
Feedback endpoints
==================

POST /api/v1/feedback                -- rate a co-rider of a completed ride
GET  /api/v1/feedback/user/{user_id} -- feedback received, with average
GET  /api/v1/feedback/pool/{pool_id} -- feedback given on one ride
GET  /api/v1/feedback/mine           -- feedback written by the caller
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.api.dependencies import Clock, get_clock, get_current_session, get_db
from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import (
    FeedbackCreatedResponse,
    FeedbackCreateRequest,
    FeedbackListResponse,
    FeedbackResponse,
    FeedbackSummaryResponse,
    UserFeedbackResponse,
)
from carpool.domain.entities import Feedback
from carpool.services.auth import AuthSession
from carpool.services.feedback import FeedbackService

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post(
    "",
    status_code=201,
    response_model=FeedbackCreatedResponse,
    summary="Submit feedback for a ride",
)
@limiter.limit(RATE_LIMIT)
async def submit_feedback(
    request: Request,
    body: FeedbackCreateRequest,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    draft = Feedback(
        ride_id=body.ride_id,
        rated_user_id=body.rated_user_id,
        score=body.score,
        comment=body.comment.strip(),
        safety_flag=body.safety_flag,
        categories=body.categories.model_dump(),
    )
    model = await FeedbackService(db).submit(auth.user_id, draft, clock())
    return FeedbackCreatedResponse(
        message="Feedback submitted successfully",
        feedback=FeedbackResponse.model_validate(model),
    )


@router.get(
    "/user/{user_id}",
    response_model=UserFeedbackResponse,
    summary="Feedback received by a user",
)
@limiter.limit(RATE_LIMIT)
async def user_feedback(
    request: Request,
    user_id: int,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    records, summary = await FeedbackService(db).for_user(user_id)
    return UserFeedbackResponse(
        feedbacks=[FeedbackResponse.model_validate(m) for m in records],
        summary=FeedbackSummaryResponse(
            total_feedbacks=summary.total_feedbacks,
            average_rating=summary.average_rating,
        ),
    )


@router.get(
    "/pool/{pool_id}",
    response_model=FeedbackListResponse,
    summary="Feedback submitted for a ride",
)
@limiter.limit(RATE_LIMIT)
async def pool_feedback(
    request: Request,
    pool_id: int,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    records = await FeedbackService(db).for_ride(pool_id)
    return FeedbackListResponse(
        feedbacks=[FeedbackResponse.model_validate(m) for m in records]
    )


@router.get(
    "/mine",
    response_model=FeedbackListResponse,
    summary="Feedback written by the caller",
)
@limiter.limit(RATE_LIMIT)
async def my_feedback(
    request: Request,
    auth: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
):
    records = await FeedbackService(db).by_rater(auth.user_id)
    return FeedbackListResponse(
        feedbacks=[FeedbackResponse.model_validate(m) for m in records]
    )
