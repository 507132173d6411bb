"""Feedback router, mounted under /api/events/{event_id}/feedback."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import get_async_db
from eventhub.common.security import require_role
from eventhub.feedback import schemas as feedback_schema
from eventhub.feedback import service as feedback_service

router = APIRouter()


@router.post("", response_model=feedback_schema.FeedbackSubmitted, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    event_id: int,
    payload: feedback_schema.FeedbackCreate,
    current_user: User = Depends(require_role("participant")),
    db: AsyncSession = Depends(get_async_db),
):
    feedback = await feedback_service.submit_feedback(db, current_user, event_id, payload.rating, payload.comment)
    return feedback_schema.FeedbackSubmitted(
        message="Feedback submitted successfully",
        feedback=feedback_schema.FeedbackRead.model_validate(feedback),
    )


@router.get("", response_model=List[feedback_schema.FeedbackRead])
async def list_feedback(
    event_id: int,
    rating: Optional[int] = Query(None, ge=1, le=5),
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    return await feedback_service.list_feedback(db, current_user, event_id, rating)


@router.get("/stats", response_model=feedback_schema.FeedbackStats)
async def feedback_stats(
    event_id: int,
    current_user: User = Depends(require_role("organizer")),
    db: AsyncSession = Depends(get_async_db),
):
    return await feedback_service.feedback_stats(db, current_user, event_id)
