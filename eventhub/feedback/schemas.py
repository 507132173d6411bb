from datetime import datetime
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., max_length=1000)

    @field_validator("comment")
    @classmethod
    def comment_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment is required")
        return v


class FeedbackRead(BaseModel):
    """Feedback as organizers see it, without the participant."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    rating: int
    comment: str
    created_on: datetime


class FeedbackSubmitted(BaseModel):
    message: str
    feedback: FeedbackRead


class FeedbackStats(BaseModel):
    total_feedbacks: int
    average_rating: float
    rating_distribution: Dict[int, int]
