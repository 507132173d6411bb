from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventhub.auth.models import UserRole
from eventhub.forum.models import ReactionType


class ForumAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    role: UserRole


class ReactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    type: ReactionType


class ForumMessageCreate(BaseModel):
    content: str = Field(..., max_length=2000)
    parent_id: Optional[int] = None
    is_announcement: bool = False

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message content is required")
        return v


class ForumMessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    author: ForumAuthor
    author_role: UserRole
    content: str
    parent_id: Optional[int] = None
    is_pinned: bool
    is_announcement: bool
    reactions: List[ReactionRead] = Field(default_factory=list)
    reply_count: int = 0
    created_on: datetime


class ForumPostResponse(BaseModel):
    message: str
    forum_message: ForumMessageRead


class ReactionCreate(BaseModel):
    reaction_type: ReactionType


class ReactionResponse(BaseModel):
    message: str
    reactions: List[ReactionRead]


class PinResponse(BaseModel):
    message: str
    is_pinned: bool
