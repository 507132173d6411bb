import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.auth.models import User, UserRole
from eventhub.common.db import Base, str_enum, utcnow


class ReactionType(str, enum.Enum):
    LIKE = "like"
    HEART = "heart"
    THUMBSUP = "thumbsup"
    THUMBSDOWN = "thumbsdown"
    QUESTION = "question"


class ForumMessage(Base):
    __tablename__ = "forum_message"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("event.id", ondelete="CASCADE"), nullable=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    author_role: Mapped[UserRole] = mapped_column(str_enum(UserRole), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("forum_message.id", ondelete="CASCADE"), index=True
    )
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_announcement: Mapped[bool] = mapped_column(Boolean, default=False)

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    deleted_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_user.id", ondelete="SET NULL"))
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_forum_message_event_created", "event_id", "created_on"),
        Index("ix_forum_message_event_pinned", "event_id", "is_pinned", "created_on"),
    )

    author: Mapped[User] = relationship("User", foreign_keys=[author_id], lazy="joined")
    reactions: Mapped[List["ForumReaction"]] = relationship(
        "ForumReaction",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="ForumReaction.id",
        lazy="selectin",
    )


class ForumReaction(Base):
    __tablename__ = "forum_reaction"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    message_id: Mapped[int] = mapped_column(ForeignKey("forum_message.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[ReactionType] = mapped_column(str_enum(ReactionType), nullable=False)
    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # One reaction per user per message
    __table_args__ = (UniqueConstraint("message_id", "user_id", name="uq_forum_reaction_per_user"),)

    message: Mapped[ForumMessage] = relationship("ForumMessage", back_populates="reactions")
