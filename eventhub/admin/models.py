import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.auth.models import User
from eventhub.common.db import Base, str_enum, utcnow


class ResetStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


_PENDING = "status = 'pending'"


class PasswordResetRequest(Base):
    __tablename__ = "password_reset_request"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    organizer_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[ResetStatus] = mapped_column(str_enum(ResetStatus), default=ResetStatus.PENDING, index=True)
    admin_comment: Mapped[Optional[str]] = mapped_column(String(500))
    # Plaintext kept only until the admin has shared it
    temporary_password: Mapped[Optional[str]] = mapped_column(String(64))
    processed_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_user.id", ondelete="SET NULL"))
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index(
            "uq_reset_request_one_pending",
            "organizer_id",
            unique=True,
            postgresql_where=text(_PENDING),
            sqlite_where=text(_PENDING),
        ),
    )

    organizer: Mapped[User] = relationship("User", foreign_keys=[organizer_id], lazy="joined")
    processed_by: Mapped[Optional[User]] = relationship("User", foreign_keys=[processed_by_id], lazy="joined")
