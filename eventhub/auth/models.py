import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.common.db import Base, str_enum, utcnow


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    PARTICIPANT = "participant"


class ParticipantType(str, enum.Enum):
    IIIT = "IIIT"
    NON_IIIT = "Non-IIIT"


organizer_follow = Table(
    "organizer_follow",
    Base.metadata,
    Column("participant_id", ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
    Column("organizer_id", ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(str_enum(UserRole), nullable=False, default=UserRole.PARTICIPANT)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    password_reset_requested: Mapped[bool] = mapped_column(Boolean, default=False)

    # Participant profile
    first_name: Mapped[Optional[str]] = mapped_column(String(150))
    last_name: Mapped[Optional[str]] = mapped_column(String(150))
    participant_type: Mapped[Optional[ParticipantType]] = mapped_column(str_enum(ParticipantType))
    college_name: Mapped[Optional[str]] = mapped_column(String(255))
    contact_number: Mapped[Optional[str]] = mapped_column(String(30))
    areas_of_interest: Mapped[List[str]] = mapped_column(JSON, default=list)

    # Organizer profile
    organizer_name: Mapped[Optional[str]] = mapped_column(String(255))
    category: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    discord_webhook: Mapped[Optional[str]] = mapped_column(String(500))
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)

    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    followed_organizers: Mapped[List["User"]] = relationship(
        "User",
        secondary=organizer_follow,
        primaryjoin=lambda: User.id == organizer_follow.c.participant_id,
        secondaryjoin=lambda: User.id == organizer_follow.c.organizer_id,
        lazy="selectin",
        join_depth=1,
    )

    @property
    def full_name(self) -> str:
        if self.role == UserRole.ORGANIZER:
            return self.organizer_name or self.email
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def followed_organizer_ids(self) -> List[int]:
        return [organizer.id for organizer in self.followed_organizers]
