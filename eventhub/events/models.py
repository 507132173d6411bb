import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.common.db import Base, str_enum, utcnow
from eventhub.auth.models import User


class EventType(str, enum.Enum):
    NORMAL = "normal"
    MERCHANDISE = "merchandise"


class Eligibility(str, enum.Enum):
    IIIT_ONLY = "IIIT-only"
    NON_IIIT_ONLY = "Non-IIIT-only"
    ALL = "all"


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CLOSED = "closed"


class Event(Base):
    __tablename__ = "event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    organizer_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_description: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[EventType] = mapped_column(str_enum(EventType), nullable=False)
    eligibility: Mapped[Eligibility] = mapped_column(str_enum(Eligibility), default=Eligibility.ALL)
    event_tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    venue: Mapped[Optional[str]] = mapped_column(String(255))

    registration_deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    event_start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    event_end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    registration_limit: Mapped[int] = mapped_column(Integer, default=0)  # 0 means unlimited
    registration_fee: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), default=0)

    status: Mapped[EventStatus] = mapped_column(str_enum(EventStatus), default=EventStatus.DRAFT, index=True)

    # Custom registration form (normal events): list of field specs
    custom_form: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    form_locked: Mapped[bool] = mapped_column(Boolean, default=False)

    # Merchandise
    item_name: Mapped[Optional[str]] = mapped_column(String(255))
    purchase_limit_per_participant: Mapped[int] = mapped_column(Integer, default=1)

    # Aggregates, written only through the ledger
    total_registrations: Mapped[int] = mapped_column(Integer, default=0)
    total_revenue: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=0)
    total_attendance: Mapped[int] = mapped_column(Integer, default=0)

    views: Mapped[int] = mapped_column(Integer, default=0)
    last_view_reset: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("registration_limit >= 0", name="ck_event_limit_non_negative"),
        CheckConstraint("registration_fee >= 0", name="ck_event_fee_non_negative"),
        CheckConstraint("total_registrations >= 0", name="ck_event_registrations_non_negative"),
        Index("ix_event_type_status_start", "event_type", "status", "event_start_date"),
    )

    organizer: Mapped[User] = relationship("User", lazy="joined")
    variants: Mapped[List["MerchandiseVariant"]] = relationship(
        "MerchandiseVariant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="MerchandiseVariant.position",
        lazy="selectin",
    )

    def find_variant(self, size: Optional[str], color: Optional[str]) -> Optional["MerchandiseVariant"]:
        """Look a variant up by value, never by list position."""
        for variant in self.variants:
            if variant.size == size and variant.color == color:
                return variant
        return None


class MerchandiseVariant(Base):
    __tablename__ = "merchandise_variant"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    size: Mapped[Optional[str]] = mapped_column(String(50))
    color: Mapped[Optional[str]] = mapped_column(String(50))
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0)
    sold: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint("event_id", "size", "color", name="uq_variant_per_event"),
        CheckConstraint("stock_quantity >= 0", name="ck_variant_stock_non_negative"),
        CheckConstraint("sold >= 0", name="ck_variant_sold_non_negative"),
    )

    event: Mapped[Event] = relationship("Event", back_populates="variants")
