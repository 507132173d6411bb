import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.common.db import Base, str_enum, utcnow
from eventhub.auth.models import User
from eventhub.events.models import Event, EventType


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RegistrationStatus(str, enum.Enum):
    REGISTERED = "registered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class AttendanceType(str, enum.Enum):
    SCAN = "scan"
    MANUAL = "manual"


# Only one live ticket per participant per normal event; enforced by the
# database at insert time rather than by a read-then-write check.
_ACTIVE_NORMAL = "registration_status = 'registered' AND registration_type = 'normal'"


class Registration(Base):
    __tablename__ = "registration"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    ticket_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("event.id", ondelete="CASCADE"), nullable=False)
    participant_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    registration_type: Mapped[EventType] = mapped_column(str_enum(EventType), nullable=False)

    form_responses: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    # Merchandise purchase
    variant_size: Mapped[Optional[str]] = mapped_column(String(50))
    variant_color: Mapped[Optional[str]] = mapped_column(String(50))
    quantity: Mapped[Optional[int]] = mapped_column(Integer)
    total_price: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(str_enum(PaymentStatus), default=PaymentStatus.PENDING)
    payment_amount: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), default=0)
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    payment_proof: Mapped[Optional[str]] = mapped_column(String(500))
    payment_approval_status: Mapped[Optional[ApprovalStatus]] = mapped_column(str_enum(ApprovalStatus))
    payment_rejection_reason: Mapped[Optional[str]] = mapped_column(String(500))

    registration_status: Mapped[RegistrationStatus] = mapped_column(
        str_enum(RegistrationStatus), default=RegistrationStatus.REGISTERED
    )

    # Attendance
    attended: Mapped[bool] = mapped_column(Boolean, default=False)
    attendance_marked_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    manual_override: Mapped[bool] = mapped_column(Boolean, default=False)
    override_reason: Mapped[Optional[str]] = mapped_column(String(500))

    qr_code: Mapped[Optional[str]] = mapped_column(Text)
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False)

    created_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_on: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_registration_participant_event", "participant_id", "event_id"),
        Index("ix_registration_event_status", "event_id", "registration_status"),
        Index(
            "uq_registration_active_normal",
            "event_id",
            "participant_id",
            unique=True,
            postgresql_where=text(_ACTIVE_NORMAL),
            sqlite_where=text(_ACTIVE_NORMAL),
        ),
    )

    event: Mapped[Event] = relationship("Event", lazy="joined")
    participant: Mapped[User] = relationship("User", lazy="joined")
    attendance_log: Mapped[List["AttendanceLogEntry"]] = relationship(
        "AttendanceLogEntry",
        back_populates="registration",
        order_by="AttendanceLogEntry.id",
        lazy="selectin",
    )

    @property
    def counts_toward_totals(self) -> bool:
        """Whether this registration has been added to the event aggregates."""
        if self.registration_type == EventType.NORMAL:
            return True
        return self.payment_approval_status == ApprovalStatus.APPROVED


class AttendanceLogEntry(Base):
    """Append-only audit entry; rows are inserted, never updated."""

    __tablename__ = "attendance_log_entry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    registration_id: Mapped[int] = mapped_column(
        ForeignKey("registration.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    scanned_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("app_user.id", ondelete="SET NULL"))
    type: Mapped[AttendanceType] = mapped_column(str_enum(AttendanceType), default=AttendanceType.SCAN)
    notes: Mapped[Optional[str]] = mapped_column(String(500))

    registration: Mapped[Registration] = relationship("Registration", back_populates="attendance_log")
