from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from eventhub.events.models import EventStatus, EventType
from eventhub.registrations.models import (
    ApprovalStatus,
    AttendanceType,
    PaymentStatus,
    RegistrationStatus,
)


class RegistrationCreate(BaseModel):
    form_responses: Dict[str, Any] = Field(default_factory=dict)


class AttendanceLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    scanned_by_id: Optional[int] = None
    type: AttendanceType
    notes: Optional[str] = None


class EventSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_name: str
    event_type: EventType
    status: EventStatus
    venue: Optional[str] = None
    event_start_date: datetime
    event_end_date: datetime
    item_name: Optional[str] = None


class ParticipantSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact_number: Optional[str] = None
    college_name: Optional[str] = None


class RegistrationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: str
    event_id: int
    participant_id: int
    registration_type: EventType
    form_responses: Optional[Dict[str, Any]] = None
    variant_size: Optional[str] = None
    variant_color: Optional[str] = None
    quantity: Optional[int] = None
    total_price: Optional[float] = None
    payment_status: PaymentStatus
    payment_amount: float = 0
    payment_date: Optional[datetime] = None
    payment_proof: Optional[str] = None
    payment_approval_status: Optional[ApprovalStatus] = None
    payment_rejection_reason: Optional[str] = None
    registration_status: RegistrationStatus
    attended: bool = False
    attendance_marked_at: Optional[datetime] = None
    manual_override: bool = False
    override_reason: Optional[str] = None
    qr_code: Optional[str] = None
    email_sent: bool = False
    created_on: datetime
    attendance_log: List[AttendanceLogRead] = Field(default_factory=list)


class TicketRead(RegistrationRead):
    """A registration as its owner sees it, with the event attached."""
    event: EventSummary


class OrderRead(RegistrationRead):
    """A merchandise order as the organizer sees it."""
    participant: ParticipantSummary
    payment_proof_url: Optional[str] = None


class RegistrationResponse(BaseModel):
    message: str
    ticket_id: str
    registration: RegistrationRead


class OrderRejection(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class TicketScan(BaseModel):
    ticket_id: str = Field(..., min_length=1)


class ManualAttendance(BaseModel):
    registration_id: int
    reason: Optional[str] = Field(None, max_length=500)


class AttendanceResponse(BaseModel):
    message: str
    registration: RegistrationRead
    participant: ParticipantSummary


class TicketVerification(BaseModel):
    valid: bool
    message: str
    ticket_id: str
    event_id: int
    event_name: str
    participant: ParticipantSummary
    registration_status: RegistrationStatus
    payment_approval_status: Optional[ApprovalStatus] = None
    attended: bool
    attendance_marked_at: Optional[datetime] = None
