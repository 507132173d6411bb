from typing import List, Literal

from pydantic import BaseModel, Field

from eventhub.events.schemas import EventRead
from eventhub.registrations.schemas import OrderRead, RegistrationRead


class OrganizerAnalytics(BaseModel):
    total_events: int = 0
    total_registrations: int = 0
    total_revenue: float = 0
    total_attendance: int = 0


class OrganizerDashboard(BaseModel):
    events: List[EventRead] = Field(default_factory=list)
    analytics: OrganizerAnalytics


class EventAnalytics(BaseModel):
    total_registrations: int
    total_revenue: float
    total_attendance: int
    attendance_rate: float
    views: int


class EventOverview(BaseModel):
    event: EventRead
    registrations: List[OrderRead] = Field(default_factory=list)
    analytics: EventAnalytics


class AttendanceStats(BaseModel):
    total_registrations: int
    attended: int
    not_attended: int
    attendance_rate: float
    manual_overrides: int


class AttendanceReport(BaseModel):
    event_id: int
    stats: AttendanceStats
    registrations: List[OrderRead] = Field(default_factory=list)


ExportFormat = Literal["csv", "xlsx"]


class OrderReviewResponse(BaseModel):
    message: str
    registration: RegistrationRead
