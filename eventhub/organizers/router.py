"""Organizer router - event management, order review and attendance."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.admin import schemas as admin_schema
from eventhub.admin import service as admin_service
from eventhub.auth import schemas as auth_schema
from eventhub.auth.models import User
from eventhub.auth.service import AuthService
from eventhub.common.db import get_async_db
from eventhub.common.exporter import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE, rows_to_csv, rows_to_xlsx
from eventhub.common.schemas import Message
from eventhub.common.security import require_role
from eventhub.common.storage import get_file_url
from eventhub.events import schemas as event_schema
from eventhub.events import service as event_service
from eventhub.events.models import EventStatus
from eventhub.organizers import schemas as organizer_schema
from eventhub.organizers import service as organizer_service
from eventhub.registrations import approval, attendance
from eventhub.registrations import schemas as reg_schema
from eventhub.registrations.models import ApprovalStatus

router = APIRouter()

get_current_organizer = require_role("organizer")


def _order(registration) -> reg_schema.OrderRead:
    order = reg_schema.OrderRead.model_validate(registration)
    if registration.payment_proof:
        order.payment_proof_url = get_file_url(registration.payment_proof)
    return order


def _download(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/dashboard", response_model=organizer_schema.OrganizerDashboard)
async def dashboard(
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    return organizer_schema.OrganizerDashboard.model_validate(
        await organizer_service.get_dashboard(db, current_user), from_attributes=True
    )


@router.get("/events/{event_id}", response_model=organizer_schema.EventOverview)
async def event_overview(
    event_id: int,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    """Event with its registrations and analytics."""
    data = await organizer_service.get_event_overview(db, current_user, event_id)
    return organizer_schema.EventOverview(
        event=event_schema.EventRead.model_validate(data["event"]),
        registrations=[_order(r) for r in data["registrations"]],
        analytics=organizer_schema.EventAnalytics(**data["analytics"]),
    )


@router.get("/events/{event_id}/export")
async def export_participants(
    event_id: int,
    format: organizer_schema.ExportFormat = "csv",
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    content, media_type, filename = await organizer_service.export_participants(db, current_user, event_id, format)
    return _download(content, media_type, filename)


@router.get("/profile", response_model=auth_schema.UserRead)
async def get_profile(current_user: User = Depends(get_current_organizer)):
    return current_user


@router.put("/profile", response_model=auth_schema.UserRead)
async def update_profile(
    payload: auth_schema.OrganizerProfileUpdate,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    return await organizer_service.update_profile(db, current_user, payload)


@router.put("/change-password", response_model=Message)
async def change_password(
    payload: auth_schema.PasswordChange,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    await AuthService(db).change_password(current_user, payload.current_password, payload.new_password)
    return Message(message="Password changed successfully")


@router.get("/ongoing-events", response_model=List[event_schema.EventRead])
async def ongoing_events(
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    return await organizer_service.ongoing_events(db, current_user)


@router.put("/events/{event_id}/close-registration", response_model=event_schema.EventRead)
async def close_registration(
    event_id: int,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    return await event_service.change_status(db, current_user, event_id, EventStatus.CLOSED)


# Merchandise payment approval

@router.get("/merchandise-orders", response_model=List[reg_schema.OrderRead])
async def list_orders(
    event_id: Optional[int] = None,
    status: Optional[ApprovalStatus] = None,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    orders = await approval.list_orders(db, current_user, event_id=event_id, approval_status=status)
    return [_order(r) for r in orders]


@router.put("/merchandise-orders/{registration_id}/approve", response_model=organizer_schema.OrderReviewResponse)
async def approve_order(
    registration_id: int,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve a payment: issues the ticket QR, takes the stock and emails the participant."""
    registration = await approval.approve_order(db, current_user, registration_id)
    return organizer_schema.OrderReviewResponse(
        message="Payment approved successfully",
        registration=reg_schema.RegistrationRead.model_validate(registration),
    )


@router.put("/merchandise-orders/{registration_id}/reject", response_model=organizer_schema.OrderReviewResponse)
async def reject_order(
    registration_id: int,
    payload: Optional[reg_schema.OrderRejection] = None,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    registration = await approval.reject_order(
        db, current_user, registration_id, payload.reason if payload else None
    )
    return organizer_schema.OrderReviewResponse(
        message="Payment rejected",
        registration=reg_schema.RegistrationRead.model_validate(registration),
    )


# Attendance

@router.post("/verify-ticket", response_model=reg_schema.TicketVerification)
async def verify_ticket(
    payload: reg_schema.TicketScan,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    """Check a ticket without marking attendance."""
    return reg_schema.TicketVerification.model_validate(
        await attendance.verify_ticket(db, current_user, payload.ticket_id), from_attributes=True
    )


@router.post("/events/{event_id}/scan", response_model=reg_schema.AttendanceResponse)
async def scan_ticket(
    event_id: int,
    payload: reg_schema.TicketScan,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark attendance from a scanned QR code. A second scan is rejected with the original time."""
    registration = await attendance.scan_ticket(db, current_user, event_id, payload.ticket_id)
    return reg_schema.AttendanceResponse(
        message="Attendance marked successfully",
        registration=reg_schema.RegistrationRead.model_validate(registration),
        participant=reg_schema.ParticipantSummary.model_validate(registration.participant),
    )


@router.post("/events/{event_id}/manual-attendance", response_model=reg_schema.AttendanceResponse)
async def manual_attendance(
    event_id: int,
    payload: reg_schema.ManualAttendance,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    registration = await attendance.manual_mark(
        db, current_user, event_id, payload.registration_id, payload.reason
    )
    return reg_schema.AttendanceResponse(
        message="Attendance marked manually",
        registration=reg_schema.RegistrationRead.model_validate(registration),
        participant=reg_schema.ParticipantSummary.model_validate(registration.participant),
    )


@router.get("/events/{event_id}/attendance", response_model=organizer_schema.AttendanceReport)
async def attendance_report(
    event_id: int,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    registrations = await attendance.list_attendance(db, current_user, event_id)
    return organizer_schema.AttendanceReport(
        event_id=event_id,
        stats=organizer_schema.AttendanceStats(**attendance.attendance_stats(registrations)),
        registrations=[_order(r) for r in registrations],
    )


@router.get("/events/{event_id}/attendance/export")
async def export_attendance(
    event_id: int,
    format: organizer_schema.ExportFormat = "csv",
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    registrations = await attendance.list_attendance(db, current_user, event_id)
    rows = attendance.attendance_export_rows(registrations)
    if format == "xlsx":
        content = rows_to_xlsx(attendance.ATTENDANCE_EXPORT_HEADERS, rows, title="Attendance")
        return _download(content, XLSX_MEDIA_TYPE, f"attendance-{event_id}.xlsx")
    content = rows_to_csv(attendance.ATTENDANCE_EXPORT_HEADERS, rows).encode("utf-8")
    return _download(content, CSV_MEDIA_TYPE, f"attendance-{event_id}.csv")


# Password reset requests

@router.post("/request-password-reset", response_model=admin_schema.ResetRequestRead)
async def request_password_reset(
    payload: admin_schema.ResetRequestCreate,
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    """Ask an admin for a new password. Only one request can be pending at a time."""
    return await admin_service.create_reset_request(db, current_user, payload.reason)


@router.get("/password-reset-history", response_model=List[admin_schema.ResetRequestRead])
async def password_reset_history(
    current_user: User = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_async_db),
):
    return await admin_service.list_reset_history(db, current_user)
