"""Ticket scanning, manual attendance overrides and attendance reporting."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import atomic, utcnow
from eventhub.common.errors import Conflict, NotFound, Reason, ValidationFailed
from eventhub.common.permissions import Capability, authorize
from eventhub.events.models import Event, EventType
from eventhub.registrations import ledger
from eventhub.registrations.models import (
    ApprovalStatus,
    AttendanceLogEntry,
    AttendanceType,
    Registration,
    RegistrationStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_OVERRIDE_REASON = "Manual override by organizer"


async def _get_managed_event(db: AsyncSession, organizer: User, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    authorize(organizer, Capability.MANAGE_EVENT, event, message="Not authorized for this event")
    return event


def _ensure_attendable(registration: Registration) -> None:
    if registration.registration_status != RegistrationStatus.REGISTERED:
        raise ValidationFailed(
            Reason.NOT_ATTENDABLE,
            f"Ticket is {registration.registration_status.value}",
        )
    if (
        registration.registration_type == EventType.MERCHANDISE
        and registration.payment_approval_status != ApprovalStatus.APPROVED
    ):
        raise ValidationFailed(Reason.PAYMENT_NOT_APPROVED, "Payment has not been approved for this order")


def _duplicate_scan(marked_at) -> Conflict:
    when = marked_at.isoformat() if marked_at else None
    return Conflict(
        Reason.DUPLICATE_SCAN,
        f"Already scanned at {when}",
        extra={"attendance_marked_at": when},
    )


async def _mark_attended(
    db: AsyncSession,
    registration: Registration,
    scanned_by: User,
    entry_type: AttendanceType,
    notes: str,
) -> Registration:
    _ensure_attendable(registration)
    if registration.attended:
        raise _duplicate_scan(registration.attendance_marked_at)

    now = utcnow()
    values: Dict[str, Any] = {"attended": True, "attendance_marked_at": now, "updated_on": now}
    if entry_type == AttendanceType.MANUAL:
        values.update(manual_override=True, override_reason=notes)

    registration_id, event_id = registration.id, registration.event_id
    async with atomic(db):
        result = await db.execute(
            update(Registration)
            .where(Registration.id == registration_id, Registration.attended == False)  # noqa: E712
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            marked_at = (
                await db.execute(
                    select(Registration.attendance_marked_at).where(Registration.id == registration_id)
                )
            ).scalar_one()
            raise _duplicate_scan(marked_at)

        db.add(
            AttendanceLogEntry(
                registration_id=registration_id,
                timestamp=now,
                scanned_by_id=scanned_by.id,
                type=entry_type,
                notes=notes,
            )
        )
        await ledger.record_attendance(db, event_id)

    await db.refresh(registration)
    logger.info(f"Attendance ({entry_type.value}) marked for ticket {registration.ticket_id} by user {scanned_by.id}")
    return registration


async def scan_ticket(db: AsyncSession, organizer: User, event_id: int, ticket_id: str) -> Registration:
    """
    Mark attendance from a scanned QR ticket.

    Raises:
        NotFound: Unknown event, or no such ticket for this event
        PermissionDenied: If the organizer does not own the event
        ValidationFailed: Ticket not active or order not approved
        Conflict: DUPLICATE_SCAN with the original scan time
    """
    await _get_managed_event(db, organizer, event_id)
    result = await db.execute(
        select(Registration).where(
            Registration.ticket_id == ticket_id.strip(),
            Registration.event_id == event_id,
        )
    )
    registration = result.scalars().unique().one_or_none()
    if not registration:
        raise NotFound("Invalid ticket for this event")
    return await _mark_attended(db, registration, organizer, AttendanceType.SCAN, "QR code scanned")


async def manual_mark(
    db: AsyncSession,
    organizer: User,
    event_id: int,
    registration_id: int,
    reason: Optional[str] = None,
) -> Registration:
    """Mark attendance without a scan, recording why."""
    await _get_managed_event(db, organizer, event_id)
    registration = await db.get(Registration, registration_id)
    if not registration or registration.event_id != event_id:
        raise NotFound("Registration not found for this event")
    notes = (reason or "").strip() or DEFAULT_OVERRIDE_REASON
    return await _mark_attended(db, registration, organizer, AttendanceType.MANUAL, notes)


async def verify_ticket(db: AsyncSession, organizer: User, ticket_id: str) -> Dict[str, Any]:
    """Read-only validity check; nothing is marked."""
    result = await db.execute(select(Registration).where(Registration.ticket_id == ticket_id.strip()))
    registration = result.scalars().unique().one_or_none()
    if not registration:
        raise NotFound("Invalid ticket")
    authorize(organizer, Capability.MANAGE_EVENT, registration.event, message="Not authorized for this event")

    valid, message = True, "Ticket is valid"
    try:
        _ensure_attendable(registration)
    except ValidationFailed as e:
        valid, message = False, e.message
    if valid and registration.attended:
        valid, message = False, "Ticket already used"

    return {
        "valid": valid,
        "message": message,
        "ticket_id": registration.ticket_id,
        "event_id": registration.event_id,
        "event_name": registration.event.event_name,
        "participant": registration.participant,
        "registration_status": registration.registration_status,
        "payment_approval_status": registration.payment_approval_status,
        "attended": registration.attended,
        "attendance_marked_at": registration.attendance_marked_at,
    }


async def list_attendance(db: AsyncSession, organizer: User, event_id: int) -> List[Registration]:
    """Active registrations for the event, attended ones first."""
    await _get_managed_event(db, organizer, event_id)
    result = await db.execute(
        select(Registration)
        .where(
            Registration.event_id == event_id,
            Registration.registration_status == RegistrationStatus.REGISTERED,
        )
        .order_by(Registration.attended.desc(), Registration.attendance_marked_at.desc(), Registration.id)
    )
    return [
        r for r in result.scalars().unique().all()
        if r.registration_type == EventType.NORMAL or r.payment_approval_status == ApprovalStatus.APPROVED
    ]


def attendance_stats(registrations: List[Registration]) -> Dict[str, Any]:
    total = len(registrations)
    attended = sum(1 for r in registrations if r.attended)
    return {
        "total_registrations": total,
        "attended": attended,
        "not_attended": total - attended,
        "attendance_rate": round(attended / total * 100, 2) if total else 0.0,
        "manual_overrides": sum(1 for r in registrations if r.manual_override),
    }


ATTENDANCE_EXPORT_HEADERS = [
    "Ticket ID", "Name", "Email", "Contact", "Attended", "Attendance Time", "Manual Override", "Override Reason",
]


def attendance_export_rows(registrations: List[Registration]) -> List[List[Any]]:
    rows = []
    for r in registrations:
        p = r.participant
        rows.append([
            r.ticket_id,
            p.full_name,
            p.email,
            p.contact_number or "",
            "Yes" if r.attended else "No",
            r.attendance_marked_at.isoformat() if r.attendance_marked_at else "",
            "Yes" if r.manual_override else "No",
            r.override_reason or "",
        ])
    return rows
