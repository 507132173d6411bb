"""Organizer service layer - dashboard, analytics, exports and profile."""

from typing import Any, Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.auth.schemas import OrganizerProfileUpdate
from eventhub.common.exporter import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE, rows_to_csv, rows_to_xlsx
from eventhub.events.models import Event, EventStatus
from eventhub.events.service import get_owned_event
from eventhub.registrations.models import Registration

PARTICIPANT_EXPORT_HEADERS = [
    "Ticket ID", "First Name", "Last Name", "Email", "Contact", "College",
    "Registration Date", "Status", "Payment Status", "Amount", "Attended",
]


def event_analytics(event: Event) -> Dict[str, Any]:
    registrations = event.total_registrations or 0
    return {
        "total_registrations": registrations,
        "total_revenue": event.total_revenue or 0,
        "total_attendance": event.total_attendance or 0,
        "attendance_rate": round(event.total_attendance / registrations * 100, 2) if registrations else 0.0,
        "views": event.views,
    }


async def get_dashboard(db: AsyncSession, organizer: User) -> Dict[str, Any]:
    """All of the organizer's events, with totals summed over completed ones."""
    result = await db.execute(
        select(Event).where(Event.organizer_id == organizer.id).order_by(Event.created_on.desc())
    )
    events = list(result.scalars().unique().all())
    completed = [e for e in events if e.status == EventStatus.COMPLETED]
    analytics = {
        "total_events": len(completed),
        "total_registrations": sum(e.total_registrations for e in completed),
        "total_revenue": sum(e.total_revenue or 0 for e in completed),
        "total_attendance": sum(e.total_attendance for e in completed),
    }
    return {"events": events, "analytics": analytics}


async def _event_registrations(db: AsyncSession, event_id: int) -> List[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_on.desc())
    )
    return list(result.scalars().unique().all())


async def get_event_overview(db: AsyncSession, organizer: User, event_id: int) -> Dict[str, Any]:
    event = await get_owned_event(db, organizer, event_id)
    registrations = await _event_registrations(db, event_id)
    return {"event": event, "registrations": registrations, "analytics": event_analytics(event)}


async def export_participants(
    db: AsyncSession, organizer: User, event_id: int, fmt: str = "csv"
) -> Tuple[bytes, str, str]:
    """
    Participant list for the event as CSV or XLSX.

    Returns:
        (content, media type, download filename)
    """
    event = await get_owned_event(db, organizer, event_id)
    rows = []
    for r in await _event_registrations(db, event_id):
        p = r.participant
        rows.append([
            r.ticket_id,
            p.first_name or "",
            p.last_name or "",
            p.email,
            p.contact_number or "",
            p.college_name or "",
            r.created_on.strftime("%Y-%m-%d"),
            r.registration_status.value,
            r.payment_status.value,
            r.payment_amount or 0,
            "Yes" if r.attended else "No",
        ])

    stem = f"participants-{event.id}"
    if fmt == "xlsx":
        return rows_to_xlsx(PARTICIPANT_EXPORT_HEADERS, rows, title="Participants"), XLSX_MEDIA_TYPE, f"{stem}.xlsx"
    return rows_to_csv(PARTICIPANT_EXPORT_HEADERS, rows).encode("utf-8"), CSV_MEDIA_TYPE, f"{stem}.csv"


async def update_profile(db: AsyncSession, organizer: User, data: OrganizerProfileUpdate) -> User:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(organizer, field, value)
    await db.commit()
    await db.refresh(organizer)
    return organizer


async def ongoing_events(db: AsyncSession, organizer: User) -> List[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.organizer_id == organizer.id, Event.status == EventStatus.ONGOING)
        .order_by(Event.event_start_date)
    )
    return list(result.scalars().unique().all())
