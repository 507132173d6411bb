import csv
import io

from openpyxl import load_workbook

from eventhub.auth.models import UserRole
from eventhub.common.exporter import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE
from eventhub.events.models import EventStatus
from eventhub.organizers import service as organizer_service
from eventhub.registrations import attendance
from eventhub.registrations import service as registration_service


async def test_dashboard_sums_completed_events(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    live = await make_event(organizer, registration_fee=50)
    await registration_service.register_for_event(db, participant, live.id)
    await make_event(organizer, status=EventStatus.COMPLETED, total_registrations=10, total_revenue=500, total_attendance=8)

    dashboard = await organizer_service.get_dashboard(db, organizer)

    assert len(dashboard["events"]) == 2
    assert dashboard["analytics"] == {
        "total_events": 1,
        "total_registrations": 10,
        "total_revenue": 500,
        "total_attendance": 8,
    }


async def test_event_overview_analytics(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(organizer)
    for _ in range(4):
        participant = await make_user()
        registration = await registration_service.register_for_event(db, participant, event.id)
    await attendance.scan_ticket(db, organizer, event.id, registration.ticket_id)
    await db.refresh(event)

    overview = await organizer_service.get_event_overview(db, organizer, event.id)

    assert len(overview["registrations"]) == 4
    assert overview["analytics"]["total_registrations"] == 4
    assert overview["analytics"]["attendance_rate"] == 25.0


async def test_export_participants(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user(first_name="Kiran", college_name="IIIT Hyderabad")
    event = await make_event(organizer)
    registration = await registration_service.register_for_event(db, participant, event.id)

    content, media_type, filename = await organizer_service.export_participants(db, organizer, event.id)
    assert media_type == CSV_MEDIA_TYPE
    assert filename == f"participants-{event.id}.csv"
    rows = list(csv.reader(io.StringIO(content.decode("utf-8"))))
    assert rows[0] == organizer_service.PARTICIPANT_EXPORT_HEADERS
    assert rows[1][:3] == [registration.ticket_id, "Kiran", participant.last_name]
    assert rows[1][-1] == "No"

    content, media_type, filename = await organizer_service.export_participants(db, organizer, event.id, "xlsx")
    assert media_type == XLSX_MEDIA_TYPE
    sheet = load_workbook(io.BytesIO(content)).active
    assert sheet.title == "Participants"
    assert sheet.cell(row=2, column=1).value == registration.ticket_id


async def test_ongoing_events(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    running = await make_event(organizer, status=EventStatus.ONGOING)
    await make_event(organizer)
    assert [e.id for e in await organizer_service.ongoing_events(db, organizer)] == [running.id]
