import pytest

from eventhub.auth.models import UserRole
from eventhub.common.errors import Conflict, NotFound, PermissionDenied, Reason, ValidationFailed
from eventhub.events.models import EventType
from eventhub.registrations import approval, attendance
from eventhub.registrations import service as registration_service
from eventhub.registrations.models import AttendanceType

PROOF = "/uploads/payment-proofs/payment-test.png"


@pytest.fixture
async def ticket(make_user, make_event, db):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    event = await make_event(organizer)
    registration = await registration_service.register_for_event(db, participant, event.id)
    return organizer, event, registration


async def test_scan_marks_attendance_once(db, ticket):
    organizer, event, registration = ticket

    scanned = await attendance.scan_ticket(db, organizer, event.id, f"  {registration.ticket_id} ")

    assert scanned.attended is True
    assert scanned.attendance_marked_at is not None
    assert scanned.manual_override is False
    assert len(scanned.attendance_log) == 1
    assert scanned.attendance_log[0].type == AttendanceType.SCAN
    assert scanned.attendance_log[0].scanned_by_id == organizer.id
    await db.refresh(event)
    assert event.total_attendance == 1

    with pytest.raises(Conflict) as exc:
        await attendance.scan_ticket(db, organizer, event.id, registration.ticket_id)
    assert exc.value.reason == Reason.DUPLICATE_SCAN
    assert exc.value.detail["attendance_marked_at"] == scanned.attendance_marked_at.isoformat()

    await db.refresh(event)
    assert event.total_attendance == 1


async def test_scan_unknown_or_foreign_ticket(db, make_user, make_event, ticket):
    organizer, event, registration = ticket
    other_event = await make_event(organizer)

    with pytest.raises(NotFound):
        await attendance.scan_ticket(db, organizer, event.id, "FEL-NOPE-000000")
    with pytest.raises(NotFound):
        await attendance.scan_ticket(db, organizer, other_event.id, registration.ticket_id)

    rival = await make_user(UserRole.ORGANIZER)
    with pytest.raises(PermissionDenied):
        await attendance.scan_ticket(db, rival, event.id, registration.ticket_id)


async def test_cancelled_ticket_is_not_attendable(db, ticket):
    organizer, event, registration = ticket
    await registration_service.cancel_registration(db, registration.participant, registration.id)

    with pytest.raises(ValidationFailed) as exc:
        await attendance.scan_ticket(db, organizer, event.id, registration.ticket_id)
    assert exc.value.reason == Reason.NOT_ATTENDABLE


async def test_pending_order_cannot_be_scanned(db, make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    shop = await make_event(organizer, event_type=EventType.MERCHANDISE)
    order = await registration_service.purchase_merchandise(db, participant, shop.id, 0, 1, PROOF)

    with pytest.raises(ValidationFailed) as exc:
        await attendance.scan_ticket(db, organizer, shop.id, order.ticket_id)
    assert exc.value.reason == Reason.PAYMENT_NOT_APPROVED

    await approval.approve_order(db, organizer, order.id)
    scanned = await attendance.scan_ticket(db, organizer, shop.id, order.ticket_id)
    assert scanned.attended is True


async def test_manual_attendance_records_reason(db, ticket):
    organizer, event, registration = ticket

    marked = await attendance.manual_mark(db, organizer, event.id, registration.id, "Phone battery died")

    assert marked.attended is True
    assert marked.manual_override is True
    assert marked.override_reason == "Phone battery died"
    assert marked.attendance_log[0].type == AttendanceType.MANUAL

    with pytest.raises(Conflict):
        await attendance.manual_mark(db, organizer, event.id, registration.id, None)


async def test_manual_attendance_default_reason(db, ticket):
    organizer, event, registration = ticket
    marked = await attendance.manual_mark(db, organizer, event.id, registration.id)
    assert marked.override_reason == attendance.DEFAULT_OVERRIDE_REASON


async def test_verify_does_not_mark(db, ticket):
    organizer, event, registration = ticket

    result = await attendance.verify_ticket(db, organizer, registration.ticket_id)
    assert result["valid"] is True
    assert result["attended"] is False

    await attendance.scan_ticket(db, organizer, event.id, registration.ticket_id)
    result = await attendance.verify_ticket(db, organizer, registration.ticket_id)
    assert result["valid"] is False
    assert result["message"] == "Ticket already used"


async def test_attendance_report(db, make_user, ticket):
    organizer, event, registration = ticket
    late = await make_user()
    await registration_service.register_for_event(db, late, event.id)
    await attendance.scan_ticket(db, organizer, event.id, registration.ticket_id)

    rows = await attendance.list_attendance(db, organizer, event.id)
    stats = attendance.attendance_stats(rows)

    assert rows[0].id == registration.id
    assert stats == {
        "total_registrations": 2,
        "attended": 1,
        "not_attended": 1,
        "attendance_rate": 50.0,
        "manual_overrides": 0,
    }
    export = attendance.attendance_export_rows(rows)
    assert export[0][0] == registration.ticket_id
    assert export[0][4] == "Yes"
    assert export[1][4] == "No"
