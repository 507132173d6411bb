import pytest

from eventhub.auth.models import UserRole
from eventhub.common.errors import Conflict, NotFound, PermissionDenied, Reason, ValidationFailed
from eventhub.events.models import Event, EventType, MerchandiseVariant
from eventhub.registrations import approval
from eventhub.registrations import service as registration_service
from eventhub.registrations.models import ApprovalStatus, PaymentStatus, RegistrationStatus

PROOF = "/uploads/payment-proofs/payment-test.png"


@pytest.fixture
async def shop(make_user, make_event):
    organizer = await make_user(UserRole.ORGANIZER)
    event = await make_event(
        organizer,
        event_type=EventType.MERCHANDISE,
        variants=[("M", "Black", 3), ("L", "White", 1)],
        purchase_limit_per_participant=2,
    )
    return organizer, event


async def _variant(session_factory, event_id, size):
    async with session_factory() as fresh:
        event = await fresh.get(Event, event_id)
        return next(v for v in event.variants if v.size == size)


async def test_purchase_is_pending_and_takes_no_stock(db, session_factory, make_user, shop, outbound):
    organizer, event = shop
    participant = await make_user()

    order = await registration_service.purchase_merchandise(db, participant, event.id, 0, 2, PROOF)

    assert order.payment_approval_status == ApprovalStatus.PENDING
    assert order.payment_status == PaymentStatus.PENDING
    assert order.qr_code is None
    assert (order.variant_size, order.variant_color, order.quantity) == ("M", "Black", 2)
    assert order.total_price == 600
    assert outbound["tickets"] == []

    variant = await _variant(session_factory, event.id, "M")
    assert (variant.stock_quantity, variant.sold) == (3, 0)
    await db.refresh(event)
    assert event.total_registrations == 0


async def test_purchase_rejections(db, make_user, make_event, shop):
    organizer, event = shop
    participant = await make_user()

    with pytest.raises(ValidationFailed) as exc:
        await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, None)
    assert exc.value.reason == Reason.PAYMENT_PROOF_REQUIRED

    with pytest.raises(ValidationFailed) as exc:
        await registration_service.purchase_merchandise(db, participant, event.id, 2, 1, PROOF)
    assert exc.value.reason == Reason.INVALID_VARIANT

    normal = await make_event(organizer)
    with pytest.raises(NotFound):
        await registration_service.purchase_merchandise(db, participant, normal.id, 0, 1, PROOF)

    with pytest.raises(Conflict) as exc:
        await registration_service.purchase_merchandise(db, participant, event.id, 1, 2, PROOF)
    assert exc.value.reason == Reason.INSUFFICIENT_STOCK
    assert exc.value.detail["available"] == 1


async def test_purchase_limit_counts_open_orders(db, make_user, shop):
    organizer, event = shop
    participant = await make_user()

    await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)
    second = await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)

    with pytest.raises(Conflict) as exc:
        await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)
    assert exc.value.reason == Reason.PURCHASE_LIMIT_REACHED
    assert exc.value.detail["already_ordered"] == 2

    # The failed order rolled the session back
    for obj in (organizer, participant, second, event):
        await db.refresh(obj)

    # A rejected order no longer counts
    await approval.reject_order(db, organizer, second.id)
    third = await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)
    assert third.payment_approval_status == ApprovalStatus.PENDING


async def test_approve_moves_stock_and_issues_ticket(db, session_factory, make_user, shop, outbound):
    organizer, event = shop
    participant = await make_user()
    order = await registration_service.purchase_merchandise(db, participant, event.id, 0, 2, PROOF)

    approved = await approval.approve_order(db, organizer, order.id)

    assert approved.payment_approval_status == ApprovalStatus.APPROVED
    assert approved.payment_status == PaymentStatus.COMPLETED
    assert approved.payment_date is not None
    assert approved.qr_code.startswith("data:image/png;base64,")
    assert approved.email_sent is True
    assert len(outbound["tickets"]) == 1

    variant = await _variant(session_factory, event.id, "M")
    assert (variant.stock_quantity, variant.sold) == (1, 2)
    await db.refresh(event)
    assert event.total_registrations == 1
    assert event.total_revenue == 600


async def test_approve_twice_is_already_processed(db, make_user, shop):
    organizer, event = shop
    participant = await make_user()
    order = await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)

    await approval.approve_order(db, organizer, order.id)
    with pytest.raises(Conflict) as exc:
        await approval.approve_order(db, organizer, order.id)
    assert exc.value.reason == Reason.ALREADY_PROCESSED
    assert exc.value.detail["payment_approval_status"] == "approved"

    with pytest.raises(Conflict):
        await approval.reject_order(db, organizer, order.id)


async def test_approve_without_stock_rolls_back(db, session_factory, make_user, shop):
    organizer, event = shop
    first = await make_user()
    second = await make_user()
    order_a = await registration_service.purchase_merchandise(db, first, event.id, 1, 1, PROOF)
    order_b = await registration_service.purchase_merchandise(db, second, event.id, 1, 1, PROOF)

    await approval.approve_order(db, organizer, order_a.id)
    with pytest.raises(Conflict) as exc:
        await approval.approve_order(db, organizer, order_b.id)
    assert exc.value.reason == Reason.INSUFFICIENT_STOCK

    await db.refresh(order_b)
    assert order_b.payment_approval_status == ApprovalStatus.PENDING
    assert order_b.qr_code is None
    variant = await _variant(session_factory, event.id, "L")
    assert (variant.stock_quantity, variant.sold) == (0, 1)


async def test_reject_leaves_stock_and_totals(db, session_factory, make_user, shop):
    organizer, event = shop
    participant = await make_user()
    order = await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)

    rejected = await approval.reject_order(db, organizer, order.id, "  ")

    assert rejected.payment_approval_status == ApprovalStatus.REJECTED
    assert rejected.payment_status == PaymentStatus.FAILED
    assert rejected.registration_status == RegistrationStatus.REJECTED
    assert rejected.payment_rejection_reason == approval.DEFAULT_REJECTION_REASON
    variant = await _variant(session_factory, event.id, "M")
    assert (variant.stock_quantity, variant.sold) == (3, 0)
    await db.refresh(event)
    assert event.total_registrations == 0


async def test_only_the_owner_reviews_orders(db, make_user, shop):
    organizer, event = shop
    rival = await make_user(UserRole.ORGANIZER)
    participant = await make_user()
    order = await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)

    with pytest.raises(PermissionDenied):
        await approval.approve_order(db, rival, order.id)
    assert await approval.list_orders(db, rival) == []

    pending = await approval.list_orders(db, organizer, approval_status=ApprovalStatus.PENDING)
    assert [o.id for o in pending] == [order.id]


async def test_variant_removed_after_order_still_approves(db, session_factory, make_user, shop):
    organizer, event = shop
    participant = await make_user()
    order = await registration_service.purchase_merchandise(db, participant, event.id, 1, 1, PROOF)

    white = next(v for v in event.variants if v.size == "L")
    event.variants.remove(white)
    await db.commit()

    approved = await approval.approve_order(db, organizer, order.id)
    assert approved.payment_approval_status == ApprovalStatus.APPROVED
    await db.refresh(event)
    assert event.total_registrations == 1
    assert [v.size for v in event.variants] == ["M"]


async def test_cancel_approved_order_keeps_stock_out(db, session_factory, make_user, shop):
    organizer, event = shop
    participant = await make_user()
    order = await registration_service.purchase_merchandise(db, participant, event.id, 0, 1, PROOF)
    await approval.approve_order(db, organizer, order.id)

    await registration_service.cancel_registration(db, participant, order.id)

    await db.refresh(event)
    assert event.total_registrations == 0
    assert event.total_revenue == 0
    variant = await _variant(session_factory, event.id, "M")
    assert isinstance(variant, MerchandiseVariant)
    assert (variant.stock_quantity, variant.sold) == (2, 1)
