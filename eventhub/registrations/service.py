"""Registration workflows: normal sign-ups, merchandise orders, cancellation."""

import logging
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import atomic, utcnow
from eventhub.common.errors import Conflict, NotFound, Reason, ValidationFailed
from eventhub.common.permissions import Capability, authorize
from eventhub.events.models import Event, EventType
from eventhub.notifications.email import send_ticket_email
from eventhub.registrations import ledger
from eventhub.registrations.eligibility import check_purchase, check_registration, validate_form_responses
from eventhub.registrations.models import (
    ApprovalStatus,
    PaymentStatus,
    Registration,
    RegistrationStatus,
)
from eventhub.registrations.tickets import generate_ticket_id, issue_qr

logger = logging.getLogger(__name__)

# One retry on a ticket id collision; a second collision is a real error.
TICKET_ID_ATTEMPTS = 2


async def get_event_or_404(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


async def has_active_registration(db: AsyncSession, event_id: int, participant_id: int) -> bool:
    result = await db.execute(
        select(Registration.id).where(
            Registration.event_id == event_id,
            Registration.participant_id == participant_id,
            Registration.registration_type == EventType.NORMAL,
            Registration.registration_status == RegistrationStatus.REGISTERED,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def send_ticket_notification(db: AsyncSession, registration: Registration) -> bool:
    """
    Email the ticket and record ``email_sent``.

    Runs after the registration is committed; a failed send is logged and
    leaves the registration untouched.
    """
    event = registration.event
    participant = registration.participant
    ticket = {
        "ticket_id": registration.ticket_id,
        "event_name": event.item_name if registration.registration_type == EventType.MERCHANDISE else event.event_name,
        "event_date": event.event_start_date,
        "venue": event.venue,
        "amount": registration.payment_amount,
        "qr_code": registration.qr_code,
    }
    try:
        sent = await run_in_threadpool(send_ticket_email, participant.email, participant.full_name, ticket)
    except Exception as e:
        logger.error(f"Ticket email for {registration.ticket_id} failed: {e}")
        sent = False

    if sent:
        await db.execute(
            update(Registration)
            .where(Registration.id == registration.id)
            .values(email_sent=True)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        registration.email_sent = True
    return sent


async def register_for_event(
    db: AsyncSession,
    participant: User,
    event_id: int,
    form_responses: Optional[Dict[str, Any]] = None,
) -> Registration:
    """
    Register a participant for a normal event.

    The slot reservation, form lock and registration insert commit together;
    the ticket email goes out afterwards and never undoes the registration.

    Raises:
        PermissionDenied: If the actor is not a participant
        NotFound: If the event does not exist
        ValidationFailed: Closed window, ineligible participant, bad form answers
        Conflict: LIMIT_REACHED or ALREADY_REGISTERED
    """
    authorize(participant, Capability.REGISTER, message="Only participants can register for events")
    event = await get_event_or_404(db, event_id)
    if event.event_type != EventType.NORMAL:
        raise ValidationFailed(Reason.INVALID_INPUT, "Merchandise is purchased, not registered for")

    participant_id = participant.id
    now = utcnow()
    already = await has_active_registration(db, event_id, participant_id)
    check_registration(event, participant, now, already).raise_for_rejection()
    responses = validate_form_responses(event.custom_form, form_responses)

    for attempt in range(1, TICKET_ID_ATTEMPTS + 1):
        if attempt > 1:
            await db.refresh(event)
            await db.refresh(participant)

        ticket_id = generate_ticket_id()
        fee = event.registration_fee or 0
        registration = Registration(
            ticket_id=ticket_id,
            event_id=event_id,
            participant_id=participant_id,
            registration_type=EventType.NORMAL,
            form_responses=responses,
            payment_status=PaymentStatus.COMPLETED,
            payment_amount=fee,
            payment_date=now,
            registration_status=RegistrationStatus.REGISTERED,
        )
        try:
            async with atomic(db):
                await ledger.reserve_registration_slot(db, event_id, fee, lock_form=True)
                registration.qr_code = issue_qr(registration, event, participant, now)
                db.add(registration)
                await db.flush()
        except IntegrityError:
            if await has_active_registration(db, event_id, participant_id):
                raise Conflict(Reason.ALREADY_REGISTERED, "Already registered for this event")
            if attempt == TICKET_ID_ATTEMPTS:
                raise
            logger.warning(f"Ticket id collision on {ticket_id}; retrying with a fresh id")
            continue
        break

    await db.refresh(registration)
    logger.info(f"Participant {participant_id} registered for event {event_id} with ticket {registration.ticket_id}")

    await send_ticket_notification(db, registration)
    return registration


async def purchase_merchandise(
    db: AsyncSession,
    participant: User,
    event_id: int,
    variant_index: int,
    quantity: int,
    payment_proof: Optional[str],
) -> Registration:
    """
    Place a merchandise order awaiting organizer approval.

    Stock is only checked here; it moves when the order is approved. No QR
    and no email until then.

    Raises:
        PermissionDenied: If the actor is not a participant
        NotFound: If there is no merchandise event with this id
        ValidationFailed: Closed window, missing proof, bad variant or quantity
        Conflict: INSUFFICIENT_STOCK or PURCHASE_LIMIT_REACHED
    """
    authorize(participant, Capability.REGISTER, message="Only participants can purchase merchandise")
    event = await db.get(Event, event_id)
    if not event or event.event_type != EventType.MERCHANDISE:
        raise NotFound("Merchandise event not found")

    participant_id = participant.id
    check_purchase(event, participant, utcnow(), payment_proof, variant_index, quantity).raise_for_rejection()

    for attempt in range(1, TICKET_ID_ATTEMPTS + 1):
        if attempt > 1:
            await db.refresh(event)

        ticket_id = generate_ticket_id()
        try:
            async with atomic(db):
                variant = await ledger.reserve_stock(db, event, variant_index, quantity, participant_id)
                total_price = (event.registration_fee or 0) * quantity
                registration = Registration(
                    ticket_id=ticket_id,
                    event_id=event_id,
                    participant_id=participant_id,
                    registration_type=EventType.MERCHANDISE,
                    variant_size=variant.size,
                    variant_color=variant.color,
                    quantity=quantity,
                    total_price=total_price,
                    payment_amount=total_price,
                    payment_status=PaymentStatus.PENDING,
                    payment_proof=payment_proof,
                    payment_approval_status=ApprovalStatus.PENDING,
                    registration_status=RegistrationStatus.REGISTERED,
                    qr_code=None,
                )
                db.add(registration)
                await db.flush()
        except IntegrityError:
            if attempt == TICKET_ID_ATTEMPTS:
                raise
            logger.warning(f"Ticket id collision on {ticket_id}; retrying with a fresh id")
            continue
        break

    await db.refresh(registration)
    logger.info(
        f"Participant {participant_id} ordered {quantity} x {registration.variant_size}/{registration.variant_color} "
        f"for event {event_id}; awaiting approval"
    )
    return registration


async def cancel_registration(db: AsyncSession, participant: User, registration_id: int) -> Registration:
    """
    Cancel the participant's own registration before the event starts.

    Counted registrations give back exactly the slot and amount they took.
    Merchandise stock is not restored.

    Raises:
        NotFound: If the registration does not exist or belongs to someone else
        ValidationFailed: CANNOT_CANCEL if already cancelled or the event has started
    """
    registration = await db.get(Registration, registration_id)
    if not registration or registration.participant_id != participant.id:
        raise NotFound("Registration not found")

    if registration.registration_status != RegistrationStatus.REGISTERED:
        raise ValidationFailed(Reason.CANNOT_CANCEL, "Cannot cancel this registration")
    if utcnow() >= registration.event.event_start_date:
        raise ValidationFailed(Reason.CANNOT_CANCEL, "Cannot cancel after event has started")

    counted = registration.counts_toward_totals
    amount = registration.payment_amount
    event_id = registration.event_id

    async with atomic(db):
        result = await db.execute(
            update(Registration)
            .where(
                Registration.id == registration_id,
                Registration.registration_status == RegistrationStatus.REGISTERED,
            )
            .values(registration_status=RegistrationStatus.CANCELLED, updated_on=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ValidationFailed(Reason.CANNOT_CANCEL, "Cannot cancel this registration")
        if counted:
            await ledger.release_registration_slot(db, event_id, amount)

    await db.refresh(registration)
    logger.info(f"Registration {registration_id} cancelled by participant {participant.id}")
    return registration


async def list_tickets(db: AsyncSession, participant: User) -> List[Registration]:
    result = await db.execute(
        select(Registration)
        .where(
            Registration.participant_id == participant.id,
            Registration.registration_status == RegistrationStatus.REGISTERED,
        )
        .order_by(Registration.created_on.desc())
    )
    return list(result.scalars().unique().all())


async def get_ticket(db: AsyncSession, participant: User, ticket_id: str) -> Registration:
    result = await db.execute(
        select(Registration).where(
            Registration.ticket_id == ticket_id,
            Registration.participant_id == participant.id,
        )
    )
    registration = result.scalars().unique().one_or_none()
    if not registration:
        raise NotFound("Ticket not found")
    return registration
