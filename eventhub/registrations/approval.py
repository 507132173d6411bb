"""Organizer review of merchandise payment proofs."""

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import atomic, utcnow
from eventhub.common.errors import Conflict, NotFound, Reason
from eventhub.common.permissions import Capability, authorize
from eventhub.events.models import Event, EventType
from eventhub.registrations import ledger
from eventhub.registrations.models import (
    ApprovalStatus,
    PaymentStatus,
    Registration,
    RegistrationStatus,
)
from eventhub.registrations.service import send_ticket_notification
from eventhub.registrations.tickets import issue_qr

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Payment proof not valid"


async def _load_order(db: AsyncSession, organizer: User, registration_id: int) -> Registration:
    registration = await db.get(Registration, registration_id)
    if not registration or registration.registration_type != EventType.MERCHANDISE:
        raise NotFound("Order not found")
    authorize(organizer, Capability.MANAGE_EVENT, registration.event, message="Not authorized to review this order")
    return registration


def _already_processed(registration: Registration) -> Conflict:
    status = registration.payment_approval_status
    return Conflict(
        Reason.ALREADY_PROCESSED,
        "Order already processed",
        extra={"payment_approval_status": status.value if status else None},
    )


def _is_pending(registration: Registration) -> bool:
    return (
        registration.payment_approval_status == ApprovalStatus.PENDING
        and registration.registration_status == RegistrationStatus.REGISTERED
    )


def _pending_order_filter(registration_id: int):
    return (
        Registration.id == registration_id,
        Registration.payment_approval_status == ApprovalStatus.PENDING,
        Registration.registration_status == RegistrationStatus.REGISTERED,
    )


async def approve_order(db: AsyncSession, organizer: User, registration_id: int) -> Registration:
    """
    Approve a pending order: issue the ticket, take the stock, count the sale.

    Raises:
        NotFound: If the order does not exist
        PermissionDenied: If the organizer does not own the event
        Conflict: ALREADY_PROCESSED, INSUFFICIENT_STOCK or LIMIT_REACHED
    """
    registration = await _load_order(db, organizer, registration_id)
    if not _is_pending(registration):
        raise _already_processed(registration)

    event = registration.event
    now = utcnow()
    qr_code = issue_qr(registration, event, registration.participant, now)
    size, color = registration.variant_size, registration.variant_color
    quantity, amount = registration.quantity or 0, registration.payment_amount

    async with atomic(db):
        result = await db.execute(
            update(Registration)
            .where(*_pending_order_filter(registration_id))
            .values(
                payment_approval_status=ApprovalStatus.APPROVED,
                payment_status=PaymentStatus.COMPLETED,
                payment_date=now,
                qr_code=qr_code,
                updated_on=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(registration)
            raise _already_processed(registration)
        await ledger.commit_stock_decrement(db, event, size, color, quantity, amount)

    await db.refresh(registration)
    logger.info(f"Order {registration.ticket_id} approved by organizer {organizer.id}")

    await send_ticket_notification(db, registration)
    return registration


async def reject_order(
    db: AsyncSession,
    organizer: User,
    registration_id: int,
    reason: Optional[str] = None,
) -> Registration:
    """
    Reject a pending order. Stock and event totals are left alone.

    Raises:
        NotFound: If the order does not exist
        PermissionDenied: If the organizer does not own the event
        Conflict: ALREADY_PROCESSED
    """
    registration = await _load_order(db, organizer, registration_id)
    if not _is_pending(registration):
        raise _already_processed(registration)

    async with atomic(db):
        result = await db.execute(
            update(Registration)
            .where(*_pending_order_filter(registration_id))
            .values(
                payment_approval_status=ApprovalStatus.REJECTED,
                payment_status=PaymentStatus.FAILED,
                registration_status=RegistrationStatus.REJECTED,
                payment_rejection_reason=(reason or "").strip() or DEFAULT_REJECTION_REASON,
                updated_on=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(registration)
            raise _already_processed(registration)

    await db.refresh(registration)
    logger.info(f"Order {registration.ticket_id} rejected by organizer {organizer.id}")
    return registration


async def list_orders(
    db: AsyncSession,
    organizer: User,
    event_id: Optional[int] = None,
    approval_status: Optional[ApprovalStatus] = None,
) -> List[Registration]:
    """Merchandise orders across the organizer's events, newest first."""
    query = (
        select(Registration)
        .join(Event, Registration.event_id == Event.id)
        .where(
            Event.organizer_id == organizer.id,
            Registration.registration_type == EventType.MERCHANDISE,
        )
        .order_by(Registration.created_on.desc())
    )
    if event_id is not None:
        query = query.where(Registration.event_id == event_id)
    if approval_status is not None:
        query = query.where(Registration.payment_approval_status == approval_status)

    result = await db.execute(query)
    return list(result.scalars().unique().all())
