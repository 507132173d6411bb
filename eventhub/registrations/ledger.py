"""Event counters and merchandise stock.

Every mutation here is a single conditional UPDATE, so the check and the
write happen in one statement and concurrent requests cannot both pass a
limit. Callers run these inside their own transaction and refresh any ORM
objects they still hold afterwards.
"""

import logging
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import utcnow
from eventhub.common.errors import Conflict, Reason, ValidationFailed
from eventhub.events.models import Event, EventType, MerchandiseVariant
from eventhub.registrations.models import ApprovalStatus, Registration, RegistrationStatus

logger = logging.getLogger(__name__)


async def reserve_registration_slot(db: AsyncSession, event_id: int, amount: float, lock_form: bool = False) -> None:
    """
    Count one registration against the event.

    Raises:
        Conflict: LIMIT_REACHED if the event is full
    """
    values = {
        "total_registrations": Event.total_registrations + 1,
        "total_revenue": Event.total_revenue + (amount or 0),
        "updated_on": utcnow(),
    }
    if lock_form:
        values["form_locked"] = True

    result = await db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            or_(Event.registration_limit == 0, Event.total_registrations < Event.registration_limit),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise Conflict(Reason.LIMIT_REACHED, "Registration limit reached")


async def release_registration_slot(db: AsyncSession, event_id: int, amount: float) -> None:
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.total_registrations > 0)
        .values(
            total_registrations=Event.total_registrations - 1,
            total_revenue=Event.total_revenue - (amount or 0),
            updated_on=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(f"Event {event_id} had no registrations to release")


async def set_registration_limit(db: AsyncSession, event_id: int, limit: int) -> None:
    """Change the limit without ever dropping it below the current count."""
    stmt = update(Event).where(Event.id == event_id)
    if limit > 0:
        stmt = stmt.where(Event.total_registrations <= limit)
    result = await db.execute(
        stmt.values(registration_limit=limit, updated_on=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ValidationFailed(
            Reason.INVALID_INPUT,
            "Registration limit cannot be lower than the number of current registrations",
        )


async def count_open_orders(db: AsyncSession, event_id: int, participant_id: int) -> int:
    """Number of the participant's orders for the event that are pending or approved."""
    result = await db.execute(
        select(func.count(Registration.id)).where(
            Registration.event_id == event_id,
            Registration.participant_id == participant_id,
            Registration.registration_type == EventType.MERCHANDISE,
            Registration.registration_status == RegistrationStatus.REGISTERED,
            Registration.payment_approval_status.in_([ApprovalStatus.PENDING, ApprovalStatus.APPROVED]),
        )
    )
    return int(result.scalar_one())


async def reserve_stock(
    db: AsyncSession,
    event: Event,
    variant_index: int,
    quantity: int,
    participant_id: int,
) -> MerchandiseVariant:
    """
    Gate a purchase request. Nothing is decremented here; stock only moves on approval.

    The participant row is locked first so two simultaneous orders from the
    same participant are counted one after the other. SQLite ignores FOR UPDATE,
    so this serialisation only holds on PostgreSQL.

    Raises:
        ValidationFailed: INVALID_VARIANT for an out-of-range index
        Conflict: INSUFFICIENT_STOCK or PURCHASE_LIMIT_REACHED
    """
    if variant_index < 0 or variant_index >= len(event.variants):
        raise ValidationFailed(Reason.INVALID_VARIANT, "Invalid variant")
    variant = event.variants[variant_index]

    stock = (
        await db.execute(select(MerchandiseVariant.stock_quantity).where(MerchandiseVariant.id == variant.id))
    ).scalar_one()
    if stock < quantity:
        raise Conflict(
            Reason.INSUFFICIENT_STOCK,
            "Insufficient stock",
            extra={"available": stock},
        )

    await db.execute(select(User.id).where(User.id == participant_id).with_for_update())

    limit = event.purchase_limit_per_participant or 0
    if limit > 0:
        already_ordered = await count_open_orders(db, event.id, participant_id)
        if already_ordered + 1 > limit:
            raise Conflict(
                Reason.PURCHASE_LIMIT_REACHED,
                f"Purchase limit is {limit} per participant",
                extra={"already_ordered": already_ordered},
            )
    return variant


async def commit_stock_decrement(
    db: AsyncSession,
    event: Event,
    size: Optional[str],
    color: Optional[str],
    quantity: int,
    amount: float,
) -> Optional[MerchandiseVariant]:
    """
    Move approved stock out of inventory and count the order in the event totals.

    A variant that has disappeared since the order was placed is logged and
    skipped; the totals are still counted.

    Raises:
        Conflict: INSUFFICIENT_STOCK if stock ran out since the order was placed
    """
    variant = event.find_variant(size, color)
    if variant is None:
        logger.warning(
            f"Inventory inconsistency: variant size={size!r} color={color!r} "
            f"missing on event {event.id}; approving without stock decrement"
        )
    else:
        result = await db.execute(
            update(MerchandiseVariant)
            .where(MerchandiseVariant.id == variant.id, MerchandiseVariant.stock_quantity >= quantity)
            .values(
                stock_quantity=MerchandiseVariant.stock_quantity - quantity,
                sold=MerchandiseVariant.sold + quantity,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Conflict(Reason.INSUFFICIENT_STOCK, "Insufficient stock to approve this order")

    await reserve_registration_slot(db, event.id, amount)
    return variant


async def record_attendance(db: AsyncSession, event_id: int) -> None:
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(total_attendance=Event.total_attendance + 1)
        .execution_options(synchronize_session=False)
    )
