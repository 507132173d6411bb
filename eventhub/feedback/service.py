"""Event feedback: one rating per participant, shown to the organizer anonymously."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.errors import Conflict, PermissionDenied, Reason
from eventhub.common.permissions import Capability, authorize
from eventhub.events.service import get_owned_event
from eventhub.feedback.models import Feedback
from eventhub.registrations.models import Registration, RegistrationStatus
from eventhub.registrations.service import get_event_or_404

logger = logging.getLogger(__name__)

RATINGS = (1, 2, 3, 4, 5)


async def submit_feedback(
    db: AsyncSession, participant: User, event_id: int, rating: int, comment: str
) -> Feedback:
    """
    Record the participant's feedback for an event they are registered for.

    Raises:
        PermissionDenied: If the participant holds no active registration
        Conflict: ALREADY_EXISTS if feedback was already submitted
    """
    event = await get_event_or_404(db, event_id)
    authorize(participant, Capability.REGISTER, event, message="Only participants can submit feedback")

    registered = await db.execute(
        select(Registration.id).where(
            Registration.event_id == event_id,
            Registration.participant_id == participant.id,
            Registration.registration_status == RegistrationStatus.REGISTERED,
        ).limit(1)
    )
    if registered.scalar_one_or_none() is None:
        raise PermissionDenied("You must be registered for this event to submit feedback")

    existing = await db.execute(
        select(Feedback.id).where(Feedback.event_id == event_id, Feedback.participant_id == participant.id)
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict(Reason.ALREADY_EXISTS, "You have already submitted feedback for this event")

    participant_id = participant.id
    feedback = Feedback(event_id=event_id, participant_id=participant_id, rating=rating, comment=comment.strip())
    db.add(feedback)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(Reason.ALREADY_EXISTS, "You have already submitted feedback for this event")

    await db.refresh(feedback)
    logger.info(f"Feedback {feedback.id} submitted for event {event_id} by participant {participant_id}")
    return feedback


async def list_feedback(
    db: AsyncSession, organizer: User, event_id: int, rating: Optional[int] = None
) -> List[Feedback]:
    await get_owned_event(db, organizer, event_id)
    query = select(Feedback).where(Feedback.event_id == event_id)
    if rating is not None:
        query = query.where(Feedback.rating == rating)
    result = await db.execute(query.order_by(Feedback.created_on.desc(), Feedback.id.desc()))
    return list(result.scalars().all())


async def feedback_stats(db: AsyncSession, organizer: User, event_id: int) -> Dict[str, Any]:
    """Count, average rounded to one decimal, and how many of each rating."""
    await get_owned_event(db, organizer, event_id)
    result = await db.execute(
        select(Feedback.rating, func.count(Feedback.id))
        .where(Feedback.event_id == event_id)
        .group_by(Feedback.rating)
    )
    distribution = {rating: 0 for rating in RATINGS}
    for rating, count in result.all():
        distribution[rating] = count

    total = sum(distribution.values())
    average = sum(r * c for r, c in distribution.items()) / total if total else 0
    return {
        "total_feedbacks": total,
        "average_rating": round(average, 1),
        "rating_distribution": distribution,
    }
