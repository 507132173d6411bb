"""Event discovery, detail and sign-up endpoints for signed-in users."""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.models import User
from eventhub.common.db import get_async_db
from eventhub.common.errors import ServiceError
from eventhub.common.schemas import as_naive_utc
from eventhub.common.security import get_current_user, require_role
from eventhub.common.storage import delete_file, save_upload_file
from eventhub.events import schemas as event_schema
from eventhub.events import service as event_service
from eventhub.events.models import Eligibility, EventStatus, EventType
from eventhub.registrations import schemas as reg_schema
from eventhub.registrations import service as reg_service

router = APIRouter()


def _list_item(event, score: Optional[int] = None) -> event_schema.EventListItem:
    item = event_schema.EventListItem.model_validate(event)
    item.relevance_score = score
    return item


@router.get("/", response_model=List[event_schema.EventListItem])
async def browse_events(
    search: Optional[str] = None,
    event_type: Optional[EventType] = None,
    eligibility: Optional[Eligibility] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    followed_only: bool = False,
    status_filter: EventStatus = Query(EventStatus.PUBLISHED, alias="status"),
    sort_by: Literal["recent", "relevant", "popular"] = "recent",
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Browse events with search, filters and sorting (recent, relevant, popular)."""
    results = await event_service.browse_events(
        db,
        current_user,
        search=search,
        event_type=event_type,
        eligibility=eligibility,
        start_date=as_naive_utc(start_date),
        end_date=as_naive_utc(end_date),
        followed_only=followed_only,
        status=status_filter,
        sort_by=sort_by,
    )
    return [_list_item(event, score) for event, score in results]


@router.get("/trending", response_model=List[event_schema.EventListItem])
async def trending_events(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Top 5 published events by views in the trending window."""
    return [_list_item(event) for event in await event_service.trending_events(db)]


@router.get("/recommended", response_model=List[event_schema.EventListItem])
async def recommended_events(
    current_user: User = Depends(require_role("participant")),
    db: AsyncSession = Depends(get_async_db),
):
    """Events scored against the participant's interests, follows and how soon they start."""
    results = await event_service.recommended_events(db, current_user)
    return [_list_item(event, score) for event, score in results]


@router.get("/{event_id}", response_model=event_schema.EventDetail)
async def get_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    detail = await event_service.view_event(db, current_user, event_id)
    response = event_schema.EventDetail.model_validate(detail["event"])
    response.is_registered = detail["is_registered"]
    response.spots_left = detail["spots_left"]
    return response


@router.post("/{event_id}/register", response_model=reg_schema.RegistrationResponse)
async def register_for_event(
    event_id: int,
    payload: Optional[reg_schema.RegistrationCreate] = None,
    current_user: User = Depends(require_role("participant")),
    db: AsyncSession = Depends(get_async_db),
):
    """Register for a normal event and receive a ticket."""
    registration = await reg_service.register_for_event(
        db, current_user, event_id, payload.form_responses if payload else None
    )
    return reg_schema.RegistrationResponse(
        message="Registration successful",
        ticket_id=registration.ticket_id,
        registration=reg_schema.RegistrationRead.model_validate(registration),
    )


@router.post("/{event_id}/purchase", response_model=reg_schema.RegistrationResponse)
async def purchase_merchandise(
    event_id: int,
    variant_index: int = Form(...),
    quantity: int = Form(1),
    payment_proof: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_role("participant")),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Order merchandise with a payment proof image.

    The order waits for organizer approval; the ticket is issued then.
    """
    proof_reference = None
    if payment_proof is not None and payment_proof.filename:
        proof_reference = await run_in_threadpool(save_upload_file, payment_proof)

    try:
        registration = await reg_service.purchase_merchandise(
            db, current_user, event_id, variant_index, quantity, proof_reference
        )
    except ServiceError:
        if proof_reference:
            await run_in_threadpool(delete_file, proof_reference)
        raise

    return reg_schema.RegistrationResponse(
        message="Payment proof uploaded successfully! Your order is pending organizer approval.",
        ticket_id=registration.ticket_id,
        registration=reg_schema.RegistrationRead.model_validate(registration),
    )
