"""Admin router - organizer management and password reset review."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.admin import schemas as admin_schema
from eventhub.admin import service as admin_service
from eventhub.auth.models import User
from eventhub.common.db import get_async_db
from eventhub.common.schemas import Message
from eventhub.common.security import require_role

router = APIRouter()

get_current_admin = require_role("admin")


@router.get("/dashboard", response_model=admin_schema.AdminDashboard)
async def dashboard(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await admin_service.get_dashboard(db)


@router.get("/organizers", response_model=List[admin_schema.OrganizerAdminRead])
async def list_organizers(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await admin_service.list_organizers(db)


@router.post("/organizers", response_model=admin_schema.OrganizerCredentials)
async def create_organizer(
    payload: admin_schema.OrganizerCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Create an organizer account.

    The login email is derived from the organizer name. The temporary password
    is emailed to the contact address and also returned here in case the
    email does not arrive.
    """
    organizer, password, email_sent = await admin_service.create_organizer(db, payload)
    return admin_schema.OrganizerCredentials(
        id=organizer.id,
        email=organizer.email,
        temporary_password=password,
        organizer_name=organizer.organizer_name,
        email_sent=email_sent,
    )


@router.delete("/organizers/{organizer_id}", response_model=Message)
async def remove_organizer(
    organizer_id: int,
    permanent: bool = False,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Disable an organizer, or delete the account with ``?permanent=true``."""
    return Message(message=await admin_service.remove_organizer(db, organizer_id, permanent))


@router.put("/organizers/{organizer_id}/enable", response_model=Message)
async def enable_organizer(
    organizer_id: int,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await admin_service.enable_organizer(db, organizer_id)
    return Message(message="Organizer account enabled")


@router.post("/organizers/{organizer_id}/reset-password", response_model=admin_schema.PasswordResetResult)
async def reset_organizer_password(
    organizer_id: int,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    new_password, email_sent = await admin_service.reset_organizer_password(db, organizer_id)
    return admin_schema.PasswordResetResult(
        message="Password reset successfully", new_password=new_password, email_sent=email_sent
    )


@router.get("/password-reset-requests", response_model=List[admin_schema.AdminResetRequestRead])
async def list_reset_requests(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await admin_service.list_reset_requests(db)


@router.put("/password-reset-requests/{request_id}/approve", response_model=admin_schema.PasswordResetResult)
async def approve_reset_request(
    request_id: int,
    payload: admin_schema.ResetDecision,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    request, new_password, email_sent = await admin_service.approve_reset_request(
        db, current_user, request_id, payload.admin_comment
    )
    return admin_schema.PasswordResetResult(
        message="Password reset approved successfully",
        new_password=new_password,
        email_sent=email_sent,
        request=admin_schema.AdminResetRequestRead.model_validate(request),
    )


@router.put("/password-reset-requests/{request_id}/reject", response_model=admin_schema.AdminResetRequestRead)
async def reject_reset_request(
    request_id: int,
    payload: admin_schema.ResetDecision,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await admin_service.reject_reset_request(db, current_user, request_id, payload.admin_comment)


@router.put("/password-reset-requests/{request_id}/clear-temp-password", response_model=Message)
async def clear_temporary_password(
    request_id: int,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await admin_service.clear_temporary_password(db, request_id)
    return Message(message="Temporary password cleared")
