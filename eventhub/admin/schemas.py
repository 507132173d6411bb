"""Pydantic schemas for the admin module."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventhub.admin.models import ResetStatus


class AdminDashboard(BaseModel):
    total_organizers: int
    approved_organizers: int
    total_participants: int
    pending_password_resets: int


class OrganizerCreate(BaseModel):
    """Create schema for organizer accounts."""

    organizer_name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None


class OrganizerCredentials(BaseModel):
    """Generated login details; returned so the admin can share them if the email fails."""

    id: int
    email: str
    temporary_password: str
    organizer_name: str
    email_sent: bool


class OrganizerAdminRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    organizer_name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    contact_email: Optional[str] = None
    is_approved: bool
    password_reset_requested: bool
    created_on: datetime


class ResetRequestCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ResetDecision(BaseModel):
    admin_comment: Optional[str] = Field(None, max_length=500)


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    organizer_name: Optional[str] = None
    contact_email: Optional[str] = None


class ResetRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organizer_id: int
    organizer: Optional[UserBrief] = None
    reason: str
    status: ResetStatus
    admin_comment: Optional[str] = None
    processed_by: Optional[UserBrief] = None
    processed_at: Optional[datetime] = None
    created_on: datetime


class AdminResetRequestRead(ResetRequestRead):
    """Includes the temporary password until the admin clears it."""
    temporary_password: Optional[str] = None


class PasswordResetResult(BaseModel):
    message: str
    new_password: str
    email_sent: bool
    request: Optional[AdminResetRequestRead] = None
