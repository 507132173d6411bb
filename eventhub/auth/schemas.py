from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventhub.auth.models import ParticipantType, UserRole


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    sub: Optional[str] = None
    exp: Optional[int] = None
    role: Optional[str] = None


class UserLogin(BaseModel):
    email: str
    password: str


class ParticipantSignup(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(..., min_length=1, max_length=150)
    last_name: Optional[str] = Field(None, max_length=150)
    participant_type: ParticipantType
    college_name: Optional[str] = None
    contact_number: Optional[str] = None
    areas_of_interest: List[str] = Field(default_factory=list)
    followed_organizers: List[int] = Field(default_factory=list)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    participant_type: Optional[ParticipantType] = None
    college_name: Optional[str] = None
    contact_number: Optional[str] = None
    areas_of_interest: List[str] = Field(default_factory=list)
    followed_organizer_ids: List[int] = Field(default_factory=list)
    organizer_name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    contact_email: Optional[str] = None
    discord_webhook: Optional[str] = None
    is_approved: bool = False
    is_active: bool = True
    created_on: Optional[datetime] = None


class LoginResponse(Token):
    """Login response with the authenticated user's summary."""
    user: UserRead


class SignupResponse(BaseModel):
    message: str
    user_id: int


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class OrganizerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organizer_name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    contact_email: Optional[str] = None


class ParticipantProfile(UserRead):
    followed_organizers: List[OrganizerSummary] = Field(default_factory=list)


class ParticipantProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=150)
    last_name: Optional[str] = Field(None, max_length=150)
    contact_number: Optional[str] = Field(None, max_length=30)
    college_name: Optional[str] = Field(None, max_length=255)
    areas_of_interest: Optional[List[str]] = None


class OrganizerProfileUpdate(BaseModel):
    organizer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_number: Optional[str] = Field(None, max_length=30)
    discord_webhook: Optional[str] = Field(None, max_length=500)
