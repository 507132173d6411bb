"""Authentication router."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth import schemas as auth_schema
from eventhub.auth.models import User
from eventhub.auth.service import AuthService
from eventhub.common.db import get_async_db
from eventhub.common.security import get_current_user

router = APIRouter()


@router.post("/register", response_model=auth_schema.SignupResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: auth_schema.ParticipantSignup, db: AsyncSession = Depends(get_async_db)):
    """
    Participant self sign-up.

    IIIT participants must use an IIIT email address. Organizer accounts are
    created by admins.
    """
    user = await AuthService(db).signup_participant(payload)
    return auth_schema.SignupResponse(message="Registration successful", user_id=user.id)


@router.post("/login", response_model=auth_schema.LoginResponse)
async def login(payload: auth_schema.UserLogin, db: AsyncSession = Depends(get_async_db)):
    return await AuthService(db).login(payload)


@router.get("/me", response_model=auth_schema.UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
