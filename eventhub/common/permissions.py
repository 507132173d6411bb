"""Capability checks shared by every workflow entry point."""

from enum import Enum
from typing import Optional

from eventhub.auth.models import User, UserRole
from eventhub.common.errors import PermissionDenied


class Capability(str, Enum):
    CREATE_EVENT = "create_event"
    MANAGE_EVENT = "manage_event"  # edit, approve orders, scan tickets, moderate forum
    REGISTER = "register"
    ADMINISTER = "administer"


def is_event_owner(actor: User, event) -> bool:
    return actor.role == UserRole.ORGANIZER and event is not None and event.organizer_id == actor.id


def can(actor: User, capability: Capability, event=None) -> bool:
    if not actor.is_active:
        return False
    if capability == Capability.ADMINISTER:
        return actor.role == UserRole.ADMIN
    if capability == Capability.CREATE_EVENT:
        return actor.role == UserRole.ORGANIZER and actor.is_approved
    if capability == Capability.REGISTER:
        return actor.role == UserRole.PARTICIPANT
    if capability == Capability.MANAGE_EVENT:
        return is_event_owner(actor, event)
    return False


def authorize(actor: User, capability: Capability, event=None, message: Optional[str] = None) -> None:
    """Raise PermissionDenied unless ``actor`` holds ``capability`` on ``event``."""
    if not can(actor, capability, event):
        raise PermissionDenied(message or "Access denied")
