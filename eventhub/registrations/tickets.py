"""Ticket identifiers and QR payloads."""

import secrets
import string
import time
from datetime import datetime
from typing import Any, Dict, Optional

from eventhub.common.config import get_settings
from eventhub.common.db import utcnow
from eventhub.common.qr import render_qr_data_url
from eventhub.events.models import EventType

settings = get_settings()

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_ticket_id(prefix: Optional[str] = None) -> str:
    """
    Return ``PREFIX-<base36 ms timestamp>-<6 random base36 chars>``.

    Unique with overwhelming probability; the unique index on
    ``registration.ticket_id`` catches the rest and callers retry.
    """
    timestamp = to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix or settings.ticket_prefix}-{timestamp}-{random_part}"


def build_qr_payload(registration, event, participant, timestamp: Optional[datetime] = None) -> Dict[str, Any]:
    """Structured ticket facts encoded into the QR image."""
    payload: Dict[str, Any] = {
        "ticketId": registration.ticket_id,
        "eventId": event.id,
        "participantId": participant.id,
    }
    if event.event_type == EventType.MERCHANDISE:
        payload["merchandise"] = {
            "item": event.item_name,
            "variant": {"size": registration.variant_size, "color": registration.variant_color},
            "quantity": registration.quantity,
        }
    else:
        payload["eventName"] = event.event_name
    payload["participantName"] = participant.full_name
    payload["timestamp"] = (timestamp or utcnow()).isoformat()
    return payload


def issue_qr(registration, event, participant, timestamp: Optional[datetime] = None) -> Optional[str]:
    """Render the ticket QR; None when rendering fails."""
    return render_qr_data_url(build_qr_payload(registration, event, participant, timestamp), error_correction="H")
