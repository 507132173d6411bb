"""Announce newly published events on an organizer's Discord webhook."""

import logging
from typing import Any, Dict, Optional

import requests

from eventhub.common.config import get_settings
from eventhub.common.db import utcnow

settings = get_settings()
logger = logging.getLogger(__name__)

DISCORD_BLUE = 0x5865F2


def build_event_embed(event) -> Dict[str, Any]:
    description = event.event_description or ""
    if len(description) > 300:
        description = description[:300] + "..."

    fee = float(event.registration_fee or 0)
    fields = [
        {"name": "Event Type", "value": event.event_type.value.capitalize(), "inline": True},
        {"name": "Registration Fee", "value": f"₹{fee:g}" if fee > 0 else "Free", "inline": True},
        {"name": "Start Date", "value": event.event_start_date.strftime("%d %b %Y"), "inline": True},
        {"name": "Registration Deadline", "value": event.registration_deadline.strftime("%d %b %Y"), "inline": True},
        {"name": "Eligibility", "value": event.eligibility.value, "inline": True},
        {
            "name": "Spots Available",
            "value": str(event.registration_limit) if event.registration_limit > 0 else "Unlimited",
            "inline": True,
        },
    ]
    if event.event_tags:
        fields.append({"name": "Tags", "value": ", ".join(event.event_tags), "inline": False})

    return {
        "title": f"New Event: {event.event_name}",
        "description": description,
        "color": DISCORD_BLUE,
        "fields": fields,
        "timestamp": utcnow().isoformat() + "Z",
        "footer": {"text": settings.app_name},
    }


def post_event_to_discord(webhook_url: Optional[str], event) -> bool:
    """Post the event embed; returns False on any failure instead of raising."""
    if not webhook_url:
        return False

    try:
        response = requests.post(
            webhook_url,
            json={"embeds": [build_event_embed(event)]},
            timeout=settings.webhook_timeout_seconds,
        )
        response.raise_for_status()
        return True
    except requests.RequestException as e:
        logger.error(f"Discord webhook error for event {event.id}: {e}")
        return False
