"""Pure registration and purchase eligibility checks.

Nothing in here touches the database; callers pass in whatever they have
already loaded and get back a decision.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from eventhub.auth.models import ParticipantType, User
from eventhub.common.errors import Conflict, Reason, ValidationFailed
from eventhub.events.models import Eligibility, Event, EventStatus, EventType

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_CONFLICT_REASONS = {Reason.ALREADY_REGISTERED}


@dataclass(frozen=True)
class Decision:
    accepted: bool
    reason: Optional[Reason] = None
    message: str = ""

    def raise_for_rejection(self) -> None:
        if self.accepted:
            return
        if self.reason in _CONFLICT_REASONS:
            raise Conflict(self.reason, self.message)
        raise ValidationFailed(self.reason or Reason.INVALID_INPUT, self.message)


ACCEPT = Decision(accepted=True)


def _reject(reason: Reason, message: str) -> Decision:
    return Decision(accepted=False, reason=reason, message=message)


def matches_eligibility(eligibility: Eligibility, participant_type: Optional[ParticipantType]) -> bool:
    if eligibility == Eligibility.IIIT_ONLY:
        return participant_type == ParticipantType.IIIT
    if eligibility == Eligibility.NON_IIIT_ONLY:
        return participant_type == ParticipantType.NON_IIIT
    return True


def _check_window(event: Event, now: datetime) -> Optional[Decision]:
    if event.status != EventStatus.PUBLISHED:
        return _reject(Reason.NOT_OPEN, "Event is not open for registration")
    if now > event.registration_deadline:
        return _reject(Reason.DEADLINE_PASSED, "Registration deadline has passed")
    return None


def check_registration(event: Event, participant: User, now: datetime, already_registered: bool) -> Decision:
    """Window, duplicate and eligibility checks for a normal event."""
    rejection = _check_window(event, now)
    if rejection:
        return rejection
    if event.event_type == EventType.NORMAL and already_registered:
        return _reject(Reason.ALREADY_REGISTERED, "Already registered for this event")
    if not matches_eligibility(event.eligibility, participant.participant_type):
        return _reject(Reason.NOT_ELIGIBLE, f"This event is for {event.eligibility.value} participants only")
    return ACCEPT


def check_purchase(
    event: Event,
    participant: User,
    now: datetime,
    payment_proof: Optional[str],
    variant_index: int,
    quantity: int,
) -> Decision:
    """Everything in ``check_registration`` plus proof, variant and quantity checks."""
    decision = check_registration(event, participant, now, already_registered=False)
    if not decision.accepted:
        return decision
    if not payment_proof:
        return _reject(Reason.PAYMENT_PROOF_REQUIRED, "Payment proof is required")
    if variant_index < 0 or variant_index >= len(event.variants):
        return _reject(Reason.INVALID_VARIANT, "Invalid variant")
    if quantity < 1:
        return _reject(Reason.INVALID_QUANTITY, "Quantity must be at least 1")
    return ACCEPT


def validate_form_responses(form: List[Dict[str, Any]], responses: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check responses against the event's custom form.

    Required fields must be present and non-empty, dropdown/radio answers
    must be one of the offered options, numbers must parse. Answers to fields
    the form does not define are dropped.

    Raises:
        ValidationFailed: On the first offending field
    """
    responses = responses or {}
    cleaned: Dict[str, Any] = {}
    for field in form or []:
        name = field.get("field_name")
        label = field.get("label") or name
        value = responses.get(name)
        if value is None or value == "" or value == []:
            if field.get("required"):
                raise ValidationFailed(Reason.INVALID_INPUT, f"{label} is required")
            continue

        field_type = field.get("field_type", "text")
        options = field.get("options") or []
        if field_type in ("dropdown", "radio") and value not in options:
            raise ValidationFailed(Reason.INVALID_INPUT, f"Invalid choice for {label}")
        if field_type == "checkbox":
            values = value if isinstance(value, list) else [value]
            if options and any(v not in options for v in values):
                raise ValidationFailed(Reason.INVALID_INPUT, f"Invalid choice for {label}")
            value = values
        if field_type == "number":
            try:
                float(value)
            except (TypeError, ValueError):
                raise ValidationFailed(Reason.INVALID_INPUT, f"{label} must be a number")
        if field_type == "email" and not _EMAIL_RE.match(str(value)):
            raise ValidationFailed(Reason.INVALID_INPUT, f"{label} must be a valid email")
        cleaned[name] = value
    return cleaned
