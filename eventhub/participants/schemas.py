from typing import Dict, List

from pydantic import BaseModel, Field

from eventhub.auth.schemas import OrganizerSummary
from eventhub.events.schemas import EventRead
from eventhub.registrations.schemas import TicketRead


class ParticipantDashboard(BaseModel):
    upcoming: List[TicketRead] = Field(default_factory=list)
    history: Dict[str, List[TicketRead]] = Field(default_factory=dict)


class OrganizerListItem(OrganizerSummary):
    event_count: int = 0


class OrganizerDetail(BaseModel):
    organizer: OrganizerSummary
    upcoming_events: List[EventRead] = Field(default_factory=list)
    past_events: List[EventRead] = Field(default_factory=list)
