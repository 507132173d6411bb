"""Pydantic schemas for events."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from eventhub.common.schemas import as_naive_utc
from eventhub.events.models import Eligibility, EventStatus, EventType


class FormFieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    RADIO = "radio"


class FormField(BaseModel):
    """One field of an event's custom registration form."""

    field_name: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1, max_length=255)
    field_type: FormFieldType = FormFieldType.TEXT
    required: bool = False
    options: List[str] = Field(default_factory=list)
    order: int = 0

    @model_validator(mode="after")
    def choices_need_options(self):
        if self.field_type in (FormFieldType.DROPDOWN, FormFieldType.RADIO) and not self.options:
            raise ValueError(f"Field '{self.field_name}' needs at least one option")
        return self


class VariantCreate(BaseModel):
    size: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    stock_quantity: int = Field(0, ge=0)


class VariantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    size: Optional[str] = None
    color: Optional[str] = None
    stock_quantity: int
    sold: int


def _check_form(fields: Optional[List[FormField]]) -> Optional[List[FormField]]:
    if fields:
        names = [f.field_name for f in fields]
        if len(names) != len(set(names)):
            raise ValueError("Form field names must be unique")
    return fields


def _check_variants(variants: Optional[List[VariantCreate]]) -> Optional[List[VariantCreate]]:
    if variants:
        keys = [(v.size, v.color) for v in variants]
        if len(keys) != len(set(keys)):
            raise ValueError("Variants must have unique size/color combinations")
    return variants


class EventCreate(BaseModel):
    """Create schema for events. New events always start as drafts."""

    event_name: str = Field(..., min_length=1, max_length=255)
    event_description: str = Field(..., min_length=1)
    event_type: EventType
    eligibility: Eligibility = Eligibility.ALL
    event_tags: List[str] = Field(default_factory=list)
    venue: Optional[str] = Field(None, max_length=255)
    registration_deadline: datetime
    event_start_date: datetime
    event_end_date: datetime
    registration_limit: int = Field(0, ge=0)
    registration_fee: float = Field(0, ge=0)
    custom_form: List[FormField] = Field(default_factory=list)
    item_name: Optional[str] = Field(None, max_length=255)
    purchase_limit_per_participant: int = Field(1, ge=1)
    variants: List[VariantCreate] = Field(default_factory=list)

    @field_validator("registration_deadline", "event_start_date", "event_end_date")
    @classmethod
    def naive_dates(cls, v):
        return as_naive_utc(v)

    @field_validator("custom_form")
    @classmethod
    def unique_field_names(cls, v):
        return _check_form(v)

    @field_validator("variants")
    @classmethod
    def unique_variants(cls, v):
        return _check_variants(v)

    @model_validator(mode="after")
    def check_consistency(self):
        if self.event_end_date < self.event_start_date:
            raise ValueError("Event end date must be after the start date")
        if self.event_type == EventType.MERCHANDISE:
            if not self.item_name:
                raise ValueError("Merchandise events need an item name")
            if not self.variants:
                raise ValueError("Merchandise events need at least one variant")
        return self


class EventUpdate(BaseModel):
    """Partial update; which fields may change depends on the event's status."""

    event_name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_description: Optional[str] = Field(None, min_length=1)
    eligibility: Optional[Eligibility] = None
    event_tags: Optional[List[str]] = None
    venue: Optional[str] = Field(None, max_length=255)
    registration_deadline: Optional[datetime] = None
    event_start_date: Optional[datetime] = None
    event_end_date: Optional[datetime] = None
    registration_limit: Optional[int] = Field(None, ge=0)
    registration_fee: Optional[float] = Field(None, ge=0)
    custom_form: Optional[List[FormField]] = None
    item_name: Optional[str] = Field(None, max_length=255)
    purchase_limit_per_participant: Optional[int] = Field(None, ge=1)
    variants: Optional[List[VariantCreate]] = None

    @field_validator("registration_deadline", "event_start_date", "event_end_date")
    @classmethod
    def naive_dates(cls, v):
        return as_naive_utc(v)

    @field_validator("custom_form")
    @classmethod
    def unique_field_names(cls, v):
        return _check_form(v)

    @field_validator("variants")
    @classmethod
    def unique_variants(cls, v):
        return _check_variants(v)


class StatusUpdate(BaseModel):
    status: EventStatus


class OrganizerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organizer_name: Optional[str] = None
    category: Optional[str] = None
    contact_email: Optional[str] = None


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organizer_id: int
    organizer: Optional[OrganizerSummary] = None
    event_name: str
    event_description: str
    event_type: EventType
    eligibility: Eligibility
    event_tags: List[str] = Field(default_factory=list)
    venue: Optional[str] = None
    registration_deadline: datetime
    event_start_date: datetime
    event_end_date: datetime
    registration_limit: int
    registration_fee: float
    status: EventStatus
    custom_form: List[FormField] = Field(default_factory=list)
    form_locked: bool
    item_name: Optional[str] = None
    purchase_limit_per_participant: int
    variants: List[VariantRead] = Field(default_factory=list)
    total_registrations: int
    total_revenue: float
    total_attendance: int
    views: int
    created_on: datetime


class EventListItem(EventRead):
    relevance_score: Optional[int] = None


class EventDetail(EventRead):
    """Event as a participant sees it, with their own registration state."""
    is_registered: bool = False
    spots_left: Optional[int] = None
