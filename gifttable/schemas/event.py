"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from gifttable.models.event import EventStatus
from .attendee import AttendeeCreate

__all__ = ["EventCreate", "EventUpdate", "EventResponse", "EventSummary"]

class EventCreate(BaseModel):
    """Schema for creating an event, optionally with its invitee list"""
    subject: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    gift_receiver_name: str = Field(..., min_length=1, max_length=255)
    attendees: List[AttendeeCreate] = []

class EventUpdate(BaseModel):
    """Editable event fields; status moves only through lifecycle actions"""
    subject: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    gift_receiver_name: str = Field(..., min_length=1, max_length=255)

class EventResponse(BaseModel):
    """Basic event response"""
    id: int
    subject: str
    description: Optional[str] = None
    gift_receiver_name: str
    status: EventStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EventSummary(EventResponse):
    """Event list entry with counts"""
    attendee_count: int
    gift_count: int
