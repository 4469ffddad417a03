"""
Attendee-related Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

__all__ = ["AttendeeCreate", "AttendeeBulkCreate", "AttendeeUpdate", "AttendeeResponse", "ClaimRequest"]

class AttendeeCreate(BaseModel):
    """Schema for inviting an attendee"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

class AttendeeBulkCreate(BaseModel):
    attendees: List[AttendeeCreate]

class AttendeeUpdate(BaseModel):
    """Schema for updating an attendee; the access token never changes"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None

class AttendeeResponse(BaseModel):
    """Attendee as the organizer sees it, including the invitation link"""
    id: int
    event_id: int
    name: str
    email: str
    access_token: str
    invitation_url: str
    created_at: datetime

class ClaimRequest(BaseModel):
    """Attendee claim/release request"""
    gift_item_id: int
