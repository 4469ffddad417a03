"""
Pydantic schemas package
"""

from .common import *
from .auth import *
from .event import *
from .attendee import *
from .gift_item import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "LoginRequest",
    "RegisterRequest",
    "ChangePasswordRequest",
    "AdminUserResponse",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventSummary",
    "AttendeeCreate",
    "AttendeeBulkCreate",
    "AttendeeUpdate",
    "AttendeeResponse",
    "GiftItemCreate",
    "GiftItemUpdate",
    "GiftItemResponse",
    "AttendeeGiftItemView",
    "ClaimRequest",
]
