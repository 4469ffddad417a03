"""
Database models package
"""

from .event import Event, EventStatus
from .attendee import Attendee
from .gift_item import GiftItem
from .admin_user import AdminUser
from .notification import NotificationLog

__all__ = ["Event", "EventStatus", "Attendee", "GiftItem", "AdminUser", "NotificationLog"]
