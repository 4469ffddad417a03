"""
Email notification audit log
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey

from gifttable.core.db import Base


class NotificationLog(Base):
    __tablename__ = "email_notifications"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    attendee_id = Column(Integer, ForeignKey("attendees.id", ondelete="CASCADE"), nullable=True)
    notification_type = Column(String(50), nullable=False)  # event_published, new_gift_item, attendee_invited
    status = Column(String(20), nullable=False, default="sent")  # sent, skipped, failed
    detail = Column(Text, nullable=True)
    sent_at = Column(DateTime, default=datetime.utcnow)
