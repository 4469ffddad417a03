"""
Attendee model
"""

import secrets
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from gifttable.core.db import Base

# 32 random bytes -> 43 URL-safe characters
ACCESS_TOKEN_BYTES = 32


def new_access_token() -> str:
    return secrets.token_urlsafe(ACCESS_TOKEN_BYTES)


class Attendee(Base):
    __tablename__ = "attendees"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    access_token = Column(String(64), unique=True, nullable=False, index=True, default=new_access_token)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="attendees")
    claimed_items = relationship("GiftItem", back_populates="claimed_by", passive_deletes=True)
