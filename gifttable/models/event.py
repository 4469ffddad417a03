"""
Event model
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from sqlalchemy.orm import relationship

from gifttable.core.db import Base


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    gift_receiver_name = Column(String(255), nullable=False)
    status = Column(
        Enum(
            EventStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=EventStatus.DRAFT,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    published_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)

    # Relationships
    attendees = relationship(
        "Attendee", back_populates="event", cascade="all, delete-orphan",
        passive_deletes=True, order_by="Attendee.id",
    )
    gift_items = relationship(
        "GiftItem", back_populates="event", cascade="all, delete-orphan",
        passive_deletes=True, order_by="GiftItem.id",
    )
