"""
Gift item model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, JSON, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from gifttable.core.db import Base


class GiftItem(Base):
    __tablename__ = "gift_items"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    store_urls = Column(JSON, nullable=False, default=list)
    claimed_by_attendee_id = Column(
        Integer, ForeignKey("attendees.id", ondelete="SET NULL"), nullable=True, index=True
    )
    claimed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="gift_items")
    claimed_by = relationship("Attendee", back_populates="claimed_items")

    __table_args__ = (
        CheckConstraint(
            "(claimed_by_attendee_id IS NULL AND claimed_at IS NULL) OR "
            "(claimed_by_attendee_id IS NOT NULL AND claimed_at IS NOT NULL)",
            name="ck_gift_items_claim_pair",
        ),
        CheckConstraint("price IS NULL OR price >= 0", name="ck_gift_items_price_non_negative"),
    )

    @property
    def is_claimed(self) -> bool:
        return self.claimed_by_attendee_id is not None
