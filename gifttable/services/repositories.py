"""
Repository layer: the queries the services share.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from gifttable.models import Event, Attendee, GiftItem, AdminUser


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get_by_id(db: Session, event_id: int) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def get_for_update(db: Session, event_id: int) -> Optional[Event]:
        # FOR UPDATE is dropped by the SQLite dialect
        return db.query(Event).filter(Event.id == event_id).with_for_update().first()

    @staticmethod
    def get_status(db: Session, event_id: int):
        return db.query(Event.status).filter(Event.id == event_id).scalar()

    @staticmethod
    def list_with_counts(db: Session) -> List[Tuple[Event, int, int]]:
        attendee_counts = (
            db.query(Attendee.event_id, func.count(Attendee.id).label("n"))
            .group_by(Attendee.event_id)
            .subquery()
        )
        gift_counts = (
            db.query(GiftItem.event_id, func.count(GiftItem.id).label("n"))
            .group_by(GiftItem.event_id)
            .subquery()
        )
        rows = (
            db.query(
                Event,
                func.coalesce(attendee_counts.c.n, 0),
                func.coalesce(gift_counts.c.n, 0),
            )
            .outerjoin(attendee_counts, attendee_counts.c.event_id == Event.id)
            .outerjoin(gift_counts, gift_counts.c.event_id == Event.id)
            .order_by(Event.created_at.desc(), Event.id.desc())
            .all()
        )
        return [(event, int(n_attendees), int(n_gifts)) for event, n_attendees, n_gifts in rows]


# -------- Attendee repository --------

class AttendeeRepo:
    @staticmethod
    def get_by_id(db: Session, attendee_id: int) -> Optional[Attendee]:
        return db.query(Attendee).filter(Attendee.id == attendee_id).first()

    @staticmethod
    def get_for_update(db: Session, attendee_id: int) -> Optional[Attendee]:
        return db.query(Attendee).filter(Attendee.id == attendee_id).with_for_update().first()

    @staticmethod
    def get_by_token(db: Session, access_token: str) -> Optional[Attendee]:
        return (
            db.query(Attendee)
            .options(joinedload(Attendee.event))
            .filter(Attendee.access_token == access_token)
            .first()
        )

    @staticmethod
    def list_for_event(db: Session, event_id: int) -> List[Attendee]:
        return db.query(Attendee).filter(Attendee.event_id == event_id).order_by(Attendee.id).all()

    @staticmethod
    def emails_for_event(db: Session, event_id: int) -> set:
        rows = db.query(Attendee.email).filter(Attendee.event_id == event_id).all()
        return {email.lower() for (email,) in rows}


# -------- Gift item repository --------

class GiftItemRepo:
    @staticmethod
    def get_by_id(db: Session, gift_item_id: int) -> Optional[GiftItem]:
        return db.query(GiftItem).filter(GiftItem.id == gift_item_id).first()

    @staticmethod
    def get_in_event(db: Session, gift_item_id: int, event_id: int) -> Optional[GiftItem]:
        return db.query(GiftItem).filter(
            GiftItem.id == gift_item_id,
            GiftItem.event_id == event_id
        ).first()

    @staticmethod
    def list_for_event(db: Session, event_id: int) -> List[GiftItem]:
        return (
            db.query(GiftItem)
            .options(joinedload(GiftItem.claimed_by))
            .filter(GiftItem.event_id == event_id)
            .order_by(GiftItem.created_at, GiftItem.id)
            .all()
        )

    @staticmethod
    def list_claimed_by(db: Session, attendee_id: int) -> List[GiftItem]:
        return (
            db.query(GiftItem)
            .filter(GiftItem.claimed_by_attendee_id == attendee_id)
            .order_by(GiftItem.claimed_at, GiftItem.id)
            .all()
        )


# -------- Admin user repository --------

class AdminUserRepo:
    @staticmethod
    def get_by_id(db: Session, admin_id: int) -> Optional[AdminUser]:
        return db.query(AdminUser).filter(AdminUser.id == admin_id).first()

    @staticmethod
    def get_by_login(db: Session, username_or_email: str) -> Optional[AdminUser]:
        return db.query(AdminUser).filter(
            (AdminUser.username == username_or_email) | (AdminUser.email == username_or_email)
        ).first()

    @staticmethod
    def exists(db: Session, username: str, email: str) -> bool:
        return db.query(AdminUser.id).filter(
            (AdminUser.username == username) | (AdminUser.email == email)
        ).first() is not None

    @staticmethod
    def count(db: Session) -> int:
        return db.query(func.count(AdminUser.id)).scalar()
